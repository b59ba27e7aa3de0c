# auth_api/core/rbac.py
from fastapi import Depends

from auth_api.api.deps import get_current_user
from auth_api.core.errors import ForbiddenError
from auth_api.models.role import ROLE_NAMES
from auth_api.models.user import User


def _user_role_names(user) -> set[str]:
    return {r.name for r in (user.roles or [])}


def require_roles(*roles: str):
    unknown = set(roles) - set(ROLE_NAMES)
    if unknown:
        raise RuntimeError(f"Unknown role(s): {sorted(unknown)}")
    allowed = set(roles)

    def dep(user: User = Depends(get_current_user)) -> User:
        if not (_user_role_names(user) & allowed):
            raise ForbiddenError()
        return user
    return dep
