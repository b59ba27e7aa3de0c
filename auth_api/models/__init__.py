# Loads every model so the tables are registered on Base.metadata
from auth_api.models.user_role import user_roles  # noqa: F401
from auth_api.models.role import Role  # noqa: F401
from auth_api.models.user import User  # noqa: F401
from auth_api.models.refresh_token import RefreshToken  # noqa: F401

__all__ = ["user_roles", "Role", "User", "RefreshToken"]
