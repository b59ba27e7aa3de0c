from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from auth_api.core.errors import ValidationError
from auth_api.crud.base import CRUDBase
from auth_api.models.role import ROLE_NAMES, ROLE_USER, Role
from auth_api.models.user import User

SORTABLE_FIELDS = {
    "email": User.email,
    "firstName": User.first_name,
    "lastName": User.last_name,
    "createdAt": User.created_at,
}


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _roles_for_names(db: Session, names: Iterable[str]) -> List[Role]:
    """Validates role names and returns the Role rows, creating missing ones."""
    want = sorted({n.strip().lower() for n in names if n and n.strip()})
    if not want:
        raise ValidationError("A user must have at least one role.")
    invalid = [n for n in want if n not in ROLE_NAMES]
    if invalid:
        raise ValidationError(f"Unknown roles: {invalid}")

    have = {r.name: r for r in db.scalars(select(Role).where(Role.name.in_(want))).all()}
    for n in want:
        if n not in have:
            r = Role(name=n)
            db.add(r)
            db.flush()
            have[n] = r
    return [have[n] for n in want]


class CRUDUser(CRUDBase[User]):
    def create(self, db: Session, fields: Dict[str, Any]) -> User:
        data = dict(fields)
        role_names = data.pop("roles", None) or [ROLE_USER]
        data["email"] = normalize_email(data["email"])
        user = User(**data)
        user.roles = _roles_for_names(db, role_names)
        db.add(user); db.flush()
        return user

    def update(self, db: Session, db_obj: User, fields: Dict[str, Any]) -> User:
        data = dict(fields)
        if "roles" in data:
            db_obj.roles = _roles_for_names(db, data.pop("roles") or [])
        if "email" in data:
            data["email"] = normalize_email(data["email"])
        return super().update(db, db_obj, data)

    def get_by_email(self, db: Session, email: str) -> Optional[User]:
        return db.execute(select(User).where(User.email == normalize_email(email))).scalar_one_or_none()

    def get_by_verification_token(self, db: Session, token: str) -> Optional[User]:
        stmt = select(User).where(User.email_verification_token == token).with_for_update()
        return db.execute(stmt).scalar_one_or_none()

    def get_by_reset_token(self, db: Session, token: str, now: datetime) -> Optional[User]:
        stmt = (
            select(User)
            .where(User.password_reset_token == token, User.password_reset_expires_at > now)
            .with_for_update()
        )
        return db.execute(stmt).scalar_one_or_none()

    def list(
        self,
        db: Session,
        *,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> Tuple[List[User], int]:
        stmt = select(User)
        if search:
            like = f"%{search.lower()}%"
            stmt = stmt.where(or_(
                User.email.ilike(like),
                User.first_name.ilike(like),
                User.last_name.ilike(like),
            ))
        if role:
            stmt = stmt.where(User.roles.any(Role.name == role.lower()))
        if is_active is not None:
            stmt = stmt.where(User.is_active == is_active)

        total = db.scalar(select(func.count()).select_from(stmt.subquery())) or 0

        column = SORTABLE_FIELDS.get(sort_by, User.created_at)
        order = column.asc() if sort_order == "asc" else column.desc()
        stmt = stmt.order_by(order, User.id.asc()).offset((page - 1) * limit).limit(limit)
        return list(db.scalars(stmt).all()), total


user_crud = CRUDUser(User)
