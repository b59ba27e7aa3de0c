# auth_api/db/init_db.py
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from auth_api.core.security import PasswordHasher
from auth_api.crud.user import user_crud
from auth_api.models.role import ROLE_ADMIN, ROLE_NAMES, ROLE_USER, Role

logger = logging.getLogger(__name__)


def init_db(
    db: Session,
    hasher: PasswordHasher,
    admin_email: Optional[str] = None,
    admin_password: Optional[str] = None,
) -> None:
    """Seeds the roles and, when configured, a verified admin account.
    Safe to run on every start."""
    roles = {r.name for r in db.scalars(select(Role)).all()}
    for name in ROLE_NAMES:
        if name not in roles:
            db.add(Role(name=name))
    db.flush()

    if admin_email and admin_password and not user_crud.get_by_email(db, admin_email):
        user_crud.create(db, {
            "email": admin_email,
            "password_hash": hasher.hash(admin_password),
            "first_name": "Admin",
            "roles": [ROLE_ADMIN, ROLE_USER],
            "is_email_verified": True,
        })
        logger.info("Seeded admin account %s", admin_email)

    db.commit()
