from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from auth_api.db.base import Base
from auth_api.models.user_role import user_roles

ROLE_USER = "user"    # base role, every account has it by default
ROLE_ADMIN = "admin"  # user management

ROLE_NAMES = [ROLE_USER, ROLE_ADMIN]


class Role(Base):
    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)

    # M2M: roles <-> users
    users = relationship("User", secondary=user_roles, back_populates="roles")
