# auth_api/api/v1/users.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Response, status
from sqlalchemy.orm import Session

from auth_api.api.deps import get_auth_service, get_db
from auth_api.core.errors import ConflictError, NotFoundError
from auth_api.core.rbac import require_roles
from auth_api.crud.user import user_crud
from auth_api.models.role import ROLE_ADMIN
from auth_api.models.user import User
from auth_api.schemas.user import RoleName, SortField, UserCreate, UserOut, UserPage, UserUpdate, to_page, to_public
from auth_api.services.auth import AuthService

router = APIRouter(dependencies=[Depends(require_roles(ROLE_ADMIN))])


def _get_or_404(db: Session, user_id: int) -> User:
    u = user_crud.get(db, user_id)
    if not u:
        raise NotFoundError(f"User with ID {user_id} not found.")
    return u


def _ensure_unique_email(db: Session, email: str, exclude_user_id: Optional[int] = None):
    u = user_crud.get_by_email(db, email)
    if u and (exclude_user_id is None or u.id != exclude_user_id):
        raise ConflictError()


@router.post("/", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
    body: UserCreate,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    _ensure_unique_email(db, body.email)
    data = body.model_dump(exclude={"password"})
    data["password_hash"] = auth.hasher.hash(body.password)
    u = user_crud.create(db, data)
    db.commit()
    return to_public(u)


@router.get("/", response_model=UserPage)
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None, description="matches email or name"),
    role: Optional[RoleName] = Query(None),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    sort_by: SortField = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    db: Session = Depends(get_db),
):
    users, total = user_crud.list(
        db,
        page=page,
        limit=limit,
        search=search,
        role=role,
        is_active=is_active,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return to_page(users, total, page, limit)


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    return to_public(_get_or_404(db, user_id))


@router.patch("/{user_id}", response_model=UserOut)
def update_user(
    body: UserUpdate,
    user_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    u = _get_or_404(db, user_id)
    data = body.model_dump(exclude_unset=True, exclude={"password"})
    if data.get("email") is not None:
        _ensure_unique_email(db, data["email"], exclude_user_id=u.id)

    user_crud.update(db, u, {k: v for k, v in data.items() if v is not None})
    if body.password:
        u.password_hash = auth.hasher.hash(body.password)
        auth.refresh_tokens.revoke_all_for_user(db, u.id)
    if body.is_active is False:
        auth.refresh_tokens.revoke_all_for_user(db, u.id)
    db.commit()
    return to_public(u)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    _get_or_404(db, user_id)
    user_crud.remove(db, user_id)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{user_id}/toggle-status", response_model=UserOut)
def toggle_active_status(
    user_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    u = _get_or_404(db, user_id)
    u.is_active = not u.is_active
    if not u.is_active:
        auth.refresh_tokens.revoke_all_for_user(db, u.id)
    db.commit()
    return to_public(u)
