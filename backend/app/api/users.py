"""User management API."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import validate_password_complexity
from app.api.deps import get_db, get_login_guard
from app.core.errors import ErrorCode, conflict, forbidden, validation_error
from app.schemas.user import (
    ChangePasswordRequest,
    UserCreate,
    UserCreatedResponse,
    UserListResponse,
    UserResponse,
    UserUpdate,
)
from app.services import users as user_service
from app.services.login_guard import LoginAttemptGuard
from app.services.users import user_crud

router = APIRouter(prefix="/users", tags=["users"])


def _check_new_password(password: str, confirmation: str) -> None:
    is_valid, error_msg = validate_password_complexity(password)
    if not is_valid:
        raise validation_error(error_msg)
    if password != confirmation:
        raise validation_error(
            "Password confirmation mismatched",
            code=ErrorCode.INVALID_PASSWORD,
        )


@router.get("", response_model=UserListResponse)
async def list_users(
    db: Annotated[AsyncSession, Depends(get_db)],
    page_number: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 10,
    sort: str = "email:asc",
    search: str | None = None,
):
    """List users with pagination, sorting (field:asc|desc) and search (field:key)."""
    return await user_service.list_users(
        db,
        page_number=page_number,
        page_size=page_size,
        sort=sort,
        search=search,
    )


@router.post("", response_model=UserCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    _check_new_password(data.password, data.password_confirm)

    if await user_service.email_is_registered(db, data.email):
        raise conflict("Email is already registered", code=ErrorCode.EMAIL_ALREADY_TAKEN)

    user = await user_service.create_user(db, data.name, data.email, data.password)
    return UserCreatedResponse(name=user.name, email=user.email)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await user_crud.get_or_404(db, user_id, "User")


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: UUID,
    data: UserUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    user = await user_crud.get_or_404(db, user_id, "User")

    if await user_service.email_is_registered(db, data.email, exclude_id=user.id):
        raise conflict("Email is already registered", code=ErrorCode.EMAIL_ALREADY_TAKEN)

    return await user_crud.update(db, user, data)


@router.delete("/{user_id}")
async def delete_user(
    user_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    await user_crud.get_or_404(db, user_id, "User")
    await user_crud.delete(db, user_id)
    return {"id": str(user_id)}


@router.post("/{user_id}/change-password")
async def change_password(
    user_id: UUID,
    data: ChangePasswordRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    guard: Annotated[LoginAttemptGuard, Depends(get_login_guard)],
):
    user = await user_crud.get_or_404(db, user_id, "User")

    _check_new_password(data.password_new, data.password_confirm)

    if not await user_service.check_password(user, data.password_old):
        raise forbidden("Wrong password", code=ErrorCode.INVALID_PASSWORD)

    await user_service.change_password(db, user, data.password_new)
    # Stale failures from before the change must not keep the owner locked out
    await guard.reset(user.email)
    return {"id": str(user_id)}
