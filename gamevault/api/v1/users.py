"""
Users API - registration, lookup and account management.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from gamevault.api.v1.auth import get_current_user, get_current_username, require_admin
from gamevault.api.v1.errors import handle_service_error
from gamevault.config import Settings, get_settings
from gamevault.db.database import get_db
from gamevault.models.request import RegisterUserRequest, UpdateUserRequest, UserResponse
from gamevault.models.user import User
from gamevault.services.errors import GamevaultError
from gamevault.services.user_service import UserService

router = APIRouter(tags=["users"])


def get_user_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> UserService:
    return UserService(db, settings)


@router.post("/users/register", response_model=UserResponse)
async def register_user(
    request: RegisterUserRequest,
    service: UserService = Depends(get_user_service),
):
    try:
        return UserResponse.from_record(await service.register(request))
    except GamevaultError as e:
        raise handle_service_error(e)


@router.get("/users", response_model=List[UserResponse])
async def list_users(
    include_deleted: bool = Query(False),
    include_deactivated: bool = Query(False),
    _: Optional[str] = Depends(get_current_username),
    service: UserService = Depends(get_user_service),
):
    users = await service.get_all(
        include_deleted=include_deleted, include_deactivated=include_deactivated
    )
    return [UserResponse.from_record(u) for u in users]


@router.get("/users/me", response_model=UserResponse)
async def get_me(user: Optional[User] = Depends(get_current_user)):
    if user is None:
        raise HTTPException(status_code=404, detail="Authentication is disabled, there is no current user")
    return UserResponse.from_record(user)


@router.get("/users/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    _: Optional[str] = Depends(get_current_username),
    service: UserService = Depends(get_user_service),
):
    try:
        return UserResponse.from_record(await service.get_by_id_or_fail(user_id))
    except GamevaultError as e:
        raise handle_service_error(e)


@router.put("/users/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    request: UpdateUserRequest,
    username: Optional[str] = Depends(get_current_username),
    service: UserService = Depends(get_user_service),
):
    """Update your own account; admin-only fields are ignored."""
    try:
        await service.check_if_username_matches_id_or_is_admin(user_id, username)
        return UserResponse.from_record(
            await service.update(user_id, request, admin=False, executor_username=username)
        )
    except GamevaultError as e:
        raise handle_service_error(e)


@router.put("/admin/users/{user_id}", response_model=UserResponse)
async def admin_update_user(
    user_id: int,
    request: UpdateUserRequest,
    admin: Optional[User] = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    try:
        return UserResponse.from_record(
            await service.update(
                user_id, request, admin=True,
                executor_username=admin.username if admin else None,
            )
        )
    except GamevaultError as e:
        raise handle_service_error(e)


@router.delete("/users/{user_id}", response_model=UserResponse)
async def delete_user(
    user_id: int,
    username: Optional[str] = Depends(get_current_username),
    service: UserService = Depends(get_user_service),
):
    try:
        await service.check_if_username_matches_id_or_is_admin(user_id, username)
        return UserResponse.from_record(await service.delete(user_id))
    except GamevaultError as e:
        raise handle_service_error(e)


@router.post("/users/{user_id}/recover", response_model=UserResponse)
async def recover_user(
    user_id: int,
    _: Optional[User] = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    try:
        return UserResponse.from_record(await service.recover(user_id))
    except GamevaultError as e:
        raise handle_service_error(e)
