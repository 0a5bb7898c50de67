"""
User Service - Business logic for user accounts.

Provides:
- Registration and login
- Lookup, update, soft delete and recovery
- Ownership checks for user-scoped endpoints
- Admin bootstrap from SERVER_ADMIN_USERNAME on startup
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from gamevault.config import Settings
from gamevault.core.security import hash_password, verify_password
from gamevault.models.request import RegisterUserRequest, UpdateUserRequest
from gamevault.models.user import Role, User
from gamevault.repositories.user_repo import UserRepository
from gamevault.services.errors import (
    AlreadyExistsError,
    AuthorizationError,
    BadRequestError,
    ForbiddenError,
    NotFoundError,
)
from gamevault.services.image_service import ImageService

logger = logging.getLogger(__name__)


class UserService:
    def __init__(
        self,
        session: AsyncSession,
        settings: Settings,
        image_service: Optional[ImageService] = None,
    ):
        self.settings = settings
        self.repo = UserRepository(session)
        self.images = image_service or ImageService(session, settings)

    def _hash(self, password: str) -> str:
        return hash_password(password, rounds=self.settings.password_hash_rounds)

    # ============ Lookup ============

    async def get_by_id_or_fail(self, user_id: int, include_deleted: bool = False) -> User:
        user = await self.repo.get_by_id(user_id, include_deleted=include_deleted)
        if user is None:
            raise NotFoundError(f"User with id {user_id} was not found.")
        return user

    async def get_by_username_or_fail(self, username: str) -> User:
        user = await self.repo.get_by_username(username)
        if user is None:
            raise NotFoundError(f"User with username {username} was not found on the server.")
        return user

    async def get_all(
        self, include_deleted: bool = False, include_deactivated: bool = False
    ) -> List[User]:
        return await self.repo.list_all(
            include_deleted=include_deleted, include_deactivated=include_deactivated
        )

    # ============ Registration / Login ============

    async def register(self, request: RegisterUserRequest) -> User:
        await self._throw_if_already_exists(request.username, request.email)
        is_admin = bool(self.settings.server_admin_username) and (
            request.username == self.settings.server_admin_username
        )
        user = User(
            id=None,
            username=request.username,
            password=self._hash(request.password),
            email=request.email,
            first_name=request.first_name,
            last_name=request.last_name,
            activated=self.settings.server_account_activation_disabled or is_admin,
            role=Role.ADMIN if is_admin else Role.USER,
        )
        user = await self.repo.save(user)
        logger.info(f"Registered user {user.username} (id {user.id})")
        return user

    async def login(self, username: str, password: str) -> User:
        """
        Check credentials.

        Raises:
            AuthorizationError: unknown username or wrong password
            NotFoundError: the user has been deleted
            ForbiddenError: the user is not activated (admins are exempt)
        """
        user = await self.repo.get_by_username(username, include_deleted=True)
        if user is None:
            raise AuthorizationError("Login Failed: Incorrect Username")
        if not verify_password(password, user.password):
            raise AuthorizationError("Login Failed: Incorrect Password")
        if user.is_deleted:
            raise NotFoundError("Login Failed: User has been deleted")
        if not user.activated and not user.is_admin:
            raise ForbiddenError(
                "Login Failed: User is not activated. Contact an Administrator to activate the User."
            )
        return user

    # ============ Mutation ============

    async def update(
        self,
        user_id: int,
        request: UpdateUserRequest,
        admin: bool = False,
        executor_username: Optional[str] = None,
    ) -> User:
        user = await self.get_by_id_or_fail(user_id)

        if request.username is not None and request.username != user.username:
            if request.username.lower() != user.username.lower():
                await self._throw_if_already_exists(request.username, None)
            user.username = request.username

        if request.email is not None and request.email != user.email:
            if (user.email or "").lower() != request.email.lower():
                await self._throw_if_already_exists(None, request.email)
            user.email = request.email

        if request.first_name is not None:
            user.first_name = request.first_name
        if request.last_name is not None:
            user.last_name = request.last_name
        if request.password is not None:
            user.password = self._hash(request.password)

        if request.profile_picture_url is not None:
            user.profile_picture = await self.images.download_by_url(
                request.profile_picture_url, executor_username
            )
        if request.profile_picture_id is not None:
            user.profile_picture = await self.images.find_by_id_or_fail(request.profile_picture_id)
        if request.background_image_url is not None:
            user.background_image = await self.images.download_by_url(
                request.background_image_url, executor_username
            )
        if request.background_image_id is not None:
            user.background_image = await self.images.find_by_id_or_fail(request.background_image_id)

        if admin and request.activated is not None:
            user.activated = request.activated
        if admin and request.role is not None:
            user.role = Role(request.role)

        return await self.repo.save(user)

    async def delete(self, user_id: int) -> User:
        """Soft delete."""
        user = await self.get_by_id_or_fail(user_id)
        return await self.repo.save(replace(user, deleted_at=datetime.utcnow()))

    async def recover(self, user_id: int) -> User:
        user = await self.get_by_id_or_fail(user_id, include_deleted=True)
        return await self.repo.save(replace(user, deleted_at=None))

    # ============ Authorization helpers ============

    async def check_if_username_matches_id_or_is_admin(
        self, user_id: int, username: Optional[str]
    ) -> bool:
        """
        Allow a request on user_id if it comes from that same user or from an admin.

        Raises:
            AuthorizationError: no username supplied
            NotFoundError: user_id does not exist
            ForbiddenError: username belongs to someone else and is not an admin
        """
        if self.settings.testing_authentication_disabled:
            return True
        if not username:
            raise AuthorizationError("No Authorization provided")
        requestor = await self.repo.get_by_username(username)
        if requestor is not None and requestor.is_admin:
            return True
        user = await self.get_by_id_or_fail(user_id)
        if user.username.lower() != username.lower():
            raise ForbiddenError("You are not allowed to make changes to other users data.")
        return True

    async def set_admin(self) -> Optional[User]:
        """Promote and activate the configured admin user, if registered."""
        admin_username = self.settings.server_admin_username
        if not admin_username:
            logger.warning(
                "No admin user has been configured. Set SERVER_ADMIN_USERNAME to set one up."
            )
            return None
        try:
            user = await self.get_by_username_or_fail(admin_username)
        except NotFoundError:
            logger.warning(
                f'The admin user wasn\'t configured because the user "{admin_username}" '
                f"could not be found in the database. Make sure to register the user."
            )
            return None
        return await self.update(
            user.id,
            UpdateUserRequest(
                role=Role.ADMIN,
                activated=True,
                password=self.settings.server_admin_password or None,
            ),
            admin=True,
        )

    async def _throw_if_already_exists(
        self, username: Optional[str], email: Optional[str]
    ) -> None:
        if not username and not email:
            raise BadRequestError(
                "Can't check if a user exists if neither username nor email is given."
            )
        existing = await self.repo.find_conflict(username=username, email=email)
        if existing is None:
            return
        if username and existing.username.lower() == username.lower():
            raise AlreadyExistsError("username")
        raise AlreadyExistsError("email")
