"""
User Service for handling user-related business logic
"""
import logging
from typing import Optional, Union

from sqlalchemy import select, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from photoshare.db.session import transaction
from photoshare.errors import Conflict, InvalidCredentials, NotFound
from photoshare.models.user import User
from photoshare.schemas.user_schema import (
    AccountDelete,
    EmailUpdate,
    PasswordUpdate,
    ProfileUpdate,
    UserPrivate,
    UserPublic,
)
from photoshare.services.access import CallerKind, classify_caller
from photoshare.services.auth_service import get_password_hash, verify_password
from photoshare.services.counter_service import CounterService
from photoshare.utils.file_upload import ImageStore, ImageVariant

logger = logging.getLogger(__name__)


def serialize_profile(user: User, caller: Optional[User]) -> Union[UserPrivate, UserPublic]:
    """Owners see their private profile; everyone else the public one"""
    if classify_caller(caller, user.id) is CallerKind.OWNER:
        return UserPrivate.model_validate(user)
    return UserPublic.model_validate(user)


class UserService:
    def __init__(self, db: AsyncSession, images: Optional[ImageStore] = None):
        self.db = db
        self.counters = CounterService(db)
        self.images = images or ImageStore()

    async def get_user(self, user_id: int) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def get_user_by_username(self, username: str) -> Optional[User]:
        """Case-insensitive username lookup"""
        stmt = select(User).where(User.username_lower == username.lower())
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_user_by_username_or_404(self, username: str) -> User:
        user = await self.get_user_by_username(username)
        if not user:
            raise NotFound("User not found")
        return user

    async def _check_password(self, user: User, password: str, message: str) -> None:
        if not verify_password(password, user.hashed_password):
            raise InvalidCredentials(message)

    async def update_profile(
        self,
        user: User,
        profile: ProfileUpdate,
        image_data: Optional[bytes] = None,
    ) -> User:
        """Change username, bio and/or profile image"""
        if profile.username is not None and profile.username.lower() != user.username_lower:
            stmt = select(User.id).where(
                and_(User.username_lower == profile.username.lower(), User.id != user.id)
            )
            if (await self.db.execute(stmt)).first() is not None:
                raise Conflict("Username already taken")

        new_image = None
        if image_data is not None:
            new_image = await self.images.store(image_data, ImageVariant.PROFILE)
        old_image = user.profile_image

        try:
            async with transaction(self.db):
                if profile.username is not None:
                    user.username = profile.username
                if profile.bio is not None:
                    user.bio = profile.bio
                if new_image is not None:
                    user.profile_image = new_image
        except IntegrityError:
            await self.images.delete(new_image)
            raise Conflict("Username already taken")

        if new_image is not None and old_image:
            await self.images.delete(old_image)

        logger.info(f"User {user.id} updated profile")
        return user

    async def update_email(self, user: User, data: EmailUpdate) -> User:
        await self._check_password(user, data.current_password, "Current password is incorrect")

        stmt = select(User.id).where(and_(User.email == data.email, User.id != user.id))
        if (await self.db.execute(stmt)).first() is not None:
            raise Conflict("Email already in use")

        try:
            async with transaction(self.db):
                user.email = data.email
        except IntegrityError:
            raise Conflict("Email already in use")

        logger.info(f"User {user.id} changed email")
        return user

    async def update_password(self, user: User, data: PasswordUpdate) -> None:
        await self._check_password(user, data.current_password, "Current password is incorrect")

        async with transaction(self.db):
            user.hashed_password = get_password_hash(data.new_password)

        logger.info(f"User {user.id} changed password")

    async def delete_user(self, user: User) -> None:
        """Remove a user with their posts, comments and likes"""
        async with transaction(self.db):
            images = await self.counters.remove_user(user)
        await self.images.release_all(images)

    async def delete_account(self, user: User, data: AccountDelete) -> None:
        """Self-service account deletion, confirmed by password"""
        await self._check_password(user, data.password, "Password is incorrect")
        await self.delete_user(user)
        logger.info(f"User {user.id} deleted their account")
