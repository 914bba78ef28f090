from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile, File, Form
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import logging

from photoshare.config import ContentPolicy, get_policy
from photoshare.db.session import get_db
from photoshare.errors import InternalFailure
from photoshare.models.user import User
from photoshare.schemas.common import ok
from photoshare.schemas.user_schema import AccountDelete, EmailUpdate, PasswordUpdate, ProfileUpdate, UserPrivate
from photoshare.services.access import is_owner
from photoshare.services.auth_service import get_current_user, get_optional_user
from photoshare.services.feed_service import FeedService
from photoshare.services.user_service import UserService, serialize_profile
from photoshare.utils.file_upload import ImageStore, get_image_store, read_image_upload

logger = logging.getLogger(__name__)

router = APIRouter()


# Self-service routes are declared before the /{username} routes
@router.patch("/profile")
async def update_profile(
    username: Optional[str] = Form(None),
    bio: Optional[str] = Form(None),
    profile_image: Optional[UploadFile] = File(None, alias="profileImage"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    images: ImageStore = Depends(get_image_store),
    policy: ContentPolicy = Depends(get_policy),
):
    """Update own username, bio and/or profile image"""
    try:
        profile = ProfileUpdate(username=username, bio=bio)
        image_data = await read_image_upload(profile_image, policy, required=False)

        user = await UserService(db, images).update_profile(current_user, profile, image_data)
        return ok({"user": UserPrivate.model_validate(user)}, message="Profile updated successfully")
    except (HTTPException, ValueError):
        raise
    except Exception as e:
        logger.error(f"Update profile error: {e}")
        raise InternalFailure("Failed to update profile")


@router.patch("/email")
async def update_email(
    data: EmailUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Change own email, confirmed by the current password"""
    user = await UserService(db).update_email(current_user, data)
    return ok({"user": UserPrivate.model_validate(user)}, message="Email updated successfully")


@router.patch("/password")
async def update_password(
    data: PasswordUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Change own password"""
    await UserService(db).update_password(current_user, data)
    return ok(message="Password updated successfully")


@router.delete("/account")
async def delete_account(
    data: AccountDelete,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    images: ImageStore = Depends(get_image_store),
):
    """Delete own account and everything in it"""
    await UserService(db, images).delete_account(current_user, data)
    return ok(message="Account deleted successfully")


@router.get("/{username}")
async def get_user_profile(
    username: str,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """Public profile, or the full one for its owner"""
    user = await UserService(db).get_user_by_username_or_404(username)
    return ok({
        "user": serialize_profile(user, current_user),
        "isOwner": is_owner(current_user, user.id),
    })


@router.get("/{username}/posts")
async def get_user_posts(
    username: str,
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None),
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
    policy: ContentPolicy = Depends(get_policy),
):
    """Posts by a user, newest first"""
    user = await UserService(db).get_user_by_username_or_404(username)
    posts, pagination = await FeedService(db, policy).get_user_posts(current_user, user, page, limit)
    return ok({"posts": posts, "pagination": pagination})
