from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import logging

from photoshare.db.session import get_db
from photoshare.models.user import AccountStatus, User
from photoshare.schemas.admin_schema import UserAdminUpdate
from photoshare.schemas.common import ok
from photoshare.schemas.user_schema import UserPrivate
from photoshare.services.auth_service import require_admin
from photoshare.services.moderation_service import ModerationService
from photoshare.utils.file_upload import ImageStore, get_image_store

logger = logging.getLogger(__name__)

# Every route here requires an active administrator
router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("/metrics")
async def get_metrics(db: AsyncSession = Depends(get_db)):
    """Site-wide counts"""
    metrics = await ModerationService(db).get_metrics()
    return ok({"metrics": metrics})


@router.get("/users")
async def list_users(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    status: Optional[AccountStatus] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """All users, optionally filtered by text and status"""
    users, pagination = await ModerationService(db).list_users(page, limit, search, status)
    return ok({"users": users, "pagination": pagination})


@router.get("/users/{user_id}")
async def get_user_details(
    user_id: int,
    db: AsyncSession = Depends(get_db),
):
    """User profile with activity counts"""
    details = await ModerationService(db).get_user_details(user_id)
    return ok({"user": details})


@router.patch("/users/{user_id}")
async def update_user(
    user_id: int,
    changes: UserAdminUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Suspend/reactivate a user or change their role"""
    user = await ModerationService(db).update_user(user_id, changes)
    return ok({"user": UserPrivate.model_validate(user)}, message="User updated successfully")


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    images: ImageStore = Depends(get_image_store),
):
    """Delete another user with everything they own"""
    await ModerationService(db, images).delete_user(admin, user_id)
    return ok(message="User deleted successfully")


@router.delete("/posts/{post_id}")
async def delete_post(
    post_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    images: ImageStore = Depends(get_image_store),
):
    """Delete any post"""
    await ModerationService(db, images).delete_post(admin, post_id)
    return ok(message="Post deleted successfully")


@router.delete("/comments/{comment_id}")
async def delete_comment(
    comment_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Delete any comment"""
    await ModerationService(db).delete_comment(admin, comment_id)
    return ok(message="Comment deleted successfully")
