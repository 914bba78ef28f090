from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from photoshare.db.session import get_db
from photoshare.models.user import User
from photoshare.schemas.comment_schema import CommentCreate, CommentUpdate
from photoshare.schemas.common import ok
from photoshare.services.auth_service import get_current_user
from photoshare.services.comment_service import CommentService, serialize_comment

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/{post_id}", status_code=status.HTTP_201_CREATED)
async def create_comment(
    post_id: int,
    comment_data: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Create a new comment on a post"""
    comment = await CommentService(db).create_comment(current_user, post_id, comment_data)
    return ok({"comment": serialize_comment(comment, current_user)}, message="Comment added")


@router.patch("/{comment_id}")
async def update_comment(
    comment_id: int,
    comment_data: CommentUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Edit a comment (author only)"""
    comment = await CommentService(db).update_comment(current_user, comment_id, comment_data)
    return ok({"comment": serialize_comment(comment, current_user)}, message="Comment updated")


@router.delete("/{comment_id}")
async def delete_comment(
    comment_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Delete a comment (author or admin)"""
    await CommentService(db).delete_comment(current_user, comment_id)
    return ok(message="Comment deleted")
