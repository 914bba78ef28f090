from fastapi import APIRouter, Depends, HTTPException, status, Query, UploadFile, File, Form
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import logging

from photoshare.config import ContentPolicy, get_policy
from photoshare.db.session import get_db
from photoshare.errors import InternalFailure
from photoshare.models.user import User
from photoshare.schemas.common import ok
from photoshare.schemas.post_schema import FeedMode, PostCreate, PostUpdate
from photoshare.services.auth_service import get_current_user, get_optional_user
from photoshare.services.comment_service import CommentService
from photoshare.services.feed_service import FeedService, serialize_post
from photoshare.services.post_service import PostService
from photoshare.utils.file_upload import ImageStore, get_image_store, read_image_upload

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def get_feed(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None),
    mode: FeedMode = Query(FeedMode.RECENT, alias="filter"),
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
    policy: ContentPolicy = Depends(get_policy),
):
    """Recent or trending feed"""
    feed_service = FeedService(db, policy)
    posts, pagination = await feed_service.get_feed(current_user, mode, page, limit)
    return ok({"posts": posts, "filter": mode.value, "pagination": pagination})


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_post(
    caption: str = Form(""),
    image: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    images: ImageStore = Depends(get_image_store),
    policy: ContentPolicy = Depends(get_policy),
):
    """Create a new post from an uploaded image"""
    try:
        post_data = PostCreate(caption=caption)
        image_data = await read_image_upload(image, policy)

        post_service = PostService(db, images)
        post = await post_service.create_post(current_user, image_data, post_data)

        return ok(
            {"post": serialize_post(post, current_user, has_liked=False)},
            message="Post created successfully",
        )
    except HTTPException:
        raise
    except ValueError:
        # pydantic validation errors are rendered by their own handler
        raise
    except Exception as e:
        logger.error(f"Create post error: {e}")
        raise InternalFailure("Failed to create post")


@router.get("/{post_id}")
async def get_post(
    post_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """Get a post by ID"""
    post = await PostService(db).get_post_or_404(post_id)
    items = await FeedService(db).annotate(current_user, [post])
    return ok({"post": items[0]})


@router.patch("/{post_id}")
async def update_post(
    post_id: int,
    post_update: PostUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update a post caption (author only)"""
    post = await PostService(db).update_post(current_user, post_id, post_update)
    items = await FeedService(db).annotate(current_user, [post])
    return ok({"post": items[0]}, message="Post updated successfully")


@router.delete("/{post_id}")
async def delete_post(
    post_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    images: ImageStore = Depends(get_image_store),
):
    """Delete a post (author or admin)"""
    await PostService(db, images).delete_post(current_user, post_id)
    return ok(message="Post deleted successfully")


@router.post("/{post_id}/like")
async def like_post(
    post_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Like a post"""
    like_status = await PostService(db).like_post(current_user, post_id)
    return ok(like_status, message="Post liked")


@router.delete("/{post_id}/like")
async def unlike_post(
    post_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Remove a like"""
    like_status = await PostService(db).unlike_post(current_user, post_id)
    return ok(like_status, message="Like removed")


@router.get("/{post_id}/comments")
async def get_post_comments(
    post_id: int,
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None),
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
    policy: ContentPolicy = Depends(get_policy),
):
    """Get comments for a post"""
    comments, pagination = await CommentService(db, policy).get_post_comments(
        current_user, post_id, page, limit
    )
    return ok({"comments": comments, "pagination": pagination})
