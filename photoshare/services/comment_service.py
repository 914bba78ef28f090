from typing import List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, desc, func
import logging

from photoshare.config import ContentPolicy, get_policy
from photoshare.db.session import transaction
from photoshare.errors import NotFound
from photoshare.models.comment import Comment
from photoshare.models.user import User
from photoshare.schemas.comment_schema import CommentCreate, CommentUpdate, CommentOut
from photoshare.schemas.common import Pagination
from photoshare.schemas.user_schema import AuthorInfo
from photoshare.services.access import ensure_authorized, is_owner
from photoshare.services.counter_service import CounterService
from photoshare.services.post_service import PostService

logger = logging.getLogger(__name__)


def serialize_comment(comment: Comment, caller: Optional[User]) -> CommentOut:
    return CommentOut(
        id=comment.id,
        author=AuthorInfo.model_validate(comment.author),
        post=comment.post_id,
        content=comment.content,
        is_edited=comment.is_edited,
        created_at=comment.created_at,
        updated_at=comment.updated_at,
        is_owner=is_owner(caller, comment.author_id),
    )


class CommentService:
    def __init__(self, db: AsyncSession, policy: Optional[ContentPolicy] = None):
        self.db = db
        self.policy = policy or get_policy()
        self.counters = CounterService(db)
        self.posts = PostService(db)

    async def get_comment(self, comment_id: int, include_deleted: bool = False) -> Optional[Comment]:
        """Get a comment by ID; soft-deleted comments only when asked for"""
        conditions = [Comment.id == comment_id]
        if not include_deleted:
            conditions.append(Comment.is_deleted.is_(False))
        stmt = select(Comment).where(and_(*conditions))
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_comment_or_404(self, comment_id: int) -> Comment:
        comment = await self.get_comment(comment_id)
        if not comment:
            raise NotFound("Comment not found")
        return comment

    async def create_comment(self, caller: User, post_id: int, comment_data: CommentCreate) -> Comment:
        """Comment on a live post and bump its comment count"""
        post = await self.posts.get_post_or_404(post_id)

        comment = Comment(
            post_id=post.id,
            author_id=caller.id,
            content=comment_data.content,
            is_edited=False,
            is_deleted=False,
        )
        comment.author = caller

        async with transaction(self.db):
            await self.counters.add_comment(comment)

        logger.info(f"User {caller.id} commented {comment.id} on post {post_id}")
        return comment

    async def update_comment(self, caller: User, comment_id: int, comment_data: CommentUpdate) -> Comment:
        """Edit a comment; only its author may, administrators included"""
        comment = await self.get_comment_or_404(comment_id)
        ensure_authorized(caller, comment.author_id, "Not authorized to edit this comment", allow_admin=False)

        async with transaction(self.db):
            comment.content = comment_data.content
            comment.is_edited = True

        return comment

    async def delete_comment(self, caller: User, comment_id: int) -> None:
        """Delete a comment as its author or an administrator"""
        comment = await self.get_comment_or_404(comment_id)
        ensure_authorized(caller, comment.author_id, "Not authorized to delete this comment")
        await self.remove(comment)
        logger.info(f"User {caller.id} deleted comment {comment_id}")

    async def remove(self, comment: Comment) -> None:
        async with transaction(self.db):
            await self.counters.remove_comment(comment)

    async def get_post_comments(
        self,
        caller: Optional[User],
        post_id: int,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Tuple[List[CommentOut], Pagination]:
        """Live comments of a live post, newest first"""
        post = await self.posts.get_post_or_404(post_id)

        page = max(page or self.policy.default_page, 1)
        limit = self.policy.clamp_page_size(limit)
        conditions = [Comment.post_id == post.id, Comment.is_deleted.is_(False)]

        total = (await self.db.execute(select(func.count(Comment.id)).where(and_(*conditions)))).scalar() or 0

        stmt = (
            select(Comment)
            .where(and_(*conditions))
            .order_by(desc(Comment.created_at), desc(Comment.id))
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        comments = result.scalars().all()

        return [serialize_comment(c, caller) for c in comments], Pagination.build(page, limit, total)
