"""
Administrator operations. Role checks happen in the router dependency;
ownership is never consulted here.
"""
import logging
from datetime import timedelta
from typing import List, Optional, Tuple

from sqlalchemy import and_, desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from photoshare.config import ContentPolicy, get_policy
from photoshare.db.base import utcnow
from photoshare.db.session import transaction
from photoshare.errors import NotFound, SelfDeletionForbidden
from photoshare.models.comment import Comment
from photoshare.models.like import Like
from photoshare.models.post import Post
from photoshare.models.user import AccountStatus, User
from photoshare.schemas.admin_schema import (
    Metrics,
    PostMetrics,
    TotalMetric,
    UserActivity,
    UserAdminUpdate,
    UserDetails,
    UserMetrics,
)
from photoshare.schemas.common import Pagination
from photoshare.schemas.user_schema import UserPrivate
from photoshare.services.comment_service import CommentService
from photoshare.services.post_service import PostService
from photoshare.services.user_service import UserService
from photoshare.utils.file_upload import ImageStore

logger = logging.getLogger(__name__)


def _escape_like(term: str) -> str:
    """Make LIKE wildcards in user input match literally"""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class ModerationService:
    def __init__(
        self,
        db: AsyncSession,
        images: Optional[ImageStore] = None,
        policy: Optional[ContentPolicy] = None,
    ):
        self.db = db
        self.policy = policy or get_policy()
        self.users = UserService(db, images)
        self.posts = PostService(db, images)
        self.comments = CommentService(db, self.policy)

    async def _count(self, model, *conditions) -> int:
        stmt = select(func.count(model.id))
        if conditions:
            stmt = stmt.where(and_(*conditions))
        return (await self.db.execute(stmt)).scalar() or 0

    async def get_metrics(self) -> Metrics:
        since = utcnow() - timedelta(hours=24)
        live_post = Post.is_deleted.is_(False)

        return Metrics(
            users=UserMetrics(
                total=await self._count(User),
                active=await self._count(User, User.status == AccountStatus.ACTIVE),
                suspended=await self._count(User, User.status == AccountStatus.SUSPENDED),
                new_last_24h=await self._count(User, User.created_at >= since),
            ),
            posts=PostMetrics(
                total=await self._count(Post, live_post),
                new_last_24h=await self._count(Post, live_post, Post.created_at >= since),
            ),
            comments=TotalMetric(total=await self._count(Comment, Comment.is_deleted.is_(False))),
            likes=TotalMetric(total=await self._count(Like)),
        )

    async def list_users(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        search: Optional[str] = None,
        status: Optional[AccountStatus] = None,
    ) -> Tuple[List[UserPrivate], Pagination]:
        page = max(page or self.policy.default_page, 1)
        limit = self.policy.clamp_page_size(limit)

        conditions = []
        if search:
            pattern = f"%{_escape_like(search.lower())}%"
            conditions.append(
                or_(User.username_lower.like(pattern, escape="\\"), User.email.like(pattern, escape="\\"))
            )
        if status is not None:
            conditions.append(User.status == status)

        total = await self._count(User, *conditions)

        stmt = select(User)
        if conditions:
            stmt = stmt.where(and_(*conditions))
        stmt = stmt.order_by(desc(User.created_at), desc(User.id)).offset((page - 1) * limit).limit(limit)
        result = await self.db.execute(stmt)
        users = result.scalars().all()

        return [UserPrivate.model_validate(u) for u in users], Pagination.build(page, limit, total)

    async def get_user_or_404(self, user_id: int) -> User:
        user = await self.users.get_user(user_id)
        if not user:
            raise NotFound("User not found")
        return user

    async def get_user_details(self, user_id: int) -> UserDetails:
        user = await self.get_user_or_404(user_id)
        stats = UserActivity(
            posts=await self._count(Post, Post.author_id == user.id, Post.is_deleted.is_(False)),
            comments=await self._count(Comment, Comment.author_id == user.id, Comment.is_deleted.is_(False)),
            likes_given=await self._count(Like, Like.user_id == user.id),
        )
        return UserDetails(**UserPrivate.model_validate(user).model_dump(), stats=stats)

    async def update_user(self, user_id: int, changes: UserAdminUpdate) -> User:
        """Change a user's account status and/or role"""
        user = await self.get_user_or_404(user_id)

        async with transaction(self.db):
            if changes.status is not None:
                user.status = changes.status
            if changes.role is not None:
                user.role = changes.role

        logger.info(f"Admin updated user {user_id}: {changes.model_dump(exclude_none=True)}")
        return user

    async def delete_user(self, admin: User, user_id: int) -> None:
        user = await self.get_user_or_404(user_id)
        if user.id == admin.id:
            raise SelfDeletionForbidden()

        await self.users.delete_user(user)
        logger.info(f"Admin {admin.id} deleted user {user_id}")

    async def delete_post(self, admin: User, post_id: int) -> None:
        post = await self.posts.get_post_or_404(post_id)
        await self.posts.remove(post)
        logger.info(f"Admin {admin.id} deleted post {post_id}")

    async def delete_comment(self, admin: User, comment_id: int) -> None:
        comment = await self.comments.get_comment_or_404(comment_id)
        await self.comments.remove(comment)
        logger.info(f"Admin {admin.id} deleted comment {comment_id}")
