from datetime import timedelta
from typing import Dict, List, Optional, Sequence, Set, Tuple
import logging

from sqlalchemy import and_, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from photoshare.config import ContentPolicy, get_policy
from photoshare.db.base import utcnow
from photoshare.models.like import Like
from photoshare.models.post import Post
from photoshare.models.user import User
from photoshare.schemas.common import Pagination
from photoshare.schemas.post_schema import FeedMode, PostOut
from photoshare.schemas.user_schema import AuthorInfo
from photoshare.services.access import is_owner

logger = logging.getLogger(__name__)


def serialize_post(post: Post, caller: Optional[User], has_liked: bool = False) -> PostOut:
    return PostOut(
        id=post.id,
        author=AuthorInfo.model_validate(post.author),
        image=post.image_url,
        caption=post.caption,
        like_count=post.like_count,
        comment_count=post.comment_count,
        created_at=post.created_at,
        updated_at=post.updated_at,
        is_owner=is_owner(caller, post.author_id),
        has_liked=has_liked,
    )


class FeedService:
    def __init__(self, db: AsyncSession, policy: Optional[ContentPolicy] = None):
        self.db = db
        self.policy = policy or get_policy()

    def page_window(self, page: Optional[int], limit: Optional[int]) -> Tuple[int, int, int]:
        """(page, limit, offset) with page >= 1 and limit clamped"""
        page = max(page or self.policy.default_page, 1)
        limit = self.policy.clamp_page_size(limit)
        return page, limit, (page - 1) * limit

    async def liked_post_ids(self, user_id: int, post_ids: Sequence[int]) -> Set[int]:
        """Which of these posts the user has liked, in a single query"""
        if not post_ids:
            return set()
        stmt = select(Like.post_id).where(
            and_(Like.user_id == user_id, Like.post_id.in_(list(post_ids)))
        )
        result = await self.db.execute(stmt)
        return set(result.scalars().all())

    async def annotate(self, caller: Optional[User], posts: Sequence[Post]) -> List[PostOut]:
        """Attach isOwner/hasLiked for the caller to a page of posts"""
        liked: Set[int] = set()
        if caller is not None and posts:
            liked = await self.liked_post_ids(caller.id, [p.id for p in posts])
        return [serialize_post(p, caller, p.id in liked) for p in posts]

    def _feed_filter(self, mode: FeedMode):
        conditions = [Post.is_deleted.is_(False)]
        order_by = [desc(Post.created_at), desc(Post.id)]

        if mode is FeedMode.TRENDING:
            window_start = utcnow() - timedelta(hours=self.policy.trending_window_hours)
            conditions += [
                Post.created_at >= window_start,
                Post.like_count >= self.policy.trending_min_likes,
            ]
            order_by = [desc(Post.like_count), desc(Post.created_at), desc(Post.id)]

        return conditions, order_by

    async def _paginate(
        self,
        caller: Optional[User],
        conditions: list,
        order_by: list,
        page: Optional[int],
        limit: Optional[int],
    ) -> Tuple[List[PostOut], Pagination]:
        page, limit, offset = self.page_window(page, limit)

        total_stmt = select(func.count(Post.id)).where(and_(*conditions))
        total = (await self.db.execute(total_stmt)).scalar() or 0

        stmt = select(Post).where(and_(*conditions)).order_by(*order_by).offset(offset).limit(limit)
        result = await self.db.execute(stmt)
        posts = result.scalars().all()

        items = await self.annotate(caller, posts)
        return items, Pagination.build(page=page, limit=limit, total=total)

    async def get_feed(
        self,
        caller: Optional[User],
        mode: FeedMode = FeedMode.RECENT,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Tuple[List[PostOut], Pagination]:
        """Recent or trending listing of live posts"""
        conditions, order_by = self._feed_filter(mode)
        return await self._paginate(caller, conditions, order_by, page, limit)

    async def get_user_posts(
        self,
        caller: Optional[User],
        author: User,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Tuple[List[PostOut], Pagination]:
        """A single author's live posts, newest first"""
        conditions = [Post.author_id == author.id, Post.is_deleted.is_(False)]
        order_by = [desc(Post.created_at), desc(Post.id)]
        return await self._paginate(caller, conditions, order_by, page, limit)
