from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
import logging

from photoshare.db.session import transaction
from photoshare.errors import NotFound
from photoshare.models.post import Post
from photoshare.models.user import User
from photoshare.schemas.post_schema import PostCreate, PostUpdate, LikeStatus
from photoshare.services.access import ensure_authorized
from photoshare.services.counter_service import CounterService
from photoshare.utils.file_upload import ImageStore, ImageVariant

logger = logging.getLogger(__name__)


class PostService:
    def __init__(self, db: AsyncSession, images: Optional[ImageStore] = None):
        self.db = db
        self.counters = CounterService(db)
        self.images = images or ImageStore()

    async def get_post(self, post_id: int, include_deleted: bool = False) -> Optional[Post]:
        """Get a post by ID; soft-deleted posts only when asked for"""
        conditions = [Post.id == post_id]
        if not include_deleted:
            conditions.append(Post.is_deleted.is_(False))
        stmt = select(Post).where(and_(*conditions))
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_post_or_404(self, post_id: int) -> Post:
        post = await self.get_post(post_id)
        if not post:
            raise NotFound("Post not found")
        return post

    async def create_post(self, author: User, image_data: bytes, post_data: PostCreate) -> Post:
        """Store the image, then create the post and bump the author's post count"""
        image_url = await self.images.store(image_data, ImageVariant.POST)

        post = Post(
            author_id=author.id,
            image_url=image_url,
            caption=post_data.caption,
            like_count=0,
            comment_count=0,
            is_deleted=False,
        )
        post.author = author

        try:
            async with transaction(self.db):
                await self.counters.add_post(post)
        except Exception:
            await self.images.delete(image_url)
            raise

        logger.info(f"User {author.id} created post {post.id}")
        return post

    async def update_post(self, caller: User, post_id: int, post_update: PostUpdate) -> Post:
        """Change a caption; only the author may, administrators included"""
        post = await self.get_post_or_404(post_id)
        ensure_authorized(caller, post.author_id, "Not authorized to edit this post", allow_admin=False)

        if post_update.caption is not None:
            async with transaction(self.db):
                post.caption = post_update.caption

        return post

    async def delete_post(self, caller: User, post_id: int) -> None:
        """Delete a post as its author or an administrator"""
        post = await self.get_post_or_404(post_id)
        ensure_authorized(caller, post.author_id, "Not authorized to delete this post")
        await self.remove(post)
        logger.info(f"User {caller.id} deleted post {post_id}")

    async def remove(self, post: Post) -> None:
        """Cascade a post deletion, releasing the image after commit"""
        async with transaction(self.db):
            await self.counters.remove_post(post)
        await self.images.delete(post.image_url)

    async def like_post(self, caller: User, post_id: int) -> LikeStatus:
        post = await self.get_post_or_404(post_id)

        async with transaction(self.db):
            await self.counters.add_like(caller.id, post)

        await self.counters.refresh_post_counts(post)
        logger.info(f"User {caller.id} liked post {post_id}")
        return LikeStatus(like_count=post.like_count, has_liked=True)

    async def unlike_post(self, caller: User, post_id: int) -> LikeStatus:
        post = await self.get_post_or_404(post_id)

        async with transaction(self.db):
            await self.counters.remove_like(caller.id, post)

        await self.counters.refresh_post_counts(post)
        logger.info(f"User {caller.id} unliked post {post_id}")
        return LikeStatus(like_count=post.like_count, has_liked=False)
