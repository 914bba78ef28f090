"""
Counter consistency: every mutation that creates or removes a Post, Like or
Comment goes through here together with the counter adjustments it implies.

Nothing in this module commits. Callers wrap each use case in
``photoshare.db.session.transaction`` so the mutation and its adjustments land
together or not at all. Adjustments are issued as single SQL UPDATEs
(``x = x + 1`` / floored ``x - n``) so concurrent requests never lose an
increment to a read-modify-write race.
"""
import logging
from typing import List

from sqlalchemy import and_, case, delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from photoshare.errors import DuplicateLike, LikeNotFound
from photoshare.models.comment import Comment
from photoshare.models.like import Like
from photoshare.models.post import Post
from photoshare.models.user import User

logger = logging.getLogger(__name__)


def _decremented(column, amount: int = 1):
    """column - amount, floored at zero"""
    return case((column > amount, column - amount), else_=0)


class CounterService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _execute(self, stmt) -> int:
        result = await self.db.execute(stmt.execution_options(synchronize_session=False))
        return result.rowcount

    # Raw adjustments

    async def _bump_post_count(self, user_id: int, delta: int) -> None:
        value = User.post_count + delta if delta > 0 else _decremented(User.post_count, -delta)
        await self._execute(update(User).where(User.id == user_id).values(post_count=value))

    async def _bump_likes_received(self, user_id: int, delta: int) -> None:
        value = (
            User.total_likes_received + delta
            if delta > 0
            else _decremented(User.total_likes_received, -delta)
        )
        await self._execute(update(User).where(User.id == user_id).values(total_likes_received=value))

    async def _bump_like_count(self, post_id: int, delta: int) -> None:
        value = Post.like_count + delta if delta > 0 else _decremented(Post.like_count, -delta)
        await self._execute(update(Post).where(Post.id == post_id).values(like_count=value))

    async def _bump_comment_count(self, post_id: int, delta: int) -> None:
        value = Post.comment_count + delta if delta > 0 else _decremented(Post.comment_count, -delta)
        await self._execute(update(Post).where(Post.id == post_id).values(comment_count=value))

    # Posts

    async def add_post(self, post: Post) -> Post:
        self.db.add(post)
        await self.db.flush()
        await self._bump_post_count(post.author_id, 1)
        return post

    async def _purge_post_dependents(self, post_id: int) -> None:
        """Drop every like and comment of a post that is going away as a unit"""
        await self._execute(delete(Like).where(Like.post_id == post_id))
        await self._execute(delete(Comment).where(Comment.post_id == post_id))

    async def remove_post(self, post: Post) -> None:
        """Soft-delete a post with its likes and comments.

        The author's total_likes_received is left alone: likes vanish with
        the post rather than being individually withdrawn.
        """
        if post.is_deleted:
            return
        await self._purge_post_dependents(post.id)
        post.is_deleted = True
        await self.db.flush()
        await self._bump_post_count(post.author_id, -1)

    # Likes

    async def add_like(self, user_id: int, post: Post) -> Like:
        """Insert the like; uq_likes_user_post rejects repeats, concurrent or not"""
        like = Like(user_id=user_id, post_id=post.id)
        self.db.add(like)
        try:
            await self.db.flush()
        except IntegrityError:
            raise DuplicateLike()

        await self._bump_like_count(post.id, 1)
        await self._bump_likes_received(post.author_id, 1)
        return like

    async def remove_like(self, user_id: int, post: Post) -> None:
        removed = await self._execute(
            delete(Like).where(and_(Like.user_id == user_id, Like.post_id == post.id))
        )
        if not removed:
            raise LikeNotFound()

        await self._bump_like_count(post.id, -1)
        await self._bump_likes_received(post.author_id, -1)

    # Comments

    async def add_comment(self, comment: Comment) -> Comment:
        self.db.add(comment)
        await self.db.flush()
        await self._bump_comment_count(comment.post_id, 1)
        return comment

    async def remove_comment(self, comment: Comment) -> None:
        if comment.is_deleted:
            return
        comment.is_deleted = True
        await self.db.flush()
        await self._bump_comment_count(comment.post_id, -1)

    # Users

    async def remove_user(self, user: User) -> List[str]:
        """Delete a user with everything they own.

        Returns the image urls that were referenced by the removed records so
        the caller can release them once the transaction has committed.
        """
        own_posts = select(Post.id).where(Post.author_id == user.id)

        # Likes given on other users' posts
        liked = await self.db.execute(
            select(Like.post_id, Post.author_id)
            .join(Post, Post.id == Like.post_id)
            .where(and_(Like.user_id == user.id, Post.author_id != user.id))
        )
        liked_rows = liked.all()
        for post_id, author_id in liked_rows:
            await self._bump_like_count(post_id, -1)
            await self._bump_likes_received(author_id, -1)
        await self._execute(delete(Like).where(Like.user_id == user.id))

        # Live comments written on other users' posts
        commented = await self.db.execute(
            select(Comment.post_id, func.count(Comment.id))
            .where(
                and_(
                    Comment.author_id == user.id,
                    Comment.is_deleted.is_(False),
                    Comment.post_id.not_in(own_posts),
                )
            )
            .group_by(Comment.post_id)
        )
        commented_rows = commented.all()
        for post_id, count in commented_rows:
            await self._bump_comment_count(post_id, -count)
        await self._execute(delete(Comment).where(Comment.author_id == user.id))

        # Own posts, live or soft-deleted, go away with their dependents
        posts = await self.db.execute(
            select(Post.id, Post.image_url, Post.is_deleted).where(Post.author_id == user.id)
        )
        images: List[str] = []
        post_rows = posts.all()
        for post_id, image_url, is_deleted in post_rows:
            await self._purge_post_dependents(post_id)
            if not is_deleted:
                images.append(image_url)
        await self._execute(delete(Post).where(Post.author_id == user.id))

        if user.profile_image:
            images.append(user.profile_image)

        await self._execute(delete(User).where(User.id == user.id))

        logger.info(
            f"Removed user {user.id}: {len(post_rows)} posts, "
            f"{len(liked_rows)} likes on other posts, "
            f"comments on {len(commented_rows)} other posts"
        )
        return images

    async def refresh_post_counts(self, post: Post) -> Post:
        await self.db.refresh(post, attribute_names=["like_count", "comment_count"])
        return post

