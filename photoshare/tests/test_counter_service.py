"""
Service-level checks of counter bookkeeping, without the HTTP layer.
"""
import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from photoshare.errors import DuplicateLike, LikeNotFound
from photoshare.models.comment import Comment
from photoshare.models.like import Like
from photoshare.models.post import Post
from photoshare.models.user import User
from photoshare.schemas.user_schema import UserCreate
from photoshare.services.auth_service import AuthService
from photoshare.services.counter_service import CounterService
from photoshare.db.session import transaction
from photoshare.tests.conftest import PASSWORD


async def _user(db: AsyncSession, username: str) -> User:
    return await AuthService(db).create_user(
        UserCreate(username=username, email=f"{username}@example.com", password=PASSWORD)
    )


async def _post(db: AsyncSession, counters: CounterService, author: User) -> Post:
    post = Post(author_id=author.id, image_url=f"/uploads/{author.username}.webp", caption="")
    async with transaction(db):
        await counters.add_post(post)
    return post


@pytest.mark.asyncio
async def test_counters_floor_at_zero(test_db: AsyncSession, fetch):
    counters = CounterService(test_db)
    alice = await _user(test_db, "alice")
    post = await _post(test_db, counters, alice)

    async with transaction(test_db):
        await counters._bump_like_count(post.id, -3)
        await counters._bump_post_count(alice.id, -5)

    assert (await fetch(Post, post.id)).like_count == 0
    assert (await fetch(User, alice.id)).post_count == 0


@pytest.mark.asyncio
async def test_failed_like_leaves_no_trace(test_db: AsyncSession, fetch):
    counters = CounterService(test_db)
    alice = await _user(test_db, "alice")
    bob = await _user(test_db, "bob")
    post = await _post(test_db, counters, alice)
    alice_id, bob_id, post_id = alice.id, bob.id, post.id

    async with transaction(test_db):
        await counters.add_like(bob_id, post)

    with pytest.raises(DuplicateLike):
        async with transaction(test_db):
            await counters.add_like(bob_id, post)

    # Rollback expired everything loaded in the session
    await test_db.refresh(post)

    with pytest.raises(LikeNotFound):
        async with transaction(test_db):
            await counters.remove_like(alice_id, post)

    assert (await fetch(Post, post_id)).like_count == 1
    assert (await fetch(User, alice_id)).total_likes_received == 1


@pytest.mark.asyncio
async def test_like_losing_insert_race(test_db: AsyncSession, session_factory, fetch):
    """A like committed by another session first makes ours fail without touching counters"""
    counters = CounterService(test_db)
    alice = await _user(test_db, "alice")
    bob = await _user(test_db, "bob")
    post = await _post(test_db, counters, alice)
    alice_id, bob_id, post_id = alice.id, bob.id, post.id

    async with session_factory() as other:
        other.add(Like(user_id=bob_id, post_id=post_id))
        await other.commit()

    with pytest.raises(DuplicateLike):
        async with transaction(test_db):
            await counters.add_like(bob_id, post)

    async with session_factory() as session:
        likes = (
            await session.execute(
                select(func.count(Like.id)).where(Like.user_id == bob_id, Like.post_id == post_id)
            )
        ).scalar()
    assert likes == 1
    assert (await fetch(Post, post_id)).like_count == 0
    assert (await fetch(User, alice_id)).total_likes_received == 0


@pytest.mark.asyncio
async def test_remove_comment_is_idempotent(test_db: AsyncSession, fetch):
    counters = CounterService(test_db)
    alice = await _user(test_db, "alice")
    post = await _post(test_db, counters, alice)

    comment = Comment(post_id=post.id, author_id=alice.id, content="hi")
    async with transaction(test_db):
        await counters.add_comment(comment)

    for _ in range(2):
        async with transaction(test_db):
            await counters.remove_comment(comment)

    assert (await fetch(Post, post.id)).comment_count == 0


@pytest.mark.asyncio
async def test_remove_user_returns_images(test_db: AsyncSession, fetch):
    counters = CounterService(test_db)
    alice = await _user(test_db, "alice")
    bob = await _user(test_db, "bob")
    live = await _post(test_db, counters, bob)
    deleted = await _post(test_db, counters, bob)
    kept = await _post(test_db, counters, alice)

    async with transaction(test_db):
        await counters.remove_post(deleted)
    async with transaction(test_db):
        bob.profile_image = "/uploads/profile-bob.webp"

    async with transaction(test_db):
        images = await counters.remove_user(bob)

    assert sorted(images) == sorted([live.image_url, "/uploads/profile-bob.webp"])
    assert await fetch(Post, live.id) is None
    assert await fetch(Post, deleted.id) is None
    assert await fetch(Post, kept.id) is not None
    assert (await fetch(User, alice.id)).post_count == 1
