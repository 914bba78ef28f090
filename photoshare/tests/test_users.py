import pytest
from httpx import AsyncClient

from photoshare.models.comment import Comment
from photoshare.models.like import Like
from photoshare.models.post import Post
from photoshare.models.user import User
from photoshare.tests.conftest import API, PASSWORD, make_image


@pytest.mark.asyncio
async def test_public_profile_hides_email(test_client: AsyncClient, register, create_post):
    _, alice = await register("alice")
    _, bob = await register("bob")
    await create_post(alice)

    response = await test_client.get(f"{API}/users/ALICE", headers=bob)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["isOwner"] is False
    assert data["user"]["username"] == "alice"
    assert data["user"]["postCount"] == 1
    assert "email" not in data["user"]
    assert "role" not in data["user"]


@pytest.mark.asyncio
async def test_own_profile_includes_email(test_client: AsyncClient, register):
    _, alice = await register("alice")

    response = await test_client.get(f"{API}/users/alice", headers=alice)

    data = response.json()["data"]
    assert data["isOwner"] is True
    assert data["user"]["email"] == "alice@example.com"


@pytest.mark.asyncio
async def test_unknown_profile(test_client: AsyncClient):
    response = await test_client.get(f"{API}/users/ghost")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_user_posts(test_client: AsyncClient, register, create_post):
    _, alice = await register("alice")
    _, bob = await register("bob")
    first = await create_post(alice, caption="a1")
    await create_post(alice, caption="a2")
    await create_post(bob, caption="b1")
    await test_client.post(f"{API}/posts/{first['id']}/like", headers=bob)

    response = await test_client.get(f"{API}/users/alice/posts", headers=bob)

    data = response.json()["data"]
    assert [p["caption"] for p in data["posts"]] == ["a2", "a1"]
    assert [p["hasLiked"] for p in data["posts"]] == [False, True]
    assert data["pagination"]["total"] == 2


@pytest.mark.asyncio
async def test_update_profile(test_client: AsyncClient, register, image_store):
    _, alice = await register("alice")

    response = await test_client.patch(
        f"{API}/users/profile",
        data={"username": "alice_b", "bio": "I take photos"},
        files={"profileImage": ("me.jpg", make_image("JPEG", size=(800, 600)), "image/jpeg")},
        headers=alice,
    )

    assert response.status_code == 200
    user = response.json()["data"]["user"]
    assert user["username"] == "alice_b"
    assert user["bio"] == "I take photos"
    assert user["profileImage"].startswith("/uploads/profile-")

    first_image = image_store.upload_dir / user["profileImage"].rsplit("/", 1)[-1]
    assert first_image.exists()

    # Replacing the image releases the previous one
    response = await test_client.patch(
        f"{API}/users/profile",
        files={"profileImage": ("me.png", make_image(), "image/png")},
        headers=alice,
    )
    assert response.status_code == 200
    assert not first_image.exists()

    assert (await test_client.get(f"{API}/users/alice_b")).status_code == 200
    assert (await test_client.get(f"{API}/users/alice")).status_code == 404


@pytest.mark.asyncio
async def test_update_profile_username_taken(test_client: AsyncClient, register):
    await register("bob")
    _, alice = await register("alice")

    response = await test_client.patch(f"{API}/users/profile", data={"username": "BOB"}, headers=alice)

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_update_profile_bio_too_long(test_client: AsyncClient, register):
    _, alice = await register("alice")

    response = await test_client.patch(f"{API}/users/profile", data={"bio": "x" * 501}, headers=alice)

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_update_email(test_client: AsyncClient, register):
    await register("bob")
    _, alice = await register("alice")

    wrong = await test_client.patch(
        f"{API}/users/email",
        json={"email": "new@example.com", "currentPassword": "Nope12345"},
        headers=alice,
    )
    taken = await test_client.patch(
        f"{API}/users/email",
        json={"email": "bob@example.com", "currentPassword": PASSWORD},
        headers=alice,
    )
    changed = await test_client.patch(
        f"{API}/users/email",
        json={"email": "New@Example.com", "currentPassword": PASSWORD},
        headers=alice,
    )

    assert wrong.status_code == 401
    assert taken.status_code == 409
    assert changed.status_code == 200
    assert changed.json()["data"]["user"]["email"] == "new@example.com"


@pytest.mark.asyncio
async def test_update_password(test_client: AsyncClient, register):
    _, alice = await register("alice")

    response = await test_client.patch(
        f"{API}/users/password",
        json={"currentPassword": PASSWORD, "newPassword": "Different456"},
        headers=alice,
    )
    assert response.status_code == 200

    old = await test_client.post(f"{API}/auth/login", json={"identifier": "alice", "password": PASSWORD})
    new = await test_client.post(f"{API}/auth/login", json={"identifier": "alice", "password": "Different456"})
    assert old.status_code == 401
    assert new.status_code == 200


@pytest.mark.asyncio
async def test_update_password_requires_strength(test_client: AsyncClient, register):
    _, alice = await register("alice")

    response = await test_client.patch(
        f"{API}/users/password",
        json={"currentPassword": PASSWORD, "newPassword": "weak"},
        headers=alice,
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_delete_account_wrong_password(test_client: AsyncClient, register):
    _, alice = await register("alice")

    response = await test_client.request(
        "DELETE", f"{API}/users/account", json={"password": "Wrong12345"}, headers=alice
    )

    assert response.status_code == 401
    assert (await test_client.get(f"{API}/users/alice")).status_code == 200


@pytest.mark.asyncio
async def test_delete_account_cascades(test_client: AsyncClient, register, create_post, fetch, image_store):
    """A user's removal takes their content with it and repairs everyone else's counters"""
    alice_user, alice = await register("alice")
    bob_user, bob = await register("bob")

    alice_post = await create_post(alice)
    bob_post = await create_post(bob)

    # Bob's footprint on Alice's post
    await test_client.post(f"{API}/posts/{alice_post['id']}/like", headers=bob)
    kept = await test_client.post(f"{API}/comments/{alice_post['id']}", json={"content": "one"}, headers=bob)
    gone = await test_client.post(f"{API}/comments/{alice_post['id']}", json={"content": "two"}, headers=bob)
    await test_client.delete(f"{API}/comments/{gone.json()['data']['comment']['id']}", headers=bob)
    await test_client.post(f"{API}/comments/{alice_post['id']}", json={"content": "mine"}, headers=alice)

    # Alice's footprint on Bob's post
    await test_client.post(f"{API}/posts/{bob_post['id']}/like", headers=alice)
    await test_client.post(f"{API}/comments/{bob_post['id']}", json={"content": "hey"}, headers=alice)

    before = await fetch(Post, alice_post["id"])
    assert before.like_count == 1
    assert before.comment_count == 2

    response = await test_client.request(
        "DELETE", f"{API}/users/account", json={"password": PASSWORD}, headers=bob
    )
    assert response.status_code == 200

    assert await fetch(User, bob_user["id"]) is None
    assert await fetch(Post, bob_post["id"]) is None
    assert await fetch(Comment, kept.json()["data"]["comment"]["id"]) is None

    after = await fetch(Post, alice_post["id"])
    assert after.like_count == 0
    assert after.comment_count == 1

    author = await fetch(User, alice_user["id"])
    assert author.total_likes_received == 0
    assert author.post_count == 1

    assert not (image_store.upload_dir / bob_post["image"].rsplit("/", 1)[-1]).exists()
    feed = (await test_client.get(f"{API}/posts")).json()["data"]
    assert [p["id"] for p in feed["posts"]] == [alice_post["id"]]


@pytest.mark.asyncio
async def test_deleted_user_likes_are_gone(test_client: AsyncClient, register, create_post, session_factory):
    from sqlalchemy import func, select

    _, alice = await register("alice")
    bob_user, bob = await register("bob")
    post = await create_post(alice)
    await test_client.post(f"{API}/posts/{post['id']}/like", headers=bob)

    await test_client.request("DELETE", f"{API}/users/account", json={"password": PASSWORD}, headers=bob)

    async with session_factory() as session:
        remaining = (
            await session.execute(select(func.count(Like.id)).where(Like.user_id == bob_user["id"]))
        ).scalar()
    assert remaining == 0
