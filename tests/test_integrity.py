from io import BytesIO

import pytest
from bson import ObjectId

from snapgram_service.application.errors import ConflictError, InvalidInputError
from snapgram_service.config import settings
from snapgram_service.domain.models import NotificationType


async def make_user(repos, username):
    return await repos["users"].create({
        "first_name": "Test",
        "last_name": username,
        "name": f"Test {username}",
        "username": username,
        "email": f"{username}@example.com",
        "bio": "My bio",
        "followers": [],
        "following": [],
        "posts": [],
        "saved_posts": [],
        "communities": [],
    })


async def make_post(repos, integrity, storage, author, community=None):
    key = f"snapgram/{author.id}/{ObjectId()}.png"
    storage.upload_file(BytesIO(b"img"), key)
    post = await repos["posts"].create({
        "author": author.id,
        "caption": "caption",
        "location": "here",
        "images": [{"public_id": key, "secure_url": storage.get_url(key)}],
        "tags": [],
        "likes": [],
        "shared_by": [],
        "original_post": None,
        "community": community.id if community else None,
        "comments": [],
    })
    await integrity.link_post(post)
    return post


async def make_share(repos, integrity, original, sharer):
    share = await repos["posts"].create({
        "author": sharer.id,
        "original_post": original.id,
        "likes": [],
        "shared_by": [],
        "community": None,
        "comments": [],
    })
    await integrity.link_share(share)
    return share


async def make_comment(repos, author, post=None, parent=None):
    comment = await repos["comments"].create({"content": "nice one", "author": author.id, "replies": []})
    if post is not None:
        await repos["posts"].add_to_set(post.id, "comments", comment.id)
    if parent is not None:
        await repos["comments"].add_to_set(parent.id, "replies", comment.id)
    return comment


async def make_community(repos, integrity, creator, name="photographers", community_type="Private"):
    community = await repos["communities"].create({
        "name": name,
        "username": name,
        "bio": None,
        "image": None,
        "created_by": creator.id,
        "community_type": community_type,
        "posts": [],
        "members": [],
        "members_requests": [],
    })
    await integrity.link_member(community, creator.id)
    return await repos["communities"].find_by_id(community.id)


async def count(db, collection):
    return await db[collection].count_documents({})


# Follow graph

async def test_follow_then_unfollow_restores_both_users(repos, integrity):
    alice = await make_user(repos, "alice")
    bob = await make_user(repos, "bob")

    await integrity.link_follow(alice, bob)
    alice = await repos["users"].find_by_id(alice.id)
    bob = await repos["users"].find_by_id(bob.id)
    assert alice.following == [bob.id]
    assert bob.followers == [alice.id]

    await integrity.unlink_follow(alice, bob)
    alice = await repos["users"].find_by_id(alice.id)
    bob = await repos["users"].find_by_id(bob.id)
    assert alice.following == []
    assert bob.followers == []


async def test_follow_twice_is_rejected(repos, integrity):
    alice = await make_user(repos, "alice")
    bob = await make_user(repos, "bob")
    await integrity.link_follow(alice, bob)

    alice = await repos["users"].find_by_id(alice.id)
    with pytest.raises(ConflictError) as exc_info:
        await integrity.link_follow(alice, bob)
    assert exc_info.value.detail == "You already follow this user."


async def test_unfollow_without_following_is_rejected(repos, integrity):
    alice = await make_user(repos, "alice")
    bob = await make_user(repos, "bob")

    with pytest.raises(ConflictError) as exc_info:
        await integrity.unlink_follow(alice, bob)
    assert exc_info.value.detail == "You do not follow this user."


async def test_self_follow_is_rejected(repos, integrity):
    alice = await make_user(repos, "alice")
    with pytest.raises(InvalidInputError):
        await integrity.link_follow(alice, alice)


# Comment trees

async def test_delete_comment_subtree_of_arbitrary_depth(db, repos, integrity, storage):
    author = await make_user(repos, "alice")
    post = await make_post(repos, integrity, storage, author)

    root = await make_comment(repos, author, post=post)
    sibling = await make_comment(repos, author, post=post)
    parent = root
    for _ in range(40):
        child = await make_comment(repos, author, parent=parent)
        # second branch on every level
        await make_comment(repos, author, parent=parent)
        parent = child

    assert await count(db, "comments") == 82

    deleted = await integrity.delete_comment_subtree(root.id)

    assert deleted == 81
    remaining = await repos["comments"].find_all()
    assert [comment.id for comment in remaining] == [sibling.id]
    post = await repos["posts"].find_by_id(post.id)
    assert post.comments == [sibling.id]


async def test_delete_reply_detaches_it_from_parent(repos, integrity, storage):
    author = await make_user(repos, "alice")
    post = await make_post(repos, integrity, storage, author)
    root = await make_comment(repos, author, post=post)
    reply = await make_comment(repos, author, parent=root)
    await make_comment(repos, author, parent=reply)

    assert await integrity.delete_comment_subtree(reply.id) == 2

    root = await repos["comments"].find_by_id(root.id)
    assert root.replies == []
    post = await repos["posts"].find_by_id(post.id)
    assert post.comments == [root.id]


async def test_delete_comment_subtree_survives_cycles_and_missing_ids(repos, integrity):
    author = await make_user(repos, "alice")
    first = await make_comment(repos, author)
    second = await make_comment(repos, author, parent=first)
    await repos["comments"].add_to_set(second.id, "replies", first.id)
    await repos["comments"].add_to_set(second.id, "replies", ObjectId())

    assert await integrity.delete_comment_subtree(first.id) == 2
    assert await repos["comments"].find_all() == []


async def test_delete_comment_subtree_drains_full_depth_thread(monkeypatch, repos, integrity):
    monkeypatch.setattr(settings, "MAX_COMMENT_DEPTH", 2)
    author = await make_user(repos, "alice")
    root = await make_comment(repos, author)
    level1 = await make_comment(repos, author, parent=root)
    await make_comment(repos, author, parent=level1)
    await make_comment(repos, author, parent=level1)

    assert await integrity.delete_comment_subtree(root.id) == 4
    assert await repos["comments"].find_all() == []


async def test_delete_comment_subtree_refuses_thread_deeper_than_cap(monkeypatch, repos, integrity):
    monkeypatch.setattr(settings, "MAX_COMMENT_DEPTH", 2)
    author = await make_user(repos, "alice")
    root = await make_comment(repos, author)
    level1 = await make_comment(repos, author, parent=root)
    level2 = await make_comment(repos, author, parent=level1)
    await make_comment(repos, author, parent=level2)

    with pytest.raises(InvalidInputError):
        await integrity.delete_comment_subtree(root.id)

    assert len(await repos["comments"].find_all()) == 4
    root = await repos["comments"].find_by_id(root.id)
    assert root.replies == [level1.id]


# Posts

async def test_delete_post_cascade(db, repos, integrity, storage):
    alice = await make_user(repos, "alice")
    bob = await make_user(repos, "bob")
    carol = await make_user(repos, "carol")

    post = await make_post(repos, integrity, storage, alice)
    comment = await make_comment(repos, bob, post=post)
    await make_comment(repos, alice, parent=comment)
    share = await make_share(repos, integrity, post, bob)
    await repos["users"].add_to_set(carol.id, "saved_posts", post.id)
    await repos["users"].add_to_set(carol.id, "saved_posts", share.id)
    await repos["notifications"].create({
        "user_id": alice.id,
        "sender_id": bob.id,
        "type": NotificationType.SHARE.value,
        "content": "Test bob shared your post",
        "is_read": False,
        "post_id": post.id,
    })

    post = await repos["posts"].find_by_id(post.id)
    await integrity.delete_post_cascade(post)

    assert await count(db, "posts") == 0
    assert await count(db, "comments") == 0
    assert await count(db, "notifications") == 0
    assert storage.objects == {}
    for user in (alice, bob, carol):
        user = await repos["users"].find_by_id(user.id)
        assert user.posts == []
        assert user.saved_posts == []


async def test_delete_share_only_detaches_it(repos, integrity, storage):
    alice = await make_user(repos, "alice")
    bob = await make_user(repos, "bob")
    post = await make_post(repos, integrity, storage, alice)
    share = await make_share(repos, integrity, post, bob)

    await integrity.delete_post_cascade(share)

    original = await repos["posts"].find_by_id(post.id)
    assert original is not None
    assert original.shared_by == []
    bob = await repos["users"].find_by_id(bob.id)
    assert bob.posts == []
    assert len(storage.objects) == 1


async def test_failed_image_deletion_does_not_abort_cascade(db, repos, integrity, storage):
    alice = await make_user(repos, "alice")
    post = await make_post(repos, integrity, storage, alice)
    storage.objects.clear()

    await integrity.delete_post_cascade(post)

    assert await count(db, "posts") == 0


# Communities

async def test_delete_community_cascade(db, repos, integrity, storage):
    alice = await make_user(repos, "alice")
    bob = await make_user(repos, "bob")
    community = await make_community(repos, integrity, alice)
    await integrity.link_member(community, bob.id)

    post = await make_post(repos, integrity, storage, bob, community=community)
    comment = await make_comment(repos, alice, post=post)
    await make_comment(repos, bob, parent=comment)

    community = await repos["communities"].find_by_id(community.id)
    assert community.posts == [post.id]

    await integrity.delete_community_cascade(community)

    assert await count(db, "communities") == 0
    assert await count(db, "posts") == 0
    assert await count(db, "comments") == 0
    for user in (alice, bob):
        user = await repos["users"].find_by_id(user.id)
        assert user.communities == []
        assert user.posts == []


async def test_link_member_clears_pending_request(repos, integrity):
    alice = await make_user(repos, "alice")
    bob = await make_user(repos, "bob")
    community = await make_community(repos, integrity, alice)
    await repos["communities"].add_to_set(community.id, "members_requests", bob.id)

    await integrity.link_member(community, bob.id)

    community = await repos["communities"].find_by_id(community.id)
    assert community.members == [alice.id, bob.id]
    assert community.members_requests == []
    bob = await repos["users"].find_by_id(bob.id)
    assert bob.communities == [community.id]


# Users

async def test_delete_user_cascade(db, repos, integrity, storage):
    alice = await make_user(repos, "alice")
    bob = await make_user(repos, "bob")

    await integrity.link_follow(alice, bob)
    bob = await repos["users"].find_by_id(bob.id)
    await integrity.link_follow(bob, alice)

    owned = await make_community(repos, integrity, alice, name="alicecrew")
    other = await make_community(repos, integrity, bob, name="bobcrew")
    await integrity.link_member(other, alice.id)

    alice_post = await make_post(repos, integrity, storage, alice)
    bob_post = await make_post(repos, integrity, storage, bob)
    await make_share(repos, integrity, alice_post, bob)
    await make_share(repos, integrity, bob_post, alice)
    await repos["posts"].add_to_set(bob_post.id, "likes", alice.id)
    alice_comment = await make_comment(repos, alice, post=bob_post)
    bob_comment = await make_comment(repos, bob, post=bob_post)
    await make_comment(repos, alice, parent=bob_comment)
    await repos["notifications"].create({
        "user_id": bob.id,
        "sender_id": alice.id,
        "type": NotificationType.FOLLOW.value,
        "content": "Test alice followed you",
        "is_read": False,
        "post_id": None,
    })

    alice = await repos["users"].find_by_id(alice.id)
    await integrity.delete_user_cascade(alice)

    assert await repos["users"].find_by_id(alice.id) is None
    assert await repos["communities"].find_by_id(owned.id) is None
    assert await count(db, "notifications") == 0

    bob = await repos["users"].find_by_id(bob.id)
    assert bob.followers == []
    assert bob.following == []
    assert bob.posts == [bob_post.id]

    bob_post = await repos["posts"].find_by_id(bob_post.id)
    assert bob_post.likes == []
    assert bob_post.shared_by == []
    assert alice_comment.id not in bob_post.comments
    assert bob_post.comments == [bob_comment.id]
    bob_comment = await repos["comments"].find_by_id(bob_comment.id)
    assert bob_comment.replies == []

    other = await repos["communities"].find_by_id(other.id)
    assert other.members == [bob.id]

    remaining_posts = await db.posts.find({}).to_list(length=None)
    assert [doc["_id"] for doc in remaining_posts] == [bob_post.id]
