from conftest import API


async def test_get_my_profile(client, register):
    alice = await register("alice", first_name="Alice", last_name="Liddell")

    response = await client.get(f"{API}/users/me", headers=alice.headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["id"] == alice.id
    assert data["name"] == "Alice Liddell"
    assert data["followers"] == []
    assert "password_hash" not in data
    assert "refresh_token" not in data


async def test_get_unknown_user(client, register):
    alice = await register("alice")

    response = await client.get(f"{API}/users/64b7f0c2a1b2c3d4e5f60718", headers=alice.headers)

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "User not found."}


async def test_get_user_with_malformed_id(client, register):
    alice = await register("alice")

    response = await client.get(f"{API}/users/not-an-id", headers=alice.headers)

    assert response.status_code == 404
    assert response.json()["error"] == "Invalid object id."


async def test_list_users_excludes_requester_and_searches(client, register):
    alice = await register("alice")
    await register("bob", first_name="Robert", last_name="Builder")
    await register("carol")

    response = await client.get(f"{API}/users", headers=alice.headers)
    body = response.json()
    assert response.status_code == 200
    assert body["total"] == 2
    assert alice.id not in [user["id"] for user in body["data"]]

    response = await client.get(
        f"{API}/users", params={"searchTerm": "robert"}, headers=alice.headers
    )
    body = response.json()
    assert [user["username"] for user in body["data"]] == ["bob"]


async def test_list_users_pagination(client, register):
    alice = await register("alice")
    for username in ("bob", "carol", "dave"):
        await register(username)

    response = await client.get(
        f"{API}/users", params={"page": 1, "limit": 2}, headers=alice.headers
    )
    body = response.json()

    assert len(body["data"]) == 2
    assert body["total"] == 3
    assert body["page"] == 1
    assert body["has_next_page"] is True
    assert body["next_page"] == 2


async def test_follow_and_unfollow(client, register, producer):
    alice = await register("alice", first_name="Alice", last_name="Liddell")
    bob = await register("bob")

    response = await client.patch(f"{API}/users/follow/{bob.id}", headers=alice.headers)
    assert response.status_code == 200

    bob_profile = (await client.get(f"{API}/users/{bob.id}", headers=alice.headers)).json()["data"]
    alice_profile = (await client.get(f"{API}/users/me", headers=alice.headers)).json()["data"]
    assert bob_profile["followers"] == [alice.id]
    assert alice_profile["following"] == [bob.id]

    notifications = (await client.get(f"{API}/notifications", headers=bob.headers)).json()
    assert notifications["total"] == 1
    assert notifications["data"][0]["type"] == "follow"
    assert notifications["data"][0]["content"] == "Alice Liddell followed you"
    assert notifications["data"][0]["sender_id"] == alice.id
    assert producer.events[0]["user_id"] == bob.id

    again = await client.patch(f"{API}/users/follow/{bob.id}", headers=alice.headers)
    assert again.status_code == 404
    assert again.json()["error"] == "You already follow this user."

    response = await client.patch(f"{API}/users/unfollow/{bob.id}", headers=alice.headers)
    assert response.status_code == 200

    bob_profile = (await client.get(f"{API}/users/{bob.id}", headers=alice.headers)).json()["data"]
    assert bob_profile["followers"] == []

    again = await client.patch(f"{API}/users/unfollow/{bob.id}", headers=alice.headers)
    assert again.status_code == 404
    assert again.json()["error"] == "You do not follow this user."


async def test_cannot_follow_self(client, register):
    alice = await register("alice")

    response = await client.patch(f"{API}/users/follow/{alice.id}", headers=alice.headers)

    assert response.status_code == 404
    assert response.json()["error"] == "You cannot follow yourself."


async def test_top_creators(client, register, create_post):
    alice = await register("alice")
    bob = await register("bob")
    carol = await register("carol")
    await create_post(bob)
    await create_post(carol)
    await create_post(carol)

    response = await client.get(f"{API}/users/top-creators", headers=alice.headers)
    usernames = [user["username"] for user in response.json()["data"]]

    assert usernames == ["carol", "bob"]


async def test_saved_posts(client, register, create_post):
    alice = await register("alice")
    bob = await register("bob")
    post = await create_post(bob)

    await client.patch(f"{API}/posts/save/{post['id']}", headers=alice.headers)
    response = await client.get(f"{API}/users/me/saved-posts", headers=alice.headers)

    assert [saved["id"] for saved in response.json()["data"]] == [post["id"]]


async def test_notifications_mark_read(client, register):
    alice = await register("alice")
    bob = await register("bob")
    carol = await register("carol")
    await client.patch(f"{API}/users/follow/{bob.id}", headers=alice.headers)
    await client.patch(f"{API}/users/follow/{bob.id}", headers=carol.headers)

    notifications = (await client.get(f"{API}/notifications", headers=bob.headers)).json()["data"]
    first_id = notifications[0]["id"]

    forbidden = await client.patch(f"{API}/notifications/{first_id}/read", headers=alice.headers)
    assert forbidden.status_code == 404
    assert forbidden.json()["error"] == "Unauthorized."

    response = await client.patch(f"{API}/notifications/{first_id}/read", headers=bob.headers)
    assert response.json()["data"]["is_read"] is True

    unread = (await client.get(
        f"{API}/notifications", params={"unread": "true"}, headers=bob.headers
    )).json()
    assert unread["total"] == 1

    marked = await client.patch(f"{API}/notifications/read-all", headers=bob.headers)
    assert marked.json()["count"] == 1


async def test_delete_account_removes_user_from_graph(client, register, create_post, db):
    alice = await register("alice")
    bob = await register("bob")
    await client.patch(f"{API}/users/follow/{bob.id}", headers=alice.headers)
    await client.patch(f"{API}/users/follow/{alice.id}", headers=bob.headers)
    post = await create_post(bob)
    await client.patch(f"{API}/posts/like/{post['id']}", headers=alice.headers)
    await create_post(alice)

    response = await client.delete(f"{API}/auth/delete/{alice.id}", headers=alice.headers)
    assert response.status_code == 200

    bob_profile = (await client.get(f"{API}/users/me", headers=bob.headers)).json()["data"]
    assert bob_profile["followers"] == []
    assert bob_profile["following"] == []

    post = (await client.get(f"{API}/posts/{post['id']}", headers=bob.headers)).json()["data"]
    assert post["likes"] == []
    assert await db.posts.count_documents({}) == 1
    assert await db.notifications.count_documents({}) == 0
