from bson import ObjectId

from starlette.concurrency import run_in_threadpool

from snapgram_service.application import auth_service
from snapgram_service.infrastructure.auth import (
    create_refresh_token, decode_token, hash_password, verify_password,
)

from conftest import API


def cookie_value(response, name="refresh_token"):
    for header in response.headers.get_list("set-cookie"):
        if header.startswith(f"{name}="):
            return header.split(";", 1)[0].split("=", 1)[1]
    return None


async def test_register_returns_token_and_refresh_cookie(client):
    response = await client.post(f"{API}/auth/register", json={
        "first_name": "Alice",
        "last_name": "Liddell",
        "username": "alice",
        "email": "Alice@Example.com",
        "password": "password123",
        "confirm_password": "password123",
    })

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["token_type"] == "bearer"

    claims = decode_token(body["token"])
    assert claims["type"] == "access"
    assert claims["name"] == "Alice Liddell"
    assert claims["email"] == "alice@example.com"
    assert claims["bio"] == "My bio"
    assert cookie_value(response)


async def test_register_rejects_duplicate_email(client, register):
    await register("alice")
    response = await client.post(f"{API}/auth/register", json={
        "first_name": "Other",
        "last_name": "Person",
        "username": "someoneelse",
        "email": "ALICE@example.com",
        "password": "password123",
        "confirm_password": "password123",
    })

    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "error": "There is already a registered user with this email address.",
    }


async def test_register_rejects_duplicate_username(client, register):
    await register("alice")
    response = await client.post(f"{API}/auth/register", json={
        "first_name": "Other",
        "last_name": "Person",
        "username": "alice",
        "email": "other@example.com",
        "password": "password123",
        "confirm_password": "password123",
    })

    assert response.status_code == 404
    assert response.json()["error"] == "This username is already in use."


async def test_register_rejects_mismatched_passwords(client):
    response = await client.post(f"{API}/auth/register", json={
        "first_name": "Alice",
        "last_name": "Liddell",
        "username": "alice",
        "email": "alice@example.com",
        "password": "password123",
        "confirm_password": "password124",
    })

    assert response.status_code == 422
    assert response.json() == {"success": False, "error": "Passwords do not match."}


async def test_register_rejects_short_password(client):
    response = await client.post(f"{API}/auth/register", json={
        "first_name": "Alice",
        "last_name": "Liddell",
        "username": "alice",
        "email": "alice@example.com",
        "password": "short",
        "confirm_password": "short",
    })

    assert response.status_code == 422
    assert response.json()["error"].startswith("password:")


async def test_login(client, register):
    await register("alice")

    response = await client.post(f"{API}/auth/login", json={
        "email": "alice@example.com",
        "password": "password123",
    })

    assert response.status_code == 200
    assert decode_token(response.json()["token"])["type"] == "access"
    assert cookie_value(response)


async def test_login_unknown_email(client):
    response = await client.post(f"{API}/auth/login", json={
        "email": "nobody@example.com",
        "password": "password123",
    })

    assert response.status_code == 404
    assert response.json()["error"] == "There is no user registered with this email."


async def test_login_wrong_password(client, register):
    await register("alice")

    response = await client.post(f"{API}/auth/login", json={
        "email": "alice@example.com",
        "password": "wrongpassword",
    })

    assert response.status_code == 404
    assert response.json()["error"] == "Invalid password."


async def test_refresh_rotates_the_stored_token(client):
    registered = await client.post(f"{API}/auth/register", json={
        "first_name": "Alice",
        "last_name": "Liddell",
        "username": "alice",
        "email": "alice@example.com",
        "password": "password123",
        "confirm_password": "password123",
    })
    old_refresh = cookie_value(registered)

    response = await client.get(
        f"{API}/auth/refresh", headers={"Cookie": f"refresh_token={old_refresh}"}
    )
    assert response.status_code == 200
    new_refresh = cookie_value(response)
    assert new_refresh and new_refresh != old_refresh
    assert decode_token(response.json()["token"])["type"] == "access"

    replay = await client.get(
        f"{API}/auth/refresh", headers={"Cookie": f"refresh_token={old_refresh}"}
    )
    assert replay.status_code == 404
    assert replay.json()["error"] == "Token not found."


async def test_refresh_without_cookie(client):
    client.cookies.clear()
    response = await client.get(f"{API}/auth/refresh")

    assert response.status_code == 404
    assert response.json()["error"] == "No refresh token."


async def test_refresh_rejects_foreign_subject(client, register, repos):
    user = await register("alice")
    forged = create_refresh_token({"sub": str(ObjectId())})
    await repos["users"].update(ObjectId(user.id), {"refresh_token": forged})

    response = await client.get(
        f"{API}/auth/refresh", headers={"Cookie": f"refresh_token={forged}"}
    )

    assert response.status_code == 401
    assert response.json()["error"] == "Invalid token."


async def test_logout_forgets_refresh_token(client, repos):
    registered = await client.post(f"{API}/auth/register", json={
        "first_name": "Alice",
        "last_name": "Liddell",
        "username": "alice",
        "email": "alice@example.com",
        "password": "password123",
        "confirm_password": "password123",
    })
    refresh = cookie_value(registered)

    response = await client.get(
        f"{API}/auth/logout", headers={"Cookie": f"refresh_token={refresh}"}
    )

    assert response.status_code == 204
    user = await repos["users"].find_by_email("alice@example.com")
    assert user.refresh_token is None


async def test_protected_route_requires_token(client):
    client.cookies.clear()
    response = await client.get(f"{API}/users/me")

    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "No token on request."}


async def test_protected_route_rejects_garbage_token(client):
    response = await client.get(
        f"{API}/users/me", headers={"Authorization": "Bearer not-a-token"}
    )

    assert response.status_code == 401
    assert response.json()["error"] == "Invalid token."


async def test_refresh_token_is_not_an_access_token(client, register):
    user = await register("alice")
    refresh = create_refresh_token({"sub": user.id})

    response = await client.get(
        f"{API}/users/me", headers={"Authorization": f"Bearer {refresh}"}
    )

    assert response.status_code == 401


async def test_account_routes_require_matching_owner(client, register):
    alice = await register("alice")
    bob = await register("bob")

    response = await client.delete(f"{API}/auth/delete/{bob.id}", headers=alice.headers)

    assert response.status_code == 403
    assert response.json()["error"] == "Unauthorized"


async def test_update_profile(client, register):
    alice = await register("alice")

    response = await client.post(
        f"{API}/auth/update/{alice.id}",
        data={
            "first_name": "Alicia",
            "last_name": "Liddell",
            "username": "alicia",
            "email": "alicia@example.com",
            "bio": "Down the rabbit hole",
        },
        headers=alice.headers,
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["name"] == "Alicia Liddell"
    assert data["username"] == "alicia"
    assert data["bio"] == "Down the rabbit hole"
    assert "password_hash" not in data


async def test_update_profile_rejects_taken_username(client, register):
    alice = await register("alice")
    await register("bob")

    response = await client.post(
        f"{API}/auth/update/{alice.id}",
        data={
            "first_name": "Alice",
            "last_name": "Liddell",
            "username": "bob",
            "email": "alice@example.com",
        },
        headers=alice.headers,
    )

    assert response.status_code == 404
    assert response.json()["error"] == "This username is already in use."


async def test_change_password(client, register):
    alice = await register("alice")

    response = await client.post(
        f"{API}/auth/update-password/{alice.id}",
        json={
            "old_password": "password123",
            "password": "newpassword1",
            "confirm_password": "newpassword1",
        },
        headers=alice.headers,
    )
    assert response.status_code == 200

    login = await client.post(f"{API}/auth/login", json={
        "email": "alice@example.com",
        "password": "newpassword1",
    })
    assert login.status_code == 200


async def test_change_password_with_wrong_old_password(client, register):
    alice = await register("alice")

    response = await client.post(
        f"{API}/auth/update-password/{alice.id}",
        json={
            "old_password": "not-my-password",
            "password": "newpassword1",
            "confirm_password": "newpassword1",
        },
        headers=alice.headers,
    )

    assert response.status_code == 404


async def test_forgot_and_reset_password(client, register, mailer, repos):
    await register("alice")

    response = await client.post(
        f"{API}/auth/forget-password", json={"email": "alice@example.com"}
    )
    assert response.status_code == 200
    assert len(mailer.sent) == 1
    token = mailer.sent[0]["token"]
    assert mailer.sent[0]["email"] == "alice@example.com"

    reset = await client.patch(
        f"{API}/auth/forget-password/{token}",
        json={"password": "brandnewpass", "confirm_password": "brandnewpass"},
    )
    assert reset.status_code == 200

    user = await repos["users"].find_by_email("alice@example.com")
    assert user.reset_password_token is None
    assert user.refresh_token is None

    login = await client.post(f"{API}/auth/login", json={
        "email": "alice@example.com",
        "password": "brandnewpass",
    })
    assert login.status_code == 200

    reused = await client.patch(
        f"{API}/auth/forget-password/{token}",
        json={"password": "anotherpass1", "confirm_password": "anotherpass1"},
    )
    assert reused.status_code == 404
    assert reused.json()["error"] == "Invalid or expired token."


async def test_forgot_password_for_unknown_email_sends_nothing(client, mailer):
    response = await client.post(
        f"{API}/auth/forget-password", json={"email": "nobody@example.com"}
    )

    assert response.status_code == 200
    assert mailer.sent == []


async def test_delete_account(client, register, repos):
    alice = await register("alice")

    response = await client.delete(f"{API}/auth/delete/{alice.id}", headers=alice.headers)

    assert response.status_code == 200
    assert await repos["users"].find_by_id(ObjectId(alice.id)) is None


async def test_password_hashing_runs_in_threadpool(client, register, monkeypatch):
    dispatched = []

    async def recording_threadpool(func, *args, **kwargs):
        dispatched.append(func)
        return await run_in_threadpool(func, *args, **kwargs)

    monkeypatch.setattr(auth_service, "run_in_threadpool", recording_threadpool)

    await register("alice")
    response = await client.post(
        f"{API}/auth/login", json={"email": "alice@example.com", "password": "password123"}
    )

    assert response.status_code == 200
    assert hash_password in dispatched
    assert verify_password in dispatched
