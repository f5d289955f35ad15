import os

# Must be set before the settings object is built
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("KAFKA_ENABLED", "false")

from dataclasses import dataclass, field
from io import BytesIO
from typing import Dict, List, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient
from PIL import Image

from snapgram_service.main import app
from snapgram_service.application.media import ImageService
from snapgram_service.application.integrity import ReferentialIntegrity
from snapgram_service.infrastructure.auth import decode_token
from snapgram_service.infrastructure.database.connection import get_db
from snapgram_service.infrastructure.database.repositories import (
    UserRepository,
    PostRepository,
    CommentRepository,
    CommunityRepository,
    NotificationRepository,
)
from snapgram_service.infrastructure.events import get_kafka_producer
from snapgram_service.infrastructure.mailer import get_email_sender
from snapgram_service.infrastructure.storage import StorageError, get_storage


API = "/api/v1"


class FakeStorage:
    """In-memory object storage"""

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.deleted: List[str] = []
        self.fail_after: Optional[int] = None

    def ensure_bucket_exists(self):
        pass

    def upload_file(self, file_data, key, content_type="image/jpeg", metadata=None):
        if self.fail_after is not None and len(self.objects) >= self.fail_after:
            raise StorageError(f"Failed to upload {key}")
        file_data.seek(0)
        self.objects[key] = file_data.read()

    def delete_file(self, key):
        self.deleted.append(key)
        return self.objects.pop(key, None) is not None

    def get_url(self, key):
        return f"http://media.test/{key}"


class FakeMailer:
    """Records password reset emails instead of sending them"""

    def __init__(self):
        self.sent: List[dict] = []

    def send_password_reset(self, name, email, token):
        self.sent.append({"name": name, "email": email, "token": token})


class FakeProducer:
    def __init__(self):
        self.events: List[dict] = []

    async def publish_notification(self, notification_data):
        self.events.append(notification_data)
        return True


@dataclass
class AuthUser:
    id: str
    token: str
    headers: Dict[str, str] = field(default_factory=dict)


def png_bytes(color=(200, 30, 30)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (8, 8), color).save(buffer, "PNG")
    return buffer.getvalue()


def image_files(count=1):
    return [("images", (f"photo{i}.png", png_bytes(), "image/png")) for i in range(count)]


@pytest.fixture
def db():
    return AsyncMongoMockClient()["snapgram_test"]


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def producer():
    return FakeProducer()


@pytest.fixture
def repos(db):
    return {
        "users": UserRepository(db),
        "posts": PostRepository(db),
        "comments": CommentRepository(db),
        "communities": CommunityRepository(db),
        "notifications": NotificationRepository(db),
    }


@pytest.fixture
def integrity(repos, storage):
    return ReferentialIntegrity(
        repos["users"],
        repos["posts"],
        repos["comments"],
        repos["communities"],
        repos["notifications"],
        ImageService(storage),
    )


@pytest.fixture
async def client(db, storage, mailer, producer):
    async def override_get_db():
        return db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_email_sender] = lambda: mailer
    app.dependency_overrides[get_kafka_producer] = lambda: producer

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client

    app.dependency_overrides.clear()


@pytest.fixture
def register(client):
    """Register a user through the API and return its id, token and auth headers"""

    async def _register(username, email=None, password="password123", first_name="Test", last_name="User"):
        response = await client.post(f"{API}/auth/register", json={
            "first_name": first_name,
            "last_name": last_name,
            "username": username,
            "email": email or f"{username}@example.com",
            "password": password,
            "confirm_password": password,
        })
        assert response.status_code == 200, response.text
        token = response.json()["token"]
        return AuthUser(
            id=decode_token(token)["sub"],
            token=token,
            headers={"Authorization": f"Bearer {token}"},
        )

    return _register


@pytest.fixture
def create_post(client):
    async def _create_post(user, caption="Sunset at the beach", images=1, community_id=None):
        url = f"{API}/posts" if community_id is None else f"{API}/posts/community/{community_id}"
        response = await client.post(
            url,
            data={"caption": caption, "location": "Lisbon", "tags": "sun, beach"},
            files=image_files(images),
            headers=user.headers,
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _create_post
