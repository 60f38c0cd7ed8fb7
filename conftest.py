import io
from types import SimpleNamespace
from typing import List

import mongomock
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from jose import jwt
from PIL import Image

from wardrobe.ai import get_completion_client
from wardrobe.app import create_app
from wardrobe.config import Settings
from wardrobe.db import ensure_indexes, get_db
from wardrobe.errors import UpstreamError
from wardrobe.images import get_image_service


class FakeImages:
    """Stands in for ImageService: no PhotoRoom, no Cloudinary, no network."""

    def __init__(self):
        self.unreachable = set()
        self.fail_uploads = False
        self.uploaded = 0

    def process(self, data: bytes) -> str:
        return self.upload(self.remove_background(data))

    def remove_background(self, data: bytes) -> bytes:
        return data

    def upload(self, data: bytes) -> str:
        if self.fail_uploads:
            raise UpstreamError("Failed to upload image to Cloudinary", details="cloudinary is down")
        self.uploaded += 1
        return f"https://res.cloudinary.com/demo/image/upload/wardrobe/item{self.uploaded}.png"

    def fetch_remote(self, url: str) -> bytes:
        if url in self.unreachable:
            raise UpstreamError(f"Failed to fetch image from URL: {url}")
        return b"remote image bytes"


class FakeCompletions:
    def __init__(self):
        self.responses: List[str] = []
        self.prompts = []

    def complete(self, content):
        self.prompts.append(content)
        if not self.responses:
            raise UpstreamError("Failed to generate a response from the AI service")
        return self.responses.pop(0)


def completion(text):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


@pytest.fixture
def settings():
    return Settings(
        jwt_secret="test-secret",
        mongo_uri="mongodb://localhost:27017",
        ai_api_keys=("key-one", "key-two"),
        ai_backoff_seconds=0,
        ai_max_backoff_seconds=0,
    )


@pytest.fixture
def db():
    database = mongomock.MongoClient()["wardrobe"]
    ensure_indexes(database)
    return database


@pytest.fixture
def images():
    return FakeImages()


@pytest.fixture
def completions():
    return FakeCompletions()


@pytest.fixture
def app(settings, db, images, completions):
    application = create_app(settings)
    application.dependency_overrides[get_db] = lambda: db
    application.dependency_overrides[get_image_service] = lambda: images
    application.dependency_overrides[get_completion_client] = lambda: completions
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def signup(client):
    """Register a user and return its token; the cookie jar is left empty."""

    def _signup(email: str, password: str = "hunter22") -> str:
        r = client.post("/auth", json={"action": "signup", "email": email, "password": password})
        assert r.status_code == 200, r.text
        client.cookies.clear()
        return r.json()["token"]

    return _signup


@pytest.fixture
def owner_of(settings):
    def _owner_of(token: str) -> ObjectId:
        return ObjectId(jwt.decode(token, settings.jwt_secret, algorithms=["HS256"])["sub"])

    return _owner_of


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def png_bytes(color=(200, 30, 30)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (8, 8), color).save(buf, format="PNG")
    return buf.getvalue()
