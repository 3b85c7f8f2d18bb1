"""
CultureTour Backend — Test Configuration (conftest.py)
=======================================================

What:  Shared pytest fixtures for the whole suite.
How:   Test settings are put in the environment before the culturetour
       package is imported, so the settings singleton, the retry decorators
       and the gateway singletons are built from them. The Appwrite and
       Cloudinary gateways are always replaced by mocks; no test touches
       the network.

Fixtures:
    mock_store          AsyncMock standing in for DocumentStore
    panorama_bytes      2048x1024 JPEG (a valid equirectangular panorama)
    small_jpeg_bytes    64x32 JPEG (too small for a panorama)
    png_bytes           tiny PNG
    make_token          signs a JWT the way AuthService.login does
    auth_headers        Authorization header for user "user-1"
    test_client         httpx AsyncClient over the gateway app
"""

import io
import os

# Settings are read on first import; keep these above the culturetour imports
os.environ["APPWRITE_PROJECT_ID"] = "test-project"
os.environ["APPWRITE_API_KEY"] = "test-key-not-real"
os.environ["CLOUDINARY_CLOUD_NAME"] = "test-cloud"
os.environ["CLOUDINARY_API_KEY"] = "test-key"
os.environ["CLOUDINARY_API_SECRET"] = "test-secret"
os.environ["JWT_SECRET"] = "test-secret-for-jwt-signing"
os.environ["SERVICE_NAME"] = "gateway"
os.environ["RETRY_MAX_ATTEMPTS"] = "1"
os.environ["RETRY_MIN_WAIT"] = "0"
os.environ["RETRY_MAX_WAIT"] = "1"
os.environ["LOG_LEVEL"] = "WARNING"

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image

from culturetour.security import create_access_token


def _image_bytes(width: int, height: int, fmt: str) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color=(90, 140, 200)).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture(scope="session")
def panorama_bytes() -> bytes:
    return _image_bytes(2048, 1024, "JPEG")


@pytest.fixture(scope="session")
def small_jpeg_bytes() -> bytes:
    return _image_bytes(64, 32, "JPEG")


@pytest.fixture(scope="session")
def png_bytes() -> bytes:
    return _image_bytes(16, 16, "PNG")


@pytest.fixture
def mock_store():
    """
    Stand-in for the DocumentStore singleton.

    Every attribute is an AsyncMock, so tests only set return values:
        mock_store.get_document.return_value = {"$id": "post-1", ...}
    """
    store = AsyncMock()
    store.list_documents.return_value = {"total": 0, "documents": []}
    store.list_all_documents.return_value = []
    store.find_one.return_value = None
    return store


@pytest.fixture
def make_token():
    def _make(user_id="user-1", email="user1@example.com", role="user", session_id=None):
        return create_access_token(user_id=user_id, email=email, role=role, session_id=session_id)

    return _make


@pytest.fixture
def auth_headers(make_token):
    return {"Authorization": f"Bearer {make_token()}"}


@pytest_asyncio.fixture
async def test_client():
    """
    HTTPX client talking to the gateway app in-process.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
    """
    from culturetour.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
