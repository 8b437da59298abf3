"""Pytest configuration and fixtures."""

import os
import uuid

import pytest

# settings are read once at import time, so the environment has to be in place before app.main is imported
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-service-key")
os.environ.setdefault("CLERK_JWKS_URL", "https://clerk.test/.well-known/jwks.json")
os.environ.setdefault("CLERK_WEBHOOK_SECRET", "whsec_MfKQ9r8GKYqrTwjUPD8ILPZIo2LaLaSw")
os.environ["ENTITY_STORE_BACKEND"] = "memory"

from app.custom_error import ValidationError  # noqa: E402
from app.main import app  # noqa: E402
from app.models.user_models import UserRecord  # noqa: E402
from app.realtime.connection_registry import ConnectionRegistry  # noqa: E402
from app.realtime.notification_dispatcher import NotificationDispatcher  # noqa: E402
from app.stores.memory_store import InMemoryEntityStore  # noqa: E402
from app.utils.user_auth import get_current_clerk_user_id  # noqa: E402
from fastapi import Request  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402


async def _clerk_user_from_header(request: Request) -> str:
    """Stands in for the Clerk bearer guard: the caller is whoever the x-clerk-user-id header names."""
    clerk_user_id = request.headers.get("x-clerk-user-id")
    if not clerk_user_id:
        raise ValidationError("Authentication required")
    return clerk_user_id


@pytest.fixture
def client():
    """Test client over a fresh in-memory store (the lifespan builds a new one per client)."""
    app.dependency_overrides[get_current_clerk_user_id] = _clerk_user_from_header
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def seed_user(client):
    """Insert a user straight into the app's store, the way the Clerk webhook would have."""

    def _seed(clerk_user_id: str, name: str = None) -> UserRecord:
        user = UserRecord(id=str(uuid.uuid4()), clerk_user_id=clerk_user_id, email=f"{clerk_user_id}@example.com", name=name)
        client.app.state.entity_store.users[user.id] = user
        return user

    return _seed


@pytest.fixture
def store():
    return InMemoryEntityStore()


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def dispatcher(registry):
    return NotificationDispatcher(registry)
