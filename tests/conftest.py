"""Shared fixtures for API tests."""

import os
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from jose import jwt  # noqa: E402

from learnhub.auth.permissions import UserRole  # noqa: E402
from learnhub.config import get_settings  # noqa: E402
from learnhub.main import create_app  # noqa: E402


@pytest.fixture
def app() -> FastAPI:
    """Application without lifespan, so no Cassandra connection is attempted."""
    return create_app()


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def make_token() -> Callable[..., str]:
    """Build signed access tokens the way the identity provider does."""
    settings = get_settings()

    def _make(
        user_id: UUID | None = None,
        role: UserRole = UserRole.LEARNER,
        token_type: str = "access",
        expires_in: timedelta = timedelta(minutes=15),
    ) -> str:
        payload = {
            "sub": str(user_id or uuid4()),
            "role": role.value,
            "type": token_type,
            "exp": datetime.now(UTC) + expires_in,
        }
        return jwt.encode(
            payload, settings.auth_secret_key, algorithm=settings.auth_algorithm
        )

    return _make


@pytest.fixture
def auth_headers(make_token) -> Callable[..., dict[str, str]]:
    def _headers(
        user_id: UUID | None = None, role: UserRole = UserRole.LEARNER
    ) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_token(user_id, role)}"}

    return _headers
