"""Fixtures for API tests."""

from types import SimpleNamespace
from typing import Dict

import pytest
from fastapi.testclient import TestClient

from app.database.supabase_client import get_rbac_supabase, get_supabase
from app.main import app


class FakeAuthUsers:
    """Maps bearer tokens to Supabase Auth users for auth.get_user(jwt=...)."""

    def __init__(self) -> None:
        self.by_token: Dict[str, str] = {}

    def add(self, token: str, user_id: str) -> None:
        self.by_token[token] = user_id

    def get_user(self, jwt: str) -> SimpleNamespace:
        if jwt not in self.by_token:
            raise RuntimeError("invalid JWT: token is expired")
        user_id = self.by_token[jwt]
        return SimpleNamespace(
            user=SimpleNamespace(
                id=user_id,
                email=f"{user_id}@example.com",
                user_metadata={},
                app_metadata={},
                created_at="2025-01-01T00:00:00Z",
                updated_at=None,
            )
        )


@pytest.fixture
def auth_users(fake_supabase) -> FakeAuthUsers:
    users = FakeAuthUsers()
    fake_supabase.auth.get_user.side_effect = users.get_user
    return users


@pytest.fixture
def client(fake_supabase, auth_users):
    """FastAPI test client with Supabase swapped for the in-memory fake."""
    app.dependency_overrides[get_supabase] = lambda: fake_supabase
    app.dependency_overrides[get_rbac_supabase] = lambda: fake_supabase
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
