from __future__ import annotations

import os
from collections.abc import Iterator
from typing import Any, cast
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine

import backend.core.db as db_module
from backend.main import app

PASSWORD = "StrongPass123$"


@pytest.fixture(scope="module")
def client(request: pytest.FixtureRequest) -> Iterator[TestClient]:
    """App client bound to a throwaway SQLite file for the test module."""
    db_filename = f"{request.module.__name__.rsplit('.', 1)[-1]}.db"
    db_url = f"sqlite:///./{db_filename}"

    previous_db_url = os.environ.get("DATABASE_URL")
    os.environ["DATABASE_URL"] = db_url
    original_engine = db_module.engine
    test_engine = create_engine(
        db_url,
        connect_args={"check_same_thread": False},
    )
    db_module.engine = test_engine

    def override_get_session() -> Iterator[Session]:
        with Session(test_engine) as session:
            yield session

    app.dependency_overrides[db_module.get_session] = override_get_session
    SQLModel.metadata.drop_all(test_engine)
    SQLModel.metadata.create_all(test_engine)

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.pop(db_module.get_session, None)
    SQLModel.metadata.drop_all(test_engine)
    test_engine.dispose()
    if previous_db_url is not None:
        os.environ["DATABASE_URL"] = previous_db_url
    else:
        os.environ.pop("DATABASE_URL", None)
    db_module.engine = original_engine
    if os.path.exists(db_filename):
        os.remove(db_filename)


@pytest.fixture
def session(client: TestClient) -> Iterator[Session]:
    with Session(db_module.engine) as db_session:
        yield db_session


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def signup_login(
    client: TestClient,
    *,
    email: str | None = None,
    location: tuple[float, float] | None = None,
) -> tuple[str, int]:
    """Register a user, optionally place them, and return (token, user id)."""
    email = email or f"user-{uuid4().hex[:10]}@example.com"
    response = client.post(
        "/api/v1/auth/signup",
        json={"email": email, "password": PASSWORD, "name": email.split("@")[0]},
    )
    assert response.status_code == 200, response.text
    response = client.post(
        "/api/v1/auth/login",
        json={"email": email, "password": PASSWORD},
    )
    assert response.status_code == 200, response.text
    token = cast(str, response.json()["access_token"])

    if location is not None:
        response = client.put(
            "/api/v1/auth/update-location",
            headers=auth_headers(token),
            json={"location": {"coordinates": list(location)}},
        )
        assert response.status_code == 200, response.text

    response = client.get("/api/v1/auth/me", headers=auth_headers(token))
    assert response.status_code == 200, response.text
    return token, int(response.json()["user"]["id"])


def create_pet(
    client: TestClient, token: str, *, name: str, type: str = "dog", **extra: Any
) -> int:
    response = client.post(
        "/api/v1/pets",
        headers=auth_headers(token),
        json={"name": name, "type": type, **extra},
    )
    assert response.status_code == 200, response.text
    return int(response.json()["id"])


def like(
    client: TestClient, token: str, pet_id: int, target_id: int, is_liked: bool = True
) -> dict[str, Any]:
    response = client.post(
        "/api/v1/matches/like",
        headers=auth_headers(token),
        json={"pet_id": pet_id, "liked_pet_id": target_id, "is_liked": is_liked},
    )
    assert response.status_code == 200, response.text
    return cast(dict[str, Any], response.json())
