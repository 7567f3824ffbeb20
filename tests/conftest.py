import os
import time

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-with-enough-bytes-for-hs256")
os.environ.setdefault("WEBHOOK_SIGNING_SECRET", "whsec_dGVzdC13ZWJob29rLXNlY3JldA==")
os.environ.setdefault("KEY_SERVICE_API_ID", "api_test")
os.environ.setdefault("BILLING_WEBHOOK_SECRET", "whsec_billing_test")

import jwt
import pytest
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.config import JWT_SECRET
from app.dependencies import get_engine, get_redis
from app.main import app


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def redis_client():
    client = AsyncMock()
    client.xadd.return_value = "1700000000000-0"
    return client


@pytest.fixture
def client(engine, redis_client):
    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_redis] = lambda: redis_client
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_token(sub="u1", key_id="k1", secret=JWT_SECRET, expires_in=300):
    claims = {"sub": sub, "exp": int(time.time()) + expires_in}
    if key_id:
        claims["metadata"] = {"key_id": key_id}
    return jwt.encode(claims, secret, algorithm="HS256")


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
def token_factory():
    return make_token
