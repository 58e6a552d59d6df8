# tests/conftest.py
import os
import sys

# Ensure repository root is on PYTHONPATH for tests
repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if repo_root not in sys.path:
    sys.path.insert(0, repo_root)

# Placeholder settings so app.core.config loads without a .env file
os.environ.setdefault("POSTGRES_HOST", "localhost")
os.environ.setdefault("POSTGRES_DB_PORT", "5432")
os.environ.setdefault("POSTGRES_DB_NAME", "studygen_test")
os.environ.setdefault("POSTGRES_DB_USER", "studygen")
os.environ.setdefault("POSTGRES_DB_PASSWORD", "test-password")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("OPENAI_API_KEY", "test-key")
os.environ.setdefault("MODE", "test")

from datetime import datetime, timedelta, timezone

import pytest

from app.modules.generation.config import GenerationConfig
from app.modules.generation.models import SubscriptionRecord

from fakes import ADMIN_EMAIL, FakeOracle, FakeUser, InMemoryEntitlementStore


@pytest.fixture
def config() -> GenerationConfig:
    return GenerationConfig(admin_emails=frozenset({ADMIN_EMAIL}), model="fake-model")


@pytest.fixture
def store() -> InMemoryEntitlementStore:
    return InMemoryEntitlementStore()


@pytest.fixture
def oracle() -> FakeOracle:
    return FakeOracle()


@pytest.fixture
def admin() -> FakeUser:
    return FakeUser(id=1, email="Admin@Example.com")


@pytest.fixture
def subscriber(store) -> FakeUser:
    user = FakeUser(id=2, email="paid@example.com")
    store.subscriptions[user.id] = SubscriptionRecord(
        status="active",
        period_end=datetime.now(timezone.utc) + timedelta(days=20),
    )
    return user


@pytest.fixture
def free_user() -> FakeUser:
    return FakeUser(id=3, email="free@example.com")
