from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from budget_api.app import app
from budget_api.auth import AuthService
from budget_api.core.store import MemoryStore
from budget_api.deps import get_store
from budget_api.repositories import ActivityLog, BudgetRepository, TransactionRepository, UserRepository


class FakeClock:
    def __init__(self, start=datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()

@pytest.fixture
def store():
    return MemoryStore()

@pytest.fixture
def users(store, clock):
    return UserRepository(store, now=clock)

@pytest.fixture
def activity(store, clock):
    return ActivityLog(store, now=clock)

@pytest.fixture
def budgets(store, users, activity, clock):
    return BudgetRepository(store, users=users, activity=activity, now=clock)

@pytest.fixture
def transactions(store, activity, clock):
    return TransactionRepository(store, activity=activity, now=clock)

@pytest.fixture
def auth(store, users, clock):
    return AuthService(store, users=users, secret_key="test-secret", admin_emails=["boss@mail.com"], now=clock)

@pytest.fixture
def make_user(users):
    def _make(uid, email=None, role="user"):
        return users.create_profile(uid, email or f"{uid}@mail.com", uid.title(), role=role)
    return _make

@pytest.fixture
def budget_data():
    def _data(**overrides):
        data = {"name": "Enero", "month": 0, "year": 2024}
        data.update(overrides)
        return data
    return _data

@pytest.fixture
def tx_data():
    def _data(**overrides):
        data = {
            "type": "expense",
            "name": "Renta",
            "category": "Vivienda",
            "amount": 500,
            "date": "2024-01-10",
        }
        data.update(overrides)
        return data
    return _data

@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
