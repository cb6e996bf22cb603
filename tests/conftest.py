"""Общие фикстуры: in-memory хранилище, сервисы и фабрика пользователей."""
import itertools
import os
from datetime import date

os.environ.setdefault("BOT_TOKEN", "123456:test-token")
os.environ.setdefault("STORAGE_BACKEND", "memory")

import pytest

from db.memory import InMemoryStore
from models.user import User
from services.matching_service import MatchingService
from services.profile_service import ProfileService
from services.recommendations import RecommendationPipeline

TODAY = date(2024, 6, 15)


def born(age: int, today: date = TODAY) -> date:
    """Дата рождения, при которой сегодня исполняется ровно age лет."""
    return today.replace(year=today.year - age)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def matching_service(store):
    return MatchingService(store, pipeline=RecommendationPipeline(today=lambda: TODAY))


@pytest.fixture
def profile_service(store):
    return ProfileService(store)


@pytest.fixture
def make_user(store):
    counter = itertools.count(1)

    async def _make(**fields) -> User:
        n = next(counter)
        fields.setdefault("name", f"User {n}")
        fields.setdefault("imaginary_name", f"user{n}")
        user = User(id=f"u{n:03d}", token=f"token-{n:03d}", **fields)
        async with store.transaction() as tx:
            await tx.insert_user(user)
        return user

    return _make
