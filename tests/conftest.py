from __future__ import annotations

import pytest

from expatvault.models import User
from expatvault.vault.clock import fixed_clock
from tests.stubs import NOW, InMemoryReminderRepository


@pytest.fixture
def clock():
    return fixed_clock(NOW)


@pytest.fixture
def user() -> User:
    return User(id="user-1", email="anna@example.com")


@pytest.fixture
def reminder_repository() -> InMemoryReminderRepository:
    return InMemoryReminderRepository()
