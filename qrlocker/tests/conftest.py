from __future__ import annotations

import os

# Settings are read at import time; keep tests on an in-memory store and off the broker.
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["BUS_ENABLED"] = "false"

from datetime import datetime, timezone  # noqa: E402

import pytest  # noqa: E402

from qrlocker.core.entities.locker import Locker  # noqa: E402
from qrlocker.core.entities.locker_registry import LockerRegistry  # noqa: E402
from qrlocker.tests.fakes import FakeMessageBus, FakeStoreGateway  # noqa: E402


@pytest.fixture()
def registry() -> LockerRegistry:
    return LockerRegistry(min_number=1, max_number=15)


@pytest.fixture()
def gateway() -> FakeStoreGateway:
    """
    ABC123 -> locker 5, NOLOCK has no locker, BROKEN is assigned out-of-range locker 99.
    """
    fake = FakeStoreGateway()
    fake.add_instructor("inst-1", "ABC123", locker_number=5)
    fake.add_instructor("inst-2", "NOLOCK")
    fake.add_instructor("inst-3", "BROKEN", locker_number=99)
    fake.add_instructor("inst-4", "DEF456", locker_number=3)
    fake.lockers[1] = Locker(locker_number=1, updated_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
    return fake


@pytest.fixture()
def bus() -> FakeMessageBus:
    return FakeMessageBus()
