from __future__ import annotations

import pytest

from qrlocker.core.entities.locker import LockerStatus
from qrlocker.core.entities.locker_registry import LockerRegistry


@pytest.mark.parametrize("number, valid", [(1, True), (15, True), (8, True), (0, False), (16, False), (-3, False)])
def test_default_range_is_boundary_inclusive(registry: LockerRegistry, number: int, valid: bool) -> None:
    assert registry.is_valid_locker_number(number) is valid


@pytest.mark.parametrize("value", [True, False, "5", 5.0, None])
def test_non_integers_are_never_locker_numbers(registry: LockerRegistry, value) -> None:
    assert registry.is_valid_locker_number(value) is False


def test_configured_range() -> None:
    registry = LockerRegistry(min_number=100, max_number=120)

    assert registry.is_valid_locker_number(100)
    assert registry.is_valid_locker_number(120)
    assert not registry.is_valid_locker_number(5)


def test_empty_range_is_rejected() -> None:
    with pytest.raises(ValueError):
        LockerRegistry(min_number=10, max_number=1)


@pytest.mark.parametrize("value, valid", [("LOCKED", True), ("UNLOCKED", True), (LockerStatus.LOCKED, True),
                                          ("locked", False), ("OPEN", False), (None, False)])
def test_allowed_status_values(value, valid: bool) -> None:
    assert LockerRegistry.is_valid_status(value) is valid
