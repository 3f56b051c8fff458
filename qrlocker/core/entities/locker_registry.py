from __future__ import annotations

from dataclasses import dataclass

from qrlocker.core.entities.locker import LockerStatus


@dataclass(frozen=True, slots=True)
class LockerRegistry:
    """
    Validity rules for locker data coming off the bus or back from the store.

    The locker number range is closed on both ends.
    """
    min_number: int = 1
    max_number: int = 15

    def __post_init__(self) -> None:
        if self.min_number > self.max_number:
            raise ValueError(f"Empty locker range: {self.min_number}..{self.max_number}")

    def is_valid_locker_number(self, number: object) -> bool:
        if isinstance(number, bool) or not isinstance(number, int):
            return False
        return self.min_number <= number <= self.max_number

    @staticmethod
    def is_valid_status(value: object) -> bool:
        if isinstance(value, LockerStatus):
            return True
        return value in {s.value for s in LockerStatus}
