from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class LockerStatus(str, Enum):
    LOCKED = "LOCKED"
    UNLOCKED = "UNLOCKED"


@dataclass(slots=True)
class Locker:
    locker_number: int
    status: LockerStatus = LockerStatus.LOCKED
    instructor_id: str | None = None
    updated_at: datetime | None = None