from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class Status(Enum):
    LOCKED = 'LOCKED'
    UNLOCKED = 'UNLOCKED'


class LockerStatus(BaseModel):
    locker_number: int
    instructor_id: str | None
    status: Status
    updated_at: datetime | None
