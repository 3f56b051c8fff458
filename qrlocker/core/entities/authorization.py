from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True, slots=True)
class NotFound:
    """No instructor holds the scanned credential."""


@dataclass(frozen=True, slots=True)
class NoLockerAssigned:
    instructor_id: str


@dataclass(frozen=True, slots=True)
class Authorized:
    instructor_id: str
    locker_number: int
    current_status: str


AuthorizationResult = NotFound | NoLockerAssigned | Authorized


class UpdateResult(str, Enum):
    UPDATED = "UPDATED"
    NOT_FOUND = "NOT_FOUND"
    SUPERSEDED = "SUPERSEDED"
