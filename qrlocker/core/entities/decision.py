from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Grant:
    locker_number: int


@dataclass(frozen=True, slots=True)
class Deny:
    reason: str


Decision = Grant | Deny
