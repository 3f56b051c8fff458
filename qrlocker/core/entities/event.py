from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class ScanEvent:
    credential: str
    received_at: datetime = field(default_factory=_now)


@dataclass(frozen=True, slots=True)
class LockEvent:
    locker_number: int
    received_at: datetime = field(default_factory=_now)


InboundEvent = ScanEvent | LockEvent


class OutboundChannel(str, Enum):
    UNLOCK = "unlock"
    DENIED = "denied"


@dataclass(frozen=True, slots=True)
class OutboundEvent:
    channel: OutboundChannel
    payload: Any
