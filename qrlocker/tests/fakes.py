from __future__ import annotations

import asyncio
from collections import defaultdict
from datetime import datetime, timezone

from qrlocker.core.entities.authorization import (
    AuthorizationResult,
    Authorized,
    NoLockerAssigned,
    NotFound,
    UpdateResult,
)
from qrlocker.core.entities.locker import Locker, LockerStatus
from qrlocker.core.repositories.message_bus import MessageBus
from qrlocker.core.repositories.store_gateway import StoreGateway
from qrlocker.core.use_cases.process_access_event import LookupFailure, UpdateFailure


class FakeStoreGateway(StoreGateway):
    """
    In-memory store with knobs for latency and failures.

    `lookup_delays` is consumed one entry per resolve_authorization call, in call order.
    """

    def __init__(self) -> None:
        self.instructors: dict[str, tuple[str, int | None]] = {}
        self.lockers: dict[int, Locker] = {}
        self.writes: list[tuple[int, LockerStatus]] = []

        self.lookup_delays: list[float] = []
        self.write_delay: float = 0.0
        self.fail_lookups = False
        self.fail_writes = False
        self.lookup_error: Exception | None = None
        self.sequences: dict[int, int] = {}

        self._active_writes: dict[int, int] = defaultdict(int)
        self.max_concurrent_writes: dict[int, int] = defaultdict(int)

    def add_instructor(self, instructor_id: str, credential: str, *, locker_number: int | None = None) -> None:
        self.instructors[credential] = (instructor_id, locker_number)
        if locker_number is not None:
            self.lockers[locker_number] = Locker(
                locker_number=locker_number,
                instructor_id=instructor_id,
                status=LockerStatus.LOCKED,
            )

    def status_of(self, locker_number: int) -> LockerStatus:
        return self.lockers[locker_number].status

    async def resolve_authorization(self, credential: str) -> AuthorizationResult:
        if self.lookup_delays:
            await asyncio.sleep(self.lookup_delays.pop(0))
        if self.lookup_error is not None:
            raise self.lookup_error
        if self.fail_lookups:
            raise LookupFailure("store unreachable")

        entry = self.instructors.get(credential)
        if entry is None:
            return NotFound()
        instructor_id, locker_number = entry
        if locker_number is None:
            return NoLockerAssigned(instructor_id=instructor_id)
        return Authorized(
            instructor_id=instructor_id,
            locker_number=locker_number,
            current_status=self.lockers[locker_number].status.value,
        )

    async def set_locker_status(
            self, locker_number: int, status: LockerStatus, *, sequence: int | None = None
    ) -> UpdateResult:
        self._active_writes[locker_number] += 1
        self.max_concurrent_writes[locker_number] = max(
            self.max_concurrent_writes[locker_number], self._active_writes[locker_number]
        )
        try:
            if self.write_delay:
                await asyncio.sleep(self.write_delay)
            if self.fail_writes:
                raise UpdateFailure("store unreachable")

            locker = self.lockers.get(locker_number)
            if locker is None:
                return UpdateResult.NOT_FOUND
            if sequence is not None:
                if self.sequences.get(locker_number, 0) >= sequence:
                    return UpdateResult.SUPERSEDED
                self.sequences[locker_number] = sequence
            locker.status = status
            locker.updated_at = datetime.now(timezone.utc)
            self.writes.append((locker_number, status))
            return UpdateResult.UPDATED
        finally:
            self._active_writes[locker_number] -= 1

    async def get_locker(self, locker_number: int) -> Locker | None:
        if self.fail_lookups:
            raise LookupFailure("store unreachable")
        return self.lockers.get(locker_number)

    async def list_lockers(self) -> list[Locker]:
        if self.fail_lookups:
            raise LookupFailure("store unreachable")
        return [self.lockers[n] for n in sorted(self.lockers)]


class FakeMessageBus(MessageBus):
    def __init__(self) -> None:
        self.published: list[tuple[str, str]] = []
        self.fail = False

    def publish(self, topic: str, payload: str) -> None:
        if self.fail:
            raise ConnectionError("broker down")
        self.published.append((topic, payload))
