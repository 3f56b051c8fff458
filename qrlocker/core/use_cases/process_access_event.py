from __future__ import annotations

import asyncio
import itertools
import json
import logging
import time
from dataclasses import dataclass

from qrlocker.core.entities.authorization import (
    AuthorizationResult,
    Authorized,
    NoLockerAssigned,
    NotFound,
    UpdateResult,
)
from qrlocker.core.entities.decision import Decision, Deny, Grant
from qrlocker.core.entities.event import LockEvent, OutboundChannel, OutboundEvent, ScanEvent
from qrlocker.core.entities.locker import LockerStatus
from qrlocker.core.entities.locker_registry import LockerRegistry
from qrlocker.core.repositories.store_gateway import StoreGateway

logger = logging.getLogger(__name__)

DENY_NOT_AUTHORIZED = "Access denied. QR code not authorized."
DENY_NO_LOCKER = "Access denied. No locker assigned to this QR code."
DENY_INVALID_ASSIGNMENT = "Access denied. Locker assignment is invalid."
DENY_LOOKUP_FAILED = "Access denied. Unable to verify QR code."
DENY_SUPERSEDED = "Access denied. Locker state changed, please scan again."


class AccessControlError(Exception):
    """Base for failures handled inside the access control flow."""


class DecodeError(AccessControlError):
    """Malformed inbound payload: dropped, never published."""


class LookupFailure(AccessControlError):
    """Store unreachable or query error while resolving authorization."""


class UpdateFailure(AccessControlError):
    """Store unreachable or write error while changing a locker status."""


class DataIntegrityError(AccessControlError):
    """Store returned locker data that breaks the registry rules."""


@dataclass(frozen=True, slots=True)
class ProcessResult:
    decision: Decision | None
    outbound: OutboundEvent | None = None


def decide(result: AuthorizationResult, registry: LockerRegistry) -> Decision:
    """
    Total mapping from an authorization result to a decision. Only a valid Authorized grants.
    """
    if isinstance(result, NotFound):
        return Deny(DENY_NOT_AUTHORIZED)
    if isinstance(result, NoLockerAssigned):
        return Deny(DENY_NO_LOCKER)
    if isinstance(result, Authorized):
        if not registry.is_valid_locker_number(result.locker_number):
            return Deny(DENY_INVALID_ASSIGNMENT)
        if not registry.is_valid_status(result.current_status):
            return Deny(DENY_INVALID_ASSIGNMENT)
        return Grant(result.locker_number)
    return Deny(DENY_NOT_AUTHORIZED)


class AccessControlProcessor:
    """
    Applies scan and lock events to locker state.

    Every event takes an arrival ticket before its first await. Status writes for one locker
    number run inside that locker's lock, and a write holding an older ticket than the last one
    applied to the locker is stale and skipped, so arrival order wins per locker. The ticket also
    goes to the store as the write sequence, so a write that outlives its timeout cannot land
    over a newer one.

    Tickets start from the wall clock in nanoseconds so they keep growing across restarts.
    """

    def __init__(
            self,
            *,
            gateway: StoreGateway,
            registry: LockerRegistry,
            publish_unlock_on_update_failure: bool = True,
    ) -> None:
        self._gateway = gateway
        self._registry = registry
        self._publish_unlock_on_update_failure = publish_unlock_on_update_failure

        self._tickets = itertools.count(time.time_ns())
        self._locker_locks: dict[int, asyncio.Lock] = {}
        # locker number -> (ticket, status) of the last write attempted for it
        self._last_applied: dict[int, tuple[int, LockerStatus]] = {}

    async def handle(self, event: ScanEvent | LockEvent) -> ProcessResult:
        if isinstance(event, ScanEvent):
            return await self.handle_scan(event)
        if isinstance(event, LockEvent):
            return await self.handle_lock(event)
        raise TypeError(f"Unsupported event: {event!r}")

    async def handle_scan(self, event: ScanEvent) -> ProcessResult:
        ticket = next(self._tickets)

        try:
            result = await self._gateway.resolve_authorization(event.credential)
        except LookupFailure as e:
            logger.error(f"Authorization lookup failed for scanned credential: {e}")
            return self._deny(DENY_LOOKUP_FAILED)

        decision = decide(result, self._registry)
        if isinstance(decision, Deny):
            if isinstance(result, Authorized):
                self._report_integrity(result)
            else:
                logger.info(f"🚫 {decision.reason}")
            return self._deny(decision.reason)

        number = decision.locker_number
        async with self._lock_for(number):
            later = self._later_write(number, ticket)
            if later is LockerStatus.LOCKED:
                logger.warning(f"Grant for locker {number} superseded by a later lock; failing closed")
                return self._deny(DENY_SUPERSEDED)
            if later is None:
                self._last_applied[number] = (ticket, LockerStatus.UNLOCKED)
                outcome = await self._write_status(number, LockerStatus.UNLOCKED, ticket)
            else:
                # a later scan already unlocked it (redelivery or a double scan)
                logger.info(f"Locker {number} already unlocked by a later scan")
                outcome = UpdateResult.UPDATED

        if outcome is UpdateResult.SUPERSEDED:
            return self._deny(DENY_SUPERSEDED)

        if outcome is not UpdateResult.UPDATED and not self._publish_unlock_on_update_failure:
            logger.warning(f"Unlock for locker {number} withheld until its status can be recorded")
            return ProcessResult(decision=decision)

        logger.info(f"✅ Access granted. Sent unlock for locker {number}")
        return ProcessResult(
            decision=decision,
            outbound=OutboundEvent(OutboundChannel.UNLOCK, json.dumps({"locker": number})),
        )

    async def handle_lock(self, event: LockEvent) -> ProcessResult:
        ticket = next(self._tickets)
        number = event.locker_number

        if not self._registry.is_valid_locker_number(number):
            logger.warning(f"Rejected lock event for out-of-range locker {number!r}")
            return ProcessResult(decision=None)

        async with self._lock_for(number):
            if self._later_write(number, ticket) is not None:
                logger.info(f"Lock event for locker {number} superseded by a later event")
                return ProcessResult(decision=None)
            self._last_applied[number] = (ticket, LockerStatus.LOCKED)
            if await self._write_status(number, LockerStatus.LOCKED, ticket) is UpdateResult.UPDATED:
                logger.info(f"🔒 Locker {number} marked LOCKED")

        return ProcessResult(decision=None)

    # -----------------------------
    # Internal helpers
    # -----------------------------
    def _lock_for(self, locker_number: int) -> asyncio.Lock:
        lock = self._locker_locks.get(locker_number)
        if lock is None:
            lock = self._locker_locks[locker_number] = asyncio.Lock()
        return lock

    def _later_write(self, locker_number: int, ticket: int) -> LockerStatus | None:
        """Status written by an event that arrived after `ticket`, if any."""
        last = self._last_applied.get(locker_number)
        if last is None or last[0] < ticket:
            return None
        return last[1]

    async def _write_status(self, locker_number: int, status: LockerStatus, ticket: int) -> UpdateResult | None:
        """None when the store write failed."""
        try:
            outcome = await self._gateway.set_locker_status(locker_number, status, sequence=ticket)
        except UpdateFailure as e:
            logger.warning(
                f"Reconciliation needed: locker {locker_number} should be {status.value} "
                f"but the store write failed: {e}"
            )
            return None

        if outcome is UpdateResult.NOT_FOUND:
            logger.warning(f"Reconciliation needed: no store row for locker {locker_number}")
        elif outcome is UpdateResult.SUPERSEDED:
            logger.info(f"{status.value} for locker {locker_number} skipped; the store holds a newer write")
        return outcome

    def _report_integrity(self, result: Authorized) -> None:
        logger.error(
            f"⚠️ Invalid locker entry in store, operator attention needed: instructor "
            f"{result.instructor_id!r} is assigned locker {result.locker_number!r} with status "
            f"{result.current_status!r}, outside the allowed values"
        )

    @staticmethod
    def _deny(reason: str) -> ProcessResult:
        return ProcessResult(decision=Deny(reason), outbound=OutboundEvent(OutboundChannel.DENIED, reason))
