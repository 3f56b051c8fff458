from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, TypeVar

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from qrlocker.core.entities.authorization import (
    AuthorizationResult,
    Authorized,
    NoLockerAssigned,
    NotFound,
    UpdateResult,
)
from qrlocker.core.entities.locker import Locker, LockerStatus
from qrlocker.core.repositories.store_gateway import StoreGateway
from qrlocker.core.use_cases.process_access_event import DataIntegrityError, LookupFailure, UpdateFailure
from qrlocker.infrastructure.database import connection_guard
from qrlocker.infrastructure.models.models import InstructorModel, LockerModel

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SqlAlchemyStoreGateway(StoreGateway):
    """
    SQLAlchemy implementation of the store gateway.

    Each call opens a short-lived Session from the shared sessionmaker on a worker thread; closing
    the Session returns its connection to the engine's pool. The engine itself is owned by the
    application and only disposed at shutdown.

    A call that times out keeps running on its thread. Status writes carry the arrival sequence
    and only apply over an older one, so such a straggler can never undo a newer write.
    """

    def __init__(self, session_factory: sessionmaker, *, timeout: float = 5.0) -> None:
        self._session_factory = session_factory
        self._timeout = timeout
        self._guard = connection_guard(getattr(session_factory, "kw", {}).get("bind"))

    async def resolve_authorization(self, credential: str) -> AuthorizationResult:
        try:
            return await self._run(self._resolve_authorization, credential)
        except (SQLAlchemyError, asyncio.TimeoutError) as e:
            raise LookupFailure(f"authorization lookup failed: {e!r}") from e

    async def set_locker_status(
            self, locker_number: int, status: LockerStatus, *, sequence: int | None = None
    ) -> UpdateResult:
        try:
            return await self._run(self._set_locker_status, locker_number, status, sequence)
        except (SQLAlchemyError, asyncio.TimeoutError) as e:
            raise UpdateFailure(f"status update for locker {locker_number} failed: {e!r}") from e

    async def get_locker(self, locker_number: int) -> Locker | None:
        try:
            return await self._run(self._get_locker, locker_number)
        except (SQLAlchemyError, asyncio.TimeoutError) as e:
            raise LookupFailure(f"locker {locker_number} lookup failed: {e!r}") from e

    async def list_lockers(self) -> list[Locker]:
        try:
            return await self._run(self._list_lockers)
        except (SQLAlchemyError, asyncio.TimeoutError) as e:
            raise LookupFailure(f"locker listing failed: {e!r}") from e

    async def _run(self, fn: Callable[..., T], *args) -> T:
        return await asyncio.wait_for(asyncio.to_thread(self._guarded, fn, *args), timeout=self._timeout)

    def _guarded(self, fn: Callable[..., T], *args) -> T:
        with self._guard:
            return fn(*args)

    # -----------------------------
    # Blocking store calls (worker thread)
    # -----------------------------
    def _resolve_authorization(self, credential: str) -> AuthorizationResult:
        stmt = (
            select(InstructorModel.instructor_id, LockerModel.locker_number, LockerModel.status)
            .outerjoin(LockerModel, LockerModel.instructor_id == InstructorModel.instructor_id)
            .where(InstructorModel.credential == credential)
            .limit(1)
        )
        with self._session_factory() as db:
            row = db.execute(stmt).first()

        if row is None:
            return NotFound()

        instructor_id, locker_number, status = row
        if locker_number is None:
            return NoLockerAssigned(instructor_id=instructor_id)
        return Authorized(instructor_id=instructor_id, locker_number=locker_number, current_status=status)

    def _set_locker_status(self, locker_number: int, status: LockerStatus, sequence: int | None) -> UpdateResult:
        values = {"status": status.value, "updated_at": datetime.now(timezone.utc)}
        stmt = update(LockerModel).where(LockerModel.locker_number == locker_number)
        if sequence is not None:
            stmt = stmt.where(LockerModel.applied_sequence < sequence)
            values["applied_sequence"] = sequence

        with self._session_factory.begin() as db:
            result = db.execute(stmt.values(**values))
            if result.rowcount:
                return UpdateResult.UPDATED
            exists = db.scalar(select(LockerModel.locker_number).where(LockerModel.locker_number == locker_number))

        if exists is None:
            return UpdateResult.NOT_FOUND
        return UpdateResult.SUPERSEDED

    def _get_locker(self, locker_number: int) -> Locker | None:
        with self._session_factory() as db:
            row = db.get(LockerModel, locker_number)
            if row is None:
                return None
            return self._to_entity(row)

    def _list_lockers(self) -> list[Locker]:
        lockers = []
        with self._session_factory() as db:
            rows = db.scalars(select(LockerModel).order_by(LockerModel.locker_number)).all()
            for row in rows:
                try:
                    lockers.append(self._to_entity(row))
                except DataIntegrityError as e:
                    logger.error(f"⚠️ Skipped locker row: {e}")
        return lockers

    @staticmethod
    def _to_entity(row: LockerModel) -> Locker:
        try:
            status = LockerStatus(row.status)
        except ValueError as e:
            raise DataIntegrityError(f"locker {row.locker_number} has invalid status {row.status!r}") from e
        return Locker(
            locker_number=row.locker_number,
            instructor_id=row.instructor_id,
            status=status,
            updated_at=row.updated_at,
        )
