from __future__ import annotations

from abc import ABC, abstractmethod

from qrlocker.core.entities.authorization import AuthorizationResult, UpdateResult
from qrlocker.core.entities.locker import Locker, LockerStatus


class StoreGateway(ABC):
    """
    Access to the instructor/locker store.

    Implementations share one connection pool across concurrent callers and must never close it
    as a side effect of a single call.
    """

    @abstractmethod
    async def resolve_authorization(self, credential: str) -> AuthorizationResult:
        """Instructor by credential joined to its locker. Raises LookupFailure on store errors."""
        raise NotImplementedError

    @abstractmethod
    async def set_locker_status(
            self, locker_number: int, status: LockerStatus, *, sequence: int | None = None
    ) -> UpdateResult:
        """
        Single atomic update of status + timestamp. Raises UpdateFailure on store errors.

        With a sequence, the row only changes if its last applied sequence is lower, so a write
        that lands late never overwrites a newer one (SUPERSEDED).
        """
        raise NotImplementedError

    @abstractmethod
    async def get_locker(self, locker_number: int) -> Locker | None:
        raise NotImplementedError

    @abstractmethod
    async def list_lockers(self) -> list[Locker]:
        raise NotImplementedError
