from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from qrlocker.core.entities.locker import Locker, LockerStatus
from qrlocker.core.entities.locker_registry import LockerRegistry
from qrlocker.core.repositories.store_gateway import StoreGateway


class NotFoundError(Exception):
    """Raise to map to HTTP 404."""


class ValidationError(Exception):
    """Raise to map to HTTP 422 (validation error)."""


@dataclass(frozen=True, slots=True)
class LockerStatusDTO:
    """
    Use-case return type for GET /lockers/{locker_number}
    """
    locker_number: int
    instructor_id: str | None
    status: LockerStatus
    updated_at: datetime | None

    @classmethod
    def from_entity(cls, locker: Locker) -> LockerStatusDTO:
        return cls(
            locker_number=locker.locker_number,
            instructor_id=locker.instructor_id,
            status=locker.status,
            updated_at=locker.updated_at,
        )


class GetLockerStatusUseCase:
    def __init__(self, *, gateway: StoreGateway, registry: LockerRegistry) -> None:
        self._gateway = gateway
        self._registry = registry

    async def execute(self, *, locker_number: int) -> LockerStatusDTO:
        if not self._registry.is_valid_locker_number(locker_number):
            raise ValidationError(
                f"Locker number must be between {self._registry.min_number} and {self._registry.max_number}"
            )

        locker: Locker | None = await self._gateway.get_locker(locker_number)
        if locker is None:
            raise NotFoundError("Locker not found")

        return LockerStatusDTO.from_entity(locker)
