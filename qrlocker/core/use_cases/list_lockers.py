from __future__ import annotations

from qrlocker.core.repositories.store_gateway import StoreGateway
from qrlocker.core.use_cases.get_locker_status import LockerStatusDTO


class ListLockersUseCase:
    def __init__(self, *, gateway: StoreGateway) -> None:
        self._gateway = gateway

    async def execute(self) -> list[LockerStatusDTO]:
        lockers = await self._gateway.list_lockers()
        return [LockerStatusDTO.from_entity(locker) for locker in lockers]
