from __future__ import annotations

from sqlalchemy.orm import sessionmaker

from qrlocker.core.entities.locker_registry import LockerRegistry
from qrlocker.core.repositories.message_bus import MessageBus
from qrlocker.core.repositories.store_gateway import StoreGateway
from qrlocker.core.use_cases.get_locker_status import GetLockerStatusUseCase, LockerStatusDTO
from qrlocker.core.use_cases.list_lockers import ListLockersUseCase
from qrlocker.core.use_cases.process_access_event import AccessControlProcessor
from qrlocker.infrastructure.config import Settings
from qrlocker.infrastructure.repositories.store_gateway_impl import SqlAlchemyStoreGateway
from qrlocker.presentation.event_router import EventRouter, Topics
from qrlocker.schemas.models import LockerStatus


def _settings() -> Settings:
    from qrlocker.infrastructure.config import settings
    return settings


def _to_schema(dto: LockerStatusDTO) -> LockerStatus:
    return LockerStatus(
        locker_number=dto.locker_number,
        instructor_id=dto.instructor_id,
        status=dto.status.value,
        updated_at=dto.updated_at,
    )


def build_registry(settings: Settings | None = None) -> LockerRegistry:
    settings = settings or _settings()
    return LockerRegistry(min_number=settings.locker_number_min, max_number=settings.locker_number_max)


def build_gateway(session_factory: sessionmaker, settings: Settings | None = None) -> StoreGateway:
    settings = settings or _settings()
    return SqlAlchemyStoreGateway(session_factory, timeout=settings.store_timeout_seconds)


def build_event_router(*, gateway: StoreGateway, bus: MessageBus, settings: Settings | None = None) -> EventRouter:
    """
    Wire the processor and router for one process. The processor keeps the per-locker locks, so
    there must be exactly one per running service.
    """
    settings = settings or _settings()
    processor = AccessControlProcessor(
        gateway=gateway,
        registry=build_registry(settings),
        publish_unlock_on_update_failure=settings.publish_unlock_on_update_failure,
    )
    topics = Topics(
        scan=settings.scan_topic,
        lock=settings.lock_topic,
        unlock=settings.unlock_topic,
        denied=settings.denied_topic,
    )
    return EventRouter(processor=processor, bus=bus, topics=topics)


async def get_locker_status_service(locker_number: int, gateway: StoreGateway) -> LockerStatus:
    use_case = GetLockerStatusUseCase(gateway=gateway, registry=build_registry())
    dto = await use_case.execute(locker_number=locker_number)
    return _to_schema(dto)


async def list_lockers_service(gateway: StoreGateway) -> list[LockerStatus]:
    use_case = ListLockersUseCase(gateway=gateway)
    return [_to_schema(dto) for dto in await use_case.execute()]
