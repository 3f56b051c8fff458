import asyncio
import logging

import yaml
from fastapi import FastAPI
from qrlocker.infrastructure.bus.mqtt_bus import MqttMessageBus
from qrlocker.infrastructure.config import settings
from qrlocker.infrastructure.database import Base, engine, SessionLocal
from qrlocker.infrastructure.models import models  # noqa: F401  (registers tables on Base)
from qrlocker.presentation.routers import router
from qrlocker.services.qrlocker_service import build_event_router, build_gateway

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)

app = FastAPI()


# Use the contractual schema
def custom_openapi():
    with open(settings.openapi_path) as f:
        return yaml.safe_load(f)


@app.on_event("startup")
async def _start_bus_listener() -> None:
    """
    Connect to the broker and route scan/lock messages through one processor for the lifetime of
    the process. The store engine was created at import and is shared by every message.
    """
    if not settings.bus_enabled:
        logger.info("Message bus disabled; serving HTTP only")
        return

    bus = MqttMessageBus(
        host=settings.mqtt_broker_host,
        port=settings.mqtt_broker_port,
        client_id=settings.mqtt_client_id,
        username=settings.mqtt_user,
        password=settings.mqtt_pass,
    )
    event_router = build_event_router(gateway=build_gateway(SessionLocal), bus=bus)
    bus.start(
        topics=event_router.topics.inbound,
        on_message=event_router.dispatch,
        loop=asyncio.get_running_loop(),
    )
    app.state.bus = bus
    app.state.event_router = event_router


@app.on_event("shutdown")
async def _stop_bus_listener() -> None:
    bus = getattr(app.state, "bus", None)
    event_router = getattr(app.state, "event_router", None)
    if bus is not None:
        bus.stop_intake()
    if event_router is not None:
        await event_router.drain(settings.shutdown_grace_seconds)
    if bus is not None:
        bus.stop()
    engine.dispose()


app.openapi = custom_openapi
Base.metadata.create_all(bind=engine)
app.include_router(router)
