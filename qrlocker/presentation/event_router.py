from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from qrlocker.core.entities.event import InboundEvent, LockEvent, OutboundChannel, ScanEvent
from qrlocker.core.repositories.message_bus import MessageBus
from qrlocker.core.use_cases.process_access_event import AccessControlProcessor, DecodeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Topics:
    scan: str = "locker/scan"
    lock: str = "locker/lock"
    unlock: str = "locker/unlock"
    denied: str = "locker/denied"

    @property
    def inbound(self) -> tuple[str, str]:
        return self.scan, self.lock


class EventRouter:
    """
    Bus-facing edge: decodes raw payloads, runs each one through the processor as its own task
    and publishes whatever outbound event the processor returns.
    """

    def __init__(self, *, processor: AccessControlProcessor, bus: MessageBus, topics: Topics) -> None:
        self._processor = processor
        self._bus = bus
        self._topics = topics
        self._in_flight: set[asyncio.Task] = set()

    @property
    def topics(self) -> Topics:
        return self._topics

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def decode(self, topic: str, raw: bytes | str) -> InboundEvent:
        if isinstance(raw, bytes):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError as e:
                raise DecodeError(f"payload on {topic!r} is not valid UTF-8") from e
        text = raw.strip()

        if topic == self._topics.scan:
            if not text:
                raise DecodeError("empty credential")
            return ScanEvent(credential=text)

        if topic == self._topics.lock:
            # int() also accepts "+5" and "1_0"; only plain base-10 digits are locker numbers
            if not text.isascii() or not text.lstrip("-").isdigit():
                raise DecodeError(f"lock payload {text!r} is not a base-10 integer")
            return LockEvent(locker_number=int(text))

        raise DecodeError(f"no handler for topic {topic!r}")

    def dispatch(self, topic: str, raw: bytes | str) -> asyncio.Task:
        """Schedule one inbound message. Must be called on the event loop thread."""
        task = asyncio.get_running_loop().create_task(self.handle(topic, raw))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return task

    async def handle(self, topic: str, raw: bytes | str) -> None:
        try:
            event = self.decode(topic, raw)
        except DecodeError as e:
            logger.warning(f"Dropped malformed message on {topic}: {e}")
            return

        if isinstance(event, ScanEvent):
            logger.info(f"📥 QR Code received: {event.credential}")

        try:
            result = await self._processor.handle(event)
        except Exception:
            # nothing is published: an unexplained failure never unlocks
            logger.exception(f"❌ Unhandled error while processing message on {topic}")
            return

        if result.outbound is None:
            return

        target = self._topics.unlock if result.outbound.channel is OutboundChannel.UNLOCK else self._topics.denied
        try:
            self._bus.publish(target, result.outbound.payload)
        except Exception as e:
            logger.error(f"❌ Failed to publish to {target}: {e}")

    async def drain(self, timeout: float) -> None:
        """Give in-flight messages until `timeout` to finish; cancel and log the rest."""
        if not self._in_flight:
            return

        done, pending = await asyncio.wait(set(self._in_flight), timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            logger.warning(f"Abandoned {len(pending)} in-flight message(s) at shutdown")
        logger.info(f"Drained {len(done)} in-flight message(s)")
