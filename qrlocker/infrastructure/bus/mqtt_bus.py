from __future__ import annotations

import asyncio
import logging
from typing import Callable

import paho.mqtt.client as mqtt

from qrlocker.core.repositories.message_bus import MessageBus

logger = logging.getLogger(__name__)

MessageHandler = Callable[[str, bytes], object]


class MqttMessageBus(MessageBus):
    """
    paho-mqtt transport.

    paho runs its network loop on its own thread; inbound messages are handed to `on_message`
    on the asyncio loop passed to `start()`. Subscriptions are (re)issued on every connect so a
    broker reconnect restores them.
    """

    def __init__(
            self,
            *,
            host: str,
            port: int,
            client_id: str,
            username: str | None = None,
            password: str | None = None,
    ) -> None:
        self._host = host
        self._port = port
        self._topics: tuple[str, ...] = ()
        self._on_message: MessageHandler | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

        self._client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id)
        if username:
            self._client.username_pw_set(username, password)
        self._client.on_connect = self._handle_connect
        self._client.on_disconnect = self._handle_disconnect
        self._client.on_subscribe = self._handle_subscribe
        self._client.on_message = self._handle_message

    def start(self, *, topics: tuple[str, ...], on_message: MessageHandler, loop: asyncio.AbstractEventLoop) -> None:
        self._topics = topics
        self._on_message = on_message
        self._loop = loop
        self._client.connect_async(self._host, self._port)
        self._client.loop_start()

    def stop_intake(self) -> None:
        """Stop taking new messages while keeping the connection up for pending publishes."""
        self._on_message = None
        if self._topics:
            self._client.unsubscribe(list(self._topics))

    def stop(self) -> None:
        self._client.disconnect()
        self._client.loop_stop()
        logger.info("Disconnected from MQTT broker")

    def publish(self, topic: str, payload: str) -> None:
        info = self._client.publish(topic, payload)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise ConnectionError(f"publish to {topic!r} failed: {mqtt.error_string(info.rc)}")

    # -----------------------------
    # paho callbacks (network thread)
    # -----------------------------
    def _handle_connect(self, client, userdata, flags, reason_code, properties) -> None:
        if reason_code.is_failure:
            logger.error(f"❌ MQTT connection refused: {reason_code}")
            return

        logger.info("✅ Connected to MQTT broker")
        for topic in self._topics:
            client.subscribe(topic)
            logger.info(f"📡 Listening on topic: {topic}")

    def _handle_disconnect(self, client, userdata, flags, reason_code, properties) -> None:
        if reason_code.is_failure:
            logger.warning(f"MQTT connection lost ({reason_code}); paho will reconnect")

    def _handle_subscribe(self, client, userdata, mid, reason_code_list, properties) -> None:
        for reason_code in reason_code_list:
            if reason_code.is_failure:
                logger.error(f"❌ Failed to subscribe: {reason_code}")

    def _handle_message(self, client, userdata, message: mqtt.MQTTMessage) -> None:
        if self._loop is None or self._on_message is None:
            return
        self._loop.call_soon_threadsafe(self._on_message, message.topic, message.payload)
