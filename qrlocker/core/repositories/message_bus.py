from __future__ import annotations

from abc import ABC, abstractmethod


class MessageBus(ABC):
    @abstractmethod
    def publish(self, topic: str, payload: str) -> None:
        """Fire-and-forget publish. Raises on transport errors."""
        raise NotImplementedError
