from __future__ import annotations

from abc import ABC, abstractmethod

from .message import Message


class BaseMessenger(ABC):
    @abstractmethod
    async def send(self, chat_id: int, message: Message) -> bool:
        """Send message to a chat. Returns True if successful."""
        raise NotImplementedError
