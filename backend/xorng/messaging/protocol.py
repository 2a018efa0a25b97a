"""Abstract connection protocol for JSON text communication."""

from abc import ABC, abstractmethod
from typing import Any

from xorng.messaging.encoder import encode


class ConnectionProtocol(ABC):
    """
    Abstract interface for a client connection.

    Lets the router and broadcaster be tested without real WebSocket
    connections.
    """

    @property
    @abstractmethod
    def connection_id(self) -> str:
        """Unique identifier for this connection, also sent as clientId."""
        ...

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Whether the peer can still receive messages."""
        ...

    @abstractmethod
    async def send_text(self, data: str) -> None: ...

    @abstractmethod
    async def receive_text(self) -> str: ...

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None: ...

    async def send_message(self, data: dict[str, Any]) -> None:
        """
        Send a message to the client as a JSON text frame.
        """
        await self.send_text(encode(data))
