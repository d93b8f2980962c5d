"""Transport abstraction over the external protocol SDK."""

from __future__ import annotations

from abc import ABC, abstractmethod

from keeper.protocol import CredentialAck, LogOnDetails, SessionEvent


class TransportError(RuntimeError):
    """Raised when a request cannot be delivered to the SDK."""


class SessionTransport(ABC):
    """Operations the SDK exposes plus the stream of lifecycle events it raises."""

    @abstractmethod
    async def connect(self) -> None:
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        ...

    @abstractmethod
    async def log_on(self, details: LogOnDetails) -> None:
        ...

    @abstractmethod
    async def log_off(self) -> None:
        ...

    @abstractmethod
    async def send_credential_ack(self, ack: CredentialAck) -> None:
        ...

    @abstractmethod
    async def receive(self) -> SessionEvent:
        ...

    @abstractmethod
    async def close(self) -> None:
        ...
