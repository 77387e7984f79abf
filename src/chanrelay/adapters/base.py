"""Platform client boundary: what the core asks of the chat platform."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Protocol

from chanrelay.events import WebhookHandle


class PlatformClient(Protocol):
    """Webhook primitives the core needs. Each raises DeliveryUnavailable on refusal."""

    async def create_webhook(self, channel_id: int, name: str) -> WebhookHandle: ...

    async def execute_webhook(self, handle: WebhookHandle, content: str, mentions: str | None) -> None: ...

    async def delete_webhook(self, handle: WebhookHandle) -> None: ...


class AdapterBase(ABC):
    """Interface for platform adapters. Start/stop plus the PlatformClient primitives."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Adapter identifier (e.g. 'discord')."""
        ...

    @abstractmethod
    async def create_webhook(self, channel_id: int, name: str) -> WebhookHandle: ...

    @abstractmethod
    async def execute_webhook(self, handle: WebhookHandle, content: str, mentions: str | None) -> None: ...

    @abstractmethod
    async def delete_webhook(self, handle: WebhookHandle) -> None: ...

    @abstractmethod
    async def start(self) -> None:
        """Start the adapter (connect, register handlers)."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Stop the adapter (disconnect, cleanup)."""
        ...
