"""Event and value types passed between the platform adapter and the core."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class WebhookHandle:
    """Platform-issued delivery handle bound to one channel."""

    id: int
    token: str
    channel_id: int


@dataclass
class MessageIn:
    """Inbound message event."""

    channel_id: int
    author_id: int
    content: str
    message_id: int
    author_is_bot: bool = False
    webhook_id: int | None = None
    attachment_urls: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Route:
    """One relay target for a (source, owner) pair."""

    target_channel_id: int
    webhook: WebhookHandle | None
    suppressed: bool = False


@dataclass(frozen=True)
class Delivery:
    """A relay that was handed to the platform."""

    source_channel_id: int
    target_channel_id: int
    webhook_id: int
    content: str
    mentions: str | None = None


def message_in(
    channel_id: int,
    author_id: int,
    content: str,
    message_id: int,
    *,
    author_is_bot: bool = False,
    webhook_id: int | None = None,
    attachment_urls: list[str] | None = None,
) -> MessageIn:
    return MessageIn(
        channel_id=channel_id,
        author_id=author_id,
        content=content,
        message_id=message_id,
        author_is_bot=author_is_bot,
        webhook_id=webhook_id,
        attachment_urls=attachment_urls or [],
    )
