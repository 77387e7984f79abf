"""Discord webhook utilities: create, build partials, execute with retry."""

from __future__ import annotations

import asyncio

import aiohttp
import discord
from discord import AllowedMentions, TextChannel
from discord.webhook import Webhook
from loguru import logger
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from chanrelay.core.errors import DeliveryUnavailable
from chanrelay.events import WebhookHandle

MAX_CONTENT_LEN = 2000
WEBHOOK_REASON = "chanrelay delivery"
# Overlay mentions are the point; only @everyone/@here stay muted
_ALLOWED_MENTIONS = AllowedMentions(everyone=False, roles=True, users=True)
_TRANSIENT_ERRORS = (discord.DiscordServerError, aiohttp.ClientConnectionError, asyncio.TimeoutError)


def compose_content(content: str, mentions: str | None) -> str:
    """Mentions on their own line above the relayed content, capped at Discord's limit.

    The mention line takes precedence; the relayed content is cut to fit.
    """
    prefix = f"{mentions}\n" if mentions else ""
    room = max(MAX_CONTENT_LEN - len(prefix), 0)
    if len(content) > room:
        logger.warning("Relayed content truncated from {} to {} chars", len(content), room)
        content = content[:room]
    return (prefix + content)[:MAX_CONTENT_LEN]


async def create_webhook(channel: discord.abc.GuildChannel | None, channel_id: int, name: str) -> WebhookHandle:
    """Create a webhook on a text channel. Raises DeliveryUnavailable when Discord refuses."""
    if channel is None or not isinstance(channel, TextChannel):
        raise DeliveryUnavailable(
            f"channel {channel_id} not found or not a text channel",
            code="channel_unavailable",
            details={"channel_id": channel_id},
        )
    try:
        webhook = await channel.create_webhook(name=name, reason=WEBHOOK_REASON)
    except discord.Forbidden as exc:
        raise DeliveryUnavailable(
            f"missing Manage Webhooks permission in #{channel.name}",
            code="webhook_forbidden",
            details={"channel_id": channel_id},
            original_error=exc,
        ) from exc
    except discord.HTTPException as exc:
        raise DeliveryUnavailable(
            f"could not create webhook in #{channel.name}: {exc}",
            code="webhook_create_failed",
            details={"channel_id": channel_id},
            original_error=exc,
        ) from exc
    if not webhook.token:
        raise DeliveryUnavailable(
            f"webhook {webhook.id} has no token",
            code="webhook_without_token",
            details={"channel_id": channel_id},
        )
    logger.debug("Created webhook {} '{}' in channel {}", webhook.id, name, channel_id)
    return WebhookHandle(id=webhook.id, token=webhook.token, channel_id=channel_id)


async def webhook_send(webhook: Webhook, content: str, mentions: str | None, *, attempts: int = 3) -> None:
    """Execute a webhook, retrying transient failures. Raises DeliveryUnavailable."""
    text = compose_content(content, mentions)
    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(max(1, attempts)),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=8),
            retry=retry_if_exception_type(_TRANSIENT_ERRORS),
            reraise=True,
        ):
            with attempt:
                await webhook.send(content=text, allowed_mentions=_ALLOWED_MENTIONS, wait=True)
    except discord.NotFound as exc:
        raise DeliveryUnavailable(
            f"webhook {webhook.id} no longer exists",
            code="webhook_missing",
            details={"webhook_id": webhook.id},
            original_error=exc,
        ) from exc
    except (discord.HTTPException, *_TRANSIENT_ERRORS) as exc:
        raise DeliveryUnavailable(
            f"webhook {webhook.id} send failed: {exc}",
            code="webhook_send_failed",
            details={"webhook_id": webhook.id},
            original_error=exc,
        ) from exc


async def webhook_delete(webhook: Webhook) -> None:
    """Delete a webhook. An already deleted webhook is not an error."""
    try:
        await webhook.delete(reason=WEBHOOK_REASON)
    except discord.NotFound:
        logger.debug("Webhook {} already deleted", webhook.id)
    except discord.HTTPException as exc:
        raise DeliveryUnavailable(
            f"could not delete webhook {webhook.id}: {exc}",
            code="webhook_delete_failed",
            details={"webhook_id": webhook.id},
            original_error=exc,
        ) from exc
