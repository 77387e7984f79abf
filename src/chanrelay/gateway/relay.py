"""Relay dispatcher: one inbound message -> one delivery per connected target."""

from __future__ import annotations

import asyncio

from loguru import logger

from chanrelay.adapters.base import PlatformClient
from chanrelay.core.errors import DeliveryUnavailable
from chanrelay.events import Delivery, MessageIn, Route
from chanrelay.gateway.mentions import MentionResolver
from chanrelay.gateway.registry import ConnectionRegistry


def _relay_content(evt: MessageIn) -> str:
    """Message body plus attachment links, one per line."""
    parts = [evt.content] if evt.content.strip() else []
    parts.extend(evt.attachment_urls)
    return "\n".join(parts)


class RelayDispatcher:
    """Relays a source message to every target its author connected it to."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        mentions: MentionResolver,
        platform: PlatformClient,
    ) -> None:
        self._registry = registry
        self._mentions = mentions
        self._platform = platform

    async def dispatch(self, evt: MessageIn) -> list[Delivery]:
        """Relay ``evt``. Returns the deliveries that were accepted by the platform."""
        # Our own webhook posts come back as messages; never relay them
        if evt.author_is_bot or evt.webhook_id is not None:
            return []

        content = _relay_content(evt)
        if not content:
            return []

        routes = await self._registry.connections_for(evt.channel_id, evt.author_id)
        if not routes:
            return []

        results = await asyncio.gather(
            *(self._deliver(evt, route, content) for route in routes),
            return_exceptions=True,
        )
        deliveries: list[Delivery] = []
        for result in results:
            if isinstance(result, BaseException):
                raise result
            if result is not None:
                deliveries.append(result)
        logger.debug(
            "Relay: message {} from {} delivered to {}/{} targets",
            evt.message_id,
            evt.channel_id,
            len(deliveries),
            len(routes),
        )
        return deliveries

    async def _deliver(self, evt: MessageIn, route: Route, content: str) -> Delivery | None:
        if route.suppressed:
            logger.debug("Relay: target {} is in a banned server; skipping", route.target_channel_id)
            return None
        try:
            if route.webhook is None:
                raise DeliveryUnavailable(
                    f"no webhook for channel {route.target_channel_id}",
                    code="missing_webhook",
                    details={"channel_id": route.target_channel_id},
                )
            rules = await self._mentions.rules_for(evt.author_id, route.target_channel_id, evt.channel_id)
            mentions = " ".join(rules) or None
            await self._platform.execute_webhook(route.webhook, content, mentions)
        except DeliveryUnavailable as exc:
            logger.warning(
                "Relay: delivery {} -> {} failed: {}",
                evt.channel_id,
                route.target_channel_id,
                exc,
            )
            return None
        return Delivery(
            source_channel_id=evt.channel_id,
            target_channel_id=route.target_channel_id,
            webhook_id=route.webhook.id,
            content=content,
            mentions=mentions,
        )
