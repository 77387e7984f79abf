"""Gateway: connection registry, webhook and mention resolvers, relay dispatcher."""

from chanrelay.gateway.mentions import MentionResolver
from chanrelay.gateway.registry import ConnectionRegistry
from chanrelay.gateway.relay import RelayDispatcher
from chanrelay.gateway.webhooks import WebhookResolver

__all__ = ["ConnectionRegistry", "MentionResolver", "RelayDispatcher", "WebhookResolver"]
