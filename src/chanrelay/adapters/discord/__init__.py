"""Discord adapter package."""

from chanrelay.adapters.discord.adapter import DiscordAdapter, message_to_event

__all__ = ["DiscordAdapter", "message_to_event"]
