"""Discord adapter: bot client, guild sync, message feed and webhook primitives."""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

import aiohttp
import discord
from cachetools import TTLCache
from discord import Guild, Intents, Message, TextChannel
from discord.ext import commands
from discord.webhook import Webhook
from loguru import logger

from chanrelay.adapters.base import AdapterBase
from chanrelay.adapters.discord import webhook as discord_webhook
from chanrelay.adapters.discord.commands import register_commands
from chanrelay.core.errors import RelayError
from chanrelay.events import MessageIn, WebhookHandle, message_in
from chanrelay.store.directory import Directory

if TYPE_CHECKING:
    from chanrelay.commands import CommandHandler
    from chanrelay.gateway import RelayDispatcher


def message_to_event(message: Message) -> MessageIn:
    """Convert a discord.py message into the core's inbound event."""
    return message_in(
        channel_id=message.channel.id,
        author_id=message.author.id,
        content=message.content or "",
        message_id=message.id,
        author_is_bot=bool(message.author.bot),
        webhook_id=message.webhook_id,
        attachment_urls=[a.url for a in message.attachments],
    )


class DiscordAdapter(AdapterBase):
    """Discord platform client. Feeds messages to the dispatcher, executes webhooks."""

    def __init__(
        self,
        directory: Directory,
        *,
        token: str,
        retry_attempts: int = 3,
        webhook_cache_ttl: int = 86400,
    ) -> None:
        self._directory = directory
        self._token = token
        self._retry_attempts = retry_attempts
        self._webhook_cache: TTLCache[tuple[int, str], Webhook] = TTLCache(maxsize=512, ttl=webhook_cache_ttl)
        self._dispatcher: RelayDispatcher | None = None
        self._handler: CommandHandler | None = None
        self._bot: commands.Bot | None = None
        self._session: aiohttp.ClientSession | None = None
        self._bot_task: asyncio.Task | None = None

    @property
    def name(self) -> str:
        return "discord"

    def bind(self, dispatcher: RelayDispatcher, handler: CommandHandler) -> None:
        """Attach the core components built on top of this adapter."""
        self._dispatcher = dispatcher
        self._handler = handler

    async def create_webhook(self, channel_id: int, name: str) -> WebhookHandle:
        channel = None
        if self._bot:
            channel = self._bot.get_channel(channel_id)
        return await discord_webhook.create_webhook(channel, channel_id, name)

    def _partial_webhook(self, handle: WebhookHandle) -> Webhook:
        key = (handle.id, handle.token)
        webhook = self._webhook_cache.get(key)
        if webhook is None:
            if self._session is None:
                self._session = aiohttp.ClientSession()
            webhook = Webhook.partial(handle.id, handle.token, session=self._session)
            self._webhook_cache[key] = webhook
        return webhook

    async def execute_webhook(self, handle: WebhookHandle, content: str, mentions: str | None) -> None:
        webhook = self._partial_webhook(handle)
        await discord_webhook.webhook_send(webhook, content, mentions, attempts=self._retry_attempts)
        logger.debug("Delivered to channel {} via webhook {}", handle.channel_id, handle.id)

    async def delete_webhook(self, handle: WebhookHandle) -> None:
        webhook = self._partial_webhook(handle)
        self._webhook_cache.pop((handle.id, handle.token), None)
        await discord_webhook.webhook_delete(webhook)
        logger.debug("Deleted webhook {} in channel {}", handle.id, handle.channel_id)

    async def _sync_guild(self, guild: Guild) -> None:
        channels = [(c.id, c.name) for c in guild.text_channels]
        await self._directory.sync_guild(guild.id, guild.name, channels)

    async def _on_ready(self) -> None:
        bot = self._bot
        if not bot:
            return
        logger.info("Discord bot ready: {} in {} guilds", bot.user, len(bot.guilds))
        for guild in bot.guilds:
            try:
                await self._sync_guild(guild)
            except RelayError as exc:
                logger.error("Failed to sync guild {}: {}", guild.id, exc)
        synced = await bot.tree.sync()
        logger.info("Registered {} slash commands", len(synced))

    async def _on_message(self, message: Message) -> None:
        """Handle an incoming Discord message; relay failures are logged, never shown to the author."""
        if not self._dispatcher or message.guild is None:
            return
        evt = message_to_event(message)
        try:
            await self._dispatcher.dispatch(evt)
        except RelayError as exc:
            logger.error("Relay of message {} in {} failed: {}", evt.message_id, evt.channel_id, exc)

    async def start(self) -> None:
        """Start the Discord bot."""
        if self._handler is None or self._dispatcher is None:
            raise RuntimeError("DiscordAdapter.bind() must be called before start()")

        intents = Intents.default()
        intents.message_content = True
        intents.guilds = True

        bot = commands.Bot(command_prefix=commands.when_mentioned, intents=intents)
        register_commands(bot.tree, self._handler)

        @bot.event
        async def on_ready() -> None:
            await self._on_ready()

        @bot.event
        async def on_message(message: Message) -> None:
            await self._on_message(message)

        @bot.event
        async def on_guild_join(guild: Guild) -> None:
            await self._sync_guild(guild)

        @bot.event
        async def on_guild_update(before: Guild, after: Guild) -> None:
            await self._sync_guild(after)

        @bot.event
        async def on_guild_channel_create(channel: discord.abc.GuildChannel) -> None:
            if isinstance(channel, TextChannel):
                await self._sync_guild(channel.guild)

        @bot.event
        async def on_guild_channel_update(before: discord.abc.GuildChannel, after: discord.abc.GuildChannel) -> None:
            if isinstance(after, TextChannel):
                await self._sync_guild(after.guild)

        self._bot = bot
        self._session = aiohttp.ClientSession()
        self._bot_task = asyncio.create_task(bot.start(self._token))

    async def stop(self) -> None:
        """Stop the Discord bot and close the webhook session."""
        if self._bot:
            await self._bot.close()
        if self._bot_task:
            self._bot_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._bot_task
        if self._session:
            await self._session.close()
        self._webhook_cache.clear()
        self._bot = None
        self._bot_task = None
        self._session = None
