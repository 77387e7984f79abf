"""Slash commands: decode interaction options into typed commands, autocomplete names."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

import discord
from discord import app_commands
from loguru import logger

from chanrelay.commands import (
    AddMention,
    BanServer,
    Command,
    CommandHandler,
    Connect,
    Disconnect,
    DisconnectAll,
    ListConnections,
    ListMentions,
    RemoveMention,
    UnbanServer,
    Wipe,
)
from chanrelay.core.errors import RelayError

MAX_REPLY_LEN = 2000
MAX_CHOICE_LEN = 100

Autocomplete = Callable[[discord.Interaction, str], Awaitable[list[app_commands.Choice[str]]]]


def _choices(names: list[str]) -> list[app_commands.Choice[str]]:
    return [app_commands.Choice(name=n[:MAX_CHOICE_LEN], value=n[:MAX_CHOICE_LEN]) for n in names]


async def run_command(interaction: discord.Interaction, handler: CommandHandler, cmd: Command) -> None:
    """Execute ``cmd`` and reply ephemerally. Store failures get a generic reply and an error log."""
    await interaction.response.defer(ephemeral=True, thinking=True)
    try:
        reply = await handler.execute(cmd)
    except RelayError as exc:
        logger.error("Command {} by {} failed: {}", type(cmd).__name__, cmd.owner, exc)
        reply = "Error: storage is unavailable right now, try again later."
    await interaction.followup.send(reply[:MAX_REPLY_LEN], ephemeral=True)


def server_autocomplete(handler: CommandHandler) -> Autocomplete:
    async def complete(interaction: discord.Interaction, current: str) -> list[app_commands.Choice[str]]:
        return _choices(await handler.suggest_servers(current))

    return complete


def channel_autocomplete(handler: CommandHandler, server_option: str) -> Autocomplete:
    """Channel choices within the server typed into ``server_option``."""

    async def complete(interaction: discord.Interaction, current: str) -> list[app_commands.Choice[str]]:
        server = getattr(interaction.namespace, server_option, None)
        return _choices(await handler.suggest_channels(server, current))

    return complete


def register_commands(tree: app_commands.CommandTree, handler: CommandHandler) -> None:
    """Register every relay command on ``tree``."""
    servers = server_autocomplete(handler)

    @tree.command(name="connect", description="Relay your messages from a source channel to a target channel")
    @app_commands.describe(
        source_server="Server of the source channel",
        source_channel="Channel whose messages are relayed",
        target_server="Server of the target channel",
        target_channel="Channel that receives the relay",
    )
    @app_commands.autocomplete(
        source_server=servers,
        source_channel=channel_autocomplete(handler, "source_server"),
        target_server=servers,
        target_channel=channel_autocomplete(handler, "target_server"),
    )
    async def connect(
        interaction: discord.Interaction,
        source_server: str,
        source_channel: str,
        target_server: str,
        target_channel: str,
    ) -> None:
        cmd = Connect(
            owner=interaction.user.id,
            owner_name=interaction.user.display_name,
            source_server=source_server,
            source_channel=source_channel,
            target_server=target_server,
            target_channel=target_channel,
        )
        await run_command(interaction, handler, cmd)

    @tree.command(name="disconnect", description="Stop relaying from a source channel to a target channel")
    @app_commands.autocomplete(
        source_server=servers,
        source_channel=channel_autocomplete(handler, "source_server"),
        target_server=servers,
        target_channel=channel_autocomplete(handler, "target_server"),
    )
    async def disconnect(
        interaction: discord.Interaction,
        source_server: str,
        source_channel: str,
        target_server: str,
        target_channel: str,
    ) -> None:
        cmd = Disconnect(interaction.user.id, source_server, source_channel, target_server, target_channel)
        await run_command(interaction, handler, cmd)

    @tree.command(name="disconnect_all", description="Stop relaying a source channel anywhere")
    @app_commands.autocomplete(
        source_server=servers,
        source_channel=channel_autocomplete(handler, "source_server"),
    )
    async def disconnect_all(interaction: discord.Interaction, source_server: str, source_channel: str) -> None:
        await run_command(interaction, handler, DisconnectAll(interaction.user.id, source_server, source_channel))

    @tree.command(name="connections", description="List your relay connections")
    async def connections(interaction: discord.Interaction) -> None:
        await run_command(interaction, handler, ListConnections(interaction.user.id))

    @tree.command(name="mention_add", description="Prepend a mention to everything relayed into a channel")
    @app_commands.describe(
        mention="Mention text, e.g. @traders",
        source_server="Only for relays from this server's channel (optional)",
        source_channel="Only for relays from this channel (optional)",
    )
    @app_commands.autocomplete(
        target_server=servers,
        target_channel=channel_autocomplete(handler, "target_server"),
        source_server=servers,
        source_channel=channel_autocomplete(handler, "source_server"),
    )
    async def mention_add(
        interaction: discord.Interaction,
        target_server: str,
        target_channel: str,
        mention: str,
        source_server: str | None = None,
        source_channel: str | None = None,
    ) -> None:
        cmd = AddMention(interaction.user.id, target_server, target_channel, mention, source_server, source_channel)
        await run_command(interaction, handler, cmd)

    @tree.command(name="mention_remove", description="Remove mentions from a target channel")
    @app_commands.describe(mention="Only this mention (optional; all when omitted)")
    @app_commands.autocomplete(
        target_server=servers,
        target_channel=channel_autocomplete(handler, "target_server"),
        source_server=servers,
        source_channel=channel_autocomplete(handler, "source_server"),
    )
    async def mention_remove(
        interaction: discord.Interaction,
        target_server: str,
        target_channel: str,
        mention: str | None = None,
        source_server: str | None = None,
        source_channel: str | None = None,
    ) -> None:
        cmd = RemoveMention(interaction.user.id, target_server, target_channel, mention, source_server, source_channel)
        await run_command(interaction, handler, cmd)

    @tree.command(name="mentions", description="List your mention rules")
    async def mentions(interaction: discord.Interaction) -> None:
        await run_command(interaction, handler, ListMentions(interaction.user.id))

    @tree.command(name="wipe", description="Remove all your connections and mentions touching a server")
    @app_commands.autocomplete(server=servers)
    async def wipe(interaction: discord.Interaction, server: str) -> None:
        await run_command(interaction, handler, Wipe(interaction.user.id, server))

    @tree.command(name="server_ban", description="Disable relays into a server (admins only)")
    @app_commands.autocomplete(server=servers)
    async def server_ban(interaction: discord.Interaction, server: str) -> None:
        await run_command(interaction, handler, BanServer(interaction.user.id, server))

    @tree.command(name="server_unban", description="Re-enable relays into a server (admins only)")
    @app_commands.autocomplete(server=servers)
    async def server_unban(interaction: discord.Interaction, server: str) -> None:
        await run_command(interaction, handler, UnbanServer(interaction.user.id, server))
