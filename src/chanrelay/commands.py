"""Command surface: typed command variants and their execution against the core.

Front ends (slash commands) decode user input into one of the variants
below exactly once; ``CommandHandler.execute`` never looks at raw command
words.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Union

from loguru import logger

from chanrelay.core.constants import Outcome, channel_display_name
from chanrelay.core.errors import DeliveryUnavailable, NoCandidates, NotFound
from chanrelay.gateway import ConnectionRegistry, MentionResolver
from chanrelay.matching import rank
from chanrelay.store.directory import Directory


@dataclass(frozen=True)
class Connect:
    owner: int
    owner_name: str
    source_server: str
    source_channel: str
    target_server: str
    target_channel: str


@dataclass(frozen=True)
class Disconnect:
    owner: int
    source_server: str
    source_channel: str
    target_server: str
    target_channel: str


@dataclass(frozen=True)
class DisconnectAll:
    owner: int
    source_server: str
    source_channel: str


@dataclass(frozen=True)
class ListConnections:
    owner: int


@dataclass(frozen=True)
class AddMention:
    owner: int
    target_server: str
    target_channel: str
    mention: str
    source_server: str | None = None
    source_channel: str | None = None


@dataclass(frozen=True)
class RemoveMention:
    owner: int
    target_server: str
    target_channel: str
    mention: str | None = None
    source_server: str | None = None
    source_channel: str | None = None


@dataclass(frozen=True)
class ListMentions:
    owner: int


@dataclass(frozen=True)
class Wipe:
    owner: int
    server: str


@dataclass(frozen=True)
class BanServer:
    owner: int
    server: str


@dataclass(frozen=True)
class UnbanServer:
    owner: int
    server: str


Command = Union[
    Connect,
    Disconnect,
    DisconnectAll,
    ListConnections,
    AddMention,
    RemoveMention,
    ListMentions,
    Wipe,
    BanServer,
    UnbanServer,
]


def _render_groups(groups: dict[str, list[str]], empty: str) -> str:
    if not groups:
        return empty
    lines: list[str] = []
    for heading, entries in groups.items():
        lines.append(f"**{heading}**")
        lines.extend(f"  {entry}" for entry in entries)
    return "\n".join(lines)


class CommandHandler:
    """Executes commands and renders the reply shown to the invoking user."""

    def __init__(
        self,
        directory: Directory,
        registry: ConnectionRegistry,
        mentions: MentionResolver,
        *,
        admin_user_ids: Iterable[int] = (),
    ) -> None:
        self._directory = directory
        self._registry = registry
        self._mentions = mentions
        self._admins = frozenset(admin_user_ids)

    async def execute(self, cmd: Command) -> str:
        """Run ``cmd``. NotFound and DeliveryUnavailable become specific replies; other errors propagate."""
        try:
            return await self._execute(cmd)
        except NotFound as exc:
            return f"Error: {exc}"
        except DeliveryUnavailable as exc:
            logger.warning("Command {} failed: {}", type(cmd).__name__, exc)
            return f"Error: could not set up delivery ({exc})"

    async def _execute(self, cmd: Command) -> str:
        if isinstance(cmd, Connect):
            return await self._connect(cmd)
        if isinstance(cmd, Disconnect):
            return await self._disconnect(cmd)
        if isinstance(cmd, DisconnectAll):
            source = await self._directory.find_channel(cmd.source_server, cmd.source_channel)
            count = await self._registry.delete_all_connections_from(source.id, cmd.owner)
            return f"Removed {count} connection(s) from {source.name}."
        if isinstance(cmd, ListConnections):
            groups = await self._registry.list_connections(cmd.owner)
            return _render_groups(groups, "You have no connections.")
        if isinstance(cmd, AddMention):
            return await self._add_mention(cmd)
        if isinstance(cmd, RemoveMention):
            return await self._remove_mention(cmd)
        if isinstance(cmd, ListMentions):
            groups = await self._mentions.list_rules(cmd.owner)
            return _render_groups(groups, "You have no mention rules.")
        if isinstance(cmd, Wipe):
            await self._directory.find_guild(cmd.server)
            connections = await self._registry.wipe_connections_touching(cmd.server, cmd.owner)
            rules = await self._mentions.wipe_rules_touching(cmd.server, cmd.owner)
            return f"Removed {connections} connection(s) and {rules} mention rule(s) touching {cmd.server}."
        if isinstance(cmd, (BanServer, UnbanServer)):
            if cmd.owner not in self._admins:
                return "Error: only bot administrators can change the server ban list."
            banned = isinstance(cmd, BanServer)
            await self._directory.set_guild_banned(cmd.server, banned)
            return f"Relays into {cmd.server} are now {'disabled' if banned else 'enabled'}."
        raise TypeError(f"unknown command: {cmd!r}")

    async def _connect(self, cmd: Connect) -> str:
        source = await self._directory.find_channel(cmd.source_server, cmd.source_channel)
        target = await self._directory.find_channel(cmd.target_server, cmd.target_channel)
        outcome = await self._registry.create_connection(source.id, target.id, cmd.owner, owner_name=cmd.owner_name)
        if outcome is Outcome.ALREADY_EXISTS:
            return f"Connection {source.name} → {target.name} already exists."
        return f"Connected {source.name} ({cmd.source_server}) → {target.name} ({cmd.target_server})."

    async def _disconnect(self, cmd: Disconnect) -> str:
        source = await self._directory.find_channel(cmd.source_server, cmd.source_channel)
        target = await self._directory.find_channel(cmd.target_server, cmd.target_channel)
        outcome = await self._registry.delete_connection(source.id, target.id, cmd.owner)
        if outcome is Outcome.NOT_FOUND:
            return f"Error: no connection {source.name} → {target.name} found."
        return f"Disconnected {source.name} → {target.name}."

    async def _optional_source(self, server: str | None, channel: str | None) -> int | None:
        if server is None and channel is None:
            return None
        if server is None or channel is None:
            raise NotFound("a source needs both a server and a channel", code="incomplete_source")
        return (await self._directory.find_channel(server, channel)).id

    async def _add_mention(self, cmd: AddMention) -> str:
        target = await self._directory.find_channel(cmd.target_server, cmd.target_channel)
        source_id = await self._optional_source(cmd.source_server, cmd.source_channel)
        outcome = await self._mentions.add_rule(cmd.owner, target.id, source_id, cmd.mention)
        scope = "from all sources"
        if source_id is not None:
            scope = f"from {channel_display_name(cmd.source_channel)}"
        if outcome is Outcome.ALREADY_EXISTS:
            return f"Mention {cmd.mention} on {target.name} ({scope}) already exists."
        return f"Added mention {cmd.mention} on {target.name} ({scope})."

    async def _remove_mention(self, cmd: RemoveMention) -> str:
        target = await self._directory.find_channel(cmd.target_server, cmd.target_channel)
        source_id = await self._optional_source(cmd.source_server, cmd.source_channel)
        count = await self._mentions.remove_rules(
            cmd.owner,
            target.id,
            source_channel=source_id,
            mention_text=cmd.mention,
        )
        if not count:
            return f"Error: no matching mention rules on {target.name} found."
        return f"Removed {count} mention rule(s) on {target.name}."

    async def suggest_servers(self, current: str) -> list[str]:
        """Autocomplete for server options; empty when nothing is known yet."""
        try:
            return rank(current, await self._directory.guild_names())
        except NoCandidates:
            return []

    async def suggest_channels(self, server: str | None, current: str) -> list[str]:
        """Autocomplete for channel options within ``server``."""
        if not server:
            return []
        try:
            return rank(current, await self._directory.channel_names(server))
        except NoCandidates:
            return []
