"""Test command execution and the replies shown to users."""

from unittest.mock import AsyncMock

import pytest

from chanrelay.commands import (
    AddMention,
    BanServer,
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
from chanrelay.core.errors import StoreError
from chanrelay.store import Database, Directory
from tests.mocks import ADMIN, ALERTS, MIRROR, OWNER_U, OWNER_V


def _connect(owner=OWNER_U, source=("GuildX", "alerts"), target=("GuildY", "mirror")):
    return Connect(owner, "alice", source[0], source[1], target[0], target[1])


class TestConnectCommands:
    @pytest.mark.asyncio
    async def test_connect_reply(self, handler):
        reply = await handler.execute(_connect())
        assert reply == "Connected #alerts (GuildX) → #mirror (GuildY)."

    @pytest.mark.asyncio
    async def test_connect_twice_reports_existing(self, handler):
        await handler.execute(_connect())
        reply = await handler.execute(_connect())
        assert reply == "Connection #alerts → #mirror already exists."

    @pytest.mark.asyncio
    async def test_connect_accepts_hash_prefixed_names(self, handler, registry):
        await handler.execute(_connect(source=("GuildX", "#alerts")))
        assert len(await registry.connections_for(ALERTS, OWNER_U)) == 1

    @pytest.mark.asyncio
    async def test_unknown_server_reply(self, handler):
        reply = await handler.execute(_connect(source=("Nope", "alerts")))
        assert reply == "Error: no channel named #alerts found in Nope"

    @pytest.mark.asyncio
    async def test_webhook_failure_reply(self, handler, platform):
        platform.refuse_create.add(MIRROR)
        reply = await handler.execute(_connect())
        assert reply.startswith("Error: could not set up delivery")

    @pytest.mark.asyncio
    async def test_disconnect(self, handler, registry):
        # Arrange
        await handler.execute(_connect())

        # Act
        reply = await handler.execute(Disconnect(OWNER_U, "GuildX", "alerts", "GuildY", "mirror"))
        again = await handler.execute(Disconnect(OWNER_U, "GuildX", "alerts", "GuildY", "mirror"))

        # Assert
        assert reply == "Disconnected #alerts → #mirror."
        assert again == "Error: no connection #alerts → #mirror found."
        assert await registry.connections_for(ALERTS, OWNER_U) == []

    @pytest.mark.asyncio
    async def test_disconnect_all(self, handler):
        await handler.execute(_connect())
        await handler.execute(_connect(target=("GuildY", "news")))
        reply = await handler.execute(DisconnectAll(OWNER_U, "GuildX", "alerts"))
        assert reply == "Removed 2 connection(s) from #alerts."

    @pytest.mark.asyncio
    async def test_list_connections(self, handler):
        assert await handler.execute(ListConnections(OWNER_U)) == "You have no connections."
        await handler.execute(_connect())
        assert await handler.execute(ListConnections(OWNER_U)) == "**GuildX**\n  #alerts → #mirror (GuildY)"

    @pytest.mark.asyncio
    async def test_wipe(self, handler):
        # Arrange
        await handler.execute(_connect())
        await handler.execute(AddMention(OWNER_U, "GuildX", "general", "@team"))

        # Act
        reply = await handler.execute(Wipe(OWNER_U, "GuildX"))

        # Assert
        assert reply == "Removed 1 connection(s) and 1 mention rule(s) touching GuildX."

    @pytest.mark.asyncio
    async def test_wipe_unknown_server(self, handler):
        assert await handler.execute(Wipe(OWNER_U, "Nope")) == "Error: no server named Nope found"


class TestMentionCommands:
    @pytest.mark.asyncio
    async def test_add_wildcard_mention(self, handler):
        reply = await handler.execute(AddMention(OWNER_U, "GuildY", "mirror", "@team"))
        assert reply == "Added mention @team on #mirror (from all sources)."

    @pytest.mark.asyncio
    async def test_add_scoped_mention_twice(self, handler):
        cmd = AddMention(OWNER_U, "GuildY", "mirror", "@team", "GuildX", "alerts")
        assert await handler.execute(cmd) == "Added mention @team on #mirror (from #alerts)."
        assert await handler.execute(cmd) == "Mention @team on #mirror (from #alerts) already exists."

    @pytest.mark.asyncio
    async def test_half_specified_source_is_rejected(self, handler):
        reply = await handler.execute(AddMention(OWNER_U, "GuildY", "mirror", "@team", "GuildX", None))
        assert reply == "Error: a source needs both a server and a channel"

    @pytest.mark.asyncio
    async def test_remove_mention(self, handler):
        await handler.execute(AddMention(OWNER_U, "GuildY", "mirror", "@team"))
        reply = await handler.execute(RemoveMention(OWNER_U, "GuildY", "mirror", "@team"))
        again = await handler.execute(RemoveMention(OWNER_U, "GuildY", "mirror"))
        assert reply == "Removed 1 mention rule(s) on #mirror."
        assert again == "Error: no matching mention rules on #mirror found."

    @pytest.mark.asyncio
    async def test_list_mentions(self, handler):
        assert await handler.execute(ListMentions(OWNER_U)) == "You have no mention rules."
        await handler.execute(AddMention(OWNER_U, "GuildY", "mirror", "@team"))
        assert await handler.execute(ListMentions(OWNER_U)) == "**#mirror (GuildY)**\n  @team (all sources)"


class TestServerBanCommands:
    @pytest.mark.asyncio
    async def test_non_admin_is_refused(self, handler, directory):
        reply = await handler.execute(BanServer(OWNER_V, "GuildY"))
        assert reply == "Error: only bot administrators can change the server ban list."
        assert (await directory.find_guild("GuildY")).is_banned is False

    @pytest.mark.asyncio
    async def test_admin_bans_and_unbans(self, handler, directory):
        assert await handler.execute(BanServer(ADMIN, "GuildY")) == "Relays into GuildY are now disabled."
        assert (await directory.find_guild("GuildY")).is_banned is True
        assert await handler.execute(UnbanServer(ADMIN, "GuildY")) == "Relays into GuildY are now enabled."
        assert (await directory.find_guild("GuildY")).is_banned is False

    @pytest.mark.asyncio
    async def test_ban_unknown_server(self, handler):
        assert await handler.execute(BanServer(ADMIN, "Nope")) == "Error: no server named Nope found"


class TestErrorsAndSuggestions:
    @pytest.mark.asyncio
    async def test_store_error_propagates(self, directory, mentions):
        # Arrange
        registry = AsyncMock()
        registry.list_connections.side_effect = StoreError("disk I/O error", code="store_failure")
        handler = CommandHandler(directory, registry, mentions)

        # Act & Assert
        with pytest.raises(StoreError):
            await handler.execute(ListConnections(OWNER_U))

    @pytest.mark.asyncio
    async def test_suggest_servers(self, handler):
        assert (await handler.suggest_servers("guy"))[0] == "GuildY"

    @pytest.mark.asyncio
    async def test_suggest_channels(self, handler):
        assert (await handler.suggest_channels("GuildX", "gen"))[0] == "#general"
        assert await handler.suggest_channels(None, "gen") == []

    @pytest.mark.asyncio
    async def test_suggestions_empty_without_guilds(self, registry, mentions):
        # Arrange
        empty = Database("sqlite+aiosqlite:///:memory:")
        await empty.initialize()
        handler = CommandHandler(Directory(empty), registry, mentions)

        # Act & Assert
        try:
            assert await handler.suggest_servers("x") == []
            assert await handler.suggest_channels("GuildX", "x") == []
        finally:
            await empty.close()
