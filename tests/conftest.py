"""Shared fixtures: in-memory store seeded with three guilds, fake platform, core components."""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio

from chanrelay.commands import CommandHandler
from chanrelay.gateway import ConnectionRegistry, MentionResolver, RelayDispatcher, WebhookResolver
from chanrelay.store import Database, Directory
from tests.mocks import ADMIN, ALERTS, GENERAL, GUILD_X, GUILD_Y, GUILD_Z, MIRROR, NEWS, OTHER, FakePlatform


@pytest_asyncio.fixture
async def db() -> AsyncGenerator[Database, None]:
    database = Database("sqlite+aiosqlite:///:memory:")
    await database.initialize()
    yield database
    await database.close()


@pytest_asyncio.fixture
async def directory(db: Database) -> Directory:
    d = Directory(db)
    await d.sync_guild(GUILD_X, "GuildX", [(ALERTS, "alerts"), (GENERAL, "general")])
    await d.sync_guild(GUILD_Y, "GuildY", [(MIRROR, "mirror"), (NEWS, "news")])
    await d.sync_guild(GUILD_Z, "GuildZ", [(OTHER, "other")])
    return d


@pytest.fixture
def platform() -> FakePlatform:
    return FakePlatform()


@pytest.fixture
def webhooks(db: Database, directory: Directory, platform: FakePlatform) -> WebhookResolver:
    return WebhookResolver(db, platform)


@pytest.fixture
def registry(db: Database, webhooks: WebhookResolver) -> ConnectionRegistry:
    return ConnectionRegistry(db, webhooks)


@pytest.fixture
def mentions(db: Database, directory: Directory) -> MentionResolver:
    return MentionResolver(db)


@pytest.fixture
def dispatcher(registry: ConnectionRegistry, mentions: MentionResolver, platform: FakePlatform) -> RelayDispatcher:
    return RelayDispatcher(registry, mentions, platform)


@pytest.fixture
def handler(directory: Directory, registry: ConnectionRegistry, mentions: MentionResolver) -> CommandHandler:
    return CommandHandler(directory, registry, mentions, admin_user_ids=[ADMIN])
