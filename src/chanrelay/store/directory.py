"""Channel directory: guild/channel upserts and name lookups."""

from __future__ import annotations

from collections.abc import Iterable

from loguru import logger
from sqlalchemy import select, update

from chanrelay.core.constants import channel_display_name
from chanrelay.core.errors import NotFound
from chanrelay.store.database import Database
from chanrelay.store.models import Channel, Guild


class Directory:
    """Guilds and text channels the bot has observed."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def sync_guild(self, guild_id: int, name: str, channels: Iterable[tuple[int, str]]) -> int:
        """Upsert a guild and its text channels. Returns the number of channels written."""
        guild_stmt = self._db.insert(Guild).values(id=guild_id, name=name)
        guild_stmt = guild_stmt.on_conflict_do_update(index_elements=[Guild.id], set_={"name": name})
        count = 0
        async with self._db.session() as session:
            await session.execute(guild_stmt)
            for channel_id, channel_name in channels:
                display = channel_display_name(channel_name)
                stmt = self._db.insert(Channel).values(id=channel_id, name=display, guild_id=guild_id)
                stmt = stmt.on_conflict_do_update(
                    index_elements=[Channel.id],
                    set_={"name": display, "guild_id": guild_id},
                )
                await session.execute(stmt)
                count += 1
        logger.info("Directory: synced guild {} ({}) with {} channels", name, guild_id, count)
        return count

    async def guild_names(self) -> list[str]:
        async with self._db.session() as session:
            result = await session.scalars(select(Guild.name).distinct().order_by(Guild.name))
            return list(result)

    async def channel_names(self, guild_name: str) -> list[str]:
        """Channel names of every guild called ``guild_name``."""
        stmt = (
            select(Channel.name)
            .join(Guild, Guild.id == Channel.guild_id)
            .where(Guild.name == guild_name)
            .distinct()
            .order_by(Channel.name)
        )
        async with self._db.session() as session:
            return list(await session.scalars(stmt))

    async def find_guild(self, name: str) -> Guild:
        stmt = select(Guild).where(Guild.name == name).order_by(Guild.id).limit(1)
        async with self._db.session() as session:
            guild = await session.scalar(stmt)
        if guild is None:
            raise NotFound(f"no server named {name} found", code="guild_not_found", details={"guild": name})
        return guild

    async def find_channel(self, guild_name: str, channel_name: str) -> Channel:
        """Look up a channel by server name and channel name ('#' optional)."""
        display = channel_display_name(channel_name)
        stmt = (
            select(Channel)
            .join(Guild, Guild.id == Channel.guild_id)
            .where(Guild.name == guild_name, Channel.name == display)
            .order_by(Channel.id)
            .limit(1)
        )
        async with self._db.session() as session:
            channel = await session.scalar(stmt)
        if channel is None:
            raise NotFound(
                f"no channel named {display} found in {guild_name}",
                code="channel_not_found",
                details={"guild": guild_name, "channel": display},
            )
        return channel

    async def set_guild_banned(self, name: str, banned: bool) -> int:
        """Flag every guild called ``name``. Raises NotFound when none match."""
        stmt = (
            update(Guild)
            .where(Guild.name == name)
            .values(is_banned=banned)
            .execution_options(synchronize_session=False)
        )
        async with self._db.session() as session:
            count = (await session.execute(stmt)).rowcount
        if not count:
            raise NotFound(f"no server named {name} found", code="guild_not_found", details={"guild": name})
        logger.info("Directory: guild {} {}", name, "banned" if banned else "unbanned")
        return count
