"""Connection registry: the per-owner source -> target relay graph."""

from __future__ import annotations

from loguru import logger
from sqlalchemy import delete, or_, select
from sqlalchemy.orm import aliased

from chanrelay.core.constants import Outcome
from chanrelay.core.errors import NotFound
from chanrelay.events import Route, WebhookHandle
from chanrelay.gateway.webhooks import WebhookResolver, webhook_id_for
from chanrelay.store.database import Database
from chanrelay.store.models import Channel, Connection, Guild, Webhook


def channels_in_guild(guild_name: str):
    """Subquery of channel ids belonging to any guild called ``guild_name``."""
    return select(Channel.id).join(Guild, Guild.id == Channel.guild_id).where(Guild.name == guild_name)


class ConnectionRegistry:
    """Owns the relay graph. Every query and mutation is scoped by owner."""

    def __init__(self, db: Database, webhooks: WebhookResolver) -> None:
        self._db = db
        self._webhooks = webhooks

    async def _require_channels(self, *channel_ids: int) -> None:
        wanted = set(channel_ids)
        async with self._db.session() as session:
            found = set(await session.scalars(select(Channel.id).where(Channel.id.in_(wanted))))
        missing = sorted(wanted - found)
        if missing:
            raise NotFound(
                f"unknown channel {missing[0]}",
                code="channel_not_found",
                details={"channel_ids": missing},
            )

    async def _exists(self, source_channel: int, target_channel: int, owner: int) -> bool:
        stmt = select(Connection.id).where(
            Connection.source_id == source_channel,
            Connection.target_id == target_channel,
            Connection.owner_id == owner,
        )
        async with self._db.session() as session:
            return await session.scalar(stmt) is not None

    async def create_connection(
        self,
        source_channel: int,
        target_channel: int,
        owner: int,
        *,
        owner_name: str | None = None,
    ) -> Outcome:
        """Persist a connection. Raises NotFound for unknown channels.

        The row takes the webhook id stored for (owner, target) at insert time,
        read inside the insert statement itself.
        """
        await self._require_channels(source_channel, target_channel)
        if await self._exists(source_channel, target_channel, owner):
            return Outcome.ALREADY_EXISTS

        await self._webhooks.resolve(owner, target_channel, owner_name)

        stmt = self._db.insert(Connection).values(
            source_id=source_channel,
            target_id=target_channel,
            owner_id=owner,
            webhook_id=webhook_id_for(owner, target_channel),
        )
        stmt = stmt.on_conflict_do_nothing(
            index_elements=[Connection.source_id, Connection.target_id, Connection.owner_id]
        )
        async with self._db.session() as session:
            count = (await session.execute(stmt)).rowcount
        if not count:
            return Outcome.ALREADY_EXISTS
        logger.info("Registry: owner {} connected {} -> {}", owner, source_channel, target_channel)
        return Outcome.CREATED

    async def delete_connection(self, source_channel: int, target_channel: int, owner: int) -> Outcome:
        stmt = (
            delete(Connection)
            .where(
                Connection.source_id == source_channel,
                Connection.target_id == target_channel,
                Connection.owner_id == owner,
            )
            .execution_options(synchronize_session=False)
        )
        async with self._db.session() as session:
            count = (await session.execute(stmt)).rowcount
        if not count:
            return Outcome.NOT_FOUND
        logger.info("Registry: owner {} disconnected {} -> {}", owner, source_channel, target_channel)
        return Outcome.DELETED

    async def delete_all_connections_from(self, source_channel: int, owner: int) -> int:
        stmt = (
            delete(Connection)
            .where(Connection.source_id == source_channel, Connection.owner_id == owner)
            .execution_options(synchronize_session=False)
        )
        async with self._db.session() as session:
            count = (await session.execute(stmt)).rowcount
        logger.info("Registry: owner {} removed {} connections from {}", owner, count, source_channel)
        return count

    async def connections_for(self, source_channel: int, owner: int) -> list[Route]:
        """Targets of (source, owner), read fresh from the store on every call."""
        stmt = (
            select(Connection.target_id, Webhook.id, Webhook.token, Guild.is_banned)
            .join(Channel, Channel.id == Connection.target_id)
            .join(Guild, Guild.id == Channel.guild_id)
            .outerjoin(Webhook, Webhook.id == Connection.webhook_id)
            .where(Connection.source_id == source_channel, Connection.owner_id == owner)
            .order_by(Connection.id)
        )
        async with self._db.session() as session:
            rows = (await session.execute(stmt)).all()

        routes: list[Route] = []
        for target_id, webhook_id, token, banned in rows:
            handle = None
            if webhook_id is not None:
                handle = WebhookHandle(id=webhook_id, token=token, channel_id=target_id)
            routes.append(Route(target_channel_id=target_id, webhook=handle, suppressed=bool(banned)))
        return routes

    async def list_connections(self, owner: int) -> dict[str, list[str]]:
        """Source guild name -> ["#source → #target (TargetGuild)", ...]."""
        src = aliased(Channel)
        tgt = aliased(Channel)
        src_guild = aliased(Guild)
        tgt_guild = aliased(Guild)
        stmt = (
            select(src_guild.name, src.name, tgt.name, tgt_guild.name)
            .select_from(Connection)
            .join(src, src.id == Connection.source_id)
            .join(src_guild, src_guild.id == src.guild_id)
            .join(tgt, tgt.id == Connection.target_id)
            .join(tgt_guild, tgt_guild.id == tgt.guild_id)
            .where(Connection.owner_id == owner)
            .order_by(Connection.id)
        )
        async with self._db.session() as session:
            rows = (await session.execute(stmt)).all()

        grouped: dict[str, list[str]] = {}
        for source_guild, source_name, target_name, target_guild in rows:
            grouped.setdefault(source_guild, []).append(f"{source_name} → {target_name} ({target_guild})")
        return grouped

    async def wipe_connections_touching(self, guild_name: str, owner: int) -> int:
        """Delete the owner's connections with either endpoint in ``guild_name``."""
        in_guild = channels_in_guild(guild_name)
        stmt = (
            delete(Connection)
            .where(
                Connection.owner_id == owner,
                or_(Connection.source_id.in_(in_guild), Connection.target_id.in_(in_guild)),
            )
            .execution_options(synchronize_session=False)
        )
        async with self._db.session() as session:
            count = (await session.execute(stmt)).rowcount
        logger.info("Registry: owner {} wiped {} connections touching {}", owner, count, guild_name)
        return count
