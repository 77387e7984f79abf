"""Mention overlay resolver: per-owner mention text prepended to relays."""

from __future__ import annotations

from loguru import logger
from sqlalchemy import delete, or_, select
from sqlalchemy.orm import aliased

from chanrelay.core.constants import Outcome
from chanrelay.core.errors import NotFound
from chanrelay.gateway.registry import channels_in_guild
from chanrelay.store.database import Database
from chanrelay.store.models import Channel, Guild, MentionRule


class MentionResolver:
    """Wildcard (NULL source) and source-scoped mention rules, scoped by owner."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def rules_for(self, owner: int, target_channel: int, source_channel: int) -> list[str]:
        """Sorted, deduplicated mention texts that apply to a relay from source into target."""
        stmt = select(MentionRule.mention).where(
            MentionRule.owner_id == owner,
            MentionRule.target_id == target_channel,
            or_(MentionRule.source_id.is_(None), MentionRule.source_id == source_channel),
        )
        async with self._db.session() as session:
            mentions = await session.scalars(stmt)
            return sorted(set(mentions))

    async def add_rule(
        self,
        owner: int,
        target_channel: int,
        source_channel: int | None,
        mention_text: str,
    ) -> Outcome:
        """Add a rule. A wildcard and a scoped rule with the same text are independent."""
        wanted = {target_channel} if source_channel is None else {target_channel, source_channel}
        async with self._db.session() as session:
            found = set(await session.scalars(select(Channel.id).where(Channel.id.in_(wanted))))
        if found != wanted:
            raise NotFound(
                f"unknown channel {min(wanted - found)}",
                code="channel_not_found",
                details={"channel_ids": sorted(wanted - found)},
            )

        # Partial unique indexes make the conflict NULL-aware
        stmt = self._db.insert(MentionRule).values(
            source_id=source_channel,
            target_id=target_channel,
            mention=mention_text,
            owner_id=owner,
        )
        stmt = stmt.on_conflict_do_nothing()
        async with self._db.session() as session:
            count = (await session.execute(stmt)).rowcount
        if not count:
            return Outcome.ALREADY_EXISTS
        logger.info(
            "Mentions: owner {} added '{}' on {} (source {})",
            owner,
            mention_text,
            target_channel,
            source_channel if source_channel is not None else "any",
        )
        return Outcome.ADDED

    async def remove_rules(
        self,
        owner: int,
        target_channel: int,
        *,
        source_channel: int | None = None,
        mention_text: str | None = None,
    ) -> int:
        """Remove the owner's rules on a target, optionally narrowed by source and/or text."""
        conditions = [MentionRule.owner_id == owner, MentionRule.target_id == target_channel]
        if source_channel is not None:
            conditions.append(MentionRule.source_id == source_channel)
        if mention_text is not None:
            conditions.append(MentionRule.mention == mention_text)
        stmt = delete(MentionRule).where(*conditions).execution_options(synchronize_session=False)
        async with self._db.session() as session:
            count = (await session.execute(stmt)).rowcount
        logger.info("Mentions: owner {} removed {} rules on {}", owner, count, target_channel)
        return count

    async def list_rules(self, owner: int) -> dict[str, list[str]]:
        """Target label -> mention entries, each tagged with its source scope."""
        src = aliased(Channel)
        tgt = aliased(Channel)
        stmt = (
            select(tgt.name, Guild.name, MentionRule.mention, src.name)
            .select_from(MentionRule)
            .join(tgt, tgt.id == MentionRule.target_id)
            .join(Guild, Guild.id == tgt.guild_id)
            .outerjoin(src, src.id == MentionRule.source_id)
            .where(MentionRule.owner_id == owner)
            .order_by(MentionRule.id)
        )
        async with self._db.session() as session:
            rows = (await session.execute(stmt)).all()

        grouped: dict[str, list[str]] = {}
        for target_name, guild_name, mention, source_name in rows:
            scope = f"from {source_name}" if source_name else "all sources"
            grouped.setdefault(f"{target_name} ({guild_name})", []).append(f"{mention} ({scope})")
        return grouped

    async def wipe_rules_touching(self, guild_name: str, owner: int) -> int:
        """Delete the owner's rules whose source or target lies in ``guild_name``."""
        in_guild = channels_in_guild(guild_name)
        stmt = (
            delete(MentionRule)
            .where(
                MentionRule.owner_id == owner,
                or_(MentionRule.source_id.in_(in_guild), MentionRule.target_id.in_(in_guild)),
            )
            .execution_options(synchronize_session=False)
        )
        async with self._db.session() as session:
            count = (await session.execute(stmt)).rowcount
        logger.info("Mentions: owner {} wiped {} rules touching {}", owner, count, guild_name)
        return count
