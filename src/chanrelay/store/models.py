"""ORM models for guilds, channels, connections, mention rules and webhooks."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import BigInteger, Boolean, ForeignKey, Index, String, UniqueConstraint, false, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class Guild(Base):
    """A server the bot has been observed in."""

    __tablename__ = "guilds"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    is_banned: Mapped[bool] = mapped_column(Boolean, server_default=false(), default=False)


class Channel(Base):
    """A text channel of a known guild. ``name`` carries the leading '#'."""

    __tablename__ = "channels"
    __table_args__ = (Index("idx_channels_guild_id", "guild_id"),)

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    guild_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("guilds.id", ondelete="CASCADE"), nullable=False)
    webhook_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)


class Connection(Base):
    """Messages from ``source_id`` authored by ``owner_id`` are relayed to ``target_id``."""

    __tablename__ = "connections"
    __table_args__ = (
        UniqueConstraint("source_id", "target_id", "owner_id", name="uq_connections_source_target_owner"),
        Index("idx_connections_source_owner", "source_id", "owner_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    source_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("channels.id", ondelete="CASCADE"), nullable=False)
    target_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("channels.id", ondelete="CASCADE"), nullable=False)
    owner_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    webhook_id: Mapped[int] = mapped_column(BigInteger, nullable=False)


class MentionRule(Base):
    """Mention text prepended to relays into ``target_id``; NULL source applies to every source."""

    __tablename__ = "mention_rules"
    __table_args__ = (
        Index(
            "uq_mention_rules_wildcard",
            "target_id",
            "mention",
            "owner_id",
            unique=True,
            sqlite_where=text("source_id IS NULL"),
            postgresql_where=text("source_id IS NULL"),
        ),
        Index(
            "uq_mention_rules_scoped",
            "source_id",
            "target_id",
            "mention",
            "owner_id",
            unique=True,
            sqlite_where=text("source_id IS NOT NULL"),
            postgresql_where=text("source_id IS NOT NULL"),
        ),
        Index("idx_mention_rules_target_owner", "target_id", "owner_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    source_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("channels.id", ondelete="CASCADE"), nullable=True
    )
    target_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("channels.id", ondelete="CASCADE"), nullable=False)
    mention: Mapped[str] = mapped_column(String, nullable=False)
    owner_id: Mapped[int] = mapped_column(BigInteger, nullable=False)


class Webhook(Base):
    """Delivery handle for one (owner, target channel) pair."""

    __tablename__ = "webhooks"
    __table_args__ = (UniqueConstraint("owner_id", "target_channel_id", name="uq_webhooks_owner_target"),)

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    token: Mapped[str] = mapped_column(String, nullable=False)
    target_channel_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("channels.id", ondelete="CASCADE"), nullable=False
    )
    owner_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
