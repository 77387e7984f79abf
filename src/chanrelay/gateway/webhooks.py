"""Webhook resolver: one delivery handle per (owner, target channel)."""

from __future__ import annotations

from loguru import logger
from sqlalchemy import select, update

from chanrelay.adapters.base import PlatformClient
from chanrelay.core.errors import DeliveryUnavailable
from chanrelay.events import WebhookHandle
from chanrelay.store.database import Database
from chanrelay.store.models import Channel, Connection, Webhook

# Discord webhook names: 1-80 chars
MIN_WEBHOOK_NAME_LEN = 1
MAX_WEBHOOK_NAME_LEN = 80


def _ensure_valid_webhook_name(name: str) -> str:
    """Truncate or pad a name to fit Discord webhook limits."""
    name = str(name).strip()[:MAX_WEBHOOK_NAME_LEN]
    if len(name) < MIN_WEBHOOK_NAME_LEN:
        name = "relay"
    return name


def webhook_id_for(owner: int, target_channel: int):
    """Scalar subquery for the stored webhook id of (owner, target)."""
    return (
        select(Webhook.id)
        .where(Webhook.owner_id == owner, Webhook.target_channel_id == target_channel)
        .scalar_subquery()
    )


class WebhookResolver:
    """Maps (owner, target channel) to a delivery handle, creating it on first use."""

    def __init__(self, db: Database, platform: PlatformClient, *, webhook_name: str | None = None) -> None:
        self._db = db
        self._platform = platform
        self._webhook_name = webhook_name

    async def lookup(self, owner: int, target_channel: int) -> WebhookHandle | None:
        stmt = select(Webhook).where(Webhook.owner_id == owner, Webhook.target_channel_id == target_channel)
        async with self._db.session() as session:
            row = await session.scalar(stmt)
        if row is None:
            return None
        return WebhookHandle(id=row.id, token=row.token, channel_id=row.target_channel_id)

    async def resolve(self, owner: int, target_channel: int, owner_name: str | None = None) -> WebhookHandle:
        """Return the stored handle or create, persist and return a new one.

        Raises DeliveryUnavailable (from the platform) without persisting anything.
        When a concurrent resolve stored a handle first, the newer one replaces it:
        the owner's connections into ``target_channel`` move to the new handle in
        the same transaction and the replaced webhook is deleted on the platform.
        """
        existing = await self.lookup(owner, target_channel)
        if existing is not None:
            return existing

        name = _ensure_valid_webhook_name(self._webhook_name or owner_name or str(owner))
        created = await self._platform.create_webhook(target_channel, name)

        # Last writer wins on (owner, target): never two handles for one pair
        stmt = self._db.insert(Webhook).values(
            id=created.id,
            token=created.token,
            target_channel_id=target_channel,
            owner_id=owner,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[Webhook.owner_id, Webhook.target_channel_id],
            set_={"id": created.id, "token": created.token},
        ).returning(Webhook.id, Webhook.token)
        async with self._db.session() as session:
            replaced = await session.scalar(
                select(Webhook).where(Webhook.owner_id == owner, Webhook.target_channel_id == target_channel)
            )
            replaced_handle = None
            if replaced is not None and replaced.id != created.id:
                replaced_handle = WebhookHandle(id=replaced.id, token=replaced.token, channel_id=target_channel)
            stored_id, stored_token = (await session.execute(stmt)).one()
            await session.execute(
                update(Connection)
                .where(Connection.owner_id == owner, Connection.target_id == target_channel)
                .values(webhook_id=stored_id)
                .execution_options(synchronize_session=False)
            )
            await session.execute(
                update(Channel)
                .where(Channel.id == target_channel)
                .values(webhook_id=stored_id)
                .execution_options(synchronize_session=False)
            )
        handle = WebhookHandle(id=stored_id, token=stored_token, channel_id=target_channel)
        logger.info("Webhook: created {} '{}' for owner {} in channel {}", handle.id, name, owner, target_channel)

        if replaced_handle is not None:
            logger.info(
                "Webhook: {} replaced {} for owner {} in channel {}",
                handle.id,
                replaced_handle.id,
                owner,
                target_channel,
            )
            try:
                await self._platform.delete_webhook(replaced_handle)
            except DeliveryUnavailable as exc:
                logger.warning("Webhook: could not delete replaced webhook {}: {}", replaced_handle.id, exc)
        return handle
