"""Persistence: ORM models, async database, channel directory."""

from chanrelay.store.database import Database
from chanrelay.store.directory import Directory
from chanrelay.store.models import Base, Channel, Connection, Guild, MentionRule, Webhook

__all__ = ["Base", "Channel", "Connection", "Database", "Directory", "Guild", "MentionRule", "Webhook"]
