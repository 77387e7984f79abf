"""chanrelay entrypoint. Loads config, opens the store, starts the Discord adapter."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from chanrelay import __version__
from chanrelay.adapters.discord import DiscordAdapter
from chanrelay.commands import CommandHandler
from chanrelay.config import Config, load_config_with_env, read_token
from chanrelay.core.errors import RelayConfigurationError, RelayError
from chanrelay.gateway import ConnectionRegistry, MentionResolver, RelayDispatcher, WebhookResolver
from chanrelay.store import Database, Directory

# Third-party libraries to intercept and route through loguru
_INTERCEPTED_LIBRARIES = ["discord", "discord.client", "discord.gateway", "discord.http", "sqlalchemy.engine"]


def _intercept_logging(level: str) -> None:
    """Route third-party library logs to loguru."""

    class InterceptHandler(logging.Handler):
        def emit(self, record: logging.LogRecord) -> None:
            try:
                log_level = logger.level(record.levelname).name
            except ValueError:
                log_level = str(record.levelno)
            msg = record.getMessage().replace("{", "{{").replace("}", "}}")
            logger.patch(
                lambda r: r.update(
                    name=record.name,
                    function=record.funcName,
                    line=record.lineno,
                ),
            ).opt(exception=record.exc_info).log(log_level, msg)

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for lib in _INTERCEPTED_LIBRARIES:
        lib_logger = logging.getLogger(lib)
        lib_logger.handlers = [InterceptHandler()]
        lib_logger.propagate = False
        # discord.py is chatty at DEBUG; keep it at INFO unless asked
        lib_logger.setLevel("INFO" if level == "DEBUG" and lib.startswith("discord") else level)


def _safe_message_filter(record: Any) -> bool:
    """Escape braces/angles in log messages to prevent format/tag errors."""
    if isinstance(record.get("message"), str):
        msg = record["message"]
        msg = msg.replace("{", "{{").replace("}", "}}").replace("<", "\\<")
        record["message"] = msg
    return True


def setup_logging(verbose: bool = False) -> None:
    """Configure loguru. Replace default logging.
    Level: verbose=True or LOG_LEVEL=DEBUG enables DEBUG; otherwise INFO."""
    level = "INFO"
    if verbose:
        level = "DEBUG"
    else:
        env_level = (os.environ.get("LOG_LEVEL") or "").upper()
        if env_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
            level = env_level

    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format=("<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan> | {message}"),
        filter=_safe_message_filter,
    )
    _intercept_logging(level)


def load_settings(config_path: Path) -> Config:
    """Load and validate config from path."""
    try:
        data = load_config_with_env(config_path)
    except yaml.YAMLError as exc:
        raise RelayConfigurationError(
            f"could not parse {config_path}",
            code="invalid_yaml",
            details={"path": str(config_path)},
            original_error=exc,
        ) from exc
    config = Config()
    config.reload(data)
    return config


def main() -> None:
    """Main entrypoint."""
    parser = argparse.ArgumentParser(description="chanrelay: per-owner Discord channel relay")
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=Path("config.yaml"),
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    args = parser.parse_args()

    setup_logging(args.verbose)

    try:
        config = load_settings(args.config)
    except RelayError as exc:
        logger.error("Invalid config {}: {}", args.config, exc)
        sys.exit(1)
    logger.info("Config loaded from {}", args.config)

    token = read_token(config.raw, os.environ.get("DISCORD_TOKEN"))
    if not token:
        logger.error("No Discord token: set DISCORD_TOKEN or token_file")
        sys.exit(1)

    try:
        asyncio.run(_run(config, token))
    except KeyboardInterrupt:
        logger.info("Interrupted")


async def _run(config: Config, token: str) -> None:
    """Async run loop. Open the store, wire the core, start the adapter and wait."""
    db = Database(config.database_url)
    await db.initialize()

    directory = Directory(db)
    adapter = DiscordAdapter(
        directory,
        token=token,
        retry_attempts=config.delivery_retry_attempts,
        webhook_cache_ttl=config.webhook_cache_ttl_seconds,
    )
    webhooks = WebhookResolver(db, adapter, webhook_name=config.webhook_name)
    registry = ConnectionRegistry(db, webhooks)
    mentions = MentionResolver(db)
    dispatcher = RelayDispatcher(registry, mentions, adapter)
    handler = CommandHandler(directory, registry, mentions, admin_user_ids=config.admin_user_ids)
    adapter.bind(dispatcher, handler)

    logger.info("Starting Discord adapter")
    await adapter.start()
    try:
        while True:
            await asyncio.sleep(60)
    except asyncio.CancelledError:
        logger.info("chanrelay shutting down")
        raise
    finally:
        await adapter.stop()
        await db.close()


if __name__ == "__main__":
    main()
