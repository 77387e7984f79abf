"""Config loading: YAML file plus .env."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from loguru import logger


def load_config(path: str | Path) -> dict[str, Any]:
    """Load config from YAML file. Use SafeLoader. Returns raw dict."""
    path = Path(path)
    if not path.exists():
        logger.warning("Config file not found: {}", path)
        return {}

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
        if not isinstance(data, dict):
            logger.warning("Config file {} has invalid structure (expected dict)", path)
            return {}
        return data
    except yaml.YAMLError as exc:
        logger.error("Failed to parse config {}: {}", path, exc)
        raise


def load_config_with_env(path: str | Path) -> dict[str, Any]:
    """Load .env into the process environment, then the YAML config."""
    from dotenv import load_dotenv

    load_dotenv()
    return load_config(path)


def read_token(config_data: dict[str, Any], env_token: str | None) -> str | None:
    """Bot token from DISCORD_TOKEN, falling back to the configured token file."""
    if env_token and env_token.strip():
        return env_token.strip()
    token_file = config_data.get("token_file")
    if not token_file:
        return None
    path = Path(str(token_file)).expanduser()
    if not path.exists():
        logger.error("Token file not found: {}", path)
        return None
    token = path.read_text().strip()
    return token or None
