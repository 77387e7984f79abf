"""Config schema and accessor."""

from __future__ import annotations

import os
from typing import Any

from loguru import logger

from chanrelay.core.constants import DEFAULT_DATABASE_URL
from chanrelay.core.errors import RelayConfigurationError

# Env keys that override config (loaded once per reload)
_ENV_OVERRIDE_KEYS = (
    "CHANRELAY_DATABASE_URL",
    "CHANRELAY_WEBHOOK_NAME",
)


def _load_env_overrides() -> dict[str, str]:
    return {k: os.environ.get(k, "") for k in _ENV_OVERRIDE_KEYS}


class Config:
    """Config accessor with attribute-style access for known keys."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data = data or {}
        self._env: dict[str, str] = _load_env_overrides()

    def reload(self, data: dict[str, Any], *, validate: bool = True) -> None:
        """Replace config data."""
        self._data = data or {}
        self._env = _load_env_overrides()
        if validate:
            self._validate()
        logger.debug("Config reloaded: {} admin(s)", len(self.admin_user_ids))

    def _validate(self) -> None:
        """Validate config structure; raise RelayConfigurationError on failure."""
        admins = self._data.get("admin_user_ids")
        if admins is not None:
            if not isinstance(admins, list):
                raise RelayConfigurationError(
                    "admin_user_ids must be a list",
                    code="invalid_admin_user_ids",
                    details={"type": type(admins).__name__},
                )
            for i, item in enumerate(admins):
                if isinstance(item, bool) or not str(item).isdigit():
                    raise RelayConfigurationError(
                        f"admin_user_ids[{i}] must be a user id",
                        code="invalid_admin_user_id",
                        details={"index": i},
                    )
        name = self._data.get("webhook_name")
        if name is not None and (not isinstance(name, str) or not name.strip()):
            raise RelayConfigurationError("webhook_name must be a non-empty string", code="invalid_webhook_name")
        for key in ("delivery_retry_attempts", "webhook_cache_ttl_seconds"):
            val = self._data.get(key)
            if val is not None and (isinstance(val, bool) or not isinstance(val, int) or val < 1):
                raise RelayConfigurationError(
                    f"{key} must be a positive integer",
                    code=f"invalid_{key}",
                    details={"value": val},
                )

    @property
    def raw(self) -> dict[str, Any]:
        return self._data

    @property
    def database_url(self) -> str:
        env_val = self._env.get("CHANRELAY_DATABASE_URL", "")
        if env_val.strip():
            return env_val.strip()
        return str(self._data.get("database_url") or DEFAULT_DATABASE_URL)

    @property
    def webhook_name(self) -> str | None:
        """Fixed webhook name (single-tenant); None names webhooks after their owner."""
        env_val = self._env.get("CHANRELAY_WEBHOOK_NAME", "")
        if env_val.strip():
            return env_val.strip()
        val = self._data.get("webhook_name")
        if val and isinstance(val, str) and val.strip():
            return val.strip()
        return None

    @property
    def admin_user_ids(self) -> list[int]:
        val = self._data.get("admin_user_ids")
        if isinstance(val, list):
            return [int(v) for v in val]
        return []

    @property
    def delivery_retry_attempts(self) -> int:
        return int(self._data.get("delivery_retry_attempts", 3))

    @property
    def webhook_cache_ttl_seconds(self) -> int:
        return int(self._data.get("webhook_cache_ttl_seconds", 86400))
