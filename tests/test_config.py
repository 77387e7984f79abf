"""Test config loading, validation and env overrides."""

import tempfile
from pathlib import Path

import pytest
import yaml

from chanrelay.config import Config, load_config, read_token
from chanrelay.core.constants import DEFAULT_DATABASE_URL
from chanrelay.core.errors import RelayConfigurationError


class TestLoadConfig:
    """Test config file loading."""

    def test_load_config_from_yaml(self):
        # Arrange
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            f.write("database_url: sqlite+aiosqlite:///relay.db\n")
            f.write("admin_user_ids:\n")
            f.write("  - 123\n")
            path = f.name

        try:
            # Act
            config = load_config(path)

            # Assert
            assert config["database_url"] == "sqlite+aiosqlite:///relay.db"
            assert config["admin_user_ids"] == [123]
        finally:
            Path(path).unlink()

    def test_load_config_missing_file(self):
        assert load_config("/nonexistent/config.yaml") == {}

    def test_load_config_non_dict_is_empty(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")
        assert load_config(path) == {}

    def test_load_config_invalid_yaml_raises(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("key: [unterminated\n")
        with pytest.raises(yaml.YAMLError):
            load_config(path)


class TestConfigProperties:
    """Test typed accessors and their defaults."""

    def test_defaults(self, monkeypatch):
        # Arrange
        monkeypatch.delenv("CHANRELAY_DATABASE_URL", raising=False)
        monkeypatch.delenv("CHANRELAY_WEBHOOK_NAME", raising=False)

        # Act
        config = Config({})

        # Assert
        assert config.database_url == DEFAULT_DATABASE_URL
        assert config.webhook_name is None
        assert config.admin_user_ids == []
        assert config.delivery_retry_attempts == 3
        assert config.webhook_cache_ttl_seconds == 86400

    def test_values_from_data(self, monkeypatch):
        monkeypatch.delenv("CHANRELAY_DATABASE_URL", raising=False)
        monkeypatch.delenv("CHANRELAY_WEBHOOK_NAME", raising=False)
        data = {"database_url": "sqlite+aiosqlite:///x.db", "webhook_name": " Relay ", "admin_user_ids": ["42"]}
        config = Config(data)
        assert config.database_url == "sqlite+aiosqlite:///x.db"
        assert config.webhook_name == "Relay"
        assert config.admin_user_ids == [42]

    def test_env_overrides_data(self, monkeypatch):
        # Arrange
        monkeypatch.setenv("CHANRELAY_DATABASE_URL", "postgresql+asyncpg://db/relay")
        monkeypatch.setenv("CHANRELAY_WEBHOOK_NAME", "Env Relay")

        # Act
        config = Config({"database_url": "sqlite+aiosqlite:///x.db", "webhook_name": "File Relay"})

        # Assert
        assert config.database_url == "postgresql+asyncpg://db/relay"
        assert config.webhook_name == "Env Relay"


class TestConfigValidation:
    """Test reload-time validation."""

    def test_valid_config_reloads(self):
        config = Config()
        config.reload({"admin_user_ids": [1, "2"], "delivery_retry_attempts": 5})
        assert config.admin_user_ids == [1, 2]
        assert config.delivery_retry_attempts == 5

    @pytest.mark.parametrize(
        ("data", "code"),
        [
            ({"admin_user_ids": "123"}, "invalid_admin_user_ids"),
            ({"admin_user_ids": ["abc"]}, "invalid_admin_user_id"),
            ({"admin_user_ids": [True]}, "invalid_admin_user_id"),
            ({"webhook_name": "   "}, "invalid_webhook_name"),
            ({"delivery_retry_attempts": 0}, "invalid_delivery_retry_attempts"),
            ({"webhook_cache_ttl_seconds": "soon"}, "invalid_webhook_cache_ttl_seconds"),
        ],
    )
    def test_invalid_config_raises(self, data, code):
        with pytest.raises(RelayConfigurationError) as exc_info:
            Config().reload(data)
        assert exc_info.value.code == code

    def test_reload_without_validation(self):
        config = Config()
        config.reload({"admin_user_ids": "nonsense"}, validate=False)
        assert config.admin_user_ids == []


class TestReadToken:
    """Test bot token resolution."""

    def test_env_token_wins(self, tmp_path):
        token_file = tmp_path / "token"
        token_file.write_text("from-file\n")
        assert read_token({"token_file": str(token_file)}, " from-env ") == "from-env"

    def test_token_file_fallback(self, tmp_path):
        token_file = tmp_path / "token"
        token_file.write_text("from-file\n")
        assert read_token({"token_file": str(token_file)}, None) == "from-file"

    def test_missing_token(self, tmp_path):
        assert read_token({}, "") is None
        assert read_token({"token_file": str(tmp_path / "absent")}, None) is None
