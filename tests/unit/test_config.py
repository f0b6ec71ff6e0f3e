"""
Unit tests for application settings.

Tests cover:
- Defaults (port, route prefix, route module)
- Reading the connection string from MONGO_URI
- Prefixed environment overrides
- Field validation and normalization
- Settings caching
"""

import pytest
from pydantic import ValidationError

from api.src.config import Settings, get_settings, clear_settings_cache


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove variables that would leak in from the host environment."""
    for name in ("MONGO_URI", "USERS_API_MONGO_URI", "USERS_API_PORT", "USERS_API_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    yield
    clear_settings_cache()


class TestDefaults:
    """Default values."""

    def test_listens_on_port_5000(self):
        settings = Settings(_env_file=None)
        assert settings.port == 5000
        assert settings.host == "0.0.0.0"

    def test_mounts_users_router_under_api_users(self):
        settings = Settings(_env_file=None)
        assert settings.routes_prefix == "/api/users"
        assert settings.routes_module == "api.src.routers.users:router"

    def test_mongo_uri_unset_by_default(self):
        assert Settings(_env_file=None).mongo_uri is None

    def test_cors_allows_any_origin(self):
        assert Settings(_env_file=None).cors_origins == ["*"]


class TestEnvironment:
    """Environment variable loading."""

    def test_reads_bare_mongo_uri(self, monkeypatch):
        monkeypatch.setenv("MONGO_URI", "mongodb://db.internal:27017/app")
        assert Settings(_env_file=None).mongo_uri == "mongodb://db.internal:27017/app"

    def test_reads_prefixed_mongo_uri(self, monkeypatch):
        monkeypatch.setenv("USERS_API_MONGO_URI", "mongodb://other:27017")
        assert Settings(_env_file=None).mongo_uri == "mongodb://other:27017"

    def test_prefixed_port_override(self, monkeypatch):
        monkeypatch.setenv("USERS_API_PORT", "8080")
        assert Settings(_env_file=None).port == 8080

    def test_reads_dotenv_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("MONGO_URI=mongodb://from-dotenv:27017\nUSERS_API_PORT=6000\n")

        settings = Settings(_env_file=str(env_file))

        assert settings.mongo_uri == "mongodb://from-dotenv:27017"
        assert settings.port == 6000


class TestValidation:
    """Field validators."""

    def test_log_level_is_uppercased(self):
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_rejects_unknown_log_level(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_level="chatty")

    def test_rejects_unknown_environment(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, environment="qa")

    def test_rejects_unknown_log_format(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_format="xml")

    def test_rejects_port_out_of_range(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, port=70000)

    @pytest.mark.parametrize("raw", ["api/users", "/api/users/", "api/users/"])
    def test_routes_prefix_is_normalized(self, raw):
        assert Settings(_env_file=None, routes_prefix=raw).routes_prefix == "/api/users"

    def test_rejects_root_routes_prefix(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, routes_prefix="/")

    def test_empty_cors_origins_fall_back_to_any(self):
        assert Settings(_env_file=None, cors_origins=[]).cors_origins == ["*"]

    def test_json_logs_follows_log_format(self):
        assert Settings(_env_file=None, log_format="json").json_logs is True
        assert Settings(_env_file=None, log_format="text").json_logs is False


class TestCaching:
    """get_settings caching."""

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_clear_settings_cache_reloads(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("USERS_API_PORT", "7000")
        clear_settings_cache()
        second = get_settings()

        assert second is not first
        assert second.port == 7000
