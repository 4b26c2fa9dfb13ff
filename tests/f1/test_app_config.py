"""Tests for app configuration (F1).

Tests the configuration loading, provider configs, and fallbacks.
"""

import pytest

from skillforge.config.app_config import (
    CONFIG_FILE,
    MB,
    AppConfig,
    ProviderConfig,
    clear_config_cache,
    get_provider_config,
    load_app_config,
)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Run every test from an empty working directory with a cold cache."""
    monkeypatch.chdir(tmp_path)
    clear_config_cache()
    yield tmp_path
    clear_config_cache()


def write_config(root, text: str) -> None:
    path = root / CONFIG_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


class TestLoadAppConfig:
    """Tests for load_app_config function."""

    def test_defaults_without_file(self):
        """Built-in defaults are used when no YAML file exists."""
        config = load_app_config()
        assert isinstance(config, AppConfig)
        assert config.llm.provider == "gemini"
        assert config.llm.model is None
        assert set(config.providers) == {"gemini", "openai", "lmstudio"}

    def test_default_paths(self):
        """Database and storage locations have defaults."""
        config = load_app_config()
        assert config.db_path.as_posix() == "db/skillforge.db"
        assert config.storage_dir.as_posix() == "data/storage"

    def test_default_upload_limits(self):
        """Upload limits match the platform's documented sizes."""
        uploads = load_app_config().uploads
        assert uploads.max_media_bytes == 200 * MB
        assert uploads.max_text_bytes == 5 * MB
        assert uploads.max_ai_bytes == 20 * MB
        assert "video/mp4" in uploads.accepted_types("video")
        assert "audio/mpeg" in uploads.accepted_types("audio")
        assert "application/pdf" in uploads.accepted_types("text")
        assert uploads.accepted_types("image") == []

    def test_yaml_overrides_merge_with_defaults(self, isolated_config):
        """Values in the YAML file win, untouched keys keep defaults."""
        write_config(
            isolated_config,
            """
llm:
  provider: openai
  temperature: 0.2
uploads:
  max_ai_mb: 1
paths:
  db_path: other/app.db
""",
        )
        config = load_app_config()
        assert config.llm.provider == "openai"
        assert config.llm.temperature == 0.2
        assert config.llm.max_tokens == 4096
        assert config.uploads.max_ai_bytes == 1 * MB
        assert config.uploads.max_media_bytes == 200 * MB
        assert config.db_path.as_posix() == "other/app.db"
        assert config.storage_dir.as_posix() == "data/storage"

    def test_empty_yaml_file(self, isolated_config):
        """An empty file behaves like no file."""
        write_config(isolated_config, "")
        assert load_app_config().llm.provider == "gemini"

    def test_config_is_cached(self, isolated_config):
        """Second load returns the cached object until reload is forced."""
        first = load_app_config()
        write_config(isolated_config, "llm:\n  provider: lmstudio\n")
        assert load_app_config() is first
        assert load_app_config(force_reload=True).llm.provider == "lmstudio"


class TestGetProviderConfig:
    """Tests for get_provider_config function."""

    def test_known_provider(self):
        """Returns ProviderConfig for gemini."""
        config = get_provider_config("gemini")
        assert isinstance(config, ProviderConfig)
        assert config.api_key_env == "GEMINI_API_KEY"
        assert config.supports_json_object is True

    def test_unknown_provider(self):
        """Unknown providers return None."""
        assert get_provider_config("nonexistent") is None

    def test_api_key_from_environment(self, monkeypatch):
        """API key is read from the configured variable."""
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        assert get_provider_config("openai").get_api_key() == "sk-test"

    def test_local_provider_has_no_key(self):
        """lmstudio needs no key."""
        assert get_provider_config("lmstudio").get_api_key() is None
