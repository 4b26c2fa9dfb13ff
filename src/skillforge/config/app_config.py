"""SkillForge settings: LLM providers, upload limits and paths.

Built-in defaults are overlaid with data/config/app_config_v1.yaml when
that file exists in the working directory. The result is cached per process.

Usage:
    from skillforge.config.app_config import load_app_config

    limits = load_app_config().uploads
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger(__name__)

# Config file path (relative to working directory)
CONFIG_FILE = Path("data/config/app_config_v1.yaml")

MB = 1024 * 1024


@dataclass
class ProviderConfig:
    """Endpoint and capabilities of an OpenAI-compatible provider."""

    base_url: str | None
    default_model: str
    api_key_env: str | None = None
    supports_json_object: bool = False

    def get_api_key(self) -> str | None:
        """Key read from the configured environment variable, if any."""
        if self.api_key_env:
            return os.environ.get(self.api_key_env)
        return None


@dataclass
class LLMSettings:
    """Active LLM selection and sampling defaults."""

    provider: str = "gemini"
    model: str | None = None  # None = provider default_model
    temperature: float = 0.7
    max_tokens: int = 4096
    timeout: int = 120


@dataclass
class UploadLimits:
    """Size limits and accepted MIME types for uploads."""

    max_media_bytes: int = 200 * MB
    max_text_bytes: int = 5 * MB
    max_ai_bytes: int = 20 * MB
    video_types: list[str] = field(default_factory=list)
    audio_types: list[str] = field(default_factory=list)
    text_types: list[str] = field(default_factory=list)

    def accepted_types(self, content_type: str) -> list[str]:
        """Accepted MIME types for a content type."""
        return {
            "video": self.video_types,
            "audio": self.audio_types,
            "text": self.text_types,
        }.get(content_type, [])


@dataclass
class AppConfig:
    """Resolved settings for one process."""

    providers: dict[str, ProviderConfig] = field(default_factory=dict)
    llm: LLMSettings = field(default_factory=LLMSettings)
    uploads: UploadLimits = field(default_factory=UploadLimits)
    paths: dict[str, str] = field(default_factory=dict)

    @property
    def db_path(self) -> Path:
        return Path(self.paths.get("db_path", "db/skillforge.db"))

    @property
    def storage_dir(self) -> Path:
        return Path(self.paths.get("storage_dir", "data/storage"))


_cached_config: AppConfig | None = None


def _get_defaults() -> dict[str, Any]:
    """Built-in settings used when no config file overrides them."""
    return {
        "providers": {
            "lmstudio": {
                "base_url": "http://localhost:1234/v1",
                "default_model": "llama-3.2-3b-instruct",
                "api_key_env": None,
                "supports_json_object": False,
            },
            "openai": {
                "base_url": "https://api.openai.com/v1",
                "default_model": "gpt-4o-mini",
                "api_key_env": "OPENAI_API_KEY",
                "supports_json_object": True,
            },
            "gemini": {
                "base_url": "https://generativelanguage.googleapis.com/v1beta/openai/",
                "default_model": "gemini-2.0-flash",
                "api_key_env": "GEMINI_API_KEY",
                "supports_json_object": True,
            },
        },
        "llm": {
            "provider": "gemini",
            "model": None,
            "temperature": 0.7,
            "max_tokens": 4096,
            "timeout": 120,
        },
        "uploads": {
            "max_media_mb": 200,
            "max_text_mb": 5,
            "max_ai_mb": 20,
            "video_types": [
                "video/mp4",
                "video/webm",
                "video/ogg",
                "video/quicktime",
                "video/x-msvideo",
                "video/x-flv",
                "video/x-matroska",
                "video/mpeg",
            ],
            "audio_types": [
                "audio/mpeg",
                "audio/wav",
                "audio/ogg",
                "audio/aac",
                "audio/flac",
                "audio/mp3",
            ],
            "text_types": [
                "text/plain",
                "application/pdf",
                "text/markdown",
                "application/msword",
                "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            ],
        },
        "paths": {
            "db_path": "db/skillforge.db",
            "storage_dir": "data/storage",
        },
    }


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base (override wins)."""
    result = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _merge(result[key], value)
        else:
            result[key] = value
    return result


def _parse_config(data: dict[str, Any]) -> AppConfig:
    """Build typed settings from the merged dictionary."""
    providers = {}
    for name, pconfig in data.get("providers", {}).items():
        providers[name] = ProviderConfig(
            base_url=pconfig.get("base_url"),
            default_model=pconfig.get("default_model", "default"),
            api_key_env=pconfig.get("api_key_env"),
            supports_json_object=pconfig.get("supports_json_object", False),
        )

    llm_data = data.get("llm", {})
    llm = LLMSettings(
        provider=llm_data.get("provider", "gemini"),
        model=llm_data.get("model"),
        temperature=llm_data.get("temperature", 0.7),
        max_tokens=llm_data.get("max_tokens", 4096),
        timeout=llm_data.get("timeout", 120),
    )

    up = data.get("uploads", {})
    uploads = UploadLimits(
        max_media_bytes=int(up.get("max_media_mb", 200) * MB),
        max_text_bytes=int(up.get("max_text_mb", 5) * MB),
        max_ai_bytes=int(up.get("max_ai_mb", 20) * MB),
        video_types=list(up.get("video_types", [])),
        audio_types=list(up.get("audio_types", [])),
        text_types=list(up.get("text_types", [])),
    )

    return AppConfig(
        providers=providers,
        llm=llm,
        uploads=uploads,
        paths=data.get("paths", {}),
    )


def load_app_config(force_reload: bool = False) -> AppConfig:
    """Settings for this process, read once and cached.

    Args:
        force_reload: Re-read the YAML file even when cached
    """
    global _cached_config

    if _cached_config is not None and not force_reload:
        return _cached_config

    data = _get_defaults()

    if CONFIG_FILE.exists():
        logger.debug("config.loading", source=str(CONFIG_FILE))
        overrides = yaml.safe_load(CONFIG_FILE.read_text(encoding="utf-8")) or {}
        data = _merge(data, overrides)
    else:
        logger.info("config.defaults")

    _cached_config = _parse_config(data)
    return _cached_config


def get_provider_config(provider: str) -> ProviderConfig | None:
    """Settings of a named provider, or None when it is not configured."""
    return load_app_config().providers.get(provider)


def clear_config_cache() -> None:
    """Forget cached settings so the next load re-reads the file."""
    global _cached_config
    _cached_config = None
