"""Configuration package for SkillForge."""

from skillforge.config.app_config import (
    AppConfig,
    LLMSettings,
    ProviderConfig,
    UploadLimits,
    clear_config_cache,
    get_provider_config,
    load_app_config,
)

__all__ = [
    "AppConfig",
    "LLMSettings",
    "ProviderConfig",
    "UploadLimits",
    "clear_config_cache",
    "get_provider_config",
    "load_app_config",
]
