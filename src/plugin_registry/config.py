"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (PLUGIN_REGISTRY__FETCHER__TIMEOUT_SECONDS=10)
  2. plugin-registry.yaml   (searched in cwd, then the per-user config dir)
  3. Hardcoded defaults

The config file is optional — all fields have sensible defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

CONFIG_FILE_NAME = "plugin-registry.yaml"
_DEFAULT_CONFIG_DIR = platformdirs.user_config_dir("plugin-registry")


def _find_config_file() -> str | None:
    """Return the path of the first plugin-registry.yaml found, or None."""
    candidates = [
        Path(CONFIG_FILE_NAME),
        Path(_DEFAULT_CONFIG_DIR) / CONFIG_FILE_NAME,
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class RegistrySettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    url: str = "https://registry.npmjs.org"
    search_page_size: int = Field(default=250, ge=1, le=250)
    max_search_results: int = Field(default=5000, ge=1)
    concurrency: int = Field(default=20, ge=1)
    timeout_seconds: float = Field(default=30.0, gt=0)
    max_retries: int = Field(default=3, ge=0)
    retry_backoff_seconds: float = Field(default=1.0, ge=0)


class FetcherSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    concurrency: int = Field(default=5, ge=1)
    timeout_seconds: float = Field(default=5.0, gt=0)
    user_agent: str = "vite-plugin-registry/1.0"


class CollectorSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    keywords: list[str] = ["vite-plugin", "rollup-plugin", "rolldown-plugin", "unplugin"]
    # TODO: drop once @rollup/plugins publish the rollup-plugin keyword (rollup/plugins#1955)
    scopes: list[str] = ["@rollup/plugin-"]


class PathSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    data_dir: str = "data/plugins"
    patches_dir: str = "data/patches"
    output_file: str = "data/plugin-data.json"


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: PLUGIN_REGISTRY__REGISTRY__URL=...
        env_prefix="PLUGIN_REGISTRY__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    registry: RegistrySettings = RegistrySettings()
    fetcher: FetcherSettings = FetcherSettings()
    collector: CollectorSettings = CollectorSettings()
    paths: PathSettings = PathSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
