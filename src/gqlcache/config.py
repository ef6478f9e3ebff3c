"""Service settings.

Settings are loaded in priority order (highest first):
  1. Environment variables  (GQLCACHE__LOGGING__LEVEL=DEBUG)
  2. gqlcache.yaml          (searched in cwd, then platform config dir)
  3. Hardcoded defaults

Per-project GraphQL configuration (.graphqlrc) is not a setting; see
project_config.py.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)


def _find_config_file() -> str | None:
    """Return the path of the first gqlcache.yaml found, or None."""
    candidates = [
        Path("gqlcache.yaml"),
        Path(platformdirs.user_config_dir("gqlcache")) / "gqlcache.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class EndpointSettings(BaseModel):
    timeout_seconds: float = 30.0
    user_agent: str = "gqlcache/1.0"
    max_connections: int = 10


class IndexSettings(BaseModel):
    # Host-language files whose GraphQL lives in tagged template literals
    embedded_extensions: list[str] = [".js", ".jsx", ".ts", ".tsx"]


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: GQLCACHE__ENDPOINT__TIMEOUT_SECONDS=5
        env_prefix="GQLCACHE__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    endpoint: EndpointSettings = EndpointSettings()
    index: IndexSettings = IndexSettings()
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
            init_settings,
            env_settings,
            YamlConfigSettingsSource(settings_cls),
        )
