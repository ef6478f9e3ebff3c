from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EndpointConfig(BaseModel):
    """Remote introspection endpoint for a project."""

    url: str
    headers: dict[str, str] = {}


class ProjectExtensions(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    endpoints: dict[str, EndpointConfig] = {}
    # Inline SDL, e.g. "directive @customDirective on FIELD"
    custom_directives: list[str] = Field(default=[], alias="customDirectives")
    # Globs of .graphql files holding directive definitions
    directive_paths: list[str] = Field(default=[], alias="directivePaths")

    @field_validator("endpoints", mode="before")
    @classmethod
    def coerce_endpoint_urls(cls, v: object) -> object:
        # `endpoints: {default: "https://..."}` is shorthand for `{url: ...}`
        if isinstance(v, dict):
            return {
                name: {"url": value} if isinstance(value, str) else value
                for name, value in v.items()
            }
        return v


class ProjectConfig(BaseModel):
    """One project entry of a .graphqlrc file, with paths relative to config_dir."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    config_dir: Path
    schema_path: str | None = Field(default=None, alias="schemaPath")
    includes: list[str] = []
    excludes: list[str] = []
    extensions: ProjectExtensions = ProjectExtensions()

    @field_validator("includes", "excludes", mode="before")
    @classmethod
    def coerce_single_glob(cls, v: object) -> object:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v

    @property
    def endpoint(self) -> EndpointConfig | None:
        """The `default` endpoint, else the first one declared, else None."""
        endpoints = self.extensions.endpoints
        if not endpoints:
            return None
        return endpoints.get("default") or next(iter(endpoints.values()))

    def resolve(self, relative: str) -> Path:
        """Resolve a config-relative path (absolute paths pass through)."""
        path = Path(relative).expanduser()
        if path.is_absolute():
            return path
        return self.config_dir / path
