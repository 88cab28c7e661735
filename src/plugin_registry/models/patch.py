from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from plugin_registry.models.plugin import PartialCompatibility


class LinkOverrides(BaseModel):
    # npm may be omitted but never cleared; repository and homepage may be nulled.
    npm: str | None = None
    repository: str | None = None
    homepage: str | None = None

    @field_validator("npm")
    @classmethod
    def npm_not_null(cls, value: str | None) -> str:
        if value is None:
            raise ValueError("links.npm cannot be null")
        return value


class PatchOverrides(BaseModel):
    # Presence matters: only fields set in the patch file replace plugin data.
    description: str | None = None
    links: LinkOverrides | None = None
    compatibility: PartialCompatibility | None = None


class PatchExclusion(BaseModel):
    enabled: bool
    reason: str = ""


class PluginPatch(BaseModel):
    """Local override or exclusion for one package (data/patches/*.json)."""

    model_config = ConfigDict(populate_by_name=True)

    package_name: str = Field(alias="packageName", min_length=1)
    overrides: PatchOverrides | None = None
    exclude: PatchExclusion | None = None
