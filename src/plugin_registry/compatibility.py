"""Compatibility derivation and merging.

Sources, lowest precedence first: peerDependencies, the package's own
``compatiblePackages`` block, extended metadata. Local patches are applied
later by :mod:`plugin_registry.patches`. Each stage replaces whole per-tool
entries of the previous result.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog
from pydantic import ValidationError

from plugin_registry.models.plugin import (
    TOOLS,
    Compatibility,
    CompatibleTool,
    IncompatibleTool,
    PartialCompatibility,
    UnknownTool,
)

log = structlog.get_logger()

ToolEntry = CompatibleTool | IncompatibleTool | UnknownTool


def derive_from_peer_dependencies(peer_deps: Mapping[str, str] | None) -> Compatibility:
    """A declared peer range means ``compatible``; no declaration means ``unknown``."""
    peer_deps = peer_deps or {}
    entries: dict[str, ToolEntry] = {}
    for tool in TOOLS:
        versions = peer_deps.get(tool)
        entries[tool] = CompatibleTool(versions=versions) if versions else UnknownTool()
    return Compatibility(**entries)


def merge_compatibility(
    base: Compatibility, overrides: Mapping[str, ToolEntry] | None
) -> Compatibility:
    if not overrides:
        return base
    update = {tool: overrides[tool] for tool in TOOLS if overrides.get(tool) is not None}
    return base.model_copy(update=update)


def validate_compatible_packages(data: Any, package: str) -> dict[str, ToolEntry] | None:
    """Validate a self-declared ``compatiblePackages`` block.

    Returns only the tools the block declares. Any invalid entry rejects the
    whole block.
    """
    if data is None:
        return None
    try:
        partial = PartialCompatibility.model_validate(data)
    except ValidationError as exc:
        log.warning(
            "compatible_packages_invalid",
            package=package,
            errors=exc.error_count(),
        )
        return None
    return partial.declared()


def from_extended_metadata(metadata: Mapping[str, Any] | None) -> dict[str, ToolEntry]:
    """Compatibility declared by an already validated extended metadata document."""
    if not metadata:
        return {}
    declared = metadata.get("compatibility") or {}
    result: dict[str, ToolEntry] = {}
    for tool in TOOLS:
        entry = declared.get(tool)
        if entry is None or not entry["versions"]:
            continue
        reasons = [item["reason"] for item in entry.get("incompatibilities") or []]
        result[tool] = CompatibleTool(
            versions=entry["versions"],
            note="; ".join(reasons) if reasons else None,
        )
    return result
