"""Local patches: per-package overrides and exclusions.

One JSON document per file in the patches directory. A broken or nameless
patch file is logged and skipped; it never stops the run.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from plugin_registry.compatibility import merge_compatibility
from plugin_registry.models.patch import PluginPatch

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from plugin_registry.models.plugin import RegistryPlugin

log = structlog.get_logger()

PATCH_SUFFIX = ".json"


def load_patches(patches_dir: str | Path) -> dict[str, PluginPatch]:
    """Load every ``*.json`` patch, keyed by package name. Later files win."""
    patches_dir = Path(patches_dir)
    if not patches_dir.is_dir():
        log.debug("patches_dir_missing", path=str(patches_dir))
        return {}

    patches: dict[str, PluginPatch] = {}
    for path in sorted(patches_dir.iterdir()):
        if path.suffix != PATCH_SUFFIX or not path.is_file():
            continue
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            log.warning("patch_load_failed", file=path.name, error=str(exc))
            continue

        if not isinstance(raw, dict) or not raw.get("packageName"):
            log.warning("patch_missing_package_name", file=path.name)
            continue

        try:
            patch = PluginPatch.model_validate(raw)
        except ValidationError as exc:
            log.warning("patch_load_failed", file=path.name, error=str(exc))
            continue

        if patch.package_name in patches:
            log.warning("patch_duplicate", package=patch.package_name, file=path.name)
        patches[patch.package_name] = patch

    log.info("patches_loaded", count=len(patches))
    return patches


def apply_patch(plugin: RegistryPlugin, patch: PluginPatch) -> RegistryPlugin | None:
    """Apply one patch. ``None`` means the plugin is excluded.

    The input plugin is never modified.
    """
    if patch.exclude is not None and patch.exclude.enabled:
        return None

    overrides = patch.overrides
    if overrides is None:
        return plugin.model_copy()

    update: dict[str, object] = {}
    if "description" in overrides.model_fields_set and overrides.description is not None:
        update["description"] = overrides.description
    if overrides.links is not None:
        update["links"] = plugin.links.model_copy(
            update=overrides.links.model_dump(exclude_unset=True)
        )
    if overrides.compatibility is not None:
        update["compatibility"] = merge_compatibility(
            plugin.compatibility, overrides.compatibility.declared()
        )
    return plugin.model_copy(update=update)


def apply_patches(
    plugins: Iterable[RegistryPlugin], patches: Mapping[str, PluginPatch]
) -> list[RegistryPlugin]:
    result: list[RegistryPlugin] = []
    for plugin in plugins:
        patch = patches.get(plugin.name)
        if patch is None:
            result.append(plugin)
            continue
        patched = apply_patch(plugin, patch)
        if patched is None:
            log.info("plugin_excluded", package=plugin.name, reason=patch.exclude.reason)
            continue
        result.append(patched)
    return result
