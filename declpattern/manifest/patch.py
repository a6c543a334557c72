"""Applying JSON merge patches to the objects of a manifest."""

from __future__ import annotations

import copy
import logging
from typing import Any, Iterable, Mapping

from declpattern.manifest.objects import ManifestError, Object, Objects, new_object

_log = logging.getLogger(__name__)


def merge_patch(base: Any, patch: Any) -> Any:
    """Return the result of applying a JSON merge patch to base; base is not changed."""
    if not isinstance(patch, Mapping):
        return copy.deepcopy(patch)
    result = copy.deepcopy(dict(base)) if isinstance(base, Mapping) else {}
    for key, value in patch.items():
        if value is None:
            result.pop(key, None)
        else:
            result[key] = merge_patch(result.get(key), value)
    return result


def _as_object(patch: Object | Mapping) -> Object:
    if isinstance(patch, Object):
        return patch
    return new_object(dict(patch))


def _apply(base: Object, patches: list[Object]) -> dict:
    merged = copy.deepcopy(base.content)
    base_gvk = base.group_version_kind()
    for patch in patches:
        if patch.group_version_kind() != base_gvk:
            continue
        if patch.name != base.name or patch.namespace != base.namespace:
            continue
        merged = merge_patch(merged, patch.content)
    return merged


def patch_objects(objects: Objects, patches: Iterable[Object | Mapping]) -> None:
    """Patch every object in place with the patches that share its kind, name and namespace."""
    patch_list = [_as_object(p) for p in patches]
    if not patch_list:
        return

    patched_items = []
    for item in objects.items:
        _log.info("applying patches to %r", item)
        try:
            patched = _apply(item, patch_list)
        except (TypeError, ValueError) as exc:
            raise ManifestError(f"applying patch to object ({item.name}): {exc}") from exc
        patched_items.append(new_object(patched))
    objects.items[:] = patched_items

    _log.info(
        "applied patches: patches count=%d objects count=%d",
        len(patch_list),
        len(objects.items),
    )