"""Cascading merge of configuration layers.

Layers are plain dicts read from YAML. Later layers win. A layer may be
partial: keys set to None are treated as "not specified".
"""

from __future__ import annotations

from typing import Any


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict with ``override`` laid over ``base``.

    Nested mappings merge key by key; lists and scalars are replaced
    wholesale; a None in ``override`` leaves the base value alone. Neither
    input is modified.
    """
    merged = dict(base)
    for key, value in override.items():
        if value is None:
            continue
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def merge_configs(*layers: dict[str, Any]) -> dict[str, Any]:
    """Fold config layers from lowest to highest priority."""
    merged: dict[str, Any] = {}
    for layer in layers:
        if layer:
            merged = deep_merge(merged, layer)
    return merged
