from __future__ import annotations

from collections.abc import Mapping
from typing import Any


def nested_value(source: Mapping[str, Any] | None, *keys: str) -> Any:
    """Walk ``keys`` through nested mappings, returning ``None`` on any gap."""

    current: Any = source
    for key in keys:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current
