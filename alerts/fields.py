"""Schema-checked lookup of dotted field paths inside a metrics snapshot.

Rules reference snapshot values with paths such as
``core_metrics.latency.average_latency_ms``. Each path is validated against
the snapshot dataclasses once and compiled into an accessor that also knows
the display unit declared in the field metadata.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, fields, is_dataclass
from functools import lru_cache
from operator import attrgetter
from typing import Any, Callable, Optional, get_type_hints

from metrics.snapshot import MetricsSnapshot

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")

# Legacy names accepted in rule files.
_ALIASES = {
    "interop_status": "operational_status",
    "last_update_timestamp": "generated_at",
    "data_window_start": "window_start",
    "data_window_end": "window_end",
}


@dataclass(frozen=True, slots=True)
class FieldAccessor:
    path: str
    name: str
    unit: str
    getter: Callable[[Any], Any]

    def __call__(self, snapshot: MetricsSnapshot) -> Any:
        try:
            return self.getter(snapshot)
        except AttributeError:
            return None


def normalize_path(path: str) -> str:
    parts = []
    for part in path.strip().split("."):
        snake = _CAMEL_BOUNDARY.sub("_", part).lower()
        parts.append(_ALIASES.get(snake, snake))
    return ".".join(parts)


@lru_cache(maxsize=256)
def resolve_field(path: str) -> Optional[FieldAccessor]:
    """Compile ``path`` into an accessor, or ``None`` when it is not in the schema."""

    if not path or not path.strip():
        return None
    normalized = normalize_path(path)
    current: Any = MetricsSnapshot
    unit = ""
    for part in normalized.split("."):
        if not (isinstance(current, type) and is_dataclass(current)):
            return None
        declared = {f.name: f for f in fields(current)}
        if part not in declared:
            return None
        unit = declared[part].metadata.get("unit", "")
        current = get_type_hints(current)[part]
    return FieldAccessor(
        path=normalized,
        name=normalized.rsplit(".", 1)[-1],
        unit=unit,
        getter=attrgetter(normalized),
    )


def get_field_value(snapshot: MetricsSnapshot, path: str) -> Any:
    accessor = resolve_field(path)
    if accessor is None:
        return None
    return accessor(snapshot)


__all__ = ["FieldAccessor", "get_field_value", "normalize_path", "resolve_field"]
