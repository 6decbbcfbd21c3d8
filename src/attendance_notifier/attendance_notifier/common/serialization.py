"""Serialization boundary between domain objects and external interfaces.

Domain dataclasses carry storage details (integer keys, claim tokens) that
must not leak. ``to_public`` is the only way entities leave the core.
"""
from __future__ import annotations

from dataclasses import fields, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any

# Primary key field per entity -> exposed as string "id".
_ID_FIELDS = ("alert_id", "email_id", "unsubscribe_id", "bounce_id", "config_id")

# Storage-only fields that never cross the boundary.
_INTERNAL_FIELDS = frozenset({"claim_token", "claimed_at", "token"})


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if is_dataclass(value) and not isinstance(value, type):
        return to_public(value)
    if isinstance(value, (list, tuple)):
        return [_value(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _value(v) for k, v in value.items()}
    return value


def to_public(entity: Any, *, include: tuple[str, ...] = ()) -> dict:
    """Convert a domain dataclass to a JSON-safe camelCase dict.

    ``include`` re-admits internal fields for trusted callers (e.g. the
    unsubscribe token returned to the person who just opted out).
    """
    if not is_dataclass(entity) or isinstance(entity, type):
        raise TypeError(f"to_public expects a dataclass instance, got {type(entity)!r}")

    out: dict[str, Any] = {}
    for f in fields(entity):
        if f.name in _INTERNAL_FIELDS and f.name not in include:
            continue
        value = getattr(entity, f.name)
        if f.name in _ID_FIELDS:
            out["id"] = str(value) if value is not None else None
            continue
        if f.name.endswith("_id") and isinstance(value, int):
            value = str(value)
        out[_camel(f.name)] = _value(value)
    return out
