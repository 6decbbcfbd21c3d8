from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: a staff account (acknowledges alerts, receives escalations)."""

    user_id: int
    name: str
    email: str
    role: Role
    is_active: bool = True
