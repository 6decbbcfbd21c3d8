from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import Role
from .model import User


class UserRepository(Protocol):
    """Repository interface for User.

    Note (DIP): services depend on this interface, never on a concrete DB.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_many(self, user_ids: Sequence[int]) -> dict[int, User]:
        raise NotImplementedError

    def list_active_by_role(self, role: Role) -> Sequence[User]:
        raise NotImplementedError
