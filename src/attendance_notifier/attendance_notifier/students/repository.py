from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Student, Subject


class StudentRepository(Protocol):
    """Read-only reference lookups; the alert pipeline never mutates students."""

    def get_by_id(self, student_id: int) -> Optional[Student]:
        raise NotImplementedError

    def get_many(self, student_ids: Sequence[int]) -> dict[int, Student]:
        raise NotImplementedError

    def list_active(self) -> Sequence[Student]:
        raise NotImplementedError


class SubjectRepository(Protocol):
    def get_by_id(self, subject_id: int) -> Optional[Subject]:
        raise NotImplementedError

    def get_many(self, subject_ids: Sequence[int]) -> dict[int, Subject]:
        raise NotImplementedError
