from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import AttendanceRecord, AttendanceWindow


class AttendanceRepository(Protocol):
    def get_attendance(
        self,
        student_id: int,
        subject_id: Optional[int],
        window: AttendanceWindow,
    ) -> Sequence[AttendanceRecord]:
        """Records inside the window, ordered by date ascending."""

        raise NotImplementedError
