from __future__ import annotations

from dataclasses import dataclass
from html import escape
from typing import Optional

from ..alerts.model import Alert
from ..core.constants import MAX_EMAIL_SUBJECT_LENGTH
from ..core.enums import AlertType
from ..students.model import Student, Subject

_TITLES = {
    AlertType.CONSECUTIVE_ABSENCE: "Consecutive absences",
    AlertType.LOW_ATTENDANCE: "Low attendance",
    AlertType.PATTERN_WARNING: "Attendance pattern",
}


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str
    text: str


def _detail_lines(alert: Alert, subject: Optional[Subject]) -> list[tuple[str, str]]:
    d = alert.details
    lines = [("Alert", _TITLES.get(alert.type, alert.type.value)), ("Severity", alert.severity.value.title())]
    if subject is not None:
        lines.append(("Subject", f"{subject.subject_code} - {subject.subject_name}"))
    if d.consecutive_days is not None:
        lines.append(("Consecutive days absent", str(d.consecutive_days)))
    if d.attendance_rate is not None:
        lines.append(("Attendance rate", f"{d.attendance_rate:g}%"))
    if d.threshold is not None:
        unit = "%" if alert.type == AlertType.LOW_ATTENDANCE else " days"
        lines.append(("Threshold", f"{d.threshold:g}{unit}"))
    if d.start_date and d.end_date:
        lines.append(("Period", f"{d.start_date.isoformat()} to {d.end_date.isoformat()}"))
    return lines


def render_alert_email(alert: Alert, student: Student, subject: Optional[Subject] = None) -> RenderedEmail:
    """Guardian-facing email for an alert. All interpolated values are escaped."""
    title = f"Attendance Alert for {student.first_name} {student.last_name}"
    lines = _detail_lines(alert, subject)

    rows = "\n".join(
        f"<tr><td style=\"padding:4px 12px 4px 0;color:#555\">{escape(k)}</td><td>{escape(v)}</td></tr>"
        for k, v in lines
    )
    html = f"""<html>
<body style="font-family:Arial,sans-serif">
<h2>{escape(title)}</h2>
<p>{escape(alert.message)}</p>
<table>
{rows}
</table>
<p style="color:#888;font-size:12px">Student number: {escape(student.student_number)}</p>
</body>
</html>"""

    text = "\n".join([title, "", alert.message, ""] + [f"{k}: {v}" for k, v in lines])
    return RenderedEmail(subject=title[:MAX_EMAIL_SUBJECT_LENGTH], html=html, text=text)
