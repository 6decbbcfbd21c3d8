from __future__ import annotations

import pytest

from src.attendance_notifier.attendance_notifier.alerts.model import AlertFilter
from src.attendance_notifier.attendance_notifier.core.enums import AlertType, AttendanceStatus, RecipientRole, Role
from src.attendance_notifier.attendance_notifier.core.exceptions import (
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from tests.fakes import GUARDIAN, TODAY, days_ending


def _streak(p, student_id=1, count=3):
    days = days_ending(TODAY, count + 1)
    p.attendance.mark(student_id, days[0], AttendanceStatus.PRESENT)
    p.attendance.mark_days(student_id, days[1:], AttendanceStatus.ABSENT)
    return p.evaluator.evaluate(student_id).created


def test_acknowledge_sets_all_three_fields(pipeline):
    alert = _streak(pipeline)
    acked = pipeline.alert_service.acknowledge(alert.alert_id, user_id=2)
    assert acked.acknowledged is True
    assert acked.acknowledged_by == 2
    assert acked.acknowledged_at == pipeline.clock()


def test_first_acknowledger_wins(pipeline):
    alert = _streak(pipeline)
    pipeline.alert_service.acknowledge(alert.alert_id, user_id=2)
    pipeline.clock.advance(minutes=5)
    again = pipeline.alert_service.acknowledge(alert.alert_id, user_id=1)
    assert again.acknowledged_by == 2


def test_acknowledge_unknown_alert_or_user(pipeline):
    with pytest.raises(NotFoundError):
        pipeline.alert_service.acknowledge(404, user_id=1)
    alert = _streak(pipeline)
    with pytest.raises(ValidationError):
        pipeline.alert_service.acknowledge(alert.alert_id, user_id=55)


def test_acknowledge_many_counts_only_newly_closed(pipeline):
    a1 = _streak(pipeline, 1)
    a2 = _streak(pipeline, 2)
    pipeline.alert_service.acknowledge(a1.alert_id, user_id=1)

    assert pipeline.alert_service.acknowledge_many([a1.alert_id, a2.alert_id, a2.alert_id, 999], user_id=2) == 1
    assert pipeline.alerts.get_by_id(a1.alert_id).acknowledged_by == 1
    assert pipeline.alerts.get_by_id(a2.alert_id).acknowledged_by == 2


def test_acknowledge_many_requires_ids(pipeline):
    with pytest.raises(ValidationError):
        pipeline.alert_service.acknowledge_many([], user_id=1)


def test_list_alerts_populates_names(pipeline):
    alert = _streak(pipeline)
    pipeline.alert_service.acknowledge(alert.alert_id, user_id=1)

    views, total = pipeline.alert_service.list_alerts(AlertFilter(student_id=1), populate=True)
    assert total == 1
    assert views[0].student_name == "Ana Reyes"
    assert views[0].student_number == "S-0001"
    assert views[0].acknowledged_by_name == "Registrar"

    items, _ = pipeline.alert_service.list_alerts(AlertFilter(acknowledged=False))
    assert items == []


def test_summary_counts_open_alerts(pipeline):
    _streak(pipeline, 1, count=3)
    _streak(pipeline, 2, count=6)
    s = pipeline.alert_service.summary()
    assert (s.total, s.warning, s.critical) == (2, 1, 1)
    assert s.by_type == {"consecutive_absence": 2}


def test_scan_evaluates_each_enabled_type_per_student(pipeline):
    days = days_ending(TODAY, 10)
    pipeline.attendance.mark_days(1, days[:5], AttendanceStatus.PRESENT)
    pipeline.attendance.mark_days(1, days[5:], AttendanceStatus.ABSENT)
    pipeline.attendance.mark_days(2, days, AttendanceStatus.PRESENT)

    report = pipeline.alert_service.scan()
    assert report.students == 2
    assert report.evaluations == 4
    assert report.created == 2
    assert report.not_triggered == 2
    assert {a.type for a in pipeline.alerts.all} == {AlertType.CONSECUTIVE_ABSENCE, AlertType.LOW_ATTENDANCE}

    rerun = pipeline.alert_service.scan()
    assert rerun.created == 0
    assert rerun.duplicates == 2

    window = pipeline.evaluator.default_window()
    open_alert = pipeline.alerts.find_open_overlapping(1, AlertType.LOW_ATTENDANCE, window.start, window.end)
    assert open_alert is not None
    assert open_alert.details.attendance_rate == 50.0


def test_update_config_is_admin_only_and_validated(pipeline):
    with pytest.raises(AuthorizationError):
        pipeline.alert_service.update_config(current_role=Role.STAFF, user_id=2, changes={"low_attendance_threshold": 70})
    with pytest.raises(ValidationError):
        pipeline.alert_service.update_config(current_role=Role.ADMIN, user_id=1, changes={"consecutive_absence_threshold": 31})
    with pytest.raises(ValidationError):
        pipeline.alert_service.update_config(current_role=Role.ADMIN, user_id=1, changes={"email_recipients": ["janitor"]})
    with pytest.raises(ValidationError):
        pipeline.alert_service.update_config(current_role=Role.ADMIN, user_id=1, changes={"bogus": 1})

    config = pipeline.alert_service.update_config(
        current_role=Role.ADMIN, user_id=1, changes={"low_attendance_threshold": 75, "email_recipients": ["guardian", "student"]}
    )
    assert config.low_attendance_threshold == 75.0
    assert config.email_recipients == (RecipientRole.GUARDIAN, RecipientRole.STUDENT)
    assert config.updated_by == 1
    assert pipeline.alert_service.get_config() == config


def test_reschedule_skips_alerts_with_recorded_decision(pipeline):
    pipeline.unsubscribes.unsubscribe(GUARDIAN)
    alert = _streak(pipeline)
    assert pipeline.alerts.get_by_id(alert.alert_id).notification_skip_reason == "no-eligible-recipients"
    assert pipeline.alert_service.reschedule_unnotified() == 0
