from __future__ import annotations

from datetime import datetime

import pytest

from src.attendance_notifier.attendance_notifier.bounces.registry import BounceRegistry
from src.attendance_notifier.attendance_notifier.core.enums import BounceType
from src.attendance_notifier.attendance_notifier.core.exceptions import NotFoundError
from tests.fakes import FakeClock, InMemoryBounces


@pytest.fixture()
def registry():
    return BounceRegistry(InMemoryBounces(), clock=FakeClock(datetime(2024, 3, 15, 9)))


def test_hard_bounce_blocks_address(registry):
    assert registry.record(["Parent@Example.com"], BounceType.HARD, reason="550", original_email_id=7) == 1
    assert registry.is_hard_bounced("parent@example.com")
    bounce = registry.check("parent@example.com")
    assert bounce.bounce_count == 1
    assert bounce.original_email_id == 7


def test_soft_bounce_does_not_block(registry):
    registry.record(["parent@example.com"], BounceType.SOFT, reason="mailbox full")
    registry.record(["parent@example.com"], BounceType.SOFT, reason="mailbox full")
    assert not registry.is_hard_bounced("parent@example.com")
    assert registry.check("parent@example.com").bounce_count == 2


def test_hard_bounce_is_sticky(registry):
    registry.record(["parent@example.com"], BounceType.HARD, reason="550")
    registry.record(["parent@example.com"], BounceType.SOFT, reason="421")
    bounce = registry.check("parent@example.com")
    assert bounce.type == BounceType.HARD
    assert bounce.bounce_count == 2


def test_remove_clears_history(registry):
    registry.record(["parent@example.com"], BounceType.HARD)
    registry.remove("parent@example.com")
    assert registry.check("parent@example.com") is None
    assert not registry.is_hard_bounced("parent@example.com")
    with pytest.raises(NotFoundError):
        registry.remove("parent@example.com")


def test_hard_bounced_among_and_listing(registry):
    registry.record(["a@example.com"], BounceType.HARD)
    registry.record(["b@example.com"], BounceType.SOFT)
    assert registry.hard_bounced_among(["a@example.com", "b@example.com"]) == {"a@example.com"}
    assert [b.email for b in registry.list_bounces(BounceType.SOFT)] == ["b@example.com"]
    assert len(registry.list_bounces()) == 2
