from __future__ import annotations

import itertools
from datetime import datetime

import pytest

from src.attendance_notifier.attendance_notifier.core.enums import UnsubscribeStatus
from src.attendance_notifier.attendance_notifier.core.exceptions import NotFoundError, ValidationError
from src.attendance_notifier.attendance_notifier.unsubscribes.registry import (
    UnsubscribeRegistry,
    generate_unsubscribe_token,
)
from tests.fakes import FakeClock, InMemoryUnsubscribes


@pytest.fixture()
def tokens():
    counter = itertools.count(1)
    issued = []

    def factory():
        token = f"tok-{next(counter)}"
        issued.append(token)
        return token

    factory.issued = issued
    return factory


@pytest.fixture()
def registry(tokens):
    return UnsubscribeRegistry(InMemoryUnsubscribes(), token_factory=tokens, clock=FakeClock(datetime(2024, 3, 15, 9)))


def test_generated_token_is_64_hex_chars():
    token = generate_unsubscribe_token()
    assert len(token) == 64
    int(token, 16)
    assert token != generate_unsubscribe_token()


def test_unsubscribe_is_idempotent(registry, tokens):
    first = registry.unsubscribe("Parent@Example.com ", "moved away")
    second = registry.unsubscribe("parent@example.com")

    assert first == second == "tok-1"
    assert tokens.issued == ["tok-1"]
    assert registry.is_unsubscribed("PARENT@example.com")


def test_resubscribe_and_unsubscribe_again_keeps_token(registry):
    token = registry.unsubscribe("parent@example.com")

    assert registry.resubscribe(token) == UnsubscribeStatus.RESUBSCRIBED
    assert not registry.is_unsubscribed("parent@example.com")
    assert registry.resubscribe(token) == UnsubscribeStatus.RESUBSCRIBED

    assert registry.unsubscribe("parent@example.com", "again") == token
    assert registry.is_unsubscribed("parent@example.com")


def test_unknown_token(registry):
    with pytest.raises(NotFoundError):
        registry.resubscribe("nope")
    with pytest.raises(ValidationError):
        registry.resubscribe("  ")


def test_invalid_email_and_long_reason(registry):
    with pytest.raises(ValidationError):
        registry.unsubscribe("not-an-address")
    with pytest.raises(ValidationError):
        registry.unsubscribe("parent@example.com", "x" * 501)


def test_unsubscribed_among(registry):
    registry.unsubscribe("a@example.com")
    registry.unsubscribe("b@example.com")
    registry.resubscribe("tok-2")
    assert registry.unsubscribed_among(["a@example.com", "b@example.com", "c@example.com"]) == {"a@example.com"}
    assert [u.email for u in registry.list_unsubscribed()] == ["a@example.com"]
