from __future__ import annotations

import pytest

import arodha.breaker as breaker_mod
from tests.arodha.support.fakes import FakeClock, FakeLogger, RecordingNotifier


@pytest.fixture
def fake_logger() -> FakeLogger:
    """Provide a fresh structured logger test double per test."""
    return FakeLogger()


@pytest.fixture
def fake_clock(monkeypatch: pytest.MonkeyPatch) -> FakeClock:
    """Drive every breaker in the test from a hand-advanced clock."""
    clock = FakeClock()
    monkeypatch.setattr(breaker_mod, "_monotonic", clock.now)
    return clock


@pytest.fixture
def notifier() -> RecordingNotifier:
    """Provide a fresh recording state-change notifier per test."""
    return RecordingNotifier()
