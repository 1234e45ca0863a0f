from datetime import datetime, timedelta

import pytest

from StudyCore.core.clock import ManualTicker
from StudyCore.core.config import Settings
from StudyCore.services.study_controller import StudyController

START = datetime(2026, 10, 14, 9, 0, 0)  # a Wednesday


class FakeClock:
    """Callable wall clock that only moves when told to."""

    def __init__(self, now=START):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def db(tmp_path, monkeypatch):
    path = tmp_path / "study.db"
    monkeypatch.setenv("STUDYCORE_DB_PATH", str(path))
    return path


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ticker():
    return ManualTicker()


@pytest.fixture
def settings():
    return Settings(user_id="tester")


@pytest.fixture
def controller(db, settings, ticker, clock):
    return StudyController(settings, ticker=ticker, now=clock)


@pytest.fixture
def run(ticker, clock):
    """Let the running timer accumulate seconds of wall clock and ticks."""
    def _run(seconds):
        clock.advance(seconds)
        ticker.fire(seconds)
    return _run
