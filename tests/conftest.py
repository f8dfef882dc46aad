"""Pytest fixtures for telever tests."""

import random
from datetime import datetime, timedelta, timezone

import pytest

from telever.ledger import LedgerStore
from telever.matcher import VerificationMatcher
from telever.notifier import RecordingNotifier
from telever.paths import DataPaths

EAT = timezone(timedelta(hours=3))


class FakeClock:
    """Settable clock; advance() moves it forward."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    """Clock fixed at 2026-10-19 10:00 in UTC+3."""
    return FakeClock(datetime(2026, 10, 19, 10, 0, 0, tzinfo=EAT))


@pytest.fixture
def data_paths(tmp_path):
    """DataPaths rooted in a temporary data directory."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    return DataPaths(data_dir)


@pytest.fixture
def store(data_paths, clock):
    return LedgerStore(data_paths, clock=clock)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def matcher(store, notifier):
    """Matcher with a recording notifier and a seeded RNG."""
    return VerificationMatcher(store, notifier=notifier, rng=random.Random(7))
