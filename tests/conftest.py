"""Shared test fixtures."""

from datetime import datetime, timedelta, timezone

import pytest

from draftbox.services.draft_service import DraftService
from draftbox.services.store_backend import InMemoryStoreBackend
from draftbox.services.write_gate import LocalWriteGate


class FakeClock:
    """Deterministic clock that advances one second per call unless frozen."""

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(seconds=1)) -> None:
        self.now = start or datetime(2025, 4, 1, 9, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current


class SequentialIds:
    """Returns u1, u2, u3, ... as draft ids."""

    def __init__(self, prefix: str = "u") -> None:
        self.prefix = prefix
        self.count = 0

    def __call__(self) -> str:
        self.count += 1
        return f"{self.prefix}{self.count}"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryStoreBackend:
    return InMemoryStoreBackend()


@pytest.fixture
def gate() -> LocalWriteGate:
    return LocalWriteGate("test:drafts:write")


@pytest.fixture
def service(store, gate, clock) -> DraftService:
    return DraftService(
        store,
        gate,
        save_timeout=0.2,
        delete_timeout=0.1,
        clock=clock,
        id_factory=SequentialIds(),
    )


@pytest.fixture
def sample_draft() -> dict:
    return {
        "title": "Summer reading report",
        "class_label": "3-A",
        "author_name": "Hanako",
        "content": "The book I chose this summer was about a lighthouse keeper.",
    }
