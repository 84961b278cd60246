"""Shared fixtures for event_scheduling tests."""

import asyncio
import os
from collections.abc import Generator, Sequence
from datetime import datetime, time, timezone
from typing import Any, Optional

import pytest

from event_scheduling.config import reset_settings
from event_scheduling.core.clock import VirtualClock
from event_scheduling.exceptions import PersistError, PollError, TokenIssueError
from event_scheduling.models import (
    DailyScheduleEntry,
    EventTemplate,
    Occurrence,
    TokenGrant,
    VolunteerSettings,
)


class DummyEventStore:
    """In-memory EventStore that can be told to fail specific occurrences."""

    def __init__(self, fail_indexes: Sequence[int] = (), error: str = "Database unavailable"):
        self.fail_indexes = set(fail_indexes)
        self.error = error
        self.calls: list[dict[str, Any]] = []

    async def create_event(
        self,
        occurrence: Occurrence,
        template: EventTemplate,
        schedule: Sequence[DailyScheduleEntry],
        series_id: Optional[str],
        occurrence_index: int,
    ) -> str:
        self.calls.append(
            {
                "occurrence": occurrence,
                "template": template,
                "schedule": list(schedule),
                "series_id": series_id,
                "occurrence_index": occurrence_index,
            }
        )
        await asyncio.sleep(0)
        if occurrence_index in self.fail_indexes:
            raise PersistError(self.error)
        return f"evt-{occurrence_index}"


class DummyTokenIssuer:
    """Token issuer returning tok-1, tok-2, ... unless told to fail."""

    def __init__(self, ttl_seconds: int = 30):
        self.ttl_seconds = ttl_seconds
        self.calls = 0
        self.fail = False
        self.gate: Optional[asyncio.Event] = None

    async def issue_attendance_token(self, event_id: str) -> TokenGrant:
        self.calls += 1
        call = self.calls
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise TokenIssueError("Token issuance not yet available", 400)
        return TokenGrant(token=f"tok-{call}", ttl_seconds=self.ttl_seconds)


class DummyCounter:
    """Attendance counter returning a settable count unless told to fail."""

    def __init__(self, count: int = 0):
        self.count = count
        self.calls = 0
        self.fail = False
        self.gate: Optional[asyncio.Event] = None

    async def get_attendance_count(self, event_id: str) -> int:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise PollError("Service unavailable", 503)
        return self.count


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Isolate tests from the global settings and EVENT_SCHEDULING_* variables."""
    for key in list(os.environ):
        if key.startswith("EVENT_SCHEDULING_"):
            monkeypatch.delenv(key)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def base_start() -> datetime:
    return datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def base_end() -> datetime:
    return datetime(2024, 3, 1, 11, 0, tzinfo=timezone.utc)


@pytest.fixture
def template() -> EventTemplate:
    return EventTemplate(title="Coastal Cleanup", location="Main Beach")


@pytest.fixture
def volunteer_template() -> EventTemplate:
    """Template open for volunteers with a complete entry for the base date."""
    return EventTemplate(
        title="Coastal Cleanup",
        location="Main Beach",
        is_open_for_volunteer=True,
        volunteer_settings=VolunteerSettings(
            daily_schedule=[
                DailyScheduleEntry(date="2024-03-01", time_in=time(8, 0), time_out=time(12, 0))
            ]
        ),
    )


@pytest.fixture
def clock() -> VirtualClock:
    return VirtualClock(datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def event_store() -> DummyEventStore:
    return DummyEventStore()


@pytest.fixture
def token_issuer() -> DummyTokenIssuer:
    return DummyTokenIssuer()


@pytest.fixture
def counter() -> DummyCounter:
    return DummyCounter(count=3)
