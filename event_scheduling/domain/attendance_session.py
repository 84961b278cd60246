"""Live attendance token rotation and count polling for an open event.

``AttendanceTokenSession`` owns three background tasks while active: token
rotation, attendance count polling, and the countdown shown next to the QR
code. They run on a fixed cadence through an injected ``Clock``; each
rotation and poll request runs as its own task, so a slow or hanging
request never delays the next one.
"""

import asyncio
import logging
from collections.abc import Callable, Coroutine
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional

from ..core.clock import Clock, SystemClock
from ..exceptions import SessionStateError
from ..models import AttendanceToken
from ..portal.protocols import AttendanceCounter, AttendanceTokenIssuer

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    TERMINATED = "terminated"


class AttendanceTokenSession:
    """Rotating attendance token plus live check-in count for one event.

    Lifecycle is ``IDLE -> ACTIVE -> TERMINATED``. Issue and poll failures are
    absorbed: a failed issue blanks the token until the next rotation, a
    failed poll keeps the last known count. State is only written while the
    session is active, so results arriving after ``stop()`` are dropped.

    Example:
        >>> session = AttendanceTokenSession(client, client)
        >>> await session.start("64f0c2")
        >>> session.current_token, session.seconds_remaining, session.live_count
        >>> await session.aclose()
    """

    def __init__(
        self,
        issuer: AttendanceTokenIssuer,
        counter: AttendanceCounter,
        clock: Optional[Clock] = None,
        rotation_interval: float = 30,
        poll_interval: float = 10,
        tick_interval: float = 1,
        nominal_ttl: int = 30,
    ):
        self.issuer = issuer
        self.counter = counter
        self.clock: Clock = clock or SystemClock()
        self.rotation_interval = rotation_interval
        self.poll_interval = poll_interval
        self.tick_interval = tick_interval
        self.nominal_ttl = nominal_ttl

        self.state = SessionState.IDLE
        self.event_id: Optional[str] = None
        self.token: Optional[AttendanceToken] = None
        self.current_token = ""
        self.seconds_remaining = nominal_ttl
        self.live_count: Optional[int] = None
        self.last_error: Optional[str] = None
        self.issue_failures = 0
        self.poll_failures = 0

        self._tasks: list[asyncio.Task[None]] = []
        self._in_flight: set[asyncio.Task[None]] = set()
        self._issue_seq = 0
        self._issue_applied = 0
        self._poll_seq = 0
        self._poll_applied = 0

    @classmethod
    def from_settings(
        cls,
        settings: Any,
        issuer: AttendanceTokenIssuer,
        counter: AttendanceCounter,
        clock: Optional[Clock] = None,
    ) -> "AttendanceTokenSession":
        return cls(
            issuer,
            counter,
            clock=clock,
            rotation_interval=settings.token_rotation_seconds,
            poll_interval=settings.count_poll_seconds,
            tick_interval=settings.countdown_tick_seconds,
            nominal_ttl=settings.token_ttl_seconds,
        )

    @property
    def is_active(self) -> bool:
        return self.state == SessionState.ACTIVE

    async def start(self, event_id: str) -> None:
        """Start the timers, then issue the first token and fetch the first count.

        Timers are anchored at the moment of the call, so the first rotation
        and poll fall one interval after ``start`` however long the initial
        requests take.

        Raises:
            SessionStateError: If the session was already started or stopped
        """
        if self.state != SessionState.IDLE:
            raise SessionStateError(f"Cannot start attendance session in state {self.state.value}")

        self.state = SessionState.ACTIVE
        self.event_id = event_id
        logger.info("Attendance session started for event %s", event_id)

        anchor = self.clock.now()
        self._tasks = [
            asyncio.create_task(
                self._run_every(event_id, self.rotation_interval, anchor, self._rotate),
                name=f"attendance-rotate-{event_id}",
            ),
            asyncio.create_task(
                self._run_every(event_id, self.poll_interval, anchor, self._refresh_count),
                name=f"attendance-poll-{event_id}",
            ),
            asyncio.create_task(
                self._run_every(event_id, self.tick_interval, anchor, self._tick),
                name=f"attendance-countdown-{event_id}",
            ),
        ]

        await asyncio.gather(self._issue(event_id), self._poll(event_id))

    def stop(self) -> None:
        """Stop rotation and polling. Safe to call repeatedly or before ``start``."""
        if self.state == SessionState.TERMINATED:
            return

        was_active = self.is_active
        self.state = SessionState.TERMINATED
        for task in [*self._tasks, *self._in_flight]:
            task.cancel()

        if was_active:
            logger.info("Attendance session stopped for event %s", self.event_id)

    async def aclose(self) -> None:
        """Stop the session and wait for its background tasks to finish."""
        self.stop()
        pending = [*self._tasks, *self._in_flight]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._tasks = []
        self._in_flight.clear()

    async def __aenter__(self) -> "AttendanceTokenSession":
        return self

    async def __aexit__(self, _exc_type: Any, _exc_val: Any, _exc_tb: Any) -> None:
        await self.aclose()

    async def _issue(self, event_id: str) -> None:
        self._issue_seq += 1
        seq = self._issue_seq
        try:
            grant = await self.issuer.issue_attendance_token(event_id)
        except Exception as e:
            if not self._accept_issue(seq):
                return
            self.issue_failures += 1
            self.last_error = getattr(e, "message", None) or str(e)
            self.token = None
            self.current_token = ""
            self.seconds_remaining = self.nominal_ttl
            logger.warning("Failed to issue attendance token for %s: %s", event_id, self.last_error)
            return

        if not self._accept_issue(seq):
            logger.debug("Discarding stale attendance token for %s", event_id)
            return

        self.token = AttendanceToken(
            token=grant.token, issued_at=self.clock.now(), ttl_seconds=grant.ttl_seconds
        )
        self.current_token = grant.token
        self.seconds_remaining = grant.ttl_seconds
        self.last_error = None
        logger.debug("Issued attendance token for %s (ttl %ds)", event_id, grant.ttl_seconds)

    async def _poll(self, event_id: str) -> None:
        self._poll_seq += 1
        seq = self._poll_seq
        try:
            count = await self.counter.get_attendance_count(event_id)
        except Exception as e:
            if self._accept_poll(seq):
                self.poll_failures += 1
                logger.debug("Attendance count poll failed for %s: %s", event_id, e)
            return

        if self._accept_poll(seq):
            self.live_count = count

    def _accept_issue(self, seq: int) -> bool:
        # Results from an older request never overwrite a newer one
        if not self.is_active or seq < self._issue_applied:
            return False
        self._issue_applied = seq
        return True

    def _accept_poll(self, seq: int) -> bool:
        if not self.is_active or seq < self._poll_applied:
            return False
        self._poll_applied = seq
        return True

    def _spawn(self, coro: Coroutine[Any, Any, None], name: str) -> None:
        task = asyncio.create_task(coro, name=name)
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    def _rotate(self, event_id: str) -> None:
        self._spawn(self._issue(event_id), f"attendance-issue-{event_id}")

    def _refresh_count(self, event_id: str) -> None:
        self._spawn(self._poll(event_id), f"attendance-count-{event_id}")

    def _tick(self, _event_id: str) -> None:
        if self.seconds_remaining <= 0:
            self.seconds_remaining = self.nominal_ttl
        else:
            self.seconds_remaining -= 1

    async def _run_every(
        self,
        event_id: str,
        interval: float,
        anchor: datetime,
        action: Callable[[str], None],
    ) -> None:
        """Call ``action`` at ``anchor + n * interval`` until the session stops."""
        step = timedelta(seconds=interval)
        next_due = anchor
        while self.is_active:
            next_due += step
            await self.clock.sleep((next_due - self.clock.now()).total_seconds())
            if not self.is_active:
                break
            action(event_id)
