"""HTTP client for the events portal backend.

Implements the ``EventStore``, ``AttendanceTokenIssuer`` and
``AttendanceCounter`` protocols over the portal's REST API.
"""

import json
import logging
from collections.abc import Sequence
from typing import Any, Optional

import httpx

from ..exceptions import PersistError, PollError, SchedulingError, TokenIssueError
from ..models import DailyScheduleEntry, EventTemplate, Occurrence, TokenGrant

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TTL = 30


def _isoformat(value: Any) -> str:
    """ISO-8601 with a ``Z`` suffix for UTC, as the portal stores dates."""
    return value.isoformat().replace("+00:00", "Z")


def _error_message(response: httpx.Response) -> str:
    """Best-effort error text from a portal JSON error body."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"HTTP {response.status_code}: {response.reason_phrase}"


def build_event_form(
    occurrence: Occurrence,
    template: EventTemplate,
    schedule: Sequence[DailyScheduleEntry],
    series_id: Optional[str],
    occurrence_index: int,
) -> list[tuple[str, str]]:
    """Build the multipart form fields for one ``POST api/events`` request."""
    fields = [
        ("title", template.title),
        ("description", template.description),
        ("location", template.location),
        ("startDate", _isoformat(occurrence.start)),
        ("endDate", _isoformat(occurrence.end)),
        ("isOpenForDonation", "true" if template.is_open_for_donation else "false"),
        ("isOpenForVolunteer", "true" if template.is_open_for_volunteer else "false"),
        ("eventCategory", template.event_category or "community_relations"),
    ]
    if template.is_open_for_donation:
        fields.append(("donationTarget", str(template.donation_target or 0)))
    if template.is_open_for_volunteer:
        volunteer_settings = template.volunteer_settings.model_copy(
            update={"daily_schedule": list(schedule)}
        )
        fields.append(
            (
                "volunteerSettings",
                json.dumps(volunteer_settings.model_dump(mode="json", by_alias=True)),
            )
        )
    fields.append(("reminderOffsets", json.dumps(template.reminder_offsets)))
    fields.extend(("media", reference) for reference in template.media)
    if series_id:
        fields.append(("seriesId", series_id))
    fields.append(("occurrenceIndex", str(occurrence_index)))
    return fields


class PortalClient:
    """Async client for the portal's event and attendance endpoints.

    Usable as an async context manager; a client passed in by the caller is
    not closed on exit.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        headers: Optional[dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            headers=headers,
            follow_redirects=True,
        )
        logger.debug("Portal client initialized for %s", self.base_url)

    @classmethod
    def from_settings(cls, settings: Any, **kwargs: Any) -> "PortalClient":
        return cls(
            base_url=settings.portal_base_url,
            timeout=settings.request_timeout,
            **kwargs,
        )

    async def __aenter__(self) -> "PortalClient":
        return self

    async def __aexit__(self, _exc_type: Any, _exc_val: Any, _exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client and not self.client.is_closed:
            await self.client.aclose()
            logger.debug("Closed portal HTTP client")

    async def _request(
        self, method: str, path: str, error_cls: type[SchedulingError], **kwargs: Any
    ) -> dict[str, Any]:
        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise error_cls(f"Network error: {e}") from e

        if response.is_error:
            raise error_cls(_error_message(response), response.status_code)

        try:
            body = response.json()
        except ValueError as e:
            raise error_cls("Invalid JSON in portal response", response.status_code) from e
        if not isinstance(body, dict):
            raise error_cls("Unexpected portal response", response.status_code)
        return body

    async def create_event(
        self,
        occurrence: Occurrence,
        template: EventTemplate,
        schedule: Sequence[DailyScheduleEntry],
        series_id: Optional[str],
        occurrence_index: int,
    ) -> str:
        """Create one event and return its id.

        The portal acknowledges with a message containing "success"; anything
        else is treated as a failed creation.

        Raises:
            PersistError: On transport errors, error statuses or a rejected create
        """
        fields = build_event_form(occurrence, template, schedule, series_id, occurrence_index)
        # (None, value) parts force a multipart body without file names
        body = await self._request(
            "POST",
            "api/events",
            PersistError,
            files=[(name, (None, value)) for name, value in fields],
        )

        message = str(body.get("message") or "")
        if "success" not in message.lower():
            raise PersistError(message or "Event creation was not acknowledged")

        event = body.get("event") or {}
        event_id = event.get("_id") or body.get("_id") or body.get("id")
        if not event_id:
            raise PersistError("Portal response did not include an event id")

        logger.debug("Created event %s (occurrence %d)", event_id, occurrence_index)
        return str(event_id)

    async def issue_attendance_token(self, event_id: str) -> TokenGrant:
        """Request a fresh attendance token.

        Raises:
            TokenIssueError: On transport errors or a refused issuance
        """
        body = await self._request(
            "POST", f"api/attendance/{event_id}/issue-token", TokenIssueError
        )
        if not body.get("success") or not body.get("token"):
            raise TokenIssueError(str(body.get("message") or "Failed to issue token"))
        return TokenGrant(
            token=body["token"],
            ttl_seconds=int(body.get("expiresIn") or DEFAULT_TOKEN_TTL),
        )

    async def get_attendance_count(self, event_id: str) -> int:
        """Fetch how many attendees have checked in.

        Raises:
            PollError: On transport errors or an unsuccessful response
        """
        body = await self._request("GET", f"api/attendance/{event_id}/count", PollError)
        if not body.get("success"):
            raise PollError(str(body.get("message") or "Failed to fetch attendance count"))
        try:
            return int(body.get("count") or 0)
        except (TypeError, ValueError) as e:
            raise PollError(f"Invalid attendance count: {body.get('count')!r}") from e
