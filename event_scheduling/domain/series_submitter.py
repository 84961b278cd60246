"""Concurrent submission of expanded occurrences."""

import asyncio
import logging
import secrets
import time
from collections.abc import Awaitable, Callable, Sequence
from typing import Optional

from ..exceptions import ValidationError
from ..models import Occurrence, OccurrenceFailure, SeriesSubmissionResult

logger = logging.getLogger(__name__)

Persist = Callable[[Occurrence], Awaitable[str]]


def new_series_id() -> str:
    """Generate a series identifier, e.g. ``series_1717171717171_9f3a0c``."""
    return f"series_{int(time.time() * 1000)}_{secrets.token_hex(3)}"


class SeriesSubmitter:
    """Persists every occurrence of a batch and reports per-occurrence outcomes.

    One failing occurrence never aborts the others. The result lists the
    created event ids and the failures, and the batch counts as successful
    when at least one occurrence was created. Holds no state between calls.
    """

    def __init__(
        self,
        max_concurrency: Optional[int] = None,
        series_id_factory: Callable[[], str] = new_series_id,
    ):
        self.max_concurrency = max_concurrency
        self._new_series_id = series_id_factory

    async def submit(
        self, occurrences: Sequence[Occurrence], persist: Persist
    ) -> SeriesSubmissionResult:
        """Persist all occurrences concurrently and wait for every call to settle.

        Args:
            occurrences: Occurrences to persist, usually from the expander
            persist: Awaitable returning the created event id; raises on failure

        Returns:
            Aggregated outcome. A series id is assigned only when more than
            one occurrence is submitted.

        Raises:
            ValidationError: If ``occurrences`` is empty
        """
        if not occurrences:
            raise ValidationError("At least one occurrence is required")

        series_id = self._new_series_id() if len(occurrences) > 1 else None
        stamped = [
            occurrence.model_copy(update={"series_id": series_id}) for occurrence in occurrences
        ]

        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None

        async def persist_one(occurrence: Occurrence) -> str:
            if semaphore is None:
                return await persist(occurrence)
            async with semaphore:
                return await persist(occurrence)

        logger.info("Submitting %d occurrence(s), series=%s", len(stamped), series_id)
        outcomes = await asyncio.gather(
            *(persist_one(occurrence) for occurrence in stamped), return_exceptions=True
        )

        result = SeriesSubmissionResult(series_id=series_id, total=len(stamped))
        for occurrence, outcome in zip(stamped, outcomes):
            if isinstance(outcome, Exception):
                reason = getattr(outcome, "message", None) or str(outcome) or type(outcome).__name__
                logger.warning("Occurrence %d failed: %s", occurrence.occurrence_index, reason)
                result.failures.append(
                    OccurrenceFailure(occurrence_index=occurrence.occurrence_index, error=reason)
                )
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                result.created_ids.append(outcome)

        if result.is_success:
            logger.info("Submission finished: %s", result.summary())
        else:
            logger.error("Submission failed: %s", result.summary())
        return result
