"""Edge-triggered conversion of probe outcomes into transition records."""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from netpinger.models import Outcome, Record

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class TransitionDetector:
    """Own the in-memory connectivity state and decide when to record.

    The state is a single boolean, "currently failing", starting healthy.
    Network errors and unexpected statuses both count as failing; only the
    healthy/failing boundary produces a record, never the failure reason.
    """

    def __init__(
        self,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        self._failing = False
        self._clock = clock or _utc_now
        self._id_factory = id_factory or _new_id
        self._last_ts: Optional[datetime] = None
        self._observed = False

    @property
    def failing(self) -> bool:
        return self._failing

    def seed(self, latest: Optional[Record]) -> None:
        """Start from the newest persisted record instead of assuming healthy.

        Must be called before the first observation.
        """
        if self._observed:
            raise RuntimeError("cannot seed a detector that has already observed outcomes")
        if latest is None:
            return
        self._failing = latest.failure
        self._last_ts = latest.timestamp
        logger.info("Seeded connectivity state from record %s (failing=%s)", latest.id, latest.failure)

    def observe(self, outcome: Outcome) -> Optional[Record]:
        self._observed = True
        failing = outcome.failing
        if failing == self._failing:
            logger.debug("No transition (failing=%s): %s", failing, outcome.message)
            return None

        self._failing = failing
        timestamp = self._clock()
        if self._last_ts is not None and timestamp < self._last_ts:
            timestamp = self._last_ts
        self._last_ts = timestamp

        record = Record(
            id=self._id_factory(),
            timestamp=timestamp,
            failure=failing,
            description=outcome.message,
        )
        logger.info("Connectivity %s: %s", "lost" if failing else "restored", outcome.message)
        return record


__all__ = ["TransitionDetector"]
