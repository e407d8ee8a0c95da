from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from src.engine.config import SummaryConfig

from .store import RecordStore, StoreError, StoreWriteError

logger = logging.getLogger(__name__)


class PublishError(StoreError):
    """Raised when the summary could not be written within the retry budget."""


class SummaryPublisher:
    """Replaces the published summary document, retrying transient write failures.

    Every publish is a full overwrite, so retrying a write that may have landed is
    harmless.
    """

    def __init__(
        self,
        store: RecordStore,
        max_attempts: int = 3,
        backoff_seconds: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1.")
        self.store = store
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.sleep = sleep

    @classmethod
    def from_config(
        cls,
        store: RecordStore,
        config: Optional[SummaryConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> "SummaryPublisher":
        config = config or SummaryConfig()
        return cls(
            store,
            max_attempts=config.publish_max_attempts,
            backoff_seconds=config.publish_backoff_seconds,
            sleep=sleep,
        )

    def publish(self, summary: dict) -> int:
        """Write `summary`; returns the number of attempts it took."""
        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                self.store.write_summary(summary)
            except (StoreWriteError, OSError) as exc:
                last_error = exc
                remaining = self.max_attempts - attempt
                if remaining:
                    logger.warning(
                        "Summary write failed (%s); retrying in %ss (%s attempts left)",
                        exc,
                        self.backoff_seconds,
                        remaining,
                    )
                    self.sleep(self.backoff_seconds)
                continue
            logger.info("Published dashboard summary (attempt %s/%s)", attempt, self.max_attempts)
            return attempt

        raise PublishError(
            f"Summary write failed after {self.max_attempts} attempts: {last_error}"
        ) from last_error
