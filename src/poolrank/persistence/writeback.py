from __future__ import annotations

import logging
import sqlite3
import time
from dataclasses import dataclass
from typing import Callable, Sequence, TypeVar

from poolrank.contracts import RankingEntry
from poolrank.core import WriteBackError
from poolrank.persistence.sqlite_store import AuthoritativeStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_ERRORS: tuple[type[Exception], ...] = (sqlite3.OperationalError, ConnectionError, TimeoutError)


@dataclass(slots=True)
class WriteBackReport:
    created: int = 0
    updated: int = 0
    batches: int = 0

    @property
    def written(self) -> int:
        return self.created + self.updated


class PacedRankingWriter:
    """Writes ranking rows in small batches with a pause between batches.

    Each row is retried with exponential backoff before the whole write-back
    fails with WriteBackError.
    """

    def __init__(
        self,
        store: AuthoritativeStore,
        batch_size: int = 2,
        delay_seconds: float = 1.0,
        max_retries: int = 3,
        retry_delay: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        if max_retries < 0:
            raise ValueError("max_retries must not be negative")
        if delay_seconds < 0 or retry_delay < 0:
            raise ValueError("delays must not be negative")
        self.store = store
        self.batch_size = batch_size
        self.delay_seconds = delay_seconds
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._sleep = sleep

    def write_current(self, game_id: str, entries: Sequence[RankingEntry]) -> WriteBackReport:
        report = WriteBackReport()
        for batch in self._batches(entries, report):
            for entry in batch:
                existing = self._with_retry(entry.participant_id, lambda: self.store.get_ranking(game_id, entry.participant_id))
                self._with_retry(entry.participant_id, lambda: self.store.upsert_current_ranking(game_id, entry))
                if existing is None:
                    report.created += 1
                else:
                    report.updated += 1
        logger.info(
            "game %s: wrote %d rankings (%d created, %d updated) in %d batches",
            game_id,
            report.written,
            report.created,
            report.updated,
            report.batches,
        )
        return report

    def write_baseline(self, game_id: str, entries: Sequence[RankingEntry]) -> WriteBackReport:
        report = WriteBackReport()
        for batch in self._batches(entries, report):
            for entry in batch:
                self._with_retry(entry.participant_id, lambda: self.store.overwrite_baseline(game_id, entry))
                report.updated += 1
        logger.info("game %s: baseline set for %d participants in %d batches", game_id, report.updated, report.batches)
        return report

    def _batches(self, entries: Sequence[RankingEntry], report: WriteBackReport):
        for start in range(0, len(entries), self.batch_size):
            if start and self.delay_seconds:
                self._sleep(self.delay_seconds)
            report.batches += 1
            yield entries[start : start + self.batch_size]

    def _with_retry(self, participant_id: str, operation: Callable[[], T]) -> T:
        attempts = self.max_retries + 1
        for attempt in range(attempts):
            try:
                return operation()
            except RETRYABLE_ERRORS as exc:
                if attempt == attempts - 1:
                    logger.error("write-back for %s failed after %d attempts: %s", participant_id, attempts, exc)
                    raise WriteBackError(participant_id, attempts, exc) from exc
                wait = self.retry_delay * (2**attempt)
                logger.warning(
                    "write-back for %s failed (%s), retrying in %.2fs (attempt %d/%d)",
                    participant_id,
                    exc,
                    wait,
                    attempt + 1,
                    attempts,
                )
                self._sleep(wait)
        raise AssertionError("unreachable")
