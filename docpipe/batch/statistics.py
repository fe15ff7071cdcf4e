import asyncio
import dataclasses
from datetime import datetime, timezone

from docpipe.batch.models import BatchStatistics, DocumentOutcome


class StatisticsAccumulator:
    """Single-writer aggregate counters for one batch.

    All updates go through ``record`` under one lock, so ``processed`` always
    equals ``succeeded + failed``.
    """

    def __init__(self, total: int, dropped: int) -> None:
        self._lock = asyncio.Lock()
        self._durations: list[float] = []
        self._snapshot = BatchStatistics(
            total=total,
            dropped=dropped,
            started_at=datetime.now(timezone.utc),
        )

    async def record(self, outcome: DocumentOutcome) -> BatchStatistics:
        async with self._lock:
            if outcome.result is not None:
                self._durations.append(outcome.result.duration_ms)
            current = self._snapshot
            succeeded = current.succeeded + (1 if outcome.succeeded else 0)
            failed = current.failed + (0 if outcome.succeeded else 1)
            self._snapshot = dataclasses.replace(
                current,
                processed=succeeded + failed,
                succeeded=succeeded,
                failed=failed,
                average_processing_time_ms=(
                    sum(self._durations) / len(self._durations) if self._durations else 0.0
                ),
            )
            return self._snapshot

    async def finish(self) -> BatchStatistics:
        async with self._lock:
            self._snapshot = dataclasses.replace(
                self._snapshot,
                finished_at=datetime.now(timezone.utc),
            )
            return self._snapshot

    def snapshot(self) -> BatchStatistics:
        return self._snapshot
