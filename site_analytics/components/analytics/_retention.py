"""
RetentionManager - bulk deletion of a filtered subset of the event log.

Two tiers, tried in order:
1. Atomic: one server-side delete of everything matching the filter.
2. Batched: enumerate matching ids (capped) and delete them in fixed-size
   batches, tallying per-batch success and failure.

Key behaviors:
- An atomic-tier failure is logged and never surfaced to the caller
- Zero matches is a valid outcome (NOTHING_FOUND), not an error
- Some batches failed -> PARTIAL with the rows actually removed
- Every batch failed, or id enumeration failed -> PurgeError
- Deleted rows are never restored; callers re-query afterwards
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from .models import (
    EventFilter,
    EventStoreError,
    PurgeError,
    PurgeOutcome,
    PurgeStatus,
    PurgeStrategy,
)
from .ports import EventStorePort

logger = logging.getLogger(__name__)

# --- Configuration ---


@dataclass(frozen=True)
class RetentionConfig:
    """Retention configuration from rules."""

    atomic_enabled: bool = True
    batch_size: int = 100
    max_ids: int = 10_000

    # >1 deletes batches concurrently (bounded); 1 keeps them sequential
    max_workers: int = 1


DEFAULT_CONFIG = RetentionConfig()


@dataclass(frozen=True)
class BatchResult:
    """Result of deleting one batch of ids."""

    index: int
    size: int
    deleted: int = 0
    error: EventStoreError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def partition(ids: Sequence[str], size: int) -> list[list[str]]:
    """Split ids into consecutive batches of at most `size`."""
    if size < 1:
        msg = f"Batch size must be positive, got {size}"
        raise ValueError(msg)
    return [list(ids[i : i + size]) for i in range(0, len(ids), size)]


class RetentionManager:
    """Deletes the events matching a filter, atomic first, batched second."""

    def __init__(
        self,
        store: EventStorePort,
        config: RetentionConfig | None = None,
    ) -> None:
        self._store = store
        self._config = config or DEFAULT_CONFIG

    def purge(self, event_filter: EventFilter) -> PurgeOutcome:
        """
        Delete every event matching the filter.

        Raises:
            PurgeError: ids could not be enumerated, or every batch failed.
        """
        if self._config.atomic_enabled:
            outcome = self._try_atomic(event_filter)
            if outcome is not None:
                return outcome
        return self._purge_batched(event_filter)

    # --- Atomic tier ---

    def _try_atomic(self, event_filter: EventFilter) -> PurgeOutcome | None:
        try:
            deleted = self._store.bulk_delete_atomic(event_filter)
        except EventStoreError as e:
            logger.warning("Atomic purge unavailable (%s), falling back to batched purge", e)
            return None

        logger.info("Atomic purge deleted %d event(s)", deleted)
        return PurgeOutcome(
            status=PurgeStatus.DELETED if deleted > 0 else PurgeStatus.NOTHING_FOUND,
            strategy=PurgeStrategy.ATOMIC,
            deleted_count=deleted,
        )

    # --- Batched tier ---

    def _purge_batched(self, event_filter: EventFilter) -> PurgeOutcome:
        try:
            ids = self._store.list_ids(event_filter, limit=self._config.max_ids)
        except EventStoreError as e:
            logger.error("Could not enumerate events to purge: %s", e)
            raise PurgeError(f"Could not list events to delete: {e}", cause=e) from e

        if not ids:
            logger.info("Batched purge found nothing to delete")
            return PurgeOutcome(
                status=PurgeStatus.NOTHING_FOUND,
                strategy=PurgeStrategy.BATCHED,
                deleted_count=0,
            )

        batches = partition(ids, self._config.batch_size)
        results = self._run_batches(batches)
        return self._tally(results)

    def _delete_one(self, index: int, batch: list[str]) -> BatchResult:
        try:
            deleted = self._store.delete_batch(batch)
        except EventStoreError as e:
            logger.warning("Purge batch %d (%d ids) failed: %s", index, len(batch), e)
            return BatchResult(index=index, size=len(batch), error=e)
        return BatchResult(index=index, size=len(batch), deleted=deleted)

    def _run_batches(self, batches: list[list[str]]) -> list[BatchResult]:
        workers = self._config.max_workers
        if workers <= 1:
            return [self._delete_one(i, batch) for i, batch in enumerate(batches)]

        with ThreadPoolExecutor(max_workers=min(workers, len(batches))) as pool:
            futures = [pool.submit(self._delete_one, i, batch) for i, batch in enumerate(batches)]
            results = [f.result() for f in futures]
        return sorted(results, key=lambda r: r.index)

    def _tally(self, results: list[BatchResult]) -> PurgeOutcome:
        failed = [r for r in results if not r.ok]
        deleted = sum(r.deleted for r in results if r.ok)

        if len(failed) == len(results):
            first = failed[0].error
            raise PurgeError(f"All {len(results)} purge batches failed: {first}", cause=first) from first

        status = PurgeStatus.PARTIAL if failed else PurgeStatus.DELETED
        logger.info(
            "Batched purge deleted %d event(s) in %d batch(es), %d failed",
            deleted,
            len(results),
            len(failed),
        )
        return PurgeOutcome(
            status=status,
            strategy=PurgeStrategy.BATCHED,
            deleted_count=deleted,
            batches_attempted=len(results),
            batches_failed=len(failed),
            errors=tuple(str(r.error) for r in failed),
        )


def create_retention_manager(
    store: EventStorePort,
    config: RetentionConfig | None = None,
) -> RetentionManager:
    """Create a RetentionManager."""
    return RetentionManager(store=store, config=config)
