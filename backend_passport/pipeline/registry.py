"""
Pipeline registry: in-memory store of every PipelineRecord, keyed by id.

Injectable object (one per app, passed by reference) with an eviction policy:
bounded capacity (oldest terminal records evicted first) and an optional TTL for
terminal records. Active records are never evicted.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Callable

from backend_passport.passport_logging import get_logger
from backend_passport.pipeline.models import PipelineRecord
from backend_passport.utils.clock import now_ms

logger = get_logger(__name__)

DEFAULT_MAX_RECORDS = 1000


class PipelineRegistry:
    def __init__(
        self,
        max_records: int = DEFAULT_MAX_RECORDS,
        ttl_sec: float | None = None,
        *,
        clock: Callable[[], float] = now_ms,
    ) -> None:
        self.max_records = max(1, int(max_records))
        self.ttl_sec = ttl_sec if ttl_sec and ttl_sec > 0 else None
        self._clock = clock
        self._records: OrderedDict[str, PipelineRecord] = OrderedDict()
        self.evicted = 0

    def add(self, record: PipelineRecord) -> None:
        self._records[record.id] = record
        self.sweep()

    def get(self, pipeline_id: str) -> PipelineRecord | None:
        return self._records.get(pipeline_id)

    def all_records(self) -> list[PipelineRecord]:
        """Snapshot list; order is insertion order but carries no meaning for consumers."""
        return list(self._records.values())

    def active_records(self) -> list[PipelineRecord]:
        return [r for r in self._records.values() if r.is_active]

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, pipeline_id: object) -> bool:
        return pipeline_id in self._records

    def sweep(self) -> int:
        """Apply TTL then capacity eviction. Returns number of records removed."""
        removed = 0
        if self.ttl_sec is not None:
            cutoff = self._clock() - self.ttl_sec * 1000.0
            expired = [
                rid
                for rid, r in self._records.items()
                if r.is_terminal and r.finished_at is not None and r.finished_at < cutoff
            ]
            for rid in expired:
                del self._records[rid]
            removed += len(expired)

        overflow = len(self._records) - self.max_records
        if overflow > 0:
            victims = [rid for rid, r in self._records.items() if r.is_terminal][:overflow]
            for rid in victims:
                del self._records[rid]
            removed += len(victims)

        if removed:
            self.evicted += removed
            logger.debug("pipeline_registry_evicted", removed=removed, size=len(self._records))
        return removed
