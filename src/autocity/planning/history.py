"""Append-only record of executed plans."""

from __future__ import annotations

from collections import deque
from typing import Iterator, Protocol

from autocity.models import PlanRecord


class PlanHistoryStore(Protocol):
    """Storage contract for executed plan records."""

    def append(self, record: PlanRecord) -> None:
        """Record a finished plan."""

    def list_recent(self, limit: int) -> list[PlanRecord]:
        """Return up to ``limit`` newest records, newest first."""

    def last(self) -> PlanRecord | None:
        """Return the newest record, if any."""

    def __len__(self) -> int: ...


class InMemoryPlanHistory:
    """In-memory history; ``max_records=None`` keeps every record."""

    def __init__(self, max_records: int | None = None) -> None:
        self._records: deque[PlanRecord] = deque(maxlen=max_records)
        self._total = 0

    def append(self, record: PlanRecord) -> None:
        self._records.append(record)
        self._total += 1

    def list_recent(self, limit: int) -> list[PlanRecord]:
        return list(reversed(self._records))[:limit]

    def last(self) -> PlanRecord | None:
        return self._records[-1] if self._records else None

    def __len__(self) -> int:
        return self._total

    def __iter__(self) -> Iterator[PlanRecord]:
        return iter(self._records)
