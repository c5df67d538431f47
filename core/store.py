"""Data-holding store for monthly financial records.

Lifecycle: create (empty, idle) -> load -> read -> load again to replace.
The record sequence is a tuple that is swapped in one assignment, so readers
never observe a partially loaded sequence.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Sequence, Tuple, Union

from core.data import AchievementPolicy, MonthlyRecord, apply_achievement_policy
from core.errors import LoadFailure
from core.sources import MonthlyRecordSource

logger = logging.getLogger(__name__)

FetchCallable = Callable[[], Awaitable[Sequence[MonthlyRecord]]]


class LoadStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    ERROR = "error"


@dataclass(frozen=True)
class LoadResult:
    ok: bool
    records: Tuple[MonthlyRecord, ...]
    error: Optional[str] = None


class MetricsStore:
    def __init__(
        self,
        fetch: Union[FetchCallable, MonthlyRecordSource],
        *,
        policy: AchievementPolicy = AchievementPolicy.TRUST,
    ) -> None:
        if isinstance(fetch, MonthlyRecordSource) and not callable(fetch):
            fetch = fetch.fetch_monthly_records
        self._fetch: FetchCallable = fetch  # type: ignore[assignment]
        self.policy = policy
        self._records: Tuple[MonthlyRecord, ...] = ()
        self._status = LoadStatus.IDLE
        self._error: Optional[str] = None

    @property
    def records(self) -> Tuple[MonthlyRecord, ...]:
        return self._records

    @property
    def status(self) -> LoadStatus:
        return self._status

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def is_loading(self) -> bool:
        return self._status == LoadStatus.LOADING

    @property
    def months(self) -> Tuple[str, ...]:
        return tuple(r.month for r in self._records)

    def get(self, month: object) -> Optional[MonthlyRecord]:
        key = str(month)
        for record in self._records:
            if record.month == key:
                return record
        return None

    async def load(self) -> LoadResult:
        """Fetch and replace the record sequence; never raises on fetch failure."""
        self._status = LoadStatus.LOADING
        self._error = None
        logger.info("Loading monthly records")
        try:
            fetched = await self._fetch()
            records = apply_achievement_policy(fetched, self.policy)
        except Exception as exc:
            failure = LoadFailure.from_exception(exc)
            logger.exception("Loading monthly records failed: %s", failure.message)
            self._error = failure.message
            self._status = LoadStatus.ERROR
            return LoadResult(ok=False, records=self._records, error=failure.message)

        self._records = records
        self._status = LoadStatus.IDLE
        logger.info("Loaded %d monthly records", len(records))
        return LoadResult(ok=True, records=records)
