"""Fetch collaborators for the metrics store.

A source is any object whose ``fetch_monthly_records()`` coroutine returns the
full record sequence or raises. Sources are also callable, so a store can be
handed either a source instance or a bare ``async def`` function.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional, Protocol, Sequence, Tuple, runtime_checkable

from core.data import MOCK_MONTHLY_DATA, MonthlyRecord, get_source_files, load_monthly_records_file
from core.errors import LoadFailure

logger = logging.getLogger(__name__)

MOCK_LOAD_DELAY_SECONDS = 0.5


@runtime_checkable
class MonthlyRecordSource(Protocol):
    async def fetch_monthly_records(self) -> Sequence[MonthlyRecord]:
        ...


class _CallableSource:
    async def fetch_monthly_records(self) -> Sequence[MonthlyRecord]:
        raise NotImplementedError

    async def __call__(self) -> Sequence[MonthlyRecord]:
        return await self.fetch_monthly_records()


class MockMonthlyRecordSource(_CallableSource):
    """Serves the fixture dataset after a short simulated delay."""

    def __init__(self, records: Optional[Sequence[MonthlyRecord]] = None, delay: float = MOCK_LOAD_DELAY_SECONDS) -> None:
        self.records: Tuple[MonthlyRecord, ...] = tuple(MOCK_MONTHLY_DATA if records is None else records)
        self.delay = delay

    async def fetch_monthly_records(self) -> Sequence[MonthlyRecord]:
        if self.delay > 0:
            await asyncio.sleep(self.delay)
        return self.records


class FileMonthlyRecordSource(_CallableSource):
    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    async def fetch_monthly_records(self) -> Sequence[MonthlyRecord]:
        if not self.path.exists():
            raise LoadFailure(f"Data file not found: {self.path}")
        return await asyncio.to_thread(load_monthly_records_file, self.path)


class FailingMonthlyRecordSource(_CallableSource):
    """Always fails; used to exercise the store's error state."""

    def __init__(self, message: str = "Unknown error", delay: float = 0.0) -> None:
        self.message = message
        self.delay = delay

    async def fetch_monthly_records(self) -> Sequence[MonthlyRecord]:
        if self.delay > 0:
            await asyncio.sleep(self.delay)
        raise LoadFailure(self.message)


def default_source(data_dir: Optional[Path] = None) -> _CallableSource:
    """Newest monthly_records file in the data directory, else the fixture data."""
    files = get_source_files(data_dir)
    if files:
        newest = max(files, key=lambda p: p.stat().st_mtime)
        logger.info("Using data file %s", newest.name)
        return FileMonthlyRecordSource(newest)
    logger.info("No monthly_records file found; serving fixture data")
    return MockMonthlyRecordSource()
