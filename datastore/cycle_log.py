from __future__ import annotations
import json
from datetime import date
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, Optional

from app.schemas import CycleRecord, FetchOutcome, SeriesPoint
from settings import get_settings


class CycleLogTable:
    """Cycle records keyed by ``cycle_id``, optionally mirrored to a JSON file.

    When ``max_records`` is set, the oldest records by ``started_at`` are evicted
    so the table (and its file) never holds more than that many.
    """

    def __init__(
        self,
        name: str,
        persistence_path: Optional[Path] = None,
        max_records: Optional[int] = None,
    ) -> None:
        if max_records is not None and max_records <= 0:
            raise ValueError("max_records must be positive.")
        self.name = name
        self._items: Dict[str, CycleRecord] = {}
        self.persistence_path = persistence_path
        self.max_records = max_records
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def put_item(self, item: CycleRecord) -> None:
        with self._lock:
            self._items[item.cycle_id] = item.model_copy(deep=True)
            self._evict_oldest()
            self._persist()

    def get_item(self, key: str) -> Optional[CycleRecord]:
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            return item.model_copy(deep=True)

    def scan(self) -> list[CycleRecord]:
        """Return deep copies of all stored cycle records, oldest first."""

        with self._lock:
            items = [item.model_copy(deep=True) for item in self._items.values()]
        return sorted(items, key=lambda record: record.started_at)

    def series(self, days: Optional[int] = None) -> list[SeriesPoint]:
        """Daily chart feed: the latest successful reading for each observed date.

        ``days`` keeps only the most recent N dates.
        """

        latest: Dict[date, CycleRecord] = {}
        for record in self.scan():
            if record.fetch_outcome is not FetchOutcome.ok or record.value is None:
                continue
            observed = record.observed_at or record.started_at
            day = observed.date()
            current = latest.get(day)
            if current is None or observed >= (current.observed_at or current.started_at):
                latest[day] = record

        points = [
            SeriesPoint(date=day, value=record.value)
            for day, record in sorted(latest.items(), key=lambda pair: pair[0])
        ]
        if days is not None:
            points = points[-days:] if days > 0 else []
        return points

    def _evict_oldest(self) -> None:
        if self.max_records is None or len(self._items) <= self.max_records:
            return
        ordered = sorted(self._items.values(), key=lambda record: record.started_at)
        for record in ordered[: len(self._items) - self.max_records]:
            del self._items[record.cycle_id]

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            cycle_id: item.model_dump(mode="json") for cycle_id, item in self._items.items()
        }
        self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            data = {}

        for cycle_id, payload in data.items():
            self._items[cycle_id] = CycleRecord.model_validate(payload)
        self._evict_oldest()


@lru_cache
def build_default_cycle_log(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> CycleLogTable:
    settings = get_settings()
    table_name = settings.location if name is None else name
    table_path = settings.cycle_log_path if path is None else path
    persistence = Path(table_path) if table_path else None
    return CycleLogTable(
        name=table_name,
        persistence_path=persistence,
        max_records=settings.cycle_log_max_records,
    )
