"""Watch a Supabase table for row changes and keep local projections in sync.

Usage:
  sub = TableSubscription(supabase, 'complaints', filters={'id': complaint_id})
  projection = Projection()
  sub.watch(projection.apply)

The subscription polls the table, diffs each result against the previous
snapshot and emits INSERT/UPDATE/DELETE events. Projections merge events by
row key, so applying the same event twice changes nothing and the last
message for a row wins.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"

MAX_BACKOFF = 60


@dataclass(frozen=True)
class ChangeEvent:
    type: str
    table: str
    row: Dict[str, Any]


class Projection:
    """Rows of one table, keyed by primary key"""

    def __init__(self, key: str = "id"):
        self.key = key
        self.rows: Dict[Any, Dict[str, Any]] = {}

    def apply(self, event: ChangeEvent):
        row_key = event.row.get(self.key)
        if event.type == DELETE:
            self.rows.pop(row_key, None)
        else:
            self.rows[row_key] = dict(event.row)

    def get(self, row_key) -> Optional[Dict[str, Any]]:
        return self.rows.get(row_key)

    def __len__(self):
        return len(self.rows)


class TableSubscription:
    def __init__(self, client, table: str, filters: Optional[Dict[str, Any]] = None,
                 key: str = "id", interval_seconds: float = 3.0):
        self.client = client
        self.table = table
        self.filters = filters or {}
        self.key = key
        self.interval_seconds = interval_seconds
        self._snapshot: Dict[Any, Dict[str, Any]] = {}
        self._stop = threading.Event()

    def _fetch(self) -> List[Dict[str, Any]]:
        query = self.client.table(self.table).select('*')
        for column, value in self.filters.items():
            query = query.eq(column, value)
        return query.execute().data or []

    def poll(self) -> List[ChangeEvent]:
        """Fetch once and return what changed since the last poll"""
        current = {row.get(self.key): row for row in self._fetch()}
        events = []
        for row_key, row in current.items():
            previous = self._snapshot.get(row_key)
            if previous is None:
                events.append(ChangeEvent(INSERT, self.table, row))
            elif previous != row:
                events.append(ChangeEvent(UPDATE, self.table, row))
        for row_key, row in self._snapshot.items():
            if row_key not in current:
                events.append(ChangeEvent(DELETE, self.table, row))
        self._snapshot = current
        return events

    def watch(self, callback: Callable[[ChangeEvent], None], max_polls: Optional[int] = None):
        """Poll until stopped, handing every change to the callback"""
        logger.info("Starting watch on %s; polling every %s seconds", self.table, self.interval_seconds)
        backoff = self.interval_seconds
        polls = 0
        self._stop.clear()
        while not self._stop.is_set():
            try:
                for event in self.poll():
                    callback(event)
                # reset backoff after a clean poll
                backoff = self.interval_seconds
            except Exception as e:
                logger.warning("Watch loop error on %s: %s", self.table, e)
                # exponential backoff up to 60s
                backoff = min(MAX_BACKOFF, backoff * 2)

            polls += 1
            if max_polls is not None and polls >= max_polls:
                break
            self._stop.wait(backoff)
        logger.info("Watch on %s stopped", self.table)

    @property
    def snapshot(self) -> Dict[Any, Dict[str, Any]]:
        """Rows seen by the most recent poll"""
        return self._snapshot

    def stop(self):
        self._stop.set()
