"""Catalog queries over stored snapshots."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List

from ftpindex.index.storage import SQLiteSnapshotStore


@dataclass(slots=True)
class SearchResult:
    site: str
    path: str
    name: str
    modified: datetime | None


class Searcher:
    """High-level API to query the snapshot store."""

    def __init__(self, store: SQLiteSnapshotStore) -> None:
        self.store = store

    def search(self, query: str, *, site: str | None = None, limit: int = 50) -> List[SearchResult]:
        query = query.strip()
        if not query:
            return []
        records = self.store.search(query, site=site, limit=max(1, limit))
        return [
            SearchResult(
                site=record.site,
                path=record.path,
                name=record.name,
                modified=(
                    datetime.fromtimestamp(record.modified, tz=timezone.utc)
                    if record.modified is not None
                    else None
                ),
            )
            for record in records
        ]
