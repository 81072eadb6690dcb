"""FastAPI application exposing the directory catalog."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, List

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from ftpindex import __version__
from ftpindex.config import _get_default_db_path
from ftpindex.index.search import Searcher, SearchResult
from ftpindex.index.storage import SQLiteSnapshotStore

LOGGER = logging.getLogger(__name__)

DB_ENV = "FTPINDEX_DB"

app = FastAPI(title="ftpindex", version=__version__)


class SearchPayload(BaseModel):
    query: str
    site: str | None = None
    limit: int = 50


def _resolve_db_path() -> Path:
    configured = os.environ.get(DB_ENV)
    return Path(configured) if configured else _get_default_db_path()


def _open_store() -> SQLiteSnapshotStore:
    db_path = _resolve_db_path()
    if not db_path.exists():
        raise HTTPException(status_code=404, detail=f"Database not found at {db_path}")
    return SQLiteSnapshotStore(db_path)


@app.get("/sites")
def list_sites() -> dict[str, Any]:
    store = _open_store()
    try:
        sites = store.get_stats()
    finally:
        store.close()
    return {"sites": sites}


@app.post("/search")
def search_directories(payload: SearchPayload) -> dict[str, List[SearchResult]]:
    query = payload.query.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Empty query")

    limit = max(1, min(payload.limit, 500))
    store = _open_store()
    try:
        results = Searcher(store).search(query, site=payload.site, limit=limit)
    finally:
        store.close()
    LOGGER.debug("Search %r returned %d results", query, len(results))
    return {"results": results}
