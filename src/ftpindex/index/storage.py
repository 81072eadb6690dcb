"""SQLite snapshot store for crawled directory trees."""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, List, Sequence

from ftpindex.errors import PersistenceError
from ftpindex.models import DirectoryRecord, LeafDir, Site


class SQLiteSnapshotStore:
    """Persistence layer holding one directory snapshot per site.

    A single connection is shared between threads; every operation holds
    ``_lock`` so that the delete and insert halves of two snapshot
    replacements never interleave.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self._lock = threading.RLock()
        try:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys=ON;")
            self._conn.execute("PRAGMA journal_mode=WAL;")
            self._conn.execute("PRAGMA synchronous=NORMAL;")
            self._ensure_schema()
        except sqlite3.Error as exc:
            raise PersistenceError(f"cannot open database {self.db_path}: {exc}") from exc

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                yield self._conn
                self._conn.commit()
            except sqlite3.Error as exc:
                self._conn.rollback()
                raise PersistenceError(str(exc)) from exc
            except Exception:
                self._conn.rollback()
                raise

    def _ensure_schema(self) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS site (
                    id INTEGER PRIMARY KEY,
                    name TEXT NOT NULL,
                    CONSTRAINT name_unique UNIQUE (name)
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS entry (
                    id INTEGER PRIMARY KEY,
                    site_id INTEGER NOT NULL,
                    path TEXT NOT NULL,
                    name TEXT NOT NULL,
                    modified INTEGER,
                    CONSTRAINT path_unique UNIQUE (site_id, path),
                    FOREIGN KEY(site_id) REFERENCES site(id) ON DELETE CASCADE
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_entry_name ON entry(name)")

    def _ensure_site(self, conn: sqlite3.Connection, name: str) -> Site:
        conn.execute("INSERT OR IGNORE INTO site(name) VALUES (?)", (name,))
        row = conn.execute("SELECT id, name FROM site WHERE name = ?", (name,)).fetchone()
        return Site(id=row["id"], name=row["name"])

    def ensure_site(self, name: str) -> Site:
        """Return the site called ``name``, creating it on first use."""
        with self.transaction() as conn:
            return self._ensure_site(conn, name)

    def get_sites(self) -> List[Site]:
        with self._lock:
            rows = self._conn.execute("SELECT id, name FROM site ORDER BY name").fetchall()
        return [Site(id=row["id"], name=row["name"]) for row in rows]

    def replace_directories(self, site_name: str, leaves: Sequence[LeafDir]) -> int:
        """Swap the stored snapshot of ``site_name`` for ``leaves``.

        Runs as one transaction: if any insert fails the previous snapshot is
        left untouched and ``PersistenceError`` is raised.
        """
        with self.transaction() as conn:
            site = self._ensure_site(conn, site_name)
            conn.execute("DELETE FROM entry WHERE site_id = ?", (site.id,))
            conn.executemany(
                "INSERT INTO entry(site_id, path, name, modified) VALUES (?, ?, ?, ?)",
                [(site.id, leaf.path, leaf.name, leaf.modified) for leaf in leaves],
            )
        return len(leaves)

    def list_directories(self, site_name: str) -> List[DirectoryRecord]:
        with self._lock:
            rows = self._conn.execute(
                """
                SELECT s.name AS site, e.path AS path, e.name AS name, e.modified AS modified
                FROM entry e
                JOIN site s ON s.id = e.site_id
                WHERE s.name = ?
                ORDER BY e.path
                """,
                (site_name,),
            ).fetchall()
        return [_record(row) for row in rows]

    def garbage_collect_sites(
        self, configured: Iterable[str], *, dry_run: bool = False
    ) -> List[Site]:
        """Delete sites missing from ``configured``, returning them.

        With ``dry_run`` nothing is deleted.
        """
        keep = set(configured)
        with self.transaction() as conn:
            rows = conn.execute("SELECT id, name FROM site ORDER BY name").fetchall()
            remove = [Site(id=row["id"], name=row["name"]) for row in rows if row["name"] not in keep]
            if not dry_run:
                conn.executemany("DELETE FROM site WHERE id = ?", [(site.id,) for site in remove])
        return remove

    def compact(self) -> None:
        """Reclaim free pages left behind by deletions."""
        with self._lock:
            try:
                self._conn.execute("VACUUM")
            except sqlite3.Error as exc:
                raise PersistenceError(f"vacuum failed: {exc}") from exc

    def search(self, query: str, *, site: str | None = None, limit: int = 50) -> List[DirectoryRecord]:
        pattern = "%" + query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_") + "%"
        sql = """
            SELECT s.name AS site, e.path AS path, e.name AS name, e.modified AS modified
            FROM entry e
            JOIN site s ON s.id = e.site_id
            WHERE e.name LIKE ? ESCAPE '\\'
        """
        params: list = [pattern]
        if site is not None:
            sql += " AND s.name = ?"
            params.append(site)
        sql += " ORDER BY e.modified DESC, e.path LIMIT ?"
        params.append(limit)
        with self._lock:
            rows = self._conn.execute(sql, params).fetchall()
        return [_record(row) for row in rows]

    def get_stats(self) -> List[dict]:
        """Per-site directory counts."""
        with self._lock:
            rows = self._conn.execute(
                """
                SELECT s.name AS name, COUNT(e.id) AS directories
                FROM site s
                LEFT JOIN entry e ON e.site_id = s.id
                GROUP BY s.id
                ORDER BY s.name
                """
            ).fetchall()
        return [{"name": row["name"], "directories": row["directories"]} for row in rows]


def _record(row: sqlite3.Row) -> DirectoryRecord:
    return DirectoryRecord(
        site=row["site"],
        path=row["path"],
        name=row["name"],
        modified=row["modified"],
    )
