"""Site crawling pipeline."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Sequence

from ftpindex.config import SiteConfig
from ftpindex.errors import ListingUnavailable, SiteConnectionError
from ftpindex.index.leaves import extract_leaves
from ftpindex.index.storage import SQLiteSnapshotStore
from ftpindex.index.walker import Walker
from ftpindex.ingestion.ftp_client import FTPSession, connect_site
from ftpindex.models import Site

LOGGER = logging.getLogger(__name__)

Connector = Callable[[SiteConfig], FTPSession]


@dataclass(slots=True)
class CrawlStats:
    succeeded: int = 0
    failed: int = 0
    directories: int = 0
    failed_sites: list[str] = field(default_factory=list)

    def record_success(self, directories: int) -> None:
        self.succeeded += 1
        self.directories += directories

    def record_failure(self, site_name: str) -> None:
        self.failed += 1
        self.failed_sites.append(site_name)


class Crawler:
    """Coordinates walking remote sites and persisting their snapshots."""

    def __init__(
        self,
        store: SQLiteSnapshotStore,
        *,
        connect: Connector = connect_site,
        workers: int = 1,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self.store = store
        self.connect = connect
        self.workers = workers

    def crawl_site(self, site: SiteConfig) -> int:
        """Crawl one site and replace its snapshot, returning the row count."""
        session = self.connect(site)
        try:
            tree = Walker(session, site_name=site.name).walk(site.root)
        finally:
            session.close()
        leaves = extract_leaves(tree)
        saved = self.store.replace_directories(site.name, leaves)
        if tree.unavailable:
            LOGGER.warning(
                "[%s] %d directories could not be listed", site.name, len(tree.unavailable)
            )
        LOGGER.info("[%s] Saved %d directories", site.name, saved)
        return saved

    def _crawl_logged(self, site: SiteConfig) -> int | None:
        try:
            return self.crawl_site(site)
        except SiteConnectionError as exc:
            LOGGER.error("[%s] %s", site.name, exc)
        except ListingUnavailable as exc:
            LOGGER.error("[%s] Failed crawling: %s", site.name, exc)
        return None

    def update(self, sites: Sequence[SiteConfig]) -> CrawlStats:
        """Crawl every site; one site's failure does not stop the others.

        ``PersistenceError`` is not caught and ends the run.
        """
        stats = CrawlStats()
        if self.workers == 1 or len(sites) < 2:
            results = [self._crawl_logged(site) for site in sites]
        else:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                results = list(pool.map(self._crawl_logged, sites))

        for site, saved in zip(sites, results):
            if saved is None:
                stats.record_failure(site.name)
            else:
                stats.record_success(saved)
        return stats


def collect_garbage(
    store: SQLiteSnapshotStore, configured: Iterable[str], *, dry_run: bool = False
) -> List[Site]:
    """Remove stored sites that are no longer configured."""
    removed = store.garbage_collect_sites(configured, dry_run=dry_run)
    if dry_run:
        return removed
    LOGGER.info("Removing %d sites", len(removed))
    if removed:
        LOGGER.info("Running vacuum")
        store.compact()
    return removed
