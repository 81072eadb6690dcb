"""Adaptive walk of a remote directory tree.

Remote trees are assumed to hold directories of directories down to some
unknown depth, and directories of files below it. Before descending into a
subdirectory the walker peeks at its listing. A subdirectory holding anything
other than directories is content-bearing: its listing is kept but the walk
stops there. Every sibling is peeked on its own, so each branch settles its
own depth and branches share no state besides the output tree.

Every directory is listed at most once: the peek is reused as the listing of
the directory when the walker descends into it.
"""

from __future__ import annotations

import logging
import posixpath
from typing import List, Sequence

from ftpindex.errors import ListingError, ListingUnavailable
from ftpindex.ingestion.ftp_client import DirectoryLister
from ftpindex.models import Entry, RawTree

LOGGER = logging.getLogger(__name__)


def normalize_root(root: str) -> str:
    if not root or root == "/":
        return "/"
    return posixpath.normpath(root)


def _visible(entries: Sequence[Entry]) -> List[Entry]:
    return [entry for entry in entries if not entry.is_current_or_parent()]


class Walker:
    """Walks a remote tree through a ``DirectoryLister``."""

    def __init__(self, lister: DirectoryLister, *, site_name: str | None = None) -> None:
        self.lister = lister
        self.site_name = site_name

    def _prefix(self) -> str:
        return f"[{self.site_name}] " if self.site_name else ""

    def walk(self, root: str) -> RawTree:
        """Collect every entry reachable from ``root``.

        Raises ``ListingUnavailable`` when ``root`` itself cannot be listed.
        Failures below the root are logged, recorded in ``RawTree.unavailable``
        and treated as empty directories.
        """
        root = normalize_root(root)
        tree = RawTree(root=root)
        try:
            listing = self.lister.list(root)
        except ListingError as exc:
            raise ListingUnavailable(root, exc.reason) from exc
        self._walk(tree, root, listing)
        LOGGER.debug(
            "%sWalked %s: %d entries, %d unavailable",
            self._prefix(),
            root,
            len(tree.entries),
            len(tree.unavailable),
        )
        return tree

    def _list(self, tree: RawTree, path: str) -> List[Entry]:
        try:
            return self.lister.list(path)
        except ListingError as exc:
            LOGGER.warning("%sListing directory %s failed: %s", self._prefix(), path, exc.reason)
            tree.unavailable.append(path)
            return []

    def _walk(self, tree: RawTree, path: str, listing: Sequence[Entry]) -> None:
        entries = _visible(listing)
        tree.entries.extend(entries)
        for entry in entries:
            if not entry.is_dir:
                continue
            subpath = posixpath.join(path, entry.name)
            peek = _visible(self._list(tree, subpath))
            if any(not child.is_dir for child in peek):
                # Content-bearing: keep the peeked listing, descend no further.
                tree.entries.extend(peek)
                continue
            self._walk(tree, subpath, peek)


def walk(lister: DirectoryLister, root: str, *, site_name: str | None = None) -> RawTree:
    return Walker(lister, site_name=site_name).walk(root)
