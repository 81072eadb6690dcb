"""Reduction of a walked tree to its leaf directories."""

from __future__ import annotations

import posixpath
from typing import Iterable, List

from ftpindex.models import Entry, LeafDir


def extract_leaves(entries: Iterable[Entry]) -> List[LeafDir]:
    """Return directories that have no child directory among ``entries``.

    Order follows the first occurrence of each qualifying directory.
    """
    directories = [
        entry for entry in entries if entry.is_dir and not entry.is_current_or_parent()
    ]
    parents = {posixpath.dirname(entry.path) for entry in directories}

    leaves: List[LeafDir] = []
    seen: set[str] = set()
    for entry in directories:
        if entry.path in parents or entry.path in seen:
            continue
        seen.add(entry.path)
        leaves.append(
            LeafDir(
                name=entry.name,
                path=entry.path,
                modified=int(entry.modified.timestamp()),
            )
        )
    return leaves
