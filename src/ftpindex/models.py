"""Core ftpindex data models."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import List


class EntryKind(str, enum.Enum):
    DIRECTORY = "directory"
    FILE = "file"
    OTHER = "other"


@dataclass(slots=True, frozen=True)
class Entry:
    """One item reported by a remote directory listing."""

    name: str
    path: str
    kind: EntryKind
    modified: datetime

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIRECTORY

    def is_current_or_parent(self) -> bool:
        return self.name in (".", "..")


@dataclass(slots=True)
class RawTree:
    """Entries accumulated by one walk.

    ``unavailable`` holds the paths whose listing failed, which the walk
    otherwise treats as empty directories.
    """

    root: str
    entries: List[Entry] = field(default_factory=list)
    unavailable: List[str] = field(default_factory=list)

    def __iter__(self):
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(slots=True, frozen=True)
class LeafDir:
    """Deepest discovered directory of a branch."""

    name: str
    path: str
    modified: int


@dataclass(slots=True, frozen=True)
class Site:
    id: int
    name: str


@dataclass(slots=True, frozen=True)
class DirectoryRecord:
    site: str
    path: str
    name: str
    modified: int | None
