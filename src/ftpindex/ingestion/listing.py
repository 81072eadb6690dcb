"""Parsing of Unix ``ls -l`` style directory listings.

FTP servers answer ``STAT <path>`` with the same long listing format that
``LIST`` produces, wrapped in a multi-line status reply::

    213-Status follows:
    drwxr-xr-x    2 ftp      ftp          4096 Mar 11 12:00 pub
    -rw-r--r--    1 ftp      ftp           120 Jan  1  2020 README
    213 End of status

Only the type character, the timestamp and the name are used.
"""

from __future__ import annotations

import logging
import posixpath
import re
from datetime import datetime, timezone
from typing import Iterable, List

from ftpindex.models import Entry, EntryKind

LOGGER = logging.getLogger(__name__)

_MONTHS = {
    name: index
    for index, name in enumerate(
        ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"],
        start=1,
    )
}

_LINE_RE = re.compile(
    r"^(?P<mode>[\-a-zA-Z][\-rwxsStTl]{9}[+@.]?)\s+"
    r".*?\s(?P<month>" + "|".join(_MONTHS) + r")\s+(?P<day>\d{1,2})\s+"
    r"(?P<time>\d{1,2}:\d{2}|\d{4})\s(?P<name>.+)$"
)
_REPLY_CODE_RE = re.compile(r"^\d{3}[ -]")

# Stands in for timestamps the listing gives but no calendar has.
UNKNOWN_MODIFIED = datetime(1970, 1, 1, tzinfo=timezone.utc)
_YEAR_LOOKBACK = 8


def _kind_from_mode(mode: str) -> EntryKind:
    if mode[0] == "d":
        return EntryKind.DIRECTORY
    if mode[0] == "-":
        return EntryKind.FILE
    return EntryKind.OTHER


def _parse_timestamp(month: str, day: str, time_or_year: str, now: datetime) -> datetime:
    month_number = _MONTHS[month]
    if ":" not in time_or_year:
        return datetime(int(time_or_year), month_number, int(day), tzinfo=timezone.utc)
    hour, minute = (int(part) for part in time_or_year.split(":"))
    # Listings omit the year for recent entries; those can't be in the future.
    # Feb 29 only exists in leap years, so keep stepping back until it fits.
    for year in range(now.year, now.year - _YEAR_LOOKBACK, -1):
        try:
            stamp = datetime(year, month_number, int(day), hour, minute, tzinfo=timezone.utc)
        except ValueError:
            continue
        if stamp <= now:
            return stamp
    raise ValueError(f"no valid year for {month} {day} {time_or_year}")


def parse_line(directory: str, line: str, *, now: datetime | None = None) -> Entry | None:
    """Parse one listing line, returning ``None`` for lines that carry no entry."""
    match = _LINE_RE.match(line.strip())
    if match is None:
        return None
    now = now or datetime.now(timezone.utc)
    kind = _kind_from_mode(match["mode"])
    name = match["name"]
    if kind is EntryKind.OTHER and match["mode"][0] == "l" and " -> " in name:
        name = name.split(" -> ", 1)[0]
    try:
        modified = _parse_timestamp(match["month"], match["day"], match["time"], now)
    except ValueError:
        LOGGER.debug("Unparseable timestamp in listing line: %r", line)
        modified = UNKNOWN_MODIFIED
    return Entry(
        name=name,
        path=posixpath.join(directory, name),
        kind=kind,
        modified=modified,
    )


def parse_listing(
    directory: str, lines: Iterable[str], *, now: datetime | None = None
) -> List[Entry]:
    """Parse a listing of ``directory`` into entries, keeping server order."""
    now = now or datetime.now(timezone.utc)
    entries: List[Entry] = []
    for line in lines:
        if _REPLY_CODE_RE.match(line):
            line = line[4:]
        entry = parse_line(directory, line, now=now)
        if entry is not None:
            entries.append(entry)
    return entries


def parse_stat_reply(directory: str, reply: str, *, now: datetime | None = None) -> List[Entry]:
    """Parse the multi-line reply to ``STAT <directory>``."""
    return parse_listing(directory, reply.splitlines(), now=now)
