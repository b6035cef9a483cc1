"""Parsed canvas edits and the search areas they are matched against."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import FrozenSet, Optional

from place_trace.geometry import Rectangle, Shape, touches

TIMESTAMP_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}(?:\.\d{1,6})? UTC$")


def is_timestamp(text: str) -> bool:
    return TIMESTAMP_PATTERN.match(text) is not None


def parse_timestamp(text: str) -> datetime:
    """Parse ``YYYY-MM-DD HH:MM:SS[.fff] UTC`` into an aware datetime."""
    value = text.strip()
    if not is_timestamp(value):
        raise ValueError(f"Timestamp {text!r} is not in 'YYYY-MM-DD HH:MM:SS[.fff] UTC' form.")
    stamp = value[: -len(" UTC")]
    fmt = "%Y-%m-%d %H:%M:%S.%f" if "." in stamp else "%Y-%m-%d %H:%M:%S"
    return datetime.strptime(stamp, fmt).replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class EditEvent:
    """One placement. ``timestamp`` keeps the raw text, ``time`` the parsed UTC moment."""

    timestamp: str
    time: datetime
    author_id: str
    color: str
    placement: Shape


@dataclass(frozen=True)
class SearchArea:
    """Region, optional time window and optional palette an author must have touched."""

    region: Rectangle
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    colors: FrozenSet[str] = field(default_factory=frozenset)
    optional: bool = False

    def matches(self, event: EditEvent) -> bool:
        if self.start_time is not None and event.time < self.start_time:
            return False
        if self.end_time is not None and event.time > self.end_time:
            return False
        if self.colors and event.color.upper() not in self.colors:
            return False
        return self.touches(event.placement)

    def touches(self, placement: Shape) -> bool:
        return touches(self.region, placement)
