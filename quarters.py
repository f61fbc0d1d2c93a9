"""
Quarter Calendar
================

Date-range helpers for fiscal quarters labelled "Q<1-4> <YYYY>" (e.g. "Q4 2024").

The label is the only wire format accepted for time-scoping. It is parsed
once, at the outermost entry point, into a Quarter value; calculators work
with Quarter objects from then on.
"""

import re
from calendar import monthrange
from dataclasses import dataclass
from datetime import MAXYEAR, MINYEAR, datetime
from typing import Union

from exceptions import QuarterParseError

_QUARTER_LABEL = re.compile(r"^Q(\d+) (\d{4})$")


@dataclass(frozen=True)
class Quarter:
    """A calendar quarter."""
    year: int
    number: int  # 1-4

    def __post_init__(self):
        if not 1 <= self.number <= 4:
            raise QuarterParseError(self.label, "quarter number must be 1-4")
        if not MINYEAR <= self.year <= MAXYEAR:
            raise QuarterParseError(self.label, f"year must be {MINYEAR}-{MAXYEAR}")

    @property
    def label(self) -> str:
        return f"Q{self.number} {self.year}"

    @property
    def start_month(self) -> int:
        return (self.number - 1) * 3 + 1

    @property
    def end_month(self) -> int:
        return self.number * 3

    @property
    def start(self) -> datetime:
        """First instant of the quarter (day 1, 00:00:00)."""
        return datetime(self.year, self.start_month, 1)

    @property
    def end(self) -> datetime:
        """Last second of the quarter (last day, 23:59:59)."""
        last_day = monthrange(self.year, self.end_month)[1]
        return datetime(self.year, self.end_month, last_day, 23, 59, 59)

    @property
    def year_start(self) -> datetime:
        """January 1 of the quarter's year."""
        return datetime(self.year, 1, 1)

    def previous(self) -> "Quarter":
        if self.number == 1:
            return Quarter(self.year - 1, 4)
        return Quarter(self.year, self.number - 1)

    def contains(self, moment: datetime) -> bool:
        """Inclusive membership test against [start, end]."""
        return self.start <= moment <= self.end

    def __str__(self) -> str:
        return self.label


def parse_quarter(label: Union[str, Quarter]) -> Quarter:
    """
    Parse a "Q<1-4> <YYYY>" label.

    Surrounding whitespace is ignored; anything else that deviates from the
    format raises QuarterParseError. Quarter instances pass through unchanged.
    """
    if isinstance(label, Quarter):
        return label
    if not isinstance(label, str):
        raise QuarterParseError(label, "expected a string")

    match = _QUARTER_LABEL.match(label.strip())
    if not match:
        raise QuarterParseError(label, "expected format 'Q<1-4> <YYYY>'")

    return Quarter(year=int(match.group(2)), number=int(match.group(1)))


def quarter_start(label: str) -> datetime:
    return parse_quarter(label).start


def quarter_end(label: str) -> datetime:
    return parse_quarter(label).end


def previous_quarter_start(label: str) -> datetime:
    return parse_quarter(label).previous().start


def previous_quarter_end(label: str) -> datetime:
    return parse_quarter(label).previous().end
