"""
Reminder date resolution: yearly recurring anchors (birthdays, joining dates,
festivals) matched against "today" for a set of lead-day offsets.

Everything here is pure; callers pass today's date explicitly.
"""
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Optional, Tuple, Union
import calendar

from .errors import AnchorDateError


@dataclass(frozen=True)
class MonthDay:
    """Year-independent anchor (month/day)"""
    month: int
    day: int

    def __post_init__(self) -> None:
        try:
            # 2000 is a leap year so Feb 29 is accepted
            date(2000, self.month, self.day)
        except (TypeError, ValueError) as e:
            raise AnchorDateError(f"invalid anchor month/day {self.month!r}/{self.day!r}: {e}") from e

    @classmethod
    def from_date(cls, value: date) -> "MonthDay":
        return cls(value.month, value.day)

    def occurrence(self, year: int) -> date:
        """This anchor in the given year. Feb 29 falls back to Feb 28 in non-leap years."""
        if self.month == 2 and self.day == 29 and not calendar.isleap(year):
            return date(year, 2, 28)
        return date(year, self.month, self.day)


Anchor = Union[MonthDay, date, Tuple[int, int]]


def as_month_day(anchor: Optional[Anchor]) -> MonthDay:
    if anchor is None:
        raise AnchorDateError("anchor date is missing")
    if isinstance(anchor, MonthDay):
        return anchor
    if isinstance(anchor, date):
        return MonthDay.from_date(anchor)
    if isinstance(anchor, tuple) and len(anchor) == 2:
        return MonthDay(*anchor)
    raise AnchorDateError(f"unsupported anchor value {anchor!r}")


def matching_occurrence(anchor: Optional[Anchor], today: date, lead_days: Iterable[int]) -> Optional[date]:
    """
    Return the occurrence of ``anchor`` that makes today a reminder day, or None.

    Today matches when it equals this year's or next year's occurrence minus one
    of the lead days. Next year's occurrence covers leads that cross the year
    boundary (anchor Jan 2, lead 7, today Dec 26).
    """
    md = as_month_day(anchor)
    for days_before in sorted(set(lead_days)):
        if days_before < 0:
            raise ValueError(f"lead days must be non-negative, got {days_before}")
        for year in (today.year, today.year + 1):
            occurrence = md.occurrence(year)
            if occurrence - timedelta(days=days_before) == today:
                return occurrence
    return None


def is_due_today(anchor: Optional[Anchor], today: date, lead_days: Iterable[int]) -> bool:
    return matching_occurrence(anchor, today, lead_days) is not None


def years_completed(joining_date: date, today: date) -> int:
    """Whole years since joining, not counting this year's anniversary until it has occurred."""
    if joining_date is None:
        raise AnchorDateError("joining date is missing")
    years = today.year - joining_date.year
    if MonthDay.from_date(joining_date).occurrence(today.year) > today:
        years -= 1
    return years
