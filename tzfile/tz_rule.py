"""Library for parsing TZ rules.

TZ supports these two formats

No DST: std offset
  - std: Name of the timezone
  - offset: Time added to local time to get UTC
  Example: EST+5

DST: std offset dst [offset][,start[/time],end[/time]]
  - dst: Name of the Daylight savings time timezone
  - offset: Defaults to 1 hour ahead of STD offset if not specified
  - start & end: Time period when DST is in effect. The start/end have
    the following formats:
      Jn: A julian day between 1 and 365 (Feb 29th never counted)
      n: A julian day between 0 and 365 (Feb 29th is counted in leap years)
      Mm.w.d:
          m: Month between 1 and 12
          d: Between 0 (Sunday) and 6 (Saturday)
          w: Between 1 and 5. Week 1 is first week d occurs, week 5 is
             the last week d occurs.
      The time field is in hh:mm:ss. The hour can be 167 to -167.

Names are either three or more letters, or a quoted form like <+0330>
that may also contain digits and signs. The quotes are not part of the name.
"""

from __future__ import annotations

from dataclasses import dataclass
import calendar
import datetime
import logging
import re
from typing import Any, Optional, Union

from dateutil import rrule

from .exceptions import RuleParseError

__all__ = [
    "Rule",
    "RuleOccurrence",
    "RuleDate",
    "RuleJulianDay",
    "RuleDayOfYear",
    "DEFAULT_DST_START",
    "DEFAULT_DST_END",
    "parse_tz_rule",
]

_LOGGER = logging.getLogger(__name__)

_ZERO = datetime.timedelta(seconds=0)
_HOUR = datetime.timedelta(hours=1)
_DEFAULT_TIME_DELTA = datetime.timedelta(hours=2)

_MAX_OFFSET_HOURS = 24
_MAX_RULE_TIME_HOURS = 167


def _parse_time(
    values: dict[str, Any], max_hours: int, tz_str: str
) -> datetime.timedelta | None:
    """Convert an offset from [+/-]hh[:mm[:ss]] to a timedelta.

    The dict expects fields of hour, minutes, seconds (see the regular
    expressions below).
    """
    if (hour := values["hour"]) is None:
        return None
    sign = 1
    if hour.startswith("+"):
        hour = hour[1:]
    elif hour.startswith("-"):
        sign = -1
        hour = hour[1:]
    minutes = int(values.get("minutes") or "0")
    seconds = int(values.get("seconds") or "0")
    if int(hour) > max_hours or minutes > 59 or seconds > 59:
        raise RuleParseError(
            f"Unable to parse TZ string, time out of range '{values['hour']}': {tz_str}"
        )
    return datetime.timedelta(
        seconds=sign * (int(hour) * 60 * 60 + minutes * 60 + seconds)
    )


def _midnight(value: datetime.date) -> datetime.datetime:
    return datetime.datetime.combine(value, datetime.time())


@dataclass(frozen=True)
class RuleJulianDay:
    """A date referenced in a timezone rule by julian day, leap days never counted."""

    day_of_year: int
    """A day of the year between 1 and 365, February 29th is never counted."""

    time: datetime.timedelta = _DEFAULT_TIME_DELTA
    """Offset of time in current local time when the rule goes into effect, default of 02:00:00."""

    def as_date(self, year: int) -> datetime.date:
        """Return the date in the specified year the rule refers to."""
        day = self.day_of_year
        if day >= 60 and calendar.isleap(year):
            day += 1
        return datetime.date(year, 1, 1) + datetime.timedelta(days=day - 1)


@dataclass(frozen=True)
class RuleDayOfYear:
    """A date referenced in a timezone rule by zero-based day of the year."""

    day_of_year: int
    """A day of the year between 0 and 365, February 29th is counted in leap years."""

    time: datetime.timedelta = _DEFAULT_TIME_DELTA
    """Offset of time in current local time when the rule goes into effect, default of 02:00:00."""

    def as_date(self, year: int) -> datetime.date:
        """Return the date in the specified year the rule refers to."""
        # Day 365 only exists in leap years, otherwise it is the next January 1st
        return datetime.date(year, 1, 1) + datetime.timedelta(days=self.day_of_year)


@dataclass(frozen=True)
class RuleDate:
    """A date referenced in a timezone rule."""

    month: int
    """A month between 1 and 12."""

    day_of_week: int
    """A day of the week between 0 (Sunday) and 6 (Saturday)."""

    week_of_month: int
    """A week number of the month (1 to 5) based on the first occurrence of day_of_week."""

    time: datetime.timedelta = _DEFAULT_TIME_DELTA
    """Offset of time in current local time when the rule goes into effect, default of 02:00:00."""

    def as_date(self, year: int) -> datetime.date:
        """Return the date in the specified year the rule refers to."""
        rule = rrule.rrule(
            freq=rrule.YEARLY,
            bymonth=self.month,
            byweekday=self._rrule_byday(self._rrule_week_of_month),
            dtstart=datetime.datetime(year, 1, 1),
            count=1,
        )
        return next(iter(rule)).date()

    @property
    def _rrule_byday(self) -> rrule.weekday:
        """Return the dateutil weekday for this rule based on day_of_week."""
        return rrule.weekdays[(self.day_of_week - 1) % 7]

    @property
    def _rrule_week_of_month(self) -> int:
        """Return the byday modifier for the week of the month."""
        if self.week_of_month == 5:
            return -1
        return self.week_of_month


DayRule = Union[RuleDate, RuleJulianDay, RuleDayOfYear]


def rule_datetime(day_rule: DayRule, year: int) -> datetime.datetime:
    """Return the local datetime a day rule goes into effect in the specified year."""
    return _midnight(day_rule.as_date(year)) + day_rule.time


@dataclass(frozen=True)
class RuleOccurrence:
    """A TimeZone rule occurrence."""

    name: str
    """The name of the timezone occurrence e.g. EST."""

    offset: datetime.timedelta
    """UTC offset for this timezone occurrence (not time added to local time)."""


# Used when a rule names a DST occurrence without any start or end rules.
DEFAULT_DST_START = RuleDate(month=3, week_of_month=2, day_of_week=0)
DEFAULT_DST_END = RuleDate(month=11, week_of_month=1, day_of_week=0)


@dataclass(frozen=True)
class Rule:
    """A rule for evaluating future timezone transitions."""

    std: RuleOccurrence
    """An occurrence of a timezone transition for standard time."""

    dst: Optional[RuleOccurrence] = None
    """An occurrence of a timezone transition for daylight savings time."""

    dst_start: Optional[DayRule] = None
    """Describes when dst goes into effect."""

    dst_end: Optional[DayRule] = None
    """Describes when dst ends (std starts)."""


# Regexp for parsing the TZ string
_NAME_RE_PATTERN = r"(?:\<(?P<quoted>[a-zA-Z0-9+\-]{3,})\>|(?P<name>[a-zA-Z]{3,}))"
_OFFSET_RE_PATTERN: re.Pattern[str] = re.compile(
    _NAME_RE_PATTERN
    + r"((?P<hour>[+-]?\d{1,2})(?::(?P<minutes>\d{1,2})(?::(?P<seconds>\d{1,2}))?)?)?"  # offset
)
_START_END_RE_PATTERN = re.compile(
    # days in julian (J prefix), zero based day or month.week.day (M prefix) format
    r",(J(?P<julian_day>\d{1,3})|(?P<day_of_year>\d{1,3})"
    r"|M(?P<month>\d{1,2})\.(?P<week_of_month>\d)\.(?P<day_of_week>\d))"
    # time
    r"(\/(?P<hour>[+-]?\d{1,3})(?::(?P<minutes>\d{1,2})(?::(?P<seconds>\d{1,2}))?)?)?"
)


def _rule_occurrence_from_match(
    match: re.Match[str], tz_str: str, default: datetime.timedelta | None = None
) -> RuleOccurrence:
    """Create a rule occurrence from a regex match."""
    name = match.group("quoted") or match.group("name")
    offset = _parse_time(match.groupdict(), _MAX_OFFSET_HOURS, tz_str)
    if offset is None:
        if default is None:
            raise RuleParseError(
                f"Unable to parse TZ string, missing offset for {name}: {tz_str}"
            )
        return RuleOccurrence(name=name, offset=default)
    # The rule string has the time added to local time to get UTC
    return RuleOccurrence(name=name, offset=_ZERO - offset)


def _check_range(value: int, low: int, high: int, field: str, tz_str: str) -> int:
    if not low <= value <= high:
        raise RuleParseError(
            f"Unable to parse TZ string, {field} {value} not in [{low}, {high}]: {tz_str}"
        )
    return value


def _rule_date_from_match(match: re.Match[str], tz_str: str) -> DayRule:
    """Create a rule date from a regex match."""
    time = _parse_time(match.groupdict(), _MAX_RULE_TIME_HOURS, tz_str)
    if time is None:
        time = _DEFAULT_TIME_DELTA
    if match["julian_day"] is not None:
        return RuleJulianDay(
            day_of_year=_check_range(
                int(match["julian_day"]), 1, 365, "julian day", tz_str
            ),
            time=time,
        )
    if match["day_of_year"] is not None:
        return RuleDayOfYear(
            day_of_year=_check_range(
                int(match["day_of_year"]), 0, 365, "day of year", tz_str
            ),
            time=time,
        )
    return RuleDate(
        month=_check_range(int(match["month"]), 1, 12, "month", tz_str),
        week_of_month=_check_range(
            int(match["week_of_month"]), 1, 5, "week of month", tz_str
        ),
        day_of_week=_check_range(
            int(match["day_of_week"]), 0, 6, "day of week", tz_str
        ),
        time=time,
    )


def parse_tz_rule(tz_str: str) -> Rule:
    """Parse the TZ string into a Rule object."""
    buffer = tz_str
    if (std_match := _OFFSET_RE_PATTERN.match(buffer)) is None:
        raise RuleParseError(f"Unable to parse TZ string: {tz_str}")
    std = _rule_occurrence_from_match(std_match, tz_str)
    buffer = buffer[std_match.end() :]

    dst = None
    if (dst_match := _OFFSET_RE_PATTERN.match(buffer)) is not None:
        buffer = buffer[dst_match.end() :]
        dst = _rule_occurrence_from_match(dst_match, tz_str, std.offset + _HOUR)
    if (std_start := _START_END_RE_PATTERN.match(buffer)) is not None:
        buffer = buffer[std_start.end() :]
    if (std_end := _START_END_RE_PATTERN.match(buffer)) is not None:
        buffer = buffer[std_end.end() :]
    if (std_start is None) != (std_end is None):
        raise RuleParseError(
            f"Unable to parse TZ string, should have both or neither start and end dates: {tz_str}"
        )
    if buffer:
        raise RuleParseError(
            f"Unable to parse TZ string, unexpected trailing data: {tz_str}"
        )
    if dst is None and std_start is not None:
        raise RuleParseError(
            f"Unable to parse TZ string, start and end dates without DST: {tz_str}"
        )
    rule = Rule(
        std=std,
        dst=dst,
        dst_start=_rule_date_from_match(std_start, tz_str) if std_start else None,
        dst_end=_rule_date_from_match(std_end, tz_str) if std_end else None,
    )
    _LOGGER.debug("Parsed TZ string %s: %s", tz_str, rule)
    return rule
