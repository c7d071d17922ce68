"""Library for resolving the local time type in effect at an instant.

Instants are seconds since the epoch in UTC, ignoring leap seconds like
POSIX time does. Instants within the recorded transitions are found with a
binary search. Instants on or after the last transition of a version 2+
file are computed from the TZ string rule in the file footer, which is
evaluated separately for every year and so remains valid indefinitely.
"""

from __future__ import annotations

import bisect
import datetime
import logging
from typing import NamedTuple

from .exceptions import ResolutionError
from .model import LocalTimeType, TimezoneInfo
from .tz_rule import (
    DEFAULT_DST_END,
    DEFAULT_DST_START,
    DayRule,
    Rule,
    RuleOccurrence,
    rule_datetime,
)

__all__ = [
    "Resolution",
    "find_time_type",
    "resolve",
]

_LOGGER = logging.getLogger(__name__)

_EPOCH = datetime.datetime(1970, 1, 1)
_SECOND = datetime.timedelta(seconds=1)


class Resolution(NamedTuple):
    """The local time in effect at an instant."""

    utc_offset: int
    """Number of seconds added to UTC to determine local time."""

    abbreviation: str
    """The time zone designation, e.g. CEST."""

    is_dst: bool
    """True if local time is Daylight Savings Time."""

    @property
    def offset(self) -> datetime.timedelta:
        """Return the UTC offset as a timedelta."""
        return datetime.timedelta(seconds=self.utc_offset)


def _from_local_time_type(local_time_type: LocalTimeType) -> Resolution:
    return Resolution(
        local_time_type.utoff, local_time_type.designation, local_time_type.dst
    )


def _from_occurrence(occurrence: RuleOccurrence, is_dst: bool) -> Resolution:
    return Resolution(occurrence.offset // _SECOND, occurrence.name, is_dst)


def _matching_time_type(info: TimezoneInfo, resolution: Resolution) -> int | None:
    """Return the index of the local time type matching the rule occurrence."""
    for i, local_time_type in enumerate(info.local_time_types):
        if (
            local_time_type.utoff == resolution.utc_offset
            and local_time_type.dst == resolution.is_dst
            and local_time_type.designation == resolution.abbreviation
        ):
            return i
    return None


def _boundary_offset(
    info: TimezoneInfo, begins: Resolution, std: Resolution, wall: Resolution
) -> int:
    """Return the UTC offset the default rule transition times are expressed in.

    The indicators of the local time type that begins at the transition
    determine if the time is UT, standard time or wall clock time.
    """
    if (time_type := _matching_time_type(info, begins)) is None:
        return wall.utc_offset
    if info.is_ut(time_type):
        return 0
    if info.is_standard(time_type):
        return std.utc_offset
    return wall.utc_offset


def _rule_instant(day_rule: DayRule, year: int, utc_offset: int) -> int:
    """Return the UTC instant a day rule takes effect in the specified year."""
    return (rule_datetime(day_rule, year) - _EPOCH) // _SECOND - utc_offset


def _year_boundaries(
    info: TimezoneInfo, rule: Rule, year: int, std: Resolution, dst: Resolution
) -> list[tuple[int, Resolution]]:
    """Return the DST start and end instants for the year."""
    if rule.dst_start is not None and rule.dst_end is not None:
        # Rule times are in the local wall clock time in effect before the transition
        return [
            (_rule_instant(rule.dst_start, year, std.utc_offset), dst),
            (_rule_instant(rule.dst_end, year, dst.utc_offset), std),
        ]
    return [
        (
            _rule_instant(
                DEFAULT_DST_START, year, _boundary_offset(info, dst, std, std)
            ),
            dst,
        ),
        (
            _rule_instant(DEFAULT_DST_END, year, _boundary_offset(info, std, std, dst)),
            std,
        ),
    ]


def _resolve_rule(info: TimezoneInfo, rule: Rule, instant: int) -> Resolution:
    """Evaluate the TZ string rule for the instant."""
    std = _from_occurrence(rule.std, False)
    if rule.dst is None:
        return std
    dst = _from_occurrence(rule.dst, True)

    try:
        year = (_EPOCH + datetime.timedelta(seconds=instant)).year
    except OverflowError as err:
        raise ResolutionError(f"Instant {instant} is out of range") from err

    # Local time may be in a different year than UTC near the year boundary
    # so include the surrounding years.
    boundaries: list[tuple[int, Resolution]] = []
    for rule_year in range(
        max(year - 1, datetime.MINYEAR), min(year + 1, datetime.MAXYEAR) + 1
    ):
        try:
            boundaries.extend(_year_boundaries(info, rule, rule_year, std, dst))
        except OverflowError:
            _LOGGER.debug("Skipping TZ rule evaluation for year %d", rule_year)
    if not boundaries:
        raise ResolutionError(f"Unable to evaluate TZ rule for instant {instant}")

    # A stable sort keeps an end of DST ahead of a start at the same instant
    boundaries.sort(key=lambda boundary: boundary[0])
    index = bisect.bisect_right([boundary[0] for boundary in boundaries], instant) - 1
    if index < 0:
        return std if boundaries[0][1].is_dst else dst
    return boundaries[index][1]


def find_time_type(info: TimezoneInfo, instant: int) -> int | None:
    """Return the index of the local time type in effect from the transitions.

    Returns None when the instant is computed from the TZ string rule instead.
    """
    transition_times = info.transition_times
    if not transition_times:
        if info.rule is None:
            raise ResolutionError(
                f"Unable to resolve instant {instant}, no transitions or TZ rule"
            )
        return None

    if instant < transition_times[0]:
        return 0

    if info.version >= 2 and instant >= transition_times[-1]:
        if info.rule is not None:
            return None
        if instant > transition_times[-1]:
            raise ResolutionError(
                f"Unable to resolve instant {instant} after the last transition "
                f"{transition_times[-1]}, no valid TZ rule"
            )

    # The greatest transition time less than or equal to the instant
    index = bisect.bisect_right(transition_times, instant) - 1
    return info.transitions[index].time_type


def resolve(info: TimezoneInfo, instant: int) -> Resolution:
    """Return the UTC offset, designation and DST flag in effect at the instant."""
    if (time_type := find_time_type(info, instant)) is not None:
        return _from_local_time_type(info.local_time_types[time_type])
    assert info.rule is not None
    return _resolve_rule(info, info.rule, instant)
