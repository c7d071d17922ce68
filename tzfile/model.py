"""Data model for the tzfile library."""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
import logging
from typing import Any, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from .exceptions import FormatError
from .tz_rule import Rule

__all__ = [
    "Header",
    "Transition",
    "LocalTimeType",
    "LeapSecond",
    "TimezoneInfo",
]

_LOGGER = logging.getLogger(__name__)

_HOUR_SECONDS = 3600


@dataclass(frozen=True)
class Header:
    """TZif header information for a data block."""

    version: int
    """The version of the file format (1, 2 or 3)."""

    isutcnt: int
    """The number of UTC/local indicators in the data block."""

    isstdcnt: int
    """The number of standard/wall indicators in the data block."""

    leapcnt: int
    """The number of leap second records in the data block."""

    timecnt: int
    """The number of time transitions in the data block."""

    typecnt: int
    """The number of local time type records in the data block."""

    charcnt: int
    """The number of characters for time zone designations in the data block."""


@dataclass(frozen=True)
class Transition:
    """A time at which the rules for computing local time change."""

    transition_time: int
    """Seconds since the epoch (UTC) when the transition takes effect."""

    time_type: int
    """Index of the local time type in effect starting at the transition."""


@dataclass(frozen=True)
class LocalTimeType:
    """A local time type record."""

    utoff: int
    """Number of seconds added to UTC to determine local time."""

    dst: bool
    """Determines if local time is Daylight Savings Time (else Standard time)."""

    idx: int
    """Offset into the time zone designation octets."""

    designation: str
    """The designation string found at idx, e.g. CET."""


class LeapSecond(NamedTuple):
    """A correction that needs to be applied to UTC in order to determine TAI.

    The occurrence is the time at which the leap-second correction occurs.
    The correction is the value of LEAPCORR on or after the occurrence.
    """

    occurrence: int
    correction: int


class TimezoneInfo(BaseModel):
    """The results of parsing the TZif file.

    Only the data block with the highest version in the file is kept. The
    object can't be modified after it is created and may be shared between
    threads.
    """

    header: Header
    """Header of the data block these records were read from."""

    transitions: tuple[Transition, ...] = ()
    """Local time changes, in non-decreasing order of transition time."""

    local_time_types: tuple[LocalTimeType, ...]
    """Local time type records referenced by the transitions."""

    designations: bytes = b""
    """The raw NUL-terminated time zone designation octets."""

    leap_seconds: tuple[LeapSecond, ...] = ()

    std_indicators: tuple[bool, ...] = ()
    """Standard (True) or wall clock (False) indicators, empty when absent."""

    ut_indicators: tuple[bool, ...] = ()
    """UT (True) or local (False) indicators, empty when absent."""

    tz_string: Optional[str] = None
    """The raw TZ string footer of version 2+ files."""

    rule: Optional[Rule] = None
    """A rule for computing local time changes after the last transition."""

    model_config = ConfigDict(frozen=True)

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as err:
            _LOGGER.debug("Failed to validate timezone info %s", err)
            message = ["Invalid TZif contents"]
            for error in err.errors():
                if msg := error.get("msg"):
                    message.append(msg)
            raise FormatError(": ".join(message), detailed_error=str(err)) from err

    @model_validator(mode="after")
    def check_local_time_types(self) -> TimezoneInfo:
        """Verify the transitions and indicators reference local time types."""
        typecnt = len(self.local_time_types)
        if typecnt == 0:
            raise ValueError("Local time records in block is zero")
        for transition in self.transitions:
            if transition.time_type >= typecnt:
                raise ValueError(
                    f"transition_type out of bounds {transition.time_type} >= {typecnt}"
                )
        if len(self.std_indicators) not in (0, typecnt):
            raise ValueError(
                f"standard/wall indicators mismatched ({len(self.std_indicators)}, {typecnt})"
            )
        if len(self.ut_indicators) not in (0, typecnt):
            raise ValueError(
                f"UTC/local indicators mismatched ({len(self.ut_indicators)}, {typecnt})"
            )
        return self

    @model_validator(mode="after")
    def check_sorted(self) -> TimezoneInfo:
        """Verify the transition times never decrease."""
        times = [transition.transition_time for transition in self.transitions]
        for i in range(1, len(times)):
            if times[i] < times[i - 1]:
                raise ValueError(
                    f"transition times not sorted at index {i} ({times[i - 1]} > {times[i]})"
                )
        return self

    @property
    def version(self) -> int:
        """Return the version of the file format."""
        return self.header.version

    @cached_property
    def transition_times(self) -> list[int]:
        """Return the transition times in file order."""
        return [transition.transition_time for transition in self.transitions]

    @cached_property
    def dst_offsets(self) -> list[int]:
        """Return the daylight savings time adjustment in seconds of each local time type.

        The file does not record the standard offset a daylight savings time
        type is relative to, so it is inferred from the standard time types
        that precede or follow it in the transitions, in the same way as the
        zoneinfo module. A type that can't be inferred is one hour ahead.
        """
        types = self.local_time_types
        dst_offsets = [0] * len(types)
        indices = [transition.time_type for transition in self.transitions]
        for i in range(1, len(indices)):
            idx = indices[i]
            if not types[idx].dst or dst_offsets[idx]:
                continue
            dst_offset = 0
            if not types[indices[i - 1]].dst:
                dst_offset = types[idx].utoff - types[indices[i - 1]].utoff
            if not dst_offset and idx < len(types) - 1 and i + 1 < len(indices):
                if types[indices[i + 1]].dst:
                    continue
                dst_offset = types[idx].utoff - types[indices[i + 1]].utoff
            dst_offsets[idx] = dst_offset
        for idx, local_time_type in enumerate(types):
            if local_time_type.dst and not dst_offsets[idx]:
                dst_offsets[idx] = _HOUR_SECONDS
        return dst_offsets

    @property
    def abbreviations(self) -> list[str]:
        """Return every NUL-terminated designation in the order stored."""
        parts = self.designations.decode("utf-8", errors="replace").split("\x00")
        # The last entry follows the final NUL terminator
        return parts[:-1]

    def is_standard(self, time_type: int) -> bool:
        """Return True if the local time type's transitions are in standard time."""
        if not self.std_indicators:
            return False
        return self.std_indicators[time_type]

    def is_ut(self, time_type: int) -> bool:
        """Return True if the local time type's transitions are in UT."""
        if not self.ut_indicators:
            return False
        return self.ut_indicators[time_type]
