"""Library for returning details about a timezone.

This package follows the same approach as zoneinfo for loading timezone
data. It first checks the directory in the TZFILES_DIR environment variable,
then the platform default directory and the system TZPATH, then falls back
to the tzdata python package.
"""

from __future__ import annotations

import datetime
import logging
import os
import sys
import zoneinfo
from functools import cache
from importlib import resources

from .exceptions import ResolutionError, TimezoneInfoError, TzFileError
from .model import TimezoneInfo
from .resolver import Resolution, find_time_type, resolve
from .tzif import read_tzif

__all__ = [
    "TimezoneInfoError",
    "TzInfo",
    "find_tzfile",
    "read",
    "read_bytes",
    "read_tzinfo",
]

_LOGGER = logging.getLogger(__name__)

TZFILES_DIR_ENV = "TZFILES_DIR"
"""Environment variable that overrides the timezone file directory."""

POSIX_TZFILES_DIR = "/usr/share/zoneinfo"
WINDOWS_TZFILES_DIR = ".zoneinfo"
"""Directory relative to the home directory used on Windows."""


def default_tzfiles_dir() -> str:
    """Return the platform specific default timezone file directory."""
    if sys.platform == "win32":
        return os.path.join(os.path.expanduser("~"), WINDOWS_TZFILES_DIR)
    return POSIX_TZFILES_DIR


def _search_paths() -> list[str]:
    """Return the directories to search for TZif files, in order."""
    paths = []
    if env_dir := os.environ.get(TZFILES_DIR_ENV):
        paths.append(env_dir)
    paths.append(default_tzfiles_dir())
    paths.extend(path for path in zoneinfo.TZPATH if path not in paths)
    return paths


def _validate_key(key: str) -> None:
    """Reject keys that could escape the search directories."""
    if (
        not key
        or os.path.isabs(key)
        or ".." in key.replace("\\", "/").split("/")
        or "\x00" in key
    ):
        raise TimezoneInfoError(f"Invalid timezone key: {key!r}")


def find_tzfile(key: str) -> str | None:
    """Retrieve the path to a TZif file from a key."""
    _validate_key(key)
    for search_path in _search_paths():
        filepath = os.path.join(search_path, key)
        if os.path.isfile(filepath):
            _LOGGER.debug("Found timezone %s at %s", key, filepath)
            return filepath
    return None


def _iana_key_to_resource(key: str) -> tuple[str, str]:
    """Returns the package and resource file for the specified timezone."""
    if "/" not in key:
        return "tzdata.zoneinfo", key
    package_loc, resource = key.rsplit("/", 1)
    package = "tzdata.zoneinfo." + package_loc.replace("/", ".")
    return package, resource


def _read_tzdata(key: str) -> bytes | None:
    """Read the TZif file contents from the tzdata package, if present."""
    (package, resource) = _iana_key_to_resource(key)
    try:
        with resources.files(package).joinpath(resource).open("rb") as tzdata_file:
            return tzdata_file.read()
    except (ModuleNotFoundError, FileNotFoundError, IsADirectoryError):
        return None
    except ValueError as err:
        raise TimezoneInfoError(f"Unable to load tzdata module: {key}") from err


def read_bytes(key: str) -> bytes:
    """Return the contents of the TZif file for the timezone key."""
    _LOGGER.debug("Reading timezone: %s", key)
    if (tzfile := find_tzfile(key)) is not None:
        try:
            with open(tzfile, "rb") as tzfile_file:
                return tzfile_file.read()
        except OSError as err:
            raise TimezoneInfoError(f"Unable to read tzdata file: {key}") from err

    if (content := _read_tzdata(key)) is not None:
        _LOGGER.debug("Read timezone %s from tzdata package", key)
        return content

    raise TimezoneInfoError(f"Unable to find timezone data for {key}")


def read(key: str) -> TimezoneInfo:
    """Read the TZif file for the key and return timezone records."""
    return _read_cache(key, tuple(_search_paths()))


@cache
def _read_cache(key: str, search_paths: tuple[str, ...]) -> TimezoneInfo:
    # search_paths is only part of the cache key
    content = read_bytes(key)
    try:
        return read_tzif(content)
    except TzFileError as err:
        raise TimezoneInfoError(f"Unable to parse tzdata file: {key}") from err


_ZERO = datetime.timedelta(0)
_HOUR = datetime.timedelta(hours=1)
_DAY_SECONDS = 86400
_EPOCH = datetime.datetime(1970, 1, 1)
_SECOND = datetime.timedelta(seconds=1)


def _naive_seconds(dt: datetime.datetime) -> int:
    """Return the wall clock fields of the datetime as seconds since the epoch."""
    return (dt.replace(tzinfo=None, fold=0) - _EPOCH) // _SECOND


class TzInfo(datetime.tzinfo):
    """An implementation of tzinfo based on the TimezoneInfo transitions and TZ rule.

    Local wall clock times that occur twice are disambiguated with the
    `fold` attribute. A wall clock time skipped by a transition uses the
    offset before the transition for fold=0 and after it for fold=1.
    """

    def __init__(self, info: TimezoneInfo, key: str | None = None) -> None:
        """Initialize TzInfo."""
        self._info = info
        self._key = key

    @classmethod
    def from_timezoneinfo(
        cls, timezoneinfo: TimezoneInfo, key: str | None = None
    ) -> TzInfo:
        """Create a new instance of a TzInfo."""
        if not timezoneinfo.transitions and not timezoneinfo.rule:
            raise ValueError(
                "Unable to make TzInfo from TimezoneInfo, missing transitions and rule"
            )
        return cls(timezoneinfo, key)

    @property
    def key(self) -> str | None:
        """Return the timezone key this was loaded from, if known."""
        return self._key

    def _resolve_utc(self, seconds: int) -> Resolution:
        try:
            return resolve(self._info, seconds)
        except ResolutionError as err:
            raise ValueError(str(err)) from err

    def _resolve_local(self, dt: datetime.datetime) -> Resolution:
        """Find the resolution for a wall clock time."""
        local = _naive_seconds(dt)
        before = self._resolve_utc(local - _DAY_SECONDS)
        after = self._resolve_utc(local + _DAY_SECONDS)
        candidates = []
        for guess in (before, after, self._resolve_utc(local)):
            result = self._resolve_utc(local - guess.utc_offset)
            if result.utc_offset == guess.utc_offset and result not in candidates:
                candidates.append(result)
        if not candidates:
            # Skipped wall clock time
            return after if dt.fold else before
        # Earliest UTC instant first, which has the largest offset
        candidates.sort(key=lambda result: -result.utc_offset)
        return candidates[-1] if dt.fold else candidates[0]

    def _dst_offset(
        self, dt: datetime.datetime, resolution: Resolution
    ) -> datetime.timedelta:
        """Return the daylight savings time adjustment of the local time type in effect."""
        instant = _naive_seconds(dt) - resolution.utc_offset
        try:
            time_type = find_time_type(self._info, instant)
        except ResolutionError as err:
            raise ValueError(str(err)) from err
        local_time_types = self._info.local_time_types
        if time_type is None:
            rule = self._info.rule
            if (
                rule is not None
                and rule.dst is not None
                and rule.dst.offset == resolution.offset
            ):
                return rule.dst.offset - rule.std.offset
        elif (
            local_time_types[time_type].dst
            and local_time_types[time_type].utoff == resolution.utc_offset
        ):
            return datetime.timedelta(seconds=self._info.dst_offsets[time_type])
        # Skipped wall clock time resolved with the offset from the other side
        # of the transition
        for i, local_time_type in enumerate(local_time_types):
            if (
                local_time_type.dst
                and local_time_type.utoff == resolution.utc_offset
                and local_time_type.designation == resolution.abbreviation
            ):
                return datetime.timedelta(seconds=self._info.dst_offsets[i])
        return _HOUR

    def utcoffset(self, dt: datetime.datetime | None) -> datetime.timedelta | None:
        """Return offset of local time from UTC, as a timedelta object."""
        if dt is None:
            return None
        return self._resolve_local(dt).offset

    def tzname(self, dt: datetime.datetime | None) -> str | None:
        """Return the time zone name for the datetime as a string."""
        if dt is None:
            return None
        return self._resolve_local(dt).abbreviation

    def dst(self, dt: datetime.datetime | None) -> datetime.timedelta | None:
        """Return the daylight saving time (DST) adjustment, if applicable."""
        if dt is None:
            return None
        resolution = self._resolve_local(dt)
        if not resolution.is_dst:
            return _ZERO
        return self._dst_offset(dt, resolution)

    def fromutc(self, dt: datetime.datetime) -> datetime.datetime:
        """Convert a UTC datetime with this tzinfo attached to local time."""
        if not isinstance(dt, datetime.datetime):
            raise TypeError("fromutc() requires a datetime argument")
        if dt.tzinfo is not self:
            raise ValueError("dt.tzinfo is not self")
        resolution = self._resolve_utc(_naive_seconds(dt))
        result = dt + resolution.offset
        if self._resolve_local(result).utc_offset != resolution.utc_offset:
            result = result.replace(fold=1)
        return result

    def __str__(self) -> str:
        """Return the string representation of the timezone."""
        if self._key is not None:
            return self._key
        if self._info.rule is not None:
            return self._info.rule.std.name
        return repr(self)

    def __repr__(self) -> str:
        """Return the string representation of the timezone."""
        if self._key is not None:
            return f"TzInfo({self._key})"
        return f"TzInfo(version={self._info.version}, transitions={len(self._info.transitions)})"


def read_tzinfo(key: str) -> TzInfo:
    """Create a tzinfo implementation from the TZif file for the key."""
    timezoneinfo = read(key)
    try:
        return TzInfo.from_timezoneinfo(timezoneinfo, key)
    except ValueError as err:
        raise TimezoneInfoError(f"Unable create TzInfo: {key}") from err
