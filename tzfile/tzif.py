"""Library for reading TZif files.

A TZif file starts with a version 1 header and data block using 32-bit
transition times. Version 2+ files repeat the header followed by a data
block with 64-bit transition times, then a footer with a POSIX TZ string
describing transitions after the last one in the data block. Readers that
understand version 2+ ignore the version 1 data block entirely.

See rfc8536 for the TZif file format.
"""

from __future__ import annotations

import enum
import io
import logging
import struct
from collections.abc import Callable
from functools import cache

from .compat import is_strict_footer_enabled
from .exceptions import FormatError, RuleParseError
from .model import Header, LeapSecond, LocalTimeType, TimezoneInfo, Transition
from .tz_rule import Rule, parse_tz_rule

__all__ = [
    "read_tzif",
    "read_header",
    "read_datablock",
    "read_footer",
]

_LOGGER = logging.getLogger(__name__)

# Records specifying the local time type
_LOCAL_TIME_TYPE_STRUCT_FORMAT = "".join(
    [
        ">",  # Use standard size of packed value bytes
        "l",  # utoff (4 bytes): Number of seconds to add to UTC to determine local time
        "B",  # dst (1 byte): Indicates the time is DST (1) or standard (0)
        "B",  # idx (1 byte): Offset index into the time zone designiation octets (0-charcnt-1)
    ]
)
_LOCAL_TIME_RECORD_SIZE = 6
_LEAP_CORRECTION_SIZE = 4


class _TZifVersion(enum.Enum):
    """Defines information related to _TZifVersions."""

    V1 = (b"\x00", 1, 4, "l")  # 32-bit in v1
    V2 = (b"2", 2, 8, "q")  # 64-bit in v2+
    V3 = (b"3", 3, 8, "q")

    def __init__(self, version: bytes, number: int, time_size: int, time_format: str):
        self._version = version
        self._number = number
        self._time_size = time_size
        self._time_format = time_format

    @property
    def version(self) -> bytes:
        """Return the version byte string."""
        return self._version

    @property
    def number(self) -> int:
        """Return the version as an integer."""
        return self._number

    @property
    def time_size(self) -> int:
        """Return the TIME_SIZE used in the data block parsing."""
        return self._time_size

    @property
    def time_format(self) -> str:
        """Return the struct unpack format string for TIME_SIZE objects."""
        return self._time_format

    @classmethod
    def from_number(cls, number: int) -> _TZifVersion:
        """Return the version for the integer version number."""
        for value in cls:
            if value.number == number:
                return value
        raise FormatError(f"Unsupported TZif version {number}")

    @classmethod
    def from_byte(cls, version: bytes, offset: int = 4) -> _TZifVersion:
        """Return the version for the version byte in the header."""
        for value in cls:
            if value.version == version:
                return value
        raise FormatError(
            f"Unsupported TZif version {version!r}",
            offset=offset,
            expected="b'\\x00', b'2' or b'3'",
            actual=repr(version),
        )


_HEADER_SIZE = 44  # Total size of the header to read
_HEADER_STRUCT_FORMAT = "".join(
    [
        ">",  # Use standard size of packed value bytes
        "4s",  # magic (4 bytes)
        "c",  # version (1 byte)
        "15x",  # unused
        "6L",  # isutcnt, isstdcnt, leapcnt, timecnt, typecnt, charcnt
    ]
)
_MAGIC = "TZif".encode()


def _read(buf: io.BytesIO, size: int, field: str) -> bytes:
    """Read exactly size bytes from the buffer or fail with the position."""
    offset = buf.tell()
    content = buf.read(size)
    if len(content) != size:
        raise FormatError(
            f"Truncated TZif file reading {field}",
            offset=offset,
            expected=size,
            actual=len(content),
        )
    return content


def read_header(buf: io.BytesIO) -> Header:
    """Parse the header at the current position of the buffer."""
    offset = buf.tell()
    header_bytes = buf.read(_HEADER_SIZE)
    # A buffer holding only part of the magic is reported as truncated below
    if not _MAGIC.startswith(header_bytes[0:4]):
        raise FormatError(
            "zoneinfo file did not contain magic header",
            offset=offset,
            expected=repr(_MAGIC),
            actual=repr(header_bytes[0:4]),
        )
    if len(header_bytes) != _HEADER_SIZE:
        raise FormatError(
            "Truncated TZif file reading header",
            offset=offset,
            expected=_HEADER_SIZE,
            actual=len(header_bytes),
        )
    (
        _,
        version_byte,
        isutcnt,
        isstdcnt,
        leapcnt,
        timecnt,
        typecnt,
        charcnt,
    ) = struct.unpack(_HEADER_STRUCT_FORMAT, header_bytes)
    version = _TZifVersion.from_byte(version_byte, offset + 4)
    if isutcnt not in (0, typecnt):
        raise FormatError(
            f"UTC/local indicators in datablock mismatched ({isutcnt}, {typecnt})",
            offset=offset + 20,
            expected=typecnt,
            actual=isutcnt,
        )
    if isstdcnt not in (0, typecnt):
        raise FormatError(
            f"standard/wall indicators in datablock mismatched ({isstdcnt}, {typecnt})",
            offset=offset + 24,
            expected=typecnt,
            actual=isstdcnt,
        )
    header = Header(version.number, isutcnt, isstdcnt, leapcnt, timecnt, typecnt, charcnt)
    _LOGGER.debug("Read TZif header at offset %d: %s", offset, header)
    return header


def _datablock_size(header: Header, version: _TZifVersion) -> int:
    """Return the number of bytes in the data block described by the header."""
    return (
        header.timecnt * version.time_size  # transition times
        + header.timecnt  # transition types
        + header.typecnt * _LOCAL_TIME_RECORD_SIZE
        + header.charcnt
        + header.leapcnt * (version.time_size + _LEAP_CORRECTION_SIZE)
        + header.isstdcnt
        + header.isutcnt
    )


def _read_indicators(buf: io.BytesIO, count: int, field: str) -> tuple[bool, ...]:
    """Read an array of indicator bytes which must each be 0 or 1."""
    offset = buf.tell()
    values = _read(buf, count, field)
    for i, value in enumerate(values):
        if value not in (0, 1):
            raise FormatError(
                f"Invalid {field} value {value}",
                offset=offset + i,
                expected="0 or 1",
                actual=value,
            )
    return tuple(bool(value) for value in values)


def read_datablock(
    header: Header, buf: io.BytesIO, *, v1_layout: bool = False
) -> TimezoneInfo:
    """Read the data block records following the header from the buffer.

    Transition and leap second times are 64-bit for version 2+ headers. The
    version 1 data block in a version 2+ file must be read with the 32-bit
    version 1 layout.
    """
    version = _TZifVersion.V1 if v1_layout else _TZifVersion.from_number(header.version)
    start = buf.tell()
    remaining = len(buf.getbuffer()) - start
    if (size := _datablock_size(header, version)) > remaining:
        raise FormatError(
            "Truncated TZif file, data block exceeds file size",
            offset=start,
            expected=size,
            actual=remaining,
        )

    # A series of transition times in sorted order
    transition_times = struct.unpack(
        f">{header.timecnt}{version.time_format}",
        _read(buf, header.timecnt * version.time_size, "transition times"),
    )

    # A series of integers specifying the type of local time of the corresponding
    # transition time. These are zero-based indices into the array of local
    # time type records. (from 0 to typecnt-1)
    types_offset = buf.tell()
    transition_types = _read(buf, header.timecnt, "transition types")
    for i, time_type in enumerate(transition_types):
        if time_type >= header.typecnt:
            raise FormatError(
                f"transition_type out of bounds {time_type} >= {header.typecnt}",
                offset=types_offset + i,
                expected=f"< {header.typecnt}",
                actual=time_type,
            )

    local_time_records = [
        (
            buf.tell(),
            struct.unpack(
                _LOCAL_TIME_TYPE_STRUCT_FORMAT,
                _read(buf, _LOCAL_TIME_RECORD_SIZE, "local time type"),
            ),
        )
        for _ in range(header.typecnt)
    ]

    # An array of NUL-terminated time zone designation strings
    tz_designations = _read(buf, header.charcnt, "time zone designations")

    @cache
    def get_tz_designations(idx: int) -> str:
        """Find the null terminated string starting at the specified index."""
        end = tz_designations.find(b"\x00", idx)
        if end < 0:
            raise ValueError(f"designation at {idx} is not NUL-terminated")
        return tz_designations[idx:end].decode("UTF-8")

    local_time_types = [
        _new_local_time_type(offset, values, header.charcnt, get_tz_designations)
        for (offset, values) in local_time_records
    ]

    leap_seconds = tuple(
        LeapSecond._make(
            struct.unpack(
                f">{version.time_format}l",
                _read(
                    buf,
                    version.time_size + _LEAP_CORRECTION_SIZE,  # occur + corr
                    "leap second record",
                ),
            )
        )
        for _ in range(header.leapcnt)
    )

    # Standard/wall indicators determine if the transition times are standard time (1)
    # or wall clock time (0).
    std_indicators = _read_indicators(buf, header.isstdcnt, "standard/wall indicator")

    # UTC/local indicators determine if the transition times are UTC (1) or local time (0).
    ut_indicators = _read_indicators(buf, header.isutcnt, "UT/local indicator")
    for i, is_ut in enumerate(ut_indicators):
        if is_ut and not (std_indicators and std_indicators[i]):
            raise FormatError(
                "UT/local indicator was set but standard/wall indicator was not",
                offset=buf.tell() - header.isutcnt + i,
            )

    return TimezoneInfo(
        header=header,
        transitions=tuple(
            Transition(transition_time, time_type)
            for (transition_time, time_type) in zip(transition_times, transition_types)
        ),
        local_time_types=tuple(local_time_types),
        designations=tz_designations,
        leap_seconds=leap_seconds,
        std_indicators=std_indicators,
        ut_indicators=ut_indicators,
    )


def _new_local_time_type(
    offset: int,
    values: tuple[int, int, int],
    charcnt: int,
    get_tz_designations: Callable[[int], str],
) -> LocalTimeType:
    """Create a local time type, validating the designation index."""
    (utoff, dst, idx) = values
    if dst not in (0, 1):
        raise FormatError(
            f"Invalid local time type dst value {dst}",
            offset=offset + 4,
            expected="0 or 1",
            actual=dst,
        )
    if idx >= charcnt:
        raise FormatError(
            f"designation index out of bounds {idx} >= {charcnt}",
            offset=offset + 5,
            expected=f"< {charcnt}",
            actual=idx,
        )
    try:
        designation = get_tz_designations(idx)
    except (ValueError, UnicodeDecodeError) as err:
        raise FormatError(
            f"Invalid time zone designation at index {idx}",
            offset=offset + 5,
            detailed_error=str(err),
        ) from err
    return LocalTimeType(utoff, bool(dst), idx, designation)


def read_footer(buf: io.BytesIO) -> str:
    """Read the newline enclosed TZ string that follows a version 2+ data block."""
    offset = buf.tell()
    footer = buf.read()
    if not footer.startswith(b"\n"):
        raise RuleParseError(f"Failed to read TZ footer at offset {offset}")
    end = footer.find(b"\n", 1)
    if end < 0:
        raise RuleParseError(f"Failed to read TZ footer at offset {offset}, missing newline")
    try:
        return footer[1:end].decode("ascii")
    except UnicodeDecodeError as err:
        raise RuleParseError(f"TZ footer at offset {offset} is not ASCII") from err


def _read_rule(buf: io.BytesIO) -> tuple[str | None, Rule | None]:
    """Read and parse the footer, discarding it unless strict footers are enabled."""
    tz_string: str | None = None
    try:
        tz_string = read_footer(buf)
        if not tz_string:
            return (tz_string, None)
        return (tz_string, parse_tz_rule(tz_string))
    except RuleParseError as err:
        if is_strict_footer_enabled():
            raise
        _LOGGER.warning("Ignoring invalid TZ footer: %s", err)
        return (tz_string, None)


def read_tzif(content: bytes) -> TimezoneInfo:
    """Read the TZif file and parse and return the timezone records."""
    buf = io.BytesIO(content)

    # V1 header and block
    header = read_header(buf)
    if header.version == _TZifVersion.V1.number:
        if header.typecnt == 0:
            raise FormatError("Local time records in block is zero", offset=36)
        if header.charcnt == 0:
            raise FormatError("Total number of octets is zero", offset=40)
        return read_datablock(header, buf, v1_layout=True)

    # The v1 block of a v2+ file is only read to find the v2+ header
    if header.typecnt == 0:
        buf.seek(_datablock_size(header, _TZifVersion.V1), io.SEEK_CUR)
        if buf.tell() > len(content):
            raise FormatError(
                "Truncated TZif file, data block exceeds file size",
                offset=_HEADER_SIZE,
                expected=buf.tell() - _HEADER_SIZE,
                actual=len(content) - _HEADER_SIZE,
            )
    else:
        read_datablock(header, buf, v1_layout=True)
    _LOGGER.debug("Skipped v1 data block, reading v2+ header at %d", buf.tell())

    # V2+ header and block
    header = read_header(buf)
    if header.typecnt == 0:
        raise FormatError("Local time records in block is zero", offset=buf.tell() - 8)
    if header.charcnt == 0:
        raise FormatError("Total number of octets is zero", offset=buf.tell() - 4)
    result = read_datablock(header, buf)

    # V2+ footer
    (tz_string, rule) = _read_rule(buf)
    return result.model_copy(update={"tz_string": tz_string, "rule": rule})
