"""Test fixtures."""

from __future__ import annotations

from collections.abc import Callable, Sequence
import struct
from typing import Any

import pytest

_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1

EASTERN_DESIGNATIONS = b"EST\x00EDT\x00"
EASTERN_TYPES = ((-18000, 0, 0), (-14400, 1, 4))
# 2007-03-11T07:00:00Z EDT, 2007-11-04T06:00:00Z EST
EASTERN_TRANSITIONS = ((1173596400, 1), (1194156000, 0))
EASTERN_FOOTER = b"\nEST5EDT,M3.2.0,M11.1.0\n"


def _header(version: bytes, block: dict[str, Any]) -> bytes:
    """Encode the header for a data block."""
    return struct.pack(
        ">4sc15x6L",
        b"TZif",
        version,
        len(block["ut_indicators"]),
        len(block["std_indicators"]),
        len(block["leap_seconds"]),
        len(block["transitions"]),
        len(block["local_time_types"]),
        len(block["designations"]),
    )


def _datablock(block: dict[str, Any], time_format: str) -> bytes:
    """Encode a data block with 32-bit (l) or 64-bit (q) times."""
    transitions = block["transitions"]
    return b"".join(
        [
            struct.pack(
                f">{len(transitions)}{time_format}", *(t for (t, _) in transitions)
            ),
            bytes(time_type for (_, time_type) in transitions),
            b"".join(
                struct.pack(">lBB", utoff, dst, idx)
                for (utoff, dst, idx) in block["local_time_types"]
            ),
            block["designations"],
            b"".join(
                struct.pack(f">{time_format}l", occurrence, correction)
                for (occurrence, correction) in block["leap_seconds"]
            ),
            bytes(block["std_indicators"]),
            bytes(block["ut_indicators"]),
        ]
    )


def build_tzif(
    *,
    version: bytes = b"2",
    transitions: Sequence[tuple[int, int]] = (),
    local_time_types: Sequence[tuple[int, int, int]] = ((0, 0, 0),),
    designations: bytes = b"UTC\x00",
    leap_seconds: Sequence[tuple[int, int]] = (),
    std_indicators: Sequence[int] = (),
    ut_indicators: Sequence[int] = (),
    footer: bytes | None = b"\nUTC0\n",
    v1_block: dict[str, Any] | None = None,
) -> bytes:
    """Build the contents of a TZif file.

    Version 2+ files get a version 1 data block with the 32-bit subset of the
    transitions unless v1_block overrides some of its fields.
    """
    block = {
        "transitions": transitions,
        "local_time_types": local_time_types,
        "designations": designations,
        "leap_seconds": leap_seconds,
        "std_indicators": std_indicators,
        "ut_indicators": ut_indicators,
    }
    if version == b"\x00":
        return _header(version, block) + _datablock(block, "l")

    v1 = dict(block)
    v1["transitions"] = [
        (t, time_type)
        for (t, time_type) in transitions
        if _INT32_MIN <= t <= _INT32_MAX
    ]
    v1["leap_seconds"] = [
        (t, correction)
        for (t, correction) in leap_seconds
        if _INT32_MIN <= t <= _INT32_MAX
    ]
    v1.update(v1_block or {})
    return b"".join(
        [
            _header(version, v1),
            _datablock(v1, "l"),
            _header(version, block),
            _datablock(block, "q"),
            footer or b"",
        ]
    )


@pytest.fixture(name="build_tzif")
def build_tzif_fixture() -> Callable[..., bytes]:
    """Fixture that returns a function to build TZif file contents."""
    return build_tzif


@pytest.fixture
def eastern_tzif() -> bytes:
    """Fixture with a version 2 file for a US eastern style timezone."""
    return build_tzif(
        transitions=EASTERN_TRANSITIONS,
        local_time_types=EASTERN_TYPES,
        designations=EASTERN_DESIGNATIONS,
        footer=EASTERN_FOOTER,
    )


@pytest.fixture
def eastern_v1_tzif() -> bytes:
    """Fixture with a version 1 file for a US eastern style timezone."""
    return build_tzif(
        version=b"\x00",
        transitions=EASTERN_TRANSITIONS,
        local_time_types=EASTERN_TYPES,
        designations=EASTERN_DESIGNATIONS,
    )


@pytest.fixture
def eastern_records() -> dict[str, Any]:
    """Fixture with the build_tzif records of a US eastern style timezone."""
    return {
        "transitions": EASTERN_TRANSITIONS,
        "local_time_types": EASTERN_TYPES,
        "designations": EASTERN_DESIGNATIONS,
    }
