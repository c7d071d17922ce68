"""Tests for the TZ rule parser."""

import datetime

import pytest

from tzfile import tz_rule
from tzfile.exceptions import RuleParseError


def test_standard() -> None:
    """Test standard time with no daylight savings time."""
    rule = tz_rule.parse_tz_rule("EST5")
    assert rule.std.name == "EST"
    assert rule.std.offset == datetime.timedelta(hours=-5)
    assert rule.dst is None
    assert rule.dst_start is None
    assert rule.dst_end is None


def test_standard_plus_offset() -> None:
    """Test standard time with an offset with an explicit plus."""
    rule = tz_rule.parse_tz_rule("EST+5")
    assert rule.std.name == "EST"
    assert rule.std.offset == datetime.timedelta(hours=-5)
    assert rule.dst is None


@pytest.mark.parametrize(
    "tz_string,expected_name,expected_offset",
    [
        ("EXX05:30", "EXX", datetime.timedelta(hours=-5, minutes=-30)),
        ("EXX05:30:20", "EXX", datetime.timedelta(hours=-5, minutes=-30, seconds=-20)),
        ("JST-9", "JST", datetime.timedelta(hours=9)),
        ("UTC0", "UTC", datetime.timedelta(0)),
        ("<+0545>-5:45", "+0545", datetime.timedelta(hours=5, minutes=45)),
    ],
)
def test_standard_offsets(
    tz_string: str, expected_name: str, expected_offset: datetime.timedelta
) -> None:
    """Test standard time offsets with hours, minutes and seconds."""
    rule = tz_rule.parse_tz_rule(tz_string)
    assert rule.std.name == expected_name
    assert rule.std.offset == expected_offset
    assert rule.dst is None


def test_dst_implicit_offset() -> None:
    """Test daylight savings time with an implicit offset and no dates."""
    rule = tz_rule.parse_tz_rule("EST5EDT")
    assert rule.std.name == "EST"
    assert rule.std.offset == datetime.timedelta(hours=-5)
    assert rule.dst
    assert rule.dst.name == "EDT"
    assert rule.dst.offset == datetime.timedelta(hours=-4)
    assert rule.dst_start is None
    assert rule.dst_end is None


def test_dst_explicit_offset() -> None:
    """Test daylight savings time with an explicit offset."""
    rule = tz_rule.parse_tz_rule("EST5EDT4")
    assert rule.dst
    assert rule.dst.name == "EDT"
    assert rule.dst.offset == datetime.timedelta(hours=-4)


def test_dst_rules() -> None:
    """Test daylight savings start/end value."""
    rule = tz_rule.parse_tz_rule("EST+5EDT,M3.2.0/2,M11.1.0/2")
    assert rule.std.name == "EST"
    assert rule.std.offset == datetime.timedelta(hours=-5)
    assert rule.dst
    assert rule.dst.name == "EDT"
    assert rule.dst.offset == datetime.timedelta(hours=-4)
    assert rule.dst_start == tz_rule.RuleDate(
        month=3, week_of_month=2, day_of_week=0, time=datetime.timedelta(hours=2)
    )
    assert rule.dst_end == tz_rule.RuleDate(
        month=11, week_of_month=1, day_of_week=0, time=datetime.timedelta(hours=2)
    )
    assert rule.dst_start.as_date(2022) == datetime.date(2022, 3, 13)


def test_dst_implicit_time_rules() -> None:
    """Test daylight savings values rules with no explicit time."""
    rule = tz_rule.parse_tz_rule("EST+5EDT,M3.2.0,M11.1.0")
    assert rule.dst_start
    assert rule.dst_start.time == datetime.timedelta(hours=2)
    assert rule.dst_end
    assert rule.dst_end.time == datetime.timedelta(hours=2)
    assert rule.dst_start == tz_rule.DEFAULT_DST_START
    assert rule.dst_end == tz_rule.DEFAULT_DST_END


@pytest.mark.parametrize(
    "tz_string",
    [
        "",
        "1234",
        "EST",
        "ES5",
        "EST+5EDT,M3.2.0/2",
        "EST+5EDT,M3.2.0/2,M11.1.0/2,M3",
        "EST+5EDT,3.2.0/2,M11.1.0/2",
        "EST+5EDT,M3.2/2,M11.1.0/2",
        "EST+5EDT,M3.2.0.4/2,M11.1.0/2",
        "EST5,M3.2.0,M11.1.0",
        "EST25",
        "EST5:60",
        "EST5EDT,M13.1.0,M11.1.0",
        "EST5EDT,M3.6.0,M11.1.0",
        "EST5EDT,M3.0.0,M11.1.0",
        "EST5EDT,M3.2.7,M11.1.0",
        "EST5EDT,J0,J365",
        "EST5EDT,J60,J366",
        "EST5EDT,0,366",
        "EST5EDT,M3.2.0/168,M11.1.0",
        "EST5 EDT",
    ],
)
def test_invalid(tz_string: str) -> None:
    """Test an invalid rule occurrence."""
    with pytest.raises(RuleParseError, match="Unable to parse TZ string"):
        tz_rule.parse_tz_rule(tz_string)


def test_tz_offset() -> None:
    """Test quoted names and negative transition times."""
    rule = tz_rule.parse_tz_rule("<-03>3<-02>,M3.5.0/-2,M10.5.0/-1")
    assert rule.std.name == "-03"
    assert rule.std.offset == datetime.timedelta(hours=-3)
    assert rule.dst
    assert rule.dst.name == "-02"
    assert rule.dst.offset == datetime.timedelta(hours=-2)
    assert isinstance(rule.dst_start, tz_rule.RuleDate)
    assert rule.dst_start.month == 3
    assert rule.dst_start.week_of_month == 5
    assert rule.dst_start.day_of_week == 0
    assert rule.dst_start.time == datetime.timedelta(hours=-2)
    assert isinstance(rule.dst_end, tz_rule.RuleDate)
    assert rule.dst_end.month == 10
    assert rule.dst_end.week_of_month == 5
    assert rule.dst_end.day_of_week == 0
    assert rule.dst_end.time == datetime.timedelta(hours=-1)


def test_julian_rule_offset() -> None:
    """Test a rule using julian days and a time past midnight."""
    rule = tz_rule.parse_tz_rule("<+0330>-3:30<+0430>,J79/24,J263/24")
    assert rule.std.name == "+0330"
    assert rule.std.offset == datetime.timedelta(hours=3, minutes=30)
    assert rule.dst
    assert rule.dst.name == "+0430"
    assert rule.dst.offset == datetime.timedelta(hours=4, minutes=30)
    assert rule.dst_start == tz_rule.RuleJulianDay(
        day_of_year=79, time=datetime.timedelta(hours=24)
    )
    assert rule.dst_end == tz_rule.RuleJulianDay(
        day_of_year=263, time=datetime.timedelta(hours=24)
    )


def test_zero_based_day_rule() -> None:
    """Test a rule using zero based days of the year."""
    rule = tz_rule.parse_tz_rule("XXX3YYY,59/1:30,300/-1:15:30")
    assert rule.dst_start == tz_rule.RuleDayOfYear(
        day_of_year=59, time=datetime.timedelta(hours=1, minutes=30)
    )
    assert rule.dst_end == tz_rule.RuleDayOfYear(
        day_of_year=300, time=-datetime.timedelta(hours=1, minutes=15, seconds=30)
    )


def test_extended_hours() -> None:
    """Test a transition time using the full hour range."""
    rule = tz_rule.parse_tz_rule("EST5EDT,0/0,J365/167")
    assert rule.dst_start == tz_rule.RuleDayOfYear(0, time=datetime.timedelta(0))
    assert rule.dst_end
    assert rule.dst_end.time == datetime.timedelta(hours=167)


@pytest.mark.parametrize(
    "day_rule,year,expected",
    [
        (tz_rule.RuleJulianDay(1), 2023, datetime.date(2023, 1, 1)),
        (tz_rule.RuleJulianDay(59), 2024, datetime.date(2024, 2, 28)),
        (tz_rule.RuleJulianDay(60), 2023, datetime.date(2023, 3, 1)),
        (tz_rule.RuleJulianDay(60), 2024, datetime.date(2024, 3, 1)),
        (tz_rule.RuleJulianDay(365), 2024, datetime.date(2024, 12, 31)),
        (tz_rule.RuleDayOfYear(0), 2023, datetime.date(2023, 1, 1)),
        (tz_rule.RuleDayOfYear(59), 2023, datetime.date(2023, 3, 1)),
        (tz_rule.RuleDayOfYear(59), 2024, datetime.date(2024, 2, 29)),
        (tz_rule.RuleDayOfYear(365), 2024, datetime.date(2024, 12, 31)),
        (tz_rule.RuleDate(3, 0, 2), 2022, datetime.date(2022, 3, 13)),
        (tz_rule.RuleDate(11, 0, 1), 2022, datetime.date(2022, 11, 6)),
        (tz_rule.RuleDate(10, 0, 5), 2023, datetime.date(2023, 10, 29)),
        (tz_rule.RuleDate(2, 3, 5), 2024, datetime.date(2024, 2, 28)),
        (tz_rule.RuleDate(3, 6, 1), 2024, datetime.date(2024, 3, 2)),
    ],
)
def test_as_date(day_rule: tz_rule.DayRule, year: int, expected: datetime.date) -> None:
    """Test evaluating each kind of day rule for a year."""
    assert day_rule.as_date(year) == expected


def test_rule_datetime() -> None:
    """Test the local time a day rule takes effect."""
    day_rule = tz_rule.RuleJulianDay(79, time=datetime.timedelta(hours=24))
    assert tz_rule.rule_datetime(day_rule, 2030) == datetime.datetime(2030, 3, 21)

    day_rule = tz_rule.RuleDate(3, 0, 5, time=datetime.timedelta(hours=-2))
    assert tz_rule.rule_datetime(day_rule, 2030) == datetime.datetime(2030, 3, 30, 22)
