import pytest

from wavepanel.errors import ConfigurationError, ParseError
from wavepanel.units import (
    DEFAULT_REGISTRY,
    FREQUENCY,
    TIME,
    VOLTAGE,
    UnitFamily,
    UnitSpec,
    format_quantity,
    format_value,
    parse_number,
)

reg = DEFAULT_REGISTRY


def test_auto_range_127khz():
    shown, unit = reg.auto_range(127000.0, FREQUENCY)
    assert unit.name == "kHz"
    assert shown == pytest.approx(127.0)
    assert format_value(shown) == "127"
    assert format_value(shown, 1) == "127.0"


def test_auto_range_out_of_window_fallbacks():
    assert reg.auto_range(0.0, FREQUENCY)[1].name == "µHz"
    assert reg.auto_range(1e-8, FREQUENCY)[1].name == "µHz"
    assert reg.auto_range(5e10, FREQUENCY)[1].name == "MHz"
    assert reg.auto_range(-5e10, FREQUENCY)[1].name == "MHz"


@pytest.mark.parametrize("value", [0.5, 3.3, 42e-3, 9999.0, 127000.0, 2.5e6])
def test_auto_range_idempotent(value):
    shown, unit = reg.auto_range(value, FREQUENCY)
    shown2, unit2 = reg.auto_range(reg.to_base(shown, unit), FREQUENCY)
    assert unit2 == unit
    assert shown2 == pytest.approx(shown)


def test_format_quantity_rounds_division_noise():
    assert format_quantity(0.0005, TIME) == "500 µs"
    assert format_value(1.2700000000000002) == "1.27"
    assert format_value(0.1 + 0.2) == "0.3"
    assert format_value(-0.0) == "0"


def test_conversions_round_trip():
    mv = VOLTAGE.get("mV")
    assert reg.to_base(250.0, mv) == pytest.approx(0.25)
    assert reg.from_base(0.25, mv) == pytest.approx(250.0)


def test_lookup_aliases_and_unknown():
    assert reg.lookup("us") is reg.lookup("µs")
    assert reg.lookup("uHz").name == "µHz"
    with pytest.raises(ConfigurationError):
        reg.lookup("furlong")


@pytest.mark.parametrize("text", ["", "   ", "abc", "nan", "inf", None])
def test_parse_number_rejects(text):
    with pytest.raises(ParseError):
        parse_number(text)


def test_parse_number_accepts():
    assert parse_number(" 1.5 ") == 1.5
    assert parse_number("1e3") == 1000.0
    assert parse_number("-2") == -2.0


def test_family_must_be_ordered():
    with pytest.raises(ConfigurationError):
        UnitFamily("bad", "a", (UnitSpec("b", 10.0), UnitSpec("a", 1.0)))
