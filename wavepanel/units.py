"""Unit registry: conversion to canonical base units and auto-ranging.

Every quantity the engine stores is kept in its base unit (Hz, V, s, bps,
Sa/s). Display values are produced by picking the unit of a family that
keeps the number readable, i.e. inside ``[0.1, 10000)``.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

import numpy as np

from .errors import ConfigurationError, ParseError

__all__ = [
    "UnitSpec",
    "UnitFamily",
    "UnitRegistry",
    "AUTO_RANGE_LOW",
    "AUTO_RANGE_HIGH",
    "FREQUENCY",
    "TIME",
    "VOLTAGE",
    "BIT_RATE",
    "SAMPLE_RATE",
    "PHASE",
    "PERCENT",
    "COUNT",
    "DEFAULT_REGISTRY",
    "parse_number",
    "format_value",
    "format_quantity",
]

# Readable display window used by auto_range.
AUTO_RANGE_LOW = 0.1
AUTO_RANGE_HIGH = 10000.0

# Display values are rounded to this many significant digits before
# formatting so unit division noise never reaches the screen.
DISPLAY_SIGNIFICANT_DIGITS = 12


@dataclass(frozen=True)
class UnitSpec:
    name: str
    multiplier_to_base: float

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.name


@dataclass(frozen=True)
class UnitFamily:
    """Ordered list of units (smallest multiplier first) sharing a base."""

    name: str
    base: str
    units: Tuple[UnitSpec, ...]

    def __post_init__(self) -> None:
        if not self.units:
            raise ConfigurationError(f"Unit family '{self.name}' is empty")
        mults = [u.multiplier_to_base for u in self.units]
        if any(b <= a for a, b in zip(mults, mults[1:])):
            raise ConfigurationError(
                f"Unit family '{self.name}' must be ordered by increasing multiplier")
        if self.base not in self.names():
            raise ConfigurationError(
                f"Base unit '{self.base}' not part of family '{self.name}'")

    @property
    def smallest(self) -> UnitSpec:
        return self.units[0]

    @property
    def largest(self) -> UnitSpec:
        return self.units[-1]

    @property
    def base_unit(self) -> UnitSpec:
        return self.get(self.base)

    def names(self) -> list[str]:
        return [u.name for u in self.units]

    def get(self, name: str) -> UnitSpec:
        for u in self.units:
            if u.name == name:
                return u
        raise ConfigurationError(f"Unit '{name}' not in family '{self.name}'")

    def __contains__(self, unit: object) -> bool:
        return unit in self.units


def _family(name: str, base: str, pairs: Iterable[Tuple[str, float]]) -> UnitFamily:
    return UnitFamily(name, base, tuple(UnitSpec(n, m) for n, m in pairs))


FREQUENCY = _family("frequency", "Hz", [
    ("µHz", 1e-6), ("mHz", 1e-3), ("Hz", 1.0), ("kHz", 1e3), ("MHz", 1e6)])
TIME = _family("time", "s", [
    ("ps", 1e-12), ("ns", 1e-9), ("µs", 1e-6), ("ms", 1e-3), ("s", 1.0)])
VOLTAGE = _family("voltage", "V", [("mV", 1e-3), ("V", 1.0)])
BIT_RATE = _family("bit_rate", "bps", [("bps", 1.0), ("kbps", 1e3), ("Mbps", 1e6)])
SAMPLE_RATE = _family("sample_rate", "Sa/s", [
    ("Sa/s", 1.0), ("kSa/s", 1e3), ("MSa/s", 1e6)])
PHASE = _family("phase", "°", [("°", 1.0)])
PERCENT = _family("percent", "%", [("%", 1.0)])
COUNT = _family("count", "", [("", 1.0)])

# ASCII spellings accepted from config files and the CLI.
_ALIASES = {
    "uHz": "µHz",
    "us": "µs",
    "deg": "°",
    "pct": "%",
    "Sa": "Sa/s",
    "kSa": "kSa/s",
    "MSa": "MSa/s",
}


class UnitRegistry:
    """Name -> UnitSpec lookup plus conversion helpers."""

    def __init__(self, families: Iterable[UnitFamily] = ()) -> None:
        self._units: Dict[str, UnitSpec] = {}
        self._families: Dict[str, UnitFamily] = {}
        for fam in families:
            self.register_family(fam)

    @classmethod
    def default(cls) -> "UnitRegistry":
        return cls([FREQUENCY, TIME, VOLTAGE, BIT_RATE, SAMPLE_RATE, PHASE, PERCENT, COUNT])

    def register_family(self, family: UnitFamily) -> None:
        for u in family.units:
            known = self._units.get(u.name)
            if known is not None and known != u:
                raise ConfigurationError(f"Conflicting definitions for unit '{u.name}'")
            self._units[u.name] = u
        self._families[family.name] = family

    def family(self, name: str) -> UnitFamily:
        try:
            return self._families[name]
        except KeyError:
            raise ConfigurationError(f"Unknown unit family '{name}'") from None

    def families(self) -> list[UnitFamily]:
        return list(self._families.values())

    def lookup(self, name: str) -> UnitSpec:
        name = _ALIASES.get(name, name)
        try:
            return self._units[name]
        except KeyError:
            raise ConfigurationError(f"Unknown unit '{name}'") from None

    # Conversions ---------------------------------------------------------
    @staticmethod
    def to_base(value: float, unit: UnitSpec) -> float:
        return value * unit.multiplier_to_base

    @staticmethod
    def from_base(value: float, unit: UnitSpec) -> float:
        return value / unit.multiplier_to_base

    def auto_range(self, value_in_base: float, family: UnitFamily) -> Tuple[float, UnitSpec]:
        """Pick the first unit (smallest first) that shows ``value`` in [0.1, 10000).

        Falls back to the smallest unit for values below range (zero included)
        and the largest for values above range.
        """
        for unit in family.units:
            shown = abs(self.from_base(value_in_base, unit))
            if AUTO_RANGE_LOW <= shown < AUTO_RANGE_HIGH:
                return self.from_base(value_in_base, unit), unit
        if abs(self.from_base(value_in_base, family.largest)) >= AUTO_RANGE_HIGH:
            unit = family.largest
        else:
            unit = family.smallest
        return self.from_base(value_in_base, unit), unit


DEFAULT_REGISTRY = UnitRegistry.default()


def parse_number(text: Optional[str]) -> float:
    """Parse user text as a finite float or raise ParseError."""
    if text is None:
        raise ParseError("No value entered", text)
    cleaned = text.strip()
    if not cleaned:
        raise ParseError("No value entered", text)
    try:
        value = float(cleaned)
    except ValueError:
        raise ParseError(f"Invalid number: '{cleaned}'", text) from None
    if not math.isfinite(value):
        raise ParseError(f"Invalid number: '{cleaned}'", text)
    return value


def format_value(value: float, min_decimals: int = 0) -> str:
    """Shortest positional rendering without trailing zeros.

    ``format_value(127.0) -> '127'``, ``format_value(127.0, 1) -> '127.0'``,
    ``format_value(1.25) -> '1.25'``.
    """
    if not math.isfinite(value):
        return str(value)
    if value == 0:
        value = 0.0  # drop the sign of -0.0
    else:
        value = float(f"{value:.{DISPLAY_SIGNIFICANT_DIGITS}g}")
    text = np.format_float_positional(value, unique=True, trim="-")
    if min_decimals > 0:
        whole, _, frac = text.partition(".")
        if len(frac) < min_decimals:
            frac = frac.ljust(min_decimals, "0")
        text = f"{whole}.{frac}"
    return text


def format_quantity(value_in_base: float, family: UnitFamily,
                    registry: UnitRegistry = DEFAULT_REGISTRY, min_decimals: int = 0) -> str:
    """Auto-range and format a base value with its unit label (e.g. '127 kHz')."""
    shown, unit = registry.auto_range(value_in_base, family)
    text = format_value(shown, min_decimals)
    return f"{text} {unit.name}".rstrip()
