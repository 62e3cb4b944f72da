"""Dual-tone output: two summed sine tones on one channel."""
from __future__ import annotations

from ..controller import (
    FUNCTION_GROUP,
    FeatureController,
    FeatureDef,
    ReadoutDef,
    reply_contains,
)
from ..derived import dual_tone_center, dual_tone_offset
from ..fields import FieldDef
from ..units import FREQUENCY, VOLTAGE, format_quantity


def _center(ctrl: FeatureController) -> str:
    return format_quantity(
        dual_tone_center(ctrl.number("freq1"), ctrl.number("freq2")), FREQUENCY)


def _offset(ctrl: FeatureController) -> str:
    return format_quantity(
        dual_tone_offset(ctrl.number("freq1"), ctrl.number("freq2")), FREQUENCY)


DUALTONE = FeatureDef(
    name="dualtone",
    title="Dual tone",
    exclusive_group=FUNCTION_GROUP,
    state_query=":SOUR{ch}:FUNC?",
    is_active=reply_contains("DUAL"),
    activate=(":SOUR{ch}:FUNC DUALT",),
    deactivate=(":SOUR{ch}:FUNC SIN",),
    fields=(
        FieldDef("freq1", "Primary frequency", FREQUENCY,
                 ":SOUR{ch}:FUNC:DUALT:FREQ1 {value}", ":SOUR{ch}:FUNC:DUALT:FREQ1?",
                 unit="kHz", default=1e3, minimum=1e-6),
        FieldDef("freq2", "Secondary frequency", FREQUENCY,
                 ":SOUR{ch}:FUNC:DUALT:FREQ2 {value}", ":SOUR{ch}:FUNC:DUALT:FREQ2?",
                 unit="kHz", default=2e3, minimum=1e-6),
        FieldDef("amplitude", "Amplitude", VOLTAGE,
                 ":SOUR{ch}:VOLT {value}", ":SOUR{ch}:VOLT?", default=5.0, min_decimals=1,
                 minimum=0.0),
        FieldDef("offset", "Offset", VOLTAGE,
                 ":SOUR{ch}:VOLT:OFFS {value}", ":SOUR{ch}:VOLT:OFFS?", default=0.0,
                 min_decimals=1),
    ),
    readouts=(
        ReadoutDef("center_freq", "Center frequency", ("freq1", "freq2"), _center),
        ReadoutDef("offset_freq", "Offset frequency", ("freq1", "freq2"), _offset),
    ),
)
