"""Pseudo-random binary sequence output."""
from __future__ import annotations

from ..controller import (
    FUNCTION_GROUP,
    FeatureController,
    FeatureDef,
    ReadoutDef,
    reply_contains,
)
from ..derived import prbs_repetition_rate, prbs_sequence_length, prbs_sequence_period
from ..fields import ChoiceDef, FieldDef
from ..units import BIT_RATE, FREQUENCY, TIME, VOLTAGE, format_quantity


def _length_text(ctrl: FeatureController) -> str:
    return f"{prbs_sequence_length(ctrl.current_value('data_type'))} bits"


def _period_text(ctrl: FeatureController) -> str:
    period = prbs_sequence_period(ctrl.number("bit_rate"), ctrl.current_value("data_type"))
    return format_quantity(period, TIME)


def _rate_text(ctrl: FeatureController) -> str:
    rate = prbs_repetition_rate(ctrl.number("bit_rate"), ctrl.current_value("data_type"))
    return format_quantity(rate, FREQUENCY)


PRBS = FeatureDef(
    name="prbs",
    title="PRBS",
    exclusive_group=FUNCTION_GROUP,
    state_query=":SOUR{ch}:FUNC?",
    is_active=reply_contains("PRBS"),
    activate=(":SOUR{ch}:APPL:PRBS {bit_rate},{amplitude},{offset}",),
    deactivate=(":SOUR{ch}:FUNC SIN",),
    choices=(
        ChoiceDef("data_type", "Data type", (("PN7", "PN7"), ("PN9", "PN9"), ("PN11", "PN11")),
                  command=":SOUR{ch}:FUNC:PRBS:DATA {value}",
                  query=":SOUR{ch}:FUNC:PRBS:DATA?"),
    ),
    fields=(
        FieldDef("bit_rate", "PRBS bit rate", BIT_RATE,
                 ":SOUR{ch}:FUNC:PRBS:BRAT {value}", ":SOUR{ch}:FUNC:PRBS:BRAT?", unit="kbps",
                 default=2000.0, minimum=2e3, maximum=60e6),
        FieldDef("amplitude", "PRBS amplitude", VOLTAGE,
                 ":SOUR{ch}:VOLT {value}", ":SOUR{ch}:VOLT?", default=5.0, min_decimals=1,
                 minimum=0.0),
        FieldDef("offset", "PRBS offset", VOLTAGE,
                 ":SOUR{ch}:VOLT:OFFS {value}", ":SOUR{ch}:VOLT:OFFS?", default=0.0,
                 min_decimals=1),
    ),
    readouts=(
        ReadoutDef("sequence_length", "Sequence length", ("data_type",), _length_text),
        ReadoutDef("sequence_period", "Sequence period", ("data_type", "bit_rate"),
                   _period_text),
        ReadoutDef("repetition_rate", "Repetition rate", ("data_type", "bit_rate"),
                   _rate_text),
    ),
)
