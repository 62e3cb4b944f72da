"""Sequence playback: up to eight waveform slots played back to back."""
from __future__ import annotations

from ..controller import FUNCTION_GROUP, FeatureDef
from ..fields import ChoiceDef, FieldDef
from ..units import SAMPLE_RATE, TIME, VOLTAGE

SLOT_COUNT = 8
SLOT_POINTS_RANGE = (1, 256)

SLOT_WAVEFORMS = (
    ("Sine", "SIN"),
    ("Square", "SQU"),
    ("Ramp", "RAMP"),
    ("Pulse", "PULS"),
    ("Noise", "NOIS"),
    ("DC", "DC"),
    ("User", "USER"),
)


def _slot_choices():
    return tuple(
        ChoiceDef(f"slot{n}_wave", f"Slot {n} waveform", SLOT_WAVEFORMS,
                  command=f":SOUR{{ch}}:FUNC:SEQ:WAVE {n},{{value}}",
                  query=f":SOUR{{ch}}:FUNC:SEQ:WAVE? {n}")
        for n in range(1, SLOT_COUNT + 1)
    )


def _slot_fields():
    return tuple(
        FieldDef(f"slot{n}_points", f"Slot {n} points",
                 command=f":SOUR{{ch}}:FUNC:SEQ:PER {n},{{value}}",
                 query=f":SOUR{{ch}}:FUNC:SEQ:PER? {n}", default=1,
                 minimum=SLOT_POINTS_RANGE[0], maximum=SLOT_POINTS_RANGE[1],
                 integer=True, auto_range=False)
        for n in range(1, SLOT_COUNT + 1)
    )


SEQUENCE = FeatureDef(
    name="sequence",
    title="Sequence",
    exclusive_group=FUNCTION_GROUP,
    state_query=":SOUR{ch}:FUNC:SEQ:STAT?",
    activate=(
        ":SOUR{ch}:APPL:SEQ {sample_rate},{amplitude},{offset},0",
        ":SOUR{ch}:FUNC:SEQ ON",
    ),
    deactivate=(":SOUR{ch}:FUNC SIN",),
    choices=(
        ChoiceDef("filter", "Filter type",
                  (("Sinc", "SINC"), ("Smooth", "SMOO"), ("Insert", "INSE")),
                  command=":SOUR{ch}:FUNC:SEQ:FILT {value}", query=":SOUR{ch}:FUNC:SEQ:FILT?"),
    ) + _slot_choices(),
    fields=(
        FieldDef("sample_rate", "Sample rate", SAMPLE_RATE,
                 ":SOUR{ch}:FUNC:SEQ:SRAT {value}", ":SOUR{ch}:FUNC:SEQ:SRAT?", unit="MSa/s",
                 default=1e6, minimum=2e3, maximum=60e6),
        FieldDef("amplitude", "Sequence amplitude", VOLTAGE,
                 ":SOUR{ch}:VOLT {value}", ":SOUR{ch}:VOLT?", default=5.0, min_decimals=1,
                 minimum=0.0),
        FieldDef("offset", "Sequence offset", VOLTAGE,
                 ":SOUR{ch}:VOLT:OFFS {value}", ":SOUR{ch}:VOLT:OFFS?", default=0.0,
                 min_decimals=1),
        FieldDef("edge_time", "Edge time", TIME,
                 ":SOUR{ch}:FUNC:SEQ:EDGET {value}", ":SOUR{ch}:FUNC:SEQ:EDGET?", unit="ns",
                 default=8e-9, minimum=8e-9, active_when=("filter", ("SMOO", "INSE"))),
    ) + _slot_fields(),
)
