"""Continuous basic waveforms (sine, square, ramp, pulse).

The frequency can be entered either directly or as a period; whichever
one the entry mode selects is written, the other shows its reciprocal.
"""
from __future__ import annotations

from ..controller import FUNCTION_GROUP, FeatureDef, reply_in
from ..fields import ChoiceDef, FieldDef
from ..units import FREQUENCY, PERCENT, PHASE, TIME, VOLTAGE

WAVEFORMS = (("Sine", "SIN"), ("Square", "SQU"), ("Ramp", "RAMP"), ("Pulse", "PULS"))
BY_FREQUENCY = "FREQ"
BY_PERIOD = "PER"

CONTINUOUS = FeatureDef(
    name="continuous",
    title="Continuous",
    exclusive_group=FUNCTION_GROUP,
    state_query=":SOUR{ch}:FUNC?",
    is_active=reply_in(*(tag for _label, tag in WAVEFORMS)),
    activate=(":SOUR{ch}:APPL:{waveform} {frequency},{amplitude},{offset},{phase}",),
    deactivate=(),
    choices=(
        ChoiceDef("waveform", "Waveform", WAVEFORMS,
                  command=":SOUR{ch}:FUNC {value}", query=":SOUR{ch}:FUNC?"),
        ChoiceDef("entry_mode", "Set by", (("Frequency", BY_FREQUENCY), ("Period", BY_PERIOD))),
    ),
    fields=(
        FieldDef("frequency", "Frequency", FREQUENCY,
                 ":SOUR{ch}:FREQ {value}", ":SOUR{ch}:FREQ?", unit="kHz", default=1e3,
                 minimum=1e-6, maximum=120e6, mirrors="period",
                 active_when=("entry_mode", (BY_FREQUENCY,))),
        FieldDef("period", "Period", TIME,
                 ":SOUR{ch}:PER {value}", ":SOUR{ch}:PER?", unit="ms", default=1e-3,
                 minimum=1e-8, maximum=1e6, mirrors="frequency",
                 active_when=("entry_mode", (BY_PERIOD,))),
        FieldDef("amplitude", "Amplitude", VOLTAGE,
                 ":SOUR{ch}:VOLT {value}", ":SOUR{ch}:VOLT?", default=1.0, min_decimals=1,
                 minimum=0.0),
        FieldDef("offset", "Offset", VOLTAGE,
                 ":SOUR{ch}:VOLT:OFFS {value}", ":SOUR{ch}:VOLT:OFFS?", default=0.0,
                 min_decimals=1),
        FieldDef("phase", "Start phase", PHASE,
                 ":SOUR{ch}:PHAS {value}", ":SOUR{ch}:PHAS?", default=0.0,
                 minimum=0.0, maximum=360.0),
        FieldDef("duty_cycle", "Duty cycle", PERCENT,
                 ":SOUR{ch}:FUNC:SQU:DCYC {value}", ":SOUR{ch}:FUNC:SQU:DCYC?", default=50.0,
                 minimum=0.01, maximum=99.99, active_when=("waveform", ("SQU",))),
        FieldDef("symmetry", "Symmetry", PERCENT,
                 ":SOUR{ch}:FUNC:RAMP:SYMM {value}", ":SOUR{ch}:FUNC:RAMP:SYMM?",
                 default=50.0, minimum=0.0, maximum=100.0, active_when=("waveform", ("RAMP",))),
    ),
)
