"""Burst mode: N-cycle, infinite and gated bursts."""
from __future__ import annotations

from ..controller import FeatureDef
from ..fields import ChoiceDef, FieldDef
from ..units import PHASE, TIME, VOLTAGE

N_CYCLE = "TRIG"
INFINITE = "INF"
GATED = "GAT"

BURST_CYCLES_RANGE = (1, 1_000_000)
BURST_PERIOD_RANGE = (2e-6, 8000.0)
TRIGGER_DELAY_RANGE = (0.0, 100.0)

BURST = FeatureDef(
    name="burst",
    title="Burst",
    state_query=":SOUR{ch}:BURS:STAT?",
    activate=(":SOUR{ch}:BURS:STAT ON",),
    deactivate=(":SOUR{ch}:BURS:STAT OFF",),
    trigger=":SOUR{ch}:BURS:TRIG",
    trigger_when=("trigger_source", ("MAN",)),
    choices=(
        ChoiceDef("mode", "Burst mode",
                  (("N-Cycle", N_CYCLE), ("Infinite", INFINITE), ("Gated", GATED)),
                  command=":SOUR{ch}:BURS:MODE {value}", query=":SOUR{ch}:BURS:MODE?"),
        ChoiceDef("idle_level", "Idle level",
                  (("First Point", "FPT"), ("Bottom", "BOTTOM"), ("Top", "TOP"),
                   ("Center", "CENTER"), ("User", "USER")),
                  command=":SOUR{ch}:BURS:IDLE {value}", query=":SOUR{ch}:BURS:IDLE?"),
        ChoiceDef("trigger_source", "Trigger source",
                  (("Internal", "INT"), ("External", "EXT"), ("Manual", "MAN")),
                  command=":SOUR{ch}:BURS:TRIG:SOUR {value}", query=":SOUR{ch}:BURS:TRIG:SOUR?"),
        ChoiceDef("trigger_slope", "Trigger slope", (("Positive", "POS"), ("Negative", "NEG")),
                  command=":SOUR{ch}:BURS:TRIG:SLOP {value}", query=":SOUR{ch}:BURS:TRIG:SLOP?",
                  active_when=("trigger_source", ("EXT",))),
        ChoiceDef("trigger_out", "Trigger out",
                  (("Off", "OFF"), ("Rising Edge", "POS"), ("Falling Edge", "NEG")),
                  command=":SOUR{ch}:BURS:TRIG:TRIGO {value}",
                  query=":SOUR{ch}:BURS:TRIG:TRIGO?"),
        ChoiceDef("gate_polarity", "Gate polarity", (("Normal", "NORM"), ("Inverted", "INV")),
                  command=":SOUR{ch}:BURS:GATE:POL {value}", query=":SOUR{ch}:BURS:GATE:POL?",
                  active_when=("mode", (GATED,))),
    ),
    fields=(
        FieldDef("cycles", "Burst cycles", command=":SOUR{ch}:BURS:NCYC {value}",
                 query=":SOUR{ch}:BURS:NCYC?", default=1,
                 minimum=BURST_CYCLES_RANGE[0], maximum=BURST_CYCLES_RANGE[1],
                 integer=True, auto_range=False, active_when=("mode", (N_CYCLE,))),
        FieldDef("period", "Burst period", TIME,
                 ":SOUR{ch}:BURS:INT:PER {value}", ":SOUR{ch}:BURS:INT:PER?", unit="ms",
                 default=0.01, minimum=BURST_PERIOD_RANGE[0], maximum=BURST_PERIOD_RANGE[1],
                 active_when=("mode", (INFINITE,))),
        FieldDef("trigger_delay", "Trigger delay", TIME,
                 ":SOUR{ch}:BURS:TDEL {value}", ":SOUR{ch}:BURS:TDEL?", unit="ms",
                 default=0.0, minimum=TRIGGER_DELAY_RANGE[0], maximum=TRIGGER_DELAY_RANGE[1]),
        FieldDef("phase", "Start phase", PHASE,
                 ":SOUR{ch}:BURS:PHAS {value}", ":SOUR{ch}:BURS:PHAS?",
                 default=0.0, minimum=0.0, maximum=360.0),
        FieldDef("user_idle_level", "User idle level", VOLTAGE,
                 ":SOUR{ch}:BURS:IDLE:LEV {value}", ":SOUR{ch}:BURS:IDLE:LEV?",
                 default=0.0, min_decimals=1, active_when=("idle_level", ("USER",))),
    ),
)
