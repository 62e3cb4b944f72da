"""Frequency sweep."""
from __future__ import annotations

from ..controller import FeatureController, FeatureDef, ReadoutDef
from ..derived import sweep_points
from ..fields import ChoiceDef, FieldDef
from ..units import FREQUENCY, TIME, format_quantity

START_STOP = "STAR"
CENTER_SPAN = "CENT"
STEPPED = "STE"


def _endpoints(ctrl: FeatureController) -> tuple[float, float]:
    if ctrl.current_value("range_mode") == CENTER_SPAN:
        center, span = ctrl.number("center_freq"), ctrl.number("span_freq")
        return center - span / 2.0, center + span / 2.0
    return ctrl.number("start_freq"), ctrl.number("stop_freq")


def _step_text(ctrl: FeatureController) -> str:
    if ctrl.current_value("spacing") != STEPPED:
        raise ValueError("step size only applies to stepped sweeps")
    start, stop = _endpoints(ctrl)
    points = sweep_points(start, stop, int(ctrl.number("step_count")), "LIN")
    return format_quantity(float(points[1] - points[0]), FREQUENCY)


SWEEP = FeatureDef(
    name="sweep",
    title="Sweep",
    state_query=":SOUR{ch}:SWE:STAT?",
    activate=(":SOUR{ch}:SWE:STAT ON",),
    deactivate=(":SOUR{ch}:SWE:STAT OFF",),
    trigger=":SOUR{ch}:SWE:TRIG",
    trigger_when=("trigger_source", ("MAN",)),
    choices=(
        ChoiceDef("range_mode", "Range", (("Start/Stop", START_STOP), ("Center/Span", CENTER_SPAN))),
        ChoiceDef("spacing", "Sweep type",
                  (("Linear", "LIN"), ("Logarithmic", "LOG"), ("Step", STEPPED)),
                  command=":SOUR{ch}:SWE:SPAC {value}", query=":SOUR{ch}:SWE:SPAC?"),
        ChoiceDef("trigger_source", "Trigger source",
                  (("Internal", "INT"), ("External", "EXT"), ("Manual", "MAN")),
                  command=":SOUR{ch}:SWE:TRIG:SOUR {value}", query=":SOUR{ch}:SWE:TRIG:SOUR?"),
        ChoiceDef("trigger_slope", "Trigger slope", (("Positive", "POS"), ("Negative", "NEG")),
                  command=":SOUR{ch}:SWE:TRIG:SLOP {value}", query=":SOUR{ch}:SWE:TRIG:SLOP?",
                  active_when=("trigger_source", ("EXT",))),
    ),
    fields=(
        FieldDef("start_freq", "Start frequency", FREQUENCY,
                 ":SOUR{ch}:FREQ:STAR {value}", ":SOUR{ch}:FREQ:STAR?", default=100.0,
                 minimum=0.0, active_when=("range_mode", (START_STOP,))),
        FieldDef("stop_freq", "Stop frequency", FREQUENCY,
                 ":SOUR{ch}:FREQ:STOP {value}", ":SOUR{ch}:FREQ:STOP?", unit="kHz",
                 default=1000.0, minimum=0.0, active_when=("range_mode", (START_STOP,))),
        FieldDef("center_freq", "Center frequency", FREQUENCY,
                 ":SOUR{ch}:FREQ:CENT {value}", ":SOUR{ch}:FREQ:CENT?", default=550.0,
                 minimum=0.0, active_when=("range_mode", (CENTER_SPAN,))),
        FieldDef("span_freq", "Span", FREQUENCY,
                 ":SOUR{ch}:FREQ:SPAN {value}", ":SOUR{ch}:FREQ:SPAN?", default=900.0,
                 active_when=("range_mode", (CENTER_SPAN,))),
        FieldDef("marker_freq", "Marker frequency", FREQUENCY,
                 ":SOUR{ch}:MARK:FREQ {value}", ":SOUR{ch}:MARK:FREQ?", default=550.0,
                 minimum=0.0),
        FieldDef("sweep_time", "Sweep time", TIME,
                 ":SOUR{ch}:SWE:TIME {value}", ":SOUR{ch}:SWE:TIME?", default=1.0,
                 minimum=1e-3, maximum=500.0),
        FieldDef("return_time", "Return time", TIME,
                 ":SOUR{ch}:SWE:RTIM {value}", ":SOUR{ch}:SWE:RTIM?", unit="ms", default=0.0,
                 minimum=0.0, maximum=500.0),
        FieldDef("start_hold", "Start hold", TIME,
                 ":SOUR{ch}:SWE:HTIM:STAR {value}", ":SOUR{ch}:SWE:HTIM:STAR?", unit="ms",
                 default=0.0, minimum=0.0, maximum=500.0),
        FieldDef("stop_hold", "Stop hold", TIME,
                 ":SOUR{ch}:SWE:HTIM:STOP {value}", ":SOUR{ch}:SWE:HTIM:STOP?", unit="ms",
                 default=0.0, minimum=0.0, maximum=500.0),
        FieldDef("step_count", "Steps", command=":SOUR{ch}:SWE:STEP {value}",
                 query=":SOUR{ch}:SWE:STEP?", default=2, minimum=2, maximum=2048,
                 integer=True, auto_range=False, active_when=("spacing", (STEPPED,))),
    ),
    readouts=(
        ReadoutDef("step_size", "Step size",
                   ("range_mode", "spacing", "start_freq", "stop_freq", "center_freq",
                    "span_freq", "step_count"),
                   _step_text),
    ),
)
