"""Analog and keyed modulation (AM, FM, PM, PWM, ASK, FSK, PSK).

Every kind shares the carrier block and a modulating frequency; they
differ in the one kind-specific parameter and whether the modulating
source is a waveform (analog kinds) or a keying rate (keyed kinds).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from ..controller import FUNCTION_GROUP, FeatureController, FeatureDef, ReadoutDef
from ..derived import frequency_to_period
from ..fields import ChoiceDef, FieldDef
from ..units import FREQUENCY, PERCENT, PHASE, TIME, VOLTAGE, UnitFamily, format_quantity

CARRIER_WAVEFORMS = (("Sine", "SIN"), ("Square", "SQU"), ("Ramp", "RAMP"), ("Pulse", "PULS"))
MODULATING_WAVEFORMS = (
    ("Sine", "SIN"),
    ("Square", "SQU"),
    ("Triangle", "TRI"),
    ("Up Ramp", "RAMP"),
    ("Down Ramp", "NRAM"),
    ("Noise", "NOIS"),
    ("Arbitrary", "ARB"),
)


@dataclass(frozen=True)
class ModulationKind:
    mnemonic: str
    parameter_label: str
    parameter_command: str
    family: UnitFamily
    default: float
    minimum: float
    maximum: float
    keyed: bool = False
    unit: Optional[str] = None
    carriers: Tuple[Tuple[str, str], ...] = CARRIER_WAVEFORMS
    extra_choices: Tuple[ChoiceDef, ...] = ()


KINDS: Dict[str, ModulationKind] = {
    "am": ModulationKind("AM", "Depth", "DEPT", PERCENT, 100.0, 0.0, 120.0,
                         extra_choices=(
                             ChoiceDef("dssc", "Suppressed carrier (DSSC)",
                                       (("Off", "OFF"), ("On", "ON")),
                                       command=":SOUR{ch}:AM:DSSC {value}",
                                       query=":SOUR{ch}:AM:DSSC?"),
                         )),
    "fm": ModulationKind("FM", "Deviation", "DEV", FREQUENCY, 1e3, -99.999e6, 99.999e6,
                         unit="kHz"),
    "pm": ModulationKind("PM", "Phase deviation", "DEV", PHASE, 90.0, 0.0, 360.0),
    "pwm": ModulationKind("PWM", "Duty deviation", "DEV", PERCENT, 20.0, 0.0, 100.0,
                          carriers=(("Pulse", "PULS"),)),
    "ask": ModulationKind("ASK", "Amplitude", "AMPL", VOLTAGE, 2.0, 0.0, 10.0, keyed=True),
    "fsk": ModulationKind("FSK", "Hop frequency", "FREQ", FREQUENCY, 1e4, 0.0, 200e6,
                          keyed=True, unit="kHz"),
    "psk": ModulationKind("PSK", "Phase", "PHAS", PHASE, 180.0, 0.0, 360.0, keyed=True),
}


def _carrier_period(ctrl: FeatureController) -> str:
    return format_quantity(frequency_to_period(ctrl.number("carrier_freq")), TIME)


def modulation_feature(name: str) -> FeatureDef:
    kind = KINDS[name]
    m = kind.mnemonic
    mod_freq_command = "RATE" if kind.keyed else "INT:FREQ"
    choices = [
        ChoiceDef("carrier_wave", "Carrier waveform", kind.carriers),
    ]
    if not kind.keyed:
        choices.append(
            ChoiceDef("mod_wave", "Modulating waveform", MODULATING_WAVEFORMS,
                      command=f":SOUR{{ch}}:{m}:INT:FUNC {{value}}",
                      query=f":SOUR{{ch}}:{m}:INT:FUNC?"))
    choices.extend(kind.extra_choices)
    return FeatureDef(
        name=name,
        title=m,
        exclusive_group=FUNCTION_GROUP,
        state_query=f":SOUR{{ch}}:{m}:STAT?",
        activate=(
            ":SOUR{ch}:APPL:{carrier_wave} {carrier_freq},{carrier_amp},"
            "{carrier_offset},{carrier_phase}",
            f":SOUR{{ch}}:{m}:STAT ON",
            f":SOUR{{ch}}:{m}:SOUR INT",
        ),
        deactivate=(f":SOUR{{ch}}:{m}:STAT OFF",),
        choices=tuple(choices),
        fields=(
            FieldDef("carrier_freq", "Carrier frequency", FREQUENCY,
                     ":SOUR{ch}:FREQ {value}", ":SOUR{ch}:FREQ?", unit="kHz", default=1e3,
                     minimum=1e-6),
            FieldDef("carrier_amp", "Carrier amplitude", VOLTAGE,
                     ":SOUR{ch}:VOLT {value}", ":SOUR{ch}:VOLT?", default=5.0, min_decimals=1,
                     minimum=0.0),
            FieldDef("carrier_offset", "Carrier offset", VOLTAGE,
                     ":SOUR{ch}:VOLT:OFFS {value}", ":SOUR{ch}:VOLT:OFFS?", default=0.0,
                     min_decimals=1),
            FieldDef("carrier_phase", "Carrier phase", PHASE,
                     ":SOUR{ch}:PHAS {value}", ":SOUR{ch}:PHAS?", default=0.0,
                     minimum=0.0, maximum=360.0),
            FieldDef("mod_freq", "Keying rate" if kind.keyed else "Modulating frequency",
                     FREQUENCY, f":SOUR{{ch}}:{m}:{mod_freq_command} {{value}}",
                     f":SOUR{{ch}}:{m}:{mod_freq_command}?", default=100.0, minimum=2e-3),
            FieldDef("parameter", f"{m} {kind.parameter_label.lower()}", kind.family,
                     f":SOUR{{ch}}:{m}:{kind.parameter_command} {{value}}",
                     f":SOUR{{ch}}:{m}:{kind.parameter_command}?", unit=kind.unit,
                     default=kind.default, minimum=kind.minimum, maximum=kind.maximum),
        ),
        readouts=(
            ReadoutDef("carrier_period", "Carrier period", ("carrier_freq",), _carrier_period),
        ),
    )


MODULATIONS = {name: modulation_feature(name) for name in KINDS}
