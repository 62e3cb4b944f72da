"""Harmonic generator: fundamental plus orders 2 to 8."""
from __future__ import annotations

from ..controller import FeatureDef
from ..fields import ChoiceDef, FieldDef
from ..units import PHASE, VOLTAGE

HARMONIC_ORDERS = range(2, 9)


def _order_fields():
    out = []
    for n in HARMONIC_ORDERS:
        out.append(FieldDef(f"h{n}_amplitude", f"Harmonic {n} amplitude", VOLTAGE,
                            f":SOUR{{ch}}:HARM:AMPL {n},{{value}}",
                            f":SOUR{{ch}}:HARM:AMPL? {n}", default=0.0, min_decimals=1,
                            minimum=0.0))
        out.append(FieldDef(f"h{n}_phase", f"Harmonic {n} phase", PHASE,
                            f":SOUR{{ch}}:HARM:PHAS {n},{{value}}",
                            f":SOUR{{ch}}:HARM:PHAS? {n}", default=0.0,
                            minimum=0.0, maximum=360.0))
    return tuple(out)


HARMONICS = FeatureDef(
    name="harmonics",
    title="Harmonics",
    state_query=":SOUR{ch}:HARM:STAT?",
    activate=(":SOUR{ch}:HARM:STAT ON",),
    deactivate=(":SOUR{ch}:HARM:STAT OFF",),
    choices=(
        ChoiceDef("harmonic_type", "Harmonic type",
                  (("Even", "EVEN"), ("Odd", "ODD"), ("All", "ALL"), ("User", "USER")),
                  command=":SOUR{ch}:HARM:TYP {value}", query=":SOUR{ch}:HARM:TYP?",
                  default="ALL"),
    ),
    fields=(
        FieldDef("order", "Highest order", command=":SOUR{ch}:HARM:ORDE {value}",
                 query=":SOUR{ch}:HARM:ORDE?", default=2, minimum=2, maximum=8,
                 integer=True, auto_range=False),
    ) + _order_fields(),
)
