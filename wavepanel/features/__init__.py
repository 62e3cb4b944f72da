"""Feature tables for every instrument mode the panel drives."""
from __future__ import annotations

from typing import Dict

from ..controller import FeatureDef
from .burst import BURST
from .continuous import CONTINUOUS
from .dualtone import DUALTONE
from .harmonics import HARMONICS
from .modulation import MODULATIONS
from .prbs import PRBS
from .rs232 import RS232
from .sequence import SEQUENCE
from .sweep import SWEEP

FEATURES: Dict[str, FeatureDef] = {
    d.name: d for d in (CONTINUOUS, SWEEP, BURST, PRBS, RS232, SEQUENCE, DUALTONE,
                        HARMONICS)
}
FEATURES.update(MODULATIONS)


def get_feature(name: str) -> FeatureDef:
    try:
        return FEATURES[name.lower()]
    except KeyError:
        raise KeyError(f"Unknown feature '{name}'. Choose from: {', '.join(FEATURES)}") from None


__all__ = ["FEATURES", "get_feature"]
