"""wavepanel package

Parameter synchronization engine for SCPI waveform generators: unit
handling, debounced writes, read-back and per-feature enable/disable.
The version constant is used by setuptools dynamic metadata in pyproject.
"""

from .deps import HAVE_PYVISA, HAVE_QT, dep_msg

__all__ = ["__version__", "HAVE_PYVISA", "HAVE_QT", "dep_msg"]

# Version (must remain simple semver: enforced by tests)
__version__ = "0.1.0"
