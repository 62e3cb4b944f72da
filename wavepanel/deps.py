"""Dependency detection and lightweight helper utilities.

Probes the optional stacks once at import so the CLI, the GUI builder and
the device proxy can degrade gracefully when pyvisa or Qt is missing.
"""

from __future__ import annotations

from typing import Any

PYVISA_ERR = QT_ERR = None  # populated on import
QT_BINDING = None

_pyvisa: Any | None

# ------------------ pyvisa ------------------
try:  # pragma: no cover - environment dependent
    import pyvisa as _pyvisa_module
except Exception as e:  # pragma: no cover
    PYVISA_ERR = e
    _pyvisa = None
else:
    _pyvisa = _pyvisa_module

# ------------------ Qt bindings ------------------
HAVE_QT = False
try:  # pragma: no cover
    import PySide6  # noqa: F401
    from PySide6 import QtWidgets as _qtwidgets  # noqa: F401
except Exception as e:  # pragma: no cover
    QT_ERR = e
else:
    QT_BINDING = "PySide6"
    HAVE_QT = True

HAVE_PYVISA = _pyvisa is not None

INSTALL_HINTS = {
    "pyvisa": "pip install pyvisa pyvisa-py",
    "pyside6": "pip install 'wavepanel[gui]'",
}


def dep_msg() -> str:
    qt_str = f"Qt({QT_BINDING or 'none'})"
    return " | ".join(
        [
            f"pyvisa: {'OK' if HAVE_PYVISA else 'MISSING'}",
            f"{qt_str}: {'OK' if HAVE_QT else 'MISSING'}",
        ]
    )


def list_visa_resources() -> list[str]:  # pragma: no cover (depends on host hardware)
    if not HAVE_PYVISA:
        return []
    rm = _pyvisa.ResourceManager()
    return list(rm.list_resources())


def find_generator_resource() -> str | None:  # pragma: no cover (depends on host hardware)
    resources = list_visa_resources()
    for r in resources:
        # Rigol USB vendor id
        if "0x1AB1" in r.upper().replace("0X", "0x"):
            return r
    usb = [r for r in resources if r.upper().startswith("USB")]
    return usb[0] if usb else None


__all__ = [
    "HAVE_PYVISA",
    "HAVE_QT",
    "QT_BINDING",
    "QT_ERR",
    "PYVISA_ERR",
    "dep_msg",
    "list_visa_resources",
    "find_generator_resource",
    "INSTALL_HINTS",
    "_pyvisa",
]
