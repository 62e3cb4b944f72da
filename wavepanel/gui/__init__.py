"""GUI tab builders aggregator.

build_all_tabs(session) returns a list of (widget, label) tuples, one per
feature controller, for the main window to add. Empty when Qt is missing.
"""
from __future__ import annotations

import sys
from typing import Any, List, Tuple

from ._qt import require_qt
from .feature_panel import QtPresentation, build_feature_tab


def build_all_tabs(session: Any) -> List[Tuple[Any, str]]:
    qt = require_qt()
    if qt is None:
        return []
    out = []
    for ctrl in session:
        if not isinstance(ctrl.presentation, QtPresentation):
            continue
        w = build_feature_tab(ctrl, ctrl.presentation)
        if w is not None:
            out.append((w, ctrl.title))
    return out


def build_main_window(session: Any, *, connect=None) -> Any:
    """Main window: channel selector, connect button, feature tabs, log pane."""
    qt = require_qt()
    if qt is None:
        return None
    win = qt.QMainWindow()
    win.setWindowTitle("wavepanel")
    central = qt.QWidget()
    L = qt.QVBoxLayout(central)

    r = qt.QHBoxLayout()
    r.addWidget(qt.QLabel("Channel:"))
    win.channel_combo = qt.QComboBox()
    for n in range(1, session.channel_count + 1):
        win.channel_combo.addItem(f"CH{n}", n)
    win.channel_combo.setCurrentIndex(session.active_channel - 1)

    def _channel_changed(_i: int) -> None:
        session.set_active_channel(win.channel_combo.currentData())
        session.refresh_all()

    win.channel_combo.activated.connect(_channel_changed)
    r.addWidget(win.channel_combo)
    if connect is not None:
        b = qt.QPushButton("Connect")
        b.clicked.connect(connect)
        r.addWidget(b)
    b = qt.QPushButton("Refresh all")
    b.clicked.connect(session.refresh_all)
    r.addWidget(b)
    win.auto_refresh_check = qt.QCheckBox("Auto-Refresh")
    win.auto_refresh_check.setChecked(session.auto_refresh.is_running())
    win.auto_refresh_check.toggled.connect(session.auto_refresh.set_running)
    r.addWidget(win.auto_refresh_check)
    r.addStretch(1)
    L.addLayout(r)

    win.tabs = qt.QTabWidget()
    for w, label in build_all_tabs(session):
        win.tabs.addTab(w, label)
    L.addWidget(win.tabs)

    win.log_view = qt.QTextEdit()
    win.log_view.setReadOnly(True)
    session.subscribe_log(win.log_view.append)
    L.addWidget(win.log_view)

    win.setCentralWidget(central)
    return win


def run_gui() -> int:  # pragma: no cover - interactive
    from .. import config as cfgmod
    from ..device import VisaDeviceProxy
    from ..errors import DeviceCommunicationError
    from ..session import PanelSession
    from .loop import QtTimerLoop

    qt = require_qt()
    if qt is None:
        return 4
    app = qt.QApplication.instance() or qt.QApplication(sys.argv)
    cfg = cfgmod.load_config()
    proxy = VisaDeviceProxy(cfg.get("visa_resource"),
                            timeout_ms=int(cfg.get("visa_timeout_ms", 5000)))
    session = PanelSession(proxy, loop=QtTimerLoop(), cfg=cfg,
                           presentation_factory=lambda _d: QtPresentation())

    def _connect() -> None:
        try:
            idn = proxy.connect()
        except DeviceCommunicationError as e:
            win.log_view.append(f"Connect failed: {e}")
            return
        win.log_view.append(f"Connected: {idn}")
        session.refresh_all()

    win = build_main_window(session, connect=_connect)
    win.resize(760, 900)
    win.show()
    rc = app.exec()
    session.safe_shutdown()
    session.close()
    proxy.disconnect()
    return rc


__all__ = ["build_all_tabs", "build_main_window", "build_feature_tab", "QtPresentation",
           "run_gui"]
