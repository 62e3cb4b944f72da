import pytest

from wavepanel.debounce import ManualLoop
from wavepanel.features.burst import BURST
from wavepanel.features.rs232 import RS232
from wavepanel.session import PanelSession

pytest.importorskip("PySide6")

from wavepanel.gui import QtPresentation, build_all_tabs, build_main_window  # noqa: E402
from wavepanel.gui._qt import require_qt  # noqa: E402


@pytest.fixture
def qapp():
    qt = require_qt()
    return qt.QApplication.instance() or qt.QApplication([])


def _session(device):
    return PanelSession(device, loop=ManualLoop(), cfg={"channel_count": 2},
                        features=[BURST, RS232],
                        presentation_factory=lambda _d: QtPresentation())


def test_tabs_are_populated(qapp, device):
    session = _session(device)
    tabs = build_all_tabs(session)
    assert [label for _w, label in tabs] == ["Burst", "RS232"]
    p = session["burst"].presentation
    assert p.line_edits["cycles"].text() == "1"
    assert p.option_combos["mode"].currentData() == "TRIG"
    assert not p.rows["period"].isEnabled()
    assert not p.rows["trigger"].isEnabled()
    session["burst"].handle_choice_changed("trigger_source", "MAN")
    assert p.rows["trigger"].isEnabled()
    assert session["rs232"].presentation.readout_labels["hex_equivalent"].text() == "0x41"


def test_toggle_enables_feature(qapp, device):
    session = _session(device)
    build_all_tabs(session)
    p = session["burst"].presentation
    p.toggle.setChecked(True)
    assert session["burst"].is_enabled
    assert device.commands[0] == ":SOUR1:BURS:STAT ON"
    assert p.toggle.text() == "Disable"
    p.toggle.setChecked(False)
    assert not session["burst"].is_enabled
    assert device.commands[-1] == ":SOUR1:BURS:STAT OFF"


def test_main_window_builds(qapp, device):
    session = _session(device)
    win = build_main_window(session)
    assert win.tabs.count() == 2
    assert win.channel_combo.count() == 2
    assert not win.auto_refresh_check.isChecked()
    win.auto_refresh_check.setChecked(True)
    assert session.auto_refresh.is_running()
    session["burst"].initialize_ui()
    session["burst"].trigger()
    assert "not enabled" in win.log_view.toPlainText()
