import numpy as np
import pytest

from wavepanel.controller import FeatureController
from wavepanel.derived import (
    byte_equivalents,
    parse_hex_bytes,
    prbs_repetition_rate,
    prbs_sequence_length,
    sweep_points,
)
from wavepanel.errors import ParseError
from wavepanel.features import FEATURES, get_feature
from wavepanel.features import rs232


def _ctrl(name, device, loop, presentation):
    ctrl = FeatureController(get_feature(name), device, loop=loop, presentation=presentation)
    ctrl.initialize_ui()
    return ctrl


def test_every_feature_table_builds():
    assert set(FEATURES) == {
        "continuous", "sweep", "burst", "prbs", "rs232", "sequence", "dualtone", "harmonics",
        "am", "fm", "pm", "pwm", "ask", "fsk", "psk",
    }
    with pytest.raises(KeyError):
        get_feature("nope")


def test_prbs_readouts_follow_edits(device, loop, presentation):
    ctrl = _ctrl("prbs", device, loop, presentation)
    assert presentation.readouts["sequence_length"] == "127 bits"
    assert presentation.readouts["sequence_period"] == "63.5 ms"
    assert presentation.readouts["repetition_rate"].startswith("15.748")
    ctrl.handle_choice_changed("data_type", "PN9")
    assert presentation.readouts["sequence_length"] == "511 bits"
    ctrl.handle_text_changed("bit_rate", "")
    assert presentation.readouts["sequence_period"] == "--"
    ctrl.handle_text_changed("bit_rate", "5110")
    assert presentation.readouts["sequence_period"] == "100 µs"


def test_prbs_helpers():
    assert prbs_sequence_length("PN11") == 2047
    assert prbs_repetition_rate(2047.0, "PN11") == pytest.approx(1.0)
    with pytest.raises(ValueError):
        prbs_repetition_rate(0.0, "PN7")


def test_rs232_injection(device, loop, presentation):
    ctrl = _ctrl("rs232", device, loop, presentation)
    assert rs232.send_ascii(ctrl, "AB") is True
    assert rs232.send_hex(ctrl, "0x43,44\t45") is True
    assert rs232.send_byte(ctrl) is True
    assert rs232.send_quick(ctrl, "crlf") is True
    assert device.commands == [
        ":SOUR1:FUNC:RS232:DATA 65",
        ":SOUR1:FUNC:RS232:DATA 66",
        ":SOUR1:FUNC:RS232:DATA 67",
        ":SOUR1:FUNC:RS232:DATA 68",
        ":SOUR1:FUNC:RS232:DATA 69",
        ":SOUR1:FUNC:RS232:DATA 65",
        ":SOUR1:FUNC:RS232:DATA 13",
        ":SOUR1:FUNC:RS232:DATA 10",
    ]


def test_rs232_invalid_input_sends_nothing(device, loop, presentation):
    ctrl = _ctrl("rs232", device, loop, presentation)
    assert rs232.send_hex(ctrl, "41 zz 42") is False
    assert rs232.send_hex(ctrl, "41 100") is False
    assert rs232.send_byte(ctrl, "300") is False
    assert rs232.send_ascii(ctrl, "é") is False
    assert device.commands == []


def test_rs232_stops_at_first_failure(device, loop, presentation):
    ctrl = _ctrl("rs232", device, loop, presentation)
    device.fail_on.add(":SOUR1:FUNC:RS232:DATA 66")
    assert rs232.send_ascii(ctrl, "ABC") is False
    assert device.commands == [":SOUR1:FUNC:RS232:DATA 65"]


def test_rs232_single_byte_readouts(device, loop, presentation):
    ctrl = _ctrl("rs232", device, loop, presentation)
    assert presentation.readouts["hex_equivalent"] == "0x41"
    assert presentation.readouts["ascii_equivalent"] == "'A'"
    ctrl.handle_text_changed("single_byte", "7")
    assert presentation.readouts["ascii_equivalent"] == "[non-printable]"
    ctrl.handle_text_changed("single_byte", "999")
    assert presentation.readouts["hex_equivalent"] == "--"


def test_byte_helpers():
    assert parse_hex_bytes("de AD") == [0xDE, 0xAD]
    with pytest.raises(ParseError):
        parse_hex_bytes("GG")
    assert byte_equivalents(0x7E) == ("0x7E", "'~'")


def test_sequence_enable_and_slot_clamp(device, loop, presentation):
    ctrl = _ctrl("sequence", device, loop, presentation)
    ctrl.enable()
    assert device.commands[:2] == [
        ":SOUR1:APPL:SEQ 1000000,5,0,0",
        ":SOUR1:FUNC:SEQ ON",
    ]
    assert not any("EDGET" in c for c in device.commands)
    device.commands.clear()
    ctrl.handle_text_changed("slot3_points", "300")
    loop.advance(500)
    assert device.commands == [":SOUR1:FUNC:SEQ:PER 3,256"]
    ctrl.handle_choice_changed("filter", "SMOO")
    assert presentation.enabled["edge_time"] is True


def test_modulation_enable_and_depth_clamp(device, loop, presentation):
    ctrl = _ctrl("am", device, loop, presentation)
    assert presentation.readouts["carrier_period"] == "1000 µs"
    ctrl.enable()
    assert device.commands[:3] == [
        ":SOUR1:APPL:SIN 1000,5,0,0",
        ":SOUR1:AM:STAT ON",
        ":SOUR1:AM:SOUR INT",
    ]
    device.commands.clear()
    ctrl.handle_text_changed("parameter", "150")
    loop.advance(500)
    assert device.commands == [":SOUR1:AM:DEPT 120"]
    ctrl.disable()
    assert device.commands[-1] == ":SOUR1:AM:STAT OFF"


def test_keyed_modulation_uses_rate(device, loop, presentation):
    ctrl = _ctrl("fsk", device, loop, presentation)
    assert "mod_wave" not in ctrl.choices
    ctrl.enable()
    assert ":SOUR1:FSK:RATE 100" in device.commands
    assert ":SOUR1:FSK:FREQ 10000" in device.commands


def test_dualtone_readouts(device, loop, presentation):
    ctrl = _ctrl("dualtone", device, loop, presentation)
    assert presentation.readouts["center_freq"] == "1500 Hz"
    assert presentation.readouts["offset_freq"] == "1000 Hz"
    ctrl.handle_text_changed("freq2", "3")
    assert presentation.readouts["center_freq"] == "2000 Hz"


def test_sweep_step_readout(device, loop, presentation):
    ctrl = _ctrl("sweep", device, loop, presentation)
    assert presentation.readouts["step_size"] == "--"
    assert presentation.enabled["step_count"] is False
    ctrl.handle_choice_changed("spacing", "STE")
    assert presentation.enabled["step_count"] is True
    assert presentation.readouts["step_size"] == "900 Hz"
    ctrl.handle_text_changed("step_count", "10")
    assert presentation.readouts["step_size"] == "100 Hz"
    ctrl.handle_choice_changed("spacing", "LOG")
    assert presentation.readouts["step_size"] == "--"
    ctrl.handle_choice_changed("range_mode", "CENT")
    assert presentation.enabled["center_freq"] is True
    assert presentation.enabled["start_freq"] is False


def test_sweep_points():
    pts = sweep_points(10, 100, 5, "LIN")
    assert list(pts) == [10.0, 32.5, 55.0, 77.5, 100.0]
    log_pts = sweep_points(10, 1000, 3, "LOG")
    assert np.allclose(log_pts, [10.0, 100.0, 1000.0])
    with pytest.raises(ValueError):
        sweep_points(0, 10, 3, "LOG")


def test_harmonics_orders(device, loop, presentation):
    ctrl = _ctrl("harmonics", device, loop, presentation)
    ctrl.enable()
    assert device.commands[0] == ":SOUR1:HARM:STAT ON"
    assert ":SOUR1:HARM:TYP ALL" in device.commands
    assert ":SOUR1:HARM:AMPL 8,0" in device.commands
    assert ":SOUR1:HARM:PHAS 2,0" in device.commands


def test_sweep_steps_only_sent_for_stepped_sweeps(device, loop, presentation):
    ctrl = _ctrl("sweep", device, loop, presentation)
    ctrl.enable()
    assert not any("SWE:STEP" in c for c in device.commands)
    device.commands.clear()
    ctrl.handle_text_changed("step_count", "20")
    loop.advance(500)
    assert device.commands == []
    ctrl.handle_choice_changed("spacing", "STE")
    ctrl.handle_text_changed("step_count", "20")
    loop.advance(500)
    assert device.commands == [":SOUR1:SWE:SPAC STE", ":SOUR1:SWE:STEP 20"]


def test_sweep_trigger_needs_manual_source(device, loop, presentation):
    ctrl = _ctrl("sweep", device, loop, presentation)
    ctrl.enable()
    assert ctrl.trigger() is False
    ctrl.handle_choice_changed("trigger_source", "MAN")
    device.commands.clear()
    assert ctrl.trigger() is True
    assert device.commands == [":SOUR1:SWE:TRIG"]


def test_continuous_enable_applies_waveform(device, loop, presentation):
    ctrl = _ctrl("continuous", device, loop, presentation)
    ctrl.handle_choice_changed("waveform", "SQU")
    assert presentation.enabled["duty_cycle"] is True
    assert presentation.enabled["symmetry"] is False
    ctrl.enable()
    assert device.commands[0] == ":SOUR1:APPL:SQU 1000,1,0,0"
    assert ":SOUR1:FREQ 1000" in device.commands
    assert ":SOUR1:FUNC:SQU:DCYC 50" in device.commands
    assert not any(":SOUR1:PER " in c or "SYMM" in c for c in device.commands)


def test_continuous_frequency_and_period_track_each_other(device, loop, presentation):
    ctrl = _ctrl("continuous", device, loop, presentation)
    assert presentation.enabled["period"] is False
    ctrl.enable()
    device.commands.clear()
    ctrl.handle_text_changed("frequency", "2")
    assert presentation.texts["period"] == "0.5"
    loop.advance(500)
    assert device.commands == [":SOUR1:FREQ 2000"]
    device.commands.clear()
    ctrl.handle_choice_changed("entry_mode", "PER")
    assert device.commands == []
    assert presentation.enabled["period"] is True
    ctrl.handle_text_changed("period", "0.25")
    assert presentation.texts["frequency"] == "4"
    loop.advance(500)
    assert device.commands == [":SOUR1:PER 0.00025"]


def test_continuous_refresh_fills_reciprocal(loop, presentation):
    from conftest import FakeDevice

    device = FakeDevice({
        ":SOUR1:FUNC?": "SIN",
        ":SOUR1:FREQ?": "2.000000E+04",
        ":SOUR1:VOLT?": "2",
        ":SOUR1:VOLT:OFFS?": "0",
        ":SOUR1:PHAS?": "0",
    })
    ctrl = _ctrl("continuous", device, loop, presentation)
    assert ctrl.refresh() is True
    assert ctrl.is_enabled
    assert presentation.texts["frequency"] == "20"
    assert presentation.texts["period"] == "0.05"
    assert ":SOUR1:PER?" not in device.queries


def test_continuous_inactive_for_other_functions(loop, presentation):
    from conftest import FakeDevice

    device = FakeDevice({":SOUR1:FUNC?": "PRBS"})
    ctrl = _ctrl("continuous", device, loop, presentation)
    assert ctrl.refresh() is True
    assert not ctrl.is_enabled


def test_am_suppressed_carrier(device, loop, presentation):
    ctrl = _ctrl("am", device, loop, presentation)
    assert "dssc" not in [c.id for c in FEATURES["fm"].choices]
    ctrl.enable()
    assert ":SOUR1:AM:DSSC OFF" in device.commands
    device.commands.clear()
    ctrl.handle_choice_changed("dssc", "ON")
    assert device.commands == [":SOUR1:AM:DSSC ON"]


def test_function_modes_share_a_group():
    grouped = {name for name, d in FEATURES.items() if d.exclusive_group == "function"}
    assert {"continuous", "prbs", "rs232", "sequence", "dualtone", "am", "fsk"} <= grouped
    assert FEATURES["burst"].exclusive_group is None


def test_rs232_bytes_go_out_in_one_transaction(device, loop, presentation):
    ctrl = _ctrl("rs232", device, loop, presentation)
    rs232.send_ascii(ctrl, "Hi")
    assert device.transactions == [[":SOUR1:FUNC:RS232:DATA 72", ":SOUR1:FUNC:RS232:DATA 105"]]
