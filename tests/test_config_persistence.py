from wavepanel import config as cfgmod
from wavepanel.config import load_config, update_config


def test_persistence_round_trip():
    data = load_config()
    assert isinstance(data, dict)
    assert data["debounce_ms"] == 500
    update_config(visa_resource='USB::INSTR', debounce_ms=250)
    cfgmod.reset_cache()
    data2 = load_config()
    assert data2.get('visa_resource') == 'USB::INSTR'
    assert cfgmod.debounce_ms(data2) == 250
    assert data2.get('channel_count') == 2


def test_bad_values_fall_back_to_defaults():
    assert cfgmod.debounce_ms({"debounce_ms": "soon"}) == 500
    assert cfgmod.debounce_ms({"debounce_ms": -5}) == 500
    assert cfgmod.channel_count({"channel_count": 0}) == 1


def test_corrupt_file_ignored():
    cfgmod.CONFIG_PATH.write_text("{not json")
    cfgmod.reset_cache()
    assert load_config()["channel_count"] == 2


def test_active_channel_reader_is_tolerant():
    assert cfgmod.active_channel({"active_channel": "two"}) == 1
    assert cfgmod.active_channel({"active_channel": 3, "channel_count": 2}) == 1
    assert cfgmod.active_channel({"active_channel": "2", "channel_count": 2}) == 2
    assert cfgmod.active_channel({}) == 1


def test_auto_refresh_defaults():
    data = load_config()
    assert data["auto_refresh"] is False
    assert data["visa_resource"] == "auto"
    assert cfgmod.auto_refresh_ms(data) == 5000
    assert cfgmod.auto_refresh_ms({"auto_refresh_ms": 0}) == 5000
    assert cfgmod.auto_refresh_ms({"auto_refresh_ms": "often"}) == 5000
