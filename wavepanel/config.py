"""Config persistence with simple JSON file and default values.

Holds the handful of settings the panel needs between sessions: the VISA
resource string (``"auto"`` to pick the first attached generator), the
debounce interval, the channel layout and the auto-refresh timer.
"""
from __future__ import annotations
import json
from pathlib import Path

CONFIG_PATH = Path.home() / '.config' / 'wavepanel' / 'config.json'

_cache = None
DEFAULTS = {
    "visa_resource": "auto",
    "visa_timeout_ms": 5000,
    "debounce_ms": 500,
    "channel_count": 2,
    "active_channel": 1,
    "strict_enable": False,
    "auto_refresh": False,
    "auto_refresh_ms": 5000,
}


def _path() -> Path:
    # Support tests monkeypatching CONFIG_PATH to a string
    return CONFIG_PATH if isinstance(CONFIG_PATH, Path) else Path(str(CONFIG_PATH))


def load_config():
    global _cache
    if _cache is not None:
        return _cache
    path = _path()
    if path.exists():
        try:
            _cache = json.loads(path.read_text())
        except (OSError, ValueError):
            _cache = {}
    else:
        _cache = {}
    if not isinstance(_cache, dict):
        _cache = {}
    # Merge defaults without overwriting existing values
    for k, v in DEFAULTS.items():
        _cache.setdefault(k, v)
    return _cache


def save_config(data):
    global _cache
    path = _path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2))
    _cache = dict(data)
    for k, v in DEFAULTS.items():
        _cache.setdefault(k, v)


def update_config(**kv):
    cfg = load_config()
    cfg.update(kv)
    save_config(cfg)


def reset_cache():
    """Forget the in-memory copy so the next load re-reads the file."""
    global _cache
    _cache = None


def debounce_ms(cfg=None) -> int:
    cfg = cfg if cfg is not None else load_config()
    try:
        value = int(cfg.get("debounce_ms", DEFAULTS["debounce_ms"]))
    except (TypeError, ValueError):
        return DEFAULTS["debounce_ms"]
    return value if value >= 0 else DEFAULTS["debounce_ms"]


def channel_count(cfg=None) -> int:
    cfg = cfg if cfg is not None else load_config()
    try:
        value = int(cfg.get("channel_count", DEFAULTS["channel_count"]))
    except (TypeError, ValueError):
        return DEFAULTS["channel_count"]
    return max(1, value)


def active_channel(cfg=None) -> int:
    """Configured channel, or 1 when it is malformed or out of range."""
    cfg = cfg if cfg is not None else load_config()
    try:
        value = int(cfg.get("active_channel", DEFAULTS["active_channel"]))
    except (TypeError, ValueError):
        return 1
    return value if 1 <= value <= channel_count(cfg) else 1


def auto_refresh_ms(cfg=None) -> int:
    cfg = cfg if cfg is not None else load_config()
    try:
        value = int(cfg.get("auto_refresh_ms", DEFAULTS["auto_refresh_ms"]))
    except (TypeError, ValueError):
        return DEFAULTS["auto_refresh_ms"]
    return value if value > 0 else DEFAULTS["auto_refresh_ms"]
