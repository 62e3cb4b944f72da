"""Panel session: one device proxy shared by every feature controller."""
from __future__ import annotations

from typing import Callable, Dict, Iterable, Optional

from . import config as cfgmod
from .controller import FeatureController, FeatureDef
from .debounce import CooperativeLoop, ManualLoop, TimerHandle
from .device import DeviceProxy
from .errors import DeviceCommunicationError
from .features import FEATURES
from .logging import LogListener, get_logger
from .presentation import MemoryPresentation, PresentationAdapter

PresentationFactory = Callable[[FeatureDef], PresentationAdapter]

# Neutral output left on the channel when the panel closes.
SAFE_SHUTDOWN = ":SOUR{ch}:APPL:SIN 1000,1,0,0"

log = get_logger()


class PanelSession:
    """Build and coordinate the controllers for one instrument.

    The active channel is copied into each controller; ``set_active_channel``
    updates all of them explicitly. Controllers that share an
    ``exclusive_group`` drive the same channel function, so enabling or
    disabling one marks the others disabled.
    """

    def __init__(self, device: DeviceProxy, *, loop: Optional[CooperativeLoop] = None,
                 presentation_factory: Optional[PresentationFactory] = None,
                 cfg: Optional[dict] = None,
                 features: Optional[Iterable[FeatureDef]] = None) -> None:
        cfg = cfg if cfg is not None else cfgmod.load_config()
        self.device = device
        self.loop = loop if loop is not None else ManualLoop()
        self.channel_count = cfgmod.channel_count(cfg)
        factory = presentation_factory or (lambda _d: MemoryPresentation())
        defs = list(features) if features is not None else list(FEATURES.values())
        channel = cfgmod.active_channel(cfg)
        self.controllers: Dict[str, FeatureController] = {}
        for d in defs:
            ctrl = FeatureController(
                d, device,
                presentation=factory(d),
                loop=self.loop,
                active_channel=channel,
                channel_count=self.channel_count,
                debounce_ms=cfgmod.debounce_ms(cfg),
                strict_enable=bool(cfg.get("strict_enable", False)),
            )
            ctrl.subscribe_transition(self._on_transition)
            self.controllers[d.name] = ctrl
        self._active_channel = channel
        self.auto_refresh = AutoRefresh(self.loop, self._auto_refresh_tick,
                                        cfgmod.auto_refresh_ms(cfg))
        if cfg.get("auto_refresh"):
            self.auto_refresh.start()

    def __getitem__(self, name: str) -> FeatureController:
        return self.controllers[name]

    def __iter__(self):
        return iter(self.controllers.values())

    @property
    def active_channel(self) -> int:
        return self._active_channel

    def set_active_channel(self, channel: int) -> None:
        channel = int(channel)
        if not 1 <= channel <= self.channel_count:
            raise ValueError(f"Channel must be between 1 and {self.channel_count}, got {channel}")
        for ctrl in self.controllers.values():
            ctrl.set_active_channel(channel)
        self._active_channel = channel

    def _on_transition(self, source: FeatureController, enabled: bool) -> None:
        group = source.definition.exclusive_group
        if group is None:
            return
        for ctrl in self.controllers.values():
            if ctrl is not source and ctrl.definition.exclusive_group == group:
                ctrl.mark_disabled(source.title)

    def subscribe_log(self, listener: LogListener) -> None:
        for ctrl in self.controllers.values():
            ctrl.on_log.subscribe(listener)

    def initialize_ui(self) -> None:
        for ctrl in self.controllers.values():
            ctrl.initialize_ui()

    def refresh_all(self) -> Dict[str, bool]:
        """Refresh every controller; returns name -> refreshed."""
        return {name: ctrl.refresh() for name, ctrl in self.controllers.items()}

    def _auto_refresh_tick(self) -> None:
        if self.device.is_connected():
            self.refresh_all()

    def enabled_features(self) -> list[str]:
        return [name for name, ctrl in self.controllers.items() if ctrl.is_enabled]

    def safe_shutdown(self) -> bool:
        """Switch every enabled mode off and leave a plain 1 kHz sine.

        Returns False when disconnected or when the final command failed.
        """
        self.auto_refresh.stop()
        if not self.device.is_connected():
            return False
        for ctrl in self.controllers.values():
            if ctrl.is_enabled:
                ctrl.disable()
        command = SAFE_SHUTDOWN.format(ch=self._active_channel)
        try:
            self.device.send_command(command)
        except DeviceCommunicationError as e:
            log.warning("Safe shutdown failed: %s", e)
            return False
        log.info("Safe shutdown: %s", command)
        return True

    def close(self) -> None:
        self.auto_refresh.stop()
        for ctrl in self.controllers.values():
            ctrl.close()


class AutoRefresh:
    """Periodic refresh timer on the session's cooperative loop."""

    def __init__(self, loop: CooperativeLoop, callback: Callable[[], None],
                 interval_ms: float = 5000) -> None:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be > 0")
        self.loop = loop
        self.callback = callback
        self.interval_ms = float(interval_ms)
        self._handle: Optional[TimerHandle] = None

    def is_running(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        if self._handle is None:
            self._handle = self.loop.call_later(self.interval_ms, self._tick)
            log.debug("auto-refresh every %.0f ms", self.interval_ms)

    def stop(self) -> None:
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.cancel()

    def set_running(self, running: bool) -> None:
        if running:
            self.start()
        else:
            self.stop()

    def _tick(self) -> None:
        if self._handle is None:
            return
        self._handle = self.loop.call_later(self.interval_ms, self._tick)
        try:
            self.callback()
        except DeviceCommunicationError as e:
            log.warning("Auto-refresh failed: %s", e)
