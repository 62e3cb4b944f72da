"""Generic feature controller.

One ``FeatureController`` drives one instrument mode (sweep, burst, PRBS,
...) from a ``FeatureDef`` table: the fields it owns, the commands that
switch the mode on and off, and the query that tells whether the mode is
currently active on the instrument.

State machine::

    UNINITIALIZED --initialize_ui--> DISABLED <--enable/disable--> ENABLED
                                         \\__ refresh (transient REFRESHING) __/

Edit notifications are ignored while UNINITIALIZED or REFRESHING, and after
``close()``.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Union

from .debounce import DEFAULT_DEBOUNCE_MS, CooperativeLoop, DebounceScheduler, ManualLoop
from .derived import frequency_to_period, period_to_frequency
from .device import DeviceProxy
from .errors import ConfigurationError, DeviceCommunicationError, ParseError
from .fields import (
    ChoiceDef,
    ChoiceField,
    FieldDef,
    ParameterField,
    format_command_value,
    match_option,
    template_names,
)
from .logging import LogEvent
from .presentation import MemoryPresentation, PresentationAdapter
from .units import DEFAULT_REGISTRY, TIME, UnitRegistry, UnitSpec, parse_number

__all__ = [
    "FUNCTION_GROUP",
    "ControllerState",
    "ReadoutDef",
    "FeatureDef",
    "FeatureController",
    "reply_is_on",
    "reply_contains",
    "reply_in",
]


def reply_is_on(reply: str) -> bool:
    return reply.strip().strip('"').upper() in ("ON", "1")


def reply_contains(token: str) -> Callable[[str], bool]:
    token = token.upper()

    def _check(reply: str) -> bool:
        return token in reply.upper()

    _check.__name__ = f"reply_contains_{token.lower()}"
    return _check


def reply_in(*tags: str) -> Callable[[str], bool]:
    """Active when the reply names one of ``tags`` (long or short form)."""

    def _check(reply: str) -> bool:
        return match_option(reply, tags) is not None

    _check.__name__ = "reply_in_" + "_".join(t.lower() for t in tags)
    return _check


# Modes that each replace the channel's output function.
FUNCTION_GROUP = "function"


class ControllerState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    DISABLED = "disabled"
    ENABLED = "enabled"
    REFRESHING = "refreshing"
    CLOSED = "closed"


@dataclass(frozen=True)
class ReadoutDef:
    """A derived, display-only value recomputed when its inputs are edited."""

    id: str
    label: str
    depends_on: Tuple[str, ...]
    compute: Callable[["FeatureController"], str]


@dataclass(frozen=True)
class FeatureDef:
    name: str
    title: str
    state_query: str
    activate: Tuple[str, ...]
    deactivate: Tuple[str, ...]
    fields: Tuple[FieldDef, ...] = ()
    choices: Tuple[ChoiceDef, ...] = ()
    readouts: Tuple[ReadoutDef, ...] = ()
    is_active: Callable[[str], bool] = reply_is_on
    trigger: Optional[str] = None
    trigger_when: Optional[Tuple[str, Tuple[str, ...]]] = None
    exclusive_group: Optional[str] = None

    def __post_init__(self) -> None:
        ids = [f.id for f in self.fields] + [c.id for c in self.choices]
        dupes = {i for i in ids if ids.count(i) > 1}
        if dupes:
            raise ConfigurationError(f"{self.name}: duplicate field ids {sorted(dupes)}")
        known = set(ids) | {"ch"}
        for tpl in self.activate + self.deactivate + (self.state_query,):
            unknown = template_names(tpl) - known
            if unknown:
                raise ConfigurationError(
                    f"{self.name}: template {tpl!r} references unknown {sorted(unknown)}")
        if self.trigger is not None and template_names(self.trigger) - {"ch"}:
            raise ConfigurationError(f"{self.name}: trigger template may only use {{ch}}")
        choices = {c.id: c for c in self.choices}
        gates = [(item.id, item.active_when) for item in self.fields + self.choices]
        gates.append(("trigger", self.trigger_when))
        for item_id, gate in gates:
            if gate is None:
                continue
            choice_id, tags = gate
            if choice_id not in choices:
                raise ConfigurationError(
                    f"{self.name}: '{item_id}' gated on unknown choice '{choice_id}'")
            bad = set(tags) - set(choices[choice_id].tags())
            if bad:
                raise ConfigurationError(
                    f"{self.name}: '{item_id}' gated on unknown tags {sorted(bad)}")
        field_ids = {f.id for f in self.fields}
        for f in self.fields:
            if f.mirrors is not None and f.mirrors not in field_ids:
                raise ConfigurationError(
                    f"{self.name}: '{f.id}' mirrors unknown field '{f.mirrors}'")
        for item in self.fields + self.choices:
            for tpl in (item.command, item.query):
                if tpl is not None and template_names(tpl) - {"ch", "value"}:
                    raise ConfigurationError(
                        f"{self.name}: template {tpl!r} may only use {{ch}} and {{value}}")
        for readout in self.readouts:
            missing = set(readout.depends_on) - set(ids)
            if missing:
                raise ConfigurationError(
                    f"{self.name}: readout '{readout.id}' depends on unknown {sorted(missing)}")


AnyField = Union[ParameterField, ChoiceField]
TransitionListener = Callable[["FeatureController", bool], None]


class FeatureController:
    """State machine for one instrument mode."""

    def __init__(
        self,
        definition: FeatureDef,
        device: DeviceProxy,
        *,
        presentation: Optional[PresentationAdapter] = None,
        loop: Optional[CooperativeLoop] = None,
        registry: UnitRegistry = DEFAULT_REGISTRY,
        active_channel: int = 1,
        channel_count: int = 2,
        debounce_ms: float = DEFAULT_DEBOUNCE_MS,
        strict_enable: bool = False,
    ) -> None:
        if channel_count < 1:
            raise ConfigurationError("channel_count must be >= 1")
        self.definition = definition
        self.device = device
        self.presentation: PresentationAdapter = (
            presentation if presentation is not None else MemoryPresentation())
        self.registry = registry
        self.channel_count = channel_count
        self.strict_enable = strict_enable
        self.on_log = LogEvent(definition.name)
        self.scheduler = DebounceScheduler(loop if loop is not None else ManualLoop(), debounce_ms)
        self._state = ControllerState.UNINITIALIZED
        self._resume_state = ControllerState.UNINITIALIZED
        self._active_channel = 1
        self.set_active_channel(active_channel)
        self.fields: Dict[str, ParameterField] = {
            d.id: ParameterField(d, self) for d in definition.fields}
        self.choices: Dict[str, ChoiceField] = {
            d.id: ChoiceField(d, self) for d in definition.choices}
        self._transition_listeners: List[TransitionListener] = []

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return (f"FeatureController({self.name}, ch={self._active_channel}, "
                f"state={self._state.value})")

    # Properties -----------------------------------------------------------
    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def title(self) -> str:
        return self.definition.title

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def is_initialized(self) -> bool:
        return self._state not in (ControllerState.UNINITIALIZED, ControllerState.CLOSED)

    @property
    def is_enabled(self) -> bool:
        if self._state is ControllerState.REFRESHING:
            return self._resume_state is ControllerState.ENABLED
        return self._state is ControllerState.ENABLED

    @property
    def active_channel(self) -> int:
        return self._active_channel

    def set_active_channel(self, channel: int) -> None:
        """Point the controller at another output. Sends nothing."""
        channel = int(channel)
        if not 1 <= channel <= self.channel_count:
            raise ValueError(f"Channel must be between 1 and {self.channel_count}, got {channel}")
        if channel != self._active_channel:
            self.scheduler.cancel_all()
        self._active_channel = channel

    # Plumbing used by the fields -----------------------------------------
    def log(self, message: str, level: int = logging.INFO) -> None:
        self.on_log.emit(message, level)

    def send(self, command: str) -> None:
        self.device.send_command(command)

    def send_template(self, template: str, **values: Any) -> bool:
        """Issue an ad-hoc command in this controller's channel context."""
        command = self.format_command(template, **values)
        try:
            self.send(command)
        except DeviceCommunicationError as e:
            self.log(f"Error sending {command}: {e}", logging.WARNING)
            return False
        return True

    def accepts_apply(self, field_id: str) -> bool:
        return self._state is ControllerState.ENABLED and self.is_item_active(field_id)

    def _accepts_edits(self) -> bool:
        return self._state in (ControllerState.DISABLED, ControllerState.ENABLED)

    def item(self, item_id: str) -> AnyField:
        if item_id in self.fields:
            return self.fields[item_id]
        if item_id in self.choices:
            return self.choices[item_id]
        raise KeyError(f"{self.name}: no field '{item_id}'")

    def _template_value(self, name: str) -> str:
        if name == "ch":
            return str(self._active_channel)
        if name in self.fields:
            f = self.fields[name]
            current = f.peek_base_value()
            return f.command_value(current if current is not None else f.base_value)
        if name in self.choices:
            return self.choices[name].command_value()
        raise ConfigurationError(f"{self.name}: unknown template name '{name}'")

    def format_command(self, template: str, **values: Any) -> str:
        mapping: Dict[str, Any] = {}
        for name in template_names(template):
            if name in values:
                v = values[name]
                mapping[name] = format_command_value(v) if isinstance(v, float) else v
            else:
                mapping[name] = self._template_value(name)
        return template.format(**mapping)

    def current_value(self, item_id: str) -> Any:
        """Live value of a field (parsed from its text) or the selected tag."""
        item = self.item(item_id)
        if isinstance(item, ChoiceField):
            return item.selected_tag
        return item.peek_base_value()

    def number(self, field_id: str) -> float:
        """Live base value of a field; ValueError when its text does not parse."""
        value = self.fields[field_id].peek_base_value()
        if value is None:
            raise ValueError(f"{field_id} has no valid value")
        return value

    def is_item_active(self, item_id: str) -> bool:
        gate = self.item(item_id).definition.active_when
        if gate is None:
            return True
        choice_id, tags = gate
        return self.choices[choice_id].selected_tag in tags

    def _active_choices(self) -> Iterator[ChoiceField]:
        for c in self.choices.values():
            if self.is_item_active(c.id):
                yield c

    def _active_fields(self) -> Iterator[ParameterField]:
        for f in self.fields.values():
            if self.is_item_active(f.id):
                yield f

    def recompute_readouts(self, changed_id: Optional[str] = None) -> None:
        for readout in self.definition.readouts:
            if changed_id is not None and changed_id not in readout.depends_on:
                continue
            self.presentation.set_readout(readout.id, self.readout(readout.id))

    def readout(self, readout_id: str) -> str:
        """Current text of a read-out; ``--`` when its inputs do not compute."""
        for r in self.definition.readouts:
            if r.id == readout_id:
                try:
                    return r.compute(self)
                except (ArithmeticError, ValueError, TypeError) as e:
                    self.log(f"Could not compute {r.label.lower()}: {e}", logging.DEBUG)
                    return "--"
        raise KeyError(f"{self.name}: no readout '{readout_id}'")

    def can_trigger(self) -> bool:
        gate = self.definition.trigger_when
        if self.definition.trigger is None:
            return False
        if gate is None:
            return True
        choice_id, tags = gate
        return self.choices[choice_id].selected_tag in tags

    def update_field_states(self) -> None:
        for item in list(self.fields.values()) + list(self.choices.values()):
            if item.definition.active_when is not None:
                self.presentation.set_field_enabled(item.id, self.is_item_active(item.id))
        if self.definition.trigger_when is not None:
            self.presentation.set_field_enabled("trigger", self.can_trigger())

    # Lifecycle ------------------------------------------------------------
    def initialize_ui(self) -> None:
        """Populate option and unit lists once. Repeated calls do nothing."""
        if self._state is not ControllerState.UNINITIALIZED:
            return
        p = self.presentation
        for c in self.choices.values():
            p.set_options(c.id, c.definition.options)
            c.push()
        for f in self.fields.values():
            p.set_unit_options(f.id, f.family.units)
            f.push()
        self._state = ControllerState.DISABLED
        self.update_field_states()
        self.recompute_readouts()
        p.set_controls_visible(False)
        self.log(f"{self.title} controller UI initialized")

    def enable(self) -> bool:
        """Switch the mode on and write every in-play parameter.

        Best-effort: each failed command is logged and the transition still
        completes, unless ``strict_enable`` is set and an activation command
        failed. Returns True when every command went out.
        """
        if self._state is ControllerState.CLOSED:
            return False
        if self._state is ControllerState.UNINITIALIZED:
            self.initialize_ui()
        self.scheduler.cancel_all()
        ok = True
        with self.device.transaction():
            for tpl in self.definition.activate:
                try:
                    self.send(self.format_command(tpl))
                except DeviceCommunicationError as e:
                    ok = False
                    self.log(f"Error enabling {self.title.lower()}: {e}", logging.WARNING)
            if not ok and self.strict_enable:
                self.log(f"{self.title} left disabled on channel {self._active_channel}",
                         logging.WARNING)
                return False
            for c in self._active_choices():
                if not c.is_local and not c.apply():
                    ok = False
            for f in self._active_fields():
                if not f.is_local and not f.apply():
                    ok = False
        self._state = ControllerState.ENABLED
        self.presentation.set_controls_visible(True)
        self.update_field_states()
        self.recompute_readouts()
        self.log(f"{self.title} enabled on channel {self._active_channel}")
        self._notify_transition(True)
        return ok

    def disable(self) -> None:
        """Return the channel to its neutral baseline. Never fails."""
        if self._state is ControllerState.CLOSED:
            return
        self.scheduler.cancel_all()
        with self.device.transaction():
            for tpl in self.definition.deactivate:
                try:
                    self.send(self.format_command(tpl))
                except DeviceCommunicationError as e:
                    self.log(f"Error disabling {self.title.lower()}: {e}", logging.WARNING)
        if self._state is not ControllerState.UNINITIALIZED:
            self._state = ControllerState.DISABLED
        self.presentation.set_controls_visible(False)
        self.log(f"{self.title} disabled on channel {self._active_channel}")
        self._notify_transition(False)

    def subscribe_transition(self, listener: TransitionListener) -> None:
        """Call ``listener(controller, enabled)`` after every enable/disable."""
        self._transition_listeners.append(listener)

    def _notify_transition(self, enabled: bool) -> None:
        for listener in list(self._transition_listeners):
            listener(self, enabled)

    def mark_disabled(self, by: str) -> None:
        """Record that another mode took over the channel. Sends nothing."""
        if self._state is not ControllerState.ENABLED:
            return
        self.scheduler.cancel_all()
        self._state = ControllerState.DISABLED
        self.presentation.set_controls_visible(False)
        self.log(f"{self.title} switched off by {by}")

    def refresh(self) -> bool:
        """Pull device state into the fields. Reads only, never debounced."""
        if self._state in (ControllerState.CLOSED, ControllerState.REFRESHING):
            return False
        if not self.device.is_connected():
            self.log(f"Cannot refresh {self.title.lower()}: device not connected",
                     logging.DEBUG)
            return False
        if self._state is ControllerState.UNINITIALIZED:
            self.initialize_ui()
        try:
            reply = self.device.send_query(self.format_command(self.definition.state_query))
        except DeviceCommunicationError as e:
            self.log(f"Error refreshing {self.title.lower()} settings: {e}", logging.WARNING)
            return False
        active = self.definition.is_active(reply)
        self._resume_state = self._state
        self._state = ControllerState.REFRESHING
        try:
            if active:
                self._pull_choices()
                self._pull_fields()
            else:
                self.scheduler.cancel_all()
        finally:
            self._state = ControllerState.ENABLED if active else ControllerState.DISABLED
        self.presentation.set_controls_visible(active)
        self.update_field_states()
        self.recompute_readouts()
        return True

    def _pull_choices(self) -> None:
        for c in self.choices.values():
            if c.definition.query is None or not self.is_item_active(c.id):
                continue
            try:
                reply = self.device.send_query(self.format_command(c.definition.query))
            except DeviceCommunicationError as e:
                self.log(f"Error refreshing {c.label.lower()}: {e}", logging.WARNING)
                continue
            c.load_from_device(reply)

    def _pull_fields(self) -> None:
        for f in self._active_fields():
            if f.definition.query is None:
                continue
            try:
                reply = self.device.send_query(self.format_command(f.definition.query))
                value = parse_number(reply)
            except (DeviceCommunicationError, ParseError) as e:
                self.log(f"Error refreshing {f.label.lower()}: {e}", logging.WARNING)
                continue
            f.load_from_device(value)
            self._update_mirror(f)

    def _update_mirror(self, field: ParameterField) -> None:
        """Show the reciprocal of ``field`` in the field it mirrors."""
        if field.definition.mirrors is None:
            return
        value = field.peek_base_value()
        if value is None or value <= 0:
            return
        partner = self.fields[field.definition.mirrors]
        if partner.family is TIME:
            partner.show_base_value(frequency_to_period(value))
        else:
            partner.show_base_value(period_to_frequency(value))

    def apply_all(self) -> int:
        """Re-send every in-play parameter now. Returns the failure count."""
        self.scheduler.cancel_all()
        failures = 0
        for c in self._active_choices():
            if not c.is_local and not c.apply():
                failures += 1
        for f in self._active_fields():
            if not f.is_local and not f.apply():
                failures += 1
        return failures

    def trigger(self) -> bool:
        if self.definition.trigger is None:
            raise ConfigurationError(f"{self.name} has no manual trigger")
        if not self.is_enabled:
            self.log(f"Cannot trigger: {self.title.lower()} is not enabled", logging.WARNING)
            return False
        if not self.can_trigger():
            choice_id, tags = self.definition.trigger_when
            self.log(f"Cannot trigger: {self.choices[choice_id].label.lower()} must be "
                     f"{'/'.join(tags)}", logging.WARNING)
            return False
        try:
            self.send(self.format_command(self.definition.trigger))
        except DeviceCommunicationError as e:
            self.log(f"Error executing manual trigger: {e}", logging.WARNING)
            return False
        self.log(f"Manual {self.title.lower()} trigger executed")
        return True

    def close(self) -> None:
        """Drop pending edits; the controller ignores everything afterwards."""
        self.scheduler.cancel_all()
        self._state = ControllerState.CLOSED

    # Presentation notifications ------------------------------------------
    def handle_text_changed(self, field_id: str, text: str) -> None:
        if not self._accepts_edits():
            return
        field = self.fields[field_id]
        field.on_text_changed(text)
        self._update_mirror(field)

    def handle_lost_focus(self, field_id: str) -> None:
        if not self._accepts_edits():
            return
        self.fields[field_id].on_lost_focus()

    def handle_unit_changed(self, field_id: str, unit: Union[UnitSpec, str]) -> None:
        if not self._accepts_edits():
            return
        if isinstance(unit, str):
            unit = self.registry.lookup(unit)
        field = self.fields[field_id]
        if unit == field.selected_unit:
            return
        field.on_unit_changed(unit)

    def handle_choice_changed(self, choice_id: str, tag: str) -> None:
        if not self._accepts_edits():
            return
        choice = self.choices[choice_id]
        if tag == choice.selected_tag:
            return
        choice.select(tag)
        if self.is_enabled and not choice.is_local:
            choice.apply()
        self.update_field_states()
        self.recompute_readouts(choice_id)

    def handle_apply_pressed(self) -> bool:
        if not self._accepts_edits():
            return False
        for f in self.fields.values():
            f.pull()
        if self.is_enabled:
            return self.apply_all() == 0
        return self.enable()
