"""Parameter and choice fields.

A ``ParameterField`` is one numeric quantity the user edits as text plus a
unit. It owns its debounce key, knows how to turn its text into a base value
and how to write that value to the instrument. A ``ChoiceField`` is a
combo-box style selection applied immediately when it changes.

Fields never raise past ``apply()``; failures become log lines on the owning
controller.
"""
from __future__ import annotations

import logging
import string
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence, Tuple

from .debounce import DebounceState
from .errors import ConfigurationError, DeviceCommunicationError, ParseError
from .units import COUNT, UnitFamily, UnitSpec, format_value, parse_number

if TYPE_CHECKING:  # pragma: no cover
    from .controller import FeatureController

__all__ = [
    "FieldDef",
    "ChoiceDef",
    "ParameterField",
    "ChoiceField",
    "template_names",
    "format_command_value",
    "match_option",
]


def template_names(template: str) -> set[str]:
    """Return the replacement field names used by a command template."""
    names = set()
    try:
        for _literal, name, _fmt, _conv in string.Formatter().parse(template):
            if name is None:
                continue
            if not name or not name.isidentifier():
                raise ConfigurationError(f"Malformed command template: {template!r}")
            names.add(name)
    except ValueError as e:
        raise ConfigurationError(f"Malformed command template {template!r}: {e}") from None
    return names


def format_command_value(value: float, integer: bool = False) -> str:
    if integer:
        return str(int(round(value)))
    text = f"{value:.12g}"
    return "0" if text == "-0" else text


@dataclass(frozen=True)
class FieldDef:
    """Static description of a numeric field.

    ``command`` and ``query`` may use ``{ch}``; ``command`` must use
    ``{value}``. A field with no command is local: it only feeds read-outs
    and activation templates. ``active_when`` names a choice field and the
    tags for which this field is in play. ``mirrors`` names a field holding the
    reciprocal quantity (frequency and period); editing one rewrites the
    other's text without writing to the instrument.
    """

    id: str
    label: str
    family: UnitFamily = COUNT
    command: Optional[str] = None
    query: Optional[str] = None
    unit: Optional[str] = None
    default: float = 0.0
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    integer: bool = False
    min_decimals: int = 0
    auto_range: bool = True
    active_when: Optional[Tuple[str, Tuple[str, ...]]] = None
    mirrors: Optional[str] = None

    def __post_init__(self) -> None:
        if self.command is not None and "value" not in template_names(self.command):
            raise ConfigurationError(f"Command for '{self.id}' lacks a {{value}} slot")
        if self.query is not None:
            template_names(self.query)
        if self.minimum is not None and self.maximum is not None and self.minimum > self.maximum:
            raise ConfigurationError(f"Empty range for '{self.id}'")
        unit = self.unit if self.unit is not None else self.family.base
        if unit not in self.family.names():
            raise ConfigurationError(f"Unit '{unit}' not in family '{self.family.name}'")


@dataclass(frozen=True)
class ChoiceDef:
    id: str
    label: str
    options: Tuple[Tuple[str, str], ...]
    command: Optional[str] = None
    query: Optional[str] = None
    default: Optional[str] = None
    active_when: Optional[Tuple[str, Tuple[str, ...]]] = None

    def __post_init__(self) -> None:
        if not self.options:
            raise ConfigurationError(f"Choice '{self.id}' has no options")
        if self.command is not None and "value" not in template_names(self.command):
            raise ConfigurationError(f"Command for '{self.id}' lacks a {{value}} slot")
        if self.query is not None:
            template_names(self.query)
        if self.default is not None and self.default not in self.tags():
            raise ConfigurationError(f"Default '{self.default}' not an option of '{self.id}'")

    def tags(self) -> list[str]:
        return [tag for _label, tag in self.options]

    def label_for(self, tag: str) -> str:
        for label, t in self.options:
            if t == tag:
                return label
        return tag


def match_option(response: str, tags: Sequence[str]) -> Optional[str]:
    """Map an instrument reply onto one of ``tags``.

    Instruments answer with either the short or the long mnemonic
    (``MAN`` vs ``MANUAL``, ``INF`` vs ``INFINITY``). Exact matches win,
    then the longest tag the reply starts with, then a 3-character prefix.
    """
    reply = response.strip().strip('"').upper()
    if not reply:
        return None
    upper = {t.upper(): t for t in tags}
    if reply in upper:
        return upper[reply]
    prefixed = [t for t in upper if reply.startswith(t)]
    if prefixed:
        return upper[max(prefixed, key=len)]
    for t in upper:
        if t.startswith(reply) or t[:3] == reply[:3]:
            return upper[t]
    return None


class ParameterField:
    """One numeric field bound to a command template."""

    def __init__(self, definition: FieldDef, owner: "FeatureController") -> None:
        self.definition = definition
        self.id = definition.id
        self._owner = owner
        self.family = definition.family
        self.selected_unit: UnitSpec = self.family.get(
            definition.unit if definition.unit is not None else self.family.base)
        self.base_value: float = float(definition.default)
        self.display_text: str = self._render(
            owner.registry.from_base(self.base_value, self.selected_unit))
        if self.command_template is not None:
            owner.scheduler.register(self.id, self._debounced_apply)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"ParameterField({self.id}={self.display_text!r} {self.selected_unit.name})"

    @property
    def label(self) -> str:
        return self.definition.label

    @property
    def command_template(self) -> Optional[str]:
        return self.definition.command

    @property
    def is_local(self) -> bool:
        return self.definition.command is None

    @property
    def debounce_state(self) -> DebounceState:
        return self._owner.scheduler.state(self.id)

    def _render(self, shown: float) -> str:
        if self.definition.integer:
            return str(int(round(shown)))
        return format_value(shown, self.definition.min_decimals)

    def display(self) -> str:
        """Text plus unit, e.g. '127 kHz'."""
        return f"{self.display_text} {self.selected_unit.name}".rstrip()

    # Edit notifications ---------------------------------------------------
    def on_text_changed(self, text: str) -> None:
        self.display_text = text
        if self.command_template is not None:
            self._owner.scheduler.notify(self.id)
        self._owner.recompute_readouts(self.id)

    def on_lost_focus(self) -> None:
        try:
            shown = parse_number(self.display_text)
        except ParseError:
            return
        if self.definition.integer and not shown.is_integer():
            return
        text = self._render(shown)
        if text != self.display_text:
            self.display_text = text
            self._owner.presentation.set_field_text(self.id, text)

    def on_unit_changed(self, unit: UnitSpec) -> None:
        if unit not in self.family:
            raise ConfigurationError(
                f"Unit '{unit.name}' not valid for field '{self.id}' ({self.family.name})")
        self.selected_unit = unit
        self.display_text = self._render(self._owner.registry.from_base(self.base_value, unit))
        self._owner.presentation.set_field_text(self.id, self.display_text)
        if self.command_template is not None:
            self._owner.scheduler.notify(self.id)
        self._owner.recompute_readouts(self.id)

    # Values ---------------------------------------------------------------
    def parsed_base_value(self) -> float:
        """Current text converted to base units, unclamped. Raises ParseError."""
        shown = parse_number(self.display_text)
        if self.definition.integer and not shown.is_integer():
            raise ParseError(f"'{self.display_text.strip()}' is not a whole number",
                             self.display_text)
        return self._owner.registry.to_base(shown, self.selected_unit)

    def peek_base_value(self) -> Optional[float]:
        try:
            return self.clamp(self.parsed_base_value())
        except ParseError:
            return None

    def clamp(self, value: float) -> float:
        lo, hi = self.definition.minimum, self.definition.maximum
        if lo is not None and value < lo:
            value = lo
        if hi is not None and value > hi:
            value = hi
        if self.definition.integer:
            value = float(int(round(value)))
        return value

    def command_value(self, value: Optional[float] = None) -> str:
        return format_command_value(self.base_value if value is None else value,
                                    self.definition.integer)

    # Device I/O -----------------------------------------------------------
    def _debounced_apply(self) -> None:
        if not self._owner.accepts_apply(self.id):
            return
        self.apply()

    def apply(self) -> bool:
        """Parse, clamp and write the field. Returns True if the command went out."""
        try:
            value = self.clamp(self.parsed_base_value())
        except ParseError as e:
            self._owner.log(f"Invalid {self.label.lower()}: {e}", logging.WARNING)
            return False
        if self.command_template is None:
            self.base_value = value
            return True
        command = self._owner.format_command(self.command_template, value=self.command_value(value))
        try:
            self._owner.send(command)
        except DeviceCommunicationError as e:
            self._owner.log(f"Error setting {self.label.lower()}: {e}", logging.WARNING)
            return False
        self.base_value = value
        self._owner.log(f"Set {self.label.lower()} to {self.command_value(value)} "
                        f"{self.family.base}".rstrip())
        return True

    def load_from_device(self, value_in_base: float) -> None:
        """Write a device reading into the field, bypassing the debounce path."""
        registry = self._owner.registry
        if self.definition.integer:
            value_in_base = float(int(round(value_in_base)))
        if self.definition.auto_range:
            shown, unit = registry.auto_range(value_in_base, self.family)
        else:
            unit = self.selected_unit
            shown = registry.from_base(value_in_base, unit)
        self._owner.scheduler.cancel(self.id)
        self.base_value = value_in_base
        self.selected_unit = unit
        self.display_text = self._render(shown)
        self.push()

    def show_base_value(self, value_in_base: float) -> None:
        """Redisplay ``value_in_base`` in the selected unit. Sends nothing."""
        self._owner.scheduler.cancel(self.id)
        self.display_text = self._render(
            self._owner.registry.from_base(value_in_base, self.selected_unit))
        self._owner.presentation.set_field_text(self.id, self.display_text)

    def push(self) -> None:
        """Show the current text and unit in the presentation."""
        presentation = self._owner.presentation
        presentation.set_selected_unit(self.id, self.selected_unit)
        presentation.set_field_text(self.id, self.display_text)

    def pull(self) -> None:
        """Copy text and unit back from the presentation (apply button path)."""
        presentation = self._owner.presentation
        unit = presentation.get_selected_unit(self.id)
        if unit is not None and unit in self.family:
            self.selected_unit = unit
        text = presentation.get_field_text(self.id)
        if text:
            self.display_text = text


class ChoiceField:
    """Selection among a fixed set of instrument mnemonics."""

    def __init__(self, definition: ChoiceDef, owner: "FeatureController") -> None:
        self.definition = definition
        self.id = definition.id
        self._owner = owner
        self.selected_tag: str = definition.default or definition.tags()[0]

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"ChoiceField({self.id}={self.selected_tag})"

    @property
    def label(self) -> str:
        return self.definition.label

    @property
    def command_template(self) -> Optional[str]:
        return self.definition.command

    @property
    def is_local(self) -> bool:
        return self.definition.command is None

    def select(self, tag: str) -> None:
        if tag not in self.definition.tags():
            raise ConfigurationError(f"'{tag}' is not an option of '{self.id}'")
        self.selected_tag = tag

    def command_value(self) -> str:
        return self.selected_tag

    def apply(self) -> bool:
        if self.command_template is None:
            return True
        command = self._owner.format_command(self.command_template, value=self.selected_tag)
        try:
            self._owner.send(command)
        except DeviceCommunicationError as e:
            self._owner.log(f"Error changing {self.label.lower()}: {e}", logging.WARNING)
            return False
        self._owner.log(f"Set {self.label.lower()} to "
                        f"{self.definition.label_for(self.selected_tag)}")
        return True

    def load_from_device(self, response: str) -> bool:
        tag = match_option(response, self.definition.tags())
        if tag is None:
            self._owner.log(f"Unrecognized {self.label.lower()} reply: '{response.strip()}'",
                            logging.WARNING)
            return False
        self.selected_tag = tag
        self.push()
        return True

    def push(self) -> None:
        self._owner.presentation.set_selected_option(self.id, self.selected_tag)
