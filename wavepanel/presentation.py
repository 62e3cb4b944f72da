"""Presentation adapter interface and a headless in-memory implementation.

The engine only ever talks to widgets through this surface, keyed by field
id. Notifications travel the other way by calling the controller's
``handle_*`` methods directly.
"""
from __future__ import annotations

from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from .units import UnitSpec

__all__ = ["PresentationAdapter", "MemoryPresentation", "Option"]

Option = Tuple[str, str]  # (label, tag)


class PresentationAdapter(Protocol):
    def get_field_text(self, field_id: str) -> str: ...

    def set_field_text(self, field_id: str, text: str) -> None: ...

    def get_selected_unit(self, field_id: str) -> Optional[UnitSpec]: ...

    def set_selected_unit(self, field_id: str, unit: UnitSpec) -> None: ...

    def set_unit_options(self, field_id: str, units: Sequence[UnitSpec]) -> None: ...

    def set_options(self, field_id: str, options: Sequence[Option]) -> None: ...

    def get_selected_option(self, field_id: str) -> Optional[str]: ...

    def set_selected_option(self, field_id: str, tag: str) -> None: ...

    def set_field_enabled(self, field_id: str, enabled: bool) -> None: ...

    def set_readout(self, readout_id: str, text: str) -> None: ...

    def set_controls_visible(self, visible: bool) -> None: ...


class MemoryPresentation:
    """Dictionary-backed adapter for headless sessions and tests."""

    def __init__(self) -> None:
        self.texts: Dict[str, str] = {}
        self.units: Dict[str, UnitSpec] = {}
        self.unit_options: Dict[str, List[UnitSpec]] = {}
        self.options: Dict[str, List[Option]] = {}
        self.selected: Dict[str, str] = {}
        self.enabled: Dict[str, bool] = {}
        self.readouts: Dict[str, str] = {}
        self.controls_visible = False
        self.visibility_changes: List[bool] = []

    def get_field_text(self, field_id: str) -> str:
        return self.texts.get(field_id, "")

    def set_field_text(self, field_id: str, text: str) -> None:
        self.texts[field_id] = text

    def get_selected_unit(self, field_id: str) -> Optional[UnitSpec]:
        return self.units.get(field_id)

    def set_selected_unit(self, field_id: str, unit: UnitSpec) -> None:
        self.units[field_id] = unit

    def set_unit_options(self, field_id: str, units: Sequence[UnitSpec]) -> None:
        self.unit_options[field_id] = list(units)

    def set_options(self, field_id: str, options: Sequence[Option]) -> None:
        self.options[field_id] = list(options)

    def get_selected_option(self, field_id: str) -> Optional[str]:
        return self.selected.get(field_id)

    def set_selected_option(self, field_id: str, tag: str) -> None:
        self.selected[field_id] = tag

    def set_field_enabled(self, field_id: str, enabled: bool) -> None:
        self.enabled[field_id] = enabled

    def set_readout(self, readout_id: str, text: str) -> None:
        self.readouts[readout_id] = text

    def set_controls_visible(self, visible: bool) -> None:
        self.controls_visible = visible
        self.visibility_changes.append(visible)
