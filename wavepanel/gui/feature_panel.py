"""Qt presentation adapter and the per-feature tab builder.

``QtPresentation`` keeps the widgets of one feature keyed by field id and
implements the presentation adapter surface on top of them. Widget signals
are wired straight to the controller's ``handle_*`` methods. ``textEdited``
and ``activated`` only fire for user interaction, so programmatic updates
from the controller never loop back as edits.
"""
from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ..controller import FeatureController
from ..presentation import Option
from ..units import DEFAULT_REGISTRY, UnitSpec
from ._qt import require_qt


class QtPresentation:
    def __init__(self) -> None:
        self.line_edits: Dict[str, Any] = {}
        self.unit_combos: Dict[str, Any] = {}
        self.option_combos: Dict[str, Any] = {}
        self.readout_labels: Dict[str, Any] = {}
        self.rows: Dict[str, Any] = {}
        self.controls: Any = None
        self.toggle: Any = None

    def get_field_text(self, field_id: str) -> str:
        w = self.line_edits.get(field_id)
        return w.text() if w is not None else ""

    def set_field_text(self, field_id: str, text: str) -> None:
        w = self.line_edits.get(field_id)
        if w is not None and w.text() != text:
            w.setText(text)

    def get_selected_unit(self, field_id: str) -> Optional[UnitSpec]:
        combo = self.unit_combos.get(field_id)
        if combo is None or combo.currentIndex() < 0:
            return None
        return DEFAULT_REGISTRY.lookup(combo.currentData())

    def set_selected_unit(self, field_id: str, unit: UnitSpec) -> None:
        combo = self.unit_combos.get(field_id)
        if combo is not None:
            idx = combo.findData(unit.name)
            if idx >= 0:
                combo.setCurrentIndex(idx)

    def set_unit_options(self, field_id: str, units: Sequence[UnitSpec]) -> None:
        combo = self.unit_combos.get(field_id)
        if combo is None:
            return
        combo.clear()
        for u in units:
            combo.addItem(u.name, u.name)
        combo.setVisible(len(units) > 1 or bool(units and units[0].name))

    def set_options(self, field_id: str, options: Sequence[Option]) -> None:
        combo = self.option_combos.get(field_id)
        if combo is None:
            return
        combo.clear()
        for label, tag in options:
            combo.addItem(label, tag)

    def get_selected_option(self, field_id: str) -> Optional[str]:
        combo = self.option_combos.get(field_id)
        return combo.currentData() if combo is not None else None

    def set_selected_option(self, field_id: str, tag: str) -> None:
        combo = self.option_combos.get(field_id)
        if combo is not None:
            idx = combo.findData(tag)
            if idx >= 0:
                combo.setCurrentIndex(idx)

    def set_field_enabled(self, field_id: str, enabled: bool) -> None:
        row = self.rows.get(field_id)
        if row is not None:
            row.setEnabled(enabled)

    def set_readout(self, readout_id: str, text: str) -> None:
        label = self.readout_labels.get(readout_id)
        if label is not None:
            label.setText(text)

    def set_controls_visible(self, visible: bool) -> None:
        if self.controls is not None:
            self.controls.setVisible(visible)
        if self.toggle is not None:
            self.toggle.blockSignals(True)
            self.toggle.setChecked(visible)
            self.toggle.setText("Disable" if visible else "Enable")
            self.toggle.blockSignals(False)


def _on_toggle(ctrl: FeatureController, checked: bool) -> None:
    if checked:
        ctrl.enable()
    else:
        ctrl.disable()


def build_feature_tab(ctrl: FeatureController, presentation: QtPresentation) -> Optional[object]:
    """Build the widgets for ``ctrl`` into ``presentation`` and return the tab."""
    qt = require_qt()
    if qt is None:
        return None
    QWidget = qt.QWidget
    QVBoxLayout = qt.QVBoxLayout
    QHBoxLayout = qt.QHBoxLayout
    QFormLayout = qt.QFormLayout
    QLabel = qt.QLabel
    QComboBox = qt.QComboBox
    QLineEdit = qt.QLineEdit
    QPushButton = qt.QPushButton

    w = QWidget()
    L = QVBoxLayout(w)

    # Top row: enable toggle, refresh, apply, optional trigger
    r = QHBoxLayout()
    presentation.toggle = QPushButton("Enable")
    presentation.toggle.setCheckable(True)
    presentation.toggle.toggled.connect(lambda checked: _on_toggle(ctrl, checked))
    r.addWidget(presentation.toggle)
    b = QPushButton("Refresh")
    b.clicked.connect(ctrl.refresh)
    r.addWidget(b)
    b = QPushButton("Apply")
    b.clicked.connect(ctrl.handle_apply_pressed)
    r.addWidget(b)
    if ctrl.definition.trigger is not None:
        b = QPushButton("Trigger")
        b.clicked.connect(ctrl.trigger)
        presentation.rows["trigger"] = b
        r.addWidget(b)
    r.addStretch(1)
    L.addLayout(r)

    controls = QWidget()
    form = QFormLayout(controls)
    for c in ctrl.definition.choices:
        combo = QComboBox()
        combo.activated.connect(
            lambda _i, cid=c.id, cb=combo: ctrl.handle_choice_changed(cid, cb.currentData()))
        presentation.option_combos[c.id] = combo
        presentation.rows[c.id] = combo
        form.addRow(QLabel(c.label + ":"), combo)
    for f in ctrl.definition.fields:
        row = QWidget()
        rl = QHBoxLayout(row)
        rl.setContentsMargins(0, 0, 0, 0)
        line = QLineEdit()
        line.textEdited.connect(lambda text, fid=f.id: ctrl.handle_text_changed(fid, text))
        line.editingFinished.connect(lambda fid=f.id: ctrl.handle_lost_focus(fid))
        rl.addWidget(line)
        unit = QComboBox()
        unit.activated.connect(
            lambda _i, fid=f.id, cb=unit: ctrl.handle_unit_changed(fid, cb.currentData()))
        rl.addWidget(unit)
        presentation.line_edits[f.id] = line
        presentation.unit_combos[f.id] = unit
        presentation.rows[f.id] = row
        form.addRow(QLabel(f.label + ":"), row)
    for ro in ctrl.definition.readouts:
        label = QLabel("--")
        presentation.readout_labels[ro.id] = label
        form.addRow(QLabel(ro.label + ":"), label)
    if ctrl.name == "rs232":
        _add_rs232_rows(qt, form, ctrl)
    presentation.controls = controls
    L.addWidget(controls)
    L.addStretch(1)

    ctrl.initialize_ui()
    return w


def _add_rs232_rows(qt, form, ctrl: FeatureController) -> None:
    from ..features import rs232

    for label, sender in (("ASCII", rs232.send_ascii), ("Hex", rs232.send_hex)):
        row = qt.QWidget()
        rl = qt.QHBoxLayout(row)
        rl.setContentsMargins(0, 0, 0, 0)
        line = qt.QLineEdit()
        btn = qt.QPushButton("Send")
        btn.clicked.connect(lambda _c=False, s=sender, le=line: s(ctrl, le.text()))
        rl.addWidget(line)
        rl.addWidget(btn)
        form.addRow(qt.QLabel(label + ":"), row)
    btn = qt.QPushButton("Send single byte")
    btn.clicked.connect(lambda: rs232.send_byte(ctrl))
    form.addRow(qt.QLabel(""), btn)
