"""RS232 serial pattern output and byte injection.

The generator frames each injected byte with the configured baud rate,
data bits, stop bits and parity. Injection helpers send one
``FUNC:RS232:DATA`` command per byte and stop at the first failure.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from ..controller import (
    FUNCTION_GROUP,
    FeatureController,
    FeatureDef,
    ReadoutDef,
    reply_contains,
)
from ..derived import (
    QUICK_BYTES,
    byte_equivalents,
    encode_ascii,
    format_bytes,
    parse_byte,
    parse_hex_bytes,
)
from ..errors import ParseError
from ..fields import ChoiceDef, FieldDef
from ..units import VOLTAGE

DATA_COMMAND = ":SOUR{ch}:FUNC:RS232:DATA {byte}"


def _single_byte(ctrl: FeatureController) -> int:
    value = ctrl.number("single_byte")
    return int(value)


RS232 = FeatureDef(
    name="rs232",
    title="RS232",
    exclusive_group=FUNCTION_GROUP,
    state_query=":SOUR{ch}:FUNC?",
    is_active=reply_contains("RS232"),
    activate=(":SOUR{ch}:APPL:RS232 {amplitude},{offset}",),
    deactivate=(":SOUR{ch}:FUNC SIN",),
    choices=(
        ChoiceDef("baud_rate", "Baud rate",
                  tuple((str(b), str(b)) for b in (
                      1200, 2400, 4800, 9600, 14400, 19200, 38400, 57600, 115200, 128000,
                      230400)),
                  command=":SOUR{ch}:FUNC:RS232:BAUD {value}",
                  query=":SOUR{ch}:FUNC:RS232:BAUD?", default="9600"),
        ChoiceDef("data_bits", "Data bits", (("7", "7"), ("8", "8")),
                  command=":SOUR{ch}:FUNC:RS232:DATAB {value}",
                  query=":SOUR{ch}:FUNC:RS232:DATAB?", default="8"),
        ChoiceDef("stop_bits", "Stop bits", (("1", "1"), ("1.5", "1.5"), ("2", "2")),
                  command=":SOUR{ch}:FUNC:RS232:STOPB {value}",
                  query=":SOUR{ch}:FUNC:RS232:STOPB?"),
        ChoiceDef("parity", "Parity", (("None", "NONE"), ("Odd", "ODD"), ("Even", "EVEN")),
                  command=":SOUR{ch}:FUNC:RS232:CHECKB {value}",
                  query=":SOUR{ch}:FUNC:RS232:CHECKB?"),
    ),
    fields=(
        FieldDef("amplitude", "RS232 amplitude", VOLTAGE,
                 ":SOUR{ch}:VOLT {value}", ":SOUR{ch}:VOLT?", default=5.0, min_decimals=1,
                 minimum=0.0),
        FieldDef("offset", "RS232 offset", VOLTAGE,
                 ":SOUR{ch}:VOLT:OFFS {value}", ":SOUR{ch}:VOLT:OFFS?", default=0.0,
                 min_decimals=1),
        FieldDef("single_byte", "Single byte", default=65, integer=True, auto_range=False),
    ),
    readouts=(
        ReadoutDef("hex_equivalent", "Hex", ("single_byte",),
                   lambda ctrl: byte_equivalents(_single_byte(ctrl))[0]),
        ReadoutDef("ascii_equivalent", "ASCII", ("single_byte",),
                   lambda ctrl: byte_equivalents(_single_byte(ctrl))[1]),
    ),
)


def inject_bytes(ctrl: FeatureController, values: Iterable[int],
                 description: Optional[str] = None) -> bool:
    """Send each byte in order. Returns False at the first failed write."""
    sent: List[int] = []
    with ctrl.device.transaction():
        for value in values:
            if not ctrl.send_template(DATA_COMMAND, byte=int(value)):
                if sent:
                    ctrl.log(f"Stopped after {len(sent)} byte(s): {format_bytes(sent)}",
                             logging.WARNING)
                return False
            sent.append(int(value))
    if sent:
        ctrl.log(f"Sent {description or format_bytes(sent)}")
    return True


def send_ascii(ctrl: FeatureController, text: str) -> bool:
    if not text:
        return False
    try:
        values = encode_ascii(text)
    except ParseError as e:
        ctrl.log(f"Error sending ASCII text: {e}", logging.WARNING)
        return False
    return inject_bytes(ctrl, values, f'ASCII: "{text}" -> {format_bytes(values)}')


def send_hex(ctrl: FeatureController, text: str) -> bool:
    if not text or not text.strip():
        return False
    try:
        values = parse_hex_bytes(text)
    except ParseError as e:
        ctrl.log(str(e), logging.WARNING)
        return False
    return inject_bytes(ctrl, values, f"Hex: {format_bytes(values)}")


def send_byte(ctrl: FeatureController, text: Optional[str] = None) -> bool:
    """Send one decimal byte; defaults to the single-byte field's text."""
    if text is None:
        text = ctrl.fields["single_byte"].display_text
    try:
        value = parse_byte(text)
    except ParseError as e:
        ctrl.log(str(e), logging.WARNING)
        return False
    return inject_bytes(ctrl, [value], f"Byte: {value} (0x{value:02X})")


def send_quick(ctrl: FeatureController, name: str) -> bool:
    """Send a named control sequence such as CR, LF or CRLF."""
    try:
        values = QUICK_BYTES[name.upper()]
    except KeyError:
        raise ValueError(f"Unknown quick byte '{name}'") from None
    return inject_bytes(ctrl, values, name.upper())
