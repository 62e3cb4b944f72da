"""Derived quantities shown as read-outs next to the editable fields."""
from __future__ import annotations

from typing import List, Sequence, Tuple

import numpy as np

from .errors import ParseError

__all__ = [
    "PRBS_LENGTHS",
    "prbs_sequence_length",
    "prbs_sequence_period",
    "prbs_repetition_rate",
    "frequency_to_period",
    "period_to_frequency",
    "sweep_points",
    "dual_tone_center",
    "dual_tone_offset",
    "encode_ascii",
    "parse_hex_bytes",
    "parse_byte",
    "byte_equivalents",
    "format_bytes",
    "QUICK_BYTES",
]

# Sequence length of a maximal-length PN-n generator is 2**n - 1 bits.
PRBS_LENGTHS = {
    "PN7": (1 << 7) - 1,
    "PN9": (1 << 9) - 1,
    "PN11": (1 << 11) - 1,
}


def prbs_sequence_length(data_type: str) -> int:
    return PRBS_LENGTHS.get(data_type.upper(), PRBS_LENGTHS["PN7"])


def prbs_sequence_period(bit_rate: float, data_type: str) -> float:
    """Seconds for one full PRBS sequence."""
    if not bit_rate or bit_rate <= 0:
        raise ValueError("bit rate must be > 0")
    return prbs_sequence_length(data_type) / bit_rate


def prbs_repetition_rate(bit_rate: float, data_type: str) -> float:
    """How often the PRBS sequence repeats, in Hz."""
    if not bit_rate or bit_rate <= 0:
        raise ValueError("bit rate must be > 0")
    return bit_rate / prbs_sequence_length(data_type)


def frequency_to_period(freq_hz: float) -> float:
    if not freq_hz or freq_hz <= 0:
        raise ValueError("frequency must be > 0")
    return 1.0 / freq_hz


def period_to_frequency(period_s: float) -> float:
    if not period_s or period_s <= 0:
        raise ValueError("period must be > 0")
    return 1.0 / period_s


def sweep_points(start: float, stop: float, points: int, spacing: str = "LIN") -> np.ndarray:
    """Frequencies visited by a sweep, endpoints included.

    ``spacing`` is the instrument mnemonic: LIN, LOG or STE (stepped
    linear). Log spacing needs positive endpoints.
    """
    if points < 2:
        raise ValueError("points must be >= 2")
    if spacing.upper().startswith("LOG"):
        if start <= 0 or stop <= 0:
            raise ValueError("Log sweep requires positive start/stop")
        vals = np.geomspace(start, stop, points)
    else:
        vals = np.linspace(start, stop, points)
    vals = np.round(vals, 6)
    vals[0] = round(start, 6)
    vals[-1] = round(stop, 6)
    return vals


def dual_tone_center(freq1: float, freq2: float) -> float:
    return (freq1 + freq2) / 2.0


def dual_tone_offset(freq1: float, freq2: float) -> float:
    return abs(freq2 - freq1)


# RS232 byte injection -------------------------------------------------------

QUICK_BYTES = {
    "CR": (13,),
    "LF": (10,),
    "CRLF": (13, 10),
    "NUL": (0,),
    "ESC": (27,),
    "SPACE": (32,),
}


def encode_ascii(text: str) -> List[int]:
    try:
        return list(text.encode("ascii"))
    except UnicodeEncodeError as e:
        bad = text[e.start]
        raise ParseError(f"Not an ASCII character: {bad!r}", text) from None


def parse_hex_bytes(text: str) -> List[int]:
    """Parse 'DE AD,be\\tEF' style input into byte values.

    Entries are separated by spaces, tabs or commas. Any invalid entry
    rejects the whole input so nothing is sent.
    """
    out: List[int] = []
    for token in text.replace(",", " ").split():
        digits = token[2:] if token.lower().startswith("0x") else token
        try:
            value = int(digits, 16)
        except ValueError:
            raise ParseError(f"Invalid hex value: {token}", text) from None
        if not 0 <= value <= 255:
            raise ParseError(f"Invalid byte value: {token} (must be 0-255)", text)
        out.append(value)
    return out


def parse_byte(text: str) -> int:
    cleaned = (text or "").strip()
    try:
        value = int(cleaned)
    except ValueError:
        raise ParseError("Invalid byte value", text) from None
    if not 0 <= value <= 255:
        raise ParseError("Byte value must be between 0 and 255", text)
    return value


def byte_equivalents(value: int) -> Tuple[str, str]:
    """(hex, ascii) renderings of one byte for the single-byte read-out."""
    if not 0 <= value <= 255:
        raise ValueError("byte out of range")
    ascii_text = f"'{chr(value)}'" if 32 <= value < 127 else "[non-printable]"
    return f"0x{value:02X}", ascii_text


def format_bytes(values: Sequence[int]) -> str:
    return " ".join(f"0x{v:02X}" for v in values)

