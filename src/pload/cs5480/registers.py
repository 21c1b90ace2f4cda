"""
Conversion of CS5480 RMS registers into physical units.

The chip reports IRMS/VRMS as unsigned 24-bit fractions of full scale:
    0xFFFFFF ~ 1.0 (full scale)
    0x999999 ~ 0.6 (rated rms, the calibration point)
    0x5C28F6 ~ 0.36
A register reads 0.6 when the measured quantity equals the calibration
reference, so `reference / 0.6` maps the fraction onto amps or volts.
"""
from __future__ import annotations

import re
from typing import Union

from .errors import InvalidRegisterEncoding

REGISTER_BITS = 24
FULL_SCALE = 1 << REGISTER_BITS
CALIBRATION_POINT = 0.6

_HEX_FIELD = re.compile(r"[0-9A-Fa-f]{1,8}")

RegisterValue = Union[int, str]


def parse_register(text: str) -> int:
    if not isinstance(text, str) or not _HEX_FIELD.fullmatch(text):
        raise InvalidRegisterEncoding(text, "expected 1-8 hexadecimal digits")
    value = int(text, 16)
    if value >= FULL_SCALE:
        raise InvalidRegisterEncoding(text, f"exceeds {REGISTER_BITS} bits")
    return value


def _register_int(register: RegisterValue) -> int:
    if isinstance(register, str):
        return parse_register(register)
    if isinstance(register, bool) or not isinstance(register, int):
        raise InvalidRegisterEncoding(register, "expected an int or hex string")
    if register < 0 or register >= FULL_SCALE:
        raise InvalidRegisterEncoding(register, f"outside [0, 0x{FULL_SCALE:X})")
    return register


def to_normalized(register: RegisterValue) -> float:
    """Return the register as a fraction of full scale, 0 <= value < 1.0."""
    return _register_int(register) / FULL_SCALE


def to_physical(register: RegisterValue, reference: float) -> float:
    """Scale a register to physical units given the calibration reference."""
    return to_normalized(register) * reference / CALIBRATION_POINT
