from __future__ import annotations

import numpy as np
import pytest

from pload.cs5480.errors import ErrorKind, InvalidRegisterEncoding
from pload.cs5480.registers import FULL_SCALE, parse_register, to_normalized, to_physical


def test_normalized_bounds() -> None:
    assert to_normalized(0x000000) == 0.0
    top = to_normalized(0xFFFFFF)
    assert top < 1.0
    assert np.isclose(top, 1.0, atol=1e-6)


def test_half_rms_register_scales_to_144v() -> None:
    # 0x5C28F6 ~ 0.36 of full scale
    assert np.isclose(to_normalized(0x5C28F6), 0.36, atol=1e-7)
    assert np.isclose(to_physical(0x5C28F6, 240), 0.36 * 240 / 0.6, atol=1e-4)


def test_calibration_point_maps_to_reference() -> None:
    assert np.isclose(to_physical(0x999999, 240.0), 240.0, atol=1e-4)
    assert np.isclose(to_physical(0x999999, 15.0), 15.0, atol=1e-5)


def test_to_physical_is_deterministic() -> None:
    assert to_physical(0x123456, 15.0) == to_physical(0x123456, 15.0)
    assert to_physical("123456", 15.0) == to_physical(0x123456, 15.0)


def test_parse_register_accepts_eight_digit_fields() -> None:
    assert parse_register("00999999") == 0x999999
    assert parse_register("005c28f6") == 0x5C28F6
    assert parse_register("0") == 0


@pytest.mark.parametrize("text", ["", "0x123456", "-0001", "12 34", "00GG0000", "1_000", "000000001", "DEADBEEF"])
def test_parse_register_rejects_invalid_text(text: str) -> None:
    with pytest.raises(InvalidRegisterEncoding) as excinfo:
        parse_register(text)
    assert excinfo.value.kind is ErrorKind.INVALID_REGISTER_ENCODING
    assert excinfo.value.value == text


@pytest.mark.parametrize("value", [-1, FULL_SCALE, True, 1.5])
def test_to_normalized_rejects_out_of_range(value) -> None:
    with pytest.raises(InvalidRegisterEncoding):
        to_normalized(value)


def test_invalid_register_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        to_physical("01000000", 240.0)
