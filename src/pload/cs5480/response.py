from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Pattern

from .errors import EmptyResponse, MissingField, RegisterField

RAW_CURRENT_PATTERN = r"Raw IRMS: ([0-9A-F]{8})"
RAW_VOLTAGE_PATTERN = r"Raw VRMS: ([0-9A-F]{8})"


@dataclass(frozen=True)
class RawRegisterPair:
    current_hex: str
    voltage_hex: str


class ResponseParser:
    """
    Pulls the raw IRMS/VRMS fields out of the `_pload` command output.
    The output is free text with banners and echoes; each field is found by
    its own search and only the first occurrence counts.
    """

    def __init__(
        self,
        current_pattern: str = RAW_CURRENT_PATTERN,
        voltage_pattern: str = RAW_VOLTAGE_PATTERN,
    ) -> None:
        self._patterns: dict[RegisterField, Pattern[str]] = {
            RegisterField.CURRENT: re.compile(current_pattern),
            RegisterField.VOLTAGE: re.compile(voltage_pattern),
        }
        self._log = logging.getLogger(__name__)

    def parse(self, raw_text: str) -> RawRegisterPair:
        if not raw_text or not raw_text.strip():
            raise EmptyResponse(raw_text or "")
        current_hex = self._extract(RegisterField.CURRENT, raw_text)
        voltage_hex = self._extract(RegisterField.VOLTAGE, raw_text)
        self._log.debug("Raw registers IRMS=%s VRMS=%s", current_hex, voltage_hex)
        return RawRegisterPair(current_hex=current_hex, voltage_hex=voltage_hex)

    def _extract(self, field: RegisterField, raw_text: str) -> str:
        match = self._patterns[field].search(raw_text)
        if match is None or len(match.groups()) != 1:
            raise MissingField(field, raw_text)
        return match.group(1)


_default_parser = ResponseParser()


def parse_response(raw_text: str) -> RawRegisterPair:
    return _default_parser.parse(raw_text)
