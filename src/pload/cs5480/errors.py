from __future__ import annotations

import enum


class ErrorKind(str, enum.Enum):
    EMPTY_RESPONSE = "empty_response"
    MISSING_FIELD = "missing_field"
    INVALID_REGISTER_ENCODING = "invalid_register_encoding"
    NO_DATA = "no_data"
    LAUNCH_FAILURE = "launch_failure"
    CHANNEL_UNAVAILABLE = "channel_unavailable"


class RegisterField(str, enum.Enum):
    CURRENT = "current"
    VOLTAGE = "voltage"


class AcquisitionError(Exception):
    """Base class for every failure that ends an acquisition attempt."""

    kind: ErrorKind


class EmptyResponse(AcquisitionError):
    kind = ErrorKind.EMPTY_RESPONSE

    def __init__(self, raw_text: str = "") -> None:
        super().__init__("Device response was empty")
        self.raw_text = raw_text


class MissingField(AcquisitionError):
    kind = ErrorKind.MISSING_FIELD

    def __init__(self, field: RegisterField, raw_text: str) -> None:
        super().__init__(f"Unable to parse pload output for {field.value}.  Output was:{raw_text}")
        self.field = field
        self.raw_text = raw_text


class InvalidRegisterEncoding(AcquisitionError, ValueError):
    kind = ErrorKind.INVALID_REGISTER_ENCODING

    def __init__(self, value: object, reason: str) -> None:
        super().__init__(f"Invalid register value {value!r}: {reason}")
        self.value = value
        self.reason = reason


class NoData(AcquisitionError):
    kind = ErrorKind.NO_DATA

    def __init__(self, command: str) -> None:
        super().__init__(f"No data received for '{command}'")
        self.command = command


class LaunchFailure(AcquisitionError):
    kind = ErrorKind.LAUNCH_FAILURE

    def __init__(self, executable: str, reason: str) -> None:
        super().__init__(f"Failed to start {executable}: {reason}")
        self.executable = executable
        self.reason = reason


class ChannelUnavailable(AcquisitionError):
    kind = ErrorKind.CHANNEL_UNAVAILABLE

    def __init__(self, host: str, port: int, waited_sec: float) -> None:
        super().__init__(f"Command channel {host}:{port} not reachable after {waited_sec:.1f}s")
        self.host = host
        self.port = port
        self.waited_sec = waited_sec
