"""
Acquisition of instantaneous current/voltage from a CS5480 metering chip.

The chip is reached through the Ember shell that `em3xx_load --isachan=all`
exposes on localhost:4900. The `_pload` debug command prints the raw IRMS and
VRMS registers, which are converted here into amps and volts.
"""

from .channel import TelnetChannel
from .config import CalibrationReference, ChannelSettings, GatewayRuntime, PloadConfig, load_config
from .errors import (
    AcquisitionError,
    ChannelUnavailable,
    EmptyResponse,
    ErrorKind,
    InvalidRegisterEncoding,
    LaunchFailure,
    MissingField,
    NoData,
    RegisterField,
)
from .gateway import ChannelGateway, GatewayProcess, GatewayState
from .registers import parse_register, to_normalized, to_physical
from .response import RawRegisterPair, ResponseParser, parse_response
from .session import AcquisitionSession, Reading, acquire, build_pload_command, to_reading

__all__ = [
    "CalibrationReference",
    "ChannelSettings",
    "GatewayRuntime",
    "PloadConfig",
    "load_config",
    "AcquisitionError",
    "ChannelUnavailable",
    "EmptyResponse",
    "ErrorKind",
    "InvalidRegisterEncoding",
    "LaunchFailure",
    "MissingField",
    "NoData",
    "RegisterField",
    "ChannelGateway",
    "GatewayProcess",
    "GatewayState",
    "parse_register",
    "to_normalized",
    "to_physical",
    "RawRegisterPair",
    "ResponseParser",
    "parse_response",
    "AcquisitionSession",
    "Reading",
    "acquire",
    "build_pload_command",
    "to_reading",
    "TelnetChannel",
]
