from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from .channel import TelnetChannel
from .config import CalibrationReference, ChannelSettings, PloadConfig
from .errors import ChannelUnavailable, NoData
from .gateway import ChannelGateway
from .registers import to_physical
from .response import RawRegisterPair, ResponseParser

logger = logging.getLogger(__name__)


class CommandChannel(Protocol):
    def write_line(self, text: str) -> None:
        ...

    def read_available(self) -> str:
        ...

    def close(self) -> None:
        ...


@dataclass(frozen=True)
class Reading:
    """One current/voltage sample. Power is derived, never stored."""

    current: float
    voltage: float

    @property
    def power(self) -> float:
        return self.current * self.voltage

    def as_record(self) -> str:
        return f"{self.voltage:.8f},{self.current:.8f},{self.power:.8f}"

    def summary(self) -> str:
        return f"Cirrus I = {self.current:.8f}, V = {self.voltage:.8f}, P = {self.power:.8f}"


def build_pload_command(prefix: str, namespace: str = "cu") -> str:
    command = f"{prefix}_pload"
    return f"{namespace} {command}" if namespace else command


def acquire(
    channel: CommandChannel,
    command: str,
    settle_delay: float,
    calibration: CalibrationReference,
    *,
    parser: Optional[ResponseParser] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Reading:
    """
    Send the pload command, wait for the chip to answer and convert the raw
    IRMS/VRMS registers. A single read follows the settle delay.
    """
    logger.info("Send cmd: %s", command)
    channel.write_line(command)
    sleep(settle_delay)
    raw_text = channel.read_available()
    if not raw_text:
        raise NoData(command)
    logger.debug("Data received: %s", raw_text)
    registers = (parser or ResponseParser()).parse(raw_text)
    return to_reading(registers, calibration)


def to_reading(registers: RawRegisterPair, calibration: CalibrationReference) -> Reading:
    return Reading(
        current=to_physical(registers.current_hex, calibration.current_reference),
        voltage=to_physical(registers.voltage_hex, calibration.voltage_reference),
    )


class AcquisitionSession:
    """One-shot reading: helper up, channel open, one exchange, teardown."""

    def __init__(
        self,
        config: PloadConfig,
        *,
        gateway: Optional[ChannelGateway] = None,
        channel_factory: Optional[Callable[[ChannelSettings], CommandChannel]] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self.command = build_pload_command(config.cmd_prefix, config.cmd_namespace)
        self.gateway = gateway or ChannelGateway(config.gateway)
        self._channel_factory = channel_factory or TelnetChannel.connect
        self._sleep = sleep
        self._clock = clock
        self.parser = ResponseParser()

    def run(self) -> Reading:
        if self.config.gateway.kill_stale:
            self.gateway.kill_stale_instances()
        handle = self.gateway.open()
        try:
            channel = self._connect()
            try:
                reading = acquire(
                    channel,
                    self.command,
                    self.config.settle_delay_sec,
                    self.config.calibration,
                    parser=self.parser,
                    sleep=self._sleep,
                )
            finally:
                channel.close()
        finally:
            self.gateway.close(handle)
        logger.info(reading.summary())
        return reading

    def _connect(self) -> CommandChannel:
        settings = self.config.channel
        runtime = self.config.gateway
        initial_delay = max(runtime.reconnect_initial_sec, 0.01)
        max_delay = max(runtime.reconnect_max_sec, initial_delay)
        backoff = initial_delay
        started = self._clock()
        deadline = started + runtime.ready_timeout_sec
        while True:
            try:
                channel = self._channel_factory(settings)
                logger.info("Connected to %s:%d", settings.host, settings.port)
                return channel
            except OSError as exc:
                now = self._clock()
                if now >= deadline:
                    raise ChannelUnavailable(settings.host, settings.port, now - started) from exc
                wait_time = min(backoff, max_delay, deadline - now)
                logger.info("Channel %s:%d not ready (%s), retrying in %.2fs", settings.host, settings.port, exc, wait_time)
                self._sleep(wait_time)
                backoff = min(backoff * 2, max_delay)
