from __future__ import annotations

import json
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence


@dataclass(frozen=True)
class CalibrationReference:
    voltage_reference: float = 240.0
    current_reference: float = 15.0


@dataclass
class GatewayRuntime:
    executable: str = "em3xx_load"
    bin_dir: Optional[Path] = None
    args: List[str] = field(default_factory=lambda: ["--isachan=all"])
    process_name: str = "em3xx_load"
    kill_stale: bool = True
    stop_timeout_sec: float = 5.0
    ready_timeout_sec: float = 10.0
    reconnect_initial_sec: float = 0.25
    reconnect_max_sec: float = 2.0

    @property
    def executable_path(self) -> str:
        if self.bin_dir is None:
            return self.executable
        return str(Path(self.bin_dir) / self.executable)


@dataclass
class ChannelSettings:
    host: str = "localhost"
    port: int = 4900
    connect_timeout_sec: float = 2.0
    read_poll_sec: float = 0.1


@dataclass
class PloadConfig:
    cmd_prefix: str = "cs5480"  # SPI interface
    cmd_namespace: str = "cu"
    settle_delay_sec: float = 0.5
    calibration: CalibrationReference = field(default_factory=CalibrationReference)
    gateway: GatewayRuntime = field(default_factory=GatewayRuntime)
    channel: ChannelSettings = field(default_factory=ChannelSettings)
    output_path: Path = Path("power_data.txt")
    trace_log: Optional[Path] = Path("output.txt")


def _load_json(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged: Dict[str, Any] = {**base}
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            merged[key] = _merge(base[key], value)  # type: ignore[index]
        else:
            merged[key] = value
    return merged


def load_config(path: Path | str | None = None, overrides: Sequence[str] | None = None) -> PloadConfig:
    """
    Load the pload configuration from JSON and apply CLI-style overrides.

    Without a path the built-in defaults are used. Overrides are dotted
    `key=value` pairs, e.g.:
        ["calibration.voltage_reference=230", "channel.port=4901"]
    """
    data: Dict[str, Any] = _load_json(Path(path)) if path is not None else {}
    override_data: Dict[str, Any] = {}
    for override in overrides or []:
        key, raw_value = _parse_override(override)
        _assign_nested(override_data, key, raw_value)
    merged = _merge(data, override_data)
    defaults = PloadConfig()
    calibration_data = merged.get("calibration") or {}
    gateway_data = merged.get("gateway") or {}
    channel_data = merged.get("channel") or {}
    bin_dir = gateway_data.get("bin_dir")
    trace_log = merged.get("trace_log", str(defaults.trace_log))
    return PloadConfig(
        cmd_prefix=str(merged.get("cmd_prefix", defaults.cmd_prefix)),
        cmd_namespace=str(merged.get("cmd_namespace", defaults.cmd_namespace)),
        settle_delay_sec=float(merged.get("settle_delay_sec", defaults.settle_delay_sec)),
        calibration=CalibrationReference(
            voltage_reference=float(calibration_data.get("voltage_reference", 240.0)),
            current_reference=float(calibration_data.get("current_reference", 15.0)),
        ),
        gateway=GatewayRuntime(
            executable=str(gateway_data.get("executable", "em3xx_load")),
            bin_dir=Path(bin_dir) if bin_dir else None,
            args=_coerce_args(gateway_data.get("args", ["--isachan=all"])),
            process_name=str(gateway_data.get("process_name", "em3xx_load")),
            kill_stale=bool(gateway_data.get("kill_stale", True)),
            stop_timeout_sec=float(gateway_data.get("stop_timeout_sec", 5.0)),
            ready_timeout_sec=float(gateway_data.get("ready_timeout_sec", 10.0)),
            reconnect_initial_sec=float(gateway_data.get("reconnect_initial_sec", 0.25)),
            reconnect_max_sec=float(gateway_data.get("reconnect_max_sec", 2.0)),
        ),
        channel=ChannelSettings(
            host=str(channel_data.get("host", "localhost")),
            port=int(channel_data.get("port", 4900)),
            connect_timeout_sec=float(channel_data.get("connect_timeout_sec", 2.0)),
            read_poll_sec=float(channel_data.get("read_poll_sec", 0.1)),
        ),
        output_path=Path(merged.get("output_path", str(defaults.output_path))),
        trace_log=Path(trace_log) if trace_log else None,
    )


def _coerce_args(value: Any) -> List[str]:
    """Helper argv from config: a JSON list, or one shell-style string."""
    if isinstance(value, str):
        return shlex.split(value)
    if isinstance(value, (list, tuple)):
        return [str(arg) for arg in value]
    raise ValueError(f"gateway.args must be a list or a string, got {type(value).__name__}")


def _parse_override(item: str) -> tuple[str, Any]:
    key, sep, raw_value = item.partition("=")
    key = key.strip()
    if not sep:
        raise ValueError(f"Override '{item}' must use key=value syntax")
    if not key:
        raise ValueError("Override key may not be empty")
    return key, _coerce_value(raw_value.strip())


def _coerce_value(raw: str) -> Any:
    lowered = raw.lower()
    if lowered in {"true", "false"}:
        return lowered == "true"
    if lowered in {"null", "none"}:
        return None
    if raw[:1] in {"[", "{"}:
        return json.loads(raw)
    for number in (int, float):
        try:
            return number(raw)
        except ValueError:
            continue
    return raw


def _assign_nested(target: Dict[str, Any], dotted_key: str, value: Any) -> None:
    *parents, leaf = dotted_key.split(".")
    cursor = target
    for part in parents:
        cursor = cursor.setdefault(part, {})
        if not isinstance(cursor, dict):
            raise ValueError(f"Override '{dotted_key}' conflicts with scalar '{part}'")
    cursor[leaf] = value
