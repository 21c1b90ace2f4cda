"""Command line interface for the pload package."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer

from .cs5480.config import PloadConfig, load_config
from .cs5480.errors import AcquisitionError
from .cs5480.gateway import ChannelGateway
from .cs5480.response import parse_response
from .cs5480.session import AcquisitionSession, to_reading
from .reporting import close_trace_log, configure_trace_log, remove_stale_record, write_power_record

logger = logging.getLogger(__name__)

app = typer.Typer(
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
    help="CS5480 instantaneous power reader.",
)


def _load(config_path: Optional[Path], override: Optional[List[str]]) -> PloadConfig:
    try:
        return load_config(config_path, override or None)
    except (OSError, ValueError) as exc:
        raise typer.BadParameter(f"Failed to load configuration: {exc}") from exc


@app.command()
def read(
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="JSON configuration file (defaults apply when omitted)."
    ),
    override: Optional[List[str]] = typer.Option(
        None,
        "--set",
        help="Override config keys, e.g. --set calibration.voltage_reference=230 --set channel.port=4901",
    ),
    out: Optional[Path] = typer.Option(None, "--out", help="Record file (default power_data.txt)."),
    trace_log: Optional[Path] = typer.Option(None, "--trace-log", help="Trace log file (default output.txt)."),
) -> None:
    """Start the helper, read IRMS/VRMS once and write `voltage,current,power`."""

    cfg = _load(config_path, override)
    if out is not None:
        cfg.output_path = out
    if trace_log is not None:
        cfg.trace_log = trace_log
    handler = configure_trace_log(cfg.trace_log) if cfg.trace_log else None
    try:
        remove_stale_record(cfg.output_path)
        reading = AcquisitionSession(cfg).run()
        record = write_power_record(cfg.output_path, reading)
        typer.echo(record)
    except (AcquisitionError, OSError) as exc:
        logger.error("%s", exc)
        typer.echo(str(exc))
        raise typer.Exit(code=1) from exc
    except KeyboardInterrupt:
        logger.info("Stopping (Ctrl+C)")
        raise typer.Exit(code=130)
    finally:
        if handler is not None:
            close_trace_log(handler)


@app.command()
def decode(
    input_path: Path = typer.Option(
        ..., "--in", help="Captured `_pload` output", exists=True, readable=True, dir_okay=False
    ),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="JSON configuration file."),
    override: Optional[List[str]] = typer.Option(None, "--set", help="Override config keys."),
) -> None:
    """Convert a captured shell transcript without touching hardware."""

    cfg = _load(config_path, override)
    raw_text = input_path.read_text(encoding="utf-8", errors="ignore")
    try:
        registers = parse_response(raw_text)
        reading = to_reading(registers, cfg.calibration)
    except AcquisitionError as exc:
        typer.echo(f"Decode FAILED ({exc.kind.value}): {exc}")
        raise typer.Exit(code=1) from exc
    typer.echo(f"Raw IRMS: {registers.current_hex}  Raw VRMS: {registers.voltage_hex}")
    typer.echo(reading.summary())
    typer.echo(reading.as_record())


@app.command("kill-stale")
def kill_stale(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="JSON configuration file."),
    override: Optional[List[str]] = typer.Option(None, "--set", help="Override config keys."),
) -> None:
    """Kill helper processes left behind by earlier runs."""

    cfg = _load(config_path, override)
    killed = ChannelGateway(cfg.gateway).kill_stale_instances()
    typer.echo(f"Killed {killed} {cfg.gateway.process_name} process(es)")


def run() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    run()
