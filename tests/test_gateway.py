from __future__ import annotations

import logging
import sys
import time
from pathlib import Path
from typing import List

import psutil
import pytest

from pload.cs5480.config import GatewayRuntime
from pload.cs5480.errors import ErrorKind, LaunchFailure
from pload.cs5480.gateway import ChannelGateway, GatewayState

HELPER_SCRIPT = (
    "import sys, time\n"
    "print('isachan opened on 4900', flush=True)\n"
    "print('port busy', file=sys.stderr, flush=True)\n"
    "time.sleep(30)\n"
)


class FakeProcess:
    def __init__(self, pid: int, name: str, error: Exception | None = None):
        self.pid = pid
        self.info = {"name": name}
        self._error = error
        self.killed = False

    def kill(self) -> None:
        if self._error is not None:
            raise self._error
        self.killed = True


def _wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


def test_kill_stale_instances_swallows_errors(monkeypatch, caplog) -> None:
    procs: List[FakeProcess] = [
        FakeProcess(10, "em3xx_load"),
        FakeProcess(11, "em3xx_load.exe", error=psutil.AccessDenied(11)),
        FakeProcess(12, "EM3XX_LOAD.EXE"),
        FakeProcess(13, "bash"),
        FakeProcess(14, "em3xx_load", error=psutil.NoSuchProcess(14)),
    ]
    monkeypatch.setattr("pload.cs5480.gateway.psutil.process_iter", lambda attrs=None: iter(procs))
    gateway = ChannelGateway(GatewayRuntime())
    with caplog.at_level(logging.WARNING, logger="pload.cs5480.gateway"):
        killed = gateway.kill_stale_instances()
    assert killed == 2
    assert procs[0].killed and procs[2].killed
    assert not procs[3].killed
    assert sum("Error killing em3xx_load" in record.getMessage() for record in caplog.records) == 2


def test_open_missing_executable(tmp_path: Path) -> None:
    gateway = ChannelGateway(GatewayRuntime(bin_dir=tmp_path))
    with pytest.raises(LaunchFailure) as excinfo:
        gateway.open()
    assert excinfo.value.kind is ErrorKind.LAUNCH_FAILURE
    assert excinfo.value.executable == str(tmp_path / "em3xx_load")


def test_open_drains_output_and_close_stops_process(caplog) -> None:
    gateway = ChannelGateway(GatewayRuntime(stop_timeout_sec=5.0))
    with caplog.at_level(logging.INFO, logger="pload.cs5480.gateway"):
        handle = gateway.open(sys.executable, ["-u", "-c", HELPER_SCRIPT])
        assert handle.state is GatewayState.RUNNING
        pid = handle.pid
        assert pid is not None and psutil.pid_exists(pid)
        assert _wait_for(lambda: all(drain.lines >= 1 for drain in handle.drains))
        gateway.close(handle)
    assert handle.state is GatewayState.STOPPED
    assert handle.popen is not None and handle.popen.poll() is not None
    assert not psutil.pid_exists(pid)
    messages = [record.getMessage() for record in caplog.records]
    assert "isachan opened on 4900" in messages
    assert "Error: port busy" in messages


def test_close_requires_running_handle() -> None:
    gateway = ChannelGateway()
    with gateway.running(sys.executable, ["-c", "import time; time.sleep(30)"]) as handle:
        assert handle.state is GatewayState.RUNNING
    assert handle.state is GatewayState.STOPPED
    with pytest.raises(RuntimeError):
        gateway.close(handle)
