from __future__ import annotations

import enum
import logging
import subprocess
import threading
from contextlib import contextmanager
from typing import IO, Iterator, List, Optional, Sequence

import psutil

from .config import GatewayRuntime
from .errors import LaunchFailure

logger = logging.getLogger(__name__)


class GatewayState(str, enum.Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    STOPPED = "stopped"


class StreamDrainThread(threading.Thread):
    """Forwards every line of a helper pipe to the log until EOF or stop()."""

    def __init__(self, stream: IO[str], name: str, prefix: str = "", level: int = logging.INFO):
        super().__init__(name=name, daemon=True)
        self.stream = stream
        self.prefix = prefix
        self.level = level
        self.lines = 0
        self._stop_event = threading.Event()

    def run(self) -> None:
        try:
            for line in self.stream:
                if self._stop_event.is_set():
                    break
                self.lines += 1
                logger.log(self.level, "%s%s", self.prefix, line.rstrip("\r\n"))
        except (OSError, ValueError) as exc:
            # pipe closed under us during teardown
            logger.debug("%s stopped: %s", self.name, exc)

    def stop(self) -> None:
        self._stop_event.set()


class GatewayProcess:
    """Handle on one em3xx_load instance. Only ChannelGateway touches it."""

    def __init__(self, executable: str, args: Sequence[str]):
        self.executable = executable
        self.args = list(args)
        self.state = GatewayState.NOT_STARTED
        self.popen: Optional[subprocess.Popen] = None
        self.output_drain: Optional[StreamDrainThread] = None
        self.error_drain: Optional[StreamDrainThread] = None

    @property
    def pid(self) -> Optional[int]:
        return self.popen.pid if self.popen is not None else None

    @property
    def drains(self) -> List[StreamDrainThread]:
        return [drain for drain in (self.output_drain, self.error_drain) if drain is not None]

    def __repr__(self) -> str:
        return f"GatewayProcess({self.executable!r}, pid={self.pid}, state={self.state.value})"


class ChannelGateway:
    """
    Owns the helper process that opens the Ember box ISA channels and with
    them the command shell on the local port.
    """

    def __init__(self, settings: Optional[GatewayRuntime] = None):
        self.settings = settings or GatewayRuntime()

    def kill_stale_instances(self) -> int:
        """Kill any helper left running by a previous run. Failures are only logged."""
        killed = 0
        target = self.settings.process_name.lower()
        try:
            candidates = list(psutil.process_iter(["name"]))
        except psutil.Error as exc:
            logger.warning("Error enumerating %s processes: %s", self.settings.process_name, exc)
            return 0
        for proc in candidates:
            name = (proc.info.get("name") or "").lower()
            if name not in {target, f"{target}.exe"}:
                continue
            try:
                proc.kill()
                killed += 1
                logger.info("Killed stale %s (pid=%d)", name, proc.pid)
            except psutil.Error as exc:
                logger.warning("Error killing %s.\n%s", self.settings.process_name, exc)
        return killed

    def open(
        self, executable: Optional[str] = None, args: Optional[Sequence[str]] = None
    ) -> GatewayProcess:
        executable = executable or self.settings.executable_path
        args = list(self.settings.args if args is None else args)
        handle = GatewayProcess(executable, args)
        try:
            handle.popen = subprocess.Popen(
                [executable, *args],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                bufsize=1,
            )
        except OSError as exc:
            raise LaunchFailure(executable, str(exc)) from exc
        assert handle.popen.stdout is not None and handle.popen.stderr is not None
        handle.output_drain = StreamDrainThread(handle.popen.stdout, name=f"gateway-stdout-{handle.pid}")
        handle.error_drain = StreamDrainThread(
            handle.popen.stderr,
            name=f"gateway-stderr-{handle.pid}",
            prefix="Error: ",
            level=logging.WARNING,
        )
        for drain in handle.drains:
            drain.start()
        handle.state = GatewayState.RUNNING
        logger.info("Started %s %s (pid=%d)", executable, " ".join(args), handle.pid)
        return handle

    def close(self, handle: GatewayProcess) -> None:
        if handle.state is not GatewayState.RUNNING or handle.popen is None:
            raise RuntimeError(f"Cannot close {handle!r}: not running")
        proc = handle.popen
        if handle.error_drain is not None:
            handle.error_drain.stop()
        try:
            proc.kill()
        except ProcessLookupError:
            pass
        try:
            proc.wait(timeout=self.settings.stop_timeout_sec)
        except subprocess.TimeoutExpired:
            logger.warning("%s (pid=%d) did not exit within %.1fs", handle.executable, proc.pid, self.settings.stop_timeout_sec)
        for drain in handle.drains:
            drain.join(timeout=self.settings.stop_timeout_sec)
            if drain.is_alive():
                # a grandchild still holds the pipe; leave it to the daemon thread
                logger.debug("%s still draining after close", drain.name)
            else:
                drain.stream.close()
        handle.state = GatewayState.STOPPED
        logger.info("Stopped %s (pid=%d, rc=%s)", handle.executable, proc.pid, proc.returncode)

    @contextmanager
    def running(
        self, executable: Optional[str] = None, args: Optional[Sequence[str]] = None
    ) -> Iterator[GatewayProcess]:
        handle = self.open(executable, args)
        try:
            yield handle
        finally:
            self.close(handle)
