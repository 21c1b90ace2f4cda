from __future__ import annotations

import logging
import select
import socket
from typing import Optional

from .config import ChannelSettings

IAC = 255
DONT = 254
DO = 253
WONT = 252
WILL = 251
SB = 250
SE = 240


class TelnetChannel:
    """
    Line-oriented command channel to the Ember shell (localhost:4900).
    Option negotiation is refused and stripped; everything else is returned
    as ASCII text.
    """

    def __init__(self, sock: socket.socket, settings: ChannelSettings):
        self._sock: Optional[socket.socket] = sock
        self.settings = settings
        self._log = logging.getLogger(__name__)

    @classmethod
    def connect(cls, settings: ChannelSettings) -> "TelnetChannel":
        sock = socket.create_connection(
            (settings.host, settings.port), timeout=settings.connect_timeout_sec
        )
        return cls(sock, settings)

    def write_line(self, text: str) -> None:
        sock = self._require_socket()
        sock.sendall((text + "\n").encode("ascii", errors="ignore"))

    def read_available(self) -> str:
        """Return whatever text arrives within the poll window, or ''."""
        sock = self._require_socket()
        chunks = bytearray()
        poll = max(self.settings.read_poll_sec, 0.0)
        while True:
            ready, _, _ = select.select([sock], [], [], poll)
            if not ready:
                break
            data = sock.recv(4096)
            if not data:
                self._log.debug("Peer closed %s:%d", self.settings.host, self.settings.port)
                self.close()
                break
            chunks.extend(data)
            # keep draining only while bytes are already queued
            poll = 0.0
        return self._strip_negotiation(bytes(chunks)).decode("ascii", errors="ignore")

    def close(self) -> None:
        if self._sock is not None:
            try:
                self._sock.close()
            finally:
                self._sock = None

    @property
    def closed(self) -> bool:
        return self._sock is None

    def __enter__(self) -> "TelnetChannel":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _require_socket(self) -> socket.socket:
        if self._sock is None:
            raise ConnectionError("Command channel is closed")
        return self._sock

    def _strip_negotiation(self, data: bytes) -> bytes:
        text = bytearray()
        replies = bytearray()
        idx = 0
        while idx < len(data):
            byte = data[idx]
            if byte != IAC:
                text.append(byte)
                idx += 1
                continue
            if idx + 1 >= len(data):
                break
            verb = data[idx + 1]
            if verb == IAC:
                text.append(IAC)
                idx += 2
            elif verb in (DO, DONT, WILL, WONT):
                if idx + 2 >= len(data):
                    break
                option = data[idx + 2]
                if verb == DO:
                    replies.extend((IAC, WONT, option))
                elif verb == WILL:
                    replies.extend((IAC, DONT, option))
                idx += 3
            elif verb == SB:
                end = data.find(bytes((IAC, SE)), idx + 2)
                idx = len(data) if end < 0 else end + 2
            else:
                idx += 2
        if replies and self._sock is not None:
            self._sock.sendall(bytes(replies))
        return bytes(text)
