from __future__ import annotations

import socket

import pytest

from pload.cs5480.channel import DO, IAC, TelnetChannel, WILL, WONT, DONT
from pload.cs5480.config import ChannelSettings


@pytest.fixture
def channel_pair():
    local, peer = socket.socketpair()
    peer.settimeout(1.0)
    channel = TelnetChannel(local, ChannelSettings(read_poll_sec=0.05))
    try:
        yield channel, peer
    finally:
        channel.close()
        peer.close()


def test_write_line_appends_newline(channel_pair) -> None:
    channel, peer = channel_pair
    channel.write_line("cu cs5480_pload")
    assert peer.recv(64) == b"cu cs5480_pload\n"


def test_read_available_idle_returns_empty(channel_pair) -> None:
    channel, _peer = channel_pair
    assert channel.read_available() == ""


def test_read_available_refuses_negotiation(channel_pair) -> None:
    channel, peer = channel_pair
    peer.sendall(bytes((IAC, DO, 1, IAC, WILL, 3)) + b"Raw IRMS: 00999999\r\nRaw VRMS: 00999999\r\n")
    text = channel.read_available()
    assert text == "Raw IRMS: 00999999\r\nRaw VRMS: 00999999\r\n"
    assert peer.recv(64) == bytes((IAC, WONT, 1, IAC, DONT, 3))


def test_peer_close_closes_channel(channel_pair) -> None:
    channel, peer = channel_pair
    peer.sendall(b"bye\r\n")
    peer.shutdown(socket.SHUT_WR)
    assert channel.read_available() == "bye\r\n"
    assert channel.closed
    with pytest.raises(ConnectionError):
        channel.write_line("cu cs5480_pload")
