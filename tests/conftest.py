"""Shared fixtures for pcap-streams tests."""

import struct
from collections import namedtuple

import pytest

from pcap_streams.capture.platform_adapter import PlatformAdapter

MAGIC_MICRO = 0xA1B2C3D4
MAGIC_NANO = 0xA1B23C4D

# Same field layout as psutil's snicaddr / snicstats
SnicAddr = namedtuple("snicaddr", ["family", "address", "netmask", "broadcast", "ptp"])
SnicStats = namedtuple("snicstats", ["isup", "duplex", "speed", "mtu", "flags"])
SnicStatsNoFlags = namedtuple("snicstats", ["isup", "duplex", "speed", "mtu"])


def build_pcap(records, nano=False, endian="<", linktype=1, snaplen=65535):
    """
    Build pcap file bytes.

    records is a list of (sec, frac, data) or (sec, frac, data, wirelen).
    """
    magic = MAGIC_NANO if nano else MAGIC_MICRO
    out = [struct.pack(endian + "IHHiIII", magic, 2, 4, 0, 0, snaplen, linktype)]
    for record in records:
        sec, frac, data = record[:3]
        wirelen = record[3] if len(record) > 3 else len(data)
        out.append(struct.pack(endian + "IIII", sec, frac, len(data), wirelen))
        out.append(data)
    return b"".join(out)


def make_frame(index, size=60):
    """Ethernet-sized frame with a recognizable payload."""
    body = bytes([index % 256]) * size
    return b"\xff" * 6 + b"\x00\x11\x22\x33\x44\x55" + b"\x08\x00" + body


FIVE_RECORDS = [
    (1700000000 + i, 1000 * i + 7, make_frame(i, 40 + i)) for i in range(5)
]


@pytest.fixture
def pcap_path(tmp_path):
    """A microsecond pcap file holding exactly five frames."""
    path = tmp_path / "five.pcap"
    path.write_bytes(build_pcap(FIVE_RECORDS))
    return path


@pytest.fixture
def nano_pcap_path(tmp_path):
    path = tmp_path / "nano.pcap"
    path.write_bytes(build_pcap([
        (1600000000, 123456789, make_frame(1)),
        (1600000001, 999999999, make_frame(2)),
    ], nano=True))
    return path


class FakeAdapter(PlatformAdapter):
    """Platform adapter with configurable answers."""

    def __init__(self, wireless=(), privileged=True):
        self.wireless = set(wireless)
        self.privileged = privileged

    def check_privileges(self):
        return self.privileged

    def is_wireless(self, interface):
        return interface in self.wireless

    def describe(self, interface):
        return f"{interface} device"


@pytest.fixture
def fake_adapter():
    return FakeAdapter()


@pytest.fixture
def fake_host(monkeypatch):
    """Replace psutil's interface queries with a configurable snapshot."""
    import psutil

    snapshot = {"addrs": {}, "stats": {}}

    monkeypatch.setattr(psutil, "net_if_addrs", lambda: dict(snapshot["addrs"]))
    monkeypatch.setattr(psutil, "net_if_stats", lambda: dict(snapshot["stats"]))
    return snapshot


class FakeSocket:
    """
    Stand-in for a scapy L2 listening socket.

    frames is an iterable of items: bytes (a frame), None (a poll timeout)
    or an exception instance (raised from recv_raw).
    """

    def __init__(self, frames=None, on_recv=None):
        self._frames = iter(frames) if frames is not None else None
        self._pending = None
        self.on_recv = on_recv
        self.recv_calls = 0
        self.close_calls = 0
        self.counter = 0

    def _next_item(self):
        if self._frames is None:
            self.counter += 1
            return make_frame(self.counter)
        return next(self._frames)

    def select(self, sockets, remain=None):
        self._pending = self._next_item()
        if self._pending is None:
            return []
        return sockets

    def recv_raw(self, x=65535):
        self.recv_calls += 1
        item, self._pending = self._pending, None
        if isinstance(item, BaseException):
            raise item
        if self.on_recv is not None:
            self.on_recv(self)
        return None, item, 1700000000.25

    def close(self):
        self.close_calls += 1
