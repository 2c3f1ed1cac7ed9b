"""Tests for the live capture engine."""

import pytest

from conftest import FakeAdapter, FakeSocket, SnicAddr, SnicStats, make_frame
from pcap_streams.capture.engine import (
    CaptureParameters,
    CaptureState,
    CaptureStats,
    LiveCaptureEngine,
)
from pcap_streams.capture.reader import OfflineReader
from pcap_streams.errors import (
    CaptureLoopError,
    CaptureOpenError,
    CaptureStateError,
    InterfaceOpenError,
    OutputOpenError,
    ValidationError,
)


def make_engine(out, max_packets=3, sock=None, **kwargs):
    sock = sock if sock is not None else FakeSocket()
    params = CaptureParameters("eth0", str(out), max_packets, **kwargs)
    return LiveCaptureEngine(params, socket_factory=lambda p: sock), sock


def read_all(path):
    with OfflineReader(path) as reader:
        return list(reader)


class TestCaptureParameters:
    def test_defaults(self):
        params = CaptureParameters("eth0", "out.pcap", 10)
        assert params.promiscuous is False
        assert params.timeout_ms == 1000
        assert params.snap_length == 65535

    def test_promiscuous_coerced(self):
        assert CaptureParameters("eth0", "out.pcap", 1, promiscuous=1).promiscuous is True

    @pytest.mark.parametrize("max_packets", [0, -1, True, 1.5, "10"])
    def test_invalid_max_packets(self, max_packets):
        with pytest.raises(ValidationError):
            CaptureParameters("eth0", "out.pcap", max_packets)

    @pytest.mark.parametrize("timeout_ms", [0, -100])
    def test_invalid_timeout(self, timeout_ms):
        with pytest.raises(ValidationError):
            CaptureParameters("eth0", "out.pcap", 1, timeout_ms=timeout_ms)

    @pytest.mark.parametrize("interface, output", [("", "out.pcap"), ("eth0", ""), (None, "out.pcap")])
    def test_empty_names(self, interface, output):
        with pytest.raises(ValidationError):
            CaptureParameters(interface, output, 1)

    def test_frozen(self):
        params = CaptureParameters("eth0", "out.pcap", 1)
        with pytest.raises(AttributeError):
            params.max_packets = 5


def test_invalid_parameters_touch_nothing(tmp_path):
    opened = []
    out = tmp_path / "out.pcap"

    with pytest.raises(ValidationError):
        LiveCaptureEngine.create("eth0", str(out), 0, socket_factory=opened.append)

    assert opened == []
    assert not out.exists()


def test_engine_requires_parameters():
    with pytest.raises(TypeError):
        LiveCaptureEngine({"interface_name": "eth0"})


def test_engine_properties(tmp_path):
    engine = LiveCaptureEngine.create(
        "eth0", str(tmp_path / "out.pcap"), 7, promiscuous=True, timeout_ms=250
    )
    assert engine.interface_name == "eth0"
    assert engine.max_packets == 7
    assert engine.promiscuous
    assert engine.timeout_ms == 250
    assert engine.packet_length == 65535
    assert engine.state is CaptureState.CONFIGURED


def test_captures_exactly_max_packets(tmp_path):
    out = tmp_path / "out.pcap"
    engine, sock = make_engine(out, max_packets=3)

    stats = engine.start()

    assert stats.packets_captured == 3
    assert stats.bytes_captured == 3 * len(make_frame(1))
    assert not stats.stopped
    assert engine.state is CaptureState.FINISHED
    assert sock.close_calls == 1
    assert sock.recv_calls == 3

    packets = read_all(out)
    assert [p.data for p in packets] == [make_frame(1), make_frame(2), make_frame(3)]


def test_timestamps_converted_to_nanoseconds(tmp_path):
    out = tmp_path / "out.pcap"
    engine, _ = make_engine(out, max_packets=1)
    engine.start()

    (packet,) = read_all(out)
    assert packet.timestamp_ns == 1700000000_250000000


def test_socket_factory_receives_parameters(tmp_path):
    seen = []

    def factory(params):
        seen.append(params)
        return FakeSocket()

    params = CaptureParameters("eth0", str(tmp_path / "out.pcap"), 1, promiscuous=True)
    LiveCaptureEngine(params, socket_factory=factory).start()

    assert seen == [params]


def test_missing_interface_leaves_no_output(tmp_path):
    out = tmp_path / "out.pcap"

    def factory(params):
        raise OSError(19, "No such device")

    engine = LiveCaptureEngine.create("nope0", str(out), 5, socket_factory=factory)

    with pytest.raises(InterfaceOpenError) as excinfo:
        engine.start()

    assert excinfo.value.interface == "nope0"
    assert "nope0" in str(excinfo.value)
    assert isinstance(excinfo.value, CaptureOpenError)
    assert not out.exists()
    assert engine.state is CaptureState.FAILED


def test_unwritable_output_closes_socket(tmp_path):
    out = tmp_path / "no-such-dir" / "out.pcap"
    engine, sock = make_engine(out)

    with pytest.raises(OutputOpenError) as excinfo:
        engine.start()

    assert excinfo.value.path == str(out)
    assert sock.close_calls == 1
    assert sock.recv_calls == 0
    assert engine.state is CaptureState.FAILED


def test_socket_failure_keeps_partial_output(tmp_path):
    out = tmp_path / "out.pcap"
    sock = FakeSocket([make_frame(1), make_frame(2), OSError(100, "Network is down")])
    engine, _ = make_engine(out, max_packets=5, sock=sock)

    with pytest.raises(CaptureLoopError) as excinfo:
        engine.start()

    assert excinfo.value.packets_captured == 2
    assert "Network is down" in str(excinfo.value)
    assert engine.state is CaptureState.FAILED
    assert sock.close_calls == 1
    assert len(read_all(out)) == 2


def test_start_runs_once(tmp_path):
    engine, _ = make_engine(tmp_path / "out.pcap", max_packets=1)
    engine.start()

    with pytest.raises(CaptureStateError):
        engine.start()
    assert engine.state is CaptureState.FINISHED


def test_start_after_failure_rejected(tmp_path):
    def factory(params):
        raise OSError(19, "No such device")

    engine = LiveCaptureEngine.create("nope0", str(tmp_path / "out.pcap"), 1, socket_factory=factory)
    with pytest.raises(InterfaceOpenError):
        engine.start()
    with pytest.raises(CaptureStateError):
        engine.start()


def test_read_timeouts_do_not_end_capture(tmp_path):
    out = tmp_path / "out.pcap"
    sock = FakeSocket([None, make_frame(1), None, None, make_frame(2)])
    engine, _ = make_engine(out, max_packets=2, sock=sock, timeout_ms=10)

    stats = engine.start()

    assert stats.packets_captured == 2
    assert sock.recv_calls == 2
    assert len(read_all(out)) == 2


def test_stop_from_callback(tmp_path):
    out = tmp_path / "out.pcap"
    holder = {}

    def on_recv(sock):
        if sock.recv_calls == 2:
            holder["engine"].stop()

    sock = FakeSocket(on_recv=on_recv)
    engine, _ = make_engine(out, max_packets=100, sock=sock)
    holder["engine"] = engine

    stats = engine.start()

    assert stats.stopped
    assert stats.packets_captured == 2
    assert engine.state is CaptureState.FINISHED
    assert len(read_all(out)) == 2


def test_stop_before_start_writes_empty_file(tmp_path):
    out = tmp_path / "out.pcap"
    engine, sock = make_engine(out, max_packets=10)
    engine.stop()

    stats = engine.start()

    assert stats.stopped
    assert stats.packets_captured == 0
    assert sock.recv_calls == 0
    assert read_all(out) == []


def test_oversized_frame_truncated_to_snap_length(tmp_path):
    out = tmp_path / "out.pcap"
    sock = FakeSocket([b"\xab" * 70000])
    engine, _ = make_engine(out, max_packets=1, sock=sock)

    stats = engine.start()

    (packet,) = read_all(out)
    assert packet.captured_length == 65535
    assert packet.wire_length == 70000
    assert stats.bytes_captured == 65535


class EmptyReadSocket(FakeSocket):
    """Socket whose first read returns no frame."""

    def recv_raw(self, x=65535):
        if self.recv_calls == 0:
            self.recv_calls += 1
            return None, None, None
        return super().recv_raw(x)


def test_empty_reads_skipped(tmp_path):
    out = tmp_path / "out.pcap"
    sock = EmptyReadSocket()
    engine, _ = make_engine(out, max_packets=2, sock=sock)

    stats = engine.start()

    assert stats.packets_captured == 2
    assert len(read_all(out)) == 2


def test_get_stats_returns_copy(tmp_path):
    engine, _ = make_engine(tmp_path / "out.pcap", max_packets=1)
    stats = engine.start()
    stats.packets_captured = 99

    assert engine.get_stats().packets_captured == 1
    assert engine.get_stats().interface == "eth0"
    assert engine.get_stats().duration >= 0


def test_stats_rates():
    assert CaptureStats().duration == 0.0
    assert CaptureStats().packets_per_second == 0.0

    stats = CaptureStats(packets_captured=10, start_time=100.0, end_time=105.0)
    assert stats.duration == 5.0
    assert stats.packets_per_second == 2.0


class TestCheckReady:
    def test_ready(self, fake_host, tmp_path):
        fake_host["addrs"]["eth0"] = [SnicAddr(2, "10.0.0.2", "255.0.0.0", None, None)]
        fake_host["stats"]["eth0"] = SnicStats(True, 2, 1000, 1500, "up,running")
        engine, _ = make_engine(tmp_path / "out.pcap")
        engine.adapter = FakeAdapter()

        assert engine.check_ready() == []

    def test_reports_issues(self, fake_host, tmp_path):
        engine, _ = make_engine(tmp_path / "out.pcap")
        engine.adapter = FakeAdapter(privileged=False)

        issues = engine.check_ready()

        assert len(issues) == 2
        assert "privileges" in issues[0]
        assert issues[1] == "Invalid interface: eth0"


def test_unexpected_open_error_marks_engine_failed(tmp_path):
    out = tmp_path / "out.pcap"

    def factory(params):
        raise TypeError("backend not callable")

    engine = LiveCaptureEngine.create("eth0", str(out), 1, socket_factory=factory)

    with pytest.raises(TypeError):
        engine.start()

    assert engine.state is CaptureState.FAILED
    assert not out.exists()


def test_default_socket_missing_interface(tmp_path):
    from scapy.all import conf

    if conf.L2listen is None:
        pytest.skip("scapy has no level-2 capture backend on this host")

    out = tmp_path / "out.pcap"
    engine = LiveCaptureEngine.create("nosuchif0", str(out), 3, timeout_ms=100)

    with pytest.raises(InterfaceOpenError) as excinfo:
        engine.start()

    assert excinfo.value.interface == "nosuchif0"
    assert engine.state is CaptureState.FAILED
    assert not out.exists()
