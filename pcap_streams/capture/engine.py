"""Bounded live packet capture using Scapy."""

import logging
import threading
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, List, Optional

from scapy.all import conf
from scapy.data import MTU
from scapy.error import Scapy_Exception

from ..constants import DEFAULT_TIMEOUT_MS, MAX_PACKET_SIZE, NANOSECONDS_PER_SECOND
from ..errors import (
    CaptureLoopError,
    CaptureStateError,
    EnumerationError,
    InterfaceOpenError,
    OutputOpenError,
    PcapError,
    ValidationError,
)
from ..models.packet import Packet
from .interface_manager import InterfaceDirectory
from .platform_adapter import PlatformAdapter, get_platform_adapter
from .writer import OfflineWriter

logger = logging.getLogger(__name__)


def _check_positive(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer, got {type(value).__name__}")
    if value <= 0:
        raise ValidationError(f"{name} must be > 0")


@dataclass(frozen=True)
class CaptureParameters:
    """Live capture configuration. Validated on construction."""
    interface_name: str
    output_filename: str
    max_packets: int
    promiscuous: bool = False
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    snap_length: int = field(default=MAX_PACKET_SIZE, init=False)

    def __post_init__(self):
        if not isinstance(self.interface_name, str) or not self.interface_name:
            raise ValidationError("interface_name must be a non-empty string")
        if not isinstance(self.output_filename, str) or not self.output_filename:
            raise ValidationError("output_filename must be a non-empty string")
        _check_positive("max_packets", self.max_packets)
        _check_positive("timeout_ms", self.timeout_ms)
        object.__setattr__(self, "promiscuous", bool(self.promiscuous))


class CaptureState(Enum):
    """Lifecycle of a live capture run."""
    CONFIGURED = "configured"
    RUNNING = "running"
    FINISHED = "finished"
    FAILED = "failed"


@dataclass
class CaptureStats:
    """Statistics for a live capture run."""
    interface: str = ""
    packets_captured: int = 0
    bytes_captured: int = 0
    start_time: float = 0.0
    end_time: float = 0.0
    stopped: bool = False

    @property
    def duration(self) -> float:
        if self.start_time == 0:
            return 0.0
        end = self.end_time or time.time()
        return end - self.start_time

    @property
    def packets_per_second(self) -> float:
        if self.duration == 0:
            return 0.0
        return self.packets_captured / self.duration


def open_live_socket(params: CaptureParameters) -> Any:
    """Open a scapy level-2 listening socket on the configured interface."""
    if conf.L2listen is None:
        raise Scapy_Exception("No level-2 capture backend available on this platform")
    return conf.L2listen(iface=params.interface_name, promisc=params.promiscuous)


class LiveCaptureEngine:
    """
    Captures up to max_packets frames off one interface into a pcap file.

    start() runs exactly once. It blocks until max_packets frames have been
    dumped, stop() is called from another thread, or the socket fails.
    Frames dumped before a failure stay in the output file.
    """

    def __init__(
        self,
        params: CaptureParameters,
        socket_factory: Optional[Callable[[CaptureParameters], Any]] = None,
        adapter: Optional[PlatformAdapter] = None,
    ):
        if not isinstance(params, CaptureParameters):
            raise TypeError(f"params must be CaptureParameters, got {type(params).__name__}")

        self.params = params
        self.adapter = adapter
        self._socket_factory = socket_factory or open_live_socket

        self._state = CaptureState.CONFIGURED
        self._state_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._stats = CaptureStats(interface=params.interface_name)

    @classmethod
    def create(
        cls,
        interface_name: str,
        output_filename: str,
        max_packets: int,
        promiscuous: bool = False,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        **kwargs,
    ) -> "LiveCaptureEngine":
        """Build parameters and engine in one call."""
        params = CaptureParameters(
            interface_name=interface_name,
            output_filename=output_filename,
            max_packets=max_packets,
            promiscuous=promiscuous,
            timeout_ms=timeout_ms,
        )
        return cls(params, **kwargs)

    @property
    def interface_name(self) -> str:
        return self.params.interface_name

    @property
    def output_filename(self) -> str:
        return self.params.output_filename

    @property
    def max_packets(self) -> int:
        return self.params.max_packets

    @property
    def promiscuous(self) -> bool:
        return self.params.promiscuous

    @property
    def timeout_ms(self) -> int:
        return self.params.timeout_ms

    @property
    def packet_length(self) -> int:
        return self.params.snap_length

    @property
    def state(self) -> CaptureState:
        return self._state

    def check_ready(self) -> List[str]:
        """
        Check if the capture can start.
        Returns list of issues, empty if ready.
        """
        issues = []
        adapter = self.adapter or get_platform_adapter()

        if not adapter.check_privileges():
            issues.append(adapter.privilege_hint())

        directory = InterfaceDirectory(adapter)
        try:
            if directory.validate_interfaces([self.interface_name]):
                issues.append(f"Invalid interface: {self.interface_name}")
        except EnumerationError as e:
            issues.append(str(e))

        return issues

    def start(self) -> CaptureStats:
        """
        Run the capture to completion.

        Raises InterfaceOpenError if the interface cannot be opened (the
        output file is never touched), OutputOpenError if the output cannot
        be created and CaptureLoopError if the socket fails mid-capture.
        """
        with self._state_lock:
            if self._state is not CaptureState.CONFIGURED:
                raise CaptureStateError(
                    f"Capture on '{self.interface_name}' already ran (state: {self._state.value})"
                )
            self._state = CaptureState.RUNNING

        params = self.params
        self._stats.start_time = time.time()

        try:
            sock = self._socket_factory(params)
        except (OSError, Scapy_Exception, ValueError) as e:
            self._finish(CaptureState.FAILED)
            raise InterfaceOpenError(params.interface_name, str(e)) from e
        except BaseException:
            self._finish(CaptureState.FAILED)
            raise

        logger.info(
            "Capturing %d packets on %s (promiscuous=%s, timeout=%dms)",
            params.max_packets,
            params.interface_name,
            params.promiscuous,
            params.timeout_ms,
        )

        try:
            try:
                writer = OfflineWriter(params.output_filename)
            except (OSError, PcapError) as e:
                raise OutputOpenError(params.output_filename, str(e)) from e

            with writer:
                self._capture_loop(sock, writer)
        except BaseException:
            self._finish(CaptureState.FAILED)
            raise
        finally:
            sock.close()

        self._finish(CaptureState.FINISHED)
        logger.info(
            "Captured %d packets on %s in %.1fs",
            self._stats.packets_captured,
            params.interface_name,
            self._stats.duration,
        )
        return self.get_stats()

    def stop(self) -> None:
        """Ask a running capture to stop after the current read."""
        self._stop_event.set()

    def _capture_loop(self, sock: Any, writer: OfflineWriter) -> None:
        """Read frames until max_packets are dumped or a stop is requested."""
        params = self.params
        timeout = params.timeout_ms / 1000.0

        while self._stats.packets_captured < params.max_packets:
            if self._stop_event.is_set():
                self._stats.stopped = True
                logger.info(
                    "Capture on %s stopped after %d packets",
                    params.interface_name,
                    self._stats.packets_captured,
                )
                return

            try:
                # The read timeout only bounds one poll; the loop re-polls
                if not sock.select([sock], timeout):
                    continue
                _, data, ts = sock.recv_raw(MTU)
            except (OSError, Scapy_Exception) as e:
                raise CaptureLoopError(
                    params.interface_name, str(e), self._stats.packets_captured
                ) from e

            if data is None:
                continue

            packet = self._make_packet(data, ts)
            writer.write_packet(packet)

            self._stats.packets_captured += 1
            self._stats.bytes_captured += packet.captured_length

    def _make_packet(self, data: bytes, ts: Any) -> Packet:
        if ts is None:
            ts = time.time()
        sec = int(ts)
        frac_ns = int(round((ts - sec) * NANOSECONDS_PER_SECOND))
        captured = bytes(data[:self.params.snap_length])
        return Packet(
            timestamp_ns=sec * NANOSECONDS_PER_SECOND + frac_ns,
            captured_length=len(captured),
            data=captured,
            wire_length=len(data),
        )

    def _finish(self, state: CaptureState) -> None:
        with self._state_lock:
            self._state = state
        self._stats.end_time = time.time()

    def get_stats(self) -> CaptureStats:
        """Get a copy of the capture statistics."""
        return replace(self._stats)
