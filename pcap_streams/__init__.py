"""
pcap-streams - capture file and live capture lifecycle management

Reads and writes pcap files, copies packets between them, captures a
bounded number of frames off a live interface and lists the host's
network interfaces.
"""

__version__ = "1.0.0"
__author__ = "Network Team"

from .capture import (
    CaptureParameters,
    InterfaceDirectory,
    LiveCaptureEngine,
    OfflineReader,
    OfflineWriter,
    ResourceGuard,
    find_all_devs,
    get_fileno,
    pcap_writer,
)
from .errors import (
    CaptureLoopError,
    CaptureOpenError,
    CaptureStateError,
    ClosedError,
    EnumerationError,
    InterfaceOpenError,
    OutputOpenError,
    PcapError,
    SourceClosedError,
    TruncatedCaptureError,
    ValidationError,
)
from .models import Packet

__all__ = [
    "CaptureParameters",
    "InterfaceDirectory",
    "LiveCaptureEngine",
    "OfflineReader",
    "OfflineWriter",
    "ResourceGuard",
    "find_all_devs",
    "get_fileno",
    "pcap_writer",
    "Packet",
    "CaptureLoopError",
    "CaptureOpenError",
    "CaptureStateError",
    "ClosedError",
    "EnumerationError",
    "InterfaceOpenError",
    "OutputOpenError",
    "PcapError",
    "SourceClosedError",
    "TruncatedCaptureError",
    "ValidationError",
]
