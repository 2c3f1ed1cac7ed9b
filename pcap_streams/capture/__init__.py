"""Packet capture layer."""

from .guard import ResourceGuard
from .platform_adapter import get_platform_adapter, PlatformAdapter
from .interface_manager import InterfaceDirectory, find_all_devs
from .reader import OfflineReader
from .writer import OfflineWriter, get_fileno, pcap_writer
from .engine import CaptureParameters, CaptureState, CaptureStats, LiveCaptureEngine

__all__ = [
    "ResourceGuard",
    "get_platform_adapter",
    "PlatformAdapter",
    "InterfaceDirectory",
    "find_all_devs",
    "OfflineReader",
    "OfflineWriter",
    "get_fileno",
    "pcap_writer",
    "CaptureParameters",
    "CaptureState",
    "CaptureStats",
    "LiveCaptureEngine",
]
