"""Platform-specific capture probes."""

import glob
import os
import platform
import subprocess
from abc import ABC, abstractmethod
from typing import Dict, Optional, Set, Type

# Bit 13 of the effective capability set
CAP_NET_RAW = 13


class PlatformAdapter(ABC):
    """Answers the host questions live capture depends on."""

    @abstractmethod
    def check_privileges(self) -> bool:
        """Check if this process may open an interface for raw capture."""
        pass

    @abstractmethod
    def is_wireless(self, interface: str) -> bool:
        """Check if the named interface is a wireless device."""
        pass

    def describe(self, interface: str) -> str:
        """Human readable description of an interface."""
        return interface

    def privilege_hint(self) -> str:
        return "Insufficient privileges. Run with sudo/administrator rights."


class LinuxAdapter(PlatformAdapter):
    """Probes backed by procfs and sysfs."""

    SYS_NET = "/sys/class/net"
    PROC_STATUS = "/proc/self/status"

    def check_privileges(self) -> bool:
        if os.geteuid() == 0:
            return True
        return self._effective_caps() & (1 << CAP_NET_RAW) != 0

    def _effective_caps(self) -> int:
        try:
            with open(self.PROC_STATUS) as f:
                for line in f:
                    if line.startswith("CapEff:"):
                        return int(line.split()[1], 16)
        except (OSError, ValueError, IndexError):
            pass
        return 0

    def is_wireless(self, interface: str) -> bool:
        base = os.path.join(self.SYS_NET, interface)
        return (
            os.path.isdir(os.path.join(base, "wireless"))
            or os.path.exists(os.path.join(base, "phy80211"))
        )

    def privilege_hint(self) -> str:
        return "Insufficient privileges. Run with sudo or grant CAP_NET_RAW to the interpreter."


class MacOSAdapter(PlatformAdapter):
    """Probes backed by BPF devices and networksetup."""

    def __init__(self):
        self._wifi_devices: Optional[Set[str]] = None

    def check_privileges(self) -> bool:
        if os.geteuid() == 0:
            return True
        # Capture needs read access to at least one BPF device
        return any(os.access(dev, os.R_OK) for dev in glob.glob("/dev/bpf*"))

    def is_wireless(self, interface: str) -> bool:
        if self._wifi_devices is None:
            self._wifi_devices = self._list_wifi_devices()
        return interface in self._wifi_devices

    def _list_wifi_devices(self) -> Set[str]:
        """Parse `networksetup -listallhardwareports` for Wi-Fi ports."""
        devices: Set[str] = set()
        try:
            output = subprocess.run(
                ["networksetup", "-listallhardwareports"],
                capture_output=True,
                text=True,
                timeout=5,
            ).stdout
        except (subprocess.TimeoutExpired, FileNotFoundError):
            return devices

        is_wifi = False
        for line in output.splitlines():
            if line.startswith("Hardware Port:"):
                port = line.split(":", 1)[1].strip().lower()
                is_wifi = port in ("wi-fi", "airport")
            elif line.startswith("Device:") and is_wifi:
                devices.add(line.split(":", 1)[1].strip())
                is_wifi = False
        return devices

    def privilege_hint(self) -> str:
        return "Insufficient privileges. Run with sudo or make /dev/bpf* readable."


class WindowsAdapter(PlatformAdapter):
    """Probes for Npcap-based capture."""

    WIRELESS_HINTS = ("wi-fi", "wifi", "wireless", "wlan", "802.11")

    def check_privileges(self) -> bool:
        try:
            import ctypes
            return bool(ctypes.windll.shell32.IsUserAnAdmin())
        except (AttributeError, OSError):
            return False

    def is_wireless(self, interface: str) -> bool:
        name = interface.lower()
        return any(hint in name for hint in self.WIRELESS_HINTS)

    def privilege_hint(self) -> str:
        return "Insufficient privileges. Run as administrator with Npcap installed."


ADAPTERS: Dict[str, Type[PlatformAdapter]] = {
    "linux": LinuxAdapter,
    "darwin": MacOSAdapter,
    "windows": WindowsAdapter,
}


def get_platform_adapter() -> PlatformAdapter:
    """Get the adapter for the running operating system."""
    system = platform.system().lower()
    try:
        return ADAPTERS[system]()
    except KeyError:
        raise RuntimeError(f"Unsupported platform: {system}") from None
