"""Network interface enumeration."""

import ipaddress
import logging
from typing import Any, Dict, List, Optional

import psutil

from ..errors import EnumerationError
from ..models.interface import (
    AddressFamily,
    AddressRecord,
    InterfaceFlag,
    InterfaceRecord,
)
from .platform_adapter import PlatformAdapter, get_platform_adapter

logger = logging.getLogger(__name__)


def numeric_host(value: Optional[str]) -> Optional[str]:
    """Normalize an address string to its numeric host form."""
    if not value:
        return None
    try:
        return str(ipaddress.ip_address(value))
    except ValueError:
        return value


class InterfaceDirectory:
    """
    Point-in-time view of the host's network interfaces.

    Every call to list_interfaces() takes a fresh snapshot from psutil and
    materializes it into InterfaceRecord objects; nothing from the psutil
    snapshot is kept afterwards.
    """

    def __init__(self, adapter: Optional[PlatformAdapter] = None):
        self.adapter = adapter or get_platform_adapter()
        self._interfaces: Optional[Dict[str, InterfaceRecord]] = None

    def list_interfaces(self) -> Dict[str, InterfaceRecord]:
        """
        Enumerate interfaces in OS order, keyed by name.

        Raises EnumerationError if the host refuses to list interfaces.
        A host without interfaces yields an empty dict.
        """
        try:
            addrs = psutil.net_if_addrs()
            stats = psutil.net_if_stats()
        except (psutil.Error, OSError) as e:
            raise EnumerationError(f"Could not list network interfaces: {e}") from e

        interfaces: Dict[str, InterfaceRecord] = {}
        names = list(addrs) + [name for name in stats if name not in addrs]

        for name in names:
            addresses = tuple(self._build_address(a) for a in addrs.get(name, ()))
            interfaces[name] = InterfaceRecord(
                name=name,
                description=self.adapter.describe(name),
                flag_bits=self._flag_bits(name, stats.get(name), addresses),
                addresses=addresses,
            )

        logger.debug("Enumerated %d interfaces", len(interfaces))
        return interfaces

    @staticmethod
    def _build_address(addr) -> AddressRecord:
        """Convert a psutil snicaddr into an AddressRecord."""
        family = AddressFamily.from_socket_family(int(addr.family))
        if not family.is_resolvable:
            return AddressRecord(family=family)

        return AddressRecord(
            family=family,
            address=numeric_host(addr.address),
            netmask=numeric_host(addr.netmask),
            broadcast=numeric_host(addr.broadcast),
            destination=numeric_host(addr.ptp),
        )

    def _flag_bits(self, name: str, stat, addresses) -> int:
        """Encode interface state in the libpcap PCAP_IF_* bit layout."""
        bits = 0
        flag_names = set()
        if stat is not None:
            flag_names = {f for f in getattr(stat, "flags", "").split(",") if f}

        if "loopback" in flag_names or self._has_loopback_address(addresses):
            bits |= InterfaceFlag.LOOPBACK.value

        if stat is not None and (stat.isup or "up" in flag_names):
            bits |= InterfaceFlag.UP.value

        # Platforms without flag strings only report isup
        if "running" in flag_names or (stat is not None and not flag_names and stat.isup):
            bits |= InterfaceFlag.RUNNING.value

        if self.adapter.is_wireless(name):
            bits |= InterfaceFlag.WIRELESS.value

        return bits

    @staticmethod
    def _has_loopback_address(addresses) -> bool:
        for addr in addresses:
            if not addr.address:
                continue
            try:
                if ipaddress.ip_address(addr.address).is_loopback:
                    return True
            except ValueError:
                continue
        return False

    def refresh(self) -> None:
        """Refresh the cached list of network interfaces."""
        self._interfaces = self.list_interfaces()

    def _cached(self) -> Dict[str, InterfaceRecord]:
        if self._interfaces is None:
            self.refresh()
        return self._interfaces

    def get_all(self) -> List[InterfaceRecord]:
        """Get all network interfaces."""
        return list(self._cached().values())

    def get_active(self) -> List[InterfaceRecord]:
        """Get only active (UP) non-loopback interfaces with IPv4 addresses."""
        return [
            iface for iface in self._cached().values()
            if iface.is_up and iface.ipv4_addresses() and not iface.is_loopback
        ]

    def get_by_name(self, name: str) -> Optional[InterfaceRecord]:
        """Get interface by name."""
        return self._cached().get(name)

    def exists(self, name: str) -> bool:
        """Check if interface exists."""
        return name in self._cached()

    def validate_interfaces(self, names: List[str]) -> List[str]:
        """
        Validate interface names and return list of invalid ones.
        """
        return [name for name in names if not self.exists(name)]

    def get_interface_names(self) -> List[str]:
        """Get list of all interface names."""
        return list(self._cached().keys())


def find_all_devs() -> Dict[str, Dict[str, Any]]:
    """List all network devices as plain dictionaries keyed by name."""
    directory = InterfaceDirectory()
    return {name: record.to_dict() for name, record in directory.list_interfaces().items()}
