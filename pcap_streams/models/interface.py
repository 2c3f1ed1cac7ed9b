"""Network interface data structures."""

import socket
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class AddressFamily(Enum):
    """Address families reported for interface addresses."""
    IPV4 = "AF_INET"
    IPV6 = "AF_INET6"
    UNIX = "AF_UNIX"
    UNSPECIFIED = "AF_UNSPEC"
    LOCAL = "AF_LOCAL"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_socket_family(cls, family: int) -> "AddressFamily":
        """Map a socket module AF_* value to an AddressFamily."""
        if family == socket.AF_INET:
            return cls.IPV4
        if family == socket.AF_INET6:
            return cls.IPV6
        # AF_LOCAL is an alias of AF_UNIX wherever both exist
        if family == getattr(socket, "AF_UNIX", None):
            return cls.UNIX
        if family == getattr(socket, "AF_LOCAL", None):
            return cls.LOCAL
        if family == socket.AF_UNSPEC:
            return cls.UNSPECIFIED
        return cls.UNKNOWN

    @property
    def is_resolvable(self) -> bool:
        """Check if numeric host strings can be produced for this family."""
        return self in (AddressFamily.IPV4, AddressFamily.IPV6)


class InterfaceFlag(Enum):
    """Interface status flags, in decoding order."""
    LOOPBACK = 0x00000001
    UP = 0x00000002
    RUNNING = 0x00000004
    WIRELESS = 0x00000008


def decode_flags(bits: int) -> Tuple[InterfaceFlag, ...]:
    """Decode a flag bit field. Unknown bits are ignored."""
    return tuple(flag for flag in InterfaceFlag if bits & flag.value)


def encode_flags(flags) -> int:
    """Encode an iterable of InterfaceFlag into a bit field."""
    bits = 0
    for flag in flags:
        bits |= flag.value
    return bits


@dataclass(frozen=True)
class AddressRecord:
    """One address attached to a network interface."""
    family: AddressFamily
    address: Optional[str] = None
    netmask: Optional[str] = None
    broadcast: Optional[str] = None
    destination: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the dictionary shape used by find_all_devs()."""
        result: Dict[str, Any] = {"af": self.family.value, "addr": self.address}
        if self.netmask is not None:
            result["netmask"] = self.netmask
        if self.broadcast is not None:
            result["broadaddr"] = self.broadcast
        if self.destination is not None:
            result["dstaddr"] = self.destination
        return result


@dataclass(frozen=True)
class InterfaceRecord:
    """Point-in-time information about a network interface."""
    name: str
    description: str
    flag_bits: int = 0
    addresses: Tuple[AddressRecord, ...] = field(default_factory=tuple)

    @property
    def flags(self) -> Tuple[InterfaceFlag, ...]:
        return decode_flags(self.flag_bits)

    @property
    def is_loopback(self) -> bool:
        return InterfaceFlag.LOOPBACK in self.flags

    @property
    def is_up(self) -> bool:
        return InterfaceFlag.UP in self.flags

    @property
    def is_running(self) -> bool:
        return InterfaceFlag.RUNNING in self.flags

    @property
    def is_wireless(self) -> bool:
        return InterfaceFlag.WIRELESS in self.flags

    def addresses_of(self, family: AddressFamily) -> List[str]:
        """Get numeric addresses of the given family."""
        return [a.address for a in self.addresses if a.family == family and a.address]

    def ipv4_addresses(self) -> List[str]:
        return self.addresses_of(AddressFamily.IPV4)

    def ipv6_addresses(self) -> List[str]:
        return self.addresses_of(AddressFamily.IPV6)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the dictionary shape used by find_all_devs()."""
        return {
            "name": self.name,
            "description": self.description,
            "flags_int": self.flag_bits,
            "flags": [flag.name for flag in self.flags],
            "addresses": [addr.to_dict() for addr in self.addresses],
        }

    def __str__(self) -> str:
        status = "UP" if self.is_up else "DOWN"
        ipv4 = self.ipv4_addresses()
        addr = ipv4[0] if ipv4 else "no address"
        return f"{self.name} ({addr}) [{status}]"
