"""Data models for pcap-streams."""

from .packet import Packet
from .interface import (
    AddressFamily,
    AddressRecord,
    InterfaceFlag,
    InterfaceRecord,
    decode_flags,
    encode_flags,
)

__all__ = [
    "Packet",
    "AddressFamily",
    "AddressRecord",
    "InterfaceFlag",
    "InterfaceRecord",
    "decode_flags",
    "encode_flags",
]
