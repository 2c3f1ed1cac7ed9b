"""Packet data structures."""

from dataclasses import dataclass, field
from typing import Optional

from ..constants import NANOSECONDS_PER_SECOND


@dataclass(frozen=True)
class Packet:
    """
    One captured frame plus its capture metadata.

    Packets are produced one at a time by readers and the live engine and
    are not retained past the iteration that produced them.
    """
    timestamp_ns: int
    captured_length: int
    data: bytes
    wire_length: Optional[int] = field(default=None)

    def __post_init__(self):
        if self.wire_length is None:
            object.__setattr__(self, "wire_length", self.captured_length)

    @classmethod
    def from_parts(cls, sec: int, frac: int, data: bytes, nano: bool = True,
                   wire_length: Optional[int] = None) -> "Packet":
        """Create a Packet from a pcap record header's second/fraction pair."""
        scale = 1 if nano else 1000
        return cls(
            timestamp_ns=sec * NANOSECONDS_PER_SECOND + frac * scale,
            captured_length=len(data),
            data=data,
            wire_length=wire_length,
        )

    @property
    def seconds(self) -> int:
        return self.timestamp_ns // NANOSECONDS_PER_SECOND

    @property
    def nanoseconds(self) -> int:
        return self.timestamp_ns % NANOSECONDS_PER_SECOND

    @property
    def timestamp(self) -> float:
        """Timestamp as float seconds since the epoch."""
        return self.timestamp_ns / NANOSECONDS_PER_SECOND

    @property
    def is_truncated(self) -> bool:
        """Check if fewer bytes were captured than seen on the wire."""
        return self.captured_length < self.wire_length
