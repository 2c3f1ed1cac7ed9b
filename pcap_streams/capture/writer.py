"""Sequential writing of capture files."""

import logging
from typing import Any

from scapy.error import Scapy_Exception
from scapy.utils import RawPcapWriter

from ..constants import LINKTYPE_ETHERNET, MAX_PACKET_SIZE
from ..errors import CaptureOpenError, SourceClosedError, ValidationError
from ..models.packet import Packet
from .guard import ResourceGuard, StreamSource
from .reader import OfflineReader

logger = logging.getLogger(__name__)

SUPPORTED_MODES = ("wb",)


class OfflineWriter:
    """
    Append-only pcap stream.

    The destination is a path, "-" for standard output, an OS file
    descriptor or a writable binary stream. Every writer creates its own
    scapy dump handle (Ethernet link type, nanosecond timestamps) and writes
    the global header as soon as it is opened.
    """

    def __init__(self, destination: StreamSource, mode: str = "wb"):
        if mode not in SUPPORTED_MODES:
            raise ValidationError(f"Unsupported writer mode '{mode}', expected one of {SUPPORTED_MODES}")
        self._mode = mode

        # File first: an unwritable destination fails before any dump handle exists
        self._guard = ResourceGuard.open(destination, mode)

        try:
            context = RawPcapWriter(
                self._guard.file,
                linktype=LINKTYPE_ETHERNET,
                nano=True,
                snaplen=MAX_PACKET_SIZE,
            )
            context.write_header(None)
        except Scapy_Exception as e:
            self._guard.close()
            raise CaptureOpenError(
                f"Could not create pcap writer for '{self._guard.name}': {e}"
            ) from e
        except OSError:
            self._guard.close()
            raise

        self._guard.attach_context(context)
        logger.debug("Writing %s", self._guard.name)

    @property
    def filename(self) -> str:
        return self._guard.name

    @property
    def mode(self) -> str:
        return self._mode

    @property
    def closed(self) -> bool:
        return self._guard.closed

    def name(self) -> str:
        """Get the destination name (a path, "<stdout>" or "<fd N>")."""
        return self._guard.name

    def fileno(self) -> int:
        """Get the OS file descriptor of the destination."""
        return self._guard.fileno()

    def write(self, data) -> int:
        """
        Append a buffer verbatim, bypassing record framing.

        Returns the number of bytes written. A closed writer raises
        ClosedError before the argument is looked at, so a non-bytes
        argument only raises TypeError while the writer is open.
        """
        fileobj = self._guard.file
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError(f"write() requires a bytes-like argument, got {type(data).__name__}")
        fileobj.write(data)
        return memoryview(data).nbytes

    def write_packet(self, packet: Packet) -> None:
        """Append one packet as a pcap record."""
        self._write_record(self._guard.context, packet)

    def write_from(self, reader: OfflineReader) -> int:
        """
        Copy every remaining packet of reader into this file.

        Packets are forwarded one at a time with their original timestamp
        and lengths. The reader is borrowed: it stays open and remains the
        caller's to close. Returns the number of packets copied.
        """
        context = self._guard.context
        if not isinstance(reader, OfflineReader):
            raise TypeError(f"write_from() requires an OfflineReader, got {type(reader).__name__}")
        if reader.closed:
            raise SourceClosedError(
                f"Cannot copy from '{reader.filename}': reader has no open capture context"
            )

        count = 0
        for packet in reader:
            self._write_record(context, packet)
            count += 1

        logger.debug("Copied %d packets from %s to %s", count, reader.filename, self.filename)
        return count

    def flush(self) -> None:
        self._guard.context.flush()

    def close(self) -> None:
        """Flush and close the writer. Safe to call multiple times."""
        self._guard.close()

    @staticmethod
    def _write_record(context: RawPcapWriter, packet: Packet) -> None:
        context.write_packet(
            packet.data,
            sec=packet.seconds,
            usec=packet.nanoseconds,
            caplen=len(packet.data),
            wirelen=packet.wire_length,
        )

    def __enter__(self) -> "OfflineWriter":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<OfflineWriter {self.filename!r} {state}>"


def pcap_writer(filename: StreamSource, mode: str = "wb") -> OfflineWriter:
    """Open a capture file for writing."""
    return OfflineWriter(filename, mode=mode)


def get_fileno(obj: Any) -> int:
    """Get the OS file descriptor behind a descriptor or file-like object."""
    if isinstance(obj, int) and not isinstance(obj, bool):
        if obj < 0:
            raise ValidationError(f"File descriptor cannot be negative: {obj}")
        return obj

    fileno = getattr(obj, "fileno", None)
    if not callable(fileno):
        raise ValidationError(f"Could not determine file descriptor for {type(obj).__name__} object")
    return fileno()
