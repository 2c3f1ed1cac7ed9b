"""Sequential reading of recorded capture files."""

import logging
from typing import Iterator, Optional

from scapy.error import Scapy_Exception
from scapy.utils import RawPcapNgReader, RawPcapReader

from ..constants import MAX_RECORD_LENGTH
from ..errors import CaptureOpenError, TruncatedCaptureError
from ..models.packet import Packet
from .guard import ResourceGuard, StreamSource

logger = logging.getLogger(__name__)


class OfflineReader:
    """
    Read-only, forward-only access to a pcap stream.

    The source is a path, "-" for standard input, an OS file descriptor or
    a stream opened in "rb" mode. The reader owns the file from the moment
    it is constructed; close() releases both the file and the scapy reader.

    Example:
        with OfflineReader("capture.pcap") as reader:
            for packet in reader:
                process(packet)
    """

    def __init__(self, source: StreamSource):
        self._exhausted = False
        self._guard = ResourceGuard.open(source, "rb")

        try:
            context = RawPcapReader(self._guard.file)
        except (Scapy_Exception, EOFError) as e:
            self._guard.close()
            raise CaptureOpenError(
                f"Could not create pcap reader for '{self._guard.name}': {e}"
            ) from e

        if isinstance(context, RawPcapNgReader):
            self._guard.close()
            raise CaptureOpenError(
                f"Could not create pcap reader for '{self._guard.name}': "
                "pcapng files are not supported"
            )

        self._guard.attach_context(context)
        logger.debug(
            "Reading %s (linktype=%d, snaplen=%d, %s precision)",
            self._guard.name,
            context.linktype,
            context.snaplen,
            "nanosecond" if self.nanosecond else "microsecond",
        )

    @property
    def filename(self) -> str:
        return self._guard.name

    @property
    def closed(self) -> bool:
        return self._guard.closed

    @property
    def linktype(self) -> int:
        return self._guard.context.linktype

    @property
    def snaplen(self) -> int:
        return self._guard.context.snaplen

    @property
    def nanosecond(self) -> bool:
        """True if the file stores nanosecond timestamps."""
        return bool(getattr(self._guard.context, "nano", False))

    def fileno(self) -> int:
        """Get the OS file descriptor of the source."""
        return self._guard.fileno()

    def read_packet(self) -> Optional[Packet]:
        """
        Read the next packet in file order.

        Returns None at end of stream. Raises ClosedError after close() and
        TruncatedCaptureError if the file ends inside a record.
        """
        context = self._guard.context
        if self._exhausted:
            return None

        try:
            # Records are never clipped, whatever the header snaplen says
            data, meta = context._read_packet(size=MAX_RECORD_LENGTH)
        except EOFError:
            self._exhausted = True
            return None

        if len(data) < meta.caplen:
            self._exhausted = True
            raise TruncatedCaptureError(
                f"Truncated dump file '{self.filename}': record has {meta.caplen} "
                f"captured bytes, only {len(data)} available"
            )

        return Packet.from_parts(
            meta.sec,
            meta.usec,
            data,
            nano=self.nanosecond,
            wire_length=meta.wirelen,
        )

    def count(self) -> int:
        """
        Drain the remaining packets and return how many were read.

        This consumes the stream: later reads report end of stream.
        """
        total = 0
        while self.read_packet() is not None:
            total += 1
        return total

    def close(self) -> None:
        """Close the reader. Safe to call multiple times."""
        self._guard.close()

    def __iter__(self) -> Iterator[Packet]:
        return self

    def __next__(self) -> Packet:
        packet = self.read_packet()
        if packet is None:
            raise StopIteration
        return packet

    def __enter__(self) -> "OfflineReader":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<OfflineReader {self.filename!r} {state}>"
