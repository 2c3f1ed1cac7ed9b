"""Exception types raised by pcap-streams."""

from typing import Optional


class PcapError(Exception):
    """Base exception for all capture stream errors."""
    pass


class ValidationError(PcapError, ValueError):
    """Raised when constructor arguments are invalid."""
    pass


class ClosedError(PcapError, ValueError):
    """Raised when an operation is attempted on a closed resource."""
    pass


class SourceClosedError(ClosedError):
    """Raised when duplicating from a reader that has no open capture context."""
    pass


class CaptureStateError(PcapError, RuntimeError):
    """Raised when a capture object is driven through an invalid transition."""
    pass


class CaptureOpenError(PcapError):
    """Raised when a capture context cannot be created."""
    pass


class InterfaceOpenError(CaptureOpenError):
    """Raised when a network interface cannot be opened for live capture."""

    def __init__(self, interface: str, reason: str):
        self.interface = interface
        self.reason = reason
        super().__init__(f"Could not open interface '{interface}': {reason}")


class OutputOpenError(CaptureOpenError):
    """Raised when the live capture destination cannot be opened."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Could not open output file '{path}': {reason}")


class TruncatedCaptureError(PcapError):
    """Raised when a capture file ends in the middle of a record."""
    pass


class EnumerationError(PcapError):
    """Raised when the host network interfaces cannot be listed."""
    pass


class CaptureLoopError(PcapError):
    """Raised when the live capture loop terminates abnormally."""

    def __init__(self, interface: str, reason: str, packets_captured: Optional[int] = None):
        self.interface = interface
        self.reason = reason
        self.packets_captured = packets_captured
        super().__init__(f"Capture on '{interface}' failed: {reason}")
