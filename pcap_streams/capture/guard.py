"""Ownership of the file handle and capture context behind a stream."""

import io
import logging
import os
import threading
from typing import Any, BinaryIO, Optional, Tuple, Union

from ..constants import STDIO_PATH
from ..errors import CaptureStateError, ClosedError, ValidationError

logger = logging.getLogger(__name__)

StreamSource = Union[str, "os.PathLike[str]", int, BinaryIO]


def _is_reading(mode: str) -> bool:
    return "r" in mode and "+" not in mode


def validate_stream(stream: Any, mode: str) -> None:
    """
    Check that an already-open stream matches the direction of mode.

    Raises ValidationError for text streams, closed streams and streams
    opened in the wrong direction.
    """
    reading = _is_reading(mode)
    needed = "read" if reading else "write"
    if not hasattr(stream, needed):
        raise TypeError(
            f"Expected a path, file descriptor or binary stream, got {type(stream).__name__}"
        )
    if isinstance(stream, io.TextIOBase):
        raise ValidationError("Stream must be opened in binary mode, not text mode")
    if getattr(stream, "closed", False):
        raise ValidationError("Stream is already closed")

    stream_mode = getattr(stream, "mode", None)
    if isinstance(stream_mode, str):
        if "b" not in stream_mode:
            raise ValidationError(f"Stream must be opened in binary mode (got '{stream_mode}')")
        if reading and "r" not in stream_mode and "+" not in stream_mode:
            raise ValidationError(f"Stream must be opened for reading ('rb'), got '{stream_mode}'")
        if not reading and not any(c in stream_mode for c in "wax+"):
            raise ValidationError(f"Stream must be opened for writing ('wb'), got '{stream_mode}'")

    probe = getattr(stream, "readable" if reading else "writable", None)
    if callable(probe) and not probe():
        raise ValidationError(f"Stream is not {needed}able")


def open_stream(source: StreamSource, mode: str) -> Tuple[BinaryIO, str]:
    """
    Resolve a path, descriptor or stream into a binary file object.

    Returns (file object, display name). Path and descriptor failures
    propagate the OSError raised by the operating system.
    """
    if isinstance(source, bool):
        raise TypeError("Expected a path, file descriptor or binary stream, got bool")

    if source == STDIO_PATH:
        reading = _is_reading(mode)
        fd = 0 if reading else 1
        # Wrap the standard descriptor without taking ownership of it
        return os.fdopen(fd, mode, closefd=False), "<stdin>" if reading else "<stdout>"

    if isinstance(source, int):
        return os.fdopen(source, mode), f"<fd {source}>"

    if isinstance(source, (str, os.PathLike)):
        return open(source, mode), os.fspath(source)

    validate_stream(source, mode)
    return source, str(getattr(source, "name", "<stream>"))


class ResourceGuard:
    """
    Owns one file handle and at most one capture context.

    The capture context is only reachable while the guard is open. close()
    releases the context and then the file, and is safe to call any number
    of times. Owner teardown closes the guard if the caller never did.
    """

    _live_guards = 0
    _live_lock = threading.Lock()

    def __init__(self, fileobj: BinaryIO, name: Optional[str] = None):
        self._closed = False
        self._file = fileobj
        self._context: Any = None
        self.name = name if name is not None else str(getattr(fileobj, "name", "<stream>"))

        with ResourceGuard._live_lock:
            ResourceGuard._live_guards += 1

        logger.debug("Opened %s", self.name)

    @classmethod
    def open(cls, source: StreamSource, mode: str = "rb") -> "ResourceGuard":
        """Open source in mode and wrap the resulting handle."""
        fileobj, name = open_stream(source, mode)
        return cls(fileobj, name)

    @classmethod
    def open_count(cls) -> int:
        """Number of guards that have been opened and not yet closed."""
        with cls._live_lock:
            return cls._live_guards

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def file(self) -> BinaryIO:
        self._check_open()
        return self._file

    @property
    def context(self) -> Any:
        self._check_open()
        return self._context

    @property
    def has_context(self) -> bool:
        return not self._closed and self._context is not None

    def attach_context(self, context: Any) -> None:
        """Attach the capture context released together with the file."""
        self._check_open()
        if self._context is not None:
            raise CaptureStateError(f"A capture context is already attached to {self.name}")
        self._context = context

    def fileno(self) -> int:
        """Get the OS file descriptor of the guarded file."""
        self._check_open()
        return self._file.fileno()

    def close(self) -> None:
        """Release the capture context and then the file handle."""
        if getattr(self, "_closed", True):
            return
        self._closed = True

        context, self._context = self._context, None
        fileobj, self._file = self._file, None

        if context is not None:
            try:
                context.close()
            except (OSError, ValueError) as e:
                logger.warning("Error releasing capture context for %s: %s", self.name, e)

        try:
            fileobj.close()
        except OSError as e:
            logger.warning("Error closing %s: %s", self.name, e)

        with ResourceGuard._live_lock:
            ResourceGuard._live_guards -= 1

        logger.debug("Closed %s", self.name)

    def _check_open(self) -> None:
        if self._closed:
            raise ClosedError(f"I/O operation on closed stream '{self.name}'")

    def __enter__(self) -> "ResourceGuard":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __del__(self):
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<{type(self).__name__} {self.name!r} {state}>"
