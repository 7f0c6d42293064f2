"""
Serial Channel - The single owner of the hardware serial port.

Handles:
- Opening the port once (50 ms timeouts, DTR on, RTS off)
- Best-effort line writes: at most once, no retry, no queue
- Degrading to "detect but do not transmit" when the port cannot be opened
- One owning channel per process; later channels defer to it
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Optional

import serial

from .config import DEFAULT_BAUD_RATE, DEFAULT_PORT, DEFAULT_TIMEOUT_S, RelayConfig

logger = logging.getLogger(__name__)


@dataclass
class ChannelStats:
    """Statistics about the serial channel."""
    is_open: bool = False
    open_time: Optional[float] = None
    open_failures: int = 0
    messages_sent: int = 0
    messages_dropped: int = 0
    last_send_time: Optional[float] = None
    last_error: Optional[str] = None


class SerialChannel:
    """
    Serial transport for newline-terminated ASCII lines.

    The first channel constructed becomes the process owner of the port.
    A channel constructed while an owner is alive is deferred: it never
    opens a handle, and its sends go through the owner. Closing the owner
    releases ownership.

    Sends and opens may block for up to ``timeout_s``. Writes are
    serialized with a lock, so the channel can be shared across threads.
    """

    NEWLINE = "\n"

    _owner: Optional["SerialChannel"] = None
    _owner_lock = threading.Lock()

    def __init__(
        self,
        port: str = DEFAULT_PORT,
        baud_rate: int = DEFAULT_BAUD_RATE,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ):
        """
        Initialize the channel (does not open the port).

        Args:
            port: Serial device name or pyserial URL (e.g. COM8, /dev/ttyUSB0, loop://)
            baud_rate: Baud rate
            timeout_s: Read and write timeout in seconds
        """
        self.port = port
        self.baud_rate = baud_rate
        self.timeout_s = timeout_s

        self._serial: Optional[serial.SerialBase] = None
        self._closed = False
        self._lock = threading.Lock()
        self.stats = ChannelStats()

        with SerialChannel._owner_lock:
            if SerialChannel._owner is None:
                SerialChannel._owner = self
                self._deferred_to: Optional[SerialChannel] = None
            else:
                self._deferred_to = SerialChannel._owner
                logger.warning(
                    f"[Serial] Channel already owned ({self._deferred_to.port}), "
                    f"deferring {port} to it"
                )

    @classmethod
    def from_config(cls, config: RelayConfig) -> "SerialChannel":
        """Create a channel from relay configuration."""
        return cls(port=config.port, baud_rate=config.baud_rate, timeout_s=config.timeout_s)

    @property
    def deferred(self) -> bool:
        """True if this channel defers to another owner."""
        return self._deferred_to is not None

    @property
    def owner(self) -> "SerialChannel":
        """The channel that owns the physical port."""
        return self._deferred_to if self._deferred_to is not None else self

    @property
    def is_open(self) -> bool:
        """Whether the port is open and writable."""
        if self._deferred_to is not None:
            return self._deferred_to.is_open
        return self._serial is not None and self._serial.is_open

    def open(self) -> bool:
        """
        Open the serial port.

        Failures are logged; the channel stays closed and every later
        send becomes a no-op. There is no reconnection.

        Returns:
            True if the port is open after the call
        """
        if self._deferred_to is not None:
            logger.debug(f"[Serial] {self.port} deferred, not opening")
            return self._deferred_to.is_open

        if self._closed:
            logger.debug(f"[Serial] {self.port} already closed, not reopening")
            return False

        if self.is_open:
            return True

        try:
            port = serial.serial_for_url(self.port, do_not_open=True)
            port.baudrate = self.baud_rate
            port.timeout = self.timeout_s
            port.write_timeout = self.timeout_s
            port.dtr = True
            port.rts = False
            port.open()
        except Exception as e:
            self.stats.open_failures += 1
            self.stats.last_error = str(e)
            logger.error(f"[Serial] Open failed: {e}")
            return False

        self._serial = port
        self.stats.is_open = True
        self.stats.open_time = time.time()
        logger.info(f"[Serial] Opened {self.port}@{self.baud_rate}")
        return True

    def send(self, line: str) -> bool:
        """
        Write one line followed by a newline.

        Fire-and-forget: on timeout, I/O error or non-ASCII text the line is
        dropped with a warning. A closed channel drops silently.

        Args:
            line: ASCII line without trailing newline

        Returns:
            True if the line was written, False if it was dropped
        """
        if self._deferred_to is not None:
            return self._deferred_to.send(line)

        with self._lock:
            if not self.is_open:
                self.stats.messages_dropped += 1
                return False

            try:
                data = (line + self.NEWLINE).encode("ascii")
            except UnicodeEncodeError as e:
                self.stats.messages_dropped += 1
                self.stats.last_error = str(e)
                logger.warning(f"[Serial] Dropping non-ASCII line {line!r}")
                return False

            try:
                self._serial.write(data)
            except serial.SerialTimeoutException as e:
                self.stats.messages_dropped += 1
                self.stats.last_error = str(e)
                logger.warning(f"[Serial] Write timed out: {e}")
                return False
            except (serial.SerialException, OSError) as e:
                self.stats.messages_dropped += 1
                self.stats.last_error = str(e)
                logger.warning(f"[Serial] Write failed: {e}")
                return False

            self.stats.messages_sent += 1
            self.stats.last_send_time = time.time()
            return True

    def close(self) -> None:
        """
        Close the port if open and release ownership. Never raises.

        A closed channel cannot be reopened; construct a new one instead.
        """
        self._closed = True
        if self._deferred_to is not None:
            self._deferred_to = None
            return

        with self._lock:
            try:
                if self._serial is not None and self._serial.is_open:
                    self._serial.close()
                    logger.info(f"[Serial] Closed {self.port}")
            except Exception as e:
                logger.debug(f"[Serial] Close error ignored: {e}")
            finally:
                self._serial = None
                self.stats.is_open = False

        with SerialChannel._owner_lock:
            if SerialChannel._owner is self:
                SerialChannel._owner = None

    def get_stats(self) -> dict:
        """Get channel statistics."""
        return {
            "port": self.port,
            "baud_rate": self.baud_rate,
            "deferred": self.deferred,
            "is_open": self.is_open,
            "open_time": self.stats.open_time,
            "open_failures": self.stats.open_failures,
            "messages_sent": self.stats.messages_sent,
            "messages_dropped": self.stats.messages_dropped,
            "last_send_time": self.stats.last_send_time,
            "last_error": self.stats.last_error,
        }

    def __enter__(self) -> "SerialChannel":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
