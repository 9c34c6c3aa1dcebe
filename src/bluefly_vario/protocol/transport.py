"""
BlueFlyVario Serial Transport

Line-oriented serial link to the vario (USB serial adapter or a Bluetooth
SPP port). The vario talks plain ASCII, one message per line.

This module provides:
- Serial port initialization and configuration
- Sending serialized command frames
- Reading telemetry lines
"""

import logging
from typing import Iterator, Optional

try:
    import serial
except ImportError:
    raise ImportError("PySerial required: pip install pyserial")

from bluefly_vario.protocol.framing import PMTK_TERMINATOR

logger = logging.getLogger(__name__)

DEFAULT_BAUDRATE = 57600
DEFAULT_TIMEOUT = 1.0
LINE_TERMINATOR = "\r\n"


class VarioTransportError(Exception):
    """Base exception for transport layer errors"""
    pass


class VarioTransport:
    """
    Serial transport for the BlueFlyVario.

    Example:
        with VarioTransport(port="/dev/rfcomm0") as transport:
            transport.send("$BST*")
            for line in transport.iter_lines():
                decoder.decode_line(line)
    """

    def __init__(
        self,
        port: str,
        baudrate: int = DEFAULT_BAUDRATE,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """
        Initialize transport layer.

        Args:
            port: Serial port (e.g., "/dev/ttyUSB0", "/dev/rfcomm0", "COM3")
            baudrate: Serial baud rate (default 57600)
            timeout: Read/write timeout in seconds (default 1.0)
        """
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout
        self.ser: Optional[serial.Serial] = None
        # Bytes of a line cut short by a read timeout
        self._partial = b""

    def __enter__(self) -> "VarioTransport":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return bool(self.ser and self.ser.is_open)

    def open(self) -> None:
        """
        Open the serial port.

        Raises:
            VarioTransportError: If port cannot be opened
        """
        try:
            self.ser = serial.Serial(
                port=self.port,
                baudrate=self.baudrate,
                bytesize=8,
                parity='N',
                stopbits=1,
                timeout=self.timeout,
                write_timeout=self.timeout,
            )
            self.ser.reset_input_buffer()
            self._partial = b""
            logger.debug(f"Opened {self.port} at {self.baudrate} bps (timeout={self.timeout}s)")
        except serial.SerialException as e:
            raise VarioTransportError(f"Cannot open port {self.port}: {e}") from e

    def close(self) -> None:
        """Close serial port."""
        if self.ser and self.ser.is_open:
            self.ser.close()
            logger.debug(f"Closed {self.port}")

    def send(self, frame: str, terminator: Optional[str] = None) -> None:
        """
        Send one serialized frame.

        PMTK frames already end with \\r\\n; other frames get
        ``terminator`` appended (default \\r\\n, pass "" for none).

        Raises:
            VarioTransportError: If the port is closed or the write fails
        """
        if not self.is_open:
            raise VarioTransportError("Serial port not open")

        if terminator is None:
            terminator = "" if frame.endswith(PMTK_TERMINATOR) else LINE_TERMINATOR
        data = (frame + terminator).encode("ascii")

        try:
            written = self.ser.write(data)
            self.ser.flush()
        except serial.SerialException as e:
            raise VarioTransportError(f"Write failed: {e}") from e
        if written is not None and written != len(data):
            raise VarioTransportError(f"Incomplete write: sent {written}/{len(data)} bytes")
        logger.debug(f">>> {data!r}")

    def read_line(self) -> Optional[str]:
        """
        Read one complete line.

        A read that times out mid-line keeps the partial bytes and returns
        None; they are prefixed to the next read.

        Returns:
            Line without its terminator, or None if no complete line arrived
            before the timeout.

        Raises:
            VarioTransportError: If the port is closed or the read fails
        """
        if not self.is_open:
            raise VarioTransportError("Serial port not open")

        try:
            raw = self.ser.readline()
        except serial.SerialException as e:
            raise VarioTransportError(f"Read failed: {e}") from e

        if not raw:
            return None

        raw = self._partial + raw
        if not raw.endswith(b"\n"):
            self._partial = raw
            logger.debug(f"Partial line buffered: {raw!r}")
            return None
        self._partial = b""

        line = raw.decode("ascii", errors="replace").rstrip("\r\n")
        logger.debug(f"<<< {line!r}")
        return line

    def iter_lines(self, max_lines: Optional[int] = None) -> Iterator[str]:
        """
        Yield lines as they arrive, skipping read timeouts.

        Args:
            max_lines: Stop after this many lines (None = forever)
        """
        count = 0
        while max_lines is None or count < max_lines:
            line = self.read_line()
            if line is None:
                continue
            count += 1
            yield line
