"""
Session configuration.

Collects the defaults shared by the CLI and library callers: which port to
open, the QNH used for altitude and where LOCUS dumps are written.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from bluefly_vario.protocol.locus import (
    DEFAULT_CSV_FILENAME,
    DEFAULT_RAW_FILENAME,
    LocusDecoder,
)
from bluefly_vario.protocol.transport import (
    DEFAULT_BAUDRATE,
    DEFAULT_TIMEOUT,
    VarioTransport,
)
from bluefly_vario.telemetry import DEFAULT_QNH, TelemetryDecoder


@dataclass
class VarioConfig:
    """
    Configuration for one vario session.

    Attributes:
        port: Serial port of the vario (None until chosen)
        baudrate: Serial baud rate
        timeout: Serial read/write timeout in seconds
        qnh: Reference pressure in Pa for altitude
        locus_directory: Where LOCUS dumps are written
        locus_raw_filename: Raw sentence log name
        locus_csv_filename: CSV fix log name
    """
    port: Optional[str] = None
    baudrate: int = DEFAULT_BAUDRATE
    timeout: float = DEFAULT_TIMEOUT
    qnh: float = DEFAULT_QNH
    locus_directory: Path = Path(".")
    locus_raw_filename: str = DEFAULT_RAW_FILENAME
    locus_csv_filename: str = DEFAULT_CSV_FILENAME

    def build_locus_decoder(self) -> LocusDecoder:
        return LocusDecoder(
            directory=self.locus_directory,
            raw_filename=self.locus_raw_filename,
            csv_filename=self.locus_csv_filename,
        )

    def build_decoder(self) -> TelemetryDecoder:
        """Create a telemetry decoder using this configuration."""
        return TelemetryDecoder(qnh=self.qnh, locus_decoder=self.build_locus_decoder())

    def build_transport(self) -> VarioTransport:
        """
        Create a (closed) transport for the configured port.

        Raises:
            ValueError: If no port is configured.
        """
        if not self.port:
            raise ValueError("No serial port configured")
        return VarioTransport(self.port, baudrate=self.baudrate, timeout=self.timeout)

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "port": self.port,
            "baudrate": self.baudrate,
            "timeout": self.timeout,
            "qnh": self.qnh,
            "locus_directory": str(self.locus_directory),
            "locus_raw_filename": self.locus_raw_filename,
            "locus_csv_filename": self.locus_csv_filename,
        }
