"""Vario wire protocol layer - command framing, LOCUS logs and serial transport."""

from .framing import (
    PmtkChecksumError,
    pmtk_checksum,
    build_pmtk_frame,
    serialize,
)
from .locus import (
    LocusDecoder,
    LocusSession,
    LocusRecord,
    LocusError,
    parse_locus_record,
    DEFAULT_RAW_FILENAME,
    DEFAULT_CSV_FILENAME,
)
from .transport import (
    VarioTransport,
    VarioTransportError,
    DEFAULT_BAUDRATE,
)

__all__ = [
    # Framing
    "PmtkChecksumError",
    "pmtk_checksum",
    "build_pmtk_frame",
    "serialize",
    # LOCUS
    "LocusDecoder",
    "LocusSession",
    "LocusRecord",
    "LocusError",
    "parse_locus_record",
    "DEFAULT_RAW_FILENAME",
    "DEFAULT_CSV_FILENAME",
    # Transport
    "VarioTransport",
    "VarioTransportError",
    "DEFAULT_BAUDRATE",
]
