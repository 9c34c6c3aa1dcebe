"""
PMTK LOCUS log decoder.

The GPS module's LOCUS flash log is dumped (after ``$PMTK622,0*28``) as a
sequence of ``$PMTKLOX`` sentences:

    $PMTKLOX,0,<count>*CS                   start of dump
    $PMTKLOX,1,<seq>,<hex>,<hex>,...*CS     data, hex-encoded records
    $PMTKLOX,2*CS                           end of dump

Each record is 16 bytes (32 hex characters spread over the data fields),
little-endian:

    [ utc (4) | fix (1) | latitude f32 (4) | longitude f32 (4) | height (2) | checksum (1) ]

A dump is written to two files: the raw sentences (``locus_record.mtk``) and
a CSV of the 3D fixes (``locus_record.csv``).
"""

import csv
import logging
import struct
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

logger = logging.getLogger(__name__)

SENTENCE_ID = "$PMTKLOX"
MODE_BEGIN = "0"
MODE_DATA = "1"
MODE_END = "2"

DATA_FIELD_START = 3
RECORD_SIZE = 16
RECORD_HEX_LENGTH = RECORD_SIZE * 2
RECORD_FORMAT = "<IBffH"  # 15 bytes, trailing checksum byte ignored
FIX_3D = 2

DEFAULT_RAW_FILENAME = "locus_record.mtk"
DEFAULT_CSV_FILENAME = "locus_record.csv"


class LocusError(Exception):
    """Errors raised while decoding a LOCUS dump or writing its files."""


@dataclass(frozen=True)
class LocusRecord:
    """One decoded LOCUS fix."""
    timestamp: int
    fix: int
    latitude: float
    longitude: float
    height: int

    @property
    def utc_time(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc)

    @property
    def iso_time(self) -> str:
        """UTC time as ISO 8601 (e.g. "2021-05-01T10:30:00Z")."""
        return self.utc_time.strftime("%Y-%m-%dT%H:%M:%SZ")

    def to_csv_row(self) -> List[str]:
        """Row: timestamp, iso time, fix, latitude, longitude, height."""
        return [
            str(self.timestamp),
            self.iso_time,
            str(self.fix),
            f"{self.latitude:.6f}",
            f"{self.longitude:.6f}",
            str(self.height),
        ]


def parse_locus_record(data: bytes) -> LocusRecord:
    """
    Parse one binary LOCUS record.

    Args:
        data: At least 15 record bytes

    Returns:
        Decoded LocusRecord

    Raises:
        LocusError: If the record is too short.
    """
    size = struct.calcsize(RECORD_FORMAT)
    if len(data) < size:
        raise LocusError(f"LOCUS record too short: {len(data)} < {size} bytes")
    timestamp, fix, latitude, longitude, height = struct.unpack_from(RECORD_FORMAT, data)
    return LocusRecord(timestamp, fix, latitude, longitude, height)


def split_records(fields: List[str]) -> List[bytes]:
    """
    Join hex data fields and cut them into whole records.

    An incomplete trailing record is dropped.

    Raises:
        LocusError: If the fields are not valid hex.
    """
    records: List[bytes] = []
    pending = ""
    for field in fields:
        pending += field.strip()
        while len(pending) >= RECORD_HEX_LENGTH:
            chunk, pending = pending[:RECORD_HEX_LENGTH], pending[RECORD_HEX_LENGTH:]
            try:
                records.append(bytes.fromhex(chunk))
            except ValueError:
                raise LocusError(f"Malformed LOCUS hex: {chunk!r}") from None
    if pending:
        logger.debug(f"Ignoring {len(pending)} trailing hex characters")
    return records


def split_sentence(line: str) -> List[str]:
    """Drop the ``*checksum`` suffix and split a sentence into fields."""
    return line.split("*", 1)[0].split(",")


class LocusSession:
    """
    The two output files of one LOCUS dump.

    Both files are opened by the constructor and closed by ``close()``;
    use it as a context manager to guarantee closure.

    Example:
        with LocusSession("logs") as session:
            session.write_raw(line)
            session.write_record(record)
    """

    def __init__(
        self,
        directory: Union[str, Path] = ".",
        raw_filename: str = DEFAULT_RAW_FILENAME,
        csv_filename: str = DEFAULT_CSV_FILENAME,
    ):
        directory = Path(directory)
        self.raw_path = directory / raw_filename
        self.csv_path = directory / csv_filename
        self.records_written = 0

        try:
            self._raw_file = open(self.raw_path, "w", encoding="ascii", errors="replace")
        except OSError as e:
            raise LocusError(f"Cannot open {self.raw_path}: {e}") from e
        try:
            self._csv_file = open(self.csv_path, "w", encoding="ascii", newline="")
        except OSError as e:
            self._raw_file.close()
            raise LocusError(f"Cannot open {self.csv_path}: {e}") from e

        self._csv_writer = csv.writer(self._csv_file, lineterminator="\n")
        logger.debug(f"Opened LOCUS session: {self.raw_path}, {self.csv_path}")

    def __enter__(self) -> "LocusSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._raw_file.closed and self._csv_file.closed

    def write_raw(self, line: str) -> None:
        """Append one sentence to the raw log."""
        try:
            self._raw_file.write(line + "\n")
        except (OSError, ValueError) as e:
            raise LocusError(f"Cannot write {self.raw_path}: {e}") from e

    def write_record(self, record: LocusRecord) -> None:
        """Append one record to the CSV."""
        try:
            self._csv_writer.writerow(record.to_csv_row())
        except (OSError, ValueError) as e:
            raise LocusError(f"Cannot write {self.csv_path}: {e}") from e
        self.records_written += 1

    def close(self) -> None:
        """Close both files. Safe to call more than once."""
        errors = []
        for handle in (self._raw_file, self._csv_file):
            try:
                handle.close()
            except OSError as e:
                errors.append(f"{handle.name}: {e}")
        if errors:
            raise LocusError("Cannot close LOCUS files: " + "; ".join(errors))
        logger.debug(f"Closed LOCUS session ({self.records_written} fixes)")


class LocusDecoder:
    """
    Decodes ``$PMTKLOX`` sentences into LOCUS files.

    A session is opened by the begin sentence, fed by data sentences and
    closed by the end sentence. ``close()`` tears down an abandoned session.

    Example:
        with LocusDecoder(directory="logs") as decoder:
            for line in lines:
                decoder.decode_line(line)
    """

    def __init__(
        self,
        directory: Union[str, Path] = ".",
        raw_filename: str = DEFAULT_RAW_FILENAME,
        csv_filename: str = DEFAULT_CSV_FILENAME,
    ):
        self.directory = Path(directory)
        self.raw_filename = raw_filename
        self.csv_filename = csv_filename
        self._session: Optional[LocusSession] = None

    def __enter__(self) -> "LocusDecoder":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def session(self) -> Optional[LocusSession]:
        """The open session, or None between dumps."""
        return self._session

    def decode_line(self, line: str) -> List[LocusRecord]:
        """
        Process one ``$PMTKLOX`` sentence.

        Args:
            line: Complete sentence, with or without its checksum

        Returns:
            Records decoded from a data sentence (all fix types); empty
            for begin/end sentences and foreign lines.

        Raises:
            LocusError: On malformed hex, a data/end sentence without a
                begin, or file errors.
        """
        fields = split_sentence(line)
        if fields[0] != SENTENCE_ID or len(fields) < 2:
            logger.debug(f"Not a LOCUS sentence: {line!r}")
            return []

        mode = fields[1]
        if mode == MODE_BEGIN:
            self._begin(line)
            return []
        if mode == MODE_DATA:
            return self._data(line, fields[DATA_FIELD_START:])
        if mode == MODE_END:
            self._end(line)
            return []

        logger.debug(f"Unknown LOCUS mode {mode!r}")
        return []

    def close(self) -> None:
        """Close any open session."""
        session, self._session = self._session, None
        if session is not None:
            session.close()

    def _require_session(self) -> LocusSession:
        if self._session is None:
            raise LocusError("LOCUS data received before the start of a dump")
        return self._session

    def _begin(self, line: str) -> None:
        if self._session is not None:
            logger.warning("New LOCUS dump started before the previous one ended")
            self.close()
        self._session = LocusSession(self.directory, self.raw_filename, self.csv_filename)
        self._session.write_raw(line)

    def _data(self, line: str, fields: List[str]) -> List[LocusRecord]:
        session = self._require_session()
        records = [parse_locus_record(data) for data in split_records(fields)]

        session.write_raw(line)
        for record in records:
            if record.fix == FIX_3D:
                session.write_record(record)
        return records

    def _end(self, line: str) -> None:
        session = self._require_session()
        try:
            session.write_raw(line)
        finally:
            self.close()
