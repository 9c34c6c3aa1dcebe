"""
BlueFlyVario telemetry decoder.

Consumes the vario's output one line at a time and keeps the last known
device state. Lines are space separated, keyed by their first token:

    PRS 18BCD                   pressure in Pa (hex)
    TMP 215                     temperature in 1/10 degC
    BAT 1004                    battery in mV (hex)
    BFV 12 1                    hardware version (major [minor])
    BST BFK BFL BFP ...         parameter codes, in device order
    SET 0 100 35 1 ...          parameter values (first value is the
                                reset-to-defaults flag and is skipped)

``$PMTK`` lines come from the GPS module and are handed to the LOCUS decoder.

Change notification is poll based: decoding a field sets its changed flag
and reading the field through its ``read_*`` accessor clears it.

The decoder is not thread-safe; callers sharing one instance must serialize
access to it.
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from bluefly_vario.core.values import (
    CommandState,
    new_command_states,
    new_parameter_states,
)
from bluefly_vario.models.registry import get_parameter_name
from bluefly_vario.protocol.locus import LocusDecoder

logger = logging.getLogger(__name__)

# Standard sea level pressure (101.325 kPa)
DEFAULT_QNH = 101325.0

# International barometric formula constants
ALTITUDE_SCALE_M = 44330.0
ALTITUDE_EXPONENT = 0.190295

PMTK_PREFIX = "$PMTK"

# Device numbers: plain digits with an optional sign, no separators or spaces
_HEX_TOKEN = re.compile(r"-?[0-9A-Fa-f]+\Z")
_INT_TOKEN = re.compile(r"-?[0-9]+\Z")
_DECIMAL_TOKEN = re.compile(r"-?[0-9]+(\.[0-9]+)?\Z")

# Device messages that carry nothing the decoder tracks
KNOWN_CHATTER = frozenset({
    "MS5611",       # sensor calibration dump (C1-C6, D1, D2)
    "Batt",         # 'Batt <mV>', battery in human form
    "No",           # 'No movement from 101.7m'
    "Audio",        # 'Audio and Buzzer Toggle Off'
    "Bluetooth",    # 'Bluetooth Connected'
    "Shutdown...",  # vario switching off
})


class TelemetryDecodeError(ValueError):
    """Raised when a telemetry line carries a malformed value."""


@dataclass(frozen=True)
class DeviceSnapshot:
    """Point-in-time copy of the decoded device state."""
    qnh: float
    altitude: float
    temperature: float
    battery: float
    hardware_version: str


def _parse_hex(token: str, label: str) -> int:
    if not _HEX_TOKEN.match(token):
        raise TelemetryDecodeError(f"Invalid {label} {token!r}: not hex")
    value = int(token, 16)
    try:
        float(value)
    except OverflowError:
        raise TelemetryDecodeError(f"Invalid {label} {token!r}: out of range") from None
    return value


def _parse_int(token: str, label: str) -> int:
    if not _INT_TOKEN.match(token):
        raise TelemetryDecodeError(f"Invalid {label} {token!r}: not an integer")
    return int(token)


def _parse_float(token: str, label: str) -> float:
    if not _DECIMAL_TOKEN.match(token):
        raise TelemetryDecodeError(f"Invalid {label} {token!r}: not a number")
    value = float(token)
    if not math.isfinite(value):
        raise TelemetryDecodeError(f"Invalid {label} {token!r}: out of range")
    return value


def pressure_to_altitude(pressure: float, qnh: float = DEFAULT_QNH) -> float:
    """
    Convert static pressure to altitude above the QNH reference.

    Args:
        pressure: Measured pressure in Pa
        qnh: Reference (sea level) pressure in Pa

    Returns:
        Altitude in metres.
    """
    return ALTITUDE_SCALE_M * (1.0 - math.pow(pressure / qnh, ALTITUDE_EXPONENT))


def split_tokens(line: str) -> List[str]:
    """Split a line on single spaces, dropping trailing empty tokens."""
    tokens = line.split(" ")
    while tokens and tokens[-1] == "":
        tokens.pop()
    return tokens


class TelemetryDecoder:
    """
    Stateful decoder for BlueFlyVario output.

    Example:
        decoder = TelemetryDecoder()
        decoder.decode_line("PRS 18BCD")
        if decoder.altitude_changed:
            print(decoder.read_altitude())  # 0.0
    """

    def __init__(
        self,
        qnh: float = DEFAULT_QNH,
        locus_decoder: Optional[LocusDecoder] = None,
    ):
        """
        Initialize the decoder.

        Args:
            qnh: Reference pressure in Pa for altitude calculation
            locus_decoder: Receives ``$PMTK`` lines. Defaults to one writing
                into the current directory.
        """
        self._qnh = DEFAULT_QNH
        self.qnh = qnh
        self.locus = locus_decoder if locus_decoder is not None else LocusDecoder()

        self._commands = new_command_states()
        self._parameters = new_parameter_states()

        self._altitude = math.nan
        self._temperature = math.nan
        self._battery = math.nan
        self._hardware_version = ""

        self._parameter_keys: Optional[List[str]] = None
        self._parameter_values: Optional[List[int]] = None

        self._altitude_changed = False
        self._temperature_changed = False
        self._battery_changed = False
        self._hardware_version_changed = False
        self._parameters_changed = False

        self._handlers: Dict[str, Callable[[List[str]], None]] = {
            "PRS": self._decode_pressure,
            "BFV": self._decode_hardware_version,
            "TMP": self._decode_temperature,
            "BAT": self._decode_battery,
            "BST": self._decode_parameter_keys,
            "SET": self._decode_parameter_values,
        }

    def __enter__(self) -> "TelemetryDecoder":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Close any LOCUS dump left open by the device."""
        self.locus.close()

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def qnh(self) -> float:
        """Reference pressure (Pa) used for altitude."""
        return self._qnh

    @qnh.setter
    def qnh(self, value: float) -> None:
        value = float(value)
        if not math.isfinite(value) or value <= 0:
            raise ValueError(f"QNH must be a positive pressure in Pa, got {value}")
        self._qnh = value

    # ------------------------------------------------------------------
    # Registry access
    # ------------------------------------------------------------------

    @property
    def commands(self) -> Dict[str, CommandState]:
        """Command states by name, sorted."""
        return self._commands

    @property
    def parameters(self) -> Dict[str, CommandState]:
        """Parameter states by name, sorted."""
        return self._parameters

    def command(self, name: str) -> CommandState:
        """Look up a command state (KeyError if unknown)."""
        return self._commands[name]

    def parameter(self, name: str) -> CommandState:
        """Look up a parameter state (KeyError if unknown)."""
        return self._parameters[name]

    # ------------------------------------------------------------------
    # Decoding
    # ------------------------------------------------------------------

    def decode_line(self, line: str) -> None:
        """
        Decode one line from the vario.

        On success the matching field is updated and its changed flag set.
        Unknown and informational lines are ignored.

        Args:
            line: One line of device output

        Raises:
            TelemetryDecodeError: If the line carries a malformed value.
                The field it targets keeps its previous value.
            LocusError: If a ``$PMTKLOX`` line cannot be decoded or written.
        """
        line = line.rstrip("\r\n")

        # PMTK sentences are comma separated and never match a token below
        if line.startswith(PMTK_PREFIX):
            self.locus.decode_line(line)
            return

        tokens = split_tokens(line)
        if len(tokens) < 2:
            return

        key = tokens[0]
        handler = self._handlers.get(key)
        if handler is not None:
            logger.debug(f"Decoding {key}: {line!r}")
            handler(tokens)
        elif key in KNOWN_CHATTER:
            logger.debug(f"Device message: {line!r}")
        else:
            logger.debug(f"Ignoring unknown line: {line!r}")

    def _decode_pressure(self, tokens: List[str]) -> None:
        pressure = _parse_hex(tokens[1], "pressure")
        if pressure < 0:
            raise TelemetryDecodeError(f"Invalid pressure {tokens[1]!r}: negative")
        altitude = pressure_to_altitude(pressure, self._qnh)
        if altitude != self._altitude:
            self._altitude = altitude
            self._altitude_changed = True

    def _decode_hardware_version(self, tokens: List[str]) -> None:
        if len(tokens) > 2:
            self._hardware_version = f"{tokens[1]}.{tokens[2]}"
        else:
            self._hardware_version = tokens[1]
        self._hardware_version_changed = True

    def _decode_temperature(self, tokens: List[str]) -> None:
        self._temperature = _parse_float(tokens[1], "temperature") / 10.0
        self._temperature_changed = True

    def _decode_battery(self, tokens: List[str]) -> None:
        self._battery = _parse_hex(tokens[1], "battery") / 1000.0
        self._battery_changed = True

    def _decode_parameter_keys(self, tokens: List[str]) -> None:
        self._parameter_keys = tokens[1:]

    def _decode_parameter_values(self, tokens: List[str]) -> None:
        # Without BST there is nothing to pair the values with
        if self._parameter_keys is None:
            logger.debug("SET received before BST, ignoring")
            return

        # tokens[1] is the reset-to-defaults flag ($RSX sets it), not a setting
        values = [_parse_int(token, "parameter value") for token in tokens[2:]]

        self._parameter_values = values
        self._reconcile_parameters()

    def _reconcile_parameters(self) -> None:
        """Copy buffered device values into the parameter states, by position."""
        keys, values = self._parameter_keys, self._parameter_values
        if keys is None or values is None:
            return
        if len(keys) != len(values):
            logger.debug(f"BST/SET length mismatch ({len(keys)} != {len(values)}), ignoring")
            return

        for code, value in zip(keys, values):
            name = get_parameter_name(code)
            if name is None:
                logger.warning(f"Device reported unknown parameter code {code!r}")
                continue
            if not self._parameters[name].set_from_parsed(value):
                logger.warning(f"Device reported invalid value {value} for {name}")
        self._parameters_changed = True

    # ------------------------------------------------------------------
    # Reset
    # ------------------------------------------------------------------

    def reset_all_values(self) -> None:
        """
        Forget everything learned from the device.

        Clears the BST/SET buffers, the decoded fields and every parameter
        value. Pending changed flags are left as they are.
        """
        self._parameter_keys = None
        self._parameter_values = None
        self._altitude = math.nan
        self._temperature = math.nan
        self._battery = math.nan
        self._hardware_version = ""
        for state in self._parameters.values():
            state.reset()

    # ------------------------------------------------------------------
    # Accessors (read-consumes the changed flag)
    # ------------------------------------------------------------------

    def read_altitude(self) -> float:
        """Return altitude in metres (NaN if unknown) and clear its flag."""
        self._altitude_changed = False
        return self._altitude

    def read_temperature(self) -> float:
        """Return temperature in degC (NaN if unknown) and clear its flag."""
        self._temperature_changed = False
        return self._temperature

    def read_battery(self) -> float:
        """Return battery voltage in V (NaN if unknown) and clear its flag."""
        self._battery_changed = False
        return self._battery

    def read_hardware_version(self) -> str:
        """Return the hardware version ("" if unknown) and clear its flag."""
        self._hardware_version_changed = False
        return self._hardware_version

    def check_parameters_changed(self) -> bool:
        """Return whether parameters changed since the last check, and clear it."""
        changed = self._parameters_changed
        self._parameters_changed = False
        return changed

    @property
    def altitude_changed(self) -> bool:
        return self._altitude_changed

    @property
    def temperature_changed(self) -> bool:
        return self._temperature_changed

    @property
    def battery_changed(self) -> bool:
        return self._battery_changed

    @property
    def hardware_version_changed(self) -> bool:
        return self._hardware_version_changed

    @property
    def parameters_changed(self) -> bool:
        return self._parameters_changed

    def snapshot(self) -> DeviceSnapshot:
        """Copy of the current state. Does not clear any changed flag."""
        return DeviceSnapshot(
            qnh=self._qnh,
            altitude=self._altitude,
            temperature=self._temperature,
            battery=self._battery,
            hardware_version=self._hardware_version,
        )
