"""
BlueFlyVario - command codec and telemetry decoder for the BlueFlyVario
barometric variometer.

Encodes commands and parameter writes into the vario's wire frames and
decodes its line output (pressure, temperature, battery, settings and
GPS LOCUS dumps).
"""

__version__ = "0.1.0"

from bluefly_vario.core import CommandState
from bluefly_vario.protocol import LocusDecoder, VarioTransport, serialize
from bluefly_vario.telemetry import TelemetryDecoder
from bluefly_vario.config import VarioConfig

__all__ = [
    "CommandState",
    "LocusDecoder",
    "VarioTransport",
    "serialize",
    "TelemetryDecoder",
    "VarioConfig",
    "__version__",
]
