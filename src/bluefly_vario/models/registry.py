"""
Command and parameter registry for the BlueFlyVario.

Provides a single source of truth for:
- Commands (wire actions with no persisted value)
- Parameters (commands carrying a typed, range-bounded integer value)
- The reverse index from wire code to parameter name

Both tables are built once on module load and never mutated afterwards.
Runtime values live in ``CommandState`` objects (see ``core.values``).

Usage:
    from bluefly_vario.models import (
        list_parameters, get_parameter, get_parameter_name
    )

    # All parameter names, sorted
    names = list_parameters()

    # Spec for a single parameter
    spec = get_parameter("liftThreshold")

    # Resolve a code reported by the device
    name = get_parameter_name("BFL")
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Union

MAX_WIRE_VALUE = 65535


class ParameterType(Enum):
    """How a parameter's stored integer maps to a user-facing value."""
    INT = "int"                 # value as-is
    DOUBLE = "double"           # value / factor
    INT_OFFSET = "int_offset"   # value + factor
    BOOLEAN = "boolean"         # value != 0
    INT_LIST = "int_list"       # reserved, no current parameter


@dataclass(frozen=True)
class CommandSpec:
    """
    Identity and grammar of one device command.

    Attributes:
        code: Wire token (e.g. "BST", "PMTK184,1")
        description: Human-readable description
        accepts_arguments: Whether free-form argument text follows the code
        default_arguments: Argument text used when the caller supplies none
        min_hardware_version: Oldest firmware supporting this command.
            Advisory only, never enforced by the codec.
    """
    code: str
    description: str
    accepts_arguments: bool = False
    default_arguments: Optional[str] = None
    min_hardware_version: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.code or not self.description:
            raise ValueError("Command code and description must be non-empty")
        if self.accepts_arguments and self.default_arguments is None:
            raise ValueError(f"{self.code}: commands taking arguments need default_arguments")

    @property
    def is_pmtk(self) -> bool:
        """Return True for GPS (PMTK) sub-protocol commands."""
        return self.code.startswith("PMTK")

    @property
    def has_parameters(self) -> bool:
        return False


@dataclass(frozen=True)
class ParameterSpec(CommandSpec):
    """
    A command that carries a typed, range-bounded integer value.

    The device always stores and transmits the integer; ``factor`` and
    ``value_type`` describe how it converts to the value a user sees.
    """
    value_type: ParameterType = ParameterType.INT
    min_value: int = 0
    max_value: int = MAX_WIRE_VALUE
    factor: float = 1.0
    default_value: Optional[int] = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.min_value < 0:
            raise ValueError(f"{self.code}: min_value must be >= 0")
        if self.max_value > MAX_WIRE_VALUE:
            raise ValueError(f"{self.code}: max_value must be <= {MAX_WIRE_VALUE}")
        if self.min_value > self.max_value:
            raise ValueError(f"{self.code}: min_value exceeds max_value")
        if self.default_value is not None and not (
            self.min_value <= self.default_value <= self.max_value
        ):
            raise ValueError(
                f"{self.code}: default {self.default_value} outside "
                f"[{self.min_value}, {self.max_value}]"
            )

    @property
    def has_parameters(self) -> bool:
        return True

    @property
    def has_default_value(self) -> bool:
        return self.default_value is not None


AnySpec = Union[CommandSpec, ParameterSpec]


# ============================================================================
# REGISTRY - All known commands and parameters
# ============================================================================

_COMMAND_REGISTRY: Dict[str, CommandSpec] = {}
_PARAMETER_REGISTRY: Dict[str, ParameterSpec] = {}
_PARAMETER_CODE_TO_NAME: Dict[str, str] = {}


def _register_command(name: str, spec: CommandSpec) -> None:
    """Register a bare command."""
    if name in _PARAMETER_REGISTRY:
        raise ValueError(f"{name} is already registered as a parameter")
    _COMMAND_REGISTRY[name] = spec


def _register_parameter(name: str, spec: ParameterSpec) -> None:
    """Register a parameter and index its wire code."""
    if name in _COMMAND_REGISTRY:
        raise ValueError(f"{name} is already registered as a command")
    _PARAMETER_REGISTRY[name] = spec
    _PARAMETER_CODE_TO_NAME[spec.code] = name


def _parameter(
    code: str,
    description: str,
    value_type: ParameterType,
    min_value: int,
    max_value: int,
    factor: float,
    min_hardware_version: int,
    default_value: int,
) -> ParameterSpec:
    return ParameterSpec(
        code=code,
        description=description,
        min_hardware_version=min_hardware_version,
        value_type=value_type,
        min_value=min_value,
        max_value=max_value,
        factor=factor,
        default_value=default_value,
    )


def _init_registry() -> None:
    """Initialize the registry with the commands the firmware understands."""
    INT = ParameterType.INT
    DOUBLE = ParameterType.DOUBLE
    OFFSET = ParameterType.INT_OFFSET
    BOOL = ParameterType.BOOLEAN

    # Vario commands
    _register_command("volumeUp", CommandSpec("BVU", "Volume Up (x2)"))
    _register_command("volumeDown", CommandSpec("BVD", "Volume Down (/2)"))
    _register_command("getSettings", CommandSpec("BST", "Get Settings"))
    _register_command("getTemp", CommandSpec("TMP", "Get Temperature"))
    _register_command("reset", CommandSpec("RST", "Simple Reset"))
    _register_command("restoreDefaults", CommandSpec("RSX", "Reset and restore default settings"))
    _register_command("sleep", CommandSpec("SLP", "Go To Sleep"))
    _register_command("sleepNoWake", CommandSpec("SLX", "Sleep - No UART wake"))
    _register_command("simulateButton", CommandSpec("BTN", "Simulate Button Press"))
    # Arguments: frequency(Hz) duration(ms) frequency(Hz) duration(ms)
    _register_command("playSound", CommandSpec(
        "BSD", "Play Sound",
        accepts_arguments=True,
        default_arguments="800 500 400 500",
    ))

    # GPS (PMTK) commands
    _register_command("eraseLocus", CommandSpec("PMTK184,1", "Erase Locus"))
    _register_command("queryLocus", CommandSpec("PMTK183", "Query Locus"))
    _register_command("queryLocusData", CommandSpec("PMTK622,0", "Query Locus Data"))

    # Bluetooth module commands
    _register_command("setBluetoothName", CommandSpec(
        "RNC SN,", "Set bluetooth name(max 16 characters)",
        accepts_arguments=True,
        default_arguments="BlueFly-",
        min_hardware_version=12,
    ))

    # Parameters: code, description, type, min, max, factor, min hw, default
    _register_parameter("useAudioWhenConnected", _parameter(
        "BAC", "Enable hardware audio when connected.",
        BOOL, 0, 1, 1.0, 6, 0))
    _register_parameter("useAudioWhenDisconnected", _parameter(
        "BAD", "Enable hardware audio when disconnected.",
        BOOL, 0, 1, 1.0, 6, 1))
    _register_parameter("positionNoise", _parameter(
        "BFK", "Kalman filter position noise.",
        DOUBLE, 10, 10000, 1000.0, 6, 100))
    _register_parameter("liftThreshold", _parameter(
        "BFL", "Value in m/s of lift when the audio beeping will start.",
        DOUBLE, 0, 1000, 100.0, 6, 20))
    _register_parameter("liftOffThreshold", _parameter(
        "BOL", "Value in m/s of lift when the audio beeping will stop.",
        DOUBLE, 0, 1000, 100.0, 6, 5))
    _register_parameter("liftFreqBase", _parameter(
        "BFQ", "Audio frequency for lift beeps in Hz of 0 m/s.",
        INT, 500, 2000, 1.0, 6, 1000))
    _register_parameter("liftFreqIncrement", _parameter(
        "BFI", "Increase in audio frequency for lift beeps in Hz for each 1 m/s.",
        INT, 0, 1000, 1.0, 6, 100))
    _register_parameter("sinkThreshold", _parameter(
        "BFS", "Value in -m/s of sink when the sink tone will start.",
        DOUBLE, 0, 1000, 100.0, 6, 20))
    _register_parameter("sinkOffThreshold", _parameter(
        "BOS", "Value in -m/s of sink when the sink tone will stop.",
        DOUBLE, 0, 1000, 100.0, 6, 5))
    _register_parameter("sinkFreqBase", _parameter(
        "BSQ", "Audio frequency for the sink tone in Hz of 0 m/s.",
        INT, 250, 1000, 1.0, 6, 400))
    _register_parameter("sinkFreqIncrement", _parameter(
        "BSI", "Decrease in audio frequency for sink tone in Hz for each -1 m/s.",
        INT, 0, 1000, 1.0, 6, 100))
    _register_parameter("secondsBluetoothWait", _parameter(
        "BTH", "Time that the hardware will allow establishment of a bluetooth "
               "connection for when turned on.",
        INT, 0, 10000, 1.0, 6, 180))
    _register_parameter("rateMultiplier", _parameter(
        "BRM", "Lift beep cadence -> 0.5 = beeping twice as fast as normal.",
        DOUBLE, 10, 1000, 100.0, 6, 100))
    _register_parameter("speedMultiplier", _parameter(
        "BSM", "Sensitivity of cadence to vertical speed -> 2.0 = cadence "
               "changes slower than normal.",
        DOUBLE, 10, 1000, 100.0, 10, 100))
    _register_parameter("volume", _parameter(
        "BVL", "Volume of beeps -> 0.1 is only about 1/2 as loud as 1.0.",
        DOUBLE, 1, 1000, 1000.0, 6, 1000))
    _register_parameter("outputMode", _parameter(
        "BOM", "Output mode -> 0-BlueFlyVario(default), 1-LK8EX1, 2-LX, "
               "3-FlyNet, 4-None, 5-BFVlib, 6-BFX, 7-OpenVario",
        INT, 0, 7, 1.0, 7, 0))
    _register_parameter("outputFrequency", _parameter(
        "BOF", "Output frequency divisor -> 1-every 20ms ... 50-every 20ms*50=1000ms",
        INT, 1, 50, 1.0, 7, 1))
    _register_parameter("outputQNH", _parameter(
        "BQH", "QNH (in Pascals), used for hardware output alt for some "
               "output modes - (default 101325)",
        OFFSET, 0, 65535, 80000.0, 7, 21325))
    _register_parameter("uart1BRG", _parameter(
        "BRB", "BRG setting for UART1, baud = 2000000/(BRG-1) "
               "(default of 207 = approx 9600 baud)",
        INT, 0, 65535, 1.0, 8, 207))
    _register_parameter("uart2BRG", _parameter(
        "BR2", "BRG setting for UART2, baud = 2000000/(BRG-1) "
               "(default of 34 = approx 57.6k baud)",
        INT, 0, 65535, 1.0, 9, 16))
    _register_parameter("heightSensitivityDm", _parameter(
        "BHV", "How far you have to move in dm to reset the idle timeout",
        INT, 0, 65535, 1.0, 10, 20))
    _register_parameter("heightSeconds", _parameter(
        "BHT", "Idle timeout",
        INT, 0, 65535, 1.0, 10, 600))
    _register_parameter("uartPassthrough", _parameter(
        "BPT", "Pass data received by U2 into U1",
        BOOL, 0, 1, 1.0, 9, 1))
    _register_parameter("uart1Raw", _parameter(
        "BUR", "Make U1 data transferred raw instead of line by line",
        BOOL, 0, 1, 1.0, 9, 0))
    _register_parameter("greenLED", _parameter(
        "BLD", "Make green LED flash with beep",
        BOOL, 0, 1, 1.0, 9, 1))
    _register_parameter("useAudioBuzzer", _parameter(
        "BBZ", "Use the experimental audio buzzer",
        BOOL, 0, 1, 1.0, 10, 0))
    _register_parameter("buzzerThreshold", _parameter(
        "BZT", "Value in m/s below the liftThreshold when the buzzer will start.",
        DOUBLE, 0, 1000, 100.0, 10, 40))
    _register_parameter("usePitot", _parameter(
        "BUP", "Use the experimental MS4525DO pitot connected via I2C",
        BOOL, 0, 1, 1.0, 11, 0))
    _register_parameter("toggleThreshold", _parameter(
        "BTT", "Value in m/s below or above which will auto turn the button "
               "audio toggle off",
        DOUBLE, 0, 1000, 100.0, 11, 100))
    _register_parameter("startDelayMS", _parameter(
        "BDM", "Delay ms at start",
        INT, 0, 65535, 1.0, 12, 0))
    _register_parameter("quietStart", _parameter(
        "BQS", "Quiet the startup beeps",
        BOOL, 0, 1, 1.0, 12, 0))
    _register_parameter("gpsLogInterval", _parameter(
        "BGL", "GPS Log for XA1110",
        INT, 0, 65535, 1.0, 12, 10))

    # Hardware version 99 keeps it out of version-filtered UIs
    _register_parameter("isPrintPressure", _parameter(
        "BFP", "Controls if the output is printed. It is equivalent to "
               "outputMode=4 (or at least it was in some earlier version of the firmware)",
        BOOL, 0, 1, 1.0, 99, 1))


# Initialize registry on module load
_init_registry()


# ============================================================================
# PUBLIC API
# ============================================================================

def list_commands() -> List[str]:
    """
    List all registered command names.

    Returns:
        Sorted list of command names.
    """
    return sorted(_COMMAND_REGISTRY.keys())


def list_parameters() -> List[str]:
    """
    List all registered parameter names.

    Returns:
        Sorted list of parameter names.
    """
    return sorted(_PARAMETER_REGISTRY.keys())


def get_command(name: str) -> Optional[CommandSpec]:
    """
    Get the spec of a bare command.

    Args:
        name: Command name (case-sensitive, e.g. "playSound")

    Returns:
        CommandSpec or None if not found.
    """
    return _COMMAND_REGISTRY.get(name)


def get_parameter(name: str) -> Optional[ParameterSpec]:
    """
    Get the spec of a parameter.

    Args:
        name: Parameter name (case-sensitive, e.g. "liftThreshold")

    Returns:
        ParameterSpec or None if not found.
    """
    return _PARAMETER_REGISTRY.get(name)


def get_parameter_name(code: str) -> Optional[str]:
    """Resolve a parameter wire code (e.g. "BFL") to its name."""
    return _PARAMETER_CODE_TO_NAME.get(code)


def lookup(name: str) -> Optional[AnySpec]:
    """Find a command or parameter spec by name."""
    return _COMMAND_REGISTRY.get(name) or _PARAMETER_REGISTRY.get(name)


def spec_to_dict(spec: AnySpec) -> Dict:
    """Convert a spec to a JSON-serializable dict."""
    data = {
        "code": spec.code,
        "description": spec.description,
        "pmtk": spec.is_pmtk,
        "accepts_arguments": spec.accepts_arguments,
        "default_arguments": spec.default_arguments,
        "min_hardware_version": spec.min_hardware_version,
    }
    if isinstance(spec, ParameterSpec):
        data.update({
            "type": spec.value_type.value,
            "min": spec.min_value,
            "max": spec.max_value,
            "factor": spec.factor,
            "default": spec.default_value,
        })
    return data


def registry_to_dict() -> Dict[str, Dict[str, Dict]]:
    """
    Dump both tables, ordered by name.

    Returns:
        {"commands": {name: {...}}, "parameters": {name: {...}}}
    """
    return {
        "commands": {name: spec_to_dict(_COMMAND_REGISTRY[name]) for name in list_commands()},
        "parameters": {name: spec_to_dict(_PARAMETER_REGISTRY[name]) for name in list_parameters()},
    }
