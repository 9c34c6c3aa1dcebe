"""
Runtime values attached to registry specs.

A ``CommandState`` pairs one immutable spec with the mutable session data the
caller (or the device) supplies for it: the stored integer value and any user
argument text. It owns conversion between the integer the instrument
transmits and the value a user sees.

Conversion table (stored int v, factor f):

    INT         str(v)              user x -> x
    DOUBLE      str(v / f)          user x -> x * f
    INT_OFFSET  str(int(v + f))     user x -> x - f
    BOOLEAN     str(v != 0)         user x -> 0 if x == 0 else 1
    INT_LIST    str(v)              user x -> x
"""

import logging
import math
from typing import Dict, Optional, Union

from bluefly_vario.models.registry import (
    AnySpec,
    ParameterSpec,
    ParameterType,
    get_command,
    get_parameter,
    list_commands,
    list_parameters,
)
from bluefly_vario.protocol.framing import serialize as serialize_frame

logger = logging.getLogger(__name__)

UserValue = Union[int, float, bool, str]


class ParameterValueError(ValueError):
    """Raised when a user value cannot be read as a number."""


def parse_user_value(value: UserValue) -> float:
    """
    Read a user-supplied value as a float.

    Accepts ints, floats, bools (True == 1) and numeric strings.

    Raises:
        ParameterValueError: If the value is not numeric or too large for a float.
    """
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise ParameterValueError(f"Not a number: {value!r}") from None
    elif isinstance(value, (bool, int, float)):
        try:
            number = float(value)
        except OverflowError:
            raise ParameterValueError(f"Value out of range: {value!r}") from None
    else:
        raise ParameterValueError(f"Unsupported value type: {type(value).__name__}")

    if math.isnan(number):
        raise ParameterValueError(f"Not a number: {value!r}")
    return number


def user_to_stored(spec: ParameterSpec, value: float) -> float:
    """Convert a user-facing value into the stored integer domain (unrounded)."""
    value_type = spec.value_type
    if value_type in (ParameterType.INT, ParameterType.INT_LIST):
        return value
    if value_type == ParameterType.DOUBLE:
        return value * spec.factor
    if value_type == ParameterType.INT_OFFSET:
        return value - spec.factor
    if value_type == ParameterType.BOOLEAN:
        return 0.0 if value == 0 else 1.0
    raise ValueError(f"Unhandled parameter type: {value_type}")


def stored_to_string(spec: ParameterSpec, value: int) -> str:
    """Render a stored integer the way a user reads it."""
    value_type = spec.value_type
    if value_type in (ParameterType.INT, ParameterType.INT_LIST):
        return str(value)
    if value_type == ParameterType.DOUBLE:
        return str(value / spec.factor)
    if value_type == ParameterType.INT_OFFSET:
        return str(int(value + spec.factor))
    if value_type == ParameterType.BOOLEAN:
        return str(value != 0)
    raise ValueError(f"Unhandled parameter type: {value_type}")


class CommandState:
    """
    Mutable value and argument state for one command or parameter.

    ``value`` is None while unset; 0 is a valid value and never means unset.

    Example:
        state = CommandState(get_parameter("liftThreshold"))
        state.set_value("0.3")      # stored as 30
        state.value_as_string()     # "0.3"
        state.serialize()           # "$BFL 30*"
    """

    def __init__(self, spec: AnySpec):
        self.spec = spec
        self._value: Optional[int] = None
        self._arguments: Optional[str] = None

    def __repr__(self) -> str:
        return f"CommandState({self.spec.code!r}, value={self._value!r})"

    @property
    def value(self) -> Optional[int]:
        """Stored integer value, or None when unset."""
        return self._value

    @property
    def has_value(self) -> bool:
        return self._value is not None

    @property
    def has_default_value(self) -> bool:
        return isinstance(self.spec, ParameterSpec) and self.spec.has_default_value

    @property
    def arguments(self) -> Optional[str]:
        """User-supplied argument text, or None to use the defaults."""
        return self._arguments

    def set_arguments(self, arguments: Optional[str]) -> None:
        """Store argument text for commands that accept arguments."""
        self._arguments = arguments

    def set_value(self, value: UserValue) -> bool:
        """
        Set the value from user input.

        The input is converted to the stored domain and checked against
        [min_value, max_value]; in-range values are rounded to the nearest
        integer. Out-of-range input leaves the previous value untouched.

        Args:
            value: int, float, bool or numeric string in user units

        Returns:
            True if the value was stored, False if it was rejected.

        Raises:
            ParameterValueError: If the value is not numeric or too large for a float.
        """
        spec = self.spec
        if not isinstance(spec, ParameterSpec):
            logger.debug(f"{spec.code} takes no value")
            return False

        converted = user_to_stored(spec, parse_user_value(value))
        if not (spec.min_value <= converted <= spec.max_value):
            logger.debug(
                f"{spec.code}: {value!r} -> {converted} outside "
                f"[{spec.min_value}, {spec.max_value}]"
            )
            return False

        self._value = int(round(converted))
        return True

    def set_from_parsed(self, value: int) -> bool:
        """
        Set the value as reported by the device.

        Device values are already in the stored domain, so only the
        non-negative check applies.
        """
        if value < 0:
            return False
        self._value = value
        return True

    def reset(self) -> None:
        """Forget the value (back to unset)."""
        self._value = None

    def value_as_string(self) -> Optional[str]:
        """User-facing rendering of the value, or None when unset."""
        if self._value is None or not isinstance(self.spec, ParameterSpec):
            return None
        return stored_to_string(self.spec, self._value)

    def default_value_as_string(self) -> Optional[str]:
        """User-facing rendering of the default value, or None."""
        spec = self.spec
        if not isinstance(spec, ParameterSpec) or spec.default_value is None:
            return None
        return stored_to_string(spec, spec.default_value)

    def serialize(self, arguments: Optional[str] = None) -> str:
        """
        Build the wire frame for this command.

        Args:
            arguments: Optional argument text, stored before serializing

        Returns:
            Frame string ready for the transport.
        """
        if arguments is not None:
            self.set_arguments(arguments)
        return serialize_frame(self.spec, self)


def _build_states(names, getter) -> Dict[str, CommandState]:
    return {name: CommandState(getter(name)) for name in names}


def new_command_states() -> Dict[str, CommandState]:
    """Fresh, unset states for every registered command, ordered by name."""
    return _build_states(list_commands(), get_command)


def new_parameter_states() -> Dict[str, CommandState]:
    """Fresh, unset states for every registered parameter, ordered by name."""
    return _build_states(list_parameters(), get_parameter)
