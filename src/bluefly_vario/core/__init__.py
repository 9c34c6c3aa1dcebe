"""
Core value model for the BlueFlyVario codec.

``CommandState`` is the single place where user values are converted,
range-checked and stored; the decoder, the CLI and library callers all go
through it.
"""

from .values import (
    CommandState,
    ParameterValueError,
    UserValue,
    parse_user_value,
    user_to_stored,
    stored_to_string,
    new_command_states,
    new_parameter_states,
)

__all__ = [
    "CommandState",
    "ParameterValueError",
    "UserValue",
    "parse_user_value",
    "user_to_stored",
    "stored_to_string",
    "new_command_states",
    "new_parameter_states",
]
