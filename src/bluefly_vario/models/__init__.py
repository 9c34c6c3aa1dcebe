"""
Command registry for the BlueFlyVario.

Provides the fixed command/parameter tables and their enumeration surface.
"""

from .registry import (
    MAX_WIRE_VALUE,
    ParameterType,
    CommandSpec,
    ParameterSpec,
    AnySpec,
    list_commands,
    list_parameters,
    get_command,
    get_parameter,
    get_parameter_name,
    lookup,
    spec_to_dict,
    registry_to_dict,
)

__all__ = [
    "MAX_WIRE_VALUE",
    "ParameterType",
    "CommandSpec",
    "ParameterSpec",
    "AnySpec",
    "list_commands",
    "list_parameters",
    "get_command",
    "get_parameter",
    "get_parameter_name",
    "lookup",
    "spec_to_dict",
    "registry_to_dict",
]
