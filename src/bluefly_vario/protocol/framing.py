"""
BlueFlyVario command framing.

The vario accepts ASCII frames of the form:

    $<code>*                    bare command          e.g. $BST*
    $<code> <arguments>*        argument command      e.g. $BSD 800 500 400 500*
    $<code> <value>*            parameter write       e.g. $BFL 30*

GPS (PMTK) commands are forwarded to the GPS module and carry an NMEA-style
checksum plus their own line terminator:

    $<code>*<XOR checksum, uppercase hex>\\r\\n         e.g. $PMTK183*38\\r\\n
"""

import logging
from typing import Optional, Protocol

from bluefly_vario.models.registry import AnySpec

logger = logging.getLogger(__name__)

PREFIX = "$"
SUFFIX = "*"
PMTK_TERMINATOR = "\r\n"

# Characters that must never appear in the checksummed body
_FORBIDDEN_CHECKSUM_CHARS = ("$", "!")


class PmtkChecksumError(ValueError):
    """Raised when a PMTK code cannot be checksummed (must not be sent)."""


class SupportsCommandValue(Protocol):
    """The parts of a CommandState that framing reads."""

    @property
    def value(self) -> Optional[int]: ...

    @property
    def arguments(self) -> Optional[str]: ...


def pmtk_checksum(body: str) -> Optional[int]:
    """
    Calculate the NMEA/PMTK XOR checksum.

    XORs the character codes from the start of ``body`` up to (excluding)
    the first '*'. A '$' or '!' before that point is a framing violation.

    Args:
        body: Sentence body without the leading '$' (e.g. "PMTK184,1")

    Returns:
        8-bit checksum, or None if the body contains '$' or '!'.
    """
    checksum = 0
    for char in body:
        if char in _FORBIDDEN_CHECKSUM_CHARS:
            return None
        if char == "*":
            break
        checksum ^= ord(char)
    return checksum


def build_pmtk_frame(code: str) -> str:
    """
    Build a PMTK frame.

    Frame format:
    [ $ | code | * | checksum (uppercase hex, unpadded) | \\r\\n ]

    Raises:
        PmtkChecksumError: If the code cannot be checksummed.
    """
    checksum = pmtk_checksum(code)
    if checksum is None:
        raise PmtkChecksumError(f"Invalid character in PMTK code: {code!r}")
    return f"{PREFIX}{code}{SUFFIX}{checksum:X}{PMTK_TERMINATOR}"


def serialize(spec: AnySpec, state: Optional[SupportsCommandValue] = None) -> str:
    """
    Serialize a command into its wire frame.

    Exactly one form applies, chosen in this order:
    PMTK, argument command, parameter with a value set, bare command.

    Args:
        spec: Command or parameter spec from the registry
        state: Current user value/arguments, if any

    Returns:
        Frame string. Non-PMTK frames carry no line terminator.

    Raises:
        PmtkChecksumError: If a PMTK code cannot be checksummed.
    """
    if spec.is_pmtk:
        frame = build_pmtk_frame(spec.code)
    elif spec.accepts_arguments:
        arguments = state.arguments if state is not None else None
        if arguments is None:
            arguments = spec.default_arguments
        frame = f"{PREFIX}{spec.code} {arguments}{SUFFIX}"
    elif spec.has_parameters and state is not None and state.value is not None:
        frame = f"{PREFIX}{spec.code} {state.value}{SUFFIX}"
    else:
        frame = f"{PREFIX}{spec.code}{SUFFIX}"

    logger.debug(f"Serialized {spec.code}: {frame!r}")
    return frame
