"""
BlueFlyVario CLI

Command-line interface for inspecting the command registry, encoding
commands and decoding vario output.
"""

import sys
import json
import logging
import math
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.logging import RichHandler

from bluefly_vario.config import VarioConfig
from bluefly_vario.core.values import (
    CommandState,
    ParameterValueError,
    parse_user_value,
)
from bluefly_vario.models import (
    ParameterSpec,
    get_command,
    get_parameter,
    list_commands as registry_list_commands,
    list_parameters as registry_list_parameters,
    lookup,
    registry_to_dict,
    spec_to_dict,
)
from bluefly_vario.protocol import (
    DEFAULT_BAUDRATE,
    LocusError,
    PmtkChecksumError,
    VarioTransportError,
)
from bluefly_vario.telemetry import DEFAULT_QNH, TelemetryDecodeError, TelemetryDecoder

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    handlers=[RichHandler(rich_tracebacks=True)],
)
logger = logging.getLogger("bluefly_vario")

# Setup Rich console
console = Console()

app = typer.Typer(help="BlueFlyVario command encoder and telemetry decoder")


@app.callback()
def _configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    if verbose:
        logger.setLevel(logging.DEBUG)


def print_header(text: str) -> None:
    """Print fancy header."""
    console.print(Panel(text, expand=False, style="bold blue"))


def print_success(text: str) -> None:
    """Print success message."""
    console.print(f"✓ {text}", style="green")


def print_warning(text: str) -> None:
    """Print warning message."""
    console.print(f"⚠️  {text}", style="yellow")


def print_error(text: str) -> None:
    """Print error message."""
    console.print(f"❌ {text}", style="red")


def format_float(value: float, unit: str = "", digits: int = 2) -> str:
    """Format a decoded value, showing NaN as 'unknown'."""
    if math.isnan(value):
        return "unknown"
    return f"{value:.{digits}f}{unit}"


def parse_value(value: str) -> float:
    """
    Parse a parameter value given on the command line.

    CLI wrapper around core.values.parse_user_value that converts
    ParameterValueError to typer.BadParameter.
    """
    try:
        return parse_user_value(value)
    except ParameterValueError as e:
        raise typer.BadParameter(str(e))


def resolve_state(name: str) -> CommandState:
    """Create a fresh state for a command or parameter name."""
    spec = lookup(name)
    if spec is None:
        raise typer.BadParameter(
            f"Unknown command or parameter '{name}'. "
            "Use list-commands / list-parameters to see known names."
        )
    return CommandState(spec)


@app.command()
def ports() -> None:
    """List available serial ports."""
    print_header("Available Serial Ports")

    import serial.tools.list_ports

    ports_list = list(serial.tools.list_ports.comports())

    if not ports_list:
        print_warning("No serial ports found")
        return

    table = Table(title="Serial Ports")
    table.add_column("Port", style="cyan")
    table.add_column("Device", style="magenta")
    table.add_column("Description", style="green")

    for port in ports_list:
        table.add_row(port.device, port.name or "-", port.description or "-")

    console.print(table)


@app.command("list-commands")
def list_commands(
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List commands the vario accepts."""
    if as_json:
        typer.echo(json.dumps(registry_to_dict()["commands"], indent=2))
        return

    table = Table(title="Commands")
    table.add_column("Name", style="cyan")
    table.add_column("Code", style="yellow")
    table.add_column("Default Args", style="magenta")
    table.add_column("Description", style="green")

    for name in registry_list_commands():
        spec = get_command(name)
        args = spec.default_arguments if spec.accepts_arguments else "-"
        table.add_row(name, spec.code, args, spec.description)

    console.print(table)


@app.command("list-parameters")
def list_parameters(
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List device parameters with their ranges and defaults."""
    if as_json:
        typer.echo(json.dumps(registry_to_dict()["parameters"], indent=2))
        return

    table = Table(title="Parameters")
    table.add_column("Name", style="cyan")
    table.add_column("Code", style="yellow")
    table.add_column("Type", style="magenta")
    table.add_column("Min", justify="right")
    table.add_column("Max", justify="right")
    table.add_column("Factor", justify="right")
    table.add_column("Default", justify="right", style="green")

    for name in registry_list_parameters():
        spec = get_parameter(name)
        default = CommandState(spec).default_value_as_string() or "-"
        table.add_row(
            name,
            spec.code,
            spec.value_type.value,
            str(spec.min_value),
            str(spec.max_value),
            f"{spec.factor:g}",
            default,
        )

    console.print(table)
    console.print()
    console.print("Use [cyan]show-parameter <name>[/cyan] for the full description.")


@app.command("show-parameter")
def show_parameter(
    name: str = typer.Argument(..., help="Parameter name (e.g. liftThreshold)"),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show the full definition of one parameter."""
    spec = get_parameter(name)
    if spec is None:
        print_error(f"Unknown parameter: {name}")
        console.print("Available parameters:")
        for known in registry_list_parameters():
            console.print(f"  - {known}")
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps(spec_to_dict(spec), indent=2))
        return

    state = CommandState(spec)
    table = Table(title=f"Parameter: {name}", show_header=False)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Code", spec.code)
    table.add_row("Description", spec.description)
    table.add_row("Type", spec.value_type.value)
    table.add_row("Range (raw)", f"{spec.min_value} - {spec.max_value}")
    table.add_row("Factor", f"{spec.factor:g}")
    table.add_row("Default (raw)", str(spec.default_value))
    table.add_row("Default", state.default_value_as_string() or "-")
    table.add_row("Min HW Version", str(spec.min_hardware_version))
    console.print(table)


@app.command()
def encode(
    name: str = typer.Argument(..., help="Command or parameter name"),
    value: Optional[str] = typer.Option(None, "--value", help="Parameter value in user units"),
    arguments: Optional[str] = typer.Option(None, "--args", help="Argument text for commands that take it"),
) -> None:
    """Print the wire frame for a command or parameter write."""
    state = resolve_state(name)
    spec = state.spec

    if value is not None:
        if not isinstance(spec, ParameterSpec):
            raise typer.BadParameter(f"'{name}' is a command and takes no value")
        if not state.set_value(parse_value(value)):
            print_error(
                f"{value} is out of range for {name} "
                f"(raw {spec.min_value}-{spec.max_value}, factor {spec.factor:g})"
            )
            raise typer.Exit(1)

    if arguments is not None:
        if not spec.accepts_arguments:
            raise typer.BadParameter(f"'{name}' does not take arguments")
        state.set_arguments(arguments)

    try:
        frame = state.serialize()
    except PmtkChecksumError as e:
        print_error(str(e))
        raise typer.Exit(1)

    typer.echo(repr(frame))


def print_snapshot(decoder: TelemetryDecoder) -> None:
    """Print decoded device state and any known parameter values."""
    snapshot = decoder.snapshot()

    table = Table(title="Device State", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Hardware Version", snapshot.hardware_version or "unknown")
    table.add_row("Altitude", format_float(snapshot.altitude, " m"))
    table.add_row("Temperature", format_float(snapshot.temperature, " °C", digits=1))
    table.add_row("Battery", format_float(snapshot.battery, " V", digits=3))
    table.add_row("QNH", f"{snapshot.qnh:.0f} Pa")
    console.print(table)

    known = [(name, state) for name, state in decoder.parameters.items() if state.has_value]
    if not known:
        return

    params = Table(title="Parameters From Device")
    params.add_column("Name", style="cyan")
    params.add_column("Code", style="yellow")
    params.add_column("Raw", justify="right")
    params.add_column("Value", justify="right", style="green")
    for name, state in known:
        params.add_row(name, state.spec.code, str(state.value), state.value_as_string())
    console.print(params)


@app.command()
def decode(
    capture: Path = typer.Argument(..., exists=True, dir_okay=False, help="Captured vario output, one line per message"),
    qnh: float = typer.Option(DEFAULT_QNH, "--qnh", help="Reference pressure in Pa"),
    locus_dir: Path = typer.Option(Path("."), "--locus-dir", help="Where LOCUS dumps are written"),
) -> None:
    """Replay a captured telemetry file through the decoder."""
    print_header(f"Decoding {capture.name}")

    config = VarioConfig(qnh=qnh, locus_directory=locus_dir)
    logger.debug(f"Session config: {config.to_dict()}")

    errors = 0
    with config.build_decoder() as decoder, capture.open("r", encoding="ascii", errors="replace") as f:
        for lineno, line in enumerate(f, 1):
            try:
                decoder.decode_line(line)
            except (TelemetryDecodeError, LocusError) as e:
                errors += 1
                print_warning(f"line {lineno}: {e}")

    print_snapshot(decoder)
    if errors:
        print_warning(f"{errors} line(s) could not be decoded")
    else:
        print_success("All lines decoded")


@app.command()
def monitor(
    port: str = typer.Option(..., "--port", "-p", help="Serial port (e.g. /dev/rfcomm0)"),
    baudrate: int = typer.Option(DEFAULT_BAUDRATE, "--baud", help="Baud rate"),
    send: Optional[List[str]] = typer.Option(None, "--send", help="Command name to send first (repeatable)"),
    lines: Optional[int] = typer.Option(None, "--lines", help="Stop after this many lines"),
    qnh: float = typer.Option(DEFAULT_QNH, "--qnh", help="Reference pressure in Pa"),
    locus_dir: Path = typer.Option(Path("."), "--locus-dir", help="Where LOCUS dumps are written"),
) -> None:
    """Connect to a vario, optionally send commands, and show decoded output."""
    config = VarioConfig(port=port, baudrate=baudrate, qnh=qnh, locus_directory=locus_dir)
    logger.debug(f"Session config: {config.to_dict()}")
    states = [resolve_state(name) for name in (send or [])]

    print_header(f"Monitoring {port} @ {baudrate}")
    try:
        with config.build_decoder() as decoder, config.build_transport() as transport:
            for state in states:
                frame = state.serialize()
                transport.send(frame)
                console.print(f"→ {frame!r}", style="dim")

            for line in transport.iter_lines(max_lines=lines):
                try:
                    decoder.decode_line(line)
                except (TelemetryDecodeError, LocusError) as e:
                    print_warning(str(e))
                    continue
                _print_changes(decoder)
    except VarioTransportError as e:
        print_error(str(e))
        raise typer.Exit(1)


def _print_changes(decoder: TelemetryDecoder) -> None:
    if decoder.altitude_changed:
        console.print(f"Altitude: {format_float(decoder.read_altitude(), ' m')}")
    if decoder.temperature_changed:
        console.print(f"Temperature: {format_float(decoder.read_temperature(), ' °C', digits=1)}")
    if decoder.battery_changed:
        console.print(f"Battery: {format_float(decoder.read_battery(), ' V', digits=3)}")
    if decoder.hardware_version_changed:
        console.print(f"Hardware version: {decoder.read_hardware_version()}")
    if decoder.check_parameters_changed():
        count = sum(1 for state in decoder.parameters.values() if state.has_value)
        print_success(f"Received {count} parameter values")


def main() -> None:
    """Main entry point."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        sys.exit(0)
    except Exception as e:
        console.print(f"\n[red bold]Fatal error:[/red bold] {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
