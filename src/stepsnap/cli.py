# src/stepsnap/cli.py
"""stepsnap Command Line Interface.

Entry point for the stepsnap CLI tool: inspect, clear and run against a
recovery location.
"""

import asyncio
import importlib
import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import typer
from pydantic import ValidationError

from stepsnap import __version__
from stepsnap.contracts import ComputationDefinitionError, ComputationFailedError, DebugLevel, Snapshot
from stepsnap.core.canonical import CANONICAL_VERSION, stable_hash
from stepsnap.core.codec import codec_for
from stepsnap.core.config import DEFAULT_RECOVERY_LOCATION, StepsnapSettings, load_settings
from stepsnap.core.logging import configure_logging
from stepsnap.core.store import RecoveryStore
from stepsnap.core.transport import FilesystemTransport
from stepsnap.engine import ComputationContext

app = typer.Typer(
    name="stepsnap",
    help="stepsnap: resumable multi-step computations.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"stepsnap version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """stepsnap: resumable multi-step computations."""
    pass


def _store_for(location: str, codec: str) -> RecoveryStore:
    try:
        value_codec = codec_for(codec)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None
    return RecoveryStore(Path(os.path.abspath(location)), FilesystemTransport(), value_codec)


def _dependency_fingerprint(dependencies: Mapping[str, Any]) -> str:
    """Stable hash of a dependency description, or why there is none."""
    try:
        return stable_hash(dependencies)
    except (TypeError, ValueError) as e:
        return f"unavailable ({e})"


@app.command()
def inspect(
    location: str = typer.Option(
        DEFAULT_RECOVERY_LOCATION,
        "--location",
        "-l",
        help="Recovery location to read.",
    ),
    codec: str = typer.Option(
        "pickle",
        "--codec",
        "-c",
        help="Codec the snapshot was written with (pickle or json).",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON.",
    ),
) -> None:
    """Summarize the snapshot stored at a recovery location."""
    store = _store_for(location, codec)

    try:
        data = asyncio.run(store.load())
    except Exception as e:
        typer.echo(f"Error reading snapshot at {store.location}: {e}", err=True)
        raise typer.Exit(1) from None

    if data is None:
        typer.echo(f"No snapshot found at {store.location}", err=True)
        raise typer.Exit(1)
    if not isinstance(data, Mapping) or not data:
        typer.echo(f"Stored value at {store.location} is not a snapshot", err=True)
        raise typer.Exit(1)

    snapshot = Snapshot.from_dict(data)
    summary = {
        "location": str(store.location),
        "canonical_version": CANONICAL_VERSION,
        "dependencies_hash": _dependency_fingerprint(snapshot.dependencies),
        "computations": {name: snapshot.step_count(name) for name in snapshot.computations},
        "error": snapshot.error,
    }

    if json_output:
        typer.echo(json.dumps(summary, indent=2, default=str))
        return

    typer.echo(f"Snapshot: {summary['location']}")
    typer.echo(f"  Dependencies hash: {summary['dependencies_hash']}")
    if snapshot.computations:
        typer.echo("  Computations:")
        for name in snapshot.computations:
            typer.echo(f"    {name}: {snapshot.step_count(name)} step(s)")
    else:
        typer.echo("  Computations: none recorded")
    if snapshot.error is not None:
        typer.echo(
            f"  Last error: {snapshot.error['type']} in {snapshot.error['computation']}: "
            f"{snapshot.error['message']}"
        )


@app.command()
def clear(
    location: str = typer.Option(
        DEFAULT_RECOVERY_LOCATION,
        "--location",
        "-l",
        help="Recovery location to delete.",
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Actually delete (required for safety).",
    ),
) -> None:
    """Delete the snapshot stored at a recovery location."""
    store = _store_for(location, "pickle")

    if not asyncio.run(store.exists()):
        typer.echo(f"Nothing stored at {store.location}")
        return

    if not yes:
        typer.echo(f"Would delete snapshot at {store.location}")
        typer.echo("To delete, add --yes (or -y) flag:", err=True)
        typer.echo(f"  stepsnap clear -l {location} --yes", err=True)
        raise typer.Exit(1)

    asyncio.run(store.delete())
    typer.echo(f"Deleted snapshot at {store.location}")


def _import_target(target: str) -> list[Any]:
    """Resolve "package.module:attribute" to a list of computations."""
    module_name, sep, attribute = target.partition(":")
    if not sep or not module_name or not attribute:
        raise ValueError(f"Target must look like 'package.module:attribute', got {target!r}")

    module = importlib.import_module(module_name)
    value = getattr(module, attribute)
    if callable(value) and not isinstance(value, type):
        value = value()
    if isinstance(value, list | tuple):
        return list(value)
    return [value]


@app.command()
def run(
    target: str = typer.Argument(
        ...,
        help="Computations to run, as 'package.module:attribute' naming a list (or a function returning one).",
    ),
    settings: str | None = typer.Option(
        None,
        "--settings",
        "-s",
        help="Path to settings YAML file.",
    ),
    input_json: str | None = typer.Option(
        None,
        "--input",
        "-i",
        help="JSON value passed to the first computation.",
    ),
    from_scratch: bool = typer.Option(
        False,
        "--from-scratch",
        help="Ignore any stored snapshot.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show detailed output.",
    ),
) -> None:
    """Run a list of computations with step recovery."""
    try:
        config = load_settings(Path(settings)) if settings else StepsnapSettings()
    except FileNotFoundError:
        typer.echo(f"Error: Settings file not found: {settings}", err=True)
        raise typer.Exit(1) from None
    except ValidationError as e:
        typer.echo("Configuration errors:", err=True)
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            typer.echo(f"  - {loc}: {error['msg']}", err=True)
        raise typer.Exit(1) from None

    try:
        input_value = json.loads(input_json) if input_json is not None else None
    except json.JSONDecodeError as e:
        typer.echo(f"Error: --input is not valid JSON: {e}", err=True)
        raise typer.Exit(1) from None

    try:
        computations = _import_target(target)
    except (ImportError, AttributeError, ValueError) as e:
        typer.echo(f"Error: cannot load computations from {target}: {e}", err=True)
        raise typer.Exit(1) from None

    debug_level = config.debug_level
    if verbose:
        debug_level = max(debug_level, DebugLevel.DEBUG)

    configure_logging(
        log_format=config.log_format,
        level="DEBUG" if debug_level > DebugLevel.NONE else config.log_level,
    )

    options = config.to_options(
        from_scratch=True if from_scratch else None,
        debug_level=debug_level,
    )
    ctx = ComputationContext(options, dependencies=config.dependencies)

    try:
        result = ctx.run_sync(computations, input_value)
    except ComputationDefinitionError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None
    except ComputationFailedError as e:
        typer.echo(f"Error: {e}", err=True)
        if e.persistence_error is None:
            typer.echo(f"Progress saved to {options.recovery_location}", err=True)
        raise typer.Exit(1) from None

    if result is None:
        typer.echo("Nothing to run.")
        return

    typer.echo(json.dumps({"name": result.name, "value": result.value}, default=repr))


if __name__ == "__main__":
    app()
