import asyncio
import logging
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as package_version
from pathlib import Path
from typing import Annotated, Optional

import typer

from .config.paths import load_paths
from .config.settings import Config, ConfigurationError
from .pipeline.prepare import prepare
from .types import PipelineError
from .utils import setup_logging

app = typer.Typer(help="Ski data preparation: format -> merge -> enrich -> export")


@app.command("prepare")
def prepare_command(
    input_dir: Annotated[Path, typer.Option("--input-dir", "-i", help="Directory holding the raw GeoJSON and site inputs")] = Path("data"),
    output_dir: Annotated[Path, typer.Option("--output-dir", "-o", help="Directory receiving the prepared feature collections")] = Path("data"),
    paths_file: Annotated[Optional[Path], typer.Option("--paths", "-p", help="YAML file overriding individual input/output paths")] = None,
    elevation_server: Annotated[Optional[str], typer.Option("--elevation-server", help="Elevation service base URL (overrides ELEVATION_SERVER_URL)")] = None,
    env_file: Annotated[Optional[Path], typer.Option("--env-file", help="Explicit environment file")] = None,
    environment: Annotated[Optional[str], typer.Option("--environment", "-e", help="Environment name selecting .env.{environment}")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable detailed logging output")] = False,
    log_to_file: Annotated[bool, typer.Option("--log-to-file", help="Create timestamped log files")] = False,
):
    """
    Prepare ski areas, runs and lifts.

    Reads the raw inputs, formats and merges them, adds elevations when an
    elevation server is configured and writes one GeoJSON feature collection
    per category. Exits with status 1 when any category fails.

    Examples:
        skiprep prepare -i data/raw -o data/prepared
        skiprep prepare --paths paths.yml --elevation-server https://elevation.example.org
    """
    setup_logging(verbose, log_to_file, run_name="prepare")

    try:
        config = Config(environment=environment, env_file=env_file, elevation_server_url=elevation_server)
        paths = load_paths(input_dir, output_dir, paths_file)
    except ConfigurationError as e:
        typer.echo(f"ERROR: Configuration error: {e}", err=True)
        raise typer.Exit(1) from e

    logging.debug(f"Configuration: {config.get_summary()}")

    try:
        results = asyncio.run(prepare(paths, config))
    except PipelineError as e:
        typer.echo(f"ERROR: {e}", err=True)
        raise typer.Exit(1) from e

    typer.echo("Preparation results")
    typer.echo("=" * 50)
    for result in results:
        typer.echo(f"  {result.describe()}")

    failed = [result for result in results if not result.succeeded]
    if failed:
        typer.echo(f"\n{len(failed)} of {len(results)} steps failed", err=True)
        raise typer.Exit(1)


@app.command("show-config")
def show_config(
    env_file: Annotated[Optional[Path], typer.Option("--env-file", help="Explicit environment file")] = None,
    environment: Annotated[Optional[str], typer.Option("--environment", "-e", help="Environment name selecting .env.{environment}")] = None,
):
    """Display the effective configuration."""
    try:
        config = Config(environment=environment, env_file=env_file)
    except ConfigurationError as e:
        typer.echo(f"ERROR: Configuration error: {e}", err=True)
        raise typer.Exit(1) from e

    for key, value in config.get_summary().items():
        typer.echo(f"{key}: {value}")


@app.command("version")
def version():
    """Display version information."""
    try:
        typer.echo(f"skiprep version: {package_version('skiprep')}")
    except PackageNotFoundError:
        typer.echo("skiprep (development version)")


if __name__ == "__main__":
    app()
