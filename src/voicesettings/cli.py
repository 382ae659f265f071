"""Voice assistant settings CLI.

This module provides the command-line interface for inspecting,
validating and watching the assistant's config.json.
"""

from __future__ import annotations

import logging
import sys
import time
from pathlib import Path
from typing import Final

import typer

from voicesettings.errors import SettingsError, StorageError
from voicesettings.settings import SettingsLoader
from voicesettings.store import SettingsStore
from voicesettings.utils.file import copy_atomic
from voicesettings.validation import failures, validate
from voicesettings.watch import FileChanged

# ── CLI setup ────────────────────────────────────────────────────────────────
app = typer.Typer(help="Voice assistant settings CLI", add_completion=False)
config_app = typer.Typer(help="Config helpers")
app.add_typer(config_app, name="config")

logger: Final = logging.getLogger(__name__)  # Will be "voicesettings.cli"

CONFIG_OPTION = typer.Option(None, "--config", "-c", exists=True, dir_okay=False)
CONFIG_DIR_OPTION = typer.Option(None, "--config-dir", "-d", file_okay=False)
DEBUG_OPTION = typer.Option(False, "--debug", help="Enable debug logging")
FORCE_OPTION = typer.Option(False, "--force", "-f", help="Overwrite an existing config.json")
WATCH_INTERVAL = 1.0


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )


def _fail(exc: SettingsError) -> typer.Exit:
    typer.secho(str(exc), fg=typer.colors.RED, err=True)
    return typer.Exit(code=1)


@app.command()
def show(
    config: Path | None = CONFIG_OPTION,
    config_dir: Path | None = CONFIG_DIR_OPTION,
    debug: bool = DEBUG_OPTION,
) -> None:
    """Print the current settings as JSON."""
    _configure_logging(debug)
    loader = SettingsLoader(config_dir, watch=False)
    try:
        loaded = loader.load_from(config) if config else loader.load()
    except SettingsError as exc:
        raise _fail(exc) from exc
    typer.echo(loaded.settings.to_json())


@app.command()
def path(config_dir: Path | None = CONFIG_DIR_OPTION) -> None:
    """Print where config.json is read from."""
    typer.echo(str(SettingsLoader(config_dir, watch=False).config_file))


@app.command("validate")
def validate_config(
    file: Path | None = typer.Argument(None, exists=True, dir_okay=False),
    config_dir: Path | None = CONFIG_DIR_OPTION,
    debug: bool = DEBUG_OPTION,
) -> None:
    """Validate config.json; warnings do not fail, a missing key does."""
    _configure_logging(debug)
    loader = SettingsLoader(config_dir, watch=False)
    try:
        settings = (loader.load_from(file) if file else loader.load()).settings
        outcomes = validate(settings)
    except SettingsError as exc:
        raise _fail(exc) from exc

    failed = failures(outcomes)
    for outcome in failed:
        color = typer.colors.RED if outcome.level >= logging.ERROR else typer.colors.YELLOW
        typer.secho(f"  • {outcome.field} - {outcome.message}", fg=color, err=True)
    if failed:
        typer.echo(f"⚠️  Config loaded with {len(failed)} warning(s)")
    else:
        typer.echo("✅ Config valid")


@app.command()
def watch(
    config_dir: Path | None = CONFIG_DIR_OPTION,
    debug: bool = DEBUG_OPTION,
) -> None:
    """Watch config.json and report each change until interrupted."""
    _configure_logging(debug)
    store = SettingsStore(SettingsLoader(config_dir))

    def _on_change(event: FileChanged) -> None:
        typer.echo(f"Changed: {event.path}")

    store.subscribe(_on_change)
    try:
        settings = store.current()
        typer.echo(f"Watching {store.source_file} (region: {settings.azure_region})")
        while True:
            time.sleep(WATCH_INTERVAL)
            try:
                latest = store.current()
            except SettingsError as exc:
                # Keep watching; the next save may fix the file
                typer.secho(str(exc), fg=typer.colors.RED, err=True)
                continue
            if latest is not settings:
                settings = latest
                typer.echo(f"Reloaded (region: {settings.azure_region})")
    except SettingsError as exc:
        raise _fail(exc) from exc
    finally:
        store.close()


# ───────────────────────── config sub-commands ───────────────────────────────
@config_app.command("init")
def init(
    config_dir: Path | None = CONFIG_DIR_OPTION,
    force: bool = FORCE_OPTION,
) -> None:
    """Create config.json from the bundled defaults."""
    loader = SettingsLoader(config_dir, watch=False)
    target = loader.config_file
    if target.exists() and not force:
        typer.echo(f"{target} already exists (use --force to overwrite)")
        return
    try:
        if target.exists():
            # Replaced in one rename; a failed copy leaves the old file intact
            copy_atomic(loader.template, target)
        else:
            loader.bootstrap()
    except OSError as exc:
        err = StorageError(f"Unable to copy {loader.template}", target, exc)
        raise _fail(err) from exc
    except SettingsError as exc:
        raise _fail(exc) from exc
    typer.secho(f"Config written to {target}", fg=typer.colors.GREEN)


# ───────────────────────── module entrypoint ────────────────────────────────
def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    main()
