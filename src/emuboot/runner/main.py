from __future__ import annotations

from typing import Any

import typer

from ..config.loader import load_settings
from ..device.android_emulator import AndroidEmulator
from ..errors import EmulatorError, EmulatorSpawnError
from ..utils.logging import bind_context, device_log_path, setup_logging

app = typer.Typer(add_completion=False)


@app.command("list-avds")
def list_avds(
    config: str = typer.Option(None, help="Path to the YAML configuration file"),
) -> Any:
    """Print the AVDs known to the emulator, one per line."""
    setup_logging()
    emulator = AndroidEmulator(load_settings(config))
    for avd in emulator.list_avds():
        typer.echo(avd)


@app.command()
def boot(
    avd: str = typer.Argument(None, help="AVD name (defaults to 'avd' from the configuration)"),
    port: int = typer.Option(None, min=1, help="Emulator console port"),
    headless: bool = typer.Option(None, "--headless/--no-headless", help="Boot without a window"),
    read_only: bool = typer.Option(None, "--read-only/--no-read-only", help="Boot the AVD read-only"),
    gpu: str = typer.Option(None, help="GPU backend passed to -gpu"),
    timeout: float = typer.Option(None, min=0, help="Give up after this many seconds"),
    config: str = typer.Option(None, help="Path to the YAML configuration file"),
) -> Any:
    """
    Boot an AVD detached and wait until it is ready.

    Prints the outcome ("ready" or "already_running"); exits with code 1
    if the emulator failed to start or did not become ready in time.

    Example usage:
        emuboot boot Pixel_4_API_30 --port 5554 --headless --timeout 300
    """
    setup_logging()
    settings = load_settings(config, headless=headless, read_only_emu=read_only, gpu=gpu)
    name = avd or settings.avd
    bind_context(avd=name, port=port or settings.port)

    try:
        outcome = AndroidEmulator(settings).boot(avd, port, timeout=timeout)
    except EmulatorError as e:
        if isinstance(e, EmulatorSpawnError):
            typer.echo(e.output, err=True)
        typer.echo(f"error: {e.message}", err=True)
        typer.echo(f"log: {device_log_path(name)}", err=True)
        raise typer.Exit(code=1) from e

    typer.echo(outcome.value)


if __name__ == "__main__":
    app()
