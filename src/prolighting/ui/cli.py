"""
Command-Line Interface for ProLighting.

Provides commands for running the controller, testing DMX output,
validating configuration and discovering Art-Net nodes and RDM fixtures.
"""

from __future__ import annotations

import logging
import signal
import sys
import time
from pathlib import Path
from typing import List, Optional

import click
import structlog

from prolighting import __version__
from prolighting.core.config import Settings
from prolighting.core.exceptions import (
    FixtureValidationError,
    ProLightingError,
    TransportConfigError,
)
from prolighting.core.models import DMXMode, Fixture

logger = structlog.get_logger()


def _configure_logging(log_level: str) -> None:
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
    )


def _load_settings(ctx: click.Context) -> Settings:
    if ctx.obj["config_path"]:
        settings = Settings.from_yaml(ctx.obj["config_path"])
    else:
        settings = Settings()
    settings.debug = settings.debug or ctx.obj["debug"]
    _configure_logging("DEBUG" if settings.debug else settings.log_level)
    return settings


def _validate_startup_config(settings: Settings) -> List[Fixture]:
    """
    Check the configured transport and fixture patch without opening hardware.

    Raises:
        TransportConfigError: the DMX mode has no implementation.
        FixtureValidationError: the first fixture that would be rejected.
    """
    from prolighting.dmx.universe import UniverseBuffer
    from prolighting.fixtures.service import FixtureService

    if settings.dmx_mode == DMXMode.SACN:
        raise TransportConfigError(settings.dmx_mode.value, "not implemented")

    # Same registration path the controller uses, against a scratch buffer.
    service = FixtureService(
        UniverseBuffer(),
        max_universe=settings.artnet.max_universe if settings.dmx_mode == DMXMode.ARTNET else 15,
        rdm_only_mode=settings.rdm.rdm_only_mode,
    )
    return [service.register(fixture) for fixture in settings.fixtures]


@click.group()
@click.version_option(version=__version__)
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option(
    "--config",
    type=click.Path(exists=True),
    help="Path to configuration file",
)
@click.pass_context
def cli(ctx: click.Context, debug: bool, config: Optional[str]) -> None:
    """
    ProLighting - hardware-agnostic DMX512 lighting controller

    Drives virtual fixtures over Art-Net or a USB-DMX dongle, with fades
    and RDM fixture discovery and liveness tracking.
    """
    ctx.ensure_object(dict)

    # Configure logging
    _configure_logging("DEBUG" if debug else "INFO")

    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config) if config else None


@cli.command()
@click.option("--rate", type=float, default=None, help="Override refresh rate (Hz)")
@click.pass_context
def run(ctx: click.Context, rate: Optional[float]) -> None:
    """Run the controller tick loop."""
    from prolighting.controller import ProLightingController

    click.echo(f"ProLighting v{__version__}")
    click.echo("=" * 50)

    try:
        settings = _load_settings(ctx)
        if rate is not None:
            settings.refresh_rate_hz = rate

        click.echo(f"Mode: {settings.dmx_mode.value}")
        click.echo(f"Refresh rate: {settings.refresh_rate_hz} Hz")
        click.echo(f"Fixtures: {len(settings.fixtures)}")
        click.echo()

        controller = ProLightingController(settings)
        controller.initialize()
    except ProLightingError as e:
        click.echo(f"Error: {e}", err=True)
        if ctx.obj["debug"]:
            raise
        sys.exit(1)

    signal.signal(signal.SIGTERM, lambda _signum, _frame: controller.stop())

    click.echo("Controller running. Press Ctrl+C to stop.")
    try:
        controller.run_loop()
    except KeyboardInterrupt:
        click.echo("\nShutting down...")
    finally:
        controller.shutdown()


@cli.command()
@click.option("--channel", "-c", type=int, required=True, help="DMX channel (1-512)")
@click.option("--value", "-v", type=int, required=True, help="Value (0-255)")
@click.option("--universe", "-u", type=int, default=0, help="Universe (0-15)")
@click.pass_context
def dmx_test(ctx: click.Context, channel: int, value: int, universe: int) -> None:
    """Test DMX output by setting a single channel."""
    from prolighting.controller import ProLightingController

    if not 1 <= channel <= 512:
        click.echo("Error: Channel must be 1-512", err=True)
        sys.exit(1)

    if not 0 <= value <= 255:
        click.echo("Error: Value must be 0-255", err=True)
        sys.exit(1)

    if not 0 <= universe <= 15:
        click.echo("Error: Universe must be 0-15", err=True)
        sys.exit(1)

    try:
        controller = ProLightingController(_load_settings(ctx))
        controller.initialize()
    except ProLightingError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Setting universe {universe} channel {channel} to {value}...")
    controller.buffer.ensure_universe(universe)
    controller.buffer.set_channel(universe, channel, value)

    try:
        controller.start()
        click.echo("Press Ctrl+C to stop and blackout.")
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        click.echo("\nBlacking out...")
    finally:
        controller.shutdown()


@cli.command()
@click.pass_context
def validate(ctx: click.Context) -> None:
    """Validate configuration and fixture patch without touching hardware."""
    try:
        settings = _load_settings(ctx)
        fixtures = _validate_startup_config(settings)
    except FixtureValidationError as e:
        click.echo(f"Invalid fixture patch: {e}", err=True)
        sys.exit(1)
    except ProLightingError as e:
        click.echo(f"Invalid configuration: {e}", err=True)
        sys.exit(1)

    click.echo(f"Configuration OK: {len(fixtures)} fixture(s)")
    for fixture in fixtures:
        click.echo(
            f"  [{fixture.virtual_id}] {fixture.fixture_type.value:<12} "
            f"U{fixture.universe} {fixture.dmx_channel}-{fixture.last_channel}"
        )


@cli.command()
@click.option("--duration", "-d", default=3.0, help="Listen time in seconds")
@click.option("--rdm", is_flag=True, help="Also run RDM discovery")
@click.pass_context
def discover(ctx: click.Context, duration: float, rdm: bool) -> None:
    """Discover Art-Net nodes (and optionally RDM fixtures)."""
    from prolighting.controller import ProLightingController

    try:
        settings = _load_settings(ctx)
        if rdm:
            settings.rdm.enabled = True
        controller = ProLightingController(settings)
        controller.initialize()
    except ProLightingError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    try:
        if controller.discover_artnet_nodes():
            click.echo(f"Polling for Art-Net nodes for {duration} seconds...")
            deadline = time.monotonic() + duration
            frame_time = 1.0 / settings.refresh_rate_hz
            while time.monotonic() < deadline:
                controller.tick(frame_time)
                time.sleep(frame_time)

            nodes = controller.get_discovered_artnet_nodes()
            click.echo("Art-Net nodes:")
            click.echo("-" * 60)
            for node in nodes:
                click.echo(f"  {node.ip_address:<16} {node.node_name} ({node.output_count} ports)")
            if not nodes:
                click.echo("  (no nodes found)")

        if rdm:
            controller.discover_rdm_fixtures()
            fixtures = controller.get_discovered_rdm_fixtures()
            click.echo("RDM fixtures:")
            click.echo("-" * 60)
            for fixture in fixtures:
                click.echo(
                    f"  {fixture.rdm_uid} {fixture.manufacturer_name} {fixture.model_name} "
                    f"@ U{fixture.universe}/{fixture.dmx_address}"
                )
            if not fixtures:
                click.echo("  (no RDM fixtures found)")
    except KeyboardInterrupt:
        pass
    finally:
        controller.shutdown()


def main() -> None:
    """Entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
