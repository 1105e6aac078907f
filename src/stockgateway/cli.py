#!/usr/bin/env python3
"""
Stock Data Gateway Command Line Interface

Provides:
- One-off fetches through the cache (with per-call latency)
- Running the HTTP gateway
- Inspecting the effective configuration

Usage:
    stockgateway fetch IBM --granularity daily --repeat 2
    stockgateway serve --port 8080
    stockgateway show-config --output json
"""

from __future__ import annotations

import json
import sys
import time

import click
import yaml

from . import __version__
from .config import GatewaySettings, create_default_settings
from .data.gateway import DataGateway
from .data.granularity import Granularity, cache_key
from .data.upstream import AlphaVantageFetcher
from .exceptions import FetchError

GRANULARITY_CHOICES = [g.value.lower() for g in Granularity]


class GatewayCLI:
    """Gateway CLI helper class."""

    def __init__(self, settings: GatewaySettings) -> None:
        self.settings = settings
        self._gateway: DataGateway | None = None

    @property
    def gateway(self) -> DataGateway:
        """Gateway built lazily so config-only commands never open a session."""
        if self._gateway is None:
            self._gateway = DataGateway(
                AlphaVantageFetcher(self.settings.upstream),
                cache_config=self.settings.cache,
            )
        return self._gateway


@click.group()
@click.version_option(version=__version__, prog_name="stockgateway")
@click.option(
    "--config", "-c", "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML configuration file",
)
@click.option(
    "--log-level", "-l",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Override the configured log level",
)
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, log_level: str | None) -> None:
    """
    Stock Data Gateway CLI

    Serves intraday, daily, weekly and monthly time series through an
    in-memory cache in front of Alpha Vantage.

    \b
    Examples:
        # Fetch daily IBM data twice; the second call is a cache hit
        stockgateway fetch IBM --repeat 2

        # Run the HTTP gateway
        stockgateway serve --port 8080

        # Show the effective configuration
        stockgateway show-config
    """
    ctx.ensure_object(dict)
    settings = GatewaySettings.from_yaml(config_path) if config_path else create_default_settings()
    if log_level:
        settings.logging.level = log_level.upper()
    settings.logging.apply()
    ctx.obj["cli"] = GatewayCLI(settings)


@cli.command()
@click.argument("symbol")
@click.option(
    "--granularity", "-g",
    type=click.Choice(GRANULARITY_CHOICES, case_sensitive=False),
    default="daily",
    help="Series granularity",
    show_default=True,
)
@click.option(
    "--repeat", "-r",
    type=click.IntRange(min=1),
    default=1,
    help="Number of sequential fetches",
    show_default=True,
)
@click.option(
    "--pretty", "-p",
    is_flag=True,
    help="Indent the JSON payload",
)
@click.pass_context
def fetch(ctx: click.Context, symbol: str, granularity: str, repeat: int, pretty: bool) -> None:
    """
    Fetch a time series through the cache.

    The payload is printed to stdout; per-call latency goes to stderr so the
    output stays pipeable.

    \b
    Examples:
        stockgateway fetch MSFT -g weekly
        stockgateway fetch IBM --repeat 3 --pretty
    """
    gateway_cli: GatewayCLI = ctx.obj["cli"]
    gateway = gateway_cli.gateway
    key = cache_key(granularity, symbol)

    payload = ""
    for attempt in range(1, repeat + 1):
        was_cached = gateway.is_cached(granularity, symbol)
        started = time.perf_counter()
        try:
            payload = gateway.fetch(granularity, symbol)
        except FetchError as e:
            click.secho(f"Error fetching {key}: {e.message}", fg="red", err=True)
            sys.exit(1)
        elapsed_ms = (time.perf_counter() - started) * 1000
        status = "HIT " if was_cached else "MISS"
        click.secho(
            f"#{attempt:02d} {key} {status} {elapsed_ms:7.1f}ms",
            fg="green" if was_cached else "yellow",
            err=True,
        )

    if pretty:
        try:
            payload = json.dumps(json.loads(payload), indent=2)
        except ValueError:
            click.secho("Warning: payload is not JSON, printing as-is", fg="yellow", err=True)
    click.echo(payload)


@cli.command()
@click.option("--host", "-h", default=None, help="Bind address (default from config)")
@click.option("--port", "-p", type=int, default=None, help="Port (default from config)")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """
    Run the HTTP gateway.

    \b
    Endpoints:
        GET    /api/stocks/{symbol}/{intraday|daily|weekly|monthly}
        DELETE /api/cache
        GET    /health
    """
    import uvicorn

    from .api import create_app

    gateway_cli: GatewayCLI = ctx.obj["cli"]
    settings = gateway_cli.settings
    app = create_app(gateway_cli.gateway, settings)

    host = host or settings.server.host
    port = port or settings.server.port
    click.echo(f"Serving on http://{host}:{port}")
    for name in GRANULARITY_CHOICES:
        click.echo(f"   GET /api/stocks/{{symbol}}/{name}")

    uvicorn.run(app, host=host, port=port, log_config=None)


@cli.command("show-config")
@click.option(
    "--output", "-o",
    type=click.Choice(["yaml", "json"], case_sensitive=False),
    default="yaml",
    help="Output format",
    show_default=True,
)
@click.pass_context
def show_config(ctx: click.Context, output: str) -> None:
    """Print the effective configuration."""
    gateway_cli: GatewayCLI = ctx.obj["cli"]
    data = gateway_cli.settings.model_dump()
    if data["upstream"]["api_key"] != "demo":
        data["upstream"]["api_key"] = "***"

    if output == "json":
        click.echo(json.dumps(data, indent=2))
    else:
        click.echo(yaml.dump(data, default_flow_style=False, sort_keys=False))


def main() -> None:
    """Main entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
