"""Command line interface for wallet-glue."""

from __future__ import annotations

import asyncio
import logging
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from pathlib import Path
from typing import Annotated, Any, Optional

import typer

from .adapter import ProtocolAdapter
from .config import GlueConfig, load_config
from .errors import GlueError
from .factory import build_display, build_session, build_subscriber, build_test_url
from .models import Report

LOGGER = logging.getLogger(__name__)

app = typer.Typer(help="Wallet test framework glue for browser-extension wallets")


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log automation steps and lock traffic."),
    ] = False,
) -> None:
    """Glue a browser-extension wallet to the wallet test framework."""

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def version() -> None:
    """Print the installed wallet-glue version."""

    try:
        installed = get_version("wallet-glue")
    except PackageNotFoundError:  # pragma: no cover - running from a source checkout
        installed = "unknown"
    typer.echo(f"wallet-glue {installed}")


async def serve(config: GlueConfig, report_timeout: Optional[float] = None) -> Report:
    """Start the wallet, open the harness and wait for its report."""

    adapter = await ProtocolAdapter.create(
        config,
        build_session(config.browser),
        build_subscriber(),
        display=build_display(config.browser),
    )
    try:
        await adapter.launch(build_test_url(config.harness))
        return await asyncio.wait_for(adapter.report_ready.wait(), timeout=report_timeout)
    finally:
        await adapter.close()


@app.command()
def run(
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to YAML configuration."),
    ] = None,
    env_file: Annotated[
        Optional[Path],
        typer.Option(
            "--env-file",
            help="Path to an .env file with default configuration values.",
        ),
    ] = None,
    extension_path: Annotated[
        Optional[Path],
        typer.Option("--extension-path", help="Unpacked wallet extension directory."),
    ] = None,
    browser_channel: Annotated[
        Optional[str],
        typer.Option("--browser-channel", help="Browser channel to launch (e.g. chrome)."),
    ] = None,
    test_url: Annotated[
        Optional[str],
        typer.Option("--test-url", help="URL of the wallet test framework."),
    ] = None,
    glue_url: Annotated[
        Optional[str],
        typer.Option("--glue-url", help="Websocket URL of the glue transport."),
    ] = None,
    headless: Annotated[
        Optional[bool],
        typer.Option("--headless/--headed", help="Run the browser in headless mode (or headed)."),
    ] = None,
    virtual_display: Annotated[
        Optional[bool],
        typer.Option(
            "--virtual-display/--no-virtual-display",
            help="Run the browser inside an Xvfb display.",
        ),
    ] = None,
    report_timeout: Annotated[
        Optional[float],
        typer.Option("--report-timeout", help="Seconds to wait for the harness report."),
    ] = None,
) -> None:
    """Drive the wallet through the test harness and print its report."""

    overrides: dict[str, Any] = {}
    if any(
        value is not None
        for value in (extension_path, browser_channel, headless, virtual_display)
    ):
        overrides.setdefault("browser", {})
        if extension_path is not None:
            overrides["browser"]["extension_path"] = str(extension_path)
        if browser_channel is not None:
            overrides["browser"]["channel"] = browser_channel
        if headless is not None:
            overrides["browser"]["headless"] = headless
        if virtual_display is not None:
            overrides["browser"]["virtual_display"] = virtual_display
    if test_url or glue_url:
        overrides.setdefault("harness", {})
        if test_url:
            overrides["harness"]["test_url"] = test_url
        if glue_url:
            overrides["harness"]["glue_url"] = glue_url

    config = load_config(config_path, env_file=env_file, **overrides)
    if config.browser.extension_path is None:
        typer.echo("An extension path is required (--extension-path).", err=True)
        raise typer.Exit(code=2)

    try:
        report = asyncio.run(serve(config, report_timeout))
    except (GlueError, asyncio.TimeoutError) as exc:
        LOGGER.error("Wallet glue failed: %s", exc or type(exc).__name__)
        raise typer.Exit(code=1) from exc

    if not isinstance(report.value, str):
        typer.echo("unsupported report type", err=True)
        raise typer.Exit(code=1)
    typer.echo(report.value, nl=False)


if __name__ == "__main__":
    app()
