#!/usr/bin/env python3
"""Main CLI entry point for Page Scout using Typer.

Runs one capture per URL and writes the resulting PageCapture documents as
JSON, either to stdout or to a file.
"""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Annotated, List, Optional

import typer

from .. import __version__
from ..capture.config import create_engine_config
from ..capture.engine import CaptureEngine
from ..models.capture import PageCapture


app = typer.Typer(
    name="pagescout",
    help="Page Scout - capture requests, markup and page globals of a page load",
    add_completion=False,
    rich_markup_mode="rich"
)


def capture_to_dict(capture: PageCapture) -> dict:
    """JSON-ready representation of a capture."""
    data = capture.model_dump(mode="python")
    data['window_properties'] = {
        name: value.to_dict() if hasattr(value, 'to_dict') else value
        for name, value in capture.window_properties.items()
    }
    return data


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


@app.callback()
def main():
    """
    Page Scout - capture a page load.

    Records every request/response pair, the rendered markup and the global
    variables a page defines beyond the browser's native ones.
    """
    pass


@app.command(name="version")
def show_version():
    """Show version information."""
    typer.echo(f"Page Scout v{__version__}")


@app.command()
def capture(
    urls: Annotated[
        List[str],
        typer.Argument(help="URLs to capture")
    ],

    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to capture configuration YAML")
    ] = None,

    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Write JSON results to this file instead of stdout")
    ] = None,

    retries: Annotated[
        Optional[int],
        typer.Option("--retries", help="Extra attempts for failed captures")
    ] = None,

    headful: Annotated[
        bool,
        typer.Option("--headful", help="Run browser with GUI (for debugging)")
    ] = False,

    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Verbose output")
    ] = False,
):
    """Capture one or more pages and print the results as JSON."""
    configure_logging(verbose)

    try:
        engine_config = create_engine_config(config)
    except Exception as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(code=2)

    if retries is not None:
        engine_config.retry_attempts = retries
    if headful:
        engine_config.browser_config.headless = False

    async def run() -> List[PageCapture]:
        async with CaptureEngine(engine_config) as engine:
            return await engine.capture_pages(urls)

    captures = asyncio.run(run())

    payload = [capture_to_dict(c) for c in captures]
    document = json.dumps(payload if len(payload) > 1 else payload[0], indent=2, default=str)

    if output:
        output.write_text(document, encoding='utf-8')
        typer.echo(f"Wrote {len(captures)} capture(s) to {output}", err=True)
    else:
        typer.echo(document)

    if not all(c.is_successful for c in captures):
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
