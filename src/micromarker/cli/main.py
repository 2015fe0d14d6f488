"""Main CLI entrypoint using Typer."""

from __future__ import annotations

import logging

import typer

from micromarker import __version__
from micromarker.cli.stats import stats_app

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

app = typer.Typer(
    name="micromarker",
    help="Differential abundance markers between two groups of microbiome samples.",
    add_completion=False,
)
app.add_typer(stats_app, name="stats")


def _show_version(value: bool):
    if value:
        typer.echo(f"micromarker {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    log_level: str = typer.Option(
        "INFO", "--log-level", help="DEBUG, INFO, WARNING or ERROR."
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=_show_version,
        is_eager=True,
        help="Show version and exit.",
    ),
):
    """micromarker: biomarker discovery for microbiome abundance data."""
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise typer.BadParameter(f"unknown log level '{log_level}'", param_hint="--log-level")
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")


if __name__ == "__main__":
    app()
