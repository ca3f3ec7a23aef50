"""
Command-line interface for wc-compiler.

    wc-compiler INPUT_DIR OUTPUT_DIR

The two directories are the whole contract; logging, the generation window,
and the worker count come from the environment (see infra.settings).
Diagnostics go to stderr, one per line. Exit status is 1 if any error was
found, in which case OUTPUT_DIR is left untouched.
"""

from __future__ import annotations

from pathlib import Path

import typer
from pydantic import ValidationError

from wc_compiler.domain.calendar import Diagnostic
from wc_compiler.infra.exceptions import CompilerError
from wc_compiler.infra.logging import configure_logging, get_logger
from wc_compiler.infra.settings import load_settings
from wc_compiler.runtime.compile_pipeline import compile_calendar

app = typer.Typer(help="Compile event files into a published calendar", add_completion=False)


@app.command()
def main(
    input_dir: Path = typer.Argument(..., help="Directory holding meta.toml and the event files"),
    output_dir: Path = typer.Argument(..., help="Directory to publish the calendar into"),
):
    """Compile INPUT_DIR and publish the calendar into OUTPUT_DIR."""
    try:
        settings = load_settings()
    except ValidationError as e:
        typer.echo(f"Error: invalid configuration: {e}", err=True)
        raise typer.Exit(1)

    configure_logging(settings.log_level, settings.log_format)
    log = get_logger(__name__)

    try:
        report = compile_calendar(
            input_dir,
            output_dir,
            settings.window(),
            workers=settings.compile_workers,
        )
    except CompilerError as e:
        log.error("compile_aborted", kind=e.kind, message=e.message)
        typer.echo(Diagnostic.from_error(e).render(), err=True)
        raise typer.Exit(1)

    for diagnostic in report.diagnostics:
        typer.echo(diagnostic.render(), err=True)
    raise typer.Exit(0 if report.ok else 1)


def cli():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    cli()
