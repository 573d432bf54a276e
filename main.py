import logging
import sys
import time
from pathlib import Path
from typing import Optional, TextIO

import structlog
import typer

from config import Settings, get_settings, get_settings_for_environment
from csv_io import OperationParseError, read_operations, write_balances
from services import get_transaction_service

logger = structlog.get_logger()


def configure_logging(settings: Settings) -> None:
    """Route structured logs to stderr; stdout is reserved for the report."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level, force=True)

    if settings.log_format == "text":
        renderer = structlog.dev.ConsoleRenderer(colors=False)
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def process_file(input_path: Path, settings: Settings, out: TextIO) -> int:
    """Process one input file and write the report to ``out``.

    Returns the process exit code. Nothing is written to ``out`` unless the
    whole file was read and applied.
    """
    start_time = time.time()
    service = get_transaction_service(detailed_logging=settings.enable_detailed_logging)

    logger.info(
        "Processing operations",
        app=settings.app_name,
        version=settings.app_version,
        input=str(input_path)
    )

    try:
        with open(input_path, encoding="utf-8", newline="") as f:
            service.process_all(read_operations(f))
    except OperationParseError as e:
        logger.error("Malformed operation record", input=str(input_path), line=e.line, error=str(e))
        return 1
    except OSError as e:
        logger.error("Failed to read input", input=str(input_path), error=str(e))
        return 1

    rows = write_balances(service.balances(), out, places=settings.output_decimal_places)
    out.flush()

    logger.info(
        "Report written",
        accounts=rows,
        process_time=round(time.time() - start_time, 4)
    )
    return 0


app = typer.Typer(
    add_completion=False,
    help="Apply a CSV stream of deposits, withdrawals and disputes and print final client balances.",
)


def _version_callback(value: bool) -> None:
    if value:
        settings = get_settings()
        typer.echo(f"{settings.app_name} {settings.app_version}")
        raise typer.Exit()


@app.command()
def main(
    input_path: Path = typer.Argument(..., help="CSV file with type,client,tx,amount columns."),
    env: Optional[str] = typer.Option(
        None, "--env", help="Settings profile: development, production or testing."
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Override the configured log level."
    ),
    version: Optional[bool] = typer.Option(
        None, "--version", callback=_version_callback, is_eager=True, help="Show the version and exit."
    ),
) -> None:
    """Print client balances as CSV on stdout."""
    settings = get_settings_for_environment(env) if env else get_settings()
    if log_level:
        settings = settings.model_copy(update={"log_level": log_level})
    configure_logging(settings)

    exit_code = process_file(input_path, settings, sys.stdout)
    if exit_code:
        raise typer.Exit(code=exit_code)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
