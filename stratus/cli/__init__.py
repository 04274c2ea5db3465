import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

import click
from appdirs import user_log_dir
from rich.console import Console
from rich.logging import RichHandler

from stratus.cli.commands import run_template
from stratus.exceptions import StratusError

console = Console()

app_logger = logging.getLogger("stratus")
app_logger.setLevel(logging.DEBUG)

app_name = "stratus"
log_dir = Path(user_log_dir(app_name))
log_file_path = log_dir / f"{app_name}.log"

logger = logging.getLogger(__name__)


def _add_file_handler() -> None:
    if any(isinstance(handler, TimedRotatingFileHandler) for handler in app_logger.handlers):
        return
    log_dir.mkdir(parents=True, exist_ok=True)
    file_handler = TimedRotatingFileHandler(
        filename=str(log_file_path), when="D", interval=1, backupCount=7, encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    app_logger.addHandler(file_handler)


@click.group()
@click.option(
    "--verbose", "-v", count=True, help="Increase verbosity. -v for INFO, -vv for DEBUG logs."
)
def cli(verbose: int) -> None:
    _add_file_handler()

    if verbose > 0:
        console_handler = RichHandler(
            console=console,
            show_time=False,
            show_level=True,
            markup=True,
            tracebacks_suppress=[click],
            rich_tracebacks=True,
        )
        if verbose == 1:
            console_handler.setLevel(logging.INFO)
            console.print("[italic blue]Console verbosity: INFO[/]")
        elif verbose >= 2:  # noqa: PLR2004
            console_handler.setLevel(logging.DEBUG)
            console.print("[italic green]Console verbosity: DEBUG[/]")

        console.print(f"[italic dim]Logs saved to: {log_file_path}[/]")
        app_logger.addHandler(console_handler)


@click.command()
@click.argument("app_ref")
@click.option("--bucket", required=True, help="S3 bucket holding the uploaded code bundle")
@click.option("--key", required=True, help="S3 key of the uploaded code bundle")
@click.option("--runtime", default=None, help="Lambda runtime for every emitted function")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the document to this file instead of stdout",
)
def template(
    app_ref: str, bucket: str, key: str, runtime: str | None, output: Path | None
) -> None:
    """Assemble APP_REF (module:attribute) into a CloudFormation document."""
    try:
        run_template(app_ref, bucket, key, runtime, output)
    except StratusError as e:
        logger.debug("Template assembly failed", exc_info=True)
        console.print(f"[bold red]✗ {e}[/bold red]", highlight=False)
        raise SystemExit(1) from None


cli.add_command(template)
