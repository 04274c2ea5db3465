import logging
import sys
from importlib import import_module
from pathlib import Path

from rich.console import Console

from stratus.app import StratusApp
from stratus.config import CodeLocation, TemplateConfig
from stratus.exceptions import ValidationError

console = Console()
logger = logging.getLogger(__name__)


def load_app(app_ref: str) -> StratusApp:
    """Import a `module:attribute` reference and return the StratusApp it names."""
    module_name, _, attribute = app_ref.partition(":")
    if not module_name or not attribute:
        raise ValidationError(f"App reference must look like 'module:attribute', got '{app_ref}'")

    cwd = str(Path.cwd())
    if cwd not in sys.path:
        sys.path.insert(0, cwd)
    try:
        module = import_module(module_name)
    except ImportError as e:
        raise ValidationError(f"Cannot import module '{module_name}': {e}") from e

    app = getattr(module, attribute, None)
    if not isinstance(app, StratusApp):
        raise ValidationError(f"'{app_ref}' is not a StratusApp")
    logger.debug("Loaded app '%s' from %s", app.name, app_ref)
    return app


def run_template(
    app_ref: str, bucket: str, key: str, runtime: str | None, output: Path | None
) -> None:
    app = load_app(app_ref)
    config = TemplateConfig(
        code=CodeLocation(bucket=bucket, key=key),
        description=app.description,
        **({"runtime": runtime} if runtime else {}),
    )
    document = app.assemble(config)
    rendered = document.to_json()

    if output is None:
        print(rendered)  # noqa: T201
        return
    output.write_text(rendered + "\n", encoding="utf-8")
    console.print(
        f"[bold green]✓[/bold green] Wrote {len(document)} resources to [cyan]{output}[/cyan]",
        highlight=False,
    )
