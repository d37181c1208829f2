"""Command-line entry points for the report viewer."""

import asyncio
import logging
import os
from pathlib import Path
from typing import Optional

import typer
from rich import print as rprint
from rich.logging import RichHandler

from .analytics import NullAnalytics
from .config import get_settings
from .controller import IntakeController
from .errors import RenderError
from .gist import GistClient
from .location import LocationSync
from .models import IntakeOutcome

app = typer.Typer(
    help="Open Lighthouse JSON reports from files or gists and share them as gists."
)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(show_path=False, markup=False)],
        force=True,
    )


def _build_controller() -> IntakeController:
    settings = get_settings()
    return IntakeController(
        store=GistClient(settings),
        location=LocationSync(settings.app_url),
        analytics=NullAnalytics(),
        settings=settings,
    )


def _looks_like_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


async def _open(controller: IntakeController, source: str) -> IntakeOutcome:
    if _looks_like_url(source):
        return await controller.on_url_changed(source)
    return await controller.on_file_selected(Path(source))


def _write_page(controller: IntakeController, out: Optional[Path]) -> None:
    page = controller.document.to_html()
    if out:
        out.write_text(page, encoding="utf-8")
        rprint(f"[cyan]Wrote report page to {out}[/cyan]")
    else:
        typer.echo(page)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
):
    _configure_logging(verbose)


@app.command("view")
def view_command(
    source: str = typer.Argument(..., help="Path to a report JSON file or a gist URL."),
    out: Optional[Path] = typer.Option(
        None,
        "--out",
        "-o",
        help="Optional path to write the rendered page. Defaults to stdout.",
    ),
):
    """Validate and render one report."""
    controller = _build_controller()
    try:
        outcome = asyncio.run(_open(controller, source))
    except RenderError as exc:
        rprint(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)
    if outcome.error is not None:
        rprint(f"[red]Could not open {source}: {outcome.error}[/red]")
        raise typer.Exit(code=1)

    _write_page(controller, out)
    rprint(f"[green]Rendered report ({outcome.origin.value}): {controller.location.current}[/green]")


@app.command("share")
def share_command(
    path: Path = typer.Argument(..., help="Path to a local report JSON file."),
):
    """Upload a local report as a secret gist and print its deep link."""
    controller = _build_controller()

    async def _share() -> Optional[str]:
        outcome = await controller.on_file_selected(path)
        if outcome.error is not None or controller.document.save_callback is None:
            rprint(f"[red]Could not open {path}: {outcome.error}[/red]")
            return None
        return await controller.document.save_callback()

    try:
        gist_id = asyncio.run(_share())
    except RenderError as exc:
        rprint(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)
    if gist_id is None:
        raise typer.Exit(code=1)
    rprint(f"[green]Saved gist {gist_id}[/green]")
    rprint(controller.location.current)


@app.command("serve")
def serve_command(
    host: str = typer.Option(os.getenv("VIEWER_HOST", "127.0.0.1"), help="Bind address."),
    port: int = typer.Option(int(os.getenv("VIEWER_PORT", "8000")), help="Bind port."),
    reload: bool = typer.Option(False, help="Reload on code changes."),
):
    """Run the viewer's HTTP shell."""
    import uvicorn

    uvicorn.run("lighthouse_viewer.server:app", host=host, port=port, reload=reload)


def main():
    app()


if __name__ == "__main__":
    main()
