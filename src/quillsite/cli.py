"""CLI interface for quillsite."""

import json
import logging
from pathlib import Path
from typing import Annotated, NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from quillsite.admin.service import AdminService
from quillsite.build.aggregator import aggregate
from quillsite.build.orchestrator import SiteBuilder
from quillsite.config import QuillsiteConfig, load_config, merge_cli_overrides
from quillsite.content.codec import TreeFormCodec
from quillsite.content.entities import content_type_for
from quillsite.content.models import CONTENT_PATH_FIELD, CONTENT_TYPE_FIELD
from quillsite.errors import QuillsiteError

app = typer.Typer(
    name="quillsite",
    help="Build static sites from Markdown, JSON and media, and edit content through generated forms.",
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from quillsite import __version__

        console.print(f"quillsite {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to a .quillsite.toml file."),
    ] = None,
    project_root: Annotated[
        Optional[Path],
        typer.Option("--root", help="Project root. Defaults to the current directory."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable debug logging."),
    ] = False,
) -> None:
    """Quillsite - static site builder with a schema-less content admin."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    ctx.obj = {"config_path": config_path, "project_root": project_root}


def _config(ctx: typer.Context, **overrides: object) -> QuillsiteConfig:
    obj = ctx.obj or {}
    config = load_config(obj.get("config_path"))
    return merge_cli_overrides(config, project_root=obj.get("project_root"), **overrides)


def _fail(message: str) -> NoReturn:
    console.print(f"[red]Error:[/red] {escape(message)}")
    raise typer.Exit(1)


@app.command()
def build(
    ctx: typer.Context,
    content_dir: Annotated[
        Optional[Path], typer.Option("--content", help="Content directory.")
    ] = None,
    output_dir: Annotated[
        Optional[Path], typer.Option("--output", "-o", help="Output directory.")
    ] = None,
    templates_dir: Annotated[
        Optional[Path], typer.Option("--templates", help="Page templates directory.")
    ] = None,
    no_admin: Annotated[
        bool, typer.Option("--no-admin", help="Skip admin page generation.")
    ] = False,
) -> None:
    """Build the static site."""
    config = _config(
        ctx,
        content_dir=content_dir,
        output_dir=output_dir,
        templates_dir=templates_dir,
        no_admin=no_admin,
    )
    try:
        report = SiteBuilder(config).build()
    except QuillsiteError as exc:
        _fail(str(exc))

    table = Table(title="Build output")
    table.add_column("Kind")
    table.add_column("Path")
    for page in report.pages:
        table.add_row("page", page)
    for page in report.admin_pages:
        table.add_row("admin", page)
    for name in report.media:
        table.add_row("media", name)
    console.print(table)
    for skipped in report.skipped:
        console.print(f"[yellow]Skipped[/yellow] {escape(skipped.path)}: {escape(skipped.reason)}")
    console.print(f"[green]Site built:[/green] {report.summary()}")


@app.command()
def clean(ctx: typer.Context) -> None:
    """Remove generated output, keeping content and the admin entry point."""
    config = _config(ctx)
    try:
        removed = SiteBuilder(config).clean()
    except QuillsiteError as exc:
        _fail(str(exc))
    console.print(f"Removed {len(removed)} entr(ies) from {config.output_dir}")


@app.command()
def context(ctx: typer.Context) -> None:
    """Print the aggregated build context as JSON."""
    config = _config(ctx)
    data = aggregate(
        config.content_dir, config.site, codec=TreeFormCodec(config.forms.max_depth)
    )
    typer.echo(json.dumps(data, indent=2, ensure_ascii=False, default=str))


@app.command()
def form(
    ctx: typer.Context,
    path: Annotated[str, typer.Argument(help="Content file, relative to the project root.")],
) -> None:
    """Print the HTML edit page for a content file."""
    config = _config(ctx)
    try:
        html = AdminService(config).edit_page(path)
    except QuillsiteError as exc:
        _fail(str(exc))
    typer.echo(html)


@app.command()
def save(
    ctx: typer.Context,
    path: Annotated[str, typer.Argument(help="Content file, relative to the project root.")],
    field: Annotated[
        Optional[list[str]],
        typer.Option("--field", "-f", help="Submitted field as NAME=VALUE. Repeatable."),
    ] = None,
    no_rebuild: Annotated[
        bool, typer.Option("--no-rebuild", help="Do not rebuild the site after saving.")
    ] = False,
) -> None:
    """Save submitted form fields to a content file."""
    config = _config(ctx, rebuild_on_save=False if no_rebuild else None)
    try:
        content_type = content_type_for(Path(path), config)
    except QuillsiteError as exc:
        _fail(str(exc))

    submitted: dict[str, str] = {CONTENT_TYPE_FIELD: content_type, CONTENT_PATH_FIELD: path}
    for item in field or []:
        name, sep, value = item.partition("=")
        if not sep:
            _fail(f"Field must be NAME=VALUE: {item!r}")
        submitted[name] = value

    result = AdminService(config).save(submitted)
    if not result.ok:
        _fail(result.message)
    console.print(f"[green]{escape(result.message)}[/green]")


if __name__ == "__main__":
    app()
