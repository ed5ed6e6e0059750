"""Command-line interface for turning recent Notion edits into prompt-ready markdown."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Awaitable, Callable, Optional

import frontmatter
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import DrossConfig, ensure_config, render_starter_config
from .errors import DrossError
from .ingest.render import SECTION_SEPARATOR
from .ingest.service import IngestResult, IngestService, PageSection, create_service
from .notion.client import create_client

app = typer.Typer(help="Render recently edited Notion content as indented markdown.")
console = Console(stderr=True)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _build_service(
    config: DrossConfig,
    *,
    budget: float,
    indent: str,
    render_page_root: bool,
    format_markers: bool,
) -> tuple[IngestService, Callable[[], Awaitable[None]]]:
    defaults = config.defaults
    client = create_client(
        token=config.credentials.token,
        base_url=str(config.credentials.base_url),
        api_version=config.credentials.api_version,
        text_separator=defaults.text_separator,
    )
    service = create_service(
        client,
        indent=indent,
        render_page_root=render_page_root,
        format_markers=format_markers,
        budget=budget,
        skip_url_patterns=defaults.skip_url_patterns,
    )

    async def _cleanup() -> None:
        await client.aclose()

    return service, _cleanup


def _format_result(result: IngestResult) -> None:
    table = Table(title="Notion Ingest Summary")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Processed pages", str(result.processed_pages))
    table.add_row("Rendered pages", str(result.rendered_pages))
    table.add_row("Root blocks", str(result.root_count))
    table.add_row("Truncated pages", str(result.truncated_pages))
    console.print(table)


def _resolve_cutoff(*, since: Optional[datetime], days: float, now: Optional[datetime] = None) -> datetime:
    if since is not None:
        return since if since.tzinfo else since.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return now - timedelta(days=days)


def _write_output(path: Path, result: IngestResult, *, cutoff: datetime) -> None:
    post = frontmatter.Post(result.document)
    post.metadata.update(
        {
            "cutoff": cutoff.isoformat(),
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "pages": [section.document.title for section in result.sections],
        }
    )
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        frontmatter.dump(post, handle)


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a configuration TOML file",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log traversal details"),
) -> None:
    _configure_logging(verbose)
    ctx.obj = {"config_path": config_path}


@app.command()
def ingest(
    ctx: typer.Context,
    days: Optional[float] = typer.Option(
        None,
        "--days",
        "-d",
        min=0,
        help="Include content edited within this many days",
    ),
    since: Optional[datetime] = typer.Option(
        None,
        "--since",
        formats=["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%dT%H:%M:%S%z"],
        help="Explicit cutoff timestamp (UTC unless an offset is given); overrides --days",
    ),
    budget: Optional[float] = typer.Option(
        None,
        "--budget",
        min=0,
        help="Seconds allowed for finding edited blocks in each page",
    ),
    page_root: Optional[bool] = typer.Option(
        None,
        "--page-root/--no-page-root",
        help="Nest block lines under each page title line",
    ),
    markers: Optional[bool] = typer.Option(
        None,
        "--markers/--no-markers",
        help="Prefix headings, list items and callouts with markdown markers",
    ),
    indent: Optional[str] = typer.Option(None, "--indent", help="Indentation unit (default: a tab)"),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the document to this file with YAML frontmatter instead of stdout",
    ),
    token: Optional[str] = typer.Option(None, "--token", help="Notion integration token"),
) -> None:
    """Render every block edited within the time window, grouped by page."""

    try:
        config = ensure_config(token=token, config_path=ctx.obj.get("config_path"))
    except RuntimeError as exc:
        raise typer.BadParameter(str(exc)) from exc

    defaults = config.defaults
    cutoff = _resolve_cutoff(since=since, days=defaults.window_days if days is None else days)
    service, cleanup = _build_service(
        config,
        budget=defaults.root_budget_seconds if budget is None else budget,
        indent=defaults.indent if indent is None else indent,
        render_page_root=defaults.render_page_root if page_root is None else page_root,
        format_markers=defaults.format_markers if markers is None else markers,
    )

    emitted: list[PageSection] = []

    def _emit(section: PageSection) -> None:
        if emitted:
            typer.echo(SECTION_SEPARATOR, nl=False)
        typer.echo(section.text, nl=False)
        emitted.append(section)

    async def _run() -> IngestResult:
        try:
            return await service.ingest(cutoff, on_section=None if output else _emit)
        finally:
            await cleanup()

    try:
        result = asyncio.run(_run())
    except DrossError as exc:
        console.print(f"[red]Ingest failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    if output:
        _write_output(output, result, cutoff=cutoff)
        console.print(f"Wrote {result.rendered_pages} pages to [bold]{output}[/bold].")
    _format_result(result)


@app.command("init-config")
def init_config(
    path: Path = typer.Option(
        Path.cwd() / "dross.toml",
        "--path",
        "-p",
        help="Where to write the configuration file",
    ),
    token: str = typer.Option("secret_...", "--token", help="Notion integration token to store"),
    force: bool = typer.Option(
        False,
        "--force",
        help="Overwrite an existing configuration file",
    ),
) -> None:
    """Write a starter configuration file holding the default settings."""

    if path.exists() and not force:
        raise typer.BadParameter(f"{path} already exists. Use --force to overwrite it.")

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_starter_config(token), encoding="utf-8")
    console.print(f"Wrote configuration to [bold]{path}[/bold].")


def run() -> None:
    """Entry point for console scripts."""

    app()


if __name__ == "__main__":  # pragma: no cover
    run()
