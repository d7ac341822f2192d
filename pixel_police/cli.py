"""CLI entry point for the WordPress screenshot diff tool."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from pixel_police.diff.image_diff import compare_screenshots
from pixel_police.discovery.wordpress import (
    build_descriptor_list,
    check_api_access,
    create_client,
    fetch_post_types,
)
from pixel_police.errors import DiscoveryError, NoPagesError, SnapshotArtifactError
from pixel_police.models.config import CookieConfig, ToolConfig
from pixel_police.models.page import PageDescriptor, PostType
from pixel_police.models.session import Session
from pixel_police.models.snapshot import ErroredComparison
from pixel_police.orchestrator import Orchestrator, create_run_root
from pixel_police.reporter.html_report import page_status
from pixel_police.url_utils import is_local_dev_host, normalize_site_url

console = Console()

DEFAULT_CONFIG = "pixel-police.json"


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def load_config(path: str) -> ToolConfig:
    """Load the config file, or fall back to defaults when it does not exist."""
    try:
        return ToolConfig.load(path)
    except FileNotFoundError:
        return ToolConfig()


async def discover_post_types(site_url: str) -> tuple[bool, list[PostType]]:
    """Return whether the REST API is reachable and, if so, its public post types."""
    async with create_client(site_url) as client:
        if not await check_api_access(client, site_url):
            return False, []
        try:
            included, _ = await fetch_post_types(client, site_url)
        except DiscoveryError as e:
            console.print(f"[yellow]Could not list post types: {e}[/yellow]")
            return True, []
        return True, included


async def discover_pages(cfg: ToolConfig, post_types: Optional[list[PostType]]) -> list[PageDescriptor]:
    async with create_client(cfg.site_url) as client:
        return await build_descriptor_list(
            client,
            cfg.site_url,
            posts_per_type=cfg.posts_per_type,
            selected_post_types=post_types,
            fetch_count=cfg.posts_fetch_count,
        )


def select_post_types(available: list[PostType], preselected: list[str]) -> list[PostType]:
    """Pick the post types to sample, from options or by asking the operator."""
    if preselected:
        unknown = set(preselected) - {t.slug for t in available}
        if unknown:
            console.print(f"[yellow]Ignoring unknown post types: {', '.join(sorted(unknown))}[/yellow]")
        return [t for t in available if t.slug in preselected]

    console.print("\n[bold]Post types found:[/bold]")
    for t in available:
        console.print(f"  - {t.slug} [dim]({t.name or t.slug})[/dim]")
    answer = click.prompt(
        "Post types to EXCLUDE (comma-separated, empty for none)",
        default="",
        show_default=False,
    )
    excluded = {s.strip() for s in answer.split(",") if s.strip()}
    return [t for t in available if t.slug not in excluded]


def choose_cookie_config(mode: Optional[str], text: Optional[str], current: CookieConfig) -> CookieConfig:
    if mode is None and text:
        mode = "custom"
    if mode is None:
        console.print("\n[bold]Cookie banner handling:[/bold]")
        console.print("  auto   - try common consent button labels (German and English)")
        console.print("  custom - click a button with your exact label")
        console.print("  none   - leave overlays alone")
        mode = click.prompt(
            "Cookie mode", type=click.Choice(["auto", "custom", "none"]), default=current.mode,
        )
    if mode == "custom" and not (text or "").strip():
        text = click.prompt("Button text to click", default=current.custom_text or None)
    return CookieConfig(mode=mode, custom_text=text if mode == "custom" else None)


def confirm_after_phase(session: Session) -> bool:
    console.print(f"\n[bold green]BEFORE screenshots complete[/bold green] ({len(session.descriptors)} pages)")
    console.print("Now perform your WordPress update (plugins, themes, core).")
    return click.confirm("Ready to take AFTER screenshots?", default=True)


def print_results(session: Session) -> None:
    comparisons = {c.descriptor.key: c for c in session.comparisons}
    errored: dict[tuple[str, str], list[ErroredComparison]] = {}
    for failure in session.errored:
        errored.setdefault(failure.descriptor.key, []).append(failure)

    table = Table(title="Results")
    table.add_column("Page", style="bold")
    table.add_column("Status")
    table.add_column("Desktop", justify="right")
    table.add_column("Mobile", justify="right")
    colors = {"changed": "red", "unchanged": "green", "pending": "yellow", "errored": "dark_orange"}
    for descriptor in session.descriptors:
        comparison = comparisons.get(descriptor.key)
        status = page_status(comparison, errored.get(descriptor.key))
        desktop = mobile = "-"
        if comparison is not None:
            desktop = f"{comparison.desktop_diff.diff_percentage:.2f}%"
            mobile = f"{comparison.mobile_diff.diff_percentage:.2f}%"
        table.add_row(descriptor.label, f"[{colors[status]}]{status}[/{colors[status]}]", desktop, mobile)
    console.print(table)
    console.print(f"\n[bold]{session.summary_line()}[/bold]")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """WordPress before/after visual regression screenshots."""
    setup_logging(verbose)


@cli.command()
@click.argument("site_url", required=False)
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
@click.option("--cookie-mode", type=click.Choice(["auto", "custom", "none"]), default=None,
              help="Cookie banner handling")
@click.option("--cookie-text", default=None, help="Button label for custom cookie mode")
@click.option("--post-type", "post_types", multiple=True, help="Post type slug to include (repeatable)")
@click.option("--posts-per-type", type=int, default=None, help="Random posts sampled per post type")
@click.option("--open/--no-open", "open_report", default=None, help="Open the report when done")
def run(
    site_url: Optional[str],
    config: str,
    cookie_mode: Optional[str],
    cookie_text: Optional[str],
    post_types: tuple[str, ...],
    posts_per_type: Optional[int],
    open_report: Optional[bool],
) -> None:
    """Capture BEFORE, wait for the update, capture AFTER, and diff."""
    cfg = load_config(config)
    site_url = site_url or cfg.site_url or click.prompt("WordPress site URL")
    cfg.site_url = normalize_site_url(site_url)
    if posts_per_type is not None:
        cfg.posts_per_type = posts_per_type
    if open_report is not None:
        cfg.open_report = open_report

    console.print(f"[bold]Site:[/bold] {cfg.site_url}")
    if is_local_dev_host(cfg.site_url):
        console.print("[yellow]Local development site: certificate errors will be ignored[/yellow]")

    api_ok, available = asyncio.run(discover_post_types(cfg.site_url))
    selected: Optional[list[PostType]] = None
    if not api_ok:
        console.print("[yellow]WordPress REST API not reachable, only the homepage will be captured[/yellow]")
        selected = []
    elif available:
        selected = select_post_types(available, list(post_types) or cfg.post_types)

    try:
        cfg.cookie = choose_cookie_config(cookie_mode, cookie_text, cfg.cookie)
    except ValueError as e:
        console.print(f"[red]Invalid cookie settings: {e}[/red]")
        sys.exit(1)

    descriptors = asyncio.run(discover_pages(cfg, selected))
    console.print(f"\n[bold]{len(descriptors)} pages to capture:[/bold]")
    for d in descriptors:
        console.print(f"  - {d.label} [dim]{d.url}[/dim]")

    run_root = create_run_root(cfg.site_url, cfg.output_dir)
    orchestrator = Orchestrator(cfg, run_root)
    try:
        session = orchestrator.run_full_pipeline(descriptors, confirm_after_phase)
    except NoPagesError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    if session.state == "finalized":
        console.print("\n[bold green]Comparison Complete[/bold green]")
        print_results(session)
    else:
        console.print("\n[yellow]Stopped after BEFORE screenshots.[/yellow]")

    for fmt, path in orchestrator.reports.items():
        console.print(f"  {fmt.upper()} report: [blue]{path}[/blue]")
    if cfg.open_report and "html" in orchestrator.reports:
        click.launch(orchestrator.reports["html"])


@cli.command()
@click.argument("before", type=click.Path(path_type=Path))
@click.argument("after", type=click.Path(path_type=Path))
@click.argument("diff_out", type=click.Path(path_type=Path))
@click.option("--threshold", type=float, default=None, help="Color distance threshold (0-1, lower is stricter)")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def compare(before: Path, after: Path, diff_out: Path, threshold: Optional[float], config: str) -> None:
    """Diff two screenshots and write the diff image."""
    options = load_config(config).diff
    if threshold is not None:
        options = options.model_copy(update={"threshold": threshold})
    try:
        result = compare_screenshots(before, after, diff_out, options)
    except SnapshotArtifactError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    table = Table(title="Diff")
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("Changed pixels", f"{result.diff_pixels:,}")
    table.add_row("Total pixels", f"{result.total_pixels:,}")
    table.add_row("Changed", f"{result.diff_percentage:.2f}%")
    table.add_row("Before size", str(result.before_dimensions))
    table.add_row("After size", str(result.after_dimensions))
    console.print(table)
    if result.dimensions_differ:
        console.print("[yellow]Dimensions differ; the smaller image was padded with white[/yellow]")
    console.print(f"Diff image: [blue]{result.diff_path}[/blue]")


@cli.command()
@click.option("--target", "-t", prompt="WordPress site URL", help="Website URL to compare")
def init(target: str) -> None:
    """Create a default configuration file."""
    config_path = Path(DEFAULT_CONFIG)
    if config_path.exists():
        if not click.confirm(f"{DEFAULT_CONFIG} already exists. Overwrite?"):
            return

    cfg = ToolConfig(site_url=normalize_site_url(target))
    cfg.save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nYou can now customize this file and run:")
    console.print("  [blue]pixel-police run[/blue]")


if __name__ == "__main__":
    cli()
