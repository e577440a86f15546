"""CLI entry point for Pixel Perfect."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from pixel_perfect.devices.registry import DeviceRegistry
from pixel_perfect.errors import PixelPerfectError
from pixel_perfect.models.config import IgnoreRegion, PixelPerfectConfig
from pixel_perfect.models.device import ENGINE_KINDS
from pixel_perfect.orchestrator import Orchestrator

console = Console()


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _split_csv(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _parse_regions(ctx, param, values: tuple[str, ...]) -> list[IgnoreRegion]:
    try:
        return [IgnoreRegion.parse(v) for v in values]
    except (ValueError, ValidationError) as e:
        raise click.BadParameter(str(e)) from e


def _parse_browsers(ctx, param, value: Optional[str]) -> list[str]:
    browsers = _split_csv(value)
    unknown = [b for b in browsers if b not in ENGINE_KINDS]
    if unknown:
        raise click.BadParameter(
            f"Unsupported browser(s): {', '.join(unknown)} (choose from {', '.join(ENGINE_KINDS)})"
        )
    return browsers


def common_options(f):
    """Options shared by ``test`` and ``update-baseline``."""
    options = [
        click.option("--url", "-u", required=True, help="URL to test"),
        click.option("--config", "-c", "config_path", default=None,
                     help="JSON config file; flags given on the command line override it"),
        click.option("--devices", "-d", default=None,
                     help="Comma-separated device names (default: iPhone 12,iPad Pro,Desktop)"),
        click.option("--output", "--output-dir", "-o", "output_dir", default=None,
                     help="Output directory for screenshots and reports (default: ./screenshots)"),
        click.option("--threshold", "-t", type=click.FloatRange(0.0, 1.0), default=None,
                     help="Pixel match threshold (0-1, default: 0.1)"),
        click.option("--ignore-antialiasing/--include-antialiasing", default=None,
                     help="Do not count anti-aliased pixels as differences"),
        click.option("--ignore-colors/--compare-colors", default=None,
                     help="Compare luminance only"),
        click.option("--ignore-transparency/--compare-transparency", default=None,
                     help="Ignore alpha channel differences"),
        click.option("--ignore-region", "ignore_regions", multiple=True, callback=_parse_regions,
                     help="Region to exclude from the diff as x,y,width,height (repeatable)"),
        click.option("--parallel", "-p", type=click.IntRange(min=1), default=None,
                     help="Maximum number of concurrent captures (default: 3)"),
        click.option("--browsers", "-b", default=None, callback=_parse_browsers,
                     help="Comma-separated engines: chromium,firefox,webkit (default: chromium)"),
        click.option("--headed", is_flag=True, default=False, help="Show browser windows"),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def build_config(
    url: str,
    config_path: Optional[str] = None,
    devices: Optional[str] = None,
    output_dir: Optional[str] = None,
    threshold: Optional[float] = None,
    ignore_antialiasing: Optional[bool] = None,
    ignore_colors: Optional[bool] = None,
    ignore_transparency: Optional[bool] = None,
    ignore_regions: Optional[list[IgnoreRegion]] = None,
    parallel: Optional[int] = None,
    browsers: Optional[list[str]] = None,
    headed: bool = False,
) -> PixelPerfectConfig:
    """Merge CLI flags over an optional config file into one PixelPerfectConfig."""
    data = PixelPerfectConfig.load(config_path).model_dump() if config_path else {}
    data["url"] = url
    diff = data.setdefault("diff", {})
    capture = data.setdefault("capture", {})

    if devices:
        data["devices"] = _split_csv(devices)
    if output_dir is not None:
        data["output_dir"] = output_dir
    if parallel is not None:
        data["max_parallel_browsers"] = parallel
    if browsers:
        data["browsers"] = browsers
    if threshold is not None:
        diff["threshold"] = threshold
    if ignore_antialiasing is not None:
        diff["ignore_antialiasing"] = ignore_antialiasing
    if ignore_colors is not None:
        diff["ignore_colors"] = ignore_colors
    if ignore_transparency is not None:
        diff["ignore_transparency"] = ignore_transparency
    if ignore_regions:
        diff["ignore_regions"] = [r.model_dump() for r in ignore_regions]
    if headed:
        capture["headless"] = False

    return PixelPerfectConfig(**data)


def _make_orchestrator(**kwargs) -> Orchestrator:
    try:
        cfg = build_config(**kwargs)
        return Orchestrator(cfg)
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        console.print("Run 'pixel-perfect init' to create a default config.")
        sys.exit(1)
    except (ValueError, PixelPerfectError) as e:
        # ValidationError is a ValueError
        console.print(f"[red]{e}[/red]")
        sys.exit(1)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Responsive visual regression testing"""
    setup_logging(verbose)


@cli.command()
@common_options
def test(**kwargs) -> None:
    """Capture screenshots and compare them against the baselines."""
    orchestrator = _make_orchestrator(**kwargs)
    try:
        output = orchestrator.run()
    except PixelPerfectError as e:
        console.print(f"[red]Test run failed:[/red] {e}")
        sys.exit(1)

    report = output.report
    table = Table(title="Visual Diff Results")
    table.add_column("Device", style="bold")
    table.add_column("Browser")
    table.add_column("Diff %", justify="right")
    table.add_column("Result")
    for d in report.diffs:
        result = f"[red]{d.message}[/red]" if d.has_diff else f"[green]{d.message}[/green]"
        table.add_row(d.device_name, d.engine_kind, f"{d.diff_percentage:.2f}", result)
    console.print(table)

    console.print(f"  JSON report: [blue]{output.json_path}[/blue]")
    console.print(f"  HTML report: [blue]{output.html_path}[/blue]")

    if report.summary.devices_with_diffs > 0:
        console.print(
            f"[red]{report.summary.devices_with_diffs} of {report.summary.total_devices} "
            f"device(s) differ from their baseline[/red]"
        )
        sys.exit(1)
    console.print("[bold green]All devices match their baselines[/bold green]")


@cli.command("update-baseline")
@common_options
def update_baseline(**kwargs) -> None:
    """Capture screenshots and store them as the new baselines."""
    orchestrator = _make_orchestrator(**kwargs)
    try:
        entries = orchestrator.update_baseline()
    except PixelPerfectError as e:
        console.print(f"[red]Failed to update baseline:[/red] {e}")
        sys.exit(1)

    if len(entries) < len(orchestrator.targets):
        console.print(
            f"[yellow]Only {len(entries)} of {len(orchestrator.targets)} screenshots were "
            f"captured; see the log for failures[/yellow]"
        )
    console.print(f"[green]Baseline updated:[/green] {len(entries)} screenshot(s) in "
                  f"[blue]{orchestrator.output_dir / 'baseline'}[/blue]")


@cli.command()
def devices() -> None:
    """List the built-in device presets."""
    registry = DeviceRegistry()
    defaults = {d.name for d in registry.list_defaults()}
    table = Table(title="Device Presets")
    table.add_column("Name", style="bold")
    table.add_column("Viewport")
    table.add_column("Scale", justify="right")
    table.add_column("Mobile")
    table.add_column("Default")
    for name in registry.names():
        d = registry.resolve(name)
        table.add_row(
            d.name,
            f"{d.viewport_width}x{d.viewport_height}",
            f"{d.device_scale_factor:g}",
            "yes" if d.is_mobile else "",
            "yes" if d.name in defaults else "",
        )
    console.print(table)


@cli.command()
@click.option("--url", "-u", prompt="Target URL", help="Website URL to test")
@click.option("--path", "config_path", default="pixel-perfect.json", help="Config file to write")
def init(url: str, config_path: str) -> None:
    """Create a default configuration file."""
    path = Path(config_path)
    if path.exists():
        if not click.confirm(f"{path} already exists. Overwrite?"):
            return

    cfg = PixelPerfectConfig(url=url)
    cfg.save(path)
    console.print(f"[green]Created {path}[/green]")
    console.print("\nCapture the first baselines with:")
    console.print(f"  [blue]pixel-perfect update-baseline --url {url} --config {path}[/blue]")


if __name__ == "__main__":
    cli()
