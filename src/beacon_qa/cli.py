"""Beacon CLI entry point."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

if TYPE_CHECKING:
    from beacon_qa.config.models import BeaconConfig

app = typer.Typer(
    name="beacon",
    help="Beacon — synthetic monitoring for independently deployed web apps",
    no_args_is_help=True,
)
console = Console()


@app.callback()
def _configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show probe-level debug logs"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _load(path: Path | None) -> BeaconConfig:
    from beacon_qa.config.loader import load_config

    try:
        return load_config(path=path)
    except FileNotFoundError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1)
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1)


def _fmt_ms(value: float | None) -> str:
    return f"{value:.0f}ms" if value is not None else "—"


@app.command()
def status(
    path: Path | None = typer.Option(None, "--path", "-p", help="Path to .beacon.yaml"),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
    min_score: float = typer.Option(1.0, help="Exit non-zero when the overall score is below this"),
    samples: int | None = typer.Option(None, min=1, help="Probes per target (overrides config)"),
    timeout: float | None = typer.Option(None, help="Per-probe timeout in seconds (overrides config)"),
) -> None:
    """Probe every target and show the health verdicts."""
    from beacon_qa.health.monitor import HealthMonitor
    from beacon_qa.registry.registry import EmptyRegistryError

    config = _load(path)
    try:
        monitor = HealthMonitor(config)
    except EmptyRegistryError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1)

    report = monitor.run_sync(samples=samples, timeout=timeout)

    if as_json:
        console.print_json(json.dumps(report.to_dict()))
    else:
        table = Table(title="Beacon Health Report")
        table.add_column("Target", style="bold")
        table.add_column("Kind")
        table.add_column("Verdict")
        table.add_column("Status")
        table.add_column("Latency")
        table.add_column("LCP")
        table.add_column("CLS")
        table.add_column("Reasons")

        for name, verdict in report.verdicts.items():
            label = verdict.status_label
            style = {"healthy": "green", "degraded": "yellow"}.get(label, "red")
            # Show the observation the thresholds were judged on, else the latest failure.
            shown = verdict.best or (verdict.observations[-1] if verdict.observations else None)
            metrics = shown.render_metrics if shown else None
            cls = metrics.cumulative_layout_shift if metrics else None
            table.add_row(
                name,
                verdict.target.kind.value,
                f"[{style}]{label}[/{style}]",
                str(shown.status_code) if shown and shown.status_code is not None else "—",
                _fmt_ms(shown.latency_ms if shown else None),
                _fmt_ms(metrics.largest_contentful_paint_ms if metrics else None),
                f"{cls:.3f}" if cls is not None else "—",
                ", ".join(sorted(verdict.reasons)),
            )

        console.print(table)
        console.print(
            f"\n[bold]Overall score:[/bold] {report.overall_score:.4f} "
            f"({len(report.passed)}/{len(report.verdicts)} targets passing)"
        )

    if report.overall_score < min_score:
        raise typer.Exit(1)


@app.command()
def targets(
    path: Path | None = typer.Option(None, "--path", "-p", help="Path to .beacon.yaml"),
) -> None:
    """List the registered targets."""
    from beacon_qa.registry.registry import EmptyRegistryError, TargetRegistry

    config = _load(path)
    try:
        registry = TargetRegistry(config)
    except EmptyRegistryError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1)

    table = Table(title="Beacon Targets")
    table.add_column("Target", style="bold")
    table.add_column("Kind")
    table.add_column("URL")
    table.add_column("Latency ceiling")
    for target in registry:
        ceiling = target.latency_ceiling_ms
        if ceiling is None:
            ceiling = config.policy.kind_ceiling_ms(target.kind)
        table.add_row(target.name, target.kind.value, target.url, _fmt_ms(ceiling))
    console.print(table)


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind host"),
    port: int = typer.Option(8000, help="Bind port"),
) -> None:
    """Start the Beacon report API."""
    import uvicorn

    console.print(f"[bold]Beacon[/bold] starting on http://{host}:{port}")
    uvicorn.run("beacon_qa.api.app:app", host=host, port=port, reload=False)


config_app = typer.Typer(name="config", help="Configuration commands")
app.add_typer(config_app)


@config_app.command("validate")
def config_validate(
    path: Path | None = typer.Option(None, "--path", "-p", help="Path to .beacon.yaml"),
) -> None:
    """Validate configuration file."""
    from urllib.parse import urlparse

    import yaml

    from beacon_qa.config.loader import load_config
    from beacon_qa.registry.registry import EmptyRegistryError, TargetRegistry

    try:
        config = load_config(path=path)
        console.print("[green]✓[/green] YAML parses correctly")
        console.print("[green]✓[/green] Pydantic validation passes")
    except FileNotFoundError as exc:
        console.print(f"[red]✗ {exc}[/red]")
        raise typer.Exit(1)
    except yaml.YAMLError as exc:
        console.print(f"[red]✗ YAML parsing failed: {exc}[/red]")
        raise typer.Exit(1)
    except ValueError as exc:
        console.print("[green]✓[/green] YAML parses correctly")
        console.print(f"[red]✗ Pydantic validation failed: {exc}[/red]")
        raise typer.Exit(1)

    try:
        registry = TargetRegistry(config)
    except EmptyRegistryError as exc:
        console.print(f"[red]✗ {exc}[/red]")
        raise typer.Exit(1)

    errors: list[str] = []
    for target in registry:
        parsed = urlparse(target.url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            errors.append(f"Target '{target.name}': invalid URL '{target.url}'")
        else:
            console.print(f"[green]✓[/green] Target '{target.name}' URL is valid")

    if config.probe.timeout <= 0:
        errors.append(f"probe.timeout must be positive (got {config.probe.timeout}); every probe would time out")

    if not errors:
        console.print(f"\n[green bold]Configuration is valid ({len(registry)} targets).[/green bold]")
    else:
        for err in errors:
            console.print(f"[red]✗ {err}[/red]")
        console.print(f"\n[red bold]{len(errors)} validation error(s) found.[/red bold]")
        raise typer.Exit(1)


@config_app.command("show")
def config_show(
    path: Path | None = typer.Option(None, "--path", "-p", help="Path to .beacon.yaml"),
) -> None:
    """Print resolved configuration."""
    from beacon_qa.registry.registry import EmptyRegistryError, TargetRegistry

    config = _load(path)
    console.print(f"[bold]Beacon[/bold] {config.beacon.name} v{config.beacon.version}\n")

    policy = config.policy
    console.print("[bold]Policy:[/bold]")
    console.print(f"  API latency ceiling: {policy.api_latency_ceiling_ms:.0f}ms")
    console.print(f"  Page latency ceiling: {policy.page_latency_ceiling_ms:.0f}ms")
    console.print(f"  LCP ceiling: {policy.lcp_ceiling_ms:.0f}ms")
    console.print(f"  CLS ceiling: {policy.cls_ceiling}\n")

    probe = config.probe
    console.print("[bold]Probing:[/bold]")
    console.print(f"  Timeout: {probe.timeout}s, render window: {probe.render_window}s")
    console.print(f"  Samples per target: {probe.samples}, max concurrency: {probe.max_concurrency}\n")

    console.print("[bold]Targets:[/bold]")
    try:
        registry = TargetRegistry(config)
    except EmptyRegistryError as exc:
        console.print(f"  [red]{exc}[/red]")
        raise typer.Exit(1)
    for target in registry:
        console.print(f"  {target.name}: {target.kind.value} @ {target.url}")


def main() -> None:
    app()
