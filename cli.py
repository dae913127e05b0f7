"""Health score platform — CLI demo runner.

Runs the full pipeline for one demo project and renders the results in the
terminal using Rich:

    SonarQube fixture (or live API) → parse → adapt → score → debt

A small CI payload is ingested alongside so every canonical form shows up in
the tables.

Usage:
    uv run python cli.py

Set SONARQUBE_BASE_URL (and SONARQUBE_TOKEN) in .env to run against a live
SonarQube server instead of the fixture.
"""

import asyncio
import os
import pathlib

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from core.runtime import HealthScorePlatform
from integrations.sonarqube import SOURCE_TYPE as SONARQUBE, fetch_sonarqube_data, parse_sonarqube_response
from schemas.result import DebtContribution, HealthScore
from schemas.signal import Signal

console = Console()

_CONFIG = pathlib.Path(__file__).parent / "fixtures" / "healthscore_config.json"

ENTITY_TYPE = "project"
ENTITY_ID = "payments-service"

# Stand-in for a CI tool parser's output.
_CI_PAYLOAD = {
    "pipeline": {"enabled": True, "provider": "github-actions"},
    "assessment": {"risk_level": "medium"},
}


# ── Tables ────────────────────────────────────────────────────────────────────

def _score_color(score) -> str:
    return "green" if score >= 80 else "yellow" if score >= 50 else "red"


def _print_signals(signals: list[Signal]) -> None:
    table = Table(title="Signals", show_lines=True, border_style="bright_black")
    table.add_column("Source",   style="dim",  width=10)
    table.add_column("Metric",   style="bold", min_width=16)
    table.add_column("Form",     width=20)
    table.add_column("Value",    min_width=24)

    for s in signals:
        table.add_row(s.source_type, s.metric_key, s.canonical_form.value, str(s.value()))

    console.print()
    console.print(table)


def _print_scores(score: HealthScore) -> None:
    table = Table(title="Dimension Scores", show_lines=True, border_style="bright_black")
    table.add_column("Dimension", style="bold", min_width=18)
    table.add_column("Score",     width=10, justify="right")

    for dimension, value in score.dimension_scores.items():
        color = _score_color(value)
        table.add_row(dimension, f"[{color}]{value}[/{color}]")

    console.print()
    console.print(table)

    color = _score_color(score.overall_score)
    console.print(f"\n  overall  [bold {color}]{score.overall_score}[/bold {color}]")
    console.print(f"[dim]  record {score.id} · v{score.computation_version}[/dim]")


def _print_debt(debt: list[DebtContribution]) -> None:
    if not debt:
        console.print("\n[green]No debt contributions.[/green]")
        return

    table = Table(title="Debt Contributions", show_lines=True, border_style="bright_black")
    table.add_column("Metric",       style="bold", min_width=16)
    table.add_column("Dimension",    style="dim",  min_width=14)
    table.add_column("Severity",     width=10, justify="center")
    table.add_column("Contribution", width=12, justify="right")
    table.add_column("Description",  min_width=30)

    for d in debt:
        sev_color = "red" if d.severity in ("CRITICAL", "ERROR") else "yellow" if d.severity == "HIGH" else "dim"
        table.add_row(
            d.metric_key,
            d.dimension,
            f"[{sev_color}]{d.severity}[/{sev_color}]",
            str(d.contribution),
            d.description,
        )

    console.print()
    console.print(table)


# ── Entry point ───────────────────────────────────────────────────────────────

async def _run() -> None:
    platform = HealthScorePlatform.in_memory(_CONFIG)

    live = bool(os.environ.get("SONARQUBE_BASE_URL"))
    console.rule("[bold]Health Score[/bold]")
    console.print(f"  entity     [cyan]{ENTITY_TYPE}/{ENTITY_ID}[/cyan]")
    console.print(f"  sonarqube  [cyan]{'live' if live else 'fixture'}[/cyan]")
    console.print(f"  operators  [cyan]{', '.join(platform.registry.available_ids())}[/cyan]")

    raw = await fetch_sonarqube_data(ENTITY_ID)
    payload = parse_sonarqube_response(raw)

    signals = platform.adapt_to_signals(SONARQUBE, ENTITY_ID, ENTITY_TYPE, ENTITY_ID, payload)
    signals += platform.adapt_to_signals("ci", f"{ENTITY_ID}-ci", ENTITY_TYPE, ENTITY_ID, _CI_PAYLOAD)

    score = platform.evaluate(ENTITY_TYPE, ENTITY_ID)
    if score is None:
        console.print("\n[yellow]No signals produced — check the configuration.[/yellow]")
        return

    _print_signals(signals)
    _print_scores(score)
    _print_debt(score.debt_contributions)
    console.print()


def main() -> None:
    load_dotenv()
    asyncio.run(_run())


if __name__ == "__main__":
    main()
