"""Rich terminal output for .mp reports."""

import math

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from mptools.models import ALL_POPULATIONS, Report, ResultsStatus, Severity

# Populations listed in the final abundance table
TOP_POPULATIONS = 10


def _severity_style(severity: Severity) -> str:
    if severity == Severity.CRITICAL:
        return "bold red"
    elif severity == Severity.WARNING:
        return "bold yellow"
    return "bold blue"


def _fmt(value: float, digits: int = 2) -> str:
    if value is None or math.isnan(value):
        return "-"
    return f"{value:,.{digits}f}"


def render_report(report: Report, no_color: bool = False, console: Console | None = None):
    """Render one file's report to the terminal."""
    console = console or Console(force_terminal=not no_color, highlight=False)

    # === Header ===
    if report.status == ResultsStatus.COMPLETE:
        status_text = "[bold green]Simulation results found[/bold green]"
    elif report.status == ResultsStatus.FAILED:
        status_text = "[bold red]Parse failed[/bold red]"
    else:
        status_text = "[bold yellow]No simulation results[/bold yellow]"

    header_text = f"File: {report.path}\nStatus: {status_text}"
    res = report.results
    if res is not None:
        stamp = res.timestamp.isoformat(sep=" ") if res.timestamp else "unknown"
        header_text += (
            f"\nCompleted: {stamp} | Iterations: {res.iters:,}\n"
            f"Time steps: {res.duration} | Populations: {res.n_pops}"
        )
    console.print(Panel(header_text, title="RAMAS Metapop results", border_style="blue"))

    # === Population metadata ===
    meta = report.metadata
    if meta is not None and len(meta):
        meta_table = Table(title="Population summary", show_header=False, border_style="dim")
        meta_table.add_column("Item", style="cyan")
        meta_table.add_column("Value", justify="right")
        meta_table.add_row("Populations", f"{len(meta):,}")
        meta_table.add_row("Initially occupied", f"{int((meta['init_n'] > 0).sum()):,}")
        meta_table.add_row("Total initial abundance", _fmt(meta["init_n"].sum(), 0))
        meta_table.add_row("Total carrying capacity", _fmt(meta["k"].sum(), 0))
        console.print(meta_table)

    # === Abundance ===
    if res is not None:
        ema_table = Table(title="Expected minimum abundance", show_header=False, border_style="green")
        ema_table.add_column("Item", style="cyan")
        ema_table.add_column("Value", justify="right")
        ema_table.add_row("EMA", _fmt(res.ema))
        ema_table.add_row("SDMA", _fmt(res.sdma))
        ema_table.add_row("Min. terminal abundance", _fmt(res.minmaxterm["terminal"].min()))
        ema_table.add_row("Max. terminal abundance", _fmt(res.minmaxterm["terminal"].max()))
        console.print(ema_table)

        final = res.results[-1, "mean", :]
        order = sorted(range(1, len(final)), key=lambda i: -final[i])[:TOP_POPULATIONS]
        pop_table = Table(
            title=f"Mean abundance at final time step (top {len(order)})",
            border_style="magenta",
        )
        pop_table.add_column("Population", style="cyan")
        pop_table.add_column("Initial mean", justify="right")
        pop_table.add_column("Final mean", justify="right")
        pop_table.add_column("Final SD", justify="right")
        for i in [0] + order:
            name = res.results.populations[i]
            style = "bold" if name == ALL_POPULATIONS else ""
            pop_table.add_row(
                f"[{style}]{name}[/{style}]" if style else name,
                _fmt(res.results[0, "mean", i], 1),
                _fmt(res.results[-1, "mean", i], 1),
                _fmt(res.results[-1, "sd", i], 1),
            )
        console.print(pop_table)

    # === Findings ===
    if report.findings:
        for finding in report.findings:
            style = _severity_style(finding.severity)
            console.print(f"  [{style}][{finding.severity.value}][/{style}] {finding.title}")
            if finding.description:
                console.print(f"    [dim]{finding.description}[/dim]")
            if finding.recommendation:
                console.print(f"    [italic]>> {finding.recommendation}[/italic]")
        console.print()
    else:
        console.print("[green]No issues found.[/green]")
