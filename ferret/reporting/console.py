# Rich console output: findings grouped by file, correlation chains, and a summary panel.

from __future__ import annotations

from typing import Optional, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ferret.findings.models import SEVERITY_ORDER, CorrelationFinding, Finding, ScanResult, Severity

# Severity → Rich style
SEVERITY_STYLE = {
    Severity.CRITICAL: "bold white on red",
    Severity.HIGH: "bold red",
    Severity.MEDIUM: "bold yellow",
    Severity.LOW: "bold blue",
    Severity.INFO: "dim",
}

MAX_MATCH_WIDTH = 60


def _severity_style(severity: Severity) -> str:
    return SEVERITY_STYLE.get(severity, "bold white")


def _truncate(text: str, width: int = MAX_MATCH_WIDTH) -> str:
    text = text.strip()
    return text if len(text) <= width else text[: width - 1] + "…"


def print_report(
    result: ScanResult,
    console: Optional[Console] = None,
    verbose: bool = False,
) -> None:
    """
    Print a scan result for the terminal.

    Direct findings are grouped by file, correlation findings get their own
    section, and a summary panel closes the report. With verbose, each
    finding's context window and each rule's remediation are shown too.
    """
    console = console or Console()

    direct = [f for f in result.findings if not isinstance(f, CorrelationFinding)]
    correlations = [f for f in result.findings if isinstance(f, CorrelationFinding)]

    if not result.findings:
        console.print(
            Panel(
                f"[green]No issues found in {result.analyzed_files} "
                f"file{'s' if result.analyzed_files != 1 else ''}.[/green]",
                title="Ferret Scan",
                border_style="green",
                box=box.ROUNDED,
            )
        )
    else:
        _print_direct_findings(direct, console, verbose)
        if correlations:
            _print_correlations(correlations, console, verbose)

    if result.errors:
        _print_errors(result, console)

    _print_summary(result, console)


def _print_direct_findings(findings: Sequence[Finding], console: Console, verbose: bool) -> None:
    by_file: dict[str, list[Finding]] = {}
    for f in findings:
        by_file.setdefault(f.relative_path, []).append(f)

    for path in sorted(by_file):
        file_findings = sorted(by_file[path], key=lambda x: (x.line, x.column or 0, x.rule_id))

        console.print()
        console.print(Panel(
            f"[bold cyan]{escape(path)}[/bold cyan]",
            box=box.SIMPLE_HEAD,
            border_style="blue",
            padding=(0, 1),
        ))

        table = Table(
            show_header=True,
            header_style="bold magenta",
            box=box.SIMPLE,
            padding=(0, 1),
            expand=False,
        )
        table.add_column("Line", justify="right", style="dim", width=5)
        table.add_column("Col", justify="right", style="dim", width=4)
        table.add_column("Severity", width=10)
        table.add_column("Risk", justify="right", width=4)
        table.add_column("Rule", width=10)
        table.add_column("Match", style="white")

        for f in file_findings:
            table.add_row(
                str(f.line),
                str(f.column) if f.column is not None else "-",
                Text(f.severity.value, style=_severity_style(f.severity)),
                str(f.risk_score),
                Text(f.rule_id, style="dim"),
                f"{f.rule_name}: [italic]{escape(_truncate(f.match))}[/italic]",
            )

        console.print(table)

        if verbose:
            for f in file_findings:
                _print_context(f, console)
            seen_rules: set[str] = set()
            for f in file_findings:
                if f.rule_id not in seen_rules and f.remediation:
                    seen_rules.add(f.rule_id)
                    console.print(f"  [dim][Fix][/dim] [{f.rule_id}] {escape(f.remediation)}")
            if seen_rules:
                console.print()


def _print_context(finding: Finding, console: Console) -> None:
    for line in finding.context:
        marker = ">" if line.is_match else " "
        style = "bold" if line.is_match else "dim"
        console.print(
            Text(f"  {marker} {line.line_number:>4} | {line.content.rstrip()}", style=style)
        )
    console.print()


def _print_correlations(
    findings: Sequence[CorrelationFinding],
    console: Console,
    verbose: bool,
) -> None:
    table = Table(
        title="Cross-file correlations",
        show_header=True,
        header_style="bold cyan",
        box=box.ROUNDED,
        padding=(0, 1),
    )
    table.add_column("Rule", width=10)
    table.add_column("Severity", width=10)
    table.add_column("Strength", justify="right", width=8)
    table.add_column("Attack pattern", style="white")
    table.add_column("Files", style="cyan")
    table.add_column("Risk vectors", style="yellow")

    for f in findings:
        table.add_row(
            f.rule_id,
            Text(f.severity.value, style=_severity_style(f.severity)),
            f"{f.correlation_strength:.2f}",
            escape(f.attack_pattern),
            escape("\n".join(f.related_files)),
            ", ".join(f.risk_vectors),
        )

    console.print()
    console.print(table)

    if verbose:
        for f in findings:
            console.print(f"  [dim][Fix][/dim] [{f.rule_id}] {escape(f.remediation)}")


def _print_errors(result: ScanResult, console: Console) -> None:
    console.print()
    for error in result.errors:
        prefix = "[bold red]error[/bold red]" if error.fatal else "[yellow]warning[/yellow]"
        where = f"{error.file}: " if error.file else ""
        console.print(f"{prefix} {escape(where + error.message)}")


def _print_summary(result: ScanResult, console: Console) -> None:
    """Print a compact summary of findings."""
    counts = result.summary.model_dump()
    total = result.summary.total
    summary_parts = [f"[bold]{total} finding{'s' if total != 1 else ''}[/bold]"]
    for severity in SEVERITY_ORDER:
        count = counts[severity.value.lower()]
        if count:
            summary_parts.append(f"[{_severity_style(severity)}]{count} {severity.value.lower()}[/]")
    summary_parts.append(f"risk {result.overall_risk_score}/100")
    summary_parts.append(f"{result.analyzed_files} files in {result.duration_ms}ms")

    console.print()
    console.print(
        Panel(
            " | ".join(summary_parts),
            title="Summary",
            border_style="yellow" if total > 0 else "green",
            box=box.ROUNDED,
        )
    )

