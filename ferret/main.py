from __future__ import annotations

"""
Typer CLI entry point.

- `ferret scan PATH...` discovers AI CLI config files, runs the rule catalog
  and cross-file correlation, prints a report and exits with a code CI can
  gate on (0 clean, 1 findings, 2 critical findings, 3 scan error).
- `ferret rules` lists the rule catalog.
"""

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ferret.config import (
    Config,
    ConfigError,
    apply_config_file,
    find_config_file,
    get_default_config,
    load_config_file,
)
from ferret.engine import get_exit_code, scan
from ferret.findings.models import Severity, ThreatCategory
from ferret.reporting.console import print_report
from ferret.reporting.json_report import render_json, write_json
from ferret.rules.registry import get_all_rules, get_rule_stats, get_rules_for_scan

logger = logging.getLogger(__name__)

app = typer.Typer(help="Ferret - security scanner for AI CLI configurations (skills, agents, hooks, MCP).")

OUTPUT_FORMATS = ("console", "json")


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _parse_csv(value: Optional[str], enum_type, option: str) -> Optional[list]:
    """Parse a comma-separated option into enum members; None if not given."""
    if not value:
        return None
    parsed = []
    for raw in value.split(","):
        item = raw.strip()
        if not item:
            continue
        try:
            parsed.append(enum_type(item.upper() if enum_type is Severity else item.lower()))
        except ValueError:
            allowed = ", ".join(m.value for m in enum_type)
            raise typer.BadParameter(
                f"Unknown value {item!r}; expected one of: {allowed}", param_hint=option
            ) from None
    return parsed


def _build_config(
    paths: List[Path],
    severity: Optional[str],
    categories: Optional[str],
    context_lines: Optional[int],
    no_correlation: bool,
    fail_on: Optional[str],
    custom_rules: Optional[List[Path]],
    workers: Optional[int],
    config_file: Optional[Path],
    analyzers: dict[str, bool],
) -> Config:
    config = get_default_config()

    rc_path = config_file or find_config_file(paths[0])
    if rc_path is not None:
        try:
            config = apply_config_file(config, load_config_file(rc_path), rc_path.parent)
        except ConfigError as exc:
            raise typer.BadParameter(str(exc), param_hint="--config") from exc
        logger.info("Loaded config file %s", rc_path)

    severities = _parse_csv(severity, Severity, "--severity")
    if severities is not None:
        config.severities = severities
    parsed_categories = _parse_csv(categories, ThreatCategory, "--categories")
    if parsed_categories is not None:
        config.categories = parsed_categories
    fail_on_parsed = _parse_csv(fail_on, Severity, "--fail-on")
    if fail_on_parsed:
        config.fail_on = fail_on_parsed[0]
    if context_lines is not None:
        config.context_lines = context_lines
    if no_correlation:
        config.correlation_analysis = False
    if custom_rules:
        config.custom_rules = [*config.custom_rules, *custom_rules]
    if workers is not None:
        config.workers = workers
    for name, enabled in analyzers.items():
        if enabled:
            setattr(config, name, True)
    return config


@app.command("scan")
def scan_command(
    paths: List[Path] = typer.Argument(
        ...,
        exists=True,
        readable=True,
        resolve_path=True,
        help="Files or directories to scan (e.g. .claude/, CLAUDE.md).",
    ),
    output_format: str = typer.Option("console", "--format", "-f", help="Output format: console or json."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the report to this file."),
    severity: Optional[str] = typer.Option(
        None, "--severity", "-s", help="Comma-separated severities to report (e.g. CRITICAL,HIGH)."
    ),
    categories: Optional[str] = typer.Option(
        None, "--categories", "-c", help="Comma-separated threat categories (e.g. credentials,injection)."
    ),
    context_lines: Optional[int] = typer.Option(
        None, "--context-lines", min=0, max=50, help="Lines of context around each finding."
    ),
    no_correlation: bool = typer.Option(False, "--no-correlation", help="Skip cross-file correlation."),
    fail_on: Optional[str] = typer.Option(
        None, "--fail-on", help="Lowest severity that makes the scan fail (default HIGH)."
    ),
    custom_rules: Optional[List[Path]] = typer.Option(
        None, "--custom-rules", exists=True, dir_okay=False, help="YAML/JSON custom rules file (repeatable)."
    ),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", min=1, max=64, help="Parallel file workers."),
    config_file: Optional[Path] = typer.Option(
        None, "--config", exists=True, dir_okay=False, help="Config file (default: .ferretrc.* in the first path)."
    ),
    entropy_analysis: bool = typer.Option(
        False, "--entropy-analysis", help="Flag high-entropy strings that look like secrets."
    ),
    mcp_validation: bool = typer.Option(False, "--mcp-validation", help="Validate MCP server definitions."),
    dependency_analysis: bool = typer.Option(
        False, "--dependency-analysis", help="Flag risky dependencies in package.json."
    ),
    dependency_audit: bool = typer.Option(
        False, "--dependency-audit", help="Also run npm audit next to each package.json."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging, context lines and remediation."),
) -> None:
    """
    Scan AI CLI configuration files for security issues.
    """
    configure_logging(verbose)

    if output_format not in OUTPUT_FORMATS:
        raise typer.BadParameter(
            f"Unknown format {output_format!r}; expected one of: {', '.join(OUTPUT_FORMATS)}",
            param_hint="--format",
        )

    config = _build_config(
        paths,
        severity,
        categories,
        context_lines,
        no_correlation,
        fail_on,
        custom_rules,
        workers,
        config_file,
        {
            "entropy_analysis": entropy_analysis,
            "mcp_validation": mcp_validation,
            "dependency_analysis": dependency_analysis,
            "dependency_audit": dependency_audit,
        },
    )
    result = scan(paths, config)

    if output_format == "json":
        if output is not None:
            write_json(result, output)
        else:
            typer.echo(render_json(result))
    else:
        if output is not None:
            with output.open("w", encoding="utf-8") as fh:
                print_report(result, Console(file=fh, width=120, no_color=True), verbose=verbose)
        else:
            print_report(result, verbose=verbose)

    raise typer.Exit(code=get_exit_code(result, config.fail_on))


@app.command("rules")
def rules_command(
    severity: Optional[str] = typer.Option(None, "--severity", "-s", help="Comma-separated severities."),
    categories: Optional[str] = typer.Option(None, "--categories", "-c", help="Comma-separated categories."),
) -> None:
    """
    List the built-in rule catalog.
    """
    rules = get_rules_for_scan(
        _parse_csv(categories, ThreatCategory, "--categories"),
        _parse_csv(severity, Severity, "--severity"),
        rules=get_all_rules(),
    )
    stats = get_rule_stats(rules)

    table = Table(
        title=f"{stats['total']} rules ({stats['correlation']} cross-file)",
        show_header=True,
        header_style="bold magenta",
        box=box.SIMPLE,
    )
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Severity", width=10)
    table.add_column("Category")
    table.add_column("Name", style="white")

    by_severity = sorted(rules, key=lambda r: (r.severity.rank, r.id))
    for rule in by_severity:
        table.add_row(rule.id, rule.severity.value, rule.category.value, rule.name)

    Console().print(table)
    if not rules:
        raise typer.Exit(code=1)


def main() -> None:
    """Entry point for the `ferret` console script and `python -m ferret.main`."""
    app()


if __name__ == "__main__":
    main()
