"""
Scan orchestration: discovery -> rules -> per-file matching -> correlation -> result.

scan_files() is the core entry point. It takes files that are already read
and rules that are already resolved, runs the (rule x file) product plus any
analyzers the config enables (entropy, MCP, dependencies), then runs
correlation once over the whole file set. scan() wraps it with discovery, rule
resolution and summarizing for the CLI.

Matching a rule against a file touches no shared mutable state, so files are
handed to a thread pool when config.workers > 1. Results are merged in input
order, so the output does not depend on the worker count.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence, Union

from ferret.analyzers.base import Analyzer
from ferret.config import Config, get_default_config, get_enabled_analyzers, load_rules
from ferret.context import FileContext, load_contexts
from ferret.correlation import analyze_correlations, should_analyze_correlations
from ferret.findings.models import (
    SEVERITY_ORDER,
    CorrelationFinding,
    Finding,
    ScanError,
    ScanResult,
    ScanSummary,
    Severity,
)
from ferret.matcher import MatchOptions, match_rule
from ferret.rules.base import Rule
from ferret.scoring import overall_risk_score
from ferret.traversal import discover_files

logger = logging.getLogger(__name__)

AnyFinding = Union[Finding, CorrelationFinding]

EXIT_OK = 0
EXIT_FINDINGS = 1
EXIT_CRITICAL = 2
EXIT_SCAN_ERROR = 3


def scan_file(
    ctx: FileContext,
    rules: Sequence[Rule],
    options: MatchOptions,
    analyzers: Sequence[Analyzer] = (),
) -> tuple[list[Finding], list[ScanError]]:
    """
    Run every rule, then every analyzer, against one readable file.

    A rule or analyzer that raises is logged, recorded as a ScanError and
    skipped; the remaining ones still run.
    """
    findings: list[Finding] = []
    errors: list[ScanError] = []
    if not ctx.readable:
        return findings, errors

    for rule in rules:
        try:
            findings.extend(match_rule(rule, ctx.file, ctx.content, options))
        except Exception as exc:
            logger.exception("Rule %s failed on %s: %s", rule.id, ctx.relative_path, exc)
            errors.append(ScanError(file=str(ctx.path), message=f"Rule {rule.id} failed: {exc}"))

    for analyzer in analyzers:
        try:
            findings.extend(analyzer.analyze(ctx.file, ctx.content, options))
        except Exception as exc:
            logger.exception("Analyzer %s failed on %s: %s", analyzer.id, ctx.relative_path, exc)
            errors.append(ScanError(file=str(ctx.path), message=f"Analyzer {analyzer.id} failed: {exc}"))
    return findings, errors


def scan_files(
    contexts: Sequence[FileContext],
    rules: Sequence[Rule],
    config: Optional[Config] = None,
    *,
    timestamp: Optional[datetime] = None,
) -> tuple[list[AnyFinding], list[ScanError]]:
    """
    Produce direct findings for every file, then correlation findings.

    Returns (findings, errors). Direct findings come first, grouped by file in
    input order and, within a file, by rule and then by enabled analyzer;
    correlation findings follow. Every unreadable file contributes one
    ScanError and still takes part in correlation with zero hits.
    """
    if config is None:
        config = get_default_config()
    options = MatchOptions(context_lines=config.context_lines, timestamp=timestamp)
    analyzers = get_enabled_analyzers(config)

    errors = [
        ScanError(file=str(ctx.path), message=ctx.error or "Unreadable file")
        for ctx in contexts
        if not ctx.readable
    ]

    if config.workers > 1 and len(contexts) > 1:
        logger.debug("Matching %d files across %d workers", len(contexts), config.workers)
        with ThreadPoolExecutor(max_workers=config.workers) as executor:
            per_file = list(executor.map(lambda ctx: scan_file(ctx, rules, options, analyzers), contexts))
    else:
        per_file = [scan_file(ctx, rules, options, analyzers) for ctx in contexts]

    findings: list[AnyFinding] = []
    for file_findings, file_errors in per_file:
        findings.extend(file_findings)
        errors.extend(file_errors)

    if should_analyze_correlations(contexts, config.correlation_analysis):
        correlation_findings = analyze_correlations(
            contexts, rules, context_lines=config.context_lines, timestamp=timestamp
        )
        if correlation_findings:
            logger.info("Found %d cross-file correlation findings", len(correlation_findings))
        findings.extend(correlation_findings)

    return findings, errors


def sort_findings(findings: Sequence[AnyFinding]) -> list[AnyFinding]:
    """Most severe first, then highest risk score, then by location and rule."""
    return sorted(
        findings,
        key=lambda f: (
            f.severity.rank,
            -f.risk_score,
            f.relative_path,
            f.line,
            f.column or 0,
            f.rule_id,
        ),
    )


def summarize(findings: Sequence[AnyFinding]) -> ScanSummary:
    counts = {severity: 0 for severity in SEVERITY_ORDER}
    for finding in findings:
        counts[finding.severity] += 1
    return ScanSummary(
        critical=counts[Severity.CRITICAL],
        high=counts[Severity.HIGH],
        medium=counts[Severity.MEDIUM],
        low=counts[Severity.LOW],
        info=counts[Severity.INFO],
        total=len(findings),
    )


def scan(
    paths: Sequence[Path],
    config: Optional[Config] = None,
    *,
    timestamp: Optional[datetime] = None,
) -> ScanResult:
    """
    Discover, read and scan every path.

    timestamp pins Finding.timestamp; start/end times always reflect the
    actual run. A scan root that does not exist is a fatal error and makes
    the result unsuccessful; everything else is reported and skipped.
    """
    if config is None:
        config = get_default_config()

    start_time = datetime.now(timezone.utc)
    started = time.perf_counter()
    roots = [Path(p) for p in paths]

    discovery = discover_files(roots, max_file_size=config.max_file_size, ignore_dirs=config.ignore_dirs)
    errors: list[ScanError] = []
    for error in discovery.errors:
        fatal = error.message == "Path does not exist"
        errors.append(error.model_copy(update={"fatal": fatal}))

    loaded = load_rules(config, [r.resolve() for r in roots])
    errors.extend(ScanError(message=message) for message in loaded.errors)
    logger.info("Scanning %d files with %d rules", len(discovery.files), len(loaded.rules))

    contexts = load_contexts(discovery.files)
    findings, file_errors = scan_files(contexts, loaded.rules, config, timestamp=timestamp)
    errors.extend(file_errors)

    findings = sort_findings(findings)
    analyzed = sum(1 for ctx in contexts if ctx.readable)
    end_time = datetime.now(timezone.utc)
    duration_ms = int((time.perf_counter() - started) * 1000)

    result = ScanResult(
        success=not any(e.fatal for e in errors),
        start_time=start_time,
        end_time=end_time,
        duration_ms=duration_ms,
        scanned_paths=[str(r.resolve()) for r in roots],
        total_files=len(discovery.files),
        analyzed_files=analyzed,
        skipped_files=discovery.skipped + (len(contexts) - analyzed),
        findings=findings,
        summary=summarize(findings),
        overall_risk_score=overall_risk_score(f.severity for f in findings),
        errors=errors,
    )
    logger.info(
        "Scan complete: %d findings in %d files (%dms)",
        result.summary.total,
        result.analyzed_files,
        duration_ms,
    )
    return result


def get_exit_code(result: ScanResult, fail_on: Severity = Severity.HIGH) -> int:
    """
    Map a result to a process exit code.

    3 when the scan failed; otherwise 2 if a CRITICAL finding is at or above
    fail_on, 1 for any other finding at or above fail_on, else 0.
    """
    if not result.success:
        return EXIT_SCAN_ERROR

    blocking = [f for f in result.findings if f.severity.rank <= fail_on.rank]
    if not blocking:
        return EXIT_OK
    if any(f.severity is Severity.CRITICAL for f in blocking):
        return EXIT_CRITICAL
    return EXIT_FINDINGS
