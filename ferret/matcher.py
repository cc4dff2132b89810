# Pattern matching: applies one rule to one file's content, line by line, and emits Findings.

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence

from ferret.context import extract_context, split_lines
from ferret.findings.models import DiscoveredFile, Finding, MatchMetadata
from ferret.rules.base import PATTERN_FLAGS, Rule, compile_pattern
from ferret.scoring import match_signal, risk_score
from ferret.suppression import SuppressionFilter

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT_LINES = 3


@dataclass(frozen=True)
class MatchOptions:
    """
    Per-scan matching options.

    timestamp pins Finding.timestamp so that two scans of the same input
    produce identical findings; when None the current time is used.
    """

    context_lines: int = DEFAULT_CONTEXT_LINES
    timestamp: Optional[datetime] = None


def rule_applies(rule: Rule, file: DiscoveredFile) -> bool:
    """True if the rule is enabled and gated in for this file's type and component."""
    return rule.enabled and file.type in rule.file_types and file.component in rule.components


def match_rule(
    rule: Rule,
    file: DiscoveredFile,
    content: str,
    options: Optional[MatchOptions] = None,
) -> list[Finding]:
    """
    Match a single rule against one file's content.

    Every pattern is run over every line, top to bottom; each non-empty match
    that survives suppression becomes one Finding. Output is ordered by
    pattern declaration, then line, then column. A pattern that fails to
    compile is logged and skipped without affecting the others.
    """
    if options is None:
        options = MatchOptions()

    if not rule_applies(rule, file):
        return []

    timestamp = options.timestamp or datetime.now(timezone.utc)
    lines = split_lines(content)
    suppression = SuppressionFilter(rule)
    findings: list[Finding] = []

    for source in rule.patterns:
        pattern = compile_pattern(source, flags=PATTERN_FLAGS, rule_id=rule.id)
        if pattern is None:
            continue

        for index, line in enumerate(lines):
            # finditer starts fresh on every call; no cursor carries over between lines
            raw_matches = [m for m in pattern.finditer(line) if m.group(0)]
            if not raw_matches:
                continue

            line_number = index + 1
            context = extract_context(lines, line_number, options.context_lines)
            window = [c.content for c in context]

            kept = [m for m in raw_matches if not suppression.suppresses(m.group(0), line, window, content)]
            # only surviving matches count towards the per-line signal
            for m in kept:
                match_text = m.group(0)
                findings.append(
                    Finding(
                        rule_id=rule.id,
                        rule_name=rule.name,
                        severity=rule.severity,
                        category=rule.category,
                        file=file.path,
                        relative_path=file.relative_path,
                        line=line_number,
                        column=m.start() + 1,
                        match=match_text,
                        context=context,
                        remediation=rule.remediation,
                        metadata=MatchMetadata(pattern=source, matches_on_line=len(kept)),
                        timestamp=timestamp,
                        risk_score=risk_score(
                            rule.severity, match_signal(len(kept), file.component)
                        ),
                    )
                )
                logger.debug(
                    "[%s] Found in %s:%d: %s", rule.id, file.relative_path, line_number, match_text[:50]
                )

    return findings


def match_rules(
    rules: Sequence[Rule],
    file: DiscoveredFile,
    content: str,
    options: Optional[MatchOptions] = None,
) -> list[Finding]:
    """Match every rule against one file, concatenating results in rule order."""
    findings: list[Finding] = []
    for rule in rules:
        if not rule.enabled:
            continue
        findings.extend(match_rule(rule, file, content, options))
    return findings
