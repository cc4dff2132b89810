# High-entropy secret detection: flags quoted strings and assigned values that look like keys or tokens.

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from ferret.analyzers.base import Analyzer
from ferret.context import extract_context, split_lines
from ferret.findings.models import (
    DiscoveredFile,
    EntropyMetadata,
    Finding,
    Severity,
    ThreatCategory,
)
from ferret.matcher import MatchOptions
from ferret.scoring import match_signal, risk_score

logger = logging.getLogger(__name__)

MIN_ENTROPY = 4.5
HIGH_ENTROPY = 5.5
DIVERSE_ENTROPY = 5.0
PREFIX_MIN_ENTROPY = 3.5
MIN_LENGTH = 16
MAX_LENGTH = 256

# Values worth measuring: quoted strings without whitespace, bearer tokens,
# secret-named assignments and SHOUTY_ENV=value lines. Group 1 is the value.
CANDIDATE_PATTERNS = [
    re.compile(r"""["']([^"'\s]{16,256})["']"""),
    re.compile(r"\bbearer\s+([A-Za-z0-9._~+/=-]{16,256})", re.IGNORECASE),
    re.compile(
        r"""(?:api[_-]?key|key|token|secret|passw(?:or)?d|auth)["']?\s*[=:]\s*["']?([^\s"',;]{16,256})""",
        re.IGNORECASE,
    ),
    re.compile(r"""\b[A-Z][A-Z0-9_]*\s*=\s*["']?([^\s"',;]{16,256})"""),
]

# Provider prefixes that make a value a secret on sight.
SECRET_PREFIXES = [
    re.compile(r"^sk[-_]"),
    re.compile(r"^pk[-_](?:live|test)_"),
    re.compile(r"^gh[pousr]_"),
    re.compile(r"^xox[baprs]-"),
    re.compile(r"^eyJ[A-Za-z0-9_-]+\."),
    re.compile(r"^AKIA[0-9A-Z]{16}$"),
    re.compile(r"^AIza[0-9A-Za-z_-]{35}$"),
    re.compile(r"^glpat-"),
]

EXCLUDE_PATTERNS = [
    re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE),
    re.compile(r"^(?:[0-9a-f]{32}|[0-9a-f]{40}|[0-9a-f]{64})$", re.IGNORECASE),
    re.compile(r"^data:"),
    re.compile(r"^[a-z][a-z0-9+.-]*://", re.IGNORECASE),
    re.compile(r"^\d+$"),
    re.compile(r"^[A-Z_]+$"),
    re.compile(r"^\$"),
    re.compile(r"example|sample|test|demo|placeholder|dummy|changeme|xxx|your[_-]", re.IGNORECASE),
]

SUSPICIOUS_CHARSETS = [
    re.compile(r"^[A-Za-z0-9+/=]+$"),
    re.compile(r"^[A-Za-z0-9_-]+$"),
    re.compile(r"^[0-9a-f]+$", re.IGNORECASE),
    re.compile(r"^[A-Za-z0-9!@#$%^&*()]+$"),
]


def shannon_entropy(s: str) -> float:
    """Shannon entropy of a string in bits per character."""
    if not s:
        return 0.0
    freq: dict[str, int] = {}
    for ch in s:
        freq[ch] = freq.get(ch, 0) + 1
    ent = 0.0
    n = len(s)
    for c in freq.values():
        p = c / n
        ent -= p * math.log2(p)
    return ent


def charset_score(s: str) -> float:
    """One point each for upper case, lower case and digits; half a point for anything else."""
    score = 0.0
    if re.search(r"[A-Z]", s):
        score += 1
    if re.search(r"[a-z]", s):
        score += 1
    if re.search(r"[0-9]", s):
        score += 1
    if re.search(r"[^A-Za-z0-9]", s):
        score += 0.5
    return score


def redact(value: str) -> str:
    """Keep the first and last four characters of longer values; mask the rest."""
    if len(value) > 8:
        return value[:4] + "*" * (len(value) - 8) + value[-4:]
    return "*" * len(value)


@dataclass(frozen=True)
class SecretCandidate:
    value: str
    line: int
    column: int


@dataclass(frozen=True)
class Assessment:
    entropy: float
    confidence: str
    reason: str


def find_candidates(lines: list[str]) -> list[SecretCandidate]:
    """Every candidate value once, ordered by line then column."""
    found: dict[tuple[int, int], SecretCandidate] = {}
    for index, line in enumerate(lines):
        for pattern in CANDIDATE_PATTERNS:
            for m in pattern.finditer(line):
                value = m.group(1)
                if not MIN_LENGTH <= len(value) <= MAX_LENGTH:
                    continue
                key = (index + 1, m.start(1) + 1)
                found.setdefault(key, SecretCandidate(value, *key))
    return [found[key] for key in sorted(found)]


def assess(value: str) -> Optional[Assessment]:
    """
    Decide whether a value looks like a secret.

    Returns None for excluded or unremarkable values. A known provider prefix
    is high confidence; otherwise entropy and character mix decide between
    high and medium.
    """
    if any(p.search(value) for p in EXCLUDE_PATTERNS):
        return None

    entropy = shannon_entropy(value)
    if any(p.search(value) for p in SECRET_PREFIXES) and entropy >= PREFIX_MIN_ENTROPY:
        return Assessment(entropy, "high", "Matches a known secret prefix")

    score = charset_score(value)
    if entropy >= MIN_ENTROPY and any(p.match(value) for p in SUSPICIOUS_CHARSETS):
        if entropy >= HIGH_ENTROPY and score >= 2.5:
            return Assessment(entropy, "high", f"High entropy ({entropy:.2f}) with mixed charset")
        return Assessment(entropy, "medium", f"Moderate entropy ({entropy:.2f})")
    if entropy >= DIVERSE_ENTROPY and score >= 3:
        return Assessment(entropy, "medium", f"High character diversity with entropy {entropy:.2f}")
    return None


class EntropyAnalyzer(Analyzer):
    """
    Flags high-entropy values that are likely hard-coded secrets.

    Findings report the value redacted. High confidence is HIGH severity,
    medium confidence is MEDIUM.
    """

    id = "ENTROPY-001"
    name = "High-Entropy Secret"
    remediation = (
        "Remove or rotate the exposed secret. Load it from an environment "
        "variable or a secret manager instead."
    )

    def run(self, file: DiscoveredFile, content: str, options: MatchOptions) -> list[Finding]:
        timestamp = options.timestamp or datetime.now(timezone.utc)
        lines = split_lines(content)
        findings: list[Finding] = []

        for candidate in find_candidates(lines):
            assessment = assess(candidate.value)
            if assessment is None:
                continue

            severity = Severity.HIGH if assessment.confidence == "high" else Severity.MEDIUM
            # entropy above the threshold pushes the score up the band
            signal = match_signal(1, file.component) + max(0.0, assessment.entropy - MIN_ENTROPY) / 3
            findings.append(
                Finding(
                    rule_id=self.id,
                    rule_name=self.name,
                    severity=severity,
                    category=ThreatCategory.CREDENTIALS,
                    file=file.path,
                    relative_path=file.relative_path,
                    line=candidate.line,
                    column=candidate.column,
                    match=redact(candidate.value),
                    context=extract_context(lines, candidate.line, options.context_lines),
                    remediation=self.remediation,
                    metadata=EntropyMetadata(
                        entropy=round(assessment.entropy, 3),
                        confidence=assessment.confidence,
                        reason=assessment.reason,
                    ),
                    timestamp=timestamp,
                    risk_score=risk_score(severity, signal),
                )
            )

        logger.debug("Found %d potential secrets in %s", len(findings), file.relative_path)
        return findings
