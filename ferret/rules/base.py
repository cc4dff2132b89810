# Rule definitions: the immutable Rule / CorrelationSubRule models every matcher reads.
# Patterns are stored as source strings and compiled on use, so a rule never carries
# regex cursor state between files.

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Optional, Sequence

from pydantic import BaseModel, Field

from ferret.findings.models import ComponentType, FileType, Severity, ThreatCategory

logger = logging.getLogger(__name__)

# Detection and suppression patterns are case-insensitive. Patterns that must stay
# case-sensitive opt out inline with (?-i:...).
PATTERN_FLAGS = re.IGNORECASE
# Context checks run over several joined lines; ^ and $ anchor per line.
CONTEXT_FLAGS = re.IGNORECASE | re.MULTILINE


class ContextScope(str, Enum):
    """Where exclude_context patterns are evaluated."""

    WINDOW = "window"
    FILE = "file"


class CorrelationSubRule(BaseModel):
    """A multi-file pattern: content patterns that must all appear across related files."""

    id: str
    description: str
    file_patterns: tuple[str, ...] = Field(..., min_length=1)
    content_patterns: tuple[str, ...] = Field(..., min_length=1)
    # Advisory only; relationship construction uses its own proximity limit.
    max_distance: Optional[int] = Field(None, ge=0)

    model_config = {"frozen": True}

    def matches_path(self, relative_path: str) -> bool:
        """True if any file pattern is a substring of the path ('*' matches all)."""
        path = relative_path.lower()
        return any(p == "*" or p.lower() in path for p in self.file_patterns)


class Rule(BaseModel):
    """
    A single detection rule.

    Rules are loaded once and shared read-only by every matching call in a scan.
    Applicability is gated on file type, component and the enabled flag; the
    exclude/require fields drive false-positive suppression.
    """

    id: str
    name: str
    category: ThreatCategory
    severity: Severity
    description: str = ""
    patterns: tuple[str, ...] = ()
    file_types: frozenset[FileType]
    components: frozenset[ComponentType]
    remediation: str = ""
    references: tuple[str, ...] = ()
    enabled: bool = True
    exclude_patterns: tuple[str, ...] = ()
    exclude_context: tuple[str, ...] = ()
    context_scope: ContextScope = ContextScope.WINDOW
    require_context: tuple[str, ...] = ()
    min_match_length: Optional[int] = Field(None, ge=1)
    correlation_rules: tuple[CorrelationSubRule, ...] = ()

    model_config = {"frozen": True}

    @property
    def has_correlation(self) -> bool:
        return bool(self.correlation_rules)


def compile_pattern(
    source: str,
    flags: int = PATTERN_FLAGS,
    rule_id: str = "<unknown>",
) -> Optional[re.Pattern[str]]:
    """
    Compile one pattern, or return None (and log) if it does not compile.

    A bad pattern only costs itself: callers skip the None and keep going with
    the rest of the rule.
    """
    try:
        return re.compile(source, flags)
    except re.error as exc:
        logger.warning("[%s] Skipping invalid pattern %r: %s", rule_id, source, exc)
        return None


def compile_patterns(
    sources: Sequence[str],
    flags: int = PATTERN_FLAGS,
    rule_id: str = "<unknown>",
) -> list[re.Pattern[str]]:
    """Compile every pattern that compiles, in declaration order."""
    compiled = []
    for source in sources:
        pattern = compile_pattern(source, flags=flags, rule_id=rule_id)
        if pattern is not None:
            compiled.append(pattern)
    return compiled
