# False-positive suppression: decides whether a raw match is dropped before it becomes a Finding.

from __future__ import annotations

import logging
import re
from typing import Optional, Sequence

from ferret.rules.base import CONTEXT_FLAGS, PATTERN_FLAGS, ContextScope, Rule, compile_patterns

logger = logging.getLogger(__name__)


def _any_search(patterns: Sequence[re.Pattern[str]], text: str) -> bool:
    return any(p.search(text) for p in patterns)


class SuppressionFilter:
    """
    The suppression half of one rule, compiled once per matching call.

    Checks are independent and any one is enough to drop a match:

    - min_match_length: the match is shorter than the rule allows.
    - exclude_patterns: a pattern matches the match's own line.
    - exclude_context: a pattern matches the surrounding window, or the whole
      document when the rule's context_scope is FILE.
    - require_context: none of the required patterns appear in the window.

    Decisions depend only on the rule and the file content.
    """

    def __init__(self, rule: Rule) -> None:
        self.rule_id = rule.id
        self.min_match_length = rule.min_match_length
        self.context_scope = rule.context_scope
        self.exclude_patterns = compile_patterns(rule.exclude_patterns, PATTERN_FLAGS, rule.id)
        self.exclude_context = compile_patterns(rule.exclude_context, CONTEXT_FLAGS, rule.id)
        self.require_context = compile_patterns(rule.require_context, CONTEXT_FLAGS, rule.id)

    def suppresses(
        self,
        match_text: str,
        line: str,
        window: Sequence[str],
        document: Optional[str] = None,
    ) -> bool:
        """Return True if the raw match is a false positive."""
        if self.min_match_length is not None and len(match_text) < self.min_match_length:
            logger.debug("[%s] Excluded by min_match_length: %r", self.rule_id, match_text[:50])
            return True

        if _any_search(self.exclude_patterns, line):
            logger.debug("[%s] Excluded by exclude_patterns: %s", self.rule_id, line[:50])
            return True

        if self.exclude_context or self.require_context:
            window_text = "\n".join(window)

            if self.exclude_context:
                scope_text = window_text
                if self.context_scope is ContextScope.FILE and document is not None:
                    scope_text = document
                if _any_search(self.exclude_context, scope_text):
                    logger.debug(
                        "[%s] Excluded by exclude_context (%s)", self.rule_id, self.context_scope.value
                    )
                    return True

            if self.require_context and not _any_search(self.require_context, window_text):
                logger.debug("[%s] Missing required context", self.rule_id)
                return True

        return False


def should_suppress(
    rule: Rule,
    match_text: str,
    line: str,
    window: Sequence[str],
    document: Optional[str] = None,
) -> bool:
    """One-off convenience wrapper around SuppressionFilter."""
    return SuppressionFilter(rule).suppresses(match_text, line, window, document)
