# Analyzer interface: finding producers that need more than a list of regex patterns.
# Concrete analyzers (entropy, mcp, dependencies) subclass Analyzer and implement run().

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, Optional

from ferret.findings.models import DiscoveredFile, Finding, Severity, ThreatCategory
from ferret.matcher import MatchOptions


class Analyzer(ABC):
    """
    Abstract base class for programmatic finding producers.

    Subclasses must define:
    - id: str - analyzer identifier, also the rule_id prefix of its findings
    - name: str - human-readable name
    - run(file, content, options) -> list[Finding] - analyze one file

    The engine calls analyze() once per readable file, next to the pattern
    rules. analyze() gates on applies() and drops findings outside the
    severities and categories the scan reports.
    """

    id: str
    name: str

    def __init__(
        self,
        severities: Optional[Iterable[Severity]] = None,
        categories: Optional[Iterable[ThreatCategory]] = None,
    ) -> None:
        self.severities = frozenset(severities) if severities is not None else None
        self.categories = frozenset(categories) if categories is not None else None

    def applies(self, file: DiscoveredFile) -> bool:
        return True

    def reports(self, finding: Finding) -> bool:
        if self.severities is not None and finding.severity not in self.severities:
            return False
        if self.categories is not None and finding.category not in self.categories:
            return False
        return True

    @abstractmethod
    def run(self, file: DiscoveredFile, content: str, options: MatchOptions) -> list[Finding]:
        """
        Analyze one file and return any findings.

        Args:
            file: The discovered file (path, type, component).
            content: Its decoded text.
            options: Context window size and pinned timestamp.

        Returns:
            List of Finding objects, in file order. Empty if nothing was found.
        """
        ...

    def analyze(self, file: DiscoveredFile, content: str, options: Optional[MatchOptions] = None) -> list[Finding]:
        if options is None:
            options = MatchOptions()
        if not self.applies(file):
            return []
        return [f for f in self.run(file, content, options) if self.reports(f)]
