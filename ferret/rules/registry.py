# Built-in rule registry: the catalog every scan starts from, plus lookup and filtering helpers.

from __future__ import annotations

import logging
from collections import Counter
from typing import Iterable, Optional, Sequence

from ferret.findings.models import Severity, ThreatCategory
from ferret.rules.ai_specific import AI_SPECIFIC_RULES
from ferret.rules.backdoors import BACKDOOR_RULES
from ferret.rules.base import Rule
from ferret.rules.correlation import CORRELATION_RULES
from ferret.rules.credentials import CREDENTIAL_RULES
from ferret.rules.exfiltration import EXFILTRATION_RULES
from ferret.rules.injection import INJECTION_RULES
from ferret.rules.obfuscation import OBFUSCATION_RULES
from ferret.rules.permissions import PERMISSION_RULES
from ferret.rules.persistence import PERSISTENCE_RULES
from ferret.rules.supply_chain import SUPPLY_CHAIN_RULES

logger = logging.getLogger(__name__)

ALL_RULES: tuple[Rule, ...] = (
    *EXFILTRATION_RULES,
    *CREDENTIAL_RULES,
    *INJECTION_RULES,
    *BACKDOOR_RULES,
    *OBFUSCATION_RULES,
    *PERMISSION_RULES,
    *PERSISTENCE_RULES,
    *SUPPLY_CHAIN_RULES,
    *AI_SPECIFIC_RULES,
    *CORRELATION_RULES,
)


def get_all_rules() -> list[Rule]:
    """Every built-in rule, in catalog order."""
    return list(ALL_RULES)


def get_rule_by_id(rule_id: str, rules: Optional[Sequence[Rule]] = None) -> Optional[Rule]:
    for rule in ALL_RULES if rules is None else rules:
        if rule.id == rule_id:
            return rule
    return None


def get_rules_for_scan(
    categories: Optional[Iterable[ThreatCategory]] = None,
    severities: Optional[Iterable[Severity]] = None,
    rules: Optional[Sequence[Rule]] = None,
) -> list[Rule]:
    """
    Enabled rules restricted to the given categories and severities.

    None for either filter means "no restriction".
    """
    wanted_categories = set(categories) if categories is not None else None
    wanted_severities = set(severities) if severities is not None else None

    selected = [
        rule
        for rule in (ALL_RULES if rules is None else rules)
        if rule.enabled
        and (wanted_categories is None or rule.category in wanted_categories)
        and (wanted_severities is None or rule.severity in wanted_severities)
    ]
    logger.debug("Loaded %d rules for scan", len(selected))
    return selected


def get_rule_stats(rules: Optional[Sequence[Rule]] = None) -> dict:
    """Counts of rules by category and severity."""
    rules = ALL_RULES if rules is None else rules
    return {
        "total": len(rules),
        "enabled": sum(1 for r in rules if r.enabled),
        "correlation": sum(1 for r in rules if r.has_correlation),
        "by_category": dict(Counter(r.category.value for r in rules)),
        "by_severity": dict(Counter(r.severity.value for r in rules)),
    }


def merge_rules(base: Sequence[Rule], extra: Sequence[Rule]) -> list[Rule]:
    """
    Append extra rules to base; an extra rule with an existing id replaces it in place.
    """
    merged = list(base)
    index = {rule.id: i for i, rule in enumerate(merged)}
    for rule in extra:
        if rule.id in index:
            logger.info("Custom rule %s overrides built-in rule", rule.id)
            merged[index[rule.id]] = rule
        else:
            index[rule.id] = len(merged)
            merged.append(rule)
    return merged
