"""
Risk scoring shared by direct and correlation findings.

Every severity owns a band of scores; a structural signal in [0, 1] picks a
point inside the band. Bands do not overlap, so a CRITICAL finding never
scores below a HIGH one with the same signal.

    CRITICAL  95-100
    HIGH      75-85
    MEDIUM    55-65
    LOW       35-45
    INFO      10-20
"""

from __future__ import annotations

import math
from typing import Iterable

from ferret.findings.models import ComponentType, Severity

SEVERITY_BANDS: dict[Severity, tuple[int, int]] = {
    Severity.CRITICAL: (95, 100),
    Severity.HIGH: (75, 85),
    Severity.MEDIUM: (55, 65),
    Severity.LOW: (35, 45),
    Severity.INFO: (10, 20),
}

# Weights used for the scan-wide aggregate.
SEVERITY_WEIGHTS: dict[Severity, int] = {
    Severity.CRITICAL: 100,
    Severity.HIGH: 75,
    Severity.MEDIUM: 50,
    Severity.LOW: 25,
    Severity.INFO: 10,
}

# Components that execute code or configure tool access.
HIGH_RISK_COMPONENTS = frozenset({ComponentType.HOOK, ComponentType.PLUGIN, ComponentType.MCP})


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def severity_band(severity: Severity) -> tuple[int, int]:
    return SEVERITY_BANDS[severity]


def risk_score(severity: Severity, signal: float = 0.0) -> int:
    """Map a severity and a [0, 1] signal to an integer score in [0, 100]."""
    low, high = SEVERITY_BANDS[severity]
    signal = _clamp(signal, 0.0, 1.0) if not math.isnan(signal) else 0.0
    return int(_clamp(round(low + (high - low) * signal), 0, 100))


def match_signal(matches_on_line: int, component: ComponentType) -> float:
    """
    Structural signal for a direct match.

    Repeated hits of the same rule on one line add with diminishing returns;
    hooks, plugins and MCP configs add a fixed half.
    """
    signal = 0.0
    if matches_on_line > 1:
        signal += min(0.5, math.log2(matches_on_line) * 0.25)
    if component in HIGH_RISK_COMPONENTS:
        signal += 0.5
    return _clamp(signal, 0.0, 1.0)


def correlation_risk_score(strength: float) -> int:
    """Correlation findings are scored directly from their strength."""
    if math.isnan(strength):
        return 0
    return int(_clamp(round(strength * 100), 0, 100))


def overall_risk_score(severities: Iterable[Severity]) -> int:
    """Aggregate score for a whole scan, with diminishing returns."""
    total = sum(SEVERITY_WEIGHTS[s] for s in severities)
    if total == 0:
        return 0
    return int(_clamp(round(math.log1p(total) * 15), 0, 100))
