"""
Cross-file correlation: links weak per-file signals into one multi-file finding.

The pass runs once per scan over every discovered file:

1. Build a relationship set per anchor file: files within two directory
   levels, or paired by a naming affinity (hooks with skills, settings with
   configs, ...).
2. For each correlation sub-rule and each relationship set, keep the files
   whose path matches the sub-rule's file patterns; at least two are needed.
3. Record the first hit of every content pattern in every candidate file.
4. Fire when every content pattern was hit somewhere in the set, score the
   strength, infer risk vectors, and emit a CorrelationFinding anchored at
   the first hit.

Relationship construction is O(n^2) in the number of files and is done once,
then shared by every sub-rule.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Optional, Sequence

from ferret.context import FileContext, extract_context
from ferret.findings.models import (
    ComponentType,
    CorrelationFinding,
    CorrelationMetadata,
    PatternHit,
)
from ferret.matcher import DEFAULT_CONTEXT_LINES
from ferret.rules.base import PATTERN_FLAGS, CorrelationSubRule, Rule, compile_pattern
from ferret.scoring import correlation_risk_score

logger = logging.getLogger(__name__)

MAX_RELATED_DISTANCE = 2
PROXIMITY_BONUS = 0.1
FILE_BONUS_WEIGHT = 0.2

# Path pairs that are related regardless of distance. Checked both ways round.
NAMING_AFFINITIES: list[tuple[re.Pattern[str], re.Pattern[str]]] = [
    (re.compile(r"hooks?/"), re.compile(r"skills?/|agents?/")),
    (re.compile(r"settings\.json"), re.compile(r"config\.")),
    (re.compile(r"claude\.md"), re.compile(r"\.mcp\.json|settings\.json")),
    (re.compile(r"agent"), re.compile(r"skill")),
    (re.compile(r"security|auth"), re.compile(r"permission|access")),
]

# (keywords in the attack description, risk vector)
DESCRIPTION_VECTORS: list[tuple[tuple[str, ...], str]] = [
    (("credential", "secret"), "Credential Exposure"),
    (("network", "transmission", "exfiltrat"), "Data Exfiltration"),
    (("permission", "escalation", "privilege"), "Privilege Escalation"),
    (("backdoor", "persistence"), "Persistence Mechanism"),
    (("obfuscation", "hiding", "hidden"), "Steganography/Hiding"),
]

# (components that must all be involved, risk vector)
COMPONENT_VECTORS: list[tuple[frozenset[ComponentType], str]] = [
    (frozenset({ComponentType.HOOK, ComponentType.SKILL}), "Hook-Skill Chain"),
    (frozenset({ComponentType.SETTINGS, ComponentType.AI_CONFIG_MD}), "Configuration Tampering"),
]

DEFAULT_RISK_VECTOR = "Cross-File Coordination"


@dataclass
class FileRelationship:
    """
    An anchor file and the files judged related to it.

    distances maps each related file's absolute path to its directory distance.
    """

    anchor: FileContext
    related: list[FileContext] = field(default_factory=list)
    distances: dict[str, int] = field(default_factory=dict)

    @property
    def members(self) -> list[FileContext]:
        """Anchor first, then related files in discovery order."""
        return [self.anchor, *self.related]


@dataclass(frozen=True)
class ContentHit:
    context: FileContext
    pattern: str
    line: int
    match: str


@dataclass
class CrossFileMatch:
    """A fired sub-rule: the candidate files, the hits that satisfied it, and its strength."""

    rule: Rule
    sub_rule: CorrelationSubRule
    files: list[FileContext]
    hits: list[ContentHit]
    strength: float
    distances: dict[str, int] = field(default_factory=dict)


def _path_parts(path: str) -> tuple[str, ...]:
    return PurePosixPath(path.replace("\\", "/")).parent.parts


def directory_distance(path_a: str, path_b: str) -> int:
    """
    Number of directory steps between the folders containing two files.

    Pass absolute paths when the files may come from different scan roots;
    relative paths are only comparable within one root.

    Files in the same folder are 0 apart; siblings under a common parent are
    2 apart (one up, one down).
    """
    a = [p for p in _path_parts(path_a) if p not in ("", ".")]
    b = [p for p in _path_parts(path_b) if p not in ("", ".")]
    common = 0
    for x, y in zip(a, b):
        if x != y:
            break
        common += 1
    return (len(a) - common) + (len(b) - common)


def related_by_naming(path_a: str, path_b: str) -> bool:
    """True if the two paths form one of the known naming affinities."""
    a = path_a.replace("\\", "/").lower()
    b = path_b.replace("\\", "/").lower()
    for first, second in NAMING_AFFINITIES:
        if (first.search(a) and second.search(b)) or (second.search(a) and first.search(b)):
            return True
    return False


def build_file_relationships(files: Sequence[FileContext]) -> list[FileRelationship]:
    """Compute the related-file set of every file, deduplicated per anchor."""
    relationships: list[FileRelationship] = []

    for anchor in files:
        rel = FileRelationship(anchor=anchor)
        seen: set[str] = set()
        for other in files:
            if other.path == anchor.path:
                continue
            distance = directory_distance(str(anchor.path), str(other.path))
            if distance <= MAX_RELATED_DISTANCE or related_by_naming(
                anchor.relative_path, other.relative_path
            ):
                key = str(other.path)
                if key in seen:
                    continue
                seen.add(key)
                rel.related.append(other)
                rel.distances[key] = distance
        relationships.append(rel)

    return relationships


def find_content_hits(
    files: Sequence[FileContext],
    patterns: Sequence[Optional[re.Pattern[str]]],
    sources: Sequence[str],
) -> list[ContentHit]:
    """
    Record the first hit of each pattern in each file.

    Ordered by pattern, then by file. Unreadable files and patterns that did
    not compile contribute nothing.
    """
    hits: list[ContentHit] = []
    for pattern, source in zip(patterns, sources):
        if pattern is None:
            continue
        for ctx in files:
            if not ctx.readable:
                logger.debug("Skipping unreadable file %s for correlation", ctx.relative_path)
                continue
            for index, line in enumerate(ctx.lines):
                m = pattern.search(line)
                if m and m.group(0):
                    hits.append(ContentHit(ctx, source, index + 1, m.group(0)))
                    break
    return hits


def correlation_strength(hits: Sequence[ContentHit], sub_rule: CorrelationSubRule) -> float:
    """
    Heuristic [0, 1] strength of a fired sub-rule.

    pattern coverage (hits per declared pattern, may exceed 1 before the
    clamp) plus a bonus of up to 0.2 for the number of distinct files, plus a
    fixed proximity bonus.
    """
    coverage = len(hits) / len(sub_rule.content_patterns)
    distinct_files = len({str(h.context.path) for h in hits})
    file_bonus = min(distinct_files / len(sub_rule.file_patterns), 1.0) * FILE_BONUS_WEIGHT
    return max(0.0, min(1.0, coverage + file_bonus + PROXIMITY_BONUS))


def find_cross_file_matches(
    relationships: Sequence[FileRelationship],
    rules: Sequence[Rule],
) -> list[CrossFileMatch]:
    """
    Evaluate every correlation sub-rule against every relationship set.

    The same (sub-rule, candidate set) reached from different anchors is
    reported once.
    """
    matches: list[CrossFileMatch] = []

    for rule in rules:
        for sub_rule in rule.correlation_rules:
            logger.debug("Checking correlation rule: %s", sub_rule.id)
            compiled = [
                compile_pattern(p, flags=PATTERN_FLAGS, rule_id=sub_rule.id)
                for p in sub_rule.content_patterns
            ]
            seen_groups: set[frozenset[str]] = set()

            for rel in relationships:
                candidates = [f for f in rel.members if sub_rule.matches_path(f.relative_path)]
                if len(candidates) < 2:
                    continue

                group = frozenset(str(f.path) for f in candidates)
                if group in seen_groups:
                    continue
                seen_groups.add(group)

                hits = find_content_hits(candidates, compiled, sub_rule.content_patterns)
                covered = {h.pattern for h in hits}
                if len(hits) < len(sub_rule.content_patterns) or len(covered) < len(
                    set(sub_rule.content_patterns)
                ):
                    continue

                strength = correlation_strength(hits, sub_rule)
                matches.append(
                    CrossFileMatch(
                        rule=rule,
                        sub_rule=sub_rule,
                        files=candidates,
                        hits=hits,
                        strength=strength,
                        distances={
                            str(f.path): rel.distances[str(f.path)]
                            for f in candidates
                            if str(f.path) in rel.distances
                        },
                    )
                )
                logger.debug(
                    "Correlation %s fired across %d files (strength %.2f)",
                    sub_rule.id,
                    len(candidates),
                    strength,
                )

    return matches


def infer_risk_vectors(match: CrossFileMatch) -> list[str]:
    """Label a fired match from its descriptions and involved components; never empty."""
    vectors: list[str] = []
    description = f"{match.sub_rule.description} {match.rule.description}".lower()
    for keywords, vector in DESCRIPTION_VECTORS:
        if any(k in description for k in keywords):
            vectors.append(vector)

    components = {f.file.component for f in match.files}
    for required, vector in COMPONENT_VECTORS:
        if required <= components:
            vectors.append(vector)

    return vectors or [DEFAULT_RISK_VECTOR]


def _to_finding(
    match: CrossFileMatch,
    context_lines: int,
    timestamp: datetime,
) -> CorrelationFinding:
    primary = match.hits[0]
    rule = match.rule
    return CorrelationFinding(
        rule_id=rule.id,
        rule_name=rule.name,
        severity=rule.severity,
        category=rule.category,
        file=primary.context.path,
        relative_path=primary.context.relative_path,
        line=primary.line,
        match=primary.match,
        context=extract_context(primary.context.lines, primary.line, context_lines),
        remediation=rule.remediation,
        metadata=CorrelationMetadata(
            correlation_rule_id=match.sub_rule.id,
            related_patterns=[
                PatternHit(
                    relative_path=h.context.relative_path,
                    pattern=h.pattern,
                    line=h.line,
                    match=h.match,
                )
                for h in match.hits
            ],
            total_files=len(match.files),
            distances=match.distances,
        ),
        timestamp=timestamp,
        risk_score=correlation_risk_score(match.strength),
        related_files=[f.relative_path for f in match.files],
        attack_pattern=match.sub_rule.description,
        risk_vectors=infer_risk_vectors(match),
        correlation_strength=match.strength,
    )


def analyze_correlations(
    files: Sequence[FileContext],
    rules: Sequence[Rule],
    *,
    context_lines: int = DEFAULT_CONTEXT_LINES,
    timestamp: Optional[datetime] = None,
) -> list[CorrelationFinding]:
    """
    Run cross-file correlation over the whole file set.

    Only enabled rules that declare correlation sub-rules take part. Never
    raises: an unexpected failure is logged and yields no findings.
    """
    correlation_rules = [r for r in rules if r.enabled and r.has_correlation]
    if not correlation_rules or len(files) < 2:
        return []

    timestamp = timestamp or datetime.now(timezone.utc)
    logger.debug(
        "Cross-file correlation analysis with %d rules across %d files",
        sum(len(r.correlation_rules) for r in correlation_rules),
        len(files),
    )

    try:
        relationships = build_file_relationships(files)
        matches = find_cross_file_matches(relationships, correlation_rules)
        return [_to_finding(m, context_lines, timestamp) for m in matches]
    except Exception as exc:  # pragma: no cover
        logger.error("Error in cross-file correlation analysis: %s", exc)
        return []


def should_analyze_correlations(files: Sequence[FileContext], enabled: bool) -> bool:
    return enabled and len(files) >= 2
