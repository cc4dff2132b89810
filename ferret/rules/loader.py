"""
Custom rule files: user-defined rules in YAML or JSON.

A rules file looks like::

    version: "1"
    rules:
      - id: CUSTOM-001
        name: Internal endpoint reference
        category: exfiltration
        severity: HIGH
        description: Flags references to the internal telemetry host
        patterns: ['telemetry\\.internal\\.example']
        file_types: [md, sh]
        components: [skill, hook]

camelCase keys (fileTypes, excludePatterns, ...) are accepted as well. Invalid
files or rules never abort a scan: every problem is collected as a message
and the scan continues with whatever loaded.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from ferret.findings.models import ComponentType, FileType, Severity, ThreatCategory
from ferret.rules.base import ContextScope, Rule, compile_patterns

logger = logging.getLogger(__name__)

DEFAULT_FILE_TYPES = [FileType.MD, FileType.JSON, FileType.YAML, FileType.YML]
DEFAULT_COMPONENTS = [
    ComponentType.SKILL,
    ComponentType.AGENT,
    ComponentType.AI_CONFIG_MD,
    ComponentType.MCP,
]
DEFAULT_REMEDIATION = "Review and fix the identified security issue."

SUPPORTED_SUFFIXES = {".yaml", ".yml", ".json"}


class RuleLoadError(Exception):
    """A rules file, or one rule in it, could not be loaded."""


class CustomRuleDefinition(BaseModel):
    id: str = Field(..., pattern=r"^[A-Z]+-\d{3}$")
    name: str = Field(..., min_length=1, max_length=200)
    category: ThreatCategory
    severity: Severity
    description: str = Field(..., min_length=1, max_length=2000)
    patterns: list[str] = Field(..., min_length=1, max_length=50)
    file_types: Optional[list[FileType]] = Field(None, alias="fileTypes")
    components: Optional[list[ComponentType]] = None
    remediation: Optional[str] = Field(None, max_length=2000)
    references: list[str] = Field(default_factory=list, max_length=10)
    enabled: bool = True
    exclude_patterns: list[str] = Field(default_factory=list, alias="excludePatterns", max_length=20)
    require_context: list[str] = Field(default_factory=list, alias="requireContext", max_length=10)
    exclude_context: list[str] = Field(default_factory=list, alias="excludeContext", max_length=10)
    context_scope: ContextScope = Field(ContextScope.WINDOW, alias="contextScope")
    min_match_length: Optional[int] = Field(None, alias="minMatchLength", ge=1, le=1000)

    model_config = {"populate_by_name": True, "extra": "forbid"}


class CustomRulesFile(BaseModel):
    version: Optional[str] = None
    description: Optional[str] = None
    rules: list[CustomRuleDefinition] = Field(..., min_length=1, max_length=100)


@dataclass
class LoadResult:
    rules: list[Rule] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


def _valid_sources(sources: list[str], rule_id: str) -> tuple[str, ...]:
    # compile_patterns logs and drops what does not compile; keep the sources that did
    compiled = compile_patterns(sources, re.IGNORECASE, rule_id)
    kept = {p.pattern for p in compiled}
    return tuple(s for s in sources if s in kept)


def definition_to_rule(definition: CustomRuleDefinition) -> Rule:
    """Convert a validated definition into a Rule, dropping patterns that do not compile."""
    patterns = _valid_sources(definition.patterns, definition.id)
    if not patterns:
        raise RuleLoadError(f"Rule {definition.id} has no valid patterns")

    return Rule(
        id=definition.id,
        name=definition.name,
        category=definition.category,
        severity=definition.severity,
        description=definition.description,
        patterns=patterns,
        file_types=definition.file_types or DEFAULT_FILE_TYPES,
        components=definition.components or DEFAULT_COMPONENTS,
        remediation=definition.remediation or DEFAULT_REMEDIATION,
        references=tuple(definition.references),
        enabled=definition.enabled,
        exclude_patterns=_valid_sources(definition.exclude_patterns, definition.id),
        exclude_context=_valid_sources(definition.exclude_context, definition.id),
        require_context=_valid_sources(definition.require_context, definition.id),
        context_scope=definition.context_scope,
        min_match_length=definition.min_match_length,
    )


def parse_rules_document(text: str, suffix: str) -> object:
    """Parse the raw text of a rules file by its suffix."""
    if suffix in (".yaml", ".yml"):
        return yaml.safe_load(text)
    if suffix == ".json":
        return json.loads(text)
    raise RuleLoadError(f"Unsupported file format: {suffix}. Use .yaml, .yml, or .json")


def _summarize_validation_error(exc: ValidationError, limit: int = 5) -> str:
    issues = [
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()[:limit]
    ]
    return "; ".join(issues)


def load_custom_rules_file(path: Path) -> LoadResult:
    """
    Load one custom rules file.

    A missing, unreadable or malformed file yields no rules and one error. A
    file that validates but has individual rules without any usable pattern
    yields the good rules plus one error per bad rule.
    """
    result = LoadResult()
    path = Path(path)

    if not path.is_file():
        result.errors.append(f"Custom rules file not found: {path}")
        return result

    try:
        document = parse_rules_document(path.read_text(encoding="utf-8"), path.suffix.lower())
        parsed = CustomRulesFile.model_validate(document)
    except RuleLoadError as exc:
        result.errors.append(str(exc))
        return result
    except yaml.YAMLError as exc:
        result.errors.append(f"Malformed YAML in custom rules file {path}: {exc}")
        return result
    except json.JSONDecodeError as exc:
        result.errors.append(f"Malformed JSON in custom rules file {path}: {exc}")
        return result
    except ValidationError as exc:
        result.errors.append(f"Invalid custom rules file {path}: {_summarize_validation_error(exc)}")
        return result
    except OSError as exc:
        result.errors.append(f"Failed to read custom rules file {path}: {exc}")
        return result

    for definition in parsed.rules:
        try:
            rule = definition_to_rule(definition)
        except RuleLoadError as exc:
            result.errors.append(f"Failed to load rule {definition.id}: {exc}")
            continue
        result.rules.append(rule)
        logger.debug("Loaded custom rule: %s - %s", rule.id, rule.name)

    logger.info("Loaded %d custom rules from %s", len(result.rules), path)
    return result


def load_custom_rules(paths: list[Path]) -> LoadResult:
    """Load several rules files, concatenating rules and errors in order."""
    combined = LoadResult()
    for path in paths:
        loaded = load_custom_rules_file(path)
        combined.rules.extend(loaded.rules)
        combined.errors.extend(loaded.errors)
    for message in combined.errors:
        logger.warning("%s", message)
    return combined


def discover_custom_rules(root: Path) -> list[Path]:
    """Conventional rules file locations under a scan root that actually exist."""
    candidates = [
        root / ".ferret" / "rules.yml",
        root / ".ferret" / "rules.yaml",
        root / ".ferret" / "rules.json",
        root / "ferret-rules.yml",
        root / "ferret-rules.yaml",
        root / "ferret-rules.json",
    ]
    return [p for p in candidates if p.is_file()]
