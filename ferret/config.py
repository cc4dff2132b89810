from __future__ import annotations

"""
Scanner configuration: which rules run, how findings are gated, and scan limits.

Precedence is defaults < .ferretrc file in the scan root < CLI flags. The CLI
builds a Config with get_default_config(), merges any config file over it with
apply_config_file(), then overrides individual fields from its options.
"""

import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional, Sequence

import yaml
from pydantic import BaseModel, Field, ValidationError

from ferret.analyzers.base import Analyzer
from ferret.analyzers.dependencies import DependencyAnalyzer
from ferret.analyzers.entropy import EntropyAnalyzer
from ferret.analyzers.mcp import McpValidator
from ferret.findings.models import SEVERITY_ORDER, Severity, ThreatCategory
from ferret.matcher import DEFAULT_CONTEXT_LINES
from ferret.rules.base import Rule
from ferret.rules.loader import LoadResult, discover_custom_rules, load_custom_rules
from ferret.rules.registry import get_all_rules, get_rules_for_scan, merge_rules
from ferret.traversal import DEFAULT_IGNORE_DIRS, DEFAULT_MAX_FILE_SIZE

logger = logging.getLogger(__name__)

CONFIG_FILE_NAMES = (".ferretrc.yml", ".ferretrc.yaml", ".ferretrc.json")


class ConfigError(Exception):
    """A config file exists but could not be parsed or validated."""


@dataclass
class Config:
    """
    Scanner configuration.

    rules, when set, replaces the built-in catalog (tests and embedding use
    this); custom rule files are still merged on top. The entropy, MCP and
    dependency analyzers are opt-in; dependency_audit implies dependency
    analysis and also runs `npm audit` next to every package.json.
    """

    context_lines: int = DEFAULT_CONTEXT_LINES
    severities: list[Severity] = field(default_factory=lambda: list(SEVERITY_ORDER))
    categories: list[ThreatCategory] = field(default_factory=lambda: list(ThreatCategory))
    fail_on: Severity = Severity.HIGH
    correlation_analysis: bool = True
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    ignore_dirs: set[str] = field(default_factory=lambda: set(DEFAULT_IGNORE_DIRS))
    custom_rules: list[Path] = field(default_factory=list)
    workers: int = 1
    rules: Optional[Sequence[Rule]] = None
    entropy_analysis: bool = False
    mcp_validation: bool = False
    dependency_analysis: bool = False
    dependency_audit: bool = False


class ConfigFile(BaseModel):
    """Schema of a .ferretrc file. Every key is optional."""

    context_lines: Optional[int] = Field(None, alias="contextLines", ge=0, le=50)
    severities: Optional[list[Severity]] = Field(None, alias="severity")
    categories: Optional[list[ThreatCategory]] = None
    fail_on: Optional[Severity] = Field(None, alias="failOn")
    correlation_analysis: Optional[bool] = Field(None, alias="correlationAnalysis")
    max_file_size: Optional[int] = Field(None, alias="maxFileSize", gt=0)
    ignore: list[str] = Field(default_factory=list)
    custom_rules: list[str] = Field(default_factory=list, alias="customRules")
    workers: Optional[int] = Field(None, ge=1, le=64)
    entropy_analysis: Optional[bool] = Field(None, alias="entropyAnalysis")
    mcp_validation: Optional[bool] = Field(None, alias="mcpValidation")
    dependency_analysis: Optional[bool] = Field(None, alias="dependencyAnalysis")
    dependency_audit: Optional[bool] = Field(None, alias="dependencyAudit")

    model_config = {"populate_by_name": True, "extra": "forbid"}


def get_default_config() -> Config:
    """Return the default configuration: every built-in rule, every severity and category."""
    return Config()


def find_config_file(root: Path) -> Optional[Path]:
    """First .ferretrc file in root (or root's directory, for a file), if any."""
    directory = root if root.is_dir() else root.parent
    for name in CONFIG_FILE_NAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def load_config_file(path: Path) -> ConfigFile:
    """
    Parse and validate one config file.

    Raises:
        ConfigError: the file cannot be read, is not valid YAML/JSON, or does
            not match the schema.
    """
    try:
        text = path.read_text(encoding="utf-8")
        data: Any = json.loads(text) if path.suffix.lower() == ".json" else yaml.safe_load(text)
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(f"Malformed config file {path}: {e}") from e

    if data is None:
        logger.warning("Config file is empty: %s", path)
        return ConfigFile()
    if not isinstance(data, dict):
        raise ConfigError(
            f"Config file must be a mapping (object), got {type(data).__name__}: {path}"
        )

    try:
        return ConfigFile.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {path}: {e}") from e


def apply_config_file(config: Config, file_config: ConfigFile, base_dir: Path) -> Config:
    """Return a copy of config with every key set in file_config applied."""
    updates: dict[str, Any] = {}
    for name in ("context_lines", "severities", "categories", "fail_on", "correlation_analysis",
                 "max_file_size", "workers", "entropy_analysis", "mcp_validation",
                 "dependency_analysis", "dependency_audit"):
        value = getattr(file_config, name)
        if value is not None:
            updates[name] = value
    if file_config.ignore:
        updates["ignore_dirs"] = config.ignore_dirs | set(file_config.ignore)
    if file_config.custom_rules:
        updates["custom_rules"] = [*config.custom_rules, *(base_dir / p for p in file_config.custom_rules)]
    return replace(config, **updates)


def load_rules(config: Config, roots: Sequence[Path] = ()) -> LoadResult:
    """
    Resolve the rule set for a scan.

    The base catalog (config.rules or the built-ins) is merged with custom
    rule files from config.custom_rules and the conventional locations under
    each root, then filtered to the enabled categories and severities. Custom
    rule problems come back as errors; they never stop the scan.
    """
    base = list(config.rules) if config.rules is not None else get_all_rules()

    custom_paths = list(config.custom_rules)
    for root in roots:
        if root.is_dir():
            custom_paths.extend(p for p in discover_custom_rules(root) if p not in custom_paths)

    loaded = load_custom_rules(custom_paths) if custom_paths else LoadResult()
    merged = merge_rules(base, loaded.rules)
    selected = get_rules_for_scan(config.categories, config.severities, rules=merged)
    return LoadResult(rules=selected, errors=loaded.errors)


def get_enabled_rules(config: Config | None = None) -> Sequence[Rule]:
    """
    Return the list of enabled rules from the given config (or default config).
    """
    if config is None:
        config = get_default_config()
    return load_rules(config).rules


def get_enabled_analyzers(config: Config | None = None) -> list[Analyzer]:
    """
    Build the analyzers switched on in config, in a fixed order.

    Each one reports only the severities and categories the config selects.
    """
    if config is None:
        config = get_default_config()
    scope = {"severities": config.severities, "categories": config.categories}

    analyzers: list[Analyzer] = []
    if config.entropy_analysis:
        analyzers.append(EntropyAnalyzer(**scope))
    if config.mcp_validation:
        analyzers.append(McpValidator(**scope))
    if config.dependency_analysis or config.dependency_audit:
        analyzers.append(DependencyAnalyzer(audit=config.dependency_audit, **scope))
    return analyzers
