# Pydantic data models for findings: Severity, ContextLine, Finding, CorrelationFinding.

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field


class Severity(str, Enum):
    """Finding severity, most severe first."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    INFO = "INFO"

    @property
    def rank(self) -> int:
        """0 for CRITICAL up to 4 for INFO."""
        return SEVERITY_ORDER.index(self)


SEVERITY_ORDER: list[Severity] = [
    Severity.CRITICAL,
    Severity.HIGH,
    Severity.MEDIUM,
    Severity.LOW,
    Severity.INFO,
]


class ThreatCategory(str, Enum):
    CREDENTIALS = "credentials"
    INJECTION = "injection"
    EXFILTRATION = "exfiltration"
    SUPPLY_CHAIN = "supply-chain"
    PERMISSIONS = "permissions"
    PERSISTENCE = "persistence"
    OBFUSCATION = "obfuscation"
    AI_SPECIFIC = "ai-specific"
    BACKDOORS = "backdoors"
    BEHAVIORAL = "behavioral"
    ADVANCED_HIDING = "advanced-hiding"


class FileType(str, Enum):
    MD = "md"
    SH = "sh"
    BASH = "bash"
    ZSH = "zsh"
    JSON = "json"
    YAML = "yaml"
    YML = "yml"
    TS = "ts"
    JS = "js"
    TSX = "tsx"
    JSX = "jsx"


class ComponentType(str, Enum):
    """The role a file plays in an AI CLI setup (inferred from its path)."""

    SKILL = "skill"
    AGENT = "agent"
    HOOK = "hook"
    PLUGIN = "plugin"
    MCP = "mcp"
    SETTINGS = "settings"
    AI_CONFIG_MD = "ai-config-md"
    RULES_FILE = "rules-file"


class DiscoveredFile(BaseModel):
    """A file found by traversal, with the metadata rules are gated on."""

    path: Path
    relative_path: str
    type: FileType
    component: ComponentType
    size: int = Field(0, ge=0)
    modified: Optional[datetime] = None

    model_config = {"frozen": True}


class ContextLine(BaseModel):
    """One line of the window shown around a finding."""

    line_number: int = Field(..., ge=1, description="1-based line number")
    content: str
    is_match: bool = False


class MatchMetadata(BaseModel):
    """Metadata attached by the pattern matcher."""

    kind: Literal["match"] = "match"
    pattern: str
    matches_on_line: int = Field(1, ge=1)


class PatternHit(BaseModel):
    """First occurrence of a correlation content pattern in one file."""

    relative_path: str
    pattern: str
    line: int = Field(..., ge=1)
    match: str


class CorrelationMetadata(BaseModel):
    """Metadata attached by the correlation engine."""

    kind: Literal["correlation"] = "correlation"
    correlation_rule_id: str
    related_patterns: list[PatternHit] = Field(default_factory=list)
    total_files: int = Field(..., ge=2)
    distances: dict[str, int] = Field(
        default_factory=dict,
        description="Directory distance from the anchor file to each related file, by absolute path",
    )


class EntropyMetadata(BaseModel):
    """Metadata attached by the high-entropy secret analyzer."""

    kind: Literal["entropy"] = "entropy"
    entropy: float = Field(..., ge=0.0, description="Shannon entropy in bits per character")
    confidence: Literal["high", "medium"]
    reason: str


class McpMetadata(BaseModel):
    """Metadata attached by the MCP server config validator."""

    kind: Literal["mcp"] = "mcp"
    server_name: str
    issue_type: str
    description: str = ""
    command: Optional[str] = None
    url: Optional[str] = None
    capabilities: list[str] = Field(default_factory=list)


class DependencyMetadata(BaseModel):
    """
    Metadata attached by the package.json dependency analyzer.

    The vulnerability fields are only set for findings that come from an npm
    audit report.
    """

    kind: Literal["dependency"] = "dependency"
    package_name: str
    package_version: str
    dependency_type: str
    issue_type: str
    vulnerability_id: Optional[str] = None
    vulnerability_title: Optional[str] = None
    vulnerability_url: Optional[str] = None
    fix_available: Optional[bool] = None
    affected_versions: Optional[str] = None


FindingMetadata = Annotated[
    Union[MatchMetadata, CorrelationMetadata, EntropyMetadata, McpMetadata, DependencyMetadata],
    Field(discriminator="kind"),
]


class Finding(BaseModel):
    """A single occurrence of a rule's pattern in one file at one line."""

    rule_id: str
    rule_name: str
    severity: Severity
    category: ThreatCategory
    file: Path
    relative_path: str
    line: int = Field(..., ge=1, description="1-based line number")
    column: Optional[int] = Field(None, ge=1, description="1-based column number")
    match: str
    context: list[ContextLine] = Field(default_factory=list)
    remediation: str = ""
    metadata: Optional[FindingMetadata] = None
    timestamp: datetime
    risk_score: int = Field(..., ge=0, le=100)


class CorrelationFinding(Finding):
    """A finding synthesized from pattern hits spread across related files."""

    related_files: list[str] = Field(default_factory=list)
    attack_pattern: str
    risk_vectors: list[str] = Field(..., min_length=1)
    correlation_strength: float = Field(..., ge=0.0, le=1.0)


class ScanError(BaseModel):
    """A non-fatal problem encountered while scanning."""

    file: Optional[str] = None
    message: str
    fatal: bool = False


class ScanSummary(BaseModel):
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    info: int = 0
    total: int = 0


class ScanResult(BaseModel):
    """Everything a reporter needs about one completed scan."""

    success: bool = True
    start_time: datetime
    end_time: datetime
    duration_ms: int = Field(0, ge=0)
    scanned_paths: list[str] = Field(default_factory=list)
    total_files: int = 0
    analyzed_files: int = 0
    skipped_files: int = 0
    findings: list[Union[CorrelationFinding, Finding]] = Field(default_factory=list)
    summary: ScanSummary = Field(default_factory=ScanSummary)
    overall_risk_score: int = Field(0, ge=0, le=100)
    errors: list[ScanError] = Field(default_factory=list)
