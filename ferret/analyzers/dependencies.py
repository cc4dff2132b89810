# Dependency risk: flags risky npm dependencies declared in package.json, optionally backed by `npm audit`.

from __future__ import annotations

import json
import logging
import re
import subprocess
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional

from ferret.analyzers.base import Analyzer
from ferret.context import extract_context, split_lines
from ferret.findings.models import (
    DependencyMetadata,
    DiscoveredFile,
    Finding,
    Severity,
    ThreatCategory,
)
from ferret.matcher import MatchOptions
from ferret.scoring import match_signal, risk_score

logger = logging.getLogger(__name__)

AUDIT_TIMEOUT_SECONDS = 120

DEPENDENCY_SECTIONS = (
    ("dependencies", "dependency"),
    ("devDependencies", "devDependency"),
    ("peerDependencies", "peerDependency"),
    ("optionalDependencies", "optionalDependency"),
)

# Known malicious or compromised packages
KNOWN_MALICIOUS = frozenset({
    "event-stream",
    "flatmap-stream",
    "eslint-scope",
    "getcookies",
    "mailparser",
    "nodemailer-js",
    "electron-native-notify",
})

SECURITY_CONCERNS: dict[str, tuple[str, Severity]] = {
    "node-serialize": ("Unsafe deserialization vulnerabilities", Severity.HIGH),
    "serialize-javascript": ("Potential XSS if used incorrectly", Severity.MEDIUM),
    "eval": ("Allows arbitrary code execution", Severity.HIGH),
    "vm2": ("Sandbox escapes have been found", Severity.MEDIUM),
    "safe-eval": ("Not actually safe, sandbox escapes exist", Severity.HIGH),
    "mathjs": ("Historical arbitrary code execution issues", Severity.LOW),
}

SUSPICIOUS_PATTERNS: list[tuple[re.Pattern[str], Severity, str]] = [
    (re.compile(r"^@[a-z]+-[a-z]+/"), Severity.LOW, "Typosquatting pattern (hyphenated scope)"),
    (re.compile(r"postinstall|preinstall", re.IGNORECASE), Severity.MEDIUM, "Package may run install scripts"),
]

AUDIT_SEVERITIES = {
    "critical": Severity.CRITICAL,
    "high": Severity.HIGH,
    "moderate": Severity.MEDIUM,
}


@dataclass(frozen=True)
class Package:
    name: str
    version: str
    dependency_type: str

    @property
    def is_local(self) -> bool:
        return self.version.startswith("file:")

    @property
    def is_git(self) -> bool:
        return "git" in self.version

    @property
    def is_url(self) -> bool:
        return self.version.startswith(("http://", "https://"))


@dataclass(frozen=True)
class Vulnerability:
    """One advisory from an npm audit report."""

    id: str
    severity: Severity
    title: str
    url: Optional[str] = None
    fix_available: bool = False
    affected_versions: Optional[str] = None


@dataclass
class DependencyIssue:
    type: str
    severity: Severity
    description: str
    remediation: str


@dataclass
class PackageAssessment:
    package: Package
    issues: list[DependencyIssue] = field(default_factory=list)
    vulnerabilities: list[Vulnerability] = field(default_factory=list)


def parse_package_json(content: str) -> list[Package]:
    """
    Every declared dependency, section by section in declaration order.

    Raises:
        ValueError: content is not a JSON object.
    """
    data = json.loads(content)
    if not isinstance(data, dict):
        raise ValueError("package.json must be a JSON object")

    packages: list[Package] = []
    for key, dependency_type in DEPENDENCY_SECTIONS:
        section = data.get(key)
        if not isinstance(section, dict):
            continue
        for name, version in section.items():
            packages.append(Package(name=name, version=str(version), dependency_type=dependency_type))
    return packages


def parse_npm_audit(output: str) -> dict[str, list[Vulnerability]]:
    """
    Advisories per package from `npm audit --json` output.

    Entries whose "via" is only a package name (a transitive pointer) carry no
    advisory of their own and are skipped.
    """
    audit = json.loads(output)
    result: dict[str, list[Vulnerability]] = {}
    entries = audit.get("vulnerabilities") if isinstance(audit, dict) else None
    if not isinstance(entries, dict):
        return result

    for name, data in entries.items():
        if not isinstance(data, dict):
            continue
        severity = AUDIT_SEVERITIES.get(str(data.get("severity", "")).lower(), Severity.LOW)
        vulns = [
            Vulnerability(
                id=str(via.get("source", "unknown")),
                severity=severity,
                title=via["title"],
                url=via.get("url"),
                fix_available=bool(data.get("fixAvailable")),
                affected_versions=data.get("range"),
            )
            for via in data.get("via", [])
            if isinstance(via, dict) and via.get("title")
        ]
        if vulns:
            result[name] = vulns
    return result


def run_npm_audit(package_dir: Path) -> dict[str, list[Vulnerability]]:
    """
    Run `npm audit --json` in package_dir.

    npm exits non-zero whenever it finds something, so the exit code is
    ignored. A missing npm, a timeout or unparseable output is logged and
    yields no advisories.
    """
    try:
        completed = subprocess.run(
            ["npm", "audit", "--json"],
            cwd=package_dir,
            capture_output=True,
            text=True,
            timeout=AUDIT_TIMEOUT_SECONDS,
        )
    except FileNotFoundError:
        logger.warning("npm not found; skipping dependency audit in %s", package_dir)
        return {}
    except subprocess.TimeoutExpired:
        logger.warning("npm audit timed out after %ds in %s", AUDIT_TIMEOUT_SECONDS, package_dir)
        return {}

    try:
        return parse_npm_audit(completed.stdout)
    except json.JSONDecodeError as e:
        logger.warning("Cannot parse npm audit output in %s: %s", package_dir, e)
        return {}


def assess_package(package: Package, vulnerabilities: Iterable[Vulnerability] = ()) -> PackageAssessment:
    """Run every package check against one declared dependency."""
    assessment = PackageAssessment(package=package, vulnerabilities=list(vulnerabilities))
    issues = assessment.issues
    name, version = package.name, package.version

    if name in KNOWN_MALICIOUS:
        issues.append(DependencyIssue(
            "known-malicious",
            Severity.CRITICAL,
            f'Package "{name}" has been flagged for malicious behavior',
            "Immediately remove this package and audit your code for tampering",
        ))

    concern = SECURITY_CONCERNS.get(name)
    if concern is not None:
        reason, severity = concern
        issues.append(DependencyIssue(
            "security-concern",
            severity,
            f'Package "{name}": {reason}',
            "Review usage carefully and consider alternatives",
        ))

    for pattern, severity, desc in SUSPICIOUS_PATTERNS:
        if pattern.search(name) or pattern.search(version):
            issues.append(DependencyIssue(
                "suspicious-pattern",
                severity,
                f"{desc}: {name}@{version}",
                "Verify the package is legitimate and intended",
            ))

    if package.is_local:
        issues.append(DependencyIssue(
            "local-dependency",
            Severity.LOW,
            f"Local file dependency: {name}",
            "Ensure local dependencies are properly managed and secured",
        ))
    if package.is_git:
        issues.append(DependencyIssue(
            "git-dependency",
            Severity.MEDIUM,
            f"Git-based dependency: {name}@{version}",
            "Pin to a specific commit hash instead of branch names",
        ))
    if package.is_url:
        issues.append(DependencyIssue(
            "url-dependency",
            Severity.HIGH,
            f"URL-based dependency: {name}@{version}",
            "Use the npm registry instead of direct URLs when possible",
        ))
    if version.startswith("http://"):
        issues.append(DependencyIssue(
            "insecure-url",
            Severity.HIGH,
            f"Insecure HTTP URL dependency: {name}",
            "Use HTTPS for all external dependencies",
        ))
    if version in ("*", "latest"):
        issues.append(DependencyIssue(
            "unpinned-version",
            Severity.MEDIUM,
            f"Unpinned version for {name}: {version}",
            "Pin to a specific version or version range",
        ))
    if re.fullmatch(r"0\.0\.[0-9]", version):
        issues.append(DependencyIssue(
            "possibly-abandoned",
            Severity.LOW,
            f"Very early version ({version}) may indicate an abandoned package",
            "Verify the package is actively maintained",
        ))

    return assessment


def _declaration_line(lines: list[str], name: str) -> int:
    pattern = re.compile(re.escape(json.dumps(name, ensure_ascii=False)) + r"\s*:")
    for index, line in enumerate(lines):
        if pattern.search(line):
            return index + 1
    return 1


class DependencyAnalyzer(Analyzer):
    """
    Flags risky dependencies in package.json.

    With audit=True, `npm audit` is run in the package's directory and every
    advisory becomes its own DEP-VULN-<id> finding.
    """

    id = "DEP"
    name = "Dependency Risk"

    def __init__(self, audit: bool = False, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.audit = audit

    def applies(self, file: DiscoveredFile) -> bool:
        return file.path.name.lower() == "package.json"

    def run(self, file: DiscoveredFile, content: str, options: MatchOptions) -> list[Finding]:
        try:
            packages = parse_package_json(content)
        except ValueError as e:
            # json.JSONDecodeError is a ValueError
            logger.warning("Cannot parse %s: %s", file.relative_path, e)
            return []

        advisories = run_npm_audit(file.path.parent) if self.audit else {}
        timestamp = options.timestamp or datetime.now(timezone.utc)
        lines = split_lines(content)
        signal = match_signal(1, file.component)
        findings: list[Finding] = []

        def _finding(package: Package, rule_id: str, rule_name: str, severity: Severity,
                     category: ThreatCategory, remediation: str, metadata: DependencyMetadata) -> Finding:
            line = _declaration_line(lines, package.name)
            return Finding(
                rule_id=rule_id,
                rule_name=rule_name,
                severity=severity,
                category=category,
                file=file.path,
                relative_path=file.relative_path,
                line=line,
                match=f"{package.name}@{package.version}",
                context=extract_context(lines, line, options.context_lines),
                remediation=remediation,
                metadata=metadata,
                timestamp=timestamp,
                risk_score=risk_score(severity, signal),
            )

        for package in packages:
            assessment = assess_package(package, advisories.get(package.name, ()))
            for issue in assessment.issues:
                findings.append(_finding(
                    package,
                    "DEP-" + issue.type.upper().replace("-", ""),
                    f"Dependency: {issue.type.replace('-', ' ')}",
                    issue.severity,
                    ThreatCategory.SUPPLY_CHAIN,
                    issue.remediation,
                    DependencyMetadata(
                        package_name=package.name,
                        package_version=package.version,
                        dependency_type=package.dependency_type,
                        issue_type=issue.type,
                    ),
                ))
            for vuln in assessment.vulnerabilities:
                findings.append(_finding(
                    package,
                    f"DEP-VULN-{vuln.id}",
                    f"Vulnerability: {vuln.title}",
                    vuln.severity,
                    ThreatCategory.SUPPLY_CHAIN,
                    f"Update {package.name} to fix the vulnerability"
                    if vuln.fix_available
                    else "No fix available; consider replacing the package",
                    DependencyMetadata(
                        package_name=package.name,
                        package_version=package.version,
                        dependency_type=package.dependency_type,
                        issue_type="vulnerability",
                        vulnerability_id=vuln.id,
                        vulnerability_title=vuln.title,
                        vulnerability_url=vuln.url,
                        fix_available=vuln.fix_available,
                        affected_versions=vuln.affected_versions,
                    ),
                ))

        logger.debug("Analyzed %d packages in %s: %d findings", len(packages), file.relative_path, len(findings))
        return findings
