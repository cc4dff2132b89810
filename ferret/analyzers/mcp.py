"""
MCP server config validation.

Parses .mcp.json / mcp.json and checks every server entry (under "mcpServers"
or "servers") for:

- suspicious server names (hack, backdoor, root, ...)
- dangerous commands (sudo, curl | sh, eval, netcat, ...)
- commands from sources outside the known MCP publishers
- shell expansion in the command line
- dangerous environment variables (LD_PRELOAD, NODE_OPTIONS, ...) and
  hard-coded secrets in env values
- plain HTTP and tunnelling-service URLs
- every capability enabled at once
- WebSocket transport without TLS

Each issue becomes one Finding anchored at the line that names the server.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from ferret.analyzers.base import Analyzer
from ferret.context import extract_context, split_lines
from ferret.findings.models import (
    ComponentType,
    DiscoveredFile,
    FileType,
    Finding,
    McpMetadata,
    Severity,
    ThreatCategory,
)
from ferret.matcher import MatchOptions
from ferret.scoring import match_signal, risk_score

logger = logging.getLogger(__name__)

SUSPICIOUS_SERVER_NAMES: list[tuple[re.Pattern[str], Severity]] = [
    (re.compile(r"hack|exploit|pwn|backdoor|shell|reverse", re.IGNORECASE), Severity.CRITICAL),
    (re.compile(r"admin|root|sudo|elevated", re.IGNORECASE), Severity.MEDIUM),
    (re.compile(r"test.*prod|prod.*test", re.IGNORECASE), Severity.MEDIUM),
]

DANGEROUS_COMMANDS: list[tuple[re.Pattern[str], Severity, str]] = [
    (re.compile(r"\bsudo\b", re.IGNORECASE), Severity.CRITICAL, "Runs with elevated privileges"),
    (re.compile(r"\brm\s+-rf?\b", re.IGNORECASE), Severity.HIGH, "Can delete files recursively"),
    (re.compile(r"\bchmod\s+777\b", re.IGNORECASE), Severity.HIGH, "Sets overly permissive permissions"),
    (re.compile(r"\bcurl\b.*\|\s*(?:bash|sh)\b", re.IGNORECASE), Severity.CRITICAL, "Downloads and executes scripts"),
    (re.compile(r"\beval\b", re.IGNORECASE), Severity.HIGH, "Dynamic code execution"),
    (re.compile(r"\bexec\b", re.IGNORECASE), Severity.MEDIUM, "Process execution"),
    (re.compile(r"\bnc\b|\bnetcat\b", re.IGNORECASE), Severity.HIGH, "Network utility (potential backdoor)"),
    (re.compile(r"\bwget\b.*-O\s*-\s*\|", re.IGNORECASE), Severity.CRITICAL, "Downloads and pipes to command"),
]

DANGEROUS_ENV_VARS: list[tuple[re.Pattern[str], Severity, str]] = [
    (re.compile(r"^PATH$", re.IGNORECASE), Severity.MEDIUM, "Modifies executable search path"),
    (re.compile(r"^LD_PRELOAD$", re.IGNORECASE), Severity.CRITICAL, "Can inject code into processes"),
    (re.compile(r"^LD_LIBRARY_PATH$", re.IGNORECASE), Severity.HIGH, "Can load malicious libraries"),
    (re.compile(r"^PYTHONPATH$", re.IGNORECASE), Severity.MEDIUM, "Can load malicious Python modules"),
    (re.compile(r"^NODE_OPTIONS$", re.IGNORECASE), Severity.HIGH, "Can inject Node.js options"),
]

SECRET_ENV_NAME = re.compile(r"password|secret|token|key|api", re.IGNORECASE)
ENV_REFERENCE = re.compile(r"^\$\{|^\$[A-Z_]")
SHELL_EXPANSION = re.compile(r"\$\(|`|\$\{")
TUNNEL_SERVICES = re.compile(r"ngrok|localtunnel|serveo|localhost\.run", re.IGNORECASE)

TRUSTED_SOURCES = ("npx", "@modelcontextprotocol/", "@anthropic/", "mcp-server-")


@dataclass
class McpIssue:
    type: str
    severity: Severity
    description: str
    remediation: str


@dataclass
class ServerAssessment:
    """Issues found in one server entry, plus what the entry declares."""

    server_name: str
    issues: list[McpIssue] = field(default_factory=list)
    capabilities: list[str] = field(default_factory=list)
    command: Optional[str] = None
    url: Optional[str] = None

    @property
    def highest_severity(self) -> Optional[Severity]:
        if not self.issues:
            return None
        return min((i.severity for i in self.issues), key=lambda s: s.rank)


def get_servers(config: Any) -> dict[str, dict[str, Any]]:
    """Server entries from either layout; entries that are not objects are dropped."""
    if not isinstance(config, dict):
        return {}
    servers = config.get("mcpServers", config.get("servers", {}))
    if not isinstance(servers, dict):
        return {}
    return {name: entry for name, entry in servers.items() if isinstance(entry, dict)}


def assess_server(name: str, config: dict[str, Any]) -> ServerAssessment:
    """Run every server check against one entry."""
    assessment = ServerAssessment(server_name=name)
    issues = assessment.issues

    for pattern, severity in SUSPICIOUS_SERVER_NAMES:
        if pattern.search(name):
            issues.append(McpIssue(
                "suspicious-name",
                severity,
                f'Server name "{name}" matches suspicious pattern',
                "Rename the server to use a descriptive, non-suspicious name",
            ))

    command = config.get("command")
    command = command if isinstance(command, str) else None
    args = config.get("args")
    args = [str(a) for a in args] if isinstance(args, list) else []
    full_command = " ".join([command, *args]) if command else ""

    if full_command:
        assessment.command = full_command
        for pattern, severity, desc in DANGEROUS_COMMANDS:
            if pattern.search(full_command):
                issues.append(McpIssue(
                    "dangerous-command",
                    severity,
                    f"Dangerous command pattern: {desc}",
                    "Review and restrict the command to only necessary operations",
                ))

        trusted = any(source in full_command for source in TRUSTED_SOURCES)
        if not trusted and not command.startswith(("/", "./")):
            issues.append(McpIssue(
                "untrusted-source",
                Severity.MEDIUM,
                f"Server uses potentially untrusted command: {command}",
                "Verify the source of the MCP server and use trusted packages",
            ))

        if SHELL_EXPANSION.search(full_command):
            issues.append(McpIssue(
                "shell-expansion",
                Severity.HIGH,
                "Command contains shell expansion that could be exploited",
                "Avoid shell expansion in MCP server commands",
            ))

    env = config.get("env")
    if isinstance(env, dict):
        for key, value in env.items():
            for pattern, severity, desc in DANGEROUS_ENV_VARS:
                if pattern.search(key):
                    issues.append(McpIssue(
                        "dangerous-env",
                        severity,
                        f"Dangerous environment variable {key}: {desc}",
                        f"Remove or restrict the {key} environment variable",
                    ))
            value = "" if value is None else str(value)
            if SECRET_ENV_NAME.search(key) and value and not ENV_REFERENCE.search(value):
                issues.append(McpIssue(
                    "hardcoded-secret",
                    Severity.HIGH,
                    f"Potential hardcoded secret in environment variable: {key}",
                    "Use environment variable references instead of hardcoding secrets",
                ))

    url = config.get("url")
    if isinstance(url, str) and url:
        assessment.url = url
        if url.startswith("http://") and "localhost" not in url and "127.0.0.1" not in url:
            issues.append(McpIssue(
                "insecure-transport",
                Severity.HIGH,
                "Server uses insecure HTTP transport",
                "Use HTTPS for remote MCP server connections",
            ))
        if TUNNEL_SERVICES.search(url):
            issues.append(McpIssue(
                "tunnel-service",
                Severity.MEDIUM,
                "Server uses a tunneling service which may expose local resources",
                "Avoid using tunneling services for production MCP servers",
            ))

    caps = config.get("capabilities")
    if isinstance(caps, dict):
        assessment.capabilities = [c for c in ("tools", "resources", "prompts") if caps.get(c)]
        if len(assessment.capabilities) == 3:
            issues.append(McpIssue(
                "excessive-capabilities",
                Severity.MEDIUM,
                "Server has all capabilities enabled (tools, resources, prompts)",
                "Limit capabilities to only what is needed",
            ))

    if config.get("transport") == "websocket" and assessment.url and not assessment.url.startswith("wss://"):
        issues.append(McpIssue(
            "insecure-websocket",
            Severity.HIGH,
            "WebSocket transport without TLS (should use wss://)",
            "Use secure WebSocket (wss://) for MCP server connections",
        ))

    return assessment


def _server_line(lines: list[str], name: str) -> int:
    needle = json.dumps(name, ensure_ascii=False)
    for index, line in enumerate(lines):
        if needle in line:
            return index + 1
    return 1


def issue_rule_id(issue_type: str) -> str:
    """'dangerous-command' -> 'MCP-DANGEROUSCOMMAND'."""
    return "MCP-" + issue_type.upper().replace("-", "")


class McpValidator(Analyzer):
    """Validates MCP server definitions in JSON MCP configs."""

    id = "MCP"
    name = "MCP Server Validation"

    def applies(self, file: DiscoveredFile) -> bool:
        return file.component is ComponentType.MCP and file.type is FileType.JSON

    def run(self, file: DiscoveredFile, content: str, options: MatchOptions) -> list[Finding]:
        try:
            config = json.loads(content)
        except json.JSONDecodeError as e:
            logger.warning("Cannot parse MCP config %s: %s", file.relative_path, e)
            return []

        timestamp = options.timestamp or datetime.now(timezone.utc)
        lines = split_lines(content)
        findings: list[Finding] = []

        for name, server in get_servers(config).items():
            assessment = assess_server(name, server)
            if not assessment.issues:
                continue
            line = _server_line(lines, name)
            logger.debug(
                "MCP server %s in %s: %d issues (worst %s)",
                name,
                file.relative_path,
                len(assessment.issues),
                assessment.highest_severity.value,
            )
            for issue in assessment.issues:
                findings.append(
                    Finding(
                        rule_id=issue_rule_id(issue.type),
                        rule_name=f"MCP Server: {issue.type.replace('-', ' ')}",
                        severity=issue.severity,
                        category=(
                            ThreatCategory.CREDENTIALS if "secret" in issue.type else ThreatCategory.PERMISSIONS
                        ),
                        file=file.path,
                        relative_path=file.relative_path,
                        line=line,
                        match=f"Server: {name}",
                        context=extract_context(lines, line, options.context_lines),
                        remediation=issue.remediation,
                        metadata=McpMetadata(
                            server_name=name,
                            issue_type=issue.type,
                            description=issue.description,
                            command=assessment.command,
                            url=assessment.url,
                            capabilities=assessment.capabilities,
                        ),
                        timestamp=timestamp,
                        risk_score=risk_score(issue.severity, match_signal(1, file.component)),
                    )
                )

        return findings
