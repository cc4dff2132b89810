"""Tests for package.json dependency risk analysis."""

import json
import subprocess
from datetime import datetime, timezone
from pathlib import Path

import pytest

from ferret.analyzers import dependencies
from ferret.analyzers.dependencies import (
    DependencyAnalyzer,
    Package,
    Vulnerability,
    assess_package,
    parse_npm_audit,
    parse_package_json,
    run_npm_audit,
)
from ferret.findings.models import ComponentType, DiscoveredFile, FileType, Severity, ThreatCategory
from ferret.matcher import MatchOptions

PINNED = datetime(2026, 1, 1, tzinfo=timezone.utc)

PACKAGE_JSON = json.dumps(
    {
        "name": "demo-plugin",
        "dependencies": {
            "event-stream": "3.3.6",
            "lodash": "^4.17.21",
        },
        "devDependencies": {
            "vm2": "^3.9.0",
        },
    },
    indent=2,
)

AUDIT_OUTPUT = json.dumps({
    "vulnerabilities": {
        "lodash": {
            "severity": "high",
            "range": "<4.17.21",
            "fixAvailable": True,
            "via": [
                {
                    "source": 1673,
                    "title": "Prototype Pollution in lodash",
                    "url": "https://github.com/advisories/GHSA-p6mc-m468-83gw",
                }
            ],
        },
        "transitive": {"severity": "moderate", "via": ["lodash"]},
    }
})


def _file(path: str = "package.json") -> DiscoveredFile:
    return DiscoveredFile(
        path=Path("/project/.claude/plugins/demo") / path,
        relative_path=f".claude/plugins/demo/{path}",
        type=FileType.JSON,
        component=ComponentType.PLUGIN,
    )


def _types(name: str, version: str) -> set[str]:
    return {i.type for i in assess_package(Package(name, version, "dependency")).issues}


def test_parse_package_json():
    packages = parse_package_json(PACKAGE_JSON)
    assert [(p.name, p.dependency_type) for p in packages] == [
        ("event-stream", "dependency"),
        ("lodash", "dependency"),
        ("vm2", "devDependency"),
    ]


def test_parse_package_json_rejects_non_objects():
    with pytest.raises(ValueError, match="JSON object"):
        parse_package_json("[]")


class TestAssessPackage:
    def test_clean(self):
        assert _types("lodash", "^4.17.21") == set()

    def test_known_malicious(self):
        issues = assess_package(Package("event-stream", "3.3.6", "dependency")).issues
        assert [(i.type, i.severity) for i in issues] == [("known-malicious", Severity.CRITICAL)]

    def test_security_concern(self):
        issues = assess_package(Package("vm2", "^3.9.0", "devDependency")).issues
        assert [(i.type, i.severity) for i in issues] == [("security-concern", Severity.MEDIUM)]

    def test_install_script_in_version(self):
        assert _types("thing", "1.0.0-postinstall") == {"suspicious-pattern"}

    def test_source_kinds(self):
        assert _types("lib", "file:../lib") == {"local-dependency"}
        assert _types("lib", "git+https://host.example/lib.git") == {"git-dependency"}
        assert _types("lib", "https://host.example/lib.tgz") == {"url-dependency"}
        assert _types("lib", "http://host.example/lib.tgz") == {"url-dependency", "insecure-url"}

    @pytest.mark.parametrize("version", ["*", "latest"])
    def test_unpinned(self, version):
        assert _types("lib", version) == {"unpinned-version"}

    def test_early_version(self):
        assert _types("lib", "0.0.1") == {"possibly-abandoned"}
        assert _types("lib", "0.0.12") == set()


def test_parse_npm_audit_skips_transitive_pointers():
    result = parse_npm_audit(AUDIT_OUTPUT)
    assert list(result) == ["lodash"]
    vuln = result["lodash"][0]
    assert vuln.id == "1673"
    assert vuln.severity is Severity.HIGH
    assert vuln.fix_available
    assert vuln.affected_versions == "<4.17.21"


def test_parse_npm_audit_without_vulnerabilities():
    assert parse_npm_audit("{}") == {}


def test_run_npm_audit_without_npm(tmp_path: Path, monkeypatch, caplog):
    def missing(*args, **kwargs):
        raise FileNotFoundError("npm")

    monkeypatch.setattr(subprocess, "run", missing)
    assert run_npm_audit(tmp_path) == {}
    assert "npm not found" in caplog.text


def test_run_npm_audit_timeout(tmp_path: Path, monkeypatch):
    def slow(*args, **kwargs):
        raise subprocess.TimeoutExpired(cmd="npm audit --json", timeout=1)

    monkeypatch.setattr(subprocess, "run", slow)
    assert run_npm_audit(tmp_path) == {}


def test_run_npm_audit_parses_stdout(tmp_path: Path, monkeypatch):
    calls = []

    def fake_run(args, **kwargs):
        calls.append((args, kwargs["cwd"]))
        return subprocess.CompletedProcess(args, 1, stdout=AUDIT_OUTPUT, stderr="")

    monkeypatch.setattr(subprocess, "run", fake_run)
    assert list(run_npm_audit(tmp_path)) == ["lodash"]
    assert calls == [(["npm", "audit", "--json"], tmp_path)]


class TestDependencyAnalyzer:
    def test_findings(self):
        findings = DependencyAnalyzer().analyze(_file(), PACKAGE_JSON, MatchOptions(timestamp=PINNED))
        assert [(f.rule_id, f.line) for f in findings] == [
            ("DEP-KNOWNMALICIOUS", 4),
            ("DEP-SECURITYCONCERN", 8),
        ]
        malicious = findings[0]
        assert malicious.severity is Severity.CRITICAL
        assert malicious.category is ThreatCategory.SUPPLY_CHAIN
        assert malicious.match == "event-stream@3.3.6"
        assert malicious.metadata.kind == "dependency"
        assert malicious.metadata.issue_type == "known-malicious"
        assert findings[1].metadata.dependency_type == "devDependency"

    def test_only_package_json(self):
        analyzer = DependencyAnalyzer()
        assert analyzer.analyze(_file("other.json"), PACKAGE_JSON, MatchOptions(timestamp=PINNED)) == []

    def test_unparseable_manifest(self):
        assert DependencyAnalyzer().analyze(_file(), "{broken", MatchOptions(timestamp=PINNED)) == []

    def test_audit_is_off_by_default(self, monkeypatch):
        def fail(package_dir):
            raise AssertionError("npm audit should not run")

        monkeypatch.setattr(dependencies, "run_npm_audit", fail)
        DependencyAnalyzer().analyze(_file(), PACKAGE_JSON, MatchOptions(timestamp=PINNED))

    def test_audit_advisories_become_findings(self, monkeypatch):
        seen = []

        def fake_audit(package_dir):
            seen.append(package_dir)
            return {"lodash": [Vulnerability("1673", Severity.HIGH, "Prototype Pollution", fix_available=True)]}

        monkeypatch.setattr(dependencies, "run_npm_audit", fake_audit)
        findings = DependencyAnalyzer(audit=True).analyze(_file(), PACKAGE_JSON, MatchOptions(timestamp=PINNED))
        assert seen == [Path("/project/.claude/plugins/demo")]
        vuln = [f for f in findings if f.rule_id.startswith("DEP-VULN-")]
        assert [(f.rule_id, f.line, f.severity) for f in vuln] == [("DEP-VULN-1673", 5, Severity.HIGH)]
        assert vuln[0].metadata.vulnerability_id == "1673"
        assert vuln[0].metadata.fix_available
        assert vuln[0].remediation == "Update lodash to fix the vulnerability"

    def test_category_scope(self):
        analyzer = DependencyAnalyzer(categories=[ThreatCategory.CREDENTIALS])
        assert analyzer.analyze(_file(), PACKAGE_JSON, MatchOptions(timestamp=PINNED)) == []
