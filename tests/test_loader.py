"""Unit tests for custom rule files."""

import json
from pathlib import Path

from ferret.findings.models import ComponentType, FileType, Severity, ThreatCategory
from ferret.rules.loader import (
    DEFAULT_COMPONENTS,
    DEFAULT_FILE_TYPES,
    discover_custom_rules,
    load_custom_rules,
    load_custom_rules_file,
)

VALID_YAML = """\
version: "1"
rules:
  - id: CUSTOM-001
    name: Internal telemetry host
    category: exfiltration
    severity: HIGH
    description: Flags references to the internal telemetry host
    patterns: ['telemetry\\.internal\\.example']
"""


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_load_yaml_rules(tmp_path: Path):
    """A minimal rule gets the default file types, components and remediation."""
    result = load_custom_rules_file(_write(tmp_path / "rules.yml", VALID_YAML))
    assert result.success
    assert len(result.rules) == 1
    rule = result.rules[0]
    assert rule.id == "CUSTOM-001"
    assert rule.category is ThreatCategory.EXFILTRATION
    assert rule.severity is Severity.HIGH
    assert rule.patterns == (r"telemetry\.internal\.example",)
    assert rule.file_types == frozenset(DEFAULT_FILE_TYPES)
    assert rule.components == frozenset(DEFAULT_COMPONENTS)
    assert rule.remediation


def test_load_json_rules_with_camel_case_keys(tmp_path: Path):
    document = {
        "rules": [
            {
                "id": "ORG-042",
                "name": "Staging bucket",
                "category": "exfiltration",
                "severity": "MEDIUM",
                "description": "Uploads to the staging bucket",
                "patterns": ["s3://staging-"],
                "fileTypes": ["sh"],
                "components": ["hook"],
                "excludePatterns": ["dry-run"],
                "minMatchLength": 4,
                "contextScope": "file",
            }
        ]
    }
    result = load_custom_rules_file(_write(tmp_path / "rules.json", json.dumps(document)))
    assert result.success
    rule = result.rules[0]
    assert rule.file_types == frozenset({FileType.SH})
    assert rule.components == frozenset({ComponentType.HOOK})
    assert rule.exclude_patterns == ("dry-run",)
    assert rule.min_match_length == 4
    assert rule.context_scope.value == "file"


def test_invalid_patterns_are_dropped(tmp_path: Path):
    text = VALID_YAML.replace(
        "patterns: ['telemetry\\.internal\\.example']",
        "patterns: ['(unclosed', 'telemetry']",
    )
    result = load_custom_rules_file(_write(tmp_path / "rules.yml", text))
    assert result.success
    assert result.rules[0].patterns == ("telemetry",)


def test_rule_without_valid_patterns_is_an_error(tmp_path: Path):
    text = VALID_YAML.replace(
        "patterns: ['telemetry\\.internal\\.example']",
        "patterns: ['(unclosed']",
    )
    result = load_custom_rules_file(_write(tmp_path / "rules.yml", text))
    assert result.rules == []
    assert len(result.errors) == 1
    assert "CUSTOM-001" in result.errors[0]


def test_missing_file(tmp_path: Path):
    result = load_custom_rules_file(tmp_path / "absent.yml")
    assert not result.success
    assert "not found" in result.errors[0]


def test_malformed_yaml(tmp_path: Path):
    result = load_custom_rules_file(_write(tmp_path / "rules.yml", "rules: [unclosed"))
    assert result.rules == []
    assert "Malformed YAML" in result.errors[0]


def test_malformed_json(tmp_path: Path):
    result = load_custom_rules_file(_write(tmp_path / "rules.json", "{not json"))
    assert "Malformed JSON" in result.errors[0]


def test_schema_violation(tmp_path: Path):
    text = VALID_YAML.replace("CUSTOM-001", "bad id")
    result = load_custom_rules_file(_write(tmp_path / "rules.yml", text))
    assert result.rules == []
    assert "Invalid custom rules file" in result.errors[0]


def test_unknown_keys_rejected(tmp_path: Path):
    text = VALID_YAML + "    colour: red\n"
    result = load_custom_rules_file(_write(tmp_path / "rules.yml", text))
    assert result.rules == []
    assert not result.success


def test_unsupported_suffix(tmp_path: Path):
    result = load_custom_rules_file(_write(tmp_path / "rules.toml", "x = 1"))
    assert "Unsupported file format" in result.errors[0]


def test_load_several_files(tmp_path: Path):
    first = _write(tmp_path / "a.yml", VALID_YAML)
    second = _write(tmp_path / "b.yml", VALID_YAML.replace("CUSTOM-001", "CUSTOM-002"))
    result = load_custom_rules([first, tmp_path / "missing.yml", second])
    assert [r.id for r in result.rules] == ["CUSTOM-001", "CUSTOM-002"]
    assert len(result.errors) == 1


def test_discover_conventional_locations(tmp_path: Path):
    assert discover_custom_rules(tmp_path) == []
    expected = _write(tmp_path / ".ferret" / "rules.yml", VALID_YAML)
    assert discover_custom_rules(tmp_path) == [expected]
