"""Unit tests for configuration loading and rule resolution."""

from pathlib import Path

import pytest

from ferret.analyzers.dependencies import DependencyAnalyzer
from ferret.analyzers.entropy import EntropyAnalyzer
from ferret.analyzers.mcp import McpValidator
from ferret.config import (
    Config,
    ConfigError,
    ConfigFile,
    apply_config_file,
    find_config_file,
    get_default_config,
    get_enabled_analyzers,
    get_enabled_rules,
    load_config_file,
    load_rules,
)
from ferret.findings.models import SEVERITY_ORDER, Severity, ThreatCategory
from ferret.rules.registry import ALL_RULES, get_rule_by_id
from ferret.traversal import DEFAULT_IGNORE_DIRS

CUSTOM_RULES = """\
rules:
  - id: CUSTOM-001
    name: Internal host
    category: exfiltration
    severity: LOW
    description: Internal host reference
    patterns: ['internal\\.example']
"""


def test_default_config():
    config = get_default_config()
    assert config.context_lines == 3
    assert config.severities == SEVERITY_ORDER
    assert config.categories == list(ThreatCategory)
    assert config.fail_on is Severity.HIGH
    assert config.correlation_analysis
    assert config.workers == 1
    assert config.ignore_dirs == DEFAULT_IGNORE_DIRS
    assert config.rules is None


def test_default_configs_are_independent():
    a = get_default_config()
    a.ignore_dirs.add("custom")
    assert "custom" not in get_default_config().ignore_dirs


def test_find_config_file(tmp_path: Path):
    assert find_config_file(tmp_path) is None
    rc = tmp_path / ".ferretrc.yml"
    rc.write_text("contextLines: 1\n", encoding="utf-8")
    assert find_config_file(tmp_path) == rc
    other = tmp_path / "CLAUDE.md"
    other.write_text("x", encoding="utf-8")
    assert find_config_file(other) == rc


def test_load_yaml_config(tmp_path: Path):
    rc = tmp_path / ".ferretrc.yml"
    rc.write_text(
        "contextLines: 5\n"
        "severity: [CRITICAL, HIGH]\n"
        "failOn: CRITICAL\n"
        "correlationAnalysis: false\n"
        "ignore: [fixtures]\n"
        "workers: 4\n",
        encoding="utf-8",
    )
    parsed = load_config_file(rc)
    assert parsed.context_lines == 5
    assert parsed.severities == [Severity.CRITICAL, Severity.HIGH]
    assert parsed.fail_on is Severity.CRITICAL
    assert parsed.correlation_analysis is False
    assert parsed.ignore == ["fixtures"]
    assert parsed.workers == 4


def test_load_json_config(tmp_path: Path):
    rc = tmp_path / ".ferretrc.json"
    rc.write_text('{"categories": ["credentials"], "maxFileSize": 2048}', encoding="utf-8")
    parsed = load_config_file(rc)
    assert parsed.categories == [ThreatCategory.CREDENTIALS]
    assert parsed.max_file_size == 2048


def test_empty_config_file(tmp_path: Path):
    rc = tmp_path / ".ferretrc.yml"
    rc.write_text("", encoding="utf-8")
    assert load_config_file(rc) == ConfigFile()


@pytest.mark.parametrize(
    "text,message",
    [
        ("contextLines: [unclosed", "Malformed"),
        ("- just\n- a list\n", "must be a mapping"),
        ("contextLines: 500\n", "Invalid config file"),
        ("unknownKey: 1\n", "Invalid config file"),
        ("failOn: SEVERE\n", "Invalid config file"),
    ],
)
def test_bad_config_files(tmp_path: Path, text, message):
    rc = tmp_path / ".ferretrc.yml"
    rc.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError, match=message):
        load_config_file(rc)


def test_apply_config_file(tmp_path: Path):
    file_config = ConfigFile.model_validate(
        {"contextLines": 1, "ignore": ["fixtures"], "customRules": ["rules/extra.yml"]}
    )
    config = apply_config_file(get_default_config(), file_config, tmp_path)
    assert config.context_lines == 1
    assert "fixtures" in config.ignore_dirs
    assert "node_modules" in config.ignore_dirs
    assert config.custom_rules == [tmp_path / "rules/extra.yml"]
    # unset keys keep their defaults
    assert config.fail_on is Severity.HIGH


def test_load_rules_filters_by_category_and_severity():
    config = Config(categories=[ThreatCategory.PERSISTENCE], severities=[Severity.HIGH])
    rules = load_rules(config).rules
    assert rules
    assert all(r.category is ThreatCategory.PERSISTENCE for r in rules)
    assert all(r.severity is Severity.HIGH for r in rules)


def test_load_rules_uses_explicit_rule_list():
    config = Config(rules=[get_rule_by_id("CRED-001")])
    assert [r.id for r in load_rules(config).rules] == ["CRED-001"]


def test_load_rules_merges_custom_files(tmp_path: Path):
    rules_file = tmp_path / "extra.yml"
    rules_file.write_text(CUSTOM_RULES, encoding="utf-8")
    loaded = load_rules(Config(custom_rules=[rules_file]))
    assert loaded.success
    assert loaded.rules[-1].id == "CUSTOM-001"


def test_load_rules_discovers_rules_under_root(tmp_path: Path):
    (tmp_path / ".ferret").mkdir()
    (tmp_path / ".ferret" / "rules.yml").write_text(CUSTOM_RULES, encoding="utf-8")
    loaded = load_rules(get_default_config(), [tmp_path])
    assert "CUSTOM-001" in [r.id for r in loaded.rules]


def test_custom_rule_errors_are_reported_not_raised(tmp_path: Path):
    loaded = load_rules(Config(custom_rules=[tmp_path / "missing.yml"]))
    assert not loaded.success
    assert len(loaded.rules) == len(ALL_RULES)


def test_get_enabled_rules_default():
    assert len(get_enabled_rules()) == sum(1 for r in ALL_RULES if r.enabled)


def test_analyzers_are_opt_in():
    assert get_enabled_analyzers() == []


def test_get_enabled_analyzers_order_and_scope():
    config = Config(
        entropy_analysis=True,
        mcp_validation=True,
        dependency_audit=True,
        severities=[Severity.CRITICAL],
    )
    analyzers = get_enabled_analyzers(config)
    assert [type(a) for a in analyzers] == [EntropyAnalyzer, McpValidator, DependencyAnalyzer]
    # audit implies dependency analysis
    assert analyzers[2].audit
    assert all(a.severities == frozenset({Severity.CRITICAL}) for a in analyzers)


def test_analyzer_switches_in_config_file(tmp_path: Path):
    file_config = ConfigFile.model_validate({"entropyAnalysis": True, "mcpValidation": True})
    config = apply_config_file(get_default_config(), file_config, tmp_path)
    assert config.entropy_analysis
    assert config.mcp_validation
    assert not config.dependency_analysis
    assert not config.dependency_audit
