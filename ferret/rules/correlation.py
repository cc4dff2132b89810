# Multi-file attack patterns. These rules carry no direct patterns; they only fire
# through cross-file correlation when every content pattern is found across related files.

from __future__ import annotations

from ferret.rules.base import CorrelationSubRule, Rule

CORRELATION_RULES: list[Rule] = [
    Rule(
        id="CORR-001",
        name="Credential Harvesting + Network Transmission",
        category="exfiltration",
        severity="CRITICAL",
        description="Detects credential access in one file combined with network transmission in another",
        file_types=["md", "sh", "json", "yaml", "ts", "js"],
        components=["skill", "agent", "hook", "plugin", "settings"],
        remediation=(
            "Review credential access patterns and network communications. "
            "Ensure credentials are not being exfiltrated."
        ),
        references=(
            "https://attack.mitre.org/tactics/TA0006/",
            "https://attack.mitre.org/techniques/T1041/",
        ),
        correlation_rules=(
            CorrelationSubRule(
                id="CORR-001-A",
                description="Credential access followed by network transmission",
                file_patterns=("*",),
                content_patterns=(
                    r"SECRET|TOKEN|API_KEY|getenv|process\.env",
                    r"fetch|axios|XMLHttpRequest|curl|wget|request",
                ),
                max_distance=3,
            ),
        ),
    ),
    Rule(
        id="CORR-002",
        name="Permission Escalation + Persistence",
        category="persistence",
        severity="HIGH",
        description="Detects permission changes combined with persistence mechanisms",
        file_types=["md", "sh", "json", "yaml"],
        components=["hook", "agent", "settings"],
        remediation="Review permission changes and startup hooks. Remove unauthorized persistence mechanisms.",
        references=(
            "https://attack.mitre.org/tactics/TA0004/",
            "https://attack.mitre.org/tactics/TA0003/",
        ),
        correlation_rules=(
            CorrelationSubRule(
                id="CORR-002-A",
                description="Permission escalation with startup persistence",
                file_patterns=("*",),
                content_patterns=(
                    r"chmod|chown|setuid|sudo|defaultMode.*dontAsk",
                    r"startup|onload|autostart|service.*enable|systemctl.*enable",
                ),
                max_distance=2,
            ),
        ),
    ),
    Rule(
        id="CORR-003",
        name="Hook Backdoor + Skill Activation",
        category="backdoors",
        severity="HIGH",
        description="Detects suspicious hooks combined with skill or agent activation patterns",
        file_types=["md", "sh", "json"],
        components=["hook", "skill", "agent"],
        remediation="Review hook and skill interactions. Remove unauthorized backdoor mechanisms.",
        references=("https://attack.mitre.org/techniques/T1546/",),
        correlation_rules=(
            CorrelationSubRule(
                id="CORR-003-A",
                description="Malicious hook triggering skill execution",
                file_patterns=("hook", "skill", "agent"),
                content_patterns=(
                    r"hook.*user-prompt|session.*start|pre.*submit",
                    r"skill.*activate|agent.*trigger|claude.*invoke",
                ),
                max_distance=2,
            ),
        ),
    ),
    Rule(
        id="CORR-004",
        name="Configuration Tampering + Obfuscation",
        category="obfuscation",
        severity="MEDIUM",
        description="Detects configuration changes combined with obfuscation techniques",
        file_types=["md", "json", "yaml"],
        components=["settings", "ai-config-md", "mcp"],
        remediation="Review configuration changes and encoding patterns. Remove obfuscated malicious content.",
        references=("https://attack.mitre.org/techniques/T1027/",),
        correlation_rules=(
            CorrelationSubRule(
                id="CORR-004-A",
                description="Settings modification with hidden content",
                file_patterns=("settings", "config", "claude"),
                content_patterns=(
                    r"settings|configuration|preferences",
                    r"base64|atob|btoa|\\x|\\u|obfus|encode",
                ),
                max_distance=1,
            ),
        ),
    ),
    Rule(
        id="CORR-005",
        name="AI Model Bypass + Data Collection",
        category="ai-specific",
        severity="HIGH",
        description="Detects AI model safeguard bypass combined with data collection patterns",
        file_types=["md", "json", "yaml", "ts", "js"],
        components=["skill", "agent", "ai-config-md"],
        remediation=(
            "Review AI model interactions and data handling. "
            "Remove bypass attempts and unauthorized data collection."
        ),
        references=("https://owasp.org/www-project-top-ten-for-large-language-model-applications/",),
        correlation_rules=(
            CorrelationSubRule(
                id="CORR-005-A",
                description="AI safeguard bypass with data harvesting",
                file_patterns=("*",),
                content_patterns=(
                    r"ignore.*previous.*instruction|forget.*safeguard|bypass.*filter",
                    r"conversation.*history|user.*data|personal.*information|collect.*data",
                ),
                max_distance=2,
            ),
        ),
    ),
    Rule(
        id="CORR-006",
        name="Supply Chain + Network Communication",
        category="supply-chain",
        severity="HIGH",
        description="Detects suspicious package installations combined with network communications",
        file_types=["md", "sh", "json", "yaml"],
        components=["plugin", "mcp", "settings"],
        remediation=(
            "Review package installations and network communications. "
            "Verify legitimacy of external dependencies."
        ),
        references=("https://attack.mitre.org/techniques/T1195/",),
        correlation_rules=(
            CorrelationSubRule(
                id="CORR-006-A",
                description="Package installation with network communication",
                file_patterns=("*",),
                content_patterns=(
                    r"npm.*install|pip.*install|wget.*http|curl.*http|git.*clone",
                    r"http://|https://|fetch\(|axios|request\(|XMLHttpRequest",
                ),
                max_distance=2,
            ),
        ),
    ),
    Rule(
        id="CORR-007",
        name="File System Access + Network Transmission",
        category="exfiltration",
        severity="MEDIUM",
        description="Detects file system access patterns combined with network transmission",
        file_types=["md", "ts", "js", "sh"],
        components=["skill", "agent", "hook"],
        remediation=(
            "Review file system access and network patterns. "
            "Ensure sensitive files are not being exfiltrated."
        ),
        references=(
            "https://attack.mitre.org/techniques/T1005/",
            "https://attack.mitre.org/techniques/T1041/",
        ),
        correlation_rules=(
            CorrelationSubRule(
                id="CORR-007-A",
                description="File access with network transmission",
                file_patterns=("*",),
                content_patterns=(
                    r"readFile|writeFile|fs\.|glob|find.*-name",
                    r"fetch\(|axios|post|put|XMLHttpRequest",
                ),
                max_distance=1,
            ),
        ),
    ),
    Rule(
        id="CORR-008",
        name="Authentication Bypass + Privilege Access",
        category="permissions",
        severity="CRITICAL",
        description="Detects authentication bypass attempts combined with privileged operations",
        file_types=["md", "json", "sh"],
        components=["settings", "hook", "plugin"],
        remediation="Review authentication mechanisms and privileged operations. Strengthen access controls.",
        references=("https://attack.mitre.org/techniques/T1078/",),
        correlation_rules=(
            CorrelationSubRule(
                id="CORR-008-A",
                description="Authentication bypass with privileged access",
                file_patterns=("*",),
                content_patterns=(
                    r"auth.*bypass|no.*auth|skip.*login|admin.*access",
                    r"sudo|root|administrator|privileged|elevated",
                ),
                max_distance=2,
            ),
        ),
    ),
]
