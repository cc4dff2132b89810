# Prompt injection detection: instructions that try to override or subvert the model.

from __future__ import annotations

from ferret.rules.base import Rule

INSTRUCTION_COMPONENTS = ["skill", "agent", "ai-config-md"]

# Shared by the jailbreak rules here and in ai_specific: skip lines and windows
# that discuss, detect or document the technique rather than use it.
JAILBREAK_EXCLUDE_PATTERNS = (
    r"\b(detect|catch|flag|block|prevent|scan\s+for|identify|reject|report)\b[^\n]{0,80}(jailbreak|DAN|bypass)",
    r"\b(jailbreak|DAN|bypass)\b[^\n]{0,80}\b(detect|catch|flag|block|prevent|found|identified)",
    r"[\"'][^\"'\n]{0,120}\b(jailbreak|DAN)\b[^\"'\n]{0,120}[\"']",
    r"\[(?:INJ|AI|SEC|CRED)-\d+\]",
    r"^\s*\*\*(?:Input|Output|Example|Finding|Result)\*\*\s*:",
)
JAILBREAK_EXCLUDE_CONTEXT = (
    r"\b(security\s+(rule|finding|scan|check|gate|scanner|score)|ferret.?scan|scan\s+result)",
    r"\b(example\s+of|this\s+detects|used\s+to\s+(bypass|attack)|common\s+(attack|technique)|known\s+(jailbreak|attack))",
    r"\b(security\s+scanner|vulnerability\s+scanner|threat\s+detect|scan\s+for\s+(injection|jailbreak))",
    r"^\s*##\s+Example",
    r"publication\s+blocked",
)

INJECTION_RULES: list[Rule] = [
    Rule(
        id="INJ-001",
        name="Ignore Instructions Pattern",
        category="injection",
        severity="HIGH",
        description="Detects attempts to make the model ignore previous instructions",
        patterns=(
            r"ignore\s+(previous|all|above|prior|system)\s+instructions",
            r"disregard\s+(previous|all|above|prior|your)\s+(rules|guidelines|instructions)",
            r"forget\s+(previous|all|above|prior)\s+instructions",
            r"override\s+(previous|all|system)\s+instructions",
        ),
        file_types=["md", "json"],
        components=[*INSTRUCTION_COMPONENTS, "settings", "plugin"],
        remediation="Remove override instructions. These patterns are commonly used in prompt injection attacks.",
        references=("https://owasp.org/www-project-top-10-for-large-language-model-applications/",),
    ),
    Rule(
        id="INJ-002",
        name="Mode Switching Attack",
        category="injection",
        severity="HIGH",
        description="Detects attempts to switch the model into different operational modes",
        patterns=(
            r"you\s+are\s+now\s+in\s+[^\n]{0,100}(mode|state)",
            r"enter\s+(developer|admin|debug|unrestricted|jailbreak)\s+mode",
            r"switch\s+to\s+(developer|admin|debug|unrestricted)\s+mode",
            r"activate\s+(developer|admin|debug|god)\s+mode",
        ),
        file_types=["md", "json"],
        components=[*INSTRUCTION_COMPONENTS, "settings"],
        remediation="Remove mode switching instructions. These are prompt injection techniques.",
    ),
    Rule(
        id="INJ-003",
        name="DAN Jailbreak Pattern",
        category="injection",
        severity="CRITICAL",
        description='Detects "Do Anything Now" and similar jailbreak attempts',
        patterns=(
            r"(?-i:\bDAN\b)",
            r"Do\s+Anything\s+Now",
            r"jailbreak",
            r"bypass\s+(filter|safety|restriction|guardrail)",
        ),
        file_types=["md", "json"],
        components=[*INSTRUCTION_COMPONENTS, "settings"],
        remediation="Remove jailbreak attempts. These patterns attempt to bypass safety measures.",
        exclude_patterns=JAILBREAK_EXCLUDE_PATTERNS,
        exclude_context=JAILBREAK_EXCLUDE_CONTEXT,
    ),
    Rule(
        id="INJ-004",
        name="Safety Override Pattern",
        category="injection",
        severity="HIGH",
        description="Detects attempts to override safety guidelines",
        patterns=(
            r"disregard\s+(your|safety|ethical)\s+(guidelines|rules|constraints)",
            r"you\s+(don't|do\s+not)\s+have\s+(any\s+)?(restrictions|limits|constraints)",
            r"pretend\s+[^\n]{0,100}not\s+bound\s+by",
            r"act\s+as\s+if\s+you\s+have\s+no\s+(restrictions|limits)",
        ),
        file_types=["md", "json"],
        components=INSTRUCTION_COMPONENTS,
        remediation="Remove safety override instructions.",
    ),
    Rule(
        id="INJ-005",
        name="Role Manipulation",
        category="injection",
        severity="MEDIUM",
        description="Detects suspicious role-play instructions that may be injection attempts",
        patterns=(
            r"roleplay\s+as\s+.*(evil|malicious|hacker|attacker)",
            r"pretend\s+(to\s+be|you\s+are)\s+.*(evil|malicious|hacker)",
            r"act\s+as\s+.*(evil|malicious|hacker|attacker)",
            r"you\s+are\s+(an?\s+)?(evil|malicious|rogue|compromised)",
        ),
        file_types=["md", "json"],
        components=INSTRUCTION_COMPONENTS,
        remediation="Remove role manipulation instructions that encourage malicious behavior.",
    ),
    Rule(
        id="INJ-006",
        name="Hidden Instruction Pattern",
        category="injection",
        severity="HIGH",
        description="Detects hidden instructions using HTML comments or special formatting",
        patterns=(
            r"<!--.*?(ignore|override|disregard|bypass).*?-->",
            r"\[hidden\].*?(ignore|override|disregard)",
            r"\[SYSTEM\].*?instruction",
        ),
        file_types=["md"],
        components=INSTRUCTION_COMPONENTS,
        remediation="Remove hidden instructions from HTML comments or special tags.",
    ),
    Rule(
        id="INJ-007",
        name="Instruction Hierarchy Manipulation",
        category="injection",
        severity="HIGH",
        description="Detects attempts to manipulate instruction priority",
        patterns=(
            r"this\s+instruction\s+(takes|has)\s+(priority|precedence)",
            r"highest\s+priority\s+instruction",
            r"override\s+all\s+other\s+instructions",
            r"this\s+supersedes\s+all",
        ),
        file_types=["md", "json"],
        components=INSTRUCTION_COMPONENTS,
        remediation="Remove instruction priority manipulation attempts.",
    ),
]
