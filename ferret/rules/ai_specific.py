# AI-agent specific threats: prompt extraction, capability escalation, indirect injection, jailbreaks.

from __future__ import annotations

from ferret.rules.base import ContextScope, Rule
from ferret.rules.injection import JAILBREAK_EXCLUDE_CONTEXT, JAILBREAK_EXCLUDE_PATTERNS

AGENT_MARKDOWN = ["skill", "agent", "ai-config-md"]

AI_SPECIFIC_RULES: list[Rule] = [
    Rule(
        id="AI-001",
        name="System Prompt Extraction",
        category="ai-specific",
        severity="HIGH",
        description="Detects attempts to extract or reveal system prompts",
        patterns=(
            r"reveal\s+(your|the)\s+system\s+prompt",
            r"show\s+(me\s+)?(your|the)\s+(system\s+)?instructions",
            r"what\s+(are|is)\s+your\s+(system\s+)?prompt",
            r"print\s+(your|the)\s+system\s+(prompt|instructions)",
            r"output\s+(your|the)\s+initial\s+instructions",
        ),
        file_types=["md"],
        components=AGENT_MARKDOWN,
        remediation="Remove prompt extraction attempts. System prompts should remain confidential.",
    ),
    Rule(
        id="AI-003",
        name="Capability Escalation",
        category="ai-specific",
        severity="CRITICAL",
        description="Detects attempts to unlock hidden capabilities or bypass limitations",
        patterns=(
            r"unlock\s+(hidden|secret|admin)\s+(capabilities|features|mode)",
            r"enable\s+(developer|admin|root|god)\s+mode",
            r"access\s+(hidden|restricted|admin)\s+functions",
            r"you\s+have\s+(no\s+)?unlimited\s+(power|access|capabilities)",
        ),
        file_types=["md"],
        components=AGENT_MARKDOWN,
        remediation="Remove capability escalation attempts.",
    ),
    Rule(
        id="AI-005",
        name="Multi-Step Attack Setup",
        category="ai-specific",
        severity="HIGH",
        description="Detects setup for multi-step attacks that unfold over time",
        patterns=(
            r"on\s+the\s+next\s+(message|turn|response)\s+.*(execute|attack|inject|exfiltrate)",
            r"wait\s+for\s+(signal|trigger|command)\s+to\s+(attack|execute|inject)",
            r"phase\s+\d+\s*:\s*(attack|exploit|inject|exfiltrate|payload)",
            r"step\s+\d+\s*:\s*(gain|escalate|exfiltrate|compromise)",
        ),
        file_types=["md"],
        components=AGENT_MARKDOWN,
        remediation="Remove multi-step attack instructions.",
        exclude_patterns=(
            r"phase\s+\d+\s*:\s*(core|implementation|setup|testing|deployment|documentation)",
            r"#{2,3}.*phase",
            r"\*\*.*phase",
            r"(implementation|development|project|rollout)\s+phase",
        ),
        exclude_context=(
            r"implementation\s+(plan|roadmap|strategy)",
            r"project\s+(timeline|schedule|plan)",
            r"development\s+(cycle|sprint|iteration)",
        ),
    ),
    Rule(
        id="AI-007",
        name="Trust Boundary Violation",
        category="ai-specific",
        severity="HIGH",
        description="Detects attempts to violate trust boundaries",
        patterns=(
            r"trust\s+(all|any)\s+(input|source|user)\s+(without|blindly)",
            r"skip\s+(all\s+)?(validation|verification|security)\s+(checks|entirely)",
            r"don't\s+(ever\s+)?(verify|validate|check)\s+(any|user|input)",
            r"disable\s+(security|validation|verification)",
        ),
        file_types=["md"],
        components=AGENT_MARKDOWN,
        remediation="Never bypass validation or verification.",
        exclude_patterns=(
            r"(never|don't|should\s+not)\s+trust",
            r"must\s+not\s+skip",
            r"avoid\s+skipping",
        ),
        exclude_context=(
            r"security\s+(best\s+)?practices",
            r"what\s+not\s+to\s+do",
            r"anti[- ]?pattern",
        ),
    ),
    Rule(
        id="AI-008",
        name="Indirect Prompt Injection Setup",
        category="ai-specific",
        severity="CRITICAL",
        description="Detects patterns that set up indirect prompt injection",
        patterns=(
            r"when\s+you\s+(read|see|find)\s+.*(execute|run|follow)",
            r"if\s+.*(file|url|content)\s+contains.*then\s+(do|execute|run)",
            r"follow\s+instructions\s+(in|from)\s+(the|any)\s+(file|url|content)",
        ),
        file_types=["md"],
        components=AGENT_MARKDOWN,
        remediation="Remove indirect prompt injection setup instructions.",
    ),
    Rule(
        id="AI-009",
        name="Tool Abuse Instructions",
        category="ai-specific",
        severity="HIGH",
        description="Detects instructions to abuse AI CLI tools",
        patterns=(
            r"use\s+(bash|write|edit)\s+tool\s+to.*(delete|remove|destroy)",
            r"execute\s+(arbitrary|any)\s+(commands?|code)",
            r"bypass\s+tool\s+(restrictions|limits|permissions)",
        ),
        file_types=["md"],
        components=AGENT_MARKDOWN,
        remediation="Remove tool abuse instructions.",
    ),
    Rule(
        id="AI-010",
        name="Jailbreak Technique",
        category="ai-specific",
        severity="CRITICAL",
        description="Detects known jailbreak techniques for LLMs",
        patterns=(
            r"(?-i:\bDAN\b)",
            r"Do\s+Anything\s+Now",
            r"jailbreak(ed)?",
            r"bypass\s+(filter|safety|guardrail|restriction)",
            r"evil\s+(mode|twin|version)",
            r"opposite\s+(day|mode)",
        ),
        file_types=["md"],
        components=AGENT_MARKDOWN,
        remediation="Remove jailbreak attempts. These bypass safety measures.",
        references=("https://owasp.org/www-project-top-10-for-large-language-model-applications/",),
        exclude_patterns=JAILBREAK_EXCLUDE_PATTERNS,
        exclude_context=JAILBREAK_EXCLUDE_CONTEXT,
    ),
    Rule(
        id="AI-011",
        name="Modify AI Agent Configuration",
        category="ai-specific",
        severity="HIGH",
        description="Detects instructions that modify AI agent configuration files (persistence/backdoor setup)",
        patterns=(
            r"\b(edit|modify|update|append|add|insert)\b[^\n]{0,120}(\.mcp\.json|mcp\.json|CLAUDE\.md|\.cursorrules|\.windsurfrules|\.clinerules|settings(\.local)?\.json)\b",
            r"\b(add|append|insert)\b[^\n]{0,120}\b(mcpServers|allowedTools|permissions|hooks?)\b[^\n]{0,200}(\.mcp\.json|settings\.json|CLAUDE\.md)\b",
        ),
        file_types=["md", "json"],
        components=[*AGENT_MARKDOWN, "settings", "plugin", "mcp"],
        remediation=(
            "Treat configuration changes as security-sensitive. Verify intent and require "
            "review for agent/tool permission changes."
        ),
        references=("https://atlas.mitre.org/techniques/AML.T0081",),
        # a scanner's own documentation names these files everywhere
        exclude_context=(r"security\s+scanner", r"\b(documentation|readme|docs)\b"),
        context_scope=ContextScope.FILE,
    ),
]
