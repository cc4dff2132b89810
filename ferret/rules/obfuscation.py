# Obfuscation detection: encoded, invisible or otherwise hidden content.

from __future__ import annotations

from ferret.rules.base import Rule

OBFUSCATION_RULES: list[Rule] = [
    Rule(
        id="OBF-001",
        name="Base64 Encoded Commands",
        category="obfuscation",
        severity="HIGH",
        description="Detects base64 encoding combined with execution, often used to hide malicious commands",
        patterns=(
            r"echo\s+['\"][A-Za-z0-9+/=]{20,}['\"]\s*\|\s*base64\s+-d",
            r"base64\s+-d\s+<<<",
            r"atob\s*\(",
            r"Buffer\.from\s*\([^)]+,\s*['\"]base64['\"]\)",
        ),
        file_types=["sh", "bash", "zsh", "md", "json"],
        components=["hook", "skill", "agent", "ai-config-md", "plugin", "mcp"],
        remediation="Decode and review base64 content. Remove if malicious.",
    ),
    Rule(
        id="OBF-002",
        name="JavaScript String Obfuscation",
        category="obfuscation",
        severity="HIGH",
        description="Detects JavaScript string obfuscation techniques",
        patterns=(
            r"String\.fromCharCode\s*\(",
            r"\[['\"]\\x[0-9a-f]{2}['\"]\]",
            r"\\u[0-9a-f]{4}",
            r"unescape\s*\(",
        ),
        file_types=["md", "json"],
        components=["skill", "agent", "ai-config-md", "mcp", "plugin"],
        remediation="Review obfuscated JavaScript code. Remove if suspicious.",
    ),
    Rule(
        id="OBF-003",
        name="Zero-Width Characters",
        category="obfuscation",
        severity="HIGH",
        description="Detects invisible zero-width characters that may hide content",
        patterns=(
            r"[\u200B-\u200D\uFEFF]",
            r"[\u2060-\u2064]",
            r"\u180E",
        ),
        file_types=["md", "json", "yaml", "yml"],
        components=["skill", "agent", "ai-config-md", "settings", "mcp"],
        remediation="Remove zero-width characters. These can be used to hide malicious content.",
        # emoji ZWJ sequences such as the "technologist" compound emoji
        exclude_patterns=(
            r"[\U0001F300-\U0001F9FF]\u200D",
            r"\u200D[\U0001F300-\U0001F9FF]",
            r"[\U0001F468-\U0001F469]\u200D",
        ),
        exclude_context=(
            r"emoji|gitmoji",
            r"commit\s+(message|type|convention)",
        ),
    ),
    Rule(
        id="OBF-004",
        name="Extended ASCII Blocks",
        category="obfuscation",
        severity="MEDIUM",
        description="Detects long sequences of extended ASCII characters that may hide content",
        patterns=(r"[\u0080-\u00FF]{20,}",),
        file_types=["md", "json"],
        components=["skill", "agent", "ai-config-md"],
        remediation="Review extended ASCII sequences for hidden content.",
    ),
    Rule(
        id="OBF-005",
        name="HTML Comment Hiding",
        category="obfuscation",
        severity="MEDIUM",
        description="Detects potentially malicious content hidden in HTML comments",
        patterns=(
            r"<!--[\s\S]{100,}?-->",
            r"(?s:<!--.*?(script|eval|function).*?-->)",
        ),
        file_types=["md"],
        components=["skill", "agent", "ai-config-md"],
        remediation="Review HTML comments for hidden malicious content.",
    ),
    Rule(
        id="OBF-006",
        name="Long Whitespace Sequences",
        category="obfuscation",
        severity="LOW",
        description="Detects unusually long whitespace that may hide steganographic content",
        patterns=(
            r"\s{50,}",
            r"\t{20,}",
        ),
        file_types=["md", "sh", "bash"],
        components=["skill", "agent", "ai-config-md", "hook"],
        remediation="Review long whitespace sequences. These could hide steganographic content.",
        # ASCII art and diagrams
        exclude_context=(
            r"[┌┐└┘├┤┬┴┼─│]",
            r"[╔╗╚╝╠╣╦╩╬═║]",
            r"[+\-|]{3,}",
            r"diagram|flowchart|architecture",
            r"```(ascii|text|diagram)",
        ),
    ),
    Rule(
        id="OBF-007",
        name="Hex Encoded Content",
        category="obfuscation",
        severity="HIGH",
        description="Detects hex-encoded strings that may hide commands",
        patterns=(
            r"\\x[0-9a-fA-F]{2}(?:\\x[0-9a-fA-F]{2}){10,}",
            r"0x[0-9a-fA-F]{2}(?:,\s*0x[0-9a-fA-F]{2}){10,}",
        ),
        file_types=["md", "json", "sh", "bash"],
        components=["skill", "agent", "ai-config-md", "hook", "mcp"],
        remediation="Decode and review hex-encoded content.",
    ),
    Rule(
        id="OBF-008",
        name="ANSI Escape Sequences",
        category="obfuscation",
        severity="MEDIUM",
        description="Detects ANSI escape sequences that may hide terminal output",
        patterns=(
            r"\x1b\[[0-9;]*m",
            r"\\e\[[0-9;]*m",
            r"\\033\[[0-9;]*m",
        ),
        file_types=["sh", "bash", "zsh", "md"],
        components=["hook", "skill", "agent", "ai-config-md"],
        remediation="Review ANSI sequences. They can be used to hide terminal output.",
    ),
]
