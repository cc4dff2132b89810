# Backdoor detection: hidden code execution, reverse shells, remote payloads.

from __future__ import annotations

from ferret.rules.base import Rule

SHELL = ["sh", "bash", "zsh"]
EXECUTING_COMPONENTS = ["hook", "skill", "agent", "ai-config-md", "plugin"]

BACKDOOR_RULES: list[Rule] = [
    Rule(
        id="BACK-001",
        name="Shell Execution via eval",
        category="backdoors",
        severity="CRITICAL",
        description="Detects eval usage which can execute arbitrary code",
        patterns=(
            r"\beval\s+\$\(",
            r"eval\s+\"\$\(",
            r"eval\s+['\"`]",
        ),
        file_types=[*SHELL, "md"],
        components=EXECUTING_COMPONENTS,
        remediation="Remove eval statements. Eval can execute arbitrary code and is a security risk.",
        # client.eval(...), model.eval()
        exclude_patterns=(r"\.\s*eval\s*\(",),
    ),
    Rule(
        id="BACK-002",
        name="Reverse Shell Pattern",
        category="backdoors",
        severity="CRITICAL",
        description="Detects patterns commonly used to establish reverse shells",
        patterns=(
            r"/bin/(ba)?sh\s+-i",
            r"bash\s+-i\s+>&",
            r"nc\s+.*-e\s+/bin",
            r"python.*socket.*connect",
            r"perl.*socket.*INET",
            r"ruby.*TCPSocket",
        ),
        file_types=[*SHELL, "md"],
        components=EXECUTING_COMPONENTS,
        remediation="Remove reverse shell patterns. These are used to establish remote access.",
    ),
    Rule(
        id="BACK-003",
        name="Remote Code Execution",
        category="backdoors",
        severity="CRITICAL",
        description="Detects patterns that download and execute remote code",
        patterns=(
            r"curl\s+.*\|\s*(ba)?sh",
            r"wget\s+.*\|\s*(ba)?sh",
            r"curl\s+.*\|\s*python",
            r"wget\s+.*-O\s*-\s*\|\s*(ba)?sh",
        ),
        file_types=[*SHELL, "md"],
        components=EXECUTING_COMPONENTS,
        remediation="Never pipe downloaded content directly to a shell. This enables remote code execution.",
    ),
    Rule(
        id="BACK-004",
        name="Arbitrary File Write",
        category="backdoors",
        severity="HIGH",
        description="Detects patterns that write to sensitive system locations",
        patterns=(
            r">\s*/etc/",
            r">\s*~/\.(bash|zsh|profile)",
            r"tee\s+/etc/",
            r"echo.*>>\s*~/\.(bash|zsh)",
        ),
        file_types=[*SHELL, "md"],
        components=EXECUTING_COMPONENTS,
        remediation="Avoid writing to sensitive system files or shell configuration files.",
    ),
    Rule(
        id="BACK-005",
        name="Process Spawning",
        category="backdoors",
        severity="HIGH",
        description="Detects Node.js process spawning which can execute arbitrary commands",
        patterns=(
            r"child_process",
            r"require\s*\(\s*['\"]child_process['\"]\s*\)",
            r"spawn\s*\(",
            r"execFile\s*\(",
        ),
        file_types=["md", "json"],
        components=["skill", "agent", "ai-config-md", "mcp", "plugin"],
        remediation="Review process spawning code carefully. This can be used to execute arbitrary commands.",
    ),
    Rule(
        id="BACK-006",
        name="Background Process Creation",
        category="backdoors",
        severity="MEDIUM",
        description="Detects creation of background processes or daemons",
        patterns=(
            r"nohup\s+.*&",
            r"disown",
            r"setsid",
            r"&\s*$",
        ),
        file_types=SHELL,
        components=["hook", "plugin"],
        remediation="Review background process creation. Ensure processes are intentional and monitored.",
    ),
    Rule(
        id="BACK-007",
        name="Encoded Command Execution",
        category="backdoors",
        severity="CRITICAL",
        description="Detects execution of base64 or otherwise encoded commands",
        patterns=(
            r"echo\s+.*\|\s*base64\s+-d\s*\|\s*(ba)?sh",
            r"base64\s+-d.*\|\s*(ba)?sh",
            r"python\s+-c\s+['\"]import\s+base64",
        ),
        file_types=[*SHELL, "md"],
        components=EXECUTING_COMPONENTS,
        remediation="Never execute decoded content. This pattern is used to hide malicious commands.",
    ),
]
