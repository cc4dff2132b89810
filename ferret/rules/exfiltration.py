# Data exfiltration detection: sending credentials or files to remote endpoints.

from __future__ import annotations

from ferret.rules.base import Rule

SHELL = ["sh", "bash", "zsh"]

EXFILTRATION_RULES: list[Rule] = [
    Rule(
        id="EXFIL-001",
        name="Network Exfiltration via curl",
        category="exfiltration",
        severity="CRITICAL",
        description="Detects curl sending environment secrets or command output to a remote host",
        patterns=(
            r"curl\s+.*(-d|--data(-binary|-raw|-urlencode)?)\s+[\"']?\$\{?[A-Z_]*(KEY|TOKEN|SECRET|PASSWORD|CREDENTIAL)",
            r"curl\s+.*(-d|--data(-binary|-raw|-urlencode)?)\s+[\"']?\$\(",
        ),
        file_types=[*SHELL, "md"],
        components=["hook", "skill", "agent", "ai-config-md", "plugin"],
        remediation="Remove network calls that transmit secrets or command output.",
        references=("https://attack.mitre.org/techniques/T1041/",),
    ),
    Rule(
        id="EXFIL-002",
        name="Network Exfiltration via wget",
        category="exfiltration",
        severity="CRITICAL",
        description="Detects wget posting data to a remote host",
        patterns=(
            r"wget\s+.*--post-(data|file)",
            r"wget\s+.*--body-(data|file)",
        ),
        file_types=[*SHELL, "md"],
        components=["hook", "skill", "agent", "ai-config-md", "plugin"],
        remediation="Remove network calls that upload local data.",
    ),
    Rule(
        id="EXFIL-003",
        name="Netcat Data Transfer",
        category="exfiltration",
        severity="CRITICAL",
        description="Detects data piped to netcat or /dev/tcp",
        patterns=(
            r"\|\s*(nc|ncat|netcat)\s+\S+\s+\d+",
            r">\s*/dev/tcp/",
            r"<\s*/dev/tcp/",
        ),
        file_types=[*SHELL, "md"],
        components=["hook", "skill", "agent", "ai-config-md", "plugin"],
        remediation="Remove raw socket transfers. These bypass normal network tooling.",
    ),
    Rule(
        id="EXFIL-004",
        name="Base64 Encoded Exfiltration",
        category="exfiltration",
        severity="CRITICAL",
        description="Detects data encoded with base64 and then sent over the network",
        patterns=(
            r"base64[^|\n]*\|\s*(curl|wget|nc|ncat|netcat)\b",
            r"btoa\s*\([^)]*\).*\b(fetch|axios|XMLHttpRequest)\b",
        ),
        file_types=[*SHELL, "md"],
        components=["hook", "skill", "agent", "ai-config-md", "plugin"],
        remediation="Remove encoded data transmission. Encoding is used to evade inspection.",
    ),
    Rule(
        id="EXFIL-005",
        name="Markdown Exfiltration Instructions",
        category="exfiltration",
        severity="HIGH",
        description="Detects instructions telling the agent to send sensitive data elsewhere",
        patterns=(
            r"exfiltrate\s+.*(key|token|secret|password|credential|data|file)",
            r"send\s+(all\s+)?(the\s+)?(api[_ -]?keys?|tokens?|secrets?|passwords?|credentials?)\s+to",
            r"upload\s+.*(\.env|\.ssh|credentials|secrets?)\s+to",
            r"(post|transmit|forward)\s+.*(api[_ -]?key|token|secret|password|credential)s?\s+to\s+https?://",
        ),
        file_types=["md"],
        components=["skill", "agent", "ai-config-md"],
        remediation="Remove instructions that direct the agent to transmit sensitive data.",
        exclude_patterns=(
            r"password\s+reset",
            r"reset\s+(link|token|email)",
            r"never\s+(send|upload|post|transmit)",
        ),
    ),
    Rule(
        id="EXFIL-006",
        name="DNS Exfiltration",
        category="exfiltration",
        severity="HIGH",
        description="Detects DNS lookups that embed secrets or command output in the query",
        patterns=(
            r"\b(dig|nslookup|host)\s+.*\$\{?[A-Z_]*(KEY|TOKEN|SECRET|PASSWORD)",
            r"\b(dig|nslookup|host)\s+.*\$\(",
        ),
        file_types=SHELL,
        components=["hook", "plugin"],
        remediation="Remove DNS queries that carry data. DNS is a common covert channel.",
        references=("https://attack.mitre.org/techniques/T1048/",),
    ),
    Rule(
        id="EXFIL-007",
        name="Webhook Data Transmission",
        category="exfiltration",
        severity="HIGH",
        description="Detects data sent to chat or request-capture webhooks",
        patterns=(
            r"discord(app)?\.com/api/webhooks/",
            r"hooks\.slack\.com/(services|workflows)/",
            r"webhook\.site/",
            r"requestbin\.(com|net)|pipedream\.net|ngrok(-free)?\.(io|app)",
        ),
        file_types=[*SHELL, "md", "json"],
        components=["hook", "skill", "agent", "ai-config-md", "plugin", "mcp", "settings"],
        remediation="Review webhook endpoints. Remove any that receive data from the agent.",
    ),
]
