# Permission escalation detection: wildcard grants, sudo, chmod/chown, dangerous tool access.

from __future__ import annotations

from ferret.rules.base import Rule

SHELL = ["sh", "bash", "zsh"]
SCRIPTED_COMPONENTS = ["hook", "skill", "agent", "ai-config-md", "plugin"]

PERMISSION_RULES: list[Rule] = [
    Rule(
        id="PERM-001",
        name="Wildcard Permission Grant",
        category="permissions",
        severity="CRITICAL",
        description="Detects wildcard permissions that allow unrestricted tool access",
        patterns=(
            r"\"allow\".*Bash\s*\(\s*\*\s*\)",
            r"\"permissions\".*\"\*\"",
            r"defaultMode.*dontAsk",
            r"allowAll.*true",
        ),
        file_types=["json"],
        components=["settings", "mcp", "plugin"],
        remediation="Never use wildcard permissions. Specify exact allowed commands.",
    ),
    Rule(
        id="PERM-002",
        name="Sudo Usage",
        category="permissions",
        severity="HIGH",
        description="Detects sudo commands which execute with elevated privileges",
        patterns=(
            r"sudo\s+",
            r"sudo\s+-i",
            r"sudo\s+su",
            r"doas\s+",
        ),
        file_types=[*SHELL, "md"],
        components=SCRIPTED_COMPONENTS,
        remediation="Avoid sudo in hooks and skills. Operations should run with user privileges.",
        # package installation docs
        exclude_patterns=(
            r"sudo\s+apt(-get)?\s+install",
            r"sudo\s+yum\s+install",
            r"sudo\s+dnf\s+install",
            r"sudo\s+pacman\s+-S",
            r"sudo\s+brew\s+install",
        ),
        exclude_context=(
            r"readme",
            r"installation|install\s+(instructions|guide|steps)",
            r"getting\s+started",
            r"prerequisites",
            r"requirements",
        ),
    ),
    Rule(
        id="PERM-003",
        name="Insecure File Permissions",
        category="permissions",
        severity="HIGH",
        description="Detects overly permissive file permission settings",
        patterns=(
            r"chmod\s+777",
            r"chmod\s+666",
            r"chmod\s+-R\s+777",
            r"chmod\s+a\+rwx",
        ),
        file_types=[*SHELL, "md"],
        components=SCRIPTED_COMPONENTS,
        remediation="Avoid overly permissive chmod settings. Use minimal required permissions.",
    ),
    Rule(
        id="PERM-004",
        name="Ownership Change",
        category="permissions",
        severity="MEDIUM",
        description="Detects file ownership changes which may indicate privilege escalation",
        patterns=(
            r"chown\s+root",
            r"chown\s+-R\s+root",
            r"chgrp\s+root",
        ),
        file_types=[*SHELL, "md"],
        components=SCRIPTED_COMPONENTS,
        remediation="Review ownership changes. Changing to root ownership may indicate issues.",
    ),
    Rule(
        id="PERM-005",
        name="SUID/SGID Manipulation",
        category="permissions",
        severity="CRITICAL",
        description="Detects SUID/SGID bit manipulation which can enable privilege escalation",
        patterns=(
            r"chmod\s+[2-7][0-7]{3}\b",
            r"chmod\s+u\+s",
            r"chmod\s+g\+s",
        ),
        file_types=SHELL,
        components=["hook", "plugin"],
        remediation="Never set SUID/SGID bits in hooks or scripts.",
    ),
    Rule(
        id="PERM-006",
        name="Dangerous Tool Permissions",
        category="permissions",
        severity="HIGH",
        description="Detects permissions for dangerous tools in AI CLI settings",
        patterns=(
            r"\"allowedTools\".*\"Bash\"",
            r"\"trustedTools\".*\".*\"",
            r"allowBash.*true",
        ),
        file_types=["json"],
        components=["settings", "mcp"],
        remediation="Review tool permissions carefully. Limit Bash access to specific commands.",
    ),
]
