# Persistence detection: cron jobs, shell rc files, launch agents, systemd units.

from __future__ import annotations

from ferret.rules.base import Rule

SHELL = ["sh", "bash", "zsh"]
SCRIPTED_COMPONENTS = ["hook", "skill", "agent", "ai-config-md", "plugin"]

PERSISTENCE_RULES: list[Rule] = [
    Rule(
        id="PERS-001",
        name="Crontab Modification",
        category="persistence",
        severity="HIGH",
        description="Detects creation or modification of scheduled cron jobs",
        patterns=(
            r"crontab\s+(-e|-l|-r|\S+)",
            r"/etc/cron(\.d|\.daily|\.hourly|\.weekly|\.monthly|tab)?",
            r"/var/spool/cron",
        ),
        file_types=[*SHELL, "md"],
        components=SCRIPTED_COMPONENTS,
        remediation="Remove cron modifications. Hooks and skills should not schedule recurring jobs.",
        references=("https://attack.mitre.org/techniques/T1053/003/",),
    ),
    Rule(
        id="PERS-002",
        name="Shell RC File Modification",
        category="persistence",
        severity="HIGH",
        description="Detects writes to or sourcing of shell startup files",
        patterns=(
            r"~/\.(bashrc|bash_profile|zshrc|zprofile|profile)\b",
            r"\$HOME/\.(bashrc|bash_profile|zshrc|zprofile|profile)\b",
        ),
        file_types=[*SHELL, "md"],
        components=SCRIPTED_COMPONENTS,
        remediation="Do not modify shell startup files from hooks or skills.",
        references=("https://attack.mitre.org/techniques/T1546/004/",),
    ),
    Rule(
        id="PERS-003",
        name="macOS Launch Agent",
        category="persistence",
        severity="HIGH",
        description="Detects creation of launchd agents or daemons",
        patterns=(
            r"Library/LaunchAgents",
            r"/Library/LaunchDaemons",
            r"launchctl\s+(load|bootstrap|submit)",
        ),
        file_types=[*SHELL, "md"],
        components=SCRIPTED_COMPONENTS,
        remediation="Remove launchd persistence. Hooks should not install background agents.",
        references=("https://attack.mitre.org/techniques/T1543/001/",),
    ),
    Rule(
        id="PERS-004",
        name="Systemd Service Creation",
        category="persistence",
        severity="HIGH",
        description="Detects creation or enabling of systemd services",
        patterns=(
            r"systemctl\s+(--user\s+)?enable",
            r"/etc/systemd/system",
            r"\.config/systemd/user",
        ),
        file_types=[*SHELL, "md"],
        components=SCRIPTED_COMPONENTS,
        remediation="Remove systemd service installation from hooks and skills.",
        references=("https://attack.mitre.org/techniques/T1543/002/",),
    ),
    Rule(
        id="PERS-005",
        name="Git Hook Installation",
        category="persistence",
        severity="MEDIUM",
        description="Detects writes into a repository's git hooks directory",
        patterns=(
            r"\.git/hooks/(pre|post)-[a-z-]+",
            r"git\s+config\s+.*core\.hooksPath",
        ),
        file_types=[*SHELL, "md"],
        components=["hook", "skill", "agent", "plugin"],
        remediation="Review git hook installation. Hooks run automatically on every git operation.",
    ),
]
