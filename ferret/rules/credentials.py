# Credential harvesting detection: access to API keys, tokens, key files and keychains.

from __future__ import annotations

from ferret.rules.base import Rule

SHELL = ["sh", "bash", "zsh"]

CREDENTIAL_RULES: list[Rule] = [
    Rule(
        id="CRED-001",
        name="Environment Variable Credential Access",
        category="credentials",
        severity="CRITICAL",
        description="Detects access to environment variables that commonly contain credentials",
        patterns=(
            r"\$\{?[A-Z_]*(_KEY|_TOKEN|_SECRET|_PASSWORD|_CREDENTIAL)[}\s]",
            r"process\.env\.(API|SECRET|TOKEN|KEY|PASSWORD|CREDENTIAL)",
            r"\$\{?ANTHROPIC_API_KEY[}\s]",
            r"\$\{?OPENAI_API_KEY[}\s]",
            r"\$\{?AWS_SECRET_ACCESS_KEY[}\s]",
            r"\$\{?GITHUB_TOKEN[}\s]",
        ),
        file_types=[*SHELL, "md", "json"],
        components=["hook", "skill", "agent", "ai-config-md", "settings", "plugin"],
        remediation="Never access or expose credential environment variables in configuration files.",
        references=("https://owasp.org/www-community/vulnerabilities/Use_of_hard-coded_credentials",),
    ),
    Rule(
        id="CRED-002",
        name="SSH Key Access",
        category="credentials",
        severity="CRITICAL",
        description="Detects attempts to access SSH private keys",
        patterns=(
            r"~/\.ssh/id_",
            r"/\.ssh/id_(rsa|ed25519|ecdsa|dsa)",
            r"cat\s+.*\.ssh/id_",
            r"read.*\.ssh/id_",
        ),
        file_types=[*SHELL, "md"],
        components=["hook", "skill", "agent", "ai-config-md", "plugin"],
        remediation="Never access SSH private keys from configuration files.",
    ),
    Rule(
        id="CRED-003",
        name="AWS Credentials Access",
        category="credentials",
        severity="CRITICAL",
        description="Detects attempts to access AWS credential files",
        patterns=(
            r"\.aws/credentials",
            r"\.aws/config",
            r"AWS_ACCESS_KEY_ID",
            r"AWS_SECRET_ACCESS_KEY",
        ),
        file_types=[*SHELL, "md", "json"],
        components=["hook", "skill", "agent", "ai-config-md", "plugin", "settings"],
        remediation="Never access AWS credentials from configuration files.",
    ),
    Rule(
        id="CRED-004",
        name="Environment File Access",
        category="credentials",
        severity="HIGH",
        description="Detects attempts to read .env or credential files",
        patterns=(
            r"cat\s+.*\.(env|credentials|pem|key|crt)",
            r"read.*\.(env|credentials)",
            r"source\s+.*\.env",
        ),
        file_types=[*SHELL, "md"],
        components=["hook", "skill", "agent", "ai-config-md", "plugin"],
        remediation="Avoid reading .env or credential files in hooks and skills.",
        exclude_patterns=(
            r"\.env\.example",
            r"\.env\s+(file\s+)?(configuration|handling|detection)",
            r"if\s+.*\.env.*exists",
            r"warns?\s+(if|when).*\.env",
        ),
        exclude_context=(
            r"auto[- ]?detect",
            r"environment\s+(from|detection|configuration)",
            r"documentation|readme",
        ),
    ),
    Rule(
        id="CRED-005",
        name="Hardcoded API Keys",
        category="credentials",
        severity="CRITICAL",
        description="Detects potentially hardcoded API keys or secrets",
        patterns=(
            r"api[_-]?key\s*[:=]\s*[\"'][a-zA-Z0-9]{20,}",
            r"secret[_-]?key\s*[:=]\s*[\"'][a-zA-Z0-9]{20,}",
            r"password\s*[:=]\s*[\"'][^\"']{8,}",
            r"sk-[a-zA-Z0-9]{20,}",
            r"ghp_[a-zA-Z0-9]{36}",
            r"gho_[a-zA-Z0-9]{36}",
            r"glpat-[a-zA-Z0-9\-_]{20,}",
        ),
        file_types=[*SHELL, "md", "json", "yaml", "yml"],
        components=["hook", "skill", "agent", "ai-config-md", "settings", "plugin", "mcp"],
        remediation="Never hardcode API keys or secrets. Use environment variables or secret management.",
        exclude_patterns=(
            r"password\s*[:=]\s*[\"'](test|example|demo|sample|fake|dummy|placeholder)",
            r"password\s*[:=]\s*[\"'].*(required|invalid|enter|at\s+least|characters?)",
            r"password\s*[:=]\s*[\"'].*must\s+(be|have|contain)",
            r"password\s*[:=]\s*[\"']your[_\s]?password",
            r"password\s*[:=]\s*[\"']<[^>]+>",
            r"password\s*[:=]\s*[\"']\*{3,}",
            r"password\s*[:=]\s*[\"']x{8,}",
            r"api[_-]?key\s*[:=]\s*[\"'](test|example|demo|your[_-]?api[_-]?key)",
            r"secret[_-]?key\s*[:=]\s*[\"'](test|example|demo|your[_-]?secret)",
        ),
        exclude_context=(
            r"\b(test|spec|mock|fixture|example|sample)\b",
            r"validation\s+(message|error|text)",
            r"error\s+message",
            r"placeholder",
        ),
    ),
    Rule(
        id="CRED-006",
        name="Credential Harvesting Instructions",
        category="credentials",
        severity="CRITICAL",
        description="Detects markdown instructions to collect or expose credentials",
        patterns=(
            r"collect\s+.*(api[_-]?key|token|secret|password|credential)",
            r"extract\s+.*(api[_-]?key|token|secret|password|credential)",
            r"find\s+.*(api[_-]?key|token|secret|password|credential)",
            r"show\s+(me\s+)?(the\s+)?(api[_-]?key|token|secret|password|credential)",
            r"output\s+.*(api[_-]?key|token|secret|password|credential)",
        ),
        file_types=["md"],
        components=["skill", "agent", "ai-config-md"],
        remediation="Remove instructions that direct credential collection or exposure.",
        exclude_patterns=(
            r"show\s+password\s+(toggle|field|input|icon|button)",
            r"password\s+(toggle|field|input|visibility)",
            r"find\s+(leaked|exposed).*credential",
            r"token\s+(usage|count|limit)",
        ),
        exclude_context=(
            r"(?-i:\bUI\b)|user\s+interface",
            r"form\s+(field|element|input|design)",
            r"toggle\s+(button|icon|visibility)",
            r"security\s+(scan|audit|check|detection)",
            r"secret\s+detection",
            r"input\s+(field|element)",
        ),
    ),
    Rule(
        id="CRED-007",
        name="Keychain/Keyring Access",
        category="credentials",
        severity="CRITICAL",
        description="Detects attempts to access system keychains or password stores",
        patterns=(
            r"security\s+find-generic-password",
            r"security\s+find-internet-password",
            r"secret-tool\s+lookup",
            r"\bpass\s+show\b",
        ),
        file_types=[*SHELL, "md"],
        components=["hook", "skill", "agent", "ai-config-md", "plugin"],
        remediation="Never access system keychains from configuration files.",
    ),
]
