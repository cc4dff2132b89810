# Supply chain detection: unsafe installs, piped downloads, unpinned MCP servers, typosquats.

from __future__ import annotations

from ferret.rules.base import Rule

SHELL = ["sh", "bash", "zsh"]
SCRIPTED_COMPONENTS = ["hook", "skill", "agent", "ai-config-md", "plugin"]

SUPPLY_CHAIN_RULES: list[Rule] = [
    Rule(
        id="SUPP-001",
        name="Unsafe npm Install",
        category="supply-chain",
        severity="HIGH",
        description="Detects npm install with disabled script execution checks",
        patterns=(
            r"npm\s+install.*--ignore-scripts",
            r"npm\s+i\b.*--ignore-scripts",
            r"npm\s+install.*--unsafe-perm",
        ),
        file_types=[*SHELL, "md"],
        components=SCRIPTED_COMPONENTS,
        remediation="Never use --ignore-scripts or --unsafe-perm with npm install.",
    ),
    Rule(
        id="SUPP-002",
        name="Direct Script Execution from URL",
        category="supply-chain",
        severity="CRITICAL",
        description="Detects downloading and executing scripts from URLs",
        patterns=(
            r"curl\s+.*\|\s*(ba)?sh",
            r"wget\s+.*\|\s*(ba)?sh",
            r"curl\s+-s.*\|\s*bash",
            r"wget\s+-q.*\|\s*bash",
        ),
        file_types=[*SHELL, "md"],
        components=SCRIPTED_COMPONENTS,
        remediation="Never pipe downloaded content directly to a shell.",
    ),
    Rule(
        id="SUPP-003",
        name="Untrusted Source Download",
        category="supply-chain",
        severity="HIGH",
        description="Detects downloads that skip certificate verification",
        patterns=(
            r"curl\s+.*--no-check-certificate",
            r"wget\s+.*--no-check-certificate",
            r"curl\s+-k\s+",
            r"curl\s+--insecure",
        ),
        file_types=[*SHELL, "md"],
        components=SCRIPTED_COMPONENTS,
        remediation="Always verify SSL certificates when downloading files.",
    ),
    Rule(
        id="SUPP-004",
        name="Suspicious MCP Server",
        category="supply-chain",
        severity="HIGH",
        description="Detects MCP servers from unknown or suspicious sources",
        patterns=(
            # npx without an explicit version
            r"command.*npx\s+-y\s+[^@\s]+",
            r"command.*npm.*exec",
        ),
        file_types=["json"],
        components=["mcp", "settings"],
        remediation="Review MCP server sources. Only use trusted, versioned packages.",
    ),
    Rule(
        id="SUPP-005",
        name="Typosquatting Package Names",
        category="supply-chain",
        severity="HIGH",
        description="Detects potential typosquatting variants of popular packages",
        patterns=(
            r"\bl0dash\b|\bloadash\b|\blodahs\b",
            r"\brequset\b|\breqeust\b|\breqest\b",
            r"\bexpresss\b",
            r"\breactt\b",
            r"\bangularr\b",
        ),
        file_types=["json", "md"],
        components=["mcp", "settings", "skill", "agent"],
        remediation="Verify package names are correct. Typosquatting is a common attack vector.",
    ),
    Rule(
        id="SUPP-006",
        name="Unverified Plugin Source",
        category="supply-chain",
        severity="MEDIUM",
        description="Detects plugins or skills from unverified sources",
        patterns=(
            r"downloaded\s+from(?!.*github\.com|.*anthropic\.com|.*npmjs\.com)",
            r"source.*http(?!s)",
        ),
        file_types=["md", "json"],
        components=["skill", "agent", "plugin", "mcp"],
        remediation="Only use plugins from verified sources.",
        exclude_patterns=(r"source.*https?://(localhost|127\.0\.0\.1)",),
    ),
    Rule(
        id="SUPP-007",
        name="Package Postinstall Hook",
        category="supply-chain",
        severity="MEDIUM",
        description="Detects references to package postinstall hooks",
        patterns=(
            r"postinstall",
            r"preinstall",
            r"scripts.*install",
        ),
        file_types=["json"],
        components=["mcp", "plugin"],
        remediation="Review postinstall scripts carefully. They can execute arbitrary code.",
    ),
]
