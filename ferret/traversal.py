"""
File system traversal: walk scan roots and collect AI CLI configuration files.

Every collected file is tagged with a file type (from its name/extension) and
a component (the role it plays: skill, agent, hook, MCP config, ...), which is
what rules are gated on. Supports Claude Code, Cursor, Windsurf, Cline, Aider
and generic AI config layouts.

Typical usage:
    from pathlib import Path
    from ferret.traversal import discover_files

    result = discover_files([Path("./.claude"), Path("CLAUDE.md")])
    for f in result.files:
        print(f.relative_path, f.type.value, f.component.value)
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence, Set

from ferret.findings.models import ComponentType, DiscoveredFile, FileType, ScanError

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_SIZE = 1024 * 1024

# Default directories to ignore during traversal
DEFAULT_IGNORE_DIRS: Set[str] = {
    # Dependency and package directories
    "node_modules",
    "vendor",
    "third_party",

    # Build output
    "dist",
    "build",
    "coverage",

    # Version control
    ".git",
    ".svn",
    ".hg",

    # Python virtual environments and caches
    "venv",
    ".venv",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
}

# Relative path fragments that hold cached or vendored copies of plugins
IGNORED_PATH_FRAGMENTS = ("/.claude/plugins/cache/",)

EXTENSION_TYPES = {
    ".md": FileType.MD,
    ".sh": FileType.SH,
    ".bash": FileType.BASH,
    ".zsh": FileType.ZSH,
    ".json": FileType.JSON,
    ".yaml": FileType.YAML,
    ".yml": FileType.YML,
    ".env": FileType.SH,
    ".ts": FileType.TS,
    ".js": FileType.JS,
    ".tsx": FileType.TSX,
    ".jsx": FileType.JSX,
}

# Extensionless rules files are plain-text instructions, scanned as markdown
RULES_FILES = {".cursorrules", ".windsurfrules", ".clinerules"}

AI_CONFIG_MARKDOWN = {"claude.md", "ai.md", "agent.md", "agents.md"}


@dataclass
class DiscoveryResult:
    """Files to analyze, how many candidates were skipped, and what went wrong."""

    files: list[DiscoveredFile] = field(default_factory=list)
    skipped: int = 0
    errors: list[ScanError] = field(default_factory=list)


def is_dotenv_file(name: str) -> bool:
    """
    Check if a file name is a dotenv-style config (.env, .env.local, secrets.env, ...).

    Examples:
        >>> is_dotenv_file(".env.production")
        True
        >>> is_dotenv_file("environment.md")
        False
    """
    name = name.lower()
    return name == ".env" or name.startswith(".env.") or name.endswith(".env") or ".env." in name


def get_file_type(path: Path) -> Optional[FileType]:
    """
    Map a file to the FileType rules are gated on.

    Args:
        path: Path to the file.

    Returns:
        The FileType, or None if the file is not a type we analyze.
        Dotenv files are treated as shell.

    Examples:
        >>> get_file_type(Path("hooks/pre.sh"))
        <FileType.SH: 'sh'>
        >>> get_file_type(Path("main.c")) is None
        True
    """
    name = path.name.lower()
    if is_dotenv_file(name):
        return FileType.SH
    if name in RULES_FILES:
        return FileType.MD
    return EXTENSION_TYPES.get(path.suffix.lower())


def detect_component(path: Path) -> ComponentType:
    """
    Infer the component a file belongs to from its path.

    Directory conventions (skills/, agents/, hooks/, plugins/) win over file
    names; anything unrecognised falls back to settings, or ai-config-md for
    markdown. Discovery passes the absolute path, so a hooks/ directory
    scanned as the root still yields hooks.
    """
    normalized = "/" + path.as_posix().lower()
    name = path.name.lower()

    if "/skills/" in normalized:
        return ComponentType.SKILL
    if "/agents/" in normalized:
        return ComponentType.AGENT
    if "/hooks/" in normalized or "hook" in name:
        return ComponentType.HOOK
    if "/plugins/" in normalized:
        return ComponentType.PLUGIN
    if name in (".mcp.json", "mcp.json"):
        return ComponentType.MCP
    if name in RULES_FILES:
        return ComponentType.RULES_FILE
    if name in ("settings.json", "settings.local.json") or "config" in name:
        return ComponentType.SETTINGS
    if name in AI_CONFIG_MARKDOWN or name.startswith("claude"):
        return ComponentType.AI_CONFIG_MD

    if get_file_type(path) is FileType.MD:
        return ComponentType.AI_CONFIG_MD
    return ComponentType.SETTINGS


def is_analyzable_file(path: Path) -> bool:
    """
    Check if a file should be analyzed at all.

    Args:
        path: Path to the file to check.

    Returns:
        True for any supported file type outside cached plugin copies.
    """
    if get_file_type(path) is None:
        return False
    normalized = "/" + path.as_posix().lower()
    return not any(fragment in normalized for fragment in IGNORED_PATH_FRAGMENTS)


def should_ignore_directory(dir_path: Path, ignore_dirs: Set[str]) -> bool:
    """
    Check if a directory should be skipped during traversal.

    Only the directory name is compared, not the full path.

    Examples:
        >>> should_ignore_directory(Path("node_modules"), {"node_modules"})
        True
    """
    return dir_path.name in ignore_dirs


def _to_discovered(path: Path, relative_path: str, size: int, mtime: float) -> Optional[DiscoveredFile]:
    file_type = get_file_type(path)
    if file_type is None:
        return None
    return DiscoveredFile(
        path=path,
        relative_path=relative_path,
        type=file_type,
        component=detect_component(path),
        size=size,
        modified=datetime.fromtimestamp(mtime, tz=timezone.utc),
    )


def discover_files(
    paths: Sequence[Path],
    max_file_size: int = DEFAULT_MAX_FILE_SIZE,
    ignore_dirs: Optional[Set[str]] = None,
    follow_symlinks: bool = False,
) -> DiscoveryResult:
    """
    Collect every analyzable file under the given files and directories.

    Args:
        paths: Files and/or directories to scan.
        max_file_size: Files larger than this many bytes are skipped.
        ignore_dirs: Directory names to skip. If None, uses DEFAULT_IGNORE_DIRS.
        follow_symlinks: If False (default), symlinks are skipped.

    Returns:
        A DiscoveryResult. Files are ordered by component, then relative path,
        so repeated runs over the same tree are identical.

    Notes:
        - A missing root is recorded as an error, not raised.
        - Permission errors on subdirectories are logged and recorded but do
          not stop traversal.
        - A file passed explicitly is kept even if its name would normally be
          filtered; it still needs a supported type.
    """
    if ignore_dirs is None:
        ignore_dirs = DEFAULT_IGNORE_DIRS

    result = DiscoveryResult()

    if not paths:
        logger.warning("No paths provided for scanning")
        return result

    def _add_file(entry: Path, relative_path: str) -> None:
        try:
            stat = entry.stat()
        except OSError as e:
            logger.warning("Cannot stat %s: %s", entry, e)
            result.errors.append(ScanError(file=str(entry), message=str(e)))
            return

        if stat.st_size > max_file_size:
            logger.debug("Skipping large file: %s (%d bytes)", relative_path, stat.st_size)
            result.skipped += 1
            return

        discovered = _to_discovered(entry, relative_path, stat.st_size, stat.st_mtime)
        if discovered is None:
            result.skipped += 1
            return

        result.files.append(discovered)
        logger.debug("Discovered: %s (%s)", relative_path, discovered.component.value)

    def _walk_directory(current_dir: Path, root: Path) -> None:
        """Recursive helper to walk directory tree."""
        try:
            entries = sorted(current_dir.iterdir())
        except PermissionError as e:
            logger.warning("Permission denied accessing directory %s: %s", current_dir, e)
            result.errors.append(ScanError(file=str(current_dir), message=str(e)))
            return
        except OSError as e:
            logger.warning("Error accessing directory %s: %s", current_dir, e)
            result.errors.append(ScanError(file=str(current_dir), message=str(e)))
            return

        for entry in entries:
            if entry.is_symlink() and not follow_symlinks:
                logger.debug("Skipping symlink: %s", entry)
                result.skipped += 1
                continue

            if entry.is_dir():
                if should_ignore_directory(entry, ignore_dirs):
                    logger.debug("Ignoring directory: %s", entry)
                    continue
                _walk_directory(entry, root)
            elif entry.is_file():
                if not is_analyzable_file(entry):
                    result.skipped += 1
                    continue
                relative_path = entry.relative_to(root).as_posix()
                _add_file(entry, relative_path)

    for raw in paths:
        root = Path(raw).resolve()

        if not root.exists():
            logger.warning("Path does not exist: %s", root)
            result.errors.append(ScanError(file=str(root), message="Path does not exist"))
            continue

        if root.is_dir():
            logger.info("Starting traversal from: %s", root)
            _walk_directory(root, root)
        elif root.is_file():
            _add_file(root, root.name)

    result.files.sort(key=lambda f: (f.component.value, f.relative_path))

    logger.info("Discovered %d files, skipped %d", len(result.files), result.skipped)
    return result
