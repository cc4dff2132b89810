# Per-file analysis context: the discovered file, its decoded content, and its lines.
# Handles reading files, error handling for unreadable/undecodable files, and the
# context-window extraction shared by the matcher and the correlation engine.

import logging
import re
from pathlib import Path
from typing import Optional, Sequence

from ferret.findings.models import ContextLine, DiscoveredFile

logger = logging.getLogger(__name__)

_LINE_BREAK_RE = re.compile(r"\r?\n")


def split_lines(content: str) -> list[str]:
    """
    Split content on \\n and \\r\\n only.

    str.splitlines() would also break on \\x0b, \\x1c, \\u2028 and friends,
    which obfuscation rules need to see as ordinary characters.
    """
    return _LINE_BREAK_RE.split(content)


def extract_context(
    lines: Sequence[str],
    match_line: int,
    context_lines: int,
) -> list[ContextLine]:
    """
    Return the window of up to context_lines before and after match_line (1-based).

    The window is clipped at the first and last line of the file; exactly one
    entry has is_match=True.
    """
    if context_lines < 0:
        context_lines = 0
    start = max(0, match_line - context_lines - 1)
    end = min(len(lines), match_line + context_lines)
    return [
        ContextLine(line_number=i + 1, content=lines[i], is_match=(i == match_line - 1))
        for i in range(start, end)
    ]


class FileContext:
    """
    Per-file state for analysis: the DiscoveredFile plus its decoded text.

    content is None when the file could not be read; such a context still takes
    part in correlation (it contributes no pattern hits) but is never matched.
    """

    def __init__(
        self,
        file: DiscoveredFile,
        content: Optional[str],
        *,
        error: Optional[str] = None,
    ) -> None:
        self.file = file
        self.content = content
        self.error = error
        self._lines: Optional[list[str]] = None

    @property
    def readable(self) -> bool:
        return self.content is not None

    @property
    def lines(self) -> list[str]:
        """Lines of the content, split once and reused."""
        if self._lines is None:
            self._lines = split_lines(self.content) if self.content is not None else []
        return self._lines

    @property
    def path(self) -> Path:
        return self.file.path

    @property
    def relative_path(self) -> str:
        return self.file.relative_path

    def __repr__(self) -> str:
        state = "readable" if self.readable else f"unreadable: {self.error}"
        return f"FileContext({self.file.relative_path!r}, {state})"


def create_context(file: DiscoveredFile) -> FileContext:
    """
    Read a discovered file into a FileContext.

    - Unreadable file (permission, missing) or undecodable bytes: returns a
      context with content=None and error set, and logs the problem.
    - Success: returns a context with the decoded text.
    """
    try:
        content = Path(file.path).read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        logger.warning("File %s is not valid UTF-8: %s", file.relative_path, e)
        return FileContext(file, None, error=f"Cannot decode file: {e}")
    except OSError as e:
        logger.error("Failed to read file %s: %s", file.path, e)
        return FileContext(file, None, error=f"Cannot read file: {e}")

    logger.debug("Read %s: %d bytes, %s/%s", file.relative_path, len(content), file.type.value, file.component.value)
    return FileContext(file, content)


def load_contexts(files: Sequence[DiscoveredFile]) -> list[FileContext]:
    """
    Read every discovered file into a FileContext.

    Order matches the input; unreadable files are kept (content=None) so
    callers can report them and still relate them to their neighbours.
    """
    return [create_context(f) for f in files]
