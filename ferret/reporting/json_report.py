# JSON output: the ScanResult serialized by pydantic, for CI pipelines and other tools.

from __future__ import annotations

from pathlib import Path
from typing import Optional

from ferret.findings.models import ScanResult


def render_json(result: ScanResult, indent: Optional[int] = 2) -> str:
    """Serialize a scan result. Enum fields come out as their wire names, datetimes as ISO 8601."""
    return result.model_dump_json(indent=indent)


def write_json(result: ScanResult, path: Path, indent: Optional[int] = 2) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_json(result, indent) + "\n", encoding="utf-8")


def load_json(text: str) -> ScanResult:
    """Parse a previously written JSON report back into a ScanResult."""
    return ScanResult.model_validate_json(text)
