"""Structural and version gate applied to every candidate report."""

from __future__ import annotations

import json
import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError

from .errors import SchemaError
from .models import VersionCompatibility

logger = logging.getLogger(__name__)

_MAJOR_MINOR_RE = re.compile(r"^(\d+)\.(\d+)(?:\.\d+)?")


def default_schema_path() -> Path:
    """Return the path to the bundled report marker schema."""
    return Path(__file__).resolve().parent / "schemas" / "report_schema.json"


@lru_cache(maxsize=1)
def load_schema(path: Optional[Path | str] = None) -> Dict[str, Any]:
    """Load and cache the report schema as a dictionary."""
    schema_path = Path(path) if path else default_schema_path()
    return json.loads(schema_path.read_text(encoding="utf-8"))


def format_errors(errors: Iterable[ValidationError]) -> str:
    """Turn jsonschema errors into a concise human-readable string."""
    parts = []
    for err in errors:
        location = ".".join(str(piece) for piece in err.absolute_path) or "<root>"
        parts.append(f"{location}: {err.message}")
    return "; ".join(parts)


def validate_report_structure(
    payload: Any, schema: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Check the single structural marker every Lighthouse report carries.

    Raises SchemaError when the payload is not an object with a
    `lighthouseVersion` string. Anything deeper is the renderer's business.
    """
    validator = Draft202012Validator(schema or load_schema())
    errors = sorted(validator.iter_errors(payload), key=lambda e: list(e.absolute_path))
    if errors:
        raise SchemaError(
            f"JSON file was not generated by Lighthouse ({format_errors(errors)})"
        )
    return payload


def _major_minor(version: str) -> tuple[int, int] | None:
    match = _MAJOR_MINOR_RE.match(version.strip())
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def check_version(report_version: str, viewer_version: str) -> VersionCompatibility:
    """Compare major.minor of both versions; the patch component is ignored."""
    return VersionCompatibility(
        report_version=report_version,
        viewer_version=viewer_version,
        report_major_minor=_major_minor(report_version),
        viewer_major_minor=_major_minor(viewer_version),
    )


def validate_report(payload: Any, viewer_version: str) -> VersionCompatibility:
    """
    Gate a candidate payload before rendering.

    An outdated report only produces a warning; it still renders.
    """
    validate_report_structure(payload)
    compat = check_version(payload["lighthouseVersion"], viewer_version)
    if compat.is_outdated:
        logger.warning(
            "Results may not display properly.\n"
            "Report was created with an earlier version of Lighthouse (%s). "
            "The latest version is %s.",
            compat.report_version,
            compat.viewer_version,
        )
    return compat
