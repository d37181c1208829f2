"""Error taxonomy for report intake."""

from __future__ import annotations


class IntakeError(Exception):
    """Base class for failures while taking in a report."""


class ParseError(IntakeError, ValueError):
    """Candidate content was not valid JSON."""


class SchemaError(IntakeError, ValueError):
    """Payload is missing the Lighthouse version marker."""


class OriginError(IntakeError, ValueError):
    """URL is not a gist URL or carries no gist id."""


class FetchError(IntakeError):
    """The remote report store failed to fetch or create a gist."""


class RenderError(IntakeError):
    """The renderer raised; the container has already been reset."""
