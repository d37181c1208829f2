"""Readers that turn each raw input channel into a candidate report payload.

None of these touch controller state. File and URL readers raise from the
error taxonomy; paste interpreters return None instead of raising so the
controller can try them in order.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Protocol, Sequence, Union
from urllib.parse import urlsplit

from .errors import OriginError, ParseError
from .models import ReportPayload, WindowMessage

logger = logging.getLogger(__name__)

GIST_ID_PATTERN = re.compile(r"[a-f0-9]{5,}")


# --- File channel ----------------------------------------------------------

async def read_file_text(handle: Any) -> str:
    """
    Read a file handle fully as text.

    Accepts a path, raw bytes, a sync stream, or anything with an async
    `read()` (e.g. an uploaded file). One attempt, no retry.
    """
    if isinstance(handle, (str, Path)):
        data: Union[str, bytes] = await asyncio.to_thread(Path(handle).read_bytes)
    elif isinstance(handle, (bytes, bytearray)):
        data = bytes(handle)
    elif hasattr(handle, "read"):
        data = handle.read()
        if inspect.isawaitable(data):
            data = await data
    else:
        raise TypeError(f"Unsupported file handle: {type(handle).__name__}")

    if isinstance(data, str):
        return data
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ParseError("Could not parse JSON file.") from exc


def parse_report_json(text: str) -> Any:
    try:
        return json.loads(text)
    except (TypeError, ValueError) as exc:
        raise ParseError("Could not parse JSON file.") from exc


# --- Remote-URL channel ----------------------------------------------------

_DEFAULT_PORTS = {"http": 80, "https": 443}


def _origin(url: str) -> str:
    """scheme://host[:port], without userinfo and without the scheme's default port."""
    parts = urlsplit(url)
    if not parts.scheme or not parts.hostname:
        raise OriginError("Invalid URL")
    scheme = parts.scheme.lower()
    port = parts.port
    if port is None or port == _DEFAULT_PORTS.get(scheme):
        return f"{scheme}://{parts.hostname}"
    return f"{scheme}://{parts.hostname}:{port}"


def extract_gist_id(url: str, gist_origin: str) -> str:
    """Return the hex gist id from a gist.github.com URL, or raise OriginError."""
    try:
        origin = _origin(url.strip())
    except ValueError as exc:
        raise OriginError("Invalid URL") from exc
    if origin != _origin(gist_origin):
        raise OriginError("URL was not a gist")
    match = GIST_ID_PATTERN.search(urlsplit(url.strip()).path)
    if not match:
        raise OriginError("URL did not contain a gist id")
    return match.group(0)


# --- Paste channel ---------------------------------------------------------

@dataclass
class GistLink:
    gist_id: str


@dataclass
class PastedReport:
    payload: ReportPayload


PasteInterpretation = Union[GistLink, PastedReport]


def paste_as_gist_link(text: str, gist_origin: str) -> Optional[GistLink]:
    try:
        return GistLink(extract_gist_id(text, gist_origin))
    except OriginError as exc:
        logger.debug("Paste is not a gist link: %s", exc)
        return None


def paste_as_report_json(text: str) -> Optional[PastedReport]:
    try:
        return PastedReport(parse_report_json(text))
    except ParseError:
        logger.debug("Paste is not JSON")
        return None


def interpret_paste(
    text: str,
    gist_origin: str,
    interpreters: Optional[Sequence[Callable[[str], Optional[PasteInterpretation]]]] = None,
) -> Optional[PasteInterpretation]:
    """Try each interpretation in order; the first that yields something wins."""
    if interpreters is None:
        interpreters = (
            lambda value: paste_as_gist_link(value, gist_origin),
            paste_as_report_json,
        )
    for interpret in interpreters:
        result = interpret(text)
        if result is not None:
            return result
    return None


# --- Cross-window message channel ------------------------------------------

class WindowHandle(Protocol):
    closed: bool

    def post_message(self, data: Dict[str, Any], target_origin: str) -> None: ...


def accept_message(message: WindowMessage, opener: Optional[WindowHandle]) -> Optional[Any]:
    """Return the `lhresults` payload only when the opener sent it."""
    if opener is None or message.source is not opener:
        return None
    return message.data.get("lhresults") or None


def announce_ready(opener: Optional[WindowHandle]) -> bool:
    """Tell a still-open opener window that this viewer can receive a report."""
    if opener is None or opener.closed:
        return False
    opener.post_message({"opened": True}, "*")
    return True
