"""Navigable location state: the `?gist=<id>` query parameter and its history."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

GIST_PARAM = "gist"


@dataclass
class HistoryEntry:
    url: str
    pushed: bool


def canonical_base(url: str) -> str:
    """Strip query string and fragment, keeping origin and path."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


class LocationSync:
    """
    Single owner of the viewer's navigable URL.

    `push_gist_id` adds a history entry (a newly shared or opened gist) while
    `replace_without_gist_id` rewrites the current one so a locally loaded
    report never leaves a stale gist id behind. Nothing here fetches.
    """

    def __init__(self, app_url: str, current: Optional[str] = None) -> None:
        self.app_url = canonical_base(app_url)
        self.history: List[HistoryEntry] = [
            HistoryEntry(url=current or self.app_url, pushed=False)
        ]

    @property
    def current(self) -> str:
        return self.history[-1].url

    def url_for(self, gist_id: Optional[str] = None) -> str:
        if not gist_id:
            return self.app_url
        return f"{self.app_url}?{urlencode({GIST_PARAM: gist_id})}"

    def current_gist_id(self) -> Optional[str]:
        values = parse_qs(urlsplit(self.current).query).get(GIST_PARAM)
        if not values or not values[0]:
            return None
        return values[0]

    def push_gist_id(self, gist_id: str) -> str:
        url = self.url_for(gist_id)
        self.history.append(HistoryEntry(url=url, pushed=True))
        return url

    def replace_without_gist_id(self) -> str:
        url = self.url_for()
        self.history[-1] = HistoryEntry(url=url, pushed=False)
        return url
