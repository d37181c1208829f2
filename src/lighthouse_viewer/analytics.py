"""Fire-and-forget analytics sinks."""

from __future__ import annotations

from typing import List, Protocol, Tuple


class AnalyticsSink(Protocol):
    def send(self, category: str, action: str) -> None: ...


class NullAnalytics:
    def send(self, category: str, action: str) -> None:
        return None


class RecordingAnalytics:
    """Keeps every event in memory; handy for tests."""

    def __init__(self) -> None:
        self.events: List[Tuple[str, str]] = []

    def send(self, category: str, action: str) -> None:
        self.events.append((category, action))

    @property
    def actions(self) -> List[str]:
        return [action for _, action in self.events]
