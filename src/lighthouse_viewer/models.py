"""Data models for the report intake state machine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from .errors import IntakeError

ReportPayload = Dict[str, Any]


class IntakeOrigin(str, Enum):
    """Where the currently displayed report came from."""

    LOCAL = "local"
    REMOTE = "remote"


class IntakeState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    RENDERED = "rendered"


class IntakeChannel(str, Enum):
    """Input channel that produced a candidate payload."""

    FILE = "file"
    PASTE_JSON = "paste-json"
    PASTE_LINK = "paste-link"
    URL = "url"
    DEEP_LINK = "deep-link"
    MESSAGE = "message"

    @property
    def origin(self) -> IntakeOrigin:
        if self in (IntakeChannel.PASTE_LINK, IntakeChannel.URL, IntakeChannel.DEEP_LINK):
            return IntakeOrigin.REMOTE
        return IntakeOrigin.LOCAL


class WindowMessage(BaseModel):
    """A cross-window message as delivered by the hosting shell."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    source: Any = Field(None, description="Handle of the sending window.")
    data: Dict[str, Any] = Field(default_factory=dict)


@dataclass
class VersionCompatibility:
    report_version: str
    viewer_version: str
    report_major_minor: Optional[tuple[int, int]]
    viewer_major_minor: Optional[tuple[int, int]]

    @property
    def is_outdated(self) -> bool:
        if self.report_major_minor is None or self.viewer_major_minor is None:
            return False
        return self.report_major_minor < self.viewer_major_minor


@dataclass
class IntakeOutcome:
    """What a single intake attempt did to the controller."""

    channel: IntakeChannel | None
    state: IntakeState
    origin: IntakeOrigin | None
    gist_id: str | None = None
    save_offered: bool = False
    error: IntakeError | None = None

    @property
    def rendered(self) -> bool:
        return self.error is None and self.state is IntakeState.RENDERED
