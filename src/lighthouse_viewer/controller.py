"""Report intake state machine.

Every channel funnels into `_load`:

    candidate -> LOADING -> validate -> set origin -> render
        -> local:  replace location without gist id, offer save
        -> remote: leave location alone, no save
        -> RENDERED

Validation and fetch failures are logged and recorded on the returned
IntakeOutcome; the previous document and location stay untouched. A render
failure clears the container, resets renderer templates and re-raises as
RenderError.

Handlers are coroutines on one event loop. A new attempt never cancels an
in-flight one, so when two attempts race the one that resolves last wins.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from .analytics import AnalyticsSink, NullAnalytics
from .config import Settings, get_settings
from .errors import FetchError, IntakeError, OriginError, ParseError, RenderError
from .gist import ReportStore
from .location import LocationSync
from .models import (
    IntakeChannel,
    IntakeOrigin,
    IntakeOutcome,
    IntakeState,
    ReportPayload,
    WindowMessage,
)
from .render import HtmlReportRenderer, ReportRenderer, ViewerDocument
from .schema import validate_report
from .sources import (
    GistLink,
    WindowHandle,
    accept_message,
    announce_ready,
    extract_gist_id,
    interpret_paste,
    parse_report_json,
    read_file_text,
)

logger = logging.getLogger(__name__)


class IntakeController:
    """Owns the origin flag, the rendered document and the location."""

    def __init__(
        self,
        store: ReportStore,
        location: LocationSync,
        renderer: Optional[ReportRenderer] = None,
        document: Optional[ViewerDocument] = None,
        analytics: Optional[AnalyticsSink] = None,
        opener: Optional[WindowHandle] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.store = store
        self.location = location
        self.renderer = renderer or HtmlReportRenderer()
        self.document = document or ViewerDocument()
        self.analytics = analytics or NullAnalytics()
        self.opener = opener

        self.state = IntakeState.IDLE
        # None until the first successful load.
        self.origin: IntakeOrigin | None = None
        self.gist_id: str | None = None
        self._payload: ReportPayload | None = None

    # --- helpers -----------------------------------------------------------

    def _track(self, action: str) -> None:
        try:
            self.analytics.send("report", action)
        except Exception as exc:  # analytics never affects intake
            logger.debug("Analytics event %r failed: %s", action, exc)

    def _outcome(
        self, channel: IntakeChannel | None, error: IntakeError | None = None
    ) -> IntakeOutcome:
        return IntakeOutcome(
            channel=channel,
            state=self.state,
            origin=self.origin,
            gist_id=self.gist_id,
            save_offered=self.document.save_callback is not None,
            error=error,
        )

    def _abort(
        self, channel: IntakeChannel | None, error: IntakeError
    ) -> IntakeOutcome:
        logger.error("%s", error)
        self.state = IntakeState.RENDERED if self._payload is not None else IntakeState.IDLE
        return self._outcome(channel, error)

    def _render(self, payload: ReportPayload) -> None:
        container = self.document.container
        try:
            self.renderer.render(payload, container)
        except Exception as exc:
            logger.error("Error rendering report: %s", exc)
            self.renderer.reset_templates()
            container.clear()
            self.document.offer_save(None)
            self._payload = None
            self.state = IntakeState.IDLE
            raise RenderError(f"Error rendering report: {exc}") from exc

    async def _load(
        self,
        payload: Any,
        channel: IntakeChannel,
        gist_id: Optional[str] = None,
        push_location: bool = False,
    ) -> IntakeOutcome:
        self.state = IntakeState.LOADING
        try:
            validate_report(payload, self.settings.viewer_version)
        except IntakeError as exc:
            return self._abort(channel, exc)

        # The render step and save affordance read the origin, so set it first.
        self.origin = channel.origin
        self.gist_id = gist_id if self.origin is IntakeOrigin.REMOTE else None
        if push_location and self.gist_id:
            self.location.push_gist_id(self.gist_id)
        self._render(payload)
        self._payload = payload

        if self.origin is IntakeOrigin.LOCAL:
            self.location.replace_without_gist_id()
            self.document.offer_save(self.save_report)
        else:
            self.document.offer_save(None)

        self.document.remove_placeholder()
        self.state = IntakeState.RENDERED
        self._track("view")
        return self._outcome(channel)

    async def _load_gist(
        self, gist_id: str, channel: IntakeChannel, push_location: bool = False
    ) -> IntakeOutcome:
        self.state = IntakeState.LOADING
        try:
            payload = await self.store.fetch_by_id(gist_id)
        except FetchError as exc:
            return self._abort(channel, exc)
        return await self._load(
            payload, channel, gist_id=gist_id, push_location=push_location
        )

    async def _open_gist(self, gist_id: str, channel: IntakeChannel) -> IntakeOutcome:
        # The new id only reaches the location once its report has been fetched and validated.
        return await self._load_gist(gist_id, channel, push_location=True)

    # --- entry points ------------------------------------------------------

    async def on_startup(self) -> IntakeOutcome:
        """Signal readiness to an opener window, then follow any `?gist=` deep link."""
        announce_ready(self.opener)
        gist_id = self.location.current_gist_id()
        if not gist_id:
            return self._outcome(None)
        return await self._load_gist(gist_id, IntakeChannel.DEEP_LINK)

    async def on_file_selected(self, handle: Any) -> IntakeOutcome:
        self.state = IntakeState.LOADING
        try:
            payload = parse_report_json(await read_file_text(handle))
        except (ParseError, OSError, TypeError) as exc:
            error = exc if isinstance(exc, ParseError) else ParseError(f"Could not read file: {exc}")
            return self._abort(IntakeChannel.FILE, error)
        return await self._load(payload, IntakeChannel.FILE)

    async def on_paste_text(self, text: str) -> IntakeOutcome:
        """Handle pasted text as a gist URL first, then as report JSON."""
        interpretation = interpret_paste(text or "", self.settings.gist_origin)
        if interpretation is None:
            logger.info("Pasted content was neither a gist URL nor JSON")
            return self._outcome(None)
        if isinstance(interpretation, GistLink):
            self._track("paste-link")
            return await self._open_gist(interpretation.gist_id, IntakeChannel.PASTE_LINK)
        outcome = await self._load(interpretation.payload, IntakeChannel.PASTE_JSON)
        if outcome.rendered:
            self._track("paste")
        return outcome

    async def on_url_changed(self, value: str) -> IntakeOutcome:
        if not value:
            return self._outcome(None)
        try:
            gist_id = extract_gist_id(value, self.settings.gist_origin)
        except OriginError as exc:
            return self._abort(IntakeChannel.URL, exc)
        return await self._open_gist(gist_id, IntakeChannel.URL)

    async def on_message(self, message: WindowMessage) -> IntakeOutcome:
        payload = accept_message(message, self.opener)
        if payload is None:
            return self._outcome(None)
        outcome = await self._load(payload, IntakeChannel.MESSAGE)
        if outcome.rendered:
            self._track("open in viewer")
        return outcome

    async def save_report(self) -> Optional[str]:
        """Upload the displayed local report as a gist and deep-link to it."""
        payload = self._payload
        if payload is None or self.origin is not IntakeOrigin.LOCAL:
            return None
        self._track("share")
        try:
            gist_id = await self.store.create(payload)
        except FetchError as exc:
            logger.error("%s", exc)
            return None
        if self._payload is not payload:
            logger.info("Saved gist %s for a report that is no longer displayed", gist_id)
            return gist_id

        self.origin = IntakeOrigin.REMOTE
        self.gist_id = gist_id
        self.location.push_gist_id(gist_id)
        self.document.offer_save(None)
        self._track("created")
        return gist_id
