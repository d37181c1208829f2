"""Default render pipeline and the viewer document it renders into."""

from __future__ import annotations

import html as html_lib
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

from .models import ReportPayload

SaveCallback = Callable[[], Awaitable[Optional[str]]]

PLACEHOLDER_HTML = (
    '<div class="viewer-placeholder">'
    "<p>Drop a Lighthouse JSON report here, paste one, or enter a gist URL.</p>"
    "</div>"
)


class ReportContainer:
    """Target node for rendered report markup."""

    def __init__(self) -> None:
        self.content = ""

    def clear(self) -> None:
        self.content = ""

    def append(self, markup: str) -> None:
        self.content += markup


class ReportRenderer(Protocol):
    def render(self, payload: ReportPayload, container: ReportContainer) -> None: ...

    def reset_templates(self) -> None: ...


class ViewerDocument:
    """The page: a report container, the empty-state placeholder and a save button."""

    def __init__(self) -> None:
        self.container = ReportContainer()
        self.placeholder_visible = True
        self.save_callback: Optional[SaveCallback] = None

    def offer_save(self, callback: Optional[SaveCallback]) -> None:
        self.save_callback = callback

    def remove_placeholder(self) -> None:
        self.placeholder_visible = False

    def to_html(self, title: str = "Lighthouse Report Viewer", error: Optional[str] = None) -> str:
        body = PLACEHOLDER_HTML if self.placeholder_visible else ""
        if error:
            body = f'<div class="viewer-error" role="alert">{html_lib.escape(error)}</div>' + body
        if self.save_callback is not None:
            body += '<button class="js-save-gist">Save as Gist</button>'
        return (
            "<!doctype html><html><head>"
            f"<title>{html_lib.escape(title)}</title>"
            "</head><body>"
            f"{body}<main>{self.container.content}</main>"
            "</body></html>"
        )


def _category_scores(payload: ReportPayload) -> list[tuple[str, Any]]:
    categories = payload.get("categories")
    if isinstance(categories, dict):
        items = categories.values()
    else:
        items = payload.get("reportCategories") or []
    rows = []
    for category in items:
        if not isinstance(category, dict):
            continue
        rows.append((str(category.get("title") or category.get("name") or ""), category.get("score")))
    return rows


def _format_score(score: Any) -> str:
    if score is None:
        return "n/a"
    if isinstance(score, (int, float)) and 0 <= score <= 1:
        return str(round(score * 100))
    return str(score)


class HtmlReportRenderer:
    """
    Minimal report renderer: a header and one row per category.

    Templates are built lazily and cached; `reset_templates` drops them after
    a failed render so the next attempt starts clean.
    """

    def __init__(self) -> None:
        self._templates: Dict[str, str] = {}

    def _template(self, name: str) -> str:
        if name not in self._templates:
            self._templates[name] = {
                "header": (
                    '<header class="lh-header"><h1>{url}</h1>'
                    '<p class="lh-meta">Lighthouse {version} &middot; {fetch_time}</p></header>'
                ),
                "category": (
                    '<li class="lh-category"><span class="lh-category__title">{title}</span>'
                    '<span class="lh-category__score">{score}</span></li>'
                ),
            }[name]
        return self._templates[name]

    def render(self, payload: ReportPayload, container: ReportContainer) -> None:
        escape = html_lib.escape
        url = payload.get("finalUrl") or payload.get("url") or payload.get("requestedUrl") or ""
        fetch_time = payload.get("fetchTime") or payload.get("generatedTime") or ""
        markup = [
            self._template("header").format(
                url=escape(str(url)),
                version=escape(str(payload["lighthouseVersion"])),
                fetch_time=escape(str(fetch_time)),
            ),
            '<ul class="lh-categories">',
        ]
        for title, score in _category_scores(payload):
            markup.append(
                self._template("category").format(
                    title=escape(title), score=escape(_format_score(score))
                )
            )
        markup.append("</ul>")
        container.clear()
        container.append("".join(markup))

    def reset_templates(self) -> None:
        self._templates.clear()
