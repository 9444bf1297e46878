# ============================================================
#   CITEMARK — MATCH REPORT
# ============================================================

import html
import logging
from typing import Iterable, Protocol

from citations import ActMatch, CitationMatch

logger = logging.getLogger(__name__)

NO_MATCHES_MESSAGE = "No matches found."


class OutputSink(Protocol):
    """Anything that can display the report (a task pane element, a file...)."""

    def write(self, content: str) -> None:
        ...


class BufferSink:
    """Keeps whatever was written last, the way an element's innerHTML would."""

    def __init__(self):
        self.content: str | None = None

    def write(self, content: str) -> None:
        self.content = content


class LoggingSink:
    """Sends the report to the log; used when no sink is given."""

    def __init__(self, level: int = logging.INFO):
        self.level = level

    def write(self, content: str) -> None:
        logger.log(self.level, "%s", content)


def escape_html(value) -> str:
    """Escape & < > " ' so user text can be dropped into markup safely."""
    return html.escape(str(value), quote=True)


def render_match(index: int, match) -> str:
    """One numbered <div class="match"> entry for a citation or an act."""
    if isinstance(match, CitationMatch):
        meta = (
            f"Claimant: {escape_html(match.claimant)} | "
            f"Respondent: {escape_html(match.respondent)} | "
            f"Year: {escape_html(match.year)}"
        )
    elif isinstance(match, ActMatch):
        meta = f"Act: {escape_html(match.name_part)} | Year: {escape_html(match.year)}"
    else:
        raise TypeError(f"Cannot render {type(match).__name__}")

    return (
        f'<div class="match"><strong>#{index}</strong>: {escape_html(match.full_text)}'
        f'<div class="meta">{meta}</div></div>'
    )


def render_report(matches: Iterable) -> str:
    """
    Render every match as HTML, numbered from 1 (citations first, then
    acts when given a MatchSet). Returns the plain "No matches found."
    message when there is nothing to show.
    """
    items = list(matches)
    if not items:
        return NO_MATCHES_MESSAGE
    return "".join(render_match(i, m) for i, m in enumerate(items, start=1))


def publish_report(matches: Iterable, sink: OutputSink | None = None) -> str:
    """
    Render the report and write it into `sink`. Without a sink it goes
    to the log through a LoggingSink.
    """
    if sink is None:
        sink = LoggingSink()
    content = render_report(matches)
    sink.write(content)
    return content
