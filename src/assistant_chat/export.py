"""Export sessions to Markdown and JSON, and render parsed replies as HTML."""

import html
import json
from datetime import datetime, timezone

from .core import Session
from .parser import (
    BoldSpan,
    CodeSegment,
    ItalicSpan,
    LineBreak,
    ProseSegment,
    Segment,
    TextSpan,
    parse_message,
)


def _format_ms(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).isoformat()


def session_to_markdown(session: Session) -> str:
    """Export a session and its history as clean Markdown."""
    lines = [f"# {session.title}", ""]
    lines.append(f"**Updated:** {_format_ms(session.last_updated)}")
    lines.append(f"**Messages:** {len(session.history)}")
    lines.extend(["", "---", ""])

    for msg in session.history:
        lines.append(f"## {msg.role.value.capitalize()}")
        lines.append("")
        lines.append(msg.content)
        lines.extend(["", "---", ""])

    return "\n".join(lines)


def session_to_json(session: Session) -> str:
    """Export a session as structured JSON in the stored record shape."""
    return json.dumps(session.to_dict(), indent=2, ensure_ascii=False)


def segments_to_html(segments: list[Segment]) -> str:
    """Render parsed segments as HTML. All model text is escaped."""
    parts = []
    for segment in segments:
        if isinstance(segment, CodeSegment):
            parts.append(f"<pre><code>{html.escape(segment.code)}</code></pre>")
        elif isinstance(segment, ProseSegment):
            inner = "".join(_span_to_html(span) for span in segment.spans)
            parts.append(f"<p>{inner}</p>")
    return "".join(parts)


def message_to_html(text: str) -> str:
    return segments_to_html(parse_message(text))


def _span_to_html(span) -> str:
    if isinstance(span, BoldSpan):
        return f"<strong>{html.escape(span.text)}</strong>"
    if isinstance(span, ItalicSpan):
        return f"<em>{html.escape(span.text)}</em>"
    if isinstance(span, LineBreak):
        return "<br/>"
    if isinstance(span, TextSpan):
        return html.escape(span.text)
    raise TypeError(f"Unknown span type: {type(span).__name__}")
