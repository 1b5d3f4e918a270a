"""Split assistant reply text into renderable segments.

Replies are free-form text in which code is fenced with triple backticks and
emphasis uses ``*italic*`` / ``**bold**`` markers. ``parse_message`` turns a
reply into a list of segments:

- ``CodeSegment``: literal code, whitespace preserved. A stray language tag on
  the first line (``py``, ``c++``, ``objective-c``) is dropped; replies are
  asked not to include one, but models sometimes do anyway.
- ``ProseSegment``: a flat list of spans (plain text, bold, italic, line
  break). Unmatched markers stay literal text.

Nothing here produces markup; renderers escape span text themselves.
"""

import re
from dataclasses import dataclass

FENCE = "```"

_LANGUAGE_TAG = re.compile(r"[A-Za-z][\w#+.\-]*", re.ASCII)
# Bold is tried before italic at every position; neither crosses a newline.
# Italic text never contains a marker, so stray asterisks stay literal.
_EMPHASIS = re.compile(r"\*\*(.+?)\*\*|\*([^*\n]+?)\*")


@dataclass(frozen=True)
class TextSpan:
    text: str

    def to_dict(self) -> dict:
        return {"type": "text", "text": self.text}


@dataclass(frozen=True)
class BoldSpan:
    text: str

    def to_dict(self) -> dict:
        return {"type": "bold", "text": self.text}


@dataclass(frozen=True)
class ItalicSpan:
    text: str

    def to_dict(self) -> dict:
        return {"type": "italic", "text": self.text}


@dataclass(frozen=True)
class LineBreak:
    def to_dict(self) -> dict:
        return {"type": "linebreak"}


Span = TextSpan | BoldSpan | ItalicSpan | LineBreak


@dataclass(frozen=True)
class ProseSegment:
    spans: tuple[Span, ...]

    def to_dict(self) -> dict:
        return {"type": "prose", "spans": [s.to_dict() for s in self.spans]}


@dataclass(frozen=True)
class CodeSegment:
    code: str

    def to_dict(self) -> dict:
        return {"type": "code", "code": self.code}


Segment = ProseSegment | CodeSegment


def parse_message(text: str) -> list[Segment]:
    """Parse reply text into prose and code segments, in order."""
    segments: list[Segment] = []
    for index, part in enumerate(text.split(FENCE)):
        if index % 2 == 1:
            segments.append(CodeSegment(_clean_code(part)))
        elif part.strip():
            segments.append(ProseSegment(tuple(_scan_prose(part))))
    return segments


def _clean_code(part: str) -> str:
    code = part.strip()
    first_line = code.split("\n", 1)[0]
    if _LANGUAGE_TAG.fullmatch(first_line):
        code = code[len(first_line):].lstrip()
    return code


def _scan_prose(text: str) -> list[Span]:
    spans: list[Span] = []
    pos = 0
    for match in _EMPHASIS.finditer(text):
        spans.extend(_plain(text[pos:match.start()]))
        if match.group(1) is not None:
            spans.append(BoldSpan(match.group(1)))
        else:
            spans.append(ItalicSpan(match.group(2)))
        pos = match.end()
    spans.extend(_plain(text[pos:]))
    return spans


def _plain(text: str) -> list[Span]:
    """Split literal text on newlines into text spans and line breaks."""
    spans: list[Span] = []
    for i, line in enumerate(text.split("\n")):
        if i:
            spans.append(LineBreak())
        if line:
            spans.append(TextSpan(line))
    return spans
