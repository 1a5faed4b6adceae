"""Turn a raw chat-completion payload into display-ready plain text.

The answer is located with a structural scan for choices[0].message.content
rather than a full JSON decode, so payloads with trailing garbage or odd
envelopes still yield their text. The extracted string is then stripped of
LaTeX and markdown so both panes show plain conversational text.
"""
from __future__ import annotations

import logging
import re

from dualquery.core.exceptions import ParseError

log = logging.getLogger("normalizer")

PARSE_FAILED = "Response parsing failed. Please try again."

_ESCAPES = {'"': '"', "n": "\n", "r": "\r", "t": "\t", "\\": "\\", "/": "/"}
_ESCAPE_RE = re.compile(r'\\(["nrt\\/])')

_DISPLAY_MATH_RE = re.compile(r"\$\$.*?\$\$", re.DOTALL)
_INLINE_MATH_RE = re.compile(r"\$[^$\n]*\$")

_HEADER_RE = re.compile(r"^[ \t]*#{1,6}[ \t]+", re.MULTILINE)
_BOLD_RE = re.compile(r"\*\*(.+?)\*\*")
_UNDERLINE_RE = re.compile(r"__(.+?)__")
_STRIKE_RE = re.compile(r"~~(.+?)~~")
_ITALIC_STAR_RE = re.compile(r"(?<![\w*])\*(?!\s)(.+?)(?<!\s)\*(?![\w*])")
_ITALIC_UNDERSCORE_RE = re.compile(r"(?<!\w)_(?!\s)(.+?)(?<!\s)_(?!\w)")

_FENCED_CODE_RE = re.compile(r"```[\s\S]*?```")
_INLINE_CODE_RE = re.compile(r"`([^`\n]*)`")

_LIST_MARKER_RE = re.compile(r"^[ \t]*(?:[*\-+•]|\d+[.)])[ \t]+", re.MULTILINE)

_UNICODE_ESCAPE_RE = re.compile(r"\\u[0-9a-fA-F]{4}")
_BLANK_RUN_RE = re.compile(r"\n{3,}")


def _skip_ws(raw: str, i: int) -> int:
    while i < len(raw) and raw[i].isspace():
        i += 1
    return i


def extract_content(raw: str) -> str:
    """Return the still-escaped text of choices[0].message.content.

    Raises ParseError when the path is missing or the value is not a string.
    """
    choices = raw.find('"choices"')
    if choices < 0:
        raise ParseError('no "choices" key')
    message = raw.find('"message"', choices)
    if message < 0:
        raise ParseError('no "message" after "choices"')
    content = raw.find('"content"', message)
    if content < 0:
        raise ParseError('no "content" after "message"')

    i = _skip_ws(raw, content + len('"content"'))
    if i >= len(raw) or raw[i] != ":":
        raise ParseError('"content" is not a key')
    i = _skip_ws(raw, i + 1)
    if i >= len(raw) or raw[i] != '"':
        raise ParseError('"content" is not a string')

    start = i + 1
    i = start
    while i < len(raw):
        ch = raw[i]
        if ch == "\\":
            i += 2
            continue
        if ch == '"':
            return raw[start:i]
        i += 1
    raise ParseError("unterminated content string")


def unescape(text: str) -> str:
    return _ESCAPE_RE.sub(lambda m: _ESCAPES[m.group(1)], text)


def strip_markup(text: str) -> str:
    # math
    text = _DISPLAY_MATH_RE.sub("", text)
    text = _INLINE_MATH_RE.sub("", text)
    # headers and emphasis
    text = _HEADER_RE.sub("", text)
    text = _BOLD_RE.sub(r"\1", text)
    text = _UNDERLINE_RE.sub(r"\1", text)
    text = _STRIKE_RE.sub(r"\1", text)
    text = _ITALIC_STAR_RE.sub(r"\1", text)
    text = _ITALIC_UNDERSCORE_RE.sub(r"\1", text)
    # code
    text = _FENCED_CODE_RE.sub("", text)
    text = _INLINE_CODE_RE.sub(r"\1", text)
    # list markers
    text = _LIST_MARKER_RE.sub("", text)
    return text


def clean_text(content: str) -> str:
    text = unescape(content)
    text = strip_markup(text)
    text = text.replace("\\u2022", "•").replace("/u2022", "•")
    text = _UNICODE_ESCAPE_RE.sub("", text)
    text = _BLANK_RUN_RE.sub("\n\n", text)
    return text.strip()


def normalize(raw_payload: str) -> str:
    """Extract and clean the answer text. Never raises."""
    try:
        content = extract_content(raw_payload)
    except ParseError as e:
        log.warning("unexpected payload shape: %s", e)
        return PARSE_FAILED
    except Exception as e:
        log.warning("payload scan failed: %s", e)
        return f"parsing error: {e}"
    try:
        return clean_text(content)
    except Exception as e:
        log.exception("cleaning failed")
        return f"parsing error: {e}"
