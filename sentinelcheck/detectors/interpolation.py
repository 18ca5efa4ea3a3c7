"""
Legacy placeholder detector for interpolated strings.

VIOLATION PATTERN: ${name} inside an f-string (or t-string). The '$' is
emitted literally and {name} becomes an ordinary hole, so the old
template syntax silently leaks into the output.

Only f/t-prefixed pieces are scanned. An ordinary string such as
"${hello}" is data, not template syntax.

Scanner automaton, per literal body:

    OUTSIDE    --'$'-->  SAW_DOLLAR
    SAW_DOLLAR --'{'-->  IN_PLACEHOLDER(depth=1)
    SAW_DOLLAR --else--> OUTSIDE (the character is read again as text)
    IN_PLACEHOLDER: '{' depth+1, '}' depth-1; depth 0 --> OUTSIDE, match

Host details on top of the automaton:
- '{{' and '}}' are escaped braces, so '${{x}}' is literal text
- a native hole reached from OUTSIDE is skipped whole
- quoted strings inside a placeholder are skipped whole
- backslash escapes, \\N{...} included, are consumed in non-raw pieces
- a placeholder still open when the body ends is not reported
"""
import ast
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Tuple

from . import DetectorContext
from ..data_structures import InterpolationSpan

logger = logging.getLogger(__name__)

# t-strings exist from Python 3.14 on.
INTERPOLATED_STRING_KINDS = tuple(
    kind
    for kind in (ast.JoinedStr, getattr(ast, "TemplateStr", None))
    if kind is not None
)

_LITERAL_START = re.compile(r"([rRbBuUfFtT]{0,3})('''|\"\"\"|'|\")")
_QUOTES = "'\""


class ScanState(Enum):
    OUTSIDE        = "outside"
    SAW_DOLLAR     = "saw_dollar"
    IN_PLACEHOLDER = "in_placeholder"


@dataclass(frozen=True)
class LiteralPiece:
    """One quoted literal of a (possibly implicitly concatenated) string."""

    prefix: str
    quote: str
    body_start: int  # offset of the body within the scanned text
    body: str

    @property
    def raw(self) -> bool:
        return "r" in self.prefix.lower()

    @property
    def interpolated(self) -> bool:
        prefix = self.prefix.lower()
        return "f" in prefix or "t" in prefix


def _skip_escape(text: str, i: int, raw: bool) -> int:
    """Index just past the escape sequence starting at text[i] == '\\'."""
    if not raw and text.startswith("N{", i + 1):
        close = text.find("}", i + 3)
        return len(text) if close < 0 else close + 1
    # '\{' does not escape the brace: the hole still opens.
    if text[i + 1:i + 2] in ("{", "}"):
        return i + 1
    return i + 2


def _skip_quoted(text: str, i: int) -> int:
    """Index just past the quoted string starting at text[i]."""
    quote = text[i:i + 3] if text.startswith(("'''", '"""'), i) else text[i]
    j = i + len(quote)
    while j < len(text):
        if text[j] == "\\":
            j += 2
            continue
        if text.startswith(quote, j):
            return j + len(quote)
        j += 1
    return len(text)


def _skip_native_hole(text: str, i: int) -> int:
    """Index just past the {expr} hole starting at text[i] == '{'."""
    depth = 0
    j = i
    while j < len(text):
        char = text[j]
        if char in _QUOTES:
            j = _skip_quoted(text, j)
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return j + 1
        j += 1
    return len(text)


def _literal_end(text: str, i: int, quote: str, raw: bool, interpolated: bool) -> Optional[int]:
    """Offset of the closing quote of a literal whose body starts at i."""
    while i < len(text):
        if text.startswith(quote, i):
            return i
        char = text[i]
        if char == "\\":
            i = _skip_escape(text, i, raw)
            continue
        if interpolated:
            if text.startswith(("{{", "}}"), i):
                i += 2
                continue
            if char == "{":
                i = _skip_native_hole(text, i)
                continue
        i += 1
    return None


def iter_literal_pieces(text: str) -> Iterator[LiteralPiece]:
    """
    Split the source of a string expression into its quoted pieces.

    Whitespace, line continuations and comments between implicitly
    concatenated pieces are skipped. Stops at anything unexpected.
    """
    i = 0
    while i < len(text):
        char = text[i]
        if char.isspace() or char == "\\":
            i += 1
            continue
        if char == "#":
            newline = text.find("\n", i)
            if newline < 0:
                return
            i = newline + 1
            continue

        match = _LITERAL_START.match(text, i)
        if match is None:
            logger.debug("Unexpected string source at offset %d: %r", i, text[i:i + 20])
            return

        prefix, quote = match.groups()
        lowered = prefix.lower()
        body_start = match.end()
        end = _literal_end(
            text,
            body_start,
            quote,
            raw="r" in lowered,
            interpolated="f" in lowered or "t" in lowered,
        )
        if end is None:
            logger.debug("Unterminated string piece at offset %d", i)
            return

        yield LiteralPiece(
            prefix=prefix,
            quote=quote,
            body_start=body_start,
            body=text[body_start:end],
        )
        i = end + len(quote)


def scan_placeholders(body: str, raw: bool = False) -> List[Tuple[int, int]]:
    """
    Find legacy ${...} placeholders in the body of an interpolated literal.

    Returns (offset, length) pairs, left to right. The offset points at
    the '$'; the length runs through the matching '}'.
    """
    matches = []
    state = ScanState.OUTSIDE
    start = depth = 0
    i = 0
    while i < len(body):
        char = body[i]

        if state is ScanState.IN_PLACEHOLDER:
            if char in _QUOTES:
                i = _skip_quoted(body, i)
                continue
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    matches.append((start, i + 1 - start))
                    state = ScanState.OUTSIDE
            i += 1
            continue

        if state is ScanState.SAW_DOLLAR:
            if char == "{" and not body.startswith("{{", i):
                state = ScanState.IN_PLACEHOLDER
                depth = 1
                i += 1
                continue
            state = ScanState.OUTSIDE

        if char == "$":
            state = ScanState.SAW_DOLLAR
            start = i
            i += 1
        elif char == "\\" and not raw:
            i = _skip_escape(body, i, raw)
        elif char == "\\":
            i += 1
        elif body.startswith(("{{", "}}"), i):
            i += 2
        elif char == "{":
            i = _skip_native_hole(body, i)
        else:
            i += 1

    return matches


def _is_format_spec(node: ast.AST, context: DetectorContext) -> bool:
    parent = context.resolver.module.cursor.parent(node)
    return isinstance(parent, ast.FormattedValue) and parent.format_spec is node


def find_legacy_placeholders(node: ast.AST, context: DetectorContext) -> List[InterpolationSpan]:
    """
    Detect legacy placeholders inside an interpolated string node.

    Returns one InterpolationSpan per match, in source order.
    Nodes without usable positions yield no matches.
    """
    if not isinstance(node, INTERPOLATED_STRING_KINDS):
        return []
    # Format specs are nested JoinedStr nodes. They are never scanned:
    # the owning literal skips the whole {x:spec} hole.
    if _is_format_spec(node, context):
        return []

    segment = context.source.segment(node)
    if segment is None:
        return []
    start, text = segment

    spans = []
    for piece in iter_literal_pieces(text):
        if not piece.interpolated:
            continue
        for offset, length in scan_placeholders(piece.body, raw=piece.raw):
            absolute = start + piece.body_start + offset
            line, column = context.source.position(absolute)
            spans.append(InterpolationSpan(
                offset=absolute,
                length=length,
                line=line,
                column=column,
            ))
    return spans
