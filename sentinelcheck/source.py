"""
Source text positions.

The ast module reports columns as UTF-8 byte offsets. Diagnostics report
1-based character columns, so every span goes through SourceText.
"""
import ast
import re
from bisect import bisect_right
from typing import List, Optional, Tuple

from .data_structures import SourceSpan

# The same line terminators the tokenizer recognizes.
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class SourceText:
    """Maps ast positions to absolute offsets and back to line/column."""

    def __init__(self, text: str, file_path: str = "<string>"):
        self.text = text
        self.file_path = file_path
        self._line_starts: List[int] = [0]
        self._line_starts.extend(match.end() for match in _LINE_BREAK.finditer(text))

    @property
    def line_count(self) -> int:
        return len(self._line_starts)

    def line_text(self, lineno: int) -> str:
        start = self._line_starts[lineno - 1]
        if lineno < len(self._line_starts):
            return self.text[start:self._line_starts[lineno]]
        return self.text[start:]

    def offset(self, lineno: int, byte_col: int) -> int:
        """Absolute character offset of an ast (lineno, col_offset) pair."""
        if lineno < 1 or lineno > self.line_count:
            raise ValueError(f"Line {lineno} outside of {self.file_path}")
        prefix = self.line_text(lineno).encode("utf-8")[:byte_col]
        return self._line_starts[lineno - 1] + len(prefix.decode("utf-8", errors="replace"))

    def position(self, offset: int) -> Tuple[int, int]:
        """1-based (line, column) of an absolute character offset."""
        index = bisect_right(self._line_starts, offset) - 1
        return index + 1, offset - self._line_starts[index] + 1

    def span(self, start: int, end: int) -> SourceSpan:
        line, column = self.position(start)
        end_line, end_column = self.position(end)
        return SourceSpan(
            file_path=self.file_path,
            line=line,
            column=column,
            end_line=end_line,
            end_column=end_column,
            length=end - start,
        )

    def node_offsets(self, node: ast.AST) -> Optional[Tuple[int, int]]:
        """Absolute (start, end) offsets of a node, or None if unpositioned."""
        end_lineno = getattr(node, "end_lineno", None)
        end_col = getattr(node, "end_col_offset", None)
        if end_lineno is None or end_col is None or not hasattr(node, "lineno"):
            return None
        try:
            return (
                self.offset(node.lineno, node.col_offset),
                self.offset(end_lineno, end_col),
            )
        except ValueError:
            return None

    def node_span(self, node: ast.AST) -> Optional[SourceSpan]:
        offsets = self.node_offsets(node)
        if offsets is None:
            return None
        return self.span(*offsets)

    def segment(self, node: ast.AST) -> Optional[Tuple[int, str]]:
        """Start offset and exact source text of a node."""
        offsets = self.node_offsets(node)
        if offsets is None:
            return None
        start, end = offsets
        return start, self.text[start:end]
