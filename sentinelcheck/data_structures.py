"""
Data structures for analysis results and semantic facts.

All structures are immutable and derived from one analysis pass.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class Severity(Enum):
    ERROR   = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class SourceSpan:
    """A range of source text. Lines and columns are 1-based."""

    file_path: str
    line: int
    column: int
    end_line: int
    end_column: int
    length: int

    def contains(self, other: "SourceSpan") -> bool:
        """Check if other lies fully within this span."""
        if other.file_path != self.file_path:
            return False
        starts_after = (other.line, other.column) >= (self.line, self.column)
        ends_before = (other.end_line, other.end_column) <= (self.end_line, self.end_column)
        return starts_after and ends_before


@dataclass(frozen=True)
class TypeRef:
    """
    Resolved reference to a declared type.

    Identity is the fully qualified declaration name, so two classes that
    share a short name in different modules never compare equal.
    Generic arguments are kept in args (e.g. Iterable[AsyncAction]).
    """

    qualname: str
    args: Tuple["TypeRef", ...] = ()

    @property
    def declaration(self) -> "TypeRef":
        """The generic definition, without type arguments."""
        return TypeRef(self.qualname) if self.args else self


@dataclass(frozen=True)
class SymbolRef:
    """
    Resolved reference to a module, type, member, function or variable.

    kind is one of: module, type, member, function, variable, external.
    External symbols live outside the analyzed modules; only their
    qualified name is known.
    """

    kind: str
    qualname: str
    type: Optional[TypeRef] = field(default=None, compare=False)
    declaring_type: Optional[TypeRef] = field(default=None, compare=False)

    @property
    def may_be_type(self) -> bool:
        return self.kind in ("type", "external")


@dataclass(frozen=True)
class InterpolationSpan:
    """A legacy ${...} placeholder found inside an interpolated string."""

    offset: int   # absolute character offset into the source
    length: int   # '$' through the closing '}'
    line: int
    column: int


@dataclass(frozen=True)
class Diagnostic:
    rule_id: str
    severity: Severity
    message: str
    span: SourceSpan

    @property
    def file_path(self) -> str:
        return self.span.file_path
