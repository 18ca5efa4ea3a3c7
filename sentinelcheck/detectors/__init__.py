"""
AST Pattern Detector Interfaces

Detectors are pure functions that answer: "Does this pattern exist here?"

Design principles:
- Stateless (no history, no configuration beyond compiled-in constants)
- Node detectors return bool; the match is anchored at the node itself
- Span detectors return every match inside the node, in source order
- No severity or messages; those belong to the emitter

Ambiguity handling:
- If a binding cannot be resolved → no match
- A missed detection is preferable to a false positive
"""
import ast
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..data_structures import InterpolationSpan
from ..resolver import SymbolResolver
from ..source import SourceText


@dataclass(frozen=True)
class DetectorContext:
    """
    Minimal context provided to detectors.

    Everything here is a read-only view over the current module.
    """
    function_node: Optional[ast.AST]  # Nearest enclosing def, if any
    resolver: SymbolResolver
    source: SourceText

    @property
    def in_function(self) -> bool:
        """Check if node is inside a function."""
        return self.function_node is not None


# Detector type signatures
NodeDetector = Callable[[ast.AST, DetectorContext], bool]
SpanDetector = Callable[[ast.AST, DetectorContext], List[InterpolationSpan]]


from .availability import uses_unavailable_work_state
from .interpolation import INTERPOLATED_STRING_KINDS, find_legacy_placeholders, scan_placeholders

__all__ = [
    'DetectorContext',
    'NodeDetector',
    'SpanDetector',
    'INTERPOLATED_STRING_KINDS',
    'find_legacy_placeholders',
    'scan_placeholders',
    'uses_unavailable_work_state',
]
