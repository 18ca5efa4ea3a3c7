"""
Formatting Layer

Translate Diagnostics to text or JSON for the command line.
"""
import json
from typing import Any, Dict, List

from .data_structures import Diagnostic
from .emitter import descriptor_for


def format_diagnostic(diagnostic: Diagnostic) -> str:
    span = diagnostic.span
    return (
        f"{span.file_path}:{span.line}:{span.column}: "
        f"{diagnostic.rule_id} {diagnostic.severity.value}: {diagnostic.message}"
    )


def format_text(diagnostics: List[Diagnostic]) -> str:
    return "\n".join(format_diagnostic(d) for d in diagnostics)


def _as_dict(diagnostic: Diagnostic) -> Dict[str, Any]:
    span = diagnostic.span
    descriptor = descriptor_for(diagnostic.rule_id)
    return {
        "id":         diagnostic.rule_id,
        "severity":   diagnostic.severity.value,
        "message":    diagnostic.message,
        "file":       span.file_path,
        "line":       span.line,
        "column":     span.column,
        "end_line":   span.end_line,
        "end_column": span.end_column,
        "length":     span.length,
        "help_uri":   descriptor.help_uri if descriptor else None,
    }


def format_json(diagnostics: List[Diagnostic]) -> str:
    return json.dumps([_as_dict(d) for d in diagnostics], indent=2)
