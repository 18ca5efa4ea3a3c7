"""
Diagnostic Emitter

Turns rule matches into immutable Diagnostic records.
No filtering, no dedup: every match is reported, in source order.
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .data_structures import Diagnostic, Severity, SourceSpan

HELP_URI_BASE = "https://github.com/Faithlife/FaithlifeAnalyzers/wiki"


@dataclass(frozen=True)
class DiagnosticDescriptor:
    rule_id: str
    title: str
    message: str
    severity: Severity
    category: str = "Usage"
    help_uri: Optional[str] = None


AVAILABLE_WORK_STATE = DiagnosticDescriptor(
    rule_id="FL0008",
    title="WorkState.NONE and WorkState.TODO Usage",
    message="WorkState.NONE and WorkState.TODO must not be used when an IWorkState is available.",
    severity=Severity.ERROR,
    help_uri=f"{HELP_URI_BASE}/FL0008",
)

INTERPOLATED_STRING = DiagnosticDescriptor(
    rule_id="FL0009",
    title="Legacy Placeholder in Interpolated String",
    message="Avoid using ${} in interpolated strings.",
    severity=Severity.WARNING,
    help_uri=f"{HELP_URI_BASE}/FL0009",
)

SUPPORTED_DIAGNOSTICS = (AVAILABLE_WORK_STATE, INTERPOLATED_STRING)


def emit(descriptor: DiagnosticDescriptor, span: SourceSpan) -> Diagnostic:
    return Diagnostic(
        rule_id=descriptor.rule_id,
        severity=descriptor.severity,
        message=descriptor.message,
        span=span,
    )


def descriptor_for(rule_id: str) -> Optional[DiagnosticDescriptor]:
    for descriptor in SUPPORTED_DIAGNOSTICS:
        if descriptor.rule_id == rule_id:
            return descriptor
    return None


def sort_diagnostics(diagnostics: Iterable[Diagnostic]) -> List[Diagnostic]:
    """Order by file, then position. Stable, so equal positions keep emission order."""
    return sorted(
        diagnostics,
        key=lambda d: (d.span.file_path, d.span.line, d.span.column),
    )
