"""
Orchestrator

Glue layer. Wires cursor, resolver, detectors and emitter together.
No rule logic here.
"""
import ast
import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from .data_structures import Diagnostic
from .detectors import (
    INTERPOLATED_STRING_KINDS,
    DetectorContext,
    find_legacy_placeholders,
    uses_unavailable_work_state,
)
from .emitter import AVAILABLE_WORK_STATE, INTERPOLATED_STRING, emit, sort_diagnostics
from .git_files import list_python_files
from .resolver import Compilation, ModuleInfo, SymbolResolver

logger = logging.getLogger(__name__)


_NODE_DETECTORS = {
    AVAILABLE_WORK_STATE: ((ast.Attribute,), uses_unavailable_work_state),
}

_SPAN_DETECTORS = {
    INTERPOLATED_STRING: (INTERPOLATED_STRING_KINDS, find_legacy_placeholders),
}

_KINDS_OF_INTEREST = (ast.Attribute,) + INTERPOLATED_STRING_KINDS


def _build_detector_context(
    node: ast.AST,
    module: ModuleInfo,
    resolver: SymbolResolver,
) -> DetectorContext:
    return DetectorContext(
        function_node=module.cursor.enclosing_callable(node),
        resolver=resolver,
        source=module.source,
    )


def module_name_for(relative: Path) -> Tuple[str, bool]:
    """
    Dotted module name for a file path relative to the project root.

    A leading src/ directory is dropped; __init__.py names its package.
    """
    parts = list(relative.with_suffix("").parts)
    if len(parts) > 1 and parts[0] == "src":
        parts = parts[1:]
    is_package = len(parts) > 1 and parts[-1] == "__init__"
    if is_package:
        parts = parts[:-1]
    return ".".join(parts), is_package


def _analyze_node(node: ast.AST, module: ModuleInfo, resolver: SymbolResolver) -> List[Diagnostic]:
    context = _build_detector_context(node, module, resolver)
    diagnostics = []

    for descriptor, (kinds, detector) in _NODE_DETECTORS.items():
        if isinstance(node, kinds) and detector(node, context):
            span = module.source.node_span(node)
            if span is not None:
                diagnostics.append(emit(descriptor, span))

    for descriptor, (kinds, detector) in _SPAN_DETECTORS.items():
        if not isinstance(node, kinds):
            continue
        for match in detector(node, context):
            span = module.source.span(match.offset, match.offset + match.length)
            diagnostics.append(emit(descriptor, span))

    return diagnostics


def analyze_module(module: ModuleInfo, compilation: Compilation) -> List[Diagnostic]:
    resolver = compilation.resolver(module.name)
    diagnostics = []

    for node in module.cursor.descendants_of_kind(module.tree, _KINDS_OF_INTEREST):
        try:
            diagnostics.extend(_analyze_node(node, module, resolver))
        except RecursionError:
            logger.debug(
                "Skipping node nested too deeply at %s:%d",
                module.file_path,
                getattr(node, "lineno", 0),
            )
            continue

    return sort_diagnostics(diagnostics)


def analyze_compilation(compilation: Compilation) -> List[Diagnostic]:
    diagnostics = []
    for module in compilation.modules:
        diagnostics.extend(analyze_module(module, compilation))
    logger.info(
        "Analyzed %d module(s), %d diagnostic(s)",
        len(compilation.modules),
        len(diagnostics),
    )
    return diagnostics


def analyze_source(
    source: str,
    file_path: str = "<string>",
    module_name: str = "__main__",
) -> List[Diagnostic]:
    """
    Analyze a single snippet.

    Raises SyntaxError if the snippet does not parse.
    """
    compilation = Compilation()
    compilation.add_module(module_name, source, file_path=file_path)
    return analyze_compilation(compilation)


def _analyze_paths(entries: Sequence[Tuple[Path, str]], root: Path) -> List[Diagnostic]:
    compilation = Compilation()

    for path, display_path in entries:
        name, is_package = module_name_for(path.relative_to(root))
        try:
            source = path.read_text(encoding="utf-8")
            compilation.add_module(name, source, file_path=display_path, is_package=is_package)
        except (SyntaxError, UnicodeDecodeError, ValueError, RecursionError) as e:
            logger.debug("Skipping %s: %s", display_path, e)
            continue

    return analyze_compilation(compilation)


def analyze_files(paths: Iterable[Path], root: Optional[Path] = None) -> List[Diagnostic]:
    """
    Analyze explicit files as one compilation.

    Module names are taken relative to root, which defaults to the
    deepest directory containing every file. Files that cannot be read
    or parsed are skipped.
    """
    given = [Path(p) for p in paths]
    if not given:
        return []

    resolved = [p.resolve() for p in given]
    if root is None:
        root = Path(os.path.commonpath([str(p.parent) for p in resolved]))
    else:
        root = Path(root).resolve()

    entries = [(path, str(original)) for path, original in zip(resolved, given)]
    return _analyze_paths(entries, root)


def analyze_repo(path: Path) -> List[Diagnostic]:
    """
    Analyze the Python files of a Git working tree.

    Raises ValueError if path is not inside a Git repository.
    """
    repo_path = Path(path).resolve()
    files = list_python_files(str(repo_path))

    entries = [(repo_path / relative, str(relative)) for relative in files]
    return _analyze_paths(entries, repo_path)
