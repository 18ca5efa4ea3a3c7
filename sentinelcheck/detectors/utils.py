"""
Stateless utility functions for detectors.

These are pure helper functions, not class methods.
Detectors use these as needed but remain standalone.
"""
import ast
from typing import Iterator, List, Optional

from ..data_structures import TypeRef
from ..resolver import SymbolResolver, iter_arguments


def iter_parameters(func_node: ast.AST) -> Iterator[ast.arg]:
    """
    Yield every declared parameter of a function.

    Order: positional-only, regular, *args, keyword-only, **kwargs.
    """
    return iter_arguments(func_node.args)


def parameter_types(func_node: ast.AST, resolver: SymbolResolver) -> List[TypeRef]:
    """
    Resolved types of the annotated parameters of a function.

    Unannotated parameters (self, cls) and annotations that do not
    resolve are left out.
    """
    types = []
    for arg in iter_parameters(func_node):
        if arg.annotation is None:
            continue
        type_ref = resolver.type_of(arg.annotation)
        if type_ref is not None:
            types.append(type_ref)
    return types


def return_type(func_node: ast.AST, resolver: SymbolResolver) -> Optional[TypeRef]:
    if func_node.returns is None:
        return None
    return resolver.type_of(func_node.returns)


def is_load(node: ast.AST) -> bool:
    return isinstance(getattr(node, "ctx", None), ast.Load)
