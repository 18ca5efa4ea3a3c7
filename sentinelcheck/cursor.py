"""
Syntax Cursor

Pure tree queries over one parsed module: parent links, nearest
enclosing node of a kind, and lazy descendant enumeration.
"""
import ast
from typing import Dict, Iterator, Optional, Tuple, Type, Union

NodeKinds = Union[Type[ast.AST], Tuple[Type[ast.AST], ...]]

# Lambdas are not declarations; a sentinel inside a lambda belongs to
# the function that contains it.
CALLABLE_KINDS = (ast.FunctionDef, ast.AsyncFunctionDef)


def _build_parent_map(tree: ast.AST) -> Dict[ast.AST, ast.AST]:
    parent_map = {}
    for parent in ast.walk(tree):
        for child in ast.iter_child_nodes(parent):
            parent_map[child] = parent
    return parent_map


class Descendants:
    """
    Depth-first, pre-order sequence of descendants matching a kind.

    Each iteration starts a fresh walk, so the sequence can be
    consumed more than once.
    """

    def __init__(self, root: ast.AST, kinds: NodeKinds):
        self._root = root
        self._kinds = kinds

    def __iter__(self) -> Iterator[ast.AST]:
        stack = list(reversed(list(ast.iter_child_nodes(self._root))))
        while stack:
            node = stack.pop()
            if isinstance(node, self._kinds):
                yield node
            stack.extend(reversed(list(ast.iter_child_nodes(node))))


class SyntaxCursor:
    """Parent-aware view of a single syntax tree."""

    def __init__(self, tree: ast.AST):
        self.tree = tree
        self._parents = _build_parent_map(tree)

    def parent(self, node: ast.AST) -> Optional[ast.AST]:
        return self._parents.get(node)

    def ancestors(self, node: ast.AST) -> Iterator[ast.AST]:
        """Yield ancestors from the immediate parent up to the root."""
        current = node
        while current in self._parents:
            current = self._parents[current]
            yield current

    def ancestor_of_kind(self, node: ast.AST, kinds: NodeKinds) -> Optional[ast.AST]:
        """Nearest enclosing node of the given kind, scanning strictly upward."""
        for ancestor in self.ancestors(node):
            if isinstance(ancestor, kinds):
                return ancestor
        return None

    def descendants_of_kind(self, node: ast.AST, kinds: NodeKinds) -> Descendants:
        return Descendants(node, kinds)

    def enclosing_callable(self, node: ast.AST) -> Optional[ast.AST]:
        return self.ancestor_of_kind(node, CALLABLE_KINDS)
