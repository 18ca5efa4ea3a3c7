"""
Work-state availability detector.

VIOLATION PATTERN: WorkState.NONE or WorkState.TODO used inside a
function that can reach a live work state.

A live work state is reachable when the enclosing function either
- takes a parameter that is an IWorkState (directly or through its
  bases), a CancellationToken or an AsyncMethodContext, or
- returns Iterable[AsyncAction]; each action is handed a work state
  when it runs.

Types are compared by resolved declaration, never by spelling.
"""
import ast
import logging

from . import DetectorContext
from ..data_structures import TypeRef
from .utils import is_load, parameter_types, return_type

logger = logging.getLogger(__name__)

_THREADING = "libronix.utility.threading"

WORK_STATE_INTERFACE = TypeRef(f"{_THREADING}.IWorkState")
WORK_STATE_CLASS     = TypeRef(f"{_THREADING}.WorkState")
CANCELLATION_TOKEN   = TypeRef(f"{_THREADING}.CancellationToken")
ASYNC_METHOD_CONTEXT = TypeRef(f"{_THREADING}.AsyncMethodContext")
ASYNC_ACTION         = TypeRef(f"{_THREADING}.AsyncAction")

SENTINEL_MEMBERS = frozenset({
    f"{WORK_STATE_CLASS.qualname}.NONE",
    f"{WORK_STATE_CLASS.qualname}.TODO",
})

# typing.Iterable is an alias of collections.abc.Iterable.
SEQUENCE_TYPES = frozenset({"typing.Iterable", "collections.abc.Iterable"})

# Accepted as-is; IWorkState is also accepted through inheritance.
TOKEN_TYPES = frozenset({CANCELLATION_TOKEN, ASYNC_METHOD_CONTEXT})


def is_sentinel_access(node: ast.AST, context: DetectorContext) -> bool:
    """
    Check if node is the static access WorkState.NONE or WorkState.TODO.

    Access through an instance (ws.NONE) or through a name that does
    not resolve is not a sentinel access.
    """
    if not isinstance(node, ast.Attribute) or not is_load(node):
        return False

    holder = context.resolver.resolve(node.value)
    if holder is None or not holder.may_be_type:
        return False
    if holder.qualname != WORK_STATE_CLASS.qualname:
        return False

    member = context.resolver.resolve(node)
    if member is None:
        return False
    return member.qualname in SENTINEL_MEMBERS


def returns_async_actions(func_node: ast.AST, context: DetectorContext) -> bool:
    """Check if the function is declared to return Iterable[AsyncAction]."""
    returned = return_type(func_node, context.resolver)
    if returned is None or returned.qualname not in SEQUENCE_TYPES:
        return False
    return returned.args == (ASYNC_ACTION,)


def has_work_state_parameter(func_node: ast.AST, context: DetectorContext) -> bool:
    """Check if any parameter can supply a live work state."""
    for type_ref in parameter_types(func_node, context.resolver):
        declaration = type_ref.declaration
        if declaration in TOKEN_TYPES:
            return True
        if context.resolver.implements_capability(declaration, WORK_STATE_INTERFACE):
            return True
    return False


def uses_unavailable_work_state(node: ast.AST, context: DetectorContext) -> bool:
    """
    Detect a sentinel work state used where a real one is available.

    Returns False outside of functions: no function, no proof.
    """
    if not is_sentinel_access(node, context):
        return False

    if not context.in_function:
        logger.debug("Sentinel access outside a function at line %d", node.lineno)
        return False

    func = context.function_node
    return returns_async_actions(func, context) or has_work_state_parameter(func, context)
