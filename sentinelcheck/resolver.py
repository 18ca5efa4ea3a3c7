"""
Symbol Resolver

Answers "what does this expression refer to" for the modules of one
Compilation. Scope rules follow the interpreter's:
- function bodies see their own bindings, then enclosing functions,
  then the module, then builtins
- class bodies are not visible from functions nested inside them
- annotations, defaults, decorators and base classes are evaluated
  in the enclosing scope

Ambiguity handling:
- A name bound in several incompatible ways resolves to None
- Star imports, unbound names and failed relative imports resolve to None
- Callers treat None as "skip", never as "not a violation"
"""
import ast
import builtins
import itertools
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Optional, Set, Tuple

from .cursor import SyntaxCursor
from .data_structures import SymbolRef, TypeRef
from .source import SourceText

logger = logging.getLogger(__name__)

_FUNCTION_SCOPES = (ast.FunctionDef, ast.AsyncFunctionDef, ast.Lambda)
_COMPREHENSION_SCOPES = (ast.ListComp, ast.SetComp, ast.DictComp, ast.GeneratorExp)
_SCOPE_NODES = _FUNCTION_SCOPES + (ast.ClassDef,) + _COMPREHENSION_SCOPES

_SCOPE_LABELS = {
    ast.Lambda:       "<lambda>",
    ast.ListComp:     "<listcomp>",
    ast.SetComp:      "<setcomp>",
    ast.DictComp:     "<dictcomp>",
    ast.GeneratorExp: "<genexpr>",
}

# `type X = Y` statements, Python 3.12+
_TYPE_ALIAS = getattr(ast, "TypeAlias", None)

OPTIONAL_TYPES = frozenset({"typing.Optional", "typing_extensions.Optional"})
UNION_TYPES = frozenset({"typing.Union", "typing_extensions.Union"})


def _scope_label(node: ast.AST) -> Optional[str]:
    if isinstance(node, (ast.ClassDef, ast.FunctionDef, ast.AsyncFunctionDef)):
        return node.name
    return _SCOPE_LABELS.get(type(node))


def iter_arguments(arguments: ast.arguments) -> Iterator[ast.arg]:
    yield from arguments.posonlyargs
    yield from arguments.args
    if arguments.vararg is not None:
        yield arguments.vararg
    yield from arguments.kwonlyargs
    if arguments.kwarg is not None:
        yield arguments.kwarg


def _is_none(node: ast.AST) -> bool:
    if isinstance(node, ast.Constant):
        return node.value is None or node.value == "None"
    return False


def _flatten_union(node: ast.AST) -> List[ast.AST]:
    """Operands of an `A | B | C` annotation."""
    if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
        return _flatten_union(node.left) + _flatten_union(node.right)
    return [node]


@dataclass
class ModuleInfo:
    """One parsed module of a Compilation."""

    name: str
    source: SourceText
    tree: ast.Module
    is_package: bool = False
    cursor: SyntaxCursor = field(init=False)
    class_names: Dict[ast.ClassDef, str] = field(init=False, default_factory=dict)

    def __post_init__(self):
        self.cursor = SyntaxCursor(self.tree)

    @property
    def file_path(self) -> str:
        return self.source.file_path

    def qualname_of(self, node: ast.AST) -> str:
        """Dotted name of a class or function, in __qualname__ style."""
        parts = []
        for current in itertools.chain([node], self.cursor.ancestors(node)):
            label = _scope_label(current)
            if label is None:
                continue
            if current is node or isinstance(current, ast.ClassDef):
                parts.append(label)
            else:
                parts.append(f"{label}.<locals>")
        parts.append(self.name)
        return ".".join(reversed(parts))


@dataclass
class _Binding:
    kind: str  # import, class, function, alias, variable
    node: ast.AST
    target: Optional[str] = None       # fully qualified import target
    value: Optional[ast.AST] = None    # alias value, or variable annotation


@dataclass
class _ScopeBindings:
    names: Dict[str, List[_Binding]] = field(default_factory=dict)
    global_names: Set[str] = field(default_factory=set)
    nonlocal_names: Set[str] = field(default_factory=set)
    star_import: bool = False

    def add(self, name: str, binding: _Binding) -> None:
        self.names.setdefault(name, []).append(binding)


class Compilation:
    """
    The set of modules analyzed together.

    Class declarations are indexed by qualified name so that base
    classes and re-exports can be followed across modules.
    """

    def __init__(self):
        self._modules: Dict[str, ModuleInfo] = {}
        self._classes: Dict[str, Tuple[ModuleInfo, ast.ClassDef]] = {}
        self._resolvers: Dict[str, "SymbolResolver"] = {}
        # Re-entrancy guard for alias and re-export chains.
        self.active_lookups: Set[Tuple[str, int, str]] = set()

    @classmethod
    def from_sources(cls, sources: Mapping[str, str]) -> "Compilation":
        compilation = cls()
        for name, text in sources.items():
            compilation.add_module(name, text)
        return compilation

    @property
    def modules(self) -> List[ModuleInfo]:
        return list(self._modules.values())

    def add_module(
        self,
        name: str,
        text: str,
        file_path: Optional[str] = None,
        is_package: bool = False,
    ) -> ModuleInfo:
        """
        Parse and index one module.

        Raises SyntaxError (or ValueError for null bytes) when the
        source does not parse, and ValueError for a duplicate name.
        """
        if name in self._modules:
            raise ValueError(f"Duplicate module: {name}")

        file_path = file_path or name.replace(".", "/") + ".py"
        tree = ast.parse(text, filename=file_path)
        module = ModuleInfo(
            name=name,
            source=SourceText(text, file_path),
            tree=tree,
            is_package=is_package,
        )
        for node in module.cursor.descendants_of_kind(tree, ast.ClassDef):
            qualname = module.qualname_of(node)
            module.class_names[node] = qualname
            self._classes.setdefault(qualname, (module, node))

        self._modules[name] = module
        return module

    def module(self, name: str) -> Optional[ModuleInfo]:
        return self._modules.get(name)

    def has_module(self, name: str) -> bool:
        return name in self._modules

    def class_declaration(self, qualname: str) -> Optional[Tuple[ModuleInfo, ast.ClassDef]]:
        return self._classes.get(qualname)

    def resolver(self, module_name: str) -> "SymbolResolver":
        if module_name not in self._resolvers:
            self._resolvers[module_name] = SymbolResolver(self, self._modules[module_name])
        return self._resolvers[module_name]

    def resolve_qualified(self, qualname: str) -> Optional[SymbolRef]:
        """Resolve an import target such as `pkg.mod.Name`."""
        if qualname in self._modules:
            return SymbolRef("module", qualname)
        if qualname in self._classes:
            return SymbolRef("type", qualname)

        module_name, _, attr = qualname.rpartition(".")
        if module_name in self._modules:
            # Re-exports: follow the binding inside the providing module.
            return self.resolver(module_name).module_attribute(attr)
        return SymbolRef("external", qualname)

    def base_types(self, qualname: str) -> Optional[List[TypeRef]]:
        """
        Declared bases of a class in this compilation, generic
        arguments stripped. None for classes declared elsewhere.
        """
        declaration = self._classes.get(qualname)
        if declaration is None:
            return None

        module, node = declaration
        resolver = self.resolver(module.name)
        bases = []
        for base in node.bases:
            if isinstance(base, ast.Subscript):
                base = base.value
            base_type = resolver.type_of(base)
            if base_type is not None:
                bases.append(base_type)
        return bases

    def member_of(self, owner: SymbolRef, attr: str) -> Optional[SymbolRef]:
        """Resolve the static attribute access `owner.attr`."""
        if owner.kind == "module":
            return self.resolver(owner.qualname).module_attribute(attr)
        if owner.kind == "type":
            return self._class_member(owner.qualname, attr)
        if owner.kind == "external":
            return SymbolRef(
                "external",
                f"{owner.qualname}.{attr}",
                declaring_type=TypeRef(owner.qualname),
            )
        # Attribute access on variables and functions is not static.
        return None

    def _class_member(self, qualname: str, attr: str) -> Optional[SymbolRef]:
        seen: Set[str] = set()
        queue = [qualname]
        while queue:
            current = queue.pop(0)
            if current in seen:
                continue
            seen.add(current)

            declaration = self._classes.get(current)
            if declaration is None:
                if current == "builtins.object":
                    continue
                # Declared outside the compilation; trust the name.
                return SymbolRef(
                    "member",
                    f"{current}.{attr}",
                    declaring_type=TypeRef(current),
                )

            module, node = declaration
            resolver = self.resolver(module.name)
            bindings = resolver.bindings(node)
            if attr in bindings.names:
                symbol = resolver.resolve_bindings(attr, node, bindings.names[attr])
                if symbol is None or symbol.kind == "type":
                    return symbol
                return SymbolRef(
                    "member",
                    f"{current}.{attr}",
                    type=symbol.type,
                    declaring_type=TypeRef(current),
                )

            queue.extend(base.qualname for base in self.base_types(current) or [])

        return None


class SymbolResolver:
    """Resolves names, attributes and annotations within one module."""

    def __init__(self, compilation: Compilation, module: ModuleInfo):
        self._compilation = compilation
        self.module = module
        self._bindings: Dict[ast.AST, _ScopeBindings] = {}

    # Public queries

    def resolve(self, node: ast.AST) -> Optional[SymbolRef]:
        """What a Name or Attribute expression refers to, or None."""
        return self._resolve_expr(node, self._scope_chain(node))

    def type_of(self, node: ast.AST) -> Optional[TypeRef]:
        """The declared type an annotation expression denotes, or None."""
        return self._type_of(node, self._scope_chain(node))

    def implements_capability(self, type_ref: TypeRef, capability: TypeRef) -> bool:
        """
        Check if type_ref is capability or derives from it.

        Walks the transitive closure of declared bases; a visited set
        keeps cyclic hierarchies finite.
        """
        target = capability.qualname
        seen: Set[str] = set()
        stack = [type_ref.qualname]
        while stack:
            current = stack.pop()
            if current == target:
                return True
            if current in seen:
                continue
            seen.add(current)
            stack.extend(base.qualname for base in self._compilation.base_types(current) or [])
        return False

    def module_attribute(self, attr: str) -> Optional[SymbolRef]:
        """Resolve `module.attr` from outside this module."""
        symbol = self._lookup(attr, [self.module.tree], include_builtins=False)
        if symbol is not None:
            return symbol
        submodule = f"{self.module.name}.{attr}"
        if self._compilation.has_module(submodule):
            return SymbolRef("module", submodule)
        return None

    # Scopes

    def _scope_chain(self, node: ast.AST) -> List[ast.AST]:
        """Scopes visible from node, innermost first, module last."""
        chain: List[ast.AST] = []
        grandchild: Optional[ast.AST] = None
        child = node
        for parent in self.module.cursor.ancestors(node):
            if isinstance(parent, _FUNCTION_SCOPES):
                body = parent.body if isinstance(parent.body, list) else [parent.body]
                if any(child is statement for statement in body):
                    chain.append(parent)
            elif isinstance(parent, ast.ClassDef):
                if not chain and any(child is statement for statement in parent.body):
                    chain.append(parent)
            elif isinstance(parent, _COMPREHENSION_SCOPES):
                first = parent.generators[0]
                if not (child is first and grandchild is first.iter):
                    chain.append(parent)
            grandchild, child = child, parent
        chain.append(self.module.tree)
        return chain

    def bindings(self, scope: ast.AST) -> _ScopeBindings:
        if scope not in self._bindings:
            self._bindings[scope] = self._collect_bindings(scope)
        return self._bindings[scope]

    def _collect_bindings(self, scope: ast.AST) -> _ScopeBindings:
        bindings = _ScopeBindings()

        if isinstance(scope, _FUNCTION_SCOPES):
            for arg in iter_arguments(scope.args):
                bindings.add(arg.arg, _Binding("variable", arg, value=arg.annotation))
            roots = scope.body if isinstance(scope.body, list) else [scope.body]
        elif isinstance(scope, _COMPREHENSION_SCOPES):
            for generator in scope.generators:
                for node in ast.walk(generator.target):
                    if isinstance(node, ast.Name):
                        bindings.add(node.id, _Binding("variable", node))
            roots = []
        else:
            roots = scope.body

        in_class = isinstance(scope, ast.ClassDef)
        stack = list(reversed(roots))
        while stack:
            node = stack.pop()
            descend = self._bind(node, bindings, in_class)
            if descend and not isinstance(node, _SCOPE_NODES):
                stack.extend(reversed(list(ast.iter_child_nodes(node))))
        return bindings

    def _bind(self, node: ast.AST, bindings: _ScopeBindings, in_class: bool) -> bool:
        """Record the bindings node introduces. Returns False to skip its children."""
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            bindings.add(node.name, _Binding("function", node))
        elif isinstance(node, ast.ClassDef):
            bindings.add(node.name, _Binding("class", node))
        elif isinstance(node, ast.Import):
            for alias in node.names:
                if alias.asname:
                    bindings.add(alias.asname, _Binding("import", node, target=alias.name))
                else:
                    top = alias.name.partition(".")[0]
                    bindings.add(top, _Binding("import", node, target=top))
        elif isinstance(node, ast.ImportFrom):
            base = self._absolute_module(node)
            for alias in node.names:
                if alias.name == "*":
                    bindings.star_import = True
                    continue
                target = f"{base}.{alias.name}" if base else None
                bindings.add(alias.asname or alias.name, _Binding("import", node, target=target))
        elif (
            isinstance(node, ast.Assign)
            and not in_class
            and len(node.targets) == 1
            and isinstance(node.targets[0], ast.Name)
            and isinstance(node.value, (ast.Name, ast.Attribute))
        ):
            bindings.add(node.targets[0].id, _Binding("alias", node, value=node.value))
            return False
        elif isinstance(node, ast.AnnAssign):
            if isinstance(node.target, ast.Name):
                bindings.add(node.target.id, _Binding("variable", node, value=node.annotation))
                return False
        elif _TYPE_ALIAS is not None and isinstance(node, _TYPE_ALIAS):
            bindings.add(node.name.id, _Binding("alias", node, value=node.value))
            return False
        elif isinstance(node, ast.Global):
            bindings.global_names.update(node.names)
        elif isinstance(node, ast.Nonlocal):
            bindings.nonlocal_names.update(node.names)
        elif isinstance(node, ast.Name) and isinstance(node.ctx, ast.Store):
            bindings.add(node.id, _Binding("variable", node))
        elif isinstance(node, ast.ExceptHandler) and node.name:
            bindings.add(node.name, _Binding("variable", node))
        elif isinstance(node, (ast.MatchAs, ast.MatchStar)) and node.name:
            bindings.add(node.name, _Binding("variable", node))
        elif isinstance(node, ast.MatchMapping) and node.rest:
            bindings.add(node.rest, _Binding("variable", node))
        return True

    def _absolute_module(self, node: ast.ImportFrom) -> Optional[str]:
        if node.level == 0:
            return node.module

        parts = self.module.name.split(".")
        if not self.module.is_package:
            parts = parts[:-1]
        drop = node.level - 1
        if drop > len(parts):
            logger.debug("Relative import beyond top-level package in %s", self.module.name)
            return None
        if drop:
            parts = parts[:-drop]

        base = ".".join(parts)
        if node.module:
            base = f"{base}.{node.module}" if base else node.module
        return base or None

    # Resolution

    def _lookup(
        self,
        name: str,
        chain: List[ast.AST],
        include_builtins: bool = True,
    ) -> Optional[SymbolRef]:
        for scope in chain:
            bindings = self.bindings(scope)
            if name in bindings.global_names:
                return self._lookup(name, chain[-1:], include_builtins)
            if name in bindings.nonlocal_names:
                continue
            if name in bindings.names:
                return self.resolve_bindings(name, scope, bindings.names[name])
            if bindings.star_import:
                return None

        if include_builtins and hasattr(builtins, name):
            return SymbolRef("external", f"builtins.{name}")
        return None

    def resolve_bindings(
        self,
        name: str,
        scope: ast.AST,
        candidates: List[_Binding],
    ) -> Optional[SymbolRef]:
        key = (self.module.name, id(scope), name)
        if key in self._compilation.active_lookups:
            return None

        self._compilation.active_lookups.add(key)
        try:
            symbols = [self._resolve_binding(name, scope, binding) for binding in candidates]
        finally:
            self._compilation.active_lookups.discard(key)

        if any(symbol is None for symbol in symbols):
            return None
        if any(symbol != symbols[0] for symbol in symbols[1:]):
            logger.debug("Ambiguous binding for %r in %s", name, self.module.name)
            return None
        typed = [symbol for symbol in symbols if symbol.type is not None]
        return typed[0] if typed else symbols[0]

    def _resolve_binding(self, name: str, scope: ast.AST, binding: _Binding) -> Optional[SymbolRef]:
        if binding.kind == "import":
            if binding.target is None:
                return None
            return self._compilation.resolve_qualified(binding.target)
        if binding.kind == "class":
            return SymbolRef("type", self.module.class_names[binding.node])
        if binding.kind == "function":
            return SymbolRef("function", self.module.qualname_of(binding.node))
        if binding.kind == "alias":
            return self._resolve_expr(binding.value, self._scope_chain(binding.node))

        type_ref = None
        if binding.value is not None:
            type_ref = self._type_of(binding.value, self._scope_chain(binding.value))
        return SymbolRef(
            "variable",
            f"{self._binding_prefix(scope)}.{name}",
            type=type_ref,
        )

    def _binding_prefix(self, scope: ast.AST) -> str:
        if isinstance(scope, ast.Module):
            return self.module.name
        if isinstance(scope, ast.ClassDef):
            return self.module.class_names[scope]
        return f"{self.module.qualname_of(scope)}.<locals>"

    def _resolve_expr(self, node: ast.AST, chain: List[ast.AST]) -> Optional[SymbolRef]:
        # Walk a.b.c down to its base name, then resolve outward.
        attrs = []
        while isinstance(node, ast.Attribute):
            attrs.append(node.attr)
            node = node.value
        if not isinstance(node, ast.Name):
            return None

        symbol = self._lookup(node.id, chain)
        for attr in reversed(attrs):
            if symbol is None:
                return None
            symbol = self._compilation.member_of(symbol, attr)
        return symbol

    def _type_of(self, node: ast.AST, chain: List[ast.AST]) -> Optional[TypeRef]:
        if isinstance(node, ast.Constant):
            if not isinstance(node.value, str):
                return None
            # Forward reference: resolve the quoted annotation in place.
            try:
                parsed = ast.parse(node.value.strip(), mode="eval").body
            except SyntaxError:
                return None
            return self._type_of(parsed, chain)

        if isinstance(node, (ast.Name, ast.Attribute)):
            symbol = self._resolve_expr(node, chain)
            if symbol is None or not symbol.may_be_type:
                return None
            return TypeRef(symbol.qualname)

        if isinstance(node, ast.Subscript):
            base = self._type_of(node.value, chain)
            if base is None:
                return None
            items = node.slice.elts if isinstance(node.slice, ast.Tuple) else [node.slice]
            if base.qualname in OPTIONAL_TYPES:
                return self._type_of(items[0], chain) if len(items) == 1 else None
            if base.qualname in UNION_TYPES:
                return self._single_non_none(items, chain)
            args = []
            for item in items:
                arg = self._type_of(item, chain)
                if arg is None:
                    return None
                args.append(arg)
            return TypeRef(base.qualname, tuple(args))

        if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
            return self._single_non_none(_flatten_union(node), chain)

        return None

    def _single_non_none(self, items: List[ast.AST], chain: List[ast.AST]) -> Optional[TypeRef]:
        """Unwrap Optional-style unions; real unions have no single type."""
        remaining = [item for item in items if not _is_none(item)]
        if len(remaining) != 1:
            return None
        return self._type_of(remaining[0], chain)
