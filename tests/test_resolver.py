"""
Tests for sentinelcheck.resolver.

Name binding, imports, annotations and class hierarchies.
"""
import ast
import sys
import textwrap
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from sentinelcheck.data_structures import TypeRef
from sentinelcheck.resolver import Compilation


def _compile(**sources):
    return Compilation.from_sources({
        name.replace("__", "."): textwrap.dedent(text)
        for name, text in sources.items()
    })


def _loads(compilation, module_name, identifier):
    """Load-context Name nodes with the given id, in walk order."""
    tree = compilation.module(module_name).tree
    return [
        node for node in ast.walk(tree)
        if isinstance(node, ast.Name)
        and node.id == identifier
        and isinstance(node.ctx, ast.Load)
    ]


def _resolve(compilation, module_name, identifier, index=0):
    node = _loads(compilation, module_name, identifier)[index]
    return compilation.resolver(module_name).resolve(node)


def _annotation(compilation, module_name, function_name, parameter):
    tree = compilation.module(module_name).tree
    func = next(
        node for node in ast.walk(tree)
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef))
        and node.name == function_name
    )
    arg = next(a for a in func.args.args + func.args.kwonlyargs if a.arg == parameter)
    return compilation.resolver(module_name).type_of(arg.annotation)


class TestCompilation:

    def test_duplicate_module_is_rejected(self):
        compilation = Compilation()
        compilation.add_module("app", "x = 1\n")
        with pytest.raises(ValueError):
            compilation.add_module("app", "x = 2\n")

    def test_syntax_error_propagates(self):
        with pytest.raises(SyntaxError):
            Compilation.from_sources({"app": "def broken(:\n"})

    def test_default_file_path(self):
        compilation = _compile(app__jobs="x = 1\n")
        assert compilation.module("app.jobs").file_path == "app/jobs.py"

    def test_class_qualnames(self):
        compilation = _compile(app="""
            class Outer:
                class Inner:
                    pass

            def factory():
                class Local:
                    pass
        """)

        assert compilation.class_declaration("app.Outer") is not None
        assert compilation.class_declaration("app.Outer.Inner") is not None
        assert compilation.class_declaration("app.factory.<locals>.Local") is not None
        assert compilation.class_declaration("app.Local") is None


class TestNames:

    def test_import_alias(self):
        compilation = _compile(app="""
            import collections.abc as cabc
            value = cabc
        """)
        symbol = _resolve(compilation, "app", "cabc")

        assert symbol.kind == "external"
        assert symbol.qualname == "collections.abc"

    def test_from_import_alias(self):
        compilation = _compile(app="""
            from typing import Iterable as Seq
            value = Seq
        """)
        assert _resolve(compilation, "app", "Seq").qualname == "typing.Iterable"

    def test_builtins(self):
        compilation = _compile(app="value = int\n")
        symbol = _resolve(compilation, "app", "int")

        assert symbol.kind == "external"
        assert symbol.qualname == "builtins.int"

    def test_unbound_name(self):
        compilation = _compile(app="value = missing\n")
        assert _resolve(compilation, "app", "missing") is None

    def test_star_import_hides_everything(self):
        compilation = _compile(app="""
            from somewhere import *
            value = Thing
        """)
        assert _resolve(compilation, "app", "Thing") is None

    def test_local_variable_shadows_import(self):
        compilation = _compile(app="""
            from library import Thing

            def run(Thing):
                return Thing
        """)
        symbol = _resolve(compilation, "app", "Thing")

        assert symbol.kind == "variable"
        assert not symbol.may_be_type
        assert symbol.qualname == "app.run.<locals>.Thing"

    def test_class_body_not_visible_from_methods(self):
        compilation = _compile(app="""
            class Config:
                Base = dict

                def method(self):
                    return Base
        """)
        assert _resolve(compilation, "app", "Base") is None

    def test_global_declaration_defers_to_module(self):
        compilation = _compile(app="""
            from library import Thing

            def run():
                global Thing
                Thing = None
                return Thing
        """)
        symbol = _resolve(compilation, "app", "Thing")

        assert symbol.kind == "external"
        assert symbol.qualname == "library.Thing"

    def test_conflicting_bindings_are_ambiguous(self):
        compilation = _compile(app="""
            if flag:
                from first import Thing
            else:
                from second import Thing
            value = Thing
        """)
        assert _resolve(compilation, "app", "Thing") is None

    def test_repeated_identical_imports_agree(self):
        compilation = _compile(app="""
            try:
                from library import Thing
            except ImportError:
                from library import Thing
            value = Thing
        """)
        assert _resolve(compilation, "app", "Thing").qualname == "library.Thing"

    def test_module_alias_assignment(self):
        compilation = _compile(app="""
            from library import Thing
            Alias = Thing
            value = Alias
        """)
        assert _resolve(compilation, "app", "Alias").qualname == "library.Thing"

    def test_alias_cycle_terminates(self):
        compilation = _compile(app="""
            First = Second
            Second = First
            value = First
        """)
        assert _resolve(compilation, "app", "First", index=1) is None

    def test_comprehension_variable(self):
        compilation = _compile(app="""
            items = []
            values = [item for item in items]
        """)
        symbol = _resolve(compilation, "app", "item")

        assert symbol.kind == "variable"


class TestImportsAcrossModules:

    def test_relative_import(self):
        compilation = Compilation()
        compilation.add_module("pkg", "", is_package=True)
        compilation.add_module("pkg.models", "class Model:\n    pass\n")
        compilation.add_module("pkg.views", "from .models import Model\nvalue = Model\n")

        symbol = _resolve(compilation, "pkg.views", "Model")
        assert symbol.kind == "type"
        assert symbol.qualname == "pkg.models.Model"

    def test_relative_import_from_package(self):
        compilation = Compilation()
        compilation.add_module("pkg", "from .models import Model\nvalue = Model\n", is_package=True)
        compilation.add_module("pkg.models", "class Model:\n    pass\n")

        assert _resolve(compilation, "pkg", "Model").qualname == "pkg.models.Model"

    def test_relative_import_beyond_top_level(self):
        compilation = _compile(top="from .. import thing\nvalue = thing\n")
        assert _resolve(compilation, "top", "thing") is None

    def test_reexport_is_followed(self):
        compilation = _compile(
            pkg__models="class Model:\n    pass\n",
            pkg="from pkg.models import Model\n",
            app="from pkg import Model\nvalue = Model\n",
        )
        assert _resolve(compilation, "app", "Model").qualname == "pkg.models.Model"

    def test_dotted_access_to_submodule(self):
        compilation = _compile(
            pkg="",
            pkg__models="class Model:\n    pass\n",
            app="import pkg.models\nvalue = pkg.models.Model\n",
        )
        tree = compilation.module("app").tree
        attribute = next(
            node for node in ast.walk(tree)
            if isinstance(node, ast.Attribute) and node.attr == "Model"
        )
        symbol = compilation.resolver("app").resolve(attribute)

        assert symbol.kind == "type"
        assert symbol.qualname == "pkg.models.Model"

    def test_long_attribute_chain(self):
        compilation = _compile(app="import library\nvalue = library" + ".b" * 1500 + "\n")
        chain = compilation.module("app").tree.body[1].value
        symbol = compilation.resolver("app").resolve(chain)

        assert symbol.kind == "external"
        assert symbol.qualname == "library" + ".b" * 1500

    def test_missing_member_of_declared_class(self):
        compilation = _compile(
            lib="class Holder:\n    PRESENT = 1\n",
            app="from lib import Holder\n",
        )
        holder = compilation.resolve_qualified("lib.Holder")

        assert compilation.member_of(holder, "PRESENT").qualname == "lib.Holder.PRESENT"
        assert compilation.member_of(holder, "ABSENT") is None

    def test_inherited_member(self):
        compilation = _compile(lib="""
            class Base:
                SHARED = 1

            class Child(Base):
                pass
        """)
        member = compilation.member_of(compilation.resolve_qualified("lib.Child"), "SHARED")

        assert member.qualname == "lib.Base.SHARED"

    def test_external_members_are_trusted(self):
        compilation = _compile(app="x = 1\n")
        owner = compilation.resolve_qualified("vendor.Holder")
        member = compilation.member_of(owner, "ANY")

        assert member.qualname == "vendor.Holder.ANY"
        assert member.declaring_type == TypeRef("vendor.Holder")


class TestAnnotations:

    SOURCE = """
        from typing import Iterable, Optional, Union
        from library import Token, Other

        def run(
            plain: Token,
            optional: Optional[Token],
            pipe: Token | None,
            quoted: "Token",
            union: Union[Token, Other],
            generic: Iterable[Token],
            unknown: Missing,
            number: 3,
        ):
            pass
    """

    def _type(self, parameter):
        compilation = _compile(app=self.SOURCE)
        return _annotation(compilation, "app", "run", parameter)

    def test_plain(self):
        assert self._type("plain") == TypeRef("library.Token")

    def test_optional_is_unwrapped(self):
        assert self._type("optional") == TypeRef("library.Token")
        assert self._type("pipe") == TypeRef("library.Token")

    def test_forward_reference(self):
        assert self._type("quoted") == TypeRef("library.Token")

    def test_real_union_has_no_single_type(self):
        assert self._type("union") is None

    def test_generic_arguments(self):
        generic = self._type("generic")

        assert generic == TypeRef("typing.Iterable", (TypeRef("library.Token"),))
        assert generic.declaration == TypeRef("typing.Iterable")

    def test_unresolvable(self):
        assert self._type("unknown") is None
        assert self._type("number") is None


class TestCapabilities:

    def test_transitive_bases(self):
        compilation = _compile(app="""
            from library import Capability

            class Middle(Capability):
                pass

            class Leaf(Middle):
                pass
        """)
        resolver = compilation.resolver("app")

        assert resolver.implements_capability(TypeRef("app.Leaf"), TypeRef("library.Capability"))
        assert not resolver.implements_capability(TypeRef("app.Leaf"), TypeRef("library.Other"))

    def test_generic_base_arguments_are_ignored(self):
        compilation = _compile(app="""
            from typing import Generic, TypeVar
            from library import Capability

            T = TypeVar("T")

            class Impl(Capability[T], Generic[T]):
                pass
        """)
        resolver = compilation.resolver("app")

        assert resolver.implements_capability(TypeRef("app.Impl"), TypeRef("library.Capability"))

    def test_cycle_terminates(self):
        compilation = _compile(app="""
            class First(Second):
                pass

            class Second(First):
                pass
        """)
        resolver = compilation.resolver("app")

        assert not resolver.implements_capability(TypeRef("app.First"), TypeRef("library.Capability"))
        assert resolver.implements_capability(TypeRef("app.First"), TypeRef("app.Second"))
