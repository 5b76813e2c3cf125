"""Unit tests for turning stub files into symbols."""

from __future__ import annotations

from pathlib import Path
from textwrap import dedent

import pytest

from luadocs_pages.annotations import (
    AnnotationSyntaxError,
    SymbolKind,
    TypeExpressionError,
    parse_stub,
)

FIXTURES = Path(__file__).resolve().parent / "fixtures" / "Library"


def _parse(body: str, *, path: str = "box/test.lua", require_meta: bool = True):
    return parse_stub(dedent(body).lstrip(), path, require_meta=require_meta)


def test_every_fixture_stub_parses() -> None:
    """All sample stubs are valid and declare at least one symbol."""
    for path in sorted(FIXTURES.rglob("*.lua")):
        stub = parse_stub(path.read_text(encoding="utf-8"), path.relative_to(FIXTURES))
        assert stub.is_meta, f"{path} should carry the ---@meta marker"
        assert stub.symbols, f"{path} should declare symbols"


def test_function_with_optional_param_and_named_return() -> None:
    stub = _parse(
        """
        ---@meta
        ---Wait until the instance is writable.
        ---@param timeout? number seconds to wait
        ---@return boolean ok
        function box.ctl.wait_rw(timeout) end
        """
    )
    (symbol,) = stub.symbols
    assert symbol.name == "box.ctl.wait_rw"
    assert symbol.kind is SymbolKind.FUNCTION
    assert symbol.line == 5
    (signature,) = symbol.signatures
    (param,) = signature.params
    assert (param.name, param.type, param.optional) == ("timeout", "number", True)
    assert param.description == "seconds to wait"
    (ret,) = signature.returns
    assert (ret.type, ret.name) == ("boolean", "ok")
    assert signature.description == "Wait until the instance is writable."


def test_undocumented_parameters_default_to_any() -> None:
    stub = _parse(
        """
        ---@meta
        ---@param b string
        function m.f(a, b) end
        """
    )
    params = stub.symbols[0].signatures[0].params
    assert [(p.name, p.type) for p in params] == [("a", "any"), ("b", "string")]


def test_local_class_binds_method_owner() -> None:
    stub = _parse(
        """
        ---@meta
        ---@class box.tuple
        ---@field [integer] any
        local tuple = {}

        ---@return integer
        function tuple:len() end
        """
    )
    klass, method = stub.symbols
    assert klass.kind is SymbolKind.CLASS
    assert klass.fields[0].name == "[integer]"
    assert method.name == "box.tuple.len"
    assert method.is_method


def test_class_with_parents_generics_and_description() -> None:
    stub = _parse(
        """
        ---@meta
        ---@class (exact) box.space<K>: box.object, box.iterable<K> Space handle.
        ---@field private id integer
        box.space = {}
        """
    )
    (klass,) = stub.symbols
    assert klass.name == "box.space"
    assert klass.generics == ["K"]
    assert klass.parents == ["box.object", "box.iterable<K>"]
    assert klass.description == "Space handle."
    assert klass.fields[0].visibility == "private"


def test_module_table_and_typed_field() -> None:
    stub = _parse(
        """
        ---@meta
        ---Configuration root.
        box.cfg = {
            listen = nil,
        }

        ---@type string
        box.cfg.listen = nil
        """
    )
    module, field = stub.symbols
    assert (module.name, module.kind) == ("box.cfg", SymbolKind.MODULE)
    assert (field.name, field.kind, field.type) == ("box.cfg.listen", SymbolKind.FIELD, "string")


def test_alias_with_variants() -> None:
    stub = _parse(
        """
        ---@meta
        ---@alias box.ctl.mode
        ---| "ro" # read-only
        ---| "rw" # read-write
        """
    )
    (alias,) = stub.symbols
    assert alias.kind is SymbolKind.ALIAS
    assert alias.type == '"ro" | "rw"'
    assert [(v.value, v.description) for v in alias.variants] == [
        ('"ro"', "read-only"),
        ('"rw"', "read-write"),
    ]


def test_overload_and_flags() -> None:
    stub = _parse(
        """
        ---@meta
        ---@async
        ---@nodiscard
        ---@deprecated use box.ctl.promote
        ---@overload fun(name: string): boolean
        function box.ctl.elect() end
        """
    )
    (symbol,) = stub.symbols
    assert len(symbol.signatures) == 2
    assert symbol.signatures[1].params[0].type == "string"
    assert symbol.is_async and symbol.nodiscard and symbol.deprecated
    assert symbol.deprecated_message == "use box.ctl.promote"


def test_missing_meta_marker_is_rejected() -> None:
    with pytest.raises(AnnotationSyntaxError, match="---@meta"):
        _parse("function m.f() end\n")


def test_missing_meta_marker_allowed_when_not_required() -> None:
    stub = _parse("function m.f() end\n", require_meta=False)
    assert not stub.is_meta
    assert stub.symbols[0].name == "m.f"


def test_function_body_is_rejected() -> None:
    with pytest.raises(AnnotationSyntaxError, match="empty bodies") as excinfo:
        _parse(
            """
            ---@meta
            function m.f()
              return 1
            end
            """
        )
    assert excinfo.value.line == 3
    assert str(excinfo.value).startswith("box/test.lua:3")


def test_unknown_tag_is_rejected() -> None:
    with pytest.raises(AnnotationSyntaxError, match="@frobnicate"):
        _parse(
            """
            ---@meta
            ---@frobnicate yes
            function m.f() end
            """
        )


def test_param_must_match_declaration() -> None:
    with pytest.raises(AnnotationSyntaxError, match="does not match"):
        _parse(
            """
            ---@meta
            ---@param nope number
            function m.f(x) end
            """
        )


def test_invalid_type_reports_file_and_line() -> None:
    with pytest.raises(TypeExpressionError) as excinfo:
        _parse(
            """
            ---@meta
            ---@param x number|
            function m.f(x) end
            """
        )
    assert excinfo.value.path == Path("box/test.lua")
    assert excinfo.value.line == 2


def test_runtime_statements_are_rejected() -> None:
    with pytest.raises(AnnotationSyntaxError, match="unsupported statement"):
        _parse(
            """
            ---@meta
            print("hello")
            """
        )
