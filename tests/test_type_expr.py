"""Unit tests for the EmmyLua type expression grammar."""

from __future__ import annotations

import pytest

from luadocs_pages.annotations.errors import TypeExpressionError
from luadocs_pages.annotations.type_expr import (
    ArrayType,
    FunctionType,
    OptionalType,
    TupleType,
    UnionType,
    parse_type,
    parse_type_prefix,
)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("number", "number"),
        ("string|nil", "string | nil"),
        ("box.tuple<T, U>|nil", "box.tuple<T, U> | nil"),
        ("table<string,integer>", "table<string, integer>"),
        ("(string|number)[]", "(string | number)[]"),
        ("fun(x: number, y?: string): boolean", "fun(x: number, y?: string): boolean"),
        ("fun()", "fun()"),
        ("{ name: string, [1]: integer }", "{ name: string, [1]: integer }"),
        ('"ro"|"rw"', '"ro" | "rw"'),
        ("integer?", "integer?"),
        ("fun(...: any)", "fun(...: any)"),
        ("[integer,string]", "[integer, string]"),
    ],
)
def test_parse_type_renders_canonical_form(text: str, expected: str) -> None:
    """Valid expressions render in a whitespace-normalised canonical form."""
    rendered = parse_type(text).render()
    assert rendered == expected, f"expected {expected!r} for {text!r}, got {rendered!r}"


def test_parse_type_builds_expected_nodes() -> None:
    assert isinstance(parse_type("string[]"), ArrayType)
    assert isinstance(parse_type("string?"), OptionalType)
    assert isinstance(parse_type("a|b"), UnionType)
    expr = parse_type("fun(...): ...")
    assert isinstance(expr, FunctionType)
    assert expr.render() == "fun(...): ..."


def test_referenced_names_skip_builtins() -> None:
    expr = parse_type("fun(t: box.tuple, n?: integer): box.space|nil")
    assert expr.referenced_names() == {"box.tuple", "box.space"}


@pytest.mark.parametrize(
    "text",
    [
        "",
        "string|",
        "fun(x: number",
        "number number",
        "table<string",
        "{ name string }",
        "string ?",
        "[number, string",
        "[]",
        "fun(a.b: number)",
    ],
)
def test_parse_type_rejects_malformed_expressions(text: str) -> None:
    with pytest.raises(TypeExpressionError):
        parse_type(text)


def test_type_error_reports_column() -> None:
    with pytest.raises(TypeExpressionError) as excinfo:
        parse_type("string|")
    assert excinfo.value.column == len("string|") + 1, (
        f"expected the column after the trailing bar, got {excinfo.value.column}"
    )


def test_parse_type_prefix_returns_trailing_description() -> None:
    expr, source, rest = parse_type_prefix("number? seconds to wait")
    assert expr.render() == "number?"
    assert source == "number?"
    assert rest == "seconds to wait"


def test_tuple_type_keeps_member_order() -> None:
    expr = parse_type("[box.update_operation, number|string, tuple_type][]")
    assert isinstance(expr, ArrayType)
    assert isinstance(expr.element, TupleType)
    assert [member.render() for member in expr.element.members] == [
        "box.update_operation",
        "number | string",
        "tuple_type",
    ]
    assert expr.referenced_names() == {"box.update_operation", "tuple_type"}


def test_vararg_parameter_in_function_type() -> None:
    expr = parse_type("fun(...: any)")
    assert isinstance(expr, FunctionType)
    assert [param.name for param in expr.params] == ["..."]
