r"""Parse and validate EmmyLua type expressions.

Types appear in ``@param``, ``@return``, ``@field``, ``@alias``, ``@type`` and
``@overload`` tags. This module turns their text into a small immutable tree
so that the collector can validate them, render them in a canonical form, and
discover which documented symbols they reference.

Example
-------
>>> from luadocs_pages.annotations.type_expr import parse_type
>>> expr = parse_type("box.tuple<T, U>|nil")
>>> expr.render()
'box.tuple<T, U> | nil'
>>> sorted(expr.referenced_names())
['T', 'U', 'box.tuple']
"""

from __future__ import annotations

import dataclasses as dc
import re
import typing as typ

from .errors import TypeExpressionError

BUILTIN_TYPES = frozenset(
    {
        "any",
        "boolean",
        "false",
        "function",
        "integer",
        "lightuserdata",
        "never",
        "nil",
        "number",
        "self",
        "string",
        "table",
        "thread",
        "true",
        "unknown",
        "userdata",
        "void",
    }
)

_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*\*?")
_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")
_STRING = re.compile(r"\"[^\"\n]*\"|'[^'\n]*'|`[^`\n]*`")
_PUNCT = frozenset("|?[]<>(){},:")


@dc.dataclass(frozen=True, slots=True)
class NamedType:
    """Reference to a builtin or declared type, optionally with generic args."""

    name: str
    args: tuple[TypeExpr, ...] = ()

    def render(self) -> str:
        if not self.args:
            return self.name
        inner = ", ".join(arg.render() for arg in self.args)
        return f"{self.name}<{inner}>"

    def referenced_names(self) -> set[str]:
        names = set() if self.name in BUILTIN_TYPES else {self.name}
        for arg in self.args:
            names |= arg.referenced_names()
        return names


@dc.dataclass(frozen=True, slots=True)
class LiteralType:
    """String, numeric, or boolean literal used as a type."""

    text: str

    def render(self) -> str:
        return self.text

    def referenced_names(self) -> set[str]:
        return set()


@dc.dataclass(frozen=True, slots=True)
class VarargType:
    """The ``...`` placeholder used for variadic returns."""

    def render(self) -> str:
        return "..."

    def referenced_names(self) -> set[str]:
        return set()


@dc.dataclass(frozen=True, slots=True)
class UnionType:
    members: tuple[TypeExpr, ...]

    def render(self) -> str:
        return " | ".join(member.render() for member in self.members)

    def referenced_names(self) -> set[str]:
        names: set[str] = set()
        for member in self.members:
            names |= member.referenced_names()
        return names


@dc.dataclass(frozen=True, slots=True)
class ArrayType:
    element: TypeExpr

    def render(self) -> str:
        return f"{_wrap(self.element)}[]"

    def referenced_names(self) -> set[str]:
        return self.element.referenced_names()


@dc.dataclass(frozen=True, slots=True)
class OptionalType:
    inner: TypeExpr

    def render(self) -> str:
        return f"{_wrap(self.inner)}?"

    def referenced_names(self) -> set[str]:
        return self.inner.referenced_names()


@dc.dataclass(frozen=True, slots=True)
class FunctionParam:
    name: str
    optional: bool = False
    type: TypeExpr | None = None

    def render(self) -> str:
        label = f"{self.name}?" if self.optional else self.name
        if self.type is None:
            return label
        return f"{label}: {self.type.render()}"


@dc.dataclass(frozen=True, slots=True)
class FunctionType:
    """A ``fun(a: T, b?: U): R`` signature."""

    params: tuple[FunctionParam, ...] = ()
    returns: tuple[TypeExpr, ...] = ()

    def render(self) -> str:
        params = ", ".join(param.render() for param in self.params)
        text = f"fun({params})"
        if self.returns:
            text += ": " + ", ".join(ret.render() for ret in self.returns)
        return text

    def referenced_names(self) -> set[str]:
        names: set[str] = set()
        for param in self.params:
            if param.type is not None:
                names |= param.type.referenced_names()
        for ret in self.returns:
            names |= ret.referenced_names()
        return names


@dc.dataclass(frozen=True, slots=True)
class TableField:
    key: str | TypeExpr
    value: TypeExpr
    optional: bool = False

    def render(self) -> str:
        if isinstance(self.key, str):
            label = f"{self.key}?" if self.optional else self.key
        else:
            label = f"[{self.key.render()}]"
        return f"{label}: {self.value.render()}"


@dc.dataclass(frozen=True, slots=True)
class TableType:
    """A ``{ name: T, [1]: U }`` table literal type."""

    fields: tuple[TableField, ...] = ()

    def render(self) -> str:
        if not self.fields:
            return "{}"
        return "{ " + ", ".join(field.render() for field in self.fields) + " }"

    def referenced_names(self) -> set[str]:
        names: set[str] = set()
        for field in self.fields:
            if not isinstance(field.key, str):
                names |= field.key.referenced_names()
            names |= field.value.referenced_names()
        return names


@dc.dataclass(frozen=True, slots=True)
class TupleType:
    """A ``[A, B, C]`` fixed-length tuple."""

    members: tuple[TypeExpr, ...]

    def render(self) -> str:
        return "[" + ", ".join(member.render() for member in self.members) + "]"

    def referenced_names(self) -> set[str]:
        names: set[str] = set()
        for member in self.members:
            names |= member.referenced_names()
        return names


TypeExpr = (
    NamedType
    | LiteralType
    | VarargType
    | UnionType
    | ArrayType
    | OptionalType
    | FunctionType
    | TableType
    | TupleType
)


def _wrap(expr: TypeExpr) -> str:
    """Parenthesise unions and functions when they take a postfix operator."""
    if isinstance(expr, (UnionType, FunctionType)):
        return f"({expr.render()})"
    return expr.render()


@dc.dataclass(slots=True)
class _Token:
    kind: str
    text: str
    start: int
    end: int
    spaced: bool


class _TypeParser:
    """Recursive-descent parser that lexes lazily from the current offset.

    Lexing on demand lets :func:`parse_type_prefix` stop at the first
    character that cannot continue a type, leaving free-form description
    text untouched.
    """

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def parse_union(self) -> TypeExpr:
        leading = self._peek()
        if leading is not None and leading.text == "|":
            self._advance(leading)
        members = [self.parse_postfix()]
        while True:
            token = self._peek()
            if token is None or token.text != "|":
                break
            self._advance(token)
            members.append(self.parse_postfix())
        if len(members) == 1:
            return members[0]
        return UnionType(tuple(members))

    def parse_postfix(self) -> TypeExpr:
        expr = self.parse_primary()
        while True:
            token = self._peek()
            if token is None or token.spaced:
                break
            if token.text == "?":
                self._advance(token)
                expr = OptionalType(expr)
                continue
            if token.text == "[" and self.text.startswith("]", token.end):
                self._advance(token)
                self._advance(self._expect("]"))
                expr = ArrayType(expr)
                continue
            break
        return expr

    def parse_primary(self) -> TypeExpr:
        token = self._peek()
        if token is None:
            self._fail("expected a type", self.pos)
        if token.kind == "name":
            self._advance(token)
            if token.text == "fun":
                follow = self._peek()
                if follow is not None and follow.text == "(" and not follow.spaced:
                    return self._parse_function()
            if token.text in {"true", "false"}:
                return LiteralType(token.text)
            return self._parse_generic_args(token.text)
        if token.kind in {"string", "number"}:
            self._advance(token)
            return LiteralType(token.text)
        if token.kind == "vararg":
            self._advance(token)
            return VarargType()
        if token.text == "(":
            self._advance(token)
            inner = self.parse_union()
            self._advance(self._expect(")"))
            return inner
        if token.text == "{":
            return self._parse_table()
        if token.text == "[":
            return self._parse_tuple()
        self._fail(f"unexpected '{token.text}'", token.start)

    def _parse_generic_args(self, name: str) -> NamedType:
        token = self._peek()
        if token is None or token.text != "<" or token.spaced:
            return NamedType(name)
        self._advance(token)
        args = [self.parse_union()]
        while True:
            token = self._expect_one_of(",", ">")
            self._advance(token)
            if token.text == ">":
                break
            args.append(self.parse_union())
        return NamedType(name, tuple(args))

    def _parse_function(self) -> FunctionType:
        self._advance(self._expect("("))
        params: list[FunctionParam] = []
        token = self._peek()
        if token is not None and token.text == ")":
            self._advance(token)
        else:
            while True:
                params.append(self._parse_function_param())
                token = self._expect_one_of(",", ")")
                self._advance(token)
                if token.text == ")":
                    break
        returns: list[TypeExpr] = []
        token = self._peek()
        if token is not None and token.text == ":":
            self._advance(token)
            returns.append(self.parse_union())
            while True:
                token = self._peek()
                if token is None or token.text != ",":
                    break
                self._advance(token)
                returns.append(self.parse_union())
        return FunctionType(tuple(params), tuple(returns))

    def _parse_function_param(self) -> FunctionParam:
        token = self._peek()
        if token is None or token.kind not in {"name", "vararg"}:
            self._fail("expected a parameter name", token.start if token else self.pos)
        if token.kind == "name" and "." in token.text:
            self._fail("expected a parameter name", token.start)
        self._advance(token)
        optional = False
        follow = self._peek()
        if follow is not None and follow.text == "?" and not follow.spaced:
            self._advance(follow)
            optional = True
            follow = self._peek()
        param_type: TypeExpr | None = None
        if follow is not None and follow.text == ":":
            self._advance(follow)
            param_type = self.parse_union()
        return FunctionParam(token.text, optional, param_type)

    def _parse_tuple(self) -> TupleType:
        self._advance(self._expect("["))
        members = [self.parse_union()]
        while True:
            token = self._expect_one_of(",", "]")
            self._advance(token)
            if token.text == "]":
                break
            members.append(self.parse_union())
        return TupleType(tuple(members))

    def _parse_table(self) -> TableType:
        self._advance(self._expect("{"))
        fields: list[TableField] = []
        while True:
            token = self._peek()
            if token is None:
                self._fail("unterminated table type", self.pos)
            if token.text == "}":
                self._advance(token)
                break
            fields.append(self._parse_table_field())
            token = self._expect_one_of(",", "}")
            self._advance(token)
            if token.text == "}":
                break
        return TableType(tuple(fields))

    def _parse_table_field(self) -> TableField:
        token = self._peek()
        if token is None:
            self._fail("expected a table field", self.pos)
        key: str | TypeExpr
        optional = False
        if token.text == "[":
            self._advance(token)
            key = self.parse_union()
            self._advance(self._expect("]"))
        elif token.kind == "name" and "." not in token.text:
            self._advance(token)
            key = token.text
            follow = self._peek()
            if follow is not None and follow.text == "?" and not follow.spaced:
                self._advance(follow)
                optional = True
        else:
            self._fail("expected a table field name", token.start)
        self._advance(self._expect(":"))
        return TableField(key=key, value=self.parse_union(), optional=optional)

    def _expect(self, text: str) -> _Token:
        token = self._peek()
        if token is None or token.text != text:
            found = token.text if token else "end of type"
            self._fail(f"expected '{text}' but found '{found}'", token.start if token else self.pos)
        return token

    def _expect_one_of(self, *options: str) -> _Token:
        token = self._peek()
        if token is None or token.text not in options:
            found = token.text if token else "end of type"
            wanted = "' or '".join(options)
            self._fail(f"expected '{wanted}' but found '{found}'", token.start if token else self.pos)
        return token

    def _advance(self, token: _Token) -> None:
        self.pos = token.end

    def _peek(self) -> _Token | None:
        start = self.pos
        while start < len(self.text) and self.text[start].isspace():
            start += 1
        if start >= len(self.text):
            return None
        spaced = start > self.pos
        if self.text.startswith("...", start):
            return _Token("vararg", "...", start, start + 3, spaced)
        for kind, pattern in (("string", _STRING), ("number", _NUMBER), ("name", _NAME)):
            match = pattern.match(self.text, start)
            if match:
                return _Token(kind, match.group(0), start, match.end(), spaced)
        char = self.text[start]
        if char in _PUNCT:
            return _Token("punct", char, start, start + 1, spaced)
        return _Token("other", char, start, start + 1, spaced)

    def _fail(self, message: str, offset: int) -> typ.NoReturn:
        raise TypeExpressionError(
            f"invalid type '{self.text.strip()}': {message}", column=offset + 1
        )


def parse_type(text: str) -> TypeExpr:
    """Parse ``text`` as a complete type expression.

    Parameters
    ----------
    text : str
        Type expression such as ``"string[]"`` or ``"fun(x: number): boolean"``.

    Returns
    -------
    TypeExpr
        Parsed expression tree.

    Raises
    ------
    TypeExpressionError
        If ``text`` is empty, malformed, or has trailing characters.
    """
    parser = _TypeParser(text)
    expr = parser.parse_union()
    trailing = parser._peek()
    if trailing is not None:
        parser._fail(f"unexpected '{trailing.text}'", trailing.start)
    return expr


def parse_type_prefix(text: str) -> tuple[TypeExpr, str, str]:
    """Parse the leading type of ``text`` and return the remaining description.

    Returns
    -------
    tuple[TypeExpr, str, str]
        The parsed expression, the exact source text of the type, and the
        stripped remainder that follows it.
    """
    parser = _TypeParser(text)
    expr = parser.parse_union()
    consumed = text[: parser.pos].strip()
    return expr, consumed, text[parser.pos :].strip()


__all__ = [
    "BUILTIN_TYPES",
    "ArrayType",
    "FunctionParam",
    "FunctionType",
    "LiteralType",
    "NamedType",
    "OptionalType",
    "TableField",
    "TableType",
    "TupleType",
    "TypeExpr",
    "UnionType",
    "VarargType",
    "parse_type",
    "parse_type_prefix",
]
