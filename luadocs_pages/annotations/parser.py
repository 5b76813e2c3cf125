r"""Parse EmmyLua stub files into :class:`StubFile` records.

A stub file is a sequence of ``---`` annotation blocks, each followed by the
declaration it documents::

    ---Wait until `box.info.ro` is false.
    ---@async
    ---@param timeout? number
    function box.ctl.wait_rw(timeout) end

Only declarations are accepted: ``function`` statements with empty bodies,
table and value assignments, ``local`` tables bound to a ``@class``, and a
trailing ``return``. Anything else means the file carries runtime behaviour
and is rejected.

Example
-------
>>> from luadocs_pages.annotations.parser import parse_stub
>>> stub = parse_stub("---@meta\n---@return boolean\nfunction m.ok() end\n", "m.lua")
>>> stub.symbols[0].name, stub.symbols[0].signatures[0].returns[0].type
('m.ok', 'boolean')
"""

from __future__ import annotations

import dataclasses as dc
import re
import typing as typ
from pathlib import Path, PurePath

from .errors import AnnotationSyntaxError, TypeExpressionError
from .models import (
    AliasVariant,
    FieldDoc,
    ParamDoc,
    ReturnDoc,
    Signature,
    StubFile,
    Symbol,
    SymbolKind,
)
from .type_expr import FunctionType, OptionalType, TypeExpr, parse_type, parse_type_prefix

_IDENT = r"[A-Za-z_][A-Za-z0-9_]*"
_DOTTED = rf"{_IDENT}(?:\.{_IDENT})*"

FUNCTION_PATTERN = re.compile(
    rf"^(?P<local>local\s+)?function\s+(?P<name>{_DOTTED}(?::{_IDENT})?)"
    rf"\s*\((?P<params>[^)]*)\)\s*(?P<body>.*)$"
)
ASSIGN_PATTERN = re.compile(rf"^(?P<local>local\s+)?(?P<name>{_DOTTED})\s*=\s*(?P<value>.*)$")
LOCAL_DECL_PATTERN = re.compile(rf"^local\s+(?P<name>{_IDENT})\s*$")
RETURN_PATTERN = re.compile(rf"^return(?:\s+{_DOTTED})?\s*;?$")
LONG_COMMENT_OPEN = re.compile(r"^--\[(=*)\[")
TAG_PATTERN = re.compile(r"^@(?P<tag>[a-z_]+)\b\s*(?P<rest>.*)$")
CLASS_PATTERN = re.compile(
    rf"^(?:\((?P<modifier>[^)]*)\)\s*)?(?P<name>{_DOTTED}\*?)"
    rf"(?:<(?P<generics>[^>]*)>)?\s*(?P<rest>.*)$"
)
PARAM_NAME_PATTERN = re.compile(rf"^(?P<name>{_IDENT}|\.\.\.)(?P<optional>\?)?(?:\s+|$)")
FIELD_NAME_PATTERN = re.compile(rf"^(?P<name>{_IDENT})(?P<optional>\?)?\s+")
RETURN_NAME_PATTERN = re.compile(rf"^(?P<name>{_IDENT}|\.\.\.)(?:\s+(?P<rest>.*))?$")
VISIBILITY = frozenset({"public", "private", "protected", "package"})
IGNORED_TAGS = frozenset(
    {"diagnostic", "cast", "module", "source", "operator", "language", "readonly", "export"}
)
KNOWN_TAGS = frozenset(
    {
        "meta",
        "class",
        "enum",
        "field",
        "alias",
        "param",
        "return",
        "overload",
        "type",
        "generic",
        "deprecated",
        "async",
        "nodiscard",
        "see",
        "version",
        *VISIBILITY,
    }
)


@dc.dataclass(slots=True)
class _Block:
    """Annotations gathered from one run of ``---`` lines."""

    start: int = 0
    description: list[str] = dc.field(default_factory=list)
    tags: list[tuple[int, str, str]] = dc.field(default_factory=list)
    variants: list[tuple[int, str]] = dc.field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not (self.description or self.tags)

    def text(self) -> str:
        return "\n".join(self.description).strip("\n")

    def first(self, tag: str) -> tuple[int, str] | None:
        for line, name, rest in self.tags:
            if name == tag:
                return line, rest
        return None

    def all(self, tag: str) -> list[tuple[int, str]]:
        return [(line, rest) for line, name, rest in self.tags if name == tag]


class StubParser:
    """Stateful single-file parser; use :func:`parse_stub` for one-off calls."""

    def __init__(self, text: str, path: str | PurePath, *, require_meta: bool = True) -> None:
        self.lines = text.splitlines()
        self.path = PurePath(path).as_posix()
        self.require_meta = require_meta
        self.is_meta = False
        self.symbols: list[Symbol] = []
        self._bindings: dict[str, str] = {}
        self._local_names: set[str] = set()
        self._index = 0

    def parse(self) -> StubFile:
        block = _Block()
        while self._index < len(self.lines):
            lineno = self._index + 1
            raw = self.lines[self._index]
            stripped = raw.strip()
            self._index += 1
            if stripped.startswith("---"):
                if block.empty:
                    block.start = lineno
                self._add_block_line(block, lineno, stripped[3:])
                continue
            if LONG_COMMENT_OPEN.match(stripped):
                self._skip_long_comment(stripped, lineno)
                continue
            if stripped.startswith("--"):
                continue
            if not stripped:
                self._flush_standalone(block)
                block = _Block()
                continue
            self._declaration(block, stripped, lineno)
            block = _Block()
        self._flush_standalone(block)
        if self.require_meta and not self.is_meta:
            raise AnnotationSyntaxError(
                "stub file is missing the '---@meta' marker", path=Path(self.path)
            )
        return StubFile(path=self.path, is_meta=self.is_meta, symbols=self.symbols)

    # ------------------------------------------------------------------
    # Annotation lines

    def _add_block_line(self, block: _Block, lineno: int, content: str) -> None:
        if content.startswith("|"):
            block.variants.append((lineno, content[1:]))
            return
        match = TAG_PATTERN.match(content)
        if match:
            tag = match.group("tag")
            if tag in IGNORED_TAGS:
                return
            if tag not in KNOWN_TAGS:
                self._fail(f"unknown annotation tag '@{tag}'", lineno)
            if tag == "meta":
                self.is_meta = True
                return
            block.tags.append((lineno, tag, match.group("rest").rstrip()))
            return
        if content.startswith(" "):
            content = content[1:]
        block.description.append(content.rstrip())

    def _skip_long_comment(self, stripped: str, lineno: int) -> None:
        level = LONG_COMMENT_OPEN.match(stripped).group(1)  # type: ignore[union-attr]
        closer = f"]{level}]"
        if closer in stripped[4 + len(level) :]:
            return
        while self._index < len(self.lines):
            line = self.lines[self._index]
            self._index += 1
            if closer in line:
                return
        self._fail("unterminated long comment", lineno)

    # ------------------------------------------------------------------
    # Declarations

    def _declaration(self, block: _Block, stripped: str, lineno: int) -> None:
        code = _strip_trailing_comment(stripped)
        if match := FUNCTION_PATTERN.match(code):
            self._function(block, match, lineno)
            return
        if match := ASSIGN_PATTERN.match(code):
            self._skip_table_body(match.group("value"), lineno)
            self._assignment(block, match, lineno)
            return
        if match := LOCAL_DECL_PATTERN.match(code):
            self._bind_local(block, match.group("name"), lineno)
            return
        if RETURN_PATTERN.match(code):
            return
        self._fail(f"unsupported statement in stub: '{code}'", lineno)

    def _function(self, block: _Block, match: re.Match[str], lineno: int) -> None:
        self._check_empty_body(match.group("body"), lineno)
        self._flush_aliases(block)
        if match.group("local"):
            return
        full_name = match.group("name")
        if ":" in full_name:
            owner, member = full_name.split(":", 1)
            is_method = True
        else:
            owner, _, member = full_name.rpartition(".")
            is_method = False
        qualified_owner = owner
        if owner in self._bindings:
            qualified_owner = self._bindings[owner]
        elif owner:
            root, _, rest = owner.partition(".")
            if root in self._bindings:
                qualified_owner = f"{self._bindings[root]}.{rest}"
            elif root in self._local_names:
                return
        name = f"{qualified_owner}.{member}" if qualified_owner else member
        declared = [part.strip() for part in match.group("params").split(",") if part.strip()]
        signature = self._signature(block, declared, name, lineno)
        symbol = Symbol(
            name=name,
            kind=SymbolKind.FUNCTION,
            path=self.path,
            line=lineno,
            description=signature.description,
            signatures=[signature],
            is_method=is_method,
        )
        self._apply_common(symbol, block)
        for overload_line, rest in block.all("overload"):
            symbol.signatures.append(self._overload(rest, overload_line))
        self.symbols.append(symbol)

    def _assignment(self, block: _Block, match: re.Match[str], lineno: int) -> None:
        target = match.group("name")
        value = match.group("value").strip()
        is_local = bool(match.group("local"))
        class_tag = block.first("class") or block.first("enum")
        if class_tag is not None:
            class_symbol = self._class(block, lineno)
            self._bindings[target] = class_symbol.name
            return
        if is_local:
            self._local_names.add(target)
            self._flush_standalone(block)
            return
        type_tag = block.first("type")
        if type_tag is not None or not value.startswith("{"):
            declared_type = "any"
            if type_tag is not None:
                declared_type = self._prefix(type_tag[1], type_tag[0])[0].render()
            symbol = Symbol(
                name=target,
                kind=SymbolKind.FIELD,
                path=self.path,
                line=lineno,
                description=block.text(),
                type=declared_type,
            )
        else:
            symbol = Symbol(
                name=target,
                kind=SymbolKind.MODULE,
                path=self.path,
                line=lineno,
                description=block.text(),
            )
            for overload_line, rest in block.all("overload"):
                symbol.signatures.append(self._overload(rest, overload_line))
        self._apply_common(symbol, block)
        self._flush_aliases(block)
        self.symbols.append(symbol)

    def _bind_local(self, block: _Block, name: str, lineno: int) -> None:
        if block.first("class") or block.first("enum"):
            self._bindings[name] = self._class(block, lineno).name
        else:
            self._local_names.add(name)
            self._flush_standalone(block)

    def _check_empty_body(self, body: str, lineno: int) -> None:
        remainder = _strip_trailing_comment(body).strip()
        if remainder == "end":
            return
        if remainder:
            self._fail("stub functions must have empty bodies", lineno)
        while self._index < len(self.lines):
            line = _strip_trailing_comment(self.lines[self._index].strip())
            self._index += 1
            if not line or line.startswith("--"):
                continue
            if line == "end":
                return
            self._fail("stub functions must have empty bodies", self._index)
        self._fail("function declaration is missing 'end'", lineno)

    def _skip_table_body(self, value: str, lineno: int) -> None:
        depth = _brace_depth(value)
        while depth > 0:
            if self._index >= len(self.lines):
                self._fail("unterminated table constructor", lineno)
            depth += _brace_depth(self.lines[self._index])
            self._index += 1

    # ------------------------------------------------------------------
    # Stand-alone annotations

    def _flush_standalone(self, block: _Block) -> None:
        if block.first("class") or block.first("enum"):
            self._class(block, block.start)
            return
        self._flush_aliases(block)

    def _flush_aliases(self, block: _Block) -> None:
        aliases = block.all("alias")
        for index, (lineno, rest) in enumerate(aliases):
            last = index == len(aliases) - 1
            self.symbols.append(self._alias(block, rest, lineno, with_variants=last))

    def _class(self, block: _Block, lineno: int) -> Symbol:
        tag = block.first("class")
        kind = SymbolKind.CLASS
        if tag is None:
            tag = block.first("enum")
            kind = SymbolKind.ENUM
        assert tag is not None
        tag_line, rest = tag
        match = CLASS_PATTERN.match(rest)
        if not match:
            self._fail(f"malformed @{kind.value} annotation: '{rest}'", tag_line)
        generics = _split_names(match.group("generics") or "")
        parents: list[str] = []
        description = match.group("rest").strip()
        if description.startswith(":"):
            remainder = description[1:].strip()
            while remainder:
                expr, _text, remainder = self._prefix(remainder, tag_line)
                parents.append(expr.render())
                if not remainder.startswith(","):
                    break
                remainder = remainder[1:].strip()
            description = remainder
        text = block.text()
        if description:
            text = f"{description}\n\n{text}".strip() if text else description
        symbol = Symbol(
            name=match.group("name"),
            kind=kind,
            path=self.path,
            line=tag_line,
            description=text,
            parents=parents,
            generics=generics,
            fields=[self._field(field_rest, field_line) for field_line, field_rest in block.all("field")],
        )
        self._apply_common(symbol, block)
        for overload_line, overload_rest in block.all("overload"):
            symbol.signatures.append(self._overload(overload_rest, overload_line))
        self.symbols.append(symbol)
        self._flush_aliases(block)
        return symbol

    def _alias(self, block: _Block, rest: str, lineno: int, *, with_variants: bool) -> Symbol:
        parts = rest.split(None, 1)
        if not parts or not re.fullmatch(rf"{_DOTTED}", parts[0]):
            self._fail(f"malformed @alias annotation: '{rest}'", lineno)
        name = parts[0]
        target: str | None = None
        description = block.text()
        if len(parts) > 1:
            expr, _text, trailing = self._prefix(parts[1], lineno)
            target = expr.render()
            if trailing:
                description = f"{trailing.lstrip('#').strip()}\n\n{description}".strip()
        variants: list[AliasVariant] = []
        if with_variants:
            for variant_line, variant_text in block.variants:
                variants.append(self._variant(variant_text, variant_line))
        if target is None and not variants:
            self._fail(f"alias '{name}' has no type", lineno)
        if target is None:
            target = " | ".join(variant.value for variant in variants)
        return Symbol(
            name=name,
            kind=SymbolKind.ALIAS,
            path=self.path,
            line=lineno,
            description=description,
            type=target,
            variants=variants,
        )

    def _variant(self, text: str, lineno: int) -> AliasVariant:
        body = text.lstrip("+>").strip()
        expr, _raw, trailing = self._prefix(body, lineno)
        return AliasVariant(value=expr.render(), description=trailing.lstrip("#").strip())

    # ------------------------------------------------------------------
    # Tag payloads

    def _signature(self, block: _Block, declared: list[str], name: str, lineno: int) -> Signature:
        documented: dict[str, ParamDoc] = {}
        for tag_line, rest in block.all("param"):
            param = self._param(rest, tag_line)
            if param.name not in declared:
                self._fail(
                    f"@param '{param.name}' does not match any parameter of '{name}'",
                    tag_line,
                )
            documented[param.name] = param
        params = [documented.get(arg, ParamDoc(name=arg)) for arg in declared]
        returns = [self._return(rest, tag_line) for tag_line, rest in block.all("return")]
        generics: list[str] = []
        for _tag_line, rest in block.all("generic"):
            generics.extend(_split_names(rest))
        return Signature(
            params=params,
            returns=returns,
            description=block.text(),
            generics=generics,
            line=lineno,
        )

    def _param(self, rest: str, lineno: int) -> ParamDoc:
        match = PARAM_NAME_PATTERN.match(rest)
        if not match:
            self._fail(f"malformed @param annotation: '{rest}'", lineno)
        remainder = rest[match.end() :]
        if not remainder.strip():
            self._fail(f"@param '{match.group('name')}' is missing a type", lineno)
        expr, _text, description = self._prefix(remainder, lineno)
        optional = bool(match.group("optional"))
        if isinstance(expr, OptionalType):
            optional = True
        return ParamDoc(
            name=match.group("name"),
            type=expr.render(),
            optional=optional,
            description=description,
        )

    def _return(self, rest: str, lineno: int) -> ReturnDoc:
        if not rest.strip():
            self._fail("@return is missing a type", lineno)
        expr, _text, remainder = self._prefix(rest, lineno)
        name: str | None = None
        description = remainder
        if remainder.startswith("#"):
            description = remainder[1:].strip()
        elif remainder.startswith("--"):
            description = remainder[2:].strip()
        elif match := RETURN_NAME_PATTERN.match(remainder):
            name = match.group("name")
            description = (match.group("rest") or "").strip()
            if description.startswith("#"):
                description = description[1:].strip()
            elif description.startswith("--"):
                description = description[2:].strip()
        return ReturnDoc(type=expr.render(), name=name, description=description)

    def _field(self, rest: str, lineno: int) -> FieldDoc:
        visibility = "public"
        head, _, tail = rest.partition(" ")
        if head in VISIBILITY and tail:
            visibility = head
            rest = tail.strip()
        optional = False
        if rest.startswith("["):
            parser_input = rest[1:]
            key_expr, _key_text, after = self._prefix(parser_input, lineno)
            if not after.startswith("]"):
                self._fail(f"malformed @field key: '{rest}'", lineno)
            name = f"[{key_expr.render()}]"
            remainder = after[1:]
        else:
            match = FIELD_NAME_PATTERN.match(rest)
            if not match:
                self._fail(f"malformed @field annotation: '{rest}'", lineno)
            name = match.group("name")
            optional = bool(match.group("optional"))
            remainder = rest[match.end() :]
        if not remainder.strip():
            self._fail(f"@field '{name}' is missing a type", lineno)
        expr, _text, description = self._prefix(remainder, lineno)
        return FieldDoc(
            name=name,
            type=expr.render(),
            optional=optional,
            description=description,
            visibility=visibility,
        )

    def _overload(self, rest: str, lineno: int) -> Signature:
        try:
            expr = parse_type(rest)
        except TypeExpressionError as exc:
            raise exc.at(path=Path(self.path), line=lineno) from exc
        if not isinstance(expr, FunctionType):
            self._fail(f"@overload expects a 'fun(...)' type, got '{rest}'", lineno)
        return Signature(
            params=[
                ParamDoc(
                    name=param.name,
                    type=param.type.render() if param.type is not None else "any",
                    optional=param.optional,
                )
                for param in expr.params
            ],
            returns=[ReturnDoc(type=ret.render()) for ret in expr.returns],
            line=lineno,
        )

    def _apply_common(self, symbol: Symbol, block: _Block) -> None:
        if (tag := block.first("deprecated")) is not None:
            symbol.deprecated = True
            symbol.deprecated_message = tag[1]
        symbol.is_async = block.first("async") is not None
        symbol.nodiscard = block.first("nodiscard") is not None
        symbol.see = [rest for _line, rest in block.all("see") if rest]
        if (tag := block.first("version")) is not None:
            symbol.version = tag[1] or None
        for visibility in ("private", "protected", "package"):
            if block.first(visibility) is not None:
                symbol.visibility = visibility

    def _prefix(self, text: str, lineno: int) -> tuple[TypeExpr, str, str]:
        try:
            return parse_type_prefix(text)
        except TypeExpressionError as exc:
            raise exc.at(path=Path(self.path), line=lineno) from exc

    def _fail(self, message: str, lineno: int) -> typ.NoReturn:
        raise AnnotationSyntaxError(message, path=Path(self.path), line=lineno)


def _strip_trailing_comment(code: str) -> str:
    """Drop a trailing ``--`` comment that is not inside a string literal."""
    quote: str | None = None
    for index, char in enumerate(code):
        if quote:
            if char == quote:
                quote = None
            continue
        if char in "\"'":
            quote = char
        elif code.startswith("--", index):
            return code[:index].rstrip()
    return code


def _brace_depth(line: str) -> int:
    code = _strip_trailing_comment(line)
    return code.count("{") - code.count("}")


def _split_names(text: str) -> list[str]:
    names: list[str] = []
    for part in text.split(","):
        name = part.split(":", 1)[0].strip()
        if name:
            names.append(name)
    return names


def parse_stub(text: str, path: str | PurePath, *, require_meta: bool = True) -> StubFile:
    """Parse stub ``text`` read from ``path``.

    Parameters
    ----------
    text : str
        Full contents of the stub file.
    path : str | PurePath
        Path recorded on every symbol, usually relative to the input root.
    require_meta : bool, optional
        Reject files without a ``---@meta`` marker. Defaults to ``True``.

    Returns
    -------
    StubFile
        Declared symbols in source order.

    Raises
    ------
    AnnotationSyntaxError
        If an annotation or declaration is malformed.
    TypeExpressionError
        If a type expression does not parse.
    """
    return StubParser(text, path, require_meta=require_meta).parse()


__all__ = ["StubParser", "parse_stub"]
