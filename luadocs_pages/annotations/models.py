"""Dataclasses describing symbols extracted from EmmyLua stub files.

Types are stored as their canonical rendered text rather than parsed trees so
that the build cache can serialise parsed stubs with msgspec and restore them
without re-running the type grammar.
"""

from __future__ import annotations

import dataclasses as dc
import enum


class SymbolKind(enum.StrEnum):
    """Category of a documented symbol."""

    MODULE = "module"
    FUNCTION = "function"
    FIELD = "field"
    CLASS = "class"
    ENUM = "enum"
    ALIAS = "alias"


@dc.dataclass(slots=True)
class ParamDoc:
    """A single documented function parameter.

    Attributes
    ----------
    name : str
        Parameter name as declared (``...`` for varargs).
    type : str
        Canonical type expression; ``any`` when undocumented.
    optional : bool
        ``True`` when the annotation marks the parameter with ``?``.
    description : str
        Markdown description trailing the type.
    """

    name: str
    type: str = "any"
    optional: bool = False
    description: str = ""


@dc.dataclass(slots=True)
class ReturnDoc:
    """A documented return value."""

    type: str
    name: str | None = None
    description: str = ""


@dc.dataclass(slots=True)
class FieldDoc:
    """A field declared on a class with ``@field``."""

    name: str
    type: str
    optional: bool = False
    description: str = ""
    visibility: str = "public"


@dc.dataclass(slots=True)
class AliasVariant:
    """One ``---|`` variant of a multi-line alias."""

    value: str
    description: str = ""


@dc.dataclass(slots=True)
class Signature:
    """One callable shape of a function or callable module."""

    params: list[ParamDoc] = dc.field(default_factory=list)
    returns: list[ReturnDoc] = dc.field(default_factory=list)
    description: str = ""
    generics: list[str] = dc.field(default_factory=list)
    line: int = 0


@dc.dataclass(slots=True)
class Symbol:
    """A documented declaration with its annotations.

    Attributes
    ----------
    name : str
        Fully qualified dotted name (``box.ctl.promote``). Methods are
        qualified with their class name (``box.index.get``).
    kind : SymbolKind
        Declaration category.
    path : str
        POSIX path of the stub file, relative to the input root.
    line : int
        1-based line of the declaration (or of the tag for stand-alone
        classes and aliases).
    """

    name: str
    kind: SymbolKind
    path: str
    line: int
    description: str = ""
    signatures: list[Signature] = dc.field(default_factory=list)
    fields: list[FieldDoc] = dc.field(default_factory=list)
    parents: list[str] = dc.field(default_factory=list)
    generics: list[str] = dc.field(default_factory=list)
    type: str | None = None
    variants: list[AliasVariant] = dc.field(default_factory=list)
    is_method: bool = False
    is_async: bool = False
    nodiscard: bool = False
    deprecated: bool = False
    deprecated_message: str = ""
    see: list[str] = dc.field(default_factory=list)
    version: str | None = None
    visibility: str = "public"

    @property
    def namespace(self) -> str:
        """Return the dotted parent of this symbol, or ``""`` at top level."""
        head, _, _tail = self.name.rpartition(".")
        return head

    @property
    def location(self) -> str:
        return f"{self.path}:{self.line}"


@dc.dataclass(slots=True)
class StubFile:
    """Symbols parsed from a single stub file, in declaration order."""

    path: str
    is_meta: bool
    symbols: list[Symbol] = dc.field(default_factory=list)


__all__ = [
    "AliasVariant",
    "FieldDoc",
    "ParamDoc",
    "ReturnDoc",
    "Signature",
    "StubFile",
    "Symbol",
    "SymbolKind",
]
