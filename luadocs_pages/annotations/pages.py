"""Assign registered symbols to reference pages.

Every module table, class, and enum owns a page. Functions, fields, and
aliases join the page of their nearest enclosing module or class. When no
ancestor owns a page, an implicit namespace page is created for the symbol's
direct namespace; top-level aliases get their own page and remaining global
values share the ``_G`` page.
"""

from __future__ import annotations

import dataclasses as dc
import re
import typing as typ

from .models import Symbol, SymbolKind

if typ.TYPE_CHECKING:
    from .registry import SymbolRegistry

GLOBALS_KEY = "_G"
OWNER_KINDS = frozenset({SymbolKind.MODULE, SymbolKind.CLASS, SymbolKind.ENUM})
KIND_LABELS = {
    "module": "Module",
    "class": "Class",
    "enum": "Enum",
    "alias": "Alias",
    "namespace": "Namespace",
    "globals": "Globals",
}


@dc.dataclass(slots=True)
class PageMember:
    """A symbol documented on a page together with its section anchor."""

    symbol: Symbol
    anchor: str


@dc.dataclass(slots=True)
class Page:
    """One generated reference page.

    Attributes
    ----------
    key : str
        Qualified name the page documents; also its file stem.
    kind : str
        ``module``, ``class``, ``enum``, ``alias``, ``namespace`` or ``globals``.
    owner : Symbol | None
        Symbol introduced by the page; ``None`` for implicit pages.
    members : list[PageMember]
        Member sections in declaration order.
    """

    key: str
    kind: str
    owner: Symbol | None = None
    members: list[PageMember] = dc.field(default_factory=list)
    _used_anchors: set[str] = dc.field(default_factory=set, repr=False)

    @property
    def filename(self) -> str:
        return f"{self.key}.md"

    @property
    def title(self) -> str:
        return "Global functions" if self.kind == "globals" else self.key

    @property
    def kind_label(self) -> str:
        return KIND_LABELS[self.kind]

    def add(self, symbol: Symbol) -> PageMember:
        """Append ``symbol`` as a member with a page-unique anchor."""
        member = PageMember(symbol, _unique_anchor(_slugify(symbol.name), self._used_anchors))
        self.members.append(member)
        return member


def _slugify(value: str) -> str:
    """Convert a qualified name into a lowercase hyphen-separated slug."""
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-") or "symbol"


def _unique_anchor(base: str, used: set[str]) -> str:
    """Return a unique anchor, appending numeric suffixes and mutating ``used``."""
    candidate = base
    suffix = 2
    while candidate in used:
        candidate = f"{base}-{suffix}"
        suffix += 1
    used.add(candidate)
    return candidate


def plan_pages(registry: SymbolRegistry) -> list[Page]:
    """Return the pages for ``registry``'s symbols, sorted by key."""
    symbols = registry.symbols()
    pages: dict[str, Page] = {}
    owned: set[int] = set()
    for symbol in symbols:
        if symbol.kind in OWNER_KINDS and symbol.name not in pages:
            pages[symbol.name] = Page(key=symbol.name, kind=symbol.kind.value, owner=symbol)
            owned.add(id(symbol))

    for symbol in symbols:
        if id(symbol) in owned:
            continue
        page = _enclosing_page(pages, symbol.namespace)
        if page is None:
            page = _implicit_page(pages, symbol)
            if page.owner is symbol:
                continue
        page.add(symbol)
    return [pages[key] for key in sorted(pages)]


def _enclosing_page(pages: dict[str, Page], namespace: str) -> Page | None:
    current = namespace
    while current:
        if current in pages:
            return pages[current]
        current = current.rpartition(".")[0]
    return None


def _implicit_page(pages: dict[str, Page], symbol: Symbol) -> Page:
    if symbol.namespace:
        return pages.setdefault(
            symbol.namespace, Page(key=symbol.namespace, kind="namespace")
        )
    if symbol.kind == SymbolKind.ALIAS:
        return pages.setdefault(
            symbol.name, Page(key=symbol.name, kind="alias", owner=symbol)
        )
    return pages.setdefault(GLOBALS_KEY, Page(key=GLOBALS_KEY, kind="globals"))


__all__ = ["GLOBALS_KEY", "Page", "PageMember", "plan_pages"]
