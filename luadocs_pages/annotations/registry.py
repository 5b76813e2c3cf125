"""Merge parsed stubs into one symbol table and detect collisions.

Names live in two spaces. Classes, enums and aliases are *types*; modules,
functions and fields are *values*. A class also names the value of the same
name, which is how ``box.error`` can be a class, a table of functions, and a
callable at once.

Repeated declarations are merged when they are compatible:

* functions with functions become overloads of one function;
* a module table absorbs same-named functions as call signatures;
* a class absorbs a same-named module and its call signatures.

Everything else is a collision, resolved by the configured policy.
"""

from __future__ import annotations

import copy
import logging
import typing as typ
from pathlib import Path

from .errors import SymbolCollisionError
from .models import StubFile, Symbol, SymbolKind

logger = logging.getLogger(__name__)

TYPE_KINDS = frozenset({SymbolKind.CLASS, SymbolKind.ENUM, SymbolKind.ALIAS})
CALLABLE_KINDS = frozenset({SymbolKind.MODULE, SymbolKind.FUNCTION})


class SymbolRegistry:
    """Symbol table built from stub files visited in sorted path order."""

    def __init__(self, *, collision_policy: str = "error") -> None:
        self.collision_policy = collision_policy
        self.values: dict[str, Symbol] = {}
        self.types: dict[str, Symbol] = {}
        self.collisions: list[tuple[Symbol, Symbol]] = []
        self._order: list[Symbol] = []

    @classmethod
    def from_stubs(
        cls, stubs: typ.Iterable[StubFile], *, collision_policy: str = "error"
    ) -> SymbolRegistry:
        registry = cls(collision_policy=collision_policy)
        for stub in sorted(stubs, key=lambda item: item.path):
            for symbol in stub.symbols:
                registry.add(symbol)
        return registry

    def symbols(self) -> list[Symbol]:
        """Return the distinct registered symbols in declaration order."""
        live = {id(symbol) for symbol in self.values.values()}
        live |= {id(symbol) for symbol in self.types.values()}
        return [symbol for symbol in self._order if id(symbol) in live]

    def lookup_type(self, name: str) -> Symbol | None:
        return self.types.get(name) or self.values.get(name)

    def lookup_value(self, name: str) -> Symbol | None:
        return self.values.get(name) or self.types.get(name)

    def add(self, symbol: Symbol) -> None:
        """Register a copy of ``symbol``, merging or colliding with earlier ones.

        Merging mutates the registered copies only, so parsed stubs (and the
        build cache holding them) keep what the file declared.
        """
        symbol = copy.deepcopy(symbol)
        match symbol.kind:
            case SymbolKind.ALIAS:
                self._add_alias(symbol)
            case SymbolKind.CLASS | SymbolKind.ENUM:
                self._add_class(symbol)
            case SymbolKind.MODULE | SymbolKind.FUNCTION:
                self._add_callable(symbol)
            case _:
                self._add_field(symbol)

    def _add_alias(self, symbol: Symbol) -> None:
        existing = self.types.get(symbol.name)
        if existing is not None and not self._collide(existing, symbol):
            return
        self._insert(self.types, symbol)

    def _add_class(self, symbol: Symbol) -> None:
        existing = self.types.get(symbol.name)
        if existing is not None and not self._collide(existing, symbol):
            return
        value = self.values.get(symbol.name)
        if value is not None and value.kind == SymbolKind.FIELD:
            if not self._collide(value, symbol):
                return
            value = None
        self._insert(self.types, symbol)
        if value is not None:
            _absorb(symbol, value)
            self._order.remove(value)
        self.values[symbol.name] = symbol

    def _add_callable(self, symbol: Symbol) -> None:
        existing = self.values.get(symbol.name)
        if existing is None:
            self._insert(self.values, symbol)
            return
        if existing.kind in TYPE_KINDS:
            _absorb(existing, symbol)
            return
        if existing.kind == SymbolKind.FUNCTION and symbol.kind == SymbolKind.FUNCTION:
            _absorb(existing, symbol)
            return
        if existing.kind == SymbolKind.FUNCTION and symbol.kind == SymbolKind.MODULE:
            _absorb(symbol, existing)
            index = self._order.index(existing)
            self._order[index] = symbol
            self.values[symbol.name] = symbol
            return
        if existing.kind == SymbolKind.MODULE and symbol.kind == SymbolKind.FUNCTION:
            _absorb(existing, symbol)
            return
        if self._collide(existing, symbol):
            self._insert(self.values, symbol)

    def _add_field(self, symbol: Symbol) -> None:
        existing = self.values.get(symbol.name)
        if existing is not None and not self._collide(existing, symbol):
            return
        self._insert(self.values, symbol)

    def _insert(self, space: dict[str, Symbol], symbol: Symbol) -> None:
        space[symbol.name] = symbol
        self._order.append(symbol)

    def _collide(self, existing: Symbol, incoming: Symbol) -> bool:
        """Apply the collision policy; return ``True`` when ``incoming`` wins."""
        self.collisions.append((existing, incoming))
        if self.collision_policy != "last-wins":
            msg = (
                f"symbol '{incoming.name}' is defined more than once: "
                f"{existing.kind.value} at {existing.location} and "
                f"{incoming.kind.value} at {incoming.location}"
            )
            raise SymbolCollisionError(msg, path=Path(incoming.path), line=incoming.line)
        logger.warning(
            "symbol %s at %s replaces the definition at %s",
            incoming.name,
            incoming.location,
            existing.location,
        )
        for space in (self.values, self.types):
            if space.get(existing.name) is existing:
                del space[existing.name]
        return True


def _absorb(target: Symbol, other: Symbol) -> None:
    """Fold ``other``'s description, signatures, and flags into ``target``."""
    if other.kind == SymbolKind.MODULE and other.description:
        if target.description and other.description not in target.description:
            target.description = f"{target.description}\n\n{other.description}"
        elif not target.description:
            target.description = other.description
    elif not target.description and other.description:
        target.description = other.description
    target.signatures.extend(other.signatures)
    target.is_async = target.is_async or other.is_async
    target.nodiscard = target.nodiscard or other.nodiscard
    if other.deprecated and not target.deprecated and target.kind == SymbolKind.FUNCTION:
        target.deprecated = True
        target.deprecated_message = other.deprecated_message
    for reference in other.see:
        if reference not in target.see:
            target.see.append(reference)


__all__ = ["SymbolRegistry"]
