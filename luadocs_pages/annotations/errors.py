"""Exceptions raised while reading EmmyLua stub annotations."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from pathlib import Path


class AnnotationError(ValueError):
    """Base class for problems found in stub annotations.

    Attributes
    ----------
    path : Path | None
        Stub file that triggered the error, when known.
    line : int | None
        1-based line number of the offending annotation.
    column : int | None
        1-based column inside the annotation text, when known.
    """

    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        self.message = message
        self.path = path
        self.line = line
        self.column = column
        super().__init__(self._format())

    def _format(self) -> str:
        location = ""
        if self.path is not None:
            location = str(self.path)
            if self.line is not None:
                location = f"{location}:{self.line}"
                if self.column is not None:
                    location = f"{location}:{self.column}"
            location = f"{location}: "
        return f"{location}{self.message}"

    def at(self, *, path: Path | None = None, line: int | None = None) -> AnnotationError:
        """Return a copy of this error anchored to ``path`` and ``line``."""
        return type(self)(
            self.message,
            path=path or self.path,
            line=line if line is not None else self.line,
            column=self.column,
        )


class AnnotationSyntaxError(AnnotationError):
    """Raised when an annotation line or declaration cannot be parsed."""


class TypeExpressionError(AnnotationError):
    """Raised when a type expression is not valid under the annotation grammar."""


class SymbolCollisionError(AnnotationError):
    """Raised when two stub declarations define the same symbol."""


class CollectionError(RuntimeError):
    """Raised when the input tree cannot be collected at all."""


__all__ = [
    "AnnotationError",
    "AnnotationSyntaxError",
    "CollectionError",
    "SymbolCollisionError",
    "TypeExpressionError",
]
