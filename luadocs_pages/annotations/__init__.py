"""Parse EmmyLua annotation stubs and collect them into reference pages."""

from .collector import (
    AnnotationCollector,
    CheckReport,
    CollectionResult,
    check,
    collect,
)
from .errors import (
    AnnotationError,
    AnnotationSyntaxError,
    CollectionError,
    SymbolCollisionError,
    TypeExpressionError,
)
from .models import StubFile, Symbol, SymbolKind
from .parser import parse_stub
from .registry import SymbolRegistry
from .type_expr import parse_type

__all__ = [
    "AnnotationCollector",
    "AnnotationError",
    "AnnotationSyntaxError",
    "CheckReport",
    "CollectionError",
    "CollectionResult",
    "StubFile",
    "Symbol",
    "SymbolCollisionError",
    "SymbolKind",
    "SymbolRegistry",
    "TypeExpressionError",
    "check",
    "collect",
    "parse_stub",
    "parse_type",
]
