"""Render planned pages as Markdown with resolved cross-references.

Descriptions from the stubs are Markdown already. Before they are placed on a
page the writer:

* demotes headings below level three so they cannot break the page outline;
* resolves ``lua://name`` links to page anchors, or inline code when the name
  is not documented;
* resolves ``doc://topic`` links against ``site.doc_base_url``, or plain text
  when no base URL is configured;
* tags bare fenced code blocks with the default example language.

Type expressions are rendered as inline code with every documented type name
linked to its page.
"""

from __future__ import annotations

import re
import typing as typ
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from .models import FieldDoc, ParamDoc, ReturnDoc, Signature, Symbol, SymbolKind
from .pages import Page
from .type_expr import BUILTIN_TYPES

TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"
PAGE_TEMPLATE = "symbol_page.md.jinja"
FENCE_PATTERN = re.compile(r"^(\s{0,3})(`{3,}|~{3,})(.*)$")
HEADING_PATTERN = re.compile(r"^(#{1,6})(\s+.*)$")
SCHEME_LINK_PATTERN = re.compile(
    r"\[(?P<text>[^\]]*)\]\((?P<scheme>lua|doc)://(?P<target>[^)\s]*)\)"
)
MARKDOWN_LINK_PATTERN = re.compile(r"\[(?P<text>[^\]]*)\]\([^)]*\)")
NAME_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*\*?")
TYPE_KINDS = frozenset({SymbolKind.CLASS, SymbolKind.ENUM, SymbolKind.ALIAS})
MIN_DESCRIPTION_HEADING = 4


def code_span(text: str) -> str:
    """Return ``text`` as a Markdown code span, widening the fence for backticks."""
    if "`" in text:
        return f"`` {text} ``"
    return f"`{text}`"


class CrossReferences:
    """Resolve symbol names to ``file#anchor`` targets.

    Parameters
    ----------
    values : Mapping[str, str]
        Targets for modules, functions, fields, and classes.
    types : Mapping[str, str]
        Targets for classes, enums, and aliases.
    doc_base_url : str, optional
        Prefix for ``doc://`` topics; ``None`` renders them as plain text.
    """

    def __init__(
        self,
        values: typ.Mapping[str, str],
        types: typ.Mapping[str, str],
        *,
        doc_base_url: str | None = None,
    ) -> None:
        self.values = dict(values)
        self.types = dict(types)
        self.doc_base_url = doc_base_url

    @classmethod
    def from_pages(
        cls, pages: typ.Iterable[Page], *, doc_base_url: str | None = None
    ) -> CrossReferences:
        values: dict[str, str] = {}
        types: dict[str, str] = {}
        for page in pages:
            if page.owner is not None:
                _register(values, types, page.owner, page.filename)
            for member in page.members:
                _register(values, types, member.symbol, f"{page.filename}#{member.anchor}")
        return cls(values, types, doc_base_url=doc_base_url)

    def type_target(self, name: str) -> str | None:
        return self.types.get(name.rstrip("*"))

    def value_target(self, name: str) -> str | None:
        return self.values.get(name) or self.types.get(name)

    def link_type(self, text: str) -> str:
        """Render a canonical type expression with documented names linked."""
        pieces: list[tuple[str, str | None]] = []
        index = 0
        plain_start = 0
        while index < len(text):
            char = text[index]
            if char in "\"'`":
                closing = text.find(char, index + 1)
                index = len(text) if closing == -1 else closing + 1
                continue
            match = NAME_PATTERN.match(text, index)
            previous = text[index - 1] if index else " "
            if match is None or previous.isalnum() or previous == "_":
                index += 1
                continue
            name = match.group(0)
            target = None
            if name not in BUILTIN_TYPES and not _is_key(text, match.end()):
                target = self.type_target(name)
            if target is not None:
                pieces.append((text[plain_start:index], None))
                pieces.append((name, target))
                plain_start = match.end()
            index = match.end()
        pieces.append((text[plain_start:], None))
        return "".join(_render_piece(piece, target) for piece, target in pieces)

    def rewrite_description(self, text: str, *, default_language: str = "lua") -> str:
        """Prepare stub Markdown for inclusion under a level-two section."""
        lines: list[str] = []
        fence: str | None = None
        for line in text.splitlines():
            fence_match = FENCE_PATTERN.match(line)
            if fence_match:
                indent, marker, info = fence_match.groups()
                if fence is None:
                    fence = marker
                    if not info.strip():
                        line = f"{indent}{marker}{default_language}"
                elif marker[0] == fence[0] and len(marker) >= len(fence) and not info.strip():
                    fence = None
                lines.append(line)
                continue
            if fence is not None:
                lines.append(line)
                continue
            if heading := HEADING_PATTERN.match(line):
                level = min(len(heading.group(1)) + MIN_DESCRIPTION_HEADING - 1, 6)
                line = "#" * level + heading.group(2)
            lines.append(SCHEME_LINK_PATTERN.sub(self._rewrite_link, line))
        return "\n".join(lines).strip("\n")

    def _rewrite_link(self, match: re.Match[str]) -> str:
        text = match.group("text").strip()
        target = match.group("target")
        if match.group("scheme") == "lua":
            name = target.split("#", 1)[0]
            resolved = self.value_target(name)
            label = text or code_span(name)
            if resolved is not None:
                return f"[{label}]({resolved})"
            if label.startswith("`") and label.endswith("`"):
                return label
            return code_span(label)
        if self.doc_base_url:
            return f"[{text or target}]({self.doc_base_url}{target})"
        return text or target


def _register(
    values: dict[str, str], types: dict[str, str], symbol: Symbol, target: str
) -> None:
    if symbol.kind in TYPE_KINDS:
        types.setdefault(symbol.name, target)
    if symbol.kind != SymbolKind.ALIAS:
        values.setdefault(symbol.name, target)


def _is_key(text: str, end: int) -> bool:
    """Return ``True`` when the name ending at ``end`` is a parameter or field key."""
    rest = text[end:].lstrip()
    return rest.startswith((":", "?:"))


def _render_piece(text: str, target: str | None) -> str:
    if target is not None:
        return f"[{code_span(text)}]({target})"
    core = text.strip()
    if not core:
        return text
    leading = text[: len(text) - len(text.lstrip())]
    trailing = text[len(text.rstrip()) :]
    return f"{leading}{code_span(core)}{trailing}"


class MarkdownPageWriter:
    """Render :class:`Page` objects through the Markdown page template."""

    def __init__(
        self,
        references: CrossReferences,
        *,
        default_language: str = "lua",
        templates_dir: Path | None = None,
    ) -> None:
        self.references = references
        self.default_language = default_language
        self.env = Environment(
            loader=FileSystemLoader(str(templates_dir or TEMPLATES_DIR)),
            autoescape=False,  # noqa: S701 - renders Markdown, not HTML
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self.template = self.env.get_template(PAGE_TEMPLATE)

    def render(self, page: Page) -> str:
        """Return the Markdown document for ``page``."""
        owner = page.owner
        context = {
            "page": page,
            "intro": self._block(owner) if owner is not None else None,
            "source": owner.path if owner is not None else None,
            "members": [
                {"anchor": member.anchor, **self._block(member.symbol)}
                for member in page.members
            ],
        }
        return self.template.render(**context)

    def summary(self, page: Page) -> str:
        """Return the first line of prose describing ``page``."""
        owner = page.owner
        text = owner.description if owner is not None else ""
        for line in text.splitlines():
            cleaned = line.strip().lstrip("#").strip()
            if cleaned and not cleaned.startswith(("```", "~~~")):
                resolved = self.references.rewrite_description(cleaned)
                return MARKDOWN_LINK_PATTERN.sub(r"\g<text>", resolved)
        return ""

    def _block(self, symbol: Symbol) -> dict[str, typ.Any]:
        """Build the template context for one symbol."""
        description = symbol.description
        if symbol.kind == SymbolKind.FUNCTION and any(
            sig.description for sig in symbol.signatures
        ):
            description = ""
        return {
            "name": symbol.name,
            "kind": symbol.kind.value,
            "notes": self._notes(symbol),
            "description": self._text(description),
            "type": self.references.link_type(symbol.type) if symbol.type else "",
            "parents": ", ".join(self.references.link_type(name) for name in symbol.parents),
            "generics": ", ".join(code_span(name) for name in symbol.generics),
            "signatures": [
                self._signature(symbol, signature) for signature in symbol.signatures
            ],
            "fields": [self._field(field) for field in symbol.fields],
            "variants": [
                self._variant(variant.value, variant.description)
                for variant in symbol.variants
            ],
            "see": [self._see(reference) for reference in symbol.see],
        }

    def _notes(self, symbol: Symbol) -> list[str]:
        notes: list[str] = []
        if symbol.deprecated:
            message = self._text(symbol.deprecated_message)
            notes.append(f"> **Deprecated.** {message}".rstrip())
        if symbol.is_async:
            notes.append("> **Async.** This function may yield the current fiber.")
        if symbol.nodiscard:
            notes.append("> **Nodiscard.** The return value must be used.")
        if symbol.version:
            notes.append(f"> **Version:** {code_span(symbol.version)}")
        if symbol.visibility != "public":
            notes.append(f"> **Visibility:** {symbol.visibility}")
        return notes

    def _signature(self, symbol: Symbol, signature: Signature) -> dict[str, typ.Any]:
        return {
            "code": _signature_code(symbol, signature),
            "description": self._text(signature.description),
            "generics": ", ".join(code_span(name) for name in signature.generics),
            "params": [self._param(param) for param in signature.params],
            "returns": [self._return(value) for value in signature.returns],
        }

    def _param(self, param: ParamDoc) -> str:
        qualifiers = [self.references.link_type(param.type)]
        if param.optional:
            qualifiers.append("optional")
        line = f"- **{code_span(param.name)}** ({', '.join(qualifiers)})"
        return _with_description(line, self._text(param.description))

    def _return(self, value: ReturnDoc) -> str:
        linked = self.references.link_type(value.type)
        line = f"- **{code_span(value.name)}** ({linked})" if value.name else f"- {linked}"
        return _with_description(line, self._text(value.description))

    def _field(self, field: FieldDoc) -> str:
        qualifiers = [self.references.link_type(field.type)]
        if field.optional:
            qualifiers.append("optional")
        if field.visibility != "public":
            qualifiers.append(field.visibility)
        line = f"- **{code_span(field.name)}** ({', '.join(qualifiers)})"
        return _with_description(line, self._text(field.description))

    def _variant(self, value: str, description: str) -> str:
        return _with_description(f"- {code_span(value)}", self._text(description))

    def _see(self, reference: str) -> str:
        target = reference.split()[0] if reference.split() else reference
        name = target.removeprefix("lua://")
        resolved = self.references.value_target(name)
        if resolved is not None:
            return f"[{code_span(name)}]({resolved})"
        return self._text(reference)

    def _text(self, text: str) -> str:
        return self.references.rewrite_description(
            text, default_language=self.default_language
        )


def _with_description(line: str, description: str) -> str:
    """Append ``description`` to a list item, indenting continuation lines."""
    if not description:
        return line
    first, *rest = description.splitlines()
    body = [f"{line}: {first}"]
    body.extend(f"    {extra}" if extra.strip() else "" for extra in rest)
    return "\n".join(body)


def _signature_code(symbol: Symbol, signature: Signature) -> str:
    """Return the Lua-style signature line shown in the code block."""
    name = symbol.name
    if symbol.is_method and "." in name:
        owner, _, member = name.rpartition(".")
        name = f"{owner}:{member}"
    params = []
    for param in signature.params:
        marker = "?" if param.optional else ""
        if param.type == "any" and not param.optional:
            params.append(param.name)
        else:
            params.append(f"{param.name}{marker}: {param.type}")
    prefix = "async function" if symbol.is_async else "function"
    generics = f"<{', '.join(signature.generics)}>" if signature.generics else ""
    code = f"{prefix} {name}{generics}({', '.join(params)})"
    if signature.returns:
        returns = ", ".join(value.type for value in signature.returns)
        code = f"{code}\n  -> {returns}"
    return code


__all__ = ["CrossReferences", "MarkdownPageWriter", "code_span"]
