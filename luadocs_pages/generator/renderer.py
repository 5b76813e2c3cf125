"""Turn page Markdown into HTML with Pygments-highlighted code blocks.

Every fenced block ends up as ``<div class="codehilite" data-language=...>``.
Fences without a language get the configured default (``lua``), and
languages Pygments does not know are rendered as ``text``.
"""

from __future__ import annotations

import functools
import re
import typing as typ
from html import escape

from markdown import Markdown
from pygments import highlight
from pygments.formatters.html import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

if typ.TYPE_CHECKING:
    from markdown.extensions import Extension
    from pygments.lexer import Lexer

CODEHILITE_OPEN_TAG = re.compile(r'<div class="codehilite">')
FENCE_PATTERN = re.compile(r"^(?P<indent> {0,3})(?P<marker>`{3,}|~{3,})(?P<info>.*)$")
FALLBACK_LANGUAGE = "text"


@functools.cache
def _known_language(name: str) -> bool:
    try:
        get_lexer_by_name(name)
    except ClassNotFound:
        return False
    return True


def _lexer(name: str) -> tuple[str, Lexer]:
    """Return the language actually used for ``name`` and its lexer."""
    if not _known_language(name):
        name = FALLBACK_LANGUAGE
    return name, get_lexer_by_name(name)


class HtmlContentRenderer:
    """Markdown and code renderer shared by every page of one build.

    Parameters
    ----------
    pygments_style : str, optional
        Pygments style for the highlighted blocks and :attr:`stylesheet`.
    link_extension : Extension, optional
        Extra Markdown extension, used for the ``.md`` to ``.html`` link
        rewriting.
    default_language : str, optional
        Language assumed for fences that do not name one.
    """

    def __init__(
        self,
        pygments_style: str = "monokai",
        link_extension: Extension | None = None,
        *,
        default_language: str = "lua",
    ) -> None:
        self.pygments_style = pygments_style
        self.default_language = default_language
        self._formatter = HtmlFormatter(style=pygments_style, cssclass="codehilite")
        self._extensions: list[Extension | str] = [
            "attr_list",
            "fenced_code",
            "codehilite",
            "tables",
            "sane_lists",
        ]
        if link_extension is not None:
            self._extensions.append(link_extension)

    @property
    def stylesheet(self) -> str:
        """CSS rules for ``.codehilite`` blocks in the configured style."""
        return self._formatter.get_style_defs(".codehilite")

    def markdown(self, text: str) -> str:
        """Render ``text``; empty or whitespace-only input renders as ``""``."""
        source, languages = self._prepare_fences(text)
        if not source.strip():
            return ""
        converter = Markdown(
            extensions=self._extensions,
            extension_configs={
                "codehilite": {
                    "linenums": False,
                    "guess_lang": False,
                    "css_class": "codehilite",
                    "pygments_style": self.pygments_style,
                }
            },
        )
        return _tag_languages(converter.convert(source), languages)

    def code_block(self, code: str, language: str | None = None) -> str:
        """Highlight a single snippet outside of any Markdown document."""
        name, lexer = _lexer(language or self.default_language)
        return _tag_languages(highlight(code, lexer, self._formatter), [name])

    def _prepare_fences(self, text: str) -> tuple[str, list[str]]:
        """Normalize fences for ``fenced_code`` and list each block's language.

        Opening fences lose their indentation and any attributes after the
        language name (``lua,ignore`` becomes ``lua``); bare fences get the
        default language.
        """
        lines: list[str] = []
        languages: list[str] = []
        fence: str | None = None
        for line in text.splitlines():
            match = FENCE_PATTERN.match(line)
            if match is None:
                lines.append(line)
                continue
            marker = match["marker"]
            info = match["info"].strip()
            if fence is None:
                fence = marker
                requested = re.split(r"[\s,{]", info, maxsplit=1)[0] or self.default_language
                language = requested if _known_language(requested) else FALLBACK_LANGUAGE
                languages.append(language)
                lines.append(f"{marker}{language}")
            elif marker[0] == fence[0] and len(marker) >= len(fence) and not info:
                fence = None
                lines.append(marker)
            else:
                lines.append(line)
        return "\n".join(lines), languages


def _tag_languages(html: str, languages: list[str]) -> str:
    """Add ``data-language`` to highlighted blocks, in document order."""
    if not languages:
        return html
    remaining = iter(languages)

    def _open_tag(_match: re.Match[str]) -> str:
        language = escape(next(remaining, FALLBACK_LANGUAGE), quote=True)
        return f'<div class="codehilite" data-language="{language}">'

    return CODEHILITE_OPEN_TAG.sub(_open_tag, html, count=len(languages))


__all__ = ["HtmlContentRenderer"]
