"""Rewrite links between generated Markdown pages to their HTML outputs."""

from __future__ import annotations

import posixpath
import typing as typ
from urllib.parse import urlsplit

from markdown.extensions import Extension
from markdown.treeprocessors import Treeprocessor

if typ.TYPE_CHECKING:
    from xml.etree.ElementTree import Element

    from markdown import Markdown
else:  # pragma: no cover - type-checking fallback
    Markdown = typ.Any
    Element = typ.Any

EXTERNAL_PREFIXES = ("http://", "https://", "mailto:", "tel:", "data:", "javascript:")


class PageLinkExtension(Extension):
    """Point ``*.md`` links at the ``*.html`` file the site builder writes.

    Only relative links are touched. Absolute URLs, protocol-relative links,
    and pure fragments pass through unchanged, as do links to files other
    than Markdown pages.
    """

    def __init__(self, known_pages: typ.Collection[str] | None = None) -> None:
        super().__init__()
        self.known_pages = frozenset(known_pages or ())

    def extendMarkdown(self, md: Markdown) -> None:  # type: ignore[override]  # noqa: N802
        """Register the page-link treeprocessor on the Markdown instance."""
        processor = PageLinkTreeprocessor(md, self.known_pages)
        md.treeprocessors.register(processor, "luadocs_page_links", 15)


class PageLinkTreeprocessor(Treeprocessor):
    """Rewrite relative ``.md`` anchors to ``.html`` in the parsed tree."""

    def __init__(self, md: Markdown, known_pages: frozenset[str]) -> None:
        super().__init__(md)
        self.known_pages = known_pages

    def run(self, root: Element) -> Element:  # pragma: no cover - Markdown API
        """Rewrite page anchors in the parsed markdown tree."""
        for element in root.iter():
            if element.tag == "a":
                rewritten = rewrite_page_link(element.get("href"), self.known_pages)
                if rewritten:
                    element.set("href", rewritten)
        return root


def rewrite_page_link(
    target: str | None, known_pages: typ.Collection[str] = ()
) -> str | None:
    """Return the HTML link for a relative Markdown page link, else ``None``.

    Parameters
    ----------
    target : str, optional
        ``href`` value taken from a rendered anchor.
    known_pages : Collection[str], optional
        Markdown filenames produced by the collector. When provided, only
        links to these pages are rewritten.

    Examples
    --------
    >>> rewrite_page_link("box.ctl.md#box-ctl-promote")
    'box.ctl.html#box-ctl-promote'
    >>> rewrite_page_link("https://example.com/a.md") is None
    True
    """
    if not target:
        return None
    lower = target.lower()
    if lower.startswith(EXTERNAL_PREFIXES) or target.startswith(("#", "//", "/")):
        return None
    if "://" in target:
        return None

    parsed = urlsplit(target)
    if parsed.scheme or parsed.netloc or not parsed.path.endswith(".md"):
        return None
    normalized = posixpath.normpath(parsed.path)
    if known_pages and posixpath.basename(normalized) not in known_pages:
        return None

    url = f"{normalized[: -len('.md')]}.html"
    if parsed.query:
        url = f"{url}?{parsed.query}"
    if parsed.fragment:
        url = f"{url}#{parsed.fragment}"
    return url


__all__ = ["PageLinkExtension", "PageLinkTreeprocessor", "rewrite_page_link"]
