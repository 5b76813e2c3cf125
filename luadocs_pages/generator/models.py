"""Shared dataclasses used by the site builder."""

from __future__ import annotations

import dataclasses as dc


@dc.dataclass(slots=True)
class SectionModel:
    """Structured data passed to the doc page template for one member.

    Attributes
    ----------
    title : str
        Qualified name shown in the section heading.
    slug : str
        Anchor of the section, shared with the Markdown page.
    order : int
        Position of the section within the page.
    intro_html : str
        Rendered HTML preceding the first subsection (signature and prose).
    subsections : list[dict[str, str]]
        Subsection dictionaries with ``title``, ``anchor``, and ``html``.
    toc_items : list[dict[str, str]]
        Table-of-contents entries with ``label`` and ``anchor``.
    """

    title: str
    slug: str
    order: int
    intro_html: str
    subsections: list[dict[str, str]]
    toc_items: list[dict[str, str]]


@dc.dataclass(slots=True)
class PageEntry:
    """One page listed in the collector manifest."""

    key: str
    title: str
    kind: str
    file: str
    summary: str = ""
    members: int = 0
    source: str | None = None

    @property
    def html_file(self) -> str:
        return f"{self.file.removesuffix('.md')}.html"


__all__ = ["PageEntry", "SectionModel"]
