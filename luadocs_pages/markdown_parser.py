r"""Parse generated reference pages into structured sections.

The collector writes one Markdown page per namespace or type: a level-one
title, an introduction, then one ``##`` section per member with ``###``
subsections for parameters, returns, and fields. This module splits such a
page back into dataclasses that the HTML renderer consumes. Headings inside
fenced code blocks are ignored, and an explicit ``{#anchor}`` suffix on a
heading is used as the section slug.

Example
-------
>>> from luadocs_pages.markdown_parser import parse_page
>>> page = parse_page("# box.ctl\nIntro\n\n## box.ctl.promote {#box-ctl-promote}\nBody")
>>> page.sections[0].slug
'box-ctl-promote'
"""

from __future__ import annotations

import dataclasses as dc
import re

TITLE_PATTERN = re.compile(r"^#\s+(.*)$")
SECTION_PATTERN = re.compile(r"^##\s+(.*)$")
SUBSECTION_PATTERN = re.compile(r"^###\s+(.*)$")
FENCE_PATTERN = re.compile(r"^\s{0,3}(`{3,}|~{3,})")
ANCHOR_SUFFIX_PATTERN = re.compile(r"\s*\{:?\s*#([A-Za-z0-9_-]+)\s*\}\s*$")


@dc.dataclass(slots=True)
class Subsection:
    """Third-level heading and its Markdown body.

    Attributes
    ----------
    title : str
        Text content of the subsection heading.
    markdown : str
        Markdown (sans heading) that belongs to this subsection.
    """

    title: str
    markdown: str


@dc.dataclass(slots=True)
class Section:
    """Second-level heading metadata and child subsections.

    Attributes
    ----------
    title : str
        Heading text with any anchor suffix removed.
    slug : str
        URL-safe identifier unique within the page.
    order : int
        1-based order of the section in the page.
    markdown : str
        Markdown content for the section (excluding the heading itself).
    intro_markdown : str
        Text preceding the first subsection; may be empty.
    subsections : list[Subsection]
        Parsed third-level subsections within this section.
    """

    title: str
    slug: str
    order: int
    markdown: str
    intro_markdown: str
    subsections: list[Subsection]


@dc.dataclass(slots=True)
class ParsedPage:
    """A whole generated page: title, introduction, and member sections."""

    title: str
    intro_markdown: str
    intro_subsections: list[Subsection]
    sections: list[Section]


def _clean_heading(text: str) -> tuple[str, str | None]:
    """Return the heading text without escapes plus any explicit anchor."""
    anchor = None
    match = ANCHOR_SUFFIX_PATTERN.search(text)
    if match:
        anchor = match.group(1)
        text = text[: match.start()]
    return text.replace("\\", "").strip(), anchor


def _slugify(title: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")
    return slug or "section"


def _unique_slug(base: str, used: set[str]) -> str:
    """Generate a unique slug, appending numeric suffixes when needed."""
    candidate = base
    suffix = 2
    while candidate in used:
        candidate = f"{base}-{suffix}"
        suffix += 1
    used.add(candidate)
    return candidate


def _split_on(
    lines: list[str], pattern: re.Pattern[str]
) -> tuple[list[str], list[tuple[str, list[str]]]]:
    """Split ``lines`` on headings matching ``pattern`` outside code fences."""
    head: list[str] = []
    chunks: list[tuple[str, list[str]]] = []
    fence: str | None = None
    for line in lines:
        fence_match = FENCE_PATTERN.match(line)
        if fence_match:
            marker = fence_match.group(1)
            if fence is None:
                fence = marker
            elif marker[0] == fence[0] and len(marker) >= len(fence):
                fence = None
        heading = pattern.match(line) if fence is None and not fence_match else None
        if heading:
            chunks.append((heading.group(1), []))
        elif chunks:
            chunks[-1][1].append(line)
        else:
            head.append(line)
    return head, chunks


def _split_subsections(body: str) -> tuple[str, list[Subsection]]:
    """Return intro text and parsed Subsections from a section body."""
    head, chunks = _split_on(body.splitlines(), SUBSECTION_PATTERN)
    if not chunks:
        return body.strip(), []
    subsections = [
        Subsection(title=_clean_heading(title)[0], markdown="\n".join(lines).strip())
        for title, lines in chunks
    ]
    return "\n".join(head).strip(), subsections


def parse_sections(markdown_text: str) -> list[Section]:
    """Split markdown into ordered Section objects with subsections.

    Parameters
    ----------
    markdown_text : str
        Raw markdown content with ``##`` section headings and optional
        ``###`` subsections.

    Returns
    -------
    list[Section]
        Parsed sections including titles, slugs, intro markdown, and their
        associated ``Subsection`` entries. Returns an empty list when no
        second-level headings are present.
    """
    _head, chunks = _split_on(markdown_text.splitlines(), SECTION_PATTERN)
    sections: list[Section] = []
    used_slugs: set[str] = set()
    for idx, (raw_heading, lines) in enumerate(chunks, start=1):
        heading, anchor = _clean_heading(raw_heading)
        body = "\n".join(lines).strip()
        slug = _unique_slug(anchor or _slugify(heading), used_slugs)
        intro, subsections = _split_subsections(body)
        sections.append(
            Section(
                title=heading,
                slug=slug,
                order=idx,
                markdown=body,
                intro_markdown=intro,
                subsections=subsections,
            )
        )
    return sections


def parse_page(markdown_text: str) -> ParsedPage:
    """Parse a generated page into its title, introduction, and sections."""
    head, _chunks = _split_on(markdown_text.splitlines(), SECTION_PATTERN)
    title = ""
    intro_lines: list[str] = []
    for line in head:
        match = TITLE_PATTERN.match(line)
        if match and not title:
            title = _clean_heading(match.group(1))[0]
            continue
        intro_lines.append(line)
    intro, intro_subsections = _split_subsections("\n".join(intro_lines))
    return ParsedPage(
        title=title,
        intro_markdown=intro,
        intro_subsections=intro_subsections,
        sections=parse_sections(markdown_text),
    )


__all__ = ["ParsedPage", "Section", "Subsection", "parse_page", "parse_sections"]
