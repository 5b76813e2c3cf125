"""Unit tests for splitting generated pages into sections.

Usage
-----
Run ``pytest tests/test_markdown_parser.py -v``. The tests feed small inline
pages to :func:`luadocs_pages.markdown_parser.parse_page` and need no fixtures.
"""

from __future__ import annotations

from textwrap import dedent

from luadocs_pages.markdown_parser import parse_page, parse_sections

PAGE = dedent(
    """
    # box.ctl

    Control the state of the running instance.

    ### Aliases

    - `box.ctl.mode`

    ## box.ctl.wait_rw {#box-ctl-wait-rw}

    ```lua
    async function box.ctl.wait_rw(timeout?: number)
      -> boolean
    ```

    Wait until the instance is writable.

    ### Parameters

    - **`timeout`** (`number`, optional): seconds to wait

    ### Returns

    - **`ok`** (`boolean`)

    ## box.ctl.promote {#box-ctl-promote}

    Make the instance the replication leader.
    """
).lstrip()


def test_page_title_intro_and_sections() -> None:
    page = parse_page(PAGE)

    assert page.title == "box.ctl"
    assert page.intro_markdown == "Control the state of the running instance."
    assert [sub.title for sub in page.intro_subsections] == ["Aliases"]
    assert [section.slug for section in page.sections] == [
        "box-ctl-wait-rw",
        "box-ctl-promote",
    ]


def test_section_subsections_split_parameters_and_returns() -> None:
    wait_rw = parse_page(PAGE).sections[0]

    assert wait_rw.title == "box.ctl.wait_rw"
    assert wait_rw.intro_markdown.startswith("```lua")
    assert wait_rw.intro_markdown.endswith("Wait until the instance is writable.")
    assert [(sub.title, sub.markdown) for sub in wait_rw.subsections] == [
        ("Parameters", "- **`timeout`** (`number`, optional): seconds to wait"),
        ("Returns", "- **`ok`** (`boolean`)"),
    ]


def test_headings_inside_fences_are_ignored() -> None:
    text = dedent(
        """
        ## box.tuple {#box-tuple}

        ````markdown
        ## not a section
        ```
        ### still not a subsection
        ```
        ````

        ### Fields
        """
    )

    (section,) = parse_sections(text)

    assert [sub.title for sub in section.subsections] == ["Fields"]
    assert "## not a section" in section.intro_markdown


def test_slugs_fall_back_to_titles_and_stay_unique() -> None:
    sections = parse_sections("## Global functions\n\n## Global functions\n\n## ???\n")
    assert [section.slug for section in sections] == [
        "global-functions",
        "global-functions-2",
        "section",
    ]
    assert [section.order for section in sections] == [1, 2, 3]


def test_page_without_sections() -> None:
    page = parse_page("# _G\n\nNothing documented yet.\n")
    assert page.title == "_G"
    assert page.sections == []
    assert page.intro_markdown == "Nothing documented yet."
