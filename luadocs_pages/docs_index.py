"""Build and render the landing page of the generated reference site.

The landing page (``index.html``) lists every collected page grouped by kind,
with the one-line summary taken from the collector manifest and, when known,
the latest release of the annotated runtime.

>>> from pathlib import Path
>>> from luadocs_pages.config import load_site_config
>>> from luadocs_pages.docs_index import SiteIndexBuilder
>>> site = load_site_config(Path("config/luadocs.yaml"))  # doctest: +SKIP
>>> SiteIndexBuilder(site).write(Path("site"), entries)  # doctest: +SKIP
PosixPath('site/index.html')
"""

from __future__ import annotations

import typing as typ
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markdown import markdown

from .config.helpers import _build_repo_url

if typ.TYPE_CHECKING:  # pragma: no cover - import for type hints only
    from .config import SiteConfig
    from .generator.models import PageEntry

INDEX_FILENAME = "index.html"


class SiteIndexBuilder:
    """Render a landing page enumerating generated reference pages."""

    def __init__(
        self, site_config: SiteConfig, *, templates_dir: Path | None = None
    ) -> None:
        """Initialize the index builder.

        Parameters
        ----------
        site_config : SiteConfig
            Parsed site configuration (produced by
            :func:`luadocs_pages.config.load_site_config`).
        templates_dir : Path, optional
            Directory containing the Jinja templates. Defaults to the
            ``luadocs_pages/templates`` directory when ``None``.
        """
        self.site_config = site_config
        self.templates_dir = templates_dir or Path(__file__).parent / "templates"
        self.env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=select_autoescape(["html", "xml", "jinja"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.template = self.env.get_template("site_index.jinja")
        self._markdown_extensions = ["sane_lists", "tables", "fenced_code"]

    def write(
        self,
        output_dir: Path,
        entries: list[PageEntry],
        *,
        release: dict[str, str] | None = None,
        nav_groups: list[dict[str, typ.Any]] | None = None,
    ) -> Path:
        """Render ``index.html`` into ``output_dir`` and return its path."""
        output_dir.mkdir(parents=True, exist_ok=True)
        context = {
            "theme": self.site_config.site.theme,
            "project": self.site_config.project,
            "repo_url": _build_repo_url(self.site_config.project.repo),
            "groups": self._gather_groups(entries, nav_groups or []),
            "release": release,
            "footer_note": self.site_config.site.footer_note,
        }
        output_path = output_dir / INDEX_FILENAME
        output_path.write_text(self.template.render(**context), encoding="utf-8")
        return output_path

    def _gather_groups(
        self, entries: list[PageEntry], nav_groups: list[dict[str, typ.Any]]
    ) -> list[dict[str, typ.Any]]:
        """Attach rendered summaries to the sidebar groups, preserving their order."""
        by_key = {entry.key: entry for entry in entries}
        if not nav_groups:
            nav_groups = [
                {
                    "label": "Pages",
                    "slug": "pages",
                    "entries": [{"key": entry.key} for entry in entries],
                }
            ]
        return [
            {
                "label": group["label"],
                "slug": group["slug"],
                "cards": [self._card(by_key[item["key"]]) for item in group["entries"]],
            }
            for group in nav_groups
        ]

    def _card(self, entry: PageEntry) -> dict[str, typ.Any]:
        return {
            "label": entry.title,
            "href": entry.html_file,
            "summary_html": self._render_summary(entry.summary),
            "members": entry.members,
        }

    def _render_summary(self, text: str) -> str:
        normalized = (text or "").strip()
        if not normalized:
            return ""
        return markdown(
            normalized,
            extensions=self._markdown_extensions,
            output_format="html5",
        )


__all__ = ["INDEX_FILENAME", "SiteIndexBuilder"]
