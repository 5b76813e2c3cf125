"""Turn collected Markdown pages into the themed static HTML site.

:class:`SiteBuilder` reads ``manifest.json`` and the Markdown pages written by
the collector, renders each page through ``doc_page.jinja`` with
Python-Markdown and Pygments, and writes the landing page, a search index,
``.nojekyll`` and (when configured) ``CNAME``. The site directory is replaced
as a whole on every build, and no timestamps are rendered, so an unchanged
input produces an identical site.

Example
-------
>>> from pathlib import Path
>>> from luadocs_pages.config import load_site_config
>>> from luadocs_pages.generator import build_site
>>> config = load_site_config(Path("config/luadocs.yaml"))  # doctest: +SKIP
>>> build_site(config)  # doctest: +SKIP
[PosixPath('site/box.backup.html'), ...]
"""

from __future__ import annotations

import html as html_lib
import json
import logging
import re
import shutil
import tempfile
import typing as typ
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from luadocs_pages._constants import MANIFEST_FILENAME, SEARCH_INDEX_PATH
from luadocs_pages.config.helpers import _build_release_link, _build_repo_url
from luadocs_pages.docs_index import SiteIndexBuilder
from luadocs_pages.generator.link_rewriter import PageLinkExtension
from luadocs_pages.generator.models import PageEntry, SectionModel
from luadocs_pages.generator.renderer import HtmlContentRenderer
from luadocs_pages.markdown_parser import ParsedPage, Section, parse_page

if typ.TYPE_CHECKING:
    from luadocs_pages.config import SiteConfig

logger = logging.getLogger(__name__)

KIND_ORDER = ("module", "class", "enum", "alias", "namespace", "globals")
KIND_GROUP_LABELS = {
    "module": "Modules",
    "class": "Classes",
    "enum": "Enums",
    "alias": "Aliases",
    "namespace": "Namespaces",
    "globals": "Globals",
}
TAG_PATTERN = re.compile(r"<[^>]+>")
WHITESPACE_PATTERN = re.compile(r"\s+")


class SiteBuildError(RuntimeError):
    """Raised when the collector output cannot be turned into a site."""


class SiteBuilder:
    """Render every collected page into themed HTML files on disk."""

    def __init__(
        self,
        config: SiteConfig,
        *,
        docs_dir: Path | None = None,
        site_dir: Path | None = None,
        templates_dir: Path | None = None,
    ) -> None:
        """Initialize the builder with configuration and template context.

        Parameters
        ----------
        config : SiteConfig
            Loaded configuration; supplies theme, runtime release, and paths.
        docs_dir : Path, optional
            Collector output to read; defaults to ``collector.output_dir``.
        site_dir : Path, optional
            HTML output directory; defaults to ``site.output_dir``.
        templates_dir : Path, optional
            Directory containing Jinja templates; defaults to the package templates.
        """
        self.config = config
        self.docs_dir = docs_dir or config.collector.output_dir
        self.site_dir = site_dir or config.site.output_dir
        default_templates = Path(__file__).resolve().parents[1] / "templates"
        self.templates_dir = templates_dir or default_templates
        self.env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=select_autoescape(["html", "xml", "jinja"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.template = self.env.get_template("doc_page.jinja")
        self.renderer: HtmlContentRenderer | None = None

    def run(self) -> list[Path]:
        """Render the site and swap it into place.

        Returns
        -------
        list[Path]
            Paths of the generated page documents, ordered by page key.

        Raises
        ------
        SiteBuildError
            Raised when the manifest is missing or malformed, or a page it
            lists does not exist.
        """
        entries = self._load_manifest()
        self.renderer = HtmlContentRenderer(
            self.config.site.pygments_style,
            link_extension=PageLinkExtension(entry.file for entry in entries),
            default_language=self.config.site.default_code_language,
        )
        nav_groups = self._build_nav_groups(entries)
        release = self._release_context()

        staging = self._make_staging()
        search_docs: list[dict[str, str]] = []
        written: list[str] = []
        try:
            for entry in entries:
                parsed = parse_page(self._read_page(entry))
                html, docs = self._render_page(entry, parsed, nav_groups, release)
                (staging / entry.html_file).write_text(html, encoding="utf-8")
                search_docs.extend(docs)
                written.append(entry.html_file)
            SiteIndexBuilder(self.config, templates_dir=self.templates_dir).write(
                staging, entries, release=release, nav_groups=nav_groups
            )
            self._write_search_index(staging, search_docs)
            self._write_support_files(staging)
        except Exception:
            shutil.rmtree(staging, ignore_errors=True)
            raise
        self._replace_output(staging)
        return [self.site_dir / name for name in written]

    def _load_manifest(self) -> list[PageEntry]:
        path = self.docs_dir / MANIFEST_FILENAME
        if not path.is_file():
            msg = f"No collector manifest at '{path}'; run 'luadocs collect' first."
            raise SiteBuildError(msg)
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
            entries = [
                PageEntry(
                    key=item["key"],
                    title=item["title"],
                    kind=item["kind"],
                    file=item["file"],
                    summary=item.get("summary", ""),
                    members=item.get("members", 0),
                    source=item.get("source"),
                )
                for item in payload["pages"]
            ]
        except (json.JSONDecodeError, KeyError, TypeError) as exc:
            msg = f"Malformed collector manifest '{path}': {exc}"
            raise SiteBuildError(msg) from exc
        if not entries:
            msg = f"Collector manifest '{path}' lists no pages."
            raise SiteBuildError(msg)
        return entries

    def _read_page(self, entry: PageEntry) -> str:
        path = self.docs_dir / entry.file
        if not path.is_file():
            msg = f"Manifest lists '{entry.file}' but it is missing from '{self.docs_dir}'."
            raise SiteBuildError(msg)
        return path.read_text(encoding="utf-8")

    def _render_page(
        self,
        entry: PageEntry,
        parsed: ParsedPage,
        nav_groups: list[dict[str, typ.Any]],
        release: dict[str, str] | None,
    ) -> tuple[str, list[dict[str, str]]]:
        renderer = self._renderer()
        intro_html = renderer.markdown(parsed.intro_markdown)
        used: set[str] = set()
        intro_blocks = [
            {
                "title": sub.title,
                "anchor": _unique_anchor(
                    f"{_slugify(entry.key)}-{_slugify(sub.title)}", used
                ),
                "html": renderer.markdown(sub.markdown),
            }
            for sub in parsed.intro_subsections
        ]
        sections = [self._build_section_model(section) for section in parsed.sections]
        context = {
            "entry": entry,
            "intro_html": intro_html,
            "intro_blocks": intro_blocks,
            "sections": sections,
            "nav_groups": nav_groups,
            "theme": self.config.site.theme,
            "project": self.config.project,
            "release": release,
            "source_url": self._source_url(entry),
            "pygments_css": renderer.stylesheet,
            "html_title": self._format_page_title(entry),
            "footer_note": self.config.site.footer_note,
        }
        html = self.template.render(**context)

        docs = [
            {
                "location": entry.html_file,
                "title": entry.title,
                "text": _plain_text(intro_html + "".join(b["html"] for b in intro_blocks)),
            }
        ]
        for section in sections:
            body = section.intro_html + "".join(sub["html"] for sub in section.subsections)
            docs.append(
                {
                    "location": f"{entry.html_file}#{section.slug}",
                    "title": section.title,
                    "text": _plain_text(body),
                }
            )
        return html, docs

    def _build_section_model(self, section: Section) -> SectionModel:
        """Construct a SectionModel with rendered HTML for one member section."""
        renderer = self._renderer()
        subsections = self._build_subsection_blocks(section)
        return SectionModel(
            title=section.title,
            slug=section.slug,
            order=section.order,
            intro_html=renderer.markdown(section.intro_markdown),
            subsections=subsections,
            toc_items=[
                {"label": block["title"], "anchor": block["anchor"]}
                for block in subsections
            ],
        )

    def _build_subsection_blocks(self, section: Section) -> list[dict[str, str]]:
        """Return rendered subsection blocks with unique anchors for ``section``."""
        renderer = self._renderer()
        blocks: list[dict[str, str]] = []
        used: set[str] = set()
        for idx, sub in enumerate(section.subsections, start=1):
            base = _slugify(sub.title) or f"part-{idx}"
            anchor = _unique_anchor(f"{section.slug}-{base}", used)
            blocks.append(
                {"title": sub.title, "anchor": anchor, "html": renderer.markdown(sub.markdown)}
            )
        return blocks

    def _build_nav_groups(self, entries: list[PageEntry]) -> list[dict[str, typ.Any]]:
        """Group pages by kind for the sidebar."""
        groups: list[dict[str, typ.Any]] = []
        for kind in KIND_ORDER:
            members = [entry for entry in entries if entry.kind == kind]
            if not members:
                continue
            groups.append(
                {
                    "label": KIND_GROUP_LABELS[kind],
                    "slug": kind,
                    "entries": [
                        {"label": entry.title, "href": entry.html_file, "key": entry.key}
                        for entry in members
                    ],
                }
            )
        return groups

    def _release_context(self) -> dict[str, str] | None:
        """Return the runtime release badge data, or ``None`` when unknown."""
        runtime = self.config.runtime
        if not runtime.latest_release:
            return None
        published = runtime.latest_release_published_at
        return {
            "label": runtime.label,
            "tag": runtime.latest_release,
            "url": _build_release_link(runtime.repo, runtime.latest_release) or "",
            "published": published.strftime("%Y-%m-%d") if published else "",
        }

    def _source_url(self, entry: PageEntry) -> str | None:
        repo_url = _build_repo_url(self.config.project.repo)
        if not repo_url or not entry.source:
            return None
        input_dir = self.config.collector.input_dir.as_posix().strip("/")
        prefix = "" if input_dir in ("", ".") else f"{input_dir}/"
        return f"{repo_url}/blob/{self.config.project.branch}/{prefix}{entry.source}"

    def _format_page_title(self, entry: PageEntry) -> str:
        """Compose the HTML title using site name, page title, and configured suffix."""
        site_name = self.config.site.theme.site_name
        suffix = self.config.site.page_title_suffix
        return f"{site_name} — {entry.title} | {suffix}"

    def _write_search_index(self, staging: Path, docs: list[dict[str, str]]) -> None:
        path = staging / SEARCH_INDEX_PATH
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"config": {"lang": ["en"], "separator": r"[\s\-.]+"}, "docs": docs}
        path.write_text(json.dumps(payload, indent=1, sort_keys=True) + "\n", encoding="utf-8")

    def _write_support_files(self, staging: Path) -> None:
        (staging / ".nojekyll").write_text("", encoding="utf-8")
        if self.config.publish.cname:
            (staging / "CNAME").write_text(f"{self.config.publish.cname}\n", encoding="utf-8")

    def _make_staging(self) -> Path:
        parent = self.site_dir.resolve().parent
        parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=".luadocs-site-", dir=parent))
        staging.chmod(0o755)
        return staging

    def _replace_output(self, staging: Path) -> None:
        target = self.site_dir.resolve()
        if target.exists():
            backup = target.with_name(f"{staging.name}.old")
            target.rename(backup)
            staging.rename(target)
            shutil.rmtree(backup)
        else:
            staging.rename(target)
        logger.debug("replaced %s with the freshly built site", target)

    def _renderer(self) -> HtmlContentRenderer:
        if self.renderer is None:
            self.renderer = HtmlContentRenderer(
                self.config.site.pygments_style,
                default_language=self.config.site.default_code_language,
            )
        return self.renderer


def _slugify(value: str) -> str:
    """Convert a string into a lowercase hyphen-separated slug."""
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


def _unique_anchor(base: str, used: set[str]) -> str:
    """Return a unique anchor, appending numeric suffixes and mutating ``used``."""
    candidate = base
    suffix = 2
    while candidate in used:
        candidate = f"{base}-{suffix}"
        suffix += 1
    used.add(candidate)
    return candidate


def _plain_text(html: str) -> str:
    """Strip tags from rendered HTML for the search index."""
    text = html_lib.unescape(TAG_PATTERN.sub(" ", html))
    return WHITESPACE_PATTERN.sub(" ", text).strip()


def build_site(
    config: SiteConfig, *, docs_dir: Path | None = None, site_dir: Path | None = None
) -> list[Path]:
    """Build the HTML site for ``config``; see :meth:`SiteBuilder.run`."""
    return SiteBuilder(config, docs_dir=docs_dir, site_dir=site_dir).run()


__all__ = ["SiteBuildError", "SiteBuilder", "build_site"]
