"""Collect annotated stubs into a directory of Markdown reference pages.

:class:`AnnotationCollector` walks ``collector.input_dir`` for ``*.lua`` stubs
in sorted order, parses each one (reusing the week-keyed build cache when the
content is unchanged), merges the symbols, and writes one Markdown page per
namespace or type plus ``manifest.json``. Pages are written to a staging
directory that replaces ``collector.output_dir`` only after every page
rendered, so a failed run leaves the previous output untouched.

Example
-------
>>> from pathlib import Path
>>> from luadocs_pages.config import load_site_config
>>> from luadocs_pages.annotations import AnnotationCollector
>>> config = load_site_config(Path("config/luadocs.yaml"))  # doctest: +SKIP
>>> AnnotationCollector(config).run().pages  # doctest: +SKIP
[PosixPath('doc/box.backup.md'), ...]
"""

from __future__ import annotations

import dataclasses as dc
import json
import logging
import shutil
import tempfile
import typing as typ
from pathlib import Path

from luadocs_pages._constants import MANIFEST_FILENAME

from .cache import BuildCache, content_digest
from .errors import CollectionError
from .pages import Page, plan_pages
from .parser import parse_stub
from .registry import SymbolRegistry
from .writer import CrossReferences, MarkdownPageWriter

if typ.TYPE_CHECKING:
    from luadocs_pages.config import SiteConfig

    from .models import StubFile

logger = logging.getLogger(__name__)

MANIFEST_SCHEMA = 1


@dc.dataclass(slots=True)
class CheckReport:
    """Summary of a successful annotation check."""

    files: int
    symbols: int
    pages: int
    collisions: int = 0


@dc.dataclass(slots=True)
class CollectionResult:
    """Outcome of a collection run.

    Attributes
    ----------
    output_dir : Path
        Directory holding the generated pages and manifest.
    pages : list[Path]
        Generated Markdown files in page-key order.
    manifest : Path
        Path of the written ``manifest.json``.
    report : CheckReport
        File, symbol, and page counts.
    cache_hits : int
        Stubs restored from the build cache instead of being parsed.
    """

    output_dir: Path
    pages: list[Path]
    manifest: Path
    report: CheckReport
    cache_hits: int = 0


class AnnotationCollector:
    """Scan, merge, and render annotation stubs for one configuration."""

    def __init__(
        self,
        config: SiteConfig,
        *,
        input_dir: Path | None = None,
        output_dir: Path | None = None,
        use_cache: bool = True,
    ) -> None:
        self.config = config
        self.input_dir = input_dir or config.collector.input_dir
        self.output_dir = output_dir or config.collector.output_dir
        self.cache = BuildCache(config.collector.cache_dir) if use_cache else None

    def stub_paths(self) -> list[Path]:
        """Return every ``*.lua`` file under the input directory, sorted."""
        if not self.input_dir.is_dir():
            msg = f"Annotation directory '{self.input_dir}' does not exist."
            raise CollectionError(msg)
        paths = sorted(
            (path for path in self.input_dir.rglob("*.lua") if path.is_file()),
            key=lambda path: path.relative_to(self.input_dir).as_posix(),
        )
        if not paths:
            msg = f"No stub files found under '{self.input_dir}'."
            raise CollectionError(msg)
        return paths

    def scan(self) -> list[StubFile]:
        """Parse every stub file, serving unchanged files from the cache."""
        require_meta = self.config.collector.require_meta
        if self.cache is not None:
            self.cache.load()
        stubs: list[StubFile] = []
        for path in self.stub_paths():
            rel_path = path.relative_to(self.input_dir).as_posix()
            text = path.read_text(encoding="utf-8")
            digest = content_digest(text, require_meta=require_meta)
            stub = self.cache.get(rel_path, digest) if self.cache is not None else None
            if stub is None:
                stub = parse_stub(text, rel_path, require_meta=require_meta)
                if self.cache is not None:
                    self.cache.put(rel_path, digest, stub)
            stubs.append(stub)
        return stubs

    def resolve(self) -> tuple[list[StubFile], SymbolRegistry, list[Page]]:
        """Parse, merge, and plan pages without writing anything."""
        stubs = self.scan()
        registry = SymbolRegistry.from_stubs(
            stubs, collision_policy=self.config.collector.collision_policy
        )
        return stubs, registry, plan_pages(registry)

    def check(self) -> CheckReport:
        """Validate every stub and the merged symbol table."""
        stubs, registry, pages = self.resolve()
        return CheckReport(
            files=len(stubs),
            symbols=len(registry.symbols()),
            pages=len(pages),
            collisions=len(registry.collisions),
        )

    def run(self) -> CollectionResult:
        """Write the Markdown pages and manifest, replacing ``output_dir``.

        Returns
        -------
        CollectionResult
            Paths of the written files plus summary counts.

        Raises
        ------
        CollectionError
            If the input directory is missing or holds no stubs.
        AnnotationError
            If a stub, type expression, or symbol merge is invalid. Nothing
            is written in that case.
        """
        stubs, registry, pages = self.resolve()
        references = CrossReferences.from_pages(
            pages, doc_base_url=self.config.site.doc_base_url
        )
        writer = MarkdownPageWriter(
            references, default_language=self.config.site.default_code_language
        )
        rendered = [(page, writer.render(page)) for page in pages]
        manifest = _build_manifest(pages, references, writer)

        staging = self._write_staging(rendered, manifest)
        self._replace_output(staging)
        if self.cache is not None:
            self.cache.save()
            logger.info(
                "build cache %s: %d hits, %d misses",
                self.cache.key,
                self.cache.hits,
                self.cache.misses,
            )

        report = CheckReport(
            files=len(stubs),
            symbols=len(registry.symbols()),
            pages=len(pages),
            collisions=len(registry.collisions),
        )
        return CollectionResult(
            output_dir=self.output_dir,
            pages=[self.output_dir / page.filename for page in pages],
            manifest=self.output_dir / MANIFEST_FILENAME,
            report=report,
            cache_hits=self.cache.hits if self.cache is not None else 0,
        )

    def _write_staging(
        self, rendered: list[tuple[Page, str]], manifest: dict[str, typ.Any]
    ) -> Path:
        parent = self.output_dir.resolve().parent
        parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=".luadocs-", dir=parent))
        staging.chmod(0o755)
        try:
            for page, text in rendered:
                (staging / page.filename).write_text(text, encoding="utf-8")
            (staging / MANIFEST_FILENAME).write_text(
                json.dumps(manifest, indent=2, sort_keys=True) + "\n", encoding="utf-8"
            )
        except OSError:
            shutil.rmtree(staging, ignore_errors=True)
            raise
        return staging

    def _replace_output(self, staging: Path) -> None:
        target = self.output_dir.resolve()
        if target.exists():
            backup = target.with_name(f"{staging.name}.old")
            target.rename(backup)
            staging.rename(target)
            shutil.rmtree(backup)
        else:
            staging.rename(target)
        logger.debug("replaced %s with freshly collected pages", target)


def _build_manifest(
    pages: list[Page], references: CrossReferences, writer: MarkdownPageWriter
) -> dict[str, typ.Any]:
    return {
        "schema": MANIFEST_SCHEMA,
        "pages": [
            {
                "key": page.key,
                "title": page.title,
                "kind": page.kind,
                "file": page.filename,
                "summary": writer.summary(page),
                "members": len(page.members),
                "source": page.owner.path if page.owner is not None else None,
            }
            for page in pages
        ],
        "values": dict(sorted(references.values.items())),
        "types": dict(sorted(references.types.items())),
    }


def collect(
    config: SiteConfig, *, output_dir: Path | None = None, use_cache: bool = True
) -> CollectionResult:
    """Run :class:`AnnotationCollector` for ``config``; see its ``run`` method."""
    return AnnotationCollector(config, output_dir=output_dir, use_cache=use_cache).run()


def check(config: SiteConfig, *, use_cache: bool = True) -> CheckReport:
    """Validate the stubs for ``config`` without writing any pages."""
    return AnnotationCollector(config, use_cache=use_cache).check()


__all__ = [
    "AnnotationCollector",
    "CheckReport",
    "CollectionResult",
    "check",
    "collect",
]
