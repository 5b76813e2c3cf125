"""Typed dataclasses describing luadocs site configuration structures."""

from __future__ import annotations

import dataclasses as dc
import datetime as dt  # noqa: TC003 - used for runtime type metadata
from pathlib import Path

COLLISION_POLICIES = ("error", "last-wins")


class SiteConfigError(ValueError):
    """Raised when the site configuration is invalid or incomplete."""


@dc.dataclass(slots=True)
class ThemeConfig:
    """Visual theming applied to generated documentation."""

    hero_eyebrow: str = "Lua API"
    hero_tagline: str = "Reference documentation generated from annotations"
    doc_label: str = "Reference"
    site_name: str = "Lua API Reference"


@dc.dataclass(slots=True)
class ProjectConfig:
    """Repository that owns the annotation sources."""

    name: str = "Lua API"
    repo: str | None = None
    branch: str = "main"
    source_label: str = "Annotation sources"


@dc.dataclass(slots=True)
class CollectorConfig:
    """Settings for scanning stubs and emitting Markdown pages."""

    input_dir: Path = Path("Library")
    output_dir: Path = Path("doc")
    cache_dir: Path = Path(".cache")
    collision_policy: str = "error"
    require_meta: bool = True


@dc.dataclass(slots=True)
class SiteOptions:
    """Settings for rendering the HTML site."""

    output_dir: Path = Path("site")
    pygments_style: str = "monokai"
    page_title_suffix: str = "API reference"
    footer_note: str = ""
    doc_base_url: str | None = None
    default_code_language: str = "lua"
    theme: ThemeConfig = dc.field(default_factory=ThemeConfig)


@dc.dataclass(slots=True)
class PublishConfig:
    """Where and how the built site is force-pushed."""

    branch: str = "gh-pages"
    remote: str | None = None
    cname: str | None = None
    message: str = "Deployed {sha} with luadocs {version}"


@dc.dataclass(slots=True)
class RuntimeConfig:
    """The annotated runtime whose latest release is shown on every page."""

    repo: str | None = None
    label: str = "Runtime"
    latest_release: str | None = None
    latest_release_published_at: dt.datetime | None = None


@dc.dataclass(slots=True)
class SiteConfig:
    """Aggregate configuration loaded from ``luadocs.yaml``."""

    project: ProjectConfig = dc.field(default_factory=ProjectConfig)
    collector: CollectorConfig = dc.field(default_factory=CollectorConfig)
    site: SiteOptions = dc.field(default_factory=SiteOptions)
    publish: PublishConfig = dc.field(default_factory=PublishConfig)
    runtime: RuntimeConfig = dc.field(default_factory=RuntimeConfig)
    path: Path | None = None


__all__ = [
    "COLLISION_POLICIES",
    "CollectorConfig",
    "ProjectConfig",
    "PublishConfig",
    "RuntimeConfig",
    "SiteConfig",
    "SiteConfigError",
    "SiteOptions",
    "ThemeConfig",
]
