"""Load luadocs configuration YAML into typed dataclasses."""

from __future__ import annotations

import typing as typ
from pathlib import Path

from ruamel.yaml import YAML

from .helpers import (
    _as_bool,
    _as_path,
    _build_theme_config,
    _optional_str,
    _parse_timestamp,
    _section,
)
from .models import (
    COLLISION_POLICIES,
    CollectorConfig,
    ProjectConfig,
    PublishConfig,
    RuntimeConfig,
    SiteConfig,
    SiteConfigError,
    SiteOptions,
)


def load_site_config(path: Path) -> SiteConfig:
    """Load the YAML configuration describing the collector, site, and publish target.

    Parameters
    ----------
    path : Path
        Filesystem path to the YAML configuration file (for example,
        ``config/luadocs.yaml``).

    Returns
    -------
    SiteConfig
        Parsed configuration. Sections missing from the file fall back to the
        dataclass defaults.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist at ``path``.
    SiteConfigError
        If the top-level structure or any section is not a mapping, or when
        a value is invalid (for example, an unknown collision policy).
    YAMLError
        If the YAML content cannot be parsed by the underlying loader.

    Examples
    --------
    >>> from pathlib import Path
    >>> from luadocs_pages.config import load_site_config
    >>> config = load_site_config(Path("config/luadocs.yaml"))  # doctest: +SKIP
    >>> config.collector.input_dir  # doctest: +SKIP
    PosixPath('Library')
    """
    if not path.exists():
        msg = f"Configuration file '{path}' not found."
        raise FileNotFoundError(msg)

    loader = YAML(typ="safe")
    loader.version = (1, 2)
    with path.open("r", encoding="utf-8") as handle:
        loaded = loader.load(handle) or {}
    if not isinstance(loaded, dict):
        msg = "Top-level YAML structure must be a mapping."
        raise SiteConfigError(msg)
    raw: dict[str, typ.Any] = dict(loaded)

    return SiteConfig(
        project=_build_project_config(_section(raw, "project")),
        collector=_build_collector_config(_section(raw, "collector")),
        site=_build_site_options(_section(raw, "site")),
        publish=_build_publish_config(_section(raw, "publish")),
        runtime=_build_runtime_config(_section(raw, "runtime")),
        path=path,
    )


def _build_project_config(payload: typ.Mapping[str, typ.Any]) -> ProjectConfig:
    base = ProjectConfig()
    return ProjectConfig(
        name=payload.get("name", base.name),
        repo=_optional_str(payload.get("repo")),
        branch=payload.get("branch", base.branch),
        source_label=payload.get("source_label", base.source_label),
    )


def _build_collector_config(payload: typ.Mapping[str, typ.Any]) -> CollectorConfig:
    """Build the collector section, validating the collision policy."""
    base = CollectorConfig()
    policy = str(payload.get("collision_policy", base.collision_policy)).strip().lower()
    if policy not in COLLISION_POLICIES:
        allowed = ", ".join(COLLISION_POLICIES)
        msg = f"Unknown collision_policy '{policy}'. Expected one of: {allowed}"
        raise SiteConfigError(msg)
    return CollectorConfig(
        input_dir=_as_path(payload.get("input_dir"), base.input_dir, key="collector.input_dir"),
        output_dir=_as_path(
            payload.get("output_dir"), base.output_dir, key="collector.output_dir"
        ),
        cache_dir=_as_path(payload.get("cache_dir"), base.cache_dir, key="collector.cache_dir"),
        collision_policy=policy,
        require_meta=_as_bool(
            payload.get("require_meta"), base.require_meta, key="collector.require_meta"
        ),
    )


def _build_site_options(payload: typ.Mapping[str, typ.Any]) -> SiteOptions:
    base = SiteOptions()
    return SiteOptions(
        output_dir=_as_path(payload.get("output_dir"), base.output_dir, key="site.output_dir"),
        pygments_style=payload.get("pygments_style", base.pygments_style),
        page_title_suffix=payload.get("page_title_suffix", base.page_title_suffix),
        footer_note=payload.get("footer_note", base.footer_note) or "",
        doc_base_url=_optional_str(payload.get("doc_base_url")),
        default_code_language=payload.get(
            "default_code_language", base.default_code_language
        ),
        theme=_build_theme_config(_section(payload, "theme")),
    )


def _build_publish_config(payload: typ.Mapping[str, typ.Any]) -> PublishConfig:
    base = PublishConfig()
    branch = _optional_str(payload.get("branch")) or base.branch
    return PublishConfig(
        branch=branch,
        remote=_optional_str(payload.get("remote")),
        cname=_optional_str(payload.get("cname")),
        message=payload.get("message", base.message),
    )


def _build_runtime_config(payload: typ.Mapping[str, typ.Any]) -> RuntimeConfig:
    base = RuntimeConfig()
    return RuntimeConfig(
        repo=_optional_str(payload.get("repo")),
        label=payload.get("label", base.label),
        latest_release=_optional_str(payload.get("latest_release")),
        latest_release_published_at=_parse_timestamp(
            payload.get("latest_release_published_at")
        ),
    )


__all__ = ["load_site_config"]
