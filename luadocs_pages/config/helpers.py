"""Utility helpers shared by the luadocs configuration loader."""

from __future__ import annotations

import datetime as dt
import typing as typ
from pathlib import Path

from .models import SiteConfigError, ThemeConfig


def _section(raw: typ.Mapping[str, typ.Any], key: str) -> typ.Mapping[str, typ.Any]:
    """Return the mapping stored under ``key`` or an empty mapping."""
    value = raw.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        msg = f"Configuration section '{key}' must be a mapping."
        raise SiteConfigError(msg)
    return value


def _optional_str(value: object | None) -> str | None:
    """Return a stripped string value or None when empty."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_path(value: object | None, default: Path, *, key: str) -> Path:
    """Return ``value`` as a Path, rejecting empty strings."""
    if value is None:
        return default
    text = str(value).strip()
    if not text:
        msg = f"Configuration value '{key}' must not be empty."
        raise SiteConfigError(msg)
    return Path(text)


def _as_bool(value: object | None, default: bool, *, key: str) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    msg = f"Configuration value '{key}' must be true or false."
    raise SiteConfigError(msg)


def _build_theme_config(payload: typ.Mapping[str, typ.Any]) -> ThemeConfig:
    """Build a ThemeConfig instance from the provided mapping payload."""
    base = ThemeConfig()
    return ThemeConfig(
        hero_eyebrow=payload.get("hero_eyebrow", base.hero_eyebrow),
        hero_tagline=payload.get("hero_tagline", base.hero_tagline),
        doc_label=payload.get("doc_label", base.doc_label),
        site_name=payload.get("site_name", base.site_name),
    )


def _build_repo_url(repo: str | None) -> str | None:
    """Return the GitHub repository URL built from ``repo`` (owner/repo)."""
    if not repo:
        return None
    return f"https://github.com/{repo}"


def _build_release_link(repo: str | None, tag: str | None) -> str | None:
    """Return the GitHub release URL for ``repo`` and ``tag``, or None if missing."""
    if not repo or not tag:
        return None
    return f"https://github.com/{repo}/releases/tag/{tag}"


def _parse_timestamp(value: dt.datetime | str | None) -> dt.datetime | None:
    """Return a timezone-aware UTC datetime parsed from ``value``, or None."""
    match value:
        case dt.datetime():
            parsed = value
        case str() as text:
            sanitized = text.strip()
            if not sanitized:
                return None
            if sanitized.endswith("Z"):
                sanitized = sanitized[:-1] + "+00:00"
            try:
                parsed = dt.datetime.fromisoformat(sanitized)
            except ValueError:
                return None
        case _:
            return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=dt.UTC)
    return parsed.astimezone(dt.UTC)


__all__ = [
    "_as_bool",
    "_as_path",
    "_build_release_link",
    "_build_repo_url",
    "_build_theme_config",
    "_optional_str",
    "_parse_timestamp",
    "_section",
]
