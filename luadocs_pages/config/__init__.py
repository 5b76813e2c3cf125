"""Load and validate luadocs configuration YAML.

This subpackage parses the project's ``luadocs.yaml`` file into strongly typed
dataclasses (:class:`SiteConfig`, :class:`CollectorConfig`, and friends) that
the collector, site builder, and publisher consume. The primary entry point is
:func:`load_site_config`, which applies defaults for missing sections and
rejects invalid values early.

Examples
--------
>>> from pathlib import Path
>>> from luadocs_pages.config import load_site_config
>>> site = load_site_config(Path("config/luadocs.yaml"))  # doctest: +SKIP
>>> site.publish.branch  # doctest: +SKIP
'gh-pages'
"""

from .loader import load_site_config
from .models import (
    COLLISION_POLICIES,
    CollectorConfig,
    ProjectConfig,
    PublishConfig,
    RuntimeConfig,
    SiteConfig,
    SiteConfigError,
    SiteOptions,
    ThemeConfig,
)

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
    "load_site_config",
]
