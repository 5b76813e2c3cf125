"""Utilities for rendering collected reference pages into a static HTML site."""

from .link_rewriter import PageLinkExtension
from .models import PageEntry, SectionModel
from .renderer import HtmlContentRenderer
from .site_builder import SiteBuildError, SiteBuilder, build_site

__all__ = [
    "HtmlContentRenderer",
    "PageEntry",
    "PageLinkExtension",
    "SectionModel",
    "SiteBuildError",
    "SiteBuilder",
    "build_site",
]
