"""Run collection, site build, and publishing as one strictly ordered job.

``luadocs run`` is what CI invokes on every push to the main branch. Each
stage consumes the previous stage's output on disk, and an exception in any
stage propagates before the next one starts, so a failed collection never
reaches the publishing branch.
"""

from __future__ import annotations

import dataclasses as dc
import logging
import typing as typ
from pathlib import Path

from .annotations import collect
from .deploy import (
    CredentialSet,
    PublishResult,
    PublishTarget,
    format_message,
    publish_site,
    resolve_credentials,
)
from .generator import build_site

if typ.TYPE_CHECKING:
    from .annotations import CollectionResult
    from .config import SiteConfig

logger = logging.getLogger(__name__)


@dc.dataclass(slots=True)
class PipelineResult:
    """Outputs of the three stages of a pipeline run."""

    collection: CollectionResult
    site_pages: list[Path]
    publish: PublishResult | None = None


def publish_target(config: SiteConfig) -> PublishTarget:
    """Return the :class:`PublishTarget` described by ``config``."""
    return PublishTarget(
        branch=config.publish.branch,
        remote=config.publish.remote,
        repo=config.project.repo,
    )


def run_pipeline(
    config: SiteConfig,
    *,
    credentials: CredentialSet | None = None,
    use_cache: bool = True,
    publish: bool = True,
    dry_run: bool = False,
    source_dir: Path | None = None,
) -> PipelineResult:
    """Collect the stubs, build the site, then publish it.

    Parameters
    ----------
    config : SiteConfig
        Loaded configuration for every stage.
    credentials : CredentialSet, optional
        Token and git identity; resolved from the environment and the
        credentials file when omitted.
    use_cache : bool, optional
        Serve unchanged stubs from the build cache.
    publish : bool, optional
        Skip the publish stage entirely when ``False``.
    dry_run : bool, optional
        Prepare the publish commit without pushing it.
    source_dir : Path, optional
        Source checkout used for the commit message and the ``origin``
        fallback remote; defaults to the current directory.

    Returns
    -------
    PipelineResult
        The collection result, built page paths, and publish outcome.
    """
    collection = collect(config, use_cache=use_cache)
    logger.info("collected %d pages into %s", len(collection.pages), collection.output_dir)

    site_pages = build_site(config, docs_dir=collection.output_dir)
    logger.info("built %d site pages into %s", len(site_pages), config.site.output_dir)

    result = PipelineResult(collection=collection, site_pages=site_pages)
    if not publish:
        return result

    source = source_dir or Path.cwd()
    result.publish = publish_site(
        config.site.output_dir,
        target=publish_target(config),
        credentials=credentials or resolve_credentials(),
        message=format_message(config.publish.message, source_dir=source),
        source_dir=source,
        dry_run=dry_run,
    )
    return result


__all__ = ["PipelineResult", "publish_target", "run_pipeline"]
