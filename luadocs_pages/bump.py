"""Record the annotated runtime's latest release in ``luadocs.yaml``.

``luadocs bump`` fetches the newest GitHub release of ``runtime.repo`` and
writes ``runtime.latest_release`` and ``runtime.latest_release_published_at``
back into the configuration with a round-trip edit, so comments and key order
survive. When the repository has no releases both keys are removed.

Example
-------
.. code-block:: python

    from pathlib import Path
    from luadocs_pages.bump import bump_runtime_release
    from luadocs_pages.releases import RuntimeReleaseClient

    release = bump_runtime_release(
        config_path=Path("config/luadocs.yaml"),
        client=RuntimeReleaseClient(),
    )
"""

from __future__ import annotations

import typing as typ

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap

from .config import SiteConfigError

if typ.TYPE_CHECKING:
    from pathlib import Path

    from .releases import ReleaseInfo, RuntimeReleaseClient

RELEASE_KEYS = ("latest_release", "latest_release_published_at")


def bump_runtime_release(
    *, config_path: Path, client: RuntimeReleaseClient
) -> ReleaseInfo | None:
    """Fetch the runtime's latest release and store it in the YAML file.

    Returns the recorded :class:`ReleaseInfo`, or ``None`` when the
    repository has no releases. The document is always re-serialized so that
    removals are persisted too.

    Raises
    ------
    SiteConfigError
        If the document is not a mapping or ``runtime.repo`` is not set.
    RuntimeReleaseError
        If the GitHub lookup fails.
    """
    yaml = _build_roundtrip_yaml()
    with config_path.open("r", encoding="utf-8") as handle:
        document = yaml.load(handle) or CommentedMap()
    if not isinstance(document, CommentedMap):
        msg = "Top-level configuration must be a mapping"
        raise SiteConfigError(msg)

    runtime = document.get("runtime")
    if not isinstance(runtime, CommentedMap) or not runtime.get("repo"):
        msg = f"No runtime.repo configured in {config_path}"
        raise SiteConfigError(msg)

    release = client.fetch_latest(str(runtime["repo"]))
    _record_release(runtime, release)

    with config_path.open("w", encoding="utf-8") as handle:
        yaml.dump(document, handle)
    return release


def _build_roundtrip_yaml() -> YAML:
    yaml = YAML()
    yaml.preserve_quotes = True
    yaml.width = 120
    yaml.indent(mapping=2, sequence=4, offset=2)
    return yaml


def _record_release(runtime: CommentedMap, release: ReleaseInfo | None) -> None:
    if release is None:
        for key in RELEASE_KEYS:
            if key in runtime:
                del runtime[key]
        return

    _upsert_key(runtime, "latest_release", release.tag_name, ("label", "repo"))
    if release.published_at:
        _upsert_key(
            runtime,
            "latest_release_published_at",
            release.published_at,
            ("latest_release",),
        )
    elif "latest_release_published_at" in runtime:
        del runtime["latest_release_published_at"]


def _upsert_key(
    mapping: CommentedMap, key: str, value: str, anchors: tuple[str, ...]
) -> None:
    """Set ``key``, inserting it after the first present anchor when new."""
    if key in mapping:
        mapping[key] = value
        return
    existing_keys = list(mapping.keys())
    for anchor in anchors:
        if anchor in mapping:
            mapping.insert(existing_keys.index(anchor) + 1, key, value)
            return
    mapping[key] = value


__all__ = ["bump_runtime_release"]
