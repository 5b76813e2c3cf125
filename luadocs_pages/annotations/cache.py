"""Week-keyed cache of parsed stub files.

CI restores ``.cache`` with a key derived from the ISO week and falls back to
any older ``luadocs-`` entry. This module mirrors that behaviour locally:
:class:`BuildCache` reads the current week's entry (or the newest older one),
serves parsed :class:`~luadocs_pages.annotations.models.StubFile` records for
files whose content hash is unchanged, and writes a fresh entry for the
current week after a successful collection.

Entries are keyed by a SHA-256 of the file content plus the parser schema
version, so a stale cache only costs speed, never correctness.

Example
-------
>>> from pathlib import Path
>>> from luadocs_pages.annotations.cache import BuildCache, week_key
>>> cache = BuildCache(Path(".cache"), key=week_key())  # doctest: +SKIP
>>> cache.load()  # doctest: +SKIP
"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import hashlib
import logging
import shutil
import typing as typ

import msgspec

from luadocs_pages._constants import (
    CACHE_ENTRIES_FILENAME,
    CACHE_KEY_TEMPLATE,
    CACHE_PREFIX,
    CACHE_SCHEMA_VERSION,
)

from .models import StubFile

if typ.TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


@dc.dataclass(slots=True)
class CacheEntry:
    """A parsed stub stored alongside the digest it was parsed from."""

    digest: str
    stub: StubFile


def week_key(today: dt.date | None = None) -> str:
    """Return the cache key for the ISO week containing ``today``."""
    current = today or dt.datetime.now(dt.UTC).date()
    year, week, _weekday = current.isocalendar()
    return CACHE_KEY_TEMPLATE.format(year=year, week=week)


def content_digest(text: str, *, require_meta: bool) -> str:
    """Return the cache digest for stub ``text`` under the given parse options."""
    hasher = hashlib.sha256()
    hasher.update(f"v{CACHE_SCHEMA_VERSION}:meta={int(require_meta)}:".encode())
    hasher.update(text.encode("utf-8"))
    return hasher.hexdigest()


class BuildCache:
    """Read-before, write-after cache of parsed stubs for one collection run."""

    def __init__(self, root: Path, *, key: str | None = None) -> None:
        self.root = root
        self.key = key or week_key()
        self.hits = 0
        self.misses = 0
        self._stored: dict[str, CacheEntry] = {}
        self._fresh: dict[str, CacheEntry] = {}
        self._decoder = msgspec.json.Decoder(dict[str, CacheEntry])
        self._entry_decoder = msgspec.json.Decoder(CacheEntry)
        self._encoder = msgspec.json.Encoder()

    @property
    def directory(self) -> Path:
        return self.root / self.key

    def load(self) -> Path | None:
        """Load the current entry or the newest older one; return its directory."""
        source = self._restore_source()
        if source is None:
            logger.debug("no build cache found under %s", self.root)
            return None
        payload = (source / CACHE_ENTRIES_FILENAME).read_bytes()
        try:
            self._stored = self._decoder.decode(payload)
        except (msgspec.DecodeError, msgspec.ValidationError) as exc:
            logger.warning("ignoring unreadable build cache %s: %s", source, exc)
            self._stored = {}
            return None
        logger.debug("restored %d cached stubs from %s", len(self._stored), source.name)
        return source

    def get(self, rel_path: str, digest: str) -> StubFile | None:
        """Return the cached stub for ``rel_path`` when its digest still matches."""
        entry = self._stored.get(rel_path)
        if entry is None or entry.digest != digest:
            self.misses += 1
            return None
        self.hits += 1
        self._fresh[rel_path] = entry
        return entry.stub

    def put(self, rel_path: str, digest: str, stub: StubFile) -> None:
        """Record ``stub`` as parsed now; later changes to it are not saved."""
        encoded = self._encoder.encode(CacheEntry(digest=digest, stub=stub))
        self._fresh[rel_path] = self._entry_decoder.decode(encoded)

    def save(self) -> Path:
        """Write this run's entries under the current key and prune older keys.

        Only files seen during this run are written, so deleted stubs drop
        out of the cache.
        """
        target = self.directory
        target.mkdir(parents=True, exist_ok=True)
        ordered = dict(sorted(self._fresh.items()))
        (target / CACHE_ENTRIES_FILENAME).write_bytes(self._encoder.encode(ordered))
        for stale in self._candidates():
            if stale != target:
                logger.debug("pruning stale build cache %s", stale.name)
                shutil.rmtree(stale)
        return target

    def _restore_source(self) -> Path | None:
        if (self.directory / CACHE_ENTRIES_FILENAME).is_file():
            return self.directory
        older = [path for path in self._candidates() if path.name < self.key]
        for candidate in sorted(older, reverse=True):
            if (candidate / CACHE_ENTRIES_FILENAME).is_file():
                return candidate
        return None

    def _candidates(self) -> list[Path]:
        if not self.root.is_dir():
            return []
        return sorted(
            path
            for path in self.root.iterdir()
            if path.is_dir() and path.name.startswith(CACHE_PREFIX)
        )


__all__ = ["BuildCache", "CacheEntry", "content_digest", "week_key"]
