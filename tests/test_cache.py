"""Tests for the week-keyed build cache."""

from __future__ import annotations

import datetime as dt
import typing as typ

from luadocs_pages.annotations import parse_stub
from luadocs_pages.annotations.cache import BuildCache, content_digest, week_key

if typ.TYPE_CHECKING:
    from pathlib import Path

STUB = "---@meta\n---@param t? number\n---@return boolean\nfunction box.ok(t) end\n"


def test_week_key_uses_iso_calendar() -> None:
    assert week_key(dt.date(2026, 1, 1)) == "luadocs-2026-W01"
    assert week_key(dt.date(2021, 1, 1)) == "luadocs-2020-W53", (
        "early January can belong to the previous ISO year"
    )


def test_digest_depends_on_parse_options() -> None:
    assert content_digest(STUB, require_meta=True) != content_digest(STUB, require_meta=False)
    assert content_digest(STUB, require_meta=True) == content_digest(STUB, require_meta=True)


def test_saved_entries_round_trip(tmp_path: Path) -> None:
    stub = parse_stub(STUB, "box/ok.lua")
    digest = content_digest(STUB, require_meta=True)
    cache = BuildCache(tmp_path, key="luadocs-2026-W10")
    cache.put("box/ok.lua", digest, stub)
    cache.save()

    restored = BuildCache(tmp_path, key="luadocs-2026-W10")
    assert restored.load() == tmp_path / "luadocs-2026-W10"
    assert restored.get("box/ok.lua", digest) == stub
    assert restored.get("box/ok.lua", "other-digest") is None
    assert (restored.hits, restored.misses) == (1, 1)


def test_older_week_is_used_as_restore_key_and_pruned(tmp_path: Path) -> None:
    stub = parse_stub(STUB, "box/ok.lua")
    digest = content_digest(STUB, require_meta=True)
    old = BuildCache(tmp_path, key="luadocs-2026-W09")
    old.put("box/ok.lua", digest, stub)
    old.save()

    current = BuildCache(tmp_path, key="luadocs-2026-W10")
    assert current.load() == tmp_path / "luadocs-2026-W09"
    assert current.get("box/ok.lua", digest) == stub
    current.save()

    remaining = sorted(path.name for path in tmp_path.iterdir())
    assert remaining == ["luadocs-2026-W10"], f"stale week not pruned: {remaining}"


def test_unreadable_cache_is_ignored(tmp_path: Path) -> None:
    entry = tmp_path / "luadocs-2026-W10"
    entry.mkdir()
    (entry / "stubs.json").write_text("{not json", encoding="utf-8")
    cache = BuildCache(tmp_path, key="luadocs-2026-W10")
    assert cache.load() is None
    assert cache.get("box/ok.lua", "x") is None


def test_put_stores_the_stub_as_parsed(tmp_path: Path) -> None:
    stub = parse_stub(STUB, "box/ok.lua")
    digest = content_digest(STUB, require_meta=True)
    cache = BuildCache(tmp_path, key="luadocs-2026-W10")
    cache.put("box/ok.lua", digest, stub)
    stub.symbols[0].signatures.extend(stub.symbols[0].signatures)
    cache.save()

    restored = BuildCache(tmp_path, key="luadocs-2026-W10")
    restored.load()
    cached = restored.get("box/ok.lua", digest)
    assert cached is not None
    assert len(cached.symbols[0].signatures) == 1
