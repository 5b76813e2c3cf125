"""Tests for merging stubs into pages and writing the collector output."""

from __future__ import annotations

import json
import typing as typ

import pytest

from luadocs_pages.annotations import (
    AnnotationCollector,
    AnnotationSyntaxError,
    CollectionError,
    SymbolCollisionError,
    SymbolKind,
    SymbolRegistry,
    collect,
    parse_stub,
)
from luadocs_pages.annotations.pages import GLOBALS_KEY, plan_pages

if typ.TYPE_CHECKING:
    from pathlib import Path

    from luadocs_pages.config import SiteConfig


def _snapshot(directory: Path) -> dict[str, bytes]:
    return {
        path.relative_to(directory).as_posix(): path.read_bytes()
        for path in sorted(directory.rglob("*"))
        if path.is_file()
    }


def _section(markdown: str, heading: str) -> list[str]:
    """Return the list items under the first ``heading`` after ``markdown`` starts."""
    lines = markdown.splitlines()
    start = lines.index(heading) + 1
    items: list[str] = []
    for line in lines[start:]:
        if line.startswith("#"):
            break
        if line.startswith("- "):
            items.append(line)
    return items


def test_collect_writes_pages_and_manifest(site_config: SiteConfig) -> None:
    result = collect(site_config)

    names = sorted(path.name for path in result.pages)
    assert names == ["_G.md", "box.ctl.md", "box.tuple.md"], f"unexpected pages {names}"
    manifest = json.loads(result.manifest.read_text(encoding="utf-8"))
    assert manifest["schema"] == 1
    keys = [page["key"] for page in manifest["pages"]]
    assert keys == ["_G", "box.ctl", "box.tuple"]
    ctl = manifest["pages"][1]
    assert ctl["kind"] == "module"
    assert ctl["source"] == "box/ctl.lua"
    assert ctl["summary"] == "Control the state of the running instance."
    assert manifest["types"]["box.ctl.mode"] == "box.ctl.md#box-ctl-mode"
    assert manifest["values"]["box.tuple.len"] == "box.tuple.md#box-tuple-len"
    assert result.report.files == 3


def test_function_page_lists_optional_param_and_return(site_config: SiteConfig) -> None:
    collect(site_config)
    text = (site_config.collector.output_dir / "box.ctl.md").read_text(encoding="utf-8")

    assert "## box.ctl.wait_rw {#box-ctl-wait-rw}" in text
    wait_rw = text.split("## box.ctl.wait_rw", 1)[1].split("\n## ", 1)[0]
    params = _section(wait_rw, "### Parameters")
    assert params == ["- **`timeout`** (`number`, optional): seconds to wait"], params
    returns = _section(wait_rw, "### Returns")
    assert returns == ["- **`ok`** (`boolean`)"], returns
    assert "async function box.ctl.wait_rw(timeout?: number)" in wait_rw


def test_cross_references_are_linked(site_config: SiteConfig) -> None:
    collect(site_config)
    ctl = (site_config.collector.output_dir / "box.ctl.md").read_text(encoding="utf-8")
    tuple_page = (site_config.collector.output_dir / "box.tuple.md").read_text(encoding="utf-8")

    assert "[box.tuple](box.tuple.md)" in ctl
    assert "[`box.ctl.mode`](box.ctl.md#box-ctl-mode)" in ctl
    assert "- [`box.tuple`](box.tuple.md) `| nil`" in ctl
    assert "```lua\nlocal t = box.tuple.new({1, 2})\n```" in tuple_page
    assert "function box.tuple:len()" in tuple_page


def test_globals_share_one_page(site_config: SiteConfig) -> None:
    collect(site_config)
    text = (site_config.collector.output_dir / f"{GLOBALS_KEY}.md").read_text(encoding="utf-8")
    assert text.startswith("# Global functions\n")
    assert "## tonumber64 {#tonumber64}" in text


def test_collect_is_idempotent(site_config: SiteConfig) -> None:
    """Two runs over an unchanged tree produce byte-identical output."""
    output = site_config.collector.output_dir
    collect(site_config)
    first = _snapshot(output)
    collect(site_config, use_cache=False)
    second = _snapshot(output)
    collect(site_config)
    assert first == second == _snapshot(output)


def test_failed_collection_leaves_previous_output(
    site_config: SiteConfig,
    library_dir: Path,
    write_stub: typ.Callable[[Path, str, str], Path],
) -> None:
    collect(site_config)
    before = _snapshot(site_config.collector.output_dir)
    write_stub(library_dir, "box/broken.lua", "function box.broken() return 1 end")

    with pytest.raises(AnnotationSyntaxError):
        collect(site_config)

    assert _snapshot(site_config.collector.output_dir) == before
    leftovers = [p.name for p in site_config.collector.output_dir.parent.iterdir()]
    assert not [name for name in leftovers if name.startswith(".luadocs-")], leftovers


def test_empty_input_is_an_error(
    tmp_path: Path, make_config: typ.Callable[..., SiteConfig]
) -> None:
    empty = tmp_path / "empty"
    empty.mkdir()
    with pytest.raises(CollectionError, match="No stub files"):
        collect(make_config(empty))
    with pytest.raises(CollectionError, match="does not exist"):
        collect(make_config(tmp_path / "missing"))


def test_duplicate_class_collides_under_error_policy(
    library_dir: Path,
    make_config: typ.Callable[..., SiteConfig],
    write_stub: typ.Callable[[Path, str, str], Path],
) -> None:
    write_stub(library_dir, "box/space_a.lua", "---@class box.space\nbox.space = {}")
    write_stub(library_dir, "box/space_b.lua", "---@class box.space\nbox.space = {}")

    with pytest.raises(SymbolCollisionError) as excinfo:
        collect(make_config(library_dir))
    message = str(excinfo.value)
    assert "box/space_a.lua:3" in message and "box/space_b.lua:3" in message, message


def test_duplicate_class_resolves_to_later_file_under_last_wins(
    library_dir: Path,
    make_config: typ.Callable[..., SiteConfig],
    write_stub: typ.Callable[[Path, str, str], Path],
) -> None:
    write_stub(library_dir, "box/space_b.lua", "---Second.\n---@class box.space\nbox.space = {}")
    write_stub(library_dir, "box/space_a.lua", "---First.\n---@class box.space\nbox.space = {}")
    config = make_config(library_dir, collision_policy="last-wins")

    result = collect(config)

    assert result.report.collisions == 1
    text = (config.collector.output_dir / "box.space.md").read_text(encoding="utf-8")
    assert "Second." in text and "First." not in text


def test_repeated_functions_become_overloads() -> None:
    first = parse_stub("---@meta\n---@param a number\nfunction m.f(a) end\n", "a.lua")
    second = parse_stub("---@meta\n---@param s string\nfunction m.f(s) end\n", "b.lua")

    registry = SymbolRegistry.from_stubs([second, first])

    (symbol,) = registry.symbols()
    assert [sig.params[0].type for sig in symbol.signatures] == ["number", "string"]


def test_module_absorbs_function_as_call_signature() -> None:
    module = parse_stub("---@meta\n---Errors.\nbox.error = {}\n", "a.lua")
    call = parse_stub("---@meta\n---@param msg string\nfunction box.error(msg) end\n", "b.lua")

    registry = SymbolRegistry.from_stubs([module, call])

    symbol = registry.lookup_value("box.error")
    assert symbol is not None and symbol.kind is SymbolKind.MODULE
    assert len(symbol.signatures) == 1
    assert symbol.description == "Errors."


def test_class_and_alias_live_in_the_type_namespace() -> None:
    stub = parse_stub(
        "---@meta\n---@alias box.id integer\n\n---@type box.id\nbox.id = nil\n", "a.lua"
    )
    registry = SymbolRegistry.from_stubs([stub])
    assert registry.types["box.id"].kind is SymbolKind.ALIAS
    assert registry.values["box.id"].kind is SymbolKind.FIELD
    assert registry.lookup_type("box.id") is registry.types["box.id"]


def test_members_without_owner_get_a_namespace_page() -> None:
    stub = parse_stub("---@meta\nfunction box.slab.info() end\n", "a.lua")
    pages = plan_pages(SymbolRegistry.from_stubs([stub]))
    assert [(page.key, page.kind) for page in pages] == [("box.slab", "namespace")]
    assert [member.anchor for member in pages[0].members] == ["box-slab-info"]


def test_check_reports_counts_without_writing(site_config: SiteConfig) -> None:
    report = AnnotationCollector(site_config, use_cache=False).check()
    assert (report.files, report.pages) == (3, 3)
    assert not site_config.collector.output_dir.exists()


def test_cache_serves_unchanged_files(site_config: SiteConfig) -> None:
    collect(site_config)
    result = collect(site_config)
    assert result.cache_hits == 3, f"expected every stub from cache, got {result.cache_hits}"
