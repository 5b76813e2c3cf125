"""Tests for the ``luadocs`` command-line entry points."""

from __future__ import annotations

import logging
import re
import typing as typ

import pytest

from luadocs_pages import cli
from luadocs_pages.annotations import CollectionError
from luadocs_pages.deploy import PublishResult

if typ.TYPE_CHECKING:
    from pathlib import Path

    from pytest_mock import MockerFixture


def _config_file(tmp_path: Path, library_dir: Path) -> Path:
    path = tmp_path / "luadocs.yaml"
    path.write_text(
        "\n".join(
            [
                "project:",
                "  repo: example/box-stubs",
                "collector:",
                f"  input_dir: {library_dir}",
                f"  output_dir: {tmp_path / 'doc'}",
                f"  cache_dir: {tmp_path / '.cache'}",
                "site:",
                f"  output_dir: {tmp_path / 'site'}",
                "",
            ]
        ),
        encoding="utf-8",
    )
    return path


def test_check_prints_summary(
    tmp_path: Path, library_dir: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cli.check(config=_config_file(tmp_path, library_dir), no_cache=True)
    out = capsys.readouterr().out.strip()
    assert re.fullmatch(r"ok: 3 files, \d+ symbols, 3 pages", out), out


def test_collect_and_build_print_written_paths(
    tmp_path: Path, library_dir: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    config = _config_file(tmp_path, library_dir)

    cli.collect(config=config)
    collected = capsys.readouterr().out.splitlines()
    cli.build(config=config)
    built = capsys.readouterr().out.splitlines()

    assert collected[-1].startswith("wrote ") and collected[-1].endswith("manifest.json")
    assert len(collected) == 4
    assert [line.rsplit("/", 1)[-1] for line in built] == [
        "_G.html",
        "box.ctl.html",
        "box.tuple.html",
    ]


def test_run_skip_publish(
    tmp_path: Path, library_dir: Path, mocker: MockerFixture, capsys: pytest.CaptureFixture[str]
) -> None:
    publish = mocker.patch("luadocs_pages.pipeline.publish_site")

    cli.run(config=_config_file(tmp_path, library_dir), skip_publish=True)

    publish.assert_not_called()
    assert (tmp_path / "site" / "index.html").is_file()
    assert "wrote" in capsys.readouterr().out


def test_publish_dry_run_reports_commit(
    tmp_path: Path, library_dir: Path, mocker: MockerFixture, capsys: pytest.CaptureFixture[str]
) -> None:
    mocker.patch("luadocs_pages.cli.format_message", return_value="m")
    publish = mocker.patch(
        "luadocs_pages.cli.publish_site",
        return_value=PublishResult(
            branch="gh-pages", remote="origin", commit="0123456789abcdef", files=3, pushed=False
        ),
    )

    cli.publish(
        config=_config_file(tmp_path, library_dir),
        dry_run=True,
        credentials_path=tmp_path / "creds.toml",
    )

    assert publish.call_args.kwargs["dry_run"] is True
    assert capsys.readouterr().out.strip() == "dry run: 0123456789ab not pushed to gh-pages"


def test_main_reports_domain_errors(
    mocker: MockerFixture, capsys: pytest.CaptureFixture[str]
) -> None:
    mocker.patch.object(cli, "app", side_effect=CollectionError("No stub files found"))

    with pytest.raises(SystemExit) as excinfo:
        cli.main()

    assert excinfo.value.code == 1
    assert capsys.readouterr().err.strip() == "error: No stub files found"


def test_log_level_comes_from_environment(
    monkeypatch: pytest.MonkeyPatch, mocker: MockerFixture
) -> None:
    basic_config = mocker.patch("luadocs_pages.cli.logging.basicConfig")
    monkeypatch.setenv("LUADOCS_LOG_LEVEL", "debug")
    cli.configure_logging()
    assert basic_config.call_args.kwargs["level"] == logging.DEBUG

    monkeypatch.setenv("LUADOCS_LOG_LEVEL", "chatty")
    cli.configure_logging()
    assert basic_config.call_args.kwargs["level"] == logging.WARNING
