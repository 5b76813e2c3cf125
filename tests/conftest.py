"""Shared fixtures: a copy of the sample stub tree and configs pointing at it."""

from __future__ import annotations

import shutil
import subprocess
import typing as typ
from pathlib import Path

import pytest

from luadocs_pages.config import (
    CollectorConfig,
    ProjectConfig,
    SiteConfig,
    SiteOptions,
)

if typ.TYPE_CHECKING:
    from pytest_mock import MockerFixture

FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture
def library_dir(tmp_path: Path) -> Path:
    """Return a writable copy of ``tests/fixtures/Library``."""
    target = tmp_path / "Library"
    shutil.copytree(FIXTURES_DIR / "Library", target)
    return target


@pytest.fixture
def make_config(tmp_path: Path) -> typ.Callable[..., SiteConfig]:
    """Return a factory for configs whose paths all live under ``tmp_path``."""

    def _make(input_dir: Path, *, collision_policy: str = "error") -> SiteConfig:
        return SiteConfig(
            project=ProjectConfig(name="Box API", repo="example/box-stubs"),
            collector=CollectorConfig(
                input_dir=input_dir,
                output_dir=tmp_path / "doc",
                cache_dir=tmp_path / ".cache",
                collision_policy=collision_policy,
            ),
            site=SiteOptions(output_dir=tmp_path / "site"),
        )

    return _make


@pytest.fixture
def site_config(library_dir: Path, make_config: typ.Callable[..., SiteConfig]) -> SiteConfig:
    return make_config(library_dir)


def _write_stub(root: Path, relative: str, body: str) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("---@meta\n\n" + body.strip() + "\n", encoding="utf-8")
    return path


@pytest.fixture
def write_stub() -> typ.Callable[[Path, str, str], Path]:
    """Return a helper writing a ``---@meta`` stub at ``root / relative``."""
    return _write_stub


class FakeGit:
    """Record git invocations and answer the few that need output."""

    def __init__(self, *, fail_on: str | None = None) -> None:
        self.calls: list[list[str]] = []
        self.envs: list[dict[str, str] | None] = []
        self.fail_on = fail_on

    def __call__(self, command: list[str], **kwargs: typ.Any) -> subprocess.CompletedProcess[str]:
        self.calls.append(command)
        self.envs.append(kwargs.get("env"))
        if command[1] == self.fail_on:
            raise subprocess.CalledProcessError(
                128, command, output="", stderr=f"fatal: could not push to {command[-2]}"
            )
        stdout = ""
        if command[1:3] == ["rev-parse", "HEAD"]:
            stdout = "0123456789abcdef0123456789abcdef01234567\n"
        elif command[1:3] == ["rev-parse", "--short"]:
            stdout = "abc1234\n"
        elif command[1:3] == ["remote", "get-url"]:
            stdout = "git@github.com:example/origin.git\n"
        return subprocess.CompletedProcess(command, 0, stdout=stdout, stderr="")

    def subcommands(self) -> list[str]:
        return [call[1] for call in self.calls]


@pytest.fixture
def fake_git(mocker: MockerFixture) -> typ.Callable[..., FakeGit]:
    """Return a factory that routes ``subprocess.run`` in deploy to a FakeGit."""

    def _install(*, fail_on: str | None = None) -> FakeGit:
        git = FakeGit(fail_on=fail_on)
        mocker.patch("luadocs_pages.deploy.subprocess.run", side_effect=git)
        return git

    return _install
