"""Behaviour tests for running the whole pipeline up to the push.

Git is replaced by the ``fake_git`` recorder from ``tests/conftest.py``, so the
scenarios observe which git subcommands would run without touching a remote.
"""

from __future__ import annotations

import typing as typ
from pathlib import Path

import pytest
from pytest_bdd import given, parsers, scenarios, then, when

from luadocs_pages.annotations import AnnotationError
from luadocs_pages.deploy import CredentialSet
from luadocs_pages.pipeline import run_pipeline

if typ.TYPE_CHECKING:
    from luadocs_pages.config import SiteConfig

FEATURE_FILE = Path(__file__).resolve().parents[2] / "features" / "publish.feature"
scenarios(FEATURE_FILE)

ScenarioState = dict[str, typ.Any]


@pytest.fixture
def scenario_state() -> ScenarioState:
    return {"results": []}


@given("the sample stub library")
def given_sample_library(site_config: SiteConfig, scenario_state: ScenarioState) -> None:
    scenario_state["config"] = site_config


@given("git commands are recorded")
def given_git_recorder(
    fake_git: typ.Callable[..., typ.Any], scenario_state: ScenarioState
) -> None:
    scenario_state["git"] = fake_git()


@given("a stub with a malformed return type")
def given_malformed_stub(
    library_dir: Path, write_stub: typ.Callable[[Path, str, str], Path]
) -> None:
    write_stub(library_dir, "bad.lua", "---@return number|\nfunction bad() end")


def _run(scenario_state: ScenarioState, *, dry_run: bool) -> None:
    try:
        result = run_pipeline(
            scenario_state["config"],
            credentials=CredentialSet(github_token="test-token"),
            dry_run=dry_run,
            source_dir=scenario_state["config"].site.output_dir.parent,
        )
    except AnnotationError as exc:
        scenario_state["error"] = exc
        return
    scenario_state["results"].append(result)


@when("I run the pipeline")
def when_run_pipeline(scenario_state: ScenarioState) -> None:
    _run(scenario_state, dry_run=False)


@when("I run the pipeline as a dry run")
def when_run_dry(scenario_state: ScenarioState) -> None:
    _run(scenario_state, dry_run=True)


@then("the run fails with an annotation error")
def then_annotation_error(scenario_state: ScenarioState) -> None:
    assert isinstance(scenario_state.get("error"), AnnotationError)
    assert not scenario_state["results"]


@then("git was never invoked")
def then_git_not_invoked(scenario_state: ScenarioState) -> None:
    assert scenario_state["git"].calls == []


@then("a commit was created")
def then_commit_created(scenario_state: ScenarioState) -> None:
    assert "commit" in scenario_state["git"].subcommands()
    (result,) = scenario_state["results"]
    assert result.publish is not None and result.publish.commit


@then("nothing was pushed")
def then_nothing_pushed(scenario_state: ScenarioState) -> None:
    assert "push" not in scenario_state["git"].subcommands()
    assert not scenario_state["results"][0].publish.pushed


@then(parsers.parse("the site was pushed {count:d} times"))
def then_pushed_times(count: int, scenario_state: ScenarioState) -> None:
    assert scenario_state["git"].subcommands().count("push") == count
    assert all(result.publish.pushed for result in scenario_state["results"])
