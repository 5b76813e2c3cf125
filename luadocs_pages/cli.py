"""Cyclopts CLI entrypoint for collecting, building, and publishing Lua docs.

The ``luadocs`` console script defined here validates annotation stubs
(``check``), renders them into Markdown pages (``collect``), turns those into a
static HTML site (``build``), force-pushes the site to the publishing branch
(``publish``), and chains the three for CI (``run``). ``bump`` records the
annotated runtime's latest GitHub release in ``luadocs.yaml``.

Every option can also be supplied as an ``INPUT_*`` environment variable, which
is how the GitHub workflow drives it.

Examples
--------
Validate the stubs without writing anything:

>>> from luadocs_pages.cli import app
>>> app(["check", "--config", "config/luadocs.yaml"])  # doctest: +SKIP

Run the whole pipeline without pushing:

>>> app(["run", "--dry-run"])  # doctest: +SKIP
"""

from __future__ import annotations

import logging
import os
import sys
import typing as typ
from pathlib import Path

import cyclopts
from cyclopts import App, Parameter

from .annotations import AnnotationError, CollectionError
from .annotations import check as check_stubs
from .annotations import collect as collect_stubs
from .bump import bump_runtime_release
from .config import SiteConfigError, load_site_config
from .deploy import (
    CONFIG_ENV_VAR,
    CredentialError,
    CredentialSet,
    PublishError,
    PublishResult,
    format_message,
    publish_site,
    resolve_credentials,
)
from .generator import SiteBuildError, build_site
from .pipeline import publish_target, run_pipeline
from .releases import DEFAULT_API_BASE, RuntimeReleaseClient, RuntimeReleaseError

DEFAULT_CONFIG = Path("config/luadocs.yaml")
LOG_LEVEL_ENV_VAR = "LUADOCS_LOG_LEVEL"

_HANDLED_ERRORS = (
    AnnotationError,
    CollectionError,
    SiteConfigError,
    SiteBuildError,
    PublishError,
    CredentialError,
    RuntimeReleaseError,
    FileNotFoundError,
)

app = App(name="luadocs", config=cyclopts.config.Env("INPUT_", command=False))  # type: ignore[unknown-argument]

ConfigOption = typ.Annotated[
    Path, Parameter(help="Path to site config", env_var="INPUT_CONFIG")
]
NoCacheOption = typ.Annotated[
    bool,
    Parameter(help="Ignore and do not update the build cache", env_var="INPUT_NO_CACHE"),
]
DryRunOption = typ.Annotated[
    bool,
    Parameter(help="Prepare the publish commit but do not push", env_var="INPUT_DRY_RUN"),
]
GithubTokenOption = typ.Annotated[
    str | None,
    Parameter(
        help="GitHub token (falls back to GITHUB_TOKEN, GH_TOKEN, then the credentials file)",
        env_var="INPUT_GITHUB_TOKEN",
    ),
]
UserNameOption = typ.Annotated[
    str | None, Parameter(help="Git author name", env_var="INPUT_USER_NAME")
]
UserEmailOption = typ.Annotated[
    str | None, Parameter(help="Git author email", env_var="INPUT_USER_EMAIL")
]
CredentialsPathOption = typ.Annotated[
    Path | None,
    Parameter(help="Where credentials are stored (TOML)", env_var=CONFIG_ENV_VAR),
]
SaveOption = typ.Annotated[
    bool,
    Parameter(help="Persist the resolved credentials to the credentials file"),
]


def _format_path(path: Path) -> str:
    """Return a cwd-relative path when possible, otherwise the absolute path."""
    if path.is_absolute():
        try:
            return str(path.relative_to(Path.cwd()))
        except ValueError:  # pragma: no cover - fallback for different roots
            return str(path)
    return str(path)


def _print_publish(result: PublishResult) -> None:
    if result.pushed:
        print(f"pushed {result.commit[:12]} to {result.branch} on {result.remote}")
    else:
        print(f"dry run: {result.commit[:12]} not pushed to {result.branch}")


def _credentials(
    *,
    credentials_path: Path | None,
    github_token: str | None,
    user_name: str | None,
    user_email: str | None,
    save: bool,
) -> CredentialSet:
    return resolve_credentials(
        config_path=credentials_path,
        github_token=github_token,
        user_name=user_name,
        user_email=user_email,
        save=save,
    )


@app.command(help="Validate every annotation stub without writing pages.")
def check(*, config: ConfigOption = DEFAULT_CONFIG, no_cache: NoCacheOption = False) -> None:
    """Parse, type-check, and merge the stubs, then print a summary line."""
    site_config = load_site_config(config)
    report = check_stubs(site_config, use_cache=not no_cache)
    print(
        f"ok: {report.files} files, {report.symbols} symbols, {report.pages} pages"
        + (f", {report.collisions} collisions resolved" if report.collisions else "")
    )


@app.command(help="Render annotation stubs into Markdown reference pages.")
def collect(
    *,
    config: ConfigOption = DEFAULT_CONFIG,
    output_dir: typ.Annotated[
        Path | None,
        Parameter(help="Override collector.output_dir", env_var="INPUT_OUTPUT_DIR"),
    ] = None,
    no_cache: NoCacheOption = False,
) -> None:
    """Collect the stubs named by ``config`` into Markdown pages.

    Parameters
    ----------
    config : Path, optional
        Path to ``luadocs.yaml`` (overridable via ``INPUT_CONFIG``).
    output_dir : Path or None, optional
        Directory to write instead of ``collector.output_dir``.
    no_cache : bool, optional
        Parse every stub from scratch and leave the cache alone.
    """
    site_config = load_site_config(config)
    result = collect_stubs(site_config, output_dir=output_dir, use_cache=not no_cache)
    for path in result.pages:
        print(f"wrote {_format_path(path)}")
    print(f"wrote {_format_path(result.manifest)}")


@app.command(help="Build the static HTML site from collected pages.")
def build(
    *,
    config: ConfigOption = DEFAULT_CONFIG,
    docs_dir: typ.Annotated[
        Path | None,
        Parameter(help="Override the collected pages directory", env_var="INPUT_DOCS_DIR"),
    ] = None,
    site_dir: typ.Annotated[
        Path | None,
        Parameter(help="Override site.output_dir", env_var="INPUT_SITE_DIR"),
    ] = None,
) -> None:
    """Render the collected Markdown into HTML and print each written page."""
    site_config = load_site_config(config)
    for path in build_site(site_config, docs_dir=docs_dir, site_dir=site_dir):
        print(f"wrote {_format_path(path)}")


@app.command(help="Force-push the built site to the publishing branch.")
def publish(
    *,
    config: ConfigOption = DEFAULT_CONFIG,
    site_dir: typ.Annotated[
        Path | None,
        Parameter(help="Override site.output_dir", env_var="INPUT_SITE_DIR"),
    ] = None,
    dry_run: DryRunOption = False,
    github_token: GithubTokenOption = None,
    user_name: UserNameOption = None,
    user_email: UserEmailOption = None,
    credentials_path: CredentialsPathOption = None,
    save: SaveOption = False,
) -> None:
    """Commit the built site as one orphan commit and push it.

    Parameters
    ----------
    config : Path, optional
        Path to ``luadocs.yaml``.
    site_dir : Path or None, optional
        Built site to publish; defaults to ``site.output_dir``.
    dry_run : bool, optional
        Stop after creating the commit.
    github_token, user_name, user_email : str or None, optional
        Credentials that take precedence over the environment and the
        credentials file.
    credentials_path : Path or None, optional
        Credentials file location (``LUADOCS_CONFIG_FILE``).
    save : bool, optional
        Write the resolved credentials back to the credentials file.
    """
    site_config = load_site_config(config)
    creds = _credentials(
        credentials_path=credentials_path,
        github_token=github_token,
        user_name=user_name,
        user_email=user_email,
        save=save,
    )
    source_dir = Path.cwd()
    result = publish_site(
        site_dir or site_config.site.output_dir,
        target=publish_target(site_config),
        credentials=creds,
        message=format_message(site_config.publish.message, source_dir=source_dir),
        source_dir=source_dir,
        dry_run=dry_run,
    )
    _print_publish(result)


@app.command(help="Collect, build, and publish in one run.")
def run(
    *,
    config: ConfigOption = DEFAULT_CONFIG,
    no_cache: NoCacheOption = False,
    dry_run: DryRunOption = False,
    skip_publish: typ.Annotated[
        bool,
        Parameter(help="Stop after building the site", env_var="INPUT_SKIP_PUBLISH"),
    ] = False,
    github_token: GithubTokenOption = None,
    user_name: UserNameOption = None,
    user_email: UserEmailOption = None,
    credentials_path: CredentialsPathOption = None,
) -> None:
    """Run the full pipeline; nothing is built or published after a failed collect."""
    site_config = load_site_config(config)
    creds = None
    if not skip_publish:
        creds = _credentials(
            credentials_path=credentials_path,
            github_token=github_token,
            user_name=user_name,
            user_email=user_email,
            save=False,
        )
    result = run_pipeline(
        site_config,
        credentials=creds,
        use_cache=not no_cache,
        publish=not skip_publish,
        dry_run=dry_run,
    )
    for path in result.collection.pages:
        print(f"wrote {_format_path(path)}")
    for path in result.site_pages:
        print(f"wrote {_format_path(path)}")
    if result.publish is not None:
        _print_publish(result.publish)


@app.command(help="Record the annotated runtime's latest GitHub release.")
def bump(
    *,
    config: ConfigOption = DEFAULT_CONFIG,
    github_token: GithubTokenOption = None,
    github_api_url: typ.Annotated[
        str,
        Parameter(help="Override the GitHub API base URL", env_var="INPUT_GITHUB_API_URL"),
    ] = DEFAULT_API_BASE,
) -> None:
    """Update ``runtime.latest_release`` in the configuration file.

    Parameters
    ----------
    config : Path, optional
        Configuration file edited in place.
    github_token : str or None, optional
        Token for authenticated requests; falls back to ``GITHUB_TOKEN`` or
        ``GH_TOKEN`` before going unauthenticated.
    github_api_url : str, optional
        API base URL, for GitHub Enterprise.
    """
    token = github_token or os.getenv("GITHUB_TOKEN") or os.getenv("GH_TOKEN")
    client = RuntimeReleaseClient(token=token, api_base=github_api_url)
    release = bump_runtime_release(config_path=config, client=client)
    if release is None:
        print("runtime: no releases found")
        return
    label = release.tag_name
    if release.published_at:
        label = f"{label} ({release.published_at})"
    print(f"runtime: {label}")


def configure_logging() -> None:
    """Configure stderr logging from ``LUADOCS_LOG_LEVEL`` (default ``WARNING``)."""
    level_name = os.getenv(LOG_LEVEL_ENV_VAR, "WARNING").upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def main() -> None:
    """Invoke the Cyclopts application that powers the ``luadocs`` command.

    Domain errors are reported as ``error: <message>`` on stderr with exit
    status 1; anything else propagates with its traceback.

    Examples
    --------
    >>> main()  # doctest: +SKIP
    """
    configure_logging()
    try:
        app()
    except _HANDLED_ERRORS as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    main()
