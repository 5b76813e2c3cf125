r"""GitHub lookup of the runtime release the annotations describe.

``luadocs bump`` records which release of ``runtime.repo`` the stubs were last
checked against, and the site builder shows it as a badge. Only the
``releases/latest`` endpoint is needed, so the client stays small: one
session with retries, one request, one payload conversion.

Example
-------
>>> from luadocs_pages.releases import RuntimeReleaseClient
>>> client = RuntimeReleaseClient(token="ghp_example", timeout=5)  # doctest: +SKIP
>>> client.fetch_latest("tarantool/tarantool").tag_name  # doctest: +SKIP
'3.2.0'
"""

from __future__ import annotations

import dataclasses as dc
import typing as typ
from http import HTTPStatus

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

DEFAULT_API_BASE = "https://api.github.com"
USER_AGENT = "luadocs-pages"
_BASE_HEADERS = {
    "Accept": "application/vnd.github+json",
    "X-GitHub-Api-Version": "2022-11-28",
    "User-Agent": USER_AGENT,
}
_RETRY_STATUSES = (500, 502, 503, 504)
_SNIPPET_LENGTH = 200


class RuntimeReleaseError(RuntimeError):
    """The release lookup failed: transport error, error status, or bad payload."""


@dc.dataclass(slots=True)
class ReleaseInfo:
    """The fields of a GitHub release that the config and badge use.

    Attributes
    ----------
    tag_name : str
        Git tag of the release, recorded as ``runtime.latest_release``.
    name : str | None
        Release title.
    html_url : str | None
        Release page on github.com.
    published_at : str | None
        ISO 8601 publication time, recorded as
        ``runtime.latest_release_published_at``.
    """

    tag_name: str
    name: str | None = None
    html_url: str | None = None
    published_at: str | None = None

    @classmethod
    def from_payload(cls, payload: typ.Mapping[str, typ.Any]) -> ReleaseInfo | None:
        """Build from a release object; ``None`` when it carries no tag."""
        tag_name = _text(payload.get("tag_name"))
        if tag_name is None:
            return None
        return cls(
            tag_name=tag_name,
            name=_text(payload.get("name")),
            html_url=_text(payload.get("html_url")),
            published_at=_text(payload.get("published_at")),
        )


def _retrying_session() -> requests.Session:
    retry = Retry(
        total=5,
        connect=3,
        read=5,
        backoff_factor=0.5,
        status_forcelist=_RETRY_STATUSES,
        allowed_methods=("GET", "HEAD"),
    )
    session = requests.Session()
    for prefix in ("https://", "http://"):
        session.mount(prefix, HTTPAdapter(max_retries=retry))
    return session


class RuntimeReleaseClient:
    """Client for ``GET /repos/{owner}/{repo}/releases/latest``.

    Parameters
    ----------
    token : str | None, optional
        Sent as a bearer token; unauthenticated calls work but are rate
        limited harder.
    api_base : str, optional
        API root, overridden for GitHub Enterprise.
    session : requests.Session, optional
        Transport to use. The default session retries 5xx answers.
    timeout : float, optional
        Seconds allowed per request.
    """

    def __init__(
        self,
        *,
        token: str | None = None,
        api_base: str = DEFAULT_API_BASE,
        session: requests.Session | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.api_base = api_base.rstrip("/") or DEFAULT_API_BASE
        self.session = session or _retrying_session()
        self.timeout = timeout
        self.headers = dict(_BASE_HEADERS)
        if token:
            self.headers["Authorization"] = f"Bearer {token}"

    def fetch_latest(self, repo: str) -> ReleaseInfo | None:
        """Return the newest published release of ``owner/repo``.

        GitHub answers 404 for a repository without releases; that, and a
        release object without a tag, give ``None``.

        Raises
        ------
        ValueError
            If ``repo`` is empty once slashes and whitespace are stripped.
        RuntimeReleaseError
            If the request fails, the status is an error, or the body is not
            a JSON object.
        """
        slug = repo.strip().strip("/").strip()
        if not slug:
            msg = "runtime repository must not be empty"
            raise ValueError(msg)
        response = self._get(slug)
        if response.status_code == HTTPStatus.NOT_FOUND:
            return None
        if response.status_code >= HTTPStatus.BAD_REQUEST:
            msg = (
                f"release lookup for '{slug}' returned status {response.status_code}: "
                f"{response.text[:_SNIPPET_LENGTH]}"
            )
            raise RuntimeReleaseError(msg)
        return ReleaseInfo.from_payload(self._json_object(slug, response))

    def _get(self, slug: str) -> requests.Response:
        url = f"{self.api_base}/repos/{slug}/releases/latest"
        try:
            return self.session.get(url, headers=self.headers, timeout=self.timeout)
        except requests.RequestException as exc:
            msg = f"cannot reach GitHub for '{slug}': {exc}"
            raise RuntimeReleaseError(msg) from exc

    @staticmethod
    def _json_object(slug: str, response: requests.Response) -> typ.Mapping[str, typ.Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            msg = f"release lookup for '{slug}' returned invalid JSON"
            raise RuntimeReleaseError(msg) from exc
        if not isinstance(payload, dict):
            msg = f"release lookup for '{slug}' returned {type(payload).__name__}, not an object"
            raise RuntimeReleaseError(msg)
        return payload


def _text(value: object) -> str | None:
    if value is None:
        return None
    text = value if isinstance(value, str) else str(value)
    return text or None


__all__ = ["DEFAULT_API_BASE", "ReleaseInfo", "RuntimeReleaseClient", "RuntimeReleaseError"]
