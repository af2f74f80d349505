from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, NoReturn

import httpx
import structlog

from trac_web_client._version import __version__
from trac_web_client.adapters.http_util import resolve_action, timeouts_for
from trac_web_client.adapters.trac.errors import (
    AuthError,
    FormNotFoundError,
    NotFoundError,
    ServerError,
    TracClientError,
)
from trac_web_client.adapters.trac.forms import HtmlForm, find_form_with_input, parse_forms
from trac_web_client.adapters.trac.pages import extract_title, find_error_message, is_logged_in_as

log = structlog.get_logger(__name__)

FileSpec = tuple[str, bytes]


@dataclass(frozen=True)
class FormResponse:
    """What came back after submitting a form (after redirects)."""

    status_code: int
    title: str | None
    url: str
    content: str

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


class TracConnection:
    """Browser-like session against a Trac instance's HTML interface.

    Keeps cookies (auth and form token) and, like a browser, remembers the
    forms of the last page it fetched so one of them can be submitted.
    """

    def __init__(
        self,
        *,
        base_url: str,
        user: str,
        password: str,
        timeout_seconds: float = 30.0,
        verify_tls: bool = True,
        trust_env: bool = False,
        http_client: httpx.Client | None = None,
    ) -> None:
        url = httpx.URL(base_url)
        if not url.scheme or not url.host:
            raise ValueError("base_url must include scheme and host, e.g. https://trac.example/project")

        # Ensure a trailing slash so "/ticket/1" resolves below the project path.
        base_path = url.path.rstrip("/") + "/"
        self._base_url = url.copy_with(path=base_path)
        self._user = user

        self._owns_http_client = http_client is None
        self._http = http_client or httpx.Client(
            base_url=self._base_url,
            auth=httpx.BasicAuth(user, password),
            headers={"User-Agent": f"trac-web-client/{__version__}"},
            timeout=timeouts_for(timeout_seconds),
            verify=verify_tls,
            trust_env=trust_env,
            follow_redirects=True,
        )

        self._logged_in = False
        self._page_url: str | None = None
        self._forms: list[HtmlForm] = []

    @property
    def base_url(self) -> str:
        return str(self._base_url)

    @property
    def user(self) -> str:
        return self._user

    @property
    def forms(self) -> list[HtmlForm]:
        """Forms of the page fetched last."""
        return list(self._forms)

    def close(self) -> None:
        if self._owns_http_client:
            self._http.close()

    def __enter__(self) -> TracConnection:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: Any,
    ) -> None:
        self.close()

    def ensure_logged_in(self) -> None:
        """Log in once per connection; raises AuthError when Trac does not confirm it."""
        if self._logged_in:
            return
        content = self.fetch("/login")
        if not is_logged_in_as(content, self._user):
            raise AuthError(f"Trac did not confirm login for user {self._user!r}")
        self._logged_in = True
        log.info("trac.logged_in", user=self._user)

    def fetch(self, path: str, *, params: Any | None = None) -> str:
        """GET a page and remember its forms. Raises on any non-2xx status."""
        response = self._send("GET", path, params=params)
        if not 200 <= response.status_code < 300:
            self._raise_for_status(response)
        self._remember_page(response)
        return response.text

    def fetch_bytes(self, path: str) -> bytes:
        response = self._send("GET", path)
        if not 200 <= response.status_code < 300:
            self._raise_for_status(response)
        return response.content

    def discover_form(self, path: str, input_name: str) -> tuple[HtmlForm, int]:
        """Fetch `path` and return the first form holding `input_name` and its 1-based ordinal."""
        self.fetch(path)
        found = find_form_with_input(self._forms, input_name)
        if found is None:
            raise FormNotFoundError(f"No form with input {input_name!r} on {path}")
        return found

    def submit_form(
        self,
        form_number: int,
        fields: Mapping[str, str | None],
        *,
        files: Mapping[str, FileSpec] | None = None,
    ) -> FormResponse:
        """Submit a form of the last fetched page, overriding its defaults with `fields`."""
        if self._page_url is None or not 1 <= form_number <= len(self._forms):
            raise FormNotFoundError(f"No form number {form_number} on the current page")
        form = self._forms[form_number - 1]

        data = form.defaults()
        for name, value in fields.items():
            if value is None:
                data.pop(name, None)
            else:
                data[name] = value

        target = resolve_action(self._page_url, form.action)
        if form.method == "GET" and not files:
            response = self._send("GET", target, params=data)
        else:
            response = self._send("POST", target, data=data, files=dict(files) if files else None)

        self._remember_page(response)
        return FormResponse(
            status_code=response.status_code,
            title=extract_title(response.text) if _is_html(response) else None,
            url=str(response.url),
            content=response.text,
        )

    def warn_on_error(self, response: FormResponse) -> bool:
        """Log and return True when the response is a failure or a Trac error page."""
        failed = False
        if not response.is_success:
            log.warning("trac.server_error", status=response.status_code, url=response.url)
            failed = True
        message = find_error_message(response.content)
        if message is not None:
            log.warning("trac.page_error", message=message, url=response.url)
            failed = True
        return failed

    def _remember_page(self, response: httpx.Response) -> None:
        self._page_url = str(response.url)
        self._forms = parse_forms(response.text) if _is_html(response) else []

    def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._http.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise ServerError(f"Trac request timed out at {url}") from exc
        except httpx.TransportError as exc:
            raise ServerError(f"Network error talking to Trac at {url}") from exc
        log.debug("trac.request", method=method, url=str(response.url), status=response.status_code)
        return response

    def _raise_for_status(self, response: httpx.Response) -> NoReturn:
        status = response.status_code
        url = str(response.request.url)

        if status in (401, 403):
            raise AuthError(f"Trac auth failed (status={status}) at {url}")
        if status == 404:
            raise NotFoundError(f"Trac page not found (status=404) at {url}")
        if status >= 500:
            raise ServerError(f"Trac server error (status={status}) at {url}")

        raise TracClientError(f"Unexpected Trac HTTP status={status} at {url}")


def _is_html(response: httpx.Response) -> bool:
    content_type = response.headers.get("content-type", "")
    return "html" in content_type.lower() or not content_type
