"""HTTP requests issued by tests outside of the browser page."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

import httpx

from domharness.exceptions import ConfigurationError

_LOGGER = logging.getLogger(__name__)

SUPPORTED_METHODS = ("get", "head", "post", "put", "delete", "options")

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"


@dataclass
class HttpResponse:
    """Response returned by ``Environment.http_req``."""

    status: int
    headers: dict[str, str]
    body: str
    url: str


@dataclass
class PreparedRequest:
    """Normalized method, headers and body of a request."""

    method: str
    headers: dict[str, str] = field(default_factory=dict)
    body: str | None = None


def prepare_request(
    method: str,
    data: Any = None,  # noqa: ANN401
    headers: dict[str, str] | None = None,
) -> PreparedRequest:
    """Validate the method and encode the request body.

    A POST body is sent verbatim as a form when data is a string and is
    JSON encoded otherwise. Other methods carry no body.

    :param method: HTTP method, case insensitive
    :param data: POST payload
    :param headers: extra request headers
    :raises ConfigurationError: on an unsupported method
    """
    if not isinstance(method, str):
        raise ConfigurationError("Invalid method parameter specified")

    lmethod = method.lower()
    if lmethod not in SUPPORTED_METHODS:
        raise ConfigurationError(f"Unexpected method {method}")

    request = PreparedRequest(method=lmethod, headers=dict(headers or {}))
    if lmethod == "post" and data:
        if isinstance(data, str):
            request.body = data
            request.headers["Content-Type"] = FORM_CONTENT_TYPE
        else:
            request.body = json.dumps(data)
            request.headers["Content-Type"] = JSON_CONTENT_TYPE
    return request


def parse_set_cookie(values: Iterable[str]) -> list[tuple[str, str]]:
    """Extract name/value pairs from Set-Cookie header values.

    Cookie attributes (path, expires, ...) are ignored.
    """
    res = []
    for cookie_str in values:
        first = cookie_str.split(";", 1)[0].strip()
        name, sep, value = first.partition("=")
        if not sep or not name:
            continue
        res.append((name.strip(), value.strip()))
    return res


class CookieJar:
    """Session cookies sent with every request."""

    def __init__(self) -> None:
        self._cookies: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._cookies)

    def __contains__(self, name: str) -> bool:
        return name in self._cookies

    def get(self, name: str) -> str | None:
        """Return cookie value or None."""
        return self._cookies.get(name)

    def apply(self, cookies: Iterable[tuple[str, str]]) -> None:
        """Merge cookies; an empty or 'deleted' value removes the cookie."""
        for name, value in cookies:
            if value in ("", "deleted"):
                self._cookies.pop(name, None)
            else:
                self._cookies[name] = value

    def header(self) -> str | None:
        """Return the Cookie header value or None for an empty jar."""
        if not self._cookies:
            return None
        return "; ".join(f"{name}={value}" for name, value in self._cookies.items())


class HttpSession:
    """HTTP client keeping its own cookie jar across requests.

    Redirects are not followed; the response url reflects the Location
    header when the server sends one.
    """

    def __init__(self, transport: httpx.BaseTransport | None = None, timeout: float = 30.0) -> None:
        """Initialize session.

        :param transport: custom httpx transport, used by tests
        :param timeout: request timeout in seconds
        """
        self.cookies = CookieJar()
        self._client = httpx.Client(
            transport=transport,
            verify=False,  # noqa: S501
            follow_redirects=False,
            timeout=timeout,
        )
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    def close(self) -> None:
        """Close the underlying client."""
        self._client.close()

    def request(
        self,
        method: str,
        url: str,
        data: Any = None,  # noqa: ANN401
        headers: dict[str, str] | None = None,
    ) -> HttpResponse:
        """Send request and update the cookie jar from the response.

        :raises ConfigurationError: on an unsupported method
        :raises ConnectionError: on transport failure
        """
        prepared = prepare_request(method, data, headers)
        cookie_header = self.cookies.header()
        if cookie_header:
            prepared.headers["Cookie"] = cookie_header

        _LOGGER.debug("HTTP %s %s", prepared.method.upper(), url)
        try:
            response = self._client.request(
                prepared.method.upper(),
                url,
                content=prepared.body,
                headers=prepared.headers,
            )
        except httpx.HTTPError as exc:
            raise ConnectionError(f"Request to {url} failed: {exc}") from exc
        finally:
            # The jar above is the only cookie store.
            self._client.cookies.clear()

        self.cookies.apply(parse_set_cookie(response.headers.get_list("set-cookie")))

        return HttpResponse(
            status=response.status_code,
            headers=dict(response.headers),
            body=response.text,
            url=response.headers.get("location", url),
        )
