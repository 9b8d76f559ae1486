"""HTTP client with optional timeouts and strict success checks."""

from __future__ import annotations

from dataclasses import dataclass
from types import TracebackType
from typing import Any

import requests

from address_cleaner.common.constants import USER_AGENT
from address_cleaner.common.errors import CleanerError


@dataclass(frozen=True)
class TimeoutConfig:
    connect: float = 20.0
    read: float = 120.0


class HttpRequestError(CleanerError):
    error_code = "HTTP_ERROR"

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class HttpClient:
    """Thin wrapper over a shared ``requests.Session``.

    ``requests.Session`` keeps a connection pool per host, so one client is
    shared by every worker thread. A ``timeout`` of ``None`` leaves requests
    without a deadline.
    """

    def __init__(self, *, timeout: TimeoutConfig | None = None) -> None:
        self.timeout = timeout
        self.session = requests.Session()

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _headers(self, headers: dict[str, str] | None) -> dict[str, str]:
        out = {"User-Agent": USER_AGENT, "Accept": "text/plain, */*"}
        if headers:
            out.update(headers)
        return out

    def _raise_for_status(self, response: requests.Response, url: str) -> None:
        status = response.status_code
        if not 200 <= status < 300:
            raise HttpRequestError(f"HTTP status {status} from {url}", status_code=status)

    def _timeout_arg(self, timeout: TimeoutConfig | None) -> tuple[float, float] | None:
        req_timeout = timeout or self.timeout
        if req_timeout is None:
            return None
        return (req_timeout.connect, req_timeout.read)

    def get_text(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> str:
        try:
            response = self.session.request(
                method="GET",
                url=url,
                params=params,
                headers=self._headers(headers),
                timeout=self._timeout_arg(timeout),
            )
        except requests.RequestException as exc:
            raise HttpRequestError(f"Transport error calling {url}: {exc}") from exc

        self._raise_for_status(response, url)
        return response.text
