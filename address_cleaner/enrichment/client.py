"""Address normalization service client."""

from __future__ import annotations

from typing import Protocol

from address_cleaner.common.http import HttpClient, HttpRequestError, TimeoutConfig


class EnrichmentError(HttpRequestError):
    """The normalization call failed: non-2xx status or transport error."""

    error_code = "ENRICHMENT_ERROR"


class EnrichmentClient(Protocol):
    def normalize(self, address: str | None) -> str:
        ...


class HttpEnrichmentClient:
    """Calls ``GET <base_url>?<query_param>=<address>`` and returns the body text."""

    def __init__(
        self,
        http: HttpClient,
        *,
        base_url: str,
        query_param: str = "param",
        timeout: TimeoutConfig | None = None,
    ) -> None:
        self.http = http
        self.base_url = base_url
        self.query_param = query_param
        self.timeout = timeout

    def normalize(self, address: str | None) -> str:
        try:
            return self.http.get_text(
                self.base_url,
                params={self.query_param: address if address is not None else ""},
                timeout=self.timeout,
            )
        except HttpRequestError as exc:
            raise EnrichmentError(str(exc), status_code=exc.status_code) from exc
