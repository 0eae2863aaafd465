from __future__ import annotations

import httpx

from balancewise.application.ports.image_fetcher_port import ImageFetcherPort
from balancewise.domain.exceptions import ImageDownloadError


class HttpImageFetcher(ImageFetcherPort):
    def __init__(self, *, timeout_seconds: float, max_bytes: int = 2 * 1024 * 1024, http_client: httpx.Client | None = None):
        self._max_bytes = max_bytes
        self._http = http_client or httpx.Client(timeout=timeout_seconds, follow_redirects=True)

    def fetch(self, *, url: str) -> bytes:
        # InvalidURL is not an HTTPError; a malformed provider URL must not escape.
        try:
            with self._http.stream("GET", url) as response:
                if response.status_code != 200:
                    raise ImageDownloadError(f"failed to download image: status {response.status_code}")
                return self._read_limited(response)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise ImageDownloadError(f"failed to download image: {exc}") from exc

    def _read_limited(self, response: httpx.Response) -> bytes:
        chunks: list[bytes] = []
        received = 0
        for chunk in response.iter_bytes():
            received += len(chunk)
            if received > self._max_bytes:
                raise ImageDownloadError("failed to download image: too large")
            chunks.append(chunk)
        return b"".join(chunks)
