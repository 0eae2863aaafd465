from __future__ import annotations

from typing import Protocol


class ImageFetcherPort(Protocol):
    def fetch(self, *, url: str) -> bytes:
        ...
