from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AnalyzeFoodInput:
    image: bytes
    mime_type: str
