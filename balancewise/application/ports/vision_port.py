from __future__ import annotations

from typing import Protocol

from balancewise.domain.entities.diet import DietAnalysis


class VisionPort(Protocol):
    def analyze_food(self, *, image: bytes, mime_type: str) -> DietAnalysis:
        ...
