from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DietAnalysis:
    food_name: str
    calories: float
    protein: float
    fat: float
    carbs: float
