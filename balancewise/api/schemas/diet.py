from __future__ import annotations

from pydantic import BaseModel


class DietAnalysisResponse(BaseModel):
    food_name: str
    calories: float
    protein: float
    fat: float
    carbs: float
