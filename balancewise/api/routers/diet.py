from __future__ import annotations

from fastapi import APIRouter, Depends, File, UploadFile

from balancewise.api.deps import get_analyze_food_use_case
from balancewise.api.errors import to_http_exception
from balancewise.api.schemas.diet import DietAnalysisResponse
from balancewise.application.dto.diet import AnalyzeFoodInput
from balancewise.application.use_cases.analyze_food import MAX_IMAGE_SIZE, AnalyzeFoodUseCase
from balancewise.domain.exceptions import DomainError, NoImageProvidedError


router = APIRouter(prefix="/diet")


@router.post("/analyze", response_model=DietAnalysisResponse)
def analyze_food(
    image: UploadFile | None = File(default=None),
    use_case: AnalyzeFoodUseCase = Depends(get_analyze_food_use_case),
):
    try:
        if image is None:
            raise NoImageProvidedError()
        # One byte past the ceiling is enough to reject oversized uploads.
        data = image.file.read(MAX_IMAGE_SIZE + 1)
        analysis = use_case.execute(AnalyzeFoodInput(image=data, mime_type=image.content_type or ""))
    except DomainError as exc:
        raise to_http_exception(exc) from exc

    return DietAnalysisResponse(
        food_name=analysis.food_name,
        calories=analysis.calories,
        protein=analysis.protein,
        fat=analysis.fat,
        carbs=analysis.carbs,
    )
