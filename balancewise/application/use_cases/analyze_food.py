from __future__ import annotations

import logging

from balancewise.application.dto.diet import AnalyzeFoodInput
from balancewise.application.ports.vision_port import VisionPort
from balancewise.domain.entities.diet import DietAnalysis
from balancewise.domain.exceptions import (
    AnalysisFailedError,
    ImageTooLargeError,
    InvalidImageError,
    NoImageProvidedError,
)


logger = logging.getLogger(__name__)

MAX_IMAGE_SIZE = 5 * 1024 * 1024
ALLOWED_MIME_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "image/webp"})


def normalize_mime_type(mime_type: str | None) -> str:
    if not mime_type:
        return ""
    return mime_type.split(";", 1)[0].strip().lower()


class AnalyzeFoodUseCase:
    def __init__(self, *, vision_port: VisionPort, max_image_size: int = MAX_IMAGE_SIZE):
        self._vision_port = vision_port
        self._max_image_size = max_image_size

    def execute(self, command: AnalyzeFoodInput) -> DietAnalysis:
        if not command.image:
            raise NoImageProvidedError()
        if len(command.image) > self._max_image_size:
            raise ImageTooLargeError()

        mime_type = normalize_mime_type(command.mime_type)
        if mime_type not in ALLOWED_MIME_TYPES:
            raise InvalidImageError()

        try:
            analysis = self._vision_port.analyze_food(image=command.image, mime_type=mime_type)
        except AnalysisFailedError:
            raise
        except Exception as exc:
            raise AnalysisFailedError() from exc

        logger.info("diet: analyzed food image food=%s bytes=%s", analysis.food_name, len(command.image))
        return analysis
