"""Vision concept extraction."""

from .base import FoodRecognitionError, FoodRecognitionService
from .clarifai_provider import ClarifaiConceptProvider
from .factory import get_food_recognition_service

__all__ = [
    "ClarifaiConceptProvider",
    "FoodRecognitionError",
    "FoodRecognitionService",
    "get_food_recognition_service",
]
