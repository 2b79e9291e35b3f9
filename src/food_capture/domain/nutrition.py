"""Nutrition domain models."""

from dataclasses import dataclass

from pydantic import BaseModel, Field, StrictFloat


@dataclass(frozen=True)
class NutritionRecord:
    """Display-ready nutrition facts for one detected food."""

    food_name: str
    calories: float
    protein_g: float
    fat_g: float
    carbs_g: float
    calculated_weight: float
    estimated_volume: float = 0.0
    volume_uncertainty: float = 0.0
    volume_unit: str = "cups"
    weight_unit: str = "g"
    found: bool | None = None


class VolumeEntry(BaseModel):
    """Volume estimate for one segmented object."""

    object_name: str
    volume_cups: StrictFloat
    uncertainty_cups: StrictFloat = 0.0


class ResponseData(BaseModel):
    """Volume section of the processing response."""

    frame_id: str | None = None
    volumes: list[VolumeEntry] = Field(default_factory=list)


class MacroValues(BaseModel):
    """Macronutrients reported for one food."""

    calories: StrictFloat
    protein: StrictFloat
    fat: StrictFloat
    carbs: StrictFloat


class MacroEntry(BaseModel):
    """Macronutrient lookup result for one requested food."""

    requested_food: str
    macros: MacroValues
    calculated_weight: StrictFloat
    found: bool | None = None
    volume: StrictFloat | None = None


class MacronutrientsData(BaseModel):
    """Macronutrient section of the processing response."""

    data: list[MacroEntry]


class NutritionApiResponse(BaseModel):
    """Top-level payload returned by the processing service."""

    success: bool | None = None
    data: ResponseData = Field(default_factory=ResponseData)
    macronutrients: MacronutrientsData
