"""Pydantic models for control API payloads."""

from pydantic import BaseModel, Field


class ServerSettingsBody(BaseModel):
    """Processing service location."""

    base_uri: str = Field(pattern=r"^https?://\S+$")


class NutritionRecordModel(BaseModel):
    """Nutrition facts for one detected food."""

    food_name: str
    estimated_volume: float
    volume_uncertainty: float
    volume_unit: str
    calculated_weight: float
    weight_unit: str
    calories: float
    protein_g: float
    fat_g: float
    carbs_g: float
    found: bool | None = None


class CaptureResponse(BaseModel):
    """Result of a successful capture cycle."""

    status: str = "ok"
    key: str
    attempts: int
    records: list[NutritionRecordModel]
    summary: str


class DepthAnalysisModel(BaseModel):
    """Full-frame statistics of a stored depth frame."""

    key: str
    width: int
    height: int
    center_depth: float
    frame_min_depth: float | None = None
    frame_max_depth: float | None = None
    sample_window: list[list[float]]
