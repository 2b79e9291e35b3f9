"""Mapping of processing responses into nutrition records."""

from dataclasses import dataclass

from pydantic import ValidationError

from food_capture.domain.errors import MalformedResponseError
from food_capture.domain.nutrition import (
    MacroEntry,
    NutritionApiResponse,
    NutritionRecord,
    VolumeEntry,
)


@dataclass
class ResponseMapper:
    """Joins volume estimates with macronutrients per requested food."""

    def map(self, response_body: str | bytes | dict) -> list[NutritionRecord]:
        """Parse a response body into one record per macronutrient entry.

        Raises ``MalformedResponseError`` when any required field is missing or
        not numeric; no partial list is returned.
        """
        try:
            if isinstance(response_body, dict):
                payload = NutritionApiResponse.model_validate(response_body)
            else:
                payload = NutritionApiResponse.model_validate_json(response_body)
        except ValidationError as exc:
            raise MalformedResponseError(
                f"Invalid nutrition response: {exc.error_count()} error(s)"
            ) from exc
        volumes = payload.data.volumes
        return [
            _to_record(entry, _find_volume(volumes, entry.requested_food))
            for entry in payload.macronutrients.data
        ]


def _find_volume(volumes: list[VolumeEntry], food_name: str) -> VolumeEntry | None:
    for volume in volumes:
        if volume.object_name == food_name:
            return volume
    return None


def _to_record(entry: MacroEntry, volume: VolumeEntry | None) -> NutritionRecord:
    return NutritionRecord(
        food_name=entry.requested_food,
        calories=entry.macros.calories,
        protein_g=entry.macros.protein,
        fat_g=entry.macros.fat,
        carbs_g=entry.macros.carbs,
        calculated_weight=entry.calculated_weight,
        estimated_volume=volume.volume_cups if volume else 0.0,
        volume_uncertainty=volume.uncertainty_cups if volume else 0.0,
        found=entry.found,
    )


def format_records(records: list[NutritionRecord]) -> str:
    """Render records as display text."""
    if not records:
        return "No foods detected."
    blocks = []
    for record in records:
        blocks.append(
            "\n".join(
                [
                    f"Food: {record.food_name}",
                    f"Volume: {record.estimated_volume:.2f} {record.volume_unit}",
                    f"Weight: {record.calculated_weight:.0f} {record.weight_unit}",
                    f"Calories: {record.calories:.0f} kcal",
                    (
                        f"Macros (g) - Protein: {record.protein_g:.1f}, "
                        f"Fat: {record.fat_g:.1f}, Carbs: {record.carbs_g:.1f}"
                    ),
                ]
            )
        )
    return "\n\n".join(blocks)
