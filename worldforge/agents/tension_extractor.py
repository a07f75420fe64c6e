"""
Tension Extractor for WorldForge.

First phase of generation: reads the campaign description and the
characters' backstories and derives the world seed (name, tone, scale,
themes, sketch) plus the core tensions every later phase hangs off.
"""

import logging
from typing import Any

from pydantic import ValidationError

from ..db.world_store import WorldStore
from ..enums import GenerationPhase
from ..exceptions import GenerationError
from ._prompts import TENSIONS_TASK
from .base import BaseAgent
from .schemas import SeedPayload

logger = logging.getLogger(__name__)


def normalize_seed(data: dict[str, Any]) -> dict[str, Any]:
    """Validate a tensions-phase payload into WorldSeed field values.

    Invalid tensions are dropped, and so are later tensions whose name
    repeats an earlier one (case-insensitively).  Raises GenerationError
    when no core tension survives.
    """
    try:
        seed = SeedPayload.model_validate(data)
    except ValidationError as e:
        raise GenerationError(
            f"Invalid world seed in AI response: {e.error_count()} errors",
            phase=GenerationPhase.TENSIONS,
        ) from e

    tensions = []
    seen: set[str] = set()
    for tension in seed.core_tensions:
        key = tension.name.lower()
        if key in seen:
            logger.warning(f"Dropping duplicate core tension: {tension.name}")
            continue
        seen.add(key)
        tensions.append(tension.model_dump())

    if not tensions:
        raise GenerationError("No valid core tensions in AI response", phase=GenerationPhase.TENSIONS)

    return {
        "name": seed.world_name,
        "tone": str(seed.tone),
        "scale": str(seed.scale),
        "themes": seed.themes,
        "world_sketch": seed.world_sketch,
        "core_tensions": tensions,
    }


class TensionExtractor(BaseAgent):
    """Derives the world seed and core tensions from the campaign description."""

    agent_name = GenerationPhase.TENSIONS
    array_key = "core_tensions"
    label = "core tensions"

    @property
    def task(self) -> str:
        return TENSIONS_TASK

    async def run(self, store: WorldStore) -> int:
        campaign = store.get_campaign()
        context = {
            "campaign_description": campaign.description if campaign else "",
            "character_backstories": "\n".join(
                f"- {c['name']}: {c['backstory']}" for c in store.get_character_backstories()
            ),
        }
        prompt = self._build_message(self.task, context)

        data = await self._generate(prompt)
        if not isinstance(data.get(self.array_key), list):
            raise GenerationError(
                "Failed to parse core tensions from AI response",
                phase=self.agent_name,
                raw=self.last_response,
            )

        fields = normalize_seed(data)
        store.update_seed(**fields)
        logger.info(
            f"World seed '{fields['name']}' ({fields['tone']}, {fields['scale']}): "
            f"{len(fields['core_tensions'])} core tensions"
        )
        return len(fields["core_tensions"])
