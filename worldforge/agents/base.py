"""Base agent class for the world-generation phases."""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, ValidationError

from ..db.models import Conflict, Deity, Faction, Location, Npc
from ..db.world_store import WorldStore
from ..exceptions import GenerationError
from ..llm import ContentGenerator
from ..utils.json_extract import extract_json_object, require_array
from ._prompts import WORLD_BUILDER_SYSTEM
from .schemas import to_text

logger = logging.getLogger(__name__)


def match_tension(value: Any, tension_names: list[str]) -> str | None:
    """Resolve a soft reference to a core tension name.

    Case-insensitive equality wins; otherwise a substring match in either
    direction (values shorter than four characters never substring-match).
    Returns the canonical tension name or None.
    """
    text = (to_text(value) or "").lower()
    if not text:
        return None
    for name in tension_names:
        if name.lower() == text:
            return name
    if len(text) < 4:
        return None
    for name in tension_names:
        lowered = name.lower()
        if text in lowered or lowered in text:
            return name
    return None


class BaseAgent(ABC):
    """Base class for every phase agent.

    One agent produces one phase's entities: it builds a prompt from the
    world so far, calls the content generator once, extracts the phase's
    JSON array and persists what it can resolve.  The last prompt,
    response and parsed payload are kept for the generation log.
    """

    # Subclasses set these
    agent_name: str = "unknown"
    array_key: str = ""
    label: str = ""
    payload_schema: type[BaseModel] | None = None

    def __init__(self, generator: ContentGenerator | None = None):
        self.generator = generator or ContentGenerator()
        self.last_prompt: str | None = None
        self.last_response: str | None = None
        self.last_parsed: dict[str, Any] | None = None

    def reset_exchange(self):
        """Forget the previous prompt/response pair."""
        self.last_prompt = None
        self.last_response = None
        self.last_parsed = None

    @property
    def system_prompt(self) -> str:
        return WORLD_BUILDER_SYSTEM

    @property
    @abstractmethod
    def task(self) -> str:
        """Phase instructions and the JSON shape to return."""
        pass

    @abstractmethod
    async def run(self, store: WorldStore) -> int:
        """Generate and persist this phase's entities; return how many were created."""
        pass

    def _build_message(self, task: str, context: dict[str, Any]) -> str:
        """Format message with context sections."""
        parts = []
        for key, value in context.items():
            if value:
                title = key.replace("_", " ").title()
                parts.append(f"## {title}\n{value}")
        parts.append(f"## Task\n{task}")
        return "\n\n".join(parts)

    async def _generate(self, prompt: str) -> dict[str, Any]:
        """One generator call, parsed to a JSON object (raises GenerationError)."""
        self.last_prompt = prompt
        self.last_response = None
        self.last_parsed = None

        text = await self.generator.generate(prompt, system_instruction=self.system_prompt)
        self.last_response = text

        result = extract_json_object(text)
        if not result.ok:
            raise GenerationError(
                f"Failed to parse {self.label or self.agent_name} from AI response: {result.error}",
                phase=self.agent_name,
                raw=text,
            )
        self.last_parsed = result.data
        return result.data

    async def _generate_items(self, prompt: str) -> list[Any]:
        """Generate, require this phase's top-level array, validate each entry.

        A missing array is a GenerationError; entries that fail
        ``payload_schema`` are dropped.
        """
        data = await self._generate(prompt)
        try:
            items = require_array(data, self.array_key, self.label)
        except GenerationError as e:
            e.phase = self.agent_name
            e.raw = self.last_response
            raise

        valid = []
        for raw in items:
            try:
                valid.append(self.payload_schema.model_validate(raw))
            except ValidationError as e:
                logger.debug(f"[{self.agent_name}] invalid entry: {e}")
        if len(valid) < len(items):
            logger.warning(f"[{self.agent_name}] dropped {len(items) - len(valid)} unnamed or malformed entries")
        return valid

    # ── World context ────────────────────────────────────────────────

    def world_context(self, store: WorldStore, upto: str | None = None) -> dict[str, Any]:
        """Everything generated so far, as prompt sections.

        ``upto`` names the first entity table NOT to include, so each phase
        sees exactly the phases that precede it.
        """
        campaign = store.get_campaign()
        seed = store.require_world_seed()
        context: dict[str, Any] = {
            "campaign_description": campaign.description if campaign else "",
            "character_backstories": "\n".join(
                f"- {c['name']}: {c['backstory']}" for c in store.get_character_backstories()
            ),
        }
        if seed.name or seed.world_sketch:
            context["world"] = "\n".join(filter(None, [
                f"Name: {seed.name}" if seed.name else None,
                f"Tone: {seed.tone}" if seed.tone else None,
                f"Scale: {seed.scale}" if seed.scale else None,
                f"Themes: {', '.join(seed.themes or [])}" if seed.themes else None,
                seed.world_sketch,
            ]))
        if seed.core_tensions:
            context["core_tensions"] = format_tensions(seed.core_tensions)
        if seed.cosmology:
            context["cosmology"] = json.dumps(seed.cosmology, ensure_ascii=False)

        sections = (
            ("deities", Deity, lambda d: f"- {d.name} ({d.tier}): {d.domain or ''}"),
            ("factions", Faction, _describe_faction),
            ("npcs", Npc, lambda n: _describe_npc(store, n)),
            ("conflicts", Conflict, lambda c: f"- {c.name} ({c.tier}), root tension: {c.root_tension or 'none'}"),
            ("locations", Location, lambda loc: f"- {loc.name} ({loc.subtype or 'place'}), "
                                                f"controlled by {store.get_faction_name(loc.controlling_faction_id) or 'no one'}"),
        )
        for key, model, describe in sections:
            if key == upto:
                break
            entities = store.list_entities(model)
            if entities:
                context[key] = "\n".join(describe(e) for e in entities)
        return context


def format_tensions(tensions: list[dict[str, Any]]) -> str:
    lines = []
    for tension in tensions:
        lines.append(f"- {tension.get('name')}: {tension.get('description') or ''}")
        for side in tension.get("sides", []):
            lines.append(f"    * {side.get('name')}: {side.get('stance')}")
    return "\n".join(lines)


def _describe_faction(faction: Faction) -> str:
    stances = "; ".join(
        f"{s.get('tension')}: {s.get('stance')}" for s in faction.tension_stances or []
    )
    return f"- {faction.name} ({faction.tier}): {faction.public_image or ''} [{stances}]"


def _describe_npc(store: WorldStore, npc: Npc) -> str:
    faction = store.get_faction_name(npc.faction_id) or "unaffiliated"
    return f"- {npc.name} ({npc.tier}, {npc.occupation or npc.subtype or 'unknown'}), {faction}"
