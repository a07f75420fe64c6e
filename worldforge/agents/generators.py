"""Phase generators: cosmology, factions, NPCs, conflicts, locations, secrets.

Each generator sees the world produced by every earlier phase and
persists its own entities.  Named references resolve inside the same
world; anything that does not resolve is stored as None (or dropped,
for tension stances and roles) and left for the coherence audit.
"""

import logging

from pydantic import BaseModel

from ..db.models import Conflict, Deity, Faction, Location, Npc, Secret
from ..db.world_store import WorldStore
from ..enums import GenerationPhase
from ._prompts import (
    CONFLICTS_TASK,
    COSMOLOGY_TASK,
    FACTIONS_TASK,
    LOCATIONS_TASK,
    NPCS_TASK,
    SECRETS_TASK,
)
from .base import BaseAgent, match_tension
from .schemas import (
    ConflictPayload,
    CosmologyPayload,
    DeityPayload,
    FactionPayload,
    LocationPayload,
    NpcPayload,
    SecretPayload,
)

logger = logging.getLogger(__name__)


def _tension_names(store: WorldStore) -> list[str]:
    seed = store.require_world_seed()
    return [t["name"] for t in seed.core_tensions or [] if t.get("name")]


def resolve_tension_links(
    links: list[BaseModel], value_key: str, tension_names: list[str], owner: str
) -> list[dict[str, str]]:
    """Keep only links whose tension resolves; canonicalise the name."""
    resolved = []
    for link in links:
        name = match_tension(link.tension, tension_names)
        if name is None:
            logger.warning(f"{owner}: unknown core tension {link.tension!r}, dropped")
            continue
        resolved.append({"tension": name, value_key: getattr(link, value_key)})
    return resolved


class CosmologyGenerator(BaseAgent):
    """Deities, magic system, planes and history eras."""

    agent_name = GenerationPhase.COSMOLOGY
    array_key = "deities"
    label = "deities"
    payload_schema = DeityPayload

    @property
    def task(self) -> str:
        return COSMOLOGY_TASK

    async def run(self, store: WorldStore) -> int:
        prompt = self._build_message(self.task, self.world_context(store, upto="deities"))
        items = await self._generate_items(prompt)
        cosmology = CosmologyPayload.model_validate(self.last_parsed or {})

        created = 0
        for item in items:
            if store.find_by_name(Deity, item.name):
                continue
            store.add_entity(
                Deity,
                name=item.name,
                tier=item.tier,
                subtype=item.disposition,
                domain=item.domain,
                disposition=item.disposition,
                description=item.description,
                symbol=item.symbol,
            )
            created += 1

        store.update_seed(
            cosmology={"magic_system": cosmology.magic_system, "planes": cosmology.planes},
            world_history=cosmology.history,
        )
        logger.info(f"Cosmology: {created} deities")
        return created


class FactionGenerator(BaseAgent):
    agent_name = GenerationPhase.FACTIONS
    array_key = "factions"
    label = "factions"
    payload_schema = FactionPayload

    @property
    def task(self) -> str:
        return FACTIONS_TASK

    async def run(self, store: WorldStore) -> int:
        prompt = self._build_message(self.task, self.world_context(store, upto="factions"))
        items = await self._generate_items(prompt)
        tensions = _tension_names(store)

        created = 0
        for item in items:
            store.add_entity(
                Faction,
                name=item.name,
                tier=item.tier,
                subtype=item.type,
                public_image=item.public_image,
                secret_nature=item.secret_nature,
                philosophy=item.philosophy,
                goals=item.goals,
                methods=item.methods,
                resources=item.resources,
                symbol=item.symbol,
                motto=item.motto,
                influence=item.influence,
                headquarters=item.headquarters,
                tension_stances=resolve_tension_links(item.tension_stances, "stance", tensions, item.name),
                allies=item.allies,
                enemies=item.enemies,
                patron_deity=item.patron_deity,
            )
            created += 1
        logger.info(f"Factions: {created} created")
        return created


class NpcGenerator(BaseAgent):
    agent_name = GenerationPhase.NPCS
    array_key = "npcs"
    label = "NPCs"
    payload_schema = NpcPayload

    @property
    def task(self) -> str:
        return NPCS_TASK

    async def run(self, store: WorldStore) -> int:
        prompt = self._build_message(self.task, self.world_context(store, upto="npcs"))
        items = await self._generate_items(prompt)
        tensions = _tension_names(store)

        created = 0
        for item in items:
            faction = store.find_by_name(Faction, item.faction)
            if item.faction and faction is None:
                logger.warning(f"NPC {item.name}: faction {item.faction!r} not found")
            store.add_entity(
                Npc,
                name=item.name,
                tier=item.tier,
                subtype=item.role,
                faction_id=faction.id if faction else None,
                occupation=item.occupation,
                race=item.race,
                appearance=item.appearance,
                personality=item.personality,
                speaking_style=item.speaking_style,
                public_goal=item.public_goal,
                private_goal=item.private_goal,
                secret_goal=item.secret_goal,
                hidden_identity=item.hidden_identity,
                tension_roles=resolve_tension_links(item.tension_roles, "role", tensions, item.name),
                primary_location=item.location,
                relationships=[rel.model_dump(mode="json") for rel in item.relationships],
            )
            created += 1
        logger.info(f"NPCs: {created} created")
        return created


class ConflictGenerator(BaseAgent):
    agent_name = GenerationPhase.CONFLICTS
    array_key = "conflicts"
    label = "conflicts"
    payload_schema = ConflictPayload

    @property
    def task(self) -> str:
        return CONFLICTS_TASK

    async def run(self, store: WorldStore) -> int:
        prompt = self._build_message(self.task, self.world_context(store, upto="conflicts"))
        items = await self._generate_items(prompt)
        tensions = _tension_names(store)

        created = 0
        for item in items:
            root = match_tension(item.root_tension, tensions)
            if root is None:
                logger.warning(f"Conflict {item.name}: root tension {item.root_tension!r} not found")
            store.add_entity(
                Conflict,
                name=item.name,
                tier=item.tier,
                subtype=item.type,
                description=item.description,
                root_tension=root,
                participants=[p.model_dump() for p in item.participants],
                stakes=item.stakes,
                public_narrative=item.public_narrative,
                true_nature=item.true_nature,
                current_state=item.current_state,
                possible_outcomes=item.possible_outcomes,
            )
            created += 1
        logger.info(f"Conflicts: {created} created")
        return created


class LocationGenerator(BaseAgent):
    agent_name = GenerationPhase.LOCATIONS
    array_key = "locations"
    label = "locations"
    payload_schema = LocationPayload

    @property
    def task(self) -> str:
        return LOCATIONS_TASK

    async def run(self, store: WorldStore) -> int:
        prompt = self._build_message(self.task, self.world_context(store, upto="locations"))
        items = await self._generate_items(prompt)

        created = 0
        for item in items:
            faction = store.find_by_name(Faction, item.controlling_faction)
            if item.controlling_faction and faction is None:
                logger.warning(
                    f"Location {item.name}: controlling faction {item.controlling_faction!r} not found"
                )
            store.add_entity(
                Location,
                name=item.name,
                tier=item.tier,
                subtype=item.type,
                controlling_faction_id=faction.id if faction else None,
                description=item.description,
                atmosphere=item.atmosphere,
                sensory_details=item.sensory_details,
                region=item.region,
                terrain=item.terrain,
                climate=item.climate,
                population=item.population,
                connected_to=item.connected_to,
                hidden_secrets=item.hidden_secrets,
            )
            created += 1
        logger.info(f"Locations: {created} created")
        return created


class SecretGenerator(BaseAgent):
    agent_name = GenerationPhase.SECRETS
    array_key = "secrets"
    label = "secrets"
    payload_schema = SecretPayload

    @property
    def task(self) -> str:
        return SECRETS_TASK

    async def run(self, store: WorldStore) -> int:
        context = self.world_context(store)
        prompt = self._build_message(self.task, context)
        items = await self._generate_items(prompt)

        created = 0
        for item in items:
            store.add_entity(
                Secret,
                name=item.name,
                tier=item.tier,
                subtype=item.type,
                content=item.content,
                hints=item.hints,
                known_by=item.known_by,
                related_factions=item.related_factions,
                related_locations=item.related_locations,
                discovery_conditions=item.discovery_conditions,
                reveal_impact=item.reveal_impact,
            )
            created += 1
        logger.info(f"Secrets: {created} created")
        return created
