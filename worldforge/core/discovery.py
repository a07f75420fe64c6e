"""
Discovery service: what players know, and read-time filtering.

Discoverable entities store ``is_discovered`` plus a per-kind
vocabulary word in ``exploration_level`` (a location is "visited", an
NPC "met").  Those words map onto four levels:

    undiscovered -> rumored -> known -> detailed

Secrets have no levels: revealing one (level ``detailed``) sets
``is_revealed``; anything lower hides it again.

Filtering is computed on every read and never written back.
"""

import logging
from typing import Any

from ..db._entities import model_for_category
from ..db.models import utcnow
from ..db.world_store import WorldStore
from ..enums import (
    DISCOVERY_RANK,
    EXPLORATION_VOCABULARY,
    DiscoveryLevel,
    LoreCategory,
    ViewMode,
)
from ..exceptions import EntityNotFoundError

logger = logging.getLogger(__name__)

HIDDEN_NAME = "???"
RUMOR_TEASER = "You have heard rumors about this..."

# Stripped from player views below ``detailed``
PRIVATE_FIELDS = frozenset({
    "private_goal",
    "secret_goal",
    "secret_nature",
    "true_nature",
    "hidden_identity",
    "hidden_secrets",
    "npc_secrets",
    "faction_secrets",
    "location_secrets",
})

# Still stripped at ``detailed``
DETAILED_HIDDEN_FIELDS = frozenset({"hidden_identity"})

_LEVELS_BY_RANK = {rank: DiscoveryLevel(level) for level, rank in DISCOVERY_RANK.items()}


def exploration_word(category: str, level: str) -> str:
    """Per-kind vocabulary word for a discovery level."""
    vocabulary = EXPLORATION_VOCABULARY[LoreCategory(category)]
    return vocabulary[DISCOVERY_RANK[DiscoveryLevel(level)]]


def level_from_state(category: str, entity) -> DiscoveryLevel:
    """Current discovery level of a stored entity."""
    category = LoreCategory(category)
    if category == LoreCategory.SECRETS:
        return DiscoveryLevel.DETAILED if entity.is_revealed else DiscoveryLevel.UNDISCOVERED
    if not entity.is_discovered:
        return DiscoveryLevel.UNDISCOVERED
    vocabulary = EXPLORATION_VOCABULARY[category]
    word = entity.exploration_level or ""
    rank = vocabulary.index(word) if word in vocabulary else DISCOVERY_RANK[DiscoveryLevel.KNOWN]
    # A discovered entity is at least rumored
    return _LEVELS_BY_RANK[max(rank, DISCOVERY_RANK[DiscoveryLevel.RUMORED])]


def apply_discovery_filter(entity: dict[str, Any], level: str, mode: str = ViewMode.PLAYER) -> dict[str, Any]:
    """Shape one entity dict for a reader.

    Operators see everything.  Players see a placeholder for undiscovered
    entities, a teaser for rumors, everything but private fields once
    known and everything but hidden identities once detailed.
    """
    if ViewMode(mode) == ViewMode.OPERATOR:
        return dict(entity)

    level = DiscoveryLevel(level)
    if level == DiscoveryLevel.UNDISCOVERED:
        return {
            "id": entity.get("id"),
            "type": entity.get("type"),
            "tier": entity.get("tier"),
            "name": HIDDEN_NAME,
        }
    if level == DiscoveryLevel.RUMORED:
        return {
            "id": entity.get("id"),
            "type": entity.get("type"),
            "tier": entity.get("tier"),
            "name": entity.get("name"),
            "description": RUMOR_TEASER,
        }
    hidden = DETAILED_HIDDEN_FIELDS if level == DiscoveryLevel.DETAILED else PRIVATE_FIELDS
    return {key: value for key, value in entity.items() if key not in hidden}


class DiscoveryService:
    """Discovery state reads and writes for one world."""

    def __init__(self, store: WorldStore):
        self.store = store

    def _require(self, category: str, entity_id: int):
        entity = self.store.get_entity(model_for_category(category), entity_id)
        if entity is None:
            raise EntityNotFoundError(f"{category} entity {entity_id} not found")
        return entity

    def get_discovery_state(self, category: str, entity_id: int) -> DiscoveryLevel:
        return level_from_state(category, self._require(category, entity_id))

    def discover(self, category: str, entity_id: int, level: str = DiscoveryLevel.KNOWN):
        """Set an entity's discovery level (or reveal/hide a secret)."""
        category = LoreCategory(category)
        level = DiscoveryLevel(level)
        entity = self._require(category, entity_id)

        if category == LoreCategory.SECRETS:
            revealed = level == DiscoveryLevel.DETAILED
            self.store.update_entity(
                entity,
                is_revealed=revealed,
                revealed_at=(entity.revealed_at or utcnow()) if revealed else None,
            )
        else:
            discovered = level != DiscoveryLevel.UNDISCOVERED
            self.store.update_entity(
                entity,
                is_discovered=discovered,
                discovered_at=(entity.discovered_at or utcnow()) if discovered else None,
                exploration_level=exploration_word(category, level),
            )
        logger.info(f"Discovery: {category}/{entity_id} ({entity.name}) -> {level}")
        return entity

    def view(self, category: str, entity, mode: str = ViewMode.PLAYER) -> dict[str, Any]:
        """Filtered dict for one stored entity.  Operators also get the level."""
        level = level_from_state(category, entity)
        data = apply_discovery_filter(entity.to_dict(), level, mode)
        if ViewMode(mode) == ViewMode.OPERATOR:
            data["discovery_level"] = str(level)
        return data

    def view_many(self, category: str, entities: list, mode: str = ViewMode.PLAYER) -> list[dict[str, Any]]:
        return [self.view(category, e, mode) for e in entities]

    def get_discovered_entities(self) -> dict[str, list[dict[str, Any]]]:
        """Everything the players have found, in player view, by category."""
        discovered: dict[str, list[dict[str, Any]]] = {}
        for category in LoreCategory:
            model = model_for_category(category)
            found = [
                e for e in self.store.list_entities(model)
                if level_from_state(category, e) != DiscoveryLevel.UNDISCOVERED
            ]
            discovered[str(category)] = self.view_many(category, found, ViewMode.PLAYER)
        return discovered

    def set_player_override(self, category: str, entity_id: int, value: bool = True):
        """Mark an entity as player-owned so a world reset keeps it."""
        entity = self._require(category, entity_id)
        self.store.update_entity(entity, player_override=bool(value))
        return entity
