"""Entity mixin: generated entity creation, lookup and listing.

Split from world_store.py for maintainability.
"""

import logging
from typing import Any

from sqlalchemy import case, func

from ..enums import TIER_RANK, EntityKind, LoreCategory
from .models import Conflict, Deity, Faction, Location, Npc, Secret

logger = logging.getLogger(__name__)

CATEGORY_MODELS: dict[LoreCategory, type] = {
    LoreCategory.FACTIONS: Faction,
    LoreCategory.PEOPLE: Npc,
    LoreCategory.GEOGRAPHY: Location,
    LoreCategory.CONFLICTS: Conflict,
    LoreCategory.SECRETS: Secret,
    LoreCategory.DEITIES: Deity,
}

KIND_MODELS: dict[EntityKind, type] = {
    EntityKind.NPC: Npc,
    EntityKind.FACTION: Faction,
    EntityKind.LOCATION: Location,
    EntityKind.DEITY: Deity,
}


def model_for_category(category: str) -> type:
    """Resolve a lore category to its table; unknown categories raise ValueError."""
    return CATEGORY_MODELS[LoreCategory(category)]


def model_for_kind(kind: str) -> type:
    """Resolve a relationship endpoint kind to its table; unknown kinds raise ValueError."""
    return KIND_MODELS[EntityKind(kind)]


def _tier_order(model):
    return case(TIER_RANK, value=model.tier, else_=len(TIER_RANK))


class EntityMixin:
    """Generated entity CRUD scoped to this store's world seed."""

    def add_entity(self, model: type, **fields):
        """Create one entity in this world and flush it so it has an id."""
        db = self._get_db()
        entity = model(world_seed_id=self.world_seed_id, **fields)
        db.add(entity)
        db.flush()
        self._maybe_commit()
        return entity

    def update_entity(self, entity, **fields):
        for key, value in fields.items():
            setattr(entity, key, value)
        self._maybe_commit()
        return entity

    def has_generated(self, model: type) -> bool:
        """True when at least one non-overridden entity of this type exists."""
        seed = self.get_world_seed()
        if seed is None:
            return False
        db = self._get_db()
        return (
            db.query(model.id)
            .filter(model.world_seed_id == seed.id, model.player_override.is_(False))
            .first()
            is not None
        )

    def list_entities(self, model: type) -> list:
        """All entities of a type, major tier first, then by name."""
        seed = self.get_world_seed()
        if seed is None:
            return []
        db = self._get_db()
        return (
            db.query(model)
            .filter(model.world_seed_id == seed.id)
            .order_by(_tier_order(model), model.name)
            .all()
        )

    def get_entity(self, model: type, entity_id: int):
        """Fetch by id inside this world only."""
        seed = self.get_world_seed()
        if seed is None:
            return None
        db = self._get_db()
        return (
            db.query(model)
            .filter(model.id == entity_id, model.world_seed_id == seed.id)
            .first()
        )

    def find_by_name(self, model: type, name: str | None):
        """Case-insensitive exact name match inside this world."""
        if not name or not name.strip():
            return None
        db = self._get_db()
        return (
            db.query(model)
            .filter(
                model.world_seed_id == self.world_seed_id,
                func.lower(model.name) == name.strip().lower(),
            )
            .order_by(model.id)
            .first()
        )

    def find_by_name_fragment(self, model: type, fragment: str | None):
        """Case-insensitive substring match inside this world."""
        if not fragment or not fragment.strip():
            return None
        db = self._get_db()
        return (
            db.query(model)
            .filter(
                model.world_seed_id == self.world_seed_id,
                model.name.icontains(fragment.strip(), autoescape=True),
            )
            .order_by(model.id)
            .first()
        )

    def entity_names(self, model: type) -> list[str]:
        seed = self.get_world_seed()
        if seed is None:
            return []
        db = self._get_db()
        return [
            name for (name,) in
            db.query(model.name).filter(model.world_seed_id == seed.id).order_by(model.id)
        ]

    def search_entities(self, query: str, categories: list[str] | None = None) -> list[tuple[str, Any]]:
        """Name-contains search across categories -> [(category, entity)]."""
        seed = self.get_world_seed()
        if seed is None or not query.strip():
            return []
        db = self._get_db()
        results = []
        for category in categories or list(LoreCategory):
            model = model_for_category(category)
            rows = (
                db.query(model)
                .filter(model.world_seed_id == seed.id, model.name.icontains(query.strip(), autoescape=True))
                .all()
            )
            results.extend((LoreCategory(category), row) for row in rows)
        return results

    def get_faction_name(self, faction_id: int | None) -> str | None:
        if faction_id is None:
            return None
        faction = self.get_entity(Faction, faction_id)
        return faction.name if faction else None
