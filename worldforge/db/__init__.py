"""Database layer: models, sessions and the per-world entity store."""

from .models import (
    Base,
    Campaign,
    Character,
    Conflict,
    Deity,
    Faction,
    GenerationLog,
    Location,
    Npc,
    Relationship,
    Secret,
    WorldSeed,
)
from .session import create_session, get_session, init_db
from .world_store import WorldStore

__all__ = [
    "Base", "Campaign", "Character", "Conflict", "Deity", "Faction",
    "GenerationLog", "Location", "Npc", "Relationship", "Secret", "WorldSeed",
    "create_session", "get_session", "init_db", "WorldStore",
]
