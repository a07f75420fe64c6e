"""
Canonical string enumerations for WorldForge.

StrEnum values serialize as plain strings, so they double as database
column values, JSON payload values and LLM prompt vocabulary.
"""

from enum import StrEnum


# ── Generation Job ─────────────────────────────────────────────────────

class GenerationStatus(StrEnum):
    """Lifecycle of the generation job embedded in a WorldSeed."""
    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


class GenerationPhase(StrEnum):
    """Pipeline phases, declared in execution order."""
    TENSIONS = "tensions"
    COSMOLOGY = "cosmology"
    FACTIONS = "factions"
    NPCS = "npcs"
    CONFLICTS = "conflicts"
    LOCATIONS = "locations"
    SECRETS = "secrets"
    RELATIONSHIPS = "relationships"
    COHERENCE = "coherence"


PHASE_ORDER: tuple[GenerationPhase, ...] = tuple(GenerationPhase)


class LogStatus(StrEnum):
    """Outcome of one recorded phase attempt."""
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


# ── World Seed ─────────────────────────────────────────────────────────

class WorldTone(StrEnum):
    DARK = "dark"
    HEROIC = "heroic"
    INTRIGUE = "intrigue"
    COMEDIC = "comedic"
    EPIC = "epic"
    GRITTY = "gritty"


class WorldScale(StrEnum):
    LOCAL = "local"
    REGIONAL = "regional"
    CONTINENTAL = "continental"
    PLANAR = "planar"


# ── Entities ───────────────────────────────────────────────────────────

class Tier(StrEnum):
    """Narrative weight of a generated entity."""
    MAJOR = "major"
    SUPPORTING = "supporting"
    MINOR = "minor"


TIER_RANK: dict[str, int] = {Tier.MAJOR: 0, Tier.SUPPORTING: 1, Tier.MINOR: 2}


class EntityKind(StrEnum):
    """Node kinds that may appear at either end of a Relationship edge."""
    NPC = "npc"
    FACTION = "faction"
    LOCATION = "location"
    DEITY = "deity"


class LoreCategory(StrEnum):
    """Browsable lore categories (one table each)."""
    FACTIONS = "factions"
    PEOPLE = "people"
    GEOGRAPHY = "geography"
    CONFLICTS = "conflicts"
    SECRETS = "secrets"
    DEITIES = "deities"


KIND_TO_CATEGORY: dict[EntityKind, LoreCategory] = {
    EntityKind.NPC: LoreCategory.PEOPLE,
    EntityKind.FACTION: LoreCategory.FACTIONS,
    EntityKind.LOCATION: LoreCategory.GEOGRAPHY,
    EntityKind.DEITY: LoreCategory.DEITIES,
}


class RelationshipType(StrEnum):
    ALLY = "ally"
    ENEMY = "enemy"
    RIVAL = "rival"
    SERVANT = "servant"
    PATRON = "patron"
    FAMILY = "family"
    TRADE_PARTNER = "trade_partner"
    NEUTRAL = "neutral"


# ── Discovery ──────────────────────────────────────────────────────────

class DiscoveryLevel(StrEnum):
    """How much the players know about an entity."""
    UNDISCOVERED = "undiscovered"
    RUMORED = "rumored"
    KNOWN = "known"
    DETAILED = "detailed"


DISCOVERY_RANK: dict[str, int] = {
    DiscoveryLevel.UNDISCOVERED: 0,
    DiscoveryLevel.RUMORED: 1,
    DiscoveryLevel.KNOWN: 2,
    DiscoveryLevel.DETAILED: 3,
}

# Stored exploration_level words, indexed by DISCOVERY_RANK
EXPLORATION_VOCABULARY: dict[LoreCategory, tuple[str, str, str, str]] = {
    LoreCategory.GEOGRAPHY: ("unknown", "heard-of", "visited", "mapped"),
    LoreCategory.PEOPLE: ("unknown", "heard-of", "met", "confided"),
    LoreCategory.FACTIONS: ("unknown", "heard-of", "encountered", "infiltrated"),
    LoreCategory.CONFLICTS: ("unknown", "rumored", "witnessed", "understood"),
    LoreCategory.DEITIES: ("unknown", "whispered", "worshipped", "revealed"),
}


class ViewMode(StrEnum):
    """Who is reading: players see a filtered world, operators see all."""
    PLAYER = "player"
    OPERATOR = "operator"


# ── Coherence ──────────────────────────────────────────────────────────

class IssueType(StrEnum):
    CONTRADICTION = "contradiction"
    MISSING_LINK = "missing_link"
    DEAD_END = "dead_end"
    ORPHAN = "orphan"


class IssueSeverity(StrEnum):
    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"
