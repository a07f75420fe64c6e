"""SQLAlchemy database models for WorldForge."""

from datetime import UTC, datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, declared_attr, relationship

from ..enums import GenerationStatus, Tier

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp (all DateTime columns store naive UTC)."""
    return datetime.now(UTC).replace(tzinfo=None)


# ─── Source collaborators ────────────────────────────────────────────

class Campaign(Base):
    """A campaign whose free-text description seeds a generated world."""

    __tablename__ = "campaigns"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, default=utcnow)

    characters = relationship("Character", back_populates="campaign", cascade="all, delete-orphan")
    world_seed = relationship("WorldSeed", back_populates="campaign", uselist=False, cascade="all, delete-orphan")


class Character(Base):
    """Player character. Only the backstory is read by generation."""

    __tablename__ = "characters"

    id = Column(Integer, primary_key=True)
    campaign_id = Column(Integer, ForeignKey("campaigns.id"), nullable=False)
    name = Column(String(255), nullable=False)
    race = Column(String(100), nullable=True)
    character_class = Column(String(100), nullable=True)
    backstory = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    campaign = relationship("Campaign", back_populates="characters")


# ─── World seed (root aggregate + embedded generation job) ───────────

class WorldSeed(Base):
    """Root of one campaign's generated world.

    The generation job is embedded: ``generation_status``, ``current_phase``,
    ``generation_error`` and the three timestamps describe where the
    pipeline is.  Exactly one WorldSeed exists per campaign.
    """

    __tablename__ = "world_seeds"

    id = Column(Integer, primary_key=True)
    campaign_id = Column(Integer, ForeignKey("campaigns.id"), nullable=False, unique=True)

    # Seed content (tensions phase)
    name = Column(String(255), nullable=True)
    tone = Column(String(20), nullable=True)
    scale = Column(String(20), nullable=True)
    themes = Column(JSON, default=list)
    # [{"name", "description", "sides": [{"name", "stance"}], "manifestations": [...]}]
    core_tensions = Column(JSON, default=list)
    world_sketch = Column(Text, nullable=True)

    # Cosmology phase
    cosmology = Column(JSON, nullable=True)  # {"magic_system": {...}, "planes": [...]}
    world_history = Column(JSON, default=list)  # [{"era", "summary"}]

    # Generation job
    generation_status = Column(String(20), nullable=False, default=GenerationStatus.PENDING, index=True)
    current_phase = Column(String(30), nullable=True)
    generation_error = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    # Coherence audit (advisory)
    coherence_score = Column(Integer, nullable=True)
    coherence_report = Column(JSON, nullable=True)

    campaign = relationship("Campaign", back_populates="world_seed")


# ─── Generated entities ──────────────────────────────────────────────

class WorldEntityMixin:
    """Columns shared by every generated entity table."""

    entity_type: str = "entity"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    tier = Column(String(20), nullable=False, default=Tier.SUPPORTING)
    subtype = Column(String(100), nullable=True)
    player_override = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)

    @declared_attr
    def world_seed_id(cls):
        return Column(Integer, ForeignKey("world_seeds.id"), nullable=False, index=True)

    def to_dict(self) -> dict[str, Any]:
        """Plain dict of every column, with ``type`` set to the entity kind."""
        data = {}
        for column in self.__table__.columns:
            value = getattr(self, column.key)
            if isinstance(value, datetime):
                value = value.isoformat()
            data[column.key] = value
        data["type"] = self.entity_type
        return data


class DiscoverableMixin:
    """Discovery flags. ``exploration_level`` holds a per-kind vocabulary word."""

    is_discovered = Column(Boolean, nullable=False, default=False)
    discovered_at = Column(DateTime, nullable=True)
    exploration_level = Column(String(30), nullable=False, default="unknown")


class Deity(WorldEntityMixin, DiscoverableMixin, Base):
    """A god or power from the cosmology phase."""

    __tablename__ = "deities"
    entity_type = "deity"

    domain = Column(String(255), nullable=True)
    disposition = Column(String(50), nullable=True)  # benevolent, malevolent, indifferent...
    description = Column(Text, nullable=True)
    symbol = Column(String(255), nullable=True)


class Faction(WorldEntityMixin, DiscoverableMixin, Base):
    """An organised power.  ``secret_nature`` is hidden from players."""

    __tablename__ = "factions"
    entity_type = "faction"

    public_image = Column(Text, nullable=True)
    secret_nature = Column(Text, nullable=True)
    philosophy = Column(Text, nullable=True)
    goals = Column(JSON, default=list)
    methods = Column(JSON, default=list)
    resources = Column(JSON, default=list)
    symbol = Column(String(255), nullable=True)
    motto = Column(String(255), nullable=True)
    influence = Column(Integer, default=5)  # 1-10
    headquarters = Column(String(255), nullable=True)

    # [{"tension": <CoreTension name>, "stance": "..."}]
    tension_stances = Column(JSON, default=list)

    # Name references, resolved to Relationship edges by the relationships phase
    allies = Column(JSON, default=list)
    enemies = Column(JSON, default=list)
    patron_deity = Column(String(255), nullable=True)


class Npc(WorldEntityMixin, DiscoverableMixin, Base):
    """A named character of the world (not a player character)."""

    __tablename__ = "npcs"
    entity_type = "npc"

    faction_id = Column(Integer, ForeignKey("factions.id"), nullable=True)
    occupation = Column(String(255), nullable=True)
    race = Column(String(100), nullable=True)
    appearance = Column(Text, nullable=True)
    personality = Column(JSON, default=list)
    speaking_style = Column(Text, nullable=True)

    public_goal = Column(Text, nullable=True)
    private_goal = Column(Text, nullable=True)
    secret_goal = Column(Text, nullable=True)
    hidden_identity = Column(Text, nullable=True)

    # [{"tension": <CoreTension name>, "role": "..."}]
    tension_roles = Column(JSON, default=list)
    primary_location = Column(String(255), nullable=True)

    # [{"target": <name>, "target_type": "npc"|"faction"|..., "type": "ally", "strength": 1-10}]
    relationships = Column(JSON, default=list)

    faction = relationship("Faction", foreign_keys=[faction_id])


class Location(WorldEntityMixin, DiscoverableMixin, Base):
    """A place in the world."""

    __tablename__ = "locations"
    entity_type = "location"

    controlling_faction_id = Column(Integer, ForeignKey("factions.id"), nullable=True)
    description = Column(Text, nullable=True)
    atmosphere = Column(Text, nullable=True)
    sensory_details = Column(JSON, default=list)
    region = Column(String(255), nullable=True)
    terrain = Column(String(255), nullable=True)
    climate = Column(String(255), nullable=True)
    population = Column(String(255), nullable=True)
    connected_to = Column(JSON, default=list)
    hidden_secrets = Column(JSON, default=list)

    controlling_faction = relationship("Faction", foreign_keys=[controlling_faction_id])


class Conflict(WorldEntityMixin, DiscoverableMixin, Base):
    """An active struggle rooted in one core tension."""

    __tablename__ = "conflicts"
    entity_type = "conflict"

    description = Column(Text, nullable=True)
    root_tension = Column(String(255), nullable=True)  # CoreTension name, or None if unmatched
    participants = Column(JSON, default=list)  # [{"type", "name", "role"}]
    stakes = Column(Text, nullable=True)
    public_narrative = Column(Text, nullable=True)
    true_nature = Column(Text, nullable=True)
    current_state = Column(String(100), nullable=True)
    possible_outcomes = Column(JSON, default=list)


class Secret(WorldEntityMixin, Base):
    """A hidden truth.  Revealed rather than discovered."""

    __tablename__ = "secrets"
    entity_type = "secret"

    content = Column(Text, nullable=True)
    hints = Column(JSON, default=list)
    known_by = Column(JSON, default=list)
    related_factions = Column(JSON, default=list)
    related_locations = Column(JSON, default=list)
    discovery_conditions = Column(Text, nullable=True)
    reveal_impact = Column(Text, nullable=True)
    is_revealed = Column(Boolean, nullable=False, default=False)
    revealed_at = Column(DateTime, nullable=True)


# ─── Relationship graph ──────────────────────────────────────────────

class Relationship(Base):
    """Typed, weighted, directed edge between two entities of one world."""

    __tablename__ = "relationships"
    __table_args__ = (
        sa.Index("idx_rel_source", "world_seed_id", "source_type", "source_id"),
        sa.Index("idx_rel_target", "world_seed_id", "target_type", "target_id"),
    )

    id = Column(Integer, primary_key=True)
    world_seed_id = Column(Integer, ForeignKey("world_seeds.id"), nullable=False)
    source_type = Column(String(20), nullable=False)
    source_id = Column(Integer, nullable=False)
    target_type = Column(String(20), nullable=False)
    target_id = Column(Integer, nullable=False)
    relationship_type = Column(String(30), nullable=False)
    strength = Column(Integer, nullable=False, default=5)  # 1-10
    description = Column(Text, nullable=True)
    is_public = Column(Boolean, nullable=False, default=True)
    is_discovered = Column(Boolean, nullable=False, default=False)
    discovered_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source_type": self.source_type,
            "source_id": self.source_id,
            "target_type": self.target_type,
            "target_id": self.target_id,
            "type": self.relationship_type,
            "strength": self.strength,
            "description": self.description,
            "is_public": self.is_public,
            "is_discovered": self.is_discovered,
        }


# ─── Generation audit trail ──────────────────────────────────────────

class GenerationLog(Base):
    """One row per phase attempt: prompt, raw response, parse result, timing."""

    __tablename__ = "generation_logs"

    id = Column(Integer, primary_key=True)
    world_seed_id = Column(Integer, ForeignKey("world_seeds.id"), nullable=False, index=True)
    phase = Column(String(30), nullable=False)
    status = Column(String(20), nullable=False)
    prompt = Column(Text, nullable=True)
    response = Column(Text, nullable=True)
    parsed_data = Column(JSON, nullable=True)
    error = Column(Text, nullable=True)
    duration_ms = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "phase": self.phase,
            "status": self.status,
            "prompt": self.prompt,
            "response": self.response,
            "parsed_data": self.parsed_data,
            "error": self.error,
            "duration_ms": self.duration_ms,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
