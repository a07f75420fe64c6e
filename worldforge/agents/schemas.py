"""
Payload schemas for the generation phases.

Model output is loosely typed: numbers arrive as strings, single values
stand in for lists and enum values come in any case.  Every phase item
is validated through one of these models.  Before-validators coerce
what can be coerced; an item that still fails validation is dropped
by the agent that asked for it.
"""

import json
import logging
import math
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..enums import (
    EntityKind,
    IssueSeverity,
    IssueType,
    RelationshipType,
    Tier,
    WorldScale,
    WorldTone,
)

logger = logging.getLogger(__name__)

DEFAULT_WORLD_NAME = "The Unnamed Realm"
DEFAULT_THEMES = ["adventure", "conflict", "discovery"]
MAX_THEMES = 5
DEFAULT_INFLUENCE = 5
DEFAULT_STRENGTH = 5
DEFAULT_ADVISORY_SCORE = 70


# =============================================================================
# COERCION HELPERS
# =============================================================================

def to_text(value: Any) -> str | None:
    """Stringify scalars; blank and null become None."""
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        value = json.dumps(value, ensure_ascii=False)
    text = str(value).strip()
    return text or None


def to_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def to_text_list(value: Any) -> list[str]:
    return [text for text in (to_text(v) for v in to_list(value)) if text]


def to_choice(value: Any, choices: type, default: Any) -> Any:
    """Case-insensitive enum lookup with a fallback."""
    text = (to_text(value) or "").lower()
    try:
        return choices(text)
    except ValueError:
        return default


def clamp_int(value: Any, low: int, high: int, default: int) -> int:
    """Round into ``[low, high]``; non-numeric and non-finite values give ``default``."""
    if isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return default
    if not math.isfinite(number):
        return default
    return max(low, min(high, int(round(number))))


def valid_items(values: Any, schema: type[BaseModel], label: str = "") -> list[BaseModel]:
    """Validate each entry; entries that fail are logged and skipped."""
    items = []
    for raw in to_list(values):
        try:
            items.append(schema.model_validate(raw))
        except ValidationError as e:
            if label:
                logger.warning(f"Dropping invalid {label} ({e.error_count()} errors): {raw!r:.120}")
    return items


# =============================================================================
# TENSIONS PHASE
# =============================================================================

class TensionSide(BaseModel):
    name: str
    stance: str

    @field_validator("name", "stance", mode="before")
    @classmethod
    def _text(cls, v):
        return to_text(v)


class TensionPayload(BaseModel):
    """One core tension: needs a name and at least two sides with stances."""
    name: str
    description: str = ""
    sides: list[TensionSide] = Field(min_length=2)
    manifestations: list[str] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, v):
        return to_text(v)

    @field_validator("description", mode="before")
    @classmethod
    def _description(cls, v):
        return to_text(v) or ""

    @field_validator("sides", mode="before")
    @classmethod
    def _sides(cls, v):
        return valid_items(v, TensionSide)

    @field_validator("manifestations", mode="before")
    @classmethod
    def _manifestations(cls, v):
        return to_text_list(v)


class SeedPayload(BaseModel):
    """The tensions-phase reply: world seed fields plus core tensions."""
    world_name: str = DEFAULT_WORLD_NAME
    tone: WorldTone = WorldTone.HEROIC
    scale: WorldScale = WorldScale.REGIONAL
    themes: list[str] = Field(default_factory=lambda: list(DEFAULT_THEMES))
    world_sketch: str = ""
    core_tensions: list[TensionPayload] = Field(default_factory=list)

    @field_validator("world_name", mode="before")
    @classmethod
    def _world_name(cls, v):
        return to_text(v) or DEFAULT_WORLD_NAME

    @field_validator("world_sketch", mode="before")
    @classmethod
    def _world_sketch(cls, v):
        return to_text(v) or ""

    @field_validator("tone", mode="before")
    @classmethod
    def _tone(cls, v):
        return to_choice(v, WorldTone, WorldTone.HEROIC)

    @field_validator("scale", mode="before")
    @classmethod
    def _scale(cls, v):
        return to_choice(v, WorldScale, WorldScale.REGIONAL)

    @field_validator("themes", mode="before")
    @classmethod
    def _themes(cls, v):
        return to_text_list(v)[:MAX_THEMES] or list(DEFAULT_THEMES)

    @field_validator("core_tensions", mode="before")
    @classmethod
    def _core_tensions(cls, v):
        return valid_items(v, TensionPayload, "core tension")


# =============================================================================
# ENTITY PHASES
# =============================================================================

class TensionStance(BaseModel):
    tension: str
    stance: str = ""

    @field_validator("tension", "stance", mode="before")
    @classmethod
    def _text(cls, v):
        return to_text(v) or ""


class TensionRole(BaseModel):
    tension: str
    role: str = ""

    @field_validator("tension", "role", mode="before")
    @classmethod
    def _text(cls, v):
        return to_text(v) or ""


class EntityPayload(BaseModel):
    """Fields every generated entity shares."""
    name: str
    tier: Tier = Tier.SUPPORTING

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, v):
        return to_text(v)

    @field_validator("tier", mode="before")
    @classmethod
    def _tier(cls, v):
        return to_choice(v, Tier, Tier.SUPPORTING)


class DeityPayload(EntityPayload):
    domain: str | None = None
    disposition: str | None = None
    description: str | None = None
    symbol: str | None = None

    @field_validator("domain", "disposition", "description", "symbol", mode="before")
    @classmethod
    def _text(cls, v):
        return to_text(v)


class CosmologyPayload(BaseModel):
    """World-level parts of the cosmology reply (deities are validated separately)."""
    magic_system: dict[str, Any] = Field(default_factory=lambda: {"description": None})
    planes: list[dict[str, Any]] = Field(default_factory=list)
    history: list[dict[str, Any]] = Field(default_factory=list)

    @field_validator("magic_system", mode="before")
    @classmethod
    def _magic_system(cls, v):
        return v if isinstance(v, dict) else {"description": to_text(v)}

    @field_validator("planes", "history", mode="before")
    @classmethod
    def _records(cls, v):
        return [entry for entry in to_list(v) if isinstance(entry, dict)]


class FactionPayload(EntityPayload):
    type: str | None = None
    public_image: str | None = None
    secret_nature: str | None = None
    philosophy: str | None = None
    symbol: str | None = None
    motto: str | None = None
    headquarters: str | None = None
    patron_deity: str | None = None
    goals: list[str] = Field(default_factory=list)
    methods: list[str] = Field(default_factory=list)
    resources: list[str] = Field(default_factory=list)
    allies: list[str] = Field(default_factory=list)
    enemies: list[str] = Field(default_factory=list)
    influence: int = DEFAULT_INFLUENCE
    tension_stances: list[TensionStance] = Field(default_factory=list)

    @field_validator(
        "type", "public_image", "secret_nature", "philosophy",
        "symbol", "motto", "headquarters", "patron_deity",
        mode="before",
    )
    @classmethod
    def _text(cls, v):
        return to_text(v)

    @field_validator("goals", "methods", "resources", "allies", "enemies", mode="before")
    @classmethod
    def _text_lists(cls, v):
        return to_text_list(v)

    @field_validator("influence", mode="before")
    @classmethod
    def _influence(cls, v):
        return clamp_int(v, 1, 10, DEFAULT_INFLUENCE)

    @field_validator("tension_stances", mode="before")
    @classmethod
    def _tension_stances(cls, v):
        return valid_items(v, TensionStance)


class RelationshipPayload(BaseModel):
    """A named edge proposed by an NPC; resolved in the relationships phase."""
    target: str
    target_type: EntityKind = EntityKind.NPC
    type: RelationshipType = RelationshipType.NEUTRAL
    strength: int = DEFAULT_STRENGTH
    description: str | None = None
    public: bool = True

    @field_validator("target", "description", mode="before")
    @classmethod
    def _text(cls, v):
        return to_text(v)

    @field_validator("target_type", mode="before")
    @classmethod
    def _target_type(cls, v):
        return to_choice(v, EntityKind, EntityKind.NPC)

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, v):
        return to_choice(v, RelationshipType, RelationshipType.NEUTRAL)

    @field_validator("strength", mode="before")
    @classmethod
    def _strength(cls, v):
        return clamp_int(v, 1, 10, DEFAULT_STRENGTH)

    @field_validator("public", mode="before")
    @classmethod
    def _public(cls, v):
        # Only an explicit false hides the edge
        return v is not False


class NpcPayload(EntityPayload):
    role: str | None = None
    faction: str | None = None
    occupation: str | None = None
    race: str | None = None
    appearance: str | None = None
    speaking_style: str | None = None
    public_goal: str | None = None
    private_goal: str | None = None
    secret_goal: str | None = None
    hidden_identity: str | None = None
    location: str | None = None
    personality: list[Any] | dict[str, Any] = Field(default_factory=list)
    tension_roles: list[TensionRole] = Field(default_factory=list)
    relationships: list[RelationshipPayload] = Field(default_factory=list)

    @field_validator(
        "role", "faction", "occupation", "race", "appearance", "speaking_style",
        "public_goal", "private_goal", "secret_goal", "hidden_identity", "location",
        mode="before",
    )
    @classmethod
    def _text(cls, v):
        return to_text(v)

    @field_validator("personality", mode="before")
    @classmethod
    def _personality(cls, v):
        return v if isinstance(v, (list, dict)) else to_text_list(v)

    @field_validator("tension_roles", mode="before")
    @classmethod
    def _tension_roles(cls, v):
        return valid_items(v, TensionRole)

    @field_validator("relationships", mode="before")
    @classmethod
    def _relationships(cls, v):
        return valid_items(v, RelationshipPayload)


class ParticipantPayload(BaseModel):
    name: str
    type: str = "faction"
    role: str | None = None

    @field_validator("name", "role", mode="before")
    @classmethod
    def _text(cls, v):
        return to_text(v)

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, v):
        return (to_text(v) or "faction").lower()


class ConflictPayload(EntityPayload):
    type: str | None = None
    description: str | None = None
    root_tension: str | None = None
    stakes: str | None = None
    public_narrative: str | None = None
    true_nature: str | None = None
    current_state: str | None = None
    possible_outcomes: list[str] = Field(default_factory=list)
    participants: list[ParticipantPayload] = Field(default_factory=list)

    @field_validator(
        "type", "description", "root_tension", "stakes",
        "public_narrative", "true_nature", "current_state",
        mode="before",
    )
    @classmethod
    def _text(cls, v):
        return to_text(v)

    @field_validator("possible_outcomes", mode="before")
    @classmethod
    def _outcomes(cls, v):
        return to_text_list(v)

    @field_validator("participants", mode="before")
    @classmethod
    def _participants(cls, v):
        # A bare name is a faction participant
        entries = [p if isinstance(p, dict) else {"name": p} for p in to_list(v)]
        return valid_items(entries, ParticipantPayload)


class LocationPayload(EntityPayload):
    type: str | None = None
    controlling_faction: str | None = None
    description: str | None = None
    atmosphere: str | None = None
    region: str | None = None
    terrain: str | None = None
    climate: str | None = None
    population: str | None = None
    sensory_details: list[Any] | dict[str, Any] = Field(default_factory=list)
    connected_to: list[str] = Field(default_factory=list)
    hidden_secrets: list[str] = Field(default_factory=list)

    @field_validator(
        "type", "controlling_faction", "description", "atmosphere",
        "region", "terrain", "climate", "population",
        mode="before",
    )
    @classmethod
    def _text(cls, v):
        return to_text(v)

    @field_validator("sensory_details", mode="before")
    @classmethod
    def _sensory_details(cls, v):
        return v if isinstance(v, (list, dict)) else to_text_list(v)

    @field_validator("connected_to", "hidden_secrets", mode="before")
    @classmethod
    def _text_lists(cls, v):
        return to_text_list(v)


class SecretPayload(EntityPayload):
    type: str | None = None
    content: str | None = None
    discovery_conditions: str | None = None
    reveal_impact: str | None = None
    hints: list[str] = Field(default_factory=list)
    known_by: list[str] = Field(default_factory=list)
    related_factions: list[str] = Field(default_factory=list)
    related_locations: list[str] = Field(default_factory=list)

    @field_validator("type", "content", "discovery_conditions", "reveal_impact", mode="before")
    @classmethod
    def _text(cls, v):
        return to_text(v)

    @field_validator("hints", "known_by", "related_factions", "related_locations", mode="before")
    @classmethod
    def _text_lists(cls, v):
        return to_text_list(v)


# =============================================================================
# COHERENCE ADVISORY
# =============================================================================

class AdvisoryIssue(BaseModel):
    type: IssueType = IssueType.MISSING_LINK
    severity: IssueSeverity = IssueSeverity.MINOR
    description: str
    entities: list[str] = Field(default_factory=list)

    @field_validator("description", mode="before")
    @classmethod
    def _description(cls, v):
        return to_text(v)

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, v):
        return to_choice(v, IssueType, IssueType.MISSING_LINK)

    @field_validator("severity", mode="before")
    @classmethod
    def _severity(cls, v):
        return to_choice(v, IssueSeverity, IssueSeverity.MINOR)

    @field_validator("entities", mode="before")
    @classmethod
    def _entities(cls, v):
        return to_text_list(v)


class AdvisoryPayload(BaseModel):
    """The auditor's reply.

    A missing or non-numeric score means 70.  An infinite or NaN score,
    or an ``issues`` value that is not a list, fails validation and the
    whole reply is discarded.
    """
    score: int = DEFAULT_ADVISORY_SCORE
    issues: list[AdvisoryIssue] = Field(default_factory=list)

    @field_validator("score", mode="before")
    @classmethod
    def _score(cls, v):
        if v is None or isinstance(v, bool):
            return DEFAULT_ADVISORY_SCORE
        if isinstance(v, str):
            try:
                v = float(v)
            except ValueError:
                return DEFAULT_ADVISORY_SCORE
        if not isinstance(v, (int, float)):
            return DEFAULT_ADVISORY_SCORE
        if isinstance(v, float) and not math.isfinite(v):
            raise ValueError("score must be a finite number")
        return int(round(v))

    @field_validator("issues", mode="before")
    @classmethod
    def _issues(cls, v):
        if v is None:
            return []
        if not isinstance(v, list):
            raise ValueError("issues must be a list")
        return valid_items(v, AdvisoryIssue)
