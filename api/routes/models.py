"""Pydantic request/response models for the Worlds API."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel


# === Generation ===

class GenerateResponse(BaseModel):
    """Result of queueing world generation."""
    campaign_id: int
    status: str
    already_exists: bool = False
    autostarted: bool = False


class StatusResponse(BaseModel):
    """Generation job status plus a summary of what exists so far."""
    campaign_id: int
    status: str  # not_started | pending | generating | completed | failed
    current_phase: Optional[str] = None
    error: Optional[str] = None
    created_at: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    coherence_score: Optional[int] = None
    counts: Dict[str, int] = {}


# === Lore / Discovery ===

class LoreListResponse(BaseModel):
    category: str
    mode: str
    count: int
    entities: List[Dict[str, Any]]


class DiscoverRequest(BaseModel):
    """Move an entity to a discovery level (secrets: 'detailed' reveals)."""
    category: str
    entity_id: int
    level: str = "known"


class OverrideRequest(BaseModel):
    """Mark an entity as player-owned so world resets keep it."""
    category: str
    entity_id: int
    player_override: bool = True


# === Relationships ===

class RelationshipCreateRequest(BaseModel):
    source_type: str
    source_id: int
    target_type: str
    target_id: int
    relationship_type: str
    strength: int = 5
    description: Optional[str] = None
    is_public: bool = True
    is_discovered: bool = False


class SearchResult(BaseModel):
    category: str
    entity: Dict[str, Any]


class SearchResponse(BaseModel):
    query: str
    count: int
    results: List[SearchResult]
