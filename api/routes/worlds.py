"""World generation, lore, discovery and relationship endpoints.

Every route is scoped to one campaign's world: ``/api/worlds/{campaign_id}/...``.
"""

import logging
from contextlib import contextmanager

from fastapi import APIRouter, HTTPException, Query

from worldforge.config import Config
from worldforge.core.discovery import DiscoveryService, level_from_state
from worldforge.core.job_queue import GenerationQueue
from worldforge.core.relationships import RelationshipService
from worldforge.core.worker import GenerationWorker
from worldforge.db._entities import model_for_category
from worldforge.db.world_store import WorldStore
from worldforge.enums import TIER_RANK, DiscoveryLevel, LoreCategory, ViewMode
from worldforge.exceptions import EntityNotFoundError, ValidationError
from worldforge.utils.tasks import safe_create_task

from .models import (
    DiscoverRequest,
    GenerateResponse,
    LoreListResponse,
    OverrideRequest,
    RelationshipCreateRequest,
    SearchResponse,
    SearchResult,
    StatusResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

SEARCH_LIMIT = 20


@contextmanager
def open_store(campaign_id: int):
    """WorldStore for one request, with domain errors mapped to HTTP."""
    store = WorldStore(campaign_id)
    try:
        yield store
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except (ValidationError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    finally:
        store.close()


def _iso(value):
    return value.isoformat() if value else None


def _parse_mode(mode: str) -> ViewMode:
    try:
        return ViewMode(mode)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid mode: {mode}") from e


# === Generation ===

@router.post("/{campaign_id}/generate", response_model=GenerateResponse)
async def generate_world(campaign_id: int):
    """Queue world generation.  Idempotent for pending/running/completed jobs."""
    try:
        result = GenerationQueue().enqueue(campaign_id)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    autostarted = False
    if Config.AUTOSTART_GENERATION and not result.already_exists:
        safe_create_task(GenerationWorker().run_once(), name=f"worldgen-{campaign_id}")
        autostarted = True

    return GenerateResponse(
        campaign_id=campaign_id,
        status=result.job.status,
        already_exists=result.already_exists,
        autostarted=autostarted,
    )


@router.get("/{campaign_id}/status", response_model=StatusResponse)
async def get_generation_status(campaign_id: int):
    """Job status, current phase, error and entity counts."""
    job = GenerationQueue().get_status(campaign_id)
    if job is None:
        return StatusResponse(campaign_id=campaign_id, status="not_started")

    with open_store(campaign_id) as store:
        seed = store.get_world_seed()
        counts = store.get_counts()
        score = seed.coherence_score if seed else None

    return StatusResponse(
        campaign_id=campaign_id,
        status=job.status,
        current_phase=job.current_phase,
        error=job.error,
        created_at=_iso(job.created_at),
        started_at=_iso(job.started_at),
        completed_at=_iso(job.completed_at),
        coherence_score=score,
        counts=counts,
    )


@router.post("/{campaign_id}/reset")
async def reset_world(campaign_id: int):
    """Delete generated content (player overrides survive) and re-queue."""
    try:
        job = GenerationQueue().reset(campaign_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return {"campaign_id": campaign_id, "status": job.status}


# === Lore ===

@router.get("/{campaign_id}/lore", response_model=LoreListResponse)
async def list_lore(
    campaign_id: int,
    category: str = Query(LoreCategory.FACTIONS),
    mode: str = Query(ViewMode.PLAYER),
):
    """Entities of one category, major tier first, filtered for the viewer."""
    view_mode = _parse_mode(mode)
    with open_store(campaign_id) as store:
        model = model_for_category(category)
        entities = DiscoveryService(store).view_many(category, store.list_entities(model), view_mode)
    return LoreListResponse(
        category=category, mode=view_mode, count=len(entities), entities=entities
    )


@router.get("/{campaign_id}/lore/counts")
async def lore_counts(campaign_id: int):
    with open_store(campaign_id) as store:
        return store.get_counts()


@router.get("/{campaign_id}/lore/{category}/{entity_id}")
async def get_lore_entity(campaign_id: int, category: str, entity_id: int, mode: str = Query(ViewMode.PLAYER)):
    view_mode = _parse_mode(mode)
    with open_store(campaign_id) as store:
        entity = store.get_entity(model_for_category(category), entity_id)
        if entity is None:
            raise EntityNotFoundError(f"{category} entity {entity_id} not found")
        return DiscoveryService(store).view(category, entity, view_mode)


# === Discovery ===

@router.post("/{campaign_id}/discover")
async def discover_entity(campaign_id: int, request: DiscoverRequest):
    """Set an entity's discovery level; returns the new operator view."""
    with open_store(campaign_id) as store:
        service = DiscoveryService(store)
        entity = service.discover(request.category, request.entity_id, request.level)
        return service.view(request.category, entity, ViewMode.OPERATOR)


@router.post("/{campaign_id}/override")
async def override_entity(campaign_id: int, request: OverrideRequest):
    with open_store(campaign_id) as store:
        entity = DiscoveryService(store).set_player_override(
            request.category, request.entity_id, request.player_override
        )
        return {"id": entity.id, "category": request.category, "player_override": entity.player_override}


# === Relationships ===

@router.get("/{campaign_id}/relationships")
async def list_relationships(
    campaign_id: int,
    kind: str | None = None,
    entity_id: int | None = None,
):
    """All edges of the world, or the edges touching one node."""
    with open_store(campaign_id) as store:
        service = RelationshipService(store)
        if kind and entity_id is not None:
            grouped = service.get_relationships_for(kind, entity_id)
            return {key: [r.to_dict() for r in rels] for key, rels in grouped.items()}
        return {"relationships": [r.to_dict() for r in service.get_all_relationships()]}


@router.post("/{campaign_id}/relationships")
async def create_relationship(campaign_id: int, request: RelationshipCreateRequest):
    with open_store(campaign_id) as store:
        rel = RelationshipService(store).create_relationship(**request.model_dump())
        return rel.to_dict()


@router.get("/{campaign_id}/relationship-graph")
async def relationship_graph(
    campaign_id: int,
    kind: str,
    entity_id: int,
    depth: int = 2,
    mode: str = Query(ViewMode.PLAYER),
):
    """Neighbourhood graph of one node.  Player mode hides private edges."""
    view_mode = _parse_mode(mode)
    with open_store(campaign_id) as store:
        return RelationshipService(store).get_relationship_graph(
            kind, entity_id, depth=depth, player_mode=view_mode == ViewMode.PLAYER
        )


# === Search ===

@router.get("/{campaign_id}/search", response_model=SearchResponse)
async def search_lore(
    campaign_id: int,
    q: str = Query(..., min_length=1),
    category_filter: str = Query("all", alias="filter"),
    mode: str = Query(ViewMode.PLAYER),
):
    """Name search.  Players only find what they have discovered."""
    view_mode = _parse_mode(mode)
    categories = None if category_filter == "all" else [c.strip() for c in category_filter.split(",") if c.strip()]
    with open_store(campaign_id) as store:
        if categories:
            for category in categories:
                model_for_category(category)
        matches = store.search_entities(q, categories)
        if view_mode == ViewMode.PLAYER:
            matches = [
                (category, entity) for category, entity in matches
                if level_from_state(category, entity) != DiscoveryLevel.UNDISCOVERED
            ]
        matches.sort(key=lambda m: (TIER_RANK.get(m[1].tier, len(TIER_RANK)), m[1].name.lower()))
        service = DiscoveryService(store)
        results = [
            SearchResult(category=category, entity=service.view(category, entity, view_mode))
            for category, entity in matches[:SEARCH_LIMIT]
        ]
    return SearchResponse(query=q, count=len(results), results=results)


# === Coherence / Audit trail ===

@router.get("/{campaign_id}/coherence")
async def get_coherence(campaign_id: int):
    with open_store(campaign_id) as store:
        seed = store.require_world_seed()
        return {
            "campaign_id": campaign_id,
            "score": seed.coherence_score,
            "report": seed.coherence_report,
        }


@router.get("/{campaign_id}/generation-logs")
async def get_generation_logs(campaign_id: int, phase: str | None = None, limit: int | None = None):
    with open_store(campaign_id) as store:
        logs = store.get_generation_logs(phase=phase, limit=limit)
        return {"logs": [entry.to_dict() for entry in logs]}


@router.delete("/{campaign_id}/generation-logs")
async def clear_generation_logs(campaign_id: int):
    with open_store(campaign_id) as store:
        deleted = store.clear_generation_logs()
    logger.info(f"Cleared {deleted} generation logs for campaign {campaign_id}")
    return {"deleted": deleted}
