"""
Relationship graph service.

Edges are typed and weighted, between any two node kinds (npc, faction,
location, deity).  Generation emits edges by name; the resolver turns
them into id-based rows.  Reads build a bounded breadth-first graph
around one node, with a player mode that hides private, undiscovered
edges and the names of undiscovered nodes.
"""

import logging
import math
from collections import deque
from dataclasses import dataclass
from typing import Any

from ..db._entities import model_for_kind
from ..db.models import Faction, Npc, Relationship, utcnow
from ..db.world_store import WorldStore
from ..enums import EntityKind, RelationshipType
from ..exceptions import EntityNotFoundError, ValidationError

logger = logging.getLogger(__name__)

MIN_STRENGTH = 1
MAX_STRENGTH = 10
DEFAULT_STRENGTH = 5
MIN_GRAPH_DEPTH = 1
MAX_GRAPH_DEPTH = 3
HIDDEN_NAME = "???"


def clamp_strength(value: Any) -> int:
    try:
        strength = float(value)
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_STRENGTH
    if not math.isfinite(strength):
        return DEFAULT_STRENGTH
    strength = int(round(strength))
    return max(MIN_STRENGTH, min(MAX_STRENGTH, strength))


def clamp_depth(depth: Any) -> int:
    try:
        depth = int(depth)
    except (TypeError, ValueError):
        return 2
    return max(MIN_GRAPH_DEPTH, min(MAX_GRAPH_DEPTH, depth))


def node_key(kind: str, entity_id: int) -> str:
    return f"{kind}:{entity_id}"


@dataclass
class GeneratedEdge:
    """A name-based edge as emitted by generation."""
    source_type: str
    source_name: str
    target_type: str
    target_name: str
    type: str = RelationshipType.NEUTRAL
    strength: int = DEFAULT_STRENGTH
    description: str | None = None
    is_public: bool = True


class RelationshipService:
    """Reads and writes Relationship rows for one world."""

    def __init__(self, store: WorldStore):
        self.store = store

    @property
    def _db(self):
        return self.store._get_db()

    def _node(self, kind: str, entity_id: int):
        return self.store.get_entity(model_for_kind(kind), entity_id)

    def count(self) -> int:
        seed = self.store.get_world_seed()
        if seed is None:
            return 0
        return self._db.query(Relationship).filter(Relationship.world_seed_id == seed.id).count()

    # ==== Create ====

    def create_relationship(
        self,
        source_type: str,
        source_id: int,
        target_type: str,
        target_id: int,
        relationship_type: str,
        strength: Any = DEFAULT_STRENGTH,
        description: str | None = None,
        is_public: bool = True,
        is_discovered: bool = False,
    ) -> Relationship:
        """Create one edge.  Strength is clamped to 1-10."""
        try:
            source_kind, target_kind = EntityKind(source_type), EntityKind(target_type)
            rel_type = RelationshipType(relationship_type)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        if self._node(source_kind, source_id) is None:
            raise EntityNotFoundError(f"{source_kind} {source_id} not found")
        if self._node(target_kind, target_id) is None:
            raise EntityNotFoundError(f"{target_kind} {target_id} not found")

        rel = Relationship(
            world_seed_id=self.store.world_seed_id,
            source_type=source_kind,
            source_id=source_id,
            target_type=target_kind,
            target_id=target_id,
            relationship_type=rel_type,
            strength=clamp_strength(strength),
            description=description,
            is_public=is_public,
            is_discovered=is_discovered,
            discovered_at=utcnow() if is_discovered else None,
        )
        self._db.add(rel)
        self.store._maybe_commit()
        return rel

    def discover_relationship(self, relationship_id: int) -> Relationship:
        rel = self.get_relationship(relationship_id)
        if not rel.is_discovered:
            rel.is_discovered = True
            rel.discovered_at = utcnow()
            self.store._maybe_commit()
        return rel

    # ==== Read ====

    def get_relationship(self, relationship_id: int) -> Relationship:
        rel = (
            self._db.query(Relationship)
            .filter(
                Relationship.id == relationship_id,
                Relationship.world_seed_id == self.store.world_seed_id,
            )
            .first()
        )
        if rel is None:
            raise EntityNotFoundError(f"Relationship {relationship_id} not found")
        return rel

    def get_all_relationships(self) -> list[Relationship]:
        seed = self.store.get_world_seed()
        if seed is None:
            return []
        return (
            self._db.query(Relationship)
            .filter(Relationship.world_seed_id == seed.id)
            .order_by(Relationship.id)
            .all()
        )

    def _outgoing(self, kind: str, entity_id: int) -> list[Relationship]:
        return (
            self._db.query(Relationship)
            .filter(
                Relationship.world_seed_id == self.store.world_seed_id,
                Relationship.source_type == kind,
                Relationship.source_id == entity_id,
            )
            .order_by(Relationship.id)
            .all()
        )

    def _incoming(self, kind: str, entity_id: int) -> list[Relationship]:
        return (
            self._db.query(Relationship)
            .filter(
                Relationship.world_seed_id == self.store.world_seed_id,
                Relationship.target_type == kind,
                Relationship.target_id == entity_id,
            )
            .order_by(Relationship.id)
            .all()
        )

    def get_relationships_for(self, kind: str, entity_id: int) -> dict[str, list[Relationship]]:
        """Outgoing, incoming and all edges touching one node."""
        kind = EntityKind(kind)
        outgoing = self._outgoing(kind, entity_id)
        incoming = self._incoming(kind, entity_id)
        return {"outgoing": outgoing, "incoming": incoming, "all": outgoing + incoming}

    def _node_dict(self, kind: str, entity, player_mode: bool) -> dict[str, Any]:
        hidden = player_mode and not entity.is_discovered
        return {
            "id": node_key(kind, entity.id),
            "entity_id": entity.id,
            "kind": str(kind),
            "name": HIDDEN_NAME if hidden else entity.name,
            "tier": entity.tier,
            "is_discovered": entity.is_discovered,
        }

    def get_relationship_graph(
        self,
        center_kind: str,
        center_id: int,
        depth: int = 2,
        player_mode: bool = False,
    ) -> dict[str, Any]:
        """Breadth-first neighbourhood of one node, ``depth`` hops out (1-3).

        In player mode an edge that is neither public nor discovered is
        never emitted and never traversed.
        """
        center_kind = EntityKind(center_kind)
        center = self._node(center_kind, center_id)
        if center is None:
            raise EntityNotFoundError(f"{center_kind} {center_id} not found")
        depth = clamp_depth(depth)

        center_key = node_key(center_kind, center_id)
        visited = {center_key}
        nodes = {center_key: self._node_dict(center_kind, center, player_mode)}
        edges: dict[int, dict[str, Any]] = {}
        frontier = deque([(center_kind, center_id, 0)])

        while frontier:
            kind, entity_id, distance = frontier.popleft()
            if distance >= depth:
                continue
            for rel in self._outgoing(kind, entity_id) + self._incoming(kind, entity_id):
                if rel.id in edges:
                    continue
                if player_mode and not rel.is_public and not rel.is_discovered:
                    continue
                if rel.source_type == kind and rel.source_id == entity_id:
                    other_kind, other_id = rel.target_type, rel.target_id
                else:
                    other_kind, other_id = rel.source_type, rel.source_id

                other_key = node_key(other_kind, other_id)
                if other_key not in visited:
                    other = self._node(other_kind, other_id)
                    if other is None:
                        logger.warning(f"Relationship {rel.id} points at missing {other_key}")
                        continue
                    visited.add(other_key)
                    nodes[other_key] = self._node_dict(other_kind, other, player_mode)
                    frontier.append((EntityKind(other_kind), other_id, distance + 1))

                source_key = node_key(rel.source_type, rel.source_id)
                target_key = node_key(rel.target_type, rel.target_id)
                edges[rel.id] = {
                    "id": f"{source_key}->{target_key}",
                    "relationship_id": rel.id,
                    "source": source_key,
                    "target": target_key,
                    "type": rel.relationship_type,
                    "strength": rel.strength,
                    "is_public": rel.is_public,
                    "is_discovered": rel.is_discovered,
                }

        return {
            "center": center_key,
            "depth": depth,
            "nodes": list(nodes.values()),
            "edges": list(edges.values()),
        }

    # ==== Generation ====

    def collect_generated_edges(self) -> list[GeneratedEdge]:
        """Name-based edges implied by persisted faction and NPC fields."""
        edges = []
        for faction in self.store.list_entities(Faction):
            for ally in faction.allies or []:
                edges.append(GeneratedEdge(
                    EntityKind.FACTION, faction.name, EntityKind.FACTION, ally,
                    RelationshipType.ALLY, strength=7,
                ))
            for enemy in faction.enemies or []:
                edges.append(GeneratedEdge(
                    EntityKind.FACTION, faction.name, EntityKind.FACTION, enemy,
                    RelationshipType.ENEMY, strength=7,
                ))
            if faction.patron_deity:
                edges.append(GeneratedEdge(
                    EntityKind.DEITY, faction.patron_deity, EntityKind.FACTION, faction.name,
                    RelationshipType.PATRON, strength=6,
                ))
        for npc in self.store.list_entities(Npc):
            faction_name = self.store.get_faction_name(npc.faction_id)
            if faction_name:
                edges.append(GeneratedEdge(
                    EntityKind.NPC, npc.name, EntityKind.FACTION, faction_name,
                    RelationshipType.ALLY, strength=7,
                ))
            for rel in npc.relationships or []:
                edges.append(GeneratedEdge(
                    EntityKind.NPC, npc.name,
                    rel.get("target_type") or EntityKind.NPC, rel.get("target") or "",
                    rel.get("type") or RelationshipType.NEUTRAL,
                    strength=rel.get("strength", DEFAULT_STRENGTH),
                    description=rel.get("description"),
                    is_public=rel.get("public", True) is not False,
                ))
        return edges

    def bulk_create_from_generation(self, edges: list[GeneratedEdge]) -> int:
        """Resolve names to ids and insert new edges; returns how many were created.

        Unresolvable names, self-loops, repeated pairs within the batch and
        edges whose (source, target, type) already exists are skipped.
        """
        id_cache: dict[tuple[str, str], int | None] = {}
        seen_pairs: set[tuple] = set()
        world_seed_id = self.store.world_seed_id
        created = 0

        def resolve(kind: EntityKind, name: str) -> int | None:
            key = (kind, name.strip().lower())
            if key not in id_cache:
                model = model_for_kind(kind)
                entity = self.store.find_by_name(model, name) or self.store.find_by_name_fragment(model, name)
                id_cache[key] = entity.id if entity else None
            return id_cache[key]

        with self.store.deferred_commit():
            for edge in edges:
                try:
                    source_kind = EntityKind(edge.source_type)
                    target_kind = EntityKind(edge.target_type)
                except ValueError:
                    logger.warning(f"Skipping edge with unknown kind: {edge}")
                    continue
                if not edge.source_name or not edge.target_name:
                    continue

                source_id = resolve(source_kind, edge.source_name)
                target_id = resolve(target_kind, edge.target_name)
                if source_id is None or target_id is None:
                    logger.debug(f"Unresolved edge {edge.source_name} -> {edge.target_name}")
                    continue
                if (source_kind, source_id) == (target_kind, target_id):
                    continue

                pair = (source_kind, source_id, target_kind, target_id)
                if pair in seen_pairs:
                    continue
                seen_pairs.add(pair)

                try:
                    rel_type = RelationshipType(str(edge.type).lower())
                except ValueError:
                    rel_type = RelationshipType.NEUTRAL

                exists = (
                    self._db.query(Relationship.id)
                    .filter(
                        Relationship.world_seed_id == world_seed_id,
                        Relationship.source_type == source_kind,
                        Relationship.source_id == source_id,
                        Relationship.target_type == target_kind,
                        Relationship.target_id == target_id,
                        Relationship.relationship_type == rel_type,
                    )
                    .first()
                )
                if exists:
                    continue

                self._db.add(Relationship(
                    world_seed_id=world_seed_id,
                    source_type=source_kind,
                    source_id=source_id,
                    target_type=target_kind,
                    target_id=target_id,
                    relationship_type=rel_type,
                    strength=clamp_strength(edge.strength),
                    description=edge.description,
                    is_public=edge.is_public,
                ))
                self._db.flush()
                created += 1

        logger.info(f"Relationships: {created} created from {len(edges)} generated edges")
        return created

    def resolve_generated(self) -> int:
        """Relationships phase: materialise every name-based edge."""
        return self.bulk_create_from_generation(self.collect_generated_edges())
