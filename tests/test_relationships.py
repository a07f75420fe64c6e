"""Tests for RelationshipService: edges, neighbourhood graphs and bulk resolution."""

import pytest

from worldforge.core.relationships import (
    HIDDEN_NAME,
    GeneratedEdge,
    RelationshipService,
    clamp_depth,
    clamp_strength,
    node_key,
)
from worldforge.db.models import Deity, Faction, Npc
from worldforge.enums import EntityKind, RelationshipType
from worldforge.exceptions import EntityNotFoundError, ValidationError


@pytest.fixture
def service(seeded_store):
    return RelationshipService(seeded_store)


@pytest.fixture
def nodes(seeded_store):
    return {
        "ilene": seeded_store.find_by_name(Npc, "Sister Ilene"),
        "tobin": seeded_store.find_by_name(Npc, "Tobin Vell"),
        "dawn": seeded_store.find_by_name(Faction, "Order of the Dawn"),
        "league": seeded_store.find_by_name(Faction, "Merchant League"),
        "vael": seeded_store.find_by_name(Deity, "Vael"),
    }


@pytest.fixture
def chain(service, nodes):
    """ilene -> dawn -> league -> tobin, with the middle edge private."""
    service.create_relationship("npc", nodes["ilene"].id, "faction", nodes["dawn"].id, "servant")
    service.create_relationship(
        "faction", nodes["dawn"].id, "faction", nodes["league"].id, "rival", is_public=False
    )
    service.create_relationship("faction", nodes["league"].id, "npc", nodes["tobin"].id, "patron")
    return nodes


class TestHelpers:

    @pytest.mark.parametrize("raw,expected", [
        (0, 1), (5, 5), (11, 10), (-3, 1), ("7", 7), (None, 5), ("high", 5),
        (float("inf"), 5), ("1e999", 5), (float("nan"), 5), (10 ** 400, 5),
    ])
    def test_clamp_strength(self, raw, expected):
        assert clamp_strength(raw) == expected

    @pytest.mark.parametrize("raw,expected", [(0, 1), (2, 2), (9, 3), (None, 2)])
    def test_clamp_depth(self, raw, expected):
        assert clamp_depth(raw) == expected

    def test_node_key(self):
        assert node_key(EntityKind.NPC, 4) == "npc:4"


class TestCreate:

    def test_create_clamps_strength(self, service, nodes):
        rel = service.create_relationship(
            "npc", nodes["ilene"].id, "npc", nodes["tobin"].id, "enemy", strength=42
        )
        assert rel.strength == 10
        assert rel.is_discovered is False

    def test_unknown_type_rejected(self, service, nodes):
        with pytest.raises(ValidationError):
            service.create_relationship("npc", nodes["ilene"].id, "npc", nodes["tobin"].id, "frenemy")

    def test_unknown_kind_rejected(self, service, nodes):
        with pytest.raises(ValidationError):
            service.create_relationship("dragon", 1, "npc", nodes["tobin"].id, "ally")

    def test_missing_endpoint(self, service, nodes):
        with pytest.raises(EntityNotFoundError):
            service.create_relationship("npc", nodes["ilene"].id, "npc", 9999, "ally")

    def test_discover_relationship(self, service, nodes):
        rel = service.create_relationship("npc", nodes["ilene"].id, "npc", nodes["tobin"].id, "family")
        service.discover_relationship(rel.id)
        assert rel.is_discovered is True
        assert rel.discovered_at is not None

    def test_relationships_for_node(self, service, chain):
        grouped = service.get_relationships_for("faction", chain["dawn"].id)
        assert len(grouped["incoming"]) == 1
        assert len(grouped["outgoing"]) == 1
        assert len(grouped["all"]) == 2


class TestGraph:

    def test_operator_graph_depth_two(self, service, chain):
        graph = service.get_relationship_graph("npc", chain["ilene"].id, depth=2)
        keys = {n["id"] for n in graph["nodes"]}
        assert keys == {
            node_key("npc", chain["ilene"].id),
            node_key("faction", chain["dawn"].id),
            node_key("faction", chain["league"].id),
        }
        assert len(graph["edges"]) == 2

    def test_depth_three_reaches_end_of_chain(self, service, chain):
        graph = service.get_relationship_graph("npc", chain["ilene"].id, depth=3)
        assert len(graph["nodes"]) == 4
        assert len(graph["edges"]) == 3

    def test_depth_is_clamped(self, service, chain):
        assert service.get_relationship_graph("npc", chain["ilene"].id, depth=10)["depth"] == 3
        graph = service.get_relationship_graph("npc", chain["ilene"].id, depth=0)
        assert graph["depth"] == 1
        assert len(graph["nodes"]) == 2

    @pytest.mark.parametrize("depth", [1, 2, 3])
    def test_player_graph_never_shows_private_undiscovered_edges(self, service, chain, depth):
        graph = service.get_relationship_graph("npc", chain["ilene"].id, depth=depth, player_mode=True)
        assert all(e["is_public"] or e["is_discovered"] for e in graph["edges"])
        # The private rival edge is never traversed, so the league is unreachable
        assert node_key("faction", chain["league"].id) not in {n["id"] for n in graph["nodes"]}

    def test_player_graph_shows_discovered_private_edge(self, service, chain, seeded_store):
        private = [r for r in service.get_all_relationships() if not r.is_public][0]
        service.discover_relationship(private.id)
        graph = service.get_relationship_graph("npc", chain["ilene"].id, depth=3, player_mode=True)
        assert len(graph["edges"]) == 3

    def test_player_graph_hides_undiscovered_names(self, service, chain, seeded_store):
        seeded_store.update_entity(chain["ilene"], is_discovered=True)
        graph = service.get_relationship_graph("npc", chain["ilene"].id, depth=1, player_mode=True)
        names = {n["id"]: n["name"] for n in graph["nodes"]}
        assert names[node_key("npc", chain["ilene"].id)] == "Sister Ilene"
        assert names[node_key("faction", chain["dawn"].id)] == HIDDEN_NAME

    def test_edge_shape(self, service, chain):
        graph = service.get_relationship_graph("npc", chain["ilene"].id, depth=1)
        edge = graph["edges"][0]
        source = node_key("npc", chain["ilene"].id)
        target = node_key("faction", chain["dawn"].id)
        assert edge["id"] == f"{source}->{target}"
        assert edge["type"] == RelationshipType.SERVANT

    def test_missing_center(self, service):
        with pytest.raises(EntityNotFoundError):
            service.get_relationship_graph("npc", 9999)


class TestBulkCreate:

    def test_resolves_names_and_dedupes(self, service):
        edges = [
            GeneratedEdge("npc", "Sister Ilene", "faction", "Order of the Dawn", "ally", strength=7),
            GeneratedEdge("npc", "sister ilene", "faction", "order of the dawn", "servant"),  # same pair
            GeneratedEdge("npc", "Sister Ilene", "npc", "Sister Ilene", "rival"),  # self-loop
            GeneratedEdge("npc", "Nobody", "faction", "Merchant League", "ally"),  # unresolved
            GeneratedEdge("deity", "Vael", "faction", "Dawn", "patron"),  # fragment match
            GeneratedEdge("npc", "Tobin", "faction", "Merchant League", "business"),  # unknown type
        ]
        assert service.bulk_create_from_generation(edges) == 3

        by_type = {r.relationship_type for r in service.get_all_relationships()}
        assert by_type == {RelationshipType.ALLY, RelationshipType.PATRON, RelationshipType.NEUTRAL}

    def test_existing_edges_not_duplicated(self, service):
        edges = [GeneratedEdge("npc", "Sister Ilene", "faction", "Order of the Dawn", "ally")]
        assert service.bulk_create_from_generation(edges) == 1
        assert service.bulk_create_from_generation(edges) == 0
        assert service.count() == 1

    def test_resolve_generated_uses_faction_membership(self, service):
        # Seeded NPCs belong to factions; that is all the implied structure
        assert service.resolve_generated() == 2
        assert {r.relationship_type for r in service.get_all_relationships()} == {RelationshipType.ALLY}
