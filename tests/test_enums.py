"""Tests for the shared vocabularies."""

from worldforge.enums import (
    DISCOVERY_RANK,
    EXPLORATION_VOCABULARY,
    KIND_TO_CATEGORY,
    PHASE_ORDER,
    TIER_RANK,
    DiscoveryLevel,
    EntityKind,
    GenerationPhase,
    LoreCategory,
)


class TestPhaseOrder:

    def test_pipeline_order(self):
        assert [str(p) for p in PHASE_ORDER] == [
            "tensions", "cosmology", "factions", "npcs", "conflicts",
            "locations", "secrets", "relationships", "coherence",
        ]

    def test_coherence_runs_last(self):
        assert PHASE_ORDER[-1] == GenerationPhase.COHERENCE


class TestVocabularies:

    def test_every_non_secret_category_has_four_words(self):
        expected = set(LoreCategory) - {LoreCategory.SECRETS}
        assert set(EXPLORATION_VOCABULARY) == expected
        assert all(len(words) == len(DiscoveryLevel) for words in EXPLORATION_VOCABULARY.values())
        assert all(words[0] == "unknown" for words in EXPLORATION_VOCABULARY.values())

    def test_ranks_are_ordered(self):
        assert sorted(DISCOVERY_RANK, key=DISCOVERY_RANK.get) == list(DiscoveryLevel)
        assert TIER_RANK["major"] < TIER_RANK["supporting"] < TIER_RANK["minor"]

    def test_every_node_kind_has_a_lore_category(self):
        assert set(KIND_TO_CATEGORY) == set(EntityKind)

    def test_values_are_plain_strings(self):
        assert GenerationPhase.NPCS == "npcs"
        assert f"{LoreCategory.PEOPLE}" == "people"
