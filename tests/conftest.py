"""
Shared test fixtures for the WorldForge test suite.

Provides:
- MockLLMProvider: deterministic LLM stub (no API keys needed)
- Database fixtures: fresh in-memory SQLite per test
- A campaign + queued world, and canned JSON for every generation phase
- Markers: slow (>5s)
"""

import json
import os
from collections import deque
from typing import Any

import pytest

# Set test environment BEFORE any worldforge imports
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ANTHROPIC_API_KEY", "test-key")
os.environ["AUTOSTART_GENERATION"] = "false"

from worldforge.core.job_queue import GenerationQueue
from worldforge.db.models import Conflict, Deity, Faction, Location, Npc, Secret
from worldforge.db.session import init_db, reset_engine
from worldforge.db.world_store import WorldStore
from worldforge.enums import GenerationPhase
from worldforge.llm import ContentGenerator
from worldforge.llm.provider import LLMProvider, LLMResponse

CAMPAIGN_DESCRIPTION = (
    "A crumbling theocracy clings to power while merchant princes buy up "
    "the old noble houses and a heretic cult whispers of a dead god's return."
)


# ---------------------------------------------------------------------------
# MockLLMProvider: deterministic stub
# ---------------------------------------------------------------------------

class MockLLMProvider(LLMProvider):
    """LLM provider that returns canned responses from a queue.

    Usage:
        provider = MockLLMProvider()
        provider.queue_response('{"factions": []}')
        resp = await provider.complete(messages=[...])
    """

    def __init__(self):
        super().__init__(api_key="mock-key", default_model="mock-model")
        self._response_queue: deque[LLMResponse | Exception] = deque()
        self._call_history: list[dict[str, Any]] = []

    # --- Queue helpers ---

    def queue_response(self, content: str = "", **kwargs):
        """Queue a text response."""
        self._response_queue.append(LLMResponse(content=content, model="mock-model", **kwargs))

    def queue_json(self, payload: dict[str, Any]):
        self.queue_response(json.dumps(payload))

    def queue_error(self, error: Exception):
        """Queue an exception to be raised by the next call."""
        self._response_queue.append(error)

    @property
    def call_history(self) -> list[dict[str, Any]]:
        return self._call_history

    # --- LLMProvider interface ---

    @property
    def name(self) -> str:
        return "mock"

    def get_default_model(self) -> str:
        return "mock-model"

    def get_creative_model(self) -> str:
        return "mock-creative"

    async def complete(
        self,
        messages,
        system=None,
        model=None,
        max_tokens=1024,
        temperature=0.7,
    ) -> LLMResponse:
        self._call_history.append({
            "method": "complete",
            "messages": messages,
            "system": system,
            "model": model,
        })
        if self._response_queue:
            item = self._response_queue.popleft()
            if isinstance(item, Exception):
                raise item
            return item
        return LLMResponse(content="mock response", model="mock-model")

    def _init_client(self):
        pass  # No real client needed


# ---------------------------------------------------------------------------
# Canned phase output
# ---------------------------------------------------------------------------

def phase_payloads() -> dict[str, dict[str, Any]]:
    """One valid model response per generating phase, for a small world."""
    return {
        GenerationPhase.TENSIONS: {
            "world_name": "The Sundered Reach",
            "tone": "dark",
            "scale": "regional",
            "themes": ["faith", "ambition"],
            "world_sketch": "A river valley ruled by a failing church.",
            "core_tensions": [
                {
                    "name": "Faith versus Reason",
                    "description": "The church's miracles have stopped.",
                    "sides": [
                        {"name": "The Devout", "stance": "The god is testing us"},
                        {"name": "The Rationalists", "stance": "There was never a god"},
                    ],
                    "manifestations": ["Burned libraries"],
                },
                {
                    "name": "Old Blood versus New Coin",
                    "description": "Merchants buy noble titles.",
                    "sides": [
                        {"name": "The Houses", "stance": "Birth confers right"},
                        {"name": "The League", "stance": "Gold confers right"},
                    ],
                },
            ],
        },
        GenerationPhase.COSMOLOGY: {
            "deities": [
                {"name": "Vael", "tier": "major", "domain": "light", "disposition": "benevolent"},
            ],
            "magic_system": {"name": "Threadcraft", "rules": "Every spell costs a memory"},
            "planes": [{"name": "The Veil", "description": "Where memories go"}],
            "history": [{"era": "Age of Ash", "summary": "The god fell silent"}],
        },
        GenerationPhase.FACTIONS: {
            "factions": [
                {
                    "name": "Order of the Dawn",
                    "tier": "major",
                    "public_image": "Keepers of the faith",
                    "secret_nature": "Fabricating miracles",
                    "influence": 12,
                    "tension_stances": [{"tension": "Faith versus Reason", "stance": "Faith"}],
                    "allies": ["Merchant League"],
                    "enemies": ["Cult of Ash"],
                    "patron_deity": "Vael",
                },
                {
                    "name": "Merchant League",
                    "tier": "supporting",
                    "tension_stances": [{"tension": "old blood", "stance": "New coin"}],
                },
                {
                    "name": "Cult of Ash",
                    "tier": "minor",
                    "tension_stances": [{"tension": "Faith versus Reason", "stance": "The god is dead"}],
                },
            ],
        },
        GenerationPhase.NPCS: {
            "npcs": [
                {
                    "name": "Sister Ilene",
                    "tier": "major",
                    "faction": "Order of the Dawn",
                    "occupation": "Abbess",
                    "private_goal": "Keep the miracles going",
                    "hidden_identity": "The last true prophet",
                    "tension_roles": [{"tension": "Faith versus Reason", "role": "zealot"}],
                    "relationships": [
                        {"target": "Brother Cade", "type": "rival", "strength": 15, "public": False},
                    ],
                },
                {"name": "Brother Cade", "faction": "Order of the Dawn"},
                {"name": "Tobin Vell", "tier": "minor", "faction": "Merchant League"},
            ],
        },
        GenerationPhase.CONFLICTS: {
            "conflicts": [
                {
                    "name": "The Schism",
                    "tier": "major",
                    "root_tension": "Faith versus Reason",
                    "participants": [
                        {"type": "faction", "name": "Order of the Dawn", "role": "defender"},
                        {"type": "faction", "name": "Cult of Ash", "role": "aggressor"},
                    ],
                    "true_nature": "Both sides serve the same patron",
                },
            ],
        },
        GenerationPhase.LOCATIONS: {
            "locations": [
                {"name": "Dawnspire", "tier": "major", "controlling_faction": "Order of the Dawn"},
                {"name": "Coin Harbor", "controlling_faction": "Merchant League"},
            ],
        },
        GenerationPhase.SECRETS: {
            "secrets": [
                {"name": "The False Saint", "content": "Ilene's miracles are staged", "known_by": ["Brother Cade"]},
            ],
        },
        GenerationPhase.COHERENCE: {
            "score": 88,
            "issues": [
                {
                    "type": "missing_link",
                    "severity": "minor",
                    "description": "The Veil is never visited",
                    "entities": ["The Veil"],
                },
            ],
        },
    }


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def fresh_db():
    """Reset the in-memory database before each test."""
    # Dispose the engine so each test gets a completely fresh in-memory SQLite database
    reset_engine()
    init_db()
    yield
    reset_engine()


@pytest.fixture
def mock_provider():
    """Fresh MockLLMProvider instance."""
    return MockLLMProvider()


@pytest.fixture
def payloads():
    return phase_payloads()


@pytest.fixture
def queue_phases(mock_provider, payloads):
    """Queue canned responses for ``phases`` (default: every generating phase)."""
    def _queue(phases=None):
        for phase in phases or payloads:
            mock_provider.queue_json(payloads[phase])
    return _queue


@pytest.fixture
def generator(mock_provider):
    """ContentGenerator wired to the mock provider."""
    return ContentGenerator(provider=mock_provider, model="mock-creative")


@pytest.fixture
def campaign_id():
    """A campaign with a valid description and one character backstory."""
    return WorldStore.create_campaign(
        "Test Campaign",
        CAMPAIGN_DESCRIPTION,
        characters=[
            {"name": "Mira", "backstory": "Raised in the Dawnspire orphanage, she saw a miracle faked."},
            {"name": "Osk", "backstory": ""},
        ],
    )


@pytest.fixture
def queue():
    return GenerationQueue()


@pytest.fixture
def store(campaign_id, queue):
    """WorldStore for a campaign whose world seed exists (job pending)."""
    queue.enqueue(campaign_id)
    store = WorldStore(campaign_id)
    yield store
    store.close()


@pytest.fixture
def seeded_store(store):
    """Store with tensions set and a hand-built world of every entity kind.

    Nothing is discovered.
    """
    store.update_seed(
        name="The Sundered Reach",
        tone="dark",
        scale="regional",
        core_tensions=phase_payloads()[GenerationPhase.TENSIONS]["core_tensions"],
        cosmology={"magic_system": {}, "planes": []},
    )
    with store.deferred_commit():
        store.add_entity(Deity, name="Vael", tier="major", domain="light")
        dawn = store.add_entity(
            Faction,
            name="Order of the Dawn",
            tier="major",
            public_image="Keepers of the faith",
            secret_nature="Fabricating miracles",
            tension_stances=[{"tension": "Faith versus Reason", "stance": "Faith"}],
        )
        league = store.add_entity(
            Faction,
            name="Merchant League",
            tension_stances=[{"tension": "Old Blood versus New Coin", "stance": "Coin"}],
        )
        store.add_entity(
            Npc,
            name="Sister Ilene",
            tier="major",
            faction_id=dawn.id,
            occupation="Abbess",
            private_goal="Keep the miracles going",
            secret_goal="Become the god's voice",
            hidden_identity="The last true prophet",
        )
        store.add_entity(Npc, name="Tobin Vell", tier="minor", faction_id=league.id)
        store.add_entity(Location, name="Dawnspire", tier="major", controlling_faction_id=dawn.id,
                         description="A white tower", hidden_secrets=["A sealed crypt"])
        store.add_entity(
            Conflict,
            name="The Schism",
            root_tension="Faith versus Reason",
            participants=[{"type": "faction", "name": "Order of the Dawn", "role": "defender"},
                          {"type": "faction", "name": "Merchant League", "role": "financier"}],
            true_nature="Both sides serve the same patron",
        )
        store.add_entity(Secret, name="The False Saint", content="Ilene's miracles are staged")
    return store
