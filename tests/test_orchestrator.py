"""Tests for WorldGenerationOrchestrator and GenerationWorker.

Validates:
1. A full run drives every phase in order and completes the job
2. Phases whose output exists are skipped on re-run
3. A phase failure fails the whole job with the phase's error
4. Every phase attempt lands in the generation log
"""

import json

import pytest
from sqlalchemy.exc import OperationalError

from worldforge.core.orchestrator import WorldGenerationOrchestrator, is_phase_complete
from worldforge.core.worker import GenerationWorker
from worldforge.db.models import Faction, Npc, Relationship
from worldforge.db.world_store import WorldStore
from worldforge.enums import PHASE_ORDER, GenerationPhase, GenerationStatus, LogStatus
from worldforge.exceptions import PersistenceError


@pytest.fixture
def orchestrator(queue, generator):
    return WorldGenerationOrchestrator(queue=queue, generator=generator)


async def _run_claimed(queue, orchestrator):
    job = queue.claim_next_job()
    assert job is not None
    return await orchestrator.run(job)


class TestFullRun:

    async def test_generates_complete_world(self, queue, orchestrator, mock_provider, queue_phases, campaign_id):
        queue.enqueue(campaign_id)
        queue_phases()

        assert await _run_claimed(queue, orchestrator) is True

        job = queue.get_status(campaign_id)
        assert job.status == GenerationStatus.COMPLETED
        assert job.error is None

        store = WorldStore(campaign_id)
        try:
            assert store.get_counts() == {
                "factions": 3,
                "people": 3,
                "geography": 2,
                "conflicts": 1,
                "secrets": 1,
                "deities": 1,
                "relationships": 7,
            }
            seed = store.require_world_seed()
            assert seed.name == "The Sundered Reach"
            assert seed.cosmology["magic_system"]["name"] == "Threadcraft"
            assert seed.coherence_score == 86
            assert seed.coherence_report["advisory_used"] is True
        finally:
            store.close()

    async def test_one_generator_call_per_phase(self, queue, orchestrator, mock_provider, queue_phases, campaign_id):
        queue.enqueue(campaign_id)
        queue_phases()
        await _run_claimed(queue, orchestrator)

        # Every phase but relationships asks the model once
        assert len(mock_provider.call_history) == len(PHASE_ORDER) - 1

    async def test_later_phases_see_earlier_output(self, queue, orchestrator, mock_provider, queue_phases, campaign_id):
        queue.enqueue(campaign_id)
        queue_phases()
        await _run_claimed(queue, orchestrator)

        prompts = [call["messages"][0]["content"] for call in mock_provider.call_history]
        assert "Mira" in prompts[0]  # backstories feed the tensions phase
        assert "Faith versus Reason" in prompts[2]  # factions see the tensions
        assert "Order of the Dawn" in prompts[3]  # NPCs see the factions

    async def test_soft_references_resolved(self, queue, orchestrator, mock_provider, queue_phases, campaign_id):
        queue.enqueue(campaign_id)
        queue_phases()
        await _run_claimed(queue, orchestrator)

        store = WorldStore(campaign_id)
        try:
            league = store.find_by_name(Faction, "Merchant League")
            assert league.tension_stances == [
                {"tension": "Old Blood versus New Coin", "stance": "New coin"}
            ]
            dawn = store.find_by_name(Faction, "Order of the Dawn")
            assert dawn.influence == 10
            ilene = store.find_by_name(Npc, "Sister Ilene")
            assert ilene.faction_id == dawn.id

            rival = (
                store._get_db().query(Relationship)
                .filter(Relationship.relationship_type == "rival")
                .one()
            )
            assert rival.strength == 10
            assert rival.is_public is False
        finally:
            store.close()

    async def test_generation_log_covers_every_phase(self, queue, orchestrator, mock_provider, queue_phases, campaign_id):
        queue.enqueue(campaign_id)
        queue_phases()
        await _run_claimed(queue, orchestrator)

        store = WorldStore(campaign_id)
        try:
            logs = store.get_generation_logs()
            assert [entry.phase for entry in logs] == [str(p) for p in PHASE_ORDER]
            assert all(entry.status == LogStatus.SUCCESS for entry in logs)

            factions_log = logs[PHASE_ORDER.index(GenerationPhase.FACTIONS)]
            assert "Order of the Dawn" in factions_log.response
            assert factions_log.parsed_data["factions"][0]["name"] == "Order of the Dawn"
            assert factions_log.duration_ms is not None

            relationships_log = logs[PHASE_ORDER.index(GenerationPhase.RELATIONSHIPS)]
            assert relationships_log.parsed_data == {"created": 7}
        finally:
            store.close()


class TestPhaseSkipping:

    async def test_rerun_skips_completed_phases(self, queue, orchestrator, mock_provider, queue_phases, campaign_id):
        queue.enqueue(campaign_id)
        queue_phases()
        await _run_claimed(queue, orchestrator)
        calls_after_first_run = len(mock_provider.call_history)

        # Send the finished job back to pending and run it again
        queue.mark_failed(campaign_id, "forced rerun")
        queue.enqueue(campaign_id)
        queue_phases([GenerationPhase.COHERENCE])
        assert await _run_claimed(queue, orchestrator) is True

        # Only the coherence audit calls the model again
        assert len(mock_provider.call_history) == calls_after_first_run + 1

        store = WorldStore(campaign_id)
        try:
            assert store.get_counts()["factions"] == 3
            assert store.get_counts()["relationships"] == 7
            rerun = store.get_generation_logs()[len(PHASE_ORDER):]
            statuses = {entry.phase: entry.status for entry in rerun}
            assert statuses[GenerationPhase.FACTIONS] == LogStatus.SKIPPED
            assert statuses[GenerationPhase.RELATIONSHIPS] == LogStatus.SKIPPED
            assert statuses[GenerationPhase.COHERENCE] == LogStatus.SUCCESS
        finally:
            store.close()

    async def test_existing_faction_skips_faction_phase(self, seeded_store, queue, orchestrator, mock_provider, queue_phases):
        assert is_phase_complete(seeded_store, GenerationPhase.FACTIONS)
        before = seeded_store.get_counts()["factions"]

        # Seed already has tensions, cosmology and one of everything
        queue_phases([GenerationPhase.COHERENCE])
        assert await _run_claimed(queue, orchestrator) is True

        seeded_store._get_db().expire_all()
        assert seeded_store.get_counts()["factions"] == before
        assert len(mock_provider.call_history) == 1

    def test_overridden_entities_do_not_complete_a_phase(self, store):
        store.update_seed(core_tensions=[{"name": "X", "sides": []}])
        store.add_entity(Faction, name="Player Guild", player_override=True)
        assert not is_phase_complete(store, GenerationPhase.FACTIONS)

    def test_coherence_never_complete(self, seeded_store):
        assert not is_phase_complete(seeded_store, GenerationPhase.COHERENCE)


class TestFailure:

    async def test_missing_array_fails_job(self, queue, orchestrator, mock_provider, queue_phases, campaign_id):
        queue.enqueue(campaign_id)
        queue_phases([GenerationPhase.TENSIONS])
        mock_provider.queue_response('{"gods": []}')

        assert await _run_claimed(queue, orchestrator) is False

        job = queue.get_status(campaign_id)
        assert job.status == GenerationStatus.FAILED
        assert job.error == "Failed to parse deities from AI response"
        assert job.current_phase == GenerationPhase.COSMOLOGY

        store = WorldStore(campaign_id)
        try:
            failed = store.get_generation_logs(phase=GenerationPhase.COSMOLOGY)
            assert len(failed) == 1
            assert failed[0].status == LogStatus.FAILED
            assert failed[0].response == '{"gods": []}'
            assert failed[0].error == job.error
        finally:
            store.close()

    async def test_unparsable_response_fails_job(self, queue, orchestrator, mock_provider, campaign_id):
        queue.enqueue(campaign_id)
        mock_provider.queue_response("I cannot help with that.")

        assert await _run_claimed(queue, orchestrator) is False
        job = queue.get_status(campaign_id)
        assert job.status == GenerationStatus.FAILED
        assert "No JSON object found" in job.error

    async def test_provider_error_fails_job(self, queue, orchestrator, mock_provider, campaign_id):
        queue.enqueue(campaign_id)
        mock_provider.queue_error(RuntimeError("rate limited"))

        assert await _run_claimed(queue, orchestrator) is False
        assert "rate limited" in queue.get_status(campaign_id).error

    async def test_retry_resumes_after_failed_phase(self, queue, orchestrator, mock_provider, queue_phases, payloads, campaign_id):
        queue.enqueue(campaign_id)
        queue_phases([GenerationPhase.TENSIONS])
        mock_provider.queue_response(json.dumps({"deities": "none"}))
        assert await _run_claimed(queue, orchestrator) is False

        queue.enqueue(campaign_id)
        queue_phases([p for p in payloads if p != GenerationPhase.TENSIONS])
        assert await _run_claimed(queue, orchestrator) is True
        assert queue.get_status(campaign_id).status == GenerationStatus.COMPLETED

    async def test_database_error_propagates(self, queue, orchestrator, campaign_id, monkeypatch):
        queue.enqueue(campaign_id)
        job = queue.claim_next_job()

        def broken(*args, **kwargs):
            raise OperationalError("SELECT 1", {}, Exception("disk I/O error"))

        monkeypatch.setattr(WorldStore, "record_generation_log", broken)
        monkeypatch.setattr("worldforge.core.orchestrator.is_phase_complete", lambda store, phase: True)

        with pytest.raises(PersistenceError):
            await orchestrator.run(job)
        # Left for stale reclaim rather than marked failed
        assert queue.get_status(campaign_id).status == GenerationStatus.GENERATING


class TestWorker:

    async def test_run_once_processes_one_job(self, queue, orchestrator, mock_provider, queue_phases, campaign_id):
        queue.enqueue(campaign_id)
        queue_phases()
        worker = GenerationWorker(queue=queue, orchestrator=orchestrator, poll_seconds=0.01)

        assert await worker.run_once() is True
        assert await worker.run_once() is False
        assert queue.get_status(campaign_id).status == GenerationStatus.COMPLETED

    async def test_drain_counts_jobs(self, queue, orchestrator, mock_provider, campaign_id):
        other = WorldStore.create_campaign("Other", "o" * 60)
        queue.enqueue(campaign_id)
        queue.enqueue(other)
        mock_provider.queue_response("not json")
        mock_provider.queue_response("still not json")
        worker = GenerationWorker(queue=queue, orchestrator=orchestrator)

        assert await worker.drain() == 2
        assert queue.get_status(other).status == GenerationStatus.FAILED
