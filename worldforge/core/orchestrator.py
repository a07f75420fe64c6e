"""
World generation orchestrator.

Runs one claimed job through every phase in order.  Each phase first
checks whether its output already exists and skips if so, which makes
a re-run after a crash or a failure resume where the last one stopped.
Any phase error fails the whole job; there is no per-phase retry.
"""

import logging
import time

from sqlalchemy.exc import SQLAlchemyError

from ..agents.base import BaseAgent
from ..agents.coherence import CoherenceChecker
from ..agents.generators import (
    ConflictGenerator,
    CosmologyGenerator,
    FactionGenerator,
    LocationGenerator,
    NpcGenerator,
    SecretGenerator,
)
from ..agents.tension_extractor import TensionExtractor
from ..db.models import Conflict, Faction, Location, Npc, Secret
from ..db.world_store import WorldStore
from ..enums import PHASE_ORDER, GenerationPhase, LogStatus
from ..exceptions import GenerationError, PersistenceError
from ..llm import ContentGenerator
from .job_queue import GenerationJob, GenerationQueue
from .relationships import RelationshipService

logger = logging.getLogger(__name__)

ENTITY_PHASE_MODELS = {
    GenerationPhase.FACTIONS: Faction,
    GenerationPhase.NPCS: Npc,
    GenerationPhase.CONFLICTS: Conflict,
    GenerationPhase.LOCATIONS: Location,
    GenerationPhase.SECRETS: Secret,
}


def is_phase_complete(store: WorldStore, phase: GenerationPhase) -> bool:
    """Whether a phase's output is already present.

    Entity phases count as complete once any non-overridden entity of
    their type exists, even if the earlier run stopped part-way.
    The coherence audit always re-runs.
    """
    seed = store.require_world_seed()
    if phase == GenerationPhase.TENSIONS:
        return bool(seed.core_tensions)
    if phase == GenerationPhase.COSMOLOGY:
        return seed.cosmology is not None
    if phase in ENTITY_PHASE_MODELS:
        return store.has_generated(ENTITY_PHASE_MODELS[phase])
    if phase == GenerationPhase.RELATIONSHIPS:
        return RelationshipService(store).count() > 0
    return False


class WorldGenerationOrchestrator:
    """Drives claimed jobs through the phase sequence."""

    def __init__(
        self,
        queue: GenerationQueue | None = None,
        generator: ContentGenerator | None = None,
    ):
        self.queue = queue or GenerationQueue()
        self.generator = generator or ContentGenerator()
        self.agents: dict[GenerationPhase, BaseAgent] = {
            GenerationPhase.TENSIONS: TensionExtractor(self.generator),
            GenerationPhase.COSMOLOGY: CosmologyGenerator(self.generator),
            GenerationPhase.FACTIONS: FactionGenerator(self.generator),
            GenerationPhase.NPCS: NpcGenerator(self.generator),
            GenerationPhase.CONFLICTS: ConflictGenerator(self.generator),
            GenerationPhase.LOCATIONS: LocationGenerator(self.generator),
            GenerationPhase.SECRETS: SecretGenerator(self.generator),
            GenerationPhase.COHERENCE: CoherenceChecker(self.generator),
        }

    async def run(self, job: GenerationJob) -> bool:
        """Run every phase for a claimed job.

        Returns True on completion, False when the job was marked failed.

        Raises:
            PersistenceError: the database failed; the job is left in
                'generating' and will be reclaimed once stale.
        """
        campaign_id = job.campaign_id
        store = WorldStore(campaign_id)
        logger.info(f"Generating world for campaign {campaign_id}")
        try:
            for phase in PHASE_ORDER:
                await self.execute_phase(store, phase)
            self.queue.mark_completed(campaign_id)
            return True
        except SQLAlchemyError as e:
            store.rollback()
            logger.error(f"Database error during generation for campaign {campaign_id}: {e}")
            raise PersistenceError(f"Database error during world generation: {e}") from e
        except PersistenceError:
            store.rollback()
            raise
        except Exception as e:
            store.rollback()
            if not isinstance(e, GenerationError):
                logger.exception(f"Unexpected error generating world for campaign {campaign_id}")
            self.queue.mark_failed(campaign_id, str(e) or type(e).__name__)
            return False
        finally:
            store.close()

    async def execute_phase(self, store: WorldStore, phase: GenerationPhase) -> None:
        """Run one phase unless its output already exists; log the attempt."""
        self.queue.update_phase(store.campaign_id, phase)

        if is_phase_complete(store, phase):
            logger.info(f"[{phase}] already complete, skipping")
            store.record_generation_log(phase, LogStatus.SKIPPED)
            return

        logger.info(f"[{phase}] starting")
        start = time.monotonic()
        agent = self.agents.get(phase)
        if agent is not None:
            agent.reset_exchange()
        try:
            if agent is None:
                created = RelationshipService(store).resolve_generated()
            else:
                created = await agent.run(store)
        except SQLAlchemyError:
            raise
        except Exception as e:
            store.rollback()
            store.record_generation_log(
                phase,
                LogStatus.FAILED,
                prompt=agent.last_prompt if agent else None,
                response=agent.last_response if agent else getattr(e, "raw", None),
                parsed_data=agent.last_parsed if agent else None,
                error=str(e),
                duration_ms=int((time.monotonic() - start) * 1000),
            )
            raise

        duration_ms = int((time.monotonic() - start) * 1000)
        store.record_generation_log(
            phase,
            LogStatus.SUCCESS,
            prompt=agent.last_prompt if agent else None,
            response=agent.last_response if agent else None,
            parsed_data=agent.last_parsed if agent else {"created": created},
            duration_ms=duration_ms,
        )
        logger.info(f"[{phase}] done: {created} created in {duration_ms}ms")
