"""Generation worker: poll the queue, claim a job, run it."""

import asyncio
import logging

from ..config import Config
from ..exceptions import PersistenceError
from .job_queue import GenerationQueue
from .orchestrator import WorldGenerationOrchestrator

logger = logging.getLogger(__name__)


class GenerationWorker:
    """Claims and runs jobs one at a time.

    Several workers (in one process or many) may poll the same database;
    the queue's conditional claim guarantees each job runs once.
    """

    def __init__(
        self,
        queue: GenerationQueue | None = None,
        orchestrator: WorldGenerationOrchestrator | None = None,
        poll_seconds: float | None = None,
    ):
        self.queue = queue or GenerationQueue()
        self.orchestrator = orchestrator or WorldGenerationOrchestrator(queue=self.queue)
        self.poll_seconds = poll_seconds if poll_seconds is not None else Config.WORKER_POLL_SECONDS

    async def run_once(self) -> bool:
        """Claim and run at most one job.  Returns True if a job was claimed."""
        job = self.queue.claim_next_job()
        if job is None:
            return False
        await self.orchestrator.run(job)
        return True

    async def drain(self) -> int:
        """Run jobs until none are pending; returns how many ran."""
        ran = 0
        while await self.run_once():
            ran += 1
        return ran

    async def run_forever(self, stop_event: asyncio.Event | None = None):
        """Poll until ``stop_event`` is set (or forever)."""
        stop_event = stop_event or asyncio.Event()
        logger.info(f"Generation worker started (poll every {self.poll_seconds}s)")
        while not stop_event.is_set():
            try:
                await self.drain()
            except PersistenceError as e:
                # Job stays 'generating' until stale reclaim; keep polling
                logger.error(f"Worker hit a database error: {e}")
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.poll_seconds)
            except TimeoutError:
                pass
        logger.info("Generation worker stopped")
