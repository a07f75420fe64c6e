"""
Generation job queue.

The job lives on the WorldSeed row (one per campaign), so the queue is
just a set of guarded status transitions on that table:

    pending -> generating -> completed | failed
    failed -> pending                (retry via enqueue)
    generating -> pending            (stale reclaim via enqueue)
    completed -> pending             (explicit reset)

Claiming is a conditional UPDATE ... WHERE status = 'pending'; the row
count tells each caller whether it won, so any number of workers in any
number of processes can poll safely.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..config import Config
from ..db.models import Campaign, WorldSeed, utcnow
from ..db.session import get_session
from ..db.world_store import WorldStore
from ..enums import GenerationStatus
from ..exceptions import EntityNotFoundError, ValidationError

logger = logging.getLogger(__name__)

STALE_JOB_ERROR = "Previous generation attempt timed out"


@dataclass
class GenerationJob:
    """Snapshot of the job fields of a WorldSeed."""
    world_seed_id: int
    campaign_id: int
    status: GenerationStatus
    current_phase: str | None = None
    error: str | None = None
    created_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @classmethod
    def from_seed(cls, seed: WorldSeed) -> "GenerationJob":
        return cls(
            world_seed_id=seed.id,
            campaign_id=seed.campaign_id,
            status=GenerationStatus(seed.generation_status),
            current_phase=seed.current_phase,
            error=seed.generation_error,
            created_at=seed.created_at,
            started_at=seed.started_at,
            completed_at=seed.completed_at,
        )


@dataclass
class EnqueueResult:
    job: GenerationJob
    already_exists: bool = False


class GenerationQueue:
    """Job manager for world generation.  Every call uses its own session."""

    def __init__(
        self,
        stale_minutes: int | None = None,
        min_description_length: int | None = None,
        claim_batch_size: int | None = None,
    ):
        if stale_minutes is None:
            stale_minutes = Config.STALE_JOB_MINUTES
        if min_description_length is None:
            min_description_length = Config.MIN_DESCRIPTION_LENGTH
        if claim_batch_size is None:
            claim_batch_size = Config.CLAIM_BATCH_SIZE
        self.stale_after = timedelta(minutes=stale_minutes)
        self.min_description_length = min_description_length
        self.claim_batch_size = claim_batch_size

    def is_stale(self, seed: WorldSeed, now: datetime | None = None) -> bool:
        """A generating job whose start is older than the stale threshold."""
        if seed.generation_status != GenerationStatus.GENERATING:
            return False
        if seed.started_at is None:
            return True
        return (now or utcnow()) - seed.started_at > self.stale_after

    # ==== Enqueue ====

    def enqueue(self, campaign_id: int) -> EnqueueResult:
        """Create or revive the generation job for a campaign.

        Raises:
            ValidationError: unknown campaign, or description too short.
        """
        with get_session() as db:
            campaign = db.query(Campaign).filter(Campaign.id == campaign_id).first()
            if campaign is None:
                raise ValidationError(f"Campaign {campaign_id} not found")
            description = (campaign.description or "").strip()
            if len(description) < self.min_description_length:
                raise ValidationError(
                    f"Campaign description must be at least {self.min_description_length} "
                    f"characters (got {len(description)})"
                )

            seed = db.query(WorldSeed).filter(WorldSeed.campaign_id == campaign_id).first()
            if seed is None:
                seed = WorldSeed(campaign_id=campaign_id, generation_status=GenerationStatus.PENDING)
                db.add(seed)
                try:
                    db.commit()
                except IntegrityError:
                    # Lost a race with a concurrent enqueue for the same campaign
                    db.rollback()
                    seed = db.query(WorldSeed).filter(WorldSeed.campaign_id == campaign_id).one()
                    return EnqueueResult(GenerationJob.from_seed(seed), already_exists=True)
                logger.info(f"Enqueued world generation for campaign {campaign_id}")
                return EnqueueResult(GenerationJob.from_seed(seed))

            status = seed.generation_status
            if status == GenerationStatus.COMPLETED:
                return EnqueueResult(GenerationJob.from_seed(seed), already_exists=True)

            if status == GenerationStatus.GENERATING:
                if not self.is_stale(seed):
                    return EnqueueResult(GenerationJob.from_seed(seed), already_exists=True)
                logger.warning(
                    f"Reclaiming stale generation for campaign {campaign_id} "
                    f"(started {seed.started_at}, phase {seed.current_phase})"
                )
                seed.generation_status = GenerationStatus.PENDING
                seed.started_at = None
                seed.generation_error = STALE_JOB_ERROR
            elif status == GenerationStatus.FAILED:
                logger.info(f"Retrying failed generation for campaign {campaign_id}")
                seed.generation_status = GenerationStatus.PENDING
                seed.generation_error = None
                seed.started_at = None

            db.flush()
            return EnqueueResult(GenerationJob.from_seed(seed))

    # ==== Claim ====

    def _scan_pending(self) -> list[int]:
        """Oldest pending campaign ids, up to the claim batch size."""
        with get_session() as db:
            rows = (
                db.query(WorldSeed.campaign_id)
                .filter(WorldSeed.generation_status == GenerationStatus.PENDING)
                .order_by(WorldSeed.created_at, WorldSeed.id)
                .limit(self.claim_batch_size)
                .all()
            )
            return [campaign_id for (campaign_id,) in rows]

    def _try_claim(self, campaign_id: int) -> GenerationJob | None:
        """Atomically flip one job from pending to generating."""
        with get_session() as db:
            result = db.execute(
                update(WorldSeed)
                .where(
                    WorldSeed.campaign_id == campaign_id,
                    WorldSeed.generation_status == GenerationStatus.PENDING,
                )
                .values(generation_status=GenerationStatus.GENERATING, started_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                return None
            db.commit()
            seed = db.query(WorldSeed).filter(WorldSeed.campaign_id == campaign_id).one()
            return GenerationJob.from_seed(seed)

    def claim_next_job(self) -> GenerationJob | None:
        """Claim the oldest pending job nobody else has claimed."""
        for campaign_id in self._scan_pending():
            job = self._try_claim(campaign_id)
            if job is not None:
                logger.info(f"Claimed world generation for campaign {campaign_id}")
                return job
        return None

    # ==== Transitions ====

    def _update(self, campaign_id: int, **fields) -> None:
        with get_session() as db:
            seed = db.query(WorldSeed).filter(WorldSeed.campaign_id == campaign_id).first()
            if seed is None:
                raise EntityNotFoundError(f"No world seed for campaign {campaign_id}")
            for key, value in fields.items():
                setattr(seed, key, value)

    def update_phase(self, campaign_id: int, phase: str) -> None:
        self._update(campaign_id, current_phase=str(phase))

    def mark_completed(self, campaign_id: int) -> None:
        self._update(
            campaign_id,
            generation_status=GenerationStatus.COMPLETED,
            generation_error=None,
            current_phase=None,
            completed_at=utcnow(),
        )
        logger.info(f"World generation completed for campaign {campaign_id}")

    def mark_failed(self, campaign_id: int, error: str) -> None:
        self._update(campaign_id, generation_status=GenerationStatus.FAILED, generation_error=error)
        logger.error(f"World generation failed for campaign {campaign_id}: {error}")

    def get_status(self, campaign_id: int) -> GenerationJob | None:
        with get_session() as db:
            seed = db.query(WorldSeed).filter(WorldSeed.campaign_id == campaign_id).first()
            return GenerationJob.from_seed(seed) if seed else None

    def reset(self, campaign_id: int) -> GenerationJob:
        """Purge generated content and send the job back to pending.

        Player-overridden entities survive.  A job that is actively
        generating (not stale) cannot be reset.
        """
        with get_session() as db:
            seed = db.query(WorldSeed).filter(WorldSeed.campaign_id == campaign_id).first()
            if seed is None:
                raise EntityNotFoundError(f"No world seed for campaign {campaign_id}")
            if seed.generation_status == GenerationStatus.GENERATING and not self.is_stale(seed):
                raise ValidationError("World generation is in progress; wait for it to finish")

        store = WorldStore(campaign_id)
        try:
            store.purge_generated_content()
        finally:
            store.close()

        self._update(
            campaign_id,
            generation_status=GenerationStatus.PENDING,
            current_phase=None,
            generation_error=None,
            started_at=None,
            completed_at=None,
        )
        logger.info(f"World generation reset for campaign {campaign_id}")
        return self.get_status(campaign_id)
