"""Core mixin: sessions, campaign and seed access, logs, counts, reset.

Split from world_store.py for maintainability.
"""

import logging
from contextlib import contextmanager
from typing import Any

from sqlalchemy.orm import Session as SQLAlchemySession

from ..exceptions import EntityNotFoundError
from .models import (
    Campaign,
    Character,
    Conflict,
    Deity,
    Faction,
    GenerationLog,
    Location,
    Npc,
    Relationship,
    Secret,
    WorldSeed,
)
from .session import create_session

logger = logging.getLogger(__name__)


class CoreMixin:
    """Infrastructure, world seed access, generation logs, reset."""

    @staticmethod
    def create_campaign(
        name: str,
        description: str,
        characters: list[dict[str, Any]] | None = None,
    ) -> int:
        """Create a campaign (and optional characters), returning its id.

        Campaign CRUD belongs to the host application; this exists for the
        CLI and for tests.
        """
        db = create_session()
        try:
            campaign = Campaign(name=name, description=description)
            db.add(campaign)
            db.flush()
            for char in characters or []:
                db.add(Character(campaign_id=campaign.id, **char))
            db.commit()
            logger.info(f"Created campaign {campaign.id}: {name}")
            return campaign.id
        finally:
            db.close()

    def __init__(self, campaign_id: int):
        self.campaign_id = campaign_id
        self._db: SQLAlchemySession | None = None
        self._commit_deferred: bool = False

    def _get_db(self) -> SQLAlchemySession:
        """Get or create database session."""
        if self._db is None:
            self._db = create_session()
        return self._db

    def close(self):
        """Close the database session."""
        if self._db:
            self._db.close()
            self._db = None

    def rollback(self):
        """Discard uncommitted changes in this store's session."""
        if self._db:
            self._db.rollback()

    def _maybe_commit(self):
        """Commit only if not inside a deferred_commit() block."""
        if not self._commit_deferred:
            self._get_db().commit()

    @contextmanager
    def deferred_commit(self):
        """Batch every write inside the block into one commit.

        Usage:
            with store.deferred_commit():
                store.add_entity(Faction, name="The Ashen Court")
                store.add_entity(Faction, name="The Tide Wardens")
            # Single commit here, or full rollback on exception
        """
        if self._commit_deferred:
            yield
            return

        self._commit_deferred = True
        db = self._get_db()
        try:
            yield
            db.commit()
        except Exception:
            db.rollback()
            logger.error("Deferred commit: ROLLBACK due to exception")
            raise
        finally:
            self._commit_deferred = False

    # ==== Campaign / Seed ====

    def get_campaign(self) -> Campaign | None:
        db = self._get_db()
        return db.query(Campaign).filter(Campaign.id == self.campaign_id).first()

    def get_world_seed(self) -> WorldSeed | None:
        db = self._get_db()
        return db.query(WorldSeed).filter(WorldSeed.campaign_id == self.campaign_id).first()

    def require_world_seed(self) -> WorldSeed:
        seed = self.get_world_seed()
        if seed is None:
            raise EntityNotFoundError(f"No world seed for campaign {self.campaign_id}")
        return seed

    @property
    def world_seed_id(self) -> int:
        return self.require_world_seed().id

    def get_character_backstories(self) -> list[dict[str, str]]:
        """Name + backstory of every character with a non-empty backstory."""
        db = self._get_db()
        characters = (
            db.query(Character)
            .filter(Character.campaign_id == self.campaign_id)
            .order_by(Character.id)
            .all()
        )
        return [
            {"name": c.name, "backstory": c.backstory}
            for c in characters
            if c.backstory and c.backstory.strip()
        ]

    def update_seed(self, **fields) -> WorldSeed:
        """Set attributes on the world seed."""
        seed = self.require_world_seed()
        for key, value in fields.items():
            if not hasattr(seed, key):
                raise AttributeError(f"WorldSeed has no field '{key}'")
            setattr(seed, key, value)
        self._maybe_commit()
        return seed

    def save_coherence_report(self, score: int, report: dict[str, Any]):
        self.update_seed(coherence_score=score, coherence_report=report)

    # ==== Generation logs ====

    def record_generation_log(
        self,
        phase: str,
        status: str,
        prompt: str | None = None,
        response: str | None = None,
        parsed_data: Any = None,
        error: str | None = None,
        duration_ms: int | None = None,
    ) -> GenerationLog:
        """Append one phase attempt to the audit trail."""
        db = self._get_db()
        entry = GenerationLog(
            world_seed_id=self.world_seed_id,
            phase=phase,
            status=status,
            prompt=prompt,
            response=response,
            parsed_data=parsed_data,
            error=error,
            duration_ms=duration_ms,
        )
        db.add(entry)
        self._maybe_commit()
        return entry

    def get_generation_logs(self, phase: str | None = None, limit: int | None = None) -> list[GenerationLog]:
        seed = self.get_world_seed()
        if seed is None:
            return []
        db = self._get_db()
        query = db.query(GenerationLog).filter(GenerationLog.world_seed_id == seed.id)
        if phase:
            query = query.filter(GenerationLog.phase == phase)
        query = query.order_by(GenerationLog.created_at, GenerationLog.id)
        if limit:
            query = query.limit(limit)
        return query.all()

    def clear_generation_logs(self) -> int:
        seed = self.get_world_seed()
        if seed is None:
            return 0
        db = self._get_db()
        deleted = (
            db.query(GenerationLog)
            .filter(GenerationLog.world_seed_id == seed.id)
            .delete(synchronize_session=False)
        )
        self._maybe_commit()
        return deleted

    # ==== Summary / Reset ====

    def get_counts(self) -> dict[str, int]:
        """Entity counts per lore category, plus relationships."""
        seed = self.get_world_seed()
        counts = {
            "factions": 0, "people": 0, "geography": 0, "conflicts": 0,
            "secrets": 0, "deities": 0, "relationships": 0,
        }
        if seed is None:
            return counts
        db = self._get_db()
        for key, model in (
            ("factions", Faction),
            ("people", Npc),
            ("geography", Location),
            ("conflicts", Conflict),
            ("secrets", Secret),
            ("deities", Deity),
            ("relationships", Relationship),
        ):
            counts[key] = db.query(model).filter(model.world_seed_id == seed.id).count()
        return counts

    def purge_generated_content(self) -> dict[str, int]:
        """Delete everything generation produced, except player-overridden entities.

        Relationships, generation logs, seed content and the coherence report
        are always cleared.  Surviving entities lose references to deleted
        factions.
        """
        seed = self.require_world_seed()
        db = self._get_db()
        removed: dict[str, int] = {}

        with self.deferred_commit():
            removed["relationships"] = (
                db.query(Relationship)
                .filter(Relationship.world_seed_id == seed.id)
                .delete(synchronize_session=False)
            )
            db.query(GenerationLog).filter(GenerationLog.world_seed_id == seed.id).delete(
                synchronize_session=False
            )

            doomed_factions = [
                fid for (fid,) in db.query(Faction.id).filter(
                    Faction.world_seed_id == seed.id,
                    Faction.player_override.is_(False),
                )
            ]
            if doomed_factions:
                db.query(Npc).filter(Npc.faction_id.in_(doomed_factions)).update(
                    {Npc.faction_id: None}, synchronize_session=False
                )
                db.query(Location).filter(Location.controlling_faction_id.in_(doomed_factions)).update(
                    {Location.controlling_faction_id: None}, synchronize_session=False
                )

            for key, model in (
                ("secrets", Secret),
                ("conflicts", Conflict),
                ("geography", Location),
                ("people", Npc),
                ("factions", Faction),
                ("deities", Deity),
            ):
                removed[key] = (
                    db.query(model)
                    .filter(model.world_seed_id == seed.id, model.player_override.is_(False))
                    .delete(synchronize_session=False)
                )

            seed.name = None
            seed.tone = None
            seed.scale = None
            seed.themes = []
            seed.core_tensions = []
            seed.world_sketch = None
            seed.cosmology = None
            seed.world_history = []
            seed.coherence_score = None
            seed.coherence_report = None

        db.expire_all()
        logger.info(f"Purged generated content for campaign {self.campaign_id}: {removed}")
        return removed
