"""
Coherence Checker for WorldForge.

Audits a generated world's structure after every other phase has run:
- Local rules always run (orphaned factions and conflicts, dead-end
  NPCs, locations and conflicts)
- An advisory LLM pass looks for contradictions and missing links and
  proposes a 0-100 score
- If the advisory pass fails the audit degrades to local results only

The result is advisory and never blocks a job from completing.
"""

import json
import logging
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ..db.models import Conflict, Faction, Location, Npc, Secret
from ..db.world_store import WorldStore
from ..enums import GenerationPhase, IssueSeverity, IssueType
from ..exceptions import CoherenceAuditError, GenerationError
from ..llm import ContentGenerator
from ..utils.json_extract import extract_json_object
from ._prompts import COHERENCE_SYSTEM, COHERENCE_TASK
from .base import BaseAgent
from .schemas import AdvisoryPayload

logger = logging.getLogger(__name__)

CRITICAL_WEIGHT = 20
MAJOR_WEIGHT_ADVISORY = 5
MAJOR_WEIGHT_LOCAL = 10
MINOR_WEIGHT = 2
MAX_MAJOR_FOR_COHERENT = 2


class CoherenceIssue(BaseModel):
    """One structural problem found in the world."""
    type: IssueType
    severity: IssueSeverity
    description: str
    entities: list[str] = Field(default_factory=list)
    source: str = "local"  # local | advisory


class CoherenceReport(BaseModel):
    """Result of a coherence audit."""

    score: int = Field(ge=0, le=100)
    is_coherent: bool
    issues: list[CoherenceIssue] = Field(default_factory=list)
    critical_count: int = 0
    major_count: int = 0
    minor_count: int = 0
    advisory_used: bool = False
    advisory_error: str | None = None


# ── Structural summary ──────────────────────────────────────────────────

def build_summary(store: WorldStore) -> dict[str, Any]:
    """Names and links only: what the local rules and the auditor look at."""
    seed = store.require_world_seed()
    faction_names = {f.id: f.name for f in store.list_entities(Faction)}
    return {
        "tensions": [t.get("name") for t in seed.core_tensions or []],
        "factions": [
            {"name": f.name, "stances": [s.get("tension") for s in f.tension_stances or []]}
            for f in store.list_entities(Faction)
        ],
        "npcs": [
            {
                "name": n.name,
                "faction": faction_names.get(n.faction_id),
                "tension_roles": [r.get("tension") for r in n.tension_roles or []],
            }
            for n in store.list_entities(Npc)
        ],
        "conflicts": [
            {
                "name": c.name,
                "root_tension": c.root_tension,
                "participants": [p.get("name") for p in c.participants or [] if isinstance(p, dict)],
            }
            for c in store.list_entities(Conflict)
        ],
        "locations": [
            {"name": loc.name, "controlling_faction": faction_names.get(loc.controlling_faction_id)}
            for loc in store.list_entities(Location)
        ],
        "secrets": [
            {"name": s.name, "known_by": list(s.known_by or [])}
            for s in store.list_entities(Secret)
        ],
    }


def local_issues(summary: dict[str, Any]) -> list[CoherenceIssue]:
    """Deterministic rules over the summary."""
    issues = []
    for faction in summary.get("factions", []):
        if not faction.get("stances"):
            issues.append(CoherenceIssue(
                type=IssueType.ORPHAN,
                severity=IssueSeverity.MAJOR,
                description=f"Faction '{faction['name']}' takes no stance on any core tension",
                entities=[faction["name"]],
            ))
    for npc in summary.get("npcs", []):
        if not npc.get("faction") and not npc.get("tension_roles"):
            issues.append(CoherenceIssue(
                type=IssueType.DEAD_END,
                severity=IssueSeverity.MINOR,
                description=f"NPC '{npc['name']}' has no faction and no role in any core tension",
                entities=[npc["name"]],
            ))
    for conflict in summary.get("conflicts", []):
        if not conflict.get("root_tension"):
            issues.append(CoherenceIssue(
                type=IssueType.ORPHAN,
                severity=IssueSeverity.MAJOR,
                description=f"Conflict '{conflict['name']}' is not rooted in any core tension",
                entities=[conflict["name"]],
            ))
        if len(conflict.get("participants") or []) < 2:
            issues.append(CoherenceIssue(
                type=IssueType.DEAD_END,
                severity=IssueSeverity.MINOR,
                description=f"Conflict '{conflict['name']}' has fewer than two participants",
                entities=[conflict["name"]],
            ))
    for location in summary.get("locations", []):
        if not location.get("controlling_faction"):
            issues.append(CoherenceIssue(
                type=IssueType.DEAD_END,
                severity=IssueSeverity.MINOR,
                description=f"Location '{location['name']}' is not controlled by any faction",
                entities=[location["name"]],
            ))
    return issues


def compute_score(issues: list[CoherenceIssue], advisory_score: int | None = None) -> int:
    """Weighted penalty score, floored at zero.

    With an advisory score the major weight is lighter, since the
    auditor has already priced its own findings into the score.
    """
    critical = sum(1 for i in issues if i.severity == IssueSeverity.CRITICAL)
    major = sum(1 for i in issues if i.severity == IssueSeverity.MAJOR)
    minor = sum(1 for i in issues if i.severity == IssueSeverity.MINOR)
    if advisory_score is None:
        base, major_weight = 100, MAJOR_WEIGHT_LOCAL
    else:
        base, major_weight = max(0, min(100, advisory_score)), MAJOR_WEIGHT_ADVISORY
    score = base - CRITICAL_WEIGHT * critical - major_weight * major - MINOR_WEIGHT * minor
    return max(0, score)


def build_report(
    issues: list[CoherenceIssue],
    advisory_score: int | None = None,
    advisory_error: str | None = None,
) -> CoherenceReport:
    critical = sum(1 for i in issues if i.severity == IssueSeverity.CRITICAL)
    major = sum(1 for i in issues if i.severity == IssueSeverity.MAJOR)
    minor = sum(1 for i in issues if i.severity == IssueSeverity.MINOR)
    return CoherenceReport(
        score=compute_score(issues, advisory_score),
        is_coherent=critical == 0 and major <= MAX_MAJOR_FOR_COHERENT,
        issues=issues,
        critical_count=critical,
        major_count=major,
        minor_count=minor,
        advisory_used=advisory_score is not None,
        advisory_error=advisory_error,
    )


def parse_advisory(data: dict[str, Any]) -> tuple[int, list[CoherenceIssue]]:
    """Score (non-numeric -> 70) and issues from the auditor's JSON.

    Raises CoherenceAuditError when the reply cannot be trusted at all:
    a non-finite score, or ``issues`` that is not a list.
    """
    try:
        payload = AdvisoryPayload.model_validate(data)
    except ValidationError as e:
        raise CoherenceAuditError(f"Malformed advisory reply: {e.error_count()} errors") from e

    issues = [
        CoherenceIssue(**issue.model_dump(), source="advisory")
        for issue in payload.issues
    ]
    return payload.score, issues


class CoherenceChecker(BaseAgent):
    """Final phase: audits the world and stores an advisory report."""

    agent_name = GenerationPhase.COHERENCE
    label = "coherence audit"

    def __init__(self, generator: ContentGenerator | None = None, use_advisory: bool = True):
        super().__init__(generator)
        self.use_advisory = use_advisory

    @property
    def system_prompt(self) -> str:
        return COHERENCE_SYSTEM

    @property
    def task(self) -> str:
        return COHERENCE_TASK

    async def check(self, store: WorldStore) -> CoherenceReport:
        """Audit the world.  Never raises for advisory failures."""
        summary = build_summary(store)
        issues = local_issues(summary)

        if not self.use_advisory:
            return build_report(issues)

        try:
            advisory_score, advisory_issues = await self._advisory_pass(summary)
        except CoherenceAuditError as e:
            logger.warning(f"Coherence advisory pass failed, using local rules only: {e}")
            return build_report(issues, advisory_error=str(e))

        return build_report(issues + advisory_issues, advisory_score)

    async def _advisory_pass(self, summary: dict[str, Any]) -> tuple[int, list[CoherenceIssue]]:
        prompt = self._build_message(
            self.task, {"world_summary": json.dumps(summary, indent=2, ensure_ascii=False)}
        )
        self.last_prompt = prompt
        try:
            text = await self.generator.generate(prompt, system_instruction=self.system_prompt)
        except GenerationError as e:
            raise CoherenceAuditError(str(e)) from e
        self.last_response = text

        result = extract_json_object(text)
        if not result.ok:
            raise CoherenceAuditError(result.error)
        self.last_parsed = result.data
        return parse_advisory(result.data)

    async def run(self, store: WorldStore) -> int:
        """Check and persist the report; returns the number of issues."""
        report = await self.check(store)
        store.save_coherence_report(report.score, report.model_dump(mode="json"))
        logger.info(
            f"Coherence: score {report.score}, {len(report.issues)} issues "
            f"({report.critical_count} critical, {report.major_count} major), "
            f"coherent={report.is_coherent}"
        )
        return len(report.issues)
