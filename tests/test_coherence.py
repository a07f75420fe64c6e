"""Tests for the coherence checker: local rules, scoring and the advisory pass."""

import pytest

from worldforge.agents.coherence import (
    CoherenceChecker,
    CoherenceIssue,
    build_report,
    build_summary,
    compute_score,
    local_issues,
    parse_advisory,
)
from worldforge.agents.generators import ConflictGenerator
from worldforge.agents.schemas import DEFAULT_ADVISORY_SCORE
from worldforge.db.models import Conflict, Faction, Location, Npc
from worldforge.enums import IssueSeverity, IssueType
from worldforge.exceptions import CoherenceAuditError


def _issue(severity, issue_type=IssueType.MISSING_LINK):
    return CoherenceIssue(type=issue_type, severity=severity, description="x")


@pytest.fixture
def tensioned_store(store, payloads):
    store.update_seed(core_tensions=payloads["tensions"]["core_tensions"])
    return store


class TestLocalRules:

    def test_single_unlinked_npc_is_one_minor_dead_end(self, tensioned_store):
        store = tensioned_store
        stance = [{"tension": "Faith versus Reason", "stance": "For"}]
        factions = [
            store.add_entity(Faction, name=name, tension_stances=stance)
            for name in ("Order of the Dawn", "Merchant League", "Cult of Ash")
        ]
        for i in range(4):
            store.add_entity(Npc, name=f"Member {i}", faction_id=factions[i % 3].id)
        store.add_entity(Npc, name="Wanderer")

        issues = local_issues(build_summary(store))

        assert len(issues) == 1
        assert issues[0].type == IssueType.DEAD_END
        assert issues[0].severity == IssueSeverity.MINOR
        assert issues[0].entities == ["Wanderer"]

    def test_npc_with_tension_role_is_not_a_dead_end(self, tensioned_store):
        tensioned_store.add_entity(
            Npc, name="Hermit", tension_roles=[{"tension": "Faith versus Reason", "role": "skeptic"}]
        )
        assert local_issues(build_summary(tensioned_store)) == []

    def test_faction_without_stance_is_major_orphan(self, tensioned_store):
        tensioned_store.add_entity(Faction, name="The Quiet Hand")
        issues = local_issues(build_summary(tensioned_store))
        assert [(i.type, i.severity) for i in issues] == [(IssueType.ORPHAN, IssueSeverity.MAJOR)]

    def test_conflict_rules(self, tensioned_store):
        tensioned_store.add_entity(Conflict, name="Border War", participants=[{"name": "A"}])
        issues = local_issues(build_summary(tensioned_store))
        kinds = sorted((i.type, i.severity) for i in issues)
        assert kinds == [
            (IssueType.DEAD_END, IssueSeverity.MINOR),
            (IssueType.ORPHAN, IssueSeverity.MAJOR),
        ]

    def test_uncontrolled_location_is_dead_end(self, tensioned_store):
        tensioned_store.add_entity(Location, name="The Waste")
        issues = local_issues(build_summary(tensioned_store))
        assert issues[0].type == IssueType.DEAD_END
        assert issues[0].entities == ["The Waste"]

    async def test_misspelled_root_tension_surfaces_as_orphan(
        self, tensioned_store, generator, mock_provider
    ):
        mock_provider.queue_json({
            "conflicts": [{
                "name": "The Quiet War",
                "root_tension": "Fiath vs Reasn",
                "participants": [{"name": "A"}, {"name": "B"}],
            }]
        })
        await ConflictGenerator(generator).run(tensioned_store)

        conflict = tensioned_store.find_by_name(Conflict, "The Quiet War")
        assert conflict.root_tension is None

        issues = local_issues(build_summary(tensioned_store))
        assert [(i.type, i.entities) for i in issues] == [(IssueType.ORPHAN, ["The Quiet War"])]


class TestScoring:

    def test_clean_world_scores_100(self):
        assert compute_score([]) == 100

    def test_local_weights(self):
        issues = [_issue(IssueSeverity.CRITICAL), _issue(IssueSeverity.MAJOR), _issue(IssueSeverity.MINOR)]
        assert compute_score(issues) == 100 - 20 - 10 - 2

    def test_advisory_weights(self):
        issues = [_issue(IssueSeverity.MAJOR), _issue(IssueSeverity.MINOR)]
        assert compute_score(issues, advisory_score=90) == 90 - 5 - 2

    def test_score_floors_at_zero(self):
        assert compute_score([_issue(IssueSeverity.CRITICAL)] * 10) == 0

    def test_advisory_score_clamped(self):
        assert compute_score([], advisory_score=140) == 100
        assert compute_score([], advisory_score=-5) == 0

    @pytest.mark.parametrize("severity", list(IssueSeverity))
    def test_adding_an_issue_never_raises_the_score(self, severity):
        base = [_issue(IssueSeverity.MINOR), _issue(IssueSeverity.MAJOR)]
        for advisory in (None, 75):
            assert compute_score(base + [_issue(severity)], advisory) <= compute_score(base, advisory)

    def test_coherent_threshold(self):
        assert build_report([_issue(IssueSeverity.MAJOR)] * 2).is_coherent
        assert not build_report([_issue(IssueSeverity.MAJOR)] * 3).is_coherent
        assert not build_report([_issue(IssueSeverity.CRITICAL)]).is_coherent

    def test_report_counts(self):
        report = build_report([_issue(IssueSeverity.MINOR), _issue(IssueSeverity.MINOR), _issue(IssueSeverity.MAJOR)])
        assert (report.critical_count, report.major_count, report.minor_count) == (0, 1, 2)


class TestAdvisoryParsing:

    def test_non_numeric_score_defaults(self):
        score, issues = parse_advisory({"score": "great", "issues": []})
        assert score == DEFAULT_ADVISORY_SCORE == 70
        assert issues == []

    def test_missing_score_defaults(self):
        assert parse_advisory({})[0] == 70

    def test_unknown_type_and_severity_fall_back(self):
        _, issues = parse_advisory({
            "score": 80,
            "issues": [
                {"type": "weird", "severity": "apocalyptic", "description": "Something off"},
                {"type": "contradiction", "severity": "critical"},  # no description, dropped
                "not a dict",
            ],
        })
        assert len(issues) == 1
        assert issues[0].type == IssueType.MISSING_LINK
        assert issues[0].severity == IssueSeverity.MINOR
        assert issues[0].source == "advisory"

    def test_numeric_string_score_is_rounded(self):
        assert parse_advisory({"score": "84.6"})[0] == 85

    def test_null_issues_means_none(self):
        assert parse_advisory({"score": 90, "issues": None}) == (90, [])

    @pytest.mark.parametrize("data", [
        {"score": 80, "issues": 5},
        {"score": 80, "issues": {"type": "contradiction"}},
        {"score": float("inf"), "issues": []},
        {"score": float("nan"), "issues": []},
        {"score": "1e999"},
    ])
    def test_untrustworthy_reply_is_an_audit_error(self, data):
        with pytest.raises(CoherenceAuditError, match="Malformed advisory reply"):
            parse_advisory(data)


class TestCoherenceChecker:

    async def test_advisory_failure_falls_back_to_local(self, tensioned_store, generator, mock_provider):
        tensioned_store.add_entity(Npc, name="Wanderer")
        mock_provider.queue_response("The world looks fine to me!")

        report = await CoherenceChecker(generator).check(tensioned_store)

        assert report.advisory_used is False
        assert report.advisory_error
        assert report.score == 100 - 2
        assert len(report.issues) == 1

    async def test_provider_error_falls_back_to_local(self, tensioned_store, generator, mock_provider):
        mock_provider.queue_error(RuntimeError("timeout"))
        report = await CoherenceChecker(generator).check(tensioned_store)
        assert report.advisory_used is False
        assert report.score == 100

    async def test_advisory_merges_with_local(self, tensioned_store, generator, mock_provider):
        tensioned_store.add_entity(Npc, name="Wanderer")
        mock_provider.queue_json({
            "score": 90,
            "issues": [{"type": "contradiction", "severity": "major", "description": "Two capitals"}],
        })

        report = await CoherenceChecker(generator).check(tensioned_store)

        assert report.advisory_used is True
        assert report.score == 90 - 5 - 2
        assert {i.source for i in report.issues} == {"local", "advisory"}

    async def test_local_only_mode_never_calls_model(self, tensioned_store, generator, mock_provider):
        report = await CoherenceChecker(generator, use_advisory=False).check(tensioned_store)
        assert report.score == 100
        assert mock_provider.call_history == []

    async def test_run_persists_report(self, tensioned_store, generator, mock_provider):
        mock_provider.queue_json({"score": "n/a", "issues": []})
        count = await CoherenceChecker(generator).run(tensioned_store)

        seed = tensioned_store.require_world_seed()
        assert count == 0
        assert seed.coherence_score == 70
        assert seed.coherence_report["score"] == 70
        assert seed.coherence_report["is_coherent"] is True

    @pytest.mark.parametrize("reply", [
        '{"score": 80, "issues": 5}',
        '{"score": 1e999, "issues": []}',
        '{"score": NaN, "issues": []}',
    ])
    async def test_malformed_advisory_reply_falls_back_to_local(
        self, tensioned_store, generator, mock_provider, reply
    ):
        tensioned_store.add_entity(Npc, name="Wanderer")
        mock_provider.queue_response(reply)

        report = await CoherenceChecker(generator).check(tensioned_store)

        assert report.advisory_used is False
        assert "Malformed advisory reply" in report.advisory_error
        assert report.score == 100 - 2
        assert [i.source for i in report.issues] == ["local"]
