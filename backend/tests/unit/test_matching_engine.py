import pytest

from clubconnect.domain.identity.models import AccountStatus
from clubconnect.domain.matching import engine


def _candidate(account_id, expertise, grad_year, rating, *, status=AccountStatus.ACTIVE, opt_in=True):
    return engine.MentorCandidate(
        account_id=account_id,
        status=status,
        mentor_opt_in=opt_in,
        expertise=list(expertise),
        grad_year=grad_year,
        average_rating=rating,
    )


def test_experienced_partial_match_beats_newer_exact_match():
    mentor_a = _candidate("a", ["react", "node", "aws"], 2015, 4.5)
    mentor_b = _candidate("b", ["react"], 2022, 5.0)
    ranked = engine.recommend_mentors(["react", "node"], [mentor_b, mentor_a], current_year=2025)

    assert [match.account_id for match in ranked] == ["a", "b"]
    top = ranked[0]
    assert top.skill_score == pytest.approx(0.5)
    assert top.experience_score == pytest.approx(0.125)
    assert top.rating_score == pytest.approx(0.225)
    assert top.score == pytest.approx(0.85)
    assert ranked[1].score == pytest.approx(0.5 + 0.0375 + 0.25)


def test_skill_overlap_uses_smaller_set_and_is_case_insensitive():
    score, matches = engine.skill_score(["React", " Python "], ["python", "go", "rust", "react"])
    assert score == pytest.approx(0.5)
    assert matches == ["react", "python"]


def test_experience_saturates_after_twenty_years():
    assert engine.experience_score(1990, 2025) == pytest.approx(0.25)
    assert engine.experience_score(2030, 2025) == 0.0
    assert engine.experience_score(None, 2025) == 0.0


def test_ineligible_and_zero_score_candidates_are_dropped():
    pool = [
        _candidate("pending", ["react"], 2010, 5.0, status=AccountStatus.PENDING),
        _candidate("opted-out", ["react"], 2010, 5.0, opt_in=False),
        _candidate("nothing", ["cobol"], 2025, 0.0),
        _candidate("ok", ["react"], 2020, 0.0),
    ]
    ranked = engine.recommend_mentors(["react"], pool, current_year=2025)
    assert [match.account_id for match in ranked] == ["ok"]


def test_ties_are_broken_by_account_id():
    pool = [_candidate("m2", ["go"], 2015, 4.0), _candidate("m1", ["go"], 2015, 4.0)]
    ranked = engine.recommend_mentors(["go"], pool, current_year=2025)
    assert [match.account_id for match in ranked] == ["m1", "m2"]


def test_browse_orders_by_rating():
    pool = [_candidate("low", [], 2015, 3.0), _candidate("high", [], 2015, 4.8)]
    assert [item.account_id for item in engine.browse_mentors(pool)] == ["high", "low"]
