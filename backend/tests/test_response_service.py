from datetime import datetime, timezone

import pytest

from tutorhub.core.exceptions import ConflictError, NotFoundError, ValidationError
from tutorhub.models.learner_response import LearnerResponse
from tutorhub.services import response_service
from tutorhub.services.response_service import (
    get_response,
    grade_response,
    merge_answers,
    save_learner_response,
)


def _count(db, learner_id=2, review_id=1):
    return (
        db.query(LearnerResponse)
        .filter(LearnerResponse.learner_id == learner_id, LearnerResponse.review_id == review_id)
        .count()
    )


def test_merge_answers_keeps_unsent_and_overrides_resent():
    merged = merge_answers({"11": "A", "12": "C"}, {12: "b", "13": " D "})
    assert merged == {"11": "A", "12": "b", "13": "D"}


def test_merge_answers_clears_on_blank():
    assert merge_answers({"11": "A", "12": "B"}, {"11": None, "12": ""}) == {}


def test_save_then_update_keeps_one_row(db, world):
    save_learner_response(db, learner_id=2, review_id=1, answers={"11": "A"})
    row = save_learner_response(db, learner_id=2, review_id=1, answers={"11": "B", "12": "B"})
    assert _count(db) == 1
    assert row.responses == {"11": "B", "12": "B"}
    assert row.submission_status == "incomplete"
    assert row.score is None


def test_complete_sets_score_and_timestamp(db, world):
    now = datetime(2025, 3, 22, 9, 30, tzinfo=timezone.utc)
    row = save_learner_response(db, learner_id=2, review_id=1, answers={"11": "A"}, complete=True, score=50, now=now)
    assert row.is_completed
    assert row.score == 50
    assert row.submitted_at is not None


def test_save_after_completion_is_rejected(db, world):
    save_learner_response(db, learner_id=2, review_id=1, answers={"11": "A"}, complete=True, score=50)
    with pytest.raises(ConflictError) as exc:
        save_learner_response(db, learner_id=2, review_id=1, answers={"11": "B"})
    assert exc.value.code == "ALREADY_SUBMITTED"


def test_concurrent_insert_is_retried_as_update(db, world, monkeypatch):
    save_learner_response(db, learner_id=2, review_id=1, answers={"11": "A"})

    real_get = response_service.get_response
    calls = {"n": 0}

    def stale_then_real(*args, **kwargs):
        # First lookup misses the row another request just inserted.
        calls["n"] += 1
        if calls["n"] == 1:
            return None
        return real_get(*args, **kwargs)

    monkeypatch.setattr(response_service, "get_response", stale_then_real)
    row = save_learner_response(db, learner_id=2, review_id=1, answers={"11": "A", "12": "B"})

    assert calls["n"] == 2
    assert _count(db) == 1
    assert row.responses == {"11": "A", "12": "B"}


def test_duplicate_insert_raises_conflict(db, world):
    save_learner_response(db, learner_id=2, review_id=1, answers={})
    with pytest.raises(ConflictError):
        response_service._insert_response(
            db,
            {"learner_id": 2, "review_id": 1, "responses": {}, "submission_status": "incomplete"},
        )


def test_grading_touches_only_teacher_fields(db, world):
    save_learner_response(db, learner_id=2, review_id=1, answers={"11": "A", "12": "A"}, complete=True, score=50)
    row = grade_response(db, learner_id=2, review_id=1, score=75, feedback="  Good effort ")
    assert row.score == 75
    assert row.feedback == "Good effort"
    assert row.graded_at is not None
    assert row.responses == {"11": "A", "12": "A"}
    assert row.submission_status == "completed"


def test_grading_an_unsubmitted_response_is_rejected(db, world):
    save_learner_response(db, learner_id=2, review_id=1, answers={"11": "A"})
    with pytest.raises(ConflictError) as exc:
        grade_response(db, learner_id=2, review_id=1, score=10, feedback="Keep going")
    assert exc.value.code == "NOT_SUBMITTED"

    row = save_learner_response(db, learner_id=2, review_id=1, answers={"12": "B"}, complete=True, score=50)
    assert row.score == 50
    assert row.feedback is None


def test_teacher_score_survives_later_saves(db, world):
    save_learner_response(db, learner_id=2, review_id=1, answers={"11": "A"}, complete=True, score=50)
    grade_response(db, learner_id=2, review_id=1, score=90, feedback="Great")
    with pytest.raises(ConflictError):
        save_learner_response(db, learner_id=2, review_id=1, answers={"11": "B"}, complete=True, score=0)
    row = get_response(db, learner_id=2, review_id=1)
    assert (row.score, row.feedback) == (90, "Great")


@pytest.mark.parametrize("bad", [-1, 101, "abc"])
def test_grade_out_of_range(db, world, bad):
    save_learner_response(db, learner_id=2, review_id=1, answers={})
    with pytest.raises(ValidationError):
        grade_response(db, learner_id=2, review_id=1, score=bad, feedback=None)


def test_grade_missing_response(db, world):
    with pytest.raises(NotFoundError):
        grade_response(db, learner_id=3, review_id=1, score=50, feedback=None)
    assert get_response(db, learner_id=3, review_id=1) is None
