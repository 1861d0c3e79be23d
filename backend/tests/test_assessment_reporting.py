from tutorhub.services.assessment_reporting import (
    RosterEntry,
    average_score,
    format_average,
    rank_learners,
    reminder_recipients,
    submission_label,
    summarize,
)
from tutorhub.services.assessment_timeline import TemporalBucket


def _entry(learner_id, bucket, status=None, score=None):
    return RosterEntry(learner_id=learner_id, assessment_id=1, bucket=bucket, submission_status=status, score=score)


ROSTER = [
    _entry(1, TemporalBucket.completed, "completed", 80),
    _entry(2, TemporalBucket.completed, "completed", 65),
    _entry(3, TemporalBucket.in_progress, "incomplete"),
    _entry(4, TemporalBucket.in_progress),
    _entry(5, TemporalBucket.missed),
    _entry(6, TemporalBucket.upcoming),
]


def test_summarize_counts_buckets_and_averages_completed_scores():
    stats = summarize(ROSTER)
    assert stats.total == 6
    assert stats.by_bucket == {"upcoming": 1, "in_progress": 2, "missed": 1, "completed": 2}
    assert stats.completed_responses == 2
    # 72.5 -> 73
    assert stats.average_score == 73
    assert stats.as_dict()["average_score_display"] == "73%"


def test_empty_roster_has_placeholder_average():
    stats = summarize([])
    assert stats.total == 0
    assert stats.average_score is None
    assert stats.as_dict()["average_score_display"] == "—"


def test_average_ignores_missing_scores():
    assert average_score([None, 50, None, 100]) == 75
    assert average_score([]) is None
    assert format_average(0) == "0%"


def test_submission_labels():
    assert submission_label(TemporalBucket.completed) == "submitted"
    assert submission_label(TemporalBucket.missed) == "missed"
    assert submission_label(TemporalBucket.in_progress) == "pending"
    assert submission_label("upcoming") == "pending"


def test_reminder_recipients_default_buckets():
    assert reminder_recipients(ROSTER) == [3, 4, 6]


def test_reminder_recipients_custom_buckets_and_dedup():
    entries = ROSTER + [_entry(5, TemporalBucket.missed)]
    assert reminder_recipients(entries, buckets=["missed"]) == [5]


def test_rank_learners_orders_by_average_and_shares_ties():
    names = {1: "Dung", 2: "An", 3: "Binh", 4: "Chi"}
    rows = rank_learners({1: [90, 70], 2: [80], 3: [80]}, names)
    assert [(r.learner_id, r.rank, r.average_score) for r in rows] == [
        (2, 1, 80),
        (3, 1, 80),
        (1, 1, 80),
        (4, None, None),
    ]


def test_rank_learners_skips_rank_after_tie():
    rows = rank_learners({1: [90], 2: [90], 3: [60]}, {1: "A", 2: "B", 3: "C"})
    assert [r.rank for r in rows] == [1, 1, 3]
    assert rows[2].as_dict()["average_score_display"] == "60%"
    assert rows[0].completed == 1
