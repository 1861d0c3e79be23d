"""Roster-level aggregation built on the timeline and scoring results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from tutorhub.core.config import settings
from tutorhub.models.learner_response import SubmissionStatus
from tutorhub.services.assessment_timeline import TemporalBucket
from tutorhub.services.scoring import round_half_up


EMPTY_AVERAGE = "—"


@dataclass
class RosterEntry:
    learner_id: int
    assessment_id: int
    bucket: TemporalBucket
    submission_status: Optional[str] = None
    score: Optional[int] = None

    @property
    def has_completed(self) -> bool:
        return self.submission_status == SubmissionStatus.completed.value


@dataclass
class SubmissionStats:
    total: int = 0
    by_bucket: Dict[str, int] = field(default_factory=lambda: {b.value: 0 for b in TemporalBucket})
    completed_responses: int = 0
    average_score: Optional[int] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "by_bucket": dict(self.by_bucket),
            "completed_responses": self.completed_responses,
            "average_score": self.average_score,
            "average_score_display": format_average(self.average_score),
        }


def average_score(scores: Iterable[Optional[int]]) -> Optional[int]:
    vals = [int(s) for s in scores if s is not None]
    if not vals:
        return None
    return round_half_up(sum(vals), len(vals))


def format_average(avg: Optional[int]) -> str:
    return EMPTY_AVERAGE if avg is None else f"{int(avg)}%"


def summarize(entries: Iterable[RosterEntry]) -> SubmissionStats:
    stats = SubmissionStats()
    scores: List[int] = []
    for e in entries:
        stats.total += 1
        key = TemporalBucket(e.bucket).value
        stats.by_bucket[key] = stats.by_bucket.get(key, 0) + 1
        if e.has_completed:
            stats.completed_responses += 1
            if e.score is not None:
                scores.append(int(e.score))
    stats.average_score = average_score(scores)
    return stats


def submission_label(bucket: TemporalBucket) -> str:
    """Teacher submissions view: submitted / missed / pending."""

    b = TemporalBucket(bucket)
    if b is TemporalBucket.completed:
        return "submitted"
    if b is TemporalBucket.missed:
        return "missed"
    return "pending"


def reminder_recipients(entries: Iterable[RosterEntry], buckets: Optional[Iterable[str]] = None) -> List[int]:
    """Learners still expected to submit: open/upcoming buckets, no completed response."""

    wanted = {TemporalBucket(b).value for b in (buckets if buckets is not None else settings.REMINDER_BUCKETS)}
    seen: set[int] = set()
    out: List[int] = []
    for e in entries:
        if e.has_completed or TemporalBucket(e.bucket).value not in wanted:
            continue
        if e.learner_id in seen:
            continue
        seen.add(e.learner_id)
        out.append(int(e.learner_id))
    return out


@dataclass
class LeaderboardRow:
    learner_id: int
    name: str
    average_score: Optional[int] = None
    completed: int = 0
    rank: Optional[int] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "rank": self.rank,
            "learner_id": self.learner_id,
            "learner_name": self.name,
            "average_score": self.average_score,
            "average_score_display": format_average(self.average_score),
            "completed": self.completed,
        }


def rank_learners(scores_by_learner: Dict[int, List[int]], names: Dict[int, str]) -> List[LeaderboardRow]:
    """Order learners by average completed score, best first.

    Equal averages share a rank (1, 1, 3). Learners without a scored
    completion come last, unranked.
    """

    rows = []
    for lid, name in names.items():
        scores = [int(s) for s in scores_by_learner.get(lid, []) if s is not None]
        rows.append(LeaderboardRow(learner_id=int(lid), name=name, average_score=average_score(scores), completed=len(scores)))

    rows.sort(key=lambda r: (r.average_score is None, -(r.average_score or 0), r.name.lower(), r.learner_id))
    previous: Optional[int] = None
    for pos, row in enumerate(rows, start=1):
        if row.average_score is None:
            break
        row.rank = rows[pos - 2].rank if pos > 1 and row.average_score == previous else pos
        previous = row.average_score
    return rows
