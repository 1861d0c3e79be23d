from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy.orm import Session

from tutorhub.core.exceptions import NotFoundError
from tutorhub.models.review import Review, ReviewQuestion
from tutorhub.services.scoring import ScoreResult, grade_answers, index_to_letter


def get_review(db: Session, review_id: int) -> Review:
    review = db.query(Review).filter(Review.id == int(review_id)).first()
    if not review:
        raise NotFoundError("Review not found", details={"review_id": int(review_id)})
    return review


def get_review_questions(db: Session, review_id: int) -> List[ReviewQuestion]:
    return (
        db.query(ReviewQuestion)
        .filter(ReviewQuestion.review_id == int(review_id))
        .order_by(ReviewQuestion.question_number.asc(), ReviewQuestion.id.asc())
        .all()
    )


def question_out(q: ReviewQuestion, *, reveal_answer: bool = False) -> Dict[str, Any]:
    options = list(q.options or [])
    out: Dict[str, Any] = {
        "id": int(q.id),
        "question_number": int(q.question_number or 0),
        "question_text": q.question_text,
        "options": [{"letter": index_to_letter(i), "value": v} for i, v in enumerate(options[:26])],
        "hint": q.hint,
    }
    if reveal_answer:
        out["correct_answer"] = q.correct_answer
        out["explanation"] = q.explanation
    return out


def reviewed_questions(
    questions: List[ReviewQuestion], answers: Optional[Mapping[Any, Any]]
) -> Tuple[ScoreResult, List[Dict[str, Any]]]:
    """Grade stored answers and pair each question with what was submitted."""

    graded = grade_answers(answers or {}, questions)
    by_id = {str(b["question_id"]): b for b in graded.breakdown}

    rows = []
    for q in questions:
        out = question_out(q, reveal_answer=True)
        b = by_id.get(str(q.id), {})
        out.update(
            submitted=b.get("submitted"),
            submitted_value=b.get("submitted_value"),
            is_correct=bool(b.get("is_correct")),
        )
        rows.append(out)
    return graded, rows
