"""Scoring of submitted multiple-choice answers.

A learner submits letters ("A", "B", ...). The answer key stores the correct
*value*, so every letter is resolved through that question's own option list
before comparing. Bad input never raises: it scores as wrong and is reported
in ``ScoreResult.warnings``.
"""

from __future__ import annotations

import string
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional


@dataclass(frozen=True)
class AnswerKeyItem:
    question_id: Any
    options: tuple
    correct_answer: str


@dataclass
class ScoreResult:
    percent: int
    correct: int
    total: int
    breakdown: List[Dict[str, Any]] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def round_half_up(numerator: int, denominator: int) -> int:
    """round(numerator / denominator) with .5 going up, for non-negative ints."""

    if denominator <= 0:
        return 0
    return (2 * int(numerator) + int(denominator)) // (2 * int(denominator))


def letter_to_index(letter: Any) -> Optional[int]:
    if not isinstance(letter, str):
        return None
    s = letter.strip().upper()
    if len(s) != 1 or s not in string.ascii_uppercase:
        return None
    return ord(s) - ord("A")


def index_to_letter(index: int) -> str:
    return string.ascii_uppercase[int(index)]


def resolve_option(letter: Any, options: Iterable[Any]) -> Optional[str]:
    opts = list(options or [])
    idx = letter_to_index(letter)
    if idx is None or idx >= len(opts):
        return None
    return opts[idx]


def key_item(question: Any) -> AnswerKeyItem:
    """Build a key item from an ORM ReviewQuestion or any object with the same fields."""

    if isinstance(question, AnswerKeyItem):
        return question
    if isinstance(question, Mapping):
        get = question.get
    else:
        def get(name, default=None):
            return getattr(question, name, default)
    qid = get("question_id", None)
    if qid is None:
        qid = get("id", None)
    return AnswerKeyItem(
        question_id=qid,
        options=tuple(get("options", None) or ()),
        correct_answer=str(get("correct_answer", "") or ""),
    )


def _by_question(response_map: Optional[Mapping[Any, Any]]) -> Dict[str, Any]:
    # Ids may arrive as ints or strings (JSON turns int keys into strings).
    return {str(k).strip(): v for k, v in dict(response_map or {}).items()}


def grade_answers(response_map: Optional[Mapping[Any, Any]], question_key: Iterable[Any]) -> ScoreResult:
    answers = _by_question(response_map)
    items = [key_item(q) for q in (question_key or [])]

    breakdown: List[Dict[str, Any]] = []
    warnings: List[str] = []
    correct = 0

    for item in items:
        letter = answers.get(str(item.question_id).strip())
        chosen: Optional[str] = None
        if letter is not None and str(letter).strip() != "":
            chosen = resolve_option(letter, item.options)
            if chosen is None:
                warnings.append(
                    f"question {item.question_id}: answer {letter!r} does not match any of {len(item.options)} options"
                )

        is_correct = chosen is not None and chosen == item.correct_answer
        if is_correct:
            correct += 1
        breakdown.append({
            "question_id": item.question_id,
            "submitted": letter,
            "submitted_value": chosen,
            "correct_answer": item.correct_answer,
            "is_correct": bool(is_correct),
        })

    total = len(items)
    if total == 0:
        warnings.append("empty answer key: no questions to score")
        return ScoreResult(percent=0, correct=0, total=0, breakdown=[], warnings=warnings)

    return ScoreResult(
        percent=round_half_up(correct * 100, total),
        correct=correct,
        total=total,
        breakdown=breakdown,
        warnings=warnings,
    )


def score(response_map: Optional[Mapping[Any, Any]], question_key: Iterable[Any]) -> int:
    return grade_answers(response_map, question_key).percent
