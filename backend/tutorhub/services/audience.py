"""Audience resolution: does an assessment apply to a given learner?

Pure set logic over an assessment's targeting mode and the learner's
classroom/group memberships. Nothing here touches the database.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, FrozenSet, Iterable

from tutorhub.models.assessment import AudienceKind


_KNOWN_KINDS = {k.value for k in AudienceKind}


@dataclass(frozen=True)
class AudienceTarget:
    kind: str
    class_ids: FrozenSet[int] = frozenset()
    group_ids: FrozenSet[int] = frozenset()
    learner_ids: FrozenSet[int] = frozenset()

    def members_for_kind(self) -> FrozenSet[int]:
        if self.kind == AudienceKind.class_.value:
            return self.class_ids
        if self.kind == AudienceKind.group.value:
            return self.group_ids
        if self.kind == AudienceKind.individual.value:
            return self.learner_ids
        return frozenset()


def normalize_kind(kind: Any) -> str:
    if isinstance(kind, AudienceKind):
        return kind.value
    return str(kind or "").strip().lower()


def is_known_audience_kind(kind: Any) -> bool:
    return normalize_kind(kind) in _KNOWN_KINDS


def parse_id_set(raw: Any) -> FrozenSet[int]:
    """Coerce a stored membership list into a set of ints.

    Accepts lists/sets/tuples or a JSON-encoded list (older rows stored the
    list as text). Entries that are not integers are dropped.
    """

    if raw is None:
        return frozenset()
    if isinstance(raw, str):
        s = raw.strip()
        if not s:
            return frozenset()
        try:
            raw = json.loads(s)
        except ValueError:
            return frozenset()
    if isinstance(raw, (int, str)):
        raw = [raw]
    if not isinstance(raw, Iterable):
        return frozenset()

    out = set()
    for v in raw:
        if isinstance(v, bool):
            continue
        try:
            out.add(int(v))
        except (TypeError, ValueError):
            continue
    return frozenset(out)


def audience_target(assessment: Any) -> AudienceTarget:
    """Build the typed target of an assessment row (ORM object or namespace)."""

    return AudienceTarget(
        kind=normalize_kind(getattr(assessment, "audience_kind", None)),
        class_ids=parse_id_set(getattr(assessment, "target_class_ids", None)),
        group_ids=parse_id_set(getattr(assessment, "target_group_ids", None)),
        learner_ids=parse_id_set(getattr(assessment, "target_learner_ids", None)),
    )


def target_applies(
    target: AudienceTarget,
    learner_id: int,
    learner_classroom_ids: Iterable[int],
    learner_group_ids: Iterable[int],
) -> bool:
    if target.kind == AudienceKind.class_.value:
        return not target.class_ids.isdisjoint(parse_id_set(list(learner_classroom_ids)))
    if target.kind == AudienceKind.group.value:
        return not target.group_ids.isdisjoint(parse_id_set(list(learner_group_ids)))
    if target.kind == AudienceKind.individual.value:
        try:
            return int(learner_id) in target.learner_ids
        except (TypeError, ValueError):
            return False
    # Unknown kind never matches; the caller reports it.
    return False


def applies(
    assessment: Any,
    learner_id: int,
    learner_classroom_ids: Iterable[int],
    learner_group_ids: Iterable[int],
) -> bool:
    return target_applies(audience_target(assessment), learner_id, learner_classroom_ids, learner_group_ids)


def audience_label(kind: Any) -> str:
    k = normalize_kind(kind)
    return {"class": "Class", "group": "Group", "individual": "Individual"}.get(k, "Unknown")


def audience_details(assessment: Any) -> str:
    """Short teacher-facing description of who an assessment targets."""

    target = audience_target(assessment)
    if target.kind == AudienceKind.individual.value:
        return f"Selected learners ({len(target.learner_ids)})"
    if target.kind == AudienceKind.group.value:
        return f"Selected groups ({len(target.group_ids)})"
    if target.kind == AudienceKind.class_.value:
        n = len(target.class_ids) or 1
        subject = str(getattr(assessment, "subject", "") or "").strip()
        label = "Classes" if n > 1 else "Class"
        return f"{subject} {label}".strip()
    return "Unknown audience"
