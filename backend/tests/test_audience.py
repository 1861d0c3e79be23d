import random
from types import SimpleNamespace

import pytest

from tutorhub.services.audience import (
    applies,
    audience_details,
    audience_target,
    is_known_audience_kind,
    parse_id_set,
)


def _assessment(kind, classes=(), groups=(), learners=(), subject="Math"):
    return SimpleNamespace(
        audience_kind=kind,
        target_class_ids=list(classes),
        target_group_ids=list(groups),
        target_learner_ids=list(learners),
        subject=subject,
    )


def test_class_audience_applies_when_classrooms_intersect():
    a = _assessment("class", classes=[5, 9])
    assert applies(a, 42, [9, 12], []) is True
    assert applies(a, 42, [1, 2], []) is False


def test_group_audience_ignores_class_membership():
    a = _assessment("group", classes=[9], groups=[3])
    assert applies(a, 42, [9], []) is False
    assert applies(a, 42, [], [3, 4]) is True


def test_individual_audience_matches_learner_id_only():
    a = _assessment("individual", classes=[1], learners=[7, 8])
    assert applies(a, 7, [], []) is True
    assert applies(a, 9, [1], []) is False


def test_unknown_kind_never_applies():
    a = _assessment("school", classes=[1], groups=[1], learners=[1])
    assert is_known_audience_kind("school") is False
    assert applies(a, 1, [1], [1]) is False


def test_kind_is_case_insensitive():
    a = _assessment(" Class ", classes=[2])
    assert applies(a, 1, [2], []) is True


def test_parse_id_set_accepts_json_text_and_drops_junk():
    assert parse_id_set("[1, 2, \"3\"]") == frozenset({1, 2, 3})
    assert parse_id_set([1, "x", None, True, 4.0]) == frozenset({1, 4})
    assert parse_id_set("not json") == frozenset()
    assert parse_id_set(None) == frozenset()
    assert parse_id_set(5) == frozenset({5})


def test_target_holds_only_ints():
    t = audience_target(_assessment("group", groups="[10, 11]"))
    assert t.kind == "group"
    assert t.members_for_kind() == frozenset({10, 11})


def test_audience_details_labels():
    assert audience_details(_assessment("individual", learners=[1, 2, 3])) == "Selected learners (3)"
    assert audience_details(_assessment("group", groups=[1])) == "Selected groups (1)"
    assert audience_details(_assessment("class", classes=[1])) == "Math Class"
    assert audience_details(_assessment("class", classes=[1, 2])) == "Math Classes"


@pytest.mark.parametrize("seed", range(20))
def test_applies_matches_set_semantics_over_random_sets(seed):
    rng = random.Random(seed)

    def some_ids():
        return set(rng.sample(range(1, 30), rng.randint(0, 6)))

    targets_c, targets_g, targets_l = some_ids(), some_ids(), some_ids()
    learner = rng.randint(1, 29)
    classes, groups = some_ids(), some_ids()

    assert applies(_assessment("class", classes=targets_c), learner, classes, groups) == bool(targets_c & classes)
    assert applies(_assessment("group", groups=targets_g), learner, classes, groups) == bool(targets_g & groups)
    assert applies(_assessment("individual", learners=targets_l), learner, classes, groups) == (learner in targets_l)
