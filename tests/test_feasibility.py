import itertools
import random

import pytest

from drawnames.engine import ExclusionModel, check_feasibility
from drawnames.engine.feasibility import maximum_matching, perfect_matching
from drawnames.errors import Infeasible, TooFewParticipants


def _brute_force_feasible(model: ExclusionModel) -> bool:
    people = model.participants
    return any(
        all(model.is_allowed(g, r) for g, r in zip(people, perm))
        for perm in itertools.permutations(people)
    )


def _random_model(rng: random.Random, n: int, density: float) -> ExclusionModel:
    model = ExclusionModel(range(n))
    for a, b in itertools.combinations(range(n), 2):
        if rng.random() < density:
            model.add_exclusion(a, b)
    return model


def test_partners_excluded_is_feasible():
    model = ExclusionModel("ABCD", [("A", "B")])
    result = check_feasibility(model)
    assert result.feasible
    assert result
    assert result.blocking == frozenset()


def test_participant_with_no_candidates_blocks():
    model = ExclusionModel("ABC", [("A", "B"), ("A", "C")])
    result = check_feasibility(model)
    assert not result.feasible
    assert result.blocking == {"A"}


def test_hall_violation_names_the_whole_group():
    # A, B and C all exclude each other, leaving two recipients for three givers.
    model = ExclusionModel("ABCDE", [("A", "B"), ("A", "C"), ("B", "C")])
    result = check_feasibility(model)
    assert not result.feasible
    assert result.blocking == {"A", "B", "C"}


def test_raise_for_status_carries_names():
    model = ExclusionModel([1, 2, 3], [(1, 2), (1, 3)])
    with pytest.raises(Infeasible) as info:
        check_feasibility(model).raise_for_status({1: "Ann", 2: "Ben", 3: "Cat"})
    assert info.value.blocking == {1}
    assert "Ann has no valid recipient left." == info.value.message
    assert info.value.to_response()["error"]["blocking_names"] == ["Ann"]


def test_too_few_participants():
    with pytest.raises(TooFewParticipants):
        check_feasibility(ExclusionModel("AB"))


def test_three_people_without_exclusions():
    assert check_feasibility(ExclusionModel("ABC")).feasible


def test_check_has_no_side_effects():
    model = ExclusionModel("ABCD", [("A", "B")])
    check_feasibility(model)
    assert model.pairs() == [("A", "B")]


def test_maximum_matching_is_a_matching():
    model = ExclusionModel("ABCDE", [("A", "B"), ("A", "C"), ("B", "C")])
    candidates = {g: model.candidates(g) for g in model.participants}
    matching = maximum_matching(model.participants, candidates, rng=random.Random(3))
    assert len(set(matching.values())) == len(matching)
    assert all(model.is_allowed(g, r) for g, r in matching.items())
    assert perfect_matching(model) is None


@pytest.mark.parametrize("n", [3, 4, 5, 6, 7])
def test_feasibility_matches_brute_force(n):
    rng = random.Random(1000 + n)
    for _ in range(40):
        model = _random_model(rng, n, density=rng.choice([0.2, 0.4, 0.6, 0.8]))
        result = check_feasibility(model)
        assert result.feasible == _brute_force_feasible(model)
        if result.feasible:
            assert perfect_matching(model) is not None
        else:
            # every reported set really is short of recipients
            reach = set()
            for g in result.blocking:
                reach.update(model.candidates(g))
            assert len(reach) < len(result.blocking)
