from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Hashable, Mapping, Sequence

from ..errors import Infeasible, TooFewParticipants
from .exclusions import ExclusionModel


MIN_PARTICIPANTS = 3


@dataclass(frozen=True)
class Feasibility:
    feasible: bool
    blocking: frozenset = field(default_factory=frozenset)

    def __bool__(self) -> bool:
        return self.feasible

    def raise_for_status(self, names: Mapping | None = None) -> None:
        if not self.feasible:
            raise Infeasible(self.blocking, names)


FEASIBLE = Feasibility(True)


def candidate_map(model: ExclusionModel) -> dict[Hashable, list]:
    return {g: model.candidates(g) for g in model.participants}


def maximum_matching(
    givers: Sequence,
    candidates: Mapping[Hashable, Sequence],
    rng: random.Random | None = None,
) -> dict:
    """
    Kuhn's augmenting-path matching, giver -> recipient.

    With ``rng`` the giver order and every candidate list are shuffled first,
    so repeated calls don't always land on the same matching.
    """
    order = list(givers)
    options = {g: list(candidates[g]) for g in order}
    if rng is not None:
        rng.shuffle(order)
        for g in order:
            rng.shuffle(options[g])

    owner: dict = {}

    def augment(g, visited: set) -> bool:
        for r in options[g]:
            if r in visited:
                continue
            visited.add(r)
            if r not in owner or augment(owner[r], visited):
                owner[r] = g
                return True
        return False

    for g in order:
        augment(g, set())

    return {g: r for r, g in owner.items()}


def perfect_matching(model: ExclusionModel, rng: random.Random | None = None) -> dict | None:
    matching = maximum_matching(model.participants, candidate_map(model), rng=rng)
    return matching if len(matching) == len(model) else None


def _neighbourhood(givers, candidates) -> set:
    reach = set()
    for g in givers:
        reach.update(candidates[g])
    return reach


def _violates_hall(givers, candidates) -> bool:
    return len(_neighbourhood(givers, candidates)) < len(givers)


def _alternating_reach(start, candidates, owner) -> list:
    # Givers reachable from an unmatched giver by alternating paths. In a
    # maximum matching every recipient they can reach is already taken.
    seen = [start]
    members = {start}
    stack = [start]
    while stack:
        g = stack.pop()
        for r in candidates[g]:
            h = owner.get(r)
            if h is not None and h not in members:
                members.add(h)
                seen.append(h)
                stack.append(h)
    return seen


def _shrink(givers: list, candidates) -> frozenset:
    current = list(givers)
    changed = True
    while changed:
        changed = False
        for g in list(current):
            trial = [x for x in current if x != g]
            if trial and _violates_hall(trial, candidates):
                current = trial
                changed = True
    return frozenset(current)


def check_feasibility(model: ExclusionModel) -> Feasibility:
    """
    Decide whether any valid assignment exists for ``model``.

    Infeasible results name the givers to fix: everyone with no candidate at
    all when there are such givers, otherwise an inclusion-minimal set of
    givers that together have fewer candidates than members (Hall's
    condition).
    """
    if len(model) < MIN_PARTICIPANTS:
        raise TooFewParticipants(len(model), MIN_PARTICIPANTS)

    candidates = candidate_map(model)
    empty = [g for g in model.participants if not candidates[g]]
    if empty:
        return Feasibility(False, frozenset(empty))

    matching = maximum_matching(model.participants, candidates)
    if len(matching) == len(model):
        return FEASIBLE

    owner = {r: g for g, r in matching.items()}
    witnesses = [
        _shrink(_alternating_reach(g, candidates, owner), candidates)
        for g in model.participants
        if g not in matching
    ]
    return Feasibility(False, min(witnesses, key=len))
