from __future__ import annotations

import logging
import random
from collections.abc import Mapping
from typing import Iterator

from ..errors import GenerationExhausted
from .exclusions import ExclusionModel
from .feasibility import check_feasibility, perfect_matching


logger = logging.getLogger(__name__)

REJECTION_ATTEMPTS_PER_PARTICIPANT = 50
MIN_REJECTION_ATTEMPTS = 200
SWAP_ROUNDS_PER_PARTICIPANT = 100
MIN_SWAP_ROUNDS = 1000


class Assignment(Mapping):
    """Read-only giver -> recipient mapping."""

    __slots__ = ("_recipients",)

    def __init__(self, recipients: Mapping):
        self._recipients = dict(recipients)

    def __getitem__(self, giver):
        return self._recipients[giver]

    def __iter__(self) -> Iterator:
        return iter(self._recipients)

    def __len__(self) -> int:
        return len(self._recipients)

    def __repr__(self) -> str:
        return f"Assignment({self._recipients!r})"

    def recipient_of(self, giver):
        return self._recipients[giver]

    def problems(self, model: ExclusionModel) -> list[str]:
        """Every way this assignment breaks the draw rules for ``model``."""
        found = []
        givers = set(model.participants)
        if set(self._recipients) != givers:
            found.append("givers do not match the participant set")
        recipients = list(self._recipients.values())
        if len(set(recipients)) != len(recipients) or set(recipients) != givers:
            found.append("recipients are not a permutation of the participants")
        for giver, recipient in self._recipients.items():
            if giver == recipient:
                found.append(f"{giver!r} draws themselves")
            elif not model.is_allowed(giver, recipient):
                found.append(f"{giver!r} draws excluded {recipient!r}")
        return found


def _rejection_sample(model: ExclusionModel, rng: random.Random, attempts: int) -> dict | None:
    givers = list(model.participants)
    recipients = givers[:]
    for _ in range(attempts):
        rng.shuffle(recipients)
        if all(model.is_allowed(g, r) for g, r in zip(givers, recipients)):
            return dict(zip(givers, recipients))
    return None


def _swap_walk(model: ExclusionModel, matching: dict, rng: random.Random, rounds: int) -> dict:
    # Random transpositions of two givers' recipients. A swap is kept only
    # when both new edges are allowed, so every intermediate state is valid.
    givers = list(matching)
    result = dict(matching)
    for _ in range(rounds):
        a, b = rng.sample(givers, 2)
        ra, rb = result[a], result[b]
        if model.is_allowed(a, rb) and model.is_allowed(b, ra):
            result[a], result[b] = rb, ra
    return result


def generate_assignment(
    model: ExclusionModel,
    rng: random.Random | None = None,
    rejection_attempts: int | None = None,
    swap_rounds: int | None = None,
) -> Assignment:
    """
    Draw one uniformly random valid assignment for ``model``.

    Raises Infeasible (via the feasibility check) when no assignment exists.
    Rejection sampling is tried first; dense exclusion graphs fall back to a
    randomized matching followed by a random swap walk.
    """
    check_feasibility(model).raise_for_status()

    rng = rng or random.SystemRandom()
    n = len(model)
    if rejection_attempts is None:
        rejection_attempts = max(MIN_REJECTION_ATTEMPTS, REJECTION_ATTEMPTS_PER_PARTICIPANT * n)
    if swap_rounds is None:
        swap_rounds = max(MIN_SWAP_ROUNDS, SWAP_ROUNDS_PER_PARTICIPANT * n)

    recipients = _rejection_sample(model, rng, rejection_attempts)
    if recipients is not None:
        logger.debug("Assignment for %d participants found by rejection sampling", n)
    else:
        logger.info(
            "Rejection sampling gave up after %d attempts for %d participants; using swap walk",
            rejection_attempts, n,
        )
        matching = perfect_matching(model, rng=rng)
        if matching is None:
            raise GenerationExhausted("Feasible exclusions produced no perfect matching.")
        recipients = _swap_walk(model, matching, rng, swap_rounds)

    assignment = Assignment(recipients)
    problems = assignment.problems(model)
    if problems:
        raise GenerationExhausted("Generated assignment is invalid: " + "; ".join(problems))
    return assignment
