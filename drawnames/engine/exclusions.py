from __future__ import annotations

from typing import Hashable, Iterable

from ..errors import InvalidParticipant


ADD = "add"
REMOVE = "remove"


class ExclusionModel:
    """
    Participants plus the symmetric "must not draw each other" relation.

    Self-exclusion is structural: it is never stored and can't be added.
    """

    def __init__(self, participant_ids: Iterable[Hashable], exclusions: Iterable[tuple] = ()):
        self._participants: tuple = tuple(dict.fromkeys(participant_ids))
        self._excluded: dict[Hashable, set] = {p: set() for p in self._participants}
        for a, b in exclusions:
            self.add_exclusion(a, b)

    @property
    def participants(self) -> tuple:
        return self._participants

    def __len__(self) -> int:
        return len(self._participants)

    def __contains__(self, participant_id) -> bool:
        return participant_id in self._excluded

    def _require(self, *participant_ids) -> None:
        for pid in participant_ids:
            if pid not in self._excluded:
                raise InvalidParticipant(f"Unknown participant: {pid!r}")

    def add_exclusion(self, a, b) -> None:
        self._require(a, b)
        if a == b:
            raise InvalidParticipant(f"Participant {a!r} cannot exclude themselves.")
        self._excluded[a].add(b)
        self._excluded[b].add(a)

    def remove_exclusion(self, a, b) -> None:
        self._require(a, b)
        self._excluded[a].discard(b)
        self._excluded[b].discard(a)

    def apply_edits(self, edits: Iterable[tuple]) -> None:
        """
        Apply ``(op, a, b)`` edits where op is "add" or "remove".

        All-or-nothing: on the first bad edit the model is left untouched.
        """
        staged = {p: set(ex) for p, ex in self._excluded.items()}
        try:
            for op, a, b in edits:
                if op == ADD:
                    self.add_exclusion(a, b)
                elif op == REMOVE:
                    self.remove_exclusion(a, b)
                else:
                    raise InvalidParticipant(f"Unknown exclusion edit: {op!r}")
        except InvalidParticipant:
            self._excluded = staged
            raise

    def exclusions(self, participant_id) -> frozenset:
        self._require(participant_id)
        return frozenset(self._excluded[participant_id])

    def candidates(self, giver) -> list:
        """Allowed recipients for ``giver`` in participant order."""
        self._require(giver)
        excluded = self._excluded[giver]
        return [r for r in self._participants if r != giver and r not in excluded]

    def is_allowed(self, giver, recipient) -> bool:
        return giver != recipient and recipient not in self._excluded.get(giver, ())

    def remaining_candidates(self, participant_id) -> int:
        self._require(participant_id)
        return len(self._participants) - 1 - len(self._excluded[participant_id])

    def under_constrained_margin(self, margin: int = 2) -> list:
        # Advisory only; the engine never relies on this margin.
        return [p for p in self._participants if self.remaining_candidates(p) < margin]

    def pairs(self) -> list[tuple]:
        """Every exclusion once, as ``(a, b)`` with ``a`` listed before ``b``."""
        order = {p: i for i, p in enumerate(self._participants)}
        seen = []
        for a in self._participants:
            for b in sorted(self._excluded[a], key=order.__getitem__):
                if order[a] < order[b]:
                    seen.append((a, b))
        return seen
