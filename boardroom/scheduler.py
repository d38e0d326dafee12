"""Speaker scheduling: decide who speaks next, in which round and position.

Each discussion mode is a :class:`TurnStrategy`. Strategies are pure: they
see the meeting, the active roster in ``join_order`` and the statement
history newest first, and return a :class:`TurnDecision`. Nothing is cached
between calls, so the same inputs always give the same decision (``free``
mode draws from the injected ``random.Random``).
"""

import logging
import random
from abc import ABC, abstractmethod

from boardroom.errors import InvalidStateError, NoParticipantsError
from boardroom.models import (
    DEBATE,
    FOCUS,
    FREE,
    ROUND_ROBIN,
    Meeting,
    Participant,
    Statement,
    TurnDecision,
)

logger = logging.getLogger(__name__)

# Free mode starts a new round after this many turns per participant
FREE_ROUND_FACTOR = 1.5


def _current_round_statements(meeting: Meeting, statements: list[Statement]) -> list[Statement]:
    return [s for s in statements if s.round_number == meeting.current_round]


def _spoken_ids(round_statements: list[Statement]) -> set[str]:
    return {s.director_id for s in round_statements}


class TurnStrategy(ABC):
    """Turn order policy for one discussion mode."""

    mode: str = ""

    @abstractmethod
    def next_turn(
        self,
        meeting: Meeting,
        participants: list[Participant],
        statements: list[Statement],
    ) -> TurnDecision:
        """Compute the next turn.

        Args:
            meeting: Meeting in an active status.
            participants: Non-empty active roster ordered by join_order.
            statements: Full statement history, newest first.
        """
        ...

    @staticmethod
    def _new_round(meeting: Meeting, participant: Participant) -> TurnDecision:
        return TurnDecision(participant=participant, round_number=meeting.current_round + 1, sequence_in_round=1)


class RoundRobinStrategy(TurnStrategy):
    """Strict roster order; a round is full once every participant spoke."""

    mode = ROUND_ROBIN

    def next_turn(self, meeting, participants, statements):
        if not statements:
            return TurnDecision(participant=participants[0], round_number=meeting.current_round, sequence_in_round=1)

        current = _current_round_statements(meeting, statements)
        if len(current) >= len(participants):
            return self._new_round(meeting, participants[0])

        return TurnDecision(
            participant=participants[len(current) % len(participants)],
            round_number=meeting.current_round,
            sequence_in_round=len(current) + 1,
        )


class DebateStrategy(TurnStrategy):
    """Two sides by roster parity: even index is pro, odd index is con.

    After a statement, the first opposing participant who has not spoken
    this round rebuts it. When the other side is exhausted, the next
    unspoken participant of the same side continues without a rebuttal.
    """

    mode = DEBATE

    def next_turn(self, meeting, participants, statements):
        if not statements:
            return TurnDecision(participant=participants[0], round_number=meeting.current_round, sequence_in_round=1)

        current = _current_round_statements(meeting, statements)
        if len(current) >= len(participants):
            return self._new_round(meeting, participants[0])

        last = statements[0]
        last_index = next(
            (i for i, p in enumerate(participants) if p.director_id == last.director_id),
            -1,
        )
        # An author who left the active roster (-1) counts as con
        last_is_pro = last_index >= 0 and last_index % 2 == 0
        spoken = _spoken_ids(current)
        sequence = len(current) + 1

        opponents = [
            p for i, p in enumerate(participants)
            if p.director_id not in spoken and (i % 2 == 1) == last_is_pro
        ]
        if opponents:
            return TurnDecision(
                participant=opponents[0],
                round_number=meeting.current_round,
                sequence_in_round=sequence,
                is_rebuttal=True,
                responding_to=last,
            )

        same_side = [
            p for i, p in enumerate(participants)
            if p.director_id not in spoken and (i % 2 == 0) == last_is_pro
        ]
        return TurnDecision(
            participant=same_side[0] if same_side else participants[0],
            round_number=meeting.current_round,
            sequence_in_round=sequence,
        )


class FocusStrategy(TurnStrategy):
    """Everyone speaks once per round; a new round opens with the quietest voice."""

    mode = FOCUS

    def next_turn(self, meeting, participants, statements):
        if not statements:
            return TurnDecision(participant=participants[0], round_number=meeting.current_round, sequence_in_round=1)

        current = _current_round_statements(meeting, statements)
        if len(current) >= len(participants):
            totals = {p.director_id: 0 for p in participants}
            for s in statements:
                if s.director_id in totals:
                    totals[s.director_id] += 1
            # sorted() is stable, so equal counts keep roster order
            quietest = sorted(participants, key=lambda p: totals[p.director_id])[0]
            return self._new_round(meeting, quietest)

        spoken = _spoken_ids(current)
        unspoken = [p for p in participants if p.director_id not in spoken]
        return TurnDecision(
            participant=unspoken[0] if unspoken else participants[0],
            round_number=meeting.current_round,
            sequence_in_round=len(current) + 1,
        )


class FreeStrategy(TurnStrategy):
    """Random pick among the least active speakers of the recent window."""

    mode = FREE

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng if rng is not None else random.Random()

    @staticmethod
    def recent_counts(participants: list[Participant], statements: list[Statement]) -> dict[str, int]:
        """Appearances of each participant among the latest ``min(N, total)`` statements."""
        recent = statements[: min(len(participants), len(statements))]
        counts = {p.director_id: 0 for p in participants}
        for s in recent:
            if s.director_id in counts:
                counts[s.director_id] += 1
        return counts

    def next_turn(self, meeting, participants, statements):
        counts = self.recent_counts(participants, statements)
        lowest = min(counts.values())
        candidates = [p for p in participants if counts[p.director_id] == lowest]
        chosen = self._rng.choice(candidates)

        current = _current_round_statements(meeting, statements)
        if len(current) >= len(participants) * FREE_ROUND_FACTOR:
            return self._new_round(meeting, chosen)
        return TurnDecision(
            participant=chosen,
            round_number=meeting.current_round,
            sequence_in_round=len(current) + 1,
        )


STRATEGIES: dict[str, type[TurnStrategy]] = {
    cls.mode: cls for cls in (RoundRobinStrategy, DebateStrategy, FocusStrategy, FreeStrategy)
}


def strategy_for(mode: str, rng: random.Random | None = None) -> TurnStrategy:
    """Return the strategy for ``mode``; unknown modes behave as round robin."""
    strategy_cls = STRATEGIES.get(mode)
    if strategy_cls is None:
        logger.warning("Unknown discussion mode '%s', falling back to round robin", mode)
        return RoundRobinStrategy()
    if strategy_cls is FreeStrategy:
        return FreeStrategy(rng)
    return strategy_cls()


def next_turn(
    meeting: Meeting,
    participants: list[Participant],
    statements: list[Statement],
    rng: random.Random | None = None,
) -> TurnDecision:
    """Decide the next speaker, round, sequence and rebuttal link.

    Raises:
        InvalidStateError: If the meeting is not in an active discussion status.
        NoParticipantsError: If the active roster is empty.
    """
    if not meeting.is_active:
        raise InvalidStateError(f"Meeting {meeting.id} is not active (status: {meeting.status})")
    if not participants:
        raise NoParticipantsError(f"Meeting {meeting.id} has no active participants")

    decision = strategy_for(meeting.discussion_mode, rng).next_turn(meeting, participants, statements)
    logger.debug(
        "Scheduled %s for round %d seq %d (mode=%s, rebuttal=%s)",
        decision.participant.director.name,
        decision.round_number,
        decision.sequence_in_round,
        meeting.discussion_mode,
        decision.is_rebuttal,
    )
    return decision
