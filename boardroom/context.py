"""Conversation window and user-question preemption for the next turn."""

import logging
from collections.abc import Mapping

from boardroom.models import PENDING, ContextLine, ConversationContext, Director, Statement, UserQuestion

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = 5
DEFAULT_QUESTION_LIMIT = 3

_UNKNOWN_SPEAKER = "Unknown"


def assemble_context(
    statements: list[Statement],
    directors: Mapping[str, Director],
    questions: list[UserQuestion],
    window_size: int = DEFAULT_WINDOW_SIZE,
    question_limit: int = DEFAULT_QUESTION_LIMIT,
) -> ConversationContext:
    """Build the context a persona sees before speaking.

    Args:
        statements: Statement history, newest first.
        directors: Directors by id, used to name each speaker.
        questions: User questions of the meeting, newest first.
        window_size: How many recent statements to keep.
        question_limit: How many of the latest questions to inspect.

    Returns:
        ConversationContext with the window in chronological order and the
        newest pending question among the latest ``question_limit``, if any.
        The question only reframes the prompt; it never changes who speaks.
    """
    recent = list(reversed(statements[:window_size]))
    window = [
        ContextLine(
            speaker=directors[s.director_id].name if s.director_id in directors else _UNKNOWN_SPEAKER,
            content=s.content,
        )
        for s in recent
    ]

    preempting = next((q for q in questions[:question_limit] if q.status == PENDING), None)
    if preempting is not None:
        logger.debug("Pending question %s preempts the next turn", preempting.id)

    return ConversationContext(window=window, preempting_question=preempting)
