"""Meeting lifecycle and user questions."""

import asyncio
import logging
import uuid

from config.config_loader import PromptsConfig
from boardroom.errors import (
    GenerationFailure,
    InvalidStateError,
    NoParticipantsError,
    NotFoundError,
    ValidationError,
)
from boardroom.models import (
    CANCELLED,
    COMPLETED,
    DISCUSSING,
    DISCUSSION_MODES,
    PREPARING,
    ROUND_ROBIN,
    GenerationResult,
    Meeting,
    Participant,
    QuestionResponse,
    UserQuestion,
)
from boardroom.providers.base import AIProvider
from boardroom.store import MeetingStore, utc_now

logger = logging.getLogger(__name__)

DEFAULT_ASKER = "User"


class MeetingService:
    """Create, start and end meetings; take and answer user questions."""

    def __init__(
        self,
        store: MeetingStore,
        provider: AIProvider | None = None,
        prompts: PromptsConfig | None = None,
    ) -> None:
        self._store = store
        self._provider = provider
        self._prompts = prompts

    def get_meeting(self, meeting_id: str) -> Meeting:
        meeting = self._store.get_meeting(meeting_id)
        if meeting is None:
            raise NotFoundError("Meeting", meeting_id)
        return meeting

    def create_meeting(
        self,
        title: str,
        topic: str,
        director_ids: list[str],
        *,
        description: str = "",
        discussion_mode: str = ROUND_ROBIN,
        max_rounds: int = 10,
        max_participants: int = 8,
    ) -> Meeting:
        """Create a meeting in ``preparing`` status.

        The order of ``director_ids`` becomes the roster's join_order.

        Raises:
            ValidationError: Missing title/topic/directors, unknown mode, bad limits.
            NotFoundError: A director id does not exist.
        """
        if not title or not topic or not director_ids:
            raise ValidationError("Title, topic and director_ids are required")
        if discussion_mode not in DISCUSSION_MODES:
            raise ValidationError(
                f"Unknown discussion mode '{discussion_mode}', expected one of: {', '.join(DISCUSSION_MODES)}"
            )
        if max_rounds < 1:
            raise ValidationError("max_rounds must be at least 1")
        if len(set(director_ids)) != len(director_ids):
            raise ValidationError("A director can join a meeting only once")
        if len(director_ids) > max_participants:
            raise ValidationError(f"Too many directors: {len(director_ids)} > {max_participants}")
        for director_id in director_ids:
            if self._store.get_director(director_id) is None:
                raise NotFoundError("Director", director_id)

        meeting = Meeting(
            id=str(uuid.uuid4()),
            title=title,
            topic=topic,
            description=description,
            status=PREPARING,
            discussion_mode=discussion_mode,
            current_round=0,
            max_rounds=max_rounds,
            max_participants=max_participants,
        )
        self._store.create_meeting(meeting, director_ids)
        logger.info("Created meeting %s (%s, %d directors)", meeting.id, discussion_mode, len(director_ids))
        return meeting

    def start_meeting(self, meeting_id: str) -> Meeting:
        """Move a preparing meeting to ``discussing`` and open round 1."""
        meeting = self.get_meeting(meeting_id)
        if meeting.status != PREPARING:
            raise InvalidStateError(f"Meeting {meeting_id} cannot be started (status: {meeting.status})")
        self._store.update_meeting_status(meeting_id, DISCUSSING, current_round=1, started_at=utc_now())
        logger.info("Meeting %s started", meeting_id)
        return self.get_meeting(meeting_id)

    def end_meeting(self, meeting_id: str) -> Meeting:
        meeting = self.get_meeting(meeting_id)
        if not meeting.is_active:
            raise InvalidStateError(f"Meeting {meeting_id} is not active (status: {meeting.status})")
        self._store.update_meeting_status(meeting_id, COMPLETED)
        logger.info("Meeting %s completed after %d statements", meeting_id, meeting.total_statements)
        return self.get_meeting(meeting_id)

    def cancel_meeting(self, meeting_id: str) -> Meeting:
        """Abandon a meeting that is still preparing or under way."""
        meeting = self.get_meeting(meeting_id)
        if meeting.is_closed:
            raise InvalidStateError(f"Meeting {meeting_id} is already closed (status: {meeting.status})")
        self._store.update_meeting_status(meeting_id, CANCELLED)
        logger.info("Meeting %s cancelled", meeting_id)
        return self.get_meeting(meeting_id)

    def set_participant_active(self, meeting_id: str, director_id: str, is_active: bool) -> None:
        """Include or exclude a participant from scheduling; join_order is kept."""
        self.get_meeting(meeting_id)
        if not self._store.set_participant_active(meeting_id, director_id, is_active):
            raise NotFoundError("Participant", f"{meeting_id}/{director_id}")

    def ask_question(
        self,
        meeting_id: str,
        question: str,
        asker_name: str | None = None,
        question_type: str | None = None,
    ) -> UserQuestion:
        """Store a pending question; the next turn will be framed as its answer."""
        if not question or not question.strip():
            raise ValidationError("Question is required")
        self.get_meeting(meeting_id)
        user_question = UserQuestion(
            id=str(uuid.uuid4()),
            meeting_id=meeting_id,
            question=question.strip(),
            asker_name=asker_name or DEFAULT_ASKER,
            question_type=question_type or "general",
        )
        self._store.add_question(user_question)
        logger.info("Question %s added to meeting %s", user_question.id, meeting_id)
        return user_question

    async def _answer(self, participant: Participant, question: UserQuestion) -> GenerationResult | GenerationFailure:
        """Ask one director; never raises, failures are returned."""
        director = participant.director
        prompt = self._prompts.question_answer.format(
            name=director.name,
            title=director.title,
            background=director.system_prompt,
            question=question.question,
        )
        try:
            return await self._provider.generate(prompt, self._prompts.answer_max_tokens)
        except GenerationFailure as exc:
            logger.warning("Director %s could not answer question %s: %s", director.name, question.id, exc)
            return exc

    async def respond_to_question(self, meeting_id: str, question_id: str) -> list[QuestionResponse]:
        """Have every active director answer a question, then mark it answered.

        Directors whose generation fails are skipped.

        Raises:
            NotFoundError: Unknown question for this meeting.
            NoParticipantsError: No active participants.
            GenerationFailure: Every director failed; the question stays pending.
        """
        if self._provider is None or self._prompts is None:
            raise InvalidStateError("Answering questions needs a provider and prompts")

        question = self._store.get_question(meeting_id, question_id)
        if question is None:
            raise NotFoundError("Question", question_id)

        participants = self._store.list_participants(meeting_id, active_only=True)
        if not participants:
            raise NoParticipantsError(f"Meeting {meeting_id} has no active participants")

        results = await asyncio.gather(*(self._answer(p, question) for p in participants))

        responses: list[QuestionResponse] = []
        for order, (participant, result) in enumerate(zip(participants, results), start=1):
            if isinstance(result, GenerationResult) and result.content.strip():
                responses.append(
                    QuestionResponse(
                        id=str(uuid.uuid4()),
                        question_id=question_id,
                        director_id=participant.director_id,
                        content=result.content.strip(),
                        response_order=order,
                        tokens_used=result.output_tokens or 0,
                    )
                )

        if not responses:
            raise GenerationFailure(f"No director could answer question {question_id}")

        self._store.add_question_responses(question_id, responses)
        logger.info("Question %s answered by %d/%d directors", question_id, len(responses), len(participants))
        return responses
