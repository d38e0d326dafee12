"""Turn orchestration: schedule, prompt, generate and record one statement."""

import asyncio
import logging
import random

from config.config_loader import PromptsConfig
from boardroom.context import DEFAULT_QUESTION_LIMIT, DEFAULT_WINDOW_SIZE, assemble_context
from boardroom.errors import GenerationFailure, NotFoundError
from boardroom.models import GenerationRequest, GenerationResult, Meeting, Participant, Statement, TurnDecision, TurnResult
from boardroom.prompts import compose_request
from boardroom.providers.base import AIProvider, ProviderError
from boardroom.recorder import StatementRecorder
from boardroom.scheduler import next_turn
from boardroom.store import MeetingStore

logger = logging.getLogger(__name__)


class TurnService:
    """Advances meetings one statement at a time.

    State is re-read from the store on every call. Calls for the same meeting
    are serialised by a per-meeting lock; across processes the recorder's
    statement-count check rejects a turn whose history went stale.
    """

    def __init__(
        self,
        store: MeetingStore,
        provider: AIProvider,
        prompts: PromptsConfig,
        *,
        rng: random.Random | None = None,
        context_window: int = DEFAULT_WINDOW_SIZE,
        question_window: int = DEFAULT_QUESTION_LIMIT,
        retries: int = 0,
    ) -> None:
        self._store = store
        self._provider = provider
        self._prompts = prompts
        self._rng = rng if rng is not None else random.Random()
        self._context_window = context_window
        self._question_window = question_window
        self._retries = retries
        self._recorder = StatementRecorder(store)
        self._locks: dict[str, asyncio.Lock] = {}

    def _load(self, meeting_id: str) -> tuple[Meeting, list[Participant], list[Statement]]:
        meeting = self._store.get_meeting(meeting_id)
        if meeting is None:
            raise NotFoundError("Meeting", meeting_id)
        participants = self._store.list_participants(meeting_id, active_only=True)
        statements = self._store.list_statements(meeting_id)
        return meeting, participants, statements

    def plan_turn(self, meeting_id: str) -> TurnDecision:
        """Preview the next scheduling decision without generating or writing."""
        meeting, participants, statements = self._load(meeting_id)
        return next_turn(meeting, participants, statements, self._rng)

    async def _generate(self, request: GenerationRequest) -> GenerationResult:
        """Call the provider, retrying only when the caller configured retries."""
        attempt = 1
        while True:
            try:
                return await self._provider.generate(request.prompt, request.max_tokens)
            except GenerationFailure as exc:
                if attempt > self._retries:
                    raise
                logger.warning(
                    "Generation attempt %d via %s failed, retrying: %s",
                    attempt, self._provider.name(), exc,
                )
                attempt += 1

    async def advance_turn(self, meeting_id: str) -> TurnResult:
        """Generate and record the next statement of a meeting.

        Raises:
            NotFoundError: If the meeting does not exist.
            InvalidStateError: If the meeting is not in an active status.
            NoParticipantsError: If no participant is active.
            GenerationFailure: If the provider fails; nothing is recorded.
            TurnConflictError: If another turn was recorded concurrently.
        """
        if self._store.get_meeting(meeting_id) is None:
            raise NotFoundError("Meeting", meeting_id)
        async with self._locks.setdefault(meeting_id, asyncio.Lock()):
            meeting, participants, statements = self._load(meeting_id)
            if meeting.is_closed:
                # Closed meetings never run another turn
                self._locks.pop(meeting_id, None)
            decision = next_turn(meeting, participants, statements, self._rng)

            # Inactive participants still name their earlier statements
            directors = {p.director_id: p.director for p in self._store.list_participants(meeting_id, active_only=False)}
            questions = self._store.list_questions(meeting_id, limit=self._question_window)
            context = assemble_context(
                statements,
                directors,
                questions,
                window_size=self._context_window,
                question_limit=self._question_window,
            )

            rebuttal_speaker: str | None = None
            if decision.responding_to is not None and decision.responding_to.director_id in directors:
                rebuttal_speaker = directors[decision.responding_to.director_id].name

            speaker = decision.participant.director
            request = compose_request(speaker, meeting, decision, context, self._prompts, rebuttal_speaker)

            logger.info(
                "Meeting %s: %s speaks (round %d, seq %d, %s, %s)",
                meeting_id,
                speaker.name,
                decision.round_number,
                decision.sequence_in_round,
                request.template,
                request.stance,
            )

            result = await self._generate(request)
            logger.info("%s answered in %.1fs, %s tokens", result.provider, result.latency_sec, result.token_count)
            content = result.content.strip()
            if not content:
                raise ProviderError(result.provider, "Generated statement is empty")

            answered = context.preempting_question.id if context.preempting_question else None
            statement = self._recorder.record(
                meeting_id,
                decision,
                content,
                expected_total=meeting.total_statements,
                tokens_used=result.output_tokens or 0,
                model=result.model,
                answered_question_id=answered,
            )

        return TurnResult(
            statement_id=statement.id,
            content=statement.content,
            director_id=speaker.id,
            director_name=speaker.name,
            director_title=speaker.title,
            round_number=statement.round_number,
            sequence_in_round=statement.sequence_in_round,
            is_rebuttal=decision.is_rebuttal,
            response_to=statement.response_to,
            answered_question_id=answered,
        )
