"""Pure dataclasses for the board meeting engine. No logic, no deps."""

from dataclasses import dataclass, field

# Meeting statuses
PREPARING = "preparing"
DISCUSSING = "discussing"
DEBATING = "debating"
COMPLETED = "completed"
CANCELLED = "cancelled"

ACTIVE_STATUSES = (DISCUSSING, DEBATING)
TERMINAL_STATUSES = (COMPLETED, CANCELLED)

# Discussion modes
ROUND_ROBIN = "round_robin"
DEBATE = "debate"
FOCUS = "focus"
FREE = "free"

DISCUSSION_MODES = (ROUND_ROBIN, DEBATE, FOCUS, FREE)

# User question statuses
PENDING = "pending"
ANSWERED = "answered"


@dataclass
class Director:
    id: str
    name: str
    title: str
    system_prompt: str     # persona background text
    era: str = ""
    speaking_style: str = ""
    personality_traits: list[str] = field(default_factory=list)
    core_beliefs: list[str] = field(default_factory=list)
    expertise_areas: list[str] = field(default_factory=list)
    avatar_url: str | None = None
    is_active: bool = True


@dataclass
class Meeting:
    id: str
    title: str
    topic: str
    status: str = PREPARING
    discussion_mode: str = ROUND_ROBIN
    current_round: int = 0
    max_rounds: int = 10
    max_participants: int = 8
    total_statements: int = 0
    total_participants: int = 0
    description: str = ""
    started_at: str | None = None
    created_at: str = ""
    updated_at: str = ""

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def is_closed(self) -> bool:
        return self.status in TERMINAL_STATUSES


@dataclass
class Participant:
    meeting_id: str
    director: Director
    join_order: int        # 1-based, fixed for the lifetime of the meeting
    is_active: bool = True
    statements_count: int = 0
    last_statement_at: str | None = None

    @property
    def director_id(self) -> str:
        return self.director.id


@dataclass
class Statement:
    id: str
    meeting_id: str
    director_id: str
    round_number: int
    sequence_in_round: int
    content: str
    response_to: str | None = None   # id of the statement being rebutted
    tokens_used: int = 0
    model: str = ""
    created_at: str = ""


@dataclass
class UserQuestion:
    id: str
    meeting_id: str
    question: str
    asker_name: str = "User"
    question_type: str = "general"
    status: str = PENDING
    created_at: str = ""


@dataclass
class QuestionResponse:
    id: str
    question_id: str
    director_id: str
    content: str
    response_order: int
    tokens_used: int = 0


@dataclass
class TurnDecision:
    participant: Participant
    round_number: int
    sequence_in_round: int
    is_rebuttal: bool = False
    responding_to: Statement | None = None


@dataclass
class ContextLine:
    speaker: str
    content: str


@dataclass
class ConversationContext:
    window: list[ContextLine] = field(default_factory=list)
    preempting_question: UserQuestion | None = None

    @property
    def is_preempted(self) -> bool:
        return self.preempting_question is not None

    def transcript(self) -> str:
        return "\n\n".join(f"{line.speaker}: {line.content}" for line in self.window)


@dataclass
class GenerationRequest:
    prompt: str
    max_tokens: int
    template: str          # "statement" or "question_response"
    stance: str            # "rebuttal" or "assertion"


@dataclass
class GenerationResult:
    provider: str
    model: str
    content: str
    latency_sec: float
    input_tokens: int | None = None
    output_tokens: int | None = None

    @property
    def token_count(self) -> int | None:
        if self.input_tokens is None and self.output_tokens is None:
            return None
        return (self.input_tokens or 0) + (self.output_tokens or 0)


@dataclass
class TurnResult:
    statement_id: str
    content: str
    director_id: str
    director_name: str
    director_title: str
    round_number: int
    sequence_in_round: int
    is_rebuttal: bool = False
    response_to: str | None = None
    answered_question_id: str | None = None

    @property
    def director(self) -> dict[str, str]:
        return {"id": self.director_id, "name": self.director_name, "title": self.director_title}


@dataclass
class StatementAnalysis:
    keywords: list[str]
    sentiment: str          # "positive", "neutral" or "negative"
    highlight_quote: str
    theme_color: str
    category: str


@dataclass
class StatementCard:
    statement: Statement
    director: Director
    meeting_title: str
    meeting_topic: str
    analysis: StatementAnalysis
