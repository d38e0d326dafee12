"""Shared pytest fixtures."""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from config.config_loader import AppConfig, DefaultsConfig, ModelConfig, PromptsConfig
from boardroom.meetings import MeetingService
from boardroom.models import (
    DISCUSSING,
    GenerationResult,
    Director,
    Meeting,
    Participant,
    Statement,
    TurnDecision,
)
from boardroom.providers.base import AIProvider
from boardroom.store import MeetingStore


@pytest.fixture
def sample_model_config() -> ModelConfig:
    return ModelConfig(
        name="test_model",
        sdk="anthropic",
        model="test-model-1",
        api_key_env="TEST_API_KEY",
        timeout_sec=30,
        max_tokens=1024,
        base_url=None,
    )


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        statement=(
            "STATEMENT {name}, {title}. {background}\n"
            "Topic: {topic}\nMode: {mode} - {mode_instruction}\n"
            "Discussion:\n{context}\n{mode_context}"
        ),
        question_response=(
            "QUESTION {name}, {title}. {background}\n"
            "Topic: {topic}\nMode: {mode} - {mode_instruction}\n"
            'Asked by {asker_name}: "{question}"\nDiscussion:\n{context}'
        ),
        question_answer="ANSWER {name}, {title}. {background}\nQ: {question}",
        persona_extraction="Profile this character as JSON: {system_prompt}",
        statement_analysis="Analyse as JSON: {name} ({title}) said \"{content}\"",
        mode_instructions={
            "round_robin": "Speak in order.",
            "debate_rebuttal": "Rebut the other side.",
            "debate_assertion": "State your position.",
            "focus": "Go deeper, layer {layer}.",
            "free": "Speak freely.",
        },
        mode_contexts={
            "round_robin": "Keep your own view.",
            "debate_rebuttal": 'Rebut {target_speaker}: "{target_content}"',
            "debate_assertion": "Prepare to defend your position.",
            "focus": "Discussion layer {layer}.",
            "free": "Question earlier statements if you like.",
        },
        opening_marker="(opening)",
        statement_max_tokens=500,
        answer_max_tokens=300,
        persona_max_tokens=1000,
        analysis_max_tokens=300,
    )


@pytest.fixture
def sample_defaults_config(tmp_path: Path) -> DefaultsConfig:
    return DefaultsConfig(
        database_path=tmp_path / "boardroom.sqlite3",
        provider="claude",
    )


@pytest.fixture
def sample_app_config(
    sample_defaults_config: DefaultsConfig,
    sample_prompts_config: PromptsConfig,
) -> AppConfig:
    model_cfg = ModelConfig(
        name="claude",
        sdk="anthropic",
        model="claude-sonnet-4-20250514",
        api_key_env="ANTHROPIC_API_KEY",
        timeout_sec=60,
        max_tokens=1000,
    )
    return AppConfig(
        defaults=sample_defaults_config,
        models={"claude": model_cfg},
        prompts=sample_prompts_config,
        available_providers={"claude"},
    )


@pytest.fixture
def store(tmp_path: Path) -> MeetingStore:
    return MeetingStore(tmp_path / "test.sqlite3")


def make_result(content: str = "Mock statement", provider: str = "mock") -> GenerationResult:
    return GenerationResult(
        provider=provider,
        model="mock-model",
        content=content,
        latency_sec=0.1,
        input_tokens=20,
        output_tokens=10,
    )


class MockProvider(AIProvider):
    """Test double AIProvider."""

    def __init__(self, provider_name: str = "mock", response_content: str = "Mock statement") -> None:
        self._name = provider_name
        self._response_content = response_content
        # Shadow the class method with an AsyncMock at the instance level.
        # ABC check passes because generate is defined in the class body below.
        self.generate = AsyncMock(return_value=make_result(response_content, provider_name))  # type: ignore[assignment]

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return "mock-model"

    async def generate(self, prompt: str, max_tokens: int | None = None) -> GenerationResult:  # type: ignore[override]
        """Default implementation; replaced by AsyncMock in __init__."""
        return make_result(self._response_content, self._name)


@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()


# --- pure scheduling helpers ---

def make_director(name: str) -> Director:
    return Director(id=f"d-{name}", name=name, title=f"{name} the Elder", system_prompt=f"{name} background.")


def make_roster(names: list[str], meeting_id: str = "m1") -> list[Participant]:
    return [
        Participant(meeting_id=meeting_id, director=make_director(n), join_order=i)
        for i, n in enumerate(names, start=1)
    ]


def make_meeting(mode: str = "round_robin", current_round: int = 1, status: str = DISCUSSING) -> Meeting:
    return Meeting(
        id="m1",
        title="Test meeting",
        topic="Should cities ban cars?",
        status=status,
        discussion_mode=mode,
        current_round=current_round,
        max_rounds=10,
    )


def make_statement(
    name: str,
    round_number: int,
    sequence: int,
    content: str | None = None,
    statement_id: str | None = None,
) -> Statement:
    return Statement(
        id=statement_id or f"s-{round_number}-{sequence}",
        meeting_id="m1",
        director_id=f"d-{name}",
        round_number=round_number,
        sequence_in_round=sequence,
        content=content or f"{name} says something in round {round_number}.",
    )


def apply_decision(meeting: Meeting, statements: list[Statement], decision: TurnDecision) -> Statement:
    """Record a decision in memory the way the recorder does in SQLite."""
    statement = Statement(
        id=f"s{len(statements) + 1}",
        meeting_id=meeting.id,
        director_id=decision.participant.director_id,
        round_number=decision.round_number,
        sequence_in_round=decision.sequence_in_round,
        content=f"{decision.participant.director.name} speaks.",
        response_to=decision.responding_to.id if decision.responding_to else None,
    )
    statements.insert(0, statement)
    meeting.total_statements += 1
    meeting.current_round = max(meeting.current_round, decision.round_number)
    return statement


# --- stored meeting helpers ---

def seed_meeting(
    store: MeetingStore,
    names: list[str],
    mode: str = "round_robin",
    max_rounds: int = 10,
    start: bool = True,
) -> Meeting:
    """Store directors ``names`` and a meeting with them in that order."""
    for n in names:
        if store.get_director(f"d-{n}") is None:
            store.add_director(make_director(n))
    service = MeetingService(store)
    meeting = service.create_meeting(
        "Test meeting",
        "Should cities ban cars?",
        [f"d-{n}" for n in names],
        discussion_mode=mode,
        max_rounds=max_rounds,
    )
    if start:
        meeting = service.start_meeting(meeting.id)
    return meeting
