"""Tests for boardroom/prompts.py."""

from boardroom.models import ContextLine, ConversationContext, TurnDecision, UserQuestion
from boardroom.prompts import (
    ASSERTION,
    QUESTION_RESPONSE,
    REBUTTAL,
    STATEMENT,
    compose_request,
    mode_context,
    mode_instruction,
)
from tests.conftest import make_meeting, make_roster, make_statement


def _decision(is_rebuttal: bool = False, round_number: int = 1) -> TurnDecision:
    participant = make_roster(["B"])[0]
    return TurnDecision(
        participant=participant,
        round_number=round_number,
        sequence_in_round=2,
        is_rebuttal=is_rebuttal,
        responding_to=make_statement("A", 1, 1, content="Cars are freedom.") if is_rebuttal else None,
    )


def test_statement_prompt_fields(sample_prompts_config):
    decision = _decision()
    ctx = ConversationContext(window=[ContextLine("A", "Cars are freedom.")])
    request = compose_request(
        decision.participant.director, make_meeting("round_robin"), decision, ctx, sample_prompts_config
    )
    assert request.template == STATEMENT
    assert request.stance == ASSERTION
    assert request.max_tokens == 500
    assert request.prompt.startswith("STATEMENT B, B the Elder. B background.")
    assert "Topic: Should cities ban cars?" in request.prompt
    assert "Mode: round_robin - Speak in order." in request.prompt
    assert "A: Cars are freedom." in request.prompt
    assert "Keep your own view." in request.prompt


def test_empty_context_uses_opening_marker(sample_prompts_config):
    decision = _decision()
    request = compose_request(
        decision.participant.director, make_meeting(), decision, ConversationContext(), sample_prompts_config
    )
    assert "Discussion:\n(opening)" in request.prompt


def test_debate_rebuttal_names_target(sample_prompts_config):
    decision = _decision(is_rebuttal=True)
    request = compose_request(
        decision.participant.director,
        make_meeting("debate"),
        decision,
        ConversationContext(),
        sample_prompts_config,
        rebuttal_speaker="A",
    )
    assert request.stance == REBUTTAL
    assert "Rebut the other side." in request.prompt
    assert 'Rebut A: "Cars are freedom."' in request.prompt


def test_debate_assertion_framing(sample_prompts_config):
    decision = _decision(is_rebuttal=False)
    assert mode_instruction(sample_prompts_config, "debate", decision) == "State your position."
    assert mode_context(sample_prompts_config, "debate", decision) == "Prepare to defend your position."


def test_rebuttal_without_known_speaker(sample_prompts_config):
    decision = _decision(is_rebuttal=True)
    assert mode_context(sample_prompts_config, "debate", decision).startswith("Rebut The other side:")


def test_focus_mentions_layer(sample_prompts_config):
    decision = _decision(round_number=3)
    assert mode_instruction(sample_prompts_config, "focus", decision) == "Go deeper, layer 3."
    assert mode_context(sample_prompts_config, "focus", decision) == "Discussion layer 3."


def test_unknown_mode_uses_round_robin_text(sample_prompts_config):
    decision = _decision()
    assert mode_instruction(sample_prompts_config, "fishbowl", decision) == "Speak in order."


def test_pending_question_switches_template(sample_prompts_config):
    decision = _decision(is_rebuttal=True)
    question = UserQuestion(id="q1", meeting_id="m1", question="What about buses?", asker_name="Mayor")
    ctx = ConversationContext(preempting_question=question)
    request = compose_request(
        decision.participant.director, make_meeting("debate"), decision, ctx, sample_prompts_config
    )
    assert request.template == QUESTION_RESPONSE
    assert request.prompt.startswith("QUESTION B")
    assert 'Asked by Mayor: "What about buses?"' in request.prompt
    # the scheduler's rebuttal flag is still reported
    assert request.stance == REBUTTAL
