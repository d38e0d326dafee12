"""Turn a scheduling decision and its context into a generation request."""

import logging

from config.config_loader import PromptsConfig
from boardroom.models import (
    DEBATE,
    ROUND_ROBIN,
    ConversationContext,
    Director,
    GenerationRequest,
    Meeting,
    TurnDecision,
)

logger = logging.getLogger(__name__)

QUESTION_RESPONSE = "question_response"
STATEMENT = "statement"
REBUTTAL = "rebuttal"
ASSERTION = "assertion"


def _mode_key(mode: str, decision: TurnDecision, table: dict[str, str]) -> str:
    if mode == DEBATE:
        return "debate_rebuttal" if decision.is_rebuttal else "debate_assertion"
    return mode if mode in table else ROUND_ROBIN


def mode_instruction(prompts: PromptsConfig, mode: str, decision: TurnDecision) -> str:
    """Fixed behavioural instruction for the mode, e.g. rebut vs. assert in debate."""
    template = prompts.mode_instructions.get(_mode_key(mode, decision, prompts.mode_instructions), "")
    return template.format(layer=decision.round_number)


def mode_context(
    prompts: PromptsConfig,
    mode: str,
    decision: TurnDecision,
    rebuttal_speaker: str | None = None,
) -> str:
    """Mode-specific paragraph appended to the discussion for regular statements."""
    template = prompts.mode_contexts.get(_mode_key(mode, decision, prompts.mode_contexts), "")
    target = decision.responding_to
    return template.format(
        layer=decision.round_number,
        target_speaker=rebuttal_speaker or "The other side",
        target_content=target.content if target is not None else "",
    )


def compose_request(
    director: Director,
    meeting: Meeting,
    decision: TurnDecision,
    context: ConversationContext,
    prompts: PromptsConfig,
    rebuttal_speaker: str | None = None,
) -> GenerationRequest:
    """Build the generation request for the scheduled speaker.

    A pending user question switches to the question-response template; the
    scheduler's rebuttal flag switches between rebuttal and assertion framing.
    """
    stance = REBUTTAL if decision.is_rebuttal else ASSERTION
    fields = {
        "name": director.name,
        "title": director.title,
        "background": director.system_prompt,
        "topic": meeting.topic,
        "mode": meeting.discussion_mode,
        "mode_instruction": mode_instruction(prompts, meeting.discussion_mode, decision),
        "context": context.transcript() or prompts.opening_marker,
    }

    question = context.preempting_question
    if question is not None:
        template = QUESTION_RESPONSE
        prompt = prompts.question_response.format(
            question=question.question,
            asker_name=question.asker_name,
            **fields,
        )
    else:
        template = STATEMENT
        prompt = prompts.statement.format(
            mode_context=mode_context(prompts, meeting.discussion_mode, decision, rebuttal_speaker),
            **fields,
        )

    logger.debug("Composed %s prompt (%s) for %s", template, stance, director.name)
    return GenerationRequest(
        prompt=prompt,
        max_tokens=prompts.statement_max_tokens,
        template=template,
        stance=stance,
    )
