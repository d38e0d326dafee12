"""Statement cards: one statement with its speaker, meeting and a generated analysis."""

import logging
import re

from config.config_loader import PromptsConfig
from boardroom.errors import GenerationFailure, MalformedGenerationOutput, NotFoundError
from boardroom.models import Director, Statement, StatementAnalysis, StatementCard
from boardroom.personas import parse_generated_json
from boardroom.providers.base import AIProvider
from boardroom.store import MeetingStore

logger = logging.getLogger(__name__)

SENTIMENTS = ("positive", "neutral", "negative")
CATEGORIES = ("wisdom", "controversy", "depth", "inspiration", "classic")

DEFAULT_SENTIMENT = "neutral"
DEFAULT_THEME_COLOR = "#1976d2"
DEFAULT_CATEGORY = "classic"
QUOTE_CHARS = 30

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")


def default_analysis(statement: Statement) -> StatementAnalysis:
    return StatementAnalysis(
        keywords=[],
        sentiment=DEFAULT_SENTIMENT,
        highlight_quote=statement.content[:QUOTE_CHARS],
        theme_color=DEFAULT_THEME_COLOR,
        category=DEFAULT_CATEGORY,
    )


def _analysis_from_json(data: dict, fallback: StatementAnalysis) -> StatementAnalysis:
    """Keep the generated fields that are usable; take the rest from ``fallback``."""
    keywords = data.get("keywords")
    sentiment = str(data.get("sentiment") or "").strip().lower()
    category = str(data.get("category") or "").strip().lower()
    color = str(data.get("theme_color") or "").strip()
    return StatementAnalysis(
        keywords=[str(k) for k in keywords] if isinstance(keywords, list) else fallback.keywords,
        sentiment=sentiment if sentiment in SENTIMENTS else fallback.sentiment,
        highlight_quote=str(data.get("highlight_quote") or fallback.highlight_quote),
        theme_color=color if _HEX_COLOR.match(color) else fallback.theme_color,
        category=category if category in CATEGORIES else fallback.category,
    )


async def analyze_statement(
    provider: AIProvider,
    statement: Statement,
    director: Director,
    prompts: PromptsConfig,
) -> StatementAnalysis:
    """Ask the provider for keywords, sentiment, a highlight quote, a colour and a category.

    A failed call and unreadable output both log a warning and return
    :func:`default_analysis`; nothing is raised.
    """
    fallback = default_analysis(statement)
    prompt = prompts.statement_analysis.format(
        content=statement.content,
        name=director.name,
        title=director.title,
    )
    try:
        result = await provider.generate(prompt, prompts.analysis_max_tokens)
    except GenerationFailure as exc:
        logger.warning("Analysis of statement %s failed, using defaults: %s", statement.id, exc)
        return fallback

    try:
        data = parse_generated_json(result.content, "Statement analysis")
    except MalformedGenerationOutput as exc:
        logger.warning("Falling back to default statement analysis: %s", exc)
        return fallback
    return _analysis_from_json(data, fallback)


async def build_statement_card(
    store: MeetingStore,
    provider: AIProvider,
    prompts: PromptsConfig,
    statement_id: str,
) -> StatementCard:
    """Load a statement with its speaker and meeting, and analyse it.

    Raises:
        NotFoundError: If the statement (or its director or meeting) is missing.
    """
    statement = store.get_statement(statement_id)
    if statement is None:
        raise NotFoundError("Statement", statement_id)
    director = store.get_director(statement.director_id)
    if director is None:
        raise NotFoundError("Director", statement.director_id)
    meeting = store.get_meeting(statement.meeting_id)
    if meeting is None:
        raise NotFoundError("Meeting", statement.meeting_id)

    analysis = await analyze_statement(provider, statement, director, prompts)
    logger.info("Card for statement %s: %s, %s", statement_id, analysis.sentiment, analysis.category)
    return StatementCard(
        statement=statement,
        director=director,
        meeting_title=meeting.title,
        meeting_topic=meeting.topic,
        analysis=analysis,
    )
