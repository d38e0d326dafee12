"""Rich console rendering for meetings, turns and questions."""

import logging

from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from boardroom.models import (
    Director,
    Meeting,
    Participant,
    QuestionResponse,
    Statement,
    StatementCard,
    TurnDecision,
    TurnResult,
    UserQuestion,
)

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)


def _preview(content: str, words: int = 50) -> str:
    """Return the first N words of a statement."""
    all_words = content.split()
    preview = " ".join(all_words[:words])
    if len(all_words) > words:
        preview += "..."
    return preview


def print_turn(result: TurnResult) -> None:
    """Print one freshly generated statement."""
    subtitle = f"round {result.round_number} · #{result.sequence_in_round}"
    if result.is_rebuttal:
        subtitle += " · rebuttal"
    if result.answered_question_id:
        subtitle += " · answers user question"
    console.print(
        Panel(
            result.content,
            title=f"[bold]{result.director_name}[/bold] ({result.director_title})",
            subtitle=subtitle,
            border_style="cyan" if not result.is_rebuttal else "magenta",
        )
    )


def print_decision(decision: TurnDecision) -> None:
    """Print a scheduling preview."""
    line = (
        f"Next: [bold]{decision.participant.director.name}[/bold] "
        f"round {decision.round_number}, seq {decision.sequence_in_round}"
    )
    if decision.is_rebuttal and decision.responding_to is not None:
        line += f", rebutting statement {decision.responding_to.id}"
    console.print(line)


def print_directors(directors: list[Director]) -> None:
    table = Table(title="Directors")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Title")
    table.add_column("Era")
    for d in directors:
        table.add_row(d.id, d.name, d.title, d.era)
    console.print(table)


def print_meeting(
    meeting: Meeting,
    participants: list[Participant],
    statements: list[Statement],
    full: bool = False,
) -> None:
    """Print meeting header, roster and statements in chronological order."""
    console.print(Rule(f"[bold cyan]{meeting.title}[/bold cyan]"))
    console.print(
        Text(
            f"Topic: {meeting.topic} | Mode: {meeting.discussion_mode} | "
            f"Status: {meeting.status} | Round: {meeting.current_round}/{meeting.max_rounds} | "
            f"Statements: {meeting.total_statements}",
            style="dim",
        )
    )

    roster = Table(show_header=True, header_style="bold")
    roster.add_column("#")
    roster.add_column("Director")
    roster.add_column("Active")
    roster.add_column("Statements")
    for p in participants:
        roster.add_row(
            str(p.join_order),
            f"{p.director.name} ({p.director.title})",
            "yes" if p.is_active else "no",
            str(p.statements_count),
        )
    console.print(roster)

    names = {p.director_id: p.director.name for p in participants}
    for s in reversed(statements):
        body = s.content if full else _preview(s.content)
        title = f"[bold]{names.get(s.director_id, 'Unknown')}[/bold]"
        subtitle = f"round {s.round_number} · #{s.sequence_in_round}"
        if s.response_to:
            subtitle += " · rebuttal"
        console.print(Panel(body, title=title, subtitle=subtitle, border_style="dim"))


def print_questions(questions: list[UserQuestion]) -> None:
    table = Table(title="User questions")
    table.add_column("ID", style="dim")
    table.add_column("Asker")
    table.add_column("Question")
    table.add_column("Status")
    for q in questions:
        status = f"[yellow]{q.status}[/yellow]" if q.status == "pending" else f"[green]{q.status}[/green]"
        table.add_row(q.id, q.asker_name, q.question, status)
    console.print(table)


def print_question_responses(responses: list[QuestionResponse], directors: dict[str, Director]) -> None:
    for resp in responses:
        director = directors.get(resp.director_id)
        title = f"[bold]{director.name}[/bold] ({director.title})" if director else resp.director_id
        console.print(Panel(resp.content, title=title, subtitle=f"#{resp.response_order}", border_style="green"))


def print_statement_card(card: StatementCard) -> None:
    """Print a statement as a quote card coloured by its analysis."""
    d = card.director
    a = card.analysis
    speaker = f"{d.name} ({d.title}, {d.era})" if d.era else f"{d.name} ({d.title})"
    body = Text()
    body.append(f"\"{a.highlight_quote}\"\n\n", style=f"bold {a.theme_color}")
    body.append(card.statement.content)
    console.print(
        Panel(
            body,
            title=f"[bold]{speaker}[/bold]",
            subtitle=f"{card.meeting_title} · round {card.statement.round_number}",
            border_style=a.theme_color,
        )
    )
    keywords = ", ".join(a.keywords) if a.keywords else "-"
    console.print(Text(f"Topic: {card.meeting_topic} | {a.category} | {a.sentiment} | keywords: {keywords}", style="dim"))
