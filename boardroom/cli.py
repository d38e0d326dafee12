"""Click CLI: each command wires only the collaborators it needs."""

import asyncio
import functools
import logging
import random
import sys
from collections.abc import Callable
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from config.config_loader import AppConfig, load_config
from boardroom import output
from boardroom.cards import build_statement_card
from boardroom.errors import BoardroomError
from boardroom.healthcheck import check_provider
from boardroom.meetings import MeetingService
from boardroom.models import DISCUSSION_MODES
from boardroom.personas import extract_persona, load_director_file
from boardroom.providers.anthropic import AnthropicProvider
from boardroom.providers.base import AIProvider
from boardroom.providers.gemini import GeminiProvider
from boardroom.providers.openai_provider import OpenAIProvider
from boardroom.recorder import StatementRecorder
from boardroom.scheduler import next_turn
from boardroom.store import MeetingStore
from boardroom.turns import TurnService

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

PROVIDER_CLASSES: dict[str, type[AIProvider]] = {
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
    "gemini": GeminiProvider,
}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _fail(message: str) -> None:
    console.print(f"[bold red]Error:[/bold red] {escape(message)}")
    sys.exit(1)


def _handle_errors(func: Callable) -> Callable:
    """Report BoardroomError as a one-line message and exit 1."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except BoardroomError as exc:
            _fail(f"{type(exc).__name__}: {exc}")

    return wrapper


def build_provider(config: AppConfig, name: str) -> AIProvider:
    """Instantiate the configured provider ``name`` by its SDK."""
    if name not in config.models:
        _fail(f"Unknown provider '{name}'. Configured: {', '.join(sorted(config.models))}")
    model_cfg = config.models[name]
    if name not in config.available_providers:
        _fail(f"Provider '{name}' has no API key. Set {model_cfg.api_key_env} in .env.")
    provider_cls = PROVIDER_CLASSES.get(model_cfg.sdk)
    if provider_cls is None:
        _fail(f"Provider '{name}' uses unsupported sdk '{model_cfg.sdk}'")
    return provider_cls(model_cfg)


class _Context:
    """Lazily built collaborators shared by the commands of one invocation."""

    def __init__(self, config: AppConfig, db_path: Path, provider_name: str) -> None:
        self.config = config
        self.db_path = db_path
        self.provider_name = provider_name
        self._store: MeetingStore | None = None
        self._provider: AIProvider | None = None

    @property
    def store(self) -> MeetingStore:
        if self._store is None:
            self._store = MeetingStore(self.db_path)
        return self._store

    @property
    def provider(self) -> AIProvider:
        if self._provider is None:
            self._provider = build_provider(self.config, self.provider_name)
        return self._provider

    def meetings(self, with_provider: bool = False) -> MeetingService:
        if with_provider:
            return MeetingService(self.store, self.provider, self.config.prompts)
        return MeetingService(self.store)

    def turns(self, seed: int | None = None) -> TurnService:
        defaults = self.config.defaults
        return TurnService(
            self.store,
            self.provider,
            self.config.prompts,
            rng=random.Random(seed),
            context_window=defaults.context_window,
            question_window=defaults.question_window,
        )


pass_ctx = click.make_pass_decorator(_Context)


@click.group()
@click.option("--db", "db_path", default=None, type=click.Path(dir_okay=False), help="SQLite file (default: from config)")
@click.option("--provider", "provider_name", default=None, help="Generation provider (default: from config)")
@click.option("--settings", "settings_path", default=None, type=click.Path(exists=True, dir_okay=False),
              help="Alternative settings.yaml")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.pass_context
def main(
    ctx: click.Context,
    db_path: str | None,
    provider_name: str | None,
    settings_path: str | None,
    verbose: bool,
) -> None:
    """Boardroom -- round-table discussions between director personas.

    \b
    Examples:
      boardroom director import personas/confucius.md
      boardroom meeting create "Ethics of AI" --topic "Should AI have rights?" -d ID1 -d ID2 --mode debate
      boardroom meeting start MEETING_ID
      boardroom turn run MEETING_ID --turns 6
      boardroom question ask MEETING_ID "What about animals?"
      boardroom statement card STATEMENT_ID
    """
    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config(Path(settings_path)) if settings_path else load_config()
    except FileNotFoundError as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)

    ctx.obj = _Context(
        config=config,
        db_path=Path(db_path) if db_path else config.defaults.database_path,
        provider_name=provider_name or config.defaults.provider,
    )


# --- directors ---

@main.group()
def director() -> None:
    """Manage director personas."""


@director.command("import")
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@pass_ctx
@_handle_errors
def director_import(ctx: _Context, files: tuple[str, ...]) -> None:
    """Import directors from markdown files with YAML frontmatter."""
    for file_name in files:
        d = ctx.store.add_director(load_director_file(Path(file_name)))
        console.print(f"[green]OK[/green] {d.name} ({d.title}) -> {d.id}")


@director.command("extract")
@click.argument("system_prompt")
@click.option("--avatar-url", default=None)
@pass_ctx
@_handle_errors
def director_extract(ctx: _Context, system_prompt: str, avatar_url: str | None) -> None:
    """Create a director by letting the provider profile SYSTEM_PROMPT."""
    d = asyncio.run(extract_persona(ctx.provider, system_prompt, ctx.config.prompts, avatar_url))
    ctx.store.add_director(d)
    console.print(f"[green]OK[/green] {d.name} ({d.title}, {d.era}) -> {d.id}")


@director.command("list")
@click.option("--active", "active_only", is_flag=True, help="Only active directors")
@pass_ctx
def director_list(ctx: _Context, active_only: bool) -> None:
    output.print_directors(ctx.store.list_directors(active_only=active_only))


# --- meetings ---

@main.group()
def meeting() -> None:
    """Create and run meetings."""


@meeting.command("create")
@click.argument("title")
@click.option("--topic", required=True, help="Discussion topic")
@click.option("-d", "--director", "director_ids", multiple=True, required=True,
              help="Director id; repeat in speaking order")
@click.option("--mode", "discussion_mode", default=None, type=click.Choice(DISCUSSION_MODES),
              help="Discussion mode (default: from config)")
@click.option("--max-rounds", default=None, type=int, help="Round budget (default: from config)")
@click.option("--description", default="")
@pass_ctx
@_handle_errors
def meeting_create(
    ctx: _Context,
    title: str,
    topic: str,
    director_ids: tuple[str, ...],
    discussion_mode: str | None,
    max_rounds: int | None,
    description: str,
) -> None:
    defaults = ctx.config.defaults
    m = ctx.meetings().create_meeting(
        title,
        topic,
        list(director_ids),
        description=description,
        discussion_mode=discussion_mode or defaults.discussion_mode,
        max_rounds=max_rounds if max_rounds is not None else defaults.max_rounds,
        max_participants=defaults.max_participants,
    )
    console.print(f"[green]OK[/green] Meeting created: {m.id} ({m.discussion_mode}, {m.total_participants} directors)")


@meeting.command("start")
@click.argument("meeting_id")
@pass_ctx
@_handle_errors
def meeting_start(ctx: _Context, meeting_id: str) -> None:
    m = ctx.meetings().start_meeting(meeting_id)
    console.print(f"[green]OK[/green] {m.title} is now {m.status} (round {m.current_round})")


@meeting.command("end")
@click.argument("meeting_id")
@pass_ctx
@_handle_errors
def meeting_end(ctx: _Context, meeting_id: str) -> None:
    m = ctx.meetings().end_meeting(meeting_id)
    console.print(f"[green]OK[/green] {m.title} is now {m.status}")


@meeting.command("cancel")
@click.argument("meeting_id")
@pass_ctx
@_handle_errors
def meeting_cancel(ctx: _Context, meeting_id: str) -> None:
    m = ctx.meetings().cancel_meeting(meeting_id)
    console.print(f"[green]OK[/green] {m.title} is now {m.status}")


@meeting.command("show")
@click.argument("meeting_id")
@click.option("--full", is_flag=True, help="Print full statements instead of previews")
@pass_ctx
@_handle_errors
def meeting_show(ctx: _Context, meeting_id: str, full: bool) -> None:
    m = ctx.meetings().get_meeting(meeting_id)
    output.print_meeting(
        m,
        ctx.store.list_participants(meeting_id, active_only=False),
        ctx.store.list_statements(meeting_id),
        full=full,
    )
    questions = ctx.store.list_questions(meeting_id)
    if questions:
        output.print_questions(questions)
    directors = {p.director_id: p.director for p in ctx.store.list_participants(meeting_id, active_only=False)}
    for q in reversed(questions):
        responses = ctx.store.list_question_responses(q.id)
        if responses:
            console.print(f"[bold]{escape(q.asker_name)}:[/bold] {escape(q.question)}")
            output.print_question_responses(responses, directors)


@meeting.command("list")
@click.option("--status", default=None, help="Filter by status")
@click.option("--limit", default=20, type=int)
@pass_ctx
def meeting_list(ctx: _Context, status: str | None, limit: int) -> None:
    for m in ctx.store.list_meetings(status=status, limit=limit):
        console.print(f"{m.id}  [bold]{m.title}[/bold]  {m.status}  {m.discussion_mode}  {m.total_statements} statements")


@meeting.command("participant")
@click.argument("meeting_id")
@click.argument("director_id")
@click.option("--active/--inactive", default=True, help="Include or exclude from scheduling")
@pass_ctx
@_handle_errors
def meeting_participant(ctx: _Context, meeting_id: str, director_id: str, active: bool) -> None:
    ctx.meetings().set_participant_active(meeting_id, director_id, active)
    console.print(f"[green]OK[/green] {director_id} is now {'active' if active else 'inactive'}")


@meeting.command("reconcile")
@click.argument("meeting_id")
@pass_ctx
@_handle_errors
def meeting_reconcile(ctx: _Context, meeting_id: str) -> None:
    """Recompute meeting and participant counters from the statements."""
    corrections = StatementRecorder(ctx.store).reconcile(meeting_id)
    if not corrections:
        console.print("[green]OK[/green] Counters consistent")
    for line in corrections:
        console.print(f"[yellow]fixed[/yellow] {line}")


# --- turns ---

@main.group()
def turn() -> None:
    """Advance meetings turn by turn."""


@turn.command("plan")
@click.argument("meeting_id")
@click.option("--seed", default=None, type=int, help="Seed for free-mode speaker choice")
@pass_ctx
@_handle_errors
def turn_plan(ctx: _Context, meeting_id: str, seed: int | None) -> None:
    """Show who would speak next without generating anything."""
    m = ctx.meetings().get_meeting(meeting_id)
    decision = next_turn(
        m,
        ctx.store.list_participants(meeting_id),
        ctx.store.list_statements(meeting_id),
        random.Random(seed),
    )
    output.print_decision(decision)


@turn.command("next")
@click.argument("meeting_id")
@pass_ctx
@_handle_errors
def turn_next(ctx: _Context, meeting_id: str) -> None:
    """Generate and record the next statement."""
    result = asyncio.run(ctx.turns().advance_turn(meeting_id))
    output.print_turn(result)


async def _run_turns(service: TurnService, meetings: MeetingService, meeting_id: str, turns: int) -> int:
    done = 0
    for _ in range(turns):
        m = meetings.get_meeting(meeting_id)
        if service.plan_turn(meeting_id).round_number > m.max_rounds:
            console.print(f"[dim]Round budget of {m.max_rounds} reached.[/dim]")
            break
        result = await service.advance_turn(meeting_id)
        output.print_turn(result)
        done += 1
    return done


@turn.command("run")
@click.argument("meeting_id")
@click.option("--turns", "turns", default=None, type=int,
              help="Number of turns (default: until the round budget is used)")
@click.option("--seed", default=None, type=int, help="Seed for free-mode speaker choice")
@click.option("--skip-health-check", is_flag=True, default=False,
              help="Skip the API connectivity check at startup")
@pass_ctx
@_handle_errors
def turn_run(ctx: _Context, meeting_id: str, turns: int | None, seed: int | None, skip_health_check: bool) -> None:
    """Run several turns in a row, stopping at the meeting's max_rounds."""
    meetings = ctx.meetings()
    m = meetings.get_meeting(meeting_id)
    if turns is None:
        turns = m.max_rounds * max(m.total_participants, 1) * 2

    if not skip_health_check:
        ok, err = asyncio.run(check_provider(ctx.provider))
        if not ok:
            _fail(f"Provider {ctx.provider.name()} failed the health check: {err.splitlines()[0][:120] if err else 'unknown error'}")

    done = asyncio.run(_run_turns(ctx.turns(seed), meetings, meeting_id, turns))
    console.print(f"\n[dim]{done} statement(s) recorded.[/dim]")


# --- questions ---

@main.group()
def question() -> None:
    """Ask the board questions."""


@question.command("ask")
@click.argument("meeting_id")
@click.argument("text")
@click.option("--asker", "asker_name", default=None, help="Name shown with the question")
@click.option("--type", "question_type", default=None)
@pass_ctx
@_handle_errors
def question_ask(ctx: _Context, meeting_id: str, text: str, asker_name: str | None, question_type: str | None) -> None:
    """Queue a question; the next turn answers it."""
    q = ctx.meetings().ask_question(meeting_id, text, asker_name, question_type)
    console.print(f"[green]OK[/green] Question {q.id} is {q.status}")


@question.command("respond")
@click.argument("meeting_id")
@click.argument("question_id")
@pass_ctx
@_handle_errors
def question_respond(ctx: _Context, meeting_id: str, question_id: str) -> None:
    """Have every active director answer a question."""
    responses = asyncio.run(ctx.meetings(with_provider=True).respond_to_question(meeting_id, question_id))
    directors = {p.director_id: p.director for p in ctx.store.list_participants(meeting_id, active_only=False)}
    output.print_question_responses(responses, directors)


@question.command("list")
@click.argument("meeting_id")
@pass_ctx
def question_list(ctx: _Context, meeting_id: str) -> None:
    output.print_questions(ctx.store.list_questions(meeting_id))


# --- statements ---

@main.group()
def statement() -> None:
    """Inspect recorded statements."""


@statement.command("card")
@click.argument("statement_id")
@pass_ctx
@_handle_errors
def statement_card(ctx: _Context, statement_id: str) -> None:
    """Show a statement as a quote card with a generated analysis."""
    card = asyncio.run(build_statement_card(ctx.store, ctx.provider, ctx.config.prompts, statement_id))
    output.print_statement_card(card)


if __name__ == "__main__":
    main()
