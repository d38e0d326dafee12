"""SQLite persistence for directors, meetings, participants, statements and questions."""

import json
import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock

from boardroom.errors import ValidationError
from boardroom.models import (
    ANSWERED,
    Director,
    Meeting,
    Participant,
    QuestionResponse,
    Statement,
    UserQuestion,
)

logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS directors (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        title TEXT NOT NULL,
        system_prompt TEXT NOT NULL,
        era TEXT NOT NULL DEFAULT '',
        speaking_style TEXT NOT NULL DEFAULT '',
        personality_traits TEXT NOT NULL DEFAULT '[]',
        core_beliefs TEXT NOT NULL DEFAULT '[]',
        expertise_areas TEXT NOT NULL DEFAULT '[]',
        avatar_url TEXT,
        is_active INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS meetings (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        topic TEXT NOT NULL,
        status TEXT NOT NULL,
        discussion_mode TEXT NOT NULL,
        current_round INTEGER NOT NULL DEFAULT 0,
        max_rounds INTEGER NOT NULL,
        max_participants INTEGER NOT NULL,
        total_statements INTEGER NOT NULL DEFAULT 0,
        total_participants INTEGER NOT NULL DEFAULT 0,
        started_at TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS meeting_participants (
        meeting_id TEXT NOT NULL REFERENCES meetings(id),
        director_id TEXT NOT NULL REFERENCES directors(id),
        join_order INTEGER NOT NULL,
        is_active INTEGER NOT NULL DEFAULT 1,
        statements_count INTEGER NOT NULL DEFAULT 0,
        last_statement_at TEXT,
        PRIMARY KEY (meeting_id, director_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS statements (
        id TEXT PRIMARY KEY,
        meeting_id TEXT NOT NULL REFERENCES meetings(id),
        director_id TEXT NOT NULL REFERENCES directors(id),
        content TEXT NOT NULL,
        round_number INTEGER NOT NULL,
        sequence_in_round INTEGER NOT NULL,
        response_to TEXT,
        tokens_used INTEGER NOT NULL DEFAULT 0,
        model TEXT NOT NULL DEFAULT '',
        created_at TEXT NOT NULL,
        UNIQUE (meeting_id, round_number, sequence_in_round)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_questions (
        id TEXT PRIMARY KEY,
        meeting_id TEXT NOT NULL REFERENCES meetings(id),
        question TEXT NOT NULL,
        asker_name TEXT NOT NULL,
        question_type TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'pending',
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS question_responses (
        id TEXT PRIMARY KEY,
        question_id TEXT NOT NULL REFERENCES user_questions(id),
        director_id TEXT NOT NULL REFERENCES directors(id),
        content TEXT NOT NULL,
        response_order INTEGER NOT NULL,
        tokens_used INTEGER NOT NULL DEFAULT 0
    )
    """,
)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _director_from_row(row: sqlite3.Row, prefix: str = "") -> Director:
    return Director(
        id=row[f"{prefix}id"],
        name=row[f"{prefix}name"],
        title=row[f"{prefix}title"],
        system_prompt=row[f"{prefix}system_prompt"],
        era=row[f"{prefix}era"],
        speaking_style=row[f"{prefix}speaking_style"],
        personality_traits=json.loads(row[f"{prefix}personality_traits"]),
        core_beliefs=json.loads(row[f"{prefix}core_beliefs"]),
        expertise_areas=json.loads(row[f"{prefix}expertise_areas"]),
        avatar_url=row[f"{prefix}avatar_url"],
        is_active=bool(row[f"{prefix}is_active"]),
    )


def _meeting_from_row(row: sqlite3.Row) -> Meeting:
    return Meeting(
        id=row["id"],
        title=row["title"],
        description=row["description"],
        topic=row["topic"],
        status=row["status"],
        discussion_mode=row["discussion_mode"],
        current_round=row["current_round"],
        max_rounds=row["max_rounds"],
        max_participants=row["max_participants"],
        total_statements=row["total_statements"],
        total_participants=row["total_participants"],
        started_at=row["started_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _statement_from_row(row: sqlite3.Row) -> Statement:
    return Statement(
        id=row["id"],
        meeting_id=row["meeting_id"],
        director_id=row["director_id"],
        content=row["content"],
        round_number=row["round_number"],
        sequence_in_round=row["sequence_in_round"],
        response_to=row["response_to"],
        tokens_used=row["tokens_used"],
        model=row["model"],
        created_at=row["created_at"],
    )


def _question_from_row(row: sqlite3.Row) -> UserQuestion:
    return UserQuestion(
        id=row["id"],
        meeting_id=row["meeting_id"],
        question=row["question"],
        asker_name=row["asker_name"],
        question_type=row["question_type"],
        status=row["status"],
        created_at=row["created_at"],
    )


class MeetingStore:
    """Store for board meetings backed by a single SQLite file.

    Reads and single-row writes run in autocommit mode. Multi-row writes go
    through :meth:`transaction`, which serialises writers in-process with a
    lock and across processes with ``BEGIN IMMEDIATE``.
    """

    def __init__(self, db_path: Path | str) -> None:
        db_path_obj = Path(db_path)
        db_path_obj.parent.mkdir(parents=True, exist_ok=True)
        self.db_path = db_path_obj
        self._lock = Lock()
        self._ensure_schema()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(str(self.db_path), timeout=30, check_same_thread=False, isolation_level=None)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            for ddl in _SCHEMA:
                conn.execute(ddl)

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Cursor]:
        """Run a block of writes as one atomic unit; roll back on any error."""
        with self._lock, self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            try:
                yield cursor
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    # --- directors ---

    def add_director(self, director: Director) -> Director:
        """Insert a director; an id that is already stored raises ValidationError."""
        with self._connect() as conn:
            try:
                conn.execute(
                    """
                    INSERT INTO directors (id, name, title, system_prompt, era, speaking_style,
                                           personality_traits, core_beliefs, expertise_areas,
                                           avatar_url, is_active, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        director.id, director.name, director.title, director.system_prompt,
                        director.era, director.speaking_style,
                        json.dumps(director.personality_traits), json.dumps(director.core_beliefs),
                        json.dumps(director.expertise_areas), director.avatar_url,
                        int(director.is_active), utc_now(),
                    ),
                )
            except sqlite3.IntegrityError as exc:
                raise ValidationError(f"Director already exists: {director.id}") from exc
        logger.debug("Director stored: %s (%s)", director.name, director.id)
        return director

    def get_director(self, director_id: str) -> Director | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM directors WHERE id = ?", (director_id,)).fetchone()
        return _director_from_row(row) if row else None

    def list_directors(self, active_only: bool = False) -> list[Director]:
        query = "SELECT * FROM directors"
        if active_only:
            query += " WHERE is_active = 1"
        query += " ORDER BY created_at, rowid"
        with self._connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_director_from_row(r) for r in rows]

    # --- meetings ---

    def create_meeting(self, meeting: Meeting, director_ids: list[str]) -> Meeting:
        """Insert the meeting and its roster; join_order follows ``director_ids``."""
        now = utc_now()
        meeting.created_at = meeting.created_at or now
        meeting.updated_at = now
        meeting.total_participants = len(director_ids)
        with self.transaction() as cursor:
            cursor.execute(
                """
                INSERT INTO meetings (id, title, description, topic, status, discussion_mode,
                                      current_round, max_rounds, max_participants, total_statements,
                                      total_participants, started_at, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    meeting.id, meeting.title, meeting.description, meeting.topic, meeting.status,
                    meeting.discussion_mode, meeting.current_round, meeting.max_rounds,
                    meeting.max_participants, meeting.total_statements, meeting.total_participants,
                    meeting.started_at, meeting.created_at, meeting.updated_at,
                ),
            )
            for join_order, director_id in enumerate(director_ids, start=1):
                cursor.execute(
                    """
                    INSERT INTO meeting_participants (meeting_id, director_id, join_order, is_active)
                    VALUES (?, ?, ?, 1)
                    """,
                    (meeting.id, director_id, join_order),
                )
        return meeting

    def get_meeting(self, meeting_id: str) -> Meeting | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM meetings WHERE id = ?", (meeting_id,)).fetchone()
        return _meeting_from_row(row) if row else None

    def list_meetings(self, status: str | None = None, limit: int = 20) -> list[Meeting]:
        query = "SELECT * FROM meetings"
        params: list[object] = []
        if status and status != "all":
            query += " WHERE status = ?"
            params.append(status)
        query += " ORDER BY created_at DESC LIMIT ?"
        params.append(limit)
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_meeting_from_row(r) for r in rows]

    def update_meeting_status(
        self,
        meeting_id: str,
        status: str,
        *,
        current_round: int | None = None,
        started_at: str | None = None,
    ) -> None:
        assignments = ["status = ?", "updated_at = ?"]
        params: list[object] = [status, utc_now()]
        if current_round is not None:
            assignments.append("current_round = ?")
            params.append(current_round)
        if started_at is not None:
            assignments.append("started_at = ?")
            params.append(started_at)
        params.append(meeting_id)
        with self._connect() as conn:
            conn.execute(f"UPDATE meetings SET {', '.join(assignments)} WHERE id = ?", params)

    # --- participants ---

    def list_participants(self, meeting_id: str, active_only: bool = True) -> list[Participant]:
        """Participants joined with their director, ordered by join_order."""
        query = """
            SELECT mp.meeting_id, mp.join_order, mp.is_active AS mp_is_active,
                   mp.statements_count, mp.last_statement_at,
                   d.id AS d_id, d.name AS d_name, d.title AS d_title,
                   d.system_prompt AS d_system_prompt, d.era AS d_era,
                   d.speaking_style AS d_speaking_style,
                   d.personality_traits AS d_personality_traits,
                   d.core_beliefs AS d_core_beliefs, d.expertise_areas AS d_expertise_areas,
                   d.avatar_url AS d_avatar_url, d.is_active AS d_is_active
            FROM meeting_participants mp
            JOIN directors d ON mp.director_id = d.id
            WHERE mp.meeting_id = ?
        """
        if active_only:
            query += " AND mp.is_active = 1"
        query += " ORDER BY mp.join_order"
        with self._connect() as conn:
            rows = conn.execute(query, (meeting_id,)).fetchall()
        return [
            Participant(
                meeting_id=row["meeting_id"],
                director=_director_from_row(row, prefix="d_"),
                join_order=row["join_order"],
                is_active=bool(row["mp_is_active"]),
                statements_count=row["statements_count"],
                last_statement_at=row["last_statement_at"],
            )
            for row in rows
        ]

    def set_participant_active(self, meeting_id: str, director_id: str, is_active: bool) -> bool:
        """Toggle a participant; returns False when no such participant exists."""
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE meeting_participants SET is_active = ? WHERE meeting_id = ? AND director_id = ?",
                (int(is_active), meeting_id, director_id),
            )
        return cursor.rowcount > 0

    # --- statements ---

    def list_statements(self, meeting_id: str) -> list[Statement]:
        """All statements of a meeting, newest first."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM statements
                WHERE meeting_id = ?
                ORDER BY round_number DESC, sequence_in_round DESC, rowid DESC
                """,
                (meeting_id,),
            ).fetchall()
        return [_statement_from_row(r) for r in rows]

    def get_statement(self, statement_id: str) -> Statement | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM statements WHERE id = ?", (statement_id,)).fetchone()
        return _statement_from_row(row) if row else None

    # --- questions ---

    def add_question(self, question: UserQuestion) -> UserQuestion:
        question.created_at = question.created_at or utc_now()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO user_questions (id, meeting_id, question, asker_name, question_type, status, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    question.id, question.meeting_id, question.question, question.asker_name,
                    question.question_type, question.status, question.created_at,
                ),
            )
        return question

    def get_question(self, meeting_id: str, question_id: str) -> UserQuestion | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM user_questions WHERE id = ? AND meeting_id = ?",
                (question_id, meeting_id),
            ).fetchone()
        return _question_from_row(row) if row else None

    def list_questions(self, meeting_id: str, limit: int | None = None) -> list[UserQuestion]:
        """Questions of a meeting, newest first."""
        query = "SELECT * FROM user_questions WHERE meeting_id = ? ORDER BY created_at DESC, rowid DESC"
        params: list[object] = [meeting_id]
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_question_from_row(r) for r in rows]

    def add_question_responses(self, question_id: str, responses: list[QuestionResponse]) -> None:
        """Store the directors' answers and mark the question answered together."""
        with self.transaction() as cursor:
            for resp in responses:
                cursor.execute(
                    """
                    INSERT INTO question_responses (id, question_id, director_id, content, response_order, tokens_used)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (resp.id, question_id, resp.director_id, resp.content, resp.response_order, resp.tokens_used),
                )
            cursor.execute("UPDATE user_questions SET status = ? WHERE id = ?", (ANSWERED, question_id))

    def list_question_responses(self, question_id: str) -> list[QuestionResponse]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM question_responses WHERE question_id = ? ORDER BY response_order",
                (question_id,),
            ).fetchall()
        return [
            QuestionResponse(
                id=r["id"],
                question_id=r["question_id"],
                director_id=r["director_id"],
                content=r["content"],
                response_order=r["response_order"],
                tokens_used=r["tokens_used"],
            )
            for r in rows
        ]
