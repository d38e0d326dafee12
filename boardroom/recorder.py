"""Persist a generated statement together with the aggregates it affects."""

import logging
import sqlite3
import uuid

from boardroom.errors import NotFoundError, TurnConflictError
from boardroom.models import ANSWERED, Statement, TurnDecision
from boardroom.store import MeetingStore, utc_now

logger = logging.getLogger(__name__)


class StatementRecorder:
    """Appends statements and keeps meeting and participant counters in step.

    The statement insert, the meeting update, the participant update and the
    answered-question flag are one SQLite transaction: either all of them are
    visible or none is. ``record`` also refuses to write when the meeting's
    statement count moved since the turn was scheduled.
    """

    def __init__(self, store: MeetingStore) -> None:
        self._store = store

    def record(
        self,
        meeting_id: str,
        decision: TurnDecision,
        content: str,
        *,
        expected_total: int,
        tokens_used: int = 0,
        model: str = "",
        answered_question_id: str | None = None,
    ) -> Statement:
        """Write the statement and its aggregate updates atomically.

        Args:
            meeting_id: Meeting the statement belongs to.
            decision: Scheduler output (speaker, round, sequence, rebuttal link).
            content: Generated statement text.
            expected_total: ``total_statements`` observed when scheduling.
            tokens_used: Output tokens reported by the provider.
            model: Model identifier that produced the text.
            answered_question_id: Preempting question to mark answered.

        Raises:
            NotFoundError: If the meeting or the participant row is missing.
            TurnConflictError: If another turn was recorded in the meantime.
        """
        now = utc_now()
        statement = Statement(
            id=str(uuid.uuid4()),
            meeting_id=meeting_id,
            director_id=decision.participant.director_id,
            round_number=decision.round_number,
            sequence_in_round=decision.sequence_in_round,
            content=content,
            response_to=decision.responding_to.id if decision.is_rebuttal and decision.responding_to else None,
            tokens_used=tokens_used,
            model=model,
            created_at=now,
        )

        with self._store.transaction() as cursor:
            row = cursor.execute("SELECT total_statements FROM meetings WHERE id = ?", (meeting_id,)).fetchone()
            if row is None:
                raise NotFoundError("Meeting", meeting_id)
            if row["total_statements"] != expected_total:
                raise TurnConflictError(meeting_id, expected_total, row["total_statements"])

            try:
                cursor.execute(
                    """
                    INSERT INTO statements (id, meeting_id, director_id, content, round_number,
                                            sequence_in_round, response_to, tokens_used, model, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        statement.id, meeting_id, statement.director_id, statement.content,
                        statement.round_number, statement.sequence_in_round, statement.response_to,
                        statement.tokens_used, statement.model, statement.created_at,
                    ),
                )
            except sqlite3.IntegrityError as exc:
                # Same (round, sequence) already taken: the history moved under us
                raise TurnConflictError(meeting_id, expected_total, expected_total + 1) from exc

            cursor.execute(
                """
                UPDATE meetings
                SET total_statements = total_statements + 1,
                    current_round = MAX(current_round, ?),
                    updated_at = ?
                WHERE id = ?
                """,
                (statement.round_number, now, meeting_id),
            )

            cursor.execute(
                """
                UPDATE meeting_participants
                SET statements_count = statements_count + 1, last_statement_at = ?
                WHERE meeting_id = ? AND director_id = ?
                """,
                (now, meeting_id, statement.director_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("Participant", f"{meeting_id}/{statement.director_id}")

            if answered_question_id is not None:
                cursor.execute(
                    "UPDATE user_questions SET status = ? WHERE id = ? AND meeting_id = ?",
                    (ANSWERED, answered_question_id, meeting_id),
                )

        logger.info(
            "Recorded statement %s: round %d seq %d by %s",
            statement.id,
            statement.round_number,
            statement.sequence_in_round,
            decision.participant.director.name,
        )
        return statement

    def reconcile(self, meeting_id: str) -> list[str]:
        """Recompute meeting and participant counters from the statement history.

        Returns a description of every corrected field; empty when nothing drifted.
        """
        corrections: list[str] = []
        with self._store.transaction() as cursor:
            meeting = cursor.execute(
                "SELECT total_statements, current_round FROM meetings WHERE id = ?", (meeting_id,)
            ).fetchone()
            if meeting is None:
                raise NotFoundError("Meeting", meeting_id)

            totals = cursor.execute(
                "SELECT COUNT(*) AS total, MAX(round_number) AS max_round FROM statements WHERE meeting_id = ?",
                (meeting_id,),
            ).fetchone()
            total = totals["total"]
            current_round = totals["max_round"] if totals["max_round"] is not None else meeting["current_round"]

            if meeting["total_statements"] != total:
                corrections.append(f"total_statements {meeting['total_statements']} -> {total}")
            if meeting["current_round"] != current_round:
                corrections.append(f"current_round {meeting['current_round']} -> {current_round}")
            cursor.execute(
                "UPDATE meetings SET total_statements = ?, current_round = ?, updated_at = ? WHERE id = ?",
                (total, current_round, utc_now(), meeting_id),
            )

            per_director = {
                r["director_id"]: (r["count"], r["last_at"])
                for r in cursor.execute(
                    """
                    SELECT director_id, COUNT(*) AS count, MAX(created_at) AS last_at
                    FROM statements WHERE meeting_id = ? GROUP BY director_id
                    """,
                    (meeting_id,),
                ).fetchall()
            }
            participants = cursor.execute(
                "SELECT director_id, statements_count FROM meeting_participants WHERE meeting_id = ?",
                (meeting_id,),
            ).fetchall()
            for p in participants:
                count, last_at = per_director.get(p["director_id"], (0, None))
                if p["statements_count"] != count:
                    corrections.append(f"{p['director_id']} statements_count {p['statements_count']} -> {count}")
                cursor.execute(
                    """
                    UPDATE meeting_participants SET statements_count = ?, last_statement_at = ?
                    WHERE meeting_id = ? AND director_id = ?
                    """,
                    (count, last_at, meeting_id, p["director_id"]),
                )

        if corrections:
            logger.warning("Reconciled meeting %s: %s", meeting_id, "; ".join(corrections))
        else:
            logger.info("Meeting %s aggregates consistent", meeting_id)
        return corrections
