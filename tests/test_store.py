"""Tests for boardroom/store.py."""

import pytest

from boardroom.errors import ValidationError
from boardroom.models import ANSWERED, PENDING, Director, QuestionResponse, UserQuestion
from boardroom.store import MeetingStore
from tests.conftest import make_director, seed_meeting


def test_schema_is_created(tmp_path):
    db = tmp_path / "nested" / "dir" / "db.sqlite3"
    MeetingStore(db)
    assert db.exists()


def test_schema_creation_is_idempotent(tmp_path):
    db = tmp_path / "db.sqlite3"
    MeetingStore(db).add_director(make_director("A"))
    assert MeetingStore(db).get_director("d-A").name == "A"


def test_director_round_trip_keeps_lists(store):
    director = Director(
        id="d1",
        name="Ada Lovelace",
        title="Analyst",
        system_prompt="You are Ada.",
        era="19th century",
        personality_traits=["curious", "precise"],
        core_beliefs=["Machines can compose music"],
        expertise_areas=["mathematics"],
        avatar_url="https://example.org/ada.png",
    )
    store.add_director(director)
    assert store.get_director("d1") == director


def test_duplicate_director_id_is_a_validation_error(store):
    store.add_director(make_director("A"))
    with pytest.raises(ValidationError, match="already exists: d-A"):
        store.add_director(make_director("A"))
    assert len(store.list_directors()) == 1


def test_get_missing_director_returns_none(store):
    assert store.get_director("nope") is None


def test_list_directors_active_only(store):
    store.add_director(make_director("A"))
    retired = make_director("B")
    retired.is_active = False
    store.add_director(retired)
    assert [d.name for d in store.list_directors()] == ["A", "B"]
    assert [d.name for d in store.list_directors(active_only=True)] == ["A"]


def test_roster_follows_given_order(store):
    meeting = seed_meeting(store, ["C", "A", "B"], start=False)
    roster = store.list_participants(meeting.id)
    assert [p.director.name for p in roster] == ["C", "A", "B"]
    assert [p.join_order for p in roster] == [1, 2, 3]
    assert store.get_meeting(meeting.id).total_participants == 3


def test_inactive_participant_keeps_join_order(store):
    meeting = seed_meeting(store, ["A", "B", "C"])
    assert store.set_participant_active(meeting.id, "d-B", False)
    assert [p.director.name for p in store.list_participants(meeting.id)] == ["A", "C"]
    everyone = store.list_participants(meeting.id, active_only=False)
    assert [(p.director.name, p.join_order, p.is_active) for p in everyone] == [
        ("A", 1, True),
        ("B", 2, False),
        ("C", 3, True),
    ]


def test_set_participant_active_unknown_returns_false(store):
    meeting = seed_meeting(store, ["A"])
    assert not store.set_participant_active(meeting.id, "d-Z", False)


def test_update_meeting_status(store):
    meeting = seed_meeting(store, ["A"], start=False)
    store.update_meeting_status(meeting.id, "discussing", current_round=1, started_at="2024-01-01T00:00:00")
    loaded = store.get_meeting(meeting.id)
    assert loaded.status == "discussing"
    assert loaded.current_round == 1
    assert loaded.started_at == "2024-01-01T00:00:00"


def test_list_meetings_by_status(store):
    seed_meeting(store, ["A"], start=False)
    started = seed_meeting(store, ["A"])
    assert [m.id for m in store.list_meetings(status="discussing")] == [started.id]
    assert len(store.list_meetings()) == 2
    assert len(store.list_meetings(status="all")) == 2


def test_transaction_rolls_back_on_error(store):
    store.add_director(make_director("A"))
    with pytest.raises(RuntimeError):
        with store.transaction() as cursor:
            cursor.execute("UPDATE directors SET name = 'Changed' WHERE id = 'd-A'")
            raise RuntimeError("boom")
    assert store.get_director("d-A").name == "A"


def test_questions_newest_first_with_limit(store):
    meeting = seed_meeting(store, ["A"])
    for i in range(1, 5):
        store.add_question(UserQuestion(id=f"q{i}", meeting_id=meeting.id, question=f"Q{i}?"))
    assert [q.id for q in store.list_questions(meeting.id)] == ["q4", "q3", "q2", "q1"]
    assert [q.id for q in store.list_questions(meeting.id, limit=3)] == ["q4", "q3", "q2"]


def test_get_question_is_scoped_to_meeting(store):
    first = seed_meeting(store, ["A"])
    second = seed_meeting(store, ["A"])
    store.add_question(UserQuestion(id="q1", meeting_id=first.id, question="Why?"))
    assert store.get_question(first.id, "q1").question == "Why?"
    assert store.get_question(second.id, "q1") is None


def test_question_responses_mark_question_answered(store):
    meeting = seed_meeting(store, ["A", "B"])
    store.add_question(UserQuestion(id="q1", meeting_id=meeting.id, question="Why?"))
    assert store.get_question(meeting.id, "q1").status == PENDING

    store.add_question_responses(
        "q1",
        [
            QuestionResponse(id="r2", question_id="q1", director_id="d-B", content="Because.", response_order=2),
            QuestionResponse(id="r1", question_id="q1", director_id="d-A", content="Why not?", response_order=1),
        ],
    )
    assert store.get_question(meeting.id, "q1").status == ANSWERED
    assert [r.id for r in store.list_question_responses("q1")] == ["r1", "r2"]
