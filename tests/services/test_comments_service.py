from datetime import datetime, timezone

import pytest
from sqlalchemy import insert

from holistic_money.core.errors import BadRequestError, NotFoundError, ServiceUnavailableError
from holistic_money.models import DELETED_SENTINEL, comments_table
from holistic_money.services import CommentsService, project_latest
from holistic_money.services.comments_service import DEFAULT_AUTHOR, UNAVAILABLE_WARNING

CLIENT = "Austin Lifestyler"


def _stamp(hour: int) -> datetime:
    return datetime(2024, 5, 1, hour, tzinfo=timezone.utc)


@pytest.fixture()
def client_record(clients_service):
    return clients_service.create_client(CLIENT, "austin_lifestyler")


@pytest.fixture()
def comments(store, client_record) -> CommentsService:
    return CommentsService(store)


def _insert(store, table_name, comment_id, text, updated, created=None, entry_id="e-1"):
    with store.session() as session:
        session.execute(
            insert(comments_table(table_name)).values(
                comment_id=comment_id,
                entry_id=entry_id,
                comment_text=text,
                created_by="tester",
                created_at=created or updated,
                updated_at=updated,
            )
        )


def test_project_latest_tie_break() -> None:
    rows = [
        {"entry_id": "e", "comment_id": "a", "comment_text": "x", "created_at": 1, "updated_at": 5},
        {"entry_id": "e", "comment_id": "b", "comment_text": "y", "created_at": 2, "updated_at": 5},
        {"entry_id": "e", "comment_id": "c", "comment_text": "z", "created_at": 2, "updated_at": 4},
    ]

    assert project_latest(rows)["e"]["comment_text"] == "y"


def test_project_latest_hides_deleted_marker() -> None:
    rows = [
        {"entry_id": "e", "comment_id": "a", "comment_text": "x", "created_at": 1, "updated_at": 1},
        {
            "entry_id": "e",
            "comment_id": "b",
            "comment_text": DELETED_SENTINEL,
            "created_at": 2,
            "updated_at": 2,
        },
    ]

    assert project_latest(rows) == {}


def test_add_requires_all_fields(comments) -> None:
    with pytest.raises(BadRequestError) as excinfo:
        comments.add("e-1", "text", None, CLIENT)

    assert "created_by" in excinfo.value.error


def test_add_creates_version(comments) -> None:
    created = comments.add("e-1", "looks high", "ana", CLIENT)

    assert created.warning is None
    assert created.created_at == created.updated_at
    history = comments.history_for_entry(CLIENT, "e-1")
    assert [item.comment_id for item in history] == [created.comment_id]


def test_add_for_unknown_client_is_not_found(comments) -> None:
    with pytest.raises(NotFoundError):
        comments.add("e-1", "text", "ana", "Nobody")


def test_update_reports_whether_entry_is_new(comments) -> None:
    _, created = comments.update("e-9", "first", CLIENT, created_by="ana")
    _, created_again = comments.update("e-9", "second", CLIENT, created_by="ana")

    assert created is True
    assert created_again is False


@pytest.mark.parametrize(
    ("created_by", "user_email", "author"),
    [
        ("ana", "bob@example.com", "ana"),
        (None, "bob@example.com", "bob@example.com"),
        (None, None, DEFAULT_AUTHOR),
    ],
)
def test_update_author_resolution(comments, created_by, user_email, author) -> None:
    comment, _ = comments.update(
        "e-1", "text", CLIENT, created_by=created_by, user_email=user_email
    )

    assert comment.created_by == author


def test_update_requires_text_and_client(comments) -> None:
    with pytest.raises(BadRequestError):
        comments.update("e-1", None, CLIENT)
    with pytest.raises(BadRequestError):
        comments.update("e-1", "text", None)


def test_latest_for_entries_applies_tie_break(comments, store, client_record) -> None:
    table = client_record.comments_table_name
    _insert(store, table, "a", "oldest", _stamp(1))
    _insert(store, table, "b", "tie older create", _stamp(3), created=_stamp(1))
    _insert(store, table, "c", "tie newer create", _stamp(3), created=_stamp(2))
    _insert(store, table, "d", "other entry", _stamp(2), entry_id="e-2")

    latest = comments.latest_for_entries(table, ["e-1", "e-2", "missing"])

    assert latest["e-1"]["comment_text"] == "tie newer create"
    assert latest["e-2"]["comment_text"] == "other entry"
    assert "missing" not in latest


def test_latest_for_entries_breaks_full_ties_by_id(comments, store, client_record) -> None:
    table = client_record.comments_table_name
    _insert(store, table, "aaa", "lower id", _stamp(3))
    _insert(store, table, "zzz", "higher id", _stamp(3))

    assert comments.latest_for_entries(table, ["e-1"])["e-1"]["comment_text"] == "higher id"


def test_latest_for_entries_without_table(comments) -> None:
    assert comments.latest_for_entries("never_created_comments", ["e-1"]) == {}


def test_delete_removes_every_version(comments) -> None:
    comments.add("e-1", "one", "ana", CLIENT)
    comments.update("e-1", "two", CLIENT)

    result = comments.delete("e-1", CLIENT)

    assert result.deleted_count == 2
    with pytest.raises(NotFoundError):
        comments.history_for_entry(CLIENT, "e-1")


def test_delete_unknown_entry_is_not_found(comments) -> None:
    comments.add("e-1", "one", "ana", CLIENT)

    with pytest.raises(NotFoundError):
        comments.delete("e-404", CLIENT)


def test_unavailable_store_degrades_writes(comments, store, monkeypatch) -> None:
    monkeypatch.setattr(store, "is_available", lambda: False)

    added = comments.add("e-1", "text", "ana", CLIENT)
    updated, created = comments.update("e-1", "text", CLIENT)

    assert added.warning == UNAVAILABLE_WARNING
    assert updated.warning == UNAVAILABLE_WARNING
    assert created is False
    with pytest.raises(ServiceUnavailableError):
        comments.delete("e-1", CLIENT)

    monkeypatch.undo()
    with pytest.raises(NotFoundError):
        comments.history_for_entry(CLIENT, "e-1")


def test_history_is_newest_first(comments, store, client_record) -> None:
    table = client_record.comments_table_name
    _insert(store, table, "a", "old", _stamp(1))
    _insert(store, table, "b", "new", _stamp(2))

    assert [row["comment_id"] for row in comments.history(table)] == ["b", "a"]
