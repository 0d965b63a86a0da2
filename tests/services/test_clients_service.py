import pytest
from sqlalchemy import inspect, select

from holistic_money.core.errors import BadRequestError, ConflictError, NotFoundError
from holistic_money.models import UserClient
from holistic_money.services import UserService, derive_comments_table_name


@pytest.mark.parametrize(
    ("name", "table"),
    [
        ("Austin Lifestyler", "austin_lifestyler_comments"),
        ("  Acme   Corp ", "acme_corp_comments"),
        ("O'Brien & Sons", "obrien__sons_comments"),
        ("7 Eleven", "client_7_eleven_comments"),
    ],
)
def test_derive_comments_table_name(name, table) -> None:
    assert derive_comments_table_name(name) == table


def test_create_client_builds_comment_table(clients_service, store) -> None:
    client = clients_service.create_client("Austin Lifestyler", "austin_lifestyler")

    assert client.client_id is not None
    assert client.status == "active"
    assert client.comments_table_name == "austin_lifestyler_comments"
    assert inspect(store.engine).has_table("austin_lifestyler_comments")


def test_create_client_requires_fields(clients_service) -> None:
    with pytest.raises(BadRequestError) as excinfo:
        clients_service.create_client("Acme", None)

    assert excinfo.value.status_code == 400
    assert "bigquery_dataset" in excinfo.value.error


def test_create_client_rejects_bad_dataset(clients_service) -> None:
    with pytest.raises(BadRequestError):
        clients_service.create_client("Acme", "acme; DROP TABLE")


def test_duplicate_client_name_conflicts(clients_service) -> None:
    clients_service.create_client("Acme", "acme")

    with pytest.raises(ConflictError):
        clients_service.create_client("ACME", "acme_two")


def test_list_clients_hides_inactive(clients_service) -> None:
    clients_service.create_client("Beta", "beta")
    clients_service.create_client("Alpha", "alpha")
    clients_service.create_client("Gamma", "gamma", status="inactive")

    assert [c.client_name for c in clients_service.list_clients()] == ["Alpha", "Beta"]
    assert len(clients_service.list_clients(include_inactive=True)) == 3


def test_update_keeps_comment_table(clients_service) -> None:
    client = clients_service.create_client("Acme", "acme")

    updated = clients_service.update_client(
        client.client_id, "Acme Holdings", "acme_prod", "inactive"
    )

    assert updated.client_name == "Acme Holdings"
    assert updated.bigquery_dataset == "acme_prod"
    assert updated.status == "inactive"
    assert updated.comments_table_name == "acme_comments"


def test_update_unknown_client(clients_service) -> None:
    with pytest.raises(NotFoundError):
        clients_service.update_client(999, "Acme", "acme")


def test_update_rejects_invalid_status(clients_service) -> None:
    client = clients_service.create_client("Acme", "acme")

    with pytest.raises(BadRequestError):
        clients_service.update_client(client.client_id, "Acme", "acme", "archived")


def test_delete_client_removes_grants(clients_service, store, security) -> None:
    client = clients_service.create_client("Acme", "acme")
    users = UserService(store, security)
    users.create_user("ana@example.com", "pw", "Ana", "Lyst")
    users.assign_client("ana@example.com", "Acme")

    clients_service.delete_client(client.client_id)

    with pytest.raises(NotFoundError):
        clients_service.get_client(client.client_id)
    with store.session() as session:
        assert session.scalars(select(UserClient)).all() == []


def test_delete_unknown_client(clients_service) -> None:
    with pytest.raises(NotFoundError):
        clients_service.delete_client(42)


def test_get_client_by_name_ignores_case_and_padding(clients_service) -> None:
    created = clients_service.create_client("Austin Lifestyler", "austin")

    found = clients_service.get_client_by_name("  AUSTIN lifestyler ")

    assert found.client_id == created.client_id
    with pytest.raises(NotFoundError):
        clients_service.get_client_by_name("Nobody Inc")
