from holistic_money.core.config import AuthSettings
from holistic_money.core.security import AuthenticatedUser
from holistic_money.services import (
    AllowAllPolicy,
    GrantTablePolicy,
    UserService,
    build_access_policy,
)

ANALYST = AuthenticatedUser(email="analyst@example.com", role="user")


def _settings(policy: str) -> AuthSettings:
    return AuthSettings(
        secret_key="s",
        algorithm="HS256",
        access_token_expire_minutes=5,
        admin_email="admin@example.com",
        admin_password="pw",
        bcrypt_rounds=4,
        client_access_policy=policy,
    )


def test_policy_selection(store) -> None:
    assert isinstance(build_access_policy(_settings("allow_all"), store), AllowAllPolicy)
    assert isinstance(build_access_policy(_settings("grant_table"), store), GrantTablePolicy)
    assert isinstance(build_access_policy(_settings("something"), store), GrantTablePolicy)


def test_allow_all_policy() -> None:
    assert AllowAllPolicy().can_access(ANALYST, "Anything")


def test_grant_table_policy(store, security, clients_service) -> None:
    users = UserService(store, security)
    users.create_user(ANALYST.email, "pw", "Ana", "Lyst")
    clients_service.create_client("Acme", "acme")
    clients_service.create_client("Other", "other")
    users.assign_client(ANALYST.email, "Acme")
    policy = GrantTablePolicy(users)

    assert policy.can_access(ANALYST, "acme")
    assert not policy.can_access(ANALYST, "Other")
    assert policy.can_access(AuthenticatedUser(email="root@example.com", role="admin"), "Other")
