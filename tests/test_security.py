import jwt
import pytest

from holistic_money.core.config import AuthSettings
from holistic_money.core.security import AuthenticatedUser, AuthenticationError, SecurityProvider


def _provider(secret: str = "secret", minutes: int = 60) -> SecurityProvider:
    return SecurityProvider(
        AuthSettings(
            secret_key=secret,
            algorithm="HS256",
            access_token_expire_minutes=minutes,
            admin_email="admin@example.com",
            admin_password="pw",
            bcrypt_rounds=4,
        )
    )


def test_password_hashing_round_trip() -> None:
    provider = _provider()
    hashed = provider.hash_password("correct horse")

    assert hashed.startswith("$2")
    assert provider.verify_password("correct horse", hashed)
    assert not provider.verify_password("wrong", hashed)
    assert not provider.verify_password("anything", None)
    assert not provider.verify_password("anything", "not-a-bcrypt-hash")


def test_token_carries_single_claim_shape() -> None:
    provider = _provider()
    token = provider.create_access_token(
        AuthenticatedUser(email="ana@example.com", role="user", user_id="u-1")
    )

    claims = jwt.decode(token, "secret", algorithms=["HS256"])
    assert set(claims) == {"sub", "user_id", "email", "role", "iat", "exp"}
    assert claims["exp"] - claims["iat"] == 3600
    assert provider.decode_token(token) == AuthenticatedUser(
        email="ana@example.com", role="user", user_id="u-1"
    )


def test_token_signed_with_other_secret_is_rejected() -> None:
    token = _provider("other").create_access_token(AuthenticatedUser(email="a@b.c", role="admin"))

    with pytest.raises(AuthenticationError, match="Invalid token"):
        _provider().decode_token(token)


def test_expired_token_is_rejected() -> None:
    token = _provider(minutes=-1).create_access_token(AuthenticatedUser(email="a@b.c", role="user"))

    with pytest.raises(AuthenticationError, match="Token expired"):
        _provider().decode_token(token)


def test_token_without_role_is_rejected() -> None:
    token = jwt.encode({"email": "a@b.c"}, "secret", algorithm="HS256")

    with pytest.raises(AuthenticationError):
        _provider().decode_token(token)
