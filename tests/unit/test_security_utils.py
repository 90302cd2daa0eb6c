from datetime import timedelta

import pytest
from jose import jwt

from app.config import JWT_ALGORITHM, SECRET_KEY
from app.security_utils import (
    TokenError,
    check_password_strength,
    create_jwt_token,
    hash_password_bcrypt,
    verify_jwt_token,
    verify_password_bcrypt,
)


def test_password_hash_round_trip():
    hashed = hash_password_bcrypt("Password1")

    assert hashed != "Password1"
    assert verify_password_bcrypt("Password1", hashed)
    assert not verify_password_bcrypt("password1", hashed)


def test_verify_against_garbage_hash_is_false():
    assert verify_password_bcrypt("Password1", "not-a-hash") is False


@pytest.mark.parametrize(
    "password, problem",
    [
        ("Pass1", "at least 8 characters"),
        ("PASSWORD1", "lowercase"),
        ("password1", "uppercase"),
        ("Passwordx", "number"),
    ],
)
def test_weak_passwords(password, problem):
    result = check_password_strength(password)

    assert result["is_valid"] is False
    assert any(problem in message for message in result["feedback"])


def test_strong_password():
    assert check_password_strength("Sup3rSecret") == {"feedback": [], "is_valid": True}


def test_token_carries_subject_and_audience():
    payload = verify_jwt_token(create_jwt_token("user-1"))

    assert payload["sub"] == "user-1"
    assert payload["iss"] == "slot-swapper"
    assert payload["aud"] == "slot-swapper-users"


def test_expired_token():
    token = create_jwt_token("user-1", expires_delta=timedelta(seconds=-5))

    with pytest.raises(TokenError, match="expired"):
        verify_jwt_token(token)


def test_token_for_another_audience_is_invalid():
    token = jwt.encode({"sub": "user-1", "aud": "someone-else", "iss": "slot-swapper"}, SECRET_KEY,
                       algorithm=JWT_ALGORITHM)

    with pytest.raises(TokenError, match="Invalid token"):
        verify_jwt_token(token)


def test_tampered_token_is_invalid():
    token = create_jwt_token("user-1")

    with pytest.raises(TokenError, match="Invalid token"):
        verify_jwt_token(token[:-2] + ("aa" if not token.endswith("aa") else "bb"))


def test_missing_token():
    with pytest.raises(TokenError, match="required"):
        verify_jwt_token("")
