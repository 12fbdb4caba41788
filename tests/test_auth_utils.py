# tests/test_auth_utils.py
import jwt

from techshop.auth_utils import create_access_token, decode_user_id, hash_password, verify_password


def test_password_hash_round_trip():
    hashed = hash_password("Password123")
    assert hashed != hash_password("Password123")
    assert verify_password("Password123", hashed)
    assert not verify_password("password123", hashed)


def test_malformed_hashes_do_not_verify():
    assert not verify_password("Password123", "")
    assert not verify_password("Password123", "plain-text")
    assert not verify_password("Password123", "many$salt$abc")


def test_token_carries_user_id():
    token = create_access_token({"sub": "buyer01", "id": 7})
    assert decode_user_id(token) == 7


def test_expired_and_forged_tokens():
    expired = create_access_token({"id": 7}, expires_minutes=-1)
    forged = jwt.encode({"id": 7}, "some-other-secret-key-of-decent-length", algorithm="HS256")

    assert decode_user_id(expired) is None
    assert decode_user_id(forged) is None
    assert decode_user_id("not-a-token") is None
    assert decode_user_id(create_access_token({"sub": "no-id"})) is None
