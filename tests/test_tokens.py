from datetime import timedelta

import pytest

from auth_api.core.errors import InvalidTokenError
from auth_api.core.tokens import TokenCodec, decode_access


@pytest.fixture
def codec(clock):
    return TokenCodec("s3cret", clock=clock)


def test_sign_and_verify_round_trips_claims(codec, clock):
    token = codec.sign({"sub": "7", "email": "a@x.com", "roles": ["user"]}, timedelta(hours=1))
    claims = codec.verify(token)
    assert claims["sub"] == "7"
    assert claims["email"] == "a@x.com"
    assert claims["roles"] == ["user"]
    assert claims["exp"] - claims["iat"] == 3600
    assert claims["iat"] == int(clock.now().timestamp())


def test_each_token_gets_its_own_id(codec):
    a = codec.verify(codec.sign({"sub": "1"}, timedelta(minutes=5)))
    b = codec.verify(codec.sign({"sub": "1"}, timedelta(minutes=5)))
    assert a["jti"] != b["jti"]


def test_tampered_token_is_rejected(codec):
    token = codec.sign({"sub": "1"}, timedelta(minutes=5))
    head, body, sig = token.split(".")
    forged = ".".join([head, body, ("A" if sig[0] != "A" else "B") + sig[1:]])
    with pytest.raises(InvalidTokenError):
        codec.verify(forged)


def test_token_from_another_secret_is_rejected(codec, clock):
    other = TokenCodec("different", clock=clock)
    with pytest.raises(InvalidTokenError):
        codec.verify(other.sign({"sub": "1"}, timedelta(minutes=5)))


def test_garbage_is_rejected(codec):
    with pytest.raises(InvalidTokenError):
        codec.verify("not.a.jwt")


def test_expiry_has_no_leeway(codec, clock):
    token = codec.sign({"sub": "1"}, timedelta(minutes=5))
    clock.advance(minutes=4, seconds=59)
    assert codec.verify(token)["sub"] == "1"
    clock.advance(seconds=1)
    with pytest.raises(InvalidTokenError):
        codec.verify(token)


def test_decode_access_requires_access_type(codec):
    with pytest.raises(InvalidTokenError):
        decode_access(codec, codec.sign({"sub": "1", "type": "refresh"}, timedelta(minutes=5)))
    assert decode_access(codec, codec.sign({"sub": "1", "type": "access"}, timedelta(minutes=5)))["sub"] == "1"
