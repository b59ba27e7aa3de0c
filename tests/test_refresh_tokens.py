import string

import pytest
from sqlalchemy import func, select

from auth_api.core.errors import ExpiredError, NotFoundError
from auth_api.models.refresh_token import RefreshToken


def _count(db, **filters):
    stmt = select(func.count()).select_from(RefreshToken)
    for k, v in filters.items():
        stmt = stmt.where(getattr(RefreshToken, k) == v)
    return db.scalar(stmt)


def test_issue_persists_high_entropy_token(db, auth, make_user):
    user = make_user()
    store = auth.refresh_tokens
    token = store.issue(db, user.id)
    db.commit()

    assert len(token) == 80
    assert set(token) <= set(string.hexdigits.lower())
    assert token != store.issue(db, user.id)
    assert _count(db, user_id=user.id) == 2


def test_redeem_returns_owner_and_fresh_claims(db, auth, make_user):
    user = make_user(email="b@x.com", roles=["user", "admin"])
    token = auth.refresh_tokens.issue(db, user.id)
    db.commit()

    user_id, claims = auth.refresh_tokens.redeem(db, token)
    assert user_id == user.id
    assert claims == {"sub": str(user.id), "email": "b@x.com", "roles": ["admin", "user"]}


def test_redeem_unknown_token(db, auth):
    with pytest.raises(NotFoundError):
        auth.refresh_tokens.redeem(db, "f" * 80)


def test_expired_token_is_rejected_and_removed(db, auth, make_user, clock):
    user = make_user()
    token = auth.refresh_tokens.issue(db, user.id)
    db.commit()

    clock.advance(days=7)
    with pytest.raises(ExpiredError):
        auth.refresh_tokens.redeem(db, token)
    assert _count(db, token=token) == 0
    with pytest.raises(NotFoundError):
        auth.refresh_tokens.redeem(db, token)


def test_token_still_valid_just_before_expiry(db, auth, make_user, clock):
    user = make_user()
    token = auth.refresh_tokens.issue(db, user.id)
    db.commit()

    clock.advance(days=6, hours=23, minutes=59)
    assert auth.refresh_tokens.redeem(db, token)[0] == user.id


def test_revoke_is_idempotent(db, auth, make_user):
    user = make_user()
    token = auth.refresh_tokens.issue(db, user.id)
    db.commit()

    auth.refresh_tokens.revoke(db, token)
    auth.refresh_tokens.revoke(db, token)
    db.commit()
    assert _count(db, token=token) == 0


def test_revoke_all_for_user_leaves_other_users_alone(db, auth, make_user):
    u1 = make_user(email="one@x.com")
    u2 = make_user(email="two@x.com")
    for _ in range(3):
        auth.refresh_tokens.issue(db, u1.id)
    keep = auth.refresh_tokens.issue(db, u2.id)
    db.commit()

    assert auth.refresh_tokens.revoke_all_for_user(db, u1.id) == 3
    db.commit()
    assert _count(db, user_id=u1.id) == 0
    assert auth.refresh_tokens.redeem(db, keep)[0] == u2.id


def test_sweep_expired_only_deletes_expired_rows(db, auth, make_user, clock):
    user = make_user()
    auth.refresh_tokens.issue(db, user.id)
    auth.refresh_tokens.issue(db, user.id)
    db.commit()
    clock.advance(days=3)
    fresh = auth.refresh_tokens.issue(db, user.id)
    db.commit()

    clock.advance(days=5)
    assert auth.refresh_tokens.sweep_expired(db) == 2
    db.commit()
    assert _count(db) == 1
    assert auth.refresh_tokens.redeem(db, fresh)[0] == user.id
    # running it again is harmless
    assert auth.refresh_tokens.sweep_expired(db) == 0
