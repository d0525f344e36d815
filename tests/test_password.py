"""Password hashing and cost upgrades."""

import pytest

from conftest import USER_PASSWORD, register_user
from todoapp.auth.password import hash_password, hash_rounds, needs_rehash, verify_password


def test_hash_and_verify():
    h = hash_password("correct horse", rounds=4)
    assert h.startswith("$2b$04$")
    assert verify_password("correct horse", h)
    assert not verify_password("wrong horse", h)


def test_malformed_hash_never_matches():
    assert not verify_password("anything", "not-a-bcrypt-hash")
    assert hash_rounds("not-a-bcrypt-hash") is None


def test_needs_rehash_when_cost_is_lower():
    weak = hash_password("pw", rounds=4)
    assert needs_rehash(weak, rounds=5)
    assert not needs_rehash(weak, rounds=4)
    assert needs_rehash("not-a-bcrypt-hash", rounds=4)


@pytest.mark.asyncio
async def test_login_upgrades_weak_hash(client, db_session, monkeypatch):
    from sqlalchemy import select

    from todoapp.config import settings
    from todoapp.db.models import User

    email, _ = await register_user(client)
    monkeypatch.setattr(settings, "password_hash_rounds", 5)

    r = await client.post("/api/auth/login", json={"email": email, "password": USER_PASSWORD})
    assert r.status_code == 200

    user = (await db_session.execute(select(User).where(User.email == email))).scalars().one()
    assert hash_rounds(user.password_hash) == 5
    assert verify_password(USER_PASSWORD, user.password_hash)
