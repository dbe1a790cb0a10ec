import datetime

import pytest

from venue_admin.database import Database
from venue_admin.session_store import TOKEN_KEY, SessionStore


def _cookie(store):
    return next(c for c in store.cookies if c.name == store.cookie_name)


@pytest.mark.unit
@pytest.mark.parametrize(("remember_me", "days"), [(True, 30), (False, 1)])
def test_cookie_expiry_follows_remember_me(session_store, remember_me, days) -> None:
    now = datetime.datetime.now(datetime.timezone.utc).timestamp()

    session_store.set_token("tok", remember_me=remember_me)

    expected = now + days * 24 * 60 * 60
    assert abs(_cookie(session_store).expires - expected) < 5
    assert session_store.remember_me() is remember_me
    assert session_store.get_token() == "tok"


@pytest.mark.unit
def test_durable_copy_survives_a_missing_cookie(session_store) -> None:
    session_store.set_token("tok")
    session_store.cookies.clear()

    assert session_store.get_token() == "tok"


@pytest.mark.unit
def test_expired_cookie_is_not_used(session_store, db) -> None:
    session_store.set_token("old")
    _cookie(session_store).expires = 1
    db.set_value(TOKEN_KEY, "durable")

    assert session_store.get_token() == "durable"


@pytest.mark.unit
def test_user_round_trip_and_removal(session_store) -> None:
    session_store.set_user({"id": 1, "email": "ops@example.com"})

    assert session_store.get_user() == {"id": 1, "email": "ops@example.com"}
    assert session_store.remove_user() is True
    assert session_store.get_user() is None
    assert session_store.remove_user() is False


@pytest.mark.unit
def test_clear_drops_token_and_user(session_store) -> None:
    session_store.set_token("tok", remember_me=True)
    session_store.set_user({"id": 1})

    assert session_store.clear() is True
    assert session_store.get_token() is None
    assert session_store.get_user() is None
    assert session_store.is_authenticated() is False
    assert session_store.clear() is False


@pytest.mark.unit
def test_stores_are_independent(db, tmp_path) -> None:
    first = SessionStore(db)
    second = SessionStore(Database(str(tmp_path / "other.db")))

    first.set_token("first-token")

    assert second.get_token() is None


@pytest.mark.unit
def test_current_session_bundles_token_user_and_flag(session_store) -> None:
    assert session_store.current_session() is None

    session_store.set_token("tok", remember_me=True)
    session_store.set_user({"email": "ops@example.com"})

    session = session_store.current_session()
    assert session.token == "tok"
    assert session.user == {"email": "ops@example.com"}
    assert session.remember_me is True
