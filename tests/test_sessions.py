from sqlalchemy import func, select

from travelblog.auth.session import SessionManager, SignedCookie
from travelblog.infra.db import SessionRow


def _rows(db):
    with db.session() as s:
        return s.execute(select(func.count()).select_from(SessionRow)).scalar_one()


def test_create_then_lookup(sessions, clock):
    sess = sessions.create(42)
    assert sess.identity_id == 42
    assert sess.created_at == clock.now
    assert (sess.expires_at - sess.created_at).total_seconds() == 3600

    found = sessions.lookup(sess.session_id)
    assert found == sess


def test_tokens_are_opaque_and_unique(sessions):
    tokens = {sessions.create(1).session_id for _ in range(50)}
    assert len(tokens) == 50
    # 32 random bytes, urlsafe base64 without padding.
    assert all(len(t) >= 43 for t in tokens)


def test_unknown_and_empty_tokens_are_absent(sessions):
    assert sessions.lookup("does-not-exist") is None
    assert sessions.lookup("") is None


def test_destroy_is_idempotent(sessions):
    sess = sessions.create(7)
    sessions.destroy(sess.session_id)
    assert sessions.lookup(sess.session_id) is None
    sessions.destroy(sess.session_id)
    sessions.destroy("never-existed")
    sessions.destroy("")


def test_expired_session_reads_as_absent(sessions, clock, db):
    sess = sessions.create(7)
    clock.advance(seconds=3599)
    assert sessions.lookup(sess.session_id) is not None
    clock.advance(seconds=1)
    assert sessions.lookup(sess.session_id) is None
    assert _rows(db) == 0


def test_refresh_extends_expiry(sessions, clock):
    sess = sessions.create(7)
    clock.advance(minutes=50)
    refreshed = sessions.refresh(sess.session_id)
    assert refreshed.expires_at == clock.now + sessions.ttl
    assert refreshed.created_at == sess.created_at

    clock.advance(minutes=50)
    assert sessions.lookup(sess.session_id) is not None


def test_refresh_does_not_revive_expired(sessions, clock):
    sess = sessions.create(7)
    clock.advance(hours=2)
    assert sessions.refresh(sess.session_id) is None
    assert sessions.refresh("nope") is None


def test_many_sessions_per_identity(sessions):
    a = sessions.create(9)
    b = sessions.create(9)
    sessions.destroy(a.session_id)
    assert sessions.lookup(b.session_id) is not None


def test_purge_expired(db, clock):
    short = SessionManager(db, max_age=60, clock=clock)
    long = SessionManager(db, max_age=3600, clock=clock)
    short.create(1)
    short.create(2)
    keep = long.create(3)
    clock.advance(minutes=5)
    assert long.purge_expired() == 2
    assert _rows(db) == 1
    assert long.lookup(keep.session_id) is not None


def test_signed_cookie_roundtrip(cookie):
    value = cookie.dumps("abc")
    assert "abc" != value
    assert cookie.loads(value) == "abc"


def test_signed_cookie_rejects_tampering(cookie):
    value = cookie.dumps("abc")
    forged = value.rsplit(".", 1)[0] + ".AAAAAAAAAAAAAAAAAAAAAAAAAAA"
    assert cookie.loads(forged) is None
    assert cookie.loads("") is None
    assert cookie.loads("garbage") is None


def test_signed_cookie_is_bound_to_key_and_salt(cookie):
    value = cookie.dumps("abc")
    assert SignedCookie("other-secret").loads(value) is None
    assert SignedCookie("test-secret-key", salt="other.salt").loads(value) is None
