import json

from core.session import SessionService
from core.storage import TOKEN_EXPIRY_KEY, TOKEN_KEY, USER_KEY, MemoryStorage
from tests.fakes import START_MS, TTL_MS, FakeClock, FakeScheduler, make_user


def _persisted(user, token="tok-1", expiry=START_MS + 5_000):
    return MemoryStorage({
        TOKEN_KEY: token,
        TOKEN_EXPIRY_KEY: str(expiry),
        USER_KEY: json.dumps(user.to_storage()),
    })


def _service(storage, clock=None):
    clock = clock or FakeClock()
    scheduler = FakeScheduler(clock)
    return SessionService(storage, TTL_MS, now_ms=clock, scheduler=scheduler), clock, scheduler


def test_new_session_starts_loading():
    svc, _, _ = _service(MemoryStorage())
    assert svc.state.is_auth_loading is True
    assert svc.state.is_authenticated is False


def test_restore_with_nothing_stored_ends_signed_out():
    svc, _, scheduler = _service(MemoryStorage())
    state = svc.restore_session()
    assert state.is_authenticated is False
    assert state.user is None
    assert state.is_auth_loading is False
    assert scheduler.pending == []


class RecordingStorage(MemoryStorage):
    def __init__(self, initial=None):
        super().__init__(initial)
        self.removed = []

    def remove_item(self, key):
        self.removed.append(key)
        super().remove_item(key)


def test_restore_with_nothing_stored_deletes_nothing():
    storage = RecordingStorage()
    svc, _, _ = _service(storage)
    svc.restore_session()
    assert storage.removed == []


def test_restore_partial_session_removes_only_what_is_there():
    storage = RecordingStorage({TOKEN_KEY: "tok-1"})
    svc, _, _ = _service(storage)
    svc.restore_session()
    assert storage.removed == [TOKEN_KEY]
    assert storage.snapshot() == {}


def test_restore_valid_session_schedules_remaining_time():
    user = make_user()
    svc, _, scheduler = _service(_persisted(user, expiry=START_MS + 5_000))

    state = svc.restore_session()

    assert state.is_authenticated is True
    assert state.user == user
    assert state.is_auth_loading is False
    assert len(scheduler.pending) == 1
    assert scheduler.pending[0].delay_ms == 5_000


def test_restore_expired_session_clears_storage():
    storage = _persisted(make_user(), expiry=START_MS)
    svc, _, scheduler = _service(storage)

    state = svc.restore_session()

    assert state.is_authenticated is False
    assert state.is_auth_loading is False
    assert storage.snapshot() == {}
    assert scheduler.pending == []


def test_restore_unparsable_expiry_logs_out():
    storage = _persisted(make_user())
    storage.set_item(TOKEN_EXPIRY_KEY, "tomorrow")
    svc, _, _ = _service(storage)

    assert svc.restore_session().is_authenticated is False
    assert storage.get_item(TOKEN_KEY) is None


def test_restore_infinite_expiry_is_rejected():
    storage = _persisted(make_user())
    storage.set_item(TOKEN_EXPIRY_KEY, "inf")
    svc, _, _ = _service(storage)

    assert svc.restore_session().is_authenticated is False


def test_restore_corrupt_user_never_raises():
    storage = _persisted(make_user())
    storage.set_item(USER_KEY, "{not json")
    svc, _, _ = _service(storage)

    state = svc.restore_session()

    assert state.is_authenticated is False
    assert storage.snapshot() == {}


def test_restore_missing_token_clears_leftovers():
    storage = _persisted(make_user())
    storage.remove_item(TOKEN_KEY)
    svc, _, _ = _service(storage)

    assert svc.restore_session().is_authenticated is False
    assert storage.get_item(USER_KEY) is None


def test_login_persists_and_schedules_one_timer(session, storage, scheduler, clock):
    user = make_user()
    session.login(user, "tok-abc")

    assert session.state.is_authenticated is True
    assert session.user == user
    assert storage.get_item(TOKEN_KEY) == "tok-abc"
    assert storage.get_item(TOKEN_EXPIRY_KEY) == str(clock() + TTL_MS)
    assert json.loads(storage.get_item(USER_KEY))["email"] == user.email
    assert len(scheduler.pending) == 1
    assert scheduler.pending[0].delay_ms == TTL_MS


def test_second_login_replaces_timer(session, scheduler, clock):
    session.login(make_user(), "tok-1")
    first = scheduler.pending[0]
    clock.advance(1_000)
    session.login(make_user(name="Asha R"), "tok-2")

    assert first.cancelled is True
    assert len(scheduler.pending) == 1
    assert session.token == "tok-2"


def test_timer_fires_logout(session, scheduler, clock, storage):
    session.login(make_user(), "tok-1")
    clock.advance(TTL_MS)

    assert scheduler.run_due() == 1
    assert session.state.is_authenticated is False
    assert storage.snapshot() == {}


def test_replaced_timer_callback_is_ignored(session, scheduler, clock):
    session.login(make_user(), "tok-1")
    stale = scheduler.pending[0]
    session.login(make_user(), "tok-2")

    # A cancelled timer that still manages to run must not log the new session out.
    stale.callback()

    assert session.state.is_authenticated is True
    assert session.token == "tok-2"


def test_logout_twice_is_idempotent(session, scheduler, storage):
    session.login(make_user(), "tok-1")
    session.logout()
    session.logout()

    assert session.state.is_authenticated is False
    assert session.state.is_auth_loading is False
    assert scheduler.pending == []
    assert storage.snapshot() == {}


def test_update_user_merges_without_touching_token(session, storage):
    session.login(make_user(), "tok-1")
    expiry = storage.get_item(TOKEN_EXPIRY_KEY)

    session.update_user({"bio": "Now also doing deliveries on weekends.", "workCategories": ["Delivery"]})

    assert session.user.bio.startswith("Now also")
    assert session.user.work_categories == ["Delivery"]
    assert storage.get_item(TOKEN_KEY) == "tok-1"
    assert storage.get_item(TOKEN_EXPIRY_KEY) == expiry
    assert json.loads(storage.get_item(USER_KEY))["workCategories"] == ["Delivery"]


def test_update_user_without_session_is_ignored(session, storage):
    session.update_user({"name": "Nobody"})
    assert session.user is None
    assert storage.get_item(USER_KEY) is None


def test_subscribers_see_changes_until_unsubscribed(session):
    seen = []
    unsubscribe = session.subscribe(seen.append)

    session.login(make_user(), "tok-1")
    unsubscribe()
    session.logout()

    assert len(seen) == 1
    assert seen[0].is_authenticated is True


def test_failing_listener_does_not_break_login(session):
    def boom(_state):
        raise RuntimeError("listener failed")

    session.subscribe(boom)
    session.login(make_user(), "tok-1")

    assert session.state.is_authenticated is True


def test_close_cancels_timer_but_keeps_session(session, scheduler, storage):
    session.login(make_user(), "tok-1")
    session.close()

    assert scheduler.pending == []
    assert storage.get_item(TOKEN_KEY) == "tok-1"
