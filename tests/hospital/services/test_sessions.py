from datetime import datetime, timedelta
from threading import Thread
from uuid import UUID

import pytest

from hospital.core.utils import generate_unique_id
from hospital.services.sessions import SessionStore


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 5, 8, 0))


@pytest.fixture
def store(clock: FakeClock) -> SessionStore:
    return SessionStore(clock=clock)


def test_create_session_returns_uuid_token_that_validates(store: SessionStore) -> None:
    token = store.create_session('user-1')

    assert UUID(token)
    assert store.validate_session(token) == 'user-1'


def test_default_ttl_is_twenty_four_hours(store: SessionStore) -> None:
    token = store.create_session('user-1')

    assert store.get_remaining(token) == timedelta(hours=24)


def test_short_ttl_session_expires_and_is_purged(store: SessionStore, clock: FakeClock) -> None:
    token = store.create_session('user-1', ttl=timedelta(seconds=1))
    assert store.validate_session(token) == 'user-1'

    clock.advance(seconds=2)

    assert store.validate_session(token) is None
    assert len(store) == 0
    assert store.get_remaining(token) is None


def test_session_is_expired_at_exact_expiry_instant(store: SessionStore, clock: FakeClock) -> None:
    token = store.create_session('user-1', ttl=timedelta(minutes=5))

    clock.advance(minutes=5)

    assert store.validate_session(token) is None
    assert len(store) == 0


def test_get_remaining_counts_down_and_evicts_when_exhausted(store: SessionStore, clock: FakeClock) -> None:
    token = store.create_session('user-1', ttl=timedelta(minutes=10))

    clock.advance(minutes=4)
    assert store.get_remaining(token) == timedelta(minutes=6)

    clock.advance(minutes=6)
    assert store.get_remaining(token) is None
    assert len(store) == 0
    assert store.validate_session(token) is None


def test_expired_sessions_stay_until_looked_up(store: SessionStore, clock: FakeClock) -> None:
    store.create_session('user-1', ttl=timedelta(seconds=1))
    clock.advance(hours=1)

    assert len(store) == 1


def test_unknown_token_is_absent(store: SessionStore) -> None:
    assert store.validate_session('5f8b6a52-4c1e-4d3f-9a57-1b0c2d3e4f50') is None
    assert store.get_remaining('5f8b6a52-4c1e-4d3f-9a57-1b0c2d3e4f50') is None


def test_revoke_session_is_idempotent(store: SessionStore) -> None:
    token = store.create_session('user-1')

    store.revoke_session(token)
    store.revoke_session(token)

    assert store.validate_session(token) is None


def test_create_session_regenerates_on_token_collision(store: SessionStore, monkeypatch: pytest.MonkeyPatch) -> None:
    first = UUID('11111111-1111-4111-8111-111111111111')
    second = UUID('22222222-2222-4222-8222-222222222222')
    values = iter([first, first, second])
    monkeypatch.setattr('hospital.core.utils.uuid4', lambda: next(values))

    token_a = store.create_session('user-a')
    token_b = store.create_session('user-b')

    assert token_a == str(first)
    assert token_b == str(second)
    assert store.validate_session(token_a) == 'user-a'
    assert store.validate_session(token_b) == 'user-b'


def test_generate_unique_id_gives_up_after_repeated_collisions() -> None:
    with pytest.raises(RuntimeError):
        generate_unique_id(lambda _: True)


def test_concurrent_creates_do_not_lose_sessions() -> None:
    store = SessionStore()
    tokens: list[str] = []

    def worker(index: int) -> None:
        for offset in range(50):
            tokens.append(store.create_session(f'user-{index}-{offset}'))

    threads = [Thread(target=worker, args=(index,)) for index in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(store) == 400
    assert len(set(tokens)) == 400
    assert all(store.validate_session(token) is not None for token in tokens)


def test_clear_drops_every_session(store: SessionStore) -> None:
    token = store.create_session('user-1')

    store.clear()

    assert len(store) == 0
    assert store.validate_session(token) is None


def test_revoke_user_sessions_only_drops_that_users_tokens(store: SessionStore) -> None:
    first = store.create_session('user-1')
    second = store.create_session('user-1')
    other = store.create_session('user-2')

    assert store.revoke_user_sessions('user-1') == 2
    assert store.validate_session(first) is None
    assert store.validate_session(second) is None
    assert store.validate_session(other) == 'user-2'
    assert store.revoke_user_sessions('user-1') == 0
