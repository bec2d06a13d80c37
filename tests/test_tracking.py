from datetime import datetime, timedelta

from conftest import auth_headers
from sportshop.models.user_behavior import UserBehavior
from sportshop.services.tracking import BehaviorTracker, InMemorySessionStore, SessionEntry

T0 = datetime(2024, 5, 1, 8, 0, 0)


class FakeClock:
    def __init__(self, start=T0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


def make_tracker(clock=None, idle=60, ttl=1800, max_entries=100_000):
    store = InMemorySessionStore(ttl=timedelta(seconds=ttl), max_entries=max_entries)
    return BehaviorTracker(store, idle=timedelta(seconds=idle), clock=clock or FakeClock())


def test_session_is_reused_within_idle_window():
    tracker = make_tracker()
    first = tracker.resolve_session(1, T0)
    assert tracker.resolve_session(1, T0 + timedelta(seconds=30)) == first
    assert tracker.resolve_session(1, T0 + timedelta(seconds=85)) == first


def test_session_rolls_over_after_idle_gap():
    tracker = make_tracker()
    first = tracker.resolve_session(1, T0)
    assert tracker.resolve_session(1, T0 + timedelta(seconds=61)) != first


def test_sessions_are_per_user():
    tracker = make_tracker()
    assert tracker.resolve_session(1, T0) != tracker.resolve_session(2, T0)


def test_store_expires_entries_after_ttl():
    store = InMemorySessionStore(ttl=timedelta(minutes=30))
    store.put(1, SessionEntry("abc", T0))

    assert store.get(1, T0 + timedelta(minutes=29)).session_id == "abc"
    assert store.get(1, T0 + timedelta(minutes=31)) is None
    assert len(store) == 0


def test_purge_drops_only_stale_entries():
    store = InMemorySessionStore(ttl=timedelta(minutes=30))
    store.put(1, SessionEntry("old", T0))
    store.put(2, SessionEntry("new", T0 + timedelta(minutes=20)))

    assert store.purge(T0 + timedelta(minutes=40)) == 1
    assert len(store) == 1
    assert store.get(2, T0 + timedelta(minutes=40)).session_id == "new"


def test_store_is_bounded():
    store = InMemorySessionStore(ttl=timedelta(hours=1), max_entries=2)
    for user_id in range(1, 4):
        store.put(user_id, SessionEntry(f"s{user_id}", T0 + timedelta(seconds=user_id)))

    assert len(store) == 2
    assert store.get(1, T0 + timedelta(seconds=5)) is None


def test_track_persists_event(db, customer):
    clock = FakeClock()
    tracker = make_tracker(clock)

    first = tracker.track(db, customer.id, 7, "Running Shoe", "view")
    clock.advance(10)
    second = tracker.track(db, customer.id, 7, "Running Shoe", "cart")

    rows = db.query(UserBehavior).order_by(UserBehavior.id).all()
    assert [r.behavior for r in rows] == ["view", "cart"]
    assert first.session_id == second.session_id
    assert rows[1].event_time == T0 + timedelta(seconds=10)


def test_tracking_endpoint(client, db, customer):
    headers = auth_headers(customer)
    payload = {"productId": 7, "productName": "Running Shoe", "behavior": "view"}

    first = client.post("/api/tracking/", json=payload, headers=headers)
    second = client.post("/api/tracking/", json=dict(payload, behavior="like"), headers=headers)

    assert first.status_code == 201
    assert first.json()["message"] == "User behavior tracked successfully"
    assert second.json()["sessionId"] == first.json()["sessionId"]
    assert db.query(UserBehavior).filter(UserBehavior.user_id == customer.id).count() == 2


def test_tracking_rejects_unknown_behavior(client, customer):
    response = client.post("/api/tracking/", json={
        "productId": 7, "productName": "Running Shoe", "behavior": "stare",
    }, headers=auth_headers(customer))
    assert response.status_code == 400
