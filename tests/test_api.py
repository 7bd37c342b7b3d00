from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from feed_ranking.api import app as app_module
from feed_ranking.api.app import app, get_builder
from feed_ranking.domain.numeric import utcnow
from feed_ranking.engine.feed_builder import FeedBuilder


@pytest.fixture
def client(store):
    builder = FeedBuilder(store)
    app.dependency_overrides[get_builder] = lambda: builder
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def seeded(store):
    now = utcnow()
    store.upsert_video("old", "u1", title="Old hit", category="Music", tags=["live"],
                       created_at=now - timedelta(days=90))
    store.upsert_video("new", "u2", title="New upload", category="Gaming", tags=["fps"],
                       created_at=now - timedelta(hours=2))
    return store


def test_feed_endpoint(client, seeded):
    for user in ("a", "b", "c"):
        assert client.post("/videos/old/reactions", json={"user_id": user, "is_like": True}).status_code == 200
    resp = client.get("/feed")
    assert resp.status_code == 200
    body = resp.json()
    assert [i["video_id"] for i in body["items"]] == ["new", "old"]
    assert body["items"][0]["score"] == 100
    assert body["items"][1]["score"] == 15
    assert body["next_cursor"] is None


def test_feed_pagination_and_bad_cursor(client, seeded):
    body = client.get("/feed", params={"limit": 1}).json()
    assert len(body["items"]) == 1
    assert body["next_cursor"] == "old"
    assert client.get("/feed", params={"cursor": "missing"}).status_code == 400
    assert client.get("/feed", params={"limit": 0}).status_code == 422


def test_reaction_toggle(client, seeded):
    url = "/videos/new/reactions"
    assert client.post(url, json={"user_id": "a", "is_like": True}).json() == {"action": "added"}
    assert client.post(url, json={"user_id": "a", "is_like": False}).json() == {"action": "switched"}
    assert client.post(url, json={"user_id": "a", "is_like": False}).json() == {"action": "removed"}
    assert client.post("/videos/nope/reactions", json={"user_id": "a", "is_like": True}).status_code == 404


def test_view_counted_once(client, seeded):
    assert client.post("/videos/new/views", json={"user_id": "a"}).json() == {"incremented": True}
    assert client.post("/videos/new/views", json={"user_id": "a"}).json() == {"incremented": False}
    assert seeded.get_video("new")["view_count"] == 1


def test_personalized_feed_endpoint(client, seeded):
    seeded.upsert_video("other", "u3", category="Music", tags=["live"],
                        created_at=utcnow() - timedelta(days=200))
    assert client.post("/videos/other/history", json={"user_id": "viewer", "last_position": 4}).status_code == 200

    body = client.get("/feed/personalized", params={"user_id": "viewer"}).json()
    assert body["scorer"] == "personalized"
    ids = [i["video_id"] for i in body["items"]]
    # "old" and "other" both score 80 on affinity; "old" is newer.
    assert ids == ["old", "other", "new"]
    assert body["items"][0]["explain"]["category"] == 40.0


def test_history_rejects_unknown_video_and_negative_position(client, seeded):
    assert client.post("/videos/nope/history", json={"user_id": "a"}).status_code == 404
    assert client.post("/videos/new/history", json={"user_id": "a", "last_position": -1}).status_code == 422


def test_trending_feed_endpoint(client, seeded):
    for user in ("a", "b"):
        client.post("/videos/old/views", json={"user_id": user})
    body = client.get("/feed/trending").json()
    assert body["scorer"] == "trending"
    assert [i["video_id"] for i in body["items"]] == ["old", "new"]
    assert 0 < body["items"][0]["score"] < 2


def test_logging_is_configured_on_startup(store, monkeypatch):
    calls = []
    monkeypatch.setattr(app_module, "configure_logging", lambda *a, **kw: calls.append(a))
    assert calls == []
    with TestClient(app):
        assert len(calls) == 1
