import json
from datetime import datetime, timedelta, timezone

from conftest import login
from folio.services import metadata_fetcher
from folio.services.metadata_fetcher import VideoStats

CLIENT_ID = "0f3c9a7be2d44c1f9e5a6b7c8d9e0f1a"


def _save(client, headers, url, **extra):
    return client.post("/api/collections", json={"url": url, **extra}, headers=headers)


def test_ping(client):
    assert client.get("/ping").json() == {"status": "ok"}


def test_requires_token(client):
    assert client.get("/api/collections").status_code == 401
    bad = {"Authorization": "Bearer nope"}
    assert client.get("/api/collections", headers=bad).json()["detail"] == "Invalid or expired token"


def test_login_is_idempotent_per_email(client):
    first = client.post("/api/auth/login", json={"email": "Ana@Example.com "}).json()
    second = client.post("/api/auth/login", json={"email": "ana@example.com"}).json()

    assert first["user_id"] == second["user_id"]
    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {second['token']}"}).json()
    assert me["email"] == "ana@example.com"


def test_save_youtube_url_populates_metrics(client, auth_headers, monkeypatch):
    published = datetime.now(timezone.utc) - timedelta(days=10, hours=1)

    async def fake_stats(video_id):
        return "Cat piano", VideoStats(views=5000, likes=200, comments=50, published_at=published)

    monkeypatch.setattr(metadata_fetcher, "fetch_youtube_stats", fake_stats)

    response = _save(client, auth_headers, "https://www.youtube.com/watch?v=dQw4w9WgXcQ")

    assert response.status_code == 201, response.text
    item = response.json()
    assert item["title"] == "Cat piano"
    assert item["platform"] == "YOUTUBE_LONG"
    assert item["video_id"] == "dQw4w9WgXcQ"
    assert item["thumbnail"] == "https://img.youtube.com/vi/dQw4w9WgXcQ/maxresdefault.jpg"
    assert item["age_in_days"] == 10
    assert item["views_per_day"] == 500.0
    assert item["engagement_rate"] == 5.0

    analyzed = client.get(f"/api/collections/{item['id']}", headers=auth_headers).json()
    assert analyzed["performance_dna"] is not None


def test_save_validation(client, auth_headers):
    assert _save(client, auth_headers, "ftp://example.com/x").status_code == 400
    assert _save(client, auth_headers, "https://example.com/post/1", title="x").status_code == 400
    # no API key: the title cannot be fetched
    assert _save(client, auth_headers, "https://youtu.be/dQw4w9WgXcQ").status_code == 400


def test_items_are_private(client, auth_headers):
    item = _save(client, auth_headers, "https://youtu.be/dQw4w9WgXcQ", title="Mine").json()
    other = login(client, "bo@example.com")

    assert client.get(f"/api/collections/{item['id']}", headers=other).status_code == 404
    assert client.delete(f"/api/collections/{item['id']}", headers=other).status_code == 404
    assert client.post("/api/analyze", json={"itemId": item["id"]}, headers=other).status_code == 404
    assert client.get("/api/collections", headers=other).json()["total"] == 0


def test_list_update_and_delete(client, auth_headers):
    _save(client, auth_headers, "https://youtu.be/dQw4w9WgXcQ", title="Python in 100 seconds")
    shorts = _save(client, auth_headers, "https://www.youtube.com/shorts/abcdefghijk", title="Cat piano").json()

    listed = client.get("/api/collections", params={"platform": "YOUTUBE_SHORT"}, headers=auth_headers).json()
    assert [i["title"] for i in listed["collections"]] == ["Cat piano"]
    searched = client.get("/api/collections", params={"search": "python"}, headers=auth_headers).json()
    assert searched["total"] == 1

    updated = client.patch(
        f"/api/collections/{shorts['id']}", json={"notes": "loop it", "tags": ["cats"]}, headers=auth_headers
    ).json()
    assert updated["notes"] == "loop it"
    assert updated["tags"] == ["cats"]

    assert client.delete(f"/api/collections/{shorts['id']}", headers=auth_headers).json() == {"success": True}
    assert client.get(f"/api/collections/{shorts['id']}", headers=auth_headers).status_code == 404


def test_analyze_falls_back_to_patterns(client, auth_headers):
    item = _save(client, auth_headers, "https://youtu.be/dQw4w9WgXcQ", title="How to fold a shirt in 2 seconds").json()

    result = client.post("/api/analyze", json={"itemId": item["id"]}, headers=auth_headers).json()

    assert result["source"] == "patterns"
    assert "how-to promise" in result["performance_dna"]["hooks"]


def test_taste_profile_endpoints(client, auth_headers):
    empty = client.post("/api/taste-profile/rebuild", headers=auth_headers)
    assert empty.status_code == 400
    assert client.get("/api/taste-profile/source", params={"mode": "bogus"}, headers=auth_headers).status_code == 400

    _save(client, auth_headers, "https://youtu.be/dQw4w9WgXcQ", title="Python tutorial for beginners")
    rebuilt = client.post("/api/taste-profile/rebuild", headers=auth_headers).json()
    assert rebuilt["success"] is True
    assert rebuilt["profile"]["item_count"] == 1

    view = client.get("/api/taste-profile/source", params={"mode": "collection"}, headers=auth_headers).json()
    assert view["has_data"] is True
    summary = client.get("/api/taste-profile/rebuild", headers=auth_headers).json()
    assert summary == {"total_items": 1, "analyzed_items": 1, "needs_rebuild": False}


def test_training_flow(client, auth_headers):
    assert client.get("/api/training/suggestions", params={"mode": "grid"}, headers=auth_headers).status_code == 400

    pair = client.get("/api/training/suggestions", headers=auth_headers).json()["pair"]
    assert len(pair) == 2 and pair[0]["id"] != pair[1]["id"]

    rated = client.post(
        "/api/training/rate",
        json={
            "ratingType": "comparative",
            "outcome": "a_preferred",
            "suggestionAId": pair[0]["id"],
            "suggestionBId": pair[1]["id"],
            "responseTimeMs": 1800,
        },
        headers=auth_headers,
    )
    assert rated.status_code == 200, rated.text
    missing = client.post(
        "/api/training/rate",
        json={"ratingType": "BINARY", "outcome": "LIKED", "suggestionId": 99999},
        headers=auth_headers,
    )
    assert missing.status_code == 404

    refine = client.post("/api/training/refine", headers=auth_headers)
    assert refine.status_code == 400
    assert refine.json()["success"] is False

    stats = client.get("/api/training/stats", headers=auth_headers).json()
    assert stats["comparative_ratings"] == 1
    assert stats["pending_suggestions"] >= 1


def test_generate(client, auth_headers, fake_llm):
    assert client.post("/api/generate", json={}, headers=auth_headers).status_code == 400
    assert client.post("/api/generate", json={"mode": "randomize"}, headers=auth_headers).status_code == 400
    assert client.post("/api/generate", json={"topic": "sourdough"}, headers=auth_headers).status_code == 502

    fake_llm.replies.append(json.dumps([{"text": "Sourdough in 60 seconds", "performance_score": 75}]))
    result = client.post("/api/generate", json={"topic": "sourdough", "count": 1}, headers=auth_headers).json()
    assert result["mode"] == "topic"
    assert result["count"] == 1
    assert result["variants"][0]["text"] == "Sourdough in 60 seconds"


def test_extension_messages(client, fake_redis):
    ok = client.post(
        "/api/extension/messages", json={"type": "UPDATE_BADGE", "client_id": CLIENT_ID, "count": 3}
    )
    assert ok.json() == {"success": True, "badge_text": "3"}

    bad = client.post("/api/extension/messages", json={"type": "SET_AUTH_TOKEN", "client_id": CLIENT_ID})
    assert bad.status_code == 400
    assert client.post("/api/extension/messages", json={"type": "NOPE", "client_id": CLIENT_ID}).status_code == 400


def test_extension_token_needs_unguessable_client_id(client, fake_redis):
    fake_redis.store["ext:token:a"] = "stolen"

    response = client.post("/api/extension/messages", json={"type": "GET_AUTH_TOKEN", "client_id": "a"})

    assert response.status_code == 400
    assert "stolen" not in response.text
