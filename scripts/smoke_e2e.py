#!/usr/bin/env python3
"""
Smoke E2E test: walks the main user journey against a running backend.

No external API keys required: analysis falls back to patterns, discovery
falls back to the curated list and generation may answer 502 without a
model key (reported, not fatal).

Env vars:
  BASE_URL        (default http://localhost:8000)
  SMOKE_EMAIL     (default smoke+<timestamp>@example.com)
  ADMIN_PASSWORD  (optional, when the backend enforces one)
  TIMEOUT_SEC     (default 60, how long to wait for background analysis)
  POLL_INTERVAL   (default 2)
"""
from __future__ import annotations

import json
import os
import sys
import time
import uuid
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

BASE_URL = os.environ.get("BASE_URL", "http://localhost:8000").rstrip("/")
SMOKE_EMAIL = os.environ.get("SMOKE_EMAIL", f"smoke+{int(time.time())}@example.com")
ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", "")
TIMEOUT_SEC = int(os.environ.get("TIMEOUT_SEC", "60"))
POLL_INTERVAL = int(os.environ.get("POLL_INTERVAL", "2"))

SAMPLE_ITEMS = [
    ("https://www.youtube.com/watch?v=dQw4w9WgXcQ", "How to learn Python in 10 minutes"),
    ("https://www.youtube.com/shorts/abcdefghijk", "I tried every Python trick for 30 days"),
]

_token: str | None = None

# ── Helpers ──────────────────────────────────────────────────

class SmokeError(Exception):
    pass


def _headers() -> dict[str, str]:
    h = {"Content-Type": "application/json"}
    if _token:
        h["Authorization"] = f"Bearer {_token}"
    return h


def _req(method: str, path: str, body: dict | None = None, expect: tuple[int, ...] = (200,)) -> tuple[int, dict]:
    url = f"{BASE_URL}{path}"
    data = json.dumps(body).encode() if body is not None else None
    req = Request(url, data=data, headers=_headers(), method=method)
    try:
        with urlopen(req, timeout=30) as resp:
            raw = resp.read().decode()
            return resp.status, json.loads(raw) if raw else {}
    except HTTPError as e:
        raw = e.read().decode()[:500]
        if e.code in expect:
            return e.code, json.loads(raw) if raw else {}
        raise SmokeError(f"{method} {path} → {e.code}: {raw}")
    except URLError as e:
        raise SmokeError(f"{method} {path} → URLError: {e}")


def GET(path: str) -> dict:
    return _req("GET", path)[1]


def POST(path: str, body: dict | None = None, expect: tuple[int, ...] = (200, 201)) -> dict:
    return _req("POST", path, body if body is not None else {}, expect)[1]


def DELETE(path: str) -> dict:
    return _req("DELETE", path)[1]


def step(name: str):
    print(f"\n{'='*60}")
    print(f"  STEP: {name}")
    print(f"{'='*60}")


def ok(msg: str):
    print(f"  ✅ {msg}")


def warn(msg: str):
    print(f"  ⚠️  {msg}")


def fail(msg: str):
    print(f"  ❌ {msg}")
    raise SmokeError(msg)


# ── Steps ────────────────────────────────────────────────────

def step1_health():
    step("1. Health check")
    if GET("/ping").get("status") != "ok":
        fail("/ping did not answer ok")
    ok("Backend is up")


def step2_login() -> int:
    global _token
    step("2. Login")
    body = {"email": SMOKE_EMAIL}
    if ADMIN_PASSWORD:
        body["password"] = ADMIN_PASSWORD
    data = POST("/api/auth/login", body)
    _token = data["token"]
    ok(f"Logged in as {SMOKE_EMAIL} (user #{data['user_id']})")
    return data["user_id"]


def step3_save_items() -> list[int]:
    step("3. Save collection items")
    ids = []
    for url, title in SAMPLE_ITEMS:
        item = POST("/api/collections", {"url": url, "title": title})
        if not item.get("video_id"):
            fail(f"Item #{item['id']} has no video_id")
        ids.append(item["id"])
        ok(f"Item #{item['id']} saved ({item['platform']}, thumbnail={item['thumbnail']})")
    return ids


def step4_wait_for_analysis(item_ids: list[int]):
    step("4. Wait for background analysis")
    deadline = time.time() + TIMEOUT_SEC
    pending = set(item_ids)
    while pending and time.time() < deadline:
        for item_id in list(pending):
            if GET(f"/api/collections/{item_id}").get("performance_dna"):
                pending.discard(item_id)
                ok(f"Item #{item_id} analyzed")
        if pending:
            time.sleep(POLL_INTERVAL)
    for item_id in pending:
        result = POST("/api/analyze", {"itemId": item_id})
        ok(f"Item #{item_id} analyzed on demand via {result['source']}")


def step5_rebuild_profile():
    step("5. Rebuild taste profile")
    data = POST("/api/taste-profile/rebuild?reanalyze=false")
    profile = data["profile"]
    hooks = profile["combined"]["performance"]["top_hooks"]
    ok(f"Profile rebuilt from {profile['item_count']} items, top hooks: {hooks}")
    summary = GET("/api/taste-profile/rebuild")
    if summary["needs_rebuild"]:
        fail(f"Summary still asks for a rebuild: {summary}")
    ok(f"Summary: {summary}")


def step6_training() -> int:
    step("6. Training round")
    data = GET("/api/training/suggestions?mode=pair")
    pair = data.get("pair")
    if not pair:
        fail(f"No suggestion pair: {data}")
    a, b = pair
    ok(f"Pair: #{a['id']} {a['title']!r} vs #{b['id']} {b['title']!r}")
    rated = POST("/api/training/rate", {
        "ratingType": "COMPARATIVE",
        "outcome": "A_PREFERRED",
        "suggestionAId": a["id"],
        "suggestionBId": b["id"],
        "responseTimeMs": 1500,
    })
    ok(f"Rating #{rated['rating_id']} stored, confidence={rated['confidence_score']:.2f}")
    refine = POST("/api/training/refine", expect=(200, 400))
    ok(f"Refine answered: {refine.get('message')}")
    stats = GET("/api/training/stats")
    ok(f"Stats: {stats['total_ratings']} ratings, {stats['pending_suggestions']} pending")
    return rated["rating_id"]


def step7_generate():
    step("7. Generate variants")
    status, data = _req("POST", "/api/generate", {"topic": "learning python", "count": 3}, expect=(200, 502))
    if status == 502:
        warn("Generation service unavailable (no model key?), skipping")
        return
    ok(f"{data['count']} variants: {[v['text'] for v in data['variants']]}")


def step8_extension():
    step("8. Extension relay")
    data = POST("/api/extension/messages", {"type": "UPDATE_BADGE", "client_id": uuid.uuid4().hex, "count": 2})
    if data.get("badge_text") != "2":
        fail(f"Unexpected badge reply: {data}")
    ok("Badge updated")


def step9_cleanup(item_ids: list[int]):
    step("9. Cleanup")
    for item_id in item_ids:
        DELETE(f"/api/collections/{item_id}")
    ok(f"Deleted {len(item_ids)} items")


def main():
    print(f"\n🔬 Smoke E2E Test: {BASE_URL}")
    print(f"   EMAIL={SMOKE_EMAIL}  TIMEOUT={TIMEOUT_SEC}s  POLL={POLL_INTERVAL}s\n")

    try:
        step1_health()
        step2_login()
        item_ids = step3_save_items()
        step4_wait_for_analysis(item_ids)
        step5_rebuild_profile()
        step6_training()
        step7_generate()
        step8_extension()
        step9_cleanup(item_ids)

        print(f"\n{'='*60}")
        print("  ✅ PASS")
        print(f"{'='*60}\n")
    except SmokeError as e:
        print(f"\n{'='*60}")
        print(f"  ❌ FAIL: {e}")
        print(f"{'='*60}\n")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n\n  ⏹ Interrupted")
        sys.exit(130)


if __name__ == "__main__":
    main()
