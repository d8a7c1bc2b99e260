"""End-to-end HTTP flow: create, join, complete, then read it all back."""

from __future__ import annotations

import pytest

CHALLENGE_BODY = {
    "title": "Push-ups",
    "description": "Twenty push-ups a day",
    "rules": "Photo of the last rep",
    "cautions": "Warm up",
    "category": "exercise",
    "max_participants": 10,
}


@pytest.mark.asyncio
async def test_challenge_lifecycle(client, make_user, make_badge, auth_headers):
    owner = await make_user("owner")
    await make_badge("first_step", "completions", 1)
    headers = auth_headers(owner)

    resp = await client.post("/api/v1/challenges", json=CHALLENGE_BODY, headers=headers)
    assert resp.status_code == 201
    challenge = resp.json()
    challenge_id = challenge["id"]
    assert challenge["created_by"]["nickname"] == "owner"
    assert challenge["completion_rate"] == 0

    resp = await client.get("/api/v1/challenges", params={"search": "push"})
    assert resp.json()["total"] == 1

    resp = await client.patch(f"/api/v1/challenges/{challenge_id}/view")
    assert resp.json() == {"view_count": 1}

    resp = await client.post(f"/api/v1/challenges/{challenge_id}/join", headers=headers)
    assert resp.status_code == 201
    resp = await client.post(f"/api/v1/challenges/{challenge_id}/join", headers=headers)
    assert resp.status_code == 400

    resp = await client.get(f"/api/v1/challenges/{challenge_id}")
    assert resp.json()["participant_count"] == 1

    resp = await client.get("/api/v1/progress/completable-today", headers=headers)
    assert resp.json()["total"] == 1

    # first completion of the day
    resp = await client.post(
        f"/api/v1/challenges/{challenge_id}/complete",
        json={"photo_url": "https://cdn.example.com/p/1.jpg"},
        headers=headers,
    )
    assert resp.status_code == 200
    result = resp.json()
    assert result["score"] == 10
    assert result["total_completions"] == 1
    assert result["current_streak_count"] == 1
    assert result["trust_score"] == 1.0
    assert result["badges_awarded"] == ["first_step"]
    assert result["cascade_failures"] == []

    resp = await client.post(
        f"/api/v1/challenges/{challenge_id}/complete",
        json={"photo_url": "https://cdn.example.com/p/2.jpg"},
        headers=headers,
    )
    assert resp.status_code == 409

    resp = await client.get("/api/v1/progress/completable-today", headers=headers)
    assert resp.json()["total"] == 0

    resp = await client.get("/api/v1/progress/me", headers=headers)
    entry = resp.json()["challenges"][0]
    assert len(entry["progress"]["completed_dates"]) == 1
    assert entry["progress"]["completion_photos"][0]["photo_url"] == "https://cdn.example.com/p/1.jpg"
    assert entry["challenge"]["completion_rate"] == 100

    resp = await client.get(f"/api/v1/progress/me/{challenge_id}", headers=headers)
    assert resp.json()["stats"]["active_days"] == 1

    resp = await client.get("/api/v1/progress/stats", headers=headers)
    stats = resp.json()
    assert stats["overview"]["total_completions"] == 1
    assert stats["category_stats"][0]["category"] == "exercise"
    assert stats["recent_activity"][0]["challenge_id"] == challenge_id

    resp = await client.get(f"/api/v1/rankings/challenges/{challenge_id}/me", headers=headers)
    mine = resp.json()
    assert (mine["rank"], mine["stats"]["percentile"], mine["value"]) == (1, 100, 10)

    resp = await client.get("/api/v1/rankings", params={"type": "completions"})
    ranking = resp.json()
    assert ranking["ranking_type"] == "completions"
    assert ranking["rankings"][0]["user"]["id"] == owner.id

    resp = await client.get(f"/api/v1/badges/users/{owner.id}")
    badges = resp.json()
    assert badges["total_earned"] == 1
    assert badges["representative"][0]["order"] == 1

    resp = await client.put("/api/v1/badges/representative", json={"badges": []}, headers=headers)
    assert resp.json() == {"representative": []}

    resp = await client.get(f"/api/v1/users/{owner.id}")
    profile = resp.json()
    assert profile["badge_count"] == 1
    assert profile["stats"]["total_completions"] == 1
    assert profile["recent_challenges"][0]["title"] == "Push-ups"

    resp = await client.delete(f"/api/v1/challenges/{challenge_id}/leave", headers=headers)
    assert resp.status_code == 204
    resp = await client.get(f"/api/v1/rankings/challenges/{challenge_id}/me", headers=headers)
    assert resp.status_code == 404

    # leaving keeps badges
    resp = await client.get(f"/api/v1/badges/users/{owner.id}")
    assert resp.json()["total_earned"] == 1


@pytest.mark.asyncio
async def test_complete_without_joining(client, make_user, make_challenge, auth_headers):
    user = await make_user()
    challenge = await make_challenge(user)
    resp = await client.post(
        f"/api/v1/challenges/{challenge.id}/complete",
        json={"photo_url": "https://cdn.example.com/p.jpg"},
        headers=auth_headers(user),
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_complete_requires_photo(client, make_user, make_challenge, auth_headers):
    user = await make_user()
    challenge = await make_challenge(user)
    resp = await client.post(
        f"/api/v1/challenges/{challenge.id}/complete",
        json={"photo_url": ""},
        headers=auth_headers(user),
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_only_owner_edits(client, make_user, make_challenge, auth_headers):
    owner = await make_user()
    other = await make_user()
    challenge = await make_challenge(owner)

    resp = await client.patch(
        f"/api/v1/challenges/{challenge.id}", json={"title": "Taken"}, headers=auth_headers(other)
    )
    assert resp.status_code == 403
    resp = await client.delete(f"/api/v1/challenges/{challenge.id}", headers=auth_headers(other))
    assert resp.status_code == 403

    resp = await client.patch(
        f"/api/v1/challenges/{challenge.id}", json={"title": "Evening run"}, headers=auth_headers(owner)
    )
    assert resp.json()["title"] == "Evening run"
    resp = await client.delete(f"/api/v1/challenges/{challenge.id}", headers=auth_headers(owner))
    assert resp.status_code == 204
    assert (await client.get(f"/api/v1/challenges/{challenge.id}")).status_code == 404


@pytest.mark.asyncio
async def test_full_challenge(client, make_user, make_challenge, auth_headers):
    owner = await make_user()
    other = await make_user()
    challenge = await make_challenge(owner, max_participants=1)

    assert (await client.post(f"/api/v1/challenges/{challenge.id}/join", headers=auth_headers(owner))).status_code == 201
    resp = await client.post(f"/api/v1/challenges/{challenge.id}/join", headers=auth_headers(other))
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Challenge is full"
