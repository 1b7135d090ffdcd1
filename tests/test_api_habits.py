import datetime as dt

from habitflow.services.clock import local_today
from habitflow.services.ledger import weekday_token


def _create(client, headers, **fields):
    payload = {"title": "Drink water", "skip_feasibility_check": True}
    payload.update(fields)
    resp = client.post("/habits", json=payload, headers=headers)
    assert resp.status_code == 200, resp.text
    return resp.json()["habit"]


def test_habits_require_auth(client):
    assert client.get("/habits").status_code == 401


def test_create_runs_feasibility_by_default(client, auth_headers):
    resp = client.post(
        "/habits",
        json={
            "title": "  Read  ",
            "icon": "📚",
            "target_count": 2,
            "recurrence_days": ["fri", "Mon"],
            "reminder_time": "7:05",
            "category": "Education",
        },
        headers=auth_headers,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["created"] is True
    assert data["feasibility"]["confidence"] == "high"

    habit = data["habit"]
    assert habit["title"] == "Read"
    assert habit["recurrence_days"] == ["Mon", "Fri"]
    assert habit["reminder_time"] == "07:05"
    assert habit["category"] == "education"
    assert habit["status"] == "incomplete"
    assert habit["completed_today"] == 0
    assert habit["streak"] == 0
    assert habit["version"] == 1


def test_create_rejects_invalid_fields(client, auth_headers):
    bad_payloads = [
        {"title": "", "target_count": 1},
        {"title": "   "},
        {"title": "Run", "target_count": 0},
        {"title": "Run", "recurrence_days": ["Someday"]},
        {"title": "Run", "reminder_time": "25:00"},
        {"title": "Run", "category": "hobbies"},
    ]
    for payload in bad_payloads:
        resp = client.post("/habits", json=payload, headers=auth_headers)
        assert resp.status_code == 422, payload


def test_create_is_blocked_when_overloaded(client, auth_headers):
    for i in range(10):
        _create(client, auth_headers, title=f"Habit {i}")

    resp = client.post("/habits", json={"title": "One more"}, headers=auth_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["created"] is False
    assert data["habit"] is None
    assert data["feasibility"]["feasible"] is False
    assert data["feasibility"]["confidence"] == "low"
    assert len(client.get("/habits", headers=auth_headers).json()) == 10

    skipped = client.post(
        "/habits",
        json={"title": "One more", "skip_feasibility_check": True},
        headers=auth_headers,
    )
    assert skipped.json()["created"] is True
    assert skipped.json()["feasibility"] is None


def test_override_creates_and_returns_the_report(client, auth_headers):
    for i in range(10):
        _create(client, auth_headers, title=f"Habit {i}")

    resp = client.post(
        "/habits",
        json={"title": "One more", "override_feasibility": True},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["created"] is True
    assert data["habit"]["title"] == "One more"
    assert data["feasibility"]["feasible"] is True
    assert data["feasibility"]["confidence"] == "low"
    assert "explicit request" in data["feasibility"]["message"]


def test_feasibility_endpoint_reports_conflicts(client, auth_headers):
    _create(client, auth_headers, title="Meditate", reminder_time="08:00")
    resp = client.post(
        "/habits/feasibility",
        json={"title": "Journal", "reminder_time": "08:10"},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["feasible"] is True
    assert data["confidence"] == "medium"
    assert data["metrics"]["current_habit_count"] == 1
    assert data["metrics"]["avg_completion_rate"] is None
    assert data["metrics"]["time_conflicts"] == [
        {"habit_title": "Meditate", "reminder_time": "08:00", "time_difference": 10}
    ]
    # Evaluation never writes
    assert len(client.get("/habits", headers=auth_headers).json()) == 1


def test_progress_taps_cycle_through_target(client, auth_headers):
    habit = _create(client, auth_headers, target_count=2)
    url = f"/habits/{habit['id']}/progress"

    first = client.post(url, json={"cycle": True}, headers=auth_headers).json()
    assert (first["completed_today"], first["status"]) == (1, "incomplete")

    second = client.post(url, json={"cycle": True}, headers=auth_headers).json()
    assert (second["completed_today"], second["status"]) == (2, "complete")
    assert second["last_completed"] is not None
    assert second["display_streak"] == 1

    third = client.post(url, json={"cycle": True}, headers=auth_headers).json()
    assert (third["completed_today"], third["status"]) == (0, "incomplete")


def test_progress_is_clamped(client, auth_headers):
    habit = _create(client, auth_headers, target_count=3)
    url = f"/habits/{habit['id']}/progress"

    resp = client.post(url, json={"delta": 50}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["completed_today"] == 3

    resp = client.post(url, json={"delta": -50}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["completed_today"] == 0


def test_status_transitions(client, auth_headers):
    habit = _create(client, auth_headers, target_count=4)
    url = f"/habits/{habit['id']}/status"

    done = client.put(url, json={"status": "complete"}, headers=auth_headers).json()
    assert done["completed_today"] == 4
    assert done["status"] == "complete"

    paused = client.put(url, json={"status": "paused"}, headers=auth_headers).json()
    assert paused["status"] == "paused"
    assert paused["completed_today"] == 4

    resumed = client.put(url, json={"status": "incomplete"}, headers=auth_headers).json()
    assert resumed["status"] == "incomplete"
    assert resumed["completed_today"] == 0

    bad = client.put(url, json={"status": "finished"}, headers=auth_headers)
    assert bad.status_code == 422


def test_unknown_habit_is_not_found(client, auth_headers):
    assert client.put("/habits/999/status", json={"status": "complete"}, headers=auth_headers).status_code == 404
    assert client.post("/habits/999/progress", json={"delta": 1}, headers=auth_headers).status_code == 404
    assert client.patch("/habits/999", json={"title": "x"}, headers=auth_headers).status_code == 404
    assert client.get("/habits/999/history", headers=auth_headers).status_code == 404


def test_stale_version_is_rejected_without_mutation(client, auth_headers):
    habit = _create(client, auth_headers)
    url = f"/habits/{habit['id']}/status"

    ok = client.put(url, json={"status": "complete", "expected_version": 1}, headers=auth_headers)
    assert ok.status_code == 200
    assert ok.json()["version"] == 2

    stale = client.put(url, json={"status": "incomplete", "expected_version": 1}, headers=auth_headers)
    assert stale.status_code == 409
    assert stale.json()["detail"]["current_version"] == 2

    current = client.get(f"/habits/{habit['id']}", headers=auth_headers).json()
    assert current["status"] == "complete"


def test_patch_habit_and_retarget(client, auth_headers):
    habit = _create(client, auth_headers, target_count=3)
    client.post(f"/habits/{habit['id']}/progress", json={"delta": 2}, headers=auth_headers)

    resp = client.patch(
        f"/habits/{habit['id']}",
        json={"target_count": 2, "notes": "before breakfast", "recurrence_days": []},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["target_count"] == 2
    assert data["status"] == "complete"
    assert data["notes"] == "before breakfast"
    assert data["recurrence_days"] == []


def test_list_filters(client, auth_headers):
    today = local_today("UTC")
    other_day = weekday_token(today + dt.timedelta(days=1))
    _create(client, auth_headers, title="Stretch", category="fitness", recurrence_days=[weekday_token(today)])
    _create(client, auth_headers, title="Call mom", category="relationships", recurrence_days=[other_day])
    paused = _create(client, auth_headers, title="Piano", category="education")
    client.put(f"/habits/{paused['id']}/status", json={"status": "paused"}, headers=auth_headers)

    titles = [h["title"] for h in client.get("/habits", params={"category": "fitness"}, headers=auth_headers).json()]
    assert titles == ["Stretch"]

    active = client.get("/habits", params={"include_paused": False}, headers=auth_headers).json()
    assert {h["title"] for h in active} == {"Stretch", "Call mom"}

    today_titles = {h["title"] for h in client.get("/habits/today", headers=auth_headers).json()}
    assert "Stretch" in today_titles
    assert "Call mom" not in today_titles

    assert client.get("/habits", params={"category": "nope"}, headers=auth_headers).status_code == 422


def test_history_and_rollover(client, auth_headers):
    habit = _create(client, auth_headers, target_count=1)
    client.put(f"/habits/{habit['id']}/status", json={"status": "complete"}, headers=auth_headers)

    today = local_today("UTC")
    history = client.get(f"/habits/{habit['id']}/history", params={"days": 7}, headers=auth_headers).json()
    assert history["completion"] == {today.isoformat(): 1}
    assert history["completed_days"] == 1
    assert history["consistency_rate"] == 1.0

    tomorrow = today + dt.timedelta(days=1)
    resp = client.post("/habits/rollover", json={"day": tomorrow.isoformat()}, headers=auth_headers)
    assert resp.status_code == 200
    rolled = resp.json()["habits"][0]
    assert rolled["streak"] == 1
    assert rolled["status"] == "incomplete"
    assert rolled["completed_today"] == 0

    again = client.post("/habits/rollover", json={"day": tomorrow.isoformat()}, headers=auth_headers)
    assert again.json()["habits"][0]["streak"] == 1


def test_delete_habit(client, auth_headers):
    habit = _create(client, auth_headers)
    assert client.delete(f"/habits/{habit['id']}", headers=auth_headers).status_code == 200
    assert client.get(f"/habits/{habit['id']}", headers=auth_headers).status_code == 404
    assert client.delete(f"/habits/{habit['id']}", headers=auth_headers).status_code == 404


def test_analytics_endpoint(client, auth_headers):
    habit = _create(client, auth_headers)
    client.put(f"/habits/{habit['id']}/status", json={"status": "complete"}, headers=auth_headers)

    resp = client.get("/habits/analytics", params={"days": 7}, headers=auth_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["days"] == 7
    assert data["scheduled_days"] == 1
    assert data["completed_days"] == 1
    assert data["completion_rate"] == 1.0
    assert len(data["by_weekday"]) == 7
    assert data["best_weekday"] == weekday_token(local_today("UTC"))
    assert sum(data["by_time_of_day"].values()) == 1

    assert client.get("/habits/analytics", params={"days": 0}, headers=auth_headers).status_code == 422


def test_rollover_updates_profile_streaks(client, auth_headers):
    habit = _create(client, auth_headers)
    client.put(f"/habits/{habit['id']}/status", json={"status": "complete"}, headers=auth_headers)
    tomorrow = local_today("UTC") + dt.timedelta(days=1)
    rolled = client.post("/habits/rollover", json={"day": tomorrow.isoformat()}, headers=auth_headers).json()
    assert rolled["habits"][0]["longest_streak"] == 1

    profile = client.get("/profile", headers=auth_headers).json()
    assert profile["streak"] == 1
    assert profile["longest_streak"] == 1
