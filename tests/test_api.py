from app.core.seed_avatar_styles import seed_avatar_styles
from app.schemas.user import Role
from tests.conftest import auth_headers, make_user

STUDENT = make_user("student-1")
OTHER_STUDENT = make_user("student-2")
MANAGER = make_user("manager-1", role=Role.experience_manager)
ADMIN = make_user("admin-1", role=Role.admin)
GRADER = make_user("grading-pipeline", role=Role.service)


def graded(user, test_id="t1", workshop_id="w1", score=100, max_score=100):
    return {
        "user_id": user.user_id,
        "username": user.username,
        "test_id": test_id,
        "workshop_id": workshop_id,
        "score": score,
        "max_score": max_score,
    }


async def test_health(client):
    response = await client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


async def test_invalid_token_is_rejected(client):
    response = await client.get(
        "/api/v1/progress/me", headers={"Authorization": "Bearer not-a-token"},
    )

    assert response.status_code == 401


async def test_student_cannot_manage_config(client):
    response = await client.get("/api/v1/gamification/config", headers=auth_headers(STUDENT))

    assert response.status_code == 403


async def test_manager_reads_default_config(client):
    response = await client.get("/api/v1/gamification/config", headers=auth_headers(MANAGER))

    assert response.status_code == 200
    body = response.json()
    assert body["school_id"] == MANAGER.school_id
    assert body["xp_rules"]["test_perfect_bonus"] == 20
    assert len(body["medals"]) == 14


async def test_only_admin_resets_config(client):
    response = await client.post("/api/v1/gamification/config/reset", headers=auth_headers(MANAGER))
    assert response.status_code == 403

    response = await client.post("/api/v1/gamification/config/reset", headers=auth_headers(ADMIN))
    assert response.status_code == 200


async def test_update_xp_rules_validates(client):
    headers = auth_headers(MANAGER)

    response = await client.put(
        "/api/v1/gamification/config/xp-rules", json={"test_base_xp": -1}, headers=headers,
    )
    assert response.status_code == 422

    response = await client.put(
        "/api/v1/gamification/config/xp-rules", json={"test_base_xp": 10}, headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["test_base_xp"] == 10


async def test_level_config_rejects_unbounded_max_level(client):
    response = await client.put(
        "/api/v1/gamification/config/level", json={"max_level": 1_000_000},
        headers=auth_headers(MANAGER),
    )

    assert response.status_code == 422


async def test_medal_admin_flow(client):
    headers = auth_headers(MANAGER)

    response = await client.post(
        "/api/v1/gamification/medals",
        json={"medal_id": "xp_1000", "name": "Thousand", "icon": "💯",
              "condition_type": "total_xp", "condition_value": 1000},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["sort_order"] == 14

    response = await client.post(
        "/api/v1/gamification/medals",
        json={"medal_id": "bad", "name": "Bad", "icon": "x",
              "condition_type": "cards_learned", "condition_value": 1},
        headers=headers,
    )
    assert response.status_code == 422

    response = await client.put(
        "/api/v1/gamification/medals/order", json={"medal_ids": ["xp_1000", "xp_1000"]},
        headers=headers,
    )
    assert response.status_code == 422

    response = await client.put(
        "/api/v1/gamification/medals/order", json={"medal_ids": ["missing"]}, headers=headers,
    )
    assert response.status_code == 404

    response = await client.put(
        "/api/v1/gamification/medals/order", json={"medal_ids": ["xp_1000"]}, headers=headers,
    )
    assert response.status_code == 200
    assert response.json()[0]["medal_id"] == "xp_1000"

    response = await client.delete("/api/v1/gamification/medals/xp_1000", headers=headers)
    assert response.status_code == 204
    response = await client.delete("/api/v1/gamification/medals/xp_1000", headers=headers)
    assert response.status_code == 404


async def test_student_cannot_report_own_results(client):
    response = await client.post(
        "/api/v1/progress/test-completions",
        json=graded(STUDENT, test_id="made-up", score=100000, max_score=100000),
        headers=auth_headers(STUDENT),
    )
    assert response.status_code == 403

    response = await client.get("/api/v1/progress/me", headers=auth_headers(STUDENT))
    assert response.json()["total_xp"] == 0


async def test_score_above_max_is_rejected(client):
    response = await client.post(
        "/api/v1/progress/test-completions",
        json=graded(STUDENT, score=100000, max_score=1),
        headers=auth_headers(GRADER),
    )

    assert response.status_code == 422


async def test_test_completion_updates_progress(client, catalog):
    catalog.add_workshop("w1", {"t1": 100})
    headers = auth_headers(STUDENT)

    response = await client.post(
        "/api/v1/progress/test-completions",
        json=graded(STUDENT),
        headers=auth_headers(GRADER),
    )
    assert response.status_code == 200
    result = response.json()
    assert result["is_perfect"]
    assert result["workshop_completed"]

    response = await client.get("/api/v1/progress/me", headers=headers)
    assert response.status_code == 200
    me = response.json()
    assert me["total_xp"] == result["total_xp"]
    assert me["workshops_completed_count"] == 1
    assert me["completion_percentage"] == 100
    assert [t["test_id"] for t in me["tests_completed"]] == ["t1"]

    response = await client.post(
        "/api/v1/progress/test-completions", json=graded(STUDENT), headers=auth_headers(GRADER),
    )
    assert response.json()["xp_awarded"] == 0
    assert response.json()["total_xp"] == me["total_xp"]


async def test_ranking_marks_caller(client):
    for user, score in [(STUDENT, 30), (OTHER_STUDENT, 80)]:
        await client.post(
            "/api/v1/progress/test-completions",
            json=graded(user, score=score),
            headers=auth_headers(GRADER),
        )

    response = await client.get("/api/v1/progress/ranking", headers=auth_headers(STUDENT))

    assert response.status_code == 200
    body = response.json()
    xp = [e["total_xp"] for e in body["entries"]]
    assert xp == sorted(xp, reverse=True)
    assert [e["position"] for e in body["entries"]] == [1, 2]
    mine = [e for e in body["entries"] if e["is_me"]]
    assert [e["user_id"] for e in mine] == ["student-1"]
    assert body["my_position"] == mine[0]["position"]


async def test_medal_status(client):
    response = await client.get("/api/v1/progress/medals", headers=auth_headers(STUDENT))

    assert response.status_code == 200
    medals = response.json()
    assert len(medals) == 14
    assert not any(m["earned"] for m in medals)


async def test_avatar_update(client):
    response = await client.put(
        "/api/v1/progress/avatar",
        json={"avatar": {"style": "lorelei", "hair": "variant01", "eyes": "none"}},
        headers=auth_headers(STUDENT),
    )

    assert response.status_code == 200
    assert response.json() == {"style": "lorelei", "hair": "variant01"}


async def test_level_lookup(client):
    response = await client.get(
        "/api/v1/gamification/level", params={"total_xp": 100}, headers=auth_headers(STUDENT),
    )

    assert response.status_code == 200
    assert response.json() == {"level": 2, "xp_progress": 0, "xp_needed": 120, "xp_percentage": 0}


async def test_avatar_options_for_new_student(client):
    response = await client.get("/api/v1/gamification/avatar-options", headers=auth_headers(STUDENT))

    assert response.status_code == 200
    body = response.json()
    assert "skinColor" in body["unlocked"]
    assert "accessories" in body["locked"]


async def test_style_options_and_config(client, session_factory):
    async with session_factory() as session:
        await seed_avatar_styles(session)

    response = await client.get("/api/v1/gamification/styles", headers=auth_headers(STUDENT))
    assert response.status_code == 200
    assert [s["style_id"] for s in response.json()][0] == "avataaars"

    response = await client.put(
        "/api/v1/gamification/styles/lorelei/config",
        json={"category": "style", "option_value": "lorelei", "display_name": "Lorelei",
              "required_xp": 0, "required_level": 0},
        headers=auth_headers(MANAGER),
    )
    assert response.status_code == 200

    response = await client.get(
        "/api/v1/gamification/styles/lorelei/options", headers=auth_headers(STUDENT),
    )
    assert response.status_code == 200
    assert response.json()["is_unlocked"]
    assert response.json()["source"] == "normalized"

    response = await client.get(
        "/api/v1/gamification/styles/unknown/options", headers=auth_headers(STUDENT),
    )
    assert response.status_code == 404

    response = await client.delete(
        "/api/v1/gamification/styles/lorelei/config/style/lorelei", headers=auth_headers(MANAGER),
    )
    assert response.status_code == 204


async def test_style_unlocks_for_caller_and_preview(client, session_factory):
    async with session_factory() as session:
        await seed_avatar_styles(session)

    response = await client.get("/api/v1/gamification/styles/unlocks", headers=auth_headers(STUDENT))
    assert response.status_code == 200
    unlocked = {s["style_id"]: s["is_unlocked"] for s in response.json()}
    assert unlocked["avataaars"]
    assert not unlocked["pixel-art"]

    response = await client.get(
        "/api/v1/gamification/styles/unlocks",
        params={"total_xp": 3000, "level": 20},
        headers=auth_headers(STUDENT),
    )
    assert all(s["is_unlocked"] for s in response.json())


async def test_avatar_options_preview_for_given_standing(client):
    response = await client.get(
        "/api/v1/gamification/avatar-options",
        params={"total_xp": 1_000_000, "level": 50},
        headers=auth_headers(STUDENT),
    )

    assert response.status_code == 200
    assert response.json()["locked"] == {}


async def test_bulk_style_config(client, session_factory):
    async with session_factory() as session:
        await seed_avatar_styles(session)
    entry = {"category": "hair", "option_value": "variant01", "display_name": "Hair 1", "required_xp": 50}
    url = "/api/v1/gamification/styles/lorelei/config/bulk"

    response = await client.post(url, json={"entries": [entry]}, headers=auth_headers(STUDENT))
    assert response.status_code == 403

    response = await client.post(url, json={"entries": [entry, entry]}, headers=auth_headers(MANAGER))
    assert response.status_code == 422

    response = await client.post(
        url,
        json={"entries": [entry, {**entry, "category": "style", "option_value": "lorelei"}]},
        headers=auth_headers(MANAGER),
    )
    assert response.status_code == 200
    assert len(response.json()) == 2


async def test_school_stats_requires_manager(client):
    assert (
        await client.get("/api/v1/gamification/stats", headers=auth_headers(STUDENT))
    ).status_code == 403

    response = await client.get("/api/v1/gamification/stats", headers=auth_headers(MANAGER))
    assert response.status_code == 200
    assert response.json()["total_students"] == 0
