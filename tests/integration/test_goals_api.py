"""Goal CRUD, hierarchy and module validation through the API."""

from httpx import AsyncClient

from tests.conftest import register


async def create_goal(client: AsyncClient, **overrides) -> dict:
    payload = {"module_id": "fitness", "title": "Run a 10k", "difficulty": "medium"}
    payload.update(overrides)
    response = await client.post("/api/v1/goals", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


class TestCreateGoal:
    async def test_first_goal_awards_xp_and_achievement(self, authed_client: AsyncClient):
        data = await create_goal(authed_client, module_data={"workout_type": "cardio"})
        assert data["xp_awarded"] == 5
        assert data["achievements_unlocked"] == ["first_goal"]
        goal = data["goal"]
        assert goal["status"] == "active"
        assert goal["current_value"] == 0
        assert goal["progress_percent"] == 0
        assert goal["module_data"] == {"workout_type": "cardio"}

        xp = await authed_client.get("/api/v1/users/me/xp")
        # daily activity 1 + create_goal 5 + first_goal 10
        assert xp.json()["total_xp"] == 16

    async def test_invalid_choice_in_module_data(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/goals", json={
            "module_id": "fitness",
            "title": "Yoga",
            "module_data": {"workout_type": "yoga"},
        })
        assert response.status_code == 400
        assert "must be one of" in response.json()["detail"]

    async def test_unknown_module_field(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/goals", json={
            "module_id": "learning",
            "title": "Learn Rust",
            "module_data": {"shoe_size": 42},
        })
        assert response.status_code == 400
        assert "shoe_size" in response.json()["detail"]

    async def test_unknown_module(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/goals", json={"module_id": "gardening", "title": "Plant tomatoes"})
        assert response.status_code == 400

    async def test_disabled_module(self, authed_client: AsyncClient):
        disabled = await authed_client.post("/api/v1/modules/fitness/disable")
        assert disabled.status_code == 200
        response = await authed_client.post("/api/v1/goals", json={"module_id": "fitness", "title": "Run"})
        assert response.status_code == 400
        assert "disabled" in response.json()["detail"]

    async def test_blank_title(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/goals", json={"module_id": "fitness", "title": "   "})
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "title"

    async def test_requires_auth(self, client: AsyncClient):
        response = await client.post("/api/v1/goals", json={"module_id": "fitness", "title": "Run"})
        assert response.status_code == 401


class TestReadGoals:
    async def test_list_and_filter(self, authed_client: AsyncClient):
        await create_goal(authed_client, title="Run a 10k")
        await create_goal(authed_client, module_id="learning", title="Finish the Python course")
        await create_goal(authed_client, module_id="home_projects", title="Paint the hallway")

        everything = await authed_client.get("/api/v1/goals")
        assert everything.json()["total"] == 3

        learning = await authed_client.get("/api/v1/goals", params={"module_id": "learning"})
        assert [g["title"] for g in learning.json()["goals"]] == ["Finish the Python course"]

        search = await authed_client.get("/api/v1/goals", params={"search": "HALLWAY"})
        assert search.json()["total"] == 1

        paged = await authed_client.get("/api/v1/goals", params={"per_page": 2, "page": 2})
        assert paged.json()["total"] == 3
        assert len(paged.json()["goals"]) == 1

    async def test_other_users_goal_is_not_found(self, authed_client: AsyncClient):
        goal = (await create_goal(authed_client))["goal"]
        bob = await register(authed_client, email="bob@example.com", name="Bob")
        response = await authed_client.get(
            f"/api/v1/goals/{goal['id']}",
            headers={"Authorization": f"Bearer {bob['access_token']}"},
        )
        assert response.status_code == 404

    async def test_missing_goal(self, authed_client: AsyncClient):
        response = await authed_client.get("/api/v1/goals/9999")
        assert response.status_code == 404
        assert response.json()["detail"] == "Goal not found"


class TestUpdateGoal:
    async def test_partial_update(self, authed_client: AsyncClient):
        goal = (await create_goal(authed_client))["goal"]
        response = await authed_client.patch(f"/api/v1/goals/{goal['id']}", json={"priority": "high"})
        assert response.status_code == 200
        updated = response.json()["goal"]
        assert updated["priority"] == "high"
        assert updated["title"] == "Run a 10k"

    async def test_complete_awards_xp_once(self, authed_client: AsyncClient):
        goal = (await create_goal(authed_client))["goal"]

        done = await authed_client.patch(f"/api/v1/goals/{goal['id']}", json={"status": "completed"})
        assert done.status_code == 200
        body = done.json()
        # complete_fitness_goal: 25 * 1.5 * (1 + 0.15 * 1)
        assert body["xp_awarded"] == 43
        assert "first_completion" in body["achievements_unlocked"]
        assert body["goal"]["status"] == "completed"
        assert body["goal"]["completed_at"] is not None

        reopened = await authed_client.patch(f"/api/v1/goals/{goal['id']}", json={"status": "active"})
        assert reopened.json()["goal"]["completed_at"] is None

        again = await authed_client.patch(f"/api/v1/goals/{goal['id']}", json={"status": "completed"})
        assert again.json()["xp_awarded"] == 0

    async def test_invalid_module_data_update(self, authed_client: AsyncClient):
        goal = (await create_goal(authed_client))["goal"]
        response = await authed_client.patch(
            f"/api/v1/goals/{goal['id']}", json={"module_data": {"duration_minutes": "long"}}
        )
        assert response.status_code == 400


class TestHierarchy:
    async def test_sub_goal(self, authed_client: AsyncClient):
        parent = (await create_goal(authed_client, title="Get fit"))["goal"]
        child = (await create_goal(authed_client, title="Run weekly", parent_id=parent["id"]))["goal"]
        assert child["parent_id"] == parent["id"]

        children = await authed_client.get("/api/v1/goals", params={"parent_id": parent["id"]})
        assert [g["id"] for g in children.json()["goals"]] == [child["id"]]

    async def test_cycle_rejected(self, authed_client: AsyncClient):
        parent = (await create_goal(authed_client, title="Get fit"))["goal"]
        child = (await create_goal(authed_client, title="Run weekly", parent_id=parent["id"]))["goal"]

        response = await authed_client.patch(f"/api/v1/goals/{parent['id']}", json={"parent_id": child["id"]})
        assert response.status_code == 400
        assert "ancestor" in response.json()["detail"]

    async def test_own_parent_rejected(self, authed_client: AsyncClient):
        goal = (await create_goal(authed_client))["goal"]
        response = await authed_client.patch(f"/api/v1/goals/{goal['id']}", json={"parent_id": goal["id"]})
        assert response.status_code == 400

    async def test_missing_parent(self, authed_client: AsyncClient):
        response = await authed_client.post(
            "/api/v1/goals", json={"module_id": "fitness", "title": "Orphan", "parent_id": 9999}
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Parent goal not found"


class TestDeleteGoal:
    async def test_delete(self, authed_client: AsyncClient):
        goal = (await create_goal(authed_client))["goal"]
        response = await authed_client.delete(f"/api/v1/goals/{goal['id']}")
        assert response.status_code == 204
        assert (await authed_client.get(f"/api/v1/goals/{goal['id']}")).status_code == 404

    async def test_delete_keeps_xp(self, authed_client: AsyncClient):
        goal = (await create_goal(authed_client))["goal"]
        await authed_client.delete(f"/api/v1/goals/{goal['id']}")
        xp = await authed_client.get("/api/v1/users/me/xp")
        assert xp.json()["total_xp"] == 16

    async def test_delete_with_sub_goals_needs_cascade(self, authed_client: AsyncClient):
        parent = (await create_goal(authed_client, title="Get fit"))["goal"]
        child = (await create_goal(authed_client, title="Run weekly", parent_id=parent["id"]))["goal"]
        grandchild = (await create_goal(authed_client, title="Buy shoes", parent_id=child["id"]))["goal"]

        refused = await authed_client.delete(f"/api/v1/goals/{parent['id']}")
        assert refused.status_code == 409
        assert "1 sub-goal(s)" in refused.json()["detail"]
        assert (await authed_client.get(f"/api/v1/goals/{child['id']}")).status_code == 200

        response = await authed_client.delete(f"/api/v1/goals/{parent['id']}", params={"cascade": "true"})
        assert response.status_code == 204
        for goal_id in (parent["id"], child["id"], grandchild["id"]):
            assert (await authed_client.get(f"/api/v1/goals/{goal_id}")).status_code == 404

    async def test_delete_leaf_sub_goal(self, authed_client: AsyncClient):
        parent = (await create_goal(authed_client, title="Get fit"))["goal"]
        child = (await create_goal(authed_client, title="Run weekly", parent_id=parent["id"]))["goal"]
        response = await authed_client.delete(f"/api/v1/goals/{child['id']}")
        assert response.status_code == 204
        assert (await authed_client.get(f"/api/v1/goals/{parent['id']}")).status_code == 200


class TestBulkGoals:
    async def test_bulk_complete(self, authed_client: AsyncClient):
        first = (await create_goal(authed_client, title="Run"))["goal"]
        second = (await create_goal(authed_client, title="Swim"))["goal"]
        response = await authed_client.post("/api/v1/goals/bulk", json={
            "action": "bulk-complete", "goal_ids": [first["id"], second["id"]],
        })
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["processed"] == 2
        assert data["successful"] == 2
        assert data["failed"] == 0
        # complete_fitness_goal 43 per goal
        assert data["xp_awarded"] == 86
        assert "first_completion" in data["achievements_unlocked"]

        listing = await authed_client.get("/api/v1/goals", params={"status": "completed"})
        assert listing.json()["total"] == 2

    async def test_bulk_complete_with_sub_goals(self, authed_client: AsyncClient):
        parent = (await create_goal(authed_client, title="Get fit"))["goal"]
        child = (await create_goal(authed_client, title="Run weekly", parent_id=parent["id"]))["goal"]
        response = await authed_client.post("/api/v1/goals/bulk", json={
            "action": "bulk-complete", "goal_ids": [parent["id"]], "complete_sub_goals": True,
        })
        assert response.status_code == 200
        assert (await authed_client.get(f"/api/v1/goals/{child['id']}")).json()["status"] == "completed"

    async def test_partial_success(self, authed_client: AsyncClient):
        archived = (await create_goal(authed_client, title="Old plan"))["goal"]
        active = (await create_goal(authed_client, title="New plan"))["goal"]
        await authed_client.patch(f"/api/v1/goals/{archived['id']}", json={"status": "archived"})

        response = await authed_client.post("/api/v1/goals/bulk", json={
            "action": "bulk-complete", "goal_ids": [archived["id"], active["id"]],
        })
        assert response.status_code == 207
        data = response.json()
        assert data["success"] is False
        assert data["succeeded_ids"] == [active["id"]]
        assert data["errors"] == [{"goal_id": archived["id"], "error": "Cannot complete an archived goal"}]

    async def test_all_failed(self, authed_client: AsyncClient):
        parent = (await create_goal(authed_client, title="Get fit"))["goal"]
        await create_goal(authed_client, title="Run weekly", parent_id=parent["id"])
        response = await authed_client.post("/api/v1/goals/bulk", json={
            "action": "bulk-delete", "goal_ids": [parent["id"]],
        })
        assert response.status_code == 400
        assert response.json()["failed"] == 1
        assert "sub-goal" in response.json()["errors"][0]["error"]

    async def test_bulk_delete_cascade(self, authed_client: AsyncClient):
        parent = (await create_goal(authed_client, title="Get fit"))["goal"]
        child = (await create_goal(authed_client, title="Run weekly", parent_id=parent["id"]))["goal"]
        response = await authed_client.post("/api/v1/goals/bulk", json={
            "action": "bulk-delete", "goal_ids": [parent["id"], child["id"]], "cascade": True,
        })
        assert response.status_code == 200
        assert response.json()["successful"] == 2
        assert (await authed_client.get("/api/v1/goals")).json()["total"] == 0

    async def test_bulk_archive_and_status(self, authed_client: AsyncClient):
        goal = (await create_goal(authed_client))["goal"]
        archived = await authed_client.post("/api/v1/goals/bulk", json={
            "action": "bulk-archive", "goal_ids": [goal["id"]],
        })
        assert archived.status_code == 200
        assert (await authed_client.get(f"/api/v1/goals/{goal['id']}")).json()["status"] == "archived"

        restored = await authed_client.post("/api/v1/goals/bulk", json={
            "action": "bulk-update-status", "goal_ids": [goal["id"]], "status": "active",
        })
        assert restored.status_code == 200
        assert (await authed_client.get(f"/api/v1/goals/{goal['id']}")).json()["status"] == "active"

    async def test_update_status_requires_status(self, authed_client: AsyncClient):
        goal = (await create_goal(authed_client))["goal"]
        response = await authed_client.post("/api/v1/goals/bulk", json={
            "action": "bulk-update-status", "goal_ids": [goal["id"]],
        })
        assert response.status_code == 400
        assert "status is required" in response.json()["detail"]

    async def test_unknown_or_foreign_ids(self, authed_client: AsyncClient):
        mine = (await create_goal(authed_client))["goal"]
        bob = await register(authed_client, email="bob@example.com", name="Bob")
        bob_goal = await authed_client.post(
            "/api/v1/goals",
            json={"module_id": "learning", "title": "Read"},
            headers={"Authorization": f"Bearer {bob['access_token']}"},
        )
        response = await authed_client.post("/api/v1/goals/bulk", json={
            "action": "bulk-archive", "goal_ids": [mine["id"], bob_goal.json()["goal"]["id"], 9999],
        })
        assert response.status_code == 404
        assert response.json()["detail"] == f"Goals not found: {bob_goal.json()['goal']['id']}, 9999"
        assert (await authed_client.get(f"/api/v1/goals/{mine['id']}")).json()["status"] == "active"

    async def test_at_most_one_hundred_ids(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/goals/bulk", json={
            "action": "bulk-archive", "goal_ids": list(range(1, 102)),
        })
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "goal_ids"

    async def test_empty_ids_rejected(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/goals/bulk", json={"action": "bulk-archive", "goal_ids": []})
        assert response.status_code == 400
