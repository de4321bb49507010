"""Integration tests for goal endpoints."""
import pytest


async def create_sample_goal(app_client, headers, rows, name="GATE 2027"):
    response = await app_client.post(
        "/goals/from-csv",
        json={"goal_name": name, "csv_data": rows},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
class TestGoalCreate:
    """Tests for creating goals."""

    async def test_create_goal_success(self, app_client, auth_headers):
        """Test successful empty goal creation."""
        response = await app_client.post(
            "/goals",
            json={"name": "GATE 2027", "description": "CS paper"},
            headers=auth_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "GATE 2027"
        assert data["user_id"] == 1
        assert data["total_subtopics"] == 0
        assert data["progress_percent"] == 0
        assert "id" in data
        assert "_id" not in data

    async def test_create_goal_blank_name(self, app_client, auth_headers):
        """Test that a blank name returns 400."""
        response = await app_client.post("/goals", json={"name": "  "}, headers=auth_headers)

        assert response.status_code == 400

    async def test_create_goal_unauthenticated(self, app_client):
        """Test that creating goal requires authentication."""
        response = await app_client.post("/goals", json={"name": "GATE"})

        assert response.status_code == 401

    async def test_create_goal_bad_token(self, app_client):
        """Test that an invalid token is rejected."""
        response = await app_client.post(
            "/goals",
            json={"name": "GATE"},
            headers={"Authorization": "Bearer not-a-token"},
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid authentication credentials"


@pytest.mark.asyncio
class TestGoalFromCSV:
    """Tests for CSV imports."""

    async def test_from_csv_rows(self, app_client, auth_headers, sample_rows):
        """Test importing parsed rows."""
        data = await create_sample_goal(app_client, auth_headers, sample_rows)

        assert data["name"] == "GATE 2027"
        assert data["total_topics"] == 3
        assert data["completed_topics"] == 1
        assert data["total_subtopics"] == 4
        assert data["completed_subtopics"] == 2
        assert data["progress_percent"] == 50

    async def test_from_csv_null_and_numeric_cells(self, app_client, auth_headers):
        """Test that null cells read as empty and numbers as text."""
        response = await app_client.post(
            "/goals/from-csv",
            json={"goal_name": "GATE", "csv_data": [
                {"category": "Math", "topics": 101, "sub-topics": "Limits", "status": None},
                {"category": "Math", "topics": 101, "sub-topics": None, "status": "completed"},
            ]},
            headers=auth_headers,
        )

        assert response.status_code == 201
        goal = response.json()
        assert goal["total_topics"] == 1
        assert goal["total_subtopics"] == 1
        assert goal["completed_subtopics"] == 0

        tree = (await app_client.get(f"/goals/{goal['id']}", headers=auth_headers)).json()
        topic = tree["categories"][0]["topics"][0]
        assert topic["name"] == "101"
        assert topic["subtopics"][0]["status"] == "pending"

    async def test_from_csv_empty_rows(self, app_client, auth_headers):
        """Test that empty rows return an Invalid CSV error."""
        response = await app_client.post(
            "/goals/from-csv",
            json={"goal_name": "GATE", "csv_data": []},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"].startswith("Invalid CSV:")

        list_response = await app_client.get("/goals", headers=auth_headers)
        assert list_response.json() == []

    async def test_from_csv_blank_goal_name(self, app_client, auth_headers, sample_rows):
        """Test that a blank goal name is rejected."""
        response = await app_client.post(
            "/goals/from-csv",
            json={"goal_name": " ", "csv_data": sample_rows},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert "Goal name is required" in response.json()["detail"]

    async def test_from_csv_text(self, app_client, auth_headers):
        """Test importing raw CSV text."""
        response = await app_client.post(
            "/goals/from-csv-text",
            json={
                "goal_name": "GATE",
                "csv_text": (
                    "Category,Topics,Sub-topics,Status\n"
                    "Math,Algebra,Linear Eq,Completed\n"
                    "Math,Algebra,Quadratics,Pending\n"
                ),
            },
            headers=auth_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["total_subtopics"] == 2
        assert data["completed_subtopics"] == 1
        assert data["total_topics"] == 1

    async def test_from_csv_text_header_only(self, app_client, auth_headers):
        """Test that a header-only file returns 400."""
        response = await app_client.post(
            "/goals/from-csv-text",
            json={"goal_name": "GATE", "csv_text": "Category,Topics,Sub-topics,Status"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"] == (
            "Invalid CSV: CSV must have a header and at least one data row"
        )

    async def test_from_csv_unauthenticated(self, app_client, sample_rows):
        """Test that importing requires authentication."""
        response = await app_client.post(
            "/goals/from-csv",
            json={"goal_name": "GATE", "csv_data": sample_rows},
        )

        assert response.status_code == 401


@pytest.mark.asyncio
class TestGoalRead:
    """Tests for listing and reading goals."""

    async def test_list_goals_empty(self, app_client, auth_headers):
        """Test listing goals when none exist."""
        response = await app_client.get("/goals", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == []

    async def test_list_goals_only_own(self, app_client, auth_headers, other_user_headers, sample_rows):
        """Test that users only see their own goals."""
        await create_sample_goal(app_client, auth_headers, sample_rows, name="Mine")
        await create_sample_goal(app_client, other_user_headers, sample_rows, name="Theirs")

        response = await app_client.get("/goals", headers=auth_headers)

        assert [goal["name"] for goal in response.json()] == ["Mine"]

    async def test_get_goal_tree(self, app_client, auth_headers, sample_rows):
        """Test the nested goal view."""
        goal = await create_sample_goal(app_client, auth_headers, sample_rows)

        response = await app_client.get(f"/goals/{goal['id']}", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert [category["name"] for category in data["categories"]] == ["Math", "Physics"]
        math = data["categories"][0]
        assert math["progress_percent"] == 67
        algebra = math["topics"][0]
        assert algebra["name"] == "Algebra"
        assert algebra["status"] == "start"
        assert [subtopic["status"] for subtopic in algebra["subtopics"]] == ["completed", "pending"]
        assert len(algebra["completed_subtopic_timestamps"]) == 1

    async def test_get_goal_not_found(self, app_client, auth_headers):
        """Test getting an unknown goal."""
        response = await app_client.get("/goals/000000000000000000000000", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["detail"] == "Goal not found"

    async def test_get_goal_other_user(self, app_client, auth_headers, other_user_headers, sample_rows):
        """Test that another user's goal is not visible."""
        goal = await create_sample_goal(app_client, auth_headers, sample_rows)

        response = await app_client.get(f"/goals/{goal['id']}", headers=other_user_headers)

        assert response.status_code == 404


@pytest.mark.asyncio
class TestGoalUpdateDelete:
    """Tests for goal updates and deletes."""

    async def test_update_goal(self, app_client, auth_headers, sample_rows):
        """Test renaming a goal."""
        goal = await create_sample_goal(app_client, auth_headers, sample_rows)

        response = await app_client.patch(
            f"/goals/{goal['id']}",
            json={"name": "GATE 2028"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["name"] == "GATE 2028"
        assert response.json()["total_subtopics"] == 4

    async def test_update_goal_not_found(self, app_client, auth_headers):
        """Test updating an unknown goal."""
        response = await app_client.patch(
            "/goals/000000000000000000000000",
            json={"name": "x"},
            headers=auth_headers,
        )

        assert response.status_code == 404

    async def test_delete_goal(self, app_client, auth_headers, sample_rows):
        """Test deleting a goal and its tree."""
        goal = await create_sample_goal(app_client, auth_headers, sample_rows)

        response = await app_client.delete(f"/goals/{goal['id']}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"deleted": True}
        get_response = await app_client.get(f"/goals/{goal['id']}", headers=auth_headers)
        assert get_response.status_code == 404

    async def test_delete_goal_other_user(self, app_client, auth_headers, other_user_headers, sample_rows):
        """Test that users cannot delete others' goals."""
        goal = await create_sample_goal(app_client, auth_headers, sample_rows)

        response = await app_client.delete(f"/goals/{goal['id']}", headers=other_user_headers)

        assert response.status_code == 404


@pytest.mark.asyncio
class TestGoalMaintenance:
    """Tests for append, recompute and integrity endpoints."""

    async def test_append_csv_rows(self, app_client, auth_headers, sample_rows):
        """Test appending rows to an existing goal."""
        goal = await create_sample_goal(app_client, auth_headers, sample_rows)

        response = await app_client.post(
            f"/goals/{goal['id']}/csv",
            json={"csv_data": [
                {"category": "Physics", "topics": "Mechanics", "sub-topics": "Dynamics", "status": "done"},
            ]},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total_topics"] == 3
        assert data["total_subtopics"] == 5
        assert data["completed_subtopics"] == 3

    async def test_append_csv_rows_empty(self, app_client, auth_headers, sample_rows):
        """Test that appending no rows returns 400."""
        goal = await create_sample_goal(app_client, auth_headers, sample_rows)

        response = await app_client.post(
            f"/goals/{goal['id']}/csv",
            json={"csv_data": []},
            headers=auth_headers,
        )

        assert response.status_code == 400

    async def test_append_csv_rows_missing_goal(self, app_client, auth_headers, sample_rows):
        """Test appending to an unknown goal."""
        response = await app_client.post(
            "/goals/000000000000000000000000/csv",
            json={"csv_data": sample_rows},
            headers=auth_headers,
        )

        assert response.status_code == 404

    async def test_integrity_and_recompute(self, app_client, auth_headers, sample_rows, repository):
        """Test that drifted counters are reported and repaired."""
        from prep_tracker.repositories.base import Collection

        goal = await create_sample_goal(app_client, auth_headers, sample_rows)

        response = await app_client.get(f"/goals/{goal['id']}/integrity", headers=auth_headers)
        assert response.json() == {"goal_id": goal["id"], "consistent": True, "problems": []}

        await repository.update(Collection.GOALS, goal["id"], {"total_subtopics": 99})
        response = await app_client.get(f"/goals/{goal['id']}/integrity", headers=auth_headers)
        report = response.json()
        assert report["consistent"] is False
        assert any("total_subtopics is 99, expected 4" in problem for problem in report["problems"])

        response = await app_client.post(f"/goals/{goal['id']}/recompute", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["total_subtopics"] == 4

        response = await app_client.get(f"/goals/{goal['id']}/integrity", headers=auth_headers)
        assert response.json()["consistent"] is True

    async def test_recompute_with_orphans(self, app_client, auth_headers, sample_rows, repository):
        """Test that orphaned records surface as a server error."""
        from prep_tracker.repositories.base import Collection

        goal = await create_sample_goal(app_client, auth_headers, sample_rows)
        topics = await repository.find(Collection.TOPICS, {"goal_id": goal["id"], "name": "Mechanics"})
        await repository.delete_one(Collection.TOPICS, str(topics[0]["_id"]))

        response = await app_client.post(f"/goals/{goal['id']}/recompute", headers=auth_headers)

        assert response.status_code == 500

    async def test_recompute_missing_goal(self, app_client, auth_headers):
        """Test recomputing an unknown goal."""
        response = await app_client.post(
            "/goals/000000000000000000000000/recompute", headers=auth_headers
        )

        assert response.status_code == 404
