"""Tests for API routes."""

from uuid import uuid4

from fastapi.testclient import TestClient

from potluck.models import Dish, Meal, Recipe


def as_user(user) -> dict:
    return {"X-User-Id": str(user.id)}


class TestHealthEndpoint:
    """Tests for the health check endpoint."""

    def test_health_check(self, client: TestClient):
        """Test the health endpoint returns OK."""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"


class TestMealRoutes:
    """Tests for meal routes."""

    def test_create_and_get(self, client: TestClient, host):
        """Test creating a meal and reading it back."""
        response = client.post("/meals", json={"title": "Potluck Friday"}, headers=as_user(host))
        assert response.status_code == 201
        meal_id = response.json()["id"]

        response = client.get(f"/meals/{meal_id}")
        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Potluck Friday"
        assert data["status"] == "planning"
        assert data["host_id"] == str(host.id)

    def test_missing_user_header(self, client: TestClient):
        """Test requests without an acting user are rejected."""
        response = client.post("/meals", json={"title": "Anonymous"})
        assert response.status_code == 422

    def test_blank_title(self, client: TestClient, host):
        """Test validation errors render as JSON."""
        response = client.post("/meals", json={"title": " "}, headers=as_user(host))
        assert response.status_code == 422
        assert response.json()["error"] == "ValidationError"

    def test_meal_not_found(self, client: TestClient):
        """Test 404 for non-existent meal."""
        response = client.get(f"/meals/{uuid4()}")
        assert response.status_code == 404
        assert response.json()["error"] == "NotFound"

    def test_guest_cannot_update(self, client: TestClient, meal: Meal, guest_a):
        """Test permission errors map to 403 with a reason."""
        response = client.patch(f"/meals/{meal.id}", json={"title": "Mine"}, headers=as_user(guest_a))
        assert response.status_code == 403
        assert response.json()["message"] == "Only the host can update meal details"

    def test_complete_and_delete(self, client: TestClient, meal: Meal, host):
        """Test completing then deleting a meal."""
        meal_id = meal.id
        response = client.post(f"/meals/{meal_id}/complete", headers=as_user(host))
        assert response.status_code == 200
        assert response.json()["status"] == "completed"

        response = client.delete(f"/meals/{meal_id}", headers=as_user(host))
        assert response.status_code == 200
        assert response.json() == {"status": "deleted", "dishes_detached": 0}
        assert client.get(f"/meals/{meal_id}").status_code == 404

    def test_dishes_and_photos(self, client: TestClient, meal: Meal, guest_a, dish: Dish):
        """Test linking a dish and posting a photo."""
        response = client.post(
            f"/meals/{meal.id}/dishes",
            json={"dishes": [{"dish_id": str(dish.id), "course_type": "main"}]},
            headers=as_user(guest_a),
        )
        assert response.json() == {"added": 1}
        listed = client.get(f"/meals/{meal.id}/dishes").json()
        assert listed[0]["dish_title"] == "Lasagna al forno"

        response = client.post(
            f"/meals/{meal.id}/photos",
            json={"photo_url": "https://img.example/table.jpg"},
            headers=as_user(guest_a),
        )
        assert response.status_code == 201
        photo_id = response.json()["id"]
        assert client.delete(f"/photos/{photo_id}", headers=as_user(guest_a)).status_code == 204


    def test_update_dish_course(self, client: TestClient, meal: Meal, host, guest_a, dish: Dish):
        """Test the host moves a linked dish to the dessert course."""
        client.post(
            f"/meals/{meal.id}/dishes",
            json={"dishes": [{"dish_id": str(dish.id)}]},
            headers=as_user(guest_a),
        )
        response = client.patch(
            f"/meals/{meal.id}/dishes/{dish.id}",
            json={"course_type": "dessert", "is_main_dish": True},
            headers=as_user(host),
        )
        assert response.status_code == 200
        assert response.json()["course_type"] == "dessert"
        assert response.json()["is_main_dish"] is True


class TestParticipantRoutes:
    """Tests for participant routes."""

    def test_invite_and_respond(self, client: TestClient, new_meal: Meal, host, guest_a):
        """Test the invite, RSVP and transfer flow."""
        response = client.post(
            f"/meals/{new_meal.id}/participants",
            json={"user_ids": [str(guest_a.id)]},
            headers=as_user(host),
        )
        assert response.status_code == 201
        assert response.json()[0]["rsvp_status"] == "pending"

        invitations = client.get("/users/me/invitations", headers=as_user(guest_a)).json()
        assert invitations[0]["meal_id"] == str(new_meal.id)

        response = client.post(
            f"/meals/{new_meal.id}/rsvp", json={"response": "accepted"}, headers=as_user(guest_a)
        )
        assert response.status_code == 200
        assert response.json()["rsvp_status"] == "accepted"

        response = client.post(
            f"/meals/{new_meal.id}/transfer-host",
            json={"new_host_id": str(guest_a.id)},
            headers=as_user(host),
        )
        assert response.status_code == 200
        assert response.json()["new_host"]["role"] == "host"
        assert response.json()["previous_host"]["role"] == "attendee"

    def test_list_and_remove(self, client: TestClient, meal: Meal, host, guest_b):
        """Test listing participants and removing one."""
        listed = client.get(f"/meals/{meal.id}/participants").json()
        assert len(listed) == 3
        assert listed[0]["role"] == "host"

        response = client.delete(f"/meals/{meal.id}/participants/{guest_b.id}", headers=as_user(host))
        assert response.status_code == 200
        assert response.json() == {"status": "removed", "claims_released": 0}


class TestPlanItemRoutes:
    """Tests for plan item routes."""

    def test_claim_conflict_is_retryable(self, client: TestClient, meal: Meal, host, guest_a, guest_b):
        """Test a lost claim answers 409 with the retry flag."""
        response = client.post(
            f"/meals/{meal.id}/plan-items", json={"course_type": "main"}, headers=as_user(host)
        )
        assert response.status_code == 201
        item_id = response.json()["id"]

        response = client.post(f"/plan-items/{item_id}/claim", headers=as_user(guest_a))
        assert response.status_code == 200
        assert response.json()["claimed_by"] == str(guest_a.id)

        response = client.post(f"/plan-items/{item_id}/claim", headers=as_user(guest_b))
        assert response.status_code == 409
        assert response.json()["retryable"] is True

    def test_recipe_flow(self, client: TestClient, meal: Meal, host, guest_a, recipe: Recipe, dish: Dish):
        """Test volunteering with a recipe, completing and reading the summary."""
        response = client.post(
            f"/meals/{meal.id}/plan-items/bulk",
            json={"items": [{"course_type": "main"}, {"course_type": "dessert"}]},
            headers=as_user(host),
        )
        assert response.status_code == 201
        item_id = response.json()[0]["id"]

        response = client.post(
            f"/plan-items/{item_id}/volunteer", json={"recipe_id": str(recipe.id)}, headers=as_user(guest_a)
        )
        assert response.status_code == 200

        response = client.post(
            f"/plan-items/{item_id}/complete", json={"dish_id": str(dish.id)}, headers=as_user(guest_a)
        )
        assert response.status_code == 200

        summary = client.get(f"/meals/{meal.id}/plan-items/summary").json()
        assert summary["total_items"] == 2
        assert summary["completed"] == 1

        views = client.get(f"/meals/{meal.id}/plan-items").json()
        assert {v["status"] for v in views} == {"completed", "unclaimed"}

    def test_invalid_transition(self, client: TestClient, meal: Meal, host):
        """Test unassigning an unassigned item is an invalid state."""
        item_id = client.post(
            f"/meals/{meal.id}/plan-items", json={"course_type": "side"}, headers=as_user(host)
        ).json()["id"]
        response = client.post(f"/plan-items/{item_id}/unassign", headers=as_user(host))
        assert response.status_code == 409
        assert response.json()["retryable"] is False

    def test_commitments(self, client: TestClient, meal: Meal, host, guest_a):
        """Test the caller's commitments list."""
        client.post(
            f"/meals/{meal.id}/plan-items",
            json={"course_type": "side", "assigned_to": str(guest_a.id)},
            headers=as_user(host),
        )
        commitments = client.get("/users/me/commitments", headers=as_user(guest_a)).json()
        assert len(commitments) == 1
        assert commitments[0]["status"] == "assigned"


    def test_recipe_plan_items(self, client: TestClient, meal: Meal, host, guest_a, recipe: Recipe):
        """Test listing slots that plan a recipe."""
        item_id = client.post(
            f"/meals/{meal.id}/plan-items", json={"course_type": "main"}, headers=as_user(host)
        ).json()["id"]
        client.post(f"/plan-items/{item_id}/volunteer", json={"recipe_id": str(recipe.id)}, headers=as_user(guest_a))

        response = client.get(f"/recipes/{recipe.id}/plan-items")
        assert response.status_code == 200
        assert response.json() == [
            {
                "meal_id": str(meal.id),
                "meal_title": "Sunday Dinner",
                "plan_item_id": item_id,
                "claimed_by": str(guest_a.id),
                "status": "has_recipe",
            }
        ]
        assert client.get(f"/recipes/{uuid4()}/plan-items").status_code == 404

    def test_available_dishes(self, client: TestClient, guest_a, dish: Dish):
        """Test the caller's unlinked dishes are offered."""
        response = client.get("/users/me/available-dishes", headers=as_user(guest_a))
        assert response.status_code == 200
        assert [d["id"] for d in response.json()] == [str(dish.id)]


class TestFeedRoutes:
    """Tests for the feed route."""

    def test_feed(self, client: TestClient, dish: Dish):
        """Test the feed lists single posts."""
        response = client.get("/feed")
        assert response.status_code == 200
        data = response.json()
        assert data[0]["type"] == "single"
        assert data[0]["post"]["id"] == str(dish.id)

    def test_post_grouped(self, client: TestClient, dish: Dish):
        """Test a lone dish is reported as not grouped."""
        response = client.get(f"/feed/posts/{dish.id}/grouped")
        assert response.status_code == 200
        assert response.json() == {"post_id": str(dish.id), "grouped": False}
