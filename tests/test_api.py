import inspect
from datetime import date, timedelta

import pytest
from fastapi.routing import APIRoute

from brigade.main import app
from brigade.models import ActivityLog
from brigade.schemas.common import build_pagination
from conftest import PASSWORD, auth_headers


class TestEnvelope:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["data"]["status"] == "ok"

    def test_unknown_route(self, client):
        response = client.get("/api/nowhere")
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Not Found"}

    def test_wrong_method(self, client, make_user):
        response = client.patch("/api/schedules", headers=auth_headers(make_user("admin")))
        assert response.status_code == 405
        assert response.json()["success"] is False

    def test_missing_token(self, client):
        response = client.get("/api/recipes")
        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Missing authentication token"}

    def test_malformed_body_is_400(self, client, make_user):
        response = client.post("/api/schedules", json={"user_id": 1}, headers=auth_headers(make_user("admin")))
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert "shift_date" in body["message"]

    def test_page_size_is_capped(self, client, make_user):
        response = client.get("/api/recipes?limit=1000", headers=auth_headers(make_user("staff")))
        assert response.status_code == 400


class TestAuthFlow:
    def test_login_profile_refresh_logout(self, client, db, make_user):
        user = make_user("chef", username="marco")
        login = client.post("/api/auth/login", json={"username": "marco", "password": PASSWORD})
        assert login.status_code == 200
        data = login.json()["data"]
        assert data["user"]["username"] == "marco"
        assert "password_hash" not in data["user"]
        headers = {"Authorization": f"Bearer {data['token']}"}

        profile = client.get("/api/auth/profile", headers=headers)
        assert profile.json()["data"]["user"]["id"] == user.id
        assert client.post("/api/auth/refresh", headers=headers).json()["data"]["token"]
        assert client.post("/api/auth/logout", headers=headers).status_code == 200

        actions = [row.action for row in db.query(ActivityLog).order_by(ActivityLog.id)]
        assert actions == ["login", "logout"]

    def test_bad_login(self, client, make_user):
        make_user("chef", username="marco")
        response = client.post("/api/auth/login", json={"username": "marco", "password": "nope"})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid username or password"


class TestSchedules:
    def test_double_booking_returns_409(self, client, make_user):
        admin = make_user("admin")
        cook = make_user("staff")
        shift = {
            "user_id": cook.id,
            "shift_date": "2024-06-01",
            "shift_type": "morning",
            "start_time": "08:00",
            "end_time": "12:00",
        }
        first = client.post("/api/schedules", json=shift, headers=auth_headers(admin))
        assert first.status_code == 201
        assert first.json()["data"]["schedule"]["status"] == "scheduled"

        second = client.post(
            "/api/schedules",
            json={**shift, "start_time": "09:00", "end_time": "13:00"},
            headers=auth_headers(admin),
        )
        assert second.status_code == 409
        assert second.json()["success"] is False

    def test_staff_cannot_create(self, client, make_user):
        cook = make_user("staff")
        response = client.post(
            "/api/schedules",
            json={
                "user_id": cook.id,
                "shift_date": "2024-06-01",
                "shift_type": "morning",
                "start_time": "08:00",
                "end_time": "12:00",
            },
            headers=auth_headers(cook),
        )
        assert response.status_code == 403
        assert response.json()["message"] == "Insufficient permission"

    def test_owner_status_flow_and_invalid_transition(self, client, make_user, make_shift):
        cook = make_user("staff")
        shift = make_shift(cook, date(2024, 6, 1))
        url = f"/api/schedules/{shift.id}"
        assert client.put(url, json={"status": "confirmed"}, headers=auth_headers(cook)).status_code == 200
        response = client.put(url, json={"status": "scheduled"}, headers=auth_headers(cook))
        assert response.status_code == 400
        assert client.put(url, json={"notes": "late bus"}, headers=auth_headers(cook)).status_code == 403

    def test_null_for_required_field_rejected(self, client, make_user, make_shift):
        admin = make_user("admin")
        shift = make_shift(make_user("staff"), date(2024, 6, 1))
        response = client.put(f"/api/schedules/{shift.id}", json={"status": None}, headers=auth_headers(admin))
        assert response.status_code == 400

    def test_pagination_metadata(self, client, make_user, make_shift):
        admin = make_user("admin")
        cook = make_user("staff")
        for offset in range(45):
            make_shift(cook, date(2024, 1, 1) + timedelta(days=offset))
        response = client.get("/api/schedules?limit=20&page=3", headers=auth_headers(admin))
        data = response.json()["data"]
        assert data["pagination"] == {"page": 3, "limit": 20, "total": 45, "pages": 3}
        assert len(data["schedules"]) == 5

        empty = client.get("/api/schedules", headers=auth_headers(make_user("chef"))).json()["data"]
        assert empty["pagination"]["total"] == 0
        assert empty["pagination"]["pages"] == 0

    def test_my_and_stats_routes(self, client, make_user, make_shift):
        admin = make_user("admin")
        cook = make_user("staff")
        make_shift(cook, date(2024, 6, 1), status="completed")
        mine = client.get("/api/schedules/my", headers=auth_headers(cook)).json()["data"]["schedules"]
        assert len(mine) == 1
        stats = client.get(
            "/api/schedules/stats?start_date=2024-06-01&end_date=2024-06-30", headers=auth_headers(admin)
        ).json()["data"]["stats"]
        assert stats["completed_schedules"] == 1
        assert client.get("/api/schedules/stats", headers=auth_headers(cook)).status_code == 403

    def test_delete_is_audited(self, client, db, make_user, make_shift):
        admin = make_user("admin")
        shift = make_shift(make_user("staff"), date(2024, 6, 1))
        assert client.delete(f"/api/schedules/{shift.id}", headers=auth_headers(admin)).status_code == 200
        entry = db.query(ActivityLog).filter(ActivityLog.action == "delete_schedule").one()
        assert entry.record_id == shift.id
        assert entry.old_values["shift_type"] == "morning"
        assert client.get(f"/api/schedules/{shift.id}", headers=auth_headers(admin)).status_code == 404


class TestRecipesAndUsers:
    def test_hidden_recipe_is_404(self, client, make_user, category):
        chef = make_user("chef")
        created = client.post(
            "/api/recipes",
            json={
                "name": "Demi-glace",
                "description": "Reduced veal stock",
                "category_id": category.id,
                "difficulty": "hard",
                "min_role": "chef",
                "steps": [{"instruction": "Reduce"}],
            },
            headers=auth_headers(chef),
        )
        assert created.status_code == 201
        recipe_id = created.json()["data"]["recipe_id"]
        assert client.get(f"/api/recipes/{recipe_id}", headers=auth_headers(chef)).status_code == 200
        hidden = client.get(f"/api/recipes/{recipe_id}", headers=auth_headers(make_user("staff")))
        assert hidden.status_code == 404
        assert hidden.json()["message"] == "Recipe not found"

    def test_categories(self, client, make_user, category):
        response = client.get("/api/recipes/categories", headers=auth_headers(make_user("staff")))
        assert response.json()["data"]["categories"][0]["name"] == "Main Course"

    def test_user_creation_audit_omits_password(self, client, db, make_user):
        admin = make_user("admin")
        response = client.post(
            "/api/users",
            json={
                "username": "newcook",
                "email": "newcook@example.com",
                "password": "longenough",
                "role": "staff",
                "full_name": "New Cook",
            },
            headers=auth_headers(admin),
        )
        assert response.status_code == 201
        entry = db.query(ActivityLog).filter(ActivityLog.action == "create_user").one()
        assert entry.new_values["username"] == "newcook"
        assert "password" not in entry.new_values

    def test_self_delete_is_403(self, client, make_user):
        admin = make_user("admin")
        response = client.delete(f"/api/users/{admin.id}", headers=auth_headers(admin))
        assert response.status_code == 403


@pytest.mark.parametrize("total,limit,pages", [(45, 20, 3), (40, 20, 2), (1, 20, 1), (0, 20, 0)])
def test_build_pagination(total, limit, pages):
    assert build_pagination(1, limit, total).pages == pages


def test_api_handlers_are_sync():
    # Blocking database work must run in the threadpool, off the event loop.
    for route in app.routes:
        if isinstance(route, APIRoute) and route.path.startswith("/api/"):
            assert not inspect.iscoroutinefunction(route.endpoint), route.path
