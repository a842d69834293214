"""
Integration tests for user listing, lookup and deletion
"""
from fastapi.testclient import TestClient

from main import app
from models import BMIHistoryEntry, UserRecord

client = TestClient(app)


class TestListUsers:
    """GET /api/users"""

    def test_most_recent_first(self, seeded_users):
        response = client.get("/api/users")

        assert response.status_code == 200
        data = response.json()
        assert [u["name"] for u in data["users"]] == ["dave", "carol", "bob", "alice"]
        assert data["total"] == 4
        assert data["page"] == 1
        assert data["totalPages"] == 1

    def test_limit_and_skip(self, seeded_users):
        data = client.get("/api/users", params={"limit": 2, "skip": 2}).json()

        assert [u["name"] for u in data["users"]] == ["bob", "alice"]
        assert data["page"] == 2
        assert data["totalPages"] == 2

    def test_limit_out_of_range(self):
        response = client.get("/api/users", params={"limit": 500})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request"

    def test_empty(self):
        data = client.get("/api/users").json()
        assert data == {"users": [], "total": 0, "page": 1, "totalPages": 0}


class TestGetUser:
    """GET /api/user/{name}"""

    def test_user_with_history(self, seeded_users):
        response = client.get("/api/user/bob")

        assert response.status_code == 200
        user = response.json()["user"]
        assert user["name"] == "bob"
        assert user["currentCategory"] == "Overweight"
        assert user["createdAt"]
        assert len(user["bmiHistory"]) == 1
        assert user["bmiHistory"][0]["bmi"] == 29.32
        assert user["bmiHistory"][0]["category"] == "Overweight"

    def test_lookup_is_case_insensitive(self, seeded_users):
        assert client.get("/api/user/BOB").status_code == 200

    def test_history_newest_first(self, seeded_users):
        client.post("/api/bmi", json={"height": 180, "weight": 80, "name": "Bob", "gender": "male", "age": 41})

        user = client.get("/api/user/bob").json()["user"]
        assert user["calculationCount"] == 2
        assert [entry["weight"] for entry in user["bmiHistory"]] == [80, 95]

    def test_unknown_user(self, seeded_users):
        response = client.get("/api/user/nobody")

        assert response.status_code == 404
        assert response.json()["error"] == "User not found"

    def test_anonymous_users_not_addressable(self, seeded_users):
        assert client.get("/api/user/Anonymous").status_code == 404


class TestDeleteUser:
    """DELETE /api/user/{name}"""

    def test_delete_removes_user_and_history(self, seeded_users, db_session):
        history_before = db_session.query(BMIHistoryEntry).count()

        response = client.delete("/api/user/Carol")

        assert response.status_code == 200
        assert response.json() == {"message": "User deleted successfully"}
        assert client.get("/api/user/carol").status_code == 404
        assert db_session.query(UserRecord).filter(UserRecord.name == "carol").count() == 0
        assert db_session.query(BMIHistoryEntry).count() == history_before - 1

    def test_delete_unknown_user(self):
        response = client.delete("/api/user/ghost")

        assert response.status_code == 404
        assert response.json()["error"] == "User not found"
