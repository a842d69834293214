"""
Tests for application statistics (GET /api/stats)
"""
from fastapi.testclient import TestClient

from main import app

client = TestClient(app)


class TestStatistics:
    """Aggregates over named users and calculation history"""

    def test_envelope(self, seeded_users):
        response = client.get("/api/stats")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["generatedAt"]
        assert set(body["data"]) == {"overview", "categoryBreakdown", "activityTrend", "recentUsers"}

    def test_overview(self, seeded_users):
        overview = client.get("/api/stats").json()["data"]["overview"]

        assert overview["totalUsers"] == 4
        assert overview["maleUsers"] == 2
        assert overview["femaleUsers"] == 2
        # ages 25, 40, 35, 55
        assert abs(overview["averageAge"] - 38.75) <= 0.05
        assert abs(overview["averageBmi"] - 26.52) <= 0.01
        assert overview["firstUserDate"] < overview["lastActivity"]

    def test_category_breakdown(self, seeded_users):
        breakdown = client.get("/api/stats").json()["data"]["categoryBreakdown"]

        assert [item["category"] for item in breakdown] == ["Normal", "Obese", "Overweight", "Underweight"]
        assert all(item["count"] == 1 for item in breakdown)
        assert all(item["percentage"] == 25.0 for item in breakdown)
        obese = breakdown[1]
        assert obese["averageBmi"] == 35.92
        assert obese["averageAge"] == 55

    def test_breakdown_sorted_by_count(self, seeded_users, make_user):
        make_user("erin", gender="female", age=29, height=168, weight=60)

        breakdown = client.get("/api/stats").json()["data"]["categoryBreakdown"]
        assert breakdown[0]["category"] == "Normal"
        assert breakdown[0]["count"] == 2
        assert breakdown[0]["percentage"] == 40.0

    def test_activity_trend_includes_anonymous_calculations(self, seeded_users):
        trend = client.get("/api/stats").json()["data"]["activityTrend"]

        assert sum(day["calculations"] for day in trend) == 5
        dates = [day["date"] for day in trend]
        assert dates == sorted(dates, reverse=True)

    def test_activity_trend_window(self, make_user):
        make_user("old-timer", days_ago=45)
        make_user("recent", days_ago=1)

        trend = client.get("/api/stats").json()["data"]["activityTrend"]
        assert sum(day["calculations"] for day in trend) == 1

    def test_recent_users(self, seeded_users):
        recent = client.get("/api/stats").json()["data"]["recentUsers"]

        assert [user["name"] for user in recent] == ["dave", "carol", "bob", "alice"]
        assert recent[0]["bmi"] == 35.92
        assert recent[0]["category"] == "Obese"
        assert recent[0]["joinedAt"]

    def test_empty_database(self):
        data = client.get("/api/stats").json()["data"]

        assert data["overview"]["totalUsers"] == 0
        assert data["overview"]["averageAge"] == 0
        assert data["overview"]["firstUserDate"] is None
        assert data["categoryBreakdown"] == []
        assert data["activityTrend"] == []
        assert data["recentUsers"] == []
