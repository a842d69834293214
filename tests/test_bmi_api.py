"""
Integration tests for the BMI calculation endpoint

Covers the response shape, input validation, numeric strings,
persistence of named and anonymous calculations and best-effort
storage when the database is unreachable.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from core.database import get_session_factory
from main import app
from models import BMIHistoryEntry, UserRecord
from routers.bmi import PERSISTENCE_WARNING
from services.bmi_calculator import HEALTH_TIPS, BMICategory

client = TestClient(app)


class TestCalculateBMI:
    """POST /api/bmi happy paths"""

    def test_overweight_male(self):
        response = client.post("/api/bmi", json={"height": 180, "weight": 95, "age": 30, "gender": "male"})

        assert response.status_code == 200
        data = response.json()
        assert data["bmi"] == 29.32
        assert data["category"] == "Overweight"
        assert data["healthTip"] == HEALTH_TIPS[BMICategory.OVERWEIGHT]
        assert data["gender"] == "male"
        assert data["age"] == 30
        assert data["name"] == "Anonymous"
        assert data["saved"] is True
        assert data["warning"] is None

    def test_numeric_strings_accepted(self):
        response = client.post("/api/bmi", json={"height": "175", "weight": "70"})

        assert response.status_code == 200
        data = response.json()
        assert data["bmi"] == 22.86
        assert data["category"] == "Normal"
        assert data["gender"] == "unknown"
        assert data["age"] is None

    def test_gender_is_case_insensitive(self):
        response = client.post("/api/bmi", json={"height": 165, "weight": 50, "gender": "Female"})

        assert response.status_code == 200
        assert response.json()["gender"] == "female"
        assert response.json()["category"] == "Underweight"

    def test_name_echoed(self):
        response = client.post("/api/bmi", json={"height": 175, "weight": 110, "name": "  Dana  "})

        assert response.status_code == 200
        assert response.json()["name"] == "Dana"
        assert response.json()["category"] == "Obese"


class TestValidation:
    """Rejected input never reaches the engine or the database"""

    @pytest.mark.parametrize("body", [
        {"weight": 70},
        {"height": 175},
        {"height": "", "weight": 70},
        {},
    ])
    def test_missing_height_or_weight(self, body, db_session):
        response = client.post("/api/bmi", json=body)

        assert response.status_code == 400
        assert response.json()["error"] == "Height and weight are required."
        assert db_session.query(UserRecord).count() == 0

    @pytest.mark.parametrize("body", [
        {"height": 0, "weight": 70},
        {"height": 175, "weight": -5},
        {"height": "-175", "weight": "70"},
        {"height": "tall", "weight": 70},
        {"height": 175, "weight": "heavy"},
    ])
    def test_unusable_measurements(self, body):
        response = client.post("/api/bmi", json=body)

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid height or weight provided."

    @pytest.mark.parametrize("age", [-3, "-3", 0.5, "old"])
    def test_invalid_age(self, age):
        response = client.post("/api/bmi", json={"height": 175, "weight": 70, "age": age})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid age provided."

    @pytest.mark.parametrize("age", [0, "0", ""])
    def test_zero_or_blank_age_means_not_given(self, age):
        response = client.post("/api/bmi", json={"height": 175, "weight": 70, "age": age})

        assert response.status_code == 200
        assert response.json()["age"] is None

    @pytest.mark.parametrize("age", [25.7, "25.7", "25"])
    def test_fractional_age_truncated(self, age):
        response = client.post("/api/bmi", json={"height": 175, "weight": 70, "age": age})

        assert response.status_code == 200
        assert response.json()["age"] == 25

    @pytest.mark.parametrize("body", [
        {"height": 175, "weight": 70, "gender": "robot"},
        {"height": 175, "weight": 70, "name": "x" * 101},
    ])
    def test_malformed_fields(self, body):
        response = client.post("/api/bmi", json=body)

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request"


class TestImplausibleMeasurements:
    """Values that would overflow the formula or fall outside human ranges"""

    @pytest.mark.parametrize("body", [
        {"height": 1e-200, "weight": 70},
        {"height": 1e-3, "weight": 1e305, "name": "mallory"},
        {"height": 500, "weight": 70},
        {"height": 175, "weight": 0.1},
        {"height": 175, "weight": 5000},
    ])
    def test_rejected_and_not_stored(self, body, db_session):
        response = client.post("/api/bmi", json=body)

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid height or weight provided."
        assert db_session.query(UserRecord).count() == 0

    def test_stats_unaffected(self):
        client.post("/api/bmi", json={"height": 1e-3, "weight": 1e305, "name": "mallory"})
        client.post("/api/bmi", json={"height": 175, "weight": 70, "name": "zoe"})

        response = client.get("/api/stats")

        assert response.status_code == 200

    def test_range_limits_are_inclusive(self):
        response = client.post("/api/bmi", json={"height": 300, "weight": 700})

        assert response.status_code == 200
        assert response.json()["category"] == "Obese"


class TestPersistence:
    """Calculations are stored per user with history"""

    def test_named_user_updated_in_place(self, db_session):
        client.post("/api/bmi", json={"height": 170, "weight": 65, "name": "Eve", "gender": "female", "age": 33})
        client.post("/api/bmi", json={"height": 170, "weight": 80, "name": "eve", "gender": "female", "age": 34})

        users = db_session.query(UserRecord).all()
        assert len(users) == 1
        user = users[0]
        assert user.name == "Eve"
        assert user.is_anonymous is False
        assert user.calculation_count == 2
        assert user.weight == 80
        assert user.age == 34
        assert user.current_category == "Overweight"
        assert db_session.query(BMIHistoryEntry).filter(BMIHistoryEntry.user_id == user.id).count() == 2

    def test_stored_bmi_is_unrounded(self, db_session):
        client.post("/api/bmi", json={"height": 180, "weight": 95, "name": "Frank"})

        user = db_session.query(UserRecord).one()
        assert user.current_bmi == pytest.approx(95 / 1.8 ** 2)

    def test_anonymous_calculations_are_separate(self, db_session):
        client.post("/api/bmi", json={"height": 175, "weight": 70})
        client.post("/api/bmi", json={"height": 175, "weight": 70, "name": "   "})

        users = db_session.query(UserRecord).all()
        assert len(users) == 2
        assert all(user.is_anonymous for user in users)
        assert all(user.calculation_count == 1 for user in users)

    def test_history_entry_matches_request(self, db_session):
        client.post("/api/bmi", json={"height": 160, "weight": 55, "age": 28, "gender": "female", "name": "Gina"})

        entry = db_session.query(BMIHistoryEntry).one()
        assert entry.height == 160
        assert entry.weight == 55
        assert entry.age == 28
        assert entry.gender == "female"
        assert entry.category == "Normal"


class TestBestEffortStorage:
    """Database failures degrade to an unsaved result, never an error"""

    def test_unreachable_database(self):
        broken_engine = create_engine("sqlite:////nonexistent-directory/bmi.db")
        app.dependency_overrides[get_session_factory] = lambda: sessionmaker(bind=broken_engine)

        response = client.post("/api/bmi", json={"height": 180, "weight": 95, "name": "Hank"})

        assert response.status_code == 200
        data = response.json()
        assert data["bmi"] == 29.32
        assert data["category"] == "Overweight"
        assert data["saved"] is False
        assert data["warning"] == PERSISTENCE_WARNING


class TestUnexpectedErrors:
    """Unhandled failures return a generic 500"""

    def test_internal_error_body(self, monkeypatch):
        def explode(height, weight):
            raise RuntimeError("boom")

        monkeypatch.setattr("routers.bmi.evaluate", explode)
        failing_client = TestClient(app, raise_server_exceptions=False)

        response = failing_client.post("/api/bmi", json={"height": 175, "weight": 70})

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}
