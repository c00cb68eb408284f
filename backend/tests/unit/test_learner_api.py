"""
Unit tests for the learner API router.

The SQLAlchemy store is replaced with the in-memory store through
FastAPI dependency overrides, so these run without a database.
"""

from datetime import datetime, timedelta, timezone
import importlib
import warnings

import pytest
from fastapi.testclient import TestClient

from fluentpath.db.models_learning import ReviewQueueEntry
from fluentpath.dependencies import get_learning_store
from fluentpath.main import create_app
from fluentpath.routers import learner as learner_router
from tests.fakes import InMemoryLearningStore

LEARNER = {"X-Learner-Id": "learner-1"}


@pytest.fixture
def seeded_store() -> InMemoryLearningStore:
    store = InMemoryLearningStore()
    course = store.add_course()
    module = store.add_module(course, 1)
    lesson = store.add_lesson(module, 1)
    store.add_lesson(module, 2)
    store.add_exercise(lesson, correct_answer="Hola", alternatives=["Buenas"], points=20)
    store.add_exercise(lesson, correct_answer="Adiós", points=20)
    return store


@pytest.fixture
def ids(seeded_store):
    course = next(iter(seeded_store.courses.values()))
    lessons = sorted(seeded_store.lessons.values(), key=lambda lesson: lesson.sort_order)
    exercises = list(seeded_store.exercises.values())
    return {
        "course": course.id,
        "lesson": lessons[0].id,
        "exercise": exercises[0].id,
    }


@pytest.fixture
def client(seeded_store):
    app = create_app(debug=True, with_lifespan=False)
    app.dependency_overrides[get_learning_store] = lambda: seeded_store
    return TestClient(app)


class TestLearnerIdentity:
    def test_missing_header(self, client):
        response = client.get("/api/spaced-repetition/stats")
        assert response.status_code == 401

    def test_blank_header(self, client):
        response = client.get("/api/spaced-repetition/stats", headers={"X-Learner-Id": "  "})
        assert response.status_code == 401


class TestEnrollmentEndpoints:
    def test_enroll(self, client, ids):
        response = client.post(f"/api/courses/{ids['course']}/enroll", headers=LEARNER)

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["course_id"] == ids["course"]
        assert data["progress"] == 0.0

    def test_enroll_twice_same_enrollment(self, client, ids):
        first = client.post(f"/api/courses/{ids['course']}/enroll", headers=LEARNER)
        second = client.post(f"/api/courses/{ids['course']}/enroll", headers=LEARNER)

        assert first.json()["data"]["id"] == second.json()["data"]["id"]

    def test_enroll_unknown_course(self, client):
        response = client.post("/api/courses/missing/enroll", headers=LEARNER)

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_list_enrollments(self, client, ids):
        client.post(f"/api/courses/{ids['course']}/enroll", headers=LEARNER)

        response = client.get("/api/enrollments", headers=LEARNER)

        assert [e["course_id"] for e in response.json()["data"]] == [ids["course"]]


class TestLessonCompletionEndpoint:
    def test_complete(self, client, ids):
        client.post(f"/api/courses/{ids['course']}/enroll", headers=LEARNER)

        response = client.post(
            f"/api/lessons/{ids['lesson']}/complete",
            json={"time_spent": 120, "score": 75},
            headers=LEARNER,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["lesson_id"] == ids["lesson"]
        assert data["xp_earned"] == 30
        assert data["streak_bonus"] is False

    def test_complete_camel_case_body(self, client, seeded_store, ids):
        client.post(f"/api/courses/{ids['course']}/enroll", headers=LEARNER)

        response = client.post(
            f"/api/lessons/{ids['lesson']}/complete",
            json={"timeSpent": 60, "score": 80},
            headers=LEARNER,
        )

        assert response.status_code == 200
        assert response.json()["data"]["lesson_id"] == ids["lesson"]
        assert seeded_store.snapshots[("learner-1", ids["lesson"])].time_spent == 60

    def test_complete_twice_conflicts(self, client, ids):
        client.post(f"/api/courses/{ids['course']}/enroll", headers=LEARNER)
        body = {"time_spent": 120, "score": 75}
        client.post(f"/api/lessons/{ids['lesson']}/complete", json=body, headers=LEARNER)

        response = client.post(
            f"/api/lessons/{ids['lesson']}/complete", json=body, headers=LEARNER
        )

        assert response.status_code == 409
        assert response.json()["error"] == "already_completed"

    def test_not_enrolled(self, client, ids):
        response = client.post(
            f"/api/lessons/{ids['lesson']}/complete",
            json={"time_spent": 120, "score": 75},
            headers=LEARNER,
        )

        assert response.status_code == 403
        assert response.json()["error"] == "not_enrolled"

    @pytest.mark.parametrize(
        "body",
        [
            {"time_spent": 120, "score": 101},
            {"time_spent": -5, "score": 50},
            {"time_spent": 120},
            {"time_spent": 120, "score": 50, "bonus": True},
            {"timeSpent": -1, "score": 50},
        ],
    )
    def test_invalid_body(self, client, ids, body):
        response = client.post(
            f"/api/lessons/{ids['lesson']}/complete", json=body, headers=LEARNER
        )
        assert response.status_code == 422


class TestExerciseAttemptEndpoint:
    def test_correct(self, client, ids):
        response = client.post(
            f"/api/exercises/{ids['exercise']}/attempt",
            json={"answer": "  hola ", "time_spent": 6},
            headers=LEARNER,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["is_correct"] is True
        assert data["score"] == 20
        assert data["correct_answer"] is None
        assert "ease_factor" not in data
        assert "interval" not in data

    def test_wrong(self, client, ids):
        response = client.post(
            f"/api/exercises/{ids['exercise']}/attempt",
            json={"answer": "Adiós", "time_spent": 6},
            headers=LEARNER,
        )

        data = response.json()["data"]
        assert data["is_correct"] is False
        assert data["correct_answer"] == "Hola"
        assert "Buenas" not in response.text

    def test_camel_case_body(self, client, seeded_store, ids):
        response = client.post(
            f"/api/exercises/{ids['exercise']}/attempt",
            json={"answer": "hola", "timeSpent": 9},
            headers=LEARNER,
        )

        assert response.status_code == 200
        assert response.json()["data"]["is_correct"] is True
        assert seeded_store.attempts[-1].time_spent == 9

    def test_unknown_exercise(self, client):
        response = client.post(
            "/api/exercises/missing/attempt",
            json={"answer": "hola", "time_spent": 6},
            headers=LEARNER,
        )
        assert response.status_code == 404

    def test_blank_answer(self, client, ids):
        response = client.post(
            f"/api/exercises/{ids['exercise']}/attempt",
            json={"answer": "   ", "time_spent": 6},
            headers=LEARNER,
        )
        assert response.status_code == 422


class TestSpacedRepetitionEndpoints:
    def test_due_exercises(self, client, seeded_store, ids):
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        seeded_store.queue[("learner-1", ids["exercise"])] = ReviewQueueEntry(
            id="entry-1",
            user_id="learner-1",
            exercise_id=ids["exercise"],
            interval=1,
            ease_factor=2.5,
            repetitions=0,
            next_review=past,
            is_active=True,
        )

        response = client.get("/api/spaced-repetition/next", headers=LEARNER)

        assert response.status_code == 200
        [entry] = response.json()["data"]
        assert entry["exercise_id"] == ids["exercise"]
        assert entry["bucket"] == "learning"

    @pytest.mark.parametrize("limit", [0, 101])
    def test_limit_bounds(self, client, limit):
        response = client.get(
            f"/api/spaced-repetition/next?limit={limit}", headers=LEARNER
        )
        assert response.status_code == 422

    def test_stats_after_attempt(self, client, ids):
        client.post(
            f"/api/exercises/{ids['exercise']}/attempt",
            json={"answer": "hola", "time_spent": 6},
            headers=LEARNER,
        )

        response = client.get("/api/spaced-repetition/stats", headers=LEARNER)

        assert response.json()["data"] == {"total": 1, "due": 0, "learning": 0, "review": 1}


class TestProgressEndpoints:
    def test_skill_tree(self, client, ids):
        client.post(f"/api/courses/{ids['course']}/enroll", headers=LEARNER)

        response = client.get(f"/api/courses/{ids['course']}/skill-tree", headers=LEARNER)

        assert response.status_code == 200
        [module] = response.json()["data"]
        assert module["type"] == "module"
        assert module["is_locked"] is False
        assert [lesson["is_locked"] for lesson in module["children"]] == [False, True]

    def test_skill_tree_not_enrolled(self, client, ids):
        response = client.get(f"/api/courses/{ids['course']}/skill-tree", headers=LEARNER)
        assert response.status_code == 403

    def test_progress_summary(self, client, ids):
        client.post(f"/api/courses/{ids['course']}/enroll", headers=LEARNER)
        client.post(
            f"/api/lessons/{ids['lesson']}/complete",
            json={"time_spent": 120, "score": 100},
            headers=LEARNER,
        )

        response = client.get(
            f"/api/progress?course_id={ids['course']}", headers=LEARNER
        )

        data = response.json()["data"]
        assert data["total_xp"] == 40
        assert data["lessons_completed"] == 1
        assert data["completion_percentage"] == 50.0
        assert data["streak"] == 1
        assert data["time_spent"] == 120


class TestHealth:
    def test_basic_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestOpenApi:
    def test_error_responses_documented(self, client):
        spec = client.get("/openapi.json").json()

        responses = spec["paths"]["/api/lessons/{lesson_id}/complete"]["post"]["responses"]
        assert {"403", "404", "409", "422", "503"} <= set(responses)

    def test_router_import_has_no_deprecated_status_codes(self):
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            importlib.reload(learner_router)

        deprecated = [
            str(w.message) for w in caught if issubclass(w.category, DeprecationWarning)
        ]
        assert not [message for message in deprecated if "HTTP_" in message]
