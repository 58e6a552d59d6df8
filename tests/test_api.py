"""
HTTP tests for the generation routes
"""
import pytest
from fastapi.testclient import TestClient

from main import app
from app.apis.deps import get_generation_pipeline
from app.modules.auth import optional_current_user
from app.modules.generation.pipeline import GenerationPipeline

from fakes import FakeOracle, completion, requested_count, requested_type


PATH = "/v1/generate-questions"
NOTES = "Photosynthesis converts light into chemical energy."


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _override(user, pipeline):
    app.dependency_overrides[optional_current_user] = lambda: user
    app.dependency_overrides[get_generation_pipeline] = lambda: pipeline


class TestStatusRoutes:
    def test_root(self, client):
        rsp = client.get("/")
        assert rsp.status_code == 200
        assert rsp.json()["status"] == "ok"
        assert rsp.json()["version"] == "v1"

    def test_request_id_is_echoed(self, client):
        rsp = client.get("/", headers={"X-Request-ID": "abc123"})
        assert rsp.headers["X-Request-ID"] == "abc123"
        assert client.get("/").headers["X-Request-ID"]

    def test_generate_descriptor(self, client):
        rsp = client.get(PATH)
        assert rsp.status_code == 200
        body = rsp.json()
        assert body["endpoint"] == PATH
        assert body["method"] == "POST"


class TestOpenAPI:
    def test_generate_route_documents_request_and_response(self, client):
        operation = client.get("/openapi.json").json()["paths"][PATH]["post"]
        body_schema = operation["requestBody"]["content"]["application/json"]["schema"]
        assert {"contentType", "notes", "images", "numberOfQuestions", "questionType"} <= set(
            body_schema["properties"]
        )
        ok_schema = operation["responses"]["200"]["content"]["application/json"]["schema"]
        assert ok_schema["$ref"].endswith("/GenerateQuestionsResponse")


class TestGenerateQuestions:
    def test_mcq_success(self, client, config, store, oracle, admin):
        _override(admin, GenerationPipeline(config=config, oracle=oracle, store=store))
        rsp = client.post(
            PATH,
            json={"contentType": "text", "notes": NOTES, "numberOfQuestions": 3},
        )
        assert rsp.status_code == 200
        body = rsp.json()
        assert [q["id"] for q in body["questions"]] == [1, 2, 3]
        assert body["metadata"]["numberOfQuestions"] == 3
        assert body["metadata"]["model"] == "fake-model"

    def test_flashcards_success(self, client, config, store, oracle, subscriber):
        _override(subscriber, GenerationPipeline(config=config, oracle=oracle, store=store))
        rsp = client.post(
            PATH,
            json={"notes": NOTES, "numberOfQuestions": 12, "questionType": "flashcard"},
        )
        assert rsp.status_code == 200
        cards = rsp.json()["cards"]
        assert len(cards) == 12
        assert set(cards[0]) == {"id", "question", "answer"}

    def test_unauthenticated(self, client, config, store, oracle):
        _override(None, GenerationPipeline(config=config, oracle=oracle, store=store))
        rsp = client.post(PATH, json={"notes": NOTES, "numberOfQuestions": 3})
        assert rsp.status_code == 401
        assert rsp.json() == {"error": "Unauthorized", "code": "unauthorized"}

    def test_quota_exceeded(self, client, config, store, oracle, free_user):
        store.free_used[free_user.id] = 4
        _override(free_user, GenerationPipeline(config=config, oracle=oracle, store=store))
        rsp = client.post(PATH, json={"notes": NOTES, "numberOfQuestions": 3})
        assert rsp.status_code == 403
        assert rsp.json()["requiresSubscription"] is True
        assert oracle.calls == []

    def test_free_user_is_debited(self, client, config, store, oracle, free_user):
        _override(free_user, GenerationPipeline(config=config, oracle=oracle, store=store))
        rsp = client.post(PATH, json={"notes": NOTES, "numberOfQuestions": 3})
        assert rsp.status_code == 200
        assert store.free_used[free_user.id] == 1

    @pytest.mark.parametrize(
        "body",
        [
            {"notes": NOTES, "numberOfQuestions": 0},
            {"notes": "", "numberOfQuestions": 3},
            {"contentType": "images", "images": [], "numberOfQuestions": 3},
            {"notes": NOTES, "numberOfQuestions": 3, "questionType": "essay"},
            ["not", "an", "object"],
        ],
    )
    def test_invalid_argument(self, client, config, store, oracle, admin, body):
        _override(admin, GenerationPipeline(config=config, oracle=oracle, store=store))
        rsp = client.post(PATH, json=body)
        assert rsp.status_code == 400
        assert rsp.json()["code"] == "invalid_argument"
        assert oracle.calls == []

    def test_too_many_images(self, client, config, store, oracle, admin):
        _override(admin, GenerationPipeline(config=config, oracle=oracle, store=store))
        images = ["data:image/png;base64,AAAA"] * 16
        rsp = client.post(
            PATH,
            json={"contentType": "images", "images": images, "numberOfQuestions": 3},
        )
        assert rsp.status_code == 400
        assert rsp.json()["code"] == "too_many_inputs"

    def test_truncated(self, client, config, store, admin):
        def responder(request, n):
            return completion(
                requested_type(request), requested_count(request), finish_reason="length"
            )

        _override(admin, GenerationPipeline(config=config, oracle=FakeOracle(responder), store=store))
        rsp = client.post(PATH, json={"notes": NOTES, "numberOfQuestions": 5})
        assert rsp.status_code == 413
        body = rsp.json()
        assert body["code"] == "truncated_generation"
        assert body["requested"] == 5
        assert body["received"] == 5

    def test_malformed_output_hides_details(self, client, config, store, admin):
        oracle = FakeOracle(lambda request, n: completion(requested_type(request), 3, items=[{"id": 1}]))
        _override(admin, GenerationPipeline(config=config, oracle=oracle, store=store))
        rsp = client.post(PATH, json={"notes": NOTES, "numberOfQuestions": 3})
        assert rsp.status_code == 500
        assert rsp.json() == {
            "error": "Failed to generate questions. Please try again.",
            "code": "malformed_item",
        }
