"""Shared fixtures: sample test payloads and a fake CertifyMe backend."""

import json
from collections import Counter
from typing import Any, Callable, Dict, Optional

import httpx
import pytest
from jose import jwt

from certifyme.models.test_model import Test
from certifyme.services.achievement_notifier import AudioGate
from certifyme.services.client_store import ClientStore
from certifyme.services.context import ClientContext

API_URL = "http://backend.test"


def make_test_payload(test_id: int = 1) -> Dict[str, Any]:
    """Two questions, each with exactly one correct answer."""
    return {
        "id": test_id,
        "title_ua": "Основи Python",
        "title_en": "Python Basics",
        "description_ua": "Короткий тест",
        "description_en": "A short test",
        "questions": [
            {
                "id": 10,
                "question_ua": "Що повертає len([1, 2])?",
                "question_en": "What does len([1, 2]) return?",
                "answers": [
                    {"id": 100, "answer_ua": "2", "answer_en": "2", "is_correct": True},
                    {"id": 101, "answer_ua": "1", "answer_en": "1", "is_correct": False},
                    {"id": 102, "answer_ua": "3", "answer_en": "3", "is_correct": False},
                ],
            },
            {
                "id": 20,
                "question_ua": "Яке ключове слово визначає функцію?",
                "question_en": "Which keyword defines a function?",
                "answers": [
                    {"id": 200, "answer_ua": "func", "answer_en": "func", "is_correct": False},
                    {"id": 201, "answer_ua": "def", "answer_en": "def", "is_correct": True},
                ],
            },
        ],
    }


def make_token(**claims) -> str:
    return jwt.encode(claims or {"id": 7}, "test-secret", algorithm="HS256")


async def no_sleep(_seconds: float) -> None:
    return None


class FakeBackend:
    """
    Routes httpx requests to canned responses and counts calls per path.

    `responses` maps "METHOD /path" to either a (status, body) tuple or a
    callable taking the request and returning an httpx.Response.
    """

    def __init__(self):
        self.calls: Counter = Counter()
        self.requests: list = []
        self.responses: Dict[str, Any] = {}

    def set(self, method: str, path: str, status: int = 200, body: Any = None,
            handler: Optional[Callable[[httpx.Request], httpx.Response]] = None) -> None:
        self.responses[f"{method} {path}"] = handler or (status, body)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        key = f"{request.method} {request.url.path}"
        self.calls[key] += 1
        self.requests.append(request)
        entry = self.responses.get(key)
        if entry is None:
            return httpx.Response(404, json={"success": False, "message": "not found"})
        if callable(entry):
            return entry(request)
        status, body = entry
        if isinstance(body, bytes):
            return httpx.Response(status, content=body, headers={"Content-Type": "application/pdf"})
        return httpx.Response(status, json=body)

    def last_json(self, method: str, path: str) -> Any:
        for request in reversed(self.requests):
            if request.method == method and request.url.path == path:
                return json.loads(request.content)
        return None


def _unlock_response(request: httpx.Request) -> httpx.Response:
    code = json.loads(request.content)["code"]
    return httpx.Response(200, json={
        "success": True,
        "achievement": {
            "id": 1,
            "code": code,
            "title_ua": "Досягнення",
            "title_en": code.replace("_", " ").capitalize(),
        },
    })


@pytest.fixture
def test_payload() -> Dict[str, Any]:
    return make_test_payload()


@pytest.fixture
def sample_test(test_payload) -> Test:
    return Test.model_validate(test_payload)


@pytest.fixture
def backend(test_payload) -> FakeBackend:
    fake = FakeBackend()
    fake.set("GET", "/api/tests/1", body={"success": True, "test": test_payload})
    fake.set("POST", "/api/ai/explain", body={
        "success": True,
        "explanation_ua": "Пояснення",
        "explanation_en": "Explanation",
    })
    fake.set("POST", "/api/achievements/unlock", handler=_unlock_response)
    fake.set("POST", "/api/certificates/generate", body=b"%PDF-1.4 fake")
    return fake


@pytest.fixture
def store() -> ClientStore:
    return ClientStore(None)


@pytest.fixture
def context(backend, store) -> ClientContext:
    return ClientContext(
        api_url=API_URL,
        store=store,
        audio=AudioGate(),
        transport=httpx.MockTransport(backend),
        sleep=no_sleep,
    )
