import json

import httpx
import pytest
from pydantic_ai.exceptions import ModelHTTPError

from backend.agents.assistant import build_assistant
from backend.agents.fallbacks import (
    INVALID_API_KEY,
    MODEL_UNAVAILABLE,
    QUOTA_EXCEEDED,
    RATE_LIMITED,
    classify_provider_error,
    fallback_error,
)
from backend.config import GROQ_BASE_URL, Settings
from backend.main import app


def completion_body(content):
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 1700000000,
        "model": "llama-3.1-8b-instant",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
                "logprobs": None,
            }
        ],
        "usage": {"prompt_tokens": 5, "completion_tokens": 1, "total_tokens": 6},
    }


def groq_assistant(handler):
    settings = Settings()
    settings.groq_api_key = "gsk-test"
    settings.llm_model = "llama-3.1-8b-instant"
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return build_assistant(settings, http_client=http_client)


def test_build_assistant_without_key_is_none():
    settings = Settings()
    settings.groq_api_key = None
    settings.openai_api_key = None
    assert build_assistant(settings) is None


def test_groq_key_selects_groq_endpoint():
    settings = Settings()
    settings.groq_api_key = "gsk-test"
    settings.openai_api_key = "sk-test"
    assert settings.provider_name == "groq"
    assert settings.provider_base_url == GROQ_BASE_URL
    assert settings.provider_api_key == "gsk-test"


def test_provider_reply_is_returned_with_chat_id(client):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=completion_body("X"))

    app.state.assistant = groq_assistant(handler)
    res = client.post("/api/chat", json={"message": "Say X"})

    assert res.status_code == 200
    data = res.json()
    assert data == {"response": "X", "chatId": data["chatId"]}
    assert isinstance(data["chatId"], int)

    assert len(seen) == 1
    request = seen[0]
    assert request.url.host == "api.groq.com"
    assert request.url.path.endswith("/chat/completions")
    assert request.headers["authorization"] == "Bearer gsk-test"
    payload = json.loads(request.content)
    assert payload["model"] == "llama-3.1-8b-instant"
    assert "Say X" in json.dumps(payload["messages"])


def test_provider_quota_error_is_not_retried(client, register):
    _, headers = register("alice")
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(429, json={"error": {
            "message": "You exceeded your current quota, please check your plan and billing details.",
            "type": "insufficient_quota",
            "param": None,
            "code": "insufficient_quota",
        }})

    app.state.assistant = groq_assistant(handler)
    res = client.post("/api/chat", json={"message": "hello"}, headers=headers)

    assert res.status_code == 429
    assert res.json()["error"] == "API_QUOTA_EXCEEDED"
    assert res.json()["fallbackResponse"]
    assert len(calls) == 1

    chat_id = client.get("/api/chats", headers=headers).json()[0]["id"]
    roles = [m["role"] for m in client.get(f"/api/chats/{chat_id}", headers=headers).json()]
    assert roles == ["user"]


@pytest.mark.parametrize("status_code,body,expected", [
    (429, {"code": "insufficient_quota", "type": "insufficient_quota"}, QUOTA_EXCEEDED),
    (429, {"error": {"code": "insufficient_quota"}}, QUOTA_EXCEEDED),
    (429, {"code": "rate_limit_exceeded", "type": "tokens"}, RATE_LIMITED),
    (429, None, RATE_LIMITED),
    (401, {"code": "invalid_api_key"}, INVALID_API_KEY),
    (401, "Unauthorized", INVALID_API_KEY),
    (404, {"code": "model_not_found"}, MODEL_UNAVAILABLE),
    (400, {"code": "model_decommissioned"}, MODEL_UNAVAILABLE),
    (400, {"code": "context_length_exceeded"}, None),
    (500, {"message": "upstream failed"}, None),
])
def test_classify_provider_error(status_code, body, expected):
    exc = ModelHTTPError(status_code=status_code, model_name="m", body=body)
    assert classify_provider_error(exc) == expected


def test_non_http_errors_are_unclassified():
    assert classify_provider_error(RuntimeError("boom")) is None
    assert classify_provider_error(httpx.ConnectError("down")) is None


def test_fallback_statuses():
    assert fallback_error(QUOTA_EXCEEDED).status_code == 429
    assert fallback_error(RATE_LIMITED).status_code == 429
    assert fallback_error(INVALID_API_KEY).status_code == 500
    assert fallback_error(MODEL_UNAVAILABLE).status_code == 500
    for kind in (QUOTA_EXCEEDED, RATE_LIMITED, INVALID_API_KEY, MODEL_UNAVAILABLE):
        assert fallback_error(kind).fallback_response


@pytest.mark.parametrize("status_code,body,code", [
    (429, {"code": "insufficient_quota"}, "API_QUOTA_EXCEEDED"),
    (401, {"code": "invalid_api_key"}, "API_KEY_INVALID"),
    (429, {"code": "rate_limit_exceeded"}, "API_RATE_LIMIT"),
    (404, {"code": "model_not_found"}, "MODEL_ERROR"),
])
def test_error_codes_match_browser_client(client, set_assistant, status_code, body, code):
    set_assistant(error=ModelHTTPError(status_code=status_code, model_name="m", body=body))
    res = client.post("/api/chat", json={"message": "hello"})
    assert res.json()["error"] == code
    assert res.json()["fallbackResponse"]
