"""Map provider failures to a fixed status and a reply the UI can show instead."""
from typing import Any, Optional

from pydantic_ai.exceptions import ModelHTTPError


class ChatError(Exception):
    """An error returned to the client as ``{error, message, fallbackResponse}``."""

    def __init__(self, status_code: int, error: str, message: str, fallback_response: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.error = error
        self.message = message
        self.fallback_response = fallback_response


QUOTA_EXCEEDED = "quota_exceeded"
INVALID_API_KEY = "invalid_api_key"
RATE_LIMITED = "rate_limited"
MODEL_UNAVAILABLE = "model_unavailable"

# kind -> (status, error code the browser client switches on, message, fallback reply)
FALLBACKS = {
    QUOTA_EXCEEDED: (
        429,
        "API_QUOTA_EXCEEDED",
        "AI provider quota exceeded",
        "I've reached my usage limit for now. Please try again a little later.",
    ),
    INVALID_API_KEY: (
        500,
        "API_KEY_INVALID",
        "AI provider rejected the configured API key",
        "I'm having trouble connecting to my AI service right now. Please try again later.",
    ),
    RATE_LIMITED: (
        429,
        "API_RATE_LIMIT",
        "AI provider rate limit reached",
        "I'm getting a lot of messages right now. Please wait a moment and try again.",
    ),
    MODEL_UNAVAILABLE: (
        500,
        "MODEL_ERROR",
        "AI model is unavailable",
        "The AI model I use is temporarily unavailable. Please try again later.",
    ),
}

_CODES = {
    "insufficient_quota": QUOTA_EXCEEDED,
    "invalid_api_key": INVALID_API_KEY,
    "rate_limit_exceeded": RATE_LIMITED,
    "model_not_found": MODEL_UNAVAILABLE,
    "model_decommissioned": MODEL_UNAVAILABLE,
}

_STATUSES = {
    401: INVALID_API_KEY,
    429: RATE_LIMITED,
    404: MODEL_UNAVAILABLE,
}


def _error_codes(body: Any) -> list:
    if not isinstance(body, dict):
        return []
    # the OpenAI client unwraps {"error": {...}}, raw bodies keep the wrapper
    if isinstance(body.get("error"), dict):
        body = body["error"]
    return [body.get("code"), body.get("type")]


def classify_provider_error(exc: Exception) -> Optional[str]:
    """Return the failure class for a known provider error, None for anything else."""
    if not isinstance(exc, ModelHTTPError):
        return None
    for code in _error_codes(exc.body):
        if code in _CODES:
            return _CODES[code]
    return _STATUSES.get(exc.status_code)


def fallback_error(kind: str) -> ChatError:
    status_code, code, message, fallback = FALLBACKS[kind]
    return ChatError(status_code, code, message, fallback)
