"""Unit tests for API exception mapping and sanitization behavior."""

from __future__ import annotations

import json

import pytest
from fastapi import HTTPException
from starlette.requests import Request

from speaksync.cache.errors import ProducerUnavailable, ThrottledError
from speaksync.cache.throttle import NEWS_SEARCH
from speaksync.core.exceptions import RETRY_LATER_MESSAGE, _sanitize_validation_errors, http_exception_handler, producer_unavailable_exception_handler, throttled_exception_handler


def _request(path: str = "/v1/news") -> Request:
  return Request({"type": "http", "method": "GET", "path": path, "headers": [], "query_string": b""})


def test_sanitize_validation_errors_removes_input_and_serializes_exception_ctx() -> None:
  """Ensure validation errors stay JSON-serializable and redact raw request payloads."""
  errors = [{"type": "value_error", "loc": ("body",), "msg": "Value error, Unknown level 'Z9'.", "input": {"level": "Z9"}, "ctx": {"error": ValueError("Unknown level 'Z9'."), "input": {"level": "Z9"}}}]
  sanitized = _sanitize_validation_errors(errors)
  assert "input" not in sanitized[0]
  assert sanitized[0]["ctx"]["error"] == "ValueError: Unknown level 'Z9'."
  assert "input" not in sanitized[0]["ctx"]


@pytest.mark.anyio
async def test_throttled_error_maps_to_429_with_remaining_seconds() -> None:
  response = await throttled_exception_handler(_request(), ThrottledError(NEWS_SEARCH, 27))
  body = json.loads(response.body)
  assert response.status_code == 429
  assert response.headers["retry-after"] == "27"
  assert body["resourceClass"] == NEWS_SEARCH
  assert body["remainingSeconds"] == 27


@pytest.mark.anyio
async def test_zero_remaining_still_sends_positive_retry_after() -> None:
  response = await throttled_exception_handler(_request(), ThrottledError(NEWS_SEARCH, 0))
  assert response.headers["retry-after"] == "1"


@pytest.mark.anyio
async def test_producer_unavailable_hides_provider_details() -> None:
  response = await producer_unavailable_exception_handler(_request(), ProducerUnavailable("Gemini said: API key sk-live-123 rejected", kind="quota"))
  body = json.loads(response.body)
  assert response.status_code == 503
  assert body == {"detail": RETRY_LATER_MESSAGE, "retryable": False}


@pytest.mark.anyio
async def test_http_5xx_is_sanitized_and_4xx_passes_through() -> None:
  server_error = await http_exception_handler(_request(), HTTPException(status_code=502, detail="upstream db password=hunter2"))
  assert json.loads(server_error.body) == {"detail": "Internal Server Error"}

  not_found = await http_exception_handler(_request(), HTTPException(status_code=404, detail="Word 'brood' is not in the vault."))
  assert not_found.status_code == 404
  assert json.loads(not_found.body)["detail"] == "Word 'brood' is not in the vault."
