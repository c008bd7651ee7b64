import logging
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from speaksync.cache.errors import ProducerUnavailable, ThrottledError

RETRY_LATER_MESSAGE = "Content generation is temporarily unavailable. Please try again later."


def _coerce_json_safe(value: Any) -> Any:
  """Convert unsupported values into JSON-safe primitives for error responses."""
  if value is None or isinstance(value, bool | int | float | str):
    return value
  if isinstance(value, dict):
    return {str(key): _coerce_json_safe(item) for key, item in value.items()}
  if isinstance(value, list | tuple | set):
    return [_coerce_json_safe(item) for item in value]
  if isinstance(value, BaseException):
    error_message = str(value)
    if error_message:
      return f"{type(value).__name__}: {error_message}"
    return type(value).__name__
  return str(value)


def _error_payload(detail: Any, **extra: Any) -> dict[str, Any]:
  payload: dict[str, Any] = {"detail": detail}
  payload.update(extra)
  return payload


def _sanitize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
  """Return validation errors without raw input payloads."""
  sanitized: list[dict[str, Any]] = []
  for error in errors:
    scrubbed = {key: value for key, value in error.items() if key != "input"}
    if "ctx" in scrubbed and isinstance(scrubbed["ctx"], dict):
      scrubbed_ctx = dict(scrubbed["ctx"])
      scrubbed_ctx.pop("input", None)
      scrubbed["ctx"] = scrubbed_ctx

    sanitized.append(_coerce_json_safe(scrubbed))

  return sanitized


async def throttled_exception_handler(request: Request, exc: ThrottledError) -> JSONResponse:
  """Surface the remaining cooldown so the client can show a wait time."""
  logger = logging.getLogger("uvicorn.error")
  logger.info("Throttled path=%s resource_class=%s remaining=%ss", request.url.path, exc.resource_class, exc.remaining_seconds)
  # Retry-After must be a positive integer; a zero remainder means "retry now".
  retry_after = max(1, exc.remaining_seconds)
  return JSONResponse(
    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
    content=_error_payload("Please wait before requesting new content.", resourceClass=exc.resource_class, remainingSeconds=exc.remaining_seconds),
    headers={"Retry-After": str(retry_after)},
  )


async def producer_unavailable_exception_handler(request: Request, exc: ProducerUnavailable) -> JSONResponse:
  """Return a generic retry-later message; producer details stay in the logs."""
  logger = logging.getLogger("uvicorn.error")
  logger.warning("Producer unavailable path=%s kind=%s error=%s", request.url.path, exc.kind, exc)
  return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=_error_payload(RETRY_LATER_MESSAGE, retryable=exc.retryable))


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
  """Global exception handler to catch unhandled errors."""
  logger = logging.getLogger("uvicorn.error")
  logger.error("Global exception path=%s error_type=%s", request.url.path, type(exc).__name__, exc_info=True)
  return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_error_payload("Internal Server Error"))


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
  """Log request validation errors for debugging without leaking payloads."""
  sanitized_errors = _sanitize_validation_errors(list(exc.errors()))
  logger = logging.getLogger("uvicorn.error")
  logger.warning("Request validation failed path=%s method=%s errors=%s", request.url.path, request.method, sanitized_errors)
  return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=_error_payload(sanitized_errors))


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
  """Handle HTTPExceptions without echoing internal diagnostics on 5xx."""
  if exc.status_code >= 500:
    logger = logging.getLogger("uvicorn.error")
    logger.error("HTTPException path=%s status_code=%s detail=%s", request.url.path, exc.status_code, exc.detail, exc_info=True)
    return JSONResponse(status_code=exc.status_code, content=_error_payload("Internal Server Error"))

  return JSONResponse(status_code=exc.status_code, content=_error_payload(exc.detail), headers=exc.headers)
