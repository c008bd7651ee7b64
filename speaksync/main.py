from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from speaksync import __version__
from speaksync.api.routes import civic, learner, lessons, news
from speaksync.cache.errors import ProducerUnavailable, ThrottledError
from speaksync.config import get_settings
from speaksync.core.exceptions import global_exception_handler, http_exception_handler, producer_unavailable_exception_handler, request_validation_exception_handler, throttled_exception_handler
from speaksync.core.lifespan import lifespan

settings = get_settings()

app = FastAPI(title="SpeakSync", version=__version__, lifespan=lifespan)

app.add_middleware(
  CORSMiddleware,
  allow_origins=list(settings.allowed_origins),
  allow_credentials=True,
  allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
  allow_headers=["content-type", "authorization"],
  expose_headers=["content-length", "retry-after"],
)

app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
app.add_exception_handler(ThrottledError, throttled_exception_handler)
app.add_exception_handler(ProducerUnavailable, producer_unavailable_exception_handler)


@app.get("/health", include_in_schema=False)
async def health_check() -> dict[str, str]:
  """Return a simple health status."""
  return {"status": "ok", "version": __version__}


app.include_router(lessons.router, prefix="/v1/lessons", tags=["lessons"])
app.include_router(news.router, prefix="/v1/news", tags=["news"])
app.include_router(civic.router, prefix="/v1/civic", tags=["civic"])
app.include_router(learner.router, prefix="/v1", tags=["learner"])
