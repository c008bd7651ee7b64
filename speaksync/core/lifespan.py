import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from urllib.parse import urlparse

from fastapi import FastAPI

from speaksync.core.database import dispose_engine
from speaksync.core.logging import initialize_logging
from speaksync.services.factory import build_services


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Initialize logging and the service graph; flush background writes on shutdown."""
  from speaksync.config import get_settings

  settings = get_settings()
  logger = logging.getLogger("speaksync.core.lifespan")

  try:
    initialize_logging(settings)
    logger.info("Startup complete - logging verified.")
  except RuntimeError:
    # The service still runs with default stderr logging when the log directory is unwritable.
    logger.warning("Logging setup failed; continuing with default handlers.", exc_info=True)

  logger.info("Remote store DSN=%s local mirror=%s", _redact_dsn(settings.pg_dsn), settings.local_mirror_dir)
  if getattr(app.state, "services", None) is None:
    app.state.services = build_services(settings)

  yield

  services = app.state.services
  if services.orchestrator.pending_writes:
    logger.info("Waiting for %d background sync write(s)", services.orchestrator.pending_writes)
  await services.orchestrator.drain()
  await dispose_engine()


def _redact_dsn(raw: str | None) -> str:
  """Redact credentials from a DSN while keeping host/db visible."""
  if not raw:
    return "<unset>"

  parsed = urlparse(raw)
  if not parsed.scheme:
    return "<invalid>"

  user = parsed.username or ""
  host = parsed.hostname or ""
  port = f":{parsed.port}" if parsed.port else ""
  netloc = f"{user}@{host}{port}" if user else f"{host}{port}"
  database = parsed.path.lstrip("/")
  path = f"/{database}" if database else ""
  return f"{parsed.scheme}://{netloc}{path}"
