import logging

from speaksync.cache.local_mirror import FileLocalMirror, LocalMirror
from speaksync.cache.remote_store import RemoteStore
from speaksync.config import Settings
from speaksync.storage.offline_remote_store import OfflineRemoteStore
from speaksync.storage.postgres_remote_store import PostgresRemoteStore

logger = logging.getLogger(__name__)


def _get_remote_store(settings: Settings) -> RemoteStore:
  """Return the active remote store."""

  # Without a DSN the service still works from the local mirror.
  if not settings.pg_dsn:
    logger.warning("SPEAKSYNC_PG_DSN is not set; remote persistence disabled.")
    return OfflineRemoteStore()

  return PostgresRemoteStore()


def _get_local_mirror(settings: Settings) -> LocalMirror:
  """Return the on-device mirror rooted at the configured directory."""

  return FileLocalMirror(settings.local_mirror_dir)
