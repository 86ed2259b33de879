"""Helpers for calls into the document and blob stores."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from cafe_sync.domain.errors import StorageError, SyncError

logger = logging.getLogger(__name__)


@contextmanager
def storage_errors(action: str) -> Iterator[None]:
    """Re-raise unexpected store failures as StorageError."""
    try:
        yield
    except SyncError:
        raise
    except Exception as exc:
        logger.exception("Storage call failed", extra={"action": action})
        raise StorageError(f"Failed to {action}: {exc}") from exc
