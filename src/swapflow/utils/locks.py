"""Per-session concurrency guards.

A session may have at most one swap pipeline in flight. Unlike a waiting
lock, the guard fails fast: a second caller is rejected, not queued.
"""

import asyncio
import logging
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)

# Global lock registry: session_id -> asyncio.Lock
_session_locks: dict[str, asyncio.Lock] = {}


class SessionBusyError(Exception):
    """Raised when the session already has an operation in flight."""

    def __init__(self, session_id: str, operation: str):
        self.session_id = session_id
        self.operation = operation
        super().__init__(f"Session {session_id} already has a {operation} in flight")


def get_session_lock(session_id: str) -> asyncio.Lock:
    """Get or create the lock for a session."""
    lock = _session_locks.get(session_id)
    if lock is None:
        lock = asyncio.Lock()
        _session_locks[session_id] = lock
    return lock


def is_session_busy(session_id: str) -> bool:
    lock = _session_locks.get(session_id)
    return lock is not None and lock.locked()


@asynccontextmanager
async def session_guard(session_id: str, operation: str = "operation"):
    """Hold the session lock for the duration of the block.

    Raises:
        SessionBusyError: If the lock is already held
    """
    lock = get_session_lock(session_id)
    if lock.locked():
        logger.info(f"Rejecting {operation} for session {session_id}: already in flight")
        raise SessionBusyError(session_id, operation)

    # Uncontended acquire completes without yielding, so no one can slip in
    await lock.acquire()
    logger.debug(f"Lock acquired for session {session_id}: {operation}")

    try:
        yield
    finally:
        lock.release()
        logger.debug(f"Lock released for session {session_id}: {operation}")


def clear_session_locks() -> None:
    """Clear all session locks (useful for testing)."""
    _session_locks.clear()
