"""Utility modules for swapflow."""

from swapflow.utils.locks import SessionBusyError, get_session_lock, session_guard

__all__ = ["SessionBusyError", "get_session_lock", "session_guard"]
