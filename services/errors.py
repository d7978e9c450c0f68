"""Errors raised by the session store."""
from __future__ import annotations

NOT_FOUND_MESSAGE = "Interview session not found. Please check your link."
EXPIRED_MESSAGE = "This interview session has been completed and the link is no longer valid."


class SessionNotFoundError(KeyError):
    def __init__(self, session_id: str) -> None:
        super().__init__(session_id)
        self.session_id = session_id

    def __str__(self) -> str:
        return NOT_FOUND_MESSAGE


class SessionExpiredError(RuntimeError):
    def __init__(self, session_id: str) -> None:
        super().__init__(EXPIRED_MESSAGE)
        self.session_id = session_id


__all__ = [
    "EXPIRED_MESSAGE",
    "NOT_FOUND_MESSAGE",
    "SessionExpiredError",
    "SessionNotFoundError",
]
