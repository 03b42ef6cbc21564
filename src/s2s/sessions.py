"""Per-user session scopes.

Every tracking operation runs inside a ``UserSession``. Signing out cancels
the session's in-flight tasks and closes the scope; writers call
``ensure_active()`` immediately before each write, so nothing lands in the
store after sign-out.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Coroutine
from typing import Any, TypeVar

import structlog

from s2s.errors import NotAuthenticated

logger = structlog.get_logger()

T = TypeVar("T")


class UserSession:
    """Cancellation scope for one signed-in user."""

    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        self._active = True
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def active(self) -> bool:
        return self._active

    def ensure_active(self) -> None:
        """Raise NotAuthenticated if the session has been signed out."""
        if not self._active:
            msg = "Session has been signed out"
            raise NotAuthenticated(msg)

    def spawn(self, coro: Coroutine[Any, Any, T]) -> asyncio.Task[T]:
        """Start ``coro`` as a task owned by this session."""
        if not self._active:
            coro.close()
            msg = "Session has been signed out"
            raise NotAuthenticated(msg)
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def run(self, coro: Coroutine[Any, Any, T]) -> T:
        """Run ``coro`` as an owned task and wait for it.

        A task cancelled by ``sign_out`` surfaces as NotAuthenticated.
        """
        task = self.spawn(coro)
        try:
            return await task
        except asyncio.CancelledError:
            if task.cancelled() and not self._active:
                msg = "Session has been signed out"
                raise NotAuthenticated(msg) from None
            raise

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def sign_out(self) -> None:
        """Close the scope and cancel every in-flight task."""
        if not self._active:
            return
        self._active = False
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("session_signed_out", user_id=self.user_id, cancelled=len(tasks))


class SessionRegistry:
    """Tracks open sessions per user so a sign-out reaches all of them."""

    def __init__(self) -> None:
        self._sessions: dict[str, set[UserSession]] = defaultdict(set)

    def open(self, user_id: str) -> UserSession:
        session = UserSession(user_id)
        self._sessions[user_id].add(session)
        return session

    def release(self, session: UserSession) -> None:
        sessions = self._sessions.get(session.user_id)
        if sessions is None:
            return
        sessions.discard(session)
        if not sessions:
            del self._sessions[session.user_id]

    def open_count(self, user_id: str) -> int:
        return len(self._sessions.get(user_id, ()))

    async def sign_out(self, user_id: str) -> int:
        """Sign out every open session of ``user_id``; returns how many."""
        sessions = list(self._sessions.pop(user_id, ()))
        for session in sessions:
            await session.sign_out()
        return len(sessions)


_registry: SessionRegistry | None = None


def get_session_registry() -> SessionRegistry:
    global _registry  # noqa: PLW0603
    if _registry is None:
        _registry = SessionRegistry()
    return _registry
