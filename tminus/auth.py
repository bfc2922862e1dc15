"""
tminus/auth.py

Authenticated identity and change notification.

AuthState holds the current owner id and notifies listeners when it
changes. PollingAuthWatcher is a fallback for identity sources that cannot
push changes: it polls a getter and feeds AuthState.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

AuthListener = Callable[[Optional[str]], Awaitable[None]]

logger = logging.getLogger(__name__)


class AuthState:
    """
    Current authenticated owner.

    Args:
        user_id: Initially signed-in owner id, or None.
    """

    def __init__(self, user_id: Optional[str] = None):
        self._user_id = user_id or None
        self._listeners: List[AuthListener] = []

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def is_authenticated(self) -> bool:
        return self._user_id is not None

    def add_listener(self, listener: AuthListener) -> Callable[[], None]:
        """
        Register an async callback awaited with the new owner id on change.

        Returns:
            Function that removes the listener.
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def set_user(self, user_id: Optional[str]) -> None:
        """Change the owner id, notifying listeners if it differs."""
        user_id = user_id or None
        if user_id == self._user_id:
            return

        previous, self._user_id = self._user_id, user_id
        logger.info(f"Auth identity changed: {previous} -> {user_id}")
        for listener in list(self._listeners):
            try:
                await listener(user_id)
            except Exception as e:
                logger.exception(f"Error in auth listener: {e}")

    async def sign_out(self) -> None:
        await self.set_user(None)


class PollingAuthWatcher:
    """
    Polls an identity getter and pushes changes into an AuthState.

    Args:
        auth: AuthState to update.
        get_user_id: Returns the current owner id, or None.
        interval: Seconds between polls (default: 1).
    """

    def __init__(
        self,
        auth: AuthState,
        get_user_id: Callable[[], Optional[str]],
        interval: float = 1.0
    ):
        self.auth = auth
        self.get_user_id = get_user_id
        self.interval = interval
        self.running = False
        self._task: Optional[asyncio.Task] = None
        self.logger = logging.getLogger(f"{__name__}.watcher")

    async def start(self) -> None:
        if self.running:
            return
        self.running = True
        self._task = asyncio.create_task(self._poll_loop())

    async def stop(self) -> None:
        if not self.running:
            return
        self.running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _poll_loop(self) -> None:
        while self.running:
            try:
                await self.auth.set_user(self.get_user_id())
                await asyncio.sleep(self.interval)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.logger.exception(f"Error polling auth identity: {e}")
                await asyncio.sleep(self.interval)
