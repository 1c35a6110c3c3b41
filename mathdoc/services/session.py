"""Current-user state passed explicitly to components that need it.

Observers register with ``subscribe`` and get back an unsubscribe
callable; nothing listens through module-level globals.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from pydantic import BaseModel

from mathdoc.core.logging_utils import sanitize_owner_id

logger = logging.getLogger(__name__)


class UserProfile(BaseModel):
    uid: str


SessionListener = Callable[[Optional[UserProfile]], None]


class NotSignedInError(Exception):
    """Raised when an operation needs a user and none is signed in."""


class SessionContext:
    def __init__(self, user: Optional[UserProfile] = None):
        self._user = user
        self._listeners: list[SessionListener] = []

    @property
    def user(self) -> Optional[UserProfile]:
        return self._user

    def set_user(self, user: Optional[UserProfile]) -> None:
        self._user = user
        logger.debug(
            "Session user changed",
            extra={"owner_id": sanitize_owner_id(user.uid if user else None)},
        )
        for listener in list(self._listeners):
            listener(user)

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def require_owner_id(self) -> str:
        if self._user is None:
            raise NotSignedInError("User not authenticated")
        return self._user.uid
