"""
Session lifecycle driving the one-time initial navigation.

The role's landing screen is seeded only on the transition into ROUTED, so
repeated login/restore notifications for an already routed user never reset
the user's history.
"""

import enum
import logging
from typing import Optional

from pydantic import BaseModel

from cortexbuild.navigation.roles import default_screen_for
from cortexbuild.navigation.stack import NavigationStack

logger = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    SESSION_RESTORING = "session_restoring"
    ROUTED = "routed"


class SessionUser(BaseModel):
    id: str
    role: str
    company_id: str = ""


class InvalidSessionTransition(ValueError):
    pass


class SessionLifecycle:
    def __init__(self, stack: Optional[NavigationStack] = None):
        self.stack = stack if stack is not None else NavigationStack()
        self.state = SessionState.UNAUTHENTICATED
        self.user: Optional[SessionUser] = None

    def begin_restore(self):
        if self.state != SessionState.UNAUTHENTICATED:
            raise InvalidSessionTransition(f"Cannot restore session from {self.state.value}")
        self.state = SessionState.SESSION_RESTORING

    def restore_failed(self):
        if self.state != SessionState.SESSION_RESTORING:
            raise InvalidSessionTransition(f"No session restore in progress ({self.state.value})")
        self.state = SessionState.UNAUTHENTICATED

    def restored(self, user: SessionUser):
        if self.state != SessionState.SESSION_RESTORING and not self._same_routed_user(user):
            raise InvalidSessionTransition(f"Cannot complete restore from {self.state.value}")
        self._route(user)

    def login(self, user: SessionUser):
        if self.state == SessionState.ROUTED and not self._same_routed_user(user):
            raise InvalidSessionTransition("Log out before logging in as another user")
        self._route(user)

    def logout(self):
        logger.info(f"logout: user: {self.user.id if self.user else None}")
        self.state = SessionState.UNAUTHENTICATED
        self.user = None
        self.stack.clear()

    def on_hash_dashboard(self):
        """The '#dashboard' URL hash sends a routed user back to their landing screen."""
        if self.state != SessionState.ROUTED:
            return
        self.stack.navigate_to_module(default_screen_for(self.user.role))

    def _same_routed_user(self, user: SessionUser) -> bool:
        return self.state == SessionState.ROUTED and self.user is not None and self.user.id == user.id

    def _route(self, user: SessionUser):
        if self.state == SessionState.ROUTED:
            self.user = user
            return

        self.state = SessionState.ROUTED
        self.user = user
        if len(self.stack) == 0:
            screen = default_screen_for(user.role)
            self.stack.navigate_to_module(screen)
            logger.info(f"_route: Initial navigation - user: {user.id}, role: {user.role}, screen: {screen}")
