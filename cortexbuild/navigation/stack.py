"""
In-memory navigation stack.

Frames are ordered oldest first; the last frame is the one being rendered.
Every mutation goes through set_navigation(frames, mode), which either pushes
frames on top of the existing history or replaces the history outright.
"""

import enum
import logging
from typing import Any, Dict, Iterable, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

PROJECT_HOME = 'project-home'
GLOBAL_DASHBOARD = 'global-dashboard'
PLACEHOLDER_SCREEN = 'placeholder-tool'

KNOWN_SCREENS = frozenset({
    'global-dashboard', 'company-admin-dashboard', 'projects', 'project-home',
    'my-day', 'tasks', 'my-tasks', 'task-detail', 'new-task', 'daily-log',
    'photos', 'rfis', 'rfi-detail', 'new-rfi', 'punch-list',
    'punch-list-item-detail', 'new-punch-list-item', 'drawings', 'plans',
    'daywork-sheets', 'daywork-sheet-detail', 'new-daywork-sheet', 'documents',
    'delivery', 'drawing-comparison', 'accounting', 'ai-tools',
    'document-management', 'time-tracking', 'project-operations',
    'financial-management', 'business-development', 'ai-agents-marketplace',
    'developer-dashboard', 'automation-studio', 'developer-workspace',
    'developer-console', 'super-admin-dashboard', 'sdk-developer',
    'my-apps-desktop', 'marketplace', 'my-applications', 'admin-review',
    'developer-submissions', 'platform-admin', 'admin-control-panel',
    'ml-analytics', 'placeholder-tool',
})


class ProjectRef(BaseModel):
    """Project summary from the session's already-loaded project list"""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    location: Optional[str] = None


class NavigationFrame(BaseModel):
    model_config = ConfigDict(frozen=True)

    screen: str
    params: Dict[str, Any] = Field(default_factory=dict)
    project: Optional[ProjectRef] = None


class NavigationMode(str, enum.Enum):
    PUSH = "push"
    REPLACE = "replace"


def resolve_screen(screen: str, registry: Iterable[str] = KNOWN_SCREENS, fallback: str = PLACEHOLDER_SCREEN) -> str:
    """Return the view to render for a screen id, falling back to the placeholder for unknown ids."""
    if screen in registry:
        return screen
    logger.debug(f"resolve_screen: Unknown screen {screen}, using {fallback}")
    return fallback


class NavigationStack:
    def __init__(self, frames: Optional[Iterable[NavigationFrame]] = None):
        self._frames = list(frames or [])

    def __len__(self) -> int:
        return len(self._frames)

    @property
    def frames(self) -> Tuple[NavigationFrame, ...]:
        return tuple(self._frames)

    @property
    def current(self) -> Optional[NavigationFrame]:
        return self._frames[-1] if self._frames else None

    def set_navigation(self, frames: Iterable[NavigationFrame], mode: NavigationMode = NavigationMode.PUSH):
        frames = list(frames)
        if mode == NavigationMode.REPLACE:
            if not frames:
                # Only clear() may empty the stack
                logger.debug("set_navigation: Ignoring replace with no frames")
                return
            self._frames = frames
        else:
            self._frames.extend(frames)

    def navigate_to(self, screen: str, params: Optional[Dict[str, Any]] = None, project: Optional[ProjectRef] = None):
        """Push a frame. Screen ids are not validated here; see resolve_screen."""
        self.set_navigation([NavigationFrame(screen=screen, params=params or {}, project=project)])

    def navigate_to_module(self, screen: str, params: Optional[Dict[str, Any]] = None):
        """Switch top-level module: history is discarded."""
        self.set_navigation(
            [NavigationFrame(screen=screen, params=params or {})],
            NavigationMode.REPLACE,
        )

    def go_back(self):
        if len(self._frames) > 1:
            self._frames.pop()

    def go_home(self, current_project: Optional[ProjectRef] = None):
        """
        With a project bound, keep the first frame of the stack and put the
        project's home on top of it. Without one, reset to the global dashboard.
        """
        if current_project is None:
            self.navigate_to_module(GLOBAL_DASHBOARD)
            return

        home = NavigationFrame(screen=PROJECT_HOME, project=current_project)
        if not self._frames:
            self.set_navigation([home], NavigationMode.REPLACE)
            return
        self.set_navigation([self._frames[0], home], NavigationMode.REPLACE)

    def select_project(self, project: ProjectRef):
        self.set_navigation(
            [NavigationFrame(screen=PROJECT_HOME, project=project)],
            NavigationMode.REPLACE,
        )

    def clear(self):
        """Drop all frames. Only used when the session ends."""
        self._frames = []

    def to_list(self) -> list[dict]:
        return [frame.model_dump() for frame in self._frames]
