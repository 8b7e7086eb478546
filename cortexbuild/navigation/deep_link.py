import logging
from typing import Any, Dict, Iterable, Optional

from cortexbuild.navigation.stack import (PROJECT_HOME, NavigationFrame,
                                          NavigationMode, NavigationStack,
                                          ProjectRef)

logger = logging.getLogger(__name__)


class DeepLinkResolver:
    """Opens a screen inside a project's context so that going back lands on the project home."""

    def resolve(
        self,
        stack: NavigationStack,
        project_id: Optional[str],
        screen: str,
        params: Optional[Dict[str, Any]],
        known_projects: Iterable[ProjectRef],
    ) -> bool:
        """
        Apply a deep link to the stack.

        Returns False only when project_id is set but absent from
        known_projects; the stack is left untouched in that case.
        """
        params = params or {}

        if not project_id:
            stack.navigate_to(screen, params)
            return True

        project = next((p for p in known_projects if p.id == project_id), None)
        if project is None:
            logger.debug(f"resolve: Project not loaded, ignoring deep link - project: {project_id}, screen: {screen}")
            return False

        stack.set_navigation(
            [
                NavigationFrame(screen=PROJECT_HOME, project=project),
                NavigationFrame(screen=screen, params=params, project=project),
            ],
            NavigationMode.REPLACE,
        )
        return True
