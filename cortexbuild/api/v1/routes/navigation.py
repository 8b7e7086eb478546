import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from cortexbuild.core.middleware import get_current_user
from cortexbuild.navigation.deep_link import DeepLinkResolver
from cortexbuild.navigation.roles import dashboard_for, default_screen_for
from cortexbuild.navigation.stack import (NavigationFrame, NavigationStack,
                                          ProjectRef, resolve_screen)

logger = logging.getLogger(__name__)

router = APIRouter()


class DeepLinkRequest(BaseModel):
    """The client's current stack and its already-loaded projects; nothing is fetched server-side."""
    stack: List[NavigationFrame] = Field(default_factory=list)
    project_id: Optional[str] = None
    screen: str
    params: Dict[str, Any] = Field(default_factory=dict)
    projects: List[ProjectRef] = Field(default_factory=list)


@router.get("/bootstrap")
async def bootstrap_navigation(current_user: dict = Depends(get_current_user)):
    """Initial frame and dashboard for the caller's role, used on login and session restore"""
    role = current_user['role']
    logger.info(f"bootstrap_navigation: Entry - user: {current_user['uid']}, role: {role}")

    stack = NavigationStack()
    stack.navigate_to_module(default_screen_for(role))
    return {
        "role": role,
        "stack": stack.to_list(),
        "dashboard": dashboard_for(role)
    }


@router.post("/deep-link")
async def resolve_deep_link(
    request: DeepLinkRequest,
    current_user: dict = Depends(get_current_user)
):
    """
    Apply a deep link to the supplied stack and return the new stack.
    An unknown project_id leaves the stack unchanged (resolved = false).
    """
    logger.info(f"resolve_deep_link: Entry - user: {current_user['uid']}, project: {request.project_id}, screen: {request.screen}")

    stack = NavigationStack(request.stack)
    resolved = DeepLinkResolver().resolve(
        stack, request.project_id, request.screen, request.params, request.projects
    )
    current = stack.current
    return {
        "resolved": resolved,
        "stack": stack.to_list(),
        "view": resolve_screen(current.screen) if current else None
    }
