"""
Tests for deep link resolution
"""

import pytest

from cortexbuild.navigation.deep_link import DeepLinkResolver
from cortexbuild.navigation.stack import (PROJECT_HOME, NavigationStack,
                                          ProjectRef)


@pytest.fixture
def projects():
    return [ProjectRef(id="p1", name="Riverside Tower"), ProjectRef(id="p2", name="Canal Wharf")]


@pytest.fixture
def resolver():
    return DeepLinkResolver()


def test_project_link_builds_home_then_target(resolver, projects):
    stack = NavigationStack()
    stack.navigate_to("global-dashboard")
    stack.navigate_to("notifications")

    assert resolver.resolve(stack, "p2", "rfi-detail", {"rfiId": "r7"}, projects) is True

    assert [frame.screen for frame in stack.frames] == [PROJECT_HOME, "rfi-detail"]
    assert all(frame.project.id == "p2" for frame in stack.frames)
    assert stack.current.params == {"rfiId": "r7"}


def test_back_from_deep_link_lands_on_project_home(resolver, projects):
    stack = NavigationStack()
    resolver.resolve(stack, "p1", "task-detail", {"taskId": "t1"}, projects)
    stack.go_back()

    assert stack.current.screen == PROJECT_HOME
    assert stack.current.project.id == "p1"


def test_unknown_project_leaves_stack_untouched(resolver, projects):
    stack = NavigationStack()
    stack.navigate_to("projects")
    before = stack.frames

    assert resolver.resolve(stack, "missing", "task-detail", {}, projects) is False
    assert stack.frames == before


def test_link_without_project_pushes_screen(resolver, projects):
    stack = NavigationStack()
    stack.navigate_to("global-dashboard")

    assert resolver.resolve(stack, None, "marketplace", None, projects) is True

    assert [frame.screen for frame in stack.frames] == ["global-dashboard", "marketplace"]
    assert stack.current.params == {}
    assert stack.current.project is None


def test_empty_project_id_pushes_screen(resolver, projects):
    stack = NavigationStack()
    stack.navigate_to("global-dashboard")

    assert resolver.resolve(stack, "", "marketplace", {}, projects) is True

    assert [frame.screen for frame in stack.frames] == ["global-dashboard", "marketplace"]
