"""
Tests for the navigation stack
"""

import itertools

import pytest

from cortexbuild.navigation.stack import (GLOBAL_DASHBOARD, PLACEHOLDER_SCREEN,
                                          PROJECT_HOME, NavigationFrame,
                                          NavigationMode, NavigationStack,
                                          ProjectRef, resolve_screen)


@pytest.fixture
def project():
    return ProjectRef(id="p1", name="Riverside Tower", location="Leeds")


def screens(stack):
    return [frame.screen for frame in stack.frames]


class TestSetNavigation:
    def test_push_appends_on_top(self):
        stack = NavigationStack([NavigationFrame(screen="projects")])
        stack.set_navigation([NavigationFrame(screen="tasks"), NavigationFrame(screen="task-detail")])

        assert screens(stack) == ["projects", "tasks", "task-detail"]
        assert stack.current.screen == "task-detail"

    def test_replace_discards_history(self):
        stack = NavigationStack([NavigationFrame(screen="projects"), NavigationFrame(screen="tasks")])
        stack.set_navigation([NavigationFrame(screen="rfis")], NavigationMode.REPLACE)

        assert screens(stack) == ["rfis"]

    def test_empty_stack_has_no_current(self):
        assert NavigationStack().current is None
        assert len(NavigationStack()) == 0


class TestNavigateTo:
    def test_navigate_to_pushes_with_params_and_project(self, project):
        stack = NavigationStack()
        stack.navigate_to("global-dashboard")
        stack.navigate_to("task-detail", {"taskId": "t9"}, project)

        assert len(stack) == 2
        assert stack.current.params == {"taskId": "t9"}
        assert stack.current.project == project

    def test_navigate_to_accepts_unknown_screen(self):
        stack = NavigationStack()
        stack.navigate_to("not-a-real-screen")

        assert stack.current.screen == "not-a-real-screen"

    def test_navigate_to_module_resets_history(self):
        stack = NavigationStack()
        stack.navigate_to("projects")
        stack.navigate_to("tasks")
        stack.navigate_to_module("accounting", {"tab": "invoices"})

        assert screens(stack) == ["accounting"]
        assert stack.current.params == {"tab": "invoices"}
        assert stack.current.project is None


class TestGoBack:
    def test_go_back_pops_top_frame(self):
        stack = NavigationStack()
        stack.navigate_to("projects")
        stack.navigate_to("tasks")
        stack.go_back()

        assert screens(stack) == ["projects"]

    def test_go_back_never_empties_stack(self):
        stack = NavigationStack()
        stack.navigate_to("projects")
        stack.go_back()
        stack.go_back()

        assert screens(stack) == ["projects"]

    def test_go_back_on_empty_stack_is_noop(self):
        stack = NavigationStack()
        stack.go_back()

        assert len(stack) == 0


class TestGoHome:
    def test_go_home_with_project_keeps_first_frame(self, project):
        stack = NavigationStack()
        stack.navigate_to("global-dashboard")
        stack.navigate_to("projects")
        stack.navigate_to("tasks", project=project)
        stack.go_home(project)

        assert screens(stack) == ["global-dashboard", PROJECT_HOME]
        assert stack.current.project == project

    def test_go_home_with_project_on_empty_stack(self, project):
        stack = NavigationStack()
        stack.go_home(project)

        assert screens(stack) == [PROJECT_HOME]

    def test_go_home_without_project_resets_to_global_dashboard(self):
        stack = NavigationStack()
        stack.navigate_to("projects")
        stack.navigate_to("tasks")
        stack.go_home(None)

        assert screens(stack) == [GLOBAL_DASHBOARD]


class TestSelectProject:
    def test_select_project_replaces_stack_with_project_home(self, project):
        stack = NavigationStack()
        stack.navigate_to("projects")
        stack.navigate_to("photos")
        stack.select_project(project)

        assert len(stack) == 1
        assert stack.current == NavigationFrame(screen=PROJECT_HOME, project=project)


class TestResolveScreen:
    def test_known_screen_resolves_to_itself(self):
        assert resolve_screen("daily-log") == "daily-log"

    def test_unknown_screen_falls_back_to_placeholder(self):
        assert resolve_screen("quantum-planner") == PLACEHOLDER_SCREEN

    def test_custom_registry_and_fallback(self):
        assert resolve_screen("a", registry={"a"}, fallback="b") == "a"
        assert resolve_screen("c", registry={"a"}, fallback="b") == "b"


def test_clear_and_to_list(project):
    stack = NavigationStack()
    stack.navigate_to("tasks", {"filter": "open"}, project)

    assert stack.to_list() == [{
        "screen": "tasks",
        "params": {"filter": "open"},
        "project": {"id": "p1", "name": "Riverside Tower", "location": "Leeds"},
    }]

    stack.clear()
    assert stack.to_list() == []


def test_replace_with_no_frames_keeps_stack():
    stack = NavigationStack()
    stack.navigate_to_module("global-dashboard")
    stack.set_navigation([], NavigationMode.REPLACE)

    assert screens(stack) == ["global-dashboard"]


@pytest.mark.parametrize("moves", list(itertools.product(["push", "back"], repeat=6)))
def test_push_and_back_never_empty_routed_stack(moves):
    stack = NavigationStack()
    stack.navigate_to_module("global-dashboard")

    for i, move in enumerate(moves):
        if move == "push":
            stack.navigate_to(f"screen-{i}")
        else:
            stack.go_back()
        assert len(stack) >= 1

    assert stack.frames[0].screen == "global-dashboard"
