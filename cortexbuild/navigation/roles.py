from cortexbuild.navigation.stack import GLOBAL_DASHBOARD

DEFAULT_SCREENS = {
    'developer': 'developer-dashboard',
    'super_admin': 'super-admin-dashboard',
}

# Dashboard rendering is a second, finer switch on role than landing-screen routing
DASHBOARDS = {
    'company_admin': 'company-admin-dashboard',
    'project_manager': 'project-manager-dashboard',
    'supervisor': 'supervisor-dashboard',
    'foreman': 'supervisor-dashboard',
    'operative': 'operative-dashboard',
    'developer': 'developer-dashboard',
    'super_admin': 'super-admin-dashboard',
}
DEFAULT_DASHBOARD = 'unified-dashboard'


def default_screen_for(role: str) -> str:
    """Landing screen after login or session restore"""
    return DEFAULT_SCREENS.get(role, GLOBAL_DASHBOARD)


def dashboard_for(role: str) -> str:
    return DASHBOARDS.get(role, DEFAULT_DASHBOARD)
