'''
Where each role lands after login, and where an incomplete profile is sent.
'''
from ..database.db_enums import UserRole

LOGIN_PATH = "/login"

DASHBOARD_PATHS = {
    UserRole.PARENT.value: "/parents/dashboard",
    UserRole.TEACHER.value: "/teachers/dashboard",
    UserRole.CLIENT.value: "/clients/dashboard",
    UserRole.ADMIN.value: "/admin/dashboard",
}

PROFILE_SETUP_PATHS = {
    UserRole.PARENT.value: "/parents/profile-setup",
    UserRole.TEACHER.value: "/teachers/profile-setup",
    UserRole.CLIENT.value: "/clients/profile-setup",
}


def dashboard_path(role: str) -> str:
    return DASHBOARD_PATHS.get(role, "/")


def profile_setup_path(role: str) -> str:
    # Admins have no profile to set up
    return PROFILE_SETUP_PATHS.get(role, dashboard_path(role))


def redirect_path_for(role: str, profile_completed: bool) -> str:
    """The page a user should be sent to right after logging in."""
    if not profile_completed:
        return profile_setup_path(role)
    return dashboard_path(role)
