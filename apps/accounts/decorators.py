# Decorators in this file:
# 1. api_login_required - Anonymous requests get a JSON 401
# 2. admin_required - Only global administrators
# 3. role_required - Only the listed roles (admins always pass)
# 4. environment_required - Request must resolve to an environment
# 5. Area shortcuts - projects / crm / dashboard / settings
#
# Every decorator answers with JSON; the client application renders
# the error.
# ==============================================================================

from functools import wraps

from django.http import JsonResponse

from apps.accounts.models import User
from apps.core.utils import get_request_workspace


def _unauthenticated():
    return JsonResponse({
        'success': False,
        'error': 'Authentication required'
    }, status=401)


def _forbidden(message):
    return JsonResponse({
        'success': False,
        'error': message
    }, status=403)


def api_login_required(view_func):
    """
    Decorator: User must be logged in

    Unlike django's login_required this never redirects; anonymous
    requests receive a 401 JSON response.
    """

    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return _unauthenticated()
        return view_func(request, *args, **kwargs)

    return wrapper


# ROLE-BASED DECORATORS
def admin_required(view_func):
    """
    Decorator: Only global administrators can access this view

    Checks:
    1. User is authenticated
    2. User role is 'admin' OR is superuser
    """

    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return _unauthenticated()

        if request.user.is_admin():
            return view_func(request, *args, **kwargs)

        return _forbidden('Admin access required')

    return wrapper


def role_required(*allowed_roles):
    """
    Decorator: Only specific roles can access

    Administrators are allowed everywhere.

    Usage:
        @role_required('manager', 'owner')
        def dashboard_view(request):
            ...
    """

    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            if not request.user.is_authenticated:
                return _unauthenticated()

            if request.user.has_role(*allowed_roles):
                return view_func(request, *args, **kwargs)

            return _forbidden('You do not have permission to access this area.')

        return wrapper

    return decorator


projects_access_required = role_required(*User.PROJECTS_ROLES)
crm_access_required = role_required(*User.CRM_ROLES)
dashboard_access_required = role_required(*User.DASHBOARD_ROLES)
settings_access_required = role_required(*User.SETTINGS_ROLES)


# ENVIRONMENT-BASED DECORATORS
def environment_required(view_func):
    """
    Decorator: Request must resolve to an environment

    Regular users work in their own environment; administrators in the
    environment selected in their session. On success the view receives
    request.environment and request.workspace.

    Example flow:
    Admin without a selected environment opens /projects/
    → get_request_workspace() returns None
    → 403 "Select an environment first"
    """

    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return _unauthenticated()

        workspace = get_request_workspace(request)
        if workspace is None:
            if request.user.is_admin():
                return _forbidden('Select an environment first.')
            return _forbidden('You must be assigned to an environment to access this page.')

        if not workspace.environment.is_active and not request.user.is_admin():
            return _forbidden('This environment is inactive.')

        request.environment = workspace.environment
        request.workspace = workspace
        return view_func(request, *args, **kwargs)

    return wrapper
