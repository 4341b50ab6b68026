import logging

from django.contrib.auth import authenticate, login, logout, update_session_auth_hash
from django.db.models import Q
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.cache import never_cache
from django.views.decorators.csrf import ensure_csrf_cookie
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from apps.core.utils import request_data
from .decorators import admin_required, api_login_required
from .forms import LoginForm, PasswordChangeForm, UserForm
from .models import User

logger = logging.getLogger(__name__)


def _bad_json():
    return JsonResponse({'success': False, 'error': 'Invalid JSON format'}, status=400)


def _form_errors(form):
    return JsonResponse({'success': False, 'errors': form.errors}, status=400)


# AUTHENTICATION VIEWS
@never_cache
@ensure_csrf_cookie
@require_http_methods(['GET', 'POST'])
def login_view(request):
    if request.method == 'GET':
        if request.user.is_authenticated:
            return JsonResponse({'success': True, 'user': request.user.to_session_dict()})
        return JsonResponse({'success': False, 'error': 'Authentication required'}, status=401)

    try:
        data = request_data(request)
    except ValueError:
        return _bad_json()

    form = LoginForm(data)
    if not form.is_valid():
        return _form_errors(form)

    email = form.cleaned_data['email']
    password = form.cleaned_data['password']

    user = User.objects.filter(email__iexact=email).first()
    if user is not None and user.check_password(password) and not user.is_active:
        logger.warning(f"Login refused for inactive user {email}")
        return JsonResponse({
            'success': False,
            'error': 'Your account is inactive. Please contact the administrator.'
        }, status=403)

    user = authenticate(request, email=email, password=password)
    if user is None:
        logger.warning(f"Failed login attempt for {email}")
        return JsonResponse({'success': False, 'error': 'Invalid email or password'}, status=400)

    if not user.is_admin():
        if user.environment is None:
            logger.error(f"User {email} (role {user.role}) has no environment")
            return JsonResponse({
                'success': False,
                'error': 'Your account is not linked to an environment. Please contact the administrator.'
            }, status=403)
        if not user.environment.is_active:
            return JsonResponse({'success': False, 'error': 'Your environment is inactive.'}, status=403)

    login(request, user)
    logger.info(f"User logged in: {user.email}")

    return JsonResponse({'success': True, 'user': user.to_session_dict()})


@require_POST
def logout_view(request):
    if request.user.is_authenticated:
        logger.info(f"User logged out: {request.user.email}")
    logout(request)
    return JsonResponse({'success': True})


@require_GET
@ensure_csrf_cookie
@api_login_required
def me_view(request):
    return JsonResponse({'success': True, 'user': request.user.to_session_dict()})


@require_POST
@api_login_required
def password_change_view(request):
    try:
        data = request_data(request)
    except ValueError:
        return _bad_json()

    form = PasswordChangeForm(request.user, data)
    if not form.is_valid():
        return _form_errors(form)

    user = form.save()
    # Keep the user logged in after the password hash changes
    update_session_auth_hash(request, user)
    logger.info(f"Password changed for {user.email}")

    return JsonResponse({'success': True, 'message': 'Password changed successfully'})


# USER MANAGEMENT VIEWS (Admin only)
@require_GET
@admin_required
def user_list_view(request):
    users = User.objects.select_related('environment')

    environment_id = request.GET.get('environment')
    if environment_id:
        users = users.filter(environment_id=environment_id)

    search_query = request.GET.get('search', '').strip()
    if search_query:
        users = users.filter(Q(name__icontains=search_query) | Q(email__icontains=search_query))

    return JsonResponse({
        'success': True,
        'users': [dict(user.to_session_dict(), is_active=user.is_active) for user in users],
    })


@require_POST
@admin_required
def user_create_view(request):
    try:
        data = request_data(request)
    except ValueError:
        return _bad_json()

    form = UserForm(data)
    if not form.is_valid():
        return _form_errors(form)

    user = form.save()
    logger.info(f"User created: {user.email} ({user.role}) by {request.user.email}")

    return JsonResponse({'success': True, 'user': user.to_session_dict()}, status=201)


@require_POST
@admin_required
def user_edit_view(request, pk):
    user = get_object_or_404(User, pk=pk)

    if user.is_admin():
        return JsonResponse({'success': False, 'error': 'Administrator accounts cannot be edited here'}, status=400)

    try:
        data = request_data(request)
    except ValueError:
        return _bad_json()

    form = UserForm(data, instance=user)
    if not form.is_valid():
        return _form_errors(form)

    user = form.save()
    logger.info(f"User updated: {user.email} by {request.user.email}")

    return JsonResponse({'success': True, 'user': user.to_session_dict()})


@require_POST
@admin_required
def toggle_user_status(request, pk):
    user = get_object_or_404(User, pk=pk)

    if user == request.user:
        return JsonResponse({'success': False, 'error': 'You cannot deactivate your own account'}, status=400)

    user.is_active = not user.is_active
    user.save(update_fields=['is_active', 'updated_at'])

    return JsonResponse({'success': True, 'is_active': user.is_active})


@require_POST
@admin_required
def user_delete_view(request, pk):
    user = get_object_or_404(User, pk=pk)

    if user == request.user:
        return JsonResponse({'success': False, 'error': 'You cannot delete your own account'}, status=400)

    email = user.email
    user.delete()
    logger.info(f"User deleted: {email} by {request.user.email}")

    return JsonResponse({'success': True})
