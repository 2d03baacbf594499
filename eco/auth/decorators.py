"""Decorators for views that need a session."""

from functools import wraps

from flask import flash, redirect, request, url_for

from .context import current_auth


def login_required(f=None, roles=None, neighborhood_required=False):
    """Redirect to the login page if the user is not logged in.

    Usage:
    @login_required
    def protected_view():
        ...

    @login_required(roles=("operator",))
    def operator_view():
        ...
    """

    def decorator(func):
        @wraps(func)
        def decorated_function(*args, **kwargs):
            auth_ctx = current_auth()
            if not auth_ctx.is_authenticated:
                return redirect(url_for("auth.login", next=request.path))
            if neighborhood_required and not auth_ctx.neighborhood_id:
                flash("Complete seu perfil com bairro para continuar.", "warning")
                return redirect(url_for("profile.view_profile"))
            if roles and auth_ctx.role not in roles:
                flash("Seu perfil não tem permissão para esta área.", "danger")
                return redirect(url_for("profile.view_profile"))
            return func(*args, **kwargs)

        return decorated_function

    if f:
        return decorator(f)
    return decorator
