from functools import wraps
from flask import abort
from flask_login import login_required, current_user


def admin_required(view_func):
    """
    Requires:
      - user is logged in
      - user.role is Admin or Super Admin
    Returns 403 otherwise.
    """
    @wraps(view_func)
    @login_required
    def wrapper(*args, **kwargs):
        if not getattr(current_user, "is_admin", False):
            abort(403, description="Not authorized as an admin")
        return view_func(*args, **kwargs)

    return wrapper


def super_admin_required(view_func):
    @wraps(view_func)
    @login_required
    def wrapper(*args, **kwargs):
        if not getattr(current_user, "is_super_admin", False):
            abort(403, description="Not authorized as a super admin")
        return view_func(*args, **kwargs)

    return wrapper
