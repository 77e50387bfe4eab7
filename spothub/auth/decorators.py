"""
spothub/auth/decorators.py
--------------------------
Route protection for staff endpoints.

Usage:
    from spothub.auth.decorators import staff_required, current_staff

    @pos.route('/orders', methods=['POST'])
    @staff_required(*POS_ROLES)
    def create():
        staff = current_staff()
        ...

The Flask session holds only the staff id. Role and active flag are
re-read from the database on every request.
"""
from functools import wraps
from flask import session, jsonify

from spothub import db
from spothub.auth.models import StaffMember, RoleEnum


def current_staff():
    """The logged-in, active StaffMember for this request, or None."""
    staff_id = session.get('staff_id')
    member = db.session.get(StaffMember, staff_id) if staff_id else None
    if member is None or not member.is_active:
        return None
    return member


def staff_required(*roles):
    """
    401 when nobody is logged in; 403 when the staff member's role
    is not one of `roles` (any active staff member if none given).
    """
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            member = current_staff()
            if member is None:
                return jsonify({'error': 'unauthenticated',
                                'message': 'Please log in to access this page.'}), 401
            if roles and member.role not in roles:
                return jsonify({'error': 'forbidden', 'message': 'Access denied.'}), 403
            return f(*args, **kwargs)
        return decorated
    return decorator


def admin_required(f):
    return staff_required(RoleEnum.admin)(f)
