from flask import session, jsonify, current_app
from spothub.auth import auth
from spothub.auth.models import StaffMember
from spothub.auth.decorators import current_staff, staff_required
from spothub.utils.payload import request_payload


@auth.route('/login', methods=['POST'])
def login():
    """Validate phone + password and start a staff session."""
    data     = request_payload()
    phone    = (data.get('phone') or '').strip()
    password = data.get('password') or ''

    if not phone or not password:
        return jsonify({'error': 'validation_error',
                        'message': 'Phone and password are required.'}), 400

    member = StaffMember.query.filter_by(phone=phone, is_active=True).first()
    if member is None or not member.check_password(password):
        # same message for unknown phone and bad password
        current_app.logger.warning(f"Failed staff login for phone: {phone}")
        return jsonify({'error': 'invalid_credentials',
                        'message': 'Invalid phone number or password.'}), 401

    session.clear()
    session['staff_id'] = member.id
    session.permanent   = True

    current_app.logger.info(f"Staff {member.phone} ({member.role.value}) logged in.")
    return jsonify(member.to_dict())


@auth.route('/logout', methods=['POST'])
def logout():
    session.clear()
    return jsonify({'message': 'You have been logged out.'})


@auth.route('/me')
@staff_required()
def me():
    return jsonify(current_staff().to_dict())
