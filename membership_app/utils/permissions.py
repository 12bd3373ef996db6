# membership_app/utils/permissions.py

from functools import wraps
from http import HTTPStatus

from flask import current_app, jsonify
from flask_login import current_user


def admin_required(f):
    """
    Decorator requiring an authenticated, active operator with ``is_admin`` set.

    Unauthenticated requests go through the login manager's ``unauthorized``
    handler; authenticated non-admins get a JSON 403.
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return current_app.login_manager.unauthorized()
        if not current_user.is_admin:
            current_app.logger.warning(
                "Non-admin user attempted admin action",
                extra={"user_id": current_user.id},
            )
            return jsonify({"error": "Administrator access required."}), HTTPStatus.FORBIDDEN
        return f(*args, **kwargs)

    return decorated_function
