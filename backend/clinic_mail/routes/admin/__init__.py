"""
Admin API routes.
"""
import hmac
import logging
import os
from functools import wraps
from flask import Blueprint, jsonify, request

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__)


def admin_required(f):
    """Require the X-API-Key header to match ADMIN_API_KEY when one is configured."""
    @wraps(f)
    def wrapper(*args, **kwargs):
        expected = os.getenv('ADMIN_API_KEY')
        if expected:
            supplied = request.headers.get('X-API-Key', '')
            if not hmac.compare_digest(supplied.encode(), expected.encode()):
                logger.warning("Rejected admin request to %s: bad API key", request.path)
                return jsonify({'success': False, 'error': 'Admin access required'}), 403
        return f(*args, **kwargs)
    return wrapper


# Import submodules to register routes on admin_bp
from . import email_templates  # noqa: E402, F401
from . import email_logs       # noqa: E402, F401
