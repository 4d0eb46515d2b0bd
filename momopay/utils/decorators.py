"""
Custom Decorators
Role checks and timing helpers for API endpoints
"""

import time
import uuid
from functools import wraps

from flask_jwt_extended import verify_jwt_in_request, get_jwt_identity

from momopay.errors import Forbidden
from momopay.extensions import db
from momopay.models import AppUser


def privileged_required(f):
    """
    Require the JWT user to be an ADMIN or MODERATOR

    Usage:
        @privileged_required
        def my_endpoint():
            return "Success"
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        verify_jwt_in_request()

        try:
            user = db.session.get(AppUser, uuid.UUID(str(get_jwt_identity())))
        except (TypeError, ValueError):
            user = None

        if not user or not user.is_privileged:
            raise Forbidden('This endpoint requires admin or moderator privileges')

        return f(*args, **kwargs)

    return decorated_function


def log_execution_time(f):
    """
    Log execution time of a function

    Usage:
        @log_execution_time
        def my_function():
            return "Success"
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        from momopay.utils.logger import get_logger
        logger = get_logger(__name__)

        start_time = time.time()
        result = f(*args, **kwargs)
        end_time = time.time()

        execution_time = end_time - start_time
        logger.info(f'{f.__name__} executed in {execution_time:.4f} seconds')

        return result

    return decorated_function
