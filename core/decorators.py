import logging
from functools import wraps

from django.db import DatabaseError
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from .exceptions import AuthenticationRequiredError, ReservationSystemError
from .responses import api_error

logger = logging.getLogger(__name__)


def api_view(methods):
    """Restrict a JSON view to ``methods`` and render raised errors into the response envelope.

    API views are exempt from CSRF checks; session cookies are SameSite=Lax so
    cross-site form posts do not carry them.
    """

    def decorator(view_func):
        @csrf_exempt
        @wraps(view_func)
        @require_http_methods(methods)
        def wrapper(request, *args, **kwargs):
            try:
                return view_func(request, *args, **kwargs)
            except ReservationSystemError as e:
                logger.info(
                    f"{request.method} {request.path} rejected with "
                    f"{type(e).__name__} ({e.status_code}): {e.message}"
                )
                return api_error(e.message, status=e.status_code, errors=e.errors)
            except DatabaseError as e:
                logger.error(f"Database error in {view_func.__name__}: {e}", exc_info=True)
                return api_error('The service is temporarily unavailable.', status=503)
            except Exception as e:
                logger.error(
                    f"Unhandled error in {view_func.__name__} for {request.method} {request.path}: {e}",
                    exc_info=True,
                )
                return api_error('An unexpected error occurred.', status=500)

        return wrapper

    return decorator


def api_login_required(view_func):

    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            raise AuthenticationRequiredError()
        return view_func(request, *args, **kwargs)

    return wrapper
