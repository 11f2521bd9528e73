import logging

from django.core.exceptions import PermissionDenied
from django.db import DatabaseError

from .exceptions import ReservationSystemError
from .responses import api_error

logger = logging.getLogger(__name__)

def handler400(request, exception):

    logger.warning(f'400 Error: {exception}')
    return api_error('The request could not be understood.', status=400)

def handler403(request, exception):

    logger.warning(f'403 Error: {exception}')
    return api_error('You do not have permission to access this resource.', status=403)

def handler404(request, exception):

    logger.warning(f'404 Error: {request.path}')
    return api_error('The requested resource was not found.', status=404)

def handler500(request):

    logger.error('500 Internal Server Error')
    return api_error('An unexpected error occurred.', status=500)

def handler503(request, exception=None):

    logger.error(f'503 Service Unavailable: {exception}')
    return api_error('The service is temporarily unavailable.', status=503)

class GlobalExceptionMiddleware:

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        response = self.get_response(request)
        return response

    def process_exception(self, request, exception):

        if isinstance(exception, ReservationSystemError):
            return api_error(exception.message, status=exception.status_code, errors=exception.errors)

        logger.error(f'Unhandled exception: {exception}', exc_info=True)

        if isinstance(exception, DatabaseError):
            return handler503(request, exception)
        elif isinstance(exception, PermissionDenied):
            return handler403(request, exception)

        return None

def csrf_failure(request, reason=''):

    logger.warning(f'CSRF check failed for {request.method} {request.path}: {reason}')
    return api_error('CSRF verification failed.', status=403)
