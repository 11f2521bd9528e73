import json

from django.core.serializers.json import DjangoJSONEncoder
from django.http import JsonResponse

from .exceptions import InvalidInputError


def api_response(data=None, message='Success', status=200):
    return JsonResponse({
        'success': True,
        'message': message,
        'data': data,
    }, status=status, encoder=DjangoJSONEncoder)


def api_error(message='An error occurred', status=400, errors=None):
    body = {
        'success': False,
        'message': message,
        'data': None,
    }
    if errors:
        body['errors'] = errors
    return JsonResponse(body, status=status)


def parse_json_body(request):

    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidInputError('Request body must be valid JSON.')
    if not isinstance(data, dict):
        raise InvalidInputError('Request body must be a JSON object.')
    return data


def parse_int(value, name, required=True, default=None):
    """Parse an integer from a query string or JSON value, raising InvalidInputError."""
    if value is None or value == '':
        if required:
            raise InvalidInputError(
                f"{name} is required.",
                errors={name: [f"{name} is required."]},
            )
        return default
    if isinstance(value, bool):
        raise InvalidInputError(f"{name} must be an integer.", errors={name: [f"{name} must be an integer."]})
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"{name} must be an integer.", errors={name: [f"{name} must be an integer."]})
