import math

from .exceptions import InvalidInputError

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10


def validate_pagination(page_number, page_size):

    if page_number < 1:
        raise InvalidInputError('Page number must be at least 1')

    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise InvalidInputError(f'Page size must be between 1 and {MAX_PAGE_SIZE}')


def paginate(queryset, page_number, page_size, serialize):
    """Slice an ordered queryset into the paginated result shape used by every listing endpoint."""
    validate_pagination(page_number, page_size)

    total_count = len(queryset) if isinstance(queryset, list) else queryset.count()
    offset = (page_number - 1) * page_size
    items = [serialize(obj) for obj in queryset[offset:offset + page_size]]

    return {
        'items': items,
        'totalCount': total_count,
        'pageNumber': page_number,
        'pageSize': page_size,
        'totalPages': math.ceil(total_count / page_size) if total_count else 0,
    }
