"""
Success envelope and pagination helpers shared by every app
"""
import math

from rest_framework import status
from rest_framework.response import Response

from sitebook.core.exceptions import InvalidInput, error_payload

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def success_response(data, status_code=status.HTTP_200_OK):
    return Response({'success': True, 'data': data}, status=status_code)


def created_response(data):
    return success_response(data, status_code=status.HTTP_201_CREATED)


def validation_error_response(errors):
    """Serializer errors in the error envelope"""
    return Response(
        error_payload('Validation failed.', 'VALIDATION_ERROR', errors),
        status=status.HTTP_400_BAD_REQUEST,
    )


def _parse_positive_int(raw, name):
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise InvalidInput(f'{name} must be an integer.', details={name: [f'Invalid value: {raw}']})
    return value


def parse_pagination(request, default_limit=DEFAULT_PAGE_SIZE):
    """
    Read page/limit query params.

    page >= 1 and 1 <= limit <= 100; returns (page, limit, skip).
    """
    page = _parse_positive_int(request.query_params.get('page', 1), 'page')
    limit = _parse_positive_int(request.query_params.get('limit', default_limit), 'limit')
    if page < 1:
        raise InvalidInput('page must be at least 1.', details={'page': ['Must be at least 1.']})
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise InvalidInput(
            f'limit must be between 1 and {MAX_PAGE_SIZE}.',
            details={'limit': [f'Must be between 1 and {MAX_PAGE_SIZE}.']},
        )
    return page, limit, (page - 1) * limit


def build_pagination(page, limit, total):
    pages = math.ceil(total / limit) if limit else 0
    return {
        'page': page,
        'limit': limit,
        'total': total,
        'pages': pages,
        'has_more': page < pages,
    }


def paginated_response(items, page, limit, total):
    return success_response({
        'items': items,
        'pagination': build_pagination(page, limit, total),
    })


def paginate_queryset(request, queryset, serializer_class, context=None):
    """Slice a queryset per the request's page/limit and wrap it in the envelope"""
    page, limit, skip = parse_pagination(request)
    total = queryset.count()
    rows = queryset[skip:skip + limit]
    serializer = serializer_class(rows, many=True, context=context or {'request': request})
    return paginated_response(serializer.data, page, limit, total)
