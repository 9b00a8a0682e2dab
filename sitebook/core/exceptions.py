"""
API error types and the DRF exception handler that renders the error envelope

Every failure leaves the API as:
    {"success": false, "error": {"message": ..., "code": ..., "details": ...}}
"""
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError
from django.db.models import ProtectedError
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.serializers import as_serializer_error
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ApiError(exceptions.APIException):
    """Base class for errors raised by the store and views"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Request failed.'
    default_code = 'BAD_REQUEST'

    def __init__(self, detail=None, code=None, details=None):
        super().__init__(detail=detail, code=code)
        self.code = code or self.default_code
        self.details = details


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Resource not found.'
    default_code = 'NOT_FOUND'


class InvalidInput(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid input.'
    default_code = 'VALIDATION_ERROR'


class Conflict(ApiError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Resource already exists.'
    default_code = 'UNIQUE_CONSTRAINT_VIOLATION'


class OrganizationContextMissing(ApiError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'Organization context is required. Send the X-Organization-Id header.'
    default_code = 'MISSING_ORG_CONTEXT'


# DRF exception class -> envelope code
DRF_ERROR_CODES = [
    (exceptions.ValidationError, 'VALIDATION_ERROR'),
    (exceptions.NotAuthenticated, 'UNAUTHORIZED'),
    (exceptions.AuthenticationFailed, 'UNAUTHORIZED'),
    (exceptions.PermissionDenied, 'FORBIDDEN'),
    (exceptions.NotFound, 'NOT_FOUND'),
    (exceptions.MethodNotAllowed, 'METHOD_NOT_ALLOWED'),
    (exceptions.ParseError, 'BAD_REQUEST'),
]


def error_payload(message, code, details=None):
    error = {'message': message, 'code': code}
    if details is not None:
        error['details'] = details
    return {'success': False, 'error': error}


def _translate(exc):
    """Turn Django and database errors into DRF exceptions"""
    if isinstance(exc, Http404):
        return NotFound(str(exc) or None)
    if isinstance(exc, DjangoValidationError):
        return exceptions.ValidationError(detail=as_serializer_error(exc))
    if isinstance(exc, ProtectedError):
        return Conflict("Record is referenced by other records and cannot be deleted.", code="RECORD_IN_USE")
    if isinstance(exc, IntegrityError):
        message = str(exc).lower()
        if 'foreign key' in message:
            return InvalidInput('Referenced record does not exist.', code='FOREIGN_KEY_VIOLATION')
        if 'not null' in message:
            return InvalidInput('A required field is missing.', code='NULL_CONSTRAINT_VIOLATION')
        return Conflict()
    return exc


def _code_for(exc):
    if isinstance(exc, ApiError):
        return exc.code
    for exc_class, code in DRF_ERROR_CODES:
        if isinstance(exc, exc_class):
            return code
    return 'ERROR'


def envelope_exception_handler(exc, context):
    exc = _translate(exc)
    response = exception_handler(exc, context)

    if response is None:
        view = context.get('view')
        logger.error(f"Unhandled error in {view.__class__.__name__ if view else 'view'}: {exc}", exc_info=exc)
        return Response(
            error_payload('Internal server error.', 'INTERNAL_ERROR'),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    code = _code_for(exc)
    details = None
    if isinstance(exc, exceptions.ValidationError):
        message = 'Validation failed.'
        details = response.data
    else:
        message = str(exc.detail) if hasattr(exc, 'detail') else str(exc)
        if isinstance(exc, ApiError):
            details = exc.details

    response.data = error_payload(message, code, details)
    return response
