"""
Domain errors and the unified API error envelope.

Every failure leaves the API as ``{'ok': False, 'error': {...}}`` with a
stable ``code`` so the ward dashboards can branch on it without parsing
messages.
"""
import logging

from django.db import IntegrityError
from django.http import Http404
from rest_framework import exceptions as drf_exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler, set_rollback

logger = logging.getLogger(__name__)


class DomainError(drf_exceptions.APIException):
    """Base class for errors raised by the scheduling services."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = 'domain_error'
    default_detail = 'Request could not be processed.'

    def __init__(self, message=None):
        self.message = message or self.default_detail
        super().__init__(self.message, self.default_code)

    def payload(self) -> dict:
        return {'code': self.default_code, 'message': self.message}


class ValidationError(DomainError):
    default_code = 'validation_error'
    default_detail = 'Invalid input.'


class IncompleteDataError(DomainError):
    """Raised when a phase is completed before its required fields are filled."""
    default_code = 'incomplete_data'
    default_detail = 'Required fields are missing.'

    def __init__(self, missing, message=None):
        self.missing = list(missing)
        super().__init__(message or f"Missing required fields: {', '.join(self.missing)}")

    def payload(self) -> dict:
        data = super().payload()
        data['missing'] = self.missing
        return data


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = 'not_found'
    default_detail = 'Not found.'


class ConflictError(DomainError):
    """Raised when a bed or a (patient, date, slot) pairing is already taken."""
    status_code = status.HTTP_409_CONFLICT
    default_code = 'conflict'
    default_detail = 'Resource is already in use.'

    def __init__(self, message=None, conflict=None):
        self.conflict = conflict
        super().__init__(message)

    def payload(self) -> dict:
        data = super().payload()
        if self.conflict is not None:
            data['conflict'] = self.conflict
        return data


class AuthorizationError(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    default_code = 'authorization_error'
    default_detail = 'You do not have permission to perform this action.'


def _drf_code(exc) -> str:
    if isinstance(exc, drf_exceptions.ValidationError):
        return 'validation_error'
    if isinstance(exc, (drf_exceptions.NotAuthenticated, drf_exceptions.AuthenticationFailed)):
        return 'not_authenticated'
    if isinstance(exc, drf_exceptions.PermissionDenied):
        return 'authorization_error'
    if isinstance(exc, (drf_exceptions.NotFound, Http404)):
        return 'not_found'
    return 'api_error'


def api_exception_handler(exc, context):
    if isinstance(exc, DomainError):
        set_rollback()
        return Response({'ok': False, 'error': exc.payload()}, status=exc.status_code)
    if isinstance(exc, IntegrityError):
        set_rollback()
        logger.warning("integrity error translated to conflict: %s", exc)
        err = ConflictError('Bed is already assigned to another active session.')
        return Response({'ok': False, 'error': err.payload()}, status=err.status_code)

    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception("unhandled error in %s", context.get('view'), exc_info=exc)
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': str(exc)}}, status=500)
    # normalize response
    if isinstance(resp.data, dict) and set(resp.data) == {'detail'}:
        message = resp.data['detail']
        fields = None
    else:
        message = 'Invalid input.' if isinstance(exc, drf_exceptions.ValidationError) else str(exc)
        fields = resp.data
    error = {'code': _drf_code(exc), 'message': str(message)}
    if fields is not None:
        error['fields'] = fields
    out = Response({'ok': False, 'error': error}, status=resp.status_code)
    for header in ('WWW-Authenticate', 'Retry-After'):
        if header in resp:
            out[header] = resp[header]
    return out
