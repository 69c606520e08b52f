"""Marketplace error taxonomy.

Service modules raise these; the DRF exception handler below renders them as
``{"success": false, "error": <code>, "message": ..., **details}`` so every
caller gets a structured reason instead of a bare status code.
"""
import logging

from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class MarketplaceError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Request could not be completed.'
    default_code = 'error'

    def __init__(self, message=None, **details):
        super().__init__(detail=message or self.default_detail, code=self.default_code)
        self.details = details

    @property
    def message(self):
        return str(self.detail)


class NotFound(MarketplaceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Resource not found.'
    default_code = 'not_found'


class InvalidState(MarketplaceError):
    default_detail = 'Operation not allowed in the current state.'
    default_code = 'invalid_state'


class AlreadyResolved(InvalidState):
    default_detail = 'Offer has already been responded to.'
    default_code = 'already_resolved'


class CooldownActive(MarketplaceError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_detail = 'Please wait before making another offer.'
    default_code = 'cooldown_active'


class Forbidden(MarketplaceError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'You are not allowed to perform this action.'
    default_code = 'forbidden'


class VerificationRequired(Forbidden):
    default_detail = 'Your profile must be approved before you can apply for jobs.'
    default_code = 'verification_required'


class InsufficientBalance(MarketplaceError):
    default_detail = 'Insufficient balance.'
    default_code = 'insufficient_balance'


class RoleConflict(MarketplaceError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Role switch blocked by unresolved jobs.'
    default_code = 'role_conflict'


class DependencyFailure(MarketplaceError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = 'An external service failed.'
    default_code = 'dependency_failure'


def marketplace_exception_handler(exc, context):
    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, MarketplaceError):
        view = context.get('view')
        logger.warning(
            f"{exc.default_code} in {view.__class__.__name__ if view else 'unknown view'}: {exc.message}"
        )
        response.data = {
            'success': False,
            'error': exc.default_code,
            'message': exc.message,
            **exc.details,
        }
    elif isinstance(exc, ValidationError):
        response.data = {
            'success': False,
            'error': 'validation_error',
            'errors': response.data,
        }
    else:
        detail = response.data.get('detail') if isinstance(response.data, dict) else response.data
        response.data = {
            'success': False,
            'error': getattr(exc, 'default_code', 'error'),
            'message': str(detail),
        }
    return response
