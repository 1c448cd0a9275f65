"""
Response envelope helpers shared by the reallocation views.
"""

import logging
from rest_framework import status
from rest_framework.response import Response

from ..exceptions import BusinessException

logger = logging.getLogger(__name__)

CONFLICT_CODES = {'STALE_PICKLIST', 'ALREADY_PROCESSED', 'INVALID_TRANSITION'}


def status_for_code(code: str) -> int:
    if code.endswith('_NOT_FOUND'):
        return status.HTTP_404_NOT_FOUND
    if code in CONFLICT_CODES:
        return status.HTTP_409_CONFLICT
    return status.HTTP_400_BAD_REQUEST


def success_response(data, http_status=status.HTTP_200_OK) -> Response:
    return Response({
        'success': True,
        'data': data
    }, status=http_status)


def error_response(code: str, message: str, details=None) -> Response:
    return Response({
        'success': False,
        'error': {
            'code': code,
            'message': message,
            'details': details or {}
        }
    }, status=status_for_code(code))


def business_error_response(exc: BusinessException) -> Response:
    logger.info(f"Request rejected with {exc.code}: {exc.message}")
    return error_response(exc.code, exc.message, exc.details)
