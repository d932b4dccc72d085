# common/exceptions.py
import logging

from django.db import DatabaseError, IntegrityError
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

log = logging.getLogger(__name__)

GENERIC_ERROR = "Ralat dalaman pelayan."


class InvalidState(APIException):
    """
    Current status of the booking / payment does not allow the transition.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Tindakan tidak dibenarkan pada status semasa."
    default_code = "invalid_state"


class StoreFailure(APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = GENERIC_ERROR
    default_code = "store_failure"


class CompensationFailure(StoreFailure):
    """
    Rollback after a store failure could not be confirmed, data may be
    inconsistent. Always logged at CRITICAL by whoever raises it.
    """
    default_code = "compensation_failure"


class LedgerImmutable(Exception):
    """Ledger rows are append-only."""


def _first_message(detail):
    if isinstance(detail, dict):
        for value in detail.values():
            return _first_message(value)
        return ""
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else ""
    return str(detail)


def custom_exception_handler(exc, context):
    response = exception_handler(exc, context)

    if response is None:
        view = context.get("view")
        view_name = view.__class__.__name__ if view is not None else "?"

        if isinstance(exc, IntegrityError):
            log.warning("Integrity error in %s: %s", view_name, exc)
            return Response(
                {"error": "Data bercanggah dengan rekod sedia ada."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        if isinstance(exc, DatabaseError):
            log.error("Database error in %s", view_name, exc_info=exc)
            return Response(
                {"error": GENERIC_ERROR},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        return None

    payload = {"error": _first_message(response.data)}
    if isinstance(exc, ValidationError) and isinstance(response.data, dict):
        payload["fields"] = response.data
    response.data = payload
    return response
