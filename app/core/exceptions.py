"""
Typed errors raised by the access and audit core

Every error carries the HTTP status it maps to and a detail that is safe to
show to the caller. Rows outside the caller's read scope surface as NotFound.
"""
from fastapi import status


class AccessError(Exception):
    """Base class for expected, typed outcomes of the access core"""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "Request could not be completed"

    def __init__(self, detail: str = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class Forbidden(AccessError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Not permitted"


class NotFound(AccessError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class SelfModificationDenied(AccessError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You cannot change your own role or active status"


class ConstraintViolation(AccessError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "This record is still in use"


class AuditWriteFailed(AccessError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Change could not be recorded; nothing was saved. Please retry."
