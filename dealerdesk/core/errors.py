"""
core/errors.py
--------------
Outcome taxonomy shared by every service.

Services raise these; main.py turns them into JSON responses. Routes never
catch them individually.

  Unauthorized         401  no resolvable caller identity
  NotFound             404  caller has no local record / referenced row missing
  Forbidden            403  caller's role lacks the capability
  ValidationError      400  malformed input (self-reference, cycles, ...)
  InfrastructureError  503  store or external service failure
"""

from fastapi import status


class DealerDeskError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Internal server error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class Unauthorized(DealerDeskError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Unauthorized"


class NotFound(DealerDeskError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class Forbidden(DealerDeskError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Forbidden"


class ValidationError(DealerDeskError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request"


class InfrastructureError(DealerDeskError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Service temporarily unavailable"
