"""Domain errors.

Each error carries the HTTP status and a short machine-readable code; routers
turn them into `HTTPException` via `to_http`.
"""
# surveydesk/core/errors.py
from fastapi import HTTPException, status


class SurveyDeskError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "error"

    def __init__(self, message: str = "", *, code: str | None = None):
        super().__init__(message or self.__class__.__doc__ or self.code)
        if code:
            self.code = code

    @property
    def message(self) -> str:
        return str(self)


class ValidationError(SurveyDeskError):
    """Malformed input"""
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"


class NotFoundError(SurveyDeskError):
    """Survey not found"""
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class ConflictError(SurveyDeskError):
    """This phone number has already answered the survey"""
    status_code = status.HTTP_409_CONFLICT
    code = "duplicate_submission"


class EmptyReportError(SurveyDeskError):
    """The survey has no responses yet"""
    status_code = status.HTTP_400_BAD_REQUEST
    code = "empty_report"


class ConfigurationError(SurveyDeskError):
    """Channel credentials or target are not configured"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "channel_not_configured"


class ExternalTransportError(SurveyDeskError):
    """External channel call failed"""
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "transport_error"


class DeliveryTimeoutError(ExternalTransportError):
    """External channel call timed out"""
    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    code = "transport_timeout"


class InternalError(SurveyDeskError):
    """Unexpected store failure"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "internal_error"


def to_http(exc: SurveyDeskError) -> HTTPException:
    return HTTPException(
        status_code=exc.status_code,
        detail={"code": exc.code, "message": exc.message},
    )
