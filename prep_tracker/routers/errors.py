"""Translation of service errors into HTTP errors."""
from fastapi import HTTPException, status

from prep_tracker.exceptions import (
    ConcurrencyError,
    DataIntegrityError,
    NotFoundError,
    ValidationError,
)
from prep_tracker.logger import get_logger

logger = get_logger("api")


def to_http_exception(error: ValueError) -> HTTPException:
    """
    Map a service error to an HTTPException.

    ValidationError → 400, NotFoundError → 404, ConcurrencyError → 409,
    DataIntegrityError and anything else → 500.
    """
    if isinstance(error, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, ConcurrencyError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))
    if isinstance(error, DataIntegrityError):
        logger.error("Data integrity error: %s", error)
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Progress data is inconsistent: {error}",
        )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))
