"""Map service exceptions to JSON error responses."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from backend.app.errors import (
    EmbeddingDimensionError,
    EmptyFileError,
    ExtractionFailure,
    FileTooLargeError,
    KnowledgeServiceError,
    NotFoundError,
    OperationCancelledError,
    ServiceUnavailableError,
    TransientServiceError,
    UnsupportedFileTypeError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Client closed the connection before a response was produced
CLIENT_CLOSED_REQUEST = 499

# Most specific class wins (looked up along the exception's MRO)
STATUS_BY_ERROR: dict[type[KnowledgeServiceError], int] = {
    FileTooLargeError: 413,
    UnsupportedFileTypeError: status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
    EmptyFileError: status.HTTP_400_BAD_REQUEST,
    EmbeddingDimensionError: 422,
    ValidationError: status.HTTP_400_BAD_REQUEST,
    ExtractionFailure: 422,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    TransientServiceError: status.HTTP_503_SERVICE_UNAVAILABLE,
    ServiceUnavailableError: status.HTTP_503_SERVICE_UNAVAILABLE,
    OperationCancelledError: CLIENT_CLOSED_REQUEST,
}


def status_for(exc: KnowledgeServiceError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[cls]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def handle_service_error(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, KnowledgeServiceError)
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.code}): {exc}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc), "code": exc.code})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(KnowledgeServiceError, handle_service_error)
