"""
Builders for the LexCanada response envelope.

Every JSON endpoint answers with ``{data, metadata, success}`` where
``success`` is 1 or 0 and ``metadata`` carries the status code, error
strings, execution time and a UTC timestamp.
"""

import time
from typing import Any, Dict, List, Optional
from datetime import datetime
from fastapi.responses import JSONResponse

from lexcanada.schemas import StandardResponse, Metadata, ErrorResponse, SuccessResponse


def _metadata(status_code: int, errors: List[str], execution_time: Optional[float]) -> Metadata:
    return Metadata(
        statusCode=status_code,
        errors=errors,
        executionTime=round(execution_time or 0.0, 6),
        timestamp=datetime.utcnow(),
    )


def create_success_response(
    data: Any,
    status_code: int = 200,
    message: Optional[str] = None,
    execution_time: Optional[float] = None,
    additional_details: Optional[Dict[str, Any]] = None
) -> StandardResponse:
    """Wrap ``data`` in a success envelope; a bare message becomes ``{message, details}``."""
    if data is None and message:
        data = SuccessResponse(message=message, details=additional_details)

    return StandardResponse(data=data, metadata=_metadata(status_code, [], execution_time), success=1)


def create_error_response(
    message: str,
    status_code: int = 400,
    errors: Optional[List[str]] = None,
    execution_time: Optional[float] = None,
    additional_details: Optional[Dict[str, Any]] = None
) -> StandardResponse:
    return StandardResponse(
        data=ErrorResponse(message=message, details=additional_details),
        metadata=_metadata(status_code, errors or [message], execution_time),
        success=0,
    )


def error_json_response(
    message: str,
    status_code: int,
    errors: Optional[List[str]] = None,
    additional_details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Render an error envelope with the HTTP status set to match."""
    envelope = create_error_response(
        message=message,
        status_code=status_code,
        errors=errors,
        additional_details=additional_details,
    )
    return JSONResponse(status_code=status_code, content=envelope.model_dump(mode="json"), headers=headers)


class ResponseTimer:
    """Measures how long an endpoint body takes; read it before or after exit."""

    def __init__(self):
        self._started: Optional[float] = None
        self._elapsed: Optional[float] = None

    def __enter__(self):
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._elapsed = time.perf_counter() - self._started

    def get_execution_time(self) -> float:
        if self._elapsed is not None:
            return self._elapsed
        return time.perf_counter() - self._started
