"""
Error handling decorators and utilities for API endpoints.

This module centralizes the mapping from application exceptions to HTTP
responses. Bodies are rendered as {"error": "<message>"} by the exception
handlers registered in main.py.
"""

from functools import wraps
from typing import Callable
from fastapi import HTTPException
from fastapi.responses import JSONResponse
import inspect
import logging

from constants import HTTPStatus
from exceptions import (
    ApplicationError,
    InvalidRequestError,
    StorageUnavailableError,
)

logger = logging.getLogger(__name__)


def error_response(status_code: int, message: str) -> JSONResponse:
    """Minimal JSON error body used by every error path."""
    return JSONResponse(status_code=status_code, content={"error": message})


def handle_api_errors(operation_name: str, failure_message: str | None = None):
    """
    Decorator to handle common API errors consistently across endpoints.

    Invalid requests become 400 with the error's own (generic) message;
    storage and unexpected failures become 500 with `failure_message`, so
    no internals leak to the caller.

    Args:
        operation_name: Human-readable name of the operation (e.g., "Presign PUT")
        failure_message: Public message for 5xx responses

    Example:
        @router.post("/presign/put")
        @handle_api_errors("Presign PUT", "presign put failed")
        async def presign_put(...):
            ...
    """
    public_message = failure_message or f"{operation_name} failed"

    def decorator(func: Callable):
        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except InvalidRequestError as e:
                logger.warning(f"{operation_name} - Invalid request: {e.message}")
                raise HTTPException(
                    status_code=HTTPStatus.BAD_REQUEST,
                    detail=e.message
                )
            except StorageUnavailableError as e:
                logger.error(f"{operation_name} - Storage unavailable: {e.message}", exc_info=True)
                raise HTTPException(
                    status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
                    detail=public_message
                )
            except ApplicationError as e:
                logger.error(f"{operation_name} - Application error: {e.message}", exc_info=True)
                raise HTTPException(
                    status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
                    detail=public_message
                )
            except HTTPException:
                # Re-raise HTTPException as-is to preserve status code and detail
                raise
            except Exception as e:
                logger.error(f"{operation_name} - Unexpected error: {e}", exc_info=True)
                raise HTTPException(
                    status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
                    detail=public_message
                )

        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"handle_api_errors only wraps async endpoints, got {func.__name__}")
        return async_wrapper

    return decorator
