"""
Standardized error handling utilities for API endpoints.
"""
from functools import wraps
from typing import Callable, Any
from uuid import UUID
from fastapi import HTTPException, status
import logging

from teamdesk.core.config import settings
from teamdesk.core.exceptions import ServiceError, InfrastructureError

logger = logging.getLogger(__name__)


def parse_uuid(uuid_string: str, entity_name: str = "ID") -> UUID:
    """
    Parse a UUID string and raise a standardized error if invalid.

    Args:
        uuid_string: String to parse as UUID
        entity_name: Name of the entity (for error message)

    Returns:
        Parsed UUID

    Raises:
        HTTPException: If UUID is invalid
    """
    try:
        return UUID(uuid_string)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {entity_name.lower()}: '{uuid_string}'. Must be a valid UUID.",
        )


def service_error_to_http(error: ServiceError) -> HTTPException:
    """Translate a typed service error into the HTTP response it stands for."""
    return HTTPException(
        status_code=error.status_code,
        detail={"error": type(error).__name__, "message": error.message},
    )


def handle_endpoint_errors(
    operation_name: str = None,
    log_error: bool = True,
):
    """
    Decorator to standardize error handling across all endpoints.

    Typed service errors become HTTP errors carrying their own status code and
    the error class name, so clients can tell a conflict from a missing record.
    Anything unexpected is logged with a traceback and reported as an opaque 500.

    Usage:
        @handle_endpoint_errors(operation_name="create_leave_request")
        async def create_leave_request_endpoint(...):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            op_name = operation_name or func.__name__
            try:
                return await func(*args, **kwargs)
            except HTTPException:
                # Re-raise HTTPExceptions as-is (they're already properly formatted)
                raise
            except InfrastructureError as e:
                if log_error:
                    logger.error(f"Infrastructure failure in {op_name}: {e.message}")
                raise service_error_to_http(e)
            except ServiceError as e:
                if log_error:
                    logger.info(f"{type(e).__name__} in {op_name}: {e.message}")
                raise service_error_to_http(e)
            except Exception as e:
                error_detail = str(e)
                error_type = type(e).__name__

                if log_error:
                    logger.error(
                        f"Unexpected error in {op_name}",
                        exc_info=True,
                        extra={
                            "operation": op_name,
                            "error": error_detail,
                            "error_type": error_type
                        }
                    )

                # In development, return more detailed error messages
                if settings.is_production:
                    detail_msg = InfrastructureError().message
                else:
                    detail_msg = f"Error in {op_name}: {error_type}: {error_detail}"

                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail={"error": "InfrastructureError", "message": detail_msg},
                )
        return wrapper
    return decorator
