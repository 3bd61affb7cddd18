"""
Centralized Error Handling Module for Visual Explorer

Provides the exploration error taxonomy, consistent error responses and
logging for the API layer.
"""

import logging
from typing import Dict, Any, Optional
from fastapi import status
from fastapi.responses import JSONResponse

logger = logging.getLogger("visual_explorer")


class ExplorerError(Exception):
    """Base exception for all Visual Explorer errors"""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


class TransportError(ExplorerError):
    """Raised when a device command or file transfer fails"""

    def __init__(
        self,
        message: str,
        device_id: Optional[str] = None,
        command: Optional[str] = None,
    ):
        super().__init__(
            message,
            code="TRANSPORT_ERROR",
            details={"device_id": device_id, "command": command},
        )


class ParseError(ExplorerError):
    """Raised when a UI dump or screenshot cannot be parsed"""

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message, code="PARSE_ERROR", details={"source": source})


class OutOfAppError(ExplorerError):
    """Raised when the foreground app stays outside the target package after a relaunch"""

    def __init__(self, package_name: str, activity: Optional[str] = None):
        super().__init__(
            f"Foreground activity '{activity or 'unknown'}' is still outside "
            f"{package_name} after relaunch",
            code="OUT_OF_APP",
            details={"package_name": package_name, "activity": activity},
        )


class SessionConflictError(ExplorerError):
    """Raised when a session is started while another one is running"""

    def __init__(self, device_id: Optional[str] = None, package_name: Optional[str] = None):
        super().__init__(
            "Explorer is already running",
            code="SESSION_CONFLICT",
            details={"device_id": device_id, "package_name": package_name},
        )


def create_error_response(
    error: Exception,
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
) -> JSONResponse:
    """
    Create a standardized error response

    Args:
        error: The exception that occurred
        status_code: HTTP status code

    Returns:
        JSONResponse with error details
    """
    error_response = {
        "success": False,
        "error": {
            "message": str(error),
            "type": error.__class__.__name__,
            "user_message": get_user_friendly_message(error),
        },
    }

    if isinstance(error, ExplorerError):
        error_response["error"]["code"] = error.code
        error_response["error"]["details"] = error.details

    if status_code >= 500:
        logger.error(f"{error.__class__.__name__}: {error}", exc_info=True)
    else:
        logger.warning(f"{error.__class__.__name__}: {error}")

    return JSONResponse(status_code=status_code, content=error_response)


def handle_api_error(error: Exception) -> JSONResponse:
    """
    Handle API errors with appropriate status codes

    Args:
        error: The exception to handle

    Returns:
        JSONResponse with appropriate status code
    """
    if isinstance(error, SessionConflictError):
        return create_error_response(error, status.HTTP_409_CONFLICT)

    elif isinstance(error, TransportError):
        return create_error_response(error, status.HTTP_503_SERVICE_UNAVAILABLE)

    elif isinstance(error, (ParseError, OutOfAppError)):
        return create_error_response(error, status.HTTP_500_INTERNAL_SERVER_ERROR)

    elif isinstance(error, ValueError):
        return create_error_response(error, status.HTTP_400_BAD_REQUEST)

    else:
        return create_error_response(error, status.HTTP_500_INTERNAL_SERVER_ERROR)


def get_user_friendly_message(error: Exception) -> str:
    """
    Get a user-friendly error message for frontend display

    Args:
        error: The exception

    Returns:
        User-friendly error message
    """
    if isinstance(error, SessionConflictError):
        return "An exploration session is already running. Stop it before starting a new one."

    elif isinstance(error, TransportError):
        return "Could not talk to the Android device via ADB. Please check the connection and try again."

    elif isinstance(error, ParseError):
        return f"The device returned data that could not be read: {error.message}"

    elif isinstance(error, OutOfAppError):
        return "The app could not be brought back to the foreground. Exploration was aborted."

    elif isinstance(error, ValueError):
        return f"Invalid request: {error}"

    else:
        return f"An unexpected error occurred: {str(error)}"
