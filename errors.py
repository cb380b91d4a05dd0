"""
Error taxonomy

Every error the API reports on purpose is an HTTPException carrying its
status code; main.py renders them all into the {success, message} envelope.
"""
from typing import Dict, Optional

from fastapi import HTTPException


class ApiError(HTTPException):
    status_code = 500
    default_message = "Server Error"

    def __init__(self, message: Optional[str] = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(status_code=self.status_code, detail=message or self.default_message, headers=headers)

    @property
    def message(self) -> str:
        return self.detail


class ValidationError(ApiError):
    status_code = 400
    default_message = "Invalid input"


class AuthenticationError(ApiError):
    status_code = 401
    default_message = "Not authorized to access this route"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class AuthorizationError(ApiError):
    status_code = 403
    default_message = "Not allowed to perform this action"


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Resource not found"


class ServerError(ApiError):
    status_code = 500
