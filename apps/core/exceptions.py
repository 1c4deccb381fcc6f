"""
Exception kinds shared by the core and by extensions
"""

from typing import Any, Optional

from fastapi import HTTPException


class LodestarError(HTTPException):
    """Base class for errors that map to an HTTP response"""
    status_code = 500
    code = "INTERNAL"

    def __init__(self, message: str, extensions: Optional[dict] = None):
        super().__init__(status_code=self.status_code, detail=message)
        self.message = message
        self.extensions = extensions or {}

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "extensions": {"code": self.code, **self.extensions},
        }


class InvalidPayloadError(LodestarError):
    status_code = 400
    code = "INVALID_PAYLOAD"


class ForbiddenError(LodestarError):
    status_code = 403
    code = "FORBIDDEN"

    def __init__(self, message: str = "You don't have permission to access this.", extensions: Any = None):
        super().__init__(message, extensions)


class RouteNotFoundError(LodestarError):
    status_code = 404
    code = "ROUTE_NOT_FOUND"

    def __init__(self, path: str):
        super().__init__(f"Route {path} doesn't exist.", {"path": path})


class ServiceUnavailableError(LodestarError):
    status_code = 503
    code = "SERVICE_UNAVAILABLE"


class ExtensionLoadError(Exception):
    """Raised when an extension module can't be loaded or has no usable export"""
    pass


class BundleError(Exception):
    """Raised when the bundler fails to compile an app extension entry"""
    pass
