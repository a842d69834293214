"""
API errors and their handlers.

Every error body has the shape {"error": <message>}, optionally with a
machine-readable "code". Routers raise the classes below; main.py registers
the handlers.
"""
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class APIException(HTTPException):
    """HTTPException carrying an optional error code."""

    def __init__(self, status_code: int, detail: str, error_code: Optional[str] = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code

    def body(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.detail}
        if self.error_code:
            payload["code"] = self.error_code
        return payload


class NotFoundError(APIException):
    def __init__(self, detail: str):
        super().__init__(status.HTTP_404_NOT_FOUND, detail, error_code="NOT_FOUND")


class ValidationError(APIException):
    """Bad client input (400). `field` narrows the error code, e.g. VALIDATION_ERROR_AGE."""

    def __init__(self, detail: str, field: Optional[str] = None):
        code = "VALIDATION_ERROR" if not field else f"VALIDATION_ERROR_{field.upper()}"
        super().__init__(status.HTTP_400_BAD_REQUEST, detail, error_code=code)


async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.body(), headers=exc.headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and query strings are reported as 400, not FastAPI's default 422."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Invalid request",
            "code": "VALIDATION_ERROR",
            "details": jsonable_encoder(exc.errors()),
        },
    )
