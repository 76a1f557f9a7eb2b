import logging
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class DatasetValidationError(Exception):
    """Field-level validation errors for a dataset ("base" holds non-field errors)."""

    def __init__(self, errors: Optional[Dict[str, List[str]]] = None):
        self.errors: Dict[str, List[str]] = errors or {}
        super().__init__(self.full_messages())

    def add(self, field: str, message: str) -> None:
        self.errors.setdefault(field, []).append(message)
        self.args = (self.full_messages(),)

    def full_messages(self) -> str:
        messages = []
        for field, field_errors in self.errors.items():
            for message in field_errors:
                messages.append(message if field == "base" else f"{field} {message}")
        return "; ".join(messages)

    def __bool__(self) -> bool:
        return bool(self.errors)


class DatasetTableError(Exception):
    """Backing table operation requested in a state that cannot satisfy it."""
    pass


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
        )

    @app.exception_handler(DatasetValidationError)
    async def validation_exception_handler(request: Request, exc: DatasetValidationError):
        return JSONResponse(
            status_code=422,
            content={"detail": "Validation failed", "errors": exc.errors},
        )

    @app.exception_handler(DatasetTableError)
    async def table_exception_handler(request: Request, exc: DatasetTableError):
        return JSONResponse(
            status_code=409,
            content={"detail": str(exc)},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.url}: {str(exc)}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )
