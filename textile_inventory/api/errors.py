from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from textile_inventory.core import get_logger
from textile_inventory.domain.errors import TextileInventoryError

logger = get_logger(__name__)


def _field_errors(exc: RequestValidationError) -> list:
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        errors.append({"field": ".".join(location), "message": error.get("msg")})
    return errors


def register_exception_handlers(app: FastAPI):
    """Map typed errors to ``{"error", "code", "details"}`` responses."""

    @app.exception_handler(TextileInventoryError)
    async def textile_inventory_error(request: Request, exc: TextileInventoryError):
        logger.warning(
            f"{request.method} {request.url.path} rejected: {exc.message}",
            extra={'extra_fields': {'code': exc.code, 'status_code': exc.status_code}}
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        errors = _field_errors(exc)
        message = "; ".join(f"{e['field']}: {e['message']}" if e["field"] else e["message"] for e in errors)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": message or "Invalid request", "code": "VALIDATION_ERROR", "details": errors},
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_error(request: Request, exc: SQLAlchemyError):
        logger.error(f"Database error on {request.method} {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Database operation failed", "code": "DATABASE_ERROR", "details": str(exc)},
        )
