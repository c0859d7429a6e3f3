"""
Typed error taxonomy shared by every service.

Services raise these; the API layer never builds error responses by hand.
`register_exception_handlers()` maps each kind onto its own status class so a
specific failure is never reported as a generic 500.
"""
import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)


class StorefrontError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    kind = "internal_error"

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        return {"error": self.kind, "detail": self.message, **self.context}


class ValidationError(StorefrontError):
    """Malformed or missing input. Nothing was written."""
    status_code = status.HTTP_400_BAD_REQUEST
    kind = "validation_error"


class NotFoundError(StorefrontError):
    status_code = status.HTTP_404_NOT_FOUND
    kind = "not_found"

    def __init__(self, entity: str, entity_id=None, message: str | None = None):
        if message is None:
            message = f"{entity.capitalize()} not found"
            if entity_id is not None:
                message = f"{entity.capitalize()} {entity_id} not found"
        super().__init__(message, entity=entity, id=entity_id)
        self.entity = entity
        self.entity_id = entity_id


class ConflictError(StorefrontError):
    """Insufficient stock, a duplicated unique value, or a lost stock race."""
    status_code = status.HTTP_409_CONFLICT
    kind = "conflict"


class InsufficientStockError(ConflictError):
    def __init__(self, product_id: int, available: int, requested: int):
        super().__init__(
            "insufficient stock",
            product_id=product_id,
            available=available,
            requested=requested,
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class DuplicateValueError(ConflictError):
    def __init__(self, field: str, value=None):
        super().__init__(f"{field} already registered", field=field)
        self.field = field
        self.value = value


class DependencyError(StorefrontError):
    """An upstream service failed or returned nothing usable."""
    status_code = status.HTTP_502_BAD_GATEWAY
    kind = "dependency_error"


class TransactionError(StorefrontError):
    """
    Persistence failed after writes began. Always raised after rollback and
    always chained (`raise ... from cause`) so the original error survives.
    """
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    kind = "transaction_error"


async def storefront_error_handler(request: Request, exc: StorefrontError):
    if exc.status_code >= 500:
        logger.error(
            "request_failed",
            path=request.url.path,
            kind=exc.kind,
            detail=exc.message,
            cause=repr(exc.__cause__) if exc.__cause__ else None,
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": ValidationError.kind, "detail": "Invalid request body", "errors": errors},
    )


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(StorefrontError, storefront_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
