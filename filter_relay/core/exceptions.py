import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = structlog.get_logger()


class AppError(Exception):
    """Error that maps directly onto an HTTP response envelope."""

    def __init__(self, status_code: int, error: str, message: str | None = None) -> None:
        super().__init__(message or error)
        self.status_code = status_code
        self.error = error
        self.message = message

    def to_body(self) -> dict[str, str]:
        body = {"error": self.error}
        if self.message is not None:
            body["message"] = self.message
        return body


class BadRequestError(AppError):
    def __init__(self, error: str, message: str | None = None) -> None:
        super().__init__(status_code=400, error=error, message=message)


class UpstreamFailure(AppError):
    def __init__(self, message: str) -> None:
        super().__init__(status_code=500, error="Image processing failed", message=message)


class StorageError(Exception):
    pass


class InvalidHandle(StorageError, ValueError):
    pass


class StorageUnavailable(StorageError):
    pass


class ObjectNotFound(StorageError):
    pass


class NotificationError(Exception):
    pass


class NoTokenForUser(NotificationError):
    def __init__(self, user_id: str) -> None:
        super().__init__(f"No device token registered for user {user_id}")
        self.user_id = user_id


class DeliveryFailure(NotificationError):
    def __init__(self, message: str, attempts: int) -> None:
        super().__init__(message)
        self.attempts = attempts


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [{k: v for k, v in err.items() if k not in ("url", "ctx", "input")} for err in exc.errors()]
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(errors)})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_error_handler)
