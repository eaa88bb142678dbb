from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from native_histograms.core.request_context import request_id_ctx_var


class InvalidObservation(ValueError):
    def __init__(self, histogram: str, value) -> None:
        super().__init__(f"invalid observation {value!r} for histogram {histogram}: expected a finite value >= 0")
        self.histogram = histogram
        self.value = value


class ListenerStartupFailure(RuntimeError):
    pass


class ShutdownTimeout(TimeoutError):
    pass


def _error_payload(code: str, message: str, detail):
    return {
        "error": {
            "code": code,
            "message": message,
            "detail": detail,
        },
        "detail": detail,
        "request_id": request_id_ctx_var.get(),
    }


async def http_exception_handler(_: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_payload(
            code=f"http_{exc.status_code}",
            message=str(exc.detail),
            detail=exc.detail,
        ),
        headers=exc.headers,
    )


async def validation_exception_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_payload(
            code="validation_error",
            message="Request validation failed",
            detail=exc.errors(),
        ),
    )


def timeout_response(timeout_seconds: float) -> JSONResponse:
    detail = f"Request did not complete within {timeout_seconds:g} seconds"
    return JSONResponse(
        status_code=status.HTTP_504_GATEWAY_TIMEOUT,
        content=_error_payload(code="http_504", message=detail, detail=detail),
    )
