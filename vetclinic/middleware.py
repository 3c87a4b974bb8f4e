"""
Middleware y manejadores de excepciones.

Todas las respuestas de error usan el mismo sobre que las de éxito:
``{"success": false, "message": ..., ["error" | "errors" | "field"]}``.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from .errors import VetClinicError
from .responses import error_response

logger = logging.getLogger(__name__)

JSON_METHODS = ("POST", "PUT", "PATCH")
VALUE_ERROR_PREFIX = "Value error, "


def _field(loc) -> str:
    # ("body", "ownerId") -> "ownerId"; ("path", "client_id") -> "client_id"
    parts = [str(part) for part in loc[1:]] or [str(part) for part in loc]
    return ".".join(parts)


def _is_path_id(loc) -> bool:
    return len(loc) == 2 and loc[0] == "path" and str(loc[1]).endswith("_id")


def _message(error) -> str:
    message = error.get("msg", "")
    if message.startswith(VALUE_ERROR_PREFIX):
        message = message[len(VALUE_ERROR_PREFIX):]
    return message


async def require_json(request: Request, call_next):
    if request.method in JSON_METHODS:
        content_type = request.headers.get("content-type", "")
        if not content_type.split(";")[0].strip().lower() == "application/json":
            return error_response(400, "Content-Type debe ser application/json")
    return await call_next(request)


async def vetclinic_error_handler(request: Request, exc: VetClinicError):
    if exc.status_code >= 500:
        logger.error("%s %s: %s", request.method, request.url.path, exc.message)
        return error_response(500, "Error interno del servidor", error=exc.message)
    return error_response(exc.status_code, exc.message, field=exc.field)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if any(error.get("type") == "json_invalid" for error in errors):
        return error_response(
            400, "JSON malformado", error="La estructura del JSON enviado no es válida"
        )

    if errors and all(_is_path_id(error["loc"]) for error in errors):
        return error_response(400, "El ID debe ser un número válido")

    details = [
        {
            "field": _field(error["loc"]),
            "message": _message(error),
            # En un campo ausente "input" es el cuerpo entero
            "value": None if error.get("type") == "missing" else error.get("input"),
        }
        for error in errors
    ]
    return error_response(400, "Errores de validación", errors=jsonable_encoder(details))


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail))


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Error no controlado en %s %s", request.method, request.url.path)
    return error_response(500, "Error interno del servidor", error=str(exc))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(VetClinicError, vetclinic_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
