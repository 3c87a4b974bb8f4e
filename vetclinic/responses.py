"""Construcción del sobre JSON ``{success, message, data, ...}``."""

from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse


def success_response(message: str, data: Any = None, **extra: Any) -> Dict[str, Any]:
    """
    Sobre de éxito. Solo incluye las claves que se pasan, así ``data``,
    ``pagination`` o ``count`` no aparecen cuando no aplican.
    """
    payload: Dict[str, Any] = {"success": True, "message": message}
    if data is not None:
        payload["data"] = data
    for key, value in extra.items():
        if value is not None:
            payload[key] = value
    return payload


def error_response(
    status_code: int, message: str, error: Optional[str] = None, **extra: Any
) -> JSONResponse:
    payload: Dict[str, Any] = {"success": False, "message": message}
    if error is not None:
        payload["error"] = error
    payload.update({key: value for key, value in extra.items() if value is not None})
    return JSONResponse(status_code=status_code, content=payload)
