"""
Jerarquía de excepciones de la clínica.

Cada excepción de dominio lleva el código HTTP con el que se responde; los
manejadores de ``vetclinic.middleware`` las convierten en el sobre JSON
``{success, message, ...}``.
"""

from typing import Optional


class VetClinicError(Exception):
    """Base de todas las excepciones del paquete."""

    status_code = 500

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class BadRequestError(VetClinicError):
    status_code = 400


class InvalidReferenceError(BadRequestError):
    """El registro referenciado (dueño, paciente) no existe."""


class NotFoundError(VetClinicError):
    status_code = 404


class ConflictError(VetClinicError):
    """Violación de unicidad: email, microchip o ID repetido."""

    status_code = 409


class StorageError(VetClinicError):
    """Fallo del almacenamiento subyacente (conexión, consulta inesperada)."""

    status_code = 500


class DuplicateKeyError(StorageError):
    """Un insert o update chocó con una restricción UNIQUE."""

    status_code = 409

    def __init__(self, table: str, detail: str = ""):
        super().__init__(f"Registro duplicado en '{table}'")
        self.table = table
        self.detail = detail
