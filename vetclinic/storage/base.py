"""
Contrato común de almacenamiento.

Los módulos de ``vetclinic.crud`` solo hablan con esta interfaz, de modo que
la misma lógica de negocio funciona sobre la base relacional (``SqlStorage``)
o sobre el almacén de documentos en memoria (``MemoryStorage``).

Las filas viajan como ``dict`` con las claves en snake_case, iguales a los
nombres de columna de ``vetclinic.models``.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple

Row = Dict[str, Any]

OPERATORS = ("eq", "lt", "lte", "gt", "gte")


class Filter(NamedTuple):
    field: str
    op: str
    value: Any


class Search(NamedTuple):
    """Coincidencia parcial, sin distinguir mayúsculas, en cualquiera de ``fields``."""

    fields: Tuple[str, ...]
    term: str


class GroupStat(NamedTuple):
    value: Any
    count: int
    total: Optional[float] = None


# (campo, descendente)
OrderBy = Sequence[Tuple[str, bool]]


def eq(field: str, value: Any) -> Filter:
    return Filter(field, "eq", value)


class Storage(ABC):
    """Adaptador de almacenamiento; una instancia por petición (o compartida)."""

    @abstractmethod
    def get(self, table: str, row_id: int) -> Optional[Row]:
        ...

    @abstractmethod
    def find(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        search: Optional[Search] = None,
        order_by: OrderBy = (),
        offset: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Row]:
        ...

    def find_one(self, table: str, filters: Sequence[Filter]) -> Optional[Row]:
        rows = self.find(table, filters=filters, limit=1)
        return rows[0] if rows else None

    @abstractmethod
    def count(self, table: str, filters: Sequence[Filter] = ()) -> int:
        ...

    @abstractmethod
    def insert(self, table: str, values: Row) -> Row:
        """Inserta y devuelve la fila persistida. Lanza DuplicateKeyError."""

    @abstractmethod
    def update(self, table: str, row_id: int, values: Row) -> Optional[Row]:
        """Actualiza y devuelve la fila, o None si no existe. Lanza DuplicateKeyError."""

    @abstractmethod
    def delete(self, table: str, row_id: int) -> bool:
        """Devuelve True si la fila existía antes de borrarla."""

    @abstractmethod
    def delete_where(self, table: str, filters: Sequence[Filter]) -> int:
        ...

    @abstractmethod
    def group_stats(
        self, table: str, field: str, sum_field: Optional[str] = None
    ) -> List[GroupStat]:
        """Conteo (y suma opcional) agrupado por ``field``, de mayor a menor conteo."""

    @abstractmethod
    def transaction(self) -> AbstractContextManager:
        """Todo lo escrito dentro del bloque se confirma o se deshace junto."""


def check_operator(op: str) -> None:
    if op not in OPERATORS:
        raise ValueError(f"Operador de filtro no soportado: {op}")
