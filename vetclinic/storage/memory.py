"""
Almacén de documentos en memoria.

Variante "documental" del almacenamiento: cada tabla es una colección de
documentos ``dict`` indexados por id. Agrupa las estadísticas del lado del
cliente (en Python) en lugar de con ``GROUP BY``. Se usa con
``VETCLINIC_STORAGE=memory`` y en los tests.
"""

import logging
import operator
import threading
from contextlib import contextmanager
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..errors import DuplicateKeyError, StorageError
from .base import Filter, GroupStat, OrderBy, Row, Search, Storage, check_operator

logger = logging.getLogger(__name__)

_COMPARE = {
    "eq": operator.eq,
    "lt": operator.lt,
    "lte": operator.le,
    "gt": operator.gt,
    "gte": operator.ge,
}


def _checked(filters: Sequence[Filter]) -> Sequence[Filter]:
    for f in filters:
        check_operator(f.op)
    return filters


def _matches(row: Row, filters: Sequence[Filter]) -> bool:
    for f in filters:
        value = row.get(f.field)
        # Igual que NULL en SQL: una comparación contra None nunca se cumple
        if value is None:
            return False
        if not _COMPARE[f.op](value, f.value):
            return False
    return True


def _matches_search(row: Row, search: Search) -> bool:
    term = search.term.lower()
    return any(
        row.get(field) is not None and term in str(row[field]).lower()
        for field in search.fields
    )


def _sort(rows: List[Row], order_by: OrderBy) -> List[Row]:
    # Ordenaciones estables encadenadas, de la clave menos a la más significativa
    for field, descending in reversed(list(order_by)):
        present = [row for row in rows if row.get(field) is not None]
        missing = [row for row in rows if row.get(field) is None]
        present.sort(key=lambda row: row[field], reverse=descending)
        rows = present + missing
    return rows


class MemoryStorage(Storage):
    def __init__(self, tables: Sequence[str], unique_fields: Optional[Mapping[str, Tuple[str, ...]]] = None):
        self._docs: Dict[str, Dict[int, Row]] = {table: {} for table in tables}
        self._next_id: Dict[str, int] = {table: 1 for table in tables}
        self._unique = dict(unique_fields or {})
        self._lock = threading.RLock()
        # Copia de cada colección tocada dentro de la transacción abierta
        self._undo: Optional[Dict[str, Tuple[Dict[int, Row], int]]] = None

    def _collection(self, table: str) -> Dict[int, Row]:
        try:
            return self._docs[table]
        except KeyError:
            raise StorageError(f"Colección desconocida: {table}") from None

    def _touch(self, table: str) -> Dict[int, Row]:
        """Colección a modificar; la guarda antes si hay una transacción abierta."""
        docs = self._collection(table)
        if self._undo is not None and table not in self._undo:
            # Los documentos se reemplazan, nunca se mutan: basta una copia superficial
            self._undo[table] = (dict(docs), self._next_id[table])
        return docs

    def _check_unique(self, table: str, values: Row, exclude_id: Optional[int] = None) -> None:
        for field in self._unique.get(table, ()):
            value = values.get(field)
            if value is None:
                continue
            for doc_id, doc in self._docs[table].items():
                if doc_id != exclude_id and doc.get(field) == value:
                    logger.warning("Clave duplicada en %s.%s=%r", table, field, value)
                    raise DuplicateKeyError(table, f"{field}={value!r}")

    # --- Lecturas ---
    def get(self, table: str, row_id: int) -> Optional[Row]:
        with self._lock:
            doc = self._collection(table).get(row_id)
            return dict(doc) if doc is not None else None

    def find(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        search: Optional[Search] = None,
        order_by: OrderBy = (),
        offset: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Row]:
        checked = _checked(filters)
        with self._lock:
            rows = [
                dict(doc)
                for doc in self._collection(table).values()
                if _matches(doc, checked) and (search is None or _matches_search(doc, search))
            ]
        rows = _sort(rows, order_by)
        start = offset or 0
        end = start + limit if limit is not None else None
        return rows[start:end]

    def count(self, table: str, filters: Sequence[Filter] = ()) -> int:
        checked = _checked(filters)
        with self._lock:
            return sum(1 for doc in self._collection(table).values() if _matches(doc, checked))

    def group_stats(self, table: str, field: str, sum_field: Optional[str] = None) -> List[GroupStat]:
        counts: Dict[object, int] = {}
        totals: Dict[object, float] = {}
        with self._lock:
            for doc in self._collection(table).values():
                key = doc.get(field)
                counts[key] = counts.get(key, 0) + 1
                if sum_field:
                    totals[key] = totals.get(key, 0.0) + float(doc.get(sum_field) or 0)
        ordered = sorted(counts.items(), key=lambda item: (-item[1], str(item[0])))
        return [
            GroupStat(value, count, totals[value] if sum_field else None)
            for value, count in ordered
        ]

    # --- Escrituras ---
    def insert(self, table: str, values: Row) -> Row:
        with self._lock:
            docs = self._touch(table)
            doc = dict(values)
            row_id = doc.get("id")
            if row_id is None:
                row_id = self._next_id[table]
            elif row_id in docs:
                raise DuplicateKeyError(table, f"id={row_id!r}")
            self._check_unique(table, doc)
            doc["id"] = row_id
            docs[row_id] = doc
            self._next_id[table] = max(self._next_id[table], row_id + 1)
            return dict(doc)

    def update(self, table: str, row_id: int, values: Row) -> Optional[Row]:
        with self._lock:
            docs = self._touch(table)
            if row_id not in docs:
                return None
            merged = {**docs[row_id], **values, "id": row_id}
            self._check_unique(table, merged, exclude_id=row_id)
            docs[row_id] = merged
            return dict(merged)

    def delete(self, table: str, row_id: int) -> bool:
        with self._lock:
            return self._touch(table).pop(row_id, None) is not None

    def delete_where(self, table: str, filters: Sequence[Filter]) -> int:
        checked = _checked(filters)
        with self._lock:
            docs = self._touch(table)
            doomed = [doc_id for doc_id, doc in docs.items() if _matches(doc, checked)]
            for doc_id in doomed:
                del docs[doc_id]
            return len(doomed)

    @contextmanager
    def transaction(self):
        with self._lock:
            if self._undo is not None:
                # Anidada: la transacción exterior deshace todo si algo falla
                yield self
                return
            self._undo = {}
            try:
                yield self
            except Exception:
                for table, (docs, next_id) in self._undo.items():
                    self._docs[table] = docs
                    self._next_id[table] = next_id
                raise
            finally:
                self._undo = None
