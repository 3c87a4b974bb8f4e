"""Adaptador relacional sobre una ``Session`` de SQLAlchemy."""

import logging
from contextlib import contextmanager
from typing import List, Optional, Sequence

from sqlalchemy import func, or_, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models
from ..errors import DuplicateKeyError, StorageError
from .base import Filter, GroupStat, OrderBy, Row, Search, Storage, check_operator

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION_CODES = ("23505", "1062")  # PostgreSQL, MySQL


def _is_unique_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code is None and getattr(orig, "args", None):
        code = str(orig.args[0])
    if code in UNIQUE_VIOLATION_CODES:
        return True
    text = str(orig).lower()
    return "unique" in text or "duplicate" in text


def _to_dict(obj) -> Row:
    return {column.name: getattr(obj, column.name) for column in obj.__table__.columns}


class SqlStorage(Storage):
    def __init__(self, db: Session):
        self.db = db
        self._depth = 0

    # --- Utils ---
    def _model(self, table: str):
        try:
            return models.TABLES[table]
        except KeyError:
            raise StorageError(f"Tabla desconocida: {table}") from None

    def _column(self, model, field: str):
        column = getattr(model, field, None)
        if column is None:
            raise StorageError(f"Columna desconocida: {model.__tablename__}.{field}")
        return column

    def _apply_filters(self, query, model, filters: Sequence[Filter]):
        for f in filters:
            check_operator(f.op)
            column = self._column(model, f.field)
            if f.op == "eq":
                query = query.filter(column == f.value)
            elif f.op == "lt":
                query = query.filter(column < f.value)
            elif f.op == "lte":
                query = query.filter(column <= f.value)
            elif f.op == "gt":
                query = query.filter(column > f.value)
            else:
                query = query.filter(column >= f.value)
        return query

    @contextmanager
    def _write(self, table: str, action: str):
        """Confirma al salir, salvo dentro de una transacción abierta."""
        try:
            yield
            self.db.flush()
            if not self._depth:
                self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if _is_unique_violation(exc):
                logger.warning("Clave duplicada en %s.%s: %s", table, action, exc.orig)
                raise DuplicateKeyError(table, str(exc.orig)) from exc
            logger.exception("Error de integridad en %s.%s", table, action)
            raise StorageError(str(exc.orig)) from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Error en %s.%s", table, action)
            raise StorageError(str(exc)) from exc

    @contextmanager
    def _read(self, table: str, action: str):
        try:
            yield
        except SQLAlchemyError as exc:
            logger.exception("Error en %s.%s", table, action)
            raise StorageError(str(exc)) from exc

    def _sync_sequence(self, table: str) -> None:
        """Tras un insert con id explícito, la secuencia de PostgreSQL debe seguir a MAX(id)."""
        if self.db.get_bind().dialect.name != "postgresql":
            return
        self.db.flush()
        self.db.execute(text(
            f"SELECT setval(pg_get_serial_sequence('{table}', 'id'), (SELECT MAX(id) FROM {table}))"
        ))

    # --- Lecturas ---
    def get(self, table: str, row_id: int) -> Optional[Row]:
        model = self._model(table)
        with self._read(table, "get"):
            obj = self.db.get(model, row_id)
        return _to_dict(obj) if obj is not None else None

    def find(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        search: Optional[Search] = None,
        order_by: OrderBy = (),
        offset: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Row]:
        model = self._model(table)
        query = self._apply_filters(self.db.query(model), model, filters)
        if search is not None:
            pattern = f"%{search.term}%"
            query = query.filter(
                or_(*[self._column(model, field).ilike(pattern) for field in search.fields])
            )
        for field, descending in order_by:
            column = self._column(model, field)
            query = query.order_by(column.desc() if descending else column.asc())
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        with self._read(table, "find"):
            return [_to_dict(obj) for obj in query.all()]

    def count(self, table: str, filters: Sequence[Filter] = ()) -> int:
        model = self._model(table)
        query = self._apply_filters(self.db.query(func.count(model.id)), model, filters)
        with self._read(table, "count"):
            return query.scalar() or 0

    def group_stats(self, table: str, field: str, sum_field: Optional[str] = None) -> List[GroupStat]:
        model = self._model(table)
        column = self._column(model, field)
        counted = func.count(model.id)
        columns = [column, counted]
        if sum_field:
            columns.append(func.coalesce(func.sum(self._column(model, sum_field)), 0))
        query = self.db.query(*columns).group_by(column).order_by(counted.desc(), column)
        with self._read(table, "group_stats"):
            rows = query.all()
        if sum_field:
            return [GroupStat(value, count, float(total)) for value, count, total in rows]
        return [GroupStat(value, count) for value, count in rows]

    # --- Escrituras ---
    def insert(self, table: str, values: Row) -> Row:
        obj = self._model(table)(**values)
        with self._write(table, "insert"):
            self.db.add(obj)
            if values.get("id") is not None:
                self._sync_sequence(table)
        self.db.refresh(obj)
        return _to_dict(obj)

    def update(self, table: str, row_id: int, values: Row) -> Optional[Row]:
        obj = self.db.get(self._model(table), row_id)
        if obj is None:
            return None
        with self._write(table, "update"):
            for key, value in values.items():
                setattr(obj, key, value)
        self.db.refresh(obj)
        return _to_dict(obj)

    def delete(self, table: str, row_id: int) -> bool:
        obj = self.db.get(self._model(table), row_id)
        if obj is None:
            return False
        with self._write(table, "delete"):
            self.db.delete(obj)
        return True

    def delete_where(self, table: str, filters: Sequence[Filter]) -> int:
        model = self._model(table)
        query = self._apply_filters(self.db.query(model), model, filters)
        with self._write(table, "delete_where"):
            deleted = query.delete(synchronize_session=False)
        return deleted

    @contextmanager
    def transaction(self):
        self._depth += 1
        try:
            yield self
        except Exception:
            self._depth -= 1
            if not self._depth:
                self.db.rollback()
            raise
        self._depth -= 1
        if not self._depth:
            try:
                self.db.commit()
            except SQLAlchemyError as exc:
                self.db.rollback()
                logger.exception("Error al confirmar la transacción")
                raise StorageError(str(exc)) from exc
