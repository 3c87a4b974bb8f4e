"""
Piezas compartidas por los módulos de acceso a datos: nombres de tabla,
paginación y agregados.
"""

import math
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from ..storage import GroupStat, Row, Storage

# Nombres de tabla
CLIENTS = "clients"
PATIENTS = "patients"
VISITS = "visits"
VACCINATIONS = "vaccinations"
APPOINTMENTS = "appointments"
USERS = "users"

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def now() -> datetime:
    return datetime.now().replace(microsecond=0)


def clamp(page: Optional[int], limit: Optional[int]) -> Tuple[int, int]:
    """Normaliza page >= 1 y limit dentro de [1, MAX_LIMIT]."""
    page = DEFAULT_PAGE if page is None else max(page, 1)
    limit = DEFAULT_LIMIT if limit is None else min(max(limit, 1), MAX_LIMIT)
    return page, limit


def build_pagination(page: int, limit: int, total: int, label: str) -> Dict[str, Any]:
    """
    Metadatos de paginación. ``label`` es el nombre del contador total
    (``totalClients``, ``totalPatients``...).
    """
    total_pages = math.ceil(total / limit)
    return {
        "currentPage": page,
        "totalPages": total_pages,
        label: total,
        "hasNextPage": page < total_pages,
        "hasPrevPage": page > 1,
        "limit": limit,
    }


def search_pagination(total: int, label: str) -> Dict[str, Any]:
    """Una búsqueda devuelve todo en una sola página."""
    return {
        "currentPage": 1,
        "totalPages": 1,
        label: total,
        "hasNextPage": False,
        "hasPrevPage": False,
    }


def paginate(
    store: Storage,
    table: str,
    label: str,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    order_by=(),
) -> Tuple[List[Row], Dict[str, Any]]:
    page, limit = clamp(page, limit)
    total = store.count(table)
    rows = store.find(table, order_by=order_by, offset=(page - 1) * limit, limit=limit)
    return rows, build_pagination(page, limit, total, label)


def counts(stats: List[GroupStat]) -> Dict[str, int]:
    """``[(valor, conteo), ...]`` a ``{valor: conteo}`` conservando el orden."""
    return {str(stat.value): stat.count for stat in stats if stat.value is not None}
