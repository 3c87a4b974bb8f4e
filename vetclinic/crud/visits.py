import logging
from typing import Any, Dict, List, Optional, Tuple

from .. import schemas
from ..storage import Row, Search, Storage, eq
from . import patients
from .common import VISITS, now, paginate as paginate_table

logger = logging.getLogger(__name__)

NEWEST_FIRST = (("date", True), ("id", True))


def find_all(store: Storage) -> List[Row]:
    return store.find(VISITS, order_by=NEWEST_FIRST)

def find_by_id(store: Storage, visit_id: int) -> Optional[Row]:
    return store.get(VISITS, visit_id)

def find_by_patient(store: Storage, patient_id: int) -> List[Row]:
    return store.find(VISITS, [eq("patient_id", patient_id)], order_by=NEWEST_FIRST)

def search_by_name(store: Storage, term: str) -> List[Row]:
    return store.find(
        VISITS,
        search=Search(("veterinarian", "diagnosis"), term),
        order_by=(("veterinarian", False), ("id", False)),
    )

def paginate(store: Storage, page: Optional[int] = None, limit: Optional[int] = None) -> Tuple[List[Row], Dict[str, Any]]:
    return paginate_table(store, VISITS, "totalVisits", page, limit, order_by=NEWEST_FIRST)

def count(store: Storage) -> int:
    return store.count(VISITS)


def create(store: Storage, visit: schemas.VisitCreate) -> Row:
    values = visit.model_dump()
    values["created_date"] = values["updated_date"] = now()
    with store.transaction():
        created = store.insert(VISITS, values)
        patients.record_visit(store, created["patient_id"], created["date"])
    logger.info("Visita %s creada (paciente %s)", created["id"], created["patient_id"])
    return created


def update(store: Storage, visit_id: int, visit: schemas.VisitCreate) -> Optional[Row]:
    values = visit.model_dump()
    values["updated_date"] = now()
    with store.transaction():
        updated = store.update(VISITS, visit_id, values)
        if updated is not None:
            patients.record_visit(store, updated["patient_id"], updated["date"])
    return updated


def delete(store: Storage, visit_id: int) -> bool:
    return store.delete(VISITS, visit_id)


def stats(store: Storage) -> Dict[str, Any]:
    by_type = {}
    for stat in store.group_stats(VISITS, "type", sum_field="cost"):
        revenue = round(stat.total or 0.0, 2)
        by_type[stat.value] = {
            "count": stat.count,
            "totalRevenue": revenue,
            "avgCost": round(revenue / stat.count, 2) if stat.count else 0.0,
        }
    return {"totalVisits": store.count(VISITS), "byType": by_type}
