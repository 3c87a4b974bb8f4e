import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple

from .. import schemas
from ..storage import Filter, Row, Search, Storage, eq
from . import patients
from .common import CLIENTS, PATIENTS, VACCINATIONS, now, paginate as paginate_table

logger = logging.getLogger(__name__)

NEWEST_FIRST = (("date", True), ("id", True))
DUE_SOONEST = (("next_due", False), ("id", False))
DEFAULT_UPCOMING_DAYS = 30


def _with_owner(store: Storage, vaccination: Row) -> Row:
    """Añade nombre y especie del paciente, y nombre y teléfono del dueño."""
    patient = store.get(PATIENTS, vaccination["patient_id"])
    owner = store.get(CLIENTS, patient["owner_id"]) if patient else None
    vaccination.update(
        patient_name=patient["name"] if patient else None,
        species=patient["species"] if patient else None,
        owner_name=owner["name"] if owner else None,
        owner_phone=owner["phone"] if owner else None,
    )
    return vaccination


def find_all(store: Storage) -> List[Row]:
    return store.find(VACCINATIONS, order_by=NEWEST_FIRST)

def find_by_id(store: Storage, vaccination_id: int) -> Optional[Row]:
    return store.get(VACCINATIONS, vaccination_id)

def find_by_patient(store: Storage, patient_id: int) -> List[Row]:
    return store.find(VACCINATIONS, [eq("patient_id", patient_id)], order_by=NEWEST_FIRST)

def search_by_name(store: Storage, term: str) -> List[Row]:
    return store.find(
        VACCINATIONS,
        search=Search(("vaccine", "veterinarian"), term),
        order_by=(("vaccine", False), ("id", False)),
    )

def paginate(store: Storage, page: Optional[int] = None, limit: Optional[int] = None) -> Tuple[List[Row], Dict[str, Any]]:
    return paginate_table(store, VACCINATIONS, "totalVaccinations", page, limit, order_by=NEWEST_FIRST)

def count(store: Storage) -> int:
    return store.count(VACCINATIONS)


def get_upcoming(store: Storage, days: int = DEFAULT_UPCOMING_DAYS) -> List[Row]:
    """Vacunas que vencen entre hoy y dentro de ``days`` días, la más próxima primero."""
    today = date.today()
    rows = store.find(
        VACCINATIONS,
        [Filter("next_due", "gte", today), Filter("next_due", "lte", today + timedelta(days=days))],
        order_by=DUE_SOONEST,
    )
    return [_with_owner(store, row) for row in rows]


def get_overdue(store: Storage) -> List[Row]:
    """Vacunas vencidas, con los días de retraso."""
    today = date.today()
    rows = store.find(VACCINATIONS, [Filter("next_due", "lt", today)], order_by=DUE_SOONEST)
    overdue = []
    for row in rows:
        row = _with_owner(store, row)
        row["days_overdue"] = (today - row["next_due"]).days
        overdue.append(row)
    return overdue


def create(store: Storage, vaccination: schemas.VaccinationCreate) -> Row:
    values = vaccination.model_dump()
    values["created_date"] = values["updated_date"] = now()
    with store.transaction():
        created = store.insert(VACCINATIONS, values)
        patients.record_visit(store, created["patient_id"], created["date"], only_if_later=True)
    logger.info("Vacunación %s creada (paciente %s)", created["id"], created["patient_id"])
    return created


def update(store: Storage, vaccination_id: int, vaccination: schemas.VaccinationCreate) -> Optional[Row]:
    # Corregir una vacunación no mueve last_visit del paciente
    values = vaccination.model_dump()
    values["updated_date"] = now()
    return store.update(VACCINATIONS, vaccination_id, values)


def delete(store: Storage, vaccination_id: int) -> bool:
    return store.delete(VACCINATIONS, vaccination_id)


def stats(store: Storage) -> Dict[str, Any]:
    today = date.today()
    upcoming_until = today + timedelta(days=DEFAULT_UPCOMING_DAYS)
    return {
        "totalVaccinations": store.count(VACCINATIONS),
        "upcomingCount": store.count(
            VACCINATIONS, [Filter("next_due", "gte", today), Filter("next_due", "lte", upcoming_until)]
        ),
        "overdueCount": store.count(VACCINATIONS, [Filter("next_due", "lt", today)]),
    }
