import logging
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from .. import schemas
from ..storage import Row, Search, Storage, eq
from . import patients
from .common import (APPOINTMENTS, CLIENTS, PATIENTS, counts, now,
                     paginate as paginate_table)

logger = logging.getLogger(__name__)

COMPLETED = "Completada"
NEWEST_FIRST = (("date", True), ("time", True), ("id", True))


def _with_patient(store: Storage, appointment: Row) -> Row:
    """Campos de presentación: paciente, especie y dueño."""
    patient = store.get(PATIENTS, appointment["patient_id"])
    owner = store.get(CLIENTS, patient["owner_id"]) if patient else None
    appointment.update(
        patient_name=patient["name"] if patient else None,
        species=patient["species"] if patient else None,
        owner_name=owner["name"] if owner else None,
    )
    return appointment

def _expand(store: Storage, rows: List[Row]) -> List[Row]:
    return [_with_patient(store, row) for row in rows]


def find_all(store: Storage) -> List[Row]:
    return _expand(store, store.find(APPOINTMENTS, order_by=NEWEST_FIRST))

def find_by_id(store: Storage, appointment_id: int) -> Optional[Row]:
    appointment = store.get(APPOINTMENTS, appointment_id)
    return _with_patient(store, appointment) if appointment else None

def find_by_patient(store: Storage, patient_id: int) -> List[Row]:
    return _expand(store, store.find(APPOINTMENTS, [eq("patient_id", patient_id)], order_by=NEWEST_FIRST))

def find_by_date(store: Storage, day: date) -> List[Row]:
    rows = store.find(APPOINTMENTS, [eq("date", day)], order_by=(("time", False), ("id", False)))
    return _expand(store, rows)

def find_by_status(store: Storage, status: str) -> List[Row]:
    return _expand(store, store.find(APPOINTMENTS, [eq("status", status)], order_by=NEWEST_FIRST))

def search_by_name(store: Storage, term: str) -> List[Row]:
    rows = store.find(
        APPOINTMENTS,
        search=Search(("veterinarian", "notes"), term),
        order_by=(("veterinarian", False), ("id", False)),
    )
    return _expand(store, rows)

def paginate(store: Storage, page: Optional[int] = None, limit: Optional[int] = None) -> Tuple[List[Row], Dict[str, Any]]:
    rows, pagination = paginate_table(
        store, APPOINTMENTS, "totalAppointments", page, limit, order_by=NEWEST_FIRST
    )
    return _expand(store, rows), pagination

def count(store: Storage) -> int:
    return store.count(APPOINTMENTS)

def count_by_date(store: Storage, day: date) -> int:
    return store.count(APPOINTMENTS, [eq("date", day)])


def create(store: Storage, appointment: schemas.AppointmentCreate) -> Row:
    values = appointment.model_dump()
    values["created_date"] = values["updated_date"] = now()
    with store.transaction():
        created = store.insert(APPOINTMENTS, values)
        if created["status"] == COMPLETED:
            patients.record_visit(store, created["patient_id"], created["date"])
    logger.info("Cita %s creada (paciente %s)", created["id"], created["patient_id"])
    return _with_patient(store, created)


def update(store: Storage, appointment_id: int, appointment: schemas.AppointmentCreate) -> Optional[Row]:
    values = appointment.model_dump()
    values["updated_date"] = now()
    with store.transaction():
        updated = store.update(APPOINTMENTS, appointment_id, values)
        if updated is not None and updated["status"] == COMPLETED:
            patients.record_visit(store, updated["patient_id"], updated["date"])
    return _with_patient(store, updated) if updated else None


def delete(store: Storage, appointment_id: int) -> bool:
    return store.delete(APPOINTMENTS, appointment_id)


def stats(store: Storage) -> Dict[str, Any]:
    return {
        "totalAppointments": store.count(APPOINTMENTS),
        "todayAppointments": count_by_date(store, date.today()),
        "byType": counts(store.group_stats(APPOINTMENTS, "type")),
        "byStatus": counts(store.group_stats(APPOINTMENTS, "status")),
    }
