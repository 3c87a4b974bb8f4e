import logging
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from .. import schemas
from ..errors import ConflictError, DuplicateKeyError
from ..storage import Row, Search, Storage, eq
from .common import (APPOINTMENTS, PATIENTS, VACCINATIONS, VISITS, counts, now,
                     paginate as paginate_table)

logger = logging.getLogger(__name__)

NEWEST_FIRST = (("created_date", True), ("id", True))
BY_NAME = (("name", False), ("id", False))


def find_all(store: Storage) -> List[Row]:
    return store.find(PATIENTS, order_by=NEWEST_FIRST)

def find_by_id(store: Storage, patient_id: int) -> Optional[Row]:
    return store.get(PATIENTS, patient_id)

def find_by_owner(store: Storage, owner_id: int) -> List[Row]:
    return store.find(PATIENTS, [eq("owner_id", owner_id)], order_by=BY_NAME)

def find_by_microchip(store: Storage, microchip: str) -> Optional[Row]:
    return store.find_one(PATIENTS, [eq("microchip", microchip)])

def search_by_name(store: Storage, term: str) -> List[Row]:
    return store.find(PATIENTS, search=Search(("name",), term), order_by=BY_NAME)

def paginate(store: Storage, page: Optional[int] = None, limit: Optional[int] = None) -> Tuple[List[Row], Dict[str, Any]]:
    return paginate_table(store, PATIENTS, "totalPatients", page, limit, order_by=NEWEST_FIRST)

def count(store: Storage) -> int:
    return store.count(PATIENTS)


def create(store: Storage, patient: schemas.PatientCreate) -> Row:
    values = patient.model_dump()
    values["created_date"] = values["updated_date"] = now()
    try:
        created = store.insert(PATIENTS, values)
    except DuplicateKeyError as exc:
        raise ConflictError("El microchip ya está registrado", field="microchip") from exc
    logger.info("Paciente %s creado (dueño %s)", created["id"], created["owner_id"])
    return created


def update(store: Storage, patient_id: int, patient: schemas.PatientUpdate) -> Optional[Row]:
    # lastVisit se conserva si no viene en el cuerpo
    values = patient.model_dump(exclude_unset=True)
    values["updated_date"] = now()
    try:
        return store.update(PATIENTS, patient_id, values)
    except DuplicateKeyError as exc:
        raise ConflictError(
            "El microchip ya está registrado en otro paciente", field="microchip"
        ) from exc


def delete(store: Storage, patient_id: int) -> bool:
    """Borra el paciente con sus visitas, vacunaciones y citas."""
    with store.transaction():
        if store.get(PATIENTS, patient_id) is None:
            return False
        for table in (VISITS, VACCINATIONS, APPOINTMENTS):
            store.delete_where(table, [eq("patient_id", patient_id)])
        store.delete(PATIENTS, patient_id)
    logger.info("Paciente %s eliminado", patient_id)
    return True


def record_visit(store: Storage, patient_id: int, visit_date: date, only_if_later: bool = False) -> Optional[Row]:
    """
    Actualiza ``last_visit`` del paciente.

    Con ``only_if_later`` solo avanza la fecha: una fecha anterior a la
    última visita registrada no la modifica.
    """
    patient = store.get(PATIENTS, patient_id)
    if patient is None:
        return None
    current = patient.get("last_visit")
    if only_if_later and current is not None and visit_date <= current:
        return patient
    logger.debug("Paciente %s: last_visit %s -> %s", patient_id, current, visit_date)
    return store.update(PATIENTS, patient_id, {"last_visit": visit_date, "updated_date": now()})


def stats(store: Storage) -> Dict[str, Any]:
    return {
        "totalPatients": store.count(PATIENTS),
        "bySpecies": counts(store.group_stats(PATIENTS, "species")),
        "byStatus": counts(store.group_stats(PATIENTS, "status")),
    }
