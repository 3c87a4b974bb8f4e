import logging
from typing import Any, Dict, List, Optional, Tuple

from .. import schemas
from ..errors import ConflictError, DuplicateKeyError
from ..storage import Row, Search, Storage, eq
from . import patients
from .common import CLIENTS, PATIENTS, counts, now, paginate as paginate_table

logger = logging.getLogger(__name__)

NEWEST_FIRST = (("registration_date", True), ("id", True))
SEARCH_FIELDS = ("name", "email", "phone")


def _conflict(exc: DuplicateKeyError) -> ConflictError:
    # El detalle del motor nombra la columna: "clients.email", "Key (id)=(5)", "email=..."
    if "email" in exc.detail:
        return ConflictError("El email ya está registrado", field="email")
    return ConflictError("El ID ya está registrado", field="id")


def find_all(store: Storage) -> List[Row]:
    return store.find(CLIENTS, order_by=NEWEST_FIRST)

def find_by_id(store: Storage, client_id: int) -> Optional[Row]:
    return store.get(CLIENTS, client_id)

def find_by_email(store: Storage, email: str) -> Optional[Row]:
    return store.find_one(CLIENTS, [eq("email", email.lower())])

def search_by_name(store: Storage, term: str) -> List[Row]:
    """Busca en nombre, email y teléfono."""
    return store.find(CLIENTS, search=Search(SEARCH_FIELDS, term), order_by=(("name", False),))

def paginate(store: Storage, page: Optional[int] = None, limit: Optional[int] = None) -> Tuple[List[Row], Dict[str, Any]]:
    return paginate_table(store, CLIENTS, "totalClients", page, limit, order_by=NEWEST_FIRST)

def count(store: Storage) -> int:
    return store.count(CLIENTS)


def create(store: Storage, client: schemas.ClientCreate) -> Row:
    values = client.model_dump(exclude_none=True)
    values["registration_date"] = now()
    try:
        created = store.insert(CLIENTS, values)
    except DuplicateKeyError as exc:
        raise _conflict(exc) from exc
    logger.info("Cliente %s creado", created["id"])
    return created


def update(store: Storage, client_id: int, client: schemas.ClientUpdate) -> Optional[Row]:
    values = client.model_dump(exclude_unset=True)
    try:
        return store.update(CLIENTS, client_id, values)
    except DuplicateKeyError as exc:
        raise ConflictError("El email ya está registrado en otro cliente", field="email") from exc


def delete(store: Storage, client_id: int) -> bool:
    """Borra el cliente junto con sus pacientes (y el historial de estos)."""
    with store.transaction():
        if store.get(CLIENTS, client_id) is None:
            return False
        for patient in store.find(PATIENTS, [eq("owner_id", client_id)]):
            patients.delete(store, patient["id"])
        store.delete(CLIENTS, client_id)
    logger.info("Cliente %s eliminado", client_id)
    return True


def stats(store: Storage) -> Dict[str, Any]:
    return {
        "totalClients": store.count(CLIENTS),
        "byStatus": counts(store.group_stats(CLIENTS, "status")),
        "byCity": counts(store.group_stats(CLIENTS, "city")),
        "timestamp": now().isoformat(),
    }
