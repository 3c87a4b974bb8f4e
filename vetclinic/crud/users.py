"""
Usuarios del sistema. La contraseña se guarda con hash bcrypt y nunca sale
de este módulo: todas las lecturas pasan por ``_public``.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from .. import auth, schemas
from ..errors import ConflictError, DuplicateKeyError
from ..storage import Row, Search, Storage, eq
from .common import USERS, counts, now, paginate as paginate_table

logger = logging.getLogger(__name__)

ROLES = {
    "Administrador": 1,
    "Veterinario": 2,
    "Recepcionista": 3,
    "Asistente": 4,
}
ROLE_NAMES = {role_id: name for name, role_id in ROLES.items()}

NEWEST_FIRST = (("fecha_creacion", True), ("id", True))


def _public(user: Optional[Row]) -> Optional[Row]:
    if user is None:
        return None
    user = dict(user)
    user.pop("password", None)
    user["rol_name"] = ROLE_NAMES.get(user.get("rol"))
    return user

def _values(user, **extra) -> Row:
    values = user.model_dump(exclude_unset=True, exclude={"rol_name", "password"})
    if user.rol_name is not None:
        values["rol"] = ROLES[user.rol_name]
    if user.password is not None:
        values["password"] = auth.get_password_hash(user.password)
    values.update(extra)
    return values


def find_all(store: Storage) -> List[Row]:
    return [_public(user) for user in store.find(USERS, order_by=NEWEST_FIRST)]

def find_by_id(store: Storage, user_id: int) -> Optional[Row]:
    return _public(store.get(USERS, user_id))

def find_by_email(store: Storage, email: str) -> Optional[Row]:
    return _public(store.find_one(USERS, [eq("email", email.lower())]))

def search_by_name(store: Storage, term: str) -> List[Row]:
    rows = store.find(USERS, search=Search(("nombre",), term), order_by=(("nombre", False),))
    return [_public(user) for user in rows]

def paginate(store: Storage, page: Optional[int] = None, limit: Optional[int] = None) -> Tuple[List[Row], Dict[str, Any]]:
    rows, pagination = paginate_table(store, USERS, "totalUsers", page, limit, order_by=NEWEST_FIRST)
    return [_public(user) for user in rows], pagination

def count(store: Storage) -> int:
    return store.count(USERS)


def verify_credentials(store: Storage, email: str, password: str) -> Optional[Row]:
    """Devuelve el usuario (sin contraseña) si email y contraseña coinciden."""
    user = store.find_one(USERS, [eq("email", email.lower())])
    if user is None or not auth.verify_password(password, user["password"]):
        return None
    return _public(user)


def create(store: Storage, user: schemas.UserCreate) -> Row:
    timestamp = now()
    values = _values(user, fecha_creacion=timestamp, fecha_actualizacion=timestamp)
    # status por defecto no aparece en exclude_unset
    values.setdefault("status", user.status)
    try:
        created = store.insert(USERS, values)
    except DuplicateKeyError as exc:
        raise ConflictError("El email ya está registrado", field="email") from exc
    logger.info("Usuario %s creado con rol %s", created["id"], user.rol_name)
    return _public(created)


def update(store: Storage, user_id: int, user: schemas.UserUpdate) -> Optional[Row]:
    values = _values(user, fecha_actualizacion=now())
    try:
        return _public(store.update(USERS, user_id, values))
    except DuplicateKeyError as exc:
        raise ConflictError("El email ya está registrado en otro usuario", field="email") from exc


def delete(store: Storage, user_id: int) -> bool:
    return store.delete(USERS, user_id)


def stats(store: Storage) -> Dict[str, Any]:
    by_role = {
        ROLE_NAMES.get(stat.value, str(stat.value)): stat.count
        for stat in store.group_stats(USERS, "rol")
    }
    return {
        "totalUsers": store.count(USERS),
        "byRole": by_role,
        "byStatus": counts(store.group_stats(USERS, "status")),
    }
