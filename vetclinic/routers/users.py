from typing import Optional

from fastapi import APIRouter, Path, Query, status
from starlette.requests import Request

from .. import crud, schemas
from ..crud.common import search_pagination
from ..dependencies import StorageDep
from ..errors import BadRequestError, ConflictError, NotFoundError
from ..limiter import RATE_LIMIT, limiter
from ..responses import success_response
from ..storage import Storage

router = APIRouter(prefix="/users", tags=["Users"])

UserResponse = schemas.ApiResponse[schemas.User]
UserListResponse = schemas.ApiResponse[schemas.UserList]
StatsResponse = schemas.ApiResponse[schemas.Stats]


def get_user_or_404(store: Storage, user_id: int):
    db_user = crud.users.find_by_id(store, user_id)
    if db_user is None:
        raise NotFoundError("Usuario no encontrado")
    return db_user


@router.get("/", response_model=UserListResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def read_users(
    request: Request,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    search: Optional[str] = Query(None, max_length=100),
    store: Storage = StorageDep,
):
    if search and search.strip():
        users = crud.users.search_by_name(store, search.strip())
        pagination = search_pagination(len(users), "totalUsers")
    else:
        users, pagination = crud.users.paginate(store, page, limit)
    return success_response("Usuarios obtenidos correctamente", users, pagination=pagination)


@router.get("/search", response_model=UserListResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def search_users(request: Request, q: Optional[str] = Query(None, max_length=100), store: Storage = StorageDep):
    if not q or not q.strip():
        raise BadRequestError("El parámetro de búsqueda es requerido", field="q")
    users = crud.users.search_by_name(store, q.strip())
    return success_response("Búsqueda completada", users, count=len(users))


@router.get("/stats", response_model=StatsResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def read_user_stats(request: Request, store: Storage = StorageDep):
    return success_response("Estadísticas obtenidas correctamente", crud.users.stats(store))


@router.get("/{user_id}", response_model=UserResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def read_user(request: Request, user_id: int = Path(..., ge=1), store: Storage = StorageDep):
    return success_response("Usuario obtenido correctamente", get_user_or_404(store, user_id))


@router.post("/", response_model=UserResponse, response_model_exclude_unset=True, status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMIT)
def create_user(request: Request, user: schemas.UserCreate, store: Storage = StorageDep):
    if crud.users.find_by_email(store, user.email):
        raise ConflictError("El email ya está registrado", field="email")
    return success_response("Usuario creado correctamente", crud.users.create(store, user))


@router.put("/{user_id}", response_model=UserResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def update_user(request: Request, user: schemas.UserUpdate, user_id: int = Path(..., ge=1), store: Storage = StorageDep):
    db_user = get_user_or_404(store, user_id)
    if user.email and user.email != db_user["email"]:
        other = crud.users.find_by_email(store, user.email)
        if other and other["id"] != user_id:
            raise ConflictError("El email ya está registrado en otro usuario", field="email")
    updated = crud.users.update(store, user_id, user)
    if updated is None:
        raise NotFoundError("Usuario no encontrado")
    return success_response("Usuario actualizado correctamente", updated)


@router.delete("/{user_id}", response_model=schemas.MessageResponse)
@limiter.limit(RATE_LIMIT)
def delete_user(request: Request, user_id: int = Path(..., ge=1), store: Storage = StorageDep):
    if not crud.users.delete(store, user_id):
        raise NotFoundError("Usuario no encontrado")
    return success_response("Usuario eliminado correctamente")
