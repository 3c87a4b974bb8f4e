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

router = APIRouter(prefix="/clients", tags=["Clients"])

ClientResponse = schemas.ApiResponse[schemas.Client]
ClientListResponse = schemas.ApiResponse[schemas.ClientList]
StatsResponse = schemas.ApiResponse[schemas.Stats]


def get_client_or_404(store: Storage, client_id: int):
    db_client = crud.clients.find_by_id(store, client_id)
    if db_client is None:
        raise NotFoundError("Cliente no encontrado")
    return db_client


@router.get("/", response_model=ClientListResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def read_clients(
    request: Request,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    search: Optional[str] = Query(None, max_length=100),
    store: Storage = StorageDep,
):
    """Lista paginada. Con ``search`` devuelve todas las coincidencias en una página."""
    if search and search.strip():
        clients = crud.clients.search_by_name(store, search.strip())
        pagination = search_pagination(len(clients), "totalClients")
    else:
        clients, pagination = crud.clients.paginate(store, page, limit)
    return success_response("Clientes obtenidos correctamente", clients, pagination=pagination)


@router.get("/search", response_model=ClientListResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def search_clients(request: Request, q: Optional[str] = Query(None, max_length=100), store: Storage = StorageDep):
    if not q or not q.strip():
        raise BadRequestError("El parámetro de búsqueda es requerido", field="q")
    clients = crud.clients.search_by_name(store, q.strip())
    return success_response("Búsqueda completada", clients, count=len(clients))


@router.get("/stats", response_model=StatsResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def read_client_stats(request: Request, store: Storage = StorageDep):
    return success_response("Estadísticas obtenidas correctamente", crud.clients.stats(store))


@router.get("/{client_id}", response_model=ClientResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def read_client(request: Request, client_id: int = Path(..., ge=1), store: Storage = StorageDep):
    return success_response("Cliente obtenido correctamente", get_client_or_404(store, client_id))


@router.post("/", response_model=ClientResponse, response_model_exclude_unset=True, status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMIT)
def create_client(request: Request, client: schemas.ClientCreate, store: Storage = StorageDep):
    if crud.clients.find_by_email(store, client.email):
        raise ConflictError("El email ya está registrado", field="email")
    if client.id is not None and crud.clients.find_by_id(store, client.id):
        raise ConflictError("El ID ya está registrado", field="id")
    db_client = crud.clients.create(store, client)
    return success_response("Cliente creado correctamente", db_client)


@router.put("/{client_id}", response_model=ClientResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def update_client(request: Request, client: schemas.ClientUpdate, client_id: int = Path(..., ge=1), store: Storage = StorageDep):
    db_client = get_client_or_404(store, client_id)
    if client.email and client.email != db_client["email"]:
        other = crud.clients.find_by_email(store, client.email)
        if other and other["id"] != client_id:
            raise ConflictError("El email ya está registrado en otro cliente", field="email")
    updated = crud.clients.update(store, client_id, client)
    if updated is None:
        raise NotFoundError("Cliente no encontrado")
    return success_response("Cliente actualizado correctamente", updated)


@router.delete("/{client_id}", response_model=schemas.MessageResponse)
@limiter.limit(RATE_LIMIT)
def delete_client(request: Request, client_id: int = Path(..., ge=1), store: Storage = StorageDep):
    get_client_or_404(store, client_id)
    if not crud.clients.delete(store, client_id):
        raise NotFoundError("Cliente no encontrado")
    return success_response("Cliente eliminado correctamente")
