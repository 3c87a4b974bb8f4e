from typing import Optional

from fastapi import APIRouter, Path, Query, status
from starlette.requests import Request

from .. import crud, schemas
from ..crud.common import search_pagination
from ..dependencies import StorageDep
from ..errors import BadRequestError, InvalidReferenceError, NotFoundError
from ..limiter import RATE_LIMIT, limiter
from ..responses import success_response
from ..storage import Storage

router = APIRouter(prefix="/visits", tags=["Visits"])

VisitResponse = schemas.ApiResponse[schemas.Visit]
VisitListResponse = schemas.ApiResponse[schemas.VisitList]
StatsResponse = schemas.ApiResponse[schemas.Stats]


def get_visit_or_404(store: Storage, visit_id: int):
    db_visit = crud.visits.find_by_id(store, visit_id)
    if db_visit is None:
        raise NotFoundError("Visita no encontrada")
    return db_visit


def check_patient(store: Storage, patient_id: int) -> None:
    if crud.patients.find_by_id(store, patient_id) is None:
        raise InvalidReferenceError("El paciente seleccionado no existe", field="patientId")


@router.get("/", response_model=VisitListResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def read_visits(
    request: Request,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    search: Optional[str] = Query(None, max_length=100),
    store: Storage = StorageDep,
):
    """Sin ``page`` ni ``limit`` devuelve todas las visitas."""
    message = "Visitas obtenidas correctamente"
    if search and search.strip():
        visits = crud.visits.search_by_name(store, search.strip())
        return success_response(message, visits, pagination=search_pagination(len(visits), "totalVisits"))
    if page is None and limit is None:
        visits = crud.visits.find_all(store)
        return success_response(message, visits, count=len(visits))
    visits, pagination = crud.visits.paginate(store, page, limit)
    return success_response(message, visits, pagination=pagination)


@router.get("/search", response_model=VisitListResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def search_visits(request: Request, q: Optional[str] = Query(None, max_length=100), store: Storage = StorageDep):
    if not q or not q.strip():
        raise BadRequestError("El parámetro de búsqueda es requerido", field="q")
    visits = crud.visits.search_by_name(store, q.strip())
    return success_response("Búsqueda completada", visits, count=len(visits))


@router.get("/stats", response_model=StatsResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def read_visit_stats(request: Request, store: Storage = StorageDep):
    return success_response("Estadísticas obtenidas correctamente", crud.visits.stats(store))


@router.get("/patient/{patient_id}", response_model=VisitListResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def read_patient_visits(request: Request, patient_id: int = Path(..., ge=1), store: Storage = StorageDep):
    visits = crud.visits.find_by_patient(store, patient_id)
    return success_response("Visitas del paciente obtenidas correctamente", visits, count=len(visits))


@router.get("/{visit_id}", response_model=VisitResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def read_visit(request: Request, visit_id: int = Path(..., ge=1), store: Storage = StorageDep):
    return success_response("Visita obtenida correctamente", get_visit_or_404(store, visit_id))


@router.post("/", response_model=VisitResponse, response_model_exclude_unset=True, status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMIT)
def create_visit(request: Request, visit: schemas.VisitCreate, store: Storage = StorageDep):
    check_patient(store, visit.patient_id)
    return success_response("Visita creada correctamente", crud.visits.create(store, visit))


@router.put("/{visit_id}", response_model=VisitResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def update_visit(request: Request, visit: schemas.VisitCreate, visit_id: int = Path(..., ge=1), store: Storage = StorageDep):
    get_visit_or_404(store, visit_id)
    check_patient(store, visit.patient_id)
    updated = crud.visits.update(store, visit_id, visit)
    if updated is None:
        raise NotFoundError("Visita no encontrada")
    return success_response("Visita actualizada correctamente", updated)


@router.delete("/{visit_id}", response_model=schemas.MessageResponse)
@limiter.limit(RATE_LIMIT)
def delete_visit(request: Request, visit_id: int = Path(..., ge=1), store: Storage = StorageDep):
    if not crud.visits.delete(store, visit_id):
        raise NotFoundError("Visita no encontrada")
    return success_response("Visita eliminada correctamente")
