from typing import Optional

from fastapi import APIRouter, Path, Query, status
from starlette.requests import Request

from .. import crud, schemas
from ..crud.common import search_pagination
from ..crud.vaccinations import DEFAULT_UPCOMING_DAYS
from ..dependencies import StorageDep
from ..errors import BadRequestError, InvalidReferenceError, NotFoundError
from ..limiter import RATE_LIMIT, limiter
from ..responses import success_response
from ..storage import Storage

router = APIRouter(prefix="/vaccinations", tags=["Vaccinations"])

VaccinationResponse = schemas.ApiResponse[schemas.Vaccination]
VaccinationListResponse = schemas.ApiResponse[schemas.VaccinationList]
StatsResponse = schemas.ApiResponse[schemas.Stats]


def get_vaccination_or_404(store: Storage, vaccination_id: int):
    db_vaccination = crud.vaccinations.find_by_id(store, vaccination_id)
    if db_vaccination is None:
        raise NotFoundError("Vacunación no encontrada")
    return db_vaccination


def check_patient(store: Storage, patient_id: int) -> None:
    if crud.patients.find_by_id(store, patient_id) is None:
        raise InvalidReferenceError("El paciente seleccionado no existe", field="patientId")


@router.get("/", response_model=VaccinationListResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def read_vaccinations(
    request: Request,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    search: Optional[str] = Query(None, max_length=100),
    store: Storage = StorageDep,
):
    message = "Vacunaciones obtenidas correctamente"
    if search and search.strip():
        vaccinations = crud.vaccinations.search_by_name(store, search.strip())
        pagination = search_pagination(len(vaccinations), "totalVaccinations")
        return success_response(message, vaccinations, pagination=pagination)
    if page is None and limit is None:
        vaccinations = crud.vaccinations.find_all(store)
        return success_response(message, vaccinations, count=len(vaccinations))
    vaccinations, pagination = crud.vaccinations.paginate(store, page, limit)
    return success_response(message, vaccinations, pagination=pagination)


@router.get("/search", response_model=VaccinationListResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def search_vaccinations(request: Request, q: Optional[str] = Query(None, max_length=100), store: Storage = StorageDep):
    if not q or not q.strip():
        raise BadRequestError("El parámetro de búsqueda es requerido", field="q")
    vaccinations = crud.vaccinations.search_by_name(store, q.strip())
    return success_response("Búsqueda completada", vaccinations, count=len(vaccinations))


@router.get("/stats", response_model=StatsResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def read_vaccination_stats(request: Request, store: Storage = StorageDep):
    return success_response("Estadísticas obtenidas correctamente", crud.vaccinations.stats(store))


@router.get("/upcoming", response_model=VaccinationListResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def read_upcoming_vaccinations(
    request: Request,
    days: int = Query(DEFAULT_UPCOMING_DAYS, ge=1, le=365),
    store: Storage = StorageDep,
):
    vaccinations = crud.vaccinations.get_upcoming(store, days)
    return success_response("Vacunaciones próximas obtenidas correctamente", vaccinations, count=len(vaccinations))


@router.get("/overdue", response_model=VaccinationListResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def read_overdue_vaccinations(request: Request, store: Storage = StorageDep):
    vaccinations = crud.vaccinations.get_overdue(store)
    return success_response("Vacunaciones vencidas obtenidas correctamente", vaccinations, count=len(vaccinations))


@router.get("/patient/{patient_id}", response_model=VaccinationListResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def read_patient_vaccinations(request: Request, patient_id: int = Path(..., ge=1), store: Storage = StorageDep):
    vaccinations = crud.vaccinations.find_by_patient(store, patient_id)
    return success_response(
        "Vacunaciones del paciente obtenidas correctamente", vaccinations, count=len(vaccinations)
    )


@router.get("/{vaccination_id}", response_model=VaccinationResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def read_vaccination(request: Request, vaccination_id: int = Path(..., ge=1), store: Storage = StorageDep):
    return success_response("Vacunación obtenida correctamente", get_vaccination_or_404(store, vaccination_id))


@router.post("/", response_model=VaccinationResponse, response_model_exclude_unset=True, status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMIT)
def create_vaccination(request: Request, vaccination: schemas.VaccinationCreate, store: Storage = StorageDep):
    check_patient(store, vaccination.patient_id)
    return success_response("Vacunación creada correctamente", crud.vaccinations.create(store, vaccination))


@router.put("/{vaccination_id}", response_model=VaccinationResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def update_vaccination(
    request: Request,
    vaccination: schemas.VaccinationCreate,
    vaccination_id: int = Path(..., ge=1),
    store: Storage = StorageDep,
):
    get_vaccination_or_404(store, vaccination_id)
    check_patient(store, vaccination.patient_id)
    updated = crud.vaccinations.update(store, vaccination_id, vaccination)
    if updated is None:
        raise NotFoundError("Vacunación no encontrada")
    return success_response("Vacunación actualizada correctamente", updated)


@router.delete("/{vaccination_id}", response_model=schemas.MessageResponse)
@limiter.limit(RATE_LIMIT)
def delete_vaccination(request: Request, vaccination_id: int = Path(..., ge=1), store: Storage = StorageDep):
    if not crud.vaccinations.delete(store, vaccination_id):
        raise NotFoundError("Vacunación no encontrada")
    return success_response("Vacunación eliminada correctamente")
