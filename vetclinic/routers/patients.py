from typing import Optional

from fastapi import APIRouter, Path, Query, status
from fastapi.exceptions import RequestValidationError
from starlette.requests import Request

from .. import crud, schemas
from ..crud.common import search_pagination
from ..dependencies import StorageDep
from ..errors import BadRequestError, ConflictError, InvalidReferenceError, NotFoundError
from ..limiter import RATE_LIMIT, limiter
from ..responses import success_response
from ..storage import Storage

router = APIRouter(prefix="/patients", tags=["Patients"])

PatientResponse = schemas.ApiResponse[schemas.Patient]
PatientListResponse = schemas.ApiResponse[schemas.PatientList]
StatsResponse = schemas.ApiResponse[schemas.Stats]


def get_patient_or_404(store: Storage, patient_id: int):
    db_patient = crud.patients.find_by_id(store, patient_id)
    if db_patient is None:
        raise NotFoundError("Paciente no encontrado")
    return db_patient


def check_owner(store: Storage, owner_id: int) -> None:
    if crud.clients.find_by_id(store, owner_id) is None:
        raise InvalidReferenceError("El propietario seleccionado no existe", field="ownerId")


def check_visit_dates(patient: schemas.PatientUpdate, db_patient) -> None:
    """nextVisit >= lastVisit sobre el registro resultante, no solo sobre el cuerpo."""
    last_visit = patient.last_visit or db_patient["last_visit"]
    next_visit = patient.next_visit or db_patient["next_visit"]
    if last_visit is not None and next_visit is not None and next_visit < last_visit:
        raise RequestValidationError([{
            "type": "value_error",
            "loc": ("body", "nextVisit"),
            "msg": schemas.NEXT_VISIT_MESSAGE,
            "input": next_visit,
        }])


@router.get("/", response_model=PatientListResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def read_patients(
    request: Request,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    search: Optional[str] = Query(None, max_length=100),
    store: Storage = StorageDep,
):
    if search and search.strip():
        patients = crud.patients.search_by_name(store, search.strip())
        pagination = search_pagination(len(patients), "totalPatients")
    else:
        patients, pagination = crud.patients.paginate(store, page, limit)
    return success_response("Pacientes obtenidos correctamente", patients, pagination=pagination)


@router.get("/search", response_model=PatientListResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def search_patients(request: Request, q: Optional[str] = Query(None, max_length=100), store: Storage = StorageDep):
    if not q or not q.strip():
        raise BadRequestError("El parámetro de búsqueda es requerido", field="q")
    patients = crud.patients.search_by_name(store, q.strip())
    return success_response("Búsqueda completada", patients, count=len(patients))


@router.get("/stats", response_model=StatsResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def read_patient_stats(request: Request, store: Storage = StorageDep):
    return success_response("Estadísticas obtenidas correctamente", crud.patients.stats(store))


@router.get("/owner/{owner_id}", response_model=PatientListResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def read_patients_by_owner(request: Request, owner_id: int = Path(..., ge=1), store: Storage = StorageDep):
    patients = crud.patients.find_by_owner(store, owner_id)
    return success_response("Pacientes obtenidos correctamente", patients, count=len(patients))


@router.get("/{patient_id}", response_model=PatientResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def read_patient(request: Request, patient_id: int = Path(..., ge=1), store: Storage = StorageDep):
    return success_response("Paciente obtenido correctamente", get_patient_or_404(store, patient_id))


@router.post("/", response_model=PatientResponse, response_model_exclude_unset=True, status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMIT)
def create_patient(request: Request, patient: schemas.PatientCreate, store: Storage = StorageDep):
    check_owner(store, patient.owner_id)
    if patient.microchip and crud.patients.find_by_microchip(store, patient.microchip):
        raise ConflictError("El microchip ya está registrado", field="microchip")
    db_patient = crud.patients.create(store, patient)
    return success_response("Paciente creado correctamente", db_patient)


@router.put("/{patient_id}", response_model=PatientResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def update_patient(request: Request, patient: schemas.PatientUpdate, patient_id: int = Path(..., ge=1), store: Storage = StorageDep):
    db_patient = get_patient_or_404(store, patient_id)
    if patient.owner_id is not None and patient.owner_id != db_patient["owner_id"]:
        check_owner(store, patient.owner_id)
    if patient.microchip and patient.microchip != db_patient["microchip"]:
        other = crud.patients.find_by_microchip(store, patient.microchip)
        if other and other["id"] != patient_id:
            raise ConflictError("El microchip ya está registrado en otro paciente", field="microchip")
    check_visit_dates(patient, db_patient)
    updated = crud.patients.update(store, patient_id, patient)
    if updated is None:
        raise NotFoundError("Paciente no encontrado")
    return success_response("Paciente actualizado correctamente", updated)


@router.delete("/{patient_id}", response_model=schemas.MessageResponse)
@limiter.limit(RATE_LIMIT)
def delete_patient(request: Request, patient_id: int = Path(..., ge=1), store: Storage = StorageDep):
    get_patient_or_404(store, patient_id)
    if not crud.patients.delete(store, patient_id):
        raise NotFoundError("Paciente no encontrado")
    return success_response("Paciente eliminado correctamente")
