from datetime import date
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

router = APIRouter(prefix="/appointments", tags=["Appointments"])

AppointmentResponse = schemas.ApiResponse[schemas.Appointment]
AppointmentListResponse = schemas.ApiResponse[schemas.AppointmentList]
StatsResponse = schemas.ApiResponse[schemas.Stats]


def get_appointment_or_404(store: Storage, appointment_id: int):
    db_appointment = crud.appointments.find_by_id(store, appointment_id)
    if db_appointment is None:
        raise NotFoundError("Cita no encontrada")
    return db_appointment


def check_patient(store: Storage, patient_id: int) -> None:
    if crud.patients.find_by_id(store, patient_id) is None:
        raise InvalidReferenceError("El paciente seleccionado no existe", field="patientId")


@router.get("/", response_model=AppointmentListResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def read_appointments(
    request: Request,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    search: Optional[str] = Query(None, max_length=100),
    store: Storage = StorageDep,
):
    message = "Citas obtenidas correctamente"
    if search and search.strip():
        appointments = crud.appointments.search_by_name(store, search.strip())
        pagination = search_pagination(len(appointments), "totalAppointments")
        return success_response(message, appointments, pagination=pagination)
    if page is None and limit is None:
        appointments = crud.appointments.find_all(store)
        return success_response(message, appointments, count=len(appointments))
    appointments, pagination = crud.appointments.paginate(store, page, limit)
    return success_response(message, appointments, pagination=pagination)


@router.get("/search", response_model=AppointmentListResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def search_appointments(request: Request, q: Optional[str] = Query(None, max_length=100), store: Storage = StorageDep):
    if not q or not q.strip():
        raise BadRequestError("El parámetro de búsqueda es requerido", field="q")
    appointments = crud.appointments.search_by_name(store, q.strip())
    return success_response("Búsqueda completada", appointments, count=len(appointments))


@router.get("/stats", response_model=StatsResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def read_appointment_stats(request: Request, store: Storage = StorageDep):
    return success_response("Estadísticas obtenidas correctamente", crud.appointments.stats(store))


@router.get("/patient/{patient_id}", response_model=AppointmentListResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def read_patient_appointments(request: Request, patient_id: int = Path(..., ge=1), store: Storage = StorageDep):
    appointments = crud.appointments.find_by_patient(store, patient_id)
    return success_response("Citas del paciente obtenidas correctamente", appointments, count=len(appointments))


@router.get("/date/{day}", response_model=AppointmentListResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def read_appointments_by_date(request: Request, day: date, store: Storage = StorageDep):
    appointments = crud.appointments.find_by_date(store, day)
    return success_response("Citas de la fecha obtenidas correctamente", appointments, count=len(appointments))


@router.get("/status/{appointment_status}", response_model=AppointmentListResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def read_appointments_by_status(
    request: Request, appointment_status: schemas.AppointmentStatusEnum, store: Storage = StorageDep
):
    appointments = crud.appointments.find_by_status(store, appointment_status.value)
    return success_response("Citas por estado obtenidas correctamente", appointments, count=len(appointments))


@router.get("/{appointment_id}", response_model=AppointmentResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def read_appointment(request: Request, appointment_id: int = Path(..., ge=1), store: Storage = StorageDep):
    return success_response("Cita obtenida correctamente", get_appointment_or_404(store, appointment_id))


@router.post("/", response_model=AppointmentResponse, response_model_exclude_unset=True, status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMIT)
def create_appointment(request: Request, appointment: schemas.AppointmentCreate, store: Storage = StorageDep):
    check_patient(store, appointment.patient_id)
    return success_response("Cita creada correctamente", crud.appointments.create(store, appointment))


@router.put("/{appointment_id}", response_model=AppointmentResponse, response_model_exclude_unset=True)
@limiter.limit(RATE_LIMIT)
def update_appointment(
    request: Request,
    appointment: schemas.AppointmentCreate,
    appointment_id: int = Path(..., ge=1),
    store: Storage = StorageDep,
):
    get_appointment_or_404(store, appointment_id)
    check_patient(store, appointment.patient_id)
    updated = crud.appointments.update(store, appointment_id, appointment)
    if updated is None:
        raise NotFoundError("Cita no encontrada")
    return success_response("Cita actualizada correctamente", updated)


@router.delete("/{appointment_id}", response_model=schemas.MessageResponse)
@limiter.limit(RATE_LIMIT)
def delete_appointment(request: Request, appointment_id: int = Path(..., ge=1), store: Storage = StorageDep):
    if not crud.appointments.delete(store, appointment_id):
        raise NotFoundError("Cita no encontrada")
    return success_response("Cita eliminada correctamente")
