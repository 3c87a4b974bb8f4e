import re
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

T = TypeVar("T")

LETTERS_RE = re.compile(r"^[a-zA-ZÀ-ÿñÑ\s]+$")
PHONE_RE = re.compile(r"^[+]?[0-9\-() ]{7,20}$")
MICROCHIP_RE = re.compile(r"^[A-Z0-9]+$")
TIME_RE = re.compile(r"^([0-1]?[0-9]|2[0-3]):([0-5][0-9])(?::([0-5][0-9]))?$")
PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]")


# --- Enums ---
class StatusEnum(str, Enum):
    activo = 'Activo'
    inactivo = 'Inactivo'

class GenderEnum(str, Enum):
    macho = 'Macho'
    hembra = 'Hembra'
    desconocido = 'Desconocido'

class VisitTypeEnum(str, Enum):
    consulta = 'Consulta'
    vacunacion = 'Vacunación'
    cirugia = 'Cirugía'
    control = 'Control'
    emergencia = 'Emergencia'

class AppointmentStatusEnum(str, Enum):
    programada = 'Programada'
    completada = 'Completada'
    cancelada = 'Cancelada'

class RoleEnum(str, Enum):
    administrador = 'Administrador'
    veterinario = 'Veterinario'
    recepcionista = 'Recepcionista'
    asistente = 'Asistente'


# --- Validadores compartidos ---
def _letters(value: Optional[str], message: str) -> Optional[str]:
    if value is not None and not LETTERS_RE.match(value):
        raise ValueError(message)
    return value

def _phone(value: Optional[str]) -> Optional[str]:
    if value is not None and not PHONE_RE.match(value):
        raise ValueError("Formato de teléfono inválido")
    return value

def _email(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    if len(value) > 255:
        raise ValueError("El email no puede exceder 255 caracteres")
    return value.lower()

def _not_future(value: Optional[date], message: str) -> Optional[date]:
    if value is not None and value > date.today():
        raise ValueError(message)
    return value

def normalize_time(value: str) -> str:
    """'9:30' -> '09:30:00'."""
    match = TIME_RE.match(value)
    if not match:
        raise ValueError("La hora debe estar en formato válido (HH:MM)")
    hours, minutes, seconds = match.groups()
    return f"{int(hours):02d}:{minutes}:{seconds or '00'}"


# --- Bases ---
class RequestModel(BaseModel):
    """
    Cuerpo de una petición. Antes de validar se recortan los strings y se
    descartan las claves vacías o nulas, igual que un campo no enviado.
    """
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        use_enum_values = True
        validate_default = True

    @model_validator(mode="before")
    @classmethod
    def sanitize(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        cleaned = {}
        for key, value in data.items():
            if isinstance(value, str):
                value = value.strip()
                if value == "":
                    continue
            if value is None:
                continue
            cleaned[key] = value
        return cleaned


class ResponseModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


# --- Clients ---
class ClientBase(RequestModel):
    name: str = Field(..., min_length=2, max_length=150)
    email: EmailStr
    phone: str = Field(..., min_length=7, max_length=20)
    address: str = Field(..., min_length=5, max_length=255)
    city: str = Field(..., min_length=2, max_length=100)
    status: StatusEnum = StatusEnum.activo

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        return _letters(v, "El nombre solo puede contener letras y espacios")

    @field_validator("city")
    @classmethod
    def check_city(cls, v):
        return _letters(v, "La ciudad solo puede contener letras y espacios")

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return _email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return _phone(v)

class ClientCreate(ClientBase):
    # Se acepta un ID explícito (importaciones desde otro sistema)
    id: Optional[int] = Field(None, ge=1)

class ClientUpdate(ClientBase):
    name: Optional[str] = Field(None, min_length=2, max_length=150)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, min_length=7, max_length=20)
    address: Optional[str] = Field(None, min_length=5, max_length=255)
    city: Optional[str] = Field(None, min_length=2, max_length=100)
    status: Optional[StatusEnum] = None

class Client(ResponseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    registration_date: datetime
    status: str


# --- Patients ---
NEXT_VISIT_MESSAGE = "La próxima visita debe ser posterior a la última visita"

class PatientBase(RequestModel):
    name: str = Field(..., min_length=2, max_length=100)
    species: str = Field(..., min_length=2, max_length=50)
    breed: str = Field(..., min_length=2, max_length=100)
    age: float = Field(..., ge=0, le=50)
    weight: float = Field(..., ge=0, le=1000)
    gender: GenderEnum
    birth_date: Optional[date] = None
    owner_id: int = Field(..., ge=1)
    last_visit: Optional[date] = None
    next_visit: Optional[date] = None
    microchip: Optional[str] = Field(None, min_length=10, max_length=20)
    color: Optional[str] = Field(None, min_length=2, max_length=50)
    allergies: Optional[str] = Field(None, max_length=500)
    status: StatusEnum = StatusEnum.activo

    @field_validator("species")
    @classmethod
    def check_species(cls, v):
        return _letters(v, "La especie solo puede contener letras y espacios")

    @field_validator("birth_date")
    @classmethod
    def check_birth_date(cls, v):
        return _not_future(v, "La fecha de nacimiento no puede ser futura")

    @field_validator("next_visit")
    @classmethod
    def check_next_visit(cls, v, info):
        last_visit = info.data.get("last_visit")
        if v is not None and last_visit is not None and v < last_visit:
            raise ValueError(NEXT_VISIT_MESSAGE)
        return v

    @field_validator("microchip")
    @classmethod
    def check_microchip(cls, v):
        if v is not None and not MICROCHIP_RE.match(v):
            raise ValueError("El microchip solo puede contener letras mayúsculas y números")
        return v

class PatientCreate(PatientBase):
    pass

class PatientUpdate(PatientBase):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    species: Optional[str] = Field(None, min_length=2, max_length=50)
    breed: Optional[str] = Field(None, min_length=2, max_length=100)
    age: Optional[float] = Field(None, ge=0, le=50)
    weight: Optional[float] = Field(None, ge=0, le=1000)
    gender: Optional[GenderEnum] = None
    owner_id: Optional[int] = Field(None, ge=1)
    status: Optional[StatusEnum] = None

class Patient(ResponseModel):
    id: int
    name: str
    species: str
    breed: Optional[str] = None
    age: Optional[float] = None
    weight: Optional[float] = None
    gender: str
    birth_date: Optional[date] = None
    owner_id: int
    last_visit: Optional[date] = None
    next_visit: Optional[date] = None
    microchip: Optional[str] = None
    color: Optional[str] = None
    allergies: Optional[str] = None
    status: str
    created_date: datetime
    updated_date: datetime


# --- Visits ---
# Visitas, vacunaciones y citas se actualizan con el registro completo,
# por eso el mismo schema sirve para POST y PUT.
class VisitCreate(RequestModel):
    patient_id: int = Field(..., ge=1)
    date: date
    type: VisitTypeEnum
    veterinarian: str = Field(..., min_length=2, max_length=150)
    diagnosis: str = Field(..., min_length=5, max_length=1000)
    treatment: str = Field(..., min_length=5, max_length=1000)
    notes: Optional[str] = Field(None, max_length=1000)
    cost: float = Field(..., ge=0, le=99999999999999)

class Visit(ResponseModel):
    id: int
    patient_id: int
    date: date
    type: str
    veterinarian: str
    diagnosis: str
    treatment: str
    notes: Optional[str] = None
    cost: float
    created_date: datetime
    updated_date: datetime


# --- Vaccinations ---
class VaccinationCreate(RequestModel):
    patient_id: int = Field(..., ge=1)
    date: date
    vaccine: str = Field(..., min_length=2, max_length=100)
    next_due: date
    veterinarian: str = Field(..., min_length=2, max_length=150)
    batch_number: str = Field(..., min_length=3, max_length=50)
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("date")
    @classmethod
    def check_date(cls, v):
        return _not_future(v, "La fecha de vacunación no puede ser futura")

    @field_validator("next_due")
    @classmethod
    def check_next_due(cls, v, info):
        applied = info.data.get("date")
        if applied is not None and v <= applied:
            raise ValueError(
                "La fecha de próxima vacunación debe ser posterior a la fecha de vacunación"
            )
        return v

class Vaccination(ResponseModel):
    id: int
    patient_id: int
    date: date
    vaccine: str
    next_due: date
    veterinarian: str
    batch_number: str
    notes: Optional[str] = None
    created_date: datetime
    updated_date: datetime
    # Solo en /upcoming y /overdue
    patient_name: Optional[str] = None
    species: Optional[str] = None
    owner_name: Optional[str] = None
    owner_phone: Optional[str] = None
    days_overdue: Optional[int] = None


# --- Appointments ---
class AppointmentCreate(RequestModel):
    patient_id: int = Field(..., ge=1)
    date: date
    time: str
    type: VisitTypeEnum
    veterinarian: str = Field(..., min_length=2, max_length=255)
    status: AppointmentStatusEnum = AppointmentStatusEnum.programada
    notes: Optional[str] = None

    @field_validator("time")
    @classmethod
    def check_time(cls, v):
        return normalize_time(v)

class Appointment(ResponseModel):
    id: int
    patient_id: int
    date: date
    time: str
    type: str
    veterinarian: str
    status: str
    notes: Optional[str] = None
    created_date: datetime
    updated_date: datetime
    patient_name: Optional[str] = None
    species: Optional[str] = None
    owner_name: Optional[str] = None


# --- Users ---
class UserBase(RequestModel):
    nombre: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    telefono: str = Field(..., min_length=7, max_length=20)
    rol_name: RoleEnum = RoleEnum.recepcionista
    status: StatusEnum = StatusEnum.activo

    @field_validator("nombre")
    @classmethod
    def check_nombre(cls, v):
        return _letters(v, "El nombre solo puede contener letras y espacios")

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return _email(v)

    @field_validator("telefono")
    @classmethod
    def check_telefono(cls, v):
        return _phone(v)

    @field_validator("password", check_fields=False)
    @classmethod
    def check_password(cls, v):
        if v is not None and not PASSWORD_RE.match(v):
            raise ValueError(
                "La contraseña debe contener al menos: 1 minúscula, 1 mayúscula, "
                "1 número y 1 carácter especial"
            )
        return v

class UserCreate(UserBase):
    password: str = Field(..., min_length=8, max_length=128)

class UserUpdate(UserBase):
    nombre: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    telefono: Optional[str] = Field(None, min_length=7, max_length=20)
    password: Optional[str] = Field(None, min_length=8, max_length=128)
    rol_name: Optional[RoleEnum] = None
    status: Optional[StatusEnum] = None

class User(ResponseModel):
    id: int
    nombre: str
    email: str
    telefono: Optional[str] = None
    rol: int
    rol_name: Optional[str] = None
    status: str
    fecha_creacion: datetime
    fecha_actualizacion: datetime


# --- Respuestas ---
class ApiResponse(BaseModel, Generic[T]):
    """Sobre común de todas las respuestas."""
    success: bool
    message: str
    data: Optional[T] = None
    pagination: Optional[Dict[str, Any]] = None
    count: Optional[int] = None

class MessageResponse(BaseModel):
    success: bool
    message: str

class Health(BaseModel):
    status: str
    storage: str
    timestamp: datetime


ClientList = List[Client]
PatientList = List[Patient]
VisitList = List[Visit]
VaccinationList = List[Vaccination]
AppointmentList = List[Appointment]
UserList = List[User]
Stats = Dict[str, Any]
