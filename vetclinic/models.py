from sqlalchemy import (Column, Integer, String, Text, Date, TIMESTAMP, Float,
                        ForeignKey, Enum)
from .database import Base

# Valores de dominio compartidos con los schemas
CLIENT_STATUSES = ('Activo', 'Inactivo')
GENDERS = ('Macho', 'Hembra', 'Desconocido')
VISIT_TYPES = ('Consulta', 'Vacunación', 'Cirugía', 'Control', 'Emergencia')
APPOINTMENT_STATUSES = ('Programada', 'Completada', 'Cancelada')


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    phone = Column(String(30))
    address = Column(String(255))
    city = Column(String(100))
    registration_date = Column(TIMESTAMP, nullable=False)
    status = Column(Enum(*CLIENT_STATUSES, name='client_status_enum'), nullable=False, default='Activo')


class Patient(Base):
    __tablename__ = "patients"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    species = Column(String(50), nullable=False)
    breed = Column(String(100))
    age = Column(Float)
    weight = Column(Float)
    gender = Column(Enum(*GENDERS, name='gender_enum'), nullable=False)
    birth_date = Column(Date, nullable=True)

    # Foreign Key
    owner_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)

    last_visit = Column(Date, nullable=True)
    next_visit = Column(Date, nullable=True)
    microchip = Column(String(20), unique=True, nullable=True, index=True)
    color = Column(String(50))
    allergies = Column(Text)
    status = Column(Enum(*CLIENT_STATUSES, name='patient_status_enum'), nullable=False, default='Activo')
    created_date = Column(TIMESTAMP, nullable=False)
    updated_date = Column(TIMESTAMP, nullable=False)


class Visit(Base):
    __tablename__ = "visits"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    type = Column(Enum(*VISIT_TYPES, name='visit_type_enum'), nullable=False)
    veterinarian = Column(String(150), nullable=False)
    diagnosis = Column(Text, nullable=False)
    treatment = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)
    cost = Column(Float, nullable=False, default=0)
    created_date = Column(TIMESTAMP, nullable=False)
    updated_date = Column(TIMESTAMP, nullable=False)


class Vaccination(Base):
    __tablename__ = "vaccinations"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    vaccine = Column(String(100), nullable=False)
    next_due = Column(Date, nullable=False, index=True)
    veterinarian = Column(String(150), nullable=False)
    batch_number = Column(String(50), nullable=False)
    notes = Column(Text, nullable=True)
    created_date = Column(TIMESTAMP, nullable=False)
    updated_date = Column(TIMESTAMP, nullable=False)


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    time = Column(String(8), nullable=False)  # HH:MM:SS
    type = Column(Enum(*VISIT_TYPES, name='appointment_type_enum'), nullable=False)
    veterinarian = Column(String(255), nullable=False)
    status = Column(Enum(*APPOINTMENT_STATUSES, name='appointment_status_enum'), nullable=False, default='Programada')
    notes = Column(Text, nullable=True)
    created_date = Column(TIMESTAMP, nullable=False)
    updated_date = Column(TIMESTAMP, nullable=False)


class User(Base):
    """
    Usuarios del sistema (personal de la clínica).
    'rol' guarda el id numérico del rol; el nombre se resuelve en crud.users.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    nombre = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    telefono = Column(String(30))
    password = Column(String(255), nullable=False)
    rol = Column(Integer, nullable=False)
    status = Column(Enum(*CLIENT_STATUSES, name='user_status_enum'), nullable=False, default='Activo')
    fecha_creacion = Column(TIMESTAMP, nullable=False)
    fecha_actualizacion = Column(TIMESTAMP, nullable=False)


# Registro nombre de tabla -> modelo, usado por SqlStorage
TABLES = {model.__tablename__: model for model in (Client, Patient, Visit, Vaccination, Appointment, User)}

# Columnas UNIQUE por tabla (aparte de la PK), usado por MemoryStorage
UNIQUE_FIELDS = {
    name: tuple(column.name for column in model.__table__.columns if column.unique)
    for name, model in TABLES.items()
}
