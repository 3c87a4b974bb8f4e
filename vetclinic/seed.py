"""
Pobla un almacenamiento con datos de prueba generados con Faker.

Todo pasa por ``vetclinic.crud`` y los schemas, de modo que los datos
sembrados cumplen las mismas validaciones y efectos secundarios
(``last_visit`` de los pacientes) que los creados por la API.

Uso: ``python -m vetclinic.seed`` (usa VETCLINIC_DATABASE_URL).
"""

import logging
import random
import re
from datetime import date, timedelta
from typing import Dict, Optional

from faker import Faker

from . import crud, schemas
from .storage import Storage

logger = logging.getLogger(__name__)

SPECIES = {
    "Perro": ["Labrador", "Pastor Alemán", "Bulldog", "Caniche", "Mestizo"],
    "Gato": ["Siamés", "Persa", "Común Europeo", "Maine Coon"],
    "Conejo": ["Belier", "Enano"],
    "Ave": ["Periquito", "Canario", "Agaporni"],
}
VACCINES = ["Rabia", "Moquillo", "Parvovirus", "Leptospirosis", "Triple Felina"]
COLORS = ["Negro", "Blanco", "Marrón", "Gris", "Atigrado", "Canela"]
DEFAULT_PASSWORD = "Clinica123!"

_NOT_LETTERS = re.compile(r"[^a-zA-ZÀ-ÿñÑ ]")


def _letters(text: str) -> str:
    """Deja solo letras y espacios (los nombres y ciudades se validan así)."""
    return " ".join(_NOT_LETTERS.sub("", text).split())


def _person(fake: Faker) -> str:
    return _letters(f"{fake.first_name()} {fake.last_name()}")


def _phone(fake: Faker) -> str:
    return fake.numerify("+34 6## ### ###")


def seed_database(
    store: Storage,
    clients: int = 20,
    patients_per_client: int = 2,
    visits_per_patient: int = 2,
    users: int = 5,
    seed: Optional[int] = None,
) -> Dict[str, int]:
    """
    Crea clientes, pacientes, visitas, vacunaciones, citas y usuarios.

    Returns:
        Número de registros creados por entidad
    """
    fake = Faker("es_ES")
    rng = random.Random(seed)
    if seed is not None:
        fake.seed_instance(seed)

    today = date.today()
    created = {"clients": 0, "patients": 0, "visits": 0, "vaccinations": 0, "appointments": 0, "users": 0}

    vets = [_person(fake) for _ in range(4)]

    for _ in range(clients):
        client = crud.clients.create(store, schemas.ClientCreate(
            name=_person(fake),
            email=fake.unique.email(),
            phone=_phone(fake),
            address=fake.street_address(),
            city=_letters(fake.city()) or "Madrid",
            status=rng.choice(["Activo", "Activo", "Activo", "Inactivo"]),
        ))
        created["clients"] += 1

        for _ in range(rng.randint(1, patients_per_client)):
            species = rng.choice(list(SPECIES))
            age = rng.randint(0, 15)
            patient = crud.patients.create(store, schemas.PatientCreate(
                name=fake.first_name(),
                species=species,
                breed=rng.choice(SPECIES[species]),
                age=age,
                weight=round(rng.uniform(0.5, 40.0), 1),
                gender=rng.choice(["Macho", "Hembra"]),
                birth_date=today - timedelta(days=365 * age + rng.randint(0, 364)),
                owner_id=client["id"],
                microchip=fake.unique.numerify("###############"),
                color=rng.choice(COLORS),
            ))
            created["patients"] += 1

            for _ in range(rng.randint(0, visits_per_patient)):
                crud.visits.create(store, schemas.VisitCreate(
                    patient_id=patient["id"],
                    date=today - timedelta(days=rng.randint(1, 365)),
                    type=rng.choice(["Consulta", "Control", "Emergencia", "Cirugía"]),
                    veterinarian=rng.choice(vets),
                    diagnosis=fake.sentence(nb_words=6),
                    treatment=fake.sentence(nb_words=8),
                    cost=round(rng.uniform(20.0, 400.0), 2),
                ))
                created["visits"] += 1

            applied = today - timedelta(days=rng.randint(1, 400))
            crud.vaccinations.create(store, schemas.VaccinationCreate(
                patient_id=patient["id"],
                date=applied,
                vaccine=rng.choice(VACCINES),
                next_due=applied + timedelta(days=365),
                veterinarian=rng.choice(vets),
                batch_number=fake.bothify("LOT-####"),
            ))
            created["vaccinations"] += 1

            crud.appointments.create(store, schemas.AppointmentCreate(
                patient_id=patient["id"],
                date=today + timedelta(days=rng.randint(-10, 30)),
                time=f"{rng.randint(9, 18):02d}:{rng.choice(['00', '30'])}",
                type=rng.choice(["Consulta", "Control", "Vacunación"]),
                veterinarian=rng.choice(vets),
                status=rng.choice(["Programada", "Programada", "Completada", "Cancelada"]),
            ))
            created["appointments"] += 1

    roles = list(crud.users.ROLES)
    for index in range(users):
        crud.users.create(store, schemas.UserCreate(
            nombre=_person(fake),
            email=fake.unique.email(),
            telefono=_phone(fake),
            password=DEFAULT_PASSWORD,
            rol_name=roles[index % len(roles)],
        ))
        created["users"] += 1

    logger.info("Datos de prueba creados: %s", created)
    return created


def main() -> None:
    from .config import configure_logging, settings
    from .database import SessionLocal, init_db
    from .storage import SqlStorage

    configure_logging(settings.log_level)
    init_db()
    db = SessionLocal()
    try:
        seed_database(SqlStorage(db))
    finally:
        db.close()
    logger.info("Contraseña de los usuarios sembrados: %s", DEFAULT_PASSWORD)


if __name__ == "__main__":
    main()
