import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from vetclinic import models  # noqa: F401  registra las tablas en Base.metadata
from vetclinic.database import Base
from vetclinic.dependencies import get_storage
from vetclinic.limiter import limiter
from vetclinic.main import app
from vetclinic.storage import MemoryStorage, SqlStorage

from payloads import client_payload, patient_payload

limiter.enabled = False

BACKENDS = ["sql", "memory"]


def memory_storage() -> MemoryStorage:
    return MemoryStorage(list(models.TABLES), models.UNIQUE_FIELDS)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(params=BACKENDS)
def store(request, session_factory):
    if request.param == "memory":
        yield memory_storage()
        return
    db = session_factory()
    try:
        yield SqlStorage(db)
    finally:
        db.close()


@pytest.fixture(params=BACKENDS)
def api(request, session_factory):
    if request.param == "memory":
        shared = memory_storage()

        def override_get_storage():
            yield shared
    else:
        def override_get_storage():
            db = session_factory()
            try:
                yield SqlStorage(db)
            finally:
                db.close()

    app.dependency_overrides[get_storage] = override_get_storage
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


# --- Fábricas sobre la API ---
@pytest.fixture
def make_client(api):
    def make(**overrides):
        response = api.post("/clients/", json=client_payload(**overrides))
        assert response.status_code == 201, response.json()
        return response.json()["data"]
    return make


@pytest.fixture
def make_patient(api, make_client):
    def make(owner_id=None, **overrides):
        if owner_id is None:
            owner_id = make_client()["id"]
        response = api.post("/patients/", json=patient_payload(owner_id, **overrides))
        assert response.status_code == 201, response.json()
        return response.json()["data"]
    return make


@pytest.fixture
def get_patient(api):
    def get(patient_id):
        response = api.get(f"/patients/{patient_id}")
        assert response.status_code == 200
        return response.json()["data"]
    return get
