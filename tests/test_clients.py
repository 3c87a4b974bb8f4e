from datetime import datetime

import pytest

from vetclinic import crud, schemas
from vetclinic.errors import ConflictError, DuplicateKeyError

from payloads import client_payload, patient_payload, visit_payload


def test_create_then_get_round_trips(api):
    payload = client_payload(name="Ana García", city="Sevilla")

    created = api.post("/clients/", json=payload)
    assert created.status_code == 201
    body = created.json()
    assert body["success"] is True
    assert body["message"] == "Cliente creado correctamente"

    client_id = body["data"]["id"]
    fetched = api.get(f"/clients/{client_id}").json()["data"]

    for key in ("name", "email", "phone", "address", "city"):
        assert fetched[key] == payload[key]
    assert fetched["status"] == "Activo"
    assert isinstance(client_id, int) and client_id >= 1
    datetime.fromisoformat(fetched["registrationDate"])


def test_email_is_lowercased(api):
    data = api.post("/clients/", json=client_payload(email="Pedro.Ruiz@Example.com")).json()["data"]

    assert data["email"] == "pedro.ruiz@example.com"


def test_duplicate_email_conflicts(api):
    api.post("/clients/", json=client_payload(email="ana@example.com"))

    response = api.post("/clients/", json=client_payload(email="ANA@example.com"))

    assert response.status_code == 409
    assert response.json() == {
        "success": False,
        "message": "El email ya está registrado",
        "field": "email",
    }
    assert api.get("/clients/").json()["pagination"]["totalClients"] == 1


def test_explicit_id(api):
    created = api.post("/clients/", json=client_payload(id=50)).json()["data"]
    assert created["id"] == 50

    again = api.post("/clients/", json=client_payload(id=50))
    assert again.status_code == 409
    assert again.json()["message"] == "El ID ya está registrado"


@pytest.mark.parametrize("detail,field,message", [
    ('duplicate key value violates unique constraint "clients_pkey"\nDETAIL:  Key (id)=(51) already exists.',
     "id", "El ID ya está registrado"),
    ("UNIQUE constraint failed: clients.email", "email", "El email ya está registrado"),
])
def test_collision_is_reported_by_its_column(store, monkeypatch, detail, field, message):
    def collide(table, values):
        raise DuplicateKeyError(table, detail)

    monkeypatch.setattr(store, "insert", collide)

    with pytest.raises(ConflictError) as excinfo:
        crud.clients.create(store, schemas.ClientCreate(**client_payload()))

    assert excinfo.value.field == field
    assert excinfo.value.message == message


def test_list_is_paginated_newest_first(api, make_client):
    ids = [make_client()["id"] for _ in range(12)]

    body = api.get("/clients/", params={"page": 2, "limit": 5}).json()

    assert body["message"] == "Clientes obtenidos correctamente"
    assert len(body["data"]) == 5
    assert body["pagination"] == {
        "currentPage": 2,
        "totalPages": 3,
        "totalClients": 12,
        "hasNextPage": True,
        "hasPrevPage": True,
        "limit": 5,
    }
    first_page = api.get("/clients/").json()["data"]
    assert first_page[0]["id"] == ids[-1]


def test_limit_is_clamped(api, make_client):
    make_client()

    assert api.get("/clients/", params={"limit": 500}).json()["pagination"]["limit"] == 100
    assert api.get("/clients/", params={"limit": 0}).json()["pagination"]["limit"] == 1
    assert api.get("/clients/", params={"page": 0}).json()["pagination"]["currentPage"] == 1


def test_search(api, make_client):
    make_client(name="Ana García")
    make_client(name="Luis Martín", email="luis@example.com")

    body = api.get("/clients/search", params={"q": "luis"}).json()
    assert body["message"] == "Búsqueda completada"
    assert body["count"] == 1
    assert body["data"][0]["name"] == "Luis Martín"

    listed = api.get("/clients/", params={"search": "garc"}).json()
    assert listed["pagination"]["totalClients"] == 1
    assert listed["pagination"]["totalPages"] == 1


def test_search_requires_a_term(api):
    response = api.get("/clients/search", params={"q": "   "})

    assert response.status_code == 400
    assert response.json()["message"] == "El parámetro de búsqueda es requerido"


def test_get_missing_and_malformed_ids(api):
    missing = api.get("/clients/999")
    assert missing.status_code == 404
    assert missing.json() == {"success": False, "message": "Cliente no encontrado"}

    for bad in ("abc", "0"):
        response = api.get(f"/clients/{bad}")
        assert response.status_code == 400
        assert response.json()["message"] == "El ID debe ser un número válido"


def test_update_keeps_fields_not_sent(api, make_client):
    client = make_client(city="Madrid")

    response = api.put(f"/clients/{client['id']}", json={"city": "Valencia"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["city"] == "Valencia"
    assert data["name"] == client["name"]
    assert data["email"] == client["email"]


def test_update_email_taken_by_other_client(api, make_client):
    first = make_client()
    second = make_client()

    response = api.put(f"/clients/{second['id']}", json={"email": first["email"]})

    assert response.status_code == 409
    assert response.json()["message"] == "El email ya está registrado en otro cliente"

    same = api.put(f"/clients/{first['id']}", json={"email": first["email"]})
    assert same.status_code == 200


def test_update_missing_client(api):
    response = api.put("/clients/999", json={"city": "Valencia"})

    assert response.status_code == 404


def test_delete_cascades_to_patients_and_history(api, make_client):
    owner = make_client()
    patient = api.post("/patients/", json=patient_payload(owner["id"])).json()["data"]
    visit = api.post("/visits/", json=visit_payload(patient["id"])).json()["data"]

    response = api.delete(f"/clients/{owner['id']}")

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Cliente eliminado correctamente"}
    assert api.get(f"/clients/{owner['id']}").status_code == 404
    assert api.get(f"/patients/{patient['id']}").status_code == 404
    assert api.get(f"/visits/{visit['id']}").status_code == 404
    assert api.delete(f"/clients/{owner['id']}").status_code == 404


def test_stats(api, make_client):
    make_client(city="Madrid")
    make_client(city="Madrid")
    make_client(city="Sevilla", status="Inactivo")

    data = api.get("/clients/stats").json()["data"]

    assert data["totalClients"] == 3
    assert data["byCity"] == {"Madrid": 2, "Sevilla": 1}
    assert data["byStatus"] == {"Activo": 2, "Inactivo": 1}
    datetime.fromisoformat(data["timestamp"])
