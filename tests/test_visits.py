import pytest

from vetclinic import crud, schemas
from vetclinic.crud import patients as patients_crud

from payloads import client_payload, patient_payload, visit_payload


def test_create_sets_last_visit(api, make_patient, get_patient):
    patient = make_patient()

    response = api.post("/visits/", json=visit_payload(patient["id"], date="2024-05-10"))

    assert response.status_code == 201
    assert response.json()["message"] == "Visita creada correctamente"
    assert get_patient(patient["id"])["lastVisit"] == "2024-05-10"


def test_earlier_visit_still_overwrites_last_visit(api, make_patient, get_patient):
    patient = make_patient()
    api.post("/visits/", json=visit_payload(patient["id"], date="2024-05-10"))

    api.post("/visits/", json=visit_payload(patient["id"], date="2023-01-20"))

    assert get_patient(patient["id"])["lastVisit"] == "2023-01-20"


def test_update_sets_last_visit(api, make_patient, get_patient):
    patient = make_patient()
    visit = api.post("/visits/", json=visit_payload(patient["id"], date="2024-05-10")).json()["data"]

    response = api.put(f"/visits/{visit['id']}", json=visit_payload(patient["id"], date="2024-07-01", cost=80))

    assert response.status_code == 200
    assert response.json()["data"]["cost"] == 80
    assert get_patient(patient["id"])["lastVisit"] == "2024-07-01"


def test_missing_patient_is_rejected(api):
    response = api.post("/visits/", json=visit_payload(999))

    assert response.status_code == 400
    assert response.json()["message"] == "El paciente seleccionado no existe"
    assert response.json()["field"] == "patientId"


def test_delete_missing_visit(api, make_patient):
    patient = make_patient()
    api.post("/visits/", json=visit_payload(patient["id"]))

    response = api.delete("/visits/999999")

    assert response.status_code == 404
    assert response.json()["message"] == "Visita no encontrada"
    assert api.get("/visits/").json()["count"] == 1


def test_list_all_or_paginated(api, make_patient):
    patient = make_patient()
    for day in ("2024-01-01", "2024-03-01", "2024-02-01"):
        api.post("/visits/", json=visit_payload(patient["id"], date=day))

    everything = api.get("/visits/").json()
    assert everything["count"] == 3
    assert "pagination" not in everything
    assert [v["date"] for v in everything["data"]] == ["2024-03-01", "2024-02-01", "2024-01-01"]

    paged = api.get("/visits/", params={"limit": 2}).json()
    assert len(paged["data"]) == 2
    assert paged["pagination"]["totalVisits"] == 3

    by_patient = api.get(f"/visits/patient/{patient['id']}").json()
    assert by_patient["count"] == 3


def test_search(api, make_patient):
    patient = make_patient()
    api.post("/visits/", json=visit_payload(patient["id"], diagnosis="Fractura de radio"))
    api.post("/visits/", json=visit_payload(patient["id"], veterinarian="Dr Sergio Gil"))

    assert api.get("/visits/search", params={"q": "fractura"}).json()["count"] == 1
    assert api.get("/visits/search", params={"q": "gil"}).json()["count"] == 1


def test_stats_revenue_by_type(api, make_patient):
    patient = make_patient()
    api.post("/visits/", json=visit_payload(patient["id"], type="Consulta", cost=30))
    api.post("/visits/", json=visit_payload(patient["id"], type="Consulta", cost=50))
    api.post("/visits/", json=visit_payload(patient["id"], type="Cirugía", cost=400))

    data = api.get("/visits/stats").json()["data"]

    assert data["totalVisits"] == 3
    assert data["byType"]["Consulta"] == {"count": 2, "totalRevenue": 80.0, "avgCost": 40.0}
    assert data["byType"]["Cirugía"]["totalRevenue"] == 400.0


def test_negative_cost_is_rejected(api, make_patient):
    patient = make_patient()

    response = api.post("/visits/", json=visit_payload(patient["id"], cost=-1))

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "cost"


def _fail(*args, **kwargs):
    raise RuntimeError("fallo al actualizar el paciente")


def test_failed_last_visit_update_rolls_back_visit(store, monkeypatch):
    owner = crud.clients.create(store, schemas.ClientCreate(**client_payload()))
    patient = crud.patients.create(store, schemas.PatientCreate(**patient_payload(owner["id"])))
    monkeypatch.setattr(patients_crud, "record_visit", _fail)

    with pytest.raises(RuntimeError):
        crud.visits.create(store, schemas.VisitCreate(**visit_payload(patient["id"])))

    assert crud.visits.count(store) == 0
    assert crud.patients.find_by_id(store, patient["id"])["last_visit"] is None


def test_failed_last_visit_update_returns_500(api, make_patient, monkeypatch):
    patient = make_patient()
    monkeypatch.setattr(patients_crud, "record_visit", _fail)

    response = api.post("/visits/", json=visit_payload(patient["id"]))

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "message": "Error interno del servidor",
        "error": "fallo al actualizar el paciente",
    }
    assert api.get("/visits/").json()["count"] == 0
