from datetime import date, timedelta

from payloads import patient_payload


def test_create_with_existing_owner(api, make_client):
    owner = make_client()

    response = api.post("/patients/", json=patient_payload(owner["id"]))

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["ownerId"] == owner["id"]
    assert data["status"] == "Activo"
    assert data["lastVisit"] is None


def test_create_with_missing_owner(api):
    response = api.post("/patients/", json=patient_payload(4242))

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "message": "El propietario seleccionado no existe",
        "field": "ownerId",
    }


def test_duplicate_microchip(api, make_client, make_patient):
    owner = make_client()
    make_patient(owner["id"], microchip="ABC1234567")

    response = api.post("/patients/", json=patient_payload(owner["id"], microchip="ABC1234567"))

    assert response.status_code == 409
    assert response.json()["message"] == "El microchip ya está registrado"


def test_empty_microchip_is_dropped(api, make_client):
    owner = make_client()

    first = api.post("/patients/", json=patient_payload(owner["id"], microchip=""))
    second = api.post("/patients/", json=patient_payload(owner["id"], microchip="  "))

    assert first.status_code == 201
    assert second.status_code == 201
    assert first.json()["data"]["microchip"] is None


def test_update_microchip_taken_by_other_patient(api, make_patient):
    first = make_patient(microchip="CHIP000001")
    second = make_patient(microchip="CHIP000002")

    response = api.put(f"/patients/{second['id']}", json={"microchip": first["microchip"]})

    assert response.status_code == 409
    assert response.json()["message"] == "El microchip ya está registrado en otro paciente"


def test_update_to_missing_owner(api, make_patient):
    patient = make_patient()

    response = api.put(f"/patients/{patient['id']}", json={"ownerId": 999})

    assert response.status_code == 400
    assert response.json()["field"] == "ownerId"


def test_update_keeps_last_visit_when_omitted(api, make_patient, get_patient):
    patient = make_patient(lastVisit="2024-01-01")

    response = api.put(f"/patients/{patient['id']}", json={"name": "Rocky", "weight": 30})

    assert response.status_code == 200
    current = get_patient(patient["id"])
    assert current["name"] == "Rocky"
    assert current["weight"] == 30
    assert current["lastVisit"] == "2024-01-01"


def test_next_visit_before_last_visit_is_rejected(api, make_client):
    owner = make_client()
    payload = patient_payload(owner["id"], lastVisit="2024-05-01", nextVisit="2024-04-01")

    response = api.post("/patients/", json=payload)

    assert response.status_code == 400
    errors = response.json()["errors"]
    assert errors[0]["field"] == "nextVisit"
    assert errors[0]["value"] == "2024-04-01"


def test_update_checks_next_visit_against_stored_last_visit(api, make_patient, get_patient):
    patient = make_patient(lastVisit="2024-06-01")

    response = api.put(f"/patients/{patient['id']}", json={"nextVisit": "2024-01-01"})

    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Errores de validación"
    assert body["errors"] == [{
        "field": "nextVisit",
        "message": "La próxima visita debe ser posterior a la última visita",
        "value": "2024-01-01",
    }]
    assert get_patient(patient["id"])["nextVisit"] is None


def test_update_checks_last_visit_against_stored_next_visit(api, make_patient):
    patient = make_patient(lastVisit="2024-01-01", nextVisit="2024-03-01")

    rejected = api.put(f"/patients/{patient['id']}", json={"lastVisit": "2024-05-01"})
    accepted = api.put(f"/patients/{patient['id']}", json={"nextVisit": "2024-02-01"})

    assert rejected.status_code == 400
    assert rejected.json()["errors"][0]["field"] == "nextVisit"
    assert accepted.status_code == 200


def test_birth_date_in_future_is_rejected(api, make_client):
    owner = make_client()
    tomorrow = (date.today() + timedelta(days=1)).isoformat()

    response = api.post("/patients/", json=patient_payload(owner["id"], birthDate=tomorrow))

    assert response.status_code == 400
    assert response.json()["errors"][0]["message"] == "La fecha de nacimiento no puede ser futura"


def test_patients_by_owner(api, make_client, make_patient):
    owner = make_client()
    other = make_client()
    make_patient(owner["id"], name="Toby")
    make_patient(owner["id"], name="Luna")
    make_patient(other["id"], name="Kira")

    body = api.get(f"/patients/owner/{owner['id']}").json()

    assert body["count"] == 2
    assert [p["name"] for p in body["data"]] == ["Luna", "Toby"]


def test_list_search_and_stats(api, make_client, make_patient):
    owner = make_client()
    make_patient(owner["id"], name="Toby", species="Perro")
    make_patient(owner["id"], name="Michi", species="Gato")
    make_patient(owner["id"], name="Tobías", species="Perro", status="Inactivo")

    listed = api.get("/patients/", params={"limit": 2}).json()
    assert listed["pagination"]["totalPatients"] == 3
    assert listed["pagination"]["totalPages"] == 2

    found = api.get("/patients/search", params={"q": "tob"}).json()
    assert found["count"] == 2

    stats = api.get("/patients/stats").json()["data"]
    assert stats["totalPatients"] == 3
    assert stats["bySpecies"] == {"Perro": 2, "Gato": 1}
    assert stats["byStatus"] == {"Activo": 2, "Inactivo": 1}


def test_delete(api, make_patient):
    patient = make_patient()

    assert api.delete(f"/patients/{patient['id']}").status_code == 200
    assert api.get(f"/patients/{patient['id']}").status_code == 404
    assert api.delete(f"/patients/{patient['id']}").json()["message"] == "Paciente no encontrado"
