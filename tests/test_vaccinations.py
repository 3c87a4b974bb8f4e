from datetime import date, timedelta

from payloads import vaccination_payload

TODAY = date.today()


def days_ago(n):
    return TODAY - timedelta(days=n)


def test_create_sets_last_visit_when_unset(api, make_patient, get_patient):
    patient = make_patient()

    response = api.post("/vaccinations/", json=vaccination_payload(patient["id"], applied=days_ago(20)))

    assert response.status_code == 201
    assert get_patient(patient["id"])["lastVisit"] == days_ago(20).isoformat()


def test_earlier_vaccination_keeps_last_visit(api, make_patient, get_patient):
    patient = make_patient(lastVisit=days_ago(10).isoformat())

    api.post("/vaccinations/", json=vaccination_payload(patient["id"], applied=days_ago(40)))

    assert get_patient(patient["id"])["lastVisit"] == days_ago(10).isoformat()


def test_later_vaccination_moves_last_visit(api, make_patient, get_patient):
    patient = make_patient(lastVisit=days_ago(40).isoformat())

    api.post("/vaccinations/", json=vaccination_payload(patient["id"], applied=days_ago(10)))

    assert get_patient(patient["id"])["lastVisit"] == days_ago(10).isoformat()


def test_update_does_not_touch_last_visit(api, make_patient, get_patient):
    patient = make_patient()
    vaccination = api.post(
        "/vaccinations/", json=vaccination_payload(patient["id"], applied=days_ago(100))
    ).json()["data"]

    response = api.put(
        f"/vaccinations/{vaccination['id']}",
        json=vaccination_payload(patient["id"], applied=days_ago(5), vaccine="Moquillo"),
    )

    assert response.status_code == 200
    assert response.json()["data"]["vaccine"] == "Moquillo"
    assert get_patient(patient["id"])["lastVisit"] == days_ago(100).isoformat()


def test_future_date_is_rejected(api, make_patient):
    patient = make_patient()
    tomorrow = TODAY + timedelta(days=1)

    response = api.post("/vaccinations/", json=vaccination_payload(patient["id"], applied=tomorrow))

    assert response.status_code == 400
    assert response.json()["errors"][0]["message"] == "La fecha de vacunación no puede ser futura"


def test_next_due_must_follow_date(api, make_patient):
    patient = make_patient()

    response = api.post(
        "/vaccinations/",
        json=vaccination_payload(patient["id"], applied=days_ago(10), next_due=days_ago(10)),
    )

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "nextDue"


def test_missing_patient_is_rejected(api):
    response = api.post("/vaccinations/", json=vaccination_payload(999))

    assert response.status_code == 400
    assert response.json()["field"] == "patientId"


def test_upcoming_includes_owner_details(api, make_client, make_patient):
    owner = make_client(name="Marta Soler", phone="611222333")
    patient = make_patient(owner["id"], name="Luna", species="Gato")
    soon = vaccination_payload(patient["id"], applied=days_ago(355), next_due=TODAY + timedelta(days=10))
    later = vaccination_payload(patient["id"], applied=days_ago(300), next_due=TODAY + timedelta(days=60))
    api.post("/vaccinations/", json=soon)
    api.post("/vaccinations/", json=later)

    body = api.get("/vaccinations/upcoming").json()

    assert body["count"] == 1
    item = body["data"][0]
    assert item["nextDue"] == (TODAY + timedelta(days=10)).isoformat()
    assert item["patientName"] == "Luna"
    assert item["species"] == "Gato"
    assert item["ownerName"] == "Marta Soler"
    assert item["ownerPhone"] == "611222333"
    assert "daysOverdue" not in item

    wider = api.get("/vaccinations/upcoming", params={"days": 90}).json()
    assert [v["nextDue"] for v in wider["data"]] == [
        (TODAY + timedelta(days=10)).isoformat(),
        (TODAY + timedelta(days=60)).isoformat(),
    ]


def test_overdue_reports_days(api, make_patient):
    patient = make_patient()
    api.post(
        "/vaccinations/",
        json=vaccination_payload(patient["id"], applied=days_ago(400), next_due=days_ago(35)),
    )
    api.post("/vaccinations/", json=vaccination_payload(patient["id"], applied=days_ago(5)))

    body = api.get("/vaccinations/overdue").json()

    assert body["message"] == "Vacunaciones vencidas obtenidas correctamente"
    assert body["count"] == 1
    assert body["data"][0]["daysOverdue"] == 35


def test_stats(api, make_patient):
    patient = make_patient()
    api.post("/vaccinations/", json=vaccination_payload(patient["id"], applied=days_ago(400), next_due=days_ago(1)))
    api.post("/vaccinations/", json=vaccination_payload(patient["id"], applied=days_ago(360), next_due=TODAY + timedelta(days=5)))
    api.post("/vaccinations/", json=vaccination_payload(patient["id"], applied=days_ago(10)))

    data = api.get("/vaccinations/stats").json()["data"]

    assert data == {"totalVaccinations": 3, "upcomingCount": 1, "overdueCount": 1}


def test_list_by_patient_and_delete(api, make_patient):
    patient = make_patient()
    other = make_patient()
    created = api.post("/vaccinations/", json=vaccination_payload(patient["id"])).json()["data"]
    api.post("/vaccinations/", json=vaccination_payload(other["id"]))

    assert api.get(f"/vaccinations/patient/{patient['id']}").json()["count"] == 1
    assert api.get("/vaccinations/").json()["count"] == 2

    assert api.delete(f"/vaccinations/{created['id']}").status_code == 200
    assert api.get(f"/vaccinations/{created['id']}").status_code == 404
