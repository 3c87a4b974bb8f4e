from vetclinic import crud
from vetclinic.seed import DEFAULT_PASSWORD, seed_database


def test_seed_database(store):
    created = seed_database(store, clients=3, patients_per_client=2, visits_per_patient=2, users=2, seed=42)

    assert created["clients"] == crud.clients.count(store) == 3
    assert created["patients"] == crud.patients.count(store)
    assert 3 <= created["patients"] <= 6
    assert created["visits"] == crud.visits.count(store)
    assert created["vaccinations"] == created["appointments"] == created["patients"]
    assert created["users"] == crud.users.count(store) == 2

    client_ids = {client["id"] for client in crud.clients.find_all(store)}
    for patient in crud.patients.find_all(store):
        assert patient["owner_id"] in client_ids
        # toda mascota sembrada recibe al menos una vacuna
        assert patient["last_visit"] is not None


def test_seeded_users_can_log_in(store):
    seed_database(store, clients=1, patients_per_client=1, visits_per_patient=0, users=1, seed=7)

    user = crud.users.find_all(store)[0]

    assert crud.users.verify_credentials(store, user["email"], DEFAULT_PASSWORD) is not None
