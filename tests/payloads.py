"""Cuerpos JSON válidos por entidad, con campos sobrescribibles."""

import itertools
from datetime import date, timedelta

_sequence = itertools.count(1)


def client_payload(**overrides):
    n = next(_sequence)
    payload = {
        "name": "Ana García",
        "email": f"ana{n}@example.com",
        "phone": "+34 600 123 456",
        "address": "Calle Mayor 12",
        "city": "Madrid",
    }
    payload.update(overrides)
    return payload


def patient_payload(owner_id, **overrides):
    payload = {
        "name": "Toby",
        "species": "Perro",
        "breed": "Labrador",
        "age": 3,
        "weight": 25.5,
        "gender": "Macho",
        "ownerId": owner_id,
    }
    payload.update(overrides)
    return payload


def visit_payload(patient_id, **overrides):
    payload = {
        "patientId": patient_id,
        "date": "2024-05-10",
        "type": "Consulta",
        "veterinarian": "Dra Marta López",
        "diagnosis": "Otitis externa leve",
        "treatment": "Gotas óticas cada 12 horas",
        "cost": 45.5,
    }
    payload.update(overrides)
    return payload


def vaccination_payload(patient_id, applied=None, next_due=None, **overrides):
    applied = applied or date.today() - timedelta(days=30)
    next_due = next_due or applied + timedelta(days=365)
    payload = {
        "patientId": patient_id,
        "date": applied.isoformat(),
        "vaccine": "Rabia",
        "nextDue": next_due.isoformat(),
        "veterinarian": "Dr Pablo Ruiz",
        "batchNumber": "LOT-1234",
    }
    payload.update(overrides)
    return payload


def appointment_payload(patient_id, **overrides):
    payload = {
        "patientId": patient_id,
        "date": "2024-06-01",
        "time": "9:30",
        "type": "Control",
        "veterinarian": "Dr Pablo Ruiz",
    }
    payload.update(overrides)
    return payload


def user_payload(**overrides):
    n = next(_sequence)
    payload = {
        "nombre": "Laura Pérez",
        "email": f"laura{n}@example.com",
        "telefono": "600123456",
        "password": "Secreta1!",
        "rolName": "Veterinario",
    }
    payload.update(overrides)
    return payload


