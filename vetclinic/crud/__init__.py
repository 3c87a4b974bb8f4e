from . import appointments, clients, patients, users, vaccinations, visits

__all__ = ["appointments", "clients", "patients", "users", "vaccinations", "visits"]
