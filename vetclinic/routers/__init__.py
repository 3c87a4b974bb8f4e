from . import appointments, clients, patients, users, vaccinations, visits

ROUTERS = [
    clients.router,
    patients.router,
    visits.router,
    vaccinations.router,
    appointments.router,
    users.router,
]
