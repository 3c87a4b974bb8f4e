"""API de gestión de clínica veterinaria."""

__version__ = "0.1.0"
