from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import settings

# --- CONFIGURACIÓN DE RATE LIMITER ---
# En producción apuntar VETCLINIC_RATE_LIMIT_STORAGE a Redis (redis://host:6379)
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.rate_limit_storage_uri,
    enabled=settings.rate_limit_enabled,
)

# Límite por defecto de los endpoints de las entidades
RATE_LIMIT = settings.rate_limit
