import logging
import threading

from fastapi import Depends

from .config import STORAGE_MEMORY, settings
from .database import SessionLocal
from .models import TABLES, UNIQUE_FIELDS
from .storage import MemoryStorage, SqlStorage

logger = logging.getLogger(__name__)

_memory_storage = None
_memory_lock = threading.Lock()


def get_memory_storage() -> MemoryStorage:
    """Almacén en memoria compartido por todo el proceso."""
    global _memory_storage
    with _memory_lock:
        if _memory_storage is None:
            logger.info("Usando almacenamiento en memoria")
            _memory_storage = MemoryStorage(list(TABLES), UNIQUE_FIELDS)
        return _memory_storage


def get_storage():
    """Una sesión de SQLAlchemy por petición, o el almacén en memoria."""
    if settings.storage_backend == STORAGE_MEMORY:
        yield get_memory_storage()
        return

    db = SessionLocal()
    try:
        yield SqlStorage(db)
    finally:
        db.close()


# --- Alias de Dependencia ---
StorageDep = Depends(get_storage)
