import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from . import schemas
from .config import STORAGE_SQL, configure_logging, settings
from .crud.common import now
from .database import init_db
from .limiter import limiter
from .middleware import register_exception_handlers, require_json
from .routers import ROUTERS

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.storage_backend == STORAGE_SQL:
        init_db()
        logger.info("Tablas verificadas en %s", settings.database_url.split("@")[-1])
    yield


app = FastAPI(title="API Clínica Veterinaria", lifespan=lifespan)

# --- MIDDLEWARE, MANEJADORES DE ERRORES Y ESTADO DEL LIMITER ---
app.state.limiter = limiter
app.middleware("http")(require_json)
register_exception_handlers(app)

for router in ROUTERS:
    app.include_router(router)


@app.get("/health", response_model=schemas.Health, tags=["Health"])
def health():
    return {"status": "ok", "storage": settings.storage_backend, "timestamp": now()}
