from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import settings

# check_same_thread=False: FastAPI atiende endpoints síncronos en un threadpool
connect_args = {"check_same_thread": False} if settings.is_sqlite else {}

engine = create_engine(settings.database_url, connect_args=connect_args, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db(bind=None):
    """Crea las tablas que falten."""
    from . import models  # noqa: F401  registra los modelos en Base.metadata

    Base.metadata.create_all(bind=bind or engine)
