"""
Configuración de la aplicación.

Todos los valores se leen de variables de entorno con prefijo ``VETCLINIC_``
y se convierten al tipo esperado. Si una variable no existe se usa el valor
por defecto del dataclass ``Settings``.
"""

import logging
import os
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

T = TypeVar("T")

ENV_PREFIX = "VETCLINIC_"

STORAGE_SQL = "sql"
STORAGE_MEMORY = "memory"


class ConfigError(Exception):
    """Error en la configuración leída del entorno."""


def _to_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ConfigError(f"Valor booleano inválido: {value!r}")


def get_env(name: str, default: T, cast: Optional[Callable[[str], T]] = None) -> T:
    """
    Lee ``VETCLINIC_<name>`` y lo convierte con ``cast``.

    Args:
        name: Nombre de la variable sin prefijo
        default: Valor devuelto si la variable no está definida
        cast: Conversión a aplicar (por defecto el tipo de ``default``)

    Returns:
        El valor convertido o ``default``
    """
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None or raw == "":
        return default

    if cast is None:
        cast = _to_bool if isinstance(default, bool) else type(default)

    try:
        return cast(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{ENV_PREFIX}{name}: no se pudo convertir {raw!r}") from exc


@dataclass
class Settings:
    database_url: str = "sqlite:///./vetclinic.db"
    storage_backend: str = STORAGE_SQL
    rate_limit: str = "100/minute"
    rate_limit_storage_uri: str = "memory://"
    rate_limit_enabled: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        settings = cls(
            database_url=get_env("DATABASE_URL", defaults.database_url),
            storage_backend=get_env("STORAGE", defaults.storage_backend).lower(),
            rate_limit=get_env("RATE_LIMIT", defaults.rate_limit),
            rate_limit_storage_uri=get_env(
                "RATE_LIMIT_STORAGE", defaults.rate_limit_storage_uri
            ),
            rate_limit_enabled=get_env("RATE_LIMIT_ENABLED", defaults.rate_limit_enabled),
            log_level=get_env("LOG_LEVEL", defaults.log_level).upper(),
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        if self.storage_backend not in (STORAGE_SQL, STORAGE_MEMORY):
            raise ConfigError(
                f"{ENV_PREFIX}STORAGE debe ser '{STORAGE_SQL}' o '{STORAGE_MEMORY}'"
            )
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ConfigError(f"{ENV_PREFIX}LOG_LEVEL inválido: {self.log_level}")

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


def configure_logging(level: str = "INFO") -> None:
    """Configura el logging raíz una sola vez al arrancar la aplicación."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    # SQLAlchemy solo debe hablar cuando se pide explícitamente
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


settings = Settings.from_env()
