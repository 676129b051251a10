"""
Configuration du chargeur.

Les valeurs viennent des variables d'environnement `LOADER_*` (voir
`LoaderSettings.from_env`); la CLI peut ensuite surcharger chaque champ.
"""
import os
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator
from tzlocal import get_localzone_name

from loader.utils.structured_logging import StructuredLogger

logger = StructuredLogger(__name__)

DEFAULT_ZONE_ID = "UTC"


def _is_zone_id(value: Optional[str]) -> bool:
    if not value:
        return False
    try:
        ZoneInfo(value)
    except (ValueError, ZoneInfoNotFoundError):
        return False
    return True


def _local_zone_id() -> str:
    """
    Identifiant IANA du fuseau local du processus (`Europe/Berlin`).

    Résolu par tzlocal (TZ, /etc/localtime, registre Windows...). Une
    configuration locale illisible ou non IANA retombe sur UTC.
    """
    try:
        name = get_localzone_name()
    except (ValueError, LookupError) as e:
        logger.warning("Local time zone unreadable, using UTC", error=str(e))
        return DEFAULT_ZONE_ID
    if not _is_zone_id(name):
        logger.warning("Local time zone is not an IANA id, using UTC", zone=name)
        return DEFAULT_ZONE_ID
    return name


class LoaderSettings(BaseModel):
    """Paramètres d'une exécution de chargement."""

    ehr: int = Field(default=100, ge=1, description="Nombre d'EHR à générer")
    composition_per_ehr: int = Field(default=200, ge=1, description="Compositions par EHR")
    database_url: str = "sqlite:///./ehr_loader.db"
    workers: Optional[int] = Field(default=None, ge=1, description="Taille du pool de workers")
    zone_id: str = Field(default_factory=_local_zone_id)
    log_level: str = "INFO"
    log_json: bool = False

    @field_validator("zone_id")
    @classmethod
    def check_zone_id(cls, value: str) -> str:
        if not _is_zone_id(value):
            raise ValueError(f"'{value}' n'est pas un identifiant de fuseau IANA")
        return value

    @classmethod
    def from_env(cls, **overrides) -> "LoaderSettings":
        """Construit les paramètres depuis l'environnement puis applique les surcharges non nulles."""
        values = {
            "ehr": os.getenv("LOADER_EHR"),
            "composition_per_ehr": os.getenv("LOADER_COMPOSITION_PER_EHR"),
            "database_url": os.getenv("LOADER_DATABASE_URL"),
            "workers": os.getenv("LOADER_WORKERS"),
            "zone_id": os.getenv("LOADER_ZONE_ID"),
            "log_level": os.getenv("LOADER_LOG_LEVEL"),
            "log_json": os.getenv("LOADER_LOG_JSON"),
        }
        values.update(overrides)
        return cls(**{k: v for k, v in values.items() if v is not None})
