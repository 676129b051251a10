"""Contexte d'exécution partagé (lecture seule) entre tous les workers."""
import uuid
from dataclasses import dataclass


@dataclass(frozen=True)
class LoaderContext:
    """Valeurs résolues une seule fois avant le lancement des workers."""

    system_id: uuid.UUID
    committer_id: uuid.UUID
    zone_id: str
