"""
Résolution des données de référence partagées (système, committer interne,
registre des templates, territoires).

Invariant de concurrence:
- Toute séquence "lire puis créer si absent" s'exécute sous le verrou global
  `_RESOLVE_LOCK` et se termine par un commit avant sa libération. N appels
  concurrents pour une même clé produisent donc une seule ligne.
- `bootstrap_context()` effectue ces résolutions une fois, dans un seul
  thread, avant le lancement des workers; ceux-ci ne reçoivent que le
  `LoaderContext` immuable.
- Les territoires sont en lecture seule: lecture sans verrou.
"""

from __future__ import annotations

import threading
import uuid
from datetime import datetime
from typing import Mapping

from sqlmodel import Session, select

from loader.context import LoaderContext
from loader.models_reference import (
    Identifier,
    PartyIdentified,
    PartyRefIdType,
    PartyType,
    System,
    TemplateStore,
    Territory,
)
from loader.services.fixtures import TEMPLATE_FIXTURES, read_resource
from loader.utils.error_handling import TerritoryNotFoundError
from loader.utils.structured_logging import StructuredLogger

logger = StructuredLogger(__name__)

SYSTEM_DESCRIPTION = "Default system"
SYSTEM_SETTINGS = "local.ehrbase.org"

COMMITTER_NAME = "EHRbase Internal Test Data Loader"

# Verrou global pour sécuriser les créations concurrentes (threads/tests)
_RESOLVE_LOCK = threading.Lock()


def resolve_system(session: Session) -> uuid.UUID:
    """Retourne l'id du système existant ou le crée."""
    with _RESOLVE_LOCK:
        system = session.exec(select(System)).first()
        if system is None:
            system = System(description=SYSTEM_DESCRIPTION, settings=SYSTEM_SETTINGS)
            session.add(system)
            session.commit()
            logger.info("Created system", system_id=system.id)
        return system.id


def resolve_committer(session: Session) -> uuid.UUID:
    """Retourne l'id du committer interne, créé avec son identifiant si absent."""
    with _RESOLVE_LOCK:
        committer = session.exec(
            select(PartyIdentified).where(PartyIdentified.name == COMMITTER_NAME)
        ).first()
        if committer is None:
            committer = PartyIdentified(
                name=COMMITTER_NAME,
                party_ref_value=str(uuid.uuid4()),
                party_ref_scheme="DEMOGRAPHIC",
                party_ref_namespace="User",
                party_ref_type="PARTY",
                party_type=PartyType.PARTY_IDENTIFIED,
                object_id_type=PartyRefIdType.GENERIC_ID,
            )
            session.add(committer)
            session.flush()  # id pour FK identifier

            session.add(Identifier(
                id_value="Test Data Loader",
                issuer="EHRbase",
                assigner="EHRbase",
                type_name="EHRbase Security Authentication User",
                party=committer.id,
            ))
            session.commit()
            logger.info("Created committer", committer_id=committer.id)
        return committer.id


def ensure_template(session: Session, template_id: str, resource_location: str) -> uuid.UUID:
    """
    Enregistre un template dans `templatestore` s'il n'y est pas déjà.

    Le contenu OPT n'est lu que lorsque le template est absent.

    Returns:
        id de la ligne existante ou créée
    """
    with _RESOLVE_LOCK:
        existing = session.exec(
            select(TemplateStore).where(TemplateStore.template_id == template_id)
        ).first()
        if existing is not None:
            logger.info(f"Template {template_id} already exists")
            return existing.id

        template = TemplateStore(
            id=uuid.uuid4(),
            template_id=template_id,
            content=read_resource(resource_location),
            sys_transaction=datetime.now(),
        )
        session.add(template)
        session.commit()
        logger.info(f"Template {template_id} registered", location=resource_location)
        return template.id


def register_templates(
    session: Session,
    fixtures: Mapping[str, str] = TEMPLATE_FIXTURES,
) -> dict[str, uuid.UUID]:
    """Enregistre l'ensemble des templates embarqués (idempotent)."""
    return {
        template_id: ensure_template(session, template_id, location)
        for template_id, location in fixtures.items()
    }


def resolve_territory(session: Session, two_letter: str) -> int:
    """
    Code numérique d'un territoire à partir de son code alpha-2.

    Raises:
        TerritoryNotFoundError: si le code est absent de la table de référence
    """
    code = session.exec(
        select(Territory.code).where(Territory.twoletter == two_letter)
    ).first()
    if code is None:
        raise TerritoryNotFoundError(two_letter)
    return code


def bootstrap_context(
    session: Session,
    zone_id: str,
    template_fixtures: Mapping[str, str] = TEMPLATE_FIXTURES,
) -> LoaderContext:
    """Phase d'initialisation mono-thread, à exécuter avant toute parallélisation."""
    system_id = resolve_system(session)
    committer_id = resolve_committer(session)
    register_templates(session, template_fixtures)
    return LoaderContext(system_id=system_id, committer_id=committer_id, zone_id=zone_id)
