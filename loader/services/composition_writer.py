"""
Décomposition d'une COMPOSITION en lignes relationnelles.

Pour une composition et un EHR propriétaire, `CompositionWriter.write()` crée
dans l'ordre:
1. vérification du template_id (échec avant toute écriture)
2. CONTRIBUTION (type composition) + AUDIT_DETAILS
3. résolution du territoire (échec si code inconnu)
4. partie composer
5. en-tête `composition` (période ouverte à maintenant, borne haute nulle)
6. classification du contenu (premier item uniquement)
7. ligne `entry` (JSON brut, séquence 0)
8. `eventcontext` puis `participation` si un contexte est déclaré

Toutes ces écritures forment une seule transaction: en cas d'échec à une
étape quelconque, aucune ligne de la composition ne reste (en-tête, audit et
contribution compris) et l'erreur est propagée.
"""
import uuid
from datetime import datetime, timezone
from typing import List

from sqlmodel import Session

from loader.context import LoaderContext
from loader.converters.rm_to_records import as_column, build_coded_text, build_party
from loader.converters.rm_types import (
    AdminEntry,
    CareEntry,
    Composition as RMComposition,
    EventContext as RMEventContext,
    Participation as RMParticipation,
    Section,
)
from loader.models import Composition, Entry, EntryType, EventContext, Participation
from loader.models_audit import ContributionDataType
from loader.services.audit_service import create_audit, create_contribution
from loader.services.reference_data import resolve_territory
from loader.utils.error_handling import MissingTemplateIdError
from loader.utils.time_utils import resolve_time_zone, to_local

AUDIT_DESCRIPTION = "Create COMPOSITION"


def resolve_entry_type(composition: RMComposition) -> EntryType:
    """
    Type d'entrée déduit du premier item de contenu uniquement.

    Approximation connue: un document dont la nature dépend d'un item
    ultérieur est classé d'après le premier. Sans contenu → proxy.
    """
    if not composition.content:
        return EntryType.PROXY

    content_item = composition.content[0]
    if isinstance(content_item, AdminEntry):
        return EntryType.ADMIN
    elif isinstance(content_item, CareEntry):
        return EntryType.CARE_ENTRY
    elif isinstance(content_item, Section):
        return EntryType.SECTION
    else:
        return EntryType.PROXY


class CompositionWriter:
    """Insère une composition et ses lignes dépendantes pour un EHR."""

    def __init__(self, context: LoaderContext):
        self.context = context

    def write(self, session: Session, ehr_id: uuid.UUID, composition: RMComposition) -> uuid.UUID:
        """
        Décompose et insère la composition (une transaction).

        Returns:
            id de la ligne `composition`

        Raises:
            MissingTemplateIdError: template_id absent (rien n'est écrit)
            TerritoryNotFoundError: territoire inconnu (transaction annulée)
            UnsupportedPartyError: composer/performer non identifié (transaction annulée)
        """
        template_id = composition.template_id
        if template_id is None:
            raise MissingTemplateIdError(composition.archetype_node_id)

        try:
            composition_id = self._create_composition(session, ehr_id, composition)
            self._create_entry(session, composition_id, template_id, composition)
            if composition.context is not None:
                event_context_id = self._create_event_context(session, composition_id, composition.context)
                self._create_participations(session, event_context_id, composition.context.participations)
            session.commit()
        except Exception:
            session.rollback()
            raise
        return composition_id

    def _create_composition(self, session: Session, ehr_id: uuid.UUID, composition: RMComposition) -> uuid.UUID:
        contribution_id = create_contribution(
            session, self.context, ehr_id, ContributionDataType.COMPOSITION, AUDIT_DESCRIPTION
        )
        territory = resolve_territory(session, composition.territory.code_string)
        composer_id = build_party(session, composition.composer)

        record = Composition(
            ehr_id=ehr_id,
            in_contribution=contribution_id,
            language=composition.language.code_string,
            territory=territory,
            composer=composer_id,
            sys_transaction=datetime.now(),
            sys_period_lower=datetime.now(timezone.utc),
            has_audit=create_audit(session, self.context, AUDIT_DESCRIPTION),
            links=[],
        )
        session.add(record)
        session.flush()
        return record.id

    def _create_entry(
        self,
        session: Session,
        composition_id: uuid.UUID,
        template_id: str,
        composition: RMComposition,
    ) -> uuid.UUID:
        record = Entry(
            composition_id=composition_id,
            sequence=0,
            item_type=resolve_entry_type(composition),
            template_id=template_id,
            archetype_id=composition.archetype_node_id,
            category=as_column(build_coded_text(composition.category)),
            entry=composition.to_raw_json(),
            rm_version=composition.archetype_details.rm_version,
            name=as_column(build_coded_text(composition.name)),
            sys_transaction=datetime.now(),
            sys_period_lower=datetime.now(timezone.utc),
        )
        session.add(record)
        session.flush()
        return record.id

    def _create_event_context(
        self,
        session: Session,
        composition_id: uuid.UUID,
        event_context: RMEventContext,
    ) -> uuid.UUID:
        start_time = event_context.start_time.value
        record = EventContext(
            composition_id=composition_id,
            start_time=to_local(start_time),
            start_time_tzid=resolve_time_zone(start_time, self.context.zone_id),
            location=event_context.location,
            setting=as_column(build_coded_text(event_context.setting)),
            sys_transaction=datetime.now(),
            sys_period_lower=datetime.now(timezone.utc),
        )

        if event_context.end_time is not None:
            end_time = event_context.end_time.value
            record.end_time = to_local(end_time)
            record.end_time_tzid = resolve_time_zone(end_time, self.context.zone_id)

        # other_context vide: colonne laissée à NULL
        other_context = event_context.other_context
        if other_context is not None and other_context.items:
            record.other_context = other_context.to_raw_json()

        session.add(record)
        session.flush()
        return record.id

    def _create_participations(
        self,
        session: Session,
        event_context_id: uuid.UUID,
        participations: List[RMParticipation],
    ) -> None:
        for participation in participations:
            record = Participation(
                event_context=event_context_id,
                performer=build_party(session, participation.performer),
                function=as_column(build_coded_text(participation.function)),
                mode=as_column(build_coded_text(participation.mode)),
                sys_transaction=datetime.now(),
                sys_period_lower=datetime.now(timezone.utc),
            )

            interval = participation.time
            if interval is not None and interval.lower is not None:
                lower = interval.lower.value
                record.time_lower = to_local(lower)
                record.time_lower_tz = resolve_time_zone(lower, self.context.zone_id)
            if interval is not None and interval.upper is not None:
                upper = interval.upper.value
                record.time_upper = to_local(upper)
                record.time_upper_tz = resolve_time_zone(upper, self.context.zone_id)

            session.add(record)
        session.flush()
