"""Écriture des AUDIT_DETAILS et CONTRIBUTION (ajout seul, jamais de réutilisation)."""
import uuid
from datetime import datetime

from sqlmodel import Session

from loader.context import LoaderContext
from loader.models_audit import (
    AuditDetails,
    Contribution,
    ContributionChangeType,
    ContributionDataType,
    ContributionState,
)


def create_audit(session: Session, context: LoaderContext, description: str) -> uuid.UUID:
    """Crée un AUDIT_DETAILS de création avec la description donnée."""
    audit = AuditDetails(
        system_id=context.system_id,
        committer=context.committer_id,
        time_committed=datetime.now(),
        time_committed_tzid=context.zone_id,
        change_type=ContributionChangeType.CREATION,
        description=description,
    )
    session.add(audit)
    session.flush()
    return audit.id


def create_contribution(
    session: Session,
    context: LoaderContext,
    ehr_id: uuid.UUID,
    contribution_type: ContributionDataType,
    description: str,
) -> uuid.UUID:
    """Crée une CONTRIBUTION complète de l'EHR, avec son propre audit."""
    contribution = Contribution(
        ehr_id=ehr_id,
        contribution_type=contribution_type,
        state=ContributionState.COMPLETE,
        has_audit=create_audit(session, context, description),
    )
    session.add(contribution)
    session.flush()
    return contribution.id
