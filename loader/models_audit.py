"""Traçabilité des écritures: AUDIT_DETAILS et CONTRIBUTION.

Chaque ligne mutante (statut, composition) référence sa propre contribution
et son propre audit; ces lignes ne sont jamais partagées ni réutilisées.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Column, DateTime
from sqlmodel import SQLModel, Field


class ContributionDataType(str, Enum):
    EHR = "ehr"
    COMPOSITION = "composition"


class ContributionState(str, Enum):
    COMPLETE = "complete"
    INCOMPLETE = "incomplete"
    DELETED = "deleted"


class ContributionChangeType(str, Enum):
    CREATION = "creation"
    AMENDMENT = "amendment"
    MODIFICATION = "modification"
    DELETED = "deleted"


class AuditDetails(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    system_id: uuid.UUID = Field(foreign_key="system.id")
    committer: uuid.UUID = Field(foreign_key="partyidentified.id")
    time_committed: datetime = Field(sa_column=Column(DateTime(timezone=False), nullable=False))
    time_committed_tzid: str
    change_type: ContributionChangeType
    description: Optional[str] = None


class Contribution(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    ehr_id: uuid.UUID = Field(foreign_key="ehr.id", index=True)
    contribution_type: ContributionDataType
    state: ContributionState
    has_audit: uuid.UUID = Field(foreign_key="auditdetails.id", unique=True)
