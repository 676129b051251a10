"""Tables de référence partagées entre tous les workers.

- `System` : identité unique du système (singleton)
- `PartyIdentified` : parties (committer interne, composers, performers, sujets)
- `Identifier` : identifiant rattaché au committer interne
- `TemplateStore` : registre des templates opérationnels (OPT)
- `Territory` : table ISO 3166 pré-remplie, en lecture seule ensuite
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Column, DateTime
from sqlmodel import SQLModel, Field


class PartyType(str, Enum):
    PARTY_SELF = "party_self"
    PARTY_IDENTIFIED = "party_identified"


class PartyRefIdType(str, Enum):
    GENERIC_ID = "generic_id"
    UNDEFINED = "undefined"


class System(SQLModel, table=True):
    """Système émetteur des AUDIT_DETAILS."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    description: str
    settings: str


class PartyIdentified(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: Optional[str] = Field(default=None, index=True)
    party_ref_value: Optional[str] = None
    party_ref_scheme: Optional[str] = None
    party_ref_namespace: Optional[str] = None
    party_ref_type: Optional[str] = None
    party_type: PartyType
    object_id_type: PartyRefIdType = PartyRefIdType.UNDEFINED


class Identifier(SQLModel, table=True):
    """Identifiant métier d'une partie (utilisé uniquement pour le committer)."""

    id: Optional[int] = Field(default=None, primary_key=True)
    id_value: str
    issuer: Optional[str] = None
    assigner: Optional[str] = None
    type_name: Optional[str] = None
    party: uuid.UUID = Field(foreign_key="partyidentified.id", index=True)


class TemplateStore(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    template_id: str = Field(index=True, unique=True)
    content: str
    sys_transaction: datetime = Field(
        default_factory=datetime.now,
        sa_column=Column(DateTime(timezone=False), nullable=False),
    )


class Territory(SQLModel, table=True):
    """Code territoire ISO 3166 (code numérique comme clé)."""

    code: int = Field(primary_key=True)
    twoletter: str = Field(index=True, unique=True)
    threeletter: str
    text: str
