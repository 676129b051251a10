"""
Tables EHR / composition (schéma bitemporel)

Contenu
- `Ehr` et son `Status` (un seul statut par EHR).
- `Composition` (en-tête), `Entry` (contenu sérialisé, séquence 0),
  `EventContext` et `Participation`.

Notes
- Les horodatages métier sont stockés en heure locale (naïve) accompagnés
  d'une colonne `*_tzid`.
- `sys_period_lower` / `sys_period_upper` portent l'intervalle de validité;
  une borne haute nulle signifie "ouvert".
- Les valeurs codées (DV_CODED_TEXT) sont stockées en JSON, voir
  `loader.converters.rm_to_records.DvCodedTextRecord`.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import SQLModel, Field


class EntryType(str, Enum):
    ADMIN = "admin"
    CARE_ENTRY = "care_entry"
    SECTION = "section"
    PROXY = "proxy"


def _json_column(nullable: bool = True) -> Column:
    return Column(JSON, nullable=nullable)


def _period_column(nullable: bool) -> Column:
    return Column(DateTime(timezone=True), nullable=nullable)


def _local_time_column(nullable: bool) -> Column:
    """Heure murale sans fuseau (le fuseau est dans la colonne `*_tzid`)."""
    return Column(DateTime(timezone=False), nullable=nullable)


class Ehr(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    date_created: datetime = Field(sa_column=_local_time_column(nullable=False))
    date_created_tzid: str
    system_id: uuid.UUID = Field(foreign_key="system.id")


class Status(SQLModel, table=True):
    """EHR_STATUS: exactement un par EHR."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    ehr_id: uuid.UUID = Field(foreign_key="ehr.id", index=True, unique=True)
    party: uuid.UUID = Field(foreign_key="partyidentified.id")
    is_queryable: bool = True
    is_modifiable: bool = True
    has_audit: uuid.UUID = Field(foreign_key="auditdetails.id", unique=True)
    in_contribution: uuid.UUID = Field(foreign_key="contribution.id")
    archetype_node_id: str
    name: Optional[Dict[str, Any]] = Field(default=None, sa_column=_json_column())
    other_details: Optional[Dict[str, Any]] = Field(default=None, sa_column=_json_column())
    sys_transaction: datetime = Field(sa_column=_local_time_column(nullable=False))
    sys_period_lower: datetime = Field(sa_column=_period_column(nullable=False))
    sys_period_upper: Optional[datetime] = Field(default=None, sa_column=_period_column(nullable=True))


class Composition(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    ehr_id: uuid.UUID = Field(foreign_key="ehr.id", index=True)
    in_contribution: uuid.UUID = Field(foreign_key="contribution.id")
    language: str
    territory: int = Field(foreign_key="territory.code")
    composer: uuid.UUID = Field(foreign_key="partyidentified.id")
    has_audit: uuid.UUID = Field(foreign_key="auditdetails.id", unique=True)
    links: List[Any] = Field(default_factory=list, sa_column=_json_column(nullable=False))
    sys_transaction: datetime = Field(sa_column=_local_time_column(nullable=False))
    sys_period_lower: datetime = Field(sa_column=_period_column(nullable=False))
    sys_period_upper: Optional[datetime] = Field(default=None, sa_column=_period_column(nullable=True))


class Entry(SQLModel, table=True):
    """Contenu d'une composition (une seule entrée, séquence 0)."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    composition_id: uuid.UUID = Field(foreign_key="composition.id", index=True)
    sequence: int = 0
    item_type: EntryType
    template_id: str = Field(index=True)
    archetype_id: Optional[str] = None
    category: Optional[Dict[str, Any]] = Field(default=None, sa_column=_json_column())
    entry: Dict[str, Any] = Field(sa_column=_json_column(nullable=False))
    rm_version: Optional[str] = None
    name: Optional[Dict[str, Any]] = Field(default=None, sa_column=_json_column())
    sys_transaction: datetime = Field(sa_column=_local_time_column(nullable=False))
    sys_period_lower: datetime = Field(sa_column=_period_column(nullable=False))
    sys_period_upper: Optional[datetime] = Field(default=None, sa_column=_period_column(nullable=True))


class EventContext(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    composition_id: uuid.UUID = Field(foreign_key="composition.id", index=True)
    start_time: datetime = Field(sa_column=_local_time_column(nullable=False))
    start_time_tzid: Optional[str] = None
    end_time: Optional[datetime] = Field(default=None, sa_column=_local_time_column(nullable=True))
    end_time_tzid: Optional[str] = None
    location: Optional[str] = None
    setting: Optional[Dict[str, Any]] = Field(default=None, sa_column=_json_column())
    other_context: Optional[Dict[str, Any]] = Field(default=None, sa_column=_json_column())
    sys_transaction: datetime = Field(sa_column=_local_time_column(nullable=False))
    sys_period_lower: datetime = Field(sa_column=_period_column(nullable=False))
    sys_period_upper: Optional[datetime] = Field(default=None, sa_column=_period_column(nullable=True))


class Participation(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    event_context: uuid.UUID = Field(foreign_key="eventcontext.id", index=True)
    performer: uuid.UUID = Field(foreign_key="partyidentified.id")
    function: Optional[Dict[str, Any]] = Field(default=None, sa_column=_json_column())
    mode: Optional[Dict[str, Any]] = Field(default=None, sa_column=_json_column())
    time_lower: Optional[datetime] = Field(default=None, sa_column=_local_time_column(nullable=True))
    time_lower_tz: Optional[str] = None
    time_upper: Optional[datetime] = Field(default=None, sa_column=_local_time_column(nullable=True))
    time_upper_tz: Optional[str] = None
    sys_transaction: datetime = Field(sa_column=_local_time_column(nullable=False))
    sys_period_lower: datetime = Field(sa_column=_period_column(nullable=False))
    sys_period_upper: Optional[datetime] = Field(default=None, sa_column=_period_column(nullable=True))
