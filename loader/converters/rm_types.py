"""
Sous-ensemble typé du modèle de référence openEHR utilisé par le chargeur.

Les compositions des fixtures (JSON canonique, champ `_type`) sont validées
dans ces classes; le reste de l'arbre (data des entrées, items des
structures, attributs non modélisés) est conservé tel quel et re-sérialisé.
"""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class RMObject(BaseModel):
    """Base commune: accepte `_type` via alias et conserve les attributs non modélisés."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_raw_json(self) -> Dict[str, Any]:
        """Sérialisation brute (aliases, sans valeurs nulles) stockée en base."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ObjectId(RMObject):
    value: str


class CodePhrase(RMObject):
    type_: Literal["CODE_PHRASE"] = Field(default="CODE_PHRASE", alias="_type")
    terminology_id: ObjectId
    code_string: str


class TermMapping(RMObject):
    type_: Literal["TERM_MAPPING"] = Field(default="TERM_MAPPING", alias="_type")
    match: str
    purpose: Optional["DvCodedText"] = None
    target: CodePhrase


class DvText(RMObject):
    type_: Literal["DV_TEXT"] = Field(default="DV_TEXT", alias="_type")
    value: str
    formatting: Optional[str] = None
    language: Optional[CodePhrase] = None
    encoding: Optional[CodePhrase] = None
    mappings: List[TermMapping] = Field(default_factory=list)


class DvCodedText(DvText):
    type_: Literal["DV_CODED_TEXT"] = Field(default="DV_CODED_TEXT", alias="_type")  # type: ignore[assignment]
    defining_code: CodePhrase


AnyText = Union[DvCodedText, DvText]


class DvDateTime(RMObject):
    type_: Literal["DV_DATE_TIME"] = Field(default="DV_DATE_TIME", alias="_type")
    value: datetime


class DvInterval(RMObject):
    type_: Literal["DV_INTERVAL"] = Field(default="DV_INTERVAL", alias="_type")
    lower: Optional[DvDateTime] = None
    upper: Optional[DvDateTime] = None
    lower_unbounded: bool = False
    upper_unbounded: bool = False


class PartyRef(RMObject):
    id: Optional[Dict[str, Any]] = None
    namespace: Optional[str] = None
    type: Optional[str] = None


class PartySelf(RMObject):
    type_: Literal["PARTY_SELF"] = Field(default="PARTY_SELF", alias="_type")
    external_ref: Optional[PartyRef] = None


class PartyIdentified(RMObject):
    type_: Literal["PARTY_IDENTIFIED"] = Field(default="PARTY_IDENTIFIED", alias="_type")
    name: Optional[str] = None
    external_ref: Optional[PartyRef] = None


class PartyRelated(PartyIdentified):
    """PARTY_RELATED spécialise PARTY_IDENTIFIED (relation au sujet en plus)."""

    type_: Literal["PARTY_RELATED"] = Field(default="PARTY_RELATED", alias="_type")  # type: ignore[assignment]
    relationship: Optional[DvCodedText] = None


PartyProxy = Union[PartyRelated, PartyIdentified, PartySelf]


class Locatable(RMObject):
    name: AnyText
    archetype_node_id: str


class AdminEntry(Locatable):
    type_: Literal["ADMIN_ENTRY"] = Field(default="ADMIN_ENTRY", alias="_type")
    data: Optional[Dict[str, Any]] = None


class CareEntry(Locatable):
    """OBSERVATION, EVALUATION, INSTRUCTION et ACTION."""

    type_: Literal["OBSERVATION", "EVALUATION", "INSTRUCTION", "ACTION"] = Field(
        default="OBSERVATION", alias="_type"
    )
    data: Optional[Dict[str, Any]] = None
    protocol: Optional[Dict[str, Any]] = None
    activities: Optional[List[Dict[str, Any]]] = None
    description: Optional[Dict[str, Any]] = None


class GenericEntry(Locatable):
    """Toute autre entrée (GENERIC_ENTRY): classée en proxy."""

    type_: Literal["GENERIC_ENTRY"] = Field(default="GENERIC_ENTRY", alias="_type")
    data: Optional[Dict[str, Any]] = None


class Section(Locatable):
    type_: Literal["SECTION"] = Field(default="SECTION", alias="_type")
    items: List["ContentItem"] = Field(default_factory=list)


ContentItem = Union[Section, AdminEntry, CareEntry, GenericEntry]


class ItemStructure(RMObject):
    type_: str = Field(default="ITEM_TREE", alias="_type")
    name: Optional[AnyText] = None
    archetype_node_id: Optional[str] = None
    items: List[Dict[str, Any]] = Field(default_factory=list)


class Participation(RMObject):
    type_: Literal["PARTICIPATION"] = Field(default="PARTICIPATION", alias="_type")
    function: AnyText
    mode: Optional[DvCodedText] = None
    performer: PartyProxy
    time: Optional[DvInterval] = None


class EventContext(RMObject):
    type_: Literal["EVENT_CONTEXT"] = Field(default="EVENT_CONTEXT", alias="_type")
    start_time: DvDateTime
    end_time: Optional[DvDateTime] = None
    location: Optional[str] = None
    setting: DvCodedText
    other_context: Optional[ItemStructure] = None
    participations: List[Participation] = Field(default_factory=list)


class ArchetypeDetails(RMObject):
    archetype_id: ObjectId
    template_id: Optional[ObjectId] = None
    rm_version: str = "1.0.4"


class Composition(Locatable):
    type_: Literal["COMPOSITION"] = Field(default="COMPOSITION", alias="_type")
    archetype_details: ArchetypeDetails
    language: CodePhrase
    territory: CodePhrase
    category: DvCodedText
    composer: PartyProxy
    context: Optional[EventContext] = None
    content: List[ContentItem] = Field(default_factory=list)

    @property
    def template_id(self) -> Optional[str]:
        template = self.archetype_details.template_id
        return template.value if template else None


TermMapping.model_rebuild()
Section.model_rebuild()
